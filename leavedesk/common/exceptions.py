"""Custom exceptions and RFC 7807 Problem Detail error handlers."""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

BASE_ERROR_URI = "https://leavedesk.internal/errors"


def _jsonable(value: Any) -> Any:
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (uuid.UUID, Decimal)):
        return str(value)
    return value


# ── Exception hierarchy ─────────────────────────────────────────────

class AppException(Exception):
    """Base for all application exceptions → RFC 7807 JSON."""

    def __init__(
        self,
        status_code: int,
        error_type: str,
        title: str,
        detail: str,
        errors: Optional[dict[str, Any]] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        self.status_code = status_code
        self.error_type = error_type
        self.title = title
        self.detail = detail
        self.errors = errors
        self.context = {k: _jsonable(v) for k, v in (context or {}).items()}
        super().__init__(detail)


class NotFoundException(AppException):
    """404 — entity not found."""

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(
            status_code=404,
            error_type="not-found",
            title=f"{entity_type} Not Found",
            detail=f"{entity_type} with id '{entity_id}' does not exist.",
        )


class ForbiddenException(AppException):
    """403 — insufficient permissions."""

    def __init__(
        self,
        detail: str = "You do not have permission to perform this action.",
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            status_code=403,
            error_type="forbidden",
            title="Forbidden",
            detail=detail,
            context=context,
        )


class ValidationException(AppException):
    """422 — business-logic validation failures."""

    def __init__(
        self,
        errors: dict[str, list[str]],
        *,
        error_type: str = "validation-error",
        title: str = "Validation Error",
        detail: str = "One or more fields failed validation.",
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            status_code=422,
            error_type=error_type,
            title=title,
            detail=detail,
            errors=errors,
            context=context,
        )


# ── Leave submission validation ─────────────────────────────────────

class LeaveValidationError(ValidationException):
    """A candidate leave request failed a pre-submission check."""

    kind = "validation-error"
    title = "Validation Error"

    def __init__(self, field_name: str, message: str, **context: Any) -> None:
        self.field = field_name
        super().__init__(
            {field_name: [message]},
            error_type=self.kind,
            title=self.title,
            detail=message,
            context=context,
        )


class InvalidDateRange(LeaveValidationError):
    kind = "invalid-date-range"
    title = "Invalid Date Range"

    def __init__(self, start_date: date, end_date: date) -> None:
        super().__init__(
            "start_date",
            f"Start date {start_date} must be on or before end date {end_date}.",
            start_date=start_date,
            end_date=end_date,
        )


class MissingField(LeaveValidationError):
    kind = "missing-field"
    title = "Missing Field"

    def __init__(self, field: str) -> None:
        super().__init__(field, f"'{field}' is required.", field=field)


class BalanceNotFound(LeaveValidationError):
    kind = "balance-not-found"
    title = "Leave Balance Not Found"

    def __init__(self, user_id: uuid.UUID, leave_type_id: uuid.UUID, year: int) -> None:
        super().__init__(
            "leave_type_id",
            f"No leave balance found for this leave type in {year}. Please contact HR.",
            user_id=user_id,
            leave_type_id=leave_type_id,
            year=year,
        )


class InsufficientBalance(LeaveValidationError):
    kind = "insufficient-balance"
    title = "Insufficient Balance"

    def __init__(self, requested: Decimal, available: Decimal) -> None:
        super().__init__(
            "total_days",
            f"Insufficient leave balance. Available: {available}, Requested: {requested}.",
            requested=requested,
            available=available,
        )


class OverlappingRequest(LeaveValidationError):
    kind = "overlapping-request"
    title = "Overlapping Request"

    def __init__(self, request_id: uuid.UUID, start_date: date, end_date: date) -> None:
        super().__init__(
            "start_date",
            f"You already have a pending or approved leave request from "
            f"{start_date} to {end_date} overlapping with these dates.",
            request_id=request_id,
            start_date=start_date,
            end_date=end_date,
        )


# ── Leave lifecycle ─────────────────────────────────────────────────

class InvalidTransition(AppException):
    """409 — the request is no longer in a state that accepts the event."""

    def __init__(self, request_id: Optional[uuid.UUID], status: str, event: str) -> None:
        self.status = status
        self.event = event
        super().__init__(
            status_code=409,
            error_type="invalid-transition",
            title="Invalid Transition",
            detail=f"Cannot {event} a leave request that is already {status}.",
            context={"request_id": request_id, "status": status, "event": event},
        )


class Unauthorized(ForbiddenException):
    """403 — actor lacks the capability for this transition."""

    def __init__(self, actor_id: uuid.UUID, event: str) -> None:
        super().__init__(
            f"You are not authorized to {event} this leave request.",
            context={"actor_id": actor_id, "event": event},
        )
        self.error_type = "unauthorized"


class MissingReason(ValidationException):
    """422 — rejection without a reason."""

    def __init__(self) -> None:
        super().__init__(
            {"rejection_reason": ["A rejection reason is required."]},
            error_type="missing-reason",
            title="Missing Reason",
            detail="A rejection reason is required.",
            context={"field": "rejection_reason"},
        )


class StorageConflict(AppException):
    """409 — the unit of work could not commit atomically; safe to resubmit."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(
            status_code=409,
            error_type="storage-conflict",
            title="Storage Conflict",
            detail=(
                f"The {operation} could not be saved because of a concurrent "
                "update. Nothing was changed; please retry."
            ),
            context={"operation": operation, "retryable": True},
        )


# ── RFC 7807 builder ────────────────────────────────────────────────

def _build_problem_detail(exc: AppException, request: Request) -> dict[str, Any]:
    body: dict[str, Any] = {
        "type": f"{BASE_ERROR_URI}/{exc.error_type}",
        "title": exc.title,
        "status": exc.status_code,
        "detail": exc.detail,
        "instance": str(request.url.path),
        "kind": exc.error_type,
    }
    if exc.errors:
        body["errors"] = exc.errors
    if exc.context:
        body["context"] = exc.context
    return body


# ── FastAPI handlers ────────────────────────────────────────────────

async def _handle_app_exception(
    request: Request,
    exc: AppException,
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_build_problem_detail(exc, request),
        media_type="application/problem+json",
    )


async def _handle_validation_error(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    field_errors: dict[str, list[str]] = {}
    for err in exc.errors():
        loc = err.get("loc", ())
        name = (
            ".".join(str(p) for p in loc[1:])
            if len(loc) > 1
            else str(loc[0]) if loc else "unknown"
        )
        field_errors.setdefault(name, []).append(err.get("msg", "Invalid value"))

    return JSONResponse(
        status_code=422,
        content={
            "type": f"{BASE_ERROR_URI}/validation-error",
            "title": "Validation Error",
            "status": 422,
            "detail": "Request validation failed.",
            "instance": str(request.url.path),
            "kind": "validation-error",
            "errors": field_errors,
        },
        media_type="application/problem+json",
    )


# ── Registration helper (called from main.py) ──────────────────────

def register_exception_handlers(app: FastAPI) -> None:
    """Attach all custom exception handlers to the FastAPI app."""
    app.add_exception_handler(AppException, _handle_app_exception)          # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _handle_validation_error)  # type: ignore[arg-type]
