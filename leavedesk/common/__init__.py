"""Common module — shared utilities for LeaveDesk."""

from leavedesk.common.constants import (
    ACTIVE_LEAVE_STATUSES,
    DEFAULT_PAGE_SIZE,
    HALF_DAY,
    MAX_PAGE_SIZE,
    PERMISSIONS,
    WEEKEND_DAYS,
    LeaveEvent,
    LeaveStatus,
    NotificationType,
    UserRole,
)
from leavedesk.common.exceptions import (
    AppException,
    BalanceNotFound,
    ForbiddenException,
    InsufficientBalance,
    InvalidDateRange,
    InvalidTransition,
    LeaveValidationError,
    MissingField,
    MissingReason,
    NotFoundException,
    OverlappingRequest,
    StorageConflict,
    Unauthorized,
    ValidationException,
    register_exception_handlers,
)
from leavedesk.common.pagination import (
    PaginatedResponse,
    PaginationMeta,
    PaginationParams,
    paginate,
)

__all__ = [
    # Constants / Enums
    "LeaveEvent",
    "LeaveStatus",
    "NotificationType",
    "UserRole",
    "ACTIVE_LEAVE_STATUSES",
    "HALF_DAY",
    "WEEKEND_DAYS",
    "PERMISSIONS",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    # Exceptions
    "AppException",
    "BalanceNotFound",
    "ForbiddenException",
    "InsufficientBalance",
    "InvalidDateRange",
    "InvalidTransition",
    "LeaveValidationError",
    "MissingField",
    "MissingReason",
    "NotFoundException",
    "OverlappingRequest",
    "StorageConflict",
    "Unauthorized",
    "ValidationException",
    "register_exception_handlers",
    # Pagination
    "PaginatedResponse",
    "PaginationMeta",
    "PaginationParams",
    "paginate",
]
