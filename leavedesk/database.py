"""Async SQLAlchemy engine and session management."""

import logging
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.orm.exc import StaleDataError

from leavedesk.common.exceptions import StorageConflict
from leavedesk.config import settings

logger = logging.getLogger(__name__)

# Storage failures that mean "this unit of work could not commit atomically".
CONFLICT_ERRORS = (OperationalError, IntegrityError, StaleDataError)


def _engine_kwargs() -> dict:
    if settings.DATABASE_URL.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": settings.DATABASE_POOL_SIZE,
        "max_overflow": settings.DATABASE_MAX_OVERFLOW,
        "pool_pre_ping": True,
    }


# Async engine for FastAPI
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.ENVIRONMENT == "development",
    **_engine_kwargs(),
)

# Async session factory
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


def utcnow() -> datetime:
    """Timezone-aware now, used for Python-side timestamp defaults."""
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


async def get_db() -> AsyncSession:
    """FastAPI dependency: yield an async database session.

    Leave workflow operations commit their own unit of work; the commit here
    only flushes whatever read-side state is left over.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except CONFLICT_ERRORS as exc:
            await session.rollback()
            logger.warning("Request transaction failed to commit: %s", exc)
            raise StorageConflict("request") from exc
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
