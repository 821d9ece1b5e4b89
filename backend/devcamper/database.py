"""
DevCamper Backend — Database Session Management
=================================================

What:  Async SQLAlchemy engine, session factory, and FastAPI dependency.
How:   Creates an async engine with connection pooling, provides a session
       dependency that auto-commits on success and auto-rolls-back on error.
Who:   Used by route handlers and the authorization gate via Depends().
When:  Engine is created at module import; sessions are created per-request.

Connection Pooling Strategy:
    pool_size=20:      Persistent connections for normal load
    max_overflow=10:   Temporary connections for traffic spikes (total max = 30)
    pool_pre_ping:     Validates connections before use
    pool_recycle=3600: Recycles connections every hour

    SQLite (tests, local runs) opens a connection per session (NullPool), so
    pool sizing is only applied to server databases.
"""

import logging
from typing import Any, AsyncGenerator, Dict

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from devcamper.config import settings
from devcamper.exceptions import StoreFailure, ValidationError

logger = logging.getLogger(__name__)


def _engine_options(url: str) -> Dict[str, Any]:
    options: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
    if url.startswith("sqlite"):
        options["poolclass"] = NullPool
    else:
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return options


engine = create_async_engine(settings.database_url, **_engine_options(settings.database_url))

# expire_on_commit=False: objects stay readable after the request commits
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    All models inherit from this class so they share one metadata object,
    which Alembic reads for migrations and the test suite uses for
    create_all/drop_all.
    """
    pass


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler (and the authorization gate, which
           shares the same cached dependency within a request)
        3. On success: commits the transaction
        4. On error: rolls back the transaction
        5. Always: closes the session

    Example usage in a route:
        @router.get("/bootcamps")
        async def list_bootcamps(db: AsyncSession = Depends(get_db_session)):
            ...
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def flush_changes(
    db: AsyncSession,
    resource: str = "resource",
    integrity_message: str = "Duplicate field value entered",
) -> None:
    """
    Flush pending writes and translate store errors at the boundary.

    A violated constraint becomes a 400 ValidationError carrying
    `integrity_message` (duplicate unique key by default); every other store
    fault becomes a StoreFailure. The session is rolled back in both cases
    so the request-level commit never sees a half-applied change.

    Raises:
        ValidationError: A unique constraint was violated
        StoreFailure: Any other SQLAlchemy error
    """
    try:
        await db.flush()
    except IntegrityError as e:
        await db.rollback()
        logger.info("Integrity error writing %s: %s", resource, e.orig)
        raise ValidationError(
            message=integrity_message,
            context={"resource": resource},
        ) from e
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Database error writing %s: %s", resource, str(e), exc_info=True)
        raise StoreFailure(context={"resource": resource, "error_type": type(e).__name__}) from e


async def dispose_engine() -> None:
    """Close all pooled connections; called from the shutdown half of the lifespan."""
    await engine.dispose()
