"""Persistence: async engine, session factory, unit of work and Base for SQLAlchemy ORM.

Schema is managed by Alembic migrations. Engine and session factory are
created lazily on first use (get_db / get_db_transactional /
get_session_factory) so import does not trigger Settings validation.

Every multi-step mutation runs inside unit_of_work(): it joins the caller's
transaction when one is already open, otherwise it opens one and commits or
rolls back on exit. Raw SQLAlchemy errors leave it as StorageException
(IntegrityError as ConflictException).
"""

import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import event
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Session

from access_matrix.core.config import get_settings
from access_matrix.domain.exceptions import (
    AccessMatrixException,
    ConflictException,
    StorageException,
)

logger = logging.getLogger(__name__)

# Set by _ensure_engine() on first use; avoids get_settings() at import time.
engine: Any = None
AsyncSessionLocal: async_sessionmaker[AsyncSession] | None = None

_POST_COMMIT_KEY = "post_commit_callbacks"


def _ensure_engine() -> None:
    """Create engine and AsyncSessionLocal on first use."""
    global engine, AsyncSessionLocal
    if AsyncSessionLocal is not None:
        return
    settings = get_settings()
    engine_kwargs: dict[str, Any] = {"echo": settings.database_echo}
    if "postgresql" in settings.database_url:
        engine_kwargs.update(
            pool_pre_ping=True,
            pool_size=settings.db_pool_size if settings.db_pool_size is not None else 20,
            max_overflow=(
                settings.db_max_overflow if settings.db_max_overflow is not None else 30
            ),
            pool_recycle=3600,
            connect_args={
                "command_timeout": (
                    settings.db_command_timeout
                    if settings.db_command_timeout is not None
                    else 60
                )
            },
        )
    engine = create_async_engine(settings.database_url, **engine_kwargs)
    AsyncSessionLocal = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the process-wide session factory (creates the engine on first use)."""
    _ensure_engine()
    factory = AsyncSessionLocal
    if factory is None:
        raise StorageException("Session factory was not initialized")
    return factory


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy declarative models."""


async def get_db():
    """Database session for read operations.

    Does not commit; use get_db_transactional for writes.
    Yields a session and closes it on exit.
    """
    async with get_session_factory()() as session:
        yield session


async def get_db_transactional():
    """Database session for write operations.

    Begins a transaction, commits on success, rolls back on exception.
    """
    async with get_session_factory()() as session:
        async with session.begin():
            yield session


@asynccontextmanager
async def unit_of_work(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Run a block atomically on db.

    When db is already inside a transaction the block joins it and the
    caller's scope decides commit/rollback. Otherwise a transaction is
    opened here and committed on success or rolled back on any exception.
    Domain exceptions propagate unchanged.
    """
    try:
        if db.in_transaction():
            yield db
        else:
            async with db.begin():
                yield db
    except AccessMatrixException:
        raise
    except IntegrityError as exc:
        logger.warning("Integrity violation inside unit of work: %s", exc.orig)
        raise ConflictException(
            "Duplicate or conflicting value", details={"reason": str(exc.orig)}
        ) from exc
    except SQLAlchemyError as exc:
        logger.error("Transaction failed and was rolled back: %s", exc)
        raise StorageException("Storage operation failed", reason=str(exc)) from exc


def run_after_commit(db: AsyncSession, callback: Callable[[], None]) -> None:
    """Register callback to run once the current root transaction commits.

    Callbacks are dropped if the transaction rolls back. They run inside
    the event loop thread, so they may schedule tasks but must not block.
    """
    db.sync_session.info.setdefault(_POST_COMMIT_KEY, []).append(callback)


@event.listens_for(Session, "after_commit")
def _run_post_commit_callbacks(session: Session) -> None:
    """Fire registered post-commit callbacks; a failing callback never breaks the commit."""
    callbacks = session.info.pop(_POST_COMMIT_KEY, [])
    for callback in callbacks:
        try:
            callback()
        except Exception:
            logger.exception("Post-commit callback failed")


@event.listens_for(Session, "after_rollback")
def _discard_post_commit_callbacks(session: Session) -> None:
    """Rolled-back work must not be reported."""
    session.info.pop(_POST_COMMIT_KEY, None)


def dialect_insert(db: AsyncSession, model: type[Base]) -> Any:
    """Return an INSERT construct supporting on_conflict_do_update for db's dialect."""
    bind = db.get_bind()
    dialect = bind.dialect.name if bind is not None else ""
    if dialect == "postgresql":
        return pg_insert(model)
    if dialect == "sqlite":
        return sqlite_insert(model)
    raise StorageException(
        f"Upsert is not supported on dialect {dialect!r}", reason="unsupported_dialect"
    )
