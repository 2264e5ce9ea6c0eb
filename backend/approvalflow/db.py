from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from approvalflow.config import get_settings
from approvalflow.exceptions import StorageError

logger = logging.getLogger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """Return the singleton async engine, creating it on first call."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_async_engine(
            settings.database_url,
            echo=settings.debug,
            pool_pre_ping=True,
        )
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the singleton async session factory."""
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(),
            expire_on_commit=False,
        )
    return _session_factory


async def get_session() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency that yields an async database session."""
    factory = get_session_factory()
    async with factory() as session:
        yield session


SessionDep = Annotated[AsyncSession, Depends(get_session)]


async def dispose_engine() -> None:
    """Dispose the engine and reset singletons. Call on app shutdown."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None


async def commit_or_raise(session: AsyncSession) -> None:
    """Commit the session, converting database failures into StorageError.

    On failure the transaction is rolled back, so the triggering mutation and its
    audit entry are discarded together.
    """
    try:
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.exception("Commit failed; transaction rolled back")
        raise StorageError from exc


@asynccontextmanager
async def storage_guard(session: AsyncSession) -> AsyncIterator[None]:
    """Wrap a unit of writes so any database failure inside it surfaces as StorageError.

    Covers flushes and bulk statements as well as the final commit; the session is
    rolled back before the error propagates.
    """
    try:
        yield
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.exception("Database write failed; transaction rolled back")
        raise StorageError from exc
