"""Database engine and session utilities."""

from __future__ import annotations

from typing import Any, AsyncIterator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from folio.config import get_settings

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def configure_engine(database_url: str | None = None, *, echo: bool | None = None, **options: Any) -> AsyncEngine:
    """Create (or replace) the process-wide engine and session factory."""

    global _engine, _session_factory  # noqa: PLW0603 - process-wide engine

    settings = get_settings()
    _engine = create_async_engine(
        database_url or settings.database_url,
        echo=settings.database_echo if echo is None else echo,
        future=True,
        **options,
    )
    _session_factory = async_sessionmaker(bind=_engine, expire_on_commit=False, class_=AsyncSession)
    return _engine


def get_engine() -> AsyncEngine:
    if _engine is None:
        return configure_engine()
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    if _session_factory is None:
        configure_engine()
    assert _session_factory is not None
    return _session_factory


async def get_session() -> AsyncIterator[AsyncSession]:
    """Yield an AsyncSession for FastAPI dependency usage."""

    async with get_session_factory()() as session:
        yield session


async def dispose_engine() -> None:
    global _engine, _session_factory  # noqa: PLW0603

    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None


__all__ = [
    "configure_engine",
    "dispose_engine",
    "get_engine",
    "get_session",
    "get_session_factory",
]
