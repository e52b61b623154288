"""Shared FastAPI dependencies for the snapshot service."""

from __future__ import annotations

from collections.abc import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession

from folio.config import get_settings
from folio.db.session import get_session, get_session_factory
from folio.services import KeyedLocks, SnapshotCascade, SnapshotNotifier
from folio.services.repository import SqlMovementSource, SqlPriceLookup, SqlSnapshotStore

# Cascades for one account and currency must not overlap across requests.
_locks = KeyedLocks()
_notifier = SnapshotNotifier()


async def get_db_session() -> AsyncIterator[AsyncSession]:
    async for session in get_session():  # pragma: no cover - FastAPI dependency wrapper
        yield session


def get_notifier() -> SnapshotNotifier:
    return _notifier


def get_cascade() -> SnapshotCascade:
    settings = get_settings()
    session_factory = get_session_factory()
    return SnapshotCascade(
        SqlMovementSource(session_factory),
        SqlSnapshotStore(session_factory),
        SqlPriceLookup(session_factory),
        notifier=_notifier,
        locks=_locks,
        fill_missing_dates=settings.fill_missing_snapshot_dates,
        skip_unchanged_writes=settings.skip_unchanged_snapshot_writes,
        default_currency_id=settings.default_currency_id,
    )


__all__ = ["get_cascade", "get_db_session", "get_notifier"]
