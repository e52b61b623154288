"""Error taxonomy for the snapshot engine."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date


class SnapshotEngineError(Exception):
    """Base class for every error raised or reported by the engine."""


class ValidationError(SnapshotEngineError, ValueError):
    """A movement is malformed and must not enter a movement aggregate."""


class InconsistentStateError(SnapshotEngineError):
    """A closing trade has no open lot to match against."""

    def __init__(self, message: str, *, movement_id: int | None = None, ticker_id: int | None = None):
        super().__init__(message)
        self.movement_id = movement_id
        self.ticker_id = ticker_id


class LookupFailure(SnapshotEngineError):
    """An external price lookup was unavailable."""

    def __init__(self, message: str, *, ticker_id: int | None = None):
        super().__init__(message)
        self.ticker_id = ticker_id


class SnapshotPersistenceError(SnapshotEngineError):
    """Reading or writing the snapshot store failed; the cascade must be retried whole."""


@dataclass(frozen=True)
class CalculationWarning:
    """A non-fatal problem found while recomputing the snapshot for ``date``."""

    date: date | None
    error: SnapshotEngineError

    @property
    def message(self) -> str:
        return str(self.error)

    @property
    def kind(self) -> str:
        return type(self.error).__name__


__all__ = [
    "SnapshotEngineError",
    "ValidationError",
    "InconsistentStateError",
    "LookupFailure",
    "SnapshotPersistenceError",
    "CalculationWarning",
]
