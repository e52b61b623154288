"""In-memory movement source and snapshot store for tests and embedding."""

from __future__ import annotations

from datetime import date
from typing import Dict, Iterable

from .movements import Movement, MovementAggregate, validate_movement
from .snapshots import FinancialSnapshot


class InMemoryMovementSource:
    def __init__(self, movements: Iterable[Movement] = ()):
        self._movements: list[Movement] = []
        for movement in movements:
            self.add(movement)

    def add(self, movement: Movement) -> Movement:
        validate_movement(movement)
        self._movements.append(movement)
        return movement

    def next_id(self) -> int:
        return max((m.id for m in self._movements), default=0) + 1

    async def get_movements(self, account_id: int, currency_id: int, until: date) -> MovementAggregate:
        return MovementAggregate.build(account_id, currency_id, until, self._movements)


class InMemorySnapshotStore:
    def __init__(self, snapshots: Iterable[FinancialSnapshot] = ()):
        self._snapshots: Dict[tuple[int, int, date], FinancialSnapshot] = {}
        self.writes = 0
        for snapshot in snapshots:
            self._snapshots[snapshot.key] = snapshot

    async def get_snapshot(self, account_id: int, currency_id: int, day: date) -> FinancialSnapshot | None:
        return self._snapshots.get((account_id, currency_id, day))

    async def get_snapshot_dates_after(self, account_id: int, currency_id: int, day: date) -> list[date]:
        return sorted(
            key[2]
            for key in self._snapshots
            if key[0] == account_id and key[1] == currency_id and key[2] > day
        )

    async def put_snapshot(self, snapshot: FinancialSnapshot) -> None:
        self._snapshots[snapshot.key] = snapshot
        self.writes += 1

    async def get_snapshots_on(self, account_id: int, day: date) -> list[FinancialSnapshot]:
        return sorted(
            (s for s in self._snapshots.values() if s.account_id == account_id and s.date == day),
            key=lambda s: s.currency_id,
        )

    def all(self) -> list[FinancialSnapshot]:
        return sorted(self._snapshots.values(), key=lambda s: s.key)


__all__ = ["InMemoryMovementSource", "InMemorySnapshotStore"]
