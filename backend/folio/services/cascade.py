"""Forward recalculation of snapshots after a back-dated movement.

A cascade recomputes the snapshot on the start date and every later snapshot
of the same account and currency, oldest first. Runs for one key are
serialised through :class:`KeyedLocks`; runs for different keys may overlap.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import AsyncIterator, Awaitable, Hashable, Iterable, Protocol, TypeVar

from .currencies import AccountSnapshot, aggregate_account_snapshot
from .errors import CalculationWarning, LookupFailure, SnapshotEngineError, SnapshotPersistenceError
from .metrics import RecalculatedMetrics, calculate_metrics
from .movements import ZERO, MovementAggregate
from .notifications import SnapshotNotifier
from .prices import CachingPriceLookup, PriceLookup
from .snapshots import FinancialSnapshot, apply_direct_snapshot_metrics_with_preservation
from .trades import stock_unrealized_gains

logger = logging.getLogger(__name__)

T = TypeVar("T")


class MovementSource(Protocol):
    async def get_movements(self, account_id: int, currency_id: int, until: date) -> MovementAggregate:
        ...


class SnapshotStore(Protocol):
    async def get_snapshot(self, account_id: int, currency_id: int, day: date) -> FinancialSnapshot | None:
        ...

    async def get_snapshot_dates_after(self, account_id: int, currency_id: int, day: date) -> list[date]:
        ...

    async def put_snapshot(self, snapshot: FinancialSnapshot) -> None:
        ...

    async def get_snapshots_on(self, account_id: int, day: date) -> list[FinancialSnapshot]:
        ...


class KeyedLocks:
    """One ``asyncio.Lock`` per key while anyone holds or waits for it.

    A key's lock is dropped when its last holder releases it.
    """

    def __init__(self):
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._users: dict[Hashable, int] = {}

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]

    def is_locked(self, key: Hashable) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)


@dataclass(frozen=True)
class CascadeResult:
    account_id: int
    currency_id: int
    start_date: date
    snapshots: tuple[FinancialSnapshot, ...] = field(default_factory=tuple)
    written: int = 0
    unchanged: int = 0
    warnings: tuple[CalculationWarning, ...] = field(default_factory=tuple)

    @property
    def dates(self) -> list[date]:
        return [snapshot.date for snapshot in self.snapshots]


class SnapshotCascade:
    """Recompute snapshots from a date forward and persist them in order."""

    def __init__(
        self,
        movements: MovementSource,
        store: SnapshotStore,
        prices: PriceLookup | None = None,
        *,
        notifier: SnapshotNotifier | None = None,
        locks: KeyedLocks | None = None,
        fill_missing_dates: bool = True,
        skip_unchanged_writes: bool = True,
        default_currency_id: int = 1,
    ):
        self.movements = movements
        self.store = store
        self.prices = prices
        self.notifier = notifier
        self.locks = locks or KeyedLocks()
        self.fill_missing_dates = fill_missing_dates
        self.skip_unchanged_writes = skip_unchanged_writes
        self.default_currency_id = default_currency_id

    async def _store_call(self, operation: str, call: Awaitable[T]) -> T:
        try:
            return await call
        except SnapshotEngineError:
            raise
        except Exception as exc:
            logger.exception("Snapshot store failed during %s", operation)
            raise SnapshotPersistenceError(f"Snapshot store failed during {operation}: {exc}") from exc

    async def _stock_unrealized(
        self,
        metrics: RecalculatedMetrics,
        day: date,
        prices: PriceLookup | None,
        failed: set[int],
        warnings: list[CalculationWarning],
    ) -> Decimal:
        if prices is None or not metrics.current_positions:
            return ZERO
        quotes: dict[int, Decimal] = {}
        for ticker_id in metrics.current_positions:
            if ticker_id in failed:
                continue
            try:
                price = await prices.get_current_price(ticker_id)
            except Exception as exc:
                failed.add(ticker_id)
                warnings.append(
                    CalculationWarning(
                        date=day,
                        error=LookupFailure(f"Price lookup for ticker {ticker_id} failed: {exc}", ticker_id=ticker_id),
                    )
                )
                logger.warning("Price lookup for ticker %s failed: %s", ticker_id, exc)
                continue
            if price is None:
                failed.add(ticker_id)
                warnings.append(
                    CalculationWarning(
                        date=day,
                        error=LookupFailure(f"No current price for ticker {ticker_id}", ticker_id=ticker_id),
                    )
                )
                continue
            quotes[ticker_id] = price
        return stock_unrealized_gains(metrics.current_positions, metrics.cost_basis, quotes)

    async def _dates_to_recompute(
        self, account_id: int, currency_id: int, day: date, aggregate: MovementAggregate
    ) -> list[date]:
        later = await self._store_call(
            "get_snapshot_dates_after",
            self.store.get_snapshot_dates_after(account_id, currency_id, day),
        )
        dates = set(later)
        # A key gets its first snapshot on a movement date, never before.
        if day in aggregate.unique_dates:
            dates.add(day)
        else:
            stored = await self._store_call(
                "get_snapshot", self.store.get_snapshot(account_id, currency_id, day)
            )
            if stored is not None:
                dates.add(day)
        if self.fill_missing_dates:
            dates.update(d for d in aggregate.unique_dates if d > day)
        return sorted(dates)

    async def recalculate_from(self, account_id: int, currency_id: int, day: date) -> CascadeResult:
        async with self.locks.hold((account_id, currency_id)):
            result = await self._run(account_id, currency_id, day)
        if self.notifier is not None:
            self.notifier.publish(result)
        return result

    async def _run(self, account_id: int, currency_id: int, day: date) -> CascadeResult:
        logger.info("Cascade started for account %s currency %s from %s", account_id, currency_id, day)
        try:
            aggregate = await self.movements.get_movements(account_id, currency_id, date.max)
        except SnapshotEngineError:
            raise
        except Exception as exc:
            logger.exception("Loading movements for account %s currency %s failed", account_id, currency_id)
            raise SnapshotPersistenceError(f"Loading movements failed: {exc}") from exc

        dates = await self._dates_to_recompute(account_id, currency_id, day, aggregate)
        prices = CachingPriceLookup(self.prices) if self.prices is not None else None
        failed_tickers: set[int] = set()
        warnings: list[CalculationWarning] = []
        seen_warnings: set[tuple[str, str]] = set()
        snapshots: list[FinancialSnapshot] = []
        written = 0
        unchanged = 0

        for current in dates:
            existing = await self._store_call(
                "get_snapshot", self.store.get_snapshot(account_id, currency_id, current)
            )
            metrics = calculate_metrics(aggregate, current)
            for warning in metrics.warnings:
                signature = (warning.kind, warning.message)
                if signature not in seen_warnings:
                    seen_warnings.add(signature)
                    warnings.append(warning)
                    logger.warning("Snapshot %s for account %s: %s", current, account_id, warning.message)
            stock_gains = await self._stock_unrealized(metrics, current, prices, failed_tickers, warnings)
            base = existing or FinancialSnapshot.empty(account_id, currency_id, current)
            snapshot = apply_direct_snapshot_metrics_with_preservation(
                aggregate.up_to(current), base, metrics, stock_gains
            )
            snapshots.append(snapshot)

            if self.skip_unchanged_writes and existing == snapshot:
                unchanged += 1
                logger.debug("Snapshot %s unchanged; skipping write", snapshot.key)
                continue
            await self._store_call("put_snapshot", self.store.put_snapshot(snapshot))
            written += 1
            logger.debug("Snapshot %s written (counter %s)", snapshot.key, snapshot.movement_counter)

        logger.info(
            "Cascade finished for account %s currency %s: %s snapshot(s), %s written, %s unchanged, %s warning(s)",
            account_id,
            currency_id,
            len(snapshots),
            written,
            unchanged,
            len(warnings),
        )
        return CascadeResult(
            account_id=account_id,
            currency_id=currency_id,
            start_date=day,
            snapshots=tuple(snapshots),
            written=written,
            unchanged=unchanged,
            warnings=tuple(warnings),
        )

    async def recalculate_dates(
        self, account_id: int, currency_id: int, dates: Iterable[date]
    ) -> CascadeResult | None:
        """Recompute several dates with a single cascade from the earliest one."""

        ordered = sorted(set(dates))
        if not ordered:
            return None
        return await self.recalculate_from(account_id, currency_id, ordered[0])

    async def recalculate_account_snapshot(self, account_id: int, day: date) -> AccountSnapshot:
        snapshots = await self._store_call("get_snapshots_on", self.store.get_snapshots_on(account_id, day))
        return aggregate_account_snapshot(
            account_id, day, snapshots, default_currency_id=self.default_currency_id
        )


__all__ = [
    "MovementSource",
    "SnapshotStore",
    "KeyedLocks",
    "CascadeResult",
    "SnapshotCascade",
]
