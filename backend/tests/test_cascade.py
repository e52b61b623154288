from __future__ import annotations

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from builders import ACCOUNT, EUR, USD, cash, deposit, stock, ts
from folio.services import (
    CashMovementKind,
    FinancialSnapshot,
    InMemoryMovementSource,
    InMemoryPriceLookup,
    InMemorySnapshotStore,
    InconsistentStateError,
    KeyedLocks,
    LookupFailure,
    SnapshotCascade,
    SnapshotNotifier,
    SnapshotPersistenceError,
    TradeCode,
)


def _deposits() -> InMemoryMovementSource:
    return InMemoryMovementSource(
        [
            deposit(ts(2024, 1, 2), "100"),
            deposit(ts(2024, 1, 5), "50"),
            deposit(ts(2024, 1, 9), "25"),
        ]
    )


async def test_cascade_creates_a_snapshot_per_movement_date():
    store = InMemorySnapshotStore()
    cascade = SnapshotCascade(_deposits(), store)

    result = await cascade.recalculate_from(ACCOUNT, USD, date(2024, 1, 2))

    assert result.dates == [date(2024, 1, 2), date(2024, 1, 5), date(2024, 1, 9)]
    assert [s.movement_counter for s in store.all()] == [1, 2, 3]
    assert [s.deposited for s in store.all()] == [Decimal("100"), Decimal("150"), Decimal("175")]
    assert result.written == 3
    assert result.warnings == ()


async def test_backdated_movement_moves_every_later_snapshot():
    movements = _deposits()
    store = InMemorySnapshotStore()
    cascade = SnapshotCascade(movements, store)
    await cascade.recalculate_from(ACCOUNT, USD, date(2024, 1, 2))
    before = {s.date: s for s in store.all()}

    movements.add(deposit(ts(2024, 1, 3), "10"))
    result = await cascade.recalculate_from(ACCOUNT, USD, date(2024, 1, 3))

    after = {s.date: s for s in store.all()}
    assert result.dates == [date(2024, 1, 3), date(2024, 1, 5), date(2024, 1, 9)]
    assert after[date(2024, 1, 2)] == before[date(2024, 1, 2)]
    for day in (date(2024, 1, 5), date(2024, 1, 9)):
        assert after[day].movement_counter == before[day].movement_counter + 1
        assert after[day].deposited == before[day].deposited + Decimal("10")
    assert after[date(2024, 1, 3)].movement_counter == 2


async def test_second_run_is_idempotent():
    store = InMemorySnapshotStore()
    cascade = SnapshotCascade(_deposits(), store)
    first = await cascade.recalculate_from(ACCOUNT, USD, date(2024, 1, 2))
    writes = store.writes

    second = await cascade.recalculate_from(ACCOUNT, USD, date(2024, 1, 2))

    assert second.snapshots == first.snapshots
    assert second.written == 0
    assert second.unchanged == 3
    assert store.writes == writes


async def test_without_filling_only_stored_dates_are_recomputed():
    store = InMemorySnapshotStore([FinancialSnapshot.empty(ACCOUNT, USD, date(2024, 1, 9))])
    cascade = SnapshotCascade(_deposits(), store, fill_missing_dates=False)

    result = await cascade.recalculate_from(ACCOUNT, USD, date(2024, 1, 2))

    assert result.dates == [date(2024, 1, 2), date(2024, 1, 9)]
    assert await store.get_snapshot(ACCOUNT, USD, date(2024, 1, 5)) is None


async def test_unmatched_close_is_a_warning_not_a_failure():
    movements = InMemoryMovementSource(
        [
            deposit(ts(2024, 2, 1), "100"),
            stock(ts(2024, 2, 2), TradeCode.SELL_TO_CLOSE, "1", "10", id=55),
            deposit(ts(2024, 2, 6), "5"),
        ]
    )
    cascade = SnapshotCascade(movements, InMemorySnapshotStore())

    result = await cascade.recalculate_from(ACCOUNT, USD, date(2024, 2, 1))

    assert len(result.snapshots) == 3
    assert len(result.warnings) == 1
    assert isinstance(result.warnings[0].error, InconsistentStateError)
    assert result.warnings[0].error.movement_id == 55


async def test_open_positions_are_valued_with_current_prices():
    movements = InMemoryMovementSource(
        [
            deposit(ts(2024, 3, 1), "1000"),
            stock(ts(2024, 3, 1), TradeCode.BUY_TO_OPEN, "10", "50", ticker_id=10),
        ]
    )
    prices = InMemoryPriceLookup({10: "55"})
    cascade = SnapshotCascade(movements, InMemorySnapshotStore(), prices)

    result = await cascade.recalculate_from(ACCOUNT, USD, date(2024, 3, 1))

    snapshot = result.snapshots[0]
    assert snapshot.unrealized_gains == Decimal("50")
    assert snapshot.unrealized_percentage == Decimal("5")
    assert snapshot.open_trades is True


class _BrokenPrices:
    def __init__(self):
        self.calls = 0

    async def get_current_price(self, ticker_id: int):
        self.calls += 1
        raise ConnectionError("quote service offline")


async def test_price_lookup_failure_defaults_to_zero_and_warns():
    movements = InMemoryMovementSource(
        [
            stock(ts(2024, 3, 1), TradeCode.BUY_TO_OPEN, "10", "50", ticker_id=10),
            deposit(ts(2024, 3, 4), "10"),
        ]
    )
    prices = _BrokenPrices()
    cascade = SnapshotCascade(movements, InMemorySnapshotStore(), prices)

    result = await cascade.recalculate_from(ACCOUNT, USD, date(2024, 3, 1))

    assert [s.unrealized_gains for s in result.snapshots] == [Decimal("0"), Decimal("0")]
    assert [w.kind for w in result.warnings] == ["LookupFailure"]
    assert isinstance(result.warnings[0].error, LookupFailure)
    assert prices.calls == 1


class _FailingStore(InMemorySnapshotStore):
    async def put_snapshot(self, snapshot: FinancialSnapshot) -> None:
        raise OSError("disk full")


async def test_store_failure_aborts_the_run():
    notifier = SnapshotNotifier()
    queue = notifier.subscribe()
    cascade = SnapshotCascade(_deposits(), _FailingStore(), notifier=notifier)

    with pytest.raises(SnapshotPersistenceError):
        await cascade.recalculate_from(ACCOUNT, USD, date(2024, 1, 2))
    assert queue.empty()


async def test_notifier_receives_result_after_writes():
    notifier = SnapshotNotifier()
    queue = notifier.subscribe()
    store = InMemorySnapshotStore()
    cascade = SnapshotCascade(_deposits(), store, notifier=notifier)

    result = await cascade.recalculate_from(ACCOUNT, USD, date(2024, 1, 2))

    published = queue.get_nowait()
    assert published is result
    assert store.writes == 3
    notifier.unsubscribe(queue)
    assert notifier.subscriber_count == 0


async def test_runs_for_one_key_are_serialised():
    locks = KeyedLocks()
    store = InMemorySnapshotStore()
    cascade = SnapshotCascade(_deposits(), store, locks=locks)

    first, second = await asyncio.gather(
        cascade.recalculate_from(ACCOUNT, USD, date(2024, 1, 2)),
        cascade.recalculate_from(ACCOUNT, USD, date(2024, 1, 2)),
    )

    assert first.written == 3
    assert second.written == 0
    assert second.unchanged == 3
    assert len(locks) == 0


async def test_lock_is_kept_while_a_waiter_is_queued():
    locks = KeyedLocks()
    entered = asyncio.Event()

    async def waiter():
        async with locks.hold((ACCOUNT, USD)):
            entered.set()

    async with locks.hold((ACCOUNT, USD)):
        task = asyncio.ensure_future(waiter())
        await asyncio.sleep(0)
        assert locks.is_locked((ACCOUNT, USD))
        assert not entered.is_set()
        assert len(locks) == 1
        async with locks.hold((ACCOUNT, EUR)):
            assert len(locks) == 2

    await task
    assert entered.is_set()
    assert len(locks) == 0
    assert not locks.is_locked((ACCOUNT, USD))


async def test_dates_without_movements_get_no_snapshot():
    movements = InMemoryMovementSource([deposit(ts(2024, 1, 10), "100")])
    store = InMemorySnapshotStore()
    cascade = SnapshotCascade(movements, store)

    early = await cascade.recalculate_from(ACCOUNT, USD, date(2024, 1, 5))
    other = await cascade.recalculate_from(ACCOUNT, EUR, date(2024, 1, 10))

    assert early.dates == [date(2024, 1, 10)]
    assert other.snapshots == ()
    assert other.written == 0
    assert [(s.currency_id, s.date, s.movement_counter) for s in store.all()] == [
        (USD, date(2024, 1, 10), 1)
    ]
    account = await cascade.recalculate_account_snapshot(ACCOUNT, date(2024, 1, 10))
    assert account.financial.currency_id == USD
    assert account.financial_other_currencies == ()


async def test_stored_snapshot_on_start_date_is_still_recomputed():
    store = InMemorySnapshotStore([FinancialSnapshot.empty(ACCOUNT, USD, date(2024, 1, 3))])
    cascade = SnapshotCascade(_deposits(), store)

    result = await cascade.recalculate_from(ACCOUNT, USD, date(2024, 1, 3))

    assert result.dates == [date(2024, 1, 3), date(2024, 1, 5), date(2024, 1, 9)]
    assert result.snapshots[0].movement_counter == 1
    assert result.snapshots[0].deposited == Decimal("100")


async def test_batch_dates_run_one_cascade_from_the_earliest():
    cascade = SnapshotCascade(_deposits(), InMemorySnapshotStore())

    result = await cascade.recalculate_dates(ACCOUNT, USD, [date(2024, 1, 9), date(2024, 1, 5)])

    assert result is not None
    assert result.start_date == date(2024, 1, 5)
    assert result.dates == [date(2024, 1, 5), date(2024, 1, 9)]
    assert await cascade.recalculate_dates(ACCOUNT, USD, []) is None


async def test_account_snapshot_uses_busiest_currency():
    movements = InMemoryMovementSource(
        [
            deposit(ts(2024, 4, 1), "100"),
            cash(ts(2024, 4, 1), CashMovementKind.DEPOSIT, "10", currency_id=EUR),
            cash(ts(2024, 4, 1), CashMovementKind.DEPOSIT, "20", currency_id=EUR),
        ]
    )
    cascade = SnapshotCascade(movements, InMemorySnapshotStore())
    await cascade.recalculate_from(ACCOUNT, USD, date(2024, 4, 1))
    await cascade.recalculate_from(ACCOUNT, EUR, date(2024, 4, 1))

    account = await cascade.recalculate_account_snapshot(ACCOUNT, date(2024, 4, 1))

    assert account.financial.currency_id == EUR
    assert [s.currency_id for s in account.financial_other_currencies] == [USD]
