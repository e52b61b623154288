"""SQL adapter tests against a throwaway SQLite database."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from builders import ACCOUNT, EUR, USD, cash, deposit, dividend, option, stock, ts
from folio.db.init import init_database
from folio.models import TickerPrice
from folio.services import CashMovementKind, OptionCode, SnapshotCascade, TradeCode
from folio.services.repository import SqlMovementSource, SqlPriceLookup, SqlSnapshotStore, save_movement


async def _session_factory(tmp_path) -> async_sessionmaker[AsyncSession]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'folio.db'}", poolclass=NullPool)
    await init_database(engine)
    return async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)


async def test_saved_movements_round_trip_through_the_source(tmp_path):
    factory = await _session_factory(tmp_path)
    async with factory() as session:
        saved = await save_movement(session, deposit(ts(2024, 1, 2), "100", id=0))
        await save_movement(session, stock(ts(2024, 1, 3), TradeCode.BUY_TO_OPEN, "2", "30", id=0))
        await save_movement(
            session,
            option(0, ts(2024, 1, 4), ts(2024, 2, 16, 0), 10, OptionCode.SELL_TO_OPEN, "25", "80", "1", "0.5"),
        )
        await save_movement(session, dividend(ts(2024, 1, 5), "3"))
        await save_movement(
            session,
            cash(ts(2024, 1, 6), CashMovementKind.CONVERSION, "45", currency_id=EUR, from_currency_id=USD, id=0),
        )
        await save_movement(session, deposit(ts(2024, 3, 1), "1", id=0))

    assert saved.id > 0

    aggregate = await SqlMovementSource(factory).get_movements(ACCOUNT, USD, date(2024, 1, 31))

    assert aggregate.total_count == 5
    assert aggregate.cash_movements[0].amount == Decimal("100")
    assert aggregate.cash_movements[0].timestamp.tzinfo is not None
    assert aggregate.trades[0].quantity == Decimal("2")
    assert aggregate.option_trades[0].net_premium == Decimal("78.5")
    assert aggregate.option_trades[0].expiration.date() == date(2024, 2, 16)
    assert aggregate.dividends[0].amount == Decimal("3")
    assert aggregate.cash_movements[1].kind == CashMovementKind.CONVERSION


async def test_cascade_persists_snapshots_and_skips_unchanged(tmp_path):
    factory = await _session_factory(tmp_path)
    async with factory() as session:
        await save_movement(session, deposit(ts(2024, 1, 2), "100", id=0))
        await save_movement(session, stock(ts(2024, 1, 3), TradeCode.BUY_TO_OPEN, "2", "30", id=0))
        session.add(TickerPrice(ticker_id=10, timestamp=ts(2024, 1, 3), price=Decimal("35")))
        await session.commit()

    store = SqlSnapshotStore(factory)
    cascade = SnapshotCascade(SqlMovementSource(factory), store, SqlPriceLookup(factory))

    first = await cascade.recalculate_from(ACCOUNT, USD, date(2024, 1, 2))
    second = await cascade.recalculate_from(ACCOUNT, USD, date(2024, 1, 2))

    assert first.written == 2
    assert second.written == 0
    assert second.unchanged == 2
    stored = await store.get_snapshot(ACCOUNT, USD, date(2024, 1, 3))
    assert stored is not None
    assert stored.movement_counter == 2
    assert stored.invested == Decimal("60")
    assert stored.unrealized_gains == Decimal("10")
    assert stored.open_trades is True
    assert await store.get_snapshot_dates_after(ACCOUNT, USD, date(2024, 1, 2)) == [date(2024, 1, 3)]
    on_day = await store.get_snapshots_on(ACCOUNT, date(2024, 1, 3))
    assert [s.currency_id for s in on_day] == [USD]


async def test_price_lookup_returns_latest_price(tmp_path):
    factory = await _session_factory(tmp_path)
    async with factory() as session:
        session.add(TickerPrice(ticker_id=4, timestamp=ts(2024, 1, 2), price=Decimal("10")))
        session.add(TickerPrice(ticker_id=4, timestamp=ts(2024, 1, 3), price=Decimal("12.5")))
        await session.commit()

    lookup = SqlPriceLookup(factory)

    assert await lookup.get_current_price(4) == Decimal("12.5")
    assert await lookup.get_current_price(5) is None
