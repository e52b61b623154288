"""SQLAlchemy adapters for the movement source, snapshot store and price lookup."""

from __future__ import annotations

from dataclasses import fields, replace
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from folio import models

from .movements import (
    CashMovement,
    CashMovementKind,
    Dividend,
    DividendTax,
    EquityTrade,
    Movement,
    MovementAggregate,
    OptionCode,
    OptionTrade,
    OptionType,
    TradeCode,
    validate_movement,
)
from .snapshots import FinancialSnapshot

SNAPSHOT_VALUE_FIELDS = tuple(
    f.name for f in fields(FinancialSnapshot) if f.name not in {"account_id", "currency_id", "date"}
)


def _aware(value: datetime) -> datetime:
    # SQLite drops the offset; stored values are always UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _before(until: date) -> datetime | None:
    if until >= date.max:
        return None
    return datetime.combine(until + timedelta(days=1), time.min, tzinfo=timezone.utc)


def _to_cash(row: models.BrokerMovement) -> CashMovement:
    return CashMovement(
        id=row.id,
        timestamp=_aware(row.timestamp),
        account_id=row.account_id,
        currency_id=row.currency_id,
        kind=CashMovementKind(row.kind),
        amount=Decimal(row.amount),
        commissions=Decimal(row.commissions),
        fees=Decimal(row.fees),
        from_currency_id=row.from_currency_id,
        amount_changed=Decimal(row.amount_changed) if row.amount_changed is not None else None,
    )


def _to_trade(row: models.Trade) -> EquityTrade:
    return EquityTrade(
        id=row.id,
        timestamp=_aware(row.timestamp),
        account_id=row.account_id,
        currency_id=row.currency_id,
        ticker_id=row.ticker_id,
        code=TradeCode(row.code),
        quantity=Decimal(row.quantity),
        price=Decimal(row.price),
        commissions=Decimal(row.commissions),
        fees=Decimal(row.fees),
    )


def _to_option(row: models.OptionTrade) -> OptionTrade:
    return OptionTrade(
        id=row.id,
        timestamp=_aware(row.timestamp),
        account_id=row.account_id,
        currency_id=row.currency_id,
        ticker_id=row.ticker_id,
        code=OptionCode(row.code),
        option_type=OptionType(row.option_type),
        strike=Decimal(row.strike),
        premium=Decimal(row.premium),
        expiration=_aware(row.expiration),
        quantity=Decimal(row.quantity),
        multiplier=Decimal(row.multiplier),
        commissions=Decimal(row.commissions),
        fees=Decimal(row.fees),
    )


def _to_dividend(row: models.Dividend) -> Dividend:
    return Dividend(
        id=row.id,
        timestamp=_aware(row.timestamp),
        account_id=row.account_id,
        currency_id=row.currency_id,
        ticker_id=row.ticker_id,
        amount=Decimal(row.amount),
    )


def _to_dividend_tax(row: models.DividendTax) -> DividendTax:
    return DividendTax(
        id=row.id,
        timestamp=_aware(row.timestamp),
        account_id=row.account_id,
        currency_id=row.currency_id,
        ticker_id=row.ticker_id,
        amount=Decimal(row.amount),
    )


def _to_snapshot(row: models.BrokerFinancialSnapshot) -> FinancialSnapshot:
    return FinancialSnapshot(
        account_id=row.account_id,
        currency_id=row.currency_id,
        date=row.date,
        movement_counter=row.movement_counter,
        realized_gains=Decimal(row.realized_gains),
        realized_percentage=Decimal(row.realized_percentage),
        unrealized_gains=Decimal(row.unrealized_gains),
        unrealized_percentage=Decimal(row.unrealized_percentage),
        invested=Decimal(row.invested),
        commissions=Decimal(row.commissions),
        fees=Decimal(row.fees),
        deposited=Decimal(row.deposited),
        withdrawn=Decimal(row.withdrawn),
        dividends_received=Decimal(row.dividends_received),
        options_income=Decimal(row.options_income),
        other_income=Decimal(row.other_income),
        open_trades=bool(row.open_trades),
    )


class SqlMovementSource:
    """Read movements for one account and currency from the movement tables."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def get_movements(self, account_id: int, currency_id: int, until: date) -> MovementAggregate:
        cutoff = _before(until)
        movements: list[Movement] = []
        async with self.session_factory() as session:
            cash_stmt = select(models.BrokerMovement).where(
                models.BrokerMovement.account_id == account_id,
                or_(
                    models.BrokerMovement.currency_id == currency_id,
                    models.BrokerMovement.from_currency_id == currency_id,
                ),
            )
            if cutoff is not None:
                cash_stmt = cash_stmt.where(models.BrokerMovement.timestamp < cutoff)
            movements.extend(_to_cash(row) for row in (await session.execute(cash_stmt)).scalars())

            for table, convert in (
                (models.Trade, _to_trade),
                (models.OptionTrade, _to_option),
                (models.Dividend, _to_dividend),
                (models.DividendTax, _to_dividend_tax),
            ):
                stmt = select(table).where(table.account_id == account_id, table.currency_id == currency_id)
                if cutoff is not None:
                    stmt = stmt.where(table.timestamp < cutoff)
                movements.extend(convert(row) for row in (await session.execute(stmt)).scalars())
        return MovementAggregate.build(account_id, currency_id, until, movements)


class SqlSnapshotStore:
    """Persist financial snapshots in ``broker_financial_snapshot``."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    @staticmethod
    async def _row(
        session: AsyncSession, account_id: int, currency_id: int, day: date
    ) -> models.BrokerFinancialSnapshot | None:
        result = await session.execute(
            select(models.BrokerFinancialSnapshot).where(
                models.BrokerFinancialSnapshot.account_id == account_id,
                models.BrokerFinancialSnapshot.currency_id == currency_id,
                models.BrokerFinancialSnapshot.date == day,
            )
        )
        return result.scalars().first()

    async def get_snapshot(self, account_id: int, currency_id: int, day: date) -> FinancialSnapshot | None:
        async with self.session_factory() as session:
            row = await self._row(session, account_id, currency_id, day)
            return _to_snapshot(row) if row is not None else None

    async def get_snapshot_dates_after(self, account_id: int, currency_id: int, day: date) -> list[date]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(models.BrokerFinancialSnapshot.date)
                .where(
                    models.BrokerFinancialSnapshot.account_id == account_id,
                    models.BrokerFinancialSnapshot.currency_id == currency_id,
                    models.BrokerFinancialSnapshot.date > day,
                )
                .order_by(models.BrokerFinancialSnapshot.date)
            )
            return list(result.scalars().all())

    async def put_snapshot(self, snapshot: FinancialSnapshot) -> None:
        async with self.session_factory() as session:
            row = await self._row(session, snapshot.account_id, snapshot.currency_id, snapshot.date)
            if row is None:
                row = models.BrokerFinancialSnapshot(
                    account_id=snapshot.account_id,
                    currency_id=snapshot.currency_id,
                    date=snapshot.date,
                )
                session.add(row)
            for name in SNAPSHOT_VALUE_FIELDS:
                setattr(row, name, getattr(snapshot, name))
            await session.commit()

    async def get_snapshots_on(self, account_id: int, day: date) -> list[FinancialSnapshot]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(models.BrokerFinancialSnapshot)
                .where(
                    models.BrokerFinancialSnapshot.account_id == account_id,
                    models.BrokerFinancialSnapshot.date == day,
                )
                .order_by(models.BrokerFinancialSnapshot.currency_id)
            )
            return [_to_snapshot(row) for row in result.scalars().all()]


class SqlPriceLookup:
    """Latest stored ``ticker_price`` row per ticker."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def get_current_price(self, ticker_id: int) -> Decimal | None:
        async with self.session_factory() as session:
            result = await session.execute(
                select(models.TickerPrice.price)
                .where(models.TickerPrice.ticker_id == ticker_id)
                .order_by(models.TickerPrice.timestamp.desc())
                .limit(1)
            )
            price = result.scalars().first()
            return Decimal(price) if price is not None else None


def _movement_row(movement: Movement):
    common = {
        "timestamp": movement.timestamp.astimezone(timezone.utc),
        "account_id": movement.account_id,
        "currency_id": movement.currency_id,
    }
    if movement.id > 0:
        common["id"] = movement.id
    if isinstance(movement, CashMovement):
        return models.BrokerMovement(
            **common,
            kind=movement.kind.value,
            amount=movement.amount,
            commissions=movement.commissions,
            fees=movement.fees,
            from_currency_id=movement.from_currency_id,
            amount_changed=movement.amount_changed,
        )
    if isinstance(movement, EquityTrade):
        return models.Trade(
            **common,
            ticker_id=movement.ticker_id,
            code=movement.code.value,
            quantity=movement.quantity,
            price=movement.price,
            commissions=movement.commissions,
            fees=movement.fees,
        )
    if isinstance(movement, OptionTrade):
        return models.OptionTrade(
            **common,
            ticker_id=movement.ticker_id,
            code=movement.code.value,
            option_type=movement.option_type.value,
            strike=movement.strike,
            premium=movement.premium,
            expiration=movement.expiration.astimezone(timezone.utc),
            quantity=movement.quantity,
            multiplier=movement.multiplier,
            commissions=movement.commissions,
            fees=movement.fees,
        )
    if isinstance(movement, Dividend):
        return models.Dividend(**common, ticker_id=movement.ticker_id, amount=movement.amount)
    return models.DividendTax(**common, ticker_id=movement.ticker_id, amount=movement.amount)


async def save_movement(session: AsyncSession, movement: Movement) -> Movement:
    """Validate and insert ``movement``; return it with its stored id."""

    validate_movement(movement)
    row = _movement_row(movement)
    session.add(row)
    await session.commit()
    await session.refresh(row)
    return replace(movement, id=row.id)


__all__ = [
    "SqlMovementSource",
    "SqlSnapshotStore",
    "SqlPriceLookup",
    "save_movement",
]
