"""Persisted financial snapshots and current ticker prices."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Boolean, Date, DateTime, Index, Integer, Numeric, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from folio.db.base import Base

from .movements import MONEY


class BrokerFinancialSnapshot(Base):
    __tablename__ = "broker_financial_snapshot"
    __table_args__ = (
        UniqueConstraint("account_id", "currency_id", "date", name="uq_financial_snapshot_key"),
        Index("ix_financial_snapshot_account_date", "account_id", "date"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    account_id: Mapped[int] = mapped_column(Integer)
    currency_id: Mapped[int] = mapped_column(Integer)
    date: Mapped[date] = mapped_column(Date)
    movement_counter: Mapped[int] = mapped_column(Integer, default=0)
    realized_gains: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"))
    realized_percentage: Mapped[Decimal] = mapped_column(Numeric(18, 4), default=Decimal("0"))
    unrealized_gains: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"))
    unrealized_percentage: Mapped[Decimal] = mapped_column(Numeric(18, 4), default=Decimal("0"))
    invested: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"))
    commissions: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"))
    fees: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"))
    deposited: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"))
    withdrawn: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"))
    dividends_received: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"))
    options_income: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"))
    other_income: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"))
    open_trades: Mapped[bool] = mapped_column(Boolean, default=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class TickerPrice(Base):
    __tablename__ = "ticker_price"
    __table_args__ = (Index("ix_ticker_price_ticker_ts", "ticker_id", "timestamp"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    ticker_id: Mapped[int] = mapped_column(Integer)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    price: Mapped[Decimal] = mapped_column(MONEY)
