"""Broker movement tables: cash, stock trades, option trades and dividends."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from folio.db.base import Base

MONEY = Numeric(28, 10)


class BrokerMovement(Base):
    __tablename__ = "broker_movement"
    __table_args__ = (
        Index("ix_broker_movement_account_currency_ts", "account_id", "currency_id", "timestamp"),
        Index("ix_broker_movement_account_from_currency", "account_id", "from_currency_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    account_id: Mapped[int] = mapped_column(Integer)
    currency_id: Mapped[int] = mapped_column(Integer)
    kind: Mapped[str] = mapped_column(String(32))
    amount: Mapped[Decimal] = mapped_column(MONEY)
    commissions: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"))
    fees: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"))
    from_currency_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    amount_changed: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)
    notes: Mapped[str | None] = mapped_column(String(255), nullable=True)


class Trade(Base):
    __tablename__ = "trade"
    __table_args__ = (Index("ix_trade_account_currency_ts", "account_id", "currency_id", "timestamp"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    account_id: Mapped[int] = mapped_column(Integer)
    currency_id: Mapped[int] = mapped_column(Integer)
    ticker_id: Mapped[int] = mapped_column(Integer, index=True)
    code: Mapped[str] = mapped_column(String(16))
    quantity: Mapped[Decimal] = mapped_column(MONEY)
    price: Mapped[Decimal] = mapped_column(MONEY)
    commissions: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"))
    fees: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"))
    notes: Mapped[str | None] = mapped_column(String(255), nullable=True)


class OptionTrade(Base):
    __tablename__ = "option_trade"
    __table_args__ = (
        Index("ix_option_trade_account_currency_ts", "account_id", "currency_id", "timestamp"),
        Index("ix_option_trade_contract", "ticker_id", "option_type", "strike", "expiration"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    account_id: Mapped[int] = mapped_column(Integer)
    currency_id: Mapped[int] = mapped_column(Integer)
    ticker_id: Mapped[int] = mapped_column(Integer)
    code: Mapped[str] = mapped_column(String(16))
    option_type: Mapped[str] = mapped_column(String(4))
    strike: Mapped[Decimal] = mapped_column(MONEY)
    premium: Mapped[Decimal] = mapped_column(MONEY)
    expiration: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    quantity: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("1"))
    multiplier: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("100"))
    commissions: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"))
    fees: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"))
    notes: Mapped[str | None] = mapped_column(String(255), nullable=True)


class Dividend(Base):
    __tablename__ = "dividend"
    __table_args__ = (Index("ix_dividend_account_currency_ts", "account_id", "currency_id", "timestamp"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    account_id: Mapped[int] = mapped_column(Integer)
    currency_id: Mapped[int] = mapped_column(Integer)
    ticker_id: Mapped[int] = mapped_column(Integer)
    amount: Mapped[Decimal] = mapped_column(MONEY)


class DividendTax(Base):
    __tablename__ = "dividend_tax"
    __table_args__ = (Index("ix_dividend_tax_account_currency_ts", "account_id", "currency_id", "timestamp"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    account_id: Mapped[int] = mapped_column(Integer)
    currency_id: Mapped[int] = mapped_column(Integer)
    ticker_id: Mapped[int] = mapped_column(Integer)
    amount: Mapped[Decimal] = mapped_column(MONEY)
