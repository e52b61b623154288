"""Account movement types and the read-only movement aggregate.

Movements form a closed union of frozen dataclasses. The calculators dispatch
on the concrete class, so adding a movement kind means adding a dataclass here,
listing it in ``Movement`` and routing it in ``MovementAggregate.build``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal, getcontext
from enum import Enum
from typing import Iterable, Sequence, Union

from .errors import ValidationError

getcontext().prec = 28

ZERO = Decimal("0")


class CashMovementKind(str, Enum):
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"
    FEE = "FEE"
    INTEREST_GAINED = "INTEREST_GAINED"
    LENDING = "LENDING"
    ACAT_MONEY_TRANSFER = "ACAT_MONEY_TRANSFER"
    ACAT_SECURITIES_TRANSFER = "ACAT_SECURITIES_TRANSFER"
    INTEREST_PAID = "INTEREST_PAID"
    CONVERSION = "CONVERSION"


class TradeCode(str, Enum):
    BUY_TO_OPEN = "BUY_TO_OPEN"
    SELL_TO_OPEN = "SELL_TO_OPEN"
    BUY_TO_CLOSE = "BUY_TO_CLOSE"
    SELL_TO_CLOSE = "SELL_TO_CLOSE"


class OptionCode(str, Enum):
    BUY_TO_OPEN = "BUY_TO_OPEN"
    SELL_TO_OPEN = "SELL_TO_OPEN"
    BUY_TO_CLOSE = "BUY_TO_CLOSE"
    SELL_TO_CLOSE = "SELL_TO_CLOSE"
    ASSIGNED = "ASSIGNED"
    EXPIRED = "EXPIRED"


class OptionType(str, Enum):
    PUT = "PUT"
    CALL = "CALL"


CLOSING_TRADE_CODES = frozenset({TradeCode.BUY_TO_CLOSE, TradeCode.SELL_TO_CLOSE})
CLOSING_OPTION_CODES = frozenset(
    {OptionCode.BUY_TO_CLOSE, OptionCode.SELL_TO_CLOSE, OptionCode.ASSIGNED, OptionCode.EXPIRED}
)


@dataclass(frozen=True)
class CashMovement:
    """Deposit, withdrawal, fee, interest, transfer or currency conversion."""

    id: int
    timestamp: datetime
    account_id: int
    currency_id: int
    kind: CashMovementKind
    amount: Decimal
    commissions: Decimal = ZERO
    fees: Decimal = ZERO
    from_currency_id: int | None = None
    amount_changed: Decimal | None = None

    @property
    def is_closing(self) -> bool:
        return False

    @property
    def debited_amount(self) -> Decimal:
        """Amount taken from ``from_currency_id`` by a conversion."""

        return abs(self.amount_changed if self.amount_changed is not None else self.amount)


@dataclass(frozen=True)
class EquityTrade:
    id: int
    timestamp: datetime
    account_id: int
    currency_id: int
    ticker_id: int
    code: TradeCode
    quantity: Decimal
    price: Decimal
    commissions: Decimal = ZERO
    fees: Decimal = ZERO

    @property
    def is_closing(self) -> bool:
        return self.code in CLOSING_TRADE_CODES


@dataclass(frozen=True)
class OptionTrade:
    """A single option leg; premium is positive for sells and negative for buys."""

    id: int
    timestamp: datetime
    account_id: int
    currency_id: int
    ticker_id: int
    code: OptionCode
    option_type: OptionType
    strike: Decimal
    premium: Decimal
    expiration: datetime
    quantity: Decimal = Decimal("1")
    # Contract size as reported by the broker. ``premium`` is already the
    # total for the trade, so calculations never scale by it.
    multiplier: Decimal = Decimal("100")
    commissions: Decimal = ZERO
    fees: Decimal = ZERO

    @property
    def net_premium(self) -> Decimal:
        return self.premium - abs(self.commissions) - abs(self.fees)

    @property
    def is_closing(self) -> bool:
        return self.code in CLOSING_OPTION_CODES

    @property
    def contract_key(self) -> tuple[int, OptionType, Decimal, date]:
        return (self.ticker_id, self.option_type, self.strike, self.expiration.date())


@dataclass(frozen=True)
class Dividend:
    id: int
    timestamp: datetime
    account_id: int
    currency_id: int
    ticker_id: int
    amount: Decimal

    @property
    def is_closing(self) -> bool:
        return False


@dataclass(frozen=True)
class DividendTax:
    id: int
    timestamp: datetime
    account_id: int
    currency_id: int
    ticker_id: int
    amount: Decimal

    @property
    def is_closing(self) -> bool:
        return False


Movement = Union[CashMovement, EquityTrade, OptionTrade, Dividend, DividendTax]


def _require_positive_id(value: int | None, name: str) -> None:
    if value is None or value <= 0:
        raise ValidationError(f"{name} must be a positive id, got {value}")


def validate_movement(movement: Movement) -> None:
    """Raise ``ValidationError`` when ``movement`` breaks a business rule."""

    if movement.timestamp.tzinfo is None:
        raise ValidationError(f"Movement {movement.id} timestamp must be timezone aware")
    _require_positive_id(movement.account_id, "account_id")
    _require_positive_id(movement.currency_id, "currency_id")

    if isinstance(movement, CashMovement):
        if movement.kind == CashMovementKind.CONVERSION:
            if movement.from_currency_id is None:
                raise ValidationError("Conversion movements require a source currency")
            if movement.from_currency_id == movement.currency_id:
                raise ValidationError("Conversion source and target currency must differ")
        elif movement.from_currency_id is not None:
            raise ValidationError("Only conversion movements may carry a source currency")
        if movement.amount < 0:
            raise ValidationError(f"Cash movement amount cannot be negative, got {movement.amount}")
    elif isinstance(movement, EquityTrade):
        _require_positive_id(movement.ticker_id, "ticker_id")
        if movement.quantity <= 0:
            raise ValidationError(f"Stock trade quantity must be positive, got {movement.quantity}")
        if movement.price < 0:
            raise ValidationError(f"Stock trade price cannot be negative, got {movement.price}")
    elif isinstance(movement, OptionTrade):
        _require_positive_id(movement.ticker_id, "ticker_id")
        if movement.strike < 0:
            raise ValidationError(f"Option strike cannot be negative, got {movement.strike}")
        if movement.quantity <= 0:
            raise ValidationError(f"Option quantity must be positive, got {movement.quantity}")
        if movement.multiplier <= 0:
            raise ValidationError(f"Option multiplier must be positive, got {movement.multiplier}")
        if movement.expiration.date() < movement.timestamp.date():
            raise ValidationError("Option expiration date must not precede the trade date")
    elif isinstance(movement, Dividend):
        _require_positive_id(movement.ticker_id, "ticker_id")
        if movement.amount <= 0:
            raise ValidationError(f"Dividend amount must be positive, got {movement.amount}")
    elif isinstance(movement, DividendTax):
        _require_positive_id(movement.ticker_id, "ticker_id")
        if movement.amount < 0:
            raise ValidationError(f"Dividend tax amount cannot be negative, got {movement.amount}")
    else:
        raise ValidationError(f"Unsupported movement type {type(movement).__name__}")


def _ordered(items: Iterable[Movement]) -> tuple:
    return tuple(sorted(items, key=lambda m: (m.timestamp, m.id)))


@dataclass(frozen=True)
class MovementAggregate:
    """All movements of one account and currency up to and including ``until``."""

    account_id: int
    currency_id: int
    until: date
    cash_movements: tuple[CashMovement, ...] = field(default_factory=tuple)
    trades: tuple[EquityTrade, ...] = field(default_factory=tuple)
    option_trades: tuple[OptionTrade, ...] = field(default_factory=tuple)
    dividends: tuple[Dividend, ...] = field(default_factory=tuple)
    dividend_taxes: tuple[DividendTax, ...] = field(default_factory=tuple)

    @classmethod
    def build(
        cls,
        account_id: int,
        currency_id: int,
        until: date,
        movements: Iterable[Movement],
    ) -> "MovementAggregate":
        cash: list[CashMovement] = []
        trades: list[EquityTrade] = []
        options: list[OptionTrade] = []
        dividends: list[Dividend] = []
        taxes: list[DividendTax] = []
        for movement in movements:
            validate_movement(movement)
            if movement.account_id != account_id or movement.timestamp.date() > until:
                continue
            if isinstance(movement, CashMovement):
                if movement.currency_id == currency_id or movement.from_currency_id == currency_id:
                    cash.append(movement)
                continue
            if movement.currency_id != currency_id:
                continue
            if isinstance(movement, EquityTrade):
                trades.append(movement)
            elif isinstance(movement, OptionTrade):
                options.append(movement)
            elif isinstance(movement, Dividend):
                dividends.append(movement)
            elif isinstance(movement, DividendTax):
                taxes.append(movement)
        return cls(
            account_id=account_id,
            currency_id=currency_id,
            until=until,
            cash_movements=_ordered(cash),
            trades=_ordered(trades),
            option_trades=_ordered(options),
            dividends=_ordered(dividends),
            dividend_taxes=_ordered(taxes),
        )

    @classmethod
    def empty(cls, account_id: int, currency_id: int, until: date) -> "MovementAggregate":
        return cls(account_id=account_id, currency_id=currency_id, until=until)

    def _buckets(self) -> Sequence[tuple[Movement, ...]]:
        return (self.cash_movements, self.trades, self.option_trades, self.dividends, self.dividend_taxes)

    def all_movements(self) -> list[Movement]:
        return [movement for bucket in self._buckets() for movement in bucket]

    @property
    def total_count(self) -> int:
        return sum(len(bucket) for bucket in self._buckets())

    @property
    def is_empty(self) -> bool:
        return self.total_count == 0

    @property
    def unique_dates(self) -> set[date]:
        return {movement.timestamp.date() for movement in self.all_movements()}

    def up_to(self, day: date) -> "MovementAggregate":
        """Return the aggregate truncated to movements dated on or before ``day``."""

        def keep(bucket: tuple) -> tuple:
            return tuple(m for m in bucket if m.timestamp.date() <= day)

        return replace(
            self,
            until=min(day, self.until),
            cash_movements=keep(self.cash_movements),
            trades=keep(self.trades),
            option_trades=keep(self.option_trades),
            dividends=keep(self.dividends),
            dividend_taxes=keep(self.dividend_taxes),
        )

    def on(self, day: date) -> list[Movement]:
        return [movement for movement in self.all_movements() if movement.timestamp.date() == day]

    def has_closing_movement_on(self, day: date) -> bool:
        return any(movement.is_closing for movement in self.on(day))


__all__ = [
    "CashMovementKind",
    "TradeCode",
    "OptionCode",
    "OptionType",
    "CashMovement",
    "EquityTrade",
    "OptionTrade",
    "Dividend",
    "DividendTax",
    "Movement",
    "MovementAggregate",
    "validate_movement",
    "CLOSING_TRADE_CODES",
    "CLOSING_OPTION_CODES",
]
