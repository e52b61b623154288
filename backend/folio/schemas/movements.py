"""Pydantic schemas for recording movements through the API."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from folio.services import movements as domain


class _MovementBase(BaseModel):
    timestamp: datetime = Field(..., description="Timezone-aware movement time.")
    account_id: int = Field(..., examples=[1])
    currency_id: int = Field(..., examples=[1])


class CashMovementCreate(_MovementBase):
    kind: Literal["cash"] = "cash"
    type: domain.CashMovementKind
    amount: Decimal
    commissions: Decimal = Decimal("0")
    fees: Decimal = Decimal("0")
    from_currency_id: int | None = None
    amount_changed: Decimal | None = None

    def to_domain(self) -> domain.CashMovement:
        return domain.CashMovement(
            id=0,
            timestamp=self.timestamp,
            account_id=self.account_id,
            currency_id=self.currency_id,
            kind=self.type,
            amount=self.amount,
            commissions=self.commissions,
            fees=self.fees,
            from_currency_id=self.from_currency_id,
            amount_changed=self.amount_changed,
        )


class TradeCreate(_MovementBase):
    kind: Literal["trade"] = "trade"
    ticker_id: int
    code: domain.TradeCode
    quantity: Decimal
    price: Decimal
    commissions: Decimal = Decimal("0")
    fees: Decimal = Decimal("0")

    def to_domain(self) -> domain.EquityTrade:
        return domain.EquityTrade(
            id=0,
            timestamp=self.timestamp,
            account_id=self.account_id,
            currency_id=self.currency_id,
            ticker_id=self.ticker_id,
            code=self.code,
            quantity=self.quantity,
            price=self.price,
            commissions=self.commissions,
            fees=self.fees,
        )


class OptionTradeCreate(_MovementBase):
    kind: Literal["option"] = "option"
    ticker_id: int
    code: domain.OptionCode
    option_type: domain.OptionType
    strike: Decimal
    premium: Decimal = Field(..., description="Positive for sells, negative for buys.")
    expiration: datetime
    quantity: Decimal = Decimal("1")
    multiplier: Decimal = Decimal("100")
    commissions: Decimal = Decimal("0")
    fees: Decimal = Decimal("0")

    def to_domain(self) -> domain.OptionTrade:
        return domain.OptionTrade(
            id=0,
            timestamp=self.timestamp,
            account_id=self.account_id,
            currency_id=self.currency_id,
            ticker_id=self.ticker_id,
            code=self.code,
            option_type=self.option_type,
            strike=self.strike,
            premium=self.premium,
            expiration=self.expiration,
            quantity=self.quantity,
            multiplier=self.multiplier,
            commissions=self.commissions,
            fees=self.fees,
        )


class DividendCreate(_MovementBase):
    kind: Literal["dividend"] = "dividend"
    ticker_id: int
    amount: Decimal

    def to_domain(self) -> domain.Dividend:
        return domain.Dividend(
            id=0,
            timestamp=self.timestamp,
            account_id=self.account_id,
            currency_id=self.currency_id,
            ticker_id=self.ticker_id,
            amount=self.amount,
        )


class DividendTaxCreate(_MovementBase):
    kind: Literal["dividend_tax"] = "dividend_tax"
    ticker_id: int
    amount: Decimal

    def to_domain(self) -> domain.DividendTax:
        return domain.DividendTax(
            id=0,
            timestamp=self.timestamp,
            account_id=self.account_id,
            currency_id=self.currency_id,
            ticker_id=self.ticker_id,
            amount=self.amount,
        )


MovementCreate = Annotated[
    Union[CashMovementCreate, TradeCreate, OptionTradeCreate, DividendCreate, DividendTaxCreate],
    Field(discriminator="kind"),
]
