"""Per-date, per-currency metric recalculation."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Mapping

from .errors import CalculationWarning
from .movements import ZERO, CashMovementKind, MovementAggregate
from .options import summarize_option_trades
from .trades import summarize_trades

DEPOSIT_KINDS = frozenset({CashMovementKind.DEPOSIT, CashMovementKind.ACAT_MONEY_TRANSFER})
INCOME_KINDS = frozenset({CashMovementKind.INTEREST_GAINED, CashMovementKind.LENDING})


@dataclass(frozen=True)
class RecalculatedMetrics:
    deposited: Decimal = ZERO
    withdrawn: Decimal = ZERO
    invested: Decimal = ZERO
    realized_gains: Decimal = ZERO
    dividends_received: Decimal = ZERO
    options_income: Decimal = ZERO
    other_income: Decimal = ZERO
    commissions: Decimal = ZERO
    fees: Decimal = ZERO
    movement_counter: int = 0
    current_positions: Mapping[int, Decimal] = field(default_factory=dict)
    cost_basis: Mapping[int, Decimal] = field(default_factory=dict)
    has_open_positions: bool = False
    option_unrealized_gains: Decimal = ZERO
    warnings: tuple[CalculationWarning, ...] = ()

    @classmethod
    def zero(cls) -> "RecalculatedMetrics":
        return cls()

    @property
    def is_zero_baseline(self) -> bool:
        """True when every figure matches what an empty aggregate produces."""

        return (
            self.deposited == 0
            and self.withdrawn == 0
            and self.invested == 0
            and self.realized_gains == 0
            and self.dividends_received == 0
            and self.options_income == 0
            and self.other_income == 0
            and self.commissions == 0
            and self.fees == 0
            and self.movement_counter == 0
            and not self.current_positions
            and not self.has_open_positions
            and self.option_unrealized_gains == 0
        )

    @property
    def net_cash_flow(self) -> Decimal:
        return (
            self.deposited
            - self.withdrawn
            - self.commissions
            - self.fees
            + self.dividends_received
            + self.options_income
            + self.other_income
        )


def calculate_metrics(aggregate: MovementAggregate, target_date: date) -> RecalculatedMetrics:
    """Recalculate every snapshot figure from movements dated on or before ``target_date``."""

    scoped = aggregate.up_to(target_date)
    currency_id = scoped.currency_id

    deposited = ZERO
    withdrawn = ZERO
    other_income = ZERO
    commissions = ZERO
    fees = ZERO
    conversion_impact = ZERO

    for movement in scoped.cash_movements:
        if movement.kind == CashMovementKind.CONVERSION:
            if movement.currency_id == currency_id:
                conversion_impact += movement.amount
                commissions += abs(movement.commissions)
                fees += abs(movement.fees)
            if movement.from_currency_id == currency_id:
                conversion_impact -= movement.debited_amount
            continue

        commissions += abs(movement.commissions)
        fees += abs(movement.fees)
        if movement.kind in DEPOSIT_KINDS:
            deposited += movement.amount
        elif movement.kind == CashMovementKind.WITHDRAWAL:
            withdrawn += movement.amount
        elif movement.kind == CashMovementKind.FEE:
            fees += movement.amount
        elif movement.kind in INCOME_KINDS:
            other_income += movement.amount
        elif movement.kind == CashMovementKind.INTEREST_PAID:
            other_income -= movement.amount

    # Conversions land on one side only, by the sign of their net effect.
    if conversion_impact >= 0:
        deposited += conversion_impact
    else:
        withdrawn -= conversion_impact

    dividends = sum((d.amount for d in scoped.dividends), ZERO)
    taxes = sum((t.amount for t in scoped.dividend_taxes), ZERO)

    trading = summarize_trades(scoped.trades)
    options = summarize_option_trades(scoped.option_trades, target_date)

    return RecalculatedMetrics(
        deposited=deposited,
        withdrawn=withdrawn,
        invested=trading.invested + options.options_investment,
        realized_gains=trading.realized_gains + options.realized_gains,
        dividends_received=dividends - taxes,
        options_income=options.options_income,
        other_income=other_income,
        commissions=commissions + trading.commissions + options.commissions,
        fees=fees + trading.fees + options.fees,
        movement_counter=scoped.total_count,
        current_positions=dict(trading.positions),
        cost_basis=dict(trading.cost_basis),
        has_open_positions=trading.has_open_positions or options.has_open_options,
        option_unrealized_gains=options.unrealized_gains,
        warnings=trading.warnings + options.warnings,
    )


__all__ = ["RecalculatedMetrics", "calculate_metrics"]
