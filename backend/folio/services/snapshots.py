"""Financial snapshot value type and the recalculation merge rules."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal

from .metrics import RecalculatedMetrics
from .movements import ZERO, MovementAggregate

HUNDRED = Decimal("100")
PERCENT_QUANTUM = Decimal("0.0001")


@dataclass(frozen=True)
class FinancialSnapshot:
    """Point-in-time totals for one account and currency."""

    account_id: int
    currency_id: int
    date: date
    movement_counter: int = 0
    realized_gains: Decimal = ZERO
    realized_percentage: Decimal = ZERO
    unrealized_gains: Decimal = ZERO
    unrealized_percentage: Decimal = ZERO
    invested: Decimal = ZERO
    commissions: Decimal = ZERO
    fees: Decimal = ZERO
    deposited: Decimal = ZERO
    withdrawn: Decimal = ZERO
    dividends_received: Decimal = ZERO
    options_income: Decimal = ZERO
    other_income: Decimal = ZERO
    open_trades: bool = False

    @classmethod
    def empty(cls, account_id: int, currency_id: int, day: date) -> "FinancialSnapshot":
        return cls(account_id=account_id, currency_id=currency_id, date=day)

    @property
    def key(self) -> tuple[int, int, date]:
        return (self.account_id, self.currency_id, self.date)

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


def percentage(gain: Decimal, net_cash_flow: Decimal) -> Decimal:
    if net_cash_flow <= 0:
        return ZERO
    return (gain / net_cash_flow * HUNDRED).quantize(PERCENT_QUANTUM)


def apply_direct_snapshot_metrics_with_preservation(
    aggregate: MovementAggregate,
    existing: FinancialSnapshot,
    metrics: RecalculatedMetrics,
    stock_unrealized_gains: Decimal,
) -> FinancialSnapshot:
    """Merge recalculated ``metrics`` into ``existing``.

    A closing movement on the snapshot date replaces realized figures outright.
    Without one, a zero recalculated realized gain keeps the stored realized
    figures, and a recalculation that is the empty baseline also keeps the
    stored deposit total.
    """

    day = existing.date
    closing_today = aggregate.has_closing_movement_on(day)
    preserve_realized = not closing_today and metrics.realized_gains == 0
    preserve_deposited = not closing_today and metrics.is_zero_baseline

    deposited = existing.deposited if preserve_deposited else metrics.deposited
    unrealized = stock_unrealized_gains + metrics.option_unrealized_gains

    merged = replace(
        existing,
        movement_counter=metrics.movement_counter,
        unrealized_gains=unrealized,
        invested=metrics.invested,
        commissions=metrics.commissions,
        fees=metrics.fees,
        deposited=deposited,
        withdrawn=metrics.withdrawn,
        dividends_received=metrics.dividends_received,
        options_income=metrics.options_income,
        other_income=metrics.other_income,
        open_trades=metrics.has_open_positions,
    )
    net_cash_flow = merged.net_cash_flow

    if preserve_realized:
        realized = existing.realized_gains
        realized_pct = existing.realized_percentage
    else:
        realized = metrics.realized_gains
        realized_pct = percentage(realized, net_cash_flow)

    return replace(
        merged,
        realized_gains=realized,
        realized_percentage=realized_pct,
        unrealized_percentage=percentage(unrealized, net_cash_flow),
    )


__all__ = [
    "FinancialSnapshot",
    "percentage",
    "apply_direct_snapshot_metrics_with_preservation",
]
