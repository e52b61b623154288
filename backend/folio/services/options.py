"""FIFO matching of option round trips."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Deque, Dict, Iterable, List, Tuple

from .errors import CalculationWarning, InconsistentStateError
from .movements import ZERO, OptionCode, OptionTrade, OptionType

BUY_SIDE_CODES = frozenset({OptionCode.BUY_TO_OPEN, OptionCode.BUY_TO_CLOSE})

ContractKey = Tuple[int, OptionType, Decimal, date]


@dataclass
class OptionPositionLot:
    """Open contracts waiting for a matching close."""

    trade_id: int
    sequence: tuple
    quantity: Decimal
    net_premium: Decimal
    expiration: date

    def take(self, quantity: Decimal) -> Decimal:
        """Remove ``quantity`` contracts and return their share of the net premium."""

        if quantity >= self.quantity:
            portion = self.net_premium
        else:
            portion = self.net_premium * quantity / self.quantity
        self.quantity -= quantity
        self.net_premium -= portion
        return portion


@dataclass
class _ContractQueues:
    short: Deque[OptionPositionLot] = field(default_factory=deque)
    long: Deque[OptionPositionLot] = field(default_factory=deque)

    def queue_for(self, trade: OptionTrade) -> Deque[OptionPositionLot]:
        if trade.code == OptionCode.BUY_TO_CLOSE:
            return self.short
        if trade.code == OptionCode.SELL_TO_CLOSE:
            return self.long
        # Assignment and expiry close whichever side was opened first.
        if self.short and self.long:
            return self.short if self.short[0].sequence <= self.long[0].sequence else self.long
        return self.short or self.long

    def lots(self) -> List[OptionPositionLot]:
        return list(self.short) + list(self.long)


@dataclass(frozen=True)
class OptionsSummary:
    options_income: Decimal = ZERO
    options_investment: Decimal = ZERO
    realized_gains: Decimal = ZERO
    unrealized_gains: Decimal = ZERO
    commissions: Decimal = ZERO
    fees: Decimal = ZERO
    trade_count: int = 0
    has_open_options: bool = False
    warnings: tuple[CalculationWarning, ...] = ()


def summarize_option_trades(trades: Iterable[OptionTrade], as_of: date) -> OptionsSummary:
    """Match opening and closing option trades oldest-first.

    Realized gains come from matched pairs, unrealized gains from lots that are
    still open and not yet expired on ``as_of``. Income, investment, commissions
    and fees do not depend on the matching order.
    """

    ordered = sorted(trades, key=lambda t: (t.timestamp, t.id))
    queues: Dict[ContractKey, _ContractQueues] = {}
    warnings: list[CalculationWarning] = []

    income = ZERO
    investment = ZERO
    realized = ZERO
    commissions = ZERO
    fees = ZERO

    for trade in ordered:
        income += trade.premium
        commissions += abs(trade.commissions)
        fees += abs(trade.fees)
        if trade.code in BUY_SIDE_CODES:
            investment += abs(trade.net_premium)

        contract = queues.setdefault(trade.contract_key, _ContractQueues())
        if not trade.is_closing:
            lot = OptionPositionLot(
                trade_id=trade.id,
                sequence=(trade.timestamp, trade.id),
                quantity=trade.quantity,
                net_premium=trade.net_premium,
                expiration=trade.expiration.date(),
            )
            if trade.code == OptionCode.SELL_TO_OPEN:
                contract.short.append(lot)
            else:
                contract.long.append(lot)
            continue

        remaining = trade.quantity
        while remaining > 0:
            queue = contract.queue_for(trade)
            if not queue:
                break
            lot = queue[0]
            matched = min(lot.quantity, remaining)
            close_portion = trade.net_premium * matched / trade.quantity
            realized += lot.take(matched) + close_portion
            remaining -= matched
            if lot.quantity == 0:
                queue.popleft()
        if remaining > 0:
            warnings.append(
                CalculationWarning(
                    date=trade.timestamp.date(),
                    error=InconsistentStateError(
                        f"Option trade {trade.id} ({trade.code.value}) closes {remaining} contract(s) "
                        f"of ticker {trade.ticker_id} strike {trade.strike} "
                        f"expiring {trade.expiration.date()} with no open lot",
                        movement_id=trade.id,
                        ticker_id=trade.ticker_id,
                    ),
                )
            )

    unrealized = ZERO
    has_open = False
    for contract in queues.values():
        for lot in contract.lots():
            if lot.quantity > 0 and lot.expiration >= as_of:
                unrealized += lot.net_premium
                has_open = True

    return OptionsSummary(
        options_income=income,
        options_investment=investment,
        realized_gains=realized,
        unrealized_gains=unrealized,
        commissions=commissions,
        fees=fees,
        trade_count=len(ordered),
        has_open_options=has_open,
        warnings=tuple(warnings),
    )


__all__ = ["OptionPositionLot", "OptionsSummary", "summarize_option_trades"]
