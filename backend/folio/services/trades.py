"""Cost-basis matching for stock trades."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Deque, Dict, Iterable, Mapping

from .errors import CalculationWarning, InconsistentStateError
from .movements import ZERO, EquityTrade, TradeCode


@dataclass
class _ShareLot:
    """Internal representation of an open share lot."""

    trade_id: int
    quantity: Decimal
    basis_per_share: Decimal

    @property
    def basis_total(self) -> Decimal:
        return self.quantity * self.basis_per_share


@dataclass
class _TickerBook:
    long: Deque[_ShareLot] = field(default_factory=deque)
    short: Deque[_ShareLot] = field(default_factory=deque)


@dataclass(frozen=True)
class TradingSummary:
    invested: Decimal = ZERO
    realized_gains: Decimal = ZERO
    commissions: Decimal = ZERO
    fees: Decimal = ZERO
    trade_count: int = 0
    positions: Mapping[int, Decimal] = field(default_factory=dict)
    cost_basis: Mapping[int, Decimal] = field(default_factory=dict)
    has_open_positions: bool = False
    warnings: tuple[CalculationWarning, ...] = ()


def _close_against(lots: Deque[_ShareLot], quantity: Decimal) -> tuple[Decimal, Decimal]:
    """Consume ``quantity`` shares oldest-first; return (matched shares, matched basis)."""

    remaining = quantity
    basis = ZERO
    while remaining > 0 and lots:
        lot = lots[0]
        take = min(lot.quantity, remaining)
        basis += take * lot.basis_per_share
        lot.quantity -= take
        remaining -= take
        if lot.quantity == 0:
            lots.popleft()
    return quantity - remaining, basis


def summarize_trades(trades: Iterable[EquityTrade]) -> TradingSummary:
    books: Dict[int, _TickerBook] = {}
    warnings: list[CalculationWarning] = []
    invested = ZERO
    realized = ZERO
    commissions = ZERO
    fees = ZERO
    count = 0

    for trade in sorted(trades, key=lambda t: (t.timestamp, t.id)):
        count += 1
        costs = abs(trade.commissions) + abs(trade.fees)
        commissions += abs(trade.commissions)
        fees += abs(trade.fees)
        qty = abs(trade.quantity)
        gross = qty * trade.price
        book = books.setdefault(trade.ticker_id, _TickerBook())

        if trade.code == TradeCode.BUY_TO_OPEN:
            total_cost = gross + costs
            invested += total_cost
            book.long.append(_ShareLot(trade.id, qty, total_cost / qty))
        elif trade.code == TradeCode.SELL_TO_OPEN:
            book.short.append(_ShareLot(trade.id, qty, (gross - costs) / qty))
        elif trade.code == TradeCode.SELL_TO_CLOSE:
            matched, basis = _close_against(book.long, qty)
            if matched:
                proceeds = (gross - costs) * matched / qty
                realized += proceeds - basis
        else:
            matched, proceeds = _close_against(book.short, qty)
            if matched:
                cost = (gross + costs) * matched / qty
                realized += proceeds - cost

        if trade.is_closing and matched < qty:
            warnings.append(
                CalculationWarning(
                    date=trade.timestamp.date(),
                    error=InconsistentStateError(
                        f"Trade {trade.id} ({trade.code.value}) closes {qty - matched} share(s) "
                        f"of ticker {trade.ticker_id} with no open lot",
                        movement_id=trade.id,
                        ticker_id=trade.ticker_id,
                    ),
                )
            )

    positions: dict[int, Decimal] = {}
    cost_basis: dict[int, Decimal] = {}
    for ticker_id, book in books.items():
        long_qty = sum((lot.quantity for lot in book.long), ZERO)
        short_qty = sum((lot.quantity for lot in book.short), ZERO)
        net = long_qty - short_qty
        if long_qty == 0 and short_qty == 0:
            continue
        open_lots = book.long if long_qty else book.short
        open_qty = long_qty if long_qty else short_qty
        positions[ticker_id] = net
        cost_basis[ticker_id] = sum((lot.basis_total for lot in open_lots), ZERO) / open_qty

    return TradingSummary(
        invested=invested,
        realized_gains=realized,
        commissions=commissions,
        fees=fees,
        trade_count=count,
        positions=positions,
        cost_basis=cost_basis,
        has_open_positions=any(qty != 0 for qty in positions.values()),
        warnings=tuple(warnings),
    )


def stock_unrealized_gains(
    positions: Mapping[int, Decimal],
    cost_basis: Mapping[int, Decimal],
    prices: Mapping[int, Decimal],
) -> Decimal:
    """Value open positions at ``prices``; tickers without a price contribute nothing."""

    total = ZERO
    for ticker_id, quantity in positions.items():
        price = prices.get(ticker_id)
        basis = cost_basis.get(ticker_id)
        if price is None or basis is None or quantity == 0:
            continue
        if quantity > 0:
            total += (price - basis) * quantity
        else:
            total += (basis - price) * abs(quantity)
    return total


__all__ = ["TradingSummary", "summarize_trades", "stock_unrealized_gains"]
