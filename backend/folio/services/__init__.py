"""Snapshot calculation engine: movements in, financial snapshots out."""

from .cascade import CascadeResult, KeyedLocks, MovementSource, SnapshotCascade, SnapshotStore
from .currencies import AccountSnapshot, aggregate_account_snapshot
from .errors import (
    CalculationWarning,
    InconsistentStateError,
    LookupFailure,
    SnapshotEngineError,
    SnapshotPersistenceError,
    ValidationError,
)
from .memory import InMemoryMovementSource, InMemorySnapshotStore
from .metrics import RecalculatedMetrics, calculate_metrics
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
from .notifications import SnapshotNotifier
from .options import OptionPositionLot, OptionsSummary, summarize_option_trades
from .prices import CachingPriceLookup, InMemoryPriceLookup, PriceLookup
from .snapshots import FinancialSnapshot, apply_direct_snapshot_metrics_with_preservation, percentage
from .trades import TradingSummary, stock_unrealized_gains, summarize_trades

__all__ = [
    "AccountSnapshot",
    "CachingPriceLookup",
    "CalculationWarning",
    "CascadeResult",
    "CashMovement",
    "CashMovementKind",
    "Dividend",
    "DividendTax",
    "EquityTrade",
    "FinancialSnapshot",
    "InMemoryMovementSource",
    "InMemoryPriceLookup",
    "InMemorySnapshotStore",
    "InconsistentStateError",
    "KeyedLocks",
    "LookupFailure",
    "Movement",
    "MovementAggregate",
    "MovementSource",
    "OptionCode",
    "OptionPositionLot",
    "OptionTrade",
    "OptionType",
    "OptionsSummary",
    "PriceLookup",
    "RecalculatedMetrics",
    "SnapshotCascade",
    "SnapshotEngineError",
    "SnapshotNotifier",
    "SnapshotPersistenceError",
    "SnapshotStore",
    "TradeCode",
    "TradingSummary",
    "ValidationError",
    "aggregate_account_snapshot",
    "apply_direct_snapshot_metrics_with_preservation",
    "calculate_metrics",
    "percentage",
    "stock_unrealized_gains",
    "summarize_option_trades",
    "summarize_trades",
    "validate_movement",
]
