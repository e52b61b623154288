"""Pydantic schema exports."""

from .movements import (
    CashMovementCreate,
    DividendCreate,
    DividendTaxCreate,
    MovementCreate,
    OptionTradeCreate,
    TradeCreate,
)
from .snapshots import (
    AccountSnapshotSchema,
    CalculationWarningSchema,
    CascadeResultSchema,
    FinancialSnapshotSchema,
    MovementRecordedResponse,
    RecalculateRequest,
)

__all__ = [
    "AccountSnapshotSchema",
    "CalculationWarningSchema",
    "CascadeResultSchema",
    "CashMovementCreate",
    "DividendCreate",
    "DividendTaxCreate",
    "FinancialSnapshotSchema",
    "MovementCreate",
    "MovementRecordedResponse",
    "OptionTradeCreate",
    "RecalculateRequest",
    "TradeCreate",
]
