"""Database model exports."""

from .movements import BrokerMovement, Dividend, DividendTax, OptionTrade, Trade
from .snapshots import BrokerFinancialSnapshot, TickerPrice

__all__ = [
    "BrokerMovement",
    "Trade",
    "OptionTrade",
    "Dividend",
    "DividendTax",
    "BrokerFinancialSnapshot",
    "TickerPrice",
]
