"""Price lookups used to value open stock positions.

Lookups are pluggable so the cascade can run against the ``ticker_price``
table, an in-memory map in tests, or any market data adapter. A lookup returns
``None`` when it has no price; raising is treated as an unavailable lookup by
the caller.
"""

from __future__ import annotations

from decimal import Decimal, getcontext
from typing import Mapping, MutableMapping, Protocol

getcontext().prec = 28


class PriceLookup(Protocol):
    """Pluggable current price provider."""

    async def get_current_price(self, ticker_id: int) -> Decimal | None:
        ...


class InMemoryPriceLookup:
    """Simple price lookup for tests and embedding."""

    def __init__(self, prices: Mapping[int, Decimal | str | int] | None = None):
        self._prices: dict[int, Decimal] = {
            ticker_id: Decimal(str(value)) for ticker_id, value in (prices or {}).items()
        }

    def set_price(self, ticker_id: int, price: Decimal | str | int) -> None:
        self._prices[ticker_id] = Decimal(str(price))

    async def get_current_price(self, ticker_id: int) -> Decimal | None:
        return self._prices.get(ticker_id)


class CachingPriceLookup:
    """Cache wrapper so one cascade asks the delegate at most once per ticker."""

    def __init__(self, delegate: PriceLookup):
        self.delegate = delegate
        self._cache: MutableMapping[int, Decimal | None] = {}

    async def get_current_price(self, ticker_id: int) -> Decimal | None:
        if ticker_id not in self._cache:
            self._cache[ticker_id] = await self.delegate.get_current_price(ticker_id)
        return self._cache[ticker_id]


__all__ = ["PriceLookup", "InMemoryPriceLookup", "CachingPriceLookup"]
