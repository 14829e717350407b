"""Price oracle protocol: USD price feed abstraction."""
from decimal import Decimal
from typing import Protocol


class PriceOracle(Protocol):
    """Abstract interface for fetching token prices in USD."""

    async def fetch_prices(self, symbols: list[str] | None = None) -> dict[str, Decimal]: ...
