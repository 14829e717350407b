"""USD prices as published by the lending pool's reserve data."""
from __future__ import annotations

import logging
from decimal import Decimal

from ..amounts import USD_DECIMALS, to_decimal
from ..errors import FlowOnArcError
from ..interfaces.gateway import ContractGateway

logger = logging.getLogger(__name__)


class LendingPoolOracle:
    """Fetch token prices from ``getReserveData(token).priceUSD``.

    The stable asset is pegged at 1 USD and never queried.
    """

    def __init__(self, gateway: ContractGateway) -> None:
        self._gateway = gateway

    async def fetch_prices(self, symbols: list[str] | None = None) -> dict[str, Decimal]:
        """Fetch current prices.

        Args:
            symbols: Optional list of symbols to fetch. If None, fetches every
                     configured token.
        """
        prices: dict[str, Decimal] = {}
        stable = self._gateway.stable

        for token in self._gateway.tokens:
            if symbols is not None and token.symbol not in symbols:
                continue
            if token.symbol == stable.symbol:
                prices[token.symbol] = Decimal(1)
                continue
            if not token.lendable:
                continue

            try:
                reserve = await self._gateway.get_reserve_data(token)
            except FlowOnArcError as e:
                logger.error("Error fetching %s price from lending pool: %s", token.symbol, e)
                continue
            prices[token.symbol] = to_decimal(reserve.price_usd, USD_DECIMALS)

        logger.info("Fetched prices from lending pool:")
        for symbol, price in sorted(prices.items()):
            logger.info("  %s: $%.4f", symbol, price)

        return prices
