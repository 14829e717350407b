"""Swap quotes, spot rates, price impact and collateral ceilings."""
from __future__ import annotations

import logging
from decimal import Decimal

from ..amounts import USD_DECIMALS, to_base_units, to_decimal
from ..errors import CallReverted, ChainOrNetworkError, NoLiquidity
from ..interfaces.gateway import ContractGateway
from ..models import AccountPosition, LiquidityPreview, PriceImpactResult, Token
from . import formulas

logger = logging.getLogger(__name__)

NO_LIQUIDITY = "no liquidity"


class PricingEngine:
    """Read-only pricing on top of the contract gateway.

    Every quote goes through ``gateway.swap_path`` so the path priced here is
    the path the router executes.
    """

    def __init__(self, gateway: ContractGateway, ltv: Decimal | float = Decimal("0.8")) -> None:
        self._gateway = gateway
        self._ltv = Decimal(str(ltv))
        self._spot_rates: dict[tuple[str, str], Decimal] = {}

    # ------------------------------------------------------------------
    # Quotes
    # ------------------------------------------------------------------

    async def get_amounts_out(self, amount_in: int, path: list[str]) -> int:
        """Final output of ``path`` for ``amount_in`` base units."""
        amounts = await self._gateway.get_amounts_out(amount_in, path)
        return amounts[-1]

    async def quote_swap(self, amount: str, token_in: Token, token_out: Token) -> int:
        amount_in = to_base_units(amount, token_in.decimals)
        if amount_in == 0:
            return 0
        return await self.get_amounts_out(amount_in, self._gateway.swap_path(token_in, token_out))

    async def get_spot_rate(
        self, token_in: Token, token_out: Token, refresh: bool = False
    ) -> Decimal:
        """Output per one whole input token, cached per pair until ``refresh``."""
        key = (token_in.symbol, token_out.symbol)
        if not refresh and key in self._spot_rates:
            return self._spot_rates[key]

        spot = await self._one_unit_rate(token_in, token_out)
        self._spot_rates[key] = spot
        return spot

    async def _one_unit_rate(self, token_in: Token, token_out: Token) -> Decimal:
        one_unit = 10**token_in.decimals
        amount_out = await self.get_amounts_out(
            one_unit, self._gateway.swap_path(token_in, token_out)
        )
        return formulas.rate(one_unit, token_in.decimals, amount_out, token_out.decimals)

    def clear_spot_rates(self) -> None:
        self._spot_rates.clear()

    # ------------------------------------------------------------------
    # Price impact
    # ------------------------------------------------------------------

    async def calculate_price_impact(
        self, amount: str, token_in: Token, token_out: Token
    ) -> PriceImpactResult | None:
        """Impact of swapping ``amount`` versus the one-unit spot rate.

        Returns None for an empty amount and an error result (never zero)
        when the route has no liquidity.
        """
        amount_in = to_base_units(amount, token_in.decimals)
        if amount_in == 0:
            return None

        path = self._gateway.swap_path(token_in, token_out)
        try:
            amounts = await self._gateway.get_amounts_out(amount_in, path)
            # Fresh reference rate; the displayed spot rate stays as memoized
            spot = await self._one_unit_rate(token_in, token_out)
            actual = formulas.rate(amount_in, token_in.decimals, amounts[-1], token_out.decimals)
            impact = formulas.impact_percent(spot, actual)
        except NoLiquidity as e:
            logger.info("No liquidity for %s -> %s: %s", token_in.symbol, token_out.symbol, e)
            return PriceImpactResult(impact_percent=None, error=NO_LIQUIDITY)

        registry = self._gateway.tokens
        hops = []
        for i in range(len(path) - 1):
            hop_in, hop_out = path[i], path[i + 1]
            dec_in = registry.decimals_of(hop_in)
            dec_out = registry.decimals_of(hop_out)
            try:
                pair = await self._gateway.get_pool_reserves(hop_in, hop_out)
            except (CallReverted, ChainOrNetworkError) as e:
                logger.warning("Could not read reserves for %s/%s: %s", hop_in, hop_out, e)
                pair = None

            if pair is not None and pair.has_liquidity:
                hops.append(
                    formulas.hop_from_reserves(
                        pair, hop_in, hop_out, amounts[i], amounts[i + 1], dec_in, dec_out
                    )
                )
            else:
                hops.append(
                    formulas.estimated_hop(
                        hop_in, hop_out, amounts[i], amounts[i + 1], dec_in, dec_out
                    )
                )

        return PriceImpactResult(
            impact_percent=impact,
            swap_size_percent=hops[0].swap_size_percent if hops else Decimal(0),
            liquidity_depth=min((h.liquidity_depth for h in hops), default=Decimal(0)),
            path_length=len(path),
            hops=tuple(hops),
            estimated=any(h.estimated for h in hops),
        )

    # ------------------------------------------------------------------
    # Collateral
    # ------------------------------------------------------------------

    def get_max_withdrawable(
        self, token: Token, position: AccountPosition, prices: dict[str, Decimal]
    ) -> int:
        decimals = {t.symbol: t.decimals for t in self._gateway.tokens}
        return formulas.max_withdrawable(
            token.symbol,
            position.supplied,
            decimals,
            prices,
            to_decimal(position.total_collateral_usd, USD_DECIMALS),
            to_decimal(position.total_debt_usd, USD_DECIMALS),
            self._ltv,
        )

    # ------------------------------------------------------------------
    # Liquidity previews
    # ------------------------------------------------------------------

    async def pair_amount_for_deposit(self, token: Token, amount: int, counterpart: Token) -> int:
        """Amount of ``counterpart`` matching ``amount`` of ``token`` at the pool ratio."""
        pair = await self._gateway.get_pool_reserves(token.address, counterpart.address)
        if not pair.has_liquidity:
            raise NoLiquidity(f"{token.symbol}/{counterpart.symbol} pool is empty")
        return formulas.pair_amount_for_deposit(
            amount, pair.reserve_of(token.address), pair.other_reserve_of(token.address)
        )

    async def preview_remove_liquidity(self, token: Token, shares: int) -> LiquidityPreview:
        stable = self._gateway.stable
        pair = await self._gateway.get_pool_reserves(token.address, stable.address)
        total_supply = await self._gateway.get_pool_total_supply(token.address, stable.address)
        return formulas.preview_remove_liquidity(
            shares,
            total_supply,
            pair.reserve_of(token.address),
            pair.other_reserve_of(token.address),
        )
