"""Unit tests for PricingEngine against the in-memory gateway."""
from __future__ import annotations

from decimal import Decimal

import pytest

from flow_on_arc.errors import NoLiquidity
from flow_on_arc.models import AccountData, AccountPosition, Token, TokenRegistry
from flow_on_arc.pricing import NO_LIQUIDITY, PricingEngine

from tests.conftest import E6, E18, FakeGateway


@pytest.fixture()
def engine(pooled_gateway: FakeGateway) -> PricingEngine:
    return PricingEngine(pooled_gateway, ltv=0.8)


class TestQuotes:
    @pytest.mark.asyncio
    async def test_quote_uses_gateway_path(
        self, engine: PricingEngine, pooled_gateway: FakeGateway, cat: Token, darc: Token
    ) -> None:
        out = await engine.quote_swap("1000", cat, darc)

        assert out > 0
        amount_in, path = pooled_gateway.amounts_out_calls[-1]
        assert amount_in == 1_000 * E18
        assert path == pooled_gateway.swap_path(cat, darc)
        assert len(path) == 3

    @pytest.mark.asyncio
    async def test_empty_amount_quotes_zero(
        self, engine: PricingEngine, pooled_gateway: FakeGateway, cat: Token, usdc: Token
    ) -> None:
        assert await engine.quote_swap("", cat, usdc) == 0
        assert pooled_gateway.amounts_out_calls == []

    @pytest.mark.asyncio
    async def test_quote_without_pool_raises(
        self, engine: PricingEngine, registry: TokenRegistry, usdc: Token
    ) -> None:
        with pytest.raises(NoLiquidity):
            await engine.quote_swap("1", registry.by_symbol("PANDA"), usdc)


class TestSpotRate:
    @pytest.mark.asyncio
    async def test_one_unit_rate(self, engine: PricingEngine, cat: Token, usdc: Token) -> None:
        rate = await engine.get_spot_rate(cat, usdc)
        assert Decimal("0.0149") < rate < Decimal("0.015")

    @pytest.mark.asyncio
    async def test_cached_until_refresh(
        self, engine: PricingEngine, pooled_gateway: FakeGateway, cat: Token, usdc: Token
    ) -> None:
        await engine.get_spot_rate(cat, usdc)
        await engine.get_spot_rate(cat, usdc)
        assert len(pooled_gateway.amounts_out_calls) == 1

        await engine.get_spot_rate(cat, usdc, refresh=True)
        assert len(pooled_gateway.amounts_out_calls) == 2

        engine.clear_spot_rates()
        await engine.get_spot_rate(cat, usdc)
        assert len(pooled_gateway.amounts_out_calls) == 3

    @pytest.mark.asyncio
    async def test_impact_does_not_move_displayed_rate(
        self, engine: PricingEngine, pooled_gateway: FakeGateway, cat: Token, usdc: Token
    ) -> None:
        shown = await engine.get_spot_rate(cat, usdc)
        pooled_gateway.add_pool(cat, usdc, 500_000 * E18, 15_000 * E6, 100_000 * E18)

        result = await engine.calculate_price_impact("1000", cat, usdc)

        assert result.impact_percent >= 0
        assert await engine.get_spot_rate(cat, usdc) == shown


class TestPriceImpact:
    @pytest.mark.asyncio
    async def test_single_hop(self, engine: PricingEngine, cat: Token, usdc: Token) -> None:
        result = await engine.calculate_price_impact("10000", cat, usdc)

        assert result is not None
        assert result.error is None
        assert result.impact_percent >= 0
        assert result.path_length == 2
        assert len(result.hops) == 1
        assert not result.estimated
        assert result.swap_size_percent == Decimal(1)
        assert result.liquidity_depth == Decimal(15_000)

    @pytest.mark.asyncio
    async def test_bigger_swap_bigger_impact(
        self, engine: PricingEngine, cat: Token, usdc: Token
    ) -> None:
        small = await engine.calculate_price_impact("100", cat, usdc)
        large = await engine.calculate_price_impact("100000", cat, usdc)
        assert large.impact_percent > small.impact_percent

    @pytest.mark.asyncio
    async def test_two_hops(self, engine: PricingEngine, cat: Token, darc: Token) -> None:
        result = await engine.calculate_price_impact("1000", cat, darc)
        assert result.path_length == 3
        assert len(result.hops) == 2
        assert result.impact_percent >= 0

    @pytest.mark.asyncio
    async def test_empty_amount(self, engine: PricingEngine, cat: Token, usdc: Token) -> None:
        assert await engine.calculate_price_impact("", cat, usdc) is None
        assert await engine.calculate_price_impact("0", cat, usdc) is None

    @pytest.mark.asyncio
    async def test_no_liquidity_is_an_error_not_zero(
        self, engine: PricingEngine, registry: TokenRegistry, usdc: Token
    ) -> None:
        result = await engine.calculate_price_impact("5", registry.by_symbol("PANDA"), usdc)
        assert result.impact_percent is None
        assert result.error == NO_LIQUIDITY

    @pytest.mark.asyncio
    async def test_unreadable_reserves_fall_back_to_estimate(
        self, engine: PricingEngine, pooled_gateway: FakeGateway, cat: Token, usdc: Token
    ) -> None:
        pooled_gateway.unreadable_pools.add(frozenset((cat.address.lower(), usdc.address.lower())))

        result = await engine.calculate_price_impact("1000", cat, usdc)

        assert result.estimated
        assert result.hops[0].swap_size_percent == Decimal(1)
        assert result.impact_percent >= 0


class TestCollateralAndLiquidity:
    def test_max_withdrawable(self, engine: PricingEngine, usdc: Token) -> None:
        position = AccountPosition(
            supplied={"USDC": 500 * E6, "DARC": 12_500 * E18},
            account=AccountData(total_collateral_usd=1_000 * E18, total_debt_usd=400 * E18),
        )
        prices = {"USDC": Decimal(1), "DARC": Decimal("0.04")}
        assert engine.get_max_withdrawable(usdc, position, prices) == 250 * E6

    def test_max_withdrawable_without_debt(self, engine: PricingEngine, cat: Token) -> None:
        position = AccountPosition(supplied={"CAT": 7 * E18})
        assert engine.get_max_withdrawable(cat, position, {}) == 7 * E18

    @pytest.mark.asyncio
    async def test_pair_amount_for_deposit(
        self, engine: PricingEngine, cat: Token, usdc: Token
    ) -> None:
        assert await engine.pair_amount_for_deposit(cat, 1_000 * E18, usdc) == 15 * E6
        assert await engine.pair_amount_for_deposit(usdc, 15 * E6, cat) == 1_000 * E18

    @pytest.mark.asyncio
    async def test_pair_amount_empty_pool(
        self, engine: PricingEngine, registry: TokenRegistry, usdc: Token
    ) -> None:
        with pytest.raises(NoLiquidity):
            await engine.pair_amount_for_deposit(registry.by_symbol("PANDA"), 1, usdc)

    @pytest.mark.asyncio
    async def test_preview_remove_liquidity(self, engine: PricingEngine, cat: Token) -> None:
        preview = await engine.preview_remove_liquidity(cat, 10_000 * E18)
        assert preview.amount_token == 100_000 * E18
        assert preview.amount_stable == 1_500 * E6
        assert preview.share_of_pool_percent == Decimal(10)
