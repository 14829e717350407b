"""Unit tests for the pure pricing formulas."""
from __future__ import annotations

from decimal import Decimal

import pytest

from flow_on_arc.errors import NoLiquidity
from flow_on_arc.models import ReservePair
from flow_on_arc.pricing import formulas

E18 = 10**18
E6 = 10**6

DECIMALS = {"USDC": 6, "CAT": 18, "DARC": 18}
PRICES = {"USDC": Decimal(1), "CAT": Decimal("0.015"), "DARC": Decimal("0.04")}


class TestRate:
    def test_human_units(self) -> None:
        assert formulas.rate(2 * E18, 18, 3 * E6, 6) == Decimal("1.5")

    def test_zero_input(self) -> None:
        assert formulas.rate(0, 18, 5, 6) == 0


class TestImpactPercent:
    def test_worse_execution(self) -> None:
        assert formulas.impact_percent(Decimal(2), Decimal("1.9")) == Decimal(5)

    def test_floored_at_zero(self) -> None:
        assert formulas.impact_percent(Decimal(2), Decimal("2.1")) == 0

    def test_zero_spot_is_no_liquidity(self) -> None:
        with pytest.raises(NoLiquidity):
            formulas.impact_percent(Decimal(0), Decimal(1))


class TestHops:
    def test_hop_from_reserves(self) -> None:
        pair = ReservePair("0x01", "0xusdc", "0xcat", 1_000 * E6, 100_000 * E18)
        hop = formulas.hop_from_reserves(pair, "0xcat", "0xusdc", 1_000 * E18, 9_900_990, 18, 6)

        assert hop.reserve_in == Decimal(100_000)
        assert hop.reserve_out == Decimal(1_000)
        assert hop.liquidity_depth == Decimal(1_000)
        assert hop.swap_size_percent == Decimal(1)
        assert hop.hop_impact_percent > 0
        assert not hop.estimated

    def test_estimated_hop(self) -> None:
        hop = formulas.estimated_hop("0xcat", "0xusdc", 10 * E18, 150_000, 18, 6)
        assert hop.estimated
        assert hop.reserve_in == Decimal(1_000)
        assert hop.reserve_out == Decimal(15)
        assert hop.swap_size_percent == formulas.ESTIMATED_SWAP_SIZE_PERCENT
        assert hop.hop_impact_percent == 0


class TestFreeCollateral:
    def test_no_debt(self) -> None:
        assert formulas.free_collateral_usd(Decimal(1000), Decimal(0), Decimal("0.8")) == 1000

    def test_with_debt(self) -> None:
        assert formulas.free_collateral_usd(
            Decimal(1000), Decimal(400), Decimal("0.8")
        ) == Decimal(500)

    def test_underwater(self) -> None:
        assert formulas.free_collateral_usd(Decimal(100), Decimal(400), Decimal("0.8")) == 0


class TestMaxWithdrawable:
    def test_zero_debt_returns_full_balance(self) -> None:
        supplied = {"CAT": 1_000 * E18}
        assert formulas.max_withdrawable(
            "CAT", supplied, DECIMALS, PRICES, Decimal(15), Decimal(0), Decimal("0.8")
        ) == 1_000 * E18

    def test_proportional_split(self) -> None:
        # 500 USDC + 500 USD of DARC backing 400 debt at 0.8 LTV
        supplied = {"USDC": 500 * E6, "DARC": 12_500 * E18}
        args = (supplied, DECIMALS, PRICES, Decimal(1000), Decimal(400), Decimal("0.8"))

        # 500 USD free, split evenly: 250 USD each
        assert formulas.max_withdrawable("USDC", *args) == 250 * E6
        assert formulas.max_withdrawable("DARC", *args) == 6_250 * E18

    def test_never_exceeds_balance(self) -> None:
        supplied = {"USDC": 10 * E6}
        result = formulas.max_withdrawable(
            "USDC", supplied, DECIMALS, PRICES, Decimal(10_000), Decimal(1), Decimal("0.8")
        )
        assert result == 10 * E6

    def test_nothing_supplied(self) -> None:
        assert formulas.max_withdrawable(
            "CAT", {}, DECIMALS, PRICES, Decimal(0), Decimal(0), Decimal("0.8")
        ) == 0

    def test_missing_price(self) -> None:
        supplied = {"CAT": 1_000 * E18}
        assert formulas.max_withdrawable(
            "CAT", supplied, DECIMALS, {}, Decimal(100), Decimal(10), Decimal("0.8")
        ) == 0

    def test_fully_utilized(self) -> None:
        supplied = {"USDC": 100 * E6}
        assert formulas.max_withdrawable(
            "USDC", supplied, DECIMALS, PRICES, Decimal(100), Decimal(80), Decimal("0.8")
        ) == 0


class TestLiquidity:
    def test_pair_amount_keeps_ratio(self) -> None:
        # 1_000_000 CAT : 15_000 USDC
        assert formulas.pair_amount_for_deposit(1_000 * E18, 1_000_000 * E18, 15_000 * E6) == 15 * E6

    def test_pair_amount_empty_pool(self) -> None:
        with pytest.raises(NoLiquidity):
            formulas.pair_amount_for_deposit(1, 0, 10)

    def test_preview_remove(self) -> None:
        preview = formulas.preview_remove_liquidity(10 * E18, 100 * E18, 1_000 * E18, 50 * E6)
        assert preview.amount_token == 100 * E18
        assert preview.amount_stable == 5 * E6
        assert preview.share_of_pool_percent == Decimal(10)

    def test_preview_remove_clamps_shares(self) -> None:
        preview = formulas.preview_remove_liquidity(200, 100, 1_000, 50)
        assert preview.shares == 100
        assert preview.amount_token == 1_000

    def test_preview_remove_no_supply(self) -> None:
        with pytest.raises(NoLiquidity):
            formulas.preview_remove_liquidity(1, 0, 10, 10)
