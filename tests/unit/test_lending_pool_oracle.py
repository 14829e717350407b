"""Unit tests for the lending-pool price oracle."""
from __future__ import annotations

from decimal import Decimal

import pytest

from flow_on_arc.errors import ChainOrNetworkError
from flow_on_arc.oracles import LendingPoolOracle

from tests.conftest import FakeGateway


class TestLendingPoolOracle:
    @pytest.mark.asyncio
    async def test_fetch_all(self, pooled_gateway: FakeGateway) -> None:
        prices = await LendingPoolOracle(pooled_gateway).fetch_prices()

        assert prices["USDC"] == Decimal(1)
        assert prices["CAT"] == Decimal("0.015")
        assert prices["DARC"] == Decimal("0.04")
        # PANDA has no reserve: skipped, not zero
        assert "PANDA" not in prices

    @pytest.mark.asyncio
    async def test_stable_never_queried(self, gateway: FakeGateway) -> None:
        gateway.read_errors["get_reserve_data"] = ChainOrNetworkError("down")

        prices = await LendingPoolOracle(gateway).fetch_prices()

        assert prices == {"USDC": Decimal(1)}

    @pytest.mark.asyncio
    async def test_fetch_subset(self, pooled_gateway: FakeGateway) -> None:
        prices = await LendingPoolOracle(pooled_gateway).fetch_prices(["CAT"])
        assert prices == {"CAT": Decimal("0.015")}
