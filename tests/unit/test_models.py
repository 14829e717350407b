"""Unit tests for data models."""
from __future__ import annotations

import dataclasses

import pytest

from flow_on_arc.models import (
    FaucetStatus,
    FaucetTier,
    ProtocolStats,
    ReservePair,
    StepRole,
    Token,
    TokenRegistry,
)


class TestToken:
    def test_frozen(self, cat: Token) -> None:
        with pytest.raises(dataclasses.FrozenInstanceError):
            cat.decimals = 6  # type: ignore[misc]

    def test_same_address_ignores_case(self, cat: Token, registry: TokenRegistry) -> None:
        assert cat.same_address(cat.address.lower())
        assert not cat.same_address(registry.stable.address)


class TestTokenRegistry:
    def test_lookup_by_symbol_is_case_insensitive(self, registry: TokenRegistry) -> None:
        assert registry.by_symbol("cat").symbol == "CAT"

    def test_unknown_symbol(self, registry: TokenRegistry) -> None:
        with pytest.raises(KeyError, match="DOGE"):
            registry.by_symbol("DOGE")

    def test_lookup_by_address(self, registry: TokenRegistry) -> None:
        assert registry.by_address(registry.stable.address.upper()).symbol == "USDC"
        assert registry.by_address("0xdead") is None

    def test_decimals_of_unknown_defaults(self, registry: TokenRegistry) -> None:
        assert registry.decimals_of(registry.stable.address) == 6
        assert registry.decimals_of("0xdead") == 18

    def test_lendable_filters(self) -> None:
        registry = TokenRegistry(
            [Token("USDC", "0xa", 6), Token("LP", "0xb", 18, lendable=False)], "USDC"
        )
        assert [t.symbol for t in registry.lendable] == ["USDC"]
        assert len(registry) == 2


class TestReservePair:
    def test_reserve_lookup_both_sides(self) -> None:
        pair = ReservePair("0x01", "0xAA", "0xBB", 10, 20)
        assert pair.reserve_of("0xaa") == 10
        assert pair.other_reserve_of("0xaa") == 20
        assert pair.reserve_of("0xbb") == 20
        assert pair.other_reserve_of("0xbb") == 10

    def test_foreign_token(self) -> None:
        pair = ReservePair("0x01", "0xAA", "0xBB", 10, 20)
        with pytest.raises(KeyError):
            pair.reserve_of("0xcc")

    def test_has_liquidity(self) -> None:
        assert ReservePair("0x01", "0xAA", "0xBB", 1, 1).has_liquidity
        assert not ReservePair("0x01", "0xAA", "0xBB", 0, 5).has_liquidity


class TestStepRole:
    def test_approvals(self) -> None:
        assert StepRole.APPROVE.is_approval
        assert StepRole.APPROVE_A.is_approval
        assert StepRole.APPROVE_B.is_approval
        assert not StepRole.EXECUTE.is_approval

    def test_wire_values(self) -> None:
        assert StepRole("approveA") is StepRole.APPROVE_A


class TestFaucetStatus:
    def test_can_claim_after_cooldown(self) -> None:
        status = FaucetStatus(tier=0, next_claim_time=100, now=100)
        assert status.can_claim

    def test_cannot_claim_before_cooldown(self) -> None:
        status = FaucetStatus(tier=0, next_claim_time=200, now=100)
        assert not status.can_claim

    def test_current_tier(self) -> None:
        tiers = (FaucetTier(0, 10, 60), FaucetTier(100, 20, 60))
        assert FaucetStatus(tier=1, next_claim_time=0, tiers=tiers).current_tier == tiers[1]
        assert FaucetStatus(tier=5, next_claim_time=0, tiers=tiers).current_tier is None


class TestProtocolStats:
    def test_breakdown(self) -> None:
        stats = ProtocolStats(swaps=3, supplies=2, claims=1)
        assert stats.breakdown() == {
            "swaps": 3,
            "supplies": 2,
            "withdraws": 0,
            "borrows": 0,
            "repays": 0,
            "claims": 1,
        }
