"""Pure pricing functions for swaps, collateral and liquidity, no I/O."""
from __future__ import annotations

from decimal import Decimal

from ..amounts import from_decimal, to_decimal
from ..errors import NoLiquidity
from ..models import HopInfo, LiquidityPreview, ReservePair

HUNDRED = Decimal(100)

# Fallback when a hop's reserves cannot be read.
ESTIMATED_RESERVE_MULTIPLIER = 100
ESTIMATED_SWAP_SIZE_PERCENT = Decimal(1)


def rate(amount_in: int, decimals_in: int, amount_out: int, decimals_out: int) -> Decimal:
    """Output tokens per input token, in human units."""
    human_in = to_decimal(amount_in, decimals_in)
    if human_in == 0:
        return Decimal(0)
    return to_decimal(amount_out, decimals_out) / human_in


def impact_percent(spot_rate: Decimal, actual_rate: Decimal) -> Decimal:
    """``(spot - actual) / spot * 100``, floored at zero.

    A zero spot rate means the pool has nothing to price against.
    """
    if spot_rate <= 0:
        raise NoLiquidity("spot rate is zero")
    impact = (spot_rate - actual_rate) / spot_rate * HUNDRED
    return max(Decimal(0), impact)


def hop_from_reserves(
    pair: ReservePair,
    token_in: str,
    token_out: str,
    hop_amount_in: int,
    hop_amount_out: int,
    decimals_in: int,
    decimals_out: int,
) -> HopInfo:
    """Swap size, depth and constant-product impact for one hop."""
    reserve_in = pair.reserve_of(token_in)
    reserve_out = pair.other_reserve_of(token_in)

    reserve_in_human = to_decimal(reserve_in, decimals_in)
    reserve_out_human = to_decimal(reserve_out, decimals_out)
    swap_size = Decimal(hop_amount_in) / Decimal(reserve_in) * HUNDRED

    spot_price = Decimal(reserve_out) / Decimal(reserve_in)
    execution_price = Decimal(reserve_out - hop_amount_out) / Decimal(reserve_in + hop_amount_in)
    hop_impact = max(Decimal(0), (spot_price - execution_price) / spot_price * HUNDRED)

    return HopInfo(
        token_in=token_in,
        token_out=token_out,
        reserve_in=reserve_in_human,
        reserve_out=reserve_out_human,
        liquidity_depth=min(reserve_in_human, reserve_out_human),
        swap_size_percent=swap_size,
        hop_impact_percent=hop_impact,
    )


def estimated_hop(
    token_in: str,
    token_out: str,
    hop_amount_in: int,
    hop_amount_out: int,
    decimals_in: int,
    decimals_out: int,
) -> HopInfo:
    """Conservative guess: reserves are 100x the hop amounts, swap size 1%."""
    reserve_in = to_decimal(hop_amount_in * ESTIMATED_RESERVE_MULTIPLIER, decimals_in)
    reserve_out = to_decimal(hop_amount_out * ESTIMATED_RESERVE_MULTIPLIER, decimals_out)
    return HopInfo(
        token_in=token_in,
        token_out=token_out,
        reserve_in=reserve_in,
        reserve_out=reserve_out,
        liquidity_depth=min(reserve_in, reserve_out),
        swap_size_percent=ESTIMATED_SWAP_SIZE_PERCENT,
        hop_impact_percent=Decimal(0),
        estimated=True,
    )


# ---------------------------------------------------------------------------
# Collateral
# ---------------------------------------------------------------------------


def free_collateral_usd(collateral_usd: Decimal, debt_usd: Decimal, ltv: Decimal) -> Decimal:
    """Collateral not needed to back ``debt_usd`` at ``ltv``."""
    if debt_usd <= 0:
        return collateral_usd
    required = debt_usd / ltv
    return max(Decimal(0), collateral_usd - required)


def max_withdrawable(
    symbol: str,
    supplied: dict[str, int],
    decimals: dict[str, int],
    prices: dict[str, Decimal],
    collateral_usd: Decimal,
    debt_usd: Decimal,
    ltv: Decimal,
) -> int:
    """Withdrawable base units of ``symbol``.

    Free collateral is split across supplied assets in proportion to each
    asset's USD value. This is an approximation: the pool only tracks
    aggregate USD values, so the contract may still reject the amount.
    """
    balance = int(supplied.get(symbol, 0))
    if balance <= 0:
        return 0
    if debt_usd <= 0:
        return balance

    free_usd = free_collateral_usd(collateral_usd, debt_usd, ltv)
    if free_usd <= 0:
        return 0

    price = prices.get(symbol, Decimal(0))
    if price <= 0:
        return 0

    asset_values = {
        sym: to_decimal(amount, decimals.get(sym, 18)) * prices.get(sym, Decimal(0))
        for sym, amount in supplied.items()
        if amount > 0
    }
    total_value = sum(asset_values.values(), Decimal(0))
    if total_value <= 0:
        total_value = collateral_usd
    if total_value <= 0:
        return 0

    share = asset_values.get(symbol, Decimal(0)) / total_value
    withdrawable = from_decimal(free_usd * share / price, decimals.get(symbol, 18))
    return min(withdrawable, balance)


# ---------------------------------------------------------------------------
# Liquidity
# ---------------------------------------------------------------------------


def pair_amount_for_deposit(amount: int, reserve_same: int, reserve_other: int) -> int:
    """Counterpart deposit keeping the pool ratio (base units in, base units out)."""
    if reserve_same <= 0 or reserve_other <= 0:
        raise NoLiquidity("pool has no reserves to derive a ratio from")
    return int(amount) * reserve_other // reserve_same


def preview_remove_liquidity(
    shares: int, total_supply: int, reserve_token: int, reserve_stable: int
) -> LiquidityPreview:
    """Amounts returned for burning ``shares`` of a pool with ``total_supply``."""
    if total_supply <= 0:
        raise NoLiquidity("pool has no outstanding shares")
    shares = min(int(shares), total_supply)
    return LiquidityPreview(
        shares=shares,
        amount_token=reserve_token * shares // total_supply,
        amount_stable=reserve_stable * shares // total_supply,
        share_of_pool_percent=Decimal(shares) / Decimal(total_supply) * HUNDRED,
    )
