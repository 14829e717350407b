"""Data models, frozen unless they are tracked state."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum


@dataclass(frozen=True)
class Token:
    """A token defined in static configuration."""

    symbol: str
    address: str
    decimals: int
    icon: str = ""
    lendable: bool = True

    def same_address(self, address: str) -> bool:
        return self.address.lower() == address.lower()


class TokenRegistry:
    """Lookup of configured tokens by symbol or address."""

    def __init__(self, tokens: list[Token] | tuple[Token, ...], stable_symbol: str) -> None:
        self._by_symbol = {t.symbol: t for t in tokens}
        self._by_address = {t.address.lower(): t for t in tokens}
        self.stable = self._by_symbol[stable_symbol]

    def __iter__(self):
        return iter(self._by_symbol.values())

    def __len__(self) -> int:
        return len(self._by_symbol)

    def by_symbol(self, symbol: str) -> Token:
        try:
            return self._by_symbol[symbol.upper()]
        except KeyError:
            raise KeyError(f"Unknown token symbol '{symbol}'") from None

    def by_address(self, address: str) -> Token | None:
        return self._by_address.get(address.lower())

    def decimals_of(self, address: str, default: int = 18) -> int:
        token = self.by_address(address)
        return token.decimals if token else default

    @property
    def lendable(self) -> tuple[Token, ...]:
        return tuple(t for t in self._by_symbol.values() if t.lendable)


@dataclass(frozen=True)
class ReservePair:
    """AMM pool state as read from ``pools(poolId)``."""

    pool_id: str
    token0: str
    token1: str
    reserve0: int
    reserve1: int

    @property
    def has_liquidity(self) -> bool:
        return self.reserve0 > 0 and self.reserve1 > 0

    def reserve_of(self, address: str) -> int:
        if address.lower() == self.token0.lower():
            return self.reserve0
        if address.lower() == self.token1.lower():
            return self.reserve1
        raise KeyError(f"{address} is not in pool {self.pool_id}")

    def other_reserve_of(self, address: str) -> int:
        if address.lower() == self.token0.lower():
            return self.reserve1
        if address.lower() == self.token1.lower():
            return self.reserve0
        raise KeyError(f"{address} is not in pool {self.pool_id}")


@dataclass(frozen=True)
class ReserveData:
    """Lending market state from ``getReserveData(token)``."""

    available_liquidity: int
    total_supplied: int
    total_borrowed: int
    ltv: int
    price_usd: int  # 18 decimals


@dataclass(frozen=True)
class AccountData:
    """Aggregates from ``getUserAccountData``, all 18-decimal USD fixed point."""

    total_collateral_usd: int = 0
    total_debt_usd: int = 0
    available_borrows_usd: int = 0
    health_factor: int = 0


@dataclass(frozen=True)
class AccountPosition:
    """Per-user lending position across all markets."""

    supplied: dict[str, int] = field(default_factory=dict)
    borrowed: dict[str, int] = field(default_factory=dict)
    account: AccountData = field(default_factory=AccountData)

    @property
    def total_collateral_usd(self) -> int:
        return self.account.total_collateral_usd

    @property
    def total_debt_usd(self) -> int:
        return self.account.total_debt_usd


@dataclass(frozen=True)
class WalletBalances:
    """Token balances plus LP shares keyed by pair symbol (e.g. ``LP_USDC_CAT``)."""

    tokens: dict[str, int] = field(default_factory=dict)
    lp_shares: dict[str, int] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Transaction flow
# ---------------------------------------------------------------------------


class OperationType(str, Enum):
    SWAP = "swap"
    SUPPLY = "supply"
    WITHDRAW = "withdraw"
    BORROW = "borrow"
    REPAY = "repay"
    FAUCET = "faucet"
    ADD_LIQUIDITY = "add_liquidity"
    REMOVE_LIQUIDITY = "remove_liquidity"


class StepRole(str, Enum):
    APPROVE = "approve"
    APPROVE_A = "approveA"
    APPROVE_B = "approveB"
    EXECUTE = "execute"

    @property
    def is_approval(self) -> bool:
        return self is not StepRole.EXECUTE


class StepStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass
class TransactionStep:
    """One step of a running flow. Mutated only by the orchestrator."""

    role: StepRole
    label: str
    status: StepStatus = StepStatus.PENDING
    tx_hash: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class StepUpdate:
    """Snapshot emitted each time a step changes status."""

    flow_id: str
    index: int
    role: StepRole
    status: StepStatus
    tx_hash: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class FlowResult:
    """Terminal outcome of a flow."""

    flow_id: str
    operation: OperationType
    success: bool
    tx_hashes: tuple[str, ...] = ()
    amount_in: str = ""
    amount_out: str = ""
    error: str | None = None
    failed_role: StepRole | None = None


# ---------------------------------------------------------------------------
# Pricing
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HopInfo:
    token_in: str
    token_out: str
    reserve_in: Decimal
    reserve_out: Decimal
    liquidity_depth: Decimal
    swap_size_percent: Decimal
    hop_impact_percent: Decimal
    estimated: bool = False


@dataclass(frozen=True)
class PriceImpactResult:
    impact_percent: Decimal | None
    swap_size_percent: Decimal = Decimal(0)
    liquidity_depth: Decimal = Decimal(0)
    path_length: int = 0
    hops: tuple[HopInfo, ...] = ()
    estimated: bool = False
    error: str | None = None


@dataclass(frozen=True)
class LiquidityPreview:
    """Token amounts returned for burning ``shares`` LP shares."""

    shares: int
    amount_token: int
    amount_stable: int
    share_of_pool_percent: Decimal


# ---------------------------------------------------------------------------
# Faucet
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FaucetTier:
    usdc_threshold: int
    reward_amount: int
    cooldown: int  # seconds


@dataclass(frozen=True)
class FaucetStatus:
    tier: int
    next_claim_time: int
    tiers: tuple[FaucetTier, ...] = ()
    now: int = 0

    @property
    def can_claim(self) -> bool:
        return self.tier >= 0 and self.now >= self.next_claim_time

    @property
    def current_tier(self) -> FaucetTier | None:
        if 0 <= self.tier < len(self.tiers):
            return self.tiers[self.tier]
        return None


# ---------------------------------------------------------------------------
# Stats & history
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProtocolStats:
    """Aggregate counters as reported by the indexer."""

    total_transactions: int = 0
    total_volume: float = 0.0
    swaps: int = 0
    supplies: int = 0
    withdraws: int = 0
    borrows: int = 0
    repays: int = 0
    claims: int = 0
    last_updated: str | None = None

    def breakdown(self) -> dict[str, int]:
        return {
            "swaps": self.swaps,
            "supplies": self.supplies,
            "withdraws": self.withdraws,
            "borrows": self.borrows,
            "repays": self.repays,
            "claims": self.claims,
        }


@dataclass(frozen=True)
class StatsSnapshot:
    """What the dashboard renders. ``sources`` tags each metric."""

    tvl: float
    volume: float
    transactions: int
    breakdown: dict[str, int] | None
    source: str
    sources: dict[str, str]
    updated_at: datetime


@dataclass(frozen=True)
class TransactionRecord:
    tx_hash: str
    tx_type: str
    wallet: str
    amount: str = ""
    token: str = ""
    timestamp: str = ""
    block_number: int = 0


@dataclass(frozen=True)
class HistoryPage:
    transactions: tuple[TransactionRecord, ...]
    total: int
    limit: int
    offset: int
    source: str = "backend"


@dataclass(frozen=True)
class IndexerHealth:
    healthy: bool
    database: str | None = None
    indexer: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class PortfolioSnapshot:
    """Wallet balances, lending position and prices as of ``updated_at``."""

    balances: WalletBalances = field(default_factory=WalletBalances)
    position: AccountPosition = field(default_factory=AccountPosition)
    prices: dict[str, Decimal] = field(default_factory=dict)
    updated_at: datetime | None = None
