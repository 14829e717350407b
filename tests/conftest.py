"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from decimal import Decimal
from pathlib import Path

import pytest

from flow_on_arc.chain.routing import swap_path
from flow_on_arc.config import (
    AppConfig,
    ChainConfig,
    ContractsConfig,
    FlowConfig,
    IndexerConfig,
    MarketConfig,
    NotificationsConfig,
    PricingConfig,
    TelegramConfig,
    TokenConfig,
    WalletConfig,
)
from flow_on_arc.errors import NoLiquidity
from flow_on_arc.models import (
    AccountData,
    FaucetStatus,
    FaucetTier,
    ReserveData,
    ReservePair,
    Token,
    TokenRegistry,
)

USDC_ADDR = "0x3600000000000000000000000000000000000000"
CAT_ADDR = "0xc3328be246C5DB1a2EBA7d0533e275a0a7249834"
DARC_ADDR = "0x8959ed0D7220e1bAa445106F48829Df0bF1e5F83"
PANDA_ADDR = "0x48Ff1CCb0f75e5A8C732b6c10ffc8f5dF6ef5311"
ROUTER_ADDR = "0x49f9636FE15883e16d5E356A4eA08C9Fe6BC219B"
LENDING_ADDR = "0x626556a164918231bc9F73Dac17a5BC07d3865Cf"
FAUCET_ADDR = "0xEd2520116C9e6F2517daa20Eb7FFF4EeA5bE6847"
OWNER_ADDR = "0x1111111111111111111111111111111111111111"

E18 = 10**18
E6 = 10**6


# ---------------------------------------------------------------------------
# Token fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def registry() -> TokenRegistry:
    return TokenRegistry(
        [
            Token("USDC", USDC_ADDR, 6),
            Token("CAT", CAT_ADDR, 18),
            Token("DARC", DARC_ADDR, 18),
            Token("PANDA", PANDA_ADDR, 18),
        ],
        "USDC",
    )


@pytest.fixture()
def usdc(registry: TokenRegistry) -> Token:
    return registry.by_symbol("USDC")


@pytest.fixture()
def cat(registry: TokenRegistry) -> Token:
    return registry.by_symbol("CAT")


@pytest.fixture()
def darc(registry: TokenRegistry) -> Token:
    return registry.by_symbol("DARC")


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_chain_config() -> ChainConfig:
    return ChainConfig(
        rpc_endpoints=("https://rpc1.example.com", "https://rpc2.example.com"),
        rpc_timeout=10,
        confirmation_timeout=30,
    )


@pytest.fixture()
def sample_app_config(sample_chain_config: ChainConfig) -> AppConfig:
    return AppConfig(
        chain=sample_chain_config,
        contracts=ContractsConfig(
            swap_router=ROUTER_ADDR, lending_pool=LENDING_ADDR, faucet=FAUCET_ADDR
        ),
        tokens={
            "USDC": TokenConfig(address=USDC_ADDR, decimals=6),
            "CAT": TokenConfig(address=CAT_ADDR, decimals=18),
            "DARC": TokenConfig(address=DARC_ADDR, decimals=18),
            "PANDA": TokenConfig(address=PANDA_ADDR, decimals=18),
        },
        market=MarketConfig(stable_symbol="USDC", amm_pairs=("CAT", "DARC", "PANDA")),
        pricing=PricingConfig(),
        flow=FlowConfig(settle_delay_seconds=0),
        indexer=IndexerConfig(base_url="https://indexer.example.com", timeout=5),
        wallet=WalletConfig(address=OWNER_ADDR),
        notifications=NotificationsConfig(
            telegram=TelegramConfig(enabled=False, bot_token="tok", chat_id="999")
        ),
    )


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent(f"""\
    chain:
      rpc_endpoints: ["https://rpc.example.com"]
      rpc_timeout: 10
    contracts:
      swap_router: "{ROUTER_ADDR}"
      lending_pool: "{LENDING_ADDR}"
      faucet: "{FAUCET_ADDR}"
    tokens:
      usdc: {{address: "{USDC_ADDR}", decimals: 6}}
      CAT: {{address: "{CAT_ADDR}", decimals: 18}}
      DARC: {{address: "{DARC_ADDR}"}}
    market:
      stable_symbol: USDC
      amm_pairs: [cat, DARC]
    pricing:
      ltv: 0.75
      min_value_usd: 5
    flow:
      settle_delay_seconds: 0
    indexer:
      base_url: "https://indexer.example.com/"
    wallet:
      address: "{OWNER_ADDR}"
    notifications:
      telegram:
        enabled: true
        bot_token: "tok"
        chat_id: 999
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file


# ---------------------------------------------------------------------------
# In-memory gateway
# ---------------------------------------------------------------------------


class FakePending:
    def __init__(self, tx_hash: str, description: str, error: Exception | None = None) -> None:
        self.tx_hash = tx_hash
        self.description = description
        self._error = error
        self.waited = False

    async def wait(self) -> dict:
        self.waited = True
        if self._error is not None:
            raise self._error
        return {"status": 1, "blockNumber": 100, "transactionHash": self.tx_hash}


class FakeGateway:
    """Constant-product AMM and lending state held in dicts.

    ``calls`` records every write as ``(method, *args)``. ``fail_on`` makes
    a write raise before a hash exists; ``revert_on`` makes its receipt fail.
    """

    router_address = ROUTER_ADDR
    lending_pool_address = LENDING_ADDR

    def __init__(self, registry: TokenRegistry, owner: str | None = OWNER_ADDR) -> None:
        self._tokens = registry
        self._owner = owner
        self.allowances: dict[tuple[str, str], int] = {}
        self.balances: dict[str, int] = {}
        self.onchain_decimals: dict[str, int] = {}
        self.pools: dict[frozenset, ReservePair] = {}
        self.total_supply: dict[frozenset, int] = {}
        self.user_liquidity: dict[frozenset, int] = {}
        self.reserve_data: dict[str, ReserveData] = {}
        self.collateral: dict[str, int] = {}
        self.debt: dict[str, int] = {}
        self.account = AccountData()
        self.unreadable_pools: set[frozenset] = set()
        self.read_errors: dict[str, Exception] = {}
        self.fail_on: dict[str, Exception] = {}
        self.revert_on: dict[str, Exception] = {}
        self.calls: list[tuple] = []
        self.amounts_out_calls: list[tuple[int, list[str]]] = []

    # -- setup helpers -------------------------------------------------

    def add_pool(self, token: Token, stable: Token, reserve_token: int, reserve_stable: int,
                 total_supply: int = 0) -> None:
        key = frozenset((token.address.lower(), stable.address.lower()))
        self.pools[key] = ReservePair(
            pool_id="0x" + "ab" * 32,
            token0=stable.address,
            token1=token.address,
            reserve0=reserve_stable,
            reserve1=reserve_token,
        )
        self.total_supply[key] = total_supply

    def set_price(self, token: Token, price_usd: Decimal, total_supplied: int = 0) -> None:
        self.reserve_data[token.symbol] = ReserveData(
            available_liquidity=total_supplied,
            total_supplied=total_supplied,
            total_borrowed=0,
            ltv=80,
            price_usd=int(price_usd * E18),
        )

    @staticmethod
    def _key(a: str, b: str) -> frozenset:
        return frozenset((a.lower(), b.lower()))

    def _maybe_fail(self, name: str) -> None:
        if name in self.read_errors:
            raise self.read_errors[name]

    # -- protocol surface ----------------------------------------------

    @property
    def tokens(self) -> TokenRegistry:
        return self._tokens

    @property
    def stable(self) -> Token:
        return self._tokens.stable

    @property
    def account_address(self) -> str | None:
        return self._owner

    def swap_path(self, token_in: Token, token_out: Token) -> list[str]:
        return swap_path(token_in, token_out, self.stable)

    async def balance_of(self, token: Token, owner: str) -> int:
        self._maybe_fail("balance_of")
        return self.balances.get(token.symbol, 0)

    async def decimals(self, token_address: str) -> int:
        if token_address in self.onchain_decimals:
            return self.onchain_decimals[token_address]
        return self._tokens.decimals_of(token_address)

    async def allowance(self, token: Token, owner: str, spender: str) -> int:
        return self.allowances.get((token.symbol, spender), 0)

    async def get_amounts_out(self, amount_in: int, path: list[str]) -> list[int]:
        self.amounts_out_calls.append((amount_in, list(path)))
        amounts = [amount_in]
        for hop_in, hop_out in zip(path, path[1:]):
            pair = self.pools.get(self._key(hop_in, hop_out))
            if pair is None or not pair.has_liquidity:
                raise NoLiquidity("execution reverted: No liquidity")
            r_in = pair.reserve_of(hop_in)
            r_out = pair.other_reserve_of(hop_in)
            amounts.append(r_out * amounts[-1] // (r_in + amounts[-1]))
        return amounts

    async def get_pool_reserves(self, address_a: str, address_b: str) -> ReservePair:
        key = self._key(address_a, address_b)
        self._maybe_fail("get_pool_reserves")
        if key in self.unreadable_pools:
            from flow_on_arc.errors import ChainOrNetworkError

            raise ChainOrNetworkError("timeout")
        pair = self.pools.get(key)
        if pair is None:
            return ReservePair("0x" + "00" * 32, address_a, address_b, 0, 0)
        return pair

    async def get_pool_total_supply(self, address_a: str, address_b: str) -> int:
        return self.total_supply.get(self._key(address_a, address_b), 0)

    async def get_user_liquidity(self, address_a: str, address_b: str, user: str) -> int:
        return self.user_liquidity.get(self._key(address_a, address_b), 0)

    async def get_account_data(self, user: str) -> AccountData:
        self._maybe_fail("get_account_data")
        return self.account

    async def get_user_collateral(self, user: str, token: Token) -> int:
        return self.collateral.get(token.symbol, 0)

    async def get_user_debt(self, user: str, token: Token) -> int:
        return self.debt.get(token.symbol, 0)

    async def get_reserve_data(self, token: Token) -> ReserveData:
        self._maybe_fail("get_reserve_data")
        if token.symbol not in self.reserve_data:
            from flow_on_arc.errors import CallReverted

            raise CallReverted("unknown reserve")
        return self.reserve_data[token.symbol]

    async def get_faucet_status(self, user: str) -> FaucetStatus:
        return FaucetStatus(
            tier=1,
            next_claim_time=1_000,
            tiers=(FaucetTier(0, 100 * E6, 86400), FaucetTier(100 * E6, 200 * E6, 86400)),
            now=2_000,
        )

    async def _write(self, name: str, *args) -> FakePending:
        self.calls.append((name, *args))
        if name in self.fail_on:
            raise self.fail_on[name]
        tx_hash = "0x" + f"{len(self.calls):064x}"
        return FakePending(tx_hash, name, self.revert_on.get(name))

    async def approve(self, token: Token, spender: str, amount: int) -> FakePending:
        return await self._write("approve", token.symbol, spender, amount)

    async def swap_exact_tokens(self, amount_in, amount_out_min, token_in, token_out, recipient=None):
        return await self._write(
            "swap", amount_in, amount_out_min, self.swap_path(token_in, token_out)
        )

    async def supply(self, token: Token, amount: int) -> FakePending:
        return await self._write("supply", token.symbol, amount)

    async def withdraw(self, token: Token, amount: int) -> FakePending:
        return await self._write("withdraw", token.symbol, amount)

    async def borrow(self, token: Token, amount: int) -> FakePending:
        return await self._write("borrow", token.symbol, amount)

    async def repay(self, token: Token, amount: int) -> FakePending:
        return await self._write("repay", token.symbol, amount)

    async def add_liquidity(self, token_a, token_b, amount_a, amount_b) -> FakePending:
        return await self._write("add_liquidity", token_a.symbol, token_b.symbol, amount_a, amount_b)

    async def remove_liquidity(self, token_a, token_b, shares) -> FakePending:
        return await self._write("remove_liquidity", token_a.symbol, token_b.symbol, shares)

    async def claim(self) -> FakePending:
        return await self._write("claim")


@pytest.fixture()
def gateway(registry: TokenRegistry) -> FakeGateway:
    return FakeGateway(registry)


@pytest.fixture()
def pooled_gateway(gateway: FakeGateway, registry: TokenRegistry) -> FakeGateway:
    """CAT and DARC pools against USDC plus lending prices."""
    usdc = registry.by_symbol("USDC")
    # 1 CAT = 0.015 USDC, 1 DARC = 0.04 USDC
    gateway.add_pool(registry.by_symbol("CAT"), usdc, 1_000_000 * E18, 15_000 * E6, 100_000 * E18)
    gateway.add_pool(registry.by_symbol("DARC"), usdc, 500_000 * E18, 20_000 * E6, 50_000 * E18)
    gateway.set_price(registry.by_symbol("CAT"), Decimal("0.015"), 200_000 * E18)
    gateway.set_price(registry.by_symbol("DARC"), Decimal("0.04"), 100_000 * E18)
    gateway.set_price(usdc, Decimal(1), 10_000 * E6)
    return gateway
