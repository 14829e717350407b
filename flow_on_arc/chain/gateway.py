"""Contract gateway: typed reads and writes for token, AMM, lending and faucet.

No business logic lives here: callers decide amounts, the gateway encodes
calls, signs through the configured Signer and classifies failures.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

from web3 import AsyncWeb3, Web3

from ..config import ContractsConfig
from ..errors import ChainOrNetworkError, CallReverted
from ..interfaces.signer import Signer
from ..models import (
    AccountData,
    FaucetStatus,
    FaucetTier,
    ReserveData,
    ReservePair,
    Token,
    TokenRegistry,
)
from . import abis
from .client import ArcClient, PendingTransaction, checksum
from .routing import swap_path

logger = logging.getLogger(__name__)

FAUCET_TIER_COUNT = 4
GAS_BUFFER_MULTIPLIER = 1.25
GAS_BUFFER_FLAT = 10_000


class ArcGateway:
    """Single source of truth for contract addresses and all chain I/O."""

    def __init__(
        self,
        client: ArcClient,
        contracts: ContractsConfig,
        tokens: TokenRegistry,
        signer: Signer | None = None,
        swap_deadline_minutes: int = 20,
    ) -> None:
        self._client = client
        self._tokens = tokens
        self._signer = signer
        self._deadline_seconds = swap_deadline_minutes * 60
        self.router_address = checksum(contracts.swap_router)
        self.lending_pool_address = checksum(contracts.lending_pool)
        self.faucet_address = checksum(contracts.faucet)
        # One signing request outstanding at a time.
        self._signing_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Contract handles
    # ------------------------------------------------------------------

    @staticmethod
    def _erc20(w3: AsyncWeb3, address: str):
        return w3.eth.contract(address=checksum(address), abi=abis.ERC20_ABI)

    def _router(self, w3: AsyncWeb3):
        return w3.eth.contract(address=self.router_address, abi=abis.AMM_ROUTER_ABI)

    def _lending(self, w3: AsyncWeb3):
        return w3.eth.contract(address=self.lending_pool_address, abi=abis.LENDING_POOL_ABI)

    def _faucet(self, w3: AsyncWeb3):
        return w3.eth.contract(address=self.faucet_address, abi=abis.FAUCET_ABI)

    @property
    def stable(self) -> Token:
        return self._tokens.stable

    @property
    def tokens(self) -> TokenRegistry:
        return self._tokens

    @property
    def account_address(self) -> str | None:
        return self._signer.address if self._signer else None

    # ------------------------------------------------------------------
    # ERC-20 reads
    # ------------------------------------------------------------------

    async def balance_of(self, token: Token, owner: str) -> int:
        return int(
            await self._client.call(
                lambda w3: self._erc20(w3, token.address)
                .functions.balanceOf(checksum(owner))
                .call(),
                label=f"balanceOf {token.symbol}",
            )
        )

    async def decimals(self, token_address: str) -> int:
        return int(
            await self._client.call(
                lambda w3: self._erc20(w3, token_address).functions.decimals().call(),
                label="decimals",
            )
        )

    async def allowance(self, token: Token, owner: str, spender: str) -> int:
        return int(
            await self._client.call(
                lambda w3: self._erc20(w3, token.address)
                .functions.allowance(checksum(owner), checksum(spender))
                .call(),
                label=f"allowance {token.symbol}",
            )
        )

    # ------------------------------------------------------------------
    # AMM reads
    # ------------------------------------------------------------------

    def swap_path(self, token_in: Token, token_out: Token) -> list[str]:
        """Checksummed router path; identical for quote and execute."""
        return [checksum(a) for a in swap_path(token_in, token_out, self.stable)]

    async def get_amounts_out(self, amount_in: int, path: list[str]) -> list[int]:
        amounts = await self._client.call(
            lambda w3: self._router(w3).functions.getAmountsOut(int(amount_in), path).call(),
            label="getAmountsOut",
        )
        return [int(a) for a in amounts]

    async def quote(self, amount_in: int, token_in: Token, token_out: Token) -> list[int]:
        """Per-hop amounts for swapping ``amount_in`` along the execution path."""
        return await self.get_amounts_out(amount_in, self.swap_path(token_in, token_out))

    async def _pool_id(self, address_a: str, address_b: str) -> bytes:
        return await self._client.call(
            lambda w3: self._router(w3)
            .functions.getPoolId(checksum(address_a), checksum(address_b))
            .call(),
            label="getPoolId",
        )

    async def get_pool_reserves(self, address_a: str, address_b: str) -> ReservePair:
        pool_id = await self._pool_id(address_a, address_b)
        token0, token1, reserve0, reserve1 = await self._client.call(
            lambda w3: self._router(w3).functions.pools(pool_id).call(),
            label="pools",
        )
        return ReservePair(
            pool_id=Web3.to_hex(pool_id),
            token0=token0,
            token1=token1,
            reserve0=int(reserve0),
            reserve1=int(reserve1),
        )

    async def get_pool_total_supply(self, address_a: str, address_b: str) -> int:
        pool_id = await self._pool_id(address_a, address_b)
        return int(
            await self._client.call(
                lambda w3: self._router(w3).functions.totalLiquidity(pool_id).call(),
                label="totalLiquidity",
            )
        )

    async def get_user_liquidity(self, address_a: str, address_b: str, user: str) -> int:
        pool_id = await self._pool_id(address_a, address_b)
        return int(
            await self._client.call(
                lambda w3: self._router(w3)
                .functions.userLiquidity(pool_id, checksum(user))
                .call(),
                label="userLiquidity",
            )
        )

    # ------------------------------------------------------------------
    # Lending reads
    # ------------------------------------------------------------------

    async def get_account_data(self, user: str) -> AccountData:
        collateral, debt, available, health = await self._client.call(
            lambda w3: self._lending(w3).functions.getUserAccountData(checksum(user)).call(),
            label="getUserAccountData",
        )
        return AccountData(
            total_collateral_usd=int(collateral),
            total_debt_usd=int(debt),
            available_borrows_usd=int(available),
            health_factor=int(health),
        )

    async def get_user_collateral(self, user: str, token: Token) -> int:
        return int(
            await self._client.call(
                lambda w3: self._lending(w3)
                .functions.getUserCollateral(checksum(user), checksum(token.address))
                .call(),
                label=f"getUserCollateral {token.symbol}",
            )
        )

    async def get_user_debt(self, user: str, token: Token) -> int:
        return int(
            await self._client.call(
                lambda w3: self._lending(w3)
                .functions.getUserDebt(checksum(user), checksum(token.address))
                .call(),
                label=f"getUserDebt {token.symbol}",
            )
        )

    async def get_reserve_data(self, token: Token) -> ReserveData:
        available, supplied, borrowed, ltv, price = await self._client.call(
            lambda w3: self._lending(w3)
            .functions.getReserveData(checksum(token.address))
            .call(),
            label=f"getReserveData {token.symbol}",
        )
        return ReserveData(
            available_liquidity=int(available),
            total_supplied=int(supplied),
            total_borrowed=int(borrowed),
            ltv=int(ltv),
            price_usd=int(price),
        )

    # ------------------------------------------------------------------
    # Faucet reads
    # ------------------------------------------------------------------

    async def get_faucet_status(self, user: str) -> FaucetStatus:
        tier = await self._client.call(
            lambda w3: self._faucet(w3).functions.getUserTier(checksum(user)).call(),
            label="getUserTier",
        )
        next_claim = await self._client.call(
            lambda w3: self._faucet(w3).functions.nextClaimTime(checksum(user)).call(),
            label="nextClaimTime",
        )

        tiers: list[FaucetTier] = []
        for index in range(FAUCET_TIER_COUNT):
            try:
                threshold, reward, cooldown = await self._client.call(
                    lambda w3, i=index: self._faucet(w3).functions.tiers(i).call(),
                    label=f"tiers({index})",
                )
            except CallReverted:
                break
            tiers.append(
                FaucetTier(
                    usdc_threshold=int(threshold),
                    reward_amount=int(reward),
                    cooldown=int(cooldown),
                )
            )

        return FaucetStatus(
            tier=int(tier),
            next_claim_time=int(next_claim),
            tiers=tuple(tiers),
            now=int(time.time()),
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _require_signer(self) -> Signer:
        if self._signer is None:
            raise ChainOrNetworkError("No signer configured: set wallet.private_key")
        return self._signer

    async def _build_tx(self, w3: AsyncWeb3, fn: Any, sender: str) -> dict[str, Any]:
        nonce = await w3.eth.get_transaction_count(sender, "pending")
        tx = await fn.build_transaction(
            {"from": sender, "nonce": nonce, "chainId": self._client.chain_id}
        )
        tx["gas"] = int(int(tx["gas"]) * GAS_BUFFER_MULTIPLIER) + GAS_BUFFER_FLAT
        return tx

    async def _send(self, build_fn, description: str) -> PendingTransaction:
        """Build, sign and broadcast; returns once the node accepts the tx."""
        signer = self._require_signer()
        sender = checksum(signer.address)

        async with self._signing_lock:
            tx = await self._client.call(
                lambda w3: self._build_tx(w3, build_fn(w3), sender),
                label=f"build {description}",
            )
            raw = await signer.sign(tx, description)
            tx_hash = await self._client.call(
                lambda w3: w3.eth.send_raw_transaction(raw),
                label=f"send {description}",
            )

        pending = PendingTransaction(Web3.to_hex(tx_hash), description, self._client)
        logger.info("Submitted %s: %s", description, pending.tx_hash)
        return pending

    async def approve(self, token: Token, spender: str, amount: int) -> PendingTransaction:
        return await self._send(
            lambda w3: self._erc20(w3, token.address).functions.approve(
                checksum(spender), int(amount)
            ),
            f"approve {token.symbol}",
        )

    async def swap_exact_tokens(
        self,
        amount_in: int,
        amount_out_min: int,
        token_in: Token,
        token_out: Token,
        recipient: str | None = None,
    ) -> PendingTransaction:
        path = self.swap_path(token_in, token_out)
        to = checksum(recipient or self._require_signer().address)
        deadline = int(time.time()) + self._deadline_seconds
        return await self._send(
            lambda w3: self._router(w3).functions.swapExactTokensForTokens(
                int(amount_in), int(amount_out_min), path, to, deadline
            ),
            f"swap {token_in.symbol} -> {token_out.symbol}",
        )

    async def supply(self, token: Token, amount: int) -> PendingTransaction:
        return await self._send(
            lambda w3: self._lending(w3).functions.supplyCollateral(
                checksum(token.address), int(amount)
            ),
            f"supply {token.symbol}",
        )

    async def withdraw(self, token: Token, amount: int) -> PendingTransaction:
        return await self._send(
            lambda w3: self._lending(w3).functions.withdrawCollateral(
                checksum(token.address), int(amount)
            ),
            f"withdraw {token.symbol}",
        )

    async def borrow(self, token: Token, amount: int) -> PendingTransaction:
        return await self._send(
            lambda w3: self._lending(w3).functions.borrow(checksum(token.address), int(amount)),
            f"borrow {token.symbol}",
        )

    async def repay(self, token: Token, amount: int) -> PendingTransaction:
        return await self._send(
            lambda w3: self._lending(w3).functions.repay(checksum(token.address), int(amount)),
            f"repay {token.symbol}",
        )

    async def add_liquidity(
        self, token_a: Token, token_b: Token, amount_a: int, amount_b: int
    ) -> PendingTransaction:
        return await self._send(
            lambda w3: self._router(w3).functions.addLiquidity(
                checksum(token_a.address), checksum(token_b.address), int(amount_a), int(amount_b)
            ),
            f"add liquidity {token_a.symbol}/{token_b.symbol}",
        )

    async def remove_liquidity(
        self, token_a: Token, token_b: Token, shares: int
    ) -> PendingTransaction:
        return await self._send(
            lambda w3: self._router(w3).functions.removeLiquidity(
                checksum(token_a.address), checksum(token_b.address), int(shares)
            ),
            f"remove liquidity {token_a.symbol}/{token_b.symbol}",
        )

    async def claim(self) -> PendingTransaction:
        return await self._send(
            lambda w3: self._faucet(w3).functions.claim(),
            "faucet claim",
        )
