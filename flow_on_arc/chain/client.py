"""Arc RPC client with endpoint fallback and error classification."""
from __future__ import annotations

import asyncio
import logging
import ssl
from typing import Any, Awaitable, Callable, TypeVar

import aiohttp
import certifi
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import ContractLogicError, TimeExhausted

from ..config import ChainConfig
from ..errors import CallReverted, ChainOrNetworkError, NoLiquidity, TransactionReverted

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Failures that mean "this endpoint is unreachable", as opposed to a revert.
NETWORK_ERRORS: tuple[type[BaseException], ...] = (
    aiohttp.ClientError,
    asyncio.TimeoutError,
    ConnectionError,
    OSError,
)

_NO_LIQUIDITY_MARKERS = ("no liquidity", "insufficient liquidity", "pool does not exist")


def classify_revert(error: ContractLogicError) -> CallReverted:
    """Turn a web3 revert into CallReverted, or NoLiquidity for empty pools."""
    reason = getattr(error, "message", None) or str(error) or "execution reverted"
    if any(marker in reason.lower() for marker in _NO_LIQUIDITY_MARKERS):
        return NoLiquidity(reason)
    return CallReverted(reason)


class ArcClient:
    """AsyncWeb3 wrapper that rotates across RPC endpoints on network failures.

    Reverts are never retried: every endpoint would answer the same.
    """

    def __init__(self, config: ChainConfig) -> None:
        self.endpoints = list(config.rpc_endpoints)
        self.timeout = config.rpc_timeout
        self.chain_id = config.chain_id
        self.confirmation_timeout = config.confirmation_timeout
        self.current_rpc_index = 0
        self._web3: dict[int, AsyncWeb3] = {}

    def _make_web3(self, rpc_url: str) -> AsyncWeb3:
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        provider = AsyncHTTPProvider(
            rpc_url,
            request_kwargs={
                "timeout": aiohttp.ClientTimeout(total=self.timeout),
                "ssl": ssl_context,
            },
        )
        return AsyncWeb3(provider)

    def web3_for(self, index: int) -> AsyncWeb3:
        if index not in self._web3:
            self._web3[index] = self._make_web3(self.endpoints[index])
        return self._web3[index]

    async def call(self, op: Callable[[AsyncWeb3], Awaitable[T]], label: str = "") -> T:
        """Run ``op`` against the current endpoint, falling back on network errors."""
        if not self.endpoints:
            raise ChainOrNetworkError("No RPC endpoints configured")

        last_error: BaseException | None = None
        for attempt in range(len(self.endpoints)):
            rpc_index = (self.current_rpc_index + attempt) % len(self.endpoints)
            rpc_url = self.endpoints[rpc_index]

            try:
                result = await op(self.web3_for(rpc_index))
            except ContractLogicError as e:
                reverted = classify_revert(e)
                logger.debug("%s reverted: %s", label or "call", reverted.reason)
                raise reverted from e
            except NETWORK_ERRORS as e:
                last_error = e
                logger.warning("RPC endpoint %s failed: %s", rpc_url, e)
                if attempt < len(self.endpoints) - 1:
                    logger.info("Trying next endpoint...")
                continue

            if rpc_index != self.current_rpc_index:
                logger.info("Switched to RPC endpoint: %s", rpc_url)
                self.current_rpc_index = rpc_index
            return result

        raise ChainOrNetworkError(f"All RPC endpoints failed. Last error: {last_error}")

    async def wait_for_receipt(self, tx_hash: str) -> dict[str, Any]:
        """Block (cooperatively) until ``tx_hash`` is mined."""
        try:
            receipt = await self.call(
                lambda w3: w3.eth.wait_for_transaction_receipt(
                    tx_hash, timeout=self.confirmation_timeout
                ),
                label=f"receipt {tx_hash}",
            )
        except TimeExhausted as e:
            raise ChainOrNetworkError(
                f"Transaction {tx_hash} not confirmed within {self.confirmation_timeout}s"
            ) from e

        receipt = dict(receipt)
        if int(receipt.get("status", 0)) == 0:
            raise TransactionReverted(
                tx_hash,
                reason="status=0 (require failed, slippage exceeded or out of gas)",
                receipt=receipt,
            )
        return receipt


class PendingTransaction:
    """Handle returned as soon as the network accepts a transaction."""

    def __init__(self, tx_hash: str, description: str, client: ArcClient) -> None:
        self.tx_hash = tx_hash
        self.description = description
        self._client = client

    def __repr__(self) -> str:
        return f"PendingTransaction({self.tx_hash!r}, {self.description!r})"

    async def wait(self) -> dict[str, Any]:
        """Await confirmation; raises TransactionReverted on a failed receipt."""
        receipt = await self._client.wait_for_receipt(self.tx_hash)
        logger.info("Confirmed %s in block %s", self.tx_hash, receipt.get("blockNumber"))
        return receipt


def checksum(address: str) -> str:
    return Web3.to_checksum_address(address)
