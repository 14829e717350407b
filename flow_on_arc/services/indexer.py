"""Read-only client for the Flow On Arc indexer HTTP API."""
from __future__ import annotations

import asyncio
import logging
import ssl
from typing import Any

import aiohttp
import certifi

from ..config import IndexerConfig
from ..errors import ChainOrNetworkError
from ..models import IndexerHealth, ProtocolStats, TransactionRecord

logger = logging.getLogger(__name__)


def parse_stats(data: dict[str, Any]) -> ProtocolStats:
    return ProtocolStats(
        total_transactions=int(data.get("totalTransactions") or 0),
        total_volume=float(data.get("totalVolume") or 0),
        swaps=int(data.get("swaps") or 0),
        supplies=int(data.get("supplies") or 0),
        withdraws=int(data.get("withdraws") or 0),
        borrows=int(data.get("borrows") or 0),
        repays=int(data.get("repays") or 0),
        claims=int(data.get("claims") or 0),
        last_updated=data.get("lastUpdated"),
    )


def _first(item: dict[str, Any], *keys: str, default: Any = "") -> Any:
    for key in keys:
        if item.get(key) not in (None, ""):
            return item[key]
    return default


def parse_transaction(item: dict[str, Any]) -> TransactionRecord:
    """Accepts both camelCase and snake_case rows."""
    return TransactionRecord(
        tx_hash=str(_first(item, "txHash", "tx_hash", "hash")),
        tx_type=str(_first(item, "type", "txType", "tx_type")),
        wallet=str(_first(item, "wallet", "user", "from", "walletAddress", "wallet_address")),
        amount=str(_first(item, "amount", "value")),
        token=str(_first(item, "token", "tokenSymbol", "token_symbol")),
        timestamp=str(_first(item, "timestamp", "createdAt", "created_at")),
        block_number=int(_first(item, "blockNumber", "block_number", default=0) or 0),
    )


class IndexerClient:
    """Fetch aggregate stats and transaction history from the indexer."""

    def __init__(self, config: IndexerConfig) -> None:
        self.base_url = config.base_url.rstrip("/")
        self.timeout = config.timeout

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)
        timeout = aiohttp.ClientTimeout(total=self.timeout)

        try:
            async with aiohttp.ClientSession(connector=connector, timeout=timeout) as session:
                async with session.get(
                    url, params=params, headers={"Content-Type": "application/json"}
                ) as response:
                    if response.status != 200:
                        raise ChainOrNetworkError(
                            f"Indexer responded with status: {response.status}"
                        )
                    return await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ChainOrNetworkError(f"Indexer request to {path} failed: {e}") from e

    async def fetch_stats(self) -> ProtocolStats:
        data = await self._get("/api/stats")
        return parse_stats(data)

    async def fetch_breakdown(self) -> list[dict[str, Any]]:
        data = await self._get("/api/stats/breakdown")
        return list(data.get("breakdown") or [])

    async def fetch_transactions(
        self, limit: int = 50, offset: int = 0, tx_type: str | None = None
    ) -> tuple[list[TransactionRecord], int]:
        """One page of transactions and the total count across all pages."""
        params: dict[str, Any] = {"limit": limit, "offset": offset}
        if tx_type:
            params["type"] = tx_type
        data = await self._get("/api/transactions", params)
        rows = [parse_transaction(item) for item in data.get("transactions") or []]
        return rows, int(data.get("total") or 0)

    async def fetch_wallet_transactions(
        self, wallet_address: str, limit: int = 20
    ) -> list[TransactionRecord]:
        data = await self._get(f"/api/transactions/wallet/{wallet_address}", {"limit": limit})
        return [parse_transaction(item) for item in data.get("transactions") or []]

    async def check_health(self) -> IndexerHealth:
        """Never raises: an unreachable indexer is reported as unhealthy."""
        try:
            data = await self._get("/api/health")
        except ChainOrNetworkError as e:
            logger.warning("Indexer health check failed: %s", e)
            return IndexerHealth(healthy=False, error=str(e))

        return IndexerHealth(
            healthy=data.get("status") == "healthy",
            database=data.get("database"),
            indexer=data.get("indexer"),
        )
