"""Protocol stats and transaction history with last-good fallback."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Awaitable, Callable, TypeVar

from ..amounts import USD_DECIMALS, normalize
from ..errors import FlowOnArcError
from ..interfaces.gateway import ContractGateway
from ..models import HistoryPage, StatsSnapshot
from .indexer import IndexerClient

logger = logging.getLogger(__name__)

T = TypeVar("T")

SOURCE_BACKEND = "backend"
SOURCE_ONCHAIN = "onchain"
SOURCE_CACHED = "cached"

_ONE_USD = 10**USD_DECIMALS


@dataclass(frozen=True)
class HistoryFilter:
    limit: int = 50
    offset: int = 0
    tx_type: str | None = None
    wallet: str | None = None

    @property
    def key(self) -> tuple[Any, ...]:
        return (self.limit, self.offset, self.tx_type, (self.wallet or "").lower())


@dataclass
class StatsCache:
    """Last good value per metric, with the time it was stored."""

    tvl: float | None = None
    volume: float | None = None
    transactions: int | None = None
    breakdown: dict[str, int] | None = None
    updated_at: dict[str, datetime] = field(default_factory=dict)
    history: dict[tuple[Any, ...], HistoryPage] = field(default_factory=dict)

    def store(self, metric: str, value: Any) -> None:
        setattr(self, metric, value)
        self.updated_at[metric] = datetime.now(timezone.utc)


class StatsAggregator:
    """Merge on-chain TVL with indexer counters; fall back to the cache."""

    def __init__(
        self,
        gateway: ContractGateway,
        indexer: IndexerClient,
        amm_pairs: tuple[str, ...] = (),
        cache: StatsCache | None = None,
        retries: int = 3,
        retry_delay: float = 1.0,
    ) -> None:
        if retries < 1:
            raise ValueError(f"retries must be at least 1, got {retries}")
        self._gateway = gateway
        self._indexer = indexer
        self._amm_pairs = amm_pairs
        self.cache = cache or StatsCache()
        self._retries = retries
        self._retry_delay = retry_delay

    async def _with_retry(self, fn: Callable[[], Awaitable[T]]) -> T:
        """Up to ``retries`` attempts, sleeping ``delay * attempt`` in between."""
        for attempt in range(1, self._retries + 1):
            try:
                return await fn()
            except FlowOnArcError:
                if attempt == self._retries:
                    raise
                await asyncio.sleep(self._retry_delay * attempt)
        raise RuntimeError("unreachable")

    # ------------------------------------------------------------------
    # TVL
    # ------------------------------------------------------------------

    async def _lending_tvl(self) -> int:
        total = 0
        for token in self._gateway.tokens.lendable:
            try:
                reserve = await self._with_retry(lambda t=token: self._gateway.get_reserve_data(t))
            except FlowOnArcError as e:
                logger.error("Error fetching reserve data for %s: %s", token.symbol, e)
                continue
            supplied = normalize(reserve.total_supplied, token.decimals)
            total += supplied * reserve.price_usd // _ONE_USD
        return total

    async def _amm_tvl(self) -> int:
        registry = self._gateway.tokens
        stable = self._gateway.stable
        total = 0
        for symbol in self._amm_pairs:
            token = registry.by_symbol(symbol)
            try:
                pair = await self._with_retry(
                    lambda t=token: self._gateway.get_pool_reserves(t.address, stable.address)
                )
                if pair.reserve0 == 0 and pair.reserve1 == 0:
                    continue
                reserve = await self._with_retry(lambda t=token: self._gateway.get_reserve_data(t))
            except FlowOnArcError as e:
                logger.error("Error fetching AMM pool data for %s/%s: %s", symbol, stable.symbol, e)
                continue

            token_side = normalize(pair.reserve_of(token.address), token.decimals)
            stable_side = normalize(pair.other_reserve_of(token.address), stable.decimals)
            total += token_side * reserve.price_usd // _ONE_USD + stable_side
        return total

    async def compute_tvl(self) -> float:
        """Lending plus AMM value locked, in USD, from live chain reads."""
        total = await self._lending_tvl() + await self._amm_tvl()
        return float(Decimal(total).scaleb(-USD_DECIMALS))

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    def _guard(self, metric: str, fresh: Any, fresh_source: str) -> tuple[Any, str]:
        """Keep the cached value when the fresh one is missing, or zero after a positive."""
        cached = getattr(self.cache, metric)
        if fresh is None:
            return (cached or 0), SOURCE_CACHED
        if not fresh and cached:
            logger.warning("Fresh %s is 0, keeping cached value %s", metric, cached)
            return cached, SOURCE_CACHED
        self.cache.store(metric, fresh)
        return fresh, fresh_source

    async def refresh_stats(self) -> StatsSnapshot:
        try:
            stats = await self._indexer.fetch_stats()
        except FlowOnArcError as e:
            logger.warning("Indexer stats fetch failed, using cached values: %s", e)
            stats = None

        try:
            tvl = await self.compute_tvl()
        except FlowOnArcError as e:
            logger.error("On-chain TVL fetch failed: %s", e)
            tvl = None

        sources: dict[str, str] = {}
        tvl, sources["tvl"] = self._guard("tvl", tvl, SOURCE_ONCHAIN)
        volume, sources["volume"] = self._guard(
            "volume", stats.total_volume if stats else None, SOURCE_BACKEND
        )
        transactions, sources["transactions"] = self._guard(
            "transactions", stats.total_transactions if stats else None, SOURCE_BACKEND
        )

        if stats is not None:
            breakdown = stats.breakdown()
            self.cache.store("breakdown", breakdown)
        else:
            breakdown = self.cache.breakdown

        return StatsSnapshot(
            tvl=tvl,
            volume=volume,
            transactions=transactions,
            breakdown=breakdown,
            source=SOURCE_BACKEND if stats is not None else SOURCE_CACHED,
            sources=sources,
            updated_at=datetime.now(timezone.utc),
        )

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    async def refresh_history(self, history_filter: HistoryFilter | None = None) -> HistoryPage:
        flt = history_filter or HistoryFilter()
        try:
            if flt.wallet:
                rows = await self._indexer.fetch_wallet_transactions(flt.wallet, flt.limit)
                total = len(rows)
            else:
                rows, total = await self._indexer.fetch_transactions(
                    flt.limit, flt.offset, flt.tx_type
                )
        except FlowOnArcError as e:
            logger.warning("Transaction history fetch failed: %s", e)
            cached = self.cache.history.get(flt.key)
            if cached is None:
                return HistoryPage((), 0, flt.limit, flt.offset, source=SOURCE_CACHED)
            return replace(cached, source=SOURCE_CACHED)

        page = HistoryPage(tuple(rows), total, flt.limit, flt.offset, source=SOURCE_BACKEND)
        self.cache.history[flt.key] = page
        return page
