"""Wallet balances and lending position for the connected account."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, TypeVar

from ..errors import FlowOnArcError
from ..interfaces.gateway import ContractGateway
from ..interfaces.price_oracle import PriceOracle
from ..models import AccountPosition, PortfolioSnapshot, WalletBalances

logger = logging.getLogger(__name__)

T = TypeVar("T")


def lp_key(stable_symbol: str, symbol: str) -> str:
    """Key used for LP shares, e.g. ``LP_USDC_CAT``."""
    return f"LP_{stable_symbol}_{symbol}"


class PortfolioService:
    """Keeps the latest snapshot; a failed read keeps that item's previous value."""

    def __init__(
        self,
        gateway: ContractGateway,
        oracle: PriceOracle,
        owner: str,
        amm_pairs: tuple[str, ...] = (),
    ) -> None:
        self._gateway = gateway
        self._oracle = oracle
        self.owner = owner
        self._amm_pairs = amm_pairs
        self.snapshot = PortfolioSnapshot()

    async def _read(self, what: str, fn: Callable[[], Awaitable[T]], previous: T) -> T:
        try:
            return await fn()
        except FlowOnArcError as e:
            logger.warning("Could not refresh %s: %s", what, e)
            return previous

    async def refresh(self) -> PortfolioSnapshot:
        gw = self._gateway
        old = self.snapshot
        stable = gw.stable

        tokens: dict[str, int] = {}
        for token in gw.tokens:
            tokens[token.symbol] = await self._read(
                f"{token.symbol} balance",
                lambda t=token: gw.balance_of(t, self.owner),
                old.balances.tokens.get(token.symbol, 0),
            )

        lp_shares: dict[str, int] = {}
        for symbol in self._amm_pairs:
            token = gw.tokens.by_symbol(symbol)
            key = lp_key(stable.symbol, symbol)
            lp_shares[key] = await self._read(
                f"{key} shares",
                lambda t=token: gw.get_user_liquidity(t.address, stable.address, self.owner),
                old.balances.lp_shares.get(key, 0),
            )

        account = await self._read(
            "account data", lambda: gw.get_account_data(self.owner), old.position.account
        )

        supplied: dict[str, int] = {}
        borrowed: dict[str, int] = {}
        for token in gw.tokens.lendable:
            supplied[token.symbol] = await self._read(
                f"{token.symbol} collateral",
                lambda t=token: gw.get_user_collateral(self.owner, t),
                old.position.supplied.get(token.symbol, 0),
            )
            borrowed[token.symbol] = await self._read(
                f"{token.symbol} debt",
                lambda t=token: gw.get_user_debt(self.owner, t),
                old.position.borrowed.get(token.symbol, 0),
            )

        prices = dict(old.prices)
        prices.update(await self._oracle.fetch_prices())

        self.snapshot = PortfolioSnapshot(
            balances=WalletBalances(tokens=tokens, lp_shares=lp_shares),
            position=AccountPosition(supplied=supplied, borrowed=borrowed, account=account),
            prices=prices,
            updated_at=datetime.now(timezone.utc),
        )
        logger.info("Portfolio refreshed for %s", self.owner)
        return self.snapshot
