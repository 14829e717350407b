"""FlowOnArc: wires config into gateway, pricing, orchestration and stats."""
from __future__ import annotations

import logging
from decimal import Decimal

from .amounts import to_base_units
from .chain import ArcClient, ArcGateway, LocalSigner
from .config import AppConfig
from .errors import FlowOnArcError, InsufficientBalance, InvalidAmount
from .interfaces import Notifier, Signer
from .models import (
    FaucetStatus,
    HistoryPage,
    IndexerHealth,
    LiquidityPreview,
    OperationType,
    PortfolioSnapshot,
    PriceImpactResult,
    StatsSnapshot,
    StepRole,
    Token,
)
from .notifications import TelegramNotifier
from .oracles import LendingPoolOracle
from .orchestrator import (
    EventBus,
    FlowParams,
    TransactionConfirmed,
    TransactionFlow,
    TransactionOrchestrator,
)
from .pricing import PricingEngine, validate_submission
from .services import (
    ActivityLog,
    HistoryFilter,
    IndexerClient,
    PeriodicRefresher,
    PortfolioService,
    StatsAggregator,
)
from .services.portfolio import lp_key

logger = logging.getLogger(__name__)

TokenRef = Token | str


class FlowOnArc:
    """Everything a front end calls into."""

    def __init__(
        self,
        config: AppConfig,
        signer: Signer | None = None,
        settle_delay: float | None = None,
    ) -> None:
        self._config = config
        self.tokens = config.token_registry()

        if signer is None and config.wallet.private_key:
            signer = LocalSigner(config.wallet.private_key)
        self.owner = config.wallet.address or (signer.address if signer else "")

        # Build chain access
        self.client = ArcClient(config.chain)
        self.gateway = ArcGateway(
            self.client,
            config.contracts,
            self.tokens,
            signer=signer,
            swap_deadline_minutes=config.flow.swap_deadline_minutes,
        )

        # Build pricing and orchestration
        self.pricing = PricingEngine(self.gateway, ltv=config.pricing.ltv)
        self.oracle = LendingPoolOracle(self.gateway)
        self.bus = EventBus()
        self.orchestrator = TransactionOrchestrator(
            self.gateway,
            self.bus,
            settle_delay=(
                config.flow.settle_delay_seconds if settle_delay is None else settle_delay
            ),
        )

        # Build stats, portfolio and activity
        self.indexer = IndexerClient(config.indexer)
        self.stats = StatsAggregator(self.gateway, self.indexer, config.market.amm_pairs)
        self.portfolio: PortfolioService | None = None
        if self.owner:
            self.portfolio = PortfolioService(
                self.gateway, self.oracle, self.owner, config.market.amm_pairs
            )
        self.activity = ActivityLog(explorer_url=config.chain.explorer_url)
        self.activity.attach(self.bus)

        # Build notifiers
        self.notifiers: list[Notifier] = []
        if config.notifications.telegram.enabled:
            self.notifiers.append(
                TelegramNotifier(
                    config.notifications.telegram, explorer_url=config.chain.explorer_url
                )
            )
        for notifier in self.notifiers:
            notifier.attach(self.bus)

        self.bus.subscribe(self._on_confirmed, TransactionConfirmed)

        self.history_filter = HistoryFilter()
        polling = config.polling
        self.pollers = [
            PeriodicRefresher("stats", polling.stats_interval_seconds, self.refresh_stats),
            PeriodicRefresher(
                "history", polling.history_interval_seconds, self._refresh_current_history
            ),
        ]
        if self.portfolio is not None:
            self.pollers.append(
                PeriodicRefresher(
                    "balances", polling.balances_interval_seconds, self.refresh_portfolio
                )
            )

    def token(self, ref: TokenRef) -> Token:
        return ref if isinstance(ref, Token) else self.tokens.by_symbol(ref)

    # ------------------------------------------------------------------
    # Pricing
    # ------------------------------------------------------------------

    async def quote_swap(self, amount: str, token_in: TokenRef, token_out: TokenRef) -> int:
        return await self.pricing.quote_swap(amount, self.token(token_in), self.token(token_out))

    async def get_spot_rate(
        self, token_in: TokenRef, token_out: TokenRef, refresh: bool = False
    ) -> Decimal:
        return await self.pricing.get_spot_rate(
            self.token(token_in), self.token(token_out), refresh=refresh
        )

    async def calculate_price_impact(
        self, amount: str, token_in: TokenRef, token_out: TokenRef
    ) -> PriceImpactResult | None:
        return await self.pricing.calculate_price_impact(
            amount, self.token(token_in), self.token(token_out)
        )

    def get_max_withdrawable(self, token: TokenRef) -> int:
        snapshot = self._snapshot()
        return self.pricing.get_max_withdrawable(
            self.token(token), snapshot.position, snapshot.prices
        )

    def validate_submission(
        self,
        amount: str,
        token: TokenRef,
        balance: int | None = None,
        price: Decimal | None = None,
    ) -> int:
        return validate_submission(
            amount,
            self.token(token),
            balance=balance,
            price=price,
            min_value_usd=Decimal(str(self._config.pricing.min_value_usd)),
        )

    async def preview_add_liquidity(self, token: TokenRef, amount: str) -> int:
        """Stable amount to pair with ``amount`` of ``token`` at the pool ratio."""
        tok = self.token(token)
        return await self.pricing.pair_amount_for_deposit(
            tok, to_base_units(amount, tok.decimals), self.gateway.stable
        )

    async def preview_remove_liquidity(self, token: TokenRef, shares: str) -> LiquidityPreview:
        return await self.pricing.preview_remove_liquidity(
            self.token(token), to_base_units(shares, self._config.market.lp_decimals)
        )

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def _snapshot(self) -> PortfolioSnapshot:
        return self.portfolio.snapshot if self.portfolio else PortfolioSnapshot()

    def _known_balance(self, symbol: str) -> int | None:
        snapshot = self._snapshot()
        if snapshot.updated_at is None:
            return None
        return snapshot.balances.tokens.get(symbol, 0)

    async def _price_of(self, token: Token) -> Decimal | None:
        price = self._snapshot().prices.get(token.symbol)
        if price is None:
            price = (await self.oracle.fetch_prices([token.symbol])).get(token.symbol)
        return price

    async def _validate_with_floor(self, amount: str, token: Token) -> int:
        """Amount and balance checks, then the USD dust floor; all before any quote."""
        value = self.validate_submission(amount, token, self._known_balance(token.symbol))
        price = await self._price_of(token)
        if price is not None:
            self.validate_submission(amount, token, price=price)
        return value

    async def prepare_params(
        self,
        operation: OperationType | str,
        token: TokenRef | None = None,
        amount: str = "",
        counterpart: TokenRef | None = None,
        amount_b: str | None = None,
        slippage_percent: Decimal | float | None = None,
    ) -> FlowParams:
        """Validate user input for ``operation`` and turn it into flow parameters.

        Balance checks use the latest portfolio snapshot; they are skipped
        until the portfolio has been refreshed once.
        """
        operation = OperationType(operation)
        if operation is OperationType.FAUCET:
            return FlowParams()

        tok = self.token(token) if token is not None else None
        if tok is None:
            raise ValueError(f"{operation.value} needs a token")
        other = self.token(counterpart) if counterpart is not None else None
        snapshot_ready = self._snapshot().updated_at is not None

        if operation is OperationType.SWAP:
            if other is None:
                raise ValueError("swap needs a token to receive")
            value = await self._validate_with_floor(amount, tok)
            quoted = await self.pricing.get_amounts_out(value, self.gateway.swap_path(tok, other))
            slippage = (
                self._config.pricing.default_slippage_percent
                if slippage_percent is None
                else slippage_percent
            )
            return FlowParams(
                token_in=tok,
                token_out=other,
                amount=value,
                quoted_out=quoted,
                slippage_percent=Decimal(str(slippage)),
            )

        if operation is OperationType.SUPPLY:
            value = await self._validate_with_floor(amount, tok)
            return FlowParams(token_in=tok, amount=value)

        if operation is OperationType.WITHDRAW:
            limit = self.get_max_withdrawable(tok) if snapshot_ready else None
            return FlowParams(token_in=tok, amount=self.validate_submission(amount, tok, limit))

        if operation is OperationType.BORROW:
            return FlowParams(token_in=tok, amount=self.validate_submission(amount, tok))

        if operation is OperationType.REPAY:
            value = self.validate_submission(amount, tok, self._known_balance(tok.symbol))
            return FlowParams(token_in=tok, amount=value)

        stable = self.gateway.stable
        if operation is OperationType.ADD_LIQUIDITY:
            value = self.validate_submission(amount, tok, self._known_balance(tok.symbol))
            if amount_b:
                value_b = self.validate_submission(
                    amount_b, stable, self._known_balance(stable.symbol)
                )
            else:
                value_b = await self.pricing.pair_amount_for_deposit(tok, value, stable)
            return FlowParams(token_in=tok, token_out=stable, amount=value, amount_b=value_b)

        # Remove liquidity: ``amount`` is LP shares.
        shares = to_base_units(amount, self._config.market.lp_decimals)
        if shares <= 0:
            raise InvalidAmount(amount, "must be greater than zero")
        if snapshot_ready:
            key = lp_key(stable.symbol, tok.symbol)
            held = self._snapshot().balances.lp_shares.get(key, 0)
            if shares > held:
                raise InsufficientBalance(key, shares, held)
        return FlowParams(token_in=tok, token_out=stable, shares=shares)

    async def start_transaction_flow(
        self, operation: OperationType | str, params: FlowParams
    ) -> TransactionFlow:
        return await self.orchestrator.start_flow(operation, params)

    async def _on_confirmed(self, event: TransactionConfirmed) -> None:
        if event.role is StepRole.EXECUTE and self.portfolio is not None:
            await self.refresh_portfolio()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def refresh_stats(self) -> StatsSnapshot:
        return await self.stats.refresh_stats()

    async def refresh_history(self, history_filter: HistoryFilter | None = None) -> HistoryPage:
        if history_filter is not None:
            self.history_filter = history_filter
        return await self.stats.refresh_history(self.history_filter)

    async def _refresh_current_history(self) -> HistoryPage:
        return await self.stats.refresh_history(self.history_filter)

    async def refresh_portfolio(self) -> PortfolioSnapshot:
        if self.portfolio is None:
            raise ValueError("No wallet configured: set wallet.address or wallet.private_key")
        return await self.portfolio.refresh()

    async def faucet_status(self, user: str | None = None) -> FaucetStatus:
        address = user or self.owner
        if not address:
            raise ValueError("No wallet configured: set wallet.address or pass an address")
        return await self.gateway.get_faucet_status(address)

    async def indexer_health(self) -> IndexerHealth:
        return await self.indexer.check_health()

    async def check_token_decimals(self) -> dict[str, tuple[int, int]]:
        """Tokens whose configured decimals disagree with the contract, as
        ``symbol -> (configured, on_chain)``. Unreadable tokens are skipped.
        """
        mismatches: dict[str, tuple[int, int]] = {}
        for token in self.tokens:
            try:
                on_chain = await self.gateway.decimals(token.address)
            except FlowOnArcError as e:
                logger.warning("Could not read decimals for %s: %s", token.symbol, e)
                continue
            if on_chain != token.decimals:
                logger.warning(
                    "%s decimals mismatch: configured %d, contract %d",
                    token.symbol,
                    token.decimals,
                    on_chain,
                )
                mismatches[token.symbol] = (token.decimals, on_chain)
        return mismatches

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------

    def start_polling(self) -> None:
        for poller in self.pollers:
            poller.start()

    async def stop_polling(self) -> None:
        for poller in self.pollers:
            await poller.stop()
