"""Command-line interface for Flow On Arc."""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from decimal import Decimal

from .amounts import (
    format_address,
    format_compact_number,
    format_compact_usd,
    format_token_amount,
    format_usd,
    to_decimal,
    to_decimal_string,
)
from .app import FlowOnArc
from .chain import LocalSigner
from .config import AppConfig, load_config
from .errors import FlowOnArcError
from .logging_setup import configure_logging
from .models import OperationType, StepStatus
from .services import HistoryFilter

logger = logging.getLogger(__name__)

_TX_COMMANDS = {
    "swap": OperationType.SWAP,
    "supply": OperationType.SUPPLY,
    "withdraw": OperationType.WITHDRAW,
    "borrow": OperationType.BORROW,
    "repay": OperationType.REPAY,
    "claim": OperationType.FAUCET,
    "add-liquidity": OperationType.ADD_LIQUIDITY,
    "remove-liquidity": OperationType.REMOVE_LIQUIDITY,
}


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="flow-on-arc",
        description="Swap, lend, provide liquidity and read protocol stats on Arc testnet",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--yes",
        action="store_true",
        help="Sign transactions without asking for confirmation",
    )

    sub = parser.add_subparsers(dest="command")

    # Reads
    quote = sub.add_parser("quote", help="Quote a swap")
    quote.add_argument("amount")
    quote.add_argument("token_in")
    quote.add_argument("token_out")

    impact = sub.add_parser("impact", help="Price impact of a swap")
    impact.add_argument("amount")
    impact.add_argument("token_in")
    impact.add_argument("token_out")

    sub.add_parser("position", help="Lending position and withdrawable collateral")
    sub.add_parser("balances", help="Wallet token balances and LP shares")
    sub.add_parser("faucet", help="Faucet tier and next claim time")
    sub.add_parser("stats", help="Protocol TVL, volume and transaction counts")

    history = sub.add_parser("history", help="Recent protocol transactions")
    history.add_argument("--limit", type=int, default=20)
    history.add_argument("--offset", type=int, default=0)
    history.add_argument("--type", dest="tx_type", default=None)
    history.add_argument("--wallet", default=None)

    sub.add_parser("health", help="Indexer health and token decimals check")
    sub.add_parser("watch", help="Poll stats, history and balances until interrupted")

    # Writes
    swap = sub.add_parser("swap", help="Swap tokens")
    swap.add_argument("amount")
    swap.add_argument("token_in")
    swap.add_argument("token_out")
    swap.add_argument(
        "--slippage",
        type=Decimal,
        default=None,
        help="Slippage tolerance in percent (default from config)",
    )

    for name, help_text in (
        ("supply", "Supply collateral"),
        ("withdraw", "Withdraw collateral"),
        ("borrow", "Borrow against collateral"),
        ("repay", "Repay debt"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("token")
        p.add_argument("amount")

    sub.add_parser("claim", help="Claim from the faucet")

    add_liq = sub.add_parser("add-liquidity", help="Add liquidity to a TOKEN/stable pool")
    add_liq.add_argument("token")
    add_liq.add_argument("amount")
    add_liq.add_argument(
        "--stable-amount",
        default=None,
        help="Stable side amount (default: matched to the pool ratio)",
    )

    remove_liq = sub.add_parser("remove-liquidity", help="Burn LP shares of a TOKEN/stable pool")
    remove_liq.add_argument("token")
    remove_liq.add_argument("shares")

    return parser


def _confirm(description: str) -> bool:
    answer = input(f"Sign transaction: {description}? [y/N] ")
    return answer.strip().lower() in ("y", "yes")


def build_app(config: AppConfig, assume_yes: bool = False) -> FlowOnArc:
    signer = None
    if config.wallet.private_key:
        signer = LocalSigner(config.wallet.private_key, confirm=None if assume_yes else _confirm)
    return FlowOnArc(config, signer=signer)


# ---------------------------------------------------------------------------
# Read commands
# ---------------------------------------------------------------------------


async def _quote(app: FlowOnArc, args: argparse.Namespace) -> None:
    token_out = app.token(args.token_out)
    out = await app.quote_swap(args.amount, args.token_in, token_out)
    rate = await app.get_spot_rate(args.token_in, token_out)
    received = to_decimal_string(out, token_out.decimals)
    print(f"{args.amount} {args.token_in.upper()} -> {received} {token_out.symbol}")
    print(f"Spot rate: 1 {args.token_in.upper()} = {rate:.6f} {token_out.symbol}")


async def _impact(app: FlowOnArc, args: argparse.Namespace) -> None:
    result = await app.calculate_price_impact(args.amount, args.token_in, args.token_out)
    if result is None:
        print("Nothing to price")
        return
    if result.error:
        print(f"Price impact unavailable: {result.error}")
        return
    suffix = " (estimated)" if result.estimated else ""
    print(f"Price impact: {result.impact_percent:.4f}%{suffix}")
    print(f"Swap size: {result.swap_size_percent:.4f}% of pool")
    print(f"Liquidity depth: {format_compact_number(float(result.liquidity_depth))}")
    print(f"Hops: {result.path_length - 1}")


async def _position(app: FlowOnArc, args: argparse.Namespace) -> None:
    snapshot = await app.refresh_portfolio()
    account = snapshot.position.account
    print(f"Wallet: {format_address(app.owner)}")
    print(f"Collateral: {format_usd(to_decimal(account.total_collateral_usd, 18))}")
    print(f"Debt: {format_usd(to_decimal(account.total_debt_usd, 18))}")
    print(f"Available to borrow: {format_usd(to_decimal(account.available_borrows_usd, 18))}")
    print(f"Health factor: {to_decimal(account.health_factor, 18):.2f}")
    for token in app.tokens.lendable:
        supplied = snapshot.position.supplied.get(token.symbol, 0)
        borrowed = snapshot.position.borrowed.get(token.symbol, 0)
        if not supplied and not borrowed:
            continue
        print(
            f"  {token.symbol}: supplied {format_token_amount(supplied, token.decimals)}"
            f" (withdrawable {format_token_amount(app.get_max_withdrawable(token), token.decimals)})"
            f", borrowed {format_token_amount(borrowed, token.decimals)}"
        )


async def _balances(app: FlowOnArc, args: argparse.Namespace) -> None:
    snapshot = await app.refresh_portfolio()
    for token in app.tokens:
        amount = snapshot.balances.tokens.get(token.symbol, 0)
        print(f"{token.symbol}: {format_token_amount(amount, token.decimals)}")
    for key, shares in snapshot.balances.lp_shares.items():
        print(f"{key}: {format_token_amount(shares, 18)}")


async def _faucet(app: FlowOnArc, args: argparse.Namespace) -> None:
    status = await app.faucet_status()
    stable = app.gateway.stable
    print(f"Tier: {status.tier}")
    tier = status.current_tier
    if tier is not None:
        print(f"Reward: {format_token_amount(tier.reward_amount, stable.decimals)} {stable.symbol}")
    if status.can_claim:
        print("Claim available now")
    else:
        print(f"Next claim in {status.next_claim_time - status.now}s")


async def _stats(app: FlowOnArc, args: argparse.Namespace) -> None:
    snapshot = await app.refresh_stats()
    print(f"TVL: {format_compact_usd(snapshot.tvl)} [{snapshot.sources['tvl']}]")
    print(f"Volume: {format_compact_usd(snapshot.volume)} [{snapshot.sources['volume']}]")
    print(f"Transactions: {snapshot.transactions} [{snapshot.sources['transactions']}]")
    if snapshot.breakdown:
        print(", ".join(f"{k}: {v}" for k, v in snapshot.breakdown.items()))


async def _history(app: FlowOnArc, args: argparse.Namespace) -> None:
    page = await app.refresh_history(
        HistoryFilter(limit=args.limit, offset=args.offset, tx_type=args.tx_type, wallet=args.wallet)
    )
    print(f"{len(page.transactions)} of {page.total} transactions [{page.source}]")
    for tx in page.transactions:
        print(f"  {tx.timestamp}  {tx.tx_type:<10} {tx.amount} {tx.token}  {format_address(tx.tx_hash)}")


async def _health(app: FlowOnArc, args: argparse.Namespace) -> None:
    health = await app.indexer_health()
    print("healthy" if health.healthy else f"unhealthy: {health.error or health.database}")
    for symbol, (configured, on_chain) in (await app.check_token_decimals()).items():
        print(f"{symbol}: configured {configured} decimals, contract reports {on_chain}")


async def _watch(app: FlowOnArc, args: argparse.Namespace) -> None:
    app.start_polling()
    try:
        while True:
            await asyncio.sleep(3600)
    finally:
        await app.stop_polling()


# ---------------------------------------------------------------------------
# Write commands
# ---------------------------------------------------------------------------


async def _transact(app: FlowOnArc, args: argparse.Namespace) -> None:
    operation = _TX_COMMANDS[args.command]
    if app.portfolio is not None:
        await app.refresh_portfolio()

    if operation is OperationType.SWAP:
        params = await app.prepare_params(
            operation, args.token_in, args.amount, args.token_out, slippage_percent=args.slippage
        )
    elif operation is OperationType.FAUCET:
        params = await app.prepare_params(operation)
    elif operation is OperationType.ADD_LIQUIDITY:
        params = await app.prepare_params(
            operation, args.token, args.amount, amount_b=args.stable_amount
        )
    elif operation is OperationType.REMOVE_LIQUIDITY:
        params = await app.prepare_params(operation, args.token, args.shares)
    else:
        params = await app.prepare_params(operation, args.token, args.amount)

    flow = await app.start_transaction_flow(operation, params)
    total = len(flow.steps)
    async for update in flow.run():
        step = flow.steps[update.index]
        line = f"[{update.index + 1}/{total}] {step.label}: {update.status.value}"
        if update.tx_hash:
            line += f" ({app.activity.explorer_link(update.tx_hash)})"
        if update.status is StepStatus.ERROR:
            line += f"\n    {update.error}"
        print(line)

    result = flow.result
    if result is not None and result.success:
        summary = f"{result.amount_in} -> {result.amount_out}" if result.amount_out else result.amount_in
        print(f"Done. {summary}".rstrip())
    else:
        sys.exit(1)


_COMMANDS = {
    "quote": _quote,
    "impact": _impact,
    "position": _position,
    "balances": _balances,
    "faucet": _faucet,
    "stats": _stats,
    "history": _history,
    "health": _health,
    "watch": _watch,
}


async def _run(args: argparse.Namespace) -> None:
    """Execute the selected command."""
    configure_logging(args.log_level)
    config = load_config(args.config)
    app = build_app(config, assume_yes=args.yes)

    if args.command in _COMMANDS:
        await _COMMANDS[args.command](app, args)
    elif args.command in _TX_COMMANDS:
        await _transact(app, args)
    else:
        build_parser().print_help()
        sys.exit(1)


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        asyncio.run(_run(args))
    except (FlowOnArcError, FileNotFoundError, KeyError, ValueError) as e:
        logger.error("%s", e)
        sys.exit(1)
    except KeyboardInterrupt:
        sys.exit(130)
