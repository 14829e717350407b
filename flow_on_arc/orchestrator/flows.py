"""Step tables: one descriptor per operation type."""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Awaitable, Callable

from ..amounts import to_decimal_string
from ..chain.client import PendingTransaction
from ..errors import AllowanceInsufficient
from ..interfaces.gateway import ContractGateway
from ..models import OperationType, StepRole, Token

DEFAULT_SLIPPAGE_PERCENT = Decimal(1)


@dataclass(frozen=True)
class FlowParams:
    """Inputs for a flow. Amounts are base units of the token they refer to.

    ``token_in``/``amount`` is the primary side (token A for liquidity),
    ``token_out``/``amount_b`` the counterpart. ``quoted_out`` is the swap
    quote the slippage bound is taken from.
    """

    token_in: Token | None = None
    token_out: Token | None = None
    amount: int = 0
    amount_b: int = 0
    shares: int = 0
    quoted_out: int = 0
    slippage_percent: Decimal = DEFAULT_SLIPPAGE_PERCENT


def minimum_out(quoted: int, slippage_percent: Decimal | float) -> int:
    """``quoted * (1 - slippage/100)``, truncated."""
    factor = Decimal(1) - Decimal(str(slippage_percent)) / Decimal(100)
    return int(Decimal(int(quoted)) * factor)


ApprovalTarget = tuple[Token, int, str]  # token, amount, spender
Approval = Callable[[ContractGateway, FlowParams], ApprovalTarget]
Execute = Callable[[ContractGateway, FlowParams], Awaitable[PendingTransaction]]


@dataclass(frozen=True)
class StepSpec:
    role: StepRole
    label: Callable[[FlowParams], str]
    execute: Execute
    approval: Approval | None = None


@dataclass(frozen=True)
class FlowSpec:
    operation: OperationType
    title: str
    steps: tuple[StepSpec, ...]
    needs: tuple[str, ...] = ()

    def check_params(self, params: FlowParams) -> None:
        missing = [name for name in self.needs if not getattr(params, name)]
        if missing:
            raise ValueError(f"{self.title} needs {', '.join(missing)}")

    def amounts(self, params: FlowParams) -> tuple[str, str]:
        """Before/after display amounts for the result."""
        amount_in = (
            to_decimal_string(params.amount, params.token_in.decimals)
            if params.token_in and params.amount
            else ""
        )
        if self.operation is OperationType.SWAP and params.token_out:
            return amount_in, to_decimal_string(params.quoted_out, params.token_out.decimals)
        if self.operation is OperationType.ADD_LIQUIDITY and params.token_out:
            return amount_in, to_decimal_string(params.amount_b, params.token_out.decimals)
        if self.operation is OperationType.REMOVE_LIQUIDITY:
            return to_decimal_string(params.shares, 18), ""
        return amount_in, ""


async def ensure_allowance(
    gateway: ContractGateway, token: Token, owner: str, spender: str, amount: int
) -> None:
    """Raise AllowanceInsufficient unless ``spender`` may already move ``amount``."""
    current = await gateway.allowance(token, owner, spender)
    if current < amount:
        raise AllowanceInsufficient(token.symbol, spender, amount, current)


# ---------------------------------------------------------------------------
# Approval targets
# ---------------------------------------------------------------------------


def _router_approval(gw: ContractGateway, p: FlowParams) -> ApprovalTarget:
    return p.token_in, p.amount, gw.router_address


def _router_approval_b(gw: ContractGateway, p: FlowParams) -> ApprovalTarget:
    return p.token_out, p.amount_b, gw.router_address


def _lending_approval(gw: ContractGateway, p: FlowParams) -> ApprovalTarget:
    return p.token_in, p.amount, gw.lending_pool_address


def _approve(target: Approval) -> Execute:
    async def run(gw: ContractGateway, p: FlowParams) -> PendingTransaction:
        token, amount, spender = target(gw, p)
        return await gw.approve(token, spender, amount)

    return run


def _symbol(p: FlowParams, default: str = "Token") -> str:
    return p.token_in.symbol if p.token_in else default


# ---------------------------------------------------------------------------
# Executions
# ---------------------------------------------------------------------------


async def _swap(gw: ContractGateway, p: FlowParams) -> PendingTransaction:
    return await gw.swap_exact_tokens(
        p.amount, minimum_out(p.quoted_out, p.slippage_percent), p.token_in, p.token_out
    )


async def _supply(gw: ContractGateway, p: FlowParams) -> PendingTransaction:
    return await gw.supply(p.token_in, p.amount)


async def _withdraw(gw: ContractGateway, p: FlowParams) -> PendingTransaction:
    return await gw.withdraw(p.token_in, p.amount)


async def _borrow(gw: ContractGateway, p: FlowParams) -> PendingTransaction:
    return await gw.borrow(p.token_in, p.amount)


async def _repay(gw: ContractGateway, p: FlowParams) -> PendingTransaction:
    return await gw.repay(p.token_in, p.amount)


async def _claim(gw: ContractGateway, p: FlowParams) -> PendingTransaction:
    return await gw.claim()


async def _add_liquidity(gw: ContractGateway, p: FlowParams) -> PendingTransaction:
    return await gw.add_liquidity(p.token_in, p.token_out, p.amount, p.amount_b)


async def _remove_liquidity(gw: ContractGateway, p: FlowParams) -> PendingTransaction:
    return await gw.remove_liquidity(p.token_in, p.token_out, p.shares)


FLOWS: dict[OperationType, FlowSpec] = {
    OperationType.SWAP: FlowSpec(
        OperationType.SWAP,
        "Swap",
        (
            StepSpec(
                StepRole.APPROVE,
                lambda p: f"Approve {_symbol(p)} for swap",
                _approve(_router_approval),
                _router_approval,
            ),
            StepSpec(StepRole.EXECUTE, lambda p: "Swap tokens", _swap),
        ),
        needs=("token_in", "token_out", "amount", "quoted_out"),
    ),
    OperationType.SUPPLY: FlowSpec(
        OperationType.SUPPLY,
        "Supply Collateral",
        (
            StepSpec(
                StepRole.APPROVE,
                lambda p: f"Approve {_symbol(p)} for supply",
                _approve(_lending_approval),
                _lending_approval,
            ),
            StepSpec(StepRole.EXECUTE, lambda p: "Supply collateral", _supply),
        ),
        needs=("token_in", "amount"),
    ),
    OperationType.WITHDRAW: FlowSpec(
        OperationType.WITHDRAW,
        "Withdraw Collateral",
        (StepSpec(StepRole.EXECUTE, lambda p: "Withdraw collateral", _withdraw),),
        needs=("token_in", "amount"),
    ),
    OperationType.BORROW: FlowSpec(
        OperationType.BORROW,
        "Borrow",
        (StepSpec(StepRole.EXECUTE, lambda p: "Borrow tokens", _borrow),),
        needs=("token_in", "amount"),
    ),
    OperationType.REPAY: FlowSpec(
        OperationType.REPAY,
        "Repay",
        (
            StepSpec(
                StepRole.APPROVE,
                lambda p: f"Approve {_symbol(p)} for repay",
                _approve(_lending_approval),
                _lending_approval,
            ),
            StepSpec(StepRole.EXECUTE, lambda p: "Repay tokens", _repay),
        ),
        needs=("token_in", "amount"),
    ),
    OperationType.FAUCET: FlowSpec(
        OperationType.FAUCET,
        "Claim Tokens",
        (StepSpec(StepRole.EXECUTE, lambda p: "Claim tokens", _claim),),
    ),
    OperationType.ADD_LIQUIDITY: FlowSpec(
        OperationType.ADD_LIQUIDITY,
        "Add Liquidity",
        (
            StepSpec(
                StepRole.APPROVE_A,
                lambda p: f"Approve {_symbol(p, 'Token A')}",
                _approve(_router_approval),
                _router_approval,
            ),
            StepSpec(
                StepRole.APPROVE_B,
                lambda p: f"Approve {p.token_out.symbol if p.token_out else 'Token B'}",
                _approve(_router_approval_b),
                _router_approval_b,
            ),
            StepSpec(StepRole.EXECUTE, lambda p: "Add Liquidity", _add_liquidity),
        ),
        needs=("token_in", "token_out", "amount", "amount_b"),
    ),
    OperationType.REMOVE_LIQUIDITY: FlowSpec(
        OperationType.REMOVE_LIQUIDITY,
        "Remove Liquidity",
        (StepSpec(StepRole.EXECUTE, lambda p: "Remove Liquidity", _remove_liquidity),),
        needs=("token_in", "token_out", "shares"),
    ),
}
