"""Error taxonomy shared by the codec, gateway, pricing engine and orchestrator."""
from __future__ import annotations


class FlowOnArcError(Exception):
    """Base class for every error raised by this package."""


# ---------------------------------------------------------------------------
# Client-side validation: raised before any network call
# ---------------------------------------------------------------------------


class ValidationError(FlowOnArcError):
    """Input rejected before submission; shown inline, never reaches a flow."""


class InvalidAmount(ValidationError):
    """Malformed or non-positive decimal input."""

    def __init__(self, value: object, reason: str = "not a decimal number") -> None:
        super().__init__(f"Invalid amount {value!r}: {reason}")
        self.value = value
        self.reason = reason


class InsufficientBalance(ValidationError):
    """Requested amount exceeds the wallet or available-collateral balance."""

    def __init__(self, symbol: str, requested: int, available: int) -> None:
        super().__init__(
            f"Insufficient {symbol} balance: requested {requested}, available {available}"
        )
        self.symbol = symbol
        self.requested = requested
        self.available = available


class BelowMinimumValue(ValidationError):
    """USD value is positive but under the dust floor."""

    def __init__(self, usd_value: object, minimum_usd: object) -> None:
        super().__init__(
            f"Transaction value ${usd_value} is below the ${minimum_usd} minimum"
        )
        self.usd_value = usd_value
        self.minimum_usd = minimum_usd


# ---------------------------------------------------------------------------
# Flow control
# ---------------------------------------------------------------------------


class AllowanceInsufficient(FlowOnArcError):
    """Existing allowance does not cover the amount; an approval step is needed.

    Not a terminal error: the orchestrator turns it into an ``approve*`` step.
    """

    def __init__(self, token: str, spender: str, required: int, current: int) -> None:
        super().__init__(
            f"Allowance for {token} -> {spender} is {current}, {required} required"
        )
        self.token = token
        self.spender = spender
        self.required = required
        self.current = current


# ---------------------------------------------------------------------------
# Chain / network
# ---------------------------------------------------------------------------


class ChainOrNetworkError(FlowOnArcError):
    """RPC or indexer endpoint unreachable or timed out."""


class CallReverted(FlowOnArcError):
    """A read call reached the node and the contract reverted it."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Call reverted: {reason}")
        self.reason = reason


class NoLiquidity(CallReverted):
    """Quote or pricing call hit an empty or nonexistent pool."""


class UserRejected(FlowOnArcError):
    """The signer declined the signing request."""


class TransactionReverted(FlowOnArcError):
    """Submitted and mined, but failed on-chain (status == 0)."""

    def __init__(self, tx_hash: str, reason: str = "", receipt: dict | None = None) -> None:
        super().__init__(f"Transaction {tx_hash} reverted: {reason or 'no reason given'}")
        self.tx_hash = tx_hash
        self.reason = reason
        self.receipt = receipt or {}
