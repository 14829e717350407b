"""Pre-submission gates. Nothing here touches the network."""
from __future__ import annotations

from decimal import Decimal

from ..amounts import to_base_units, to_decimal
from ..errors import BelowMinimumValue, InsufficientBalance, InvalidAmount
from ..models import Token

MIN_TRANSACTION_USD = Decimal(5)


def usd_value(amount: int, token: Token, price: Decimal) -> Decimal:
    return to_decimal(amount, token.decimals) * price


def validate_submission(
    amount: str,
    token: Token,
    balance: int | None = None,
    price: Decimal | None = None,
    min_value_usd: Decimal = MIN_TRANSACTION_USD,
) -> int:
    """Parse ``amount`` and apply the pre-submission checks.

    Returns the amount in base units. ``balance`` and ``price`` are optional:
    the balance check runs when a balance is known and the dust floor runs
    when a price is known.
    """
    value = to_base_units(amount, token.decimals)
    if value <= 0:
        raise InvalidAmount(amount, "must be greater than zero")

    if balance is not None and value > balance:
        raise InsufficientBalance(token.symbol, value, balance)

    if price is not None:
        usd = usd_value(value, token, Decimal(price))
        if 0 < usd < Decimal(min_value_usd):
            raise BelowMinimumValue(usd.quantize(Decimal("0.0001")), min_value_usd)

    return value
