"""Swap path selection, shared by quote and execute."""
from __future__ import annotations

from ..models import Token


def swap_path(token_in: Token, token_out: Token, stable: Token) -> list[str]:
    """Return the router path for ``token_in -> token_out``.

    Pools only exist against the stable asset, so a swap between two
    non-stable tokens hops through it.
    """
    if token_in.same_address(token_out.address):
        raise ValueError(f"Cannot swap {token_in.symbol} for itself")

    if stable.same_address(token_in.address) or stable.same_address(token_out.address):
        return [token_in.address, token_out.address]
    return [token_in.address, stable.address, token_out.address]
