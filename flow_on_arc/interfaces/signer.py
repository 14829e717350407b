"""Signer protocol: who approves and signs a transaction."""
from typing import Any, Protocol


class Signer(Protocol):
    """Abstract interface for a wallet that signs raw transactions."""

    @property
    def address(self) -> str: ...

    async def sign(self, tx: dict[str, Any], description: str) -> bytes: ...
