"""Notifier protocol: notification channel abstraction."""
from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ..orchestrator.events import EventBus


class Notifier(Protocol):
    """Abstract interface for sending notifications."""

    def attach(self, bus: EventBus) -> None:
        """Subscribe to the transaction events this channel reports."""
        ...

    async def send_message(self, message: str, silent: bool = False) -> bool: ...
