"""Typed events and a small async event bus."""
from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable

from ..models import OperationType, StepRole

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OperationStarted:
    flow_id: str
    operation: OperationType
    roles: tuple[StepRole, ...]


@dataclass(frozen=True)
class TransactionHashKnown:
    flow_id: str
    operation: OperationType
    role: StepRole
    tx_hash: str
    description: str = ""


@dataclass(frozen=True)
class TransactionConfirmed:
    flow_id: str
    operation: OperationType
    role: StepRole
    tx_hash: str
    block_number: int | None = None


@dataclass(frozen=True)
class TransactionFailed:
    flow_id: str
    operation: OperationType
    role: StepRole
    error: str
    tx_hash: str | None = None


Event = OperationStarted | TransactionHashKnown | TransactionConfirmed | TransactionFailed
Handler = Callable[[Any], Any]


class EventBus:
    """Fan-out of flow events to subscribers.

    Handlers may be plain functions or coroutines. A failing handler is
    logged and does not affect the publisher or other handlers.
    """

    def __init__(self) -> None:
        self._subscribers: list[tuple[type | None, Handler]] = []

    def subscribe(self, handler: Handler, event_type: type | None = None) -> None:
        """Register ``handler`` for ``event_type`` (or every event when None)."""
        self._subscribers.append((event_type, handler))

    def unsubscribe(self, handler: Handler) -> None:
        self._subscribers = [(t, h) for t, h in self._subscribers if h is not handler]

    async def publish(self, event: Event) -> None:
        for event_type, handler in list(self._subscribers):
            if event_type is not None and not isinstance(event, event_type):
                continue
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(
                    "Event subscriber %s failed on %s: %s",
                    getattr(handler, "__qualname__", handler),
                    type(event).__name__,
                    e,
                )
