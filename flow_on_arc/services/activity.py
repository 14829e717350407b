"""Recent transaction activity, fed by the event bus."""
from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, replace
from datetime import datetime, timezone

from ..orchestrator.events import (
    EventBus,
    TransactionConfirmed,
    TransactionFailed,
    TransactionHashKnown,
)

logger = logging.getLogger(__name__)

STATUS_PENDING = "pending"
STATUS_CONFIRMED = "confirmed"
STATUS_FAILED = "failed"


@dataclass(frozen=True)
class ActivityEntry:
    flow_id: str
    operation: str
    role: str
    status: str
    tx_hash: str | None = None
    description: str = ""
    error: str | None = None
    block_number: int | None = None
    timestamp: datetime | None = None


class ActivityLog:
    """Bounded, most-recent-first list of transactions seen on the bus."""

    def __init__(self, max_entries: int = 50, explorer_url: str = "") -> None:
        self._entries: deque[ActivityEntry] = deque(maxlen=max_entries)
        self.explorer_url = explorer_url.rstrip("/")

    def attach(self, bus: EventBus) -> None:
        bus.subscribe(self._on_hash, TransactionHashKnown)
        bus.subscribe(self._on_confirmed, TransactionConfirmed)
        bus.subscribe(self._on_failed, TransactionFailed)

    def entries(self) -> list[ActivityEntry]:
        return list(self._entries)

    def explorer_link(self, tx_hash: str) -> str:
        return f"{self.explorer_url}/tx/{tx_hash}"

    def _find(self, tx_hash: str | None) -> int | None:
        if tx_hash is None:
            return None
        for index, entry in enumerate(self._entries):
            if entry.tx_hash == tx_hash:
                return index
        return None

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)

    def _on_hash(self, event: TransactionHashKnown) -> None:
        self._entries.appendleft(
            ActivityEntry(
                flow_id=event.flow_id,
                operation=event.operation.value,
                role=event.role.value,
                status=STATUS_PENDING,
                tx_hash=event.tx_hash,
                description=event.description,
                timestamp=self._now(),
            )
        )

    def _on_confirmed(self, event: TransactionConfirmed) -> None:
        index = self._find(event.tx_hash)
        if index is None:
            logger.debug("Confirmation for untracked transaction %s", event.tx_hash)
            return
        self._entries[index] = replace(
            self._entries[index], status=STATUS_CONFIRMED, block_number=event.block_number
        )

    def _on_failed(self, event: TransactionFailed) -> None:
        index = self._find(event.tx_hash)
        if index is not None:
            self._entries[index] = replace(
                self._entries[index], status=STATUS_FAILED, error=event.error
            )
            return
        # Failed before a hash existed (rejected signature, bad gas estimate).
        self._entries.appendleft(
            ActivityEntry(
                flow_id=event.flow_id,
                operation=event.operation.value,
                role=event.role.value,
                status=STATUS_FAILED,
                error=event.error,
                timestamp=self._now(),
            )
        )
