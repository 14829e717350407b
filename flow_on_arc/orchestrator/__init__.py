"""Multi-step transaction flows and the events they publish."""
from .events import (
    EventBus,
    OperationStarted,
    TransactionConfirmed,
    TransactionFailed,
    TransactionHashKnown,
)
from .flows import FLOWS, FlowParams, minimum_out
from .orchestrator import (
    STEP_SETTLE_DELAY_SECONDS,
    TransactionFlow,
    TransactionOrchestrator,
    run_to_completion,
)

__all__ = [
    "EventBus",
    "FLOWS",
    "FlowParams",
    "OperationStarted",
    "STEP_SETTLE_DELAY_SECONDS",
    "TransactionConfirmed",
    "TransactionFailed",
    "TransactionFlow",
    "TransactionHashKnown",
    "TransactionOrchestrator",
    "minimum_out",
    "run_to_completion",
]
