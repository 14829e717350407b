"""Transaction orchestration: approve* then execute, one step at a time."""
from __future__ import annotations

import asyncio
import logging
import uuid
from typing import AsyncIterator

from ..chain.client import PendingTransaction
from ..errors import AllowanceInsufficient, ChainOrNetworkError, FlowOnArcError
from ..interfaces.gateway import ContractGateway
from ..models import (
    FlowResult,
    OperationType,
    StepStatus,
    StepUpdate,
    TransactionStep,
)
from .events import (
    EventBus,
    OperationStarted,
    TransactionConfirmed,
    TransactionFailed,
    TransactionHashKnown,
)
from .flows import FLOWS, FlowParams, FlowSpec, StepSpec, ensure_allowance

logger = logging.getLogger(__name__)

# Pause before each signing request so the step's "processing" state is
# visible before the wallet prompt takes over.
STEP_SETTLE_DELAY_SECONDS = 1.5


class TransactionFlow:
    """One running operation.

    Iterate ``run()`` for step updates; ``result`` is set when it ends.
    A step that fails ends the flow. There is no retry: start a new flow.
    """

    def __init__(
        self,
        flow_id: str,
        spec: FlowSpec,
        params: FlowParams,
        step_specs: list[StepSpec],
        gateway: ContractGateway,
        bus: EventBus,
        settle_delay: float,
    ) -> None:
        self.flow_id = flow_id
        self.operation = spec.operation
        self.params = params
        self.steps = [TransactionStep(role=s.role, label=s.label(params)) for s in step_specs]
        self.result: FlowResult | None = None

        self._spec = spec
        self._step_specs = step_specs
        self._gateway = gateway
        self._bus = bus
        self._settle_delay = settle_delay
        self._started = False
        self._dismissed = False
        self._unconfirmed: tuple[int, PendingTransaction] | None = None
        self._background: set[asyncio.Task] = set()

    @property
    def requires_approval(self) -> bool:
        return any(step.role.is_approval for step in self.steps)

    @property
    def dismissed(self) -> bool:
        return self._dismissed

    def _update(self, index: int) -> StepUpdate:
        step = self.steps[index]
        return StepUpdate(
            flow_id=self.flow_id,
            index=index,
            role=step.role,
            status=step.status,
            tx_hash=step.tx_hash,
            error=step.error,
        )

    def _hashes(self) -> tuple[str, ...]:
        return tuple(s.tx_hash for s in self.steps if s.tx_hash)

    async def run(self) -> AsyncIterator[StepUpdate]:
        if self._started:
            raise RuntimeError(f"Flow {self.flow_id} has already been started")
        self._started = True

        await self._bus.publish(
            OperationStarted(self.flow_id, self.operation, tuple(s.role for s in self.steps))
        )

        for index, (step, spec) in enumerate(zip(self.steps, self._step_specs)):
            if self._dismissed:
                return

            step.status = StepStatus.PROCESSING
            yield self._update(index)
            if self._dismissed:
                return

            await asyncio.sleep(self._settle_delay)

            pending: PendingTransaction | None = None
            try:
                pending = await spec.execute(self._gateway, self.params)
                step.tx_hash = pending.tx_hash
                # Tracked until its receipt arrives; dismiss() hands it to a reconciler
                self._unconfirmed = (index, pending)
                await self._bus.publish(
                    TransactionHashKnown(
                        self.flow_id, self.operation, step.role, pending.tx_hash,
                        pending.description,
                    )
                )
                if self._dismissed:
                    return

                yield self._update(index)
                if self._dismissed:
                    return

                try:
                    receipt = await pending.wait()
                except asyncio.CancelledError:
                    self.dismiss()
                    raise
                finally:
                    self._unconfirmed = None
                if self._dismissed:
                    return
            except Exception as e:
                if self._dismissed:
                    return
                if not isinstance(e, FlowOnArcError):
                    logger.exception(
                        "Unexpected error in %s step %s", self.operation.value, step.role.value
                    )
                await self._fail(index, e)
                yield self._update(index)
                return

            step.status = StepStatus.COMPLETED
            await self._bus.publish(
                TransactionConfirmed(
                    self.flow_id, self.operation, step.role, pending.tx_hash,
                    receipt.get("blockNumber"),
                )
            )
            yield self._update(index)

        amount_in, amount_out = self._spec.amounts(self.params)
        self.result = FlowResult(
            flow_id=self.flow_id,
            operation=self.operation,
            success=True,
            tx_hashes=self._hashes(),
            amount_in=amount_in,
            amount_out=amount_out,
        )
        logger.info("%s flow %s completed", self._spec.title, self.flow_id)

    async def _fail(self, index: int, error: BaseException) -> None:
        step = self.steps[index]
        step.status = StepStatus.ERROR
        step.error = str(error)
        logger.error(
            "%s flow %s failed at %s: %s", self._spec.title, self.flow_id, step.role.value, error
        )

        self.result = FlowResult(
            flow_id=self.flow_id,
            operation=self.operation,
            success=False,
            tx_hashes=self._hashes(),
            error=step.error,
            failed_role=step.role,
        )
        await self._bus.publish(
            TransactionFailed(self.flow_id, self.operation, step.role, step.error, step.tx_hash)
        )

    def dismiss(self) -> None:
        """Stop driving the flow.

        A transaction that was already submitted keeps being tracked in the
        background and its outcome is published on the event bus.
        """
        if self._dismissed or self.result is not None:
            return
        self._dismissed = True
        logger.info("Flow %s dismissed", self.flow_id)

        if self._unconfirmed is not None:
            index, pending = self._unconfirmed
            self._unconfirmed = None
            task = asyncio.create_task(self._reconcile(index, pending))
            self._background.add(task)
            task.add_done_callback(self._background.discard)

    async def _reconcile(self, index: int, pending: PendingTransaction) -> None:
        step = self.steps[index]
        try:
            receipt = await pending.wait()
        except FlowOnArcError as e:
            step.status = StepStatus.ERROR
            step.error = str(e)
            await self._bus.publish(
                TransactionFailed(
                    self.flow_id, self.operation, step.role, step.error, pending.tx_hash
                )
            )
            return

        step.status = StepStatus.COMPLETED
        await self._bus.publish(
            TransactionConfirmed(
                self.flow_id, self.operation, step.role, pending.tx_hash,
                receipt.get("blockNumber"),
            )
        )

    async def join(self) -> None:
        """Wait for background reconciliation started by ``dismiss``."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)


class TransactionOrchestrator:
    """Builds flows from the step table and the wallet's current allowances."""

    def __init__(
        self,
        gateway: ContractGateway,
        bus: EventBus | None = None,
        settle_delay: float = STEP_SETTLE_DELAY_SECONDS,
    ) -> None:
        self._gateway = gateway
        self.bus = bus or EventBus()
        self._settle_delay = settle_delay

    async def _needs_approval(self, step: StepSpec, params: FlowParams, owner: str) -> bool:
        token, amount, spender = step.approval(self._gateway, params)
        try:
            await ensure_allowance(self._gateway, token, owner, spender, amount)
        except AllowanceInsufficient as e:
            logger.debug("%s", e)
            return True
        return False

    async def start_flow(self, operation: OperationType | str, params: FlowParams) -> TransactionFlow:
        """Select the steps for ``operation``; approvals already covered are dropped.

        The allowance check runs once, here. Nothing is signed until the
        returned flow is run.
        """
        operation = OperationType(operation)
        spec = FLOWS[operation]
        spec.check_params(params)

        owner = self._gateway.account_address
        if owner is None:
            raise ChainOrNetworkError("No signer configured: set wallet.private_key")

        steps: list[StepSpec] = []
        for step in spec.steps:
            if step.role.is_approval and not await self._needs_approval(step, params, owner):
                logger.info("Skipping %s: allowance already covers the amount", step.role.value)
                continue
            steps.append(step)

        flow = TransactionFlow(
            flow_id=uuid.uuid4().hex[:12],
            spec=spec,
            params=params,
            step_specs=steps,
            gateway=self._gateway,
            bus=self.bus,
            settle_delay=self._settle_delay,
        )
        logger.info(
            "%s flow %s: %s",
            spec.title,
            flow.flow_id,
            " -> ".join(s.role.value for s in flow.steps),
        )
        return flow


async def run_to_completion(flow: TransactionFlow) -> FlowResult:
    """Drain ``flow.run()`` and return its result."""
    async for _ in flow.run():
        pass
    if flow.result is None:
        raise RuntimeError(f"Flow {flow.flow_id} was dismissed before it finished")
    return flow.result
