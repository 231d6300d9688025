"""Server-side executor for merchant implementations."""

import logging
from typing import List, Optional

from .base import X402BaseExecutor
from ..chains.networks import NetworkRegistry
from ..core import protocol
from ..types import (
    AgentExecutor,
    RequestContext,
    EventQueue,
    PaymentStatus,
    PaymentRequirements,
    PaymentPayload,
    SettleResponse,
    VerifyResponse,
    X402ExtensionConfig,
    X402ErrorCode,
    X402Error,
    X402PaymentRequiredException,
    ConfigurationError,
    MessageError,
    StateError,
    TransportError,
    Task,
    TaskStatus,
    TaskState,
    TERMINAL_STATUSES,
    map_error_to_code
)


logger = logging.getLogger(__name__)


class X402ServerExecutor(X402BaseExecutor):
    """Server-side payment middleware for merchant agents.

    Delegate agents raise X402PaymentRequiredException to request payment.
    The offers are stored in the task's own metadata, so any executor
    instance can pick up the paid follow-up request.

    Example:
        server = X402ServerExecutor(my_agent, facilitator_client=client)

        # In your delegate agent:
        raise X402PaymentRequiredException.for_service(
            price="$1.00",
            pay_to_address="0x123...",
            resource="/premium-feature"
        )
    """

    def __init__(
        self,
        delegate: AgentExecutor,
        config: Optional[X402ExtensionConfig] = None,
        facilitator_client=None,
        chain_adapter=None,
        registry: Optional[NetworkRegistry] = None
    ):
        """Initialize server executor.

        Args:
            delegate: Underlying agent executor for business logic
            config: x402 extension configuration
            facilitator_client: Facilitator for EVM payments
            chain_adapter: AlgorandChainAdapter for Algorand payments
            registry: Network registry (default: process-wide registry)
        """
        super().__init__(delegate, config)
        self.facilitator_client = facilitator_client
        self.chain_adapter = chain_adapter
        self.registry = registry

    async def verify_payment(
        self, payload: PaymentPayload, requirements: PaymentRequirements
    ) -> VerifyResponse:
        """Verifies the payment for the requirement's network."""
        return await protocol.verify_payment(
            payload,
            requirements,
            facilitator_client=self.facilitator_client,
            chain_adapter=self.chain_adapter,
            registry=self.registry
        )

    async def settle_payment(
        self, payload: PaymentPayload, requirements: PaymentRequirements
    ) -> SettleResponse:
        """Settles the payment for the requirement's network."""
        return await protocol.settle_payment(
            payload,
            requirements,
            facilitator_client=self.facilitator_client,
            chain_adapter=self.chain_adapter,
            registry=self.registry
        )

    async def execute(
        self,
        context: RequestContext,
        event_queue: EventQueue
    ):
        """Payment middleware: verify → execute service → settle."""
        if not self.is_active(context):
            return await self._delegate.execute(context, event_queue)

        task = context.current_task
        task_status = self.utils.get_payment_status_from_task(task) if task else None

        if task_status in TERMINAL_STATUSES:
            logger.info(f"Task {task.id} already finished as {task_status.value}; returning recorded receipt")
            await event_queue.enqueue_event(task)
            return

        if task_status == PaymentStatus.PAYMENT_VERIFIED:
            return await self._resume_settlement(task, event_queue)

        if (
            task_status == PaymentStatus.PAYMENT_SUBMITTED
            or self.utils.get_payment_status_from_message(context.message)
            == PaymentStatus.PAYMENT_SUBMITTED
        ):
            return await self._process_paid_request(context, event_queue)

        try:
            return await self._delegate.execute(context, event_queue)
        except X402PaymentRequiredException as e:
            await self._handle_payment_required_exception(e, context, event_queue)

    async def _process_paid_request(
        self,
        context: RequestContext,
        event_queue: EventQueue
    ):
        """Process paid request: verify → execute → settle."""
        task = context.current_task
        if not task:
            raise StateError("Task not found in context during payment processing")

        try:
            payment_payload = (
                self.utils.get_payment_payload_from_message(context.message)
                or self.utils.get_payment_payload(task)
            )
        except MessageError as e:
            logger.warning(f"Unreadable payment submission for task {task.id}: {e}")
            await event_queue.enqueue_event(task)
            return
        if not payment_payload:
            logger.warning(f"Payment payload missing from task {task.id} and message")
            await event_queue.enqueue_event(task)
            return

        if self.utils.get_payment_status(task) == PaymentStatus.PAYMENT_REQUIRED:
            try:
                task = self.utils.record_payment_submission(task, payment_payload)
            except StateError as e:
                logger.warning(f"Rejected payment submission for task {task.id}: {e}")
                await event_queue.enqueue_event(task)
                return

        status = self.utils.get_payment_status(task)
        if status != PaymentStatus.PAYMENT_SUBMITTED:
            logger.warning(f"Task {task.id} is {status.value}; no payment was requested")
            await event_queue.enqueue_event(task)
            return

        offered = self.utils.get_payment_requirements(task)
        payment_requirements = self._find_matching_payment_requirement(
            offered.accepts if offered else [], payment_payload
        )
        if not payment_requirements:
            return await self._fail_payment(
                task, X402ErrorCode.NETWORK_MISMATCH, "Missing payment requirements",
                payment_payload.network, event_queue
            )

        logger.info(f"Verifying payment for task {task.id} on {payment_requirements.network}")
        try:
            verify_response = await self.verify_payment(payment_payload, payment_requirements)
        except TransportError:
            logger.error(f"Verifier unreachable for task {task.id}", exc_info=True)
            raise
        except X402Error as e:
            logger.warning(f"Payment verification error for task {task.id}: {e}")
            return await self._fail_payment(
                task, map_error_to_code(e), f"Verification failed: {e}",
                payment_requirements.network, event_queue
            )

        if not verify_response.is_valid:
            logger.warning(f"Payment verification failed: {verify_response.invalid_reason}")
            return await self._fail_payment(
                task,
                verify_response.error_code or X402ErrorCode.INVALID_SIGNATURE,
                verify_response.invalid_reason or "Invalid payment",
                payment_requirements.network,
                event_queue
            )

        task = self.utils.record_payment_verified(task, verify_response)
        await event_queue.enqueue_event(task)

        try:
            await self._delegate.execute(context, event_queue)
        except Exception as e:
            logger.error(f"Exception during delegate execution: {e}", exc_info=True)
            return await self._fail_payment(
                task, X402ErrorCode.SETTLEMENT_FAILED, f"Service failed: {e}",
                payment_requirements.network, event_queue
            )

        await self._settle_and_record(task, payment_payload, payment_requirements, event_queue)

    async def _resume_settlement(self, task: Task, event_queue: EventQueue):
        """Settle a verified payment whose earlier settlement never got an answer."""
        payment_payload = self.utils.get_payment_payload(task)
        offered = self.utils.get_payment_requirements(task)
        payment_requirements = (
            self._find_matching_payment_requirement(offered.accepts, payment_payload)
            if payment_payload and offered else None
        )
        if not payment_requirements:
            raise StateError(f"Task {task.id} is verified but its payment data is missing")

        logger.info(f"Resuming settlement for task {task.id} on {payment_requirements.network}")
        await self._settle_and_record(task, payment_payload, payment_requirements, event_queue)

    async def _settle_and_record(
        self,
        task: Task,
        payment_payload: PaymentPayload,
        payment_requirements: PaymentRequirements,
        event_queue: EventQueue
    ):
        try:
            settle_response = await self.settle_payment(payment_payload, payment_requirements)
        except TransportError:
            # The transfer may already be on chain; stay verified so a retry settles it
            logger.error(f"Settlement unreachable for task {task.id}", exc_info=True)
            raise
        except X402Error as e:
            logger.error(f"Exception during settlement: {e}", exc_info=True)
            code = map_error_to_code(e)
            if code not in X402ErrorCode.get_all_codes():
                code = X402ErrorCode.SETTLEMENT_FAILED
            return await self._fail_payment(
                task, code, f"Settlement failed: {e}",
                payment_requirements.network, event_queue
            )

        if settle_response.success:
            logger.info(f"Payment settled for task {task.id}: {settle_response.transaction}")
            task = self.utils.record_payment_success(task, settle_response)
        else:
            logger.warning(f"Settlement failed: {settle_response.error_reason}")
            task = self.utils.record_payment_failure(
                task,
                settle_response.error_code or X402ErrorCode.SETTLEMENT_FAILED,
                settle_response
            )
        await event_queue.enqueue_event(task)

    def _find_matching_payment_requirement(
        self,
        accepts_array: List[PaymentRequirements],
        payment_payload: PaymentPayload,
    ) -> Optional[PaymentRequirements]:
        """Offered requirement with the payload's scheme and network.

        Developers can override this method to implement custom matching logic.
        """
        for requirement in accepts_array:
            if (
                requirement.scheme == payment_payload.scheme
                and requirement.network == payment_payload.network
            ):
                return requirement
        logger.warning(
            f"No offered requirement matches {payment_payload.scheme}/{payment_payload.network}"
        )
        return None

    async def _handle_payment_required_exception(
        self,
        exception: X402PaymentRequiredException,
        context: RequestContext,
        event_queue: EventQueue
    ):
        """Turn a delegate's payment challenge into a payment-required task."""
        task = context.current_task
        if not task:
            if not context.task_id:
                raise StateError("Cannot handle payment exception: task_id is missing from the context")
            task = Task(
                id=context.task_id,
                contextId=context.context_id,
                status=TaskStatus(state=TaskState.input_required),
                metadata={}
            )

        payment_required = exception.to_payment_required_response(self.config.x402_version)
        accepted = [r for r in payment_required.accepts if self.config.accepts_network(r.network)]
        if not accepted:
            raise ConfigurationError(
                f"None of the offered networks {[r.network for r in payment_required.accepts]} "
                f"is accepted by this server"
            )
        if len(accepted) < len(payment_required.accepts):
            logger.warning(
                f"Dropping {len(payment_required.accepts) - len(accepted)} offer(s) "
                f"on networks not accepted by this server"
            )
            payment_required.accepts = accepted
        logger.info(f"Requesting payment for task {task.id} with {len(payment_required.accepts)} option(s)")
        task = self.utils.create_payment_required_task(task, payment_required)
        await event_queue.enqueue_event(task)

    async def _fail_payment(
        self,
        task: Task,
        error_code: str,
        error_reason: str,
        network: str,
        event_queue: EventQueue
    ):
        """Record a payment failure and publish the task."""
        failure_response = SettleResponse(
            success=False,
            network=network,
            error_reason=error_reason,
            error_code=error_code
        )
        task = self.utils.record_payment_failure(task, error_code, failure_response)
        await event_queue.enqueue_event(task)
