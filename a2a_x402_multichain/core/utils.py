"""State management utilities for x402 protocol."""

import logging
import uuid
from typing import Optional

from a2a.types import TextPart
from pydantic import ValidationError as PydanticValidationError

from ..types import (
    Task,
    Message,
    PaymentStatus,
    X402Metadata,
    x402PaymentRequiredResponse,
    PaymentPayload,
    SettleResponse,
    VerifyResponse,
    TaskState,
    TaskStatus,
    StateError,
    MessageError,
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES
)

logger = logging.getLogger(__name__)


def create_payment_submission_message(
    task_id: str,
    payment_payload: PaymentPayload,
    text: str = "Payment authorization provided",
    message_id: Optional[str] = None
) -> Message:
    """Creates correlated payment submission message.

    Args:
        task_id: Task ID for correlation
        payment_payload: Payment data to include
        text: Message text content
        message_id: Optional specific message ID; generates UUID if not provided
    """
    msg_id = message_id if message_id is not None else str(uuid.uuid4())
    return Message(
        messageId=msg_id,
        task_id=task_id,
        role="user",
        parts=[TextPart(kind="text", text=text)],
        metadata={
            X402Metadata.STATUS_KEY: PaymentStatus.PAYMENT_SUBMITTED.value,
            X402Metadata.PAYLOAD_KEY: payment_payload.model_dump(by_alias=True)
        }
    )


def extract_task_id(message: Message) -> Optional[str]:
    """Extracts task ID for correlation from payment message."""
    if isinstance(message, dict):
        return message.get('task_id')
    return getattr(message, 'task_id', None)


class X402Utils:
    """Payment lifecycle bookkeeping on an A2A task.

    State lives in the metadata of ``task.status.message``. Every ``record_*``
    method checks the transition against ``ALLOWED_TRANSITIONS`` and raises
    :class:`StateError` on an illegal one. Terminal states are write-once:
    recording the same outcome again is a no-op, a different one is an error.
    """

    STATUS_KEY = X402Metadata.STATUS_KEY
    REQUIRED_KEY = X402Metadata.REQUIRED_KEY
    PAYLOAD_KEY = X402Metadata.PAYLOAD_KEY
    RECEIPTS_KEY = X402Metadata.RECEIPTS_KEY
    ERROR_KEY = X402Metadata.ERROR_KEY

    @staticmethod
    def _metadata_of(message: Optional[Message]) -> Optional[dict]:
        if not message or not getattr(message, 'metadata', None):
            return None
        return message.metadata

    @staticmethod
    def _status_message(task: Task) -> Optional[Message]:
        if not task or not getattr(task, 'status', None):
            return None
        return getattr(task.status, 'message', None)

    def _ensure_metadata(self, task: Task, text: str) -> dict:
        """Status message metadata of ``task``, creating the message if needed."""
        if task.status is None:
            task.status = TaskStatus(state=TaskState.input_required)
        if not task.status.message:
            task.status.message = Message(
                messageId=f"{task.id}-status",
                role="agent",
                parts=[TextPart(kind="text", text=text)],
                metadata={}
            )
        if task.status.message.metadata is None:
            task.status.message.metadata = {}
        return task.status.message.metadata

    # Status

    def get_payment_status_from_message(self, message: Message) -> Optional[PaymentStatus]:
        """Extract payment status from message metadata."""
        metadata = self._metadata_of(message)
        if not metadata:
            return None

        status_value = metadata.get(self.STATUS_KEY)
        if status_value:
            try:
                return PaymentStatus(status_value)
            except ValueError:
                return None
        return None

    def get_payment_status_from_task(self, task: Task) -> Optional[PaymentStatus]:
        """Extract payment status from task's status message metadata."""
        return self.get_payment_status_from_message(self._status_message(task))

    def get_payment_status(self, task: Task) -> PaymentStatus:
        """Current payment status; NO_PAYMENT when none has been recorded."""
        return self.get_payment_status_from_task(task) or PaymentStatus.NO_PAYMENT

    @staticmethod
    def can_transition(current: PaymentStatus, target: PaymentStatus) -> bool:
        return target in ALLOWED_TRANSITIONS.get(current, frozenset())

    def _check_transition(self, task: Task, target: PaymentStatus) -> PaymentStatus:
        current = self.get_payment_status(task)
        if not self.can_transition(current, target):
            raise StateError(
                f"Illegal payment state transition for task {task.id}: "
                f"{current.value} -> {target.value}"
            )
        return current

    # Requirements, payload, receipts

    def get_payment_requirements_from_message(self, message: Message) -> Optional[x402PaymentRequiredResponse]:
        """Extract payment requirements from message metadata."""
        metadata = self._metadata_of(message)
        if not metadata or not metadata.get(self.REQUIRED_KEY):
            return None
        try:
            return x402PaymentRequiredResponse.model_validate(metadata[self.REQUIRED_KEY])
        except PydanticValidationError as e:
            raise MessageError(f"Invalid payment requirements in metadata: {e}") from e

    def get_payment_requirements(self, task: Task) -> Optional[x402PaymentRequiredResponse]:
        """Offered requirements recorded on the task."""
        return self.get_payment_requirements_from_message(self._status_message(task))

    def get_payment_payload_from_message(self, message: Message) -> Optional[PaymentPayload]:
        """Extract payment payload from message metadata."""
        metadata = self._metadata_of(message)
        if not metadata or not metadata.get(self.PAYLOAD_KEY):
            return None
        try:
            return PaymentPayload.model_validate(metadata[self.PAYLOAD_KEY])
        except PydanticValidationError as e:
            raise MessageError(f"Invalid payment payload in metadata: {e}") from e

    def get_payment_payload(self, task: Task) -> Optional[PaymentPayload]:
        """Submitted payload recorded on the task."""
        return self.get_payment_payload_from_message(self._status_message(task))

    def get_payment_receipts(self, task: Task) -> list[SettleResponse]:
        """Get all payment receipts from task metadata."""
        metadata = self._metadata_of(self._status_message(task))
        if not metadata:
            return []
        return [SettleResponse.model_validate(r) for r in metadata.get(self.RECEIPTS_KEY, [])]

    def get_latest_receipt(self, task: Task) -> Optional[SettleResponse]:
        """Get the most recent payment receipt from task metadata."""
        receipts = self.get_payment_receipts(task)
        return receipts[-1] if receipts else None

    def get_payment_error(self, task: Task) -> Optional[str]:
        metadata = self._metadata_of(self._status_message(task))
        return metadata.get(self.ERROR_KEY) if metadata else None

    # Transitions

    def create_payment_required_task(
        self,
        task: Task,
        payment_required: x402PaymentRequiredResponse
    ) -> Task:
        """Move the task to payment-required and attach the offers.

        Re-issuing a challenge while one is pending replaces the offers.
        """
        current = self.get_payment_status(task)
        if current != PaymentStatus.PAYMENT_REQUIRED:
            self._check_transition(task, PaymentStatus.PAYMENT_REQUIRED)

        task.status = TaskStatus(state=TaskState.input_required)
        metadata = self._ensure_metadata(task, "Payment is required for this service.")
        metadata[self.STATUS_KEY] = PaymentStatus.PAYMENT_REQUIRED.value
        metadata[self.REQUIRED_KEY] = payment_required.model_dump(by_alias=True)
        return task

    def record_payment_submission(
        self,
        task: Task,
        payment_payload: PaymentPayload
    ) -> Task:
        """Attach the client's payload; it must target one of the offers."""
        self._check_transition(task, PaymentStatus.PAYMENT_SUBMITTED)

        offered = self.get_payment_requirements(task)
        if offered is None:
            raise StateError(f"Task {task.id} has no payment requirements to pay")
        if not any(
            req.scheme == payment_payload.scheme and req.network == payment_payload.network
            for req in offered.accepts
        ):
            raise StateError(
                f"Payload for {payment_payload.scheme}/{payment_payload.network} "
                f"matches none of the offered payment requirements"
            )

        metadata = self._ensure_metadata(task, "Payment submission recorded.")
        metadata[self.STATUS_KEY] = PaymentStatus.PAYMENT_SUBMITTED.value
        # Requirements stay until settlement; verification needs them.
        metadata[self.PAYLOAD_KEY] = payment_payload.model_dump(by_alias=True)
        return task

    def record_payment_verified(
        self,
        task: Task,
        verify_response: Optional[VerifyResponse] = None
    ) -> Task:
        """Mark the submitted payload as verified."""
        self._check_transition(task, PaymentStatus.PAYMENT_VERIFIED)
        metadata = self._ensure_metadata(task, "Payment verified.")
        metadata[self.STATUS_KEY] = PaymentStatus.PAYMENT_VERIFIED.value
        return task

    def _is_repeat_of_terminal(
        self,
        task: Task,
        status: PaymentStatus,
        settle_response: SettleResponse,
        error_code: Optional[str] = None
    ) -> bool:
        current = self.get_payment_status(task)
        if current not in TERMINAL_STATUSES:
            return False
        latest = self.get_latest_receipt(task)
        if (
            current == status
            and latest is not None
            and latest.model_dump(by_alias=True) == settle_response.model_dump(by_alias=True)
            and self.get_payment_error(task) == error_code
        ):
            logger.info(f"Task {task.id} already recorded as {status.value}")
            return True
        raise StateError(
            f"Task {task.id} already finished as {current.value}; "
            f"cannot record a different {status.value} outcome"
        )

    def record_payment_success(
        self,
        task: Task,
        settle_response: SettleResponse
    ) -> Task:
        """Record successful payment with settlement response."""
        if self._is_repeat_of_terminal(task, PaymentStatus.PAYMENT_COMPLETED, settle_response):
            return task
        self._check_transition(task, PaymentStatus.PAYMENT_COMPLETED)

        metadata = self._ensure_metadata(task, "Payment completed successfully.")
        metadata[self.STATUS_KEY] = PaymentStatus.PAYMENT_COMPLETED.value
        metadata.setdefault(self.RECEIPTS_KEY, []).append(settle_response.model_dump(by_alias=True))
        metadata.pop(self.PAYLOAD_KEY, None)
        metadata.pop(self.REQUIRED_KEY, None)
        return task

    def record_payment_failure(
        self,
        task: Task,
        error_code: str,
        settle_response: SettleResponse
    ) -> Task:
        """Record payment failure with error details."""
        if self._is_repeat_of_terminal(task, PaymentStatus.PAYMENT_FAILED, settle_response, error_code):
            return task
        self._check_transition(task, PaymentStatus.PAYMENT_FAILED)

        metadata = self._ensure_metadata(task, "Payment failed.")
        metadata[self.STATUS_KEY] = PaymentStatus.PAYMENT_FAILED.value
        metadata[self.ERROR_KEY] = error_code
        metadata.setdefault(self.RECEIPTS_KEY, []).append(settle_response.model_dump(by_alias=True))
        metadata.pop(self.PAYLOAD_KEY, None)
        return task
