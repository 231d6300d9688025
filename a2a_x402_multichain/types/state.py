"""Payment state definitions, metadata keys, and the legal transition table."""

from enum import Enum


class PaymentStatus(str, Enum):
    """Protocol-defined payment states for A2A flow"""
    NO_PAYMENT = "no-payment"                # No payment has been requested
    PAYMENT_REQUIRED = "payment-required"    # Payment requested
    PAYMENT_SUBMITTED = "payment-submitted"  # Payment signed and submitted
    PAYMENT_VERIFIED = "payment-verified"    # Payment verified, not yet settled
    PAYMENT_COMPLETED = "payment-completed"  # Payment settled successfully
    PAYMENT_FAILED = "payment-failed"        # Verification or settlement failed


TERMINAL_STATUSES = frozenset({
    PaymentStatus.PAYMENT_COMPLETED,
    PaymentStatus.PAYMENT_FAILED,
})


ALLOWED_TRANSITIONS = {
    PaymentStatus.NO_PAYMENT: frozenset({PaymentStatus.PAYMENT_REQUIRED}),
    PaymentStatus.PAYMENT_REQUIRED: frozenset({PaymentStatus.PAYMENT_SUBMITTED}),
    PaymentStatus.PAYMENT_SUBMITTED: frozenset({
        PaymentStatus.PAYMENT_VERIFIED,
        PaymentStatus.PAYMENT_FAILED,
    }),
    PaymentStatus.PAYMENT_VERIFIED: frozenset({
        PaymentStatus.PAYMENT_COMPLETED,
        PaymentStatus.PAYMENT_FAILED,
    }),
    PaymentStatus.PAYMENT_COMPLETED: frozenset(),
    PaymentStatus.PAYMENT_FAILED: frozenset(),
}


class X402Metadata:
    """Metadata key constants"""
    STATUS_KEY = "x402.payment.status"
    REQUIRED_KEY = "x402.payment.required"      # Contains x402PaymentRequiredResponse
    PAYLOAD_KEY = "x402.payment.payload"        # Contains PaymentPayload
    RECEIPTS_KEY = "x402.payment.receipts"      # Contains array of SettleResponse objects
    ERROR_KEY = "x402.payment.error"            # Error code (when failed)
