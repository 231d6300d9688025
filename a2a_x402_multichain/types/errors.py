# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Protocol error types and error code mapping."""

from typing import List, Optional, Union

from .payloads import PaymentRequirements, TokenAmount, x402PaymentRequiredResponse


class X402Error(Exception):
    """Base error for x402 protocol."""
    pass


class ConfigurationError(X402Error):
    """Network or endpoint configuration errors. Never retried."""
    pass


class UnsupportedNetworkError(ConfigurationError):
    """Network identifier is unknown or belongs to the wrong chain family."""

    def __init__(self, network: str, reason: Optional[str] = None):
        self.network = network
        super().__init__(reason or f"Unsupported network: {network}")


class MessageError(X402Error):
    """Message validation errors."""
    pass


class ValidationError(X402Error):
    """Payment validation errors."""
    pass


class InvalidPriceError(ValidationError):
    """Price is negative, non-numeric or otherwise unusable."""
    pass


class InvalidAssetError(ValidationError):
    """Asset identifier does not match the network's asset format."""
    pass


class AmountExceedsMaxError(ValidationError):
    """Requested amount is above the ceiling the payer is willing to sign."""

    def __init__(self, required: int, max_value: int):
        self.required = required
        self.max_value = max_value
        super().__init__(
            f"Payment amount {required} exceeds maximum willing to pay {max_value}"
        )


class MalformedPayloadError(ValidationError):
    """Payment payload cannot be decoded into the expected chain instrument."""
    pass


class AddressResolutionError(X402Error):
    """A human-readable name could not be mapped to a usable address."""
    pass


class NFDNotFoundError(AddressResolutionError):
    """No NFD exists for the given name."""
    pass


class NFDNotOwnedError(AddressResolutionError):
    """NFD exists but is not in the owned state."""
    pass


class NFDNoDepositAccountError(AddressResolutionError):
    """NFD has no deposit account configured."""
    pass


class PaymentError(X402Error):
    """Payment processing errors."""
    pass


class SubmissionError(PaymentError):
    """The chain node refused the submitted transaction."""
    pass


class DuplicateTransactionError(SubmissionError):
    """Transaction was already submitted and its id cannot be derived."""
    pass


class TransactionRejectedError(PaymentError):
    """Transaction was dropped from the pool before confirmation."""
    pass


class ConfirmationTimeoutError(PaymentError):
    """Transaction was not confirmed within the allowed window."""

    def __init__(self, tx_id: str, timeout: int, unit: str = "rounds"):
        self.tx_id = tx_id
        self.timeout = timeout
        super().__init__(f"Transaction {tx_id} not confirmed after {timeout} {unit}")


class TransportError(X402Error):
    """Chain node or facilitator could not be reached or answered badly.

    Distinct from protocol-level invalidity: callers may retry a transport
    error, but must not retry an invalid payload unchanged.
    """
    pass


class StateError(X402Error):
    """State transition errors."""
    pass


class X402PaymentRequiredException(X402Error):
    """Exception thrown by delegate agents to request payment.

    Carries one or more acceptable payment requirements. The server executor
    catches it directly around the delegate call and turns it into the
    payment-required task state; it is not meant to travel further.

    Example:
        from a2a_x402_multichain.types.errors import X402PaymentRequiredException
        from a2a_x402_multichain.core.merchant import create_payment_requirements

        # Single payment option
        requirements = create_payment_requirements(
            price="$1.00",
            pay_to_address="0x209693Bc6afc0C5328bA36FaF03C514EF312287C",
            resource="/premium-service"
        )
        raise X402PaymentRequiredException(
            "Premium feature requires payment",
            payment_requirements=requirements
        )

        # Multiple payment options
        raise X402PaymentRequiredException(
            "Choose payment method",
            payment_requirements=[base_req, algorand_req]
        )
    """

    def __init__(
        self,
        message: str,
        payment_requirements: Union[PaymentRequirements, List[PaymentRequirements]],
        error_code: Optional[str] = None
    ):
        """Initialize payment required exception.

        Args:
            message: Human-readable error message
            payment_requirements: Single requirement or list of payment options
            error_code: Optional x402 error code for the failure
        """
        super().__init__(message)

        if isinstance(payment_requirements, list):
            if not payment_requirements:
                raise ValueError("At least one payment requirement must be offered")
            self.payment_requirements = list(payment_requirements)
        else:
            self.payment_requirements = [payment_requirements]

        self.error_code = error_code

    def get_accepts_array(self) -> List[PaymentRequirements]:
        """Get payment requirements in x402PaymentRequiredResponse.accepts format."""
        return self.payment_requirements

    def to_payment_required_response(self, x402_version: int = 1) -> x402PaymentRequiredResponse:
        """Serializable challenge: protocol version, accepts list and message."""
        return x402PaymentRequiredResponse(
            x402_version=x402_version,
            accepts=self.payment_requirements,
            error=str(self)
        )

    @classmethod
    def for_service(
        cls,
        price: Union[str, int, float, TokenAmount],
        pay_to_address: str,
        resource: str,
        network: str = "base",
        description: str = "Payment required for this service",
        message: Optional[str] = None
    ) -> 'X402PaymentRequiredException':
        """Create payment exception for a simple service.

        Args:
            price: Payment amount (e.g., "$1.00", 1.00, TokenAmount)
            pay_to_address: Chain-native address to receive payment
            resource: Resource identifier (e.g., "/api/generate")
            network: Blockchain network (default: "base")
            description: Human-readable description
            message: Exception message (default: uses description)

        Returns:
            X402PaymentRequiredException with single payment requirement
        """
        # Import here to avoid circular imports
        from ..core.merchant import create_payment_requirements

        requirements = create_payment_requirements(
            price=price,
            pay_to_address=pay_to_address,
            resource=resource,
            network=network,
            description=description
        )

        return cls(
            message=message or description,
            payment_requirements=requirements
        )


class X402ErrorCode:
    """Machine-checkable failure categories.

    Verification and settlement results carry one of these in ``error_code``;
    callers branch on the code, never on the reason text.
    """
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    EXPIRED_PAYMENT = "EXPIRED_PAYMENT"
    DUPLICATE_NONCE = "DUPLICATE_NONCE"
    NETWORK_MISMATCH = "NETWORK_MISMATCH"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    RECIPIENT_MISMATCH = "RECIPIENT_MISMATCH"
    ASSET_MISMATCH = "ASSET_MISMATCH"
    MALFORMED_PAYLOAD = "MALFORMED_PAYLOAD"
    SETTLEMENT_FAILED = "SETTLEMENT_FAILED"
    CONFIRMATION_TIMEOUT = "CONFIRMATION_TIMEOUT"
    TRANSACTION_REJECTED = "TRANSACTION_REJECTED"
    TRANSPORT_ERROR = "TRANSPORT_ERROR"

    @classmethod
    def get_all_codes(cls) -> list[str]:
        """Returns all defined error codes."""
        return [
            cls.INSUFFICIENT_FUNDS,
            cls.INVALID_SIGNATURE,
            cls.EXPIRED_PAYMENT,
            cls.DUPLICATE_NONCE,
            cls.NETWORK_MISMATCH,
            cls.INVALID_AMOUNT,
            cls.RECIPIENT_MISMATCH,
            cls.ASSET_MISMATCH,
            cls.MALFORMED_PAYLOAD,
            cls.SETTLEMENT_FAILED,
            cls.CONFIRMATION_TIMEOUT,
            cls.TRANSACTION_REJECTED,
            cls.TRANSPORT_ERROR
        ]


def map_error_to_code(error: Exception) -> str:
    """Maps implementation errors to protocol error codes."""
    error_mapping = [
        (TransportError, X402ErrorCode.TRANSPORT_ERROR),
        (MalformedPayloadError, X402ErrorCode.MALFORMED_PAYLOAD),
        (AmountExceedsMaxError, X402ErrorCode.INVALID_AMOUNT),
        (InvalidPriceError, X402ErrorCode.INVALID_AMOUNT),
        (InvalidAssetError, X402ErrorCode.ASSET_MISMATCH),
        (UnsupportedNetworkError, X402ErrorCode.NETWORK_MISMATCH),
        (DuplicateTransactionError, X402ErrorCode.DUPLICATE_NONCE),
        (ConfirmationTimeoutError, X402ErrorCode.CONFIRMATION_TIMEOUT),
        (TransactionRejectedError, X402ErrorCode.TRANSACTION_REJECTED),
        (ValidationError, X402ErrorCode.INVALID_SIGNATURE),
        (PaymentError, X402ErrorCode.SETTLEMENT_FAILED),
    ]
    for error_type, code in error_mapping:
        if isinstance(error, error_type):
            return code
    return "UNKNOWN_ERROR"
