"""Unit tests for a2a_x402_multichain.types.errors module."""

import pytest
from a2a_x402_multichain.types.errors import (
    X402Error,
    ConfigurationError,
    UnsupportedNetworkError,
    MessageError,
    ValidationError,
    InvalidPriceError,
    InvalidAssetError,
    AmountExceedsMaxError,
    MalformedPayloadError,
    AddressResolutionError,
    NFDNotFoundError,
    NFDNotOwnedError,
    NFDNoDepositAccountError,
    PaymentError,
    SubmissionError,
    DuplicateTransactionError,
    TransactionRejectedError,
    ConfirmationTimeoutError,
    TransportError,
    StateError,
    X402PaymentRequiredException,
    X402ErrorCode,
    map_error_to_code
)
from a2a_x402_multichain.core.merchant import create_payment_requirements


class TestErrorHierarchy:
    """Test error class hierarchy."""

    def test_base_error(self):
        """Test X402Error base exception."""
        error = X402Error("Test error")
        assert str(error) == "Test error"
        assert isinstance(error, Exception)

    def test_error_inheritance(self):
        """Test that all errors inherit from X402Error."""
        errors = [
            MessageError("Message error"),
            ValidationError("Validation error"),
            PaymentError("Payment error"),
            StateError("State error"),
            TransportError("Transport error"),
            ConfigurationError("Configuration error"),
            AddressResolutionError("Resolution error"),
            X402PaymentRequiredException.for_service(
                price="$1.00", pay_to_address="0xtest", resource="/test"
            )
        ]
        for error in errors:
            assert isinstance(error, X402Error)

    def test_error_families(self):
        """Specific errors sit under the family callers catch."""
        assert issubclass(UnsupportedNetworkError, ConfigurationError)
        for cls in (InvalidPriceError, InvalidAssetError, AmountExceedsMaxError, MalformedPayloadError):
            assert issubclass(cls, ValidationError)
        for cls in (NFDNotFoundError, NFDNotOwnedError, NFDNoDepositAccountError):
            assert issubclass(cls, AddressResolutionError)
        for cls in (SubmissionError, DuplicateTransactionError, TransactionRejectedError, ConfirmationTimeoutError):
            assert issubclass(cls, PaymentError)
        assert issubclass(DuplicateTransactionError, SubmissionError)
        assert not issubclass(TransportError, PaymentError)

    def test_error_messages(self):
        """Errors with structured arguments build readable messages."""
        unsupported = UnsupportedNetworkError("solana")
        assert unsupported.network == "solana"
        assert "solana" in str(unsupported)

        exceeded = AmountExceedsMaxError(2000000, 1000000)
        assert exceeded.required == 2000000
        assert exceeded.max_value == 1000000

        timeout = ConfirmationTimeoutError("TXID", 14)
        assert timeout.tx_id == "TXID"
        assert str(timeout) == "Transaction TXID not confirmed after 14 rounds"
        assert str(ConfirmationTimeoutError("0xabc", 30, unit="seconds")) == (
            "Transaction 0xabc not confirmed after 30 seconds"
        )

    def test_error_can_be_raised(self):
        """Test that errors can be raised and caught."""
        with pytest.raises(X402Error):
            raise X402Error("Test")

        with pytest.raises(ValidationError):
            raise MalformedPayloadError("Bad envelope")

        with pytest.raises(PaymentError):
            raise TransactionRejectedError("overspend")


class TestX402ErrorCode:
    """Test X402ErrorCode constants."""

    def test_error_codes_values(self):
        assert X402ErrorCode.INSUFFICIENT_FUNDS == "INSUFFICIENT_FUNDS"
        assert X402ErrorCode.INVALID_SIGNATURE == "INVALID_SIGNATURE"
        assert X402ErrorCode.EXPIRED_PAYMENT == "EXPIRED_PAYMENT"
        assert X402ErrorCode.DUPLICATE_NONCE == "DUPLICATE_NONCE"
        assert X402ErrorCode.NETWORK_MISMATCH == "NETWORK_MISMATCH"
        assert X402ErrorCode.INVALID_AMOUNT == "INVALID_AMOUNT"
        assert X402ErrorCode.SETTLEMENT_FAILED == "SETTLEMENT_FAILED"
        assert X402ErrorCode.RECIPIENT_MISMATCH == "RECIPIENT_MISMATCH"
        assert X402ErrorCode.ASSET_MISMATCH == "ASSET_MISMATCH"
        assert X402ErrorCode.MALFORMED_PAYLOAD == "MALFORMED_PAYLOAD"
        assert X402ErrorCode.CONFIRMATION_TIMEOUT == "CONFIRMATION_TIMEOUT"
        assert X402ErrorCode.TRANSACTION_REJECTED == "TRANSACTION_REJECTED"
        assert X402ErrorCode.TRANSPORT_ERROR == "TRANSPORT_ERROR"

    def test_all_error_codes_defined(self):
        all_codes = X402ErrorCode.get_all_codes()
        assert len(all_codes) == 13
        assert len(set(all_codes)) == 13
        assert all(isinstance(code, str) for code in all_codes)


class TestErrorMapping:
    """Test error mapping functionality."""

    @pytest.mark.parametrize("error, code", [
        (TransportError("node unreachable"), X402ErrorCode.TRANSPORT_ERROR),
        (MalformedPayloadError("x"), X402ErrorCode.MALFORMED_PAYLOAD),
        (AmountExceedsMaxError(2, 1), X402ErrorCode.INVALID_AMOUNT),
        (InvalidPriceError("x"), X402ErrorCode.INVALID_AMOUNT),
        (InvalidAssetError("x"), X402ErrorCode.ASSET_MISMATCH),
        (UnsupportedNetworkError("x"), X402ErrorCode.NETWORK_MISMATCH),
        (DuplicateTransactionError("x"), X402ErrorCode.DUPLICATE_NONCE),
        (ConfirmationTimeoutError("tx", 5), X402ErrorCode.CONFIRMATION_TIMEOUT),
        (TransactionRejectedError("x"), X402ErrorCode.TRANSACTION_REJECTED),
        (ValidationError("x"), X402ErrorCode.INVALID_SIGNATURE),
        (SubmissionError("x"), X402ErrorCode.SETTLEMENT_FAILED),
        (PaymentError("x"), X402ErrorCode.SETTLEMENT_FAILED),
    ])
    def test_map_error_to_code_known_errors(self, error, code):
        assert map_error_to_code(error) == code

    def test_map_error_to_code_unknown_error(self):
        assert map_error_to_code(RuntimeError("Unknown error")) == "UNKNOWN_ERROR"
        assert map_error_to_code(X402Error("Base error")) == "UNKNOWN_ERROR"


class TestX402PaymentRequiredException:
    """Test X402PaymentRequiredException functionality."""

    def test_single_payment_requirement_init(self, sample_payment_requirements):
        exception = X402PaymentRequiredException(
            "Payment required for premium service",
            payment_requirements=sample_payment_requirements
        )

        assert str(exception) == "Payment required for premium service"
        assert exception.payment_requirements == [sample_payment_requirements]
        assert exception.error_code is None

    def test_multiple_payment_requirements_init(self, sample_payment_requirements):
        req2 = create_payment_requirements(
            price="$5.00",
            pay_to_address="0xmerchant789",
            resource="/premium-service"
        )

        exception = X402PaymentRequiredException(
            "Choose payment tier",
            payment_requirements=[sample_payment_requirements, req2],
            error_code="TIER_SELECTION"
        )

        assert exception.get_accepts_array() == [sample_payment_requirements, req2]
        assert exception.error_code == "TIER_SELECTION"

    def test_empty_requirements_rejected(self):
        with pytest.raises(ValueError):
            X402PaymentRequiredException("Nothing to pay", payment_requirements=[])

    def test_to_payment_required_response(self, sample_payment_requirements):
        exception = X402PaymentRequiredException(
            "Pay first", payment_requirements=sample_payment_requirements
        )

        response = exception.to_payment_required_response()
        assert response.x402_version == 1
        assert response.accepts == [sample_payment_requirements]
        assert response.error == "Pay first"

        wire = response.model_dump(by_alias=True)
        assert set(wire) == {"x402Version", "accepts", "error"}
        assert wire["accepts"][0]["maxAmountRequired"] == "1000000"

    def test_for_service_classmethod(self):
        exception = X402PaymentRequiredException.for_service(
            price="$3.00",
            pay_to_address="0xtest123",
            resource="/api/generate",
            network="base-sepolia",
            description="API service access"
        )

        assert str(exception) == "API service access"
        req = exception.payment_requirements[0]
        assert req.pay_to == "0xtest123"
        assert req.resource == "/api/generate"
        assert req.network == "base-sepolia"
        assert req.max_amount_required == "3000000"

    def test_for_service_algorand(self, algorand_merchant):
        exception = X402PaymentRequiredException.for_service(
            price="$0.25",
            pay_to_address=algorand_merchant,
            resource="/weather",
            network="algorand-testnet",
            message="Weather costs a quarter"
        )

        assert str(exception) == "Weather costs a quarter"
        req = exception.payment_requirements[0]
        assert req.asset == "10458941"
        assert req.max_amount_required == "250000"
        assert req.description == "Payment required for this service"
