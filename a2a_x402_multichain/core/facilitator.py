"""Facilitator clients: the x402 HTTP facilitator and an in-process EVM verifier."""

import logging
import time
from typing import Callable, Optional

import httpx
from x402 import facilitator as x402_facilitator
from x402.facilitator import FacilitatorConfig

from ..chains.evm import (
    EvmChainAdapter,
    authorization_message,
    build_transfer_typed_data,
    eip712_domain_for,
    recover_typed_data_signer
)
from ..chains.networks import NetworkFamily, NetworkRegistry, require_network_of_family
from ..mechanisms.evm import to_x402_payload, to_x402_requirements
from ..types import (
    ConfigurationError,
    ConfirmationTimeoutError,
    ExactEvmPaymentPayload,
    MalformedPayloadError,
    PaymentPayload,
    PaymentRequirements,
    SettleResponse,
    SubmissionError,
    TransactionRejectedError,
    TransportError,
    VerifyResponse,
    X402ErrorCode,
    map_error_to_code
)

logger = logging.getLogger(__name__)


DEFAULT_FACILITATOR_URL = "https://x402.org/facilitator"

# Checked in order against a facilitator's snake_case reason
_REASON_CODES = [
    ("insufficient", X402ErrorCode.INSUFFICIENT_FUNDS),
    ("signature", X402ErrorCode.INVALID_SIGNATURE),
    ("valid_after", X402ErrorCode.EXPIRED_PAYMENT),
    ("valid_before", X402ErrorCode.EXPIRED_PAYMENT),
    ("expired", X402ErrorCode.EXPIRED_PAYMENT),
    ("nonce", X402ErrorCode.DUPLICATE_NONCE),
    ("recipient", X402ErrorCode.RECIPIENT_MISMATCH),
    ("value", X402ErrorCode.INVALID_AMOUNT),
    ("amount", X402ErrorCode.INVALID_AMOUNT),
    ("asset", X402ErrorCode.ASSET_MISMATCH),
    ("network", X402ErrorCode.NETWORK_MISMATCH),
]


def error_code_for_reason(reason: Optional[str], default: str) -> str:
    """Error code for a facilitator's free-text failure reason."""
    text = (reason or "").lower()
    for keyword, code in _REASON_CODES:
        if keyword in text:
            return code
    return default


class FacilitatorClient(x402_facilitator.FacilitatorClient):
    """``x402`` facilitator client speaking this package's models.

    Requirements and payloads are converted to the library's models before
    they are posted, and the answers come back as local responses carrying an
    ``error_code``. Any failure to obtain a well-formed answer (connection
    error, error status, non-JSON or unexpected body) raises
    :class:`TransportError`; it is never turned into an invalid verification.
    """

    def __init__(self, config: Optional[FacilitatorConfig] = None):
        config = config or FacilitatorConfig(url=DEFAULT_FACILITATOR_URL)
        url = config.get("url", "")
        if not url.startswith(("http://", "https://")):
            raise ConfigurationError(f"Invalid facilitator URL: {url}")
        super().__init__(config)
        self.url = url.rstrip("/")

    async def verify(
        self,
        payment: PaymentPayload,
        payment_requirements: PaymentRequirements
    ) -> VerifyResponse:
        x402_payment, x402_requirements = self._convert(payment, payment_requirements)
        try:
            result = await super().verify(x402_payment, x402_requirements)
        except (httpx.HTTPError, ValueError) as e:
            raise TransportError(f"Facilitator verify request to {self.url} failed: {e}") from e

        return VerifyResponse(
            is_valid=result.is_valid,
            payer=result.payer,
            invalid_reason=result.invalid_reason,
            error_code=None if result.is_valid else error_code_for_reason(
                result.invalid_reason, X402ErrorCode.MALFORMED_PAYLOAD
            )
        )

    async def settle(
        self,
        payment: PaymentPayload,
        payment_requirements: PaymentRequirements
    ) -> SettleResponse:
        x402_payment, x402_requirements = self._convert(payment, payment_requirements)
        try:
            result = await super().settle(x402_payment, x402_requirements)
        except (httpx.HTTPError, ValueError) as e:
            raise TransportError(f"Facilitator settle request to {self.url} failed: {e}") from e

        return SettleResponse(
            success=result.success,
            transaction=result.transaction,
            network=result.network or payment_requirements.network,
            payer=result.payer,
            error_reason=result.error_reason,
            error_code=None if result.success else error_code_for_reason(
                result.error_reason, X402ErrorCode.SETTLEMENT_FAILED
            )
        )

    @staticmethod
    def _convert(payment: PaymentPayload, payment_requirements: PaymentRequirements):
        require_network_of_family(payment_requirements.network, NetworkFamily.EVM)
        return to_x402_payload(payment), to_x402_requirements(payment_requirements)


class LocalEvmFacilitator:
    """In-process replacement for a remote facilitator on EVM networks.

    Verification recovers the EIP-712 signer of the authorization locally.
    Settlement submits ``transferWithAuthorization`` from the facilitator's
    own account, so ``private_key`` is only needed for :meth:`settle`.
    """

    def __init__(
        self,
        private_key: Optional[str] = None,
        chain_adapter: Optional[EvmChainAdapter] = None,
        registry: Optional[NetworkRegistry] = None,
        clock: Callable[[], float] = time.time
    ):
        self._private_key = private_key
        self.registry = registry
        self.chain_adapter = chain_adapter or EvmChainAdapter(registry)
        self._clock = clock

    async def verify(
        self,
        payment: PaymentPayload,
        payment_requirements: PaymentRequirements
    ) -> VerifyResponse:
        network_config = require_network_of_family(
            payment_requirements.network, NetworkFamily.EVM, self.registry
        )
        if not isinstance(payment.payload, ExactEvmPaymentPayload):
            raise MalformedPayloadError(
                f"Expected an EVM exact payload, got {type(payment.payload).__name__}"
            )

        authorization = payment.payload.authorization
        message = authorization_message(authorization)
        payer = message["from"]

        name, version = eip712_domain_for(payment_requirements.extra, network_config)
        typed_data = build_transfer_typed_data(
            message, name, version, network_config.chain_id, payment_requirements.asset
        )
        try:
            recovered = recover_typed_data_signer(typed_data, payment.payload.signature)
        except MalformedPayloadError:
            raise
        except Exception as e:
            logger.warning(f"Signature recovery failed for {payer}: {e}")
            recovered = None

        if recovered != payer:
            return VerifyResponse(
                is_valid=False,
                payer=payer,
                invalid_reason=(
                    f"Invalid signature: authorization not signed by {payer} "
                    f"for asset {payment_requirements.asset} on chain {network_config.chain_id}"
                ),
                error_code=X402ErrorCode.INVALID_SIGNATURE
            )

        if authorization.to.lower() != payment_requirements.pay_to.lower():
            return VerifyResponse(
                is_valid=False,
                payer=payer,
                invalid_reason=f"Recipient mismatch: expected {payment_requirements.pay_to}, got {authorization.to}",
                error_code=X402ErrorCode.RECIPIENT_MISMATCH
            )

        if int(authorization.value) != int(payment_requirements.max_amount_required):
            return VerifyResponse(
                is_valid=False,
                payer=payer,
                invalid_reason=(
                    f"Amount mismatch: expected {payment_requirements.max_amount_required}, "
                    f"got {authorization.value}"
                ),
                error_code=X402ErrorCode.INVALID_AMOUNT
            )

        now = int(self._clock())
        if message["validAfter"] > now:
            return VerifyResponse(
                is_valid=False,
                payer=payer,
                invalid_reason=f"Authorization not yet valid: valid after {message['validAfter']}, current time {now}",
                error_code=X402ErrorCode.EXPIRED_PAYMENT
            )
        if message["validBefore"] <= now:
            return VerifyResponse(
                is_valid=False,
                payer=payer,
                invalid_reason=f"Authorization expired: valid before {message['validBefore']}, current time {now}",
                error_code=X402ErrorCode.EXPIRED_PAYMENT
            )

        return VerifyResponse(is_valid=True, payer=payer)

    async def settle(
        self,
        payment: PaymentPayload,
        payment_requirements: PaymentRequirements
    ) -> SettleResponse:
        network = payment_requirements.network
        verify_response = await self.verify(payment, payment_requirements)
        if not verify_response.is_valid:
            return SettleResponse(
                success=False,
                network=network,
                payer=verify_response.payer,
                error_reason=f"Verification failed: {verify_response.invalid_reason}",
                error_code=verify_response.error_code
            )

        if not self._private_key:
            raise ConfigurationError("LocalEvmFacilitator needs a private key to settle payments")

        message = authorization_message(payment.payload.authorization)
        signature = bytes.fromhex(payment.payload.signature.removeprefix("0x"))
        payer = verify_response.payer

        try:
            submission = await self.chain_adapter.send_transfer_with_authorization(
                network, payment_requirements.asset, message, signature, self._private_key
            )
            if not submission.already_in_ledger:
                await self.chain_adapter.wait_for_confirmation(
                    network, submission.tx_id, payment_requirements.max_timeout_seconds
                )
        except (SubmissionError, TransactionRejectedError, ConfirmationTimeoutError) as e:
            logger.error(f"transferWithAuthorization settlement failed: {e}")
            return SettleResponse(
                success=False,
                network=network,
                payer=payer,
                error_reason=str(e),
                error_code=map_error_to_code(e)
            )

        logger.info(f"Settled {payment_requirements.max_amount_required} from {payer} in {submission.tx_id}")
        return SettleResponse(
            success=True,
            transaction=submission.tx_id,
            network=network,
            payer=payer
        )
