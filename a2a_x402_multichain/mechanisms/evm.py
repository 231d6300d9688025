"""Exact scheme on EVM networks: EIP-3009 authorizations signed with ``x402.exact``."""

import logging
from typing import Optional

from eth_account.signers.local import LocalAccount
from pydantic import ValidationError as PydanticValidationError
from x402 import types as x402_types
from x402.common import x402_VERSION
from x402.exact import prepare_payment_header, sign_payment_header, decode_payment

from ..chains.evm import eip712_domain_for
from ..chains.networks import NetworkFamily, NetworkRegistry
from ..types import (
    MalformedPayloadError,
    PaymentPayload,
    PaymentRequirements,
    SettleResponse,
    UnsupportedNetworkError,
    VerifyResponse,
    X402ErrorCode
)
from .base import ExactScheme

logger = logging.getLogger(__name__)


def to_x402_requirements(requirements: PaymentRequirements) -> x402_types.PaymentRequirements:
    """Requirements as the ``x402`` library's model.

    Raises:
        UnsupportedNetworkError: the library does not know the network
    """
    try:
        return x402_types.PaymentRequirements.model_validate(
            requirements.model_dump(by_alias=True, exclude_none=True)
        )
    except PydanticValidationError as e:
        raise UnsupportedNetworkError(
            requirements.network, f"x402 cannot handle requirements on {requirements.network}: {e}"
        ) from e


def to_x402_payload(payload: PaymentPayload) -> x402_types.PaymentPayload:
    """Payload as the ``x402`` library's model.

    Raises:
        MalformedPayloadError: the payload is not an EIP-3009 payload
    """
    try:
        return x402_types.PaymentPayload.model_validate(
            payload.model_dump(by_alias=True, exclude_none=True)
        )
    except PydanticValidationError as e:
        raise MalformedPayloadError(f"Payload is not an exact EVM payload: {e}") from e


class ExactEvmScheme(ExactScheme):
    """EVM exact payments.

    Signing goes through ``x402.exact``. Verification and settlement are
    delegated to a facilitator: a remote :class:`FacilitatorClient` unless
    another object with the same ``verify``/``settle`` coroutines is supplied
    (for example :class:`LocalEvmFacilitator`).
    """

    family = NetworkFamily.EVM

    def __init__(self, facilitator_client=None, registry: Optional[NetworkRegistry] = None):
        super().__init__(registry)
        self._facilitator_client = facilitator_client

    @property
    def facilitator_client(self):
        if self._facilitator_client is None:
            # Import here to avoid circular imports
            from ..core.facilitator import FacilitatorClient
            self._facilitator_client = FacilitatorClient()
        return self._facilitator_client

    async def sign(
        self,
        requirements: PaymentRequirements,
        account: LocalAccount,
        max_value: Optional[int] = None
    ) -> PaymentPayload:
        network_config = self.network_config(requirements.network)
        self.check_max_value(requirements, max_value)

        # x402.exact reads the token's EIP-712 domain from extra
        name, version = eip712_domain_for(requirements.extra, network_config)
        x402_requirements = to_x402_requirements(requirements.model_copy(
            update={"extra": {**(requirements.extra or {}), "name": name, "version": version}}
        ))

        unsigned_payload = prepare_payment_header(
            sender_address=account.address,
            x402_version=x402_VERSION,
            payment_requirements=x402_requirements
        )
        nonce_raw = unsigned_payload["payload"]["authorization"]["nonce"]
        if isinstance(nonce_raw, bytes):
            unsigned_payload["payload"]["authorization"]["nonce"] = nonce_raw.hex()

        signed_base64 = sign_payment_header(
            account=account,
            payment_requirements=x402_requirements,
            header=unsigned_payload
        )
        payload = PaymentPayload.model_validate(decode_payment(signed_base64))
        logger.info(
            f"Signed {requirements.max_amount_required} to {requirements.pay_to} on {requirements.network}"
        )
        return payload

    async def verify(self, payload: PaymentPayload, requirements: PaymentRequirements) -> VerifyResponse:
        self.network_config(requirements.network)
        mismatch = self.check_payload_target(payload, requirements)
        if mismatch is not None:
            return mismatch
        return await self.facilitator_client.verify(payload, requirements)

    async def settle(self, payload: PaymentPayload, requirements: PaymentRequirements) -> SettleResponse:
        verify_response = await self.verify(payload, requirements)
        if not verify_response.is_valid:
            return SettleResponse(
                success=False,
                network=requirements.network,
                payer=verify_response.payer,
                error_reason=f"Verification failed: {verify_response.invalid_reason}",
                error_code=verify_response.error_code
            )

        settle_response = await self.facilitator_client.settle(payload, requirements)
        return SettleResponse(
            success=settle_response.success,
            transaction=settle_response.transaction,
            network=settle_response.network or requirements.network,
            payer=settle_response.payer or verify_response.payer,
            error_reason=settle_response.error_reason,
            error_code=settle_response.error_code or (
                None if settle_response.success else X402ErrorCode.SETTLEMENT_FAILED
            )
        )
