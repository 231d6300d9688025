"""Core protocol operations for x402 payment verification and settlement."""

from typing import Optional

from ..chains.networks import NetworkRegistry
from ..mechanisms import get_scheme_for_network
from ..types import (
    PaymentPayload,
    PaymentRequirements,
    SettleResponse,
    VerifyResponse
)


async def verify_payment(
    payment_payload: PaymentPayload,
    payment_requirements: PaymentRequirements,
    facilitator_client=None,
    chain_adapter=None,
    registry: Optional[NetworkRegistry] = None
) -> VerifyResponse:
    """Verify a payment against the requirements it claims to satisfy.

    EVM payloads go to the facilitator; Algorand payloads are checked locally
    against the chain adapter's node.

    Args:
        payment_payload: Signed payment authorization
        payment_requirements: Payment requirements to verify against
        facilitator_client: Facilitator for EVM networks (default: remote FacilitatorClient)
        chain_adapter: AlgorandChainAdapter for Algorand networks
        registry: Network registry (default: process-wide registry)

    Returns:
        VerifyResponse with is_valid status and invalid_reason if applicable

    Raises:
        MalformedPayloadError: the payload cannot be decoded
        TransportError: the facilitator or node could not be reached
    """
    scheme = get_scheme_for_network(
        payment_requirements.network,
        facilitator_client=facilitator_client,
        chain_adapter=chain_adapter,
        registry=registry
    )
    return await scheme.verify(payment_payload, payment_requirements)


async def settle_payment(
    payment_payload: PaymentPayload,
    payment_requirements: PaymentRequirements,
    facilitator_client=None,
    chain_adapter=None,
    registry: Optional[NetworkRegistry] = None
) -> SettleResponse:
    """Settle payment on blockchain.

    The payload is verified again first; an invalid payload is never
    submitted.

    Args:
        payment_payload: Signed payment authorization
        payment_requirements: Payment requirements for settlement
        facilitator_client: Facilitator for EVM networks (default: remote FacilitatorClient)
        chain_adapter: AlgorandChainAdapter for Algorand networks
        registry: Network registry (default: process-wide registry)

    Returns:
        SettleResponse with settlement result and transaction id
    """
    scheme = get_scheme_for_network(
        payment_requirements.network,
        facilitator_client=facilitator_client,
        chain_adapter=chain_adapter,
        registry=registry
    )
    return await scheme.settle(payment_payload, payment_requirements)
