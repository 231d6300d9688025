"""Interface implemented by each chain family's exact payment scheme."""

from abc import ABC, abstractmethod
from typing import Any, Optional

from ..chains.networks import NetworkFamily, NetworkRegistry, require_network_of_family
from ..types import (
    AmountExceedsMaxError,
    PaymentPayload,
    PaymentRequirements,
    SettleResponse,
    VerifyResponse,
    X402ErrorCode
)


class ExactScheme(ABC):
    """Sign, verify and settle "exact" payments for one chain family."""

    scheme = "exact"
    family: NetworkFamily

    def __init__(self, registry: Optional[NetworkRegistry] = None):
        self.registry = registry

    def network_config(self, network: str):
        return require_network_of_family(network, self.family, self.registry)

    @staticmethod
    def check_max_value(requirements: PaymentRequirements, max_value: Optional[int]) -> None:
        """Refuse to sign more than the caller authorized."""
        if max_value is None:
            return
        required_amount = int(requirements.max_amount_required)
        if required_amount > max_value:
            raise AmountExceedsMaxError(required_amount, max_value)

    @staticmethod
    def check_payload_target(
        payload: PaymentPayload,
        requirements: PaymentRequirements
    ) -> Optional[VerifyResponse]:
        """Invalid result if the payload targets another scheme or network."""
        if payload.scheme != requirements.scheme or payload.network != requirements.network:
            return VerifyResponse(
                is_valid=False,
                invalid_reason=(
                    f"Network mismatch: expected {requirements.scheme}/{requirements.network}, "
                    f"got {payload.scheme}/{payload.network}"
                ),
                error_code=X402ErrorCode.NETWORK_MISMATCH
            )
        return None

    @abstractmethod
    async def sign(
        self,
        requirements: PaymentRequirements,
        account: Any,
        max_value: Optional[int] = None
    ) -> PaymentPayload:
        """Produce a signed payload satisfying ``requirements``."""

    @abstractmethod
    async def verify(self, payload: PaymentPayload, requirements: PaymentRequirements) -> VerifyResponse:
        """Validate ``payload`` against ``requirements`` without trusting it."""

    @abstractmethod
    async def settle(self, payload: PaymentPayload, requirements: PaymentRequirements) -> SettleResponse:
        """Verify, then execute the transfer on chain."""
