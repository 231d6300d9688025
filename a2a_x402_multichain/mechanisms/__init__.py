"""Exact payment schemes per chain family, and the dispatch between them."""

from typing import Optional

from ..chains.networks import NetworkFamily, NetworkRegistry, network_family
from .base import ExactScheme
from .evm import ExactEvmScheme, to_x402_payload, to_x402_requirements
from .algorand import (
    AlgorandAccount,
    AlgorandExactScheme,
    build_opt_in_transaction,
    decode_signed_transaction,
    encode_note,
    has_valid_signature
)


def get_scheme_for_network(
    network: str,
    facilitator_client=None,
    chain_adapter=None,
    registry: Optional[NetworkRegistry] = None
) -> ExactScheme:
    """Scheme implementation for ``network``'s chain family.

    ``facilitator_client`` is used by EVM networks and ``chain_adapter`` by
    Algorand networks; either may be omitted to get the defaults.
    Unknown networks raise ``UnsupportedNetworkError``.
    """
    family = network_family(network, registry)
    if family == NetworkFamily.ALGORAND:
        return AlgorandExactScheme(chain_adapter=chain_adapter, registry=registry)
    return ExactEvmScheme(facilitator_client=facilitator_client, registry=registry)


__all__ = [
    "ExactScheme",
    "ExactEvmScheme",
    "AlgorandExactScheme",
    "AlgorandAccount",
    "to_x402_payload",
    "to_x402_requirements",
    "build_opt_in_transaction",
    "decode_signed_transaction",
    "encode_note",
    "has_valid_signature",
    "get_scheme_for_network"
]
