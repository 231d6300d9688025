"""Network configuration and chain adapters."""

from .networks import (
    NetworkFamily,
    AssetConfig,
    NetworkConfig,
    NetworkRegistry,
    ALGORAND_ROUND_SECONDS,
    ALGORAND_MAX_VALID_ROUNDS,
    default_registry,
    load_network_registry,
    get_network_config,
    network_family,
    is_network_of_family,
    is_algorand_network,
    is_evm_network,
    require_network_of_family,
    algorand_valid_rounds
)
from .base import ChainAdapter, SubmissionResult
from .algorand import AlgorandChainAdapter
from .evm import (
    EvmChainAdapter,
    authorization_message,
    build_transfer_typed_data,
    eip712_domain_for,
    recover_typed_data_signer
)

__all__ = [
    "NetworkFamily",
    "AssetConfig",
    "NetworkConfig",
    "NetworkRegistry",
    "ALGORAND_ROUND_SECONDS",
    "ALGORAND_MAX_VALID_ROUNDS",
    "default_registry",
    "load_network_registry",
    "get_network_config",
    "network_family",
    "is_network_of_family",
    "is_algorand_network",
    "is_evm_network",
    "require_network_of_family",
    "algorand_valid_rounds",
    "ChainAdapter",
    "SubmissionResult",
    "AlgorandChainAdapter",
    "EvmChainAdapter",
    "authorization_message",
    "build_transfer_typed_data",
    "eip712_domain_for",
    "recover_typed_data_signer"
]
