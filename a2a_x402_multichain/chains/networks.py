"""Per-network configuration tables and lookups."""

import math
import os
from enum import Enum
from types import MappingProxyType
from typing import Iterator, Mapping, Optional

from pydantic import BaseModel, ConfigDict

from ..types.errors import UnsupportedNetworkError


class NetworkFamily(str, Enum):
    """Chain families that share one signing and settlement mechanism."""
    EVM = "evm"
    ALGORAND = "algorand"


class AssetConfig(BaseModel):
    """Default payment asset of a network (a USDC-class stablecoin)."""
    model_config = ConfigDict(frozen=True)

    asset: str                       # contract address (EVM) or ASA index (Algorand)
    decimals: int = 6
    eip712_name: Optional[str] = None
    eip712_version: Optional[str] = None

    def eip712_domain(self) -> Optional[dict]:
        if self.eip712_name is None:
            return None
        return {"name": self.eip712_name, "version": self.eip712_version or "1"}


class NetworkConfig(BaseModel):
    """Connection parameters and identifiers for one network."""
    model_config = ConfigDict(frozen=True)

    name: str
    family: NetworkFamily
    node_url: str
    node_token: str = ""
    chain_id: Optional[int] = None
    genesis_id: Optional[str] = None
    genesis_hash: Optional[str] = None
    default_asset: Optional[AssetConfig] = None
    average_block_seconds: float = 2.0


ALGORAND_ROUND_SECONDS = 4.5

# Upper bound on lastValid - firstValid accepted by algod.
ALGORAND_MAX_VALID_ROUNDS = 1000


_DEFAULT_NETWORKS = (
    NetworkConfig(
        name="base",
        family=NetworkFamily.EVM,
        node_url="https://mainnet.base.org",
        chain_id=8453,
        default_asset=AssetConfig(
            asset="0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
            eip712_name="USD Coin",
            eip712_version="2",
        ),
    ),
    NetworkConfig(
        name="base-sepolia",
        family=NetworkFamily.EVM,
        node_url="https://sepolia.base.org",
        chain_id=84532,
        default_asset=AssetConfig(
            asset="0x036CbD53842c5426634e7929541eC2318f3dCF7e",
            eip712_name="USDC",
            eip712_version="2",
        ),
    ),
    NetworkConfig(
        name="avalanche",
        family=NetworkFamily.EVM,
        node_url="https://api.avax.network/ext/bc/C/rpc",
        chain_id=43114,
        default_asset=AssetConfig(
            asset="0xB97EF9Ef8734C71904D8002F8b6Bc66Dd9c48a6E",
            eip712_name="USD Coin",
            eip712_version="2",
        ),
    ),
    NetworkConfig(
        name="avalanche-fuji",
        family=NetworkFamily.EVM,
        node_url="https://api.avax-test.network/ext/bc/C/rpc",
        chain_id=43113,
        default_asset=AssetConfig(
            asset="0x5425890298aed601595a70AB815c96711a31Bc65",
            eip712_name="USD Coin",
            eip712_version="2",
        ),
    ),
    NetworkConfig(
        name="algorand-mainnet",
        family=NetworkFamily.ALGORAND,
        node_url="https://mainnet-api.algonode.cloud",
        genesis_id="mainnet-v1.0",
        genesis_hash="wGHE2Pwdvd7S12BL5FaOP20EGYesN73ktiC1qzkkit8=",
        default_asset=AssetConfig(asset="31566704"),
        average_block_seconds=ALGORAND_ROUND_SECONDS,
    ),
    NetworkConfig(
        name="algorand-testnet",
        family=NetworkFamily.ALGORAND,
        node_url="https://testnet-api.algonode.cloud",
        genesis_id="testnet-v1.0",
        genesis_hash="SGO1GKSzyE7IEPItTxCByw9x8FmnrCDexi9/cOUJOiI=",
        default_asset=AssetConfig(asset="10458941"),
        average_block_seconds=ALGORAND_ROUND_SECONDS,
    ),
    NetworkConfig(
        name="algorand-betanet",
        family=NetworkFamily.ALGORAND,
        node_url="https://betanet-api.algonode.cloud",
        genesis_id="betanet-v1.0",
        genesis_hash="mFgazF+2uRS1tMiL9dsj01hJGySEmPN28B/TjjvpVW0=",
        average_block_seconds=ALGORAND_ROUND_SECONDS,
    ),
)


class NetworkRegistry(Mapping):
    """Read-only mapping of network identifier to :class:`NetworkConfig`."""

    def __init__(self, networks):
        self._networks = MappingProxyType({n.name: n for n in networks})

    def __getitem__(self, network: str) -> NetworkConfig:
        return self._networks[network]

    def __iter__(self) -> Iterator[str]:
        return iter(self._networks)

    def __len__(self) -> int:
        return len(self._networks)

    def get_network_config(self, network: str) -> NetworkConfig:
        try:
            return self._networks[network]
        except KeyError:
            raise UnsupportedNetworkError(network) from None

    def networks_of_family(self, family: NetworkFamily) -> list[str]:
        return [name for name, cfg in self._networks.items() if cfg.family == family]


def _env_suffix(network: str) -> str:
    # "algorand-testnet" -> "TESTNET", "base-sepolia" -> "BASE_SEPOLIA"
    if network.startswith("algorand-"):
        network = network[len("algorand-"):]
    return network.upper().replace("-", "_")


def load_network_registry(environ: Optional[Mapping[str, str]] = None) -> NetworkRegistry:
    """Build a registry from the defaults plus endpoint overrides.

    Recognized variables, with ``<NET>`` derived from the network name
    (``algorand-testnet`` -> ``TESTNET``, ``base-sepolia`` -> ``BASE_SEPOLIA``):
    ``ALGOD_<NET>_URL``, ``ALGOD_<NET>_TOKEN`` and
    ``EVM_<NET>_RPC_URL``.
    """
    if environ is None:
        environ = os.environ

    networks = []
    for cfg in _DEFAULT_NETWORKS:
        suffix = _env_suffix(cfg.name)
        updates = {}
        if cfg.family == NetworkFamily.ALGORAND:
            if environ.get(f"ALGOD_{suffix}_URL"):
                updates["node_url"] = environ[f"ALGOD_{suffix}_URL"]
            if environ.get(f"ALGOD_{suffix}_TOKEN"):
                updates["node_token"] = environ[f"ALGOD_{suffix}_TOKEN"]
        elif environ.get(f"EVM_{suffix}_RPC_URL"):
            updates["node_url"] = environ[f"EVM_{suffix}_RPC_URL"]
        networks.append(cfg.model_copy(update=updates) if updates else cfg)
    return NetworkRegistry(networks)


_default_registry: Optional[NetworkRegistry] = None


def default_registry() -> NetworkRegistry:
    """Registry built from the process environment on first use."""
    global _default_registry
    if _default_registry is None:
        _default_registry = load_network_registry(os.environ)
    return _default_registry


def get_network_config(network: str, registry: Optional[NetworkRegistry] = None) -> NetworkConfig:
    if registry is None:
        registry = default_registry()
    return registry.get_network_config(network)


def network_family(network: str, registry: Optional[NetworkRegistry] = None) -> NetworkFamily:
    return get_network_config(network, registry).family


def is_network_of_family(network: str, family: NetworkFamily, registry: Optional[NetworkRegistry] = None) -> bool:
    """True if ``network`` is configured and belongs to ``family``."""
    if registry is None:
        registry = default_registry()
    cfg = registry.get(network)
    return cfg is not None and cfg.family == NetworkFamily(family)


def is_algorand_network(network: str, registry: Optional[NetworkRegistry] = None) -> bool:
    return is_network_of_family(network, NetworkFamily.ALGORAND, registry)


def is_evm_network(network: str, registry: Optional[NetworkRegistry] = None) -> bool:
    return is_network_of_family(network, NetworkFamily.EVM, registry)


def require_network_of_family(
    network: str,
    family: NetworkFamily,
    registry: Optional[NetworkRegistry] = None
) -> NetworkConfig:
    """Config of ``network``, failing unless it belongs to ``family``."""
    cfg = get_network_config(network, registry)
    if cfg.family != family:
        raise UnsupportedNetworkError(
            network, f"Network {network} is not an {family.value} network"
        )
    return cfg


def algorand_valid_rounds(max_timeout_seconds: int) -> int:
    """Number of rounds covering ``max_timeout_seconds``, at least one."""
    rounds = math.ceil(max_timeout_seconds / ALGORAND_ROUND_SECONDS)
    return max(1, min(rounds, ALGORAND_MAX_VALID_ROUNDS))
