"""Chain adapter interface shared by the EVM and Algorand adapters."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from .networks import (
    NetworkConfig,
    NetworkFamily,
    NetworkRegistry,
    is_network_of_family,
    require_network_of_family
)


@dataclass(frozen=True)
class SubmissionResult:
    """Outcome of handing a signed transaction to a node.

    ``already_in_ledger`` is set when the node reported the transaction as a
    duplicate and ``tx_id`` was derived from the envelope instead.
    """
    tx_id: str
    already_in_ledger: bool = False


class ChainAdapter(ABC):
    """Uniform low-level access to the nodes of one chain family.

    Every call is an independent request; adapters keep no connection state
    between calls beyond the client objects they build per network.
    """

    family: NetworkFamily

    def __init__(self, registry: Optional[NetworkRegistry] = None):
        self.registry = registry

    def network_config(self, network: str) -> NetworkConfig:
        """Config for ``network``; ``UnsupportedNetworkError`` if not of this family."""
        return require_network_of_family(network, self.family, self.registry)

    def is_network_supported(self, network: str) -> bool:
        return is_network_of_family(network, self.family, self.registry)

    @abstractmethod
    async def get_suggested_fee_params(self, network: str) -> Any:
        """Fee and validity parameters for a new transaction."""

    @abstractmethod
    async def submit_raw_transaction(self, network: str, signed_txn: Any) -> SubmissionResult:
        """Send a signed transaction; duplicates resolve to the original id."""

    @abstractmethod
    async def wait_for_confirmation(self, network: str, tx_id: str, timeout: int) -> dict:
        """Block until ``tx_id`` is confirmed or ``timeout`` chain units elapse."""

    @abstractmethod
    async def get_current_round(self, network: str) -> int:
        """Latest round (Algorand) or block number (EVM)."""
