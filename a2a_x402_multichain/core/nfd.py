"""NFDomains (.algo name) resolution for Algorand payment recipients."""

import logging
from typing import Optional
from urllib.parse import quote

import httpx
from algosdk import encoding

from ..chains.networks import NetworkFamily, NetworkRegistry, require_network_of_family
from ..types import (
    AddressResolutionError,
    NFDNoDepositAccountError,
    NFDNotFoundError,
    NFDNotOwnedError,
    TransportError,
    UnsupportedNetworkError
)

logger = logging.getLogger(__name__)


NFD_API_ENDPOINTS = {
    "algorand-mainnet": "https://api.nf.domains",
    "algorand-testnet": "https://api.testnet.nf.domains",
    # BetaNet names live on the TestNet registry.
    "algorand-betanet": "https://api.testnet.nf.domains",
}


def is_nfd_name(name: str) -> bool:
    """True for names like ``alice.algo`` or ``wallet.alice.algo``."""
    return isinstance(name, str) and (name.endswith(".algo") or ".algo." in name)


class NFDResolver:
    """Maps NFD names to deposit addresses and addresses back to names.

    Args:
        http_client: Optional shared ``httpx.AsyncClient``; a short-lived
            client is opened per request otherwise.
        endpoints: Override of the per-network API base URLs.
        timeout: Request timeout in seconds for self-opened clients.
    """

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        endpoints: Optional[dict[str, str]] = None,
        registry: Optional[NetworkRegistry] = None,
        timeout: float = 10.0
    ):
        self._http_client = http_client
        self._endpoints = dict(endpoints or NFD_API_ENDPOINTS)
        self.registry = registry
        self._timeout = timeout

    def _endpoint(self, network: str) -> str:
        require_network_of_family(network, NetworkFamily.ALGORAND, self.registry)
        try:
            return self._endpoints[network].rstrip("/")
        except KeyError:
            raise UnsupportedNetworkError(
                network, f"No NFD API endpoint configured for network: {network}"
            ) from None

    async def _get(self, url: str, params: Optional[dict] = None) -> httpx.Response:
        headers = {"Accept": "application/json"}
        try:
            if self._http_client is not None:
                return await self._http_client.get(url, params=params, headers=headers)
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                return await client.get(url, params=params, headers=headers)
        except httpx.HTTPError as e:
            raise TransportError(f"NFD API request failed: {e}") from e

    async def get_info(self, name: str, network: str = "algorand-mainnet") -> dict:
        """Full NFD record (owner, depositAccount, state, verified accounts)."""
        if not is_nfd_name(name):
            raise AddressResolutionError(f"Invalid NFD name: {name}. NFD names must end with .algo")

        url = f"{self._endpoint(network)}/nfd/{quote(name, safe='')}"
        response = await self._get(url)
        if response.status_code == 404:
            raise NFDNotFoundError(f"NFD not found: {name}")
        if response.status_code != 200:
            raise TransportError(f"NFD API error: {response.status_code} {response.reason_phrase}")
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"NFD API returned invalid JSON: {e}") from e

    async def resolve(self, name: str, network: str = "algorand-mainnet") -> str:
        """Deposit address of an owned NFD."""
        data = await self.get_info(name, network)

        state = data.get("state")
        if state != "owned":
            raise NFDNotOwnedError(f'NFD "{name}" is not owned (state: {state}). Cannot resolve address.')

        address = data.get("depositAccount")
        if not address:
            raise NFDNoDepositAccountError(
                f'NFD "{name}" has no deposit account configured. Owner address: {data.get("owner")}'
            )
        if not encoding.is_valid_address(address):
            raise AddressResolutionError(f"Resolved address is invalid: {address}")

        logger.info(f"Resolved {name} to {address} on {network}")
        return address

    async def resolve_address(self, address_or_name: str, network: str = "algorand-mainnet") -> str:
        """Return a chain address unchanged, or resolve an NFD name."""
        if encoding.is_valid_address(address_or_name):
            return address_or_name
        if is_nfd_name(address_or_name):
            return await self.resolve(address_or_name, network)
        raise AddressResolutionError(
            f"Invalid Algorand address or NFD name: {address_or_name}. "
            "Expected either a 58-character Algorand address or an NFD name ending with .algo"
        )

    async def reverse_resolve(self, address: str, network: str = "algorand-mainnet") -> Optional[str]:
        """NFD name linked to ``address``, or None when there is none."""
        if not encoding.is_valid_address(address):
            raise AddressResolutionError(f"Invalid Algorand address: {address}")

        url = f"{self._endpoint(network)}/nfd/lookup"
        response = await self._get(url, params={"address": address, "view": "tiny"})
        if response.status_code == 404:
            return None
        if response.status_code != 200:
            raise TransportError(f"NFD API error: {response.status_code} {response.reason_phrase}")
        try:
            data = response.json()
        except ValueError as e:
            raise TransportError(f"NFD API returned invalid JSON: {e}") from e

        entry = data.get(address) if isinstance(data, dict) else None
        if not entry or not entry.get("name"):
            return None
        return entry["name"]
