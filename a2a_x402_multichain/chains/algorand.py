"""Algorand chain adapter backed by py-algorand-sdk's algod client."""

import asyncio
import logging
from typing import Any, Callable, Optional, Union

from algosdk import encoding
from algosdk.error import AlgodHTTPError
from algosdk.transaction import SignedTransaction, SuggestedParams
from algosdk.v2client import algod

from ..types.errors import (
    ConfirmationTimeoutError,
    DuplicateTransactionError,
    SubmissionError,
    TransactionRejectedError,
    TransportError
)
from .base import ChainAdapter, SubmissionResult
from .networks import NetworkConfig, NetworkFamily, NetworkRegistry

logger = logging.getLogger(__name__)


_ALREADY_IN_LEDGER = "already in ledger"


def _default_client_factory(config: NetworkConfig) -> algod.AlgodClient:
    return algod.AlgodClient(config.node_token, config.node_url)


class AlgorandChainAdapter(ChainAdapter):
    """Suggested params, submission and confirmation polling against algod.

    Args:
        registry: Network registry to read node endpoints from; the default
            registry when omitted.
        client_factory: Builds an algod client for a network config. Tests
            pass a factory returning a stub client.
    """

    family = NetworkFamily.ALGORAND

    def __init__(
        self,
        registry: Optional[NetworkRegistry] = None,
        client_factory: Optional[Callable[[NetworkConfig], Any]] = None
    ):
        super().__init__(registry)
        self._client_factory = client_factory or _default_client_factory

    def get_client(self, network: str):
        return self._client_factory(self.network_config(network))

    async def _call(self, network: str, operation: str, fn, *args):
        try:
            return await asyncio.to_thread(fn, *args)
        except OSError as e:
            raise TransportError(f"algod {operation} failed on {network}: {e}") from e

    async def get_suggested_fee_params(self, network: str) -> SuggestedParams:
        client = self.get_client(network)
        try:
            return await self._call(network, "suggested_params", client.suggested_params)
        except AlgodHTTPError as e:
            raise TransportError(f"Failed to fetch suggested params on {network}: {e}") from e

    async def get_current_round(self, network: str) -> int:
        client = self.get_client(network)
        try:
            status = await self._call(network, "status", client.status)
        except AlgodHTTPError as e:
            raise TransportError(f"Failed to fetch node status on {network}: {e}") from e
        return int(status["last-round"])

    async def submit_raw_transaction(
        self,
        network: str,
        signed_txn: Union[str, SignedTransaction]
    ) -> SubmissionResult:
        """Submit a signed transaction given as base64 msgpack or SDK object.

        A node answer of "already in ledger" is not an error: the id is
        derived from the envelope and returned with ``already_in_ledger`` set.
        """
        client = self.get_client(network)
        if isinstance(signed_txn, SignedTransaction):
            signed_b64 = encoding.msgpack_encode(signed_txn)
        else:
            signed_b64 = signed_txn

        try:
            tx_id = await self._call(network, "send_raw_transaction", client.send_raw_transaction, signed_b64)
        except AlgodHTTPError as e:
            message = str(e)
            if _ALREADY_IN_LEDGER in message.lower():
                tx_id = self._derive_txid(signed_txn)
                logger.info(f"Transaction {tx_id} already in ledger on {network}")
                return SubmissionResult(tx_id=tx_id, already_in_ledger=True)
            raise SubmissionError(f"Transaction submission failed: {message}") from e

        logger.info(f"Submitted transaction {tx_id} to {network}")
        return SubmissionResult(tx_id=tx_id)

    @staticmethod
    def _derive_txid(signed_txn: Union[str, SignedTransaction]) -> str:
        try:
            if not isinstance(signed_txn, SignedTransaction):
                signed_txn = encoding.msgpack_decode(signed_txn)
            return signed_txn.get_txid()
        except Exception as e:
            raise DuplicateTransactionError(
                "Transaction already in ledger and its id cannot be derived from the envelope"
            ) from e

    async def wait_for_confirmation(self, network: str, tx_id: str, timeout: int) -> dict:
        """Poll pending info once per round for at most ``timeout`` rounds.

        Returns the pending-transaction info once ``confirmed-round`` is set.
        Raises ``TransactionRejectedError`` on a pool error and
        ``ConfirmationTimeoutError`` when the round budget runs out.
        """
        client = self.get_client(network)
        start_round = await self.get_current_round(network)
        current_round = start_round

        while current_round < start_round + timeout:
            try:
                info = await self._call(network, "pending_transaction_info", client.pending_transaction_info, tx_id)
            except AlgodHTTPError as e:
                if e.code != 404:
                    raise TransportError(f"Failed to poll transaction {tx_id}: {e}") from e
                # Not yet visible to this node.
                info = {}

            if info.get("confirmed-round", 0) > 0:
                logger.info(f"Transaction {tx_id} confirmed in round {info['confirmed-round']}")
                return info
            if info.get("pool-error"):
                raise TransactionRejectedError(f"Transaction rejected: {info['pool-error']}")

            try:
                await self._call(network, "status_after_block", client.status_after_block, current_round)
            except AlgodHTTPError as e:
                raise TransportError(f"Failed to wait for round {current_round}: {e}") from e
            current_round += 1

        raise ConfirmationTimeoutError(tx_id, timeout)

    async def is_opted_in(self, network: str, address: str, asset_id: int) -> bool:
        """True if ``address`` holds an opt-in for ASA ``asset_id``."""
        client = self.get_client(network)
        try:
            await self._call(network, "account_asset_info", client.account_asset_info, address, asset_id)
        except AlgodHTTPError as e:
            if e.code == 404:
                return False
            raise TransportError(f"Failed to read asset holding of {address}: {e}") from e
        return True

    async def get_minimum_balance(self, network: str, address: str) -> int:
        """Minimum microAlgo balance the account must keep."""
        client = self.get_client(network)
        try:
            info = await self._call(network, "account_info", client.account_info, address)
        except AlgodHTTPError as e:
            raise TransportError(f"Failed to read account {address}: {e}") from e
        return int(info.get("min-balance", 0))
