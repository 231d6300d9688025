"""EVM chain adapter backed by web3.py."""

import asyncio
import json
import logging
from typing import Any, Callable, Optional

from eth_account import Account
from eth_account.messages import encode_typed_data
from web3 import Web3
from web3.exceptions import TimeExhausted, Web3RPCError

from ..types.errors import (
    ConfirmationTimeoutError,
    InvalidAssetError,
    MalformedPayloadError,
    SubmissionError,
    TransactionRejectedError,
    TransportError
)
from .base import ChainAdapter, SubmissionResult
from .networks import NetworkConfig, NetworkFamily, NetworkRegistry

logger = logging.getLogger(__name__)


# EIP-3009 transferWithAuthorization, the only call the settler makes.
TRANSFER_WITH_AUTHORIZATION_ABI = json.loads(
    """
[
    {
        "inputs": [
            {"name": "from", "type": "address"},
            {"name": "to", "type": "address"},
            {"name": "value", "type": "uint256"},
            {"name": "validAfter", "type": "uint256"},
            {"name": "validBefore", "type": "uint256"},
            {"name": "nonce", "type": "bytes32"},
            {"name": "signature", "type": "bytes"}
        ],
        "name": "transferWithAuthorization",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function"
    }
]
"""
)

TRANSFER_GAS_LIMIT = 200000

TRANSFER_WITH_AUTHORIZATION_TYPES = {
    "EIP712Domain": [
        {"name": "name", "type": "string"},
        {"name": "version", "type": "string"},
        {"name": "chainId", "type": "uint256"},
        {"name": "verifyingContract", "type": "address"},
    ],
    "TransferWithAuthorization": [
        {"name": "from", "type": "address"},
        {"name": "to", "type": "address"},
        {"name": "value", "type": "uint256"},
        {"name": "validAfter", "type": "uint256"},
        {"name": "validBefore", "type": "uint256"},
        {"name": "nonce", "type": "bytes32"},
    ],
}


def authorization_message(authorization) -> dict:
    """Typed EIP-3009 message values from an ``EIP3009Authorization``."""
    try:
        nonce = bytes.fromhex(authorization.nonce.removeprefix("0x"))
        if len(nonce) != 32:
            raise ValueError("nonce must be 32 bytes")
        return {
            "from": Web3.to_checksum_address(authorization.from_),
            "to": Web3.to_checksum_address(authorization.to),
            "value": int(authorization.value),
            "validAfter": int(authorization.valid_after),
            "validBefore": int(authorization.valid_before),
            "nonce": nonce,
        }
    except ValueError as e:
        raise MalformedPayloadError(f"Invalid EIP-3009 authorization: {e}") from e


def build_transfer_typed_data(
    message: dict,
    domain_name: str,
    domain_version: str,
    chain_id: int,
    verifying_contract: str
) -> dict:
    """Full EIP-712 structure for ``TransferWithAuthorization``."""
    try:
        verifying_contract = Web3.to_checksum_address(verifying_contract)
    except ValueError as e:
        raise InvalidAssetError(f"Invalid EVM asset address: {verifying_contract}") from e
    return {
        "types": TRANSFER_WITH_AUTHORIZATION_TYPES,
        "primaryType": "TransferWithAuthorization",
        "domain": {
            "name": domain_name,
            "version": domain_version,
            "chainId": chain_id,
            "verifyingContract": verifying_contract,
        },
        "message": message,
    }


def eip712_domain_for(extra: Optional[dict], network_config: NetworkConfig) -> tuple[str, str]:
    """Token domain name and version: ``extra`` first, then the network's asset."""
    extra = extra or {}
    default = network_config.default_asset.eip712_domain() if network_config.default_asset else None
    default = default or {"name": "USD Coin", "version": "2"}
    return extra.get("name", default["name"]), extra.get("version", default["version"])


def recover_typed_data_signer(full_message: dict, signature: str) -> str:
    """Checksum address that produced ``signature`` over ``full_message``."""
    try:
        signature_bytes = bytes.fromhex(signature.removeprefix("0x"))
    except ValueError as e:
        raise MalformedPayloadError(f"Signature is not hex: {e}") from e
    return Account.recover_message(encode_typed_data(full_message=full_message), signature=signature_bytes)


_ALREADY_KNOWN = "already known"


def _default_web3_factory(config: NetworkConfig) -> Web3:
    return Web3(Web3.HTTPProvider(config.node_url, request_kwargs={"timeout": 120}))


class EvmChainAdapter(ChainAdapter):
    """Fee data, raw submission and receipt polling over JSON-RPC.

    Confirmation timeouts are expressed in seconds.
    """

    family = NetworkFamily.EVM

    def __init__(
        self,
        registry: Optional[NetworkRegistry] = None,
        web3_factory: Optional[Callable[[NetworkConfig], Any]] = None
    ):
        super().__init__(registry)
        self._web3_factory = web3_factory or _default_web3_factory

    def get_web3(self, network: str) -> Web3:
        return self._web3_factory(self.network_config(network))

    async def _call(self, network: str, operation: str, fn, *args, **kwargs):
        try:
            return await asyncio.to_thread(fn, *args, **kwargs)
        except OSError as e:
            raise TransportError(f"RPC {operation} failed on {network}: {e}") from e

    async def get_suggested_fee_params(self, network: str) -> dict:
        """EIP-1559 fee fields plus the chain id for a new transaction."""
        w3 = self.get_web3(network)
        latest_block = await self._call(network, "get_block", w3.eth.get_block, "latest")
        max_priority_fee = await self._call(network, "max_priority_fee", lambda: w3.eth.max_priority_fee)
        return {
            "maxPriorityFeePerGas": max_priority_fee,
            "maxFeePerGas": max_priority_fee + 2 * latest_block["baseFeePerGas"],
            "chainId": self.network_config(network).chain_id,
        }

    async def get_current_round(self, network: str) -> int:
        w3 = self.get_web3(network)
        return int(await self._call(network, "block_number", lambda: w3.eth.block_number))

    async def submit_raw_transaction(self, network: str, signed_txn: bytes) -> SubmissionResult:
        w3 = self.get_web3(network)
        try:
            tx_hash = await self._call(network, "send_raw_transaction", w3.eth.send_raw_transaction, signed_txn)
        except Web3RPCError as e:
            message = str(e)
            if _ALREADY_KNOWN in message.lower():
                tx_id = Web3.to_hex(Web3.keccak(signed_txn))
                logger.info(f"Transaction {tx_id} already known on {network}")
                return SubmissionResult(tx_id=tx_id, already_in_ledger=True)
            raise SubmissionError(f"Transaction submission failed: {message}") from e

        tx_id = Web3.to_hex(tx_hash)
        logger.info(f"Submitted transaction {tx_id} to {network}")
        return SubmissionResult(tx_id=tx_id)

    async def wait_for_confirmation(self, network: str, tx_id: str, timeout: int) -> dict:
        """Wait up to ``timeout`` seconds for a receipt with status 1."""
        w3 = self.get_web3(network)
        try:
            receipt = await self._call(
                network, "wait_for_transaction_receipt",
                w3.eth.wait_for_transaction_receipt, tx_id, timeout=timeout
            )
        except TimeExhausted as e:
            raise ConfirmationTimeoutError(tx_id, timeout, unit="seconds") from e

        if receipt["status"] != 1:
            raise TransactionRejectedError(f"Transaction {tx_id} reverted")
        logger.info(f"Transaction {tx_id} confirmed in block {receipt['blockNumber']}")
        return dict(receipt)

    async def send_transfer_with_authorization(
        self,
        network: str,
        asset: str,
        authorization: dict,
        signature: bytes,
        sender_private_key: str
    ) -> SubmissionResult:
        """Build, sign and submit ``transferWithAuthorization`` on ``asset``.

        ``authorization`` holds already-typed EIP-3009 arguments (checksum
        addresses, integers and the 32-byte nonce).
        """
        w3 = self.get_web3(network)
        sender = Account.from_key(sender_private_key)
        contract = w3.eth.contract(address=Web3.to_checksum_address(asset), abi=TRANSFER_WITH_AUTHORIZATION_ABI)

        tx_nonce = await self._call(network, "get_transaction_count", w3.eth.get_transaction_count, sender.address)
        fees = await self.get_suggested_fee_params(network)

        call = contract.functions.transferWithAuthorization(
            authorization["from"],
            authorization["to"],
            authorization["value"],
            authorization["validAfter"],
            authorization["validBefore"],
            authorization["nonce"],
            signature
        )
        tx_unsigned = await self._call(
            network, "build_transaction", call.build_transaction,
            {
                "from": sender.address,
                "nonce": tx_nonce,
                "gas": TRANSFER_GAS_LIMIT,
                **fees,
            }
        )
        signed_tx = sender.sign_transaction(tx_unsigned)
        return await self.submit_raw_transaction(network, signed_tx.raw_transaction)
