"""Exact scheme on Algorand networks: a signed ASA transfer, verified locally."""

import base64
import logging
from typing import Optional

from algosdk import account as algo_account
from algosdk import constants, encoding, mnemonic
from algosdk.transaction import AssetTransferTxn, SignedTransaction, SuggestedParams
from nacl.exceptions import BadSignatureError
from nacl.signing import VerifyKey

from ..chains.algorand import AlgorandChainAdapter
from ..chains.networks import NetworkFamily, NetworkRegistry, algorand_valid_rounds
from ..types import (
    AlgorandAuthorization,
    AlgorandPaymentPayload,
    ConfirmationTimeoutError,
    InvalidAssetError,
    MalformedPayloadError,
    PaymentPayload,
    PaymentRequirements,
    SettleResponse,
    SubmissionError,
    TransactionRejectedError,
    ValidationError,
    VerifyResponse,
    X402_VERSION,
    X402ErrorCode,
    map_error_to_code
)
from .base import ExactScheme

logger = logging.getLogger(__name__)


MAX_NOTE_BYTES = 1024
# Rounds to wait for an opt-in to confirm
OPT_IN_WAIT_ROUNDS = 10
_MAX_UINT64 = 2 ** 64 - 1


class AlgorandAccount:
    """Signing material for an Algorand address.

    Holds the base64 private key format used by py-algorand-sdk. Storage and
    protection of the key are the caller's concern.
    """

    def __init__(self, private_key: str):
        self.private_key = private_key
        self.address = algo_account.address_from_private_key(private_key)

    @classmethod
    def from_mnemonic(cls, words: str) -> "AlgorandAccount":
        return cls(mnemonic.to_private_key(words))

    @classmethod
    def generate(cls) -> "AlgorandAccount":
        private_key, _ = algo_account.generate_account()
        return cls(private_key)

    def to_mnemonic(self) -> str:
        return mnemonic.from_private_key(self.private_key)

    def sign_transaction(self, txn) -> SignedTransaction:
        return txn.sign(self.private_key)

    def __repr__(self) -> str:
        return f"AlgorandAccount(address={self.address!r})"


def encode_note(text: Optional[str]) -> Optional[bytes]:
    """UTF-8 note of at most MAX_NOTE_BYTES, cut on a character boundary."""
    if not text:
        return None
    return text.encode("utf-8")[:MAX_NOTE_BYTES].decode("utf-8", errors="ignore").encode("utf-8")


def build_opt_in_transaction(address: str, asset_id: int, params: SuggestedParams) -> AssetTransferTxn:
    """Zero-amount transfer of ``asset_id`` from ``address`` to itself.

    Confirmed on chain, it opts ``address`` in to the asset so it can hold
    and send it.
    """
    return AssetTransferTxn(sender=address, sp=params, receiver=address, amt=0, index=asset_id)


def decode_signed_transaction(signed_b64: str) -> SignedTransaction:
    """Decode a base64 envelope into a single-signature ASA transfer."""
    try:
        decoded = encoding.msgpack_decode(signed_b64)
    except Exception as e:
        raise MalformedPayloadError(f"Failed to decode signed transaction: {e}") from e

    if not isinstance(decoded, SignedTransaction) or not decoded.signature:
        raise MalformedPayloadError("Payload is not a single-signature signed transaction")
    if not isinstance(decoded.transaction, AssetTransferTxn):
        raise MalformedPayloadError(
            f"Expected an asset transfer, got {type(decoded.transaction).__name__}"
        )
    return decoded


def has_valid_signature(stxn: SignedTransaction) -> bool:
    """Ed25519 check of the envelope signature against the signing address."""
    signer = stxn.authorizing_address or stxn.transaction.sender
    try:
        to_sign = constants.txid_prefix + base64.b64decode(encoding.msgpack_encode(stxn.transaction))
        VerifyKey(encoding.decode_address(signer)).verify(to_sign, base64.b64decode(stxn.signature))
    except (BadSignatureError, ValueError):
        return False
    return True


class AlgorandExactScheme(ExactScheme):
    """Algorand exact payments, verified and settled against algod directly."""

    family = NetworkFamily.ALGORAND

    def __init__(
        self,
        chain_adapter: Optional[AlgorandChainAdapter] = None,
        registry: Optional[NetworkRegistry] = None
    ):
        super().__init__(registry)
        self.chain_adapter = chain_adapter or AlgorandChainAdapter(registry)

    @staticmethod
    def _asset_id(requirements: PaymentRequirements) -> int:
        try:
            asset_id = int(requirements.asset)
        except ValueError:
            raise InvalidAssetError(f"Asset {requirements.asset} is not an ASA index") from None
        if asset_id < 0 or asset_id > _MAX_UINT64:
            raise InvalidAssetError(f"Asset {requirements.asset} is not an ASA index")
        return asset_id

    async def sign(
        self,
        requirements: PaymentRequirements,
        account: AlgorandAccount,
        max_value: Optional[int] = None
    ) -> PaymentPayload:
        """Build and sign the ASA transfer demanded by ``requirements``.

        The paying account must already be opted in to the asset; see
        :meth:`ensure_opt_in`.
        """
        network = requirements.network
        self.network_config(network)
        self.check_max_value(requirements, max_value)

        asset_id = self._asset_id(requirements)
        amount = int(requirements.max_amount_required)
        if amount > _MAX_UINT64:
            raise ValidationError(f"Amount {amount} does not fit in an unsigned 64-bit integer")
        if not encoding.is_valid_address(requirements.pay_to):
            raise ValidationError(f"Invalid Algorand recipient address: {requirements.pay_to}")

        params = await self.chain_adapter.get_suggested_fee_params(network)
        valid_rounds = algorand_valid_rounds(requirements.max_timeout_seconds)
        params.last = params.first + valid_rounds

        note = encode_note(requirements.description)
        txn = AssetTransferTxn(
            sender=account.address,
            sp=params,
            receiver=requirements.pay_to,
            amt=amount,
            index=asset_id,
            note=note
        )
        signed = account.sign_transaction(txn)
        txn_id = txn.get_txid()

        logger.info(f"Signed ASA {asset_id} transfer {txn_id} of {amount} to {requirements.pay_to}")
        return PaymentPayload(
            x402_version=X402_VERSION,
            scheme=requirements.scheme,
            network=network,
            payload=AlgorandPaymentPayload(
                signature=encoding.msgpack_encode(signed),
                authorization=AlgorandAuthorization(
                    from_=account.address,
                    to=requirements.pay_to,
                    amount=str(amount),
                    asset_id=asset_id,
                    valid_rounds=valid_rounds,
                    note=note.decode("utf-8") if note else None
                ),
                txn_id=txn_id
            )
        )

    async def ensure_opt_in(
        self,
        requirements: PaymentRequirements,
        account: AlgorandAccount,
        wait_rounds: int = OPT_IN_WAIT_ROUNDS
    ) -> Optional[str]:
        """Opt ``account`` in to the requirement's asset unless it already is.

        Returns the id of the confirmed opt-in transaction, or None when the
        account already held the asset. Submission and confirmation failures
        propagate.
        """
        network = requirements.network
        self.network_config(network)
        asset_id = self._asset_id(requirements)

        if await self.chain_adapter.is_opted_in(network, account.address, asset_id):
            logger.debug(f"{account.address} already opted in to ASA {asset_id}")
            return None

        logger.info(f"Opting {account.address} in to ASA {asset_id} on {network}")
        params = await self.chain_adapter.get_suggested_fee_params(network)
        signed = account.sign_transaction(build_opt_in_transaction(account.address, asset_id, params))
        submission = await self.chain_adapter.submit_raw_transaction(network, signed)
        if not submission.already_in_ledger:
            await self.chain_adapter.wait_for_confirmation(network, submission.tx_id, wait_rounds)

        logger.info(f"Opt-in to ASA {asset_id} confirmed: {submission.tx_id}")
        return submission.tx_id

    async def verify(self, payload: PaymentPayload, requirements: PaymentRequirements) -> VerifyResponse:
        """Check the envelope against ``requirements``.

        Checks run in a fixed order and the first failure is reported:
        signature, genesis hash, recipient, amount, asset, then expiry
        against the current round. An undecodable envelope raises
        :class:`MalformedPayloadError` instead of returning a result.
        """
        network_config = self.network_config(requirements.network)
        mismatch = self.check_payload_target(payload, requirements)
        if mismatch is not None:
            return mismatch
        if not isinstance(payload.payload, AlgorandPaymentPayload):
            raise MalformedPayloadError(
                f"Expected an Algorand payload, got {type(payload.payload).__name__}"
            )

        stxn = decode_signed_transaction(payload.payload.signature)
        txn = stxn.transaction
        payer = txn.sender

        def invalid(reason: str, code: str) -> VerifyResponse:
            logger.warning(f"Payment from {payer} rejected: {reason}")
            return VerifyResponse(is_valid=False, payer=payer, invalid_reason=reason, error_code=code)

        if not has_valid_signature(stxn):
            return invalid("Invalid signature", X402ErrorCode.INVALID_SIGNATURE)

        if network_config.genesis_hash and txn.genesis_hash != network_config.genesis_hash:
            return invalid(
                f"Genesis hash mismatch: expected {network_config.genesis_hash}, got {txn.genesis_hash}",
                X402ErrorCode.NETWORK_MISMATCH
            )

        if txn.receiver != requirements.pay_to:
            return invalid(
                f"Recipient mismatch: expected {requirements.pay_to}, got {txn.receiver}",
                X402ErrorCode.RECIPIENT_MISMATCH
            )

        if txn.amount != int(requirements.max_amount_required):
            return invalid(
                f"Amount mismatch: expected {requirements.max_amount_required}, got {txn.amount}",
                X402ErrorCode.INVALID_AMOUNT
            )

        if txn.index != self._asset_id(requirements):
            return invalid(
                f"Asset ID mismatch: expected {requirements.asset}, got {txn.index}",
                X402ErrorCode.ASSET_MISMATCH
            )

        current_round = await self.chain_adapter.get_current_round(requirements.network)
        if txn.last_valid_round < current_round:
            return invalid(
                f"Transaction expired: last valid round {txn.last_valid_round}, current round {current_round}",
                X402ErrorCode.EXPIRED_PAYMENT
            )

        return VerifyResponse(is_valid=True, payer=payer)

    async def settle(self, payload: PaymentPayload, requirements: PaymentRequirements) -> SettleResponse:
        """Verify, submit and wait for confirmation.

        Resubmitting a payload that is already on chain succeeds with the
        same transaction id.
        """
        network = requirements.network
        verify_response = await self.verify(payload, requirements)
        if not verify_response.is_valid:
            return SettleResponse(
                success=False,
                network=network,
                payer=verify_response.payer,
                error_reason=f"Verification failed: {verify_response.invalid_reason}",
                error_code=verify_response.error_code
            )

        payer = verify_response.payer
        try:
            submission = await self.chain_adapter.submit_raw_transaction(network, payload.payload.signature)
            if not submission.already_in_ledger:
                await self.chain_adapter.wait_for_confirmation(
                    network, submission.tx_id, algorand_valid_rounds(requirements.max_timeout_seconds)
                )
        except (SubmissionError, TransactionRejectedError, ConfirmationTimeoutError) as e:
            logger.error(f"Settlement on {network} failed: {e}")
            return SettleResponse(
                success=False,
                network=network,
                payer=payer,
                error_reason=str(e),
                error_code=map_error_to_code(e)
            )

        logger.info(f"Settled payment from {payer} in transaction {submission.tx_id}")
        return SettleResponse(
            success=True,
            transaction=submission.tx_id,
            network=network,
            payer=payer
        )
