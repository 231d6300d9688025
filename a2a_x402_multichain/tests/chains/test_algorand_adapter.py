"""Unit tests for a2a_x402_multichain.chains.algorand module."""

from unittest.mock import Mock

import pytest
from algosdk import encoding
from algosdk.error import AlgodHTTPError
from algosdk.transaction import AssetTransferTxn

from a2a_x402_multichain.chains import AlgorandChainAdapter, SubmissionResult
from a2a_x402_multichain.types import (
    ConfirmationTimeoutError,
    DuplicateTransactionError,
    SubmissionError,
    TransactionRejectedError,
    TransportError,
    UnsupportedNetworkError
)


@pytest.fixture
def signed_transfer(algod_client, algorand_account, algorand_merchant):
    """Base64 signed ASA transfer built from the stub's suggested params."""
    txn = AssetTransferTxn(
        sender=algorand_account.address,
        sp=algod_client.suggested_params(),
        receiver=algorand_merchant,
        amt=1000000,
        index=10458941
    )
    return encoding.msgpack_encode(algorand_account.sign_transaction(txn))


class TestNetworkChecks:
    def test_rejects_evm_network(self, algorand_adapter):
        with pytest.raises(UnsupportedNetworkError):
            algorand_adapter.network_config("base")

    def test_supported_networks(self, algorand_adapter):
        assert algorand_adapter.is_network_supported("algorand-testnet")
        assert not algorand_adapter.is_network_supported("base")

    def test_client_factory_receives_network_config(self):
        factory = Mock()
        adapter = AlgorandChainAdapter(client_factory=factory)

        adapter.get_client("algorand-mainnet")

        config = factory.call_args[0][0]
        assert config.name == "algorand-mainnet"


class TestQueries:
    @pytest.mark.asyncio
    async def test_get_current_round(self, algorand_adapter):
        assert await algorand_adapter.get_current_round("algorand-testnet") == 1000

    @pytest.mark.asyncio
    async def test_get_suggested_fee_params(self, algorand_adapter):
        params = await algorand_adapter.get_suggested_fee_params("algorand-testnet")
        assert params.first == 1000
        assert params.gen == "testnet-v1.0"

    @pytest.mark.asyncio
    async def test_node_http_error_is_transport_error(self, algorand_adapter, algod_client):
        algod_client.status.side_effect = AlgodHTTPError("service unavailable", 503)
        with pytest.raises(TransportError):
            await algorand_adapter.get_current_round("algorand-testnet")

    @pytest.mark.asyncio
    async def test_unreachable_node_is_transport_error(self, algorand_adapter, algod_client):
        algod_client.suggested_params.side_effect = ConnectionRefusedError("refused")
        with pytest.raises(TransportError):
            await algorand_adapter.get_suggested_fee_params("algorand-testnet")

    @pytest.mark.asyncio
    async def test_is_opted_in(self, algorand_adapter, algod_client):
        algod_client.account_asset_info.return_value = {"asset-holding": {"amount": 0}}
        assert await algorand_adapter.is_opted_in("algorand-testnet", "ADDR", 10458941) is True

        algod_client.account_asset_info.side_effect = AlgodHTTPError("account asset info not found", 404)
        assert await algorand_adapter.is_opted_in("algorand-testnet", "ADDR", 10458941) is False

    @pytest.mark.asyncio
    async def test_get_minimum_balance(self, algorand_adapter, algod_client):
        algod_client.account_info.return_value = {"min-balance": 200000}
        assert await algorand_adapter.get_minimum_balance("algorand-testnet", "ADDR") == 200000


class TestSubmission:
    @pytest.mark.asyncio
    async def test_submit_returns_txid(self, algorand_adapter, algod_client, signed_transfer):
        result = await algorand_adapter.submit_raw_transaction("algorand-testnet", signed_transfer)

        expected = encoding.msgpack_decode(signed_transfer).get_txid()
        assert result == SubmissionResult(tx_id=expected, already_in_ledger=False)
        algod_client.send_raw_transaction.assert_called_once_with(signed_transfer)

    @pytest.mark.asyncio
    async def test_submit_accepts_signed_transaction_object(self, algorand_adapter, signed_transfer):
        stxn = encoding.msgpack_decode(signed_transfer)
        result = await algorand_adapter.submit_raw_transaction("algorand-testnet", stxn)
        assert result.tx_id == stxn.get_txid()

    @pytest.mark.asyncio
    async def test_already_in_ledger_reuses_txid(self, algorand_adapter, algod_client, signed_transfer):
        algod_client.send_raw_transaction.side_effect = AlgodHTTPError(
            "TransactionPool.Remember: transaction already in ledger: ABC", 400
        )

        result = await algorand_adapter.submit_raw_transaction("algorand-testnet", signed_transfer)

        assert result.already_in_ledger is True
        assert result.tx_id == encoding.msgpack_decode(signed_transfer).get_txid()

    @pytest.mark.asyncio
    async def test_already_in_ledger_without_derivable_id(self, algorand_adapter, algod_client):
        algod_client.send_raw_transaction.side_effect = AlgodHTTPError("transaction already in ledger", 400)

        with pytest.raises(DuplicateTransactionError):
            await algorand_adapter.submit_raw_transaction("algorand-testnet", "bm90IGEgdHhu")

    @pytest.mark.asyncio
    async def test_rejected_submission(self, algorand_adapter, algod_client, signed_transfer):
        algod_client.send_raw_transaction.side_effect = AlgodHTTPError(
            "TransactionPool.Remember: transaction ABC: overspend", 400
        )

        with pytest.raises(SubmissionError) as exc_info:
            await algorand_adapter.submit_raw_transaction("algorand-testnet", signed_transfer)
        assert "overspend" in str(exc_info.value)
        assert not isinstance(exc_info.value, DuplicateTransactionError)


class TestConfirmation:
    @pytest.mark.asyncio
    async def test_confirmed_immediately(self, algorand_adapter, algod_client):
        info = await algorand_adapter.wait_for_confirmation("algorand-testnet", "TXID", 10)

        assert info["confirmed-round"] == 1001
        algod_client.status_after_block.assert_not_called()

    @pytest.mark.asyncio
    async def test_keeps_polling_until_confirmed(self, algorand_adapter, algod_client):
        algod_client.pending_transaction_info.side_effect = [
            AlgodHTTPError("not found", 404),
            {"confirmed-round": 0, "pool-error": ""},
            {"confirmed-round": 1002, "pool-error": ""}
        ]

        info = await algorand_adapter.wait_for_confirmation("algorand-testnet", "TXID", 10)

        assert info["confirmed-round"] == 1002
        assert algod_client.status_after_block.call_count == 2
        algod_client.status_after_block.assert_any_call(1000)
        algod_client.status_after_block.assert_any_call(1001)

    @pytest.mark.asyncio
    async def test_pool_error(self, algorand_adapter, algod_client):
        algod_client.pending_transaction_info.return_value = {
            "confirmed-round": 0, "pool-error": "overspend"
        }

        with pytest.raises(TransactionRejectedError) as exc_info:
            await algorand_adapter.wait_for_confirmation("algorand-testnet", "TXID", 10)
        assert "overspend" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_timeout_after_round_budget(self, algorand_adapter, algod_client):
        algod_client.pending_transaction_info.return_value = {"confirmed-round": 0, "pool-error": ""}

        with pytest.raises(ConfirmationTimeoutError) as exc_info:
            await algorand_adapter.wait_for_confirmation("algorand-testnet", "TXID", 3)

        assert exc_info.value.tx_id == "TXID"
        assert algod_client.pending_transaction_info.call_count == 3
        assert algod_client.status_after_block.call_count == 3

    @pytest.mark.asyncio
    async def test_unexpected_poll_error(self, algorand_adapter, algod_client):
        algod_client.pending_transaction_info.side_effect = AlgodHTTPError("internal", 500)

        with pytest.raises(TransportError):
            await algorand_adapter.wait_for_confirmation("algorand-testnet", "TXID", 3)
