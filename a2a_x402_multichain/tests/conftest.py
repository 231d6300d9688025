"""Shared pytest fixtures for a2a_x402_multichain tests."""

from unittest.mock import Mock

import pytest
from algosdk import encoding
from algosdk.transaction import SuggestedParams
from eth_account import Account

from a2a_x402_multichain.chains import AlgorandChainAdapter, get_network_config
from a2a_x402_multichain.mechanisms import AlgorandAccount
from a2a_x402_multichain.types import (
    Task,
    TaskState,
    TaskStatus,
    PaymentRequirements,
    x402PaymentRequiredResponse,
    SettleResponse,
    PaymentPayload,
    ExactEvmPaymentPayload,
    EIP3009Authorization
)


BASE_USDC = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"
TESTNET_USDC_ASA = "10458941"
CURRENT_ROUND = 1000


@pytest.fixture
def sample_task():
    """Create a sample A2A Task for testing."""
    return Task(
        id="task-123",
        contextId="context-456",
        status=TaskStatus(state=TaskState.input_required),
        metadata={}
    )


@pytest.fixture
def test_account():
    """Create a test Ethereum account."""
    # Use a deterministic private key for consistent testing
    private_key = "0x" + "1" * 64
    return Account.from_key(private_key)


@pytest.fixture
def merchant_address():
    """EVM address that receives payments."""
    return Account.from_key("0x" + "2" * 64).address


@pytest.fixture
def sample_payment_requirements(merchant_address):
    """Create sample PaymentRequirements for testing."""
    return PaymentRequirements(
        scheme="exact",
        network="base",
        asset=BASE_USDC,
        pay_to=merchant_address,
        max_amount_required="1000000",
        resource="/test-service",
        description="Test payment",
        mime_type="application/json",
        max_timeout_seconds=600,
        extra={"name": "USD Coin", "version": "2"}
    )


@pytest.fixture
def sample_payment_required_response(sample_payment_requirements):
    """Create sample x402PaymentRequiredResponse for testing."""
    return x402PaymentRequiredResponse(
        x402_version=1,
        accepts=[sample_payment_requirements],
        error=""
    )


@pytest.fixture
def sample_payment_payload(test_account, merchant_address):
    """Create sample PaymentPayload for testing."""
    authorization = EIP3009Authorization(
        from_=test_account.address,
        to=merchant_address,
        value="1000000",
        valid_after="0",
        valid_before="4102444800",
        nonce="0x" + "1" * 64
    )

    exact_payload = ExactEvmPaymentPayload(
        signature="0x" + "a" * 130,
        authorization=authorization
    )

    return PaymentPayload(
        x402_version=1,
        scheme="exact",
        network="base",
        payload=exact_payload
    )


@pytest.fixture
def sample_settle_response(test_account):
    """Create sample SettleResponse for testing."""
    return SettleResponse(
        success=True,
        transaction="0xtxhash123",
        network="base",
        payer=test_account.address
    )


@pytest.fixture
def algorand_account():
    """Fresh Algorand account for the paying client."""
    return AlgorandAccount.generate()


@pytest.fixture
def algorand_merchant():
    """Fresh Algorand address that receives payments."""
    return AlgorandAccount.generate().address


@pytest.fixture
def algorand_requirements(algorand_merchant):
    """USDC payment of 1.00 on Algorand TestNet."""
    return PaymentRequirements(
        scheme="exact",
        network="algorand-testnet",
        asset=TESTNET_USDC_ASA,
        pay_to=algorand_merchant,
        max_amount_required="1000000",
        resource="/weather",
        description="Weather report",
        max_timeout_seconds=60
    )


@pytest.fixture
def algod_client():
    """Stub algod client for Algorand TestNet at round ``CURRENT_ROUND``.

    Submission echoes the id of the submitted envelope and pending info
    reports the transaction confirmed in the next round.
    """
    testnet = get_network_config("algorand-testnet")
    client = Mock()
    client.suggested_params.side_effect = lambda: SuggestedParams(
        fee=1000,
        first=CURRENT_ROUND,
        last=CURRENT_ROUND + 1000,
        gh=testnet.genesis_hash,
        gen=testnet.genesis_id,
        flat_fee=True
    )
    client.status.return_value = {"last-round": CURRENT_ROUND}
    client.send_raw_transaction.side_effect = lambda signed_b64: encoding.msgpack_decode(signed_b64).get_txid()
    client.pending_transaction_info.return_value = {"confirmed-round": CURRENT_ROUND + 1, "pool-error": ""}
    client.status_after_block.return_value = {"last-round": CURRENT_ROUND + 1}
    return client


@pytest.fixture
def algorand_adapter(algod_client):
    """AlgorandChainAdapter wired to the stub algod client."""
    return AlgorandChainAdapter(client_factory=lambda config: algod_client)
