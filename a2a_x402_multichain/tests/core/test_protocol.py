"""Tests for verify_payment/settle_payment dispatch by network family."""

import pytest
from unittest.mock import AsyncMock, Mock

from a2a_x402_multichain.core.protocol import settle_payment, verify_payment
from a2a_x402_multichain.core.wallet import process_payment
from a2a_x402_multichain.types import (
    SettleResponse,
    UnsupportedNetworkError,
    VerifyResponse,
    X402ErrorCode
)


@pytest.fixture
def mock_facilitator(test_account):
    facilitator = Mock()
    facilitator.verify = AsyncMock(return_value=VerifyResponse(is_valid=True, payer=test_account.address))
    facilitator.settle = AsyncMock(return_value=SettleResponse(
        success=True, transaction="0xtxhash123", network="base", payer=test_account.address
    ))
    return facilitator


@pytest.mark.asyncio
async def test_verify_payment_uses_facilitator_for_evm(
    sample_payment_payload, sample_payment_requirements, mock_facilitator
):
    response = await verify_payment(
        sample_payment_payload, sample_payment_requirements, facilitator_client=mock_facilitator
    )

    assert response.is_valid
    mock_facilitator.verify.assert_awaited_once_with(sample_payment_payload, sample_payment_requirements)


@pytest.mark.asyncio
async def test_settle_payment_verifies_before_settling(
    sample_payment_payload, sample_payment_requirements, mock_facilitator
):
    response = await settle_payment(
        sample_payment_payload, sample_payment_requirements, facilitator_client=mock_facilitator
    )

    assert response.success
    assert response.transaction == "0xtxhash123"
    mock_facilitator.verify.assert_awaited_once()
    mock_facilitator.settle.assert_awaited_once()


@pytest.mark.asyncio
async def test_settle_payment_skips_invalid_evm_payment(
    sample_payment_payload, sample_payment_requirements, mock_facilitator
):
    mock_facilitator.verify.return_value = VerifyResponse(
        is_valid=False, invalid_reason="insufficient_funds", error_code=X402ErrorCode.INSUFFICIENT_FUNDS
    )

    response = await settle_payment(
        sample_payment_payload, sample_payment_requirements, facilitator_client=mock_facilitator
    )

    assert not response.success
    assert response.error_code == X402ErrorCode.INSUFFICIENT_FUNDS
    mock_facilitator.settle.assert_not_awaited()


@pytest.mark.asyncio
async def test_network_mismatch_does_not_reach_facilitator(
    sample_payment_payload, sample_payment_requirements, mock_facilitator
):
    requirements = sample_payment_requirements.model_copy(update={"network": "base-sepolia"})

    response = await verify_payment(sample_payment_payload, requirements, facilitator_client=mock_facilitator)

    assert not response.is_valid
    assert response.error_code == X402ErrorCode.NETWORK_MISMATCH
    mock_facilitator.verify.assert_not_awaited()


@pytest.mark.asyncio
async def test_algorand_payment_is_checked_locally(
    algorand_requirements, algorand_account, algorand_adapter, mock_facilitator
):
    payload = await process_payment(algorand_requirements, algorand_account, chain_adapter=algorand_adapter)

    verify_response = await verify_payment(
        payload, algorand_requirements, facilitator_client=mock_facilitator, chain_adapter=algorand_adapter
    )
    settle_response = await settle_payment(
        payload, algorand_requirements, facilitator_client=mock_facilitator, chain_adapter=algorand_adapter
    )

    assert verify_response.is_valid
    assert verify_response.payer == algorand_account.address
    assert settle_response.success
    assert settle_response.transaction == payload.payload.txn_id
    mock_facilitator.verify.assert_not_awaited()


@pytest.mark.asyncio
async def test_unknown_network(sample_payment_payload, sample_payment_requirements):
    requirements = sample_payment_requirements.model_copy(update={"network": "solana"})

    with pytest.raises(UnsupportedNetworkError):
        await verify_payment(sample_payment_payload, requirements)
