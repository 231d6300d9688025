"""Tests for the EVM exact scheme."""

import time

import pytest
from unittest.mock import AsyncMock, Mock
from x402 import types as x402_types

from a2a_x402_multichain.chains.evm import (
    authorization_message,
    build_transfer_typed_data,
    recover_typed_data_signer
)
from a2a_x402_multichain.core.facilitator import LocalEvmFacilitator
from a2a_x402_multichain.core.merchant import create_payment_requirements
from a2a_x402_multichain.mechanisms import (
    ExactEvmScheme,
    get_scheme_for_network,
    to_x402_payload,
    to_x402_requirements
)
from a2a_x402_multichain.mechanisms.algorand import AlgorandExactScheme
from a2a_x402_multichain.types import (
    AmountExceedsMaxError,
    MalformedPayloadError,
    SettleResponse,
    UnsupportedNetworkError,
    VerifyResponse,
    X402ErrorCode
)


def test_get_scheme_for_network():
    assert isinstance(get_scheme_for_network("base"), ExactEvmScheme)
    assert isinstance(get_scheme_for_network("algorand-mainnet"), AlgorandExactScheme)
    with pytest.raises(UnsupportedNetworkError):
        get_scheme_for_network("unknown-chain")


def test_requirements_convert_to_x402_models(sample_payment_requirements):
    converted = to_x402_requirements(sample_payment_requirements)

    assert isinstance(converted, x402_types.PaymentRequirements)
    assert converted.network == "base"
    assert converted.asset == sample_payment_requirements.asset
    assert converted.extra == {"name": "USD Coin", "version": "2"}


def test_algorand_requirements_have_no_x402_model(algorand_requirements):
    with pytest.raises(UnsupportedNetworkError):
        to_x402_requirements(algorand_requirements)


@pytest.mark.asyncio
async def test_algorand_payload_has_no_x402_model(algorand_requirements, algorand_account, algorand_adapter):
    payload = await AlgorandExactScheme(chain_adapter=algorand_adapter).sign(algorand_requirements, algorand_account)

    with pytest.raises(MalformedPayloadError):
        to_x402_payload(payload)


@pytest.mark.asyncio
async def test_sign_builds_authorization(sample_payment_requirements, test_account):
    before = int(time.time())
    payload = await ExactEvmScheme().sign(sample_payment_requirements, test_account)
    after = int(time.time())

    authorization = payload.payload.authorization
    assert payload.network == "base"
    assert payload.scheme == "exact"
    assert int(authorization.valid_after) <= before
    assert before + 600 <= int(authorization.valid_before) <= after + 600
    assert authorization.value == sample_payment_requirements.max_amount_required
    assert len(bytes.fromhex(authorization.nonce.removeprefix("0x"))) == 32

    typed_data = build_transfer_typed_data(
        authorization_message(authorization), "USD Coin", "2", 8453, sample_payment_requirements.asset
    )
    assert recover_typed_data_signer(typed_data, payload.payload.signature) == test_account.address


@pytest.mark.asyncio
async def test_sign_without_extra_uses_network_domain(sample_payment_requirements, test_account):
    requirements = sample_payment_requirements.model_copy(update={"extra": None})

    payload = await ExactEvmScheme().sign(requirements, test_account)

    typed_data = build_transfer_typed_data(
        authorization_message(payload.payload.authorization), "USD Coin", "2", 8453, requirements.asset
    )
    assert recover_typed_data_signer(typed_data, payload.payload.signature) == test_account.address


@pytest.mark.asyncio
async def test_signature_is_bound_to_chain(sample_payment_requirements, test_account):
    payload = await ExactEvmScheme().sign(sample_payment_requirements, test_account)

    typed_data = build_transfer_typed_data(
        authorization_message(payload.payload.authorization), "USD Coin", "2", 43114,
        sample_payment_requirements.asset
    )
    assert recover_typed_data_signer(typed_data, payload.payload.signature) != test_account.address


@pytest.mark.asyncio
async def test_sign_respects_max_value(sample_payment_requirements, test_account):
    with pytest.raises(AmountExceedsMaxError):
        await ExactEvmScheme().sign(sample_payment_requirements, test_account, max_value=1)


@pytest.mark.asyncio
async def test_sign_rejects_algorand_network(algorand_requirements, test_account):
    with pytest.raises(UnsupportedNetworkError):
        await ExactEvmScheme().sign(algorand_requirements, test_account)


@pytest.mark.asyncio
async def test_round_trip_with_local_facilitator(sample_payment_requirements, test_account):
    scheme = ExactEvmScheme(facilitator_client=LocalEvmFacilitator())

    payload = await scheme.sign(sample_payment_requirements, test_account)
    response = await scheme.verify(payload, sample_payment_requirements)

    assert response.is_valid
    assert response.payer == test_account.address


@pytest.mark.asyncio
async def test_expired_authorization(sample_payment_requirements, test_account):
    payload = await ExactEvmScheme().sign(sample_payment_requirements, test_account)
    valid_before = int(payload.payload.authorization.valid_before)
    scheme = ExactEvmScheme(facilitator_client=LocalEvmFacilitator(clock=lambda: valid_before + 1))

    response = await scheme.verify(payload, sample_payment_requirements)

    assert not response.is_valid
    assert response.error_code == X402ErrorCode.EXPIRED_PAYMENT


@pytest.mark.asyncio
async def test_verify_network_mismatch(sample_payment_requirements, test_account):
    facilitator = Mock()
    facilitator.verify = AsyncMock()
    scheme = ExactEvmScheme(facilitator_client=facilitator)
    payload = await scheme.sign(sample_payment_requirements, test_account)
    payload.network = "avalanche"

    response = await scheme.verify(payload, sample_payment_requirements)

    assert not response.is_valid
    assert response.error_code == X402ErrorCode.NETWORK_MISMATCH
    facilitator.verify.assert_not_awaited()


@pytest.mark.asyncio
async def test_settle_fills_failure_code(sample_payment_payload, sample_payment_requirements, test_account):
    facilitator = Mock()
    facilitator.verify = AsyncMock(return_value=VerifyResponse(is_valid=True, payer=test_account.address))
    facilitator.settle = AsyncMock(return_value=SettleResponse(
        success=False, network="base", error_reason="reverted"
    ))

    response = await ExactEvmScheme(facilitator_client=facilitator).settle(
        sample_payment_payload, sample_payment_requirements
    )

    assert not response.success
    assert response.error_code == X402ErrorCode.SETTLEMENT_FAILED
    assert response.payer == test_account.address


@pytest.mark.asyncio
@pytest.mark.parametrize("field,value,reason", [
    ("pay_to", "0x" + "b" * 40, "Recipient mismatch"),
    ("max_amount_required", "1000001", "Amount mismatch"),
    ("asset", "0x" + "c" * 40, "for asset"),
])
async def test_changed_requirements_invalidate_payload(sample_payment_requirements, test_account, field, value,
                                                       reason):
    scheme = ExactEvmScheme(facilitator_client=LocalEvmFacilitator())
    payload = await scheme.sign(sample_payment_requirements, test_account)
    changed = sample_payment_requirements.model_copy(update={field: value})

    response = await scheme.verify(payload, changed)

    assert not response.is_valid
    assert reason in response.invalid_reason


@pytest.mark.asyncio
async def test_base_sepolia_round_trip(merchant_address, test_account):
    requirements = create_payment_requirements(
        price="$1.00", pay_to_address=merchant_address, resource="/api", network="base-sepolia"
    )
    scheme = ExactEvmScheme(facilitator_client=LocalEvmFacilitator())

    payload = await scheme.sign(requirements, test_account)
    response = await scheme.verify(payload, requirements)

    assert requirements.max_amount_required == "1000000"
    assert response.is_valid
    assert response.payer == test_account.address
