# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Wire models for x402 exact payments on EVM and Algorand networks.

Python attributes are snake_case; ``model_dump(by_alias=True)`` yields the
camelCase JSON exchanged with clients and facilitators.
"""

import re
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


_ATOMIC_AMOUNT = re.compile(r"[0-9]+")

X402_VERSION = 1


def _validate_atomic_amount(value: str, field: str) -> str:
    if not isinstance(value, str) or not _ATOMIC_AMOUNT.fullmatch(value):
        raise ValueError(f"{field} must be a non-negative integer encoded as a string")
    return value


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class EIP712Domain(BaseModel):
    """EIP-712 domain information for token signing"""

    name: str
    version: str


class TokenAsset(BaseModel):
    """Token asset: contract address (EVM) or ASA index (Algorand)."""

    address: str
    decimals: int
    eip712: Optional[EIP712Domain] = None

    @field_validator("decimals")
    def validate_decimals(cls, v):
        if v < 0 or v > 255:
            raise ValueError("decimals must be between 0 and 255")
        return v


class TokenAmount(BaseModel):
    """Represents an amount of tokens in atomic units with asset information"""

    amount: str
    asset: TokenAsset

    @field_validator("amount")
    def validate_amount(cls, v):
        return _validate_atomic_amount(v, "amount")


# Price can be either Money (USD string or number) or TokenAmount
Money = Union[str, int, float]
Price = Union[Money, TokenAmount]


class PaymentRequirements(_WireModel):
    """A merchant's payment demand for one resource."""

    scheme: str = "exact"
    network: str
    asset: str
    pay_to: str
    max_amount_required: str
    resource: str
    description: str = ""
    mime_type: str = "application/json"
    max_timeout_seconds: int = 600
    output_schema: Optional[Any] = None
    extra: Optional[dict[str, Any]] = None

    @field_validator("max_amount_required")
    def validate_max_amount_required(cls, v):
        return _validate_atomic_amount(v, "max_amount_required")

    @field_validator("max_timeout_seconds")
    def validate_max_timeout_seconds(cls, v):
        if v <= 0:
            raise ValueError("max_timeout_seconds must be positive")
        return v


class x402PaymentRequiredResponse(_WireModel):
    """Challenge returned to a caller: one or more acceptable offers."""

    x402_version: int = X402_VERSION
    accepts: list[PaymentRequirements]
    error: str = ""


class EIP3009Authorization(_WireModel):
    """EIP-3009 TransferWithAuthorization message."""

    from_: str = Field(alias="from")
    to: str
    value: str
    valid_after: str
    valid_before: str
    nonce: str

    @field_validator("value")
    def validate_value(cls, v):
        return _validate_atomic_amount(v, "value")


class ExactEvmPaymentPayload(_WireModel):
    """EVM exact-scheme payload: EIP-712 signature over the authorization."""

    signature: str
    authorization: EIP3009Authorization


# Name used by the x402 reference packages for the EVM payload.
ExactPaymentPayload = ExactEvmPaymentPayload


class AlgorandAuthorization(_WireModel):
    """Mirror of the signed ASA transfer, readable without decoding it."""

    from_: str = Field(alias="from")
    to: str
    amount: str
    asset_id: int
    valid_rounds: int
    note: Optional[str] = None

    @field_validator("amount")
    def validate_amount(cls, v):
        return _validate_atomic_amount(v, "amount")


class AlgorandPaymentPayload(_WireModel):
    """Algorand exact-scheme payload.

    ``signature`` is the whole base64 signed-transaction envelope, not a bare
    signature; ``txn_id`` is the id the chain will assign to it.
    """

    signature: str
    authorization: AlgorandAuthorization
    txn_id: str


SchemePayloads = Union[AlgorandPaymentPayload, ExactEvmPaymentPayload]


class PaymentPayload(_WireModel):
    """Signed payment instrument, tagged with the scheme and network it targets."""

    x402_version: int = X402_VERSION
    scheme: str
    network: str
    payload: SchemePayloads


class VerifyResponse(_WireModel):
    """Outcome of a verification.

    ``error_code`` is an :class:`X402ErrorCode` value for failed checks. It is
    local only and is never serialized.
    """

    is_valid: bool
    payer: Optional[str] = None
    invalid_reason: Optional[str] = None
    error_code: Optional[str] = Field(default=None, exclude=True)


class SettleResponse(_WireModel):
    """Outcome of a settlement; ``error_code`` is local only."""

    success: bool
    transaction: Optional[str] = None
    network: str
    payer: Optional[str] = None
    error_reason: Optional[str] = None
    error_code: Optional[str] = Field(default=None, exclude=True)
