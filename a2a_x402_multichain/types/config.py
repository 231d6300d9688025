"""Extension and merchant pricing configuration."""

from typing import List, Optional, Union

from pydantic import BaseModel, Field, field_validator

from .payloads import TokenAmount


X402_EXTENSION_URI = "https://github.com/google-a2a/a2a-x402/v0.1"


class X402ExtensionConfig(BaseModel):
    """Configuration for x402 extension.

    ``networks`` restricts the offers a server publishes; an empty list
    accepts every network the delegate prices in.
    """
    extension_uri: str = X402_EXTENSION_URI
    version: str = "0.1"
    x402_version: int = Field(default=1, ge=1)
    required: bool = True
    networks: List[str] = Field(default_factory=list)

    @field_validator("networks")
    @classmethod
    def _normalise_networks(cls, value: List[str]) -> List[str]:
        return [n.strip().lower() for n in value if n and n.strip()]

    def accepts_network(self, network: str) -> bool:
        return not self.networks or network in self.networks


class X402ServerConfig(BaseModel):
    """A merchant's saved pricing for one network."""
    price: Union[str, int, float, TokenAmount]
    pay_to_address: str = Field(min_length=1)
    network: str = "base"
    description: str = "Payment required..."
    mime_type: str = "application/json"
    max_timeout_seconds: int = Field(default=600, gt=0)
    resource: Optional[str] = None

    @field_validator("network")
    @classmethod
    def _normalise_network(cls, value: str) -> str:
        value = value.strip().lower()
        if not value:
            raise ValueError("network must not be empty")
        return value

    @field_validator("price")
    @classmethod
    def _non_negative_price(cls, value):
        if isinstance(value, (int, float)) and not isinstance(value, bool) and value < 0:
            raise ValueError("price must not be negative")
        return value
