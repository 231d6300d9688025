"""Payment requirements creation functions."""

import re
from decimal import ROUND_FLOOR, Decimal, InvalidOperation
from typing import Optional, Any, Tuple

from x402.common import process_price_to_atomic_amount as x402_process_price_to_atomic_amount

from ..chains.networks import NetworkFamily, NetworkRegistry, get_network_config
from ..types import (
    PaymentRequirements,
    Price,
    TokenAmount,
    AddressResolutionError,
    InvalidAssetError,
    InvalidPriceError,
    UnsupportedNetworkError
)
from .nfd import NFDResolver, is_nfd_name


_EVM_ADDRESS = re.compile(r"0x[0-9a-fA-F]{40}")
_ASA_INDEX = re.compile(r"[0-9]+")
_MAX_UINT64 = 2 ** 64 - 1


def parse_money(price: Any) -> Decimal:
    """Decimal USD value of a money price ("$1.50", "1.50", 1, 1.5)."""
    if isinstance(price, bool) or not isinstance(price, (str, int, float)):
        raise InvalidPriceError(f"Invalid price: {price!r}")

    if isinstance(price, str):
        text = price.strip()
        if text.startswith("$"):
            text = text[1:].strip()
    else:
        # str() keeps 0.1 as "0.1" instead of its binary expansion
        text = str(price)

    try:
        value = Decimal(text)
    except InvalidOperation:
        raise InvalidPriceError(f"Invalid price: {price!r}") from None

    if not value.is_finite():
        raise InvalidPriceError(f"Invalid price: {price!r}")
    if value < 0:
        raise InvalidPriceError(f"Price cannot be negative: {price!r}")
    return value


def to_atomic_units(value: Decimal, decimals: int) -> str:
    """``floor(value * 10**decimals)`` as a decimal-integer string."""
    scaled = (value * (Decimal(10) ** decimals)).to_integral_value(rounding=ROUND_FLOOR)
    return str(int(scaled))


def validate_asset_for_network(asset: str, network: str, registry: Optional[NetworkRegistry] = None) -> str:
    """Check ``asset`` has the identifier format of ``network``'s chain family."""
    family = get_network_config(network, registry).family
    if family == NetworkFamily.EVM:
        if not _EVM_ADDRESS.fullmatch(asset):
            raise InvalidAssetError(f"Asset {asset} is not a contract address for EVM network {network}")
    elif not _ASA_INDEX.fullmatch(asset) or int(asset) > _MAX_UINT64:
        raise InvalidAssetError(f"Asset {asset} is not an ASA index for Algorand network {network}")
    return asset


def process_price_to_atomic_amount(
    price: Price,
    network: str,
    registry: Optional[NetworkRegistry] = None
) -> Tuple[str, str, Optional[dict[str, Any]]]:
    """Converts a price into ``(max_amount_required, asset, extra)``.

    Money prices are denominated in the network's default USDC-class asset,
    looked up by ``x402.common`` on EVM networks and in the registry on
    Algorand; ``TokenAmount`` prices pass their amount and asset through
    unchanged.
    """
    network_config = get_network_config(network, registry)

    if isinstance(price, TokenAmount):
        asset = validate_asset_for_network(price.asset.address, network, registry)
        extra = price.asset.eip712.model_dump() if price.asset.eip712 else None
        return price.amount, asset, extra

    value = parse_money(price)
    if network_config.family == NetworkFamily.EVM:
        try:
            return x402_process_price_to_atomic_amount(format(value, "f"), network)
        except ValueError as e:
            raise UnsupportedNetworkError(network, f"x402 has no default asset for {network}: {e}") from e

    default_asset = network_config.default_asset
    if default_asset is None:
        raise UnsupportedNetworkError(
            network, f"Network {network} has no default asset; price it with a TokenAmount"
        )

    return (
        to_atomic_units(value, default_asset.decimals),
        default_asset.asset,
        default_asset.eip712_domain()
    )


def create_payment_requirements(
    price: Price,
    pay_to_address: str,
    resource: str,
    network: str = "base",
    description: str = "",
    mime_type: str = "application/json",
    scheme: str = "exact",
    max_timeout_seconds: int = 600,
    output_schema: Optional[Any] = None,
    extra: Optional[dict[str, Any]] = None,
    registry: Optional[NetworkRegistry] = None,
    **kwargs
) -> PaymentRequirements:
    """Creates PaymentRequirements for A2A payment requests.

    Args:
        price: Payment price. Can be:
            - Money: USD amount as string/int/float (e.g., "$3.10", 0.10, "0.001") - defaults to USDC
            - TokenAmount: Custom token amount with asset information
        pay_to_address: Chain-native address to receive the payment. NFD
            names must go through :func:`resolve_payment_requirements`.
        resource: Resource identifier (e.g., "/generate-image")
        network: Blockchain network (default: "base")
        description: Human-readable description
        mime_type: Expected response content type
        scheme: Payment scheme (default: "exact")
        max_timeout_seconds: Payment validity timeout
        output_schema: Response schema
        extra: Scheme data; defaults to the asset's EIP-712 domain on EVM
        registry: Network registry (default: process-wide registry)
        **kwargs: Additional fields passed to PaymentRequirements

    Returns:
        PaymentRequirements object ready for x402PaymentRequiredResponse
    """
    if is_nfd_name(pay_to_address):
        raise AddressResolutionError(
            f"{pay_to_address} is a name, not an address; use resolve_payment_requirements"
        )

    max_amount_required, asset_address, eip712_domain = process_price_to_atomic_amount(
        price, network, registry
    )

    return PaymentRequirements(
        scheme=scheme,
        network=network,
        asset=asset_address,
        pay_to=pay_to_address,
        max_amount_required=max_amount_required,
        resource=resource,
        description=description,
        mime_type=mime_type,
        max_timeout_seconds=max_timeout_seconds,
        output_schema=output_schema,
        extra=extra if extra is not None else eip712_domain,
        **kwargs
    )


async def resolve_payment_requirements(
    price: Price,
    pay_to_address: str,
    resource: str,
    network: str = "base",
    resolver: Optional[NFDResolver] = None,
    **kwargs
) -> PaymentRequirements:
    """Like :func:`create_payment_requirements`, resolving ``.algo`` names first.

    Resolution failures propagate as :class:`AddressResolutionError`
    subclasses and no requirements are built.
    """
    if is_nfd_name(pay_to_address):
        resolver = resolver or NFDResolver(registry=kwargs.get("registry"))
        pay_to_address = await resolver.resolve(pay_to_address, network)

    return create_payment_requirements(
        price=price,
        pay_to_address=pay_to_address,
        resource=resource,
        network=network,
        **kwargs
    )
