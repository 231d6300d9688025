"""Payment signing and processing functions."""

from typing import Optional, Union

from eth_account.signers.local import LocalAccount
from x402.clients.base import x402Client

from ..chains.networks import NetworkFamily, NetworkRegistry, get_network_config
from ..mechanisms import AlgorandAccount, get_scheme_for_network
from ..types import (
    PaymentRequirements,
    x402PaymentRequiredResponse,
    PaymentPayload,
    UnsupportedNetworkError
)
from .helpers import select_payment_requirement


WalletAccount = Union[LocalAccount, AlgorandAccount]


def account_family(account: WalletAccount) -> NetworkFamily:
    """Chain family an account can sign for."""
    if isinstance(account, AlgorandAccount):
        return NetworkFamily.ALGORAND
    return NetworkFamily.EVM


async def process_payment_required(
    payment_required: x402PaymentRequiredResponse,
    account: WalletAccount,
    max_value: Optional[int] = None,
    network: Optional[str] = None,
    chain_adapter=None,
    registry: Optional[NetworkRegistry] = None,
    opt_in: bool = False
) -> PaymentPayload:
    """Select an offer from a payment challenge and sign it.

    Args:
        payment_required: Complete response from merchant with accepts[] array
        account: eth_account account for EVM offers, AlgorandAccount for Algorand offers
        max_value: Maximum payment value willing to pay, in atomic units
        network: Only consider offers on this network
        chain_adapter: Algorand chain adapter used to fetch transaction params
        registry: Network registry (default: process-wide registry)
        opt_in: Opt an Algorand account in to the selected asset first

    Returns:
        Signed PaymentPayload for the first acceptable requirement
    """
    family = account_family(account)

    def selector(accepts, network_filter, scheme_filter, limit):
        return select_payment_requirement(
            accepts,
            max_value=limit,
            network=network_filter,
            family=family,
            scheme=scheme_filter or "exact",
            registry=registry
        )

    # Use x402Client for payment requirement selection
    client = x402Client(account=account, max_value=max_value, payment_requirements_selector=selector)
    selected_requirement = client.select_payment_requirements(payment_required.accepts, network)
    return await process_payment(
        selected_requirement,
        account,
        max_value=max_value,
        chain_adapter=chain_adapter,
        registry=registry,
        opt_in=opt_in
    )


async def process_payment(
    requirements: PaymentRequirements,
    account: WalletAccount,
    max_value: Optional[int] = None,
    chain_adapter=None,
    registry: Optional[NetworkRegistry] = None,
    opt_in: bool = False
) -> PaymentPayload:
    """Create a signed PaymentPayload for a single requirement.

    Raises:
        AmountExceedsMaxError: the requirement asks for more than ``max_value``
        SubmissionError: ``opt_in`` was set and the opt-in was rejected
        UnsupportedNetworkError: the network is unknown
    """
    network_config = get_network_config(requirements.network, registry)
    if network_config.family != account_family(account):
        raise UnsupportedNetworkError(
            requirements.network,
            f"{type(account).__name__} cannot sign for {network_config.family.value} network {requirements.network}"
        )

    scheme = get_scheme_for_network(
        requirements.network,
        chain_adapter=chain_adapter,
        registry=registry
    )
    if opt_in and isinstance(account, AlgorandAccount):
        scheme.check_max_value(requirements, max_value)
        await scheme.ensure_opt_in(requirements, account)
    return await scheme.sign(requirements, account, max_value=max_value)
