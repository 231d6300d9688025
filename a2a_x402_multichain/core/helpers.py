"""Helper functions for raising payment challenges and choosing offers."""

import functools
from decimal import Decimal
from typing import Any, Callable, Iterable, List, Optional

from ..chains.networks import NetworkFamily, NetworkRegistry, is_network_of_family
from ..types import (
    PaymentRequirements,
    PaymentStatus,
    Price,
    TokenAmount,
    ValidationError,
    X402Metadata,
    X402PaymentRequiredException,
    X402ServerConfig
)
from .merchant import create_payment_requirements, parse_money


def require_payment(
    price: Price,
    pay_to_address: str,
    resource: Optional[str] = None,
    network: str = "base",
    description: str = "Payment required for this service",
    message: Optional[str] = None,
    **kwargs
) -> X402PaymentRequiredException:
    """Build (not raise) a payment challenge for a single offer.

    Example:
        raise require_payment("$1.00", "0xabc...", "/generate")
    """
    requirements = create_payment_requirements(
        price=price,
        pay_to_address=pay_to_address,
        resource=resource or "/service",
        network=network,
        description=description,
        **kwargs
    )
    return X402PaymentRequiredException(message or description, requirements)


def require_payment_from_config(
    config: X402ServerConfig,
    resource: Optional[str] = None,
    message: Optional[str] = None
) -> X402PaymentRequiredException:
    """Build a single-offer challenge from a merchant's saved pricing."""
    return require_payment(
        price=config.price,
        pay_to_address=config.pay_to_address,
        resource=resource or config.resource,
        network=config.network,
        description=config.description,
        message=message,
        mime_type=config.mime_type,
        max_timeout_seconds=config.max_timeout_seconds
    )


def require_payment_choice(
    payment_options: List[PaymentRequirements],
    message: str = "Multiple payment options available"
) -> X402PaymentRequiredException:
    """Build a challenge offering several alternatives; any one satisfies it."""
    return X402PaymentRequiredException(message, payment_options)


def create_tiered_payment_options(
    base_price: Price,
    pay_to_address: str,
    resource: str,
    tiers: Optional[List[dict]] = None,
    network: str = "base",
    **kwargs
) -> List[PaymentRequirements]:
    """Requirements for each tier, priced at ``base_price * multiplier``.

    Each tier is a dict with ``multiplier``, ``suffix`` and ``description``;
    the tier's resource is ``f"{resource}/{suffix}"``.
    """
    if tiers is None:
        tiers = [
            {"multiplier": 1, "suffix": "basic", "description": "Basic service"},
            {"multiplier": 2, "suffix": "premium", "description": "Premium service"}
        ]

    options = []
    for tier in tiers:
        multiplier = Decimal(str(tier.get("multiplier", 1)))
        if isinstance(base_price, TokenAmount):
            amount = int(Decimal(base_price.amount) * multiplier)
            price = TokenAmount(amount=str(amount), asset=base_price.asset)
        else:
            price = f"{parse_money(base_price) * multiplier}"

        options.append(create_payment_requirements(
            price=price,
            pay_to_address=pay_to_address,
            resource=f"{resource}/{tier['suffix']}",
            network=network,
            description=tier.get("description", ""),
            **kwargs
        ))
    return options


def select_payment_requirement(
    accepts: Iterable[PaymentRequirements],
    max_value: Optional[int] = None,
    network: Optional[str] = None,
    family: Optional[NetworkFamily] = None,
    scheme: str = "exact",
    registry: Optional[NetworkRegistry] = None
) -> PaymentRequirements:
    """First offer the client can pay, in the merchant's order.

    Raises:
        ValidationError: no offer matches the filters or fits ``max_value``
    """
    for requirement in accepts:
        if requirement.scheme != scheme:
            continue
        if network is not None and requirement.network != network:
            continue
        if family is not None and not is_network_of_family(requirement.network, family, registry):
            continue
        if max_value is not None and int(requirement.max_amount_required) > max_value:
            continue
        return requirement

    raise ValidationError("No acceptable payment requirements offered")


def check_payment_context(context: Any) -> Optional[str]:
    """Payment status stored on the current task of a request context, if any."""
    task = getattr(context, "current_task", None)
    status = getattr(task, "status", None) if task else None
    message = getattr(status, "message", None) if status else None
    metadata = getattr(message, "metadata", None) if message else None
    if not isinstance(metadata, dict):
        return None
    return metadata.get(X402Metadata.STATUS_KEY)


def paid_service(
    price: Price,
    pay_to_address: str,
    resource: Optional[str] = None,
    network: str = "base",
    description: str = "Payment required for this service"
) -> Callable:
    """Decorator that always answers a call with a payment challenge."""
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            raise require_payment(
                price=price,
                pay_to_address=pay_to_address,
                resource=resource or f"/{func.__name__}",
                network=network,
                description=description
            )
        return wrapper
    return decorator


def smart_paid_service(
    price: Price,
    pay_to_address: str,
    resource: Optional[str] = None,
    network: str = "base",
    description: str = "Payment required for this service"
) -> Callable:
    """Decorator that runs the function once the context shows a completed payment.

    The first positional argument, when present, is taken as the request context.
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            context = args[0] if args else kwargs.get("context")
            if check_payment_context(context) == PaymentStatus.PAYMENT_COMPLETED.value:
                return func(*args, **kwargs)
            raise require_payment(
                price=price,
                pay_to_address=pay_to_address,
                resource=resource or f"/{func.__name__}",
                network=network,
                description=description
            )
        return wrapper
    return decorator
