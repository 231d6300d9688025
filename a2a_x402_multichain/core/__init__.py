"""Core package exports for a2a_x402_multichain."""

from .merchant import (
    create_payment_requirements,
    resolve_payment_requirements,
    process_price_to_atomic_amount,
    parse_money,
    to_atomic_units
)
from .wallet import process_payment_required, process_payment, account_family
from .protocol import verify_payment, settle_payment
from .facilitator import (
    DEFAULT_FACILITATOR_URL,
    FacilitatorConfig,
    FacilitatorClient,
    LocalEvmFacilitator
)
from .nfd import NFDResolver, is_nfd_name
from .utils import (
    X402Utils,
    create_payment_submission_message,
    extract_task_id
)
from .helpers import (
    require_payment,
    require_payment_from_config,
    require_payment_choice,
    paid_service,
    smart_paid_service,
    create_tiered_payment_options,
    select_payment_requirement,
    check_payment_context
)

__all__ = [
    # Merchant/wallet functions
    "create_payment_requirements",
    "resolve_payment_requirements",
    "process_price_to_atomic_amount",
    "parse_money",
    "to_atomic_units",
    "process_payment_required",
    "process_payment",
    "account_family",

    # Protocol functions
    "verify_payment",
    "settle_payment",

    # Facilitators
    "DEFAULT_FACILITATOR_URL",
    "FacilitatorConfig",
    "FacilitatorClient",
    "LocalEvmFacilitator",

    # Address resolution
    "NFDResolver",
    "is_nfd_name",

    # State management
    "X402Utils",
    "create_payment_submission_message",
    "extract_task_id",

    # Helper functions
    "require_payment",
    "require_payment_from_config",
    "require_payment_choice",
    "paid_service",
    "smart_paid_service",
    "create_tiered_payment_options",
    "select_payment_requirement",
    "check_payment_context"
]
