"""a2a_x402_multichain - x402 Payment Protocol Extension for A2A on EVM and Algorand."""

# x402 Protocol Types
from .types import (
    X402_VERSION,
    PaymentRequirements,
    x402PaymentRequiredResponse,
    PaymentPayload,
    VerifyResponse,
    SettleResponse,
    ExactEvmPaymentPayload,
    ExactPaymentPayload,
    EIP3009Authorization,
    AlgorandPaymentPayload,
    AlgorandAuthorization,
    TokenAmount,
    TokenAsset,
    EIP712Domain,

    # Extension Constants
    X402_EXTENSION_URI,

    # A2A-Specific Types
    PaymentStatus,
    X402Metadata,

    # Configuration
    X402ExtensionConfig,
    X402ServerConfig,

    # Error Types
    X402Error,
    ConfigurationError,
    UnsupportedNetworkError,
    MessageError,
    ValidationError,
    InvalidPriceError,
    InvalidAssetError,
    AmountExceedsMaxError,
    MalformedPayloadError,
    AddressResolutionError,
    NFDNotFoundError,
    NFDNotOwnedError,
    NFDNoDepositAccountError,
    PaymentError,
    SubmissionError,
    DuplicateTransactionError,
    TransactionRejectedError,
    ConfirmationTimeoutError,
    TransportError,
    StateError,
    X402PaymentRequiredException,
    X402ErrorCode,
    map_error_to_code
)

# Networks and chain adapters
from .chains import (
    NetworkFamily,
    NetworkConfig,
    NetworkRegistry,
    default_registry,
    load_network_registry,
    get_network_config,
    is_algorand_network,
    is_evm_network,
    AlgorandChainAdapter,
    EvmChainAdapter
)

# Payment schemes
from .mechanisms import (
    AlgorandAccount,
    AlgorandExactScheme,
    ExactEvmScheme,
    get_scheme_for_network
)

# Extension utilities
from .extension import (
    get_extension_declaration,
    check_extension_activation,
    add_extension_activation_header,
    create_x402_agent_card
)

# Core Functions
from .core import (
    create_payment_requirements,
    resolve_payment_requirements,
    process_payment_required,
    process_payment,
    verify_payment,
    settle_payment,

    # Facilitators
    FacilitatorConfig,
    FacilitatorClient,
    LocalEvmFacilitator,

    # Address resolution
    NFDResolver,

    # State Management
    X402Utils,
    create_payment_submission_message,
    extract_task_id,

    # Helper functions
    require_payment,
    require_payment_from_config,
    require_payment_choice,
    paid_service,
    smart_paid_service,
    create_tiered_payment_options,
    select_payment_requirement,
    check_payment_context
)

# Middleware
from .executors import (
    X402BaseExecutor,
    X402ServerExecutor
)

__version__ = "0.1.0"

__all__ = [
    # x402 Protocol Types
    "X402_VERSION",
    "PaymentRequirements",
    "x402PaymentRequiredResponse",
    "PaymentPayload",
    "VerifyResponse",
    "SettleResponse",
    "ExactEvmPaymentPayload",
    "ExactPaymentPayload",
    "EIP3009Authorization",
    "AlgorandPaymentPayload",
    "AlgorandAuthorization",
    "TokenAmount",
    "TokenAsset",
    "EIP712Domain",

    # Extension Constants
    "X402_EXTENSION_URI",

    # A2A-Specific Types
    "PaymentStatus",
    "X402Metadata",

    # Configuration
    "X402ExtensionConfig",
    "X402ServerConfig",

    # Error Types
    "X402Error",
    "ConfigurationError",
    "UnsupportedNetworkError",
    "MessageError",
    "ValidationError",
    "InvalidPriceError",
    "InvalidAssetError",
    "AmountExceedsMaxError",
    "MalformedPayloadError",
    "AddressResolutionError",
    "NFDNotFoundError",
    "NFDNotOwnedError",
    "NFDNoDepositAccountError",
    "PaymentError",
    "SubmissionError",
    "DuplicateTransactionError",
    "TransactionRejectedError",
    "ConfirmationTimeoutError",
    "TransportError",
    "StateError",
    "X402PaymentRequiredException",
    "X402ErrorCode",
    "map_error_to_code",

    # Networks and chain adapters
    "NetworkFamily",
    "NetworkConfig",
    "NetworkRegistry",
    "default_registry",
    "load_network_registry",
    "get_network_config",
    "is_algorand_network",
    "is_evm_network",
    "AlgorandChainAdapter",
    "EvmChainAdapter",

    # Payment schemes
    "AlgorandAccount",
    "AlgorandExactScheme",
    "ExactEvmScheme",
    "get_scheme_for_network",

    # Extension utilities
    "get_extension_declaration",
    "check_extension_activation",
    "add_extension_activation_header",
    "create_x402_agent_card",

    # Core Functions
    "create_payment_requirements",
    "resolve_payment_requirements",
    "process_payment_required",
    "process_payment",
    "verify_payment",
    "settle_payment",

    # Facilitators
    "FacilitatorConfig",
    "FacilitatorClient",
    "LocalEvmFacilitator",

    # Address resolution
    "NFDResolver",

    # State Management
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
    "check_payment_context",

    # Middleware
    "X402BaseExecutor",
    "X402ServerExecutor"
]
