"""Types package for a2a_x402_multichain - x402 wire models, A2A SDK types, and A2A-specific extensions."""


from a2a.types import (
    Task,
    Message,
    AgentCard,
    AgentCapabilities,
    AgentSkill,
    TaskState,
    TaskStatus
)
from a2a.server.agent_execution.agent_executor import AgentExecutor
from a2a.server.agent_execution.context import RequestContext
from a2a.server.events.event_queue import EventQueue

from .payloads import (
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
    Money,
    Price
)

from .state import (
    PaymentStatus,
    X402Metadata,
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES
)

from .errors import (
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

from .config import (
    X402_EXTENSION_URI,
    X402ExtensionConfig,
    X402ServerConfig
)

__all__ = [

    "Task",
    "Message",
    "AgentCard",
    "AgentCapabilities",
    "AgentSkill",
    "TaskState",
    "TaskStatus",

    "AgentExecutor",
    "RequestContext",
    "EventQueue",

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
    "Money",
    "Price",

    "PaymentStatus",
    "X402Metadata",
    "ALLOWED_TRANSITIONS",
    "TERMINAL_STATUSES",

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

    "X402_EXTENSION_URI",
    "X402ExtensionConfig",
    "X402ServerConfig"
]
