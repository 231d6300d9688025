"""Base executor types and interfaces for x402 payment middleware."""

from abc import ABC, abstractmethod
from typing import Optional

from ..extension import check_extension_activation
from ..types import (
    AgentExecutor,
    RequestContext,
    EventQueue,
    X402ExtensionConfig
)
from ..core.utils import X402Utils


class X402BaseExecutor(AgentExecutor, ABC):
    """Base executor with x402 protocol support."""

    def __init__(
        self,
        delegate: AgentExecutor,
        config: Optional[X402ExtensionConfig] = None
    ):
        """Initialize base executor.

        Args:
            delegate: The underlying agent executor to wrap
            config: x402 extension configuration (default: required extension)
        """
        self._delegate = delegate
        self.config = config or X402ExtensionConfig()
        self.utils = X402Utils()

    def is_active(self, context: RequestContext) -> bool:
        """Check if x402 extension is activated for this request.

        The extension is active when the client asked for it in
        ``X-A2A-Extensions``, or unconditionally when it is required.
        """
        headers = getattr(context, 'headers', None)
        if isinstance(headers, dict) and check_extension_activation(headers):
            return True
        return self.config.required

    @abstractmethod
    async def execute(
        self,
        context: RequestContext,
        event_queue: EventQueue
    ):
        """Execute the agent with x402 payment middleware."""
        ...

    async def cancel(
        self,
        context: RequestContext,
        event_queue: EventQueue
    ):
        """Cancellation is passed straight through to the delegate."""
        return await self._delegate.cancel(context, event_queue)
