"""Unit tests for a2a_x402_multichain.executors.base module."""

import pytest
from unittest.mock import Mock, AsyncMock

from a2a_x402_multichain.core.utils import X402Utils
from a2a_x402_multichain.executors.base import X402BaseExecutor
from a2a_x402_multichain.types import X402ExtensionConfig, X402_EXTENSION_URI


class ConcreteExecutor(X402BaseExecutor):
    async def execute(self, context, event_queue):
        return await self._delegate.execute(context, event_queue)


class TestX402BaseExecutor:
    """Test X402BaseExecutor abstract base class."""

    def test_base_executor_initialization(self):
        delegate = Mock()

        executor = ConcreteExecutor(delegate)

        assert executor._delegate is delegate
        assert executor.config == X402ExtensionConfig()
        assert isinstance(executor.utils, X402Utils)

    def test_abstract_execute_method(self):
        with pytest.raises(TypeError):
            X402BaseExecutor(Mock())

    def test_is_active_with_extension_header(self):
        executor = ConcreteExecutor(Mock(), X402ExtensionConfig(required=False))
        context = Mock()
        context.headers = {"X-A2A-Extensions": f"https://example.com/other, {X402_EXTENSION_URI}"}

        assert executor.is_active(context) is True

    def test_is_active_without_extension_header(self):
        executor = ConcreteExecutor(Mock(), X402ExtensionConfig(required=False))
        context = Mock()
        context.headers = {}

        assert executor.is_active(context) is False

    def test_is_active_with_wrong_extension(self):
        executor = ConcreteExecutor(Mock(), X402ExtensionConfig(required=False))
        context = Mock()
        context.headers = {"X-A2A-Extensions": "https://example.com/other-extension"}

        assert executor.is_active(context) is False

    def test_required_extension_is_always_active(self):
        executor = ConcreteExecutor(Mock())
        context = Mock(spec=[])

        assert executor.is_active(context) is True

    @pytest.mark.asyncio
    async def test_cancel_delegates(self):
        delegate = Mock()
        delegate.cancel = AsyncMock(return_value="cancelled")
        executor = ConcreteExecutor(delegate)
        context, event_queue = Mock(), Mock()

        assert await executor.cancel(context, event_queue) == "cancelled"
        delegate.cancel.assert_awaited_once_with(context, event_queue)
