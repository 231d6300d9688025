"""Executors package exports for a2a_x402_multichain."""

from .base import X402BaseExecutor
from .server import X402ServerExecutor

__all__ = [
    "X402BaseExecutor",
    "X402ServerExecutor"
]
