"""Public testing utilities for the market assistant core.

Provides a mock chat model and an in-memory screening service for writing
self-contained examples and tests without API keys or market data access.
"""

from market_assistant.testing.fakes import ScreeningCall, StaticScreeningService
from market_assistant.testing.mock_llm import MockStructuredChatModel

__all__ = ["MockStructuredChatModel", "ScreeningCall", "StaticScreeningService"]
