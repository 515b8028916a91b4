"""Mock LLM for testing, re-exported from ``market_assistant.testing``."""

from market_assistant.testing.mock_llm import MockStructuredChatModel

__all__ = ["MockStructuredChatModel"]
