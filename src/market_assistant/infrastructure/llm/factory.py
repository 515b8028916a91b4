"""Build per-role LangChain chat models from :class:`LLMSettings`.

Provider integrations are optional dependencies and are imported lazily, so
``market_assistant`` imports cleanly with only ``langchain-core`` installed.

Usage::

    settings = LLMSettings(provider="openai", model="gpt-4o-mini")
    invoker = ChatModelInvoker(ChatModelFactory(settings))
"""

from __future__ import annotations

import logging
from typing import Any

from langchain_core.language_models import BaseChatModel

from market_assistant.domain.values import AnalystRole
from market_assistant.infrastructure.config import LLMSettings

logger = logging.getLogger(__name__)


class ChatModelFactory:
    """Callable ``role -> BaseChatModel`` honouring the role's sampling params.

    Parameters
    ----------
    settings:
        Provider, model name, credentials and transport timeout.
    """

    def __init__(self, settings: LLMSettings) -> None:
        settings.validate()
        self.settings = settings

    def __call__(self, role: AnalystRole) -> BaseChatModel:
        return self.create(role)

    def create(self, role: AnalystRole) -> BaseChatModel:
        """Create a chat model configured for *role*.

        Raises
        ------
        ImportError
            If the provider's LangChain integration is not installed.
        ValueError
            If the provider is unknown.
        """
        provider = self.settings.provider
        logger.debug(
            "ChatModelFactory: creating %s model %r for role %r",
            provider,
            self.settings.model,
            role.name,
        )
        if provider == "openai":
            return self._create_openai(role)
        if provider == "anthropic":
            return self._create_anthropic(role)
        raise ValueError(f"Unknown provider {provider!r}")

    # -- providers ------------------------------------------------------------

    def _common_kwargs(self, role: AnalystRole) -> dict[str, Any]:
        sampling = role.sampling
        kwargs: dict[str, Any] = {
            "model": self.settings.model,
            "temperature": sampling.temperature,
            "timeout": self.settings.timeout,
        }
        if sampling.top_p != 1.0:
            kwargs["top_p"] = sampling.top_p
        if sampling.max_output_tokens is not None:
            kwargs["max_tokens"] = sampling.max_output_tokens
        if self.settings.api_key:
            kwargs["api_key"] = self.settings.api_key
        kwargs.update(self.settings.extra)
        return kwargs

    def _create_openai(self, role: AnalystRole) -> BaseChatModel:
        try:
            from langchain_openai import ChatOpenAI
        except ImportError as exc:
            raise ImportError(
                "The 'openai' provider requires langchain-openai. "
                "Install with: pip install 'market-assistant[openai]'"
            ) from exc

        kwargs = self._common_kwargs(role)
        if self.settings.base_url:
            kwargs["base_url"] = self.settings.base_url
        # OpenAI's chat API has no top_k; it is dropped here.
        return ChatOpenAI(**kwargs)

    def _create_anthropic(self, role: AnalystRole) -> BaseChatModel:
        try:
            from langchain_anthropic import ChatAnthropic
        except ImportError as exc:
            raise ImportError(
                "The 'anthropic' provider requires langchain-anthropic. "
                "Install with: pip install 'market-assistant[anthropic]'"
            ) from exc

        kwargs = self._common_kwargs(role)
        # Anthropic rejects temperature and top_p together; temperature wins.
        if kwargs.pop("top_p", None) is not None:
            logger.debug("ChatModelFactory: dropping top_p for anthropic role %r", role.name)
        if role.sampling.top_k is not None:
            kwargs["top_k"] = role.sampling.top_k
        if self.settings.base_url:
            kwargs["base_url"] = self.settings.base_url
        return ChatAnthropic(**kwargs)
