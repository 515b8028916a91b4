"""Mock LLM for testing and examples.

Provides a ``MockStructuredChatModel`` that supports
``with_structured_output`` (including ``include_raw=True``) by returning
pre-configured responses, so the selection pipeline and chat sessions can
run without API keys.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

from langchain_core.callbacks import (
    AsyncCallbackManagerForLLMRun,
    CallbackManagerForLLMRun,
)
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage
from langchain_core.outputs import ChatGeneration, ChatResult
from langchain_core.runnables import RunnableSerializable
from pydantic import BaseModel, ConfigDict, ValidationError


def _render(resp: Any) -> str:
    if isinstance(resp, BaseModel):
        return resp.model_dump_json(by_alias=True)
    if isinstance(resp, (dict, list)):
        return json.dumps(resp, ensure_ascii=False)
    return str(resp)


class MockStructuredChatModel(BaseChatModel):
    """A mock chat model that supports with_structured_output.

    Each entry of ``responses`` is consumed in order (cycling when exhausted)
    and may be:

    - a Pydantic instance, returned as the structured value;
    - a ``str``, returned as raw model text (structured calls parse it the
      way a provider would, reporting a ``parsing_error`` on failure);
    - a ``dict``, returned as an already-parsed payload;
    - an ``Exception`` instance, raised from the call.

    Usage::

        model = MockStructuredChatModel(
            responses=[StockCriteria(...), SelectionResult(...)],
        )
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    responses: list[Any] = []
    response_delay: float = 0.0
    received: list[list[BaseMessage]] = []
    _call_index: int = 0

    @property
    def _llm_type(self) -> str:
        return "mock-structured"

    @property
    def call_count(self) -> int:
        return self._call_index

    def _next_response(self, messages: Any) -> Any:
        self.received.append(list(messages) if isinstance(messages, list) else [messages])
        if not self.responses:
            self._call_index += 1
            return ""
        resp = self.responses[self._call_index % len(self.responses)]
        self._call_index += 1
        if isinstance(resp, BaseException):
            raise resp
        return resp

    # -- plain text ---------------------------------------------------------

    def _generate(
        self,
        messages: list[BaseMessage],
        stop: list[str] | None = None,
        run_manager: CallbackManagerForLLMRun | None = None,
        **kwargs: Any,
    ) -> ChatResult:
        resp = self._next_response(messages)
        return ChatResult(generations=[ChatGeneration(message=AIMessage(content=_render(resp)))])

    async def _agenerate(
        self,
        messages: list[BaseMessage],
        stop: list[str] | None = None,
        run_manager: AsyncCallbackManagerForLLMRun | None = None,
        **kwargs: Any,
    ) -> ChatResult:
        if self.response_delay:
            await asyncio.sleep(self.response_delay)
        return self._generate(messages, stop, **kwargs)

    # -- structured ---------------------------------------------------------

    def with_structured_output(self, schema: Any, **kwargs: Any) -> Any:
        """Return a runnable that yields pre-configured structured responses."""
        model_ref = self
        include_raw = bool(kwargs.get("include_raw", False))

        def _package(resp: Any) -> Any:
            if not include_raw:
                return resp
            raw = AIMessage(content=_render(resp))
            if isinstance(resp, str):
                try:
                    return {"raw": raw, "parsed": schema.model_validate_json(resp), "parsing_error": None}
                except ValidationError as exc:
                    return {"raw": raw, "parsed": None, "parsing_error": exc}
            return {"raw": raw, "parsed": resp, "parsing_error": None}

        class _MultiStructuredRunnable(RunnableSerializable):
            """Returns responses in sequence, cycling."""

            model_config = ConfigDict(arbitrary_types_allowed=True)

            def invoke(self, input: Any, config: Any = None, **kwargs: Any) -> Any:
                return _package(model_ref._next_response(input))

            async def ainvoke(self, input: Any, config: Any = None, **kwargs: Any) -> Any:
                if model_ref.response_delay:
                    await asyncio.sleep(model_ref.response_delay)
                return self.invoke(input, config, **kwargs)

        return _MultiStructuredRunnable()
