"""LangChain implementation of :class:`LanguageModelInvoker`.

Each analyst role gets its own ``BaseChatModel`` built by a factory (so the
role's temperature / top-p / top-k / token budget are fixed at construction)
and cached for the invoker's lifetime.  Structured roles go through
``model.with_structured_output(schema, include_raw=True)``; when the
provider's own parser rejects the answer, the raw text gets one lenient,
case-insensitive parse before :class:`SchemaValidationError` is raised.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
import typing
from collections.abc import Callable, Sequence
from typing import Any

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from pydantic import BaseModel, ValidationError

from market_assistant.domain.enums import MessageRole
from market_assistant.domain.values import AnalystRole, ChatMessage
from market_assistant.infrastructure.llm import (
    InvocationResult,
    LanguageModelInvoker,
    LLMError,
    SchemaValidationError,
    run_cancellable,
)

logger = logging.getLogger(__name__)

ModelFactory = Callable[[AnalystRole], BaseChatModel]

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)


# -- message conversion --------------------------------------------------------


def to_langchain_messages(
    messages: Sequence[ChatMessage], system_instruction: str = ""
) -> list[BaseMessage]:
    """Convert domain chat messages to LangChain messages."""
    converted: list[BaseMessage] = []
    if system_instruction:
        converted.append(SystemMessage(content=system_instruction))
    for msg in messages:
        if msg.role is MessageRole.SYSTEM:
            converted.append(SystemMessage(content=msg.content))
        elif msg.role is MessageRole.USER:
            converted.append(HumanMessage(content=msg.content))
        else:
            converted.append(AIMessage(content=msg.content))
    return converted


def message_text(message: Any) -> str:
    """Extract plain text from a LangChain message (string or content blocks)."""
    content = getattr(message, "content", message)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(str(block.get("text", "")))
        return "".join(parts)
    return str(content or "")


# -- lenient structured parsing -------------------------------------------------


def _nested_model(annotation: Any) -> tuple[type[BaseModel] | None, bool]:
    """Return ``(model_cls, is_list)`` if *annotation* wraps a BaseModel."""
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return annotation, False
    origin = typing.get_origin(annotation)
    args = typing.get_args(annotation)
    if origin in (list, tuple) and args:
        inner, _ = _nested_model(args[0])
        return inner, inner is not None
    if args:  # Optional[X] / X | None
        for arg in args:
            inner, is_list = _nested_model(arg)
            if inner is not None:
                return inner, is_list
    return None, False


def normalise_keys(data: Any, schema: type[BaseModel]) -> Any:
    """Map keys of *data* onto *schema*'s wire names, ignoring case and underscores."""
    if not isinstance(data, dict):
        return data
    lookup: dict[str, tuple[str, Any]] = {}
    for name, info in schema.model_fields.items():
        wire = info.alias or name
        for spelling in (name, wire):
            lookup[spelling.lower()] = (wire, info.annotation)
            lookup[spelling.replace("_", "").lower()] = (wire, info.annotation)

    result: dict[str, Any] = {}
    for key, value in data.items():
        key_text = str(key)
        match = lookup.get(key_text.lower()) or lookup.get(key_text.replace("_", "").lower())
        if match is None:
            result[key_text] = value
            continue
        wire, annotation = match
        inner, is_list = _nested_model(annotation)
        if inner is not None and is_list and isinstance(value, list):
            value = [normalise_keys(item, inner) for item in value]
        elif inner is not None:
            value = normalise_keys(value, inner)
        result[wire] = value
    return result


def parse_structured(text: str, schema: type[BaseModel]) -> BaseModel:
    """Parse *text* as JSON for *schema*, tolerant of fences and key casing.

    Raises
    ------
    SchemaValidationError
        If no JSON object can be extracted or it fails validation.
    """
    candidate = text.strip()
    fenced = _FENCE_RE.search(candidate)
    if fenced:
        candidate = fenced.group(1).strip()
    if not candidate.startswith("{"):
        start, end = candidate.find("{"), candidate.rfind("}")
        if start != -1 and end > start:
            candidate = candidate[start : end + 1]
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as exc:
        raise SchemaValidationError(
            f"{schema.__name__}: response is not valid JSON ({exc.msg})",
            schema_name=schema.__name__,
            raw_text=text,
        ) from exc
    try:
        return schema.model_validate(normalise_keys(data, schema))
    except ValidationError as exc:
        raise SchemaValidationError(
            f"{schema.__name__}: {exc.error_count()} validation error(s)",
            schema_name=schema.__name__,
            raw_text=text,
            details={"errors": exc.errors(include_url=False)},
        ) from exc


# -- invoker ---------------------------------------------------------------------


class ChatModelInvoker(LanguageModelInvoker):
    """Invoke LangChain chat models on behalf of analyst roles.

    Parameters
    ----------
    model:
        Either a ``BaseChatModel`` shared by every role (its own sampling
        settings apply) or a factory ``role -> BaseChatModel``.
    default_timeout:
        Timeout used when a call does not pass one.
    structured_output_kwargs:
        Extra keyword arguments for ``with_structured_output`` (e.g.
        ``{"method": "json_mode"}`` for providers without schema support).
    """

    def __init__(
        self,
        model: BaseChatModel | ModelFactory,
        default_timeout: float | None = None,
        structured_output_kwargs: dict[str, Any] | None = None,
    ) -> None:
        if isinstance(model, BaseChatModel):
            shared = model
            self._factory: ModelFactory = lambda role: shared
        else:
            self._factory = model
        self._default_timeout = default_timeout
        self._structured_kwargs = structured_output_kwargs or {}
        self._models: dict[str, BaseChatModel] = {}

    def model_for(self, role: AnalystRole) -> BaseChatModel:
        """Return the cached chat model for *role*, building it on first use."""
        model = self._models.get(role.name)
        if model is None:
            model = self._factory(role)
            self._models[role.name] = model
            logger.debug("ChatModelInvoker: built model for role %r", role.name)
        return model

    async def invoke(
        self,
        role: AnalystRole,
        messages: Sequence[ChatMessage],
        *,
        system_instruction: str | None = None,
        output_schema: type[BaseModel] | None = None,
        cancel_event: asyncio.Event | None = None,
        timeout: float | None = None,
    ) -> InvocationResult:
        schema = output_schema or role.output_schema
        instruction = role.instructions if system_instruction is None else system_instruction
        lc_messages = to_langchain_messages(messages, instruction)
        effective_timeout = timeout if timeout is not None else self._default_timeout
        model = self.model_for(role)

        if schema is None:
            response = await self._guarded(
                model.ainvoke(lc_messages), role, cancel_event, effective_timeout
            )
            text = message_text(response)
            logger.debug("ChatModelInvoker[%s]: %d chars of text", role.name, len(text))
            return InvocationResult(text=text)

        runnable = model.with_structured_output(
            schema, include_raw=True, **self._structured_kwargs
        )
        output = await self._guarded(
            runnable.ainvoke(lc_messages), role, cancel_event, effective_timeout
        )
        return self._validate(output, schema, role)

    async def _guarded(
        self,
        call: Any,
        role: AnalystRole,
        cancel_event: asyncio.Event | None,
        timeout: float | None,
    ) -> Any:
        try:
            return await run_cancellable(
                call, cancel_event, timeout, label=f"model call for {role.name}"
            )
        except LLMError:
            raise
        except Exception as exc:
            raise LLMError(
                f"{role.name}: model call failed: {exc}",
                details={"role": role.name, "error_type": type(exc).__name__},
            ) from exc

    def _validate(
        self, output: Any, schema: type[BaseModel], role: AnalystRole
    ) -> InvocationResult:
        """Single validation point for structured responses."""
        raw_text = ""
        parsed: Any = output
        if isinstance(output, dict) and "raw" in output:
            raw_text = message_text(output.get("raw"))
            parsed = output.get("parsed")
            if output.get("parsing_error") is not None:
                logger.debug(
                    "ChatModelInvoker[%s]: provider parser failed: %s",
                    role.name,
                    output["parsing_error"],
                )

        if isinstance(parsed, schema):
            return InvocationResult(text=raw_text or parsed.model_dump_json(), structured=parsed)
        if isinstance(parsed, BaseModel):
            parsed = parsed.model_dump(by_alias=True)
        if isinstance(parsed, dict):
            try:
                value = schema.model_validate(normalise_keys(parsed, schema))
                return InvocationResult(text=raw_text, structured=value)
            except ValidationError as exc:
                logger.debug("ChatModelInvoker[%s]: dict output invalid: %s", role.name, exc)

        if not raw_text:
            raise SchemaValidationError(
                f"{role.name}: empty structured response",
                schema_name=schema.__name__,
                details={"role": role.name},
            )
        structured = parse_structured(raw_text, schema)
        return InvocationResult(text=raw_text, structured=structured)
