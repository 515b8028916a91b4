"""Language model boundary for the market assistant core.

The pipeline and the chat sessions never talk to a model SDK directly; they
go through a :class:`LanguageModelInvoker`, which receives the analyst role
(sampling parameters, default instructions, output schema), the message
list, an optional cancellation event and an optional timeout, and returns an
:class:`InvocationResult`.

Public API
----------
LanguageModelInvoker
    Abstract contract every backend implements.
InvocationResult
    Text plus (for structured roles) the validated schema instance.
run_cancellable
    Await a call while racing it against a cancel event and a timeout.
LLMError
    Base exception for all model-call failures.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

from pydantic import BaseModel

from market_assistant.domain.exceptions import MarketAssistantError
from market_assistant.domain.values import AnalystRole, ChatMessage

logger = logging.getLogger(__name__)

T = TypeVar("T")


# =========================================================================== #
#  Exceptions                                                                  #
# =========================================================================== #

class LLMError(MarketAssistantError):
    """Base exception for model-call failures (transport, timeout, parsing)."""


class LLMTimeoutError(LLMError):
    """Raised when a call exceeds the caller-chosen timeout."""


class LLMCancelledError(LLMError):
    """Raised when the caller's cancel event fires before the call completes."""


class LLMResponseError(LLMError):
    """Raised when the model returns an unusable response."""


class SchemaValidationError(LLMResponseError):
    """The model's structured response does not conform to the role's schema.

    Kept distinct from transport failures so callers can decide to retry
    with a stricter prompt rather than retrying for network reasons.
    """

    def __init__(
        self,
        message: str = "Structured response failed schema validation",
        schema_name: str = "",
        raw_text: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.schema_name = schema_name
        self.raw_text = raw_text


# =========================================================================== #
#  Data structures                                                             #
# =========================================================================== #

@dataclass(frozen=True)
class InvocationResult:
    """Response of a single model call.

    Attributes
    ----------
    text:
        Raw text content returned by the model.
    structured:
        Validated schema instance when the call requested structured output,
        otherwise ``None``.
    """

    text: str
    structured: BaseModel | None = None


# =========================================================================== #
#  Contract                                                                    #
# =========================================================================== #

class LanguageModelInvoker(ABC):
    """Black-box model call: role + messages in, text or structured value out.

    Implementations must honour ``cancel_event`` and ``timeout`` (see
    :func:`run_cancellable`) and must validate structured output against the
    schema exactly once, raising :class:`SchemaValidationError` on mismatch.
    """

    @abstractmethod
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
        """Run one model call on behalf of *role*.

        Parameters
        ----------
        role:
            Supplies sampling parameters, default instructions and the
            default output schema.
        messages:
            Conversation to send after the system instruction.
        system_instruction:
            Overrides ``role.instructions``; pass ``""`` to send no system
            instruction (e.g. when *messages* already carries one).
        output_schema:
            Overrides ``role.output_schema``.
        cancel_event:
            When set before completion, the call aborts with
            :class:`LLMCancelledError`.
        timeout:
            Seconds before the call aborts with :class:`LLMTimeoutError`.

        Raises
        ------
        LLMError
            On any failure, with the specific subclass identifying the cause.
        """
        ...


# =========================================================================== #
#  Cancellation helper                                                         #
# =========================================================================== #

async def run_cancellable(
    awaitable: Awaitable[T],
    cancel_event: asyncio.Event | None = None,
    timeout: float | None = None,
    label: str = "call",
) -> T:
    """Await *awaitable*, aborting on *cancel_event* or after *timeout*.

    Native task cancellation (``asyncio.CancelledError``) is propagated
    untouched; only the explicit cancel event maps to
    :class:`LLMCancelledError`.
    """
    if cancel_event is not None and cancel_event.is_set():
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        raise LLMCancelledError(f"{label} cancelled before start")

    task = asyncio.ensure_future(awaitable)
    waiters: set[asyncio.Future[Any]] = {task}
    cancel_waiter: asyncio.Future[Any] | None = None
    if cancel_event is not None:
        cancel_waiter = asyncio.ensure_future(cancel_event.wait())
        waiters.add(cancel_waiter)

    try:
        done, _ = await asyncio.wait(
            waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
        )
    except asyncio.CancelledError:
        task.cancel()
        if cancel_waiter is not None:
            cancel_waiter.cancel()
        raise

    if cancel_waiter is not None:
        cancel_waiter.cancel()

    if task in done:
        return task.result()

    task.cancel()
    await asyncio.gather(task, return_exceptions=True)
    if cancel_waiter is not None and cancel_waiter in done:
        logger.info("run_cancellable: %s cancelled by caller", label)
        raise LLMCancelledError(f"{label} cancelled")
    logger.warning("run_cancellable: %s timed out after %.1fs", label, timeout or 0.0)
    raise LLMTimeoutError(f"{label} timed out after {timeout}s")


__all__ = [
    # Exceptions
    "LLMError",
    "LLMTimeoutError",
    "LLMCancelledError",
    "LLMResponseError",
    "SchemaValidationError",
    # Data
    "InvocationResult",
    # Contract
    "LanguageModelInvoker",
    "run_cancellable",
]
