"""Chat session with the ``chat_analyst`` role over a bounded context window."""

from __future__ import annotations

import asyncio
import logging
import uuid

from market_assistant.domain.enums import MessageRole
from market_assistant.domain.exceptions import InvalidRequestError
from market_assistant.domain.values import AnalystRole, ChatMessage
from market_assistant.infrastructure.config import ContextWindowConfig
from market_assistant.infrastructure.event_bus import AsyncEventBus
from market_assistant.infrastructure.llm import (
    LanguageModelInvoker,
    LLMCancelledError,
    LLMError,
)
from market_assistant.roles.catalog import AnalystRoleCatalog, default_catalog
from market_assistant.roles.definitions import CHAT_ANALYST
from market_assistant.services import prompts
from market_assistant.services.context_window import ContextWindowManager

logger = logging.getLogger(__name__)


class AnalystChatSession:
    """A conversation with the chat analyst about one (changeable) stock.

    Each :meth:`send_message` appends the user turn (compacting the log if it
    is over budget), asks the model for a reply over the whole log, and
    appends the reply.  Model failures produce an apology reply instead of an
    exception; a cancelled turn returns a fixed notice and leaves no reply in
    the log.

    Parameters
    ----------
    invoker:
        Language model boundary used for replies and summaries.
    catalog:
        Role catalog; defaults to the built-in one.
    context_config:
        Message budget for the session's log.
    event_bus:
        Receives compaction events.
    session_id:
        Identifier used in logs and events; random when omitted.
    subject:
        Initial analysis focus, e.g. ``"SH600519"``.
    timeout:
        Timeout for each reply and summarization call.
    """

    def __init__(
        self,
        invoker: LanguageModelInvoker,
        catalog: AnalystRoleCatalog | None = None,
        context_config: ContextWindowConfig | None = None,
        event_bus: AsyncEventBus | None = None,
        session_id: str | None = None,
        subject: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.invoker = invoker
        self.catalog = catalog or default_catalog()
        self.role: AnalystRole = self.catalog.get(CHAT_ANALYST)
        self.session_id = session_id or uuid.uuid4().hex[:12]
        self.subject = subject
        self.timeout = timeout
        self.context = ContextWindowManager(
            config=context_config,
            invoker=invoker,
            catalog=self.catalog,
            event_bus=event_bus,
            session_id=self.session_id,
            subject=subject,
            initial_messages=[self._seed_message()],
            summary_timeout=timeout,
        )
        self._cancel_event: asyncio.Event | None = None

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        return self.context.messages

    @property
    def is_busy(self) -> bool:
        return self._cancel_event is not None

    def _seed_message(self) -> ChatMessage:
        return ChatMessage.system(prompts.chat_system_prompt(self.role.instructions, self.subject))

    # -- conversation -------------------------------------------------------

    async def send_message(self, text: str) -> str:
        """Send a user message and return the analyst's reply.

        Raises
        ------
        InvalidRequestError
            If *text* is blank.
        """
        if not text.strip():
            raise InvalidRequestError("消息内容不能为空", field_name="text")

        cancel_event = asyncio.Event()
        self._cancel_event = cancel_event
        try:
            await self.context.append(ChatMessage.user(text), cancel_event)
            logger.info(
                "AnalystChatSession[%s]: user turn (%d chars, %d messages in log)",
                self.session_id,
                len(text),
                len(self.context),
            )
            try:
                response = await self.invoker.invoke(
                    self.role,
                    self.context.messages,
                    system_instruction="",
                    cancel_event=cancel_event,
                    timeout=self.timeout,
                )
            except LLMCancelledError:
                logger.info("AnalystChatSession[%s]: turn cancelled", self.session_id)
                return prompts.CHAT_CANCELLED_REPLY
            except LLMError as exc:
                logger.error(
                    "AnalystChatSession[%s]: reply failed: %s: %s",
                    self.session_id,
                    type(exc).__name__,
                    exc,
                )
                await self.context.append(ChatMessage.assistant(prompts.CHAT_ERROR_REPLY))
                return prompts.CHAT_ERROR_REPLY

            reply = response.text.strip() or prompts.CHAT_ERROR_REPLY
            await self.context.append(ChatMessage.assistant(reply), cancel_event)
            return reply
        finally:
            if self._cancel_event is cancel_event:
                self._cancel_event = None

    def cancel(self) -> bool:
        """Cancel the in-flight turn. Returns ``False`` if none is running."""
        if self._cancel_event is None:
            return False
        self._cancel_event.set()
        return True

    # -- context ------------------------------------------------------------

    async def add_system_message(self, content: str) -> None:
        await self.context.append(ChatMessage.system(content))

    async def update_subject(self, subject: str) -> None:
        """Switch the analysis focus to *subject*.

        Adds a context note summarizing the last three analyst replies and,
        once the user has spoken, a notice of the switch.
        """
        subject = subject.strip()
        if not subject or subject == self.subject:
            return

        previous = self.subject
        self.subject = subject
        self.context.subject = subject
        history = self.context.messages
        recent_replies = [m for m in history if m.role is MessageRole.ASSISTANT][-3:]

        await self.add_system_message(prompts.subject_context_message(subject, recent_replies))
        if any(m.role is MessageRole.USER for m in history):
            await self.add_system_message(prompts.subject_switch_notice(previous, subject))
        logger.info(
            "AnalystChatSession[%s]: subject %s -> %s", self.session_id, previous, subject
        )

    async def clear(self) -> None:
        """Drop the conversation, keeping only a fresh system context."""
        await self.context.reset([self._seed_message()])
        logger.info("AnalystChatSession[%s]: cleared", self.session_id)
