"""Bounded message log for one chat analyst session.

When the log grows past ``max_context_messages`` the manager compacts it:

1. System messages are kept verbatim and in order.
2. The most recent ``min_messages_after_compression // 2`` non-system
   messages are always kept.
3. Up to ``important_messages_count`` of the older non-system messages are
   kept by :class:`ImportanceScorer` score (ties go to the later message).
4. Everything else is replaced by one system message summarizing it,
   produced by the ``conversation_summarizer`` role or, when that call
   fails, by a deterministic fallback sentence.

Appends and compaction are serialized by a lock owned by the manager, so
each session has its own lock and independent sessions never block each
other.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from market_assistant.domain.enums import MessageRole
from market_assistant.domain.events import ContextCompacted
from market_assistant.domain.values import ChatMessage
from market_assistant.infrastructure.config import ContextWindowConfig
from market_assistant.infrastructure.event_bus import AsyncEventBus
from market_assistant.infrastructure.llm import LanguageModelInvoker
from market_assistant.roles.catalog import AnalystRoleCatalog, default_catalog
from market_assistant.roles.definitions import CONVERSATION_SUMMARIZER
from market_assistant.services import prompts
from market_assistant.services.scoring import ImportanceScorer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompactionResult:
    """Outcome of one compaction pass."""

    before_count: int
    after_count: int
    compacted_count: int
    retained_count: int
    summary: str
    degraded: bool = False


class ContextWindowManager:
    """Owns and compacts a single session's ordered message log.

    Parameters
    ----------
    config:
        Message budget; defaults to :class:`ContextWindowConfig`.
    invoker:
        Used for the summarization call.  Without one, every compaction
        uses the deterministic fallback summary.
    catalog:
        Source of the ``conversation_summarizer`` role.
    event_bus:
        Receives a :class:`ContextCompacted` event per pass.
    scorer:
        Importance heuristic for older messages.
    session_id:
        ``source_id`` of published events.
    subject:
        Active subject (e.g. a stock code) used by scoring and the fallback.
    initial_messages:
        Log content at construction time (not compacted).
    summary_timeout:
        Timeout for the summarization call.
    """

    def __init__(
        self,
        config: ContextWindowConfig | None = None,
        invoker: LanguageModelInvoker | None = None,
        catalog: AnalystRoleCatalog | None = None,
        event_bus: AsyncEventBus | None = None,
        scorer: ImportanceScorer | None = None,
        session_id: str = "",
        subject: str | None = None,
        initial_messages: Iterable[ChatMessage] = (),
        summary_timeout: float | None = None,
    ) -> None:
        self.config = config or ContextWindowConfig()
        self.config.validate()
        self.invoker = invoker
        self.catalog = catalog or default_catalog()
        self.event_bus = event_bus
        self.scorer = scorer or ImportanceScorer()
        self.session_id = session_id
        self.subject = subject
        self.summary_timeout = summary_timeout
        self._messages: list[ChatMessage] = list(initial_messages)
        self._lock = asyncio.Lock()
        self.compaction_count = 0

    # -- log access -----------------------------------------------------------

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        return tuple(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    @property
    def needs_compaction(self) -> bool:
        return len(self._messages) > self.config.max_context_messages

    # -- mutation -------------------------------------------------------------

    async def append(
        self, message: ChatMessage, cancel_event: asyncio.Event | None = None
    ) -> CompactionResult | None:
        """Append *message*, compacting afterwards if the log is over budget."""
        async with self._lock:
            self._messages.append(message)
            return await self._compact_locked(cancel_event)

    async def extend(
        self, messages: Iterable[ChatMessage], cancel_event: asyncio.Event | None = None
    ) -> list[CompactionResult]:
        """Append several messages, checking the budget after each one."""
        results: list[CompactionResult] = []
        for message in messages:
            result = await self.append(message, cancel_event)
            if result is not None:
                results.append(result)
        return results

    async def compact_if_needed(
        self, cancel_event: asyncio.Event | None = None
    ) -> CompactionResult | None:
        async with self._lock:
            return await self._compact_locked(cancel_event)

    async def reset(self, messages: Iterable[ChatMessage] = ()) -> None:
        """Replace the whole log, e.g. with a fresh system context."""
        async with self._lock:
            self._messages = list(messages)

    # -- compaction -----------------------------------------------------------

    def select_retained(self, others: Sequence[ChatMessage]) -> set[int]:
        """Indices into *others* (non-system messages) that survive compaction."""
        reserve = min(self.config.recent_reserve, len(others))
        older_count = len(others) - reserve
        recent = set(range(older_count, len(others)))

        ranked = sorted(
            range(older_count),
            key=lambda i: (self.scorer.score(others[i], self.subject), i),
            reverse=True,
        )
        important = set(ranked[: self.config.important_messages_count])
        return recent | important

    async def _compact_locked(
        self, cancel_event: asyncio.Event | None
    ) -> CompactionResult | None:
        if not self.needs_compaction:
            return None

        before = len(self._messages)
        system_messages = [m for m in self._messages if m.is_system]
        others = [m for m in self._messages if not m.is_system]
        if len(others) <= self.config.min_messages_after_compression:
            logger.info(
                "ContextWindowManager[%s]: %d messages over budget but only %d "
                "non-system messages, nothing to compact",
                self.session_id,
                before,
                len(others),
            )
            return None

        retained = self.select_retained(others)
        compacted = [m for i, m in enumerate(others) if i not in retained]
        if len(compacted) < 2:
            # a one-message summary would not shrink the log
            logger.debug(
                "ContextWindowManager[%s]: %d compactable message(s), skipping",
                self.session_id,
                len(compacted),
            )
            return None

        logger.info(
            "ContextWindowManager[%s]: compacting %d of %d messages",
            self.session_id,
            len(compacted),
            before,
        )
        summary, degraded = await self._summarize(compacted, cancel_event)

        kept = [m for i, m in enumerate(others) if i in retained]
        self._messages = system_messages + [ChatMessage.system(summary)] + kept
        self.compaction_count += 1

        result = CompactionResult(
            before_count=before,
            after_count=len(self._messages),
            compacted_count=len(compacted),
            retained_count=len(kept),
            summary=summary,
            degraded=degraded,
        )
        logger.info(
            "ContextWindowManager[%s]: %d -> %d messages%s",
            self.session_id,
            result.before_count,
            result.after_count,
            " (fallback summary)" if degraded else "",
        )
        if self.event_bus is not None:
            await self.event_bus.publish(
                ContextCompacted(
                    source_id=self.session_id,
                    before_count=result.before_count,
                    after_count=result.after_count,
                    compacted_count=result.compacted_count,
                    retained_count=result.retained_count,
                    degraded=degraded,
                )
            )
        return result

    async def _summarize(
        self, compacted: Sequence[ChatMessage], cancel_event: asyncio.Event | None
    ) -> tuple[str, bool]:
        """Return ``(summary_message_text, degraded)``; never raises."""
        if self.invoker is not None:
            try:
                role = self.catalog.get(CONVERSATION_SUMMARIZER)
                text = prompts.summary_input(compacted, self.config.summary_input_char_limit)
                response = await self.invoker.invoke(
                    role,
                    [ChatMessage.user(text)],
                    cancel_event=cancel_event,
                    timeout=self.summary_timeout,
                )
                summary = response.text.strip()
                if summary:
                    return prompts.summary_message(len(compacted), summary), False
                logger.warning(
                    "ContextWindowManager[%s]: summarizer returned empty text",
                    self.session_id,
                )
            except Exception as exc:
                logger.warning(
                    "ContextWindowManager[%s]: summarization failed, using fallback: %s: %s",
                    self.session_id,
                    type(exc).__name__,
                    exc,
                )
        return self._fallback(compacted), True

    def _fallback(self, compacted: Sequence[ChatMessage]) -> str:
        user_turns = sum(1 for m in compacted if m.role is MessageRole.USER)
        assistant_turns = sum(1 for m in compacted if m.role is MessageRole.ASSISTANT)
        return prompts.fallback_summary(len(compacted), user_turns, assistant_turns, self.subject)
