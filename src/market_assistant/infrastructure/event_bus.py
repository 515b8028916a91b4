"""Async event bus and in-memory event store.

Pipelines and chat sessions publish :class:`DomainEvent` instances here.
Handlers may be plain callables or coroutine functions.  A handler that
raises is logged and skipped so a failing subscriber never breaks a
pipeline run or a compaction pass.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import Callable, Sequence
from typing import Any

from market_assistant.domain.events import DomainEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[DomainEvent], Any]  # sync callable or coroutine function


class AsyncEventBus:
    """Pub-sub for domain events, awaited from the publishing task.

    Global handlers run first, then handlers registered for the exact event
    type, each group in registration order.

    Usage::

        bus = AsyncEventBus()
        bus.subscribe(StageFailed, notify_ui)
        await bus.publish(StageFailed(stage=StageName.SCREEN_STOCKS))
    """

    def __init__(self) -> None:
        self._handlers: dict[type[DomainEvent], list[EventHandler]] = defaultdict(list)
        self._global_handlers: list[EventHandler] = []

    # -- subscription -------------------------------------------------------

    def subscribe(self, event_type: type[DomainEvent], handler: EventHandler) -> None:
        """Register *handler* for *event_type*."""
        self._handlers[event_type].append(handler)
        logger.debug("AsyncEventBus: %r subscribed to %s", handler, event_type.__name__)

    def subscribe_all(self, handler: EventHandler) -> None:
        """Register *handler* for every event type."""
        self._global_handlers.append(handler)

    def unsubscribe(self, event_type: type[DomainEvent], handler: EventHandler) -> bool:
        """Remove *handler* from *event_type*. Returns ``True`` if found."""
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)
            return True
        return False

    # -- publishing ---------------------------------------------------------

    async def publish(self, event: DomainEvent) -> None:
        """Deliver *event* to global handlers, then to typed handlers."""
        targets = list(self._global_handlers) + list(self._handlers.get(type(event), []))
        for handler in targets:
            try:
                if asyncio.iscoroutinefunction(handler):
                    await handler(event)
                else:
                    handler(event)
            except Exception:
                logger.exception(
                    "AsyncEventBus: handler %r failed on %s",
                    handler,
                    type(event).__name__,
                )

    async def publish_many(self, events: Sequence[DomainEvent]) -> None:
        for event in events:
            await self.publish(event)

    # -- introspection ------------------------------------------------------

    def handler_count(self, event_type: type[DomainEvent] | None = None) -> int:
        """Number of handlers for *event_type*, or all handlers if ``None``."""
        if event_type is not None:
            return len(self._handlers.get(event_type, []))
        return sum(len(hs) for hs in self._handlers.values()) + len(self._global_handlers)

    def clear(self) -> None:
        self._handlers.clear()
        self._global_handlers.clear()


class EventStore:
    """Append-only in-memory record of published events.

    Wire it to a bus to keep an audit trail of a run::

        store = EventStore()
        store.attach(bus)
    """

    def __init__(self, max_size: int = 0) -> None:
        """Create a store.

        Parameters
        ----------
        max_size:
            Maximum number of events kept (oldest evicted first).  ``0``
            means unlimited.
        """
        self._events: list[DomainEvent] = []
        self._max_size = max_size

    def attach(self, bus: AsyncEventBus) -> None:
        bus.subscribe_all(self.append)

    def append(self, event: DomainEvent) -> None:
        self._events.append(event)
        if self._max_size > 0 and len(self._events) > self._max_size:
            del self._events[: len(self._events) - self._max_size]

    def query(
        self,
        event_type: type[DomainEvent] | None = None,
        source_id: str | None = None,
        limit: int = 0,
    ) -> list[DomainEvent]:
        """Return stored events, optionally filtered.

        Parameters
        ----------
        event_type:
            Only events that are instances of this type.
        source_id:
            Only events emitted by this pipeline run or session.
        limit:
            Keep only the most recent *limit* matches (0 = all).
        """
        result = list(self._events)
        if event_type is not None:
            result = [e for e in result if isinstance(e, event_type)]
        if source_id is not None:
            result = [e for e in result if e.source_id == source_id]
        if limit > 0:
            result = result[-limit:]
        return result

    @property
    def latest(self) -> DomainEvent | None:
        return self._events[-1] if self._events else None

    def __len__(self) -> int:
        return len(self._events)

    def clear(self) -> None:
        self._events.clear()
