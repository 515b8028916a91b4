"""Domain events for the market assistant core.

Every event is a frozen dataclass inheriting from ``DomainEvent``.  The
selection pipeline emits stage lifecycle events and the context window
manager emits compaction events; listeners (logging, UI progress, audit
stores) subscribe through :class:`~market_assistant.infrastructure.event_bus.AsyncEventBus`.

All events carry a ``timestamp`` and a ``source_id`` identifying the
originating pipeline run or chat session.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from .enums import PipelineState, StageName

# ---------------------------------------------------------------------------
# Base event
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DomainEvent:
    """Base class for all domain events."""

    timestamp: float = field(default_factory=time.time)
    source_id: str = ""


# ---------------------------------------------------------------------------
# Pipeline events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StageStarted(DomainEvent):
    """A pipeline stage began executing."""

    stage: StageName | None = None
    step: int = 0


@dataclass(frozen=True)
class StageCompleted(DomainEvent):
    """A pipeline stage finished successfully."""

    stage: StageName | None = None
    step: int = 0
    elapsed: float = 0.0
    summary: str = ""


@dataclass(frozen=True)
class StageFailed(DomainEvent):
    """A pipeline stage failed; the run is now terminal."""

    stage: StageName | None = None
    error: str = ""
    error_type: str = ""


@dataclass(frozen=True)
class PipelineCompleted(DomainEvent):
    """A pipeline run reached a terminal state."""

    final_state: PipelineState = PipelineState.ANALYZED
    recommendation_count: int = 0
    confidence_score: float = 0.0
    elapsed: float = 0.0


# ---------------------------------------------------------------------------
# Context window events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ContextCompacted(DomainEvent):
    """A session log was compacted."""

    before_count: int = 0
    after_count: int = 0
    compacted_count: int = 0
    retained_count: int = 0
    degraded: bool = False  # summary came from the deterministic fallback
