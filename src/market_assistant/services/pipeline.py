"""Selection pipeline: criteria generation -> screening -> analysis.

A small explicit state machine over :class:`~market_assistant.domain.enums.PipelineState`::

    Created -> CriteriaGenerated -> Screened -> Analyzed
        \\______________\\_______________\\______-> Failed(stage, cause)

Stages run strictly in sequence and there is no retry loop: the first
failure ends the run with the originating stage recorded.  Callers can
retry the whole run or resume from a cached envelope with
:meth:`SelectionPipeline.resume_from_criteria` or
:meth:`SelectionPipeline.resume_from_screening`.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, TypeVar

from market_assistant.domain.enums import PipelineState, StageName
from market_assistant.domain.events import (
    PipelineCompleted,
    StageCompleted,
    StageFailed,
    StageStarted,
)
from market_assistant.domain.exceptions import StageFailure
from market_assistant.domain.schemas import SelectionResult
from market_assistant.domain.values import (
    CriteriaEnvelope,
    ScreeningEnvelope,
    SelectionRequest,
)
from market_assistant.infrastructure.config import PipelineConfig
from market_assistant.infrastructure.event_bus import AsyncEventBus
from market_assistant.infrastructure.llm import LanguageModelInvoker, LLMCancelledError
from market_assistant.roles.catalog import AnalystRoleCatalog, default_catalog
from market_assistant.services.screening import ExternalScreeningService
from market_assistant.services.stages import (
    AnalyzeStocks,
    GenerateCriteria,
    ScreenStocks,
    StageExecutor,
)

logger = logging.getLogger(__name__)

_TERMINAL = frozenset({PipelineState.ANALYZED, PipelineState.FAILED})

T = TypeVar("T")


# ===================================================================== #
#  Run Trace                                                             #
# ===================================================================== #


@dataclass
class PipelineRun:
    """Trace of one pipeline execution.

    Attributes
    ----------
    run_id:
        Identifier used as ``source_id`` on every event of this run.
    state:
        Current (finally: terminal) state.
    history:
        Every state the run passed through, in order.
    criteria / screening / result:
        Output of each completed stage, kept so a caller can resume.
    failure:
        The :class:`StageFailure` that ended the run, if any.
    """

    run_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    request: SelectionRequest | None = None
    state: PipelineState = PipelineState.CREATED
    history: list[PipelineState] = field(default_factory=list)
    criteria: CriteriaEnvelope | None = None
    screening: ScreeningEnvelope | None = None
    result: SelectionResult | None = None
    failure: StageFailure | None = None
    elapsed_seconds: float = 0.0

    def __post_init__(self) -> None:
        if not self.history:
            self.history.append(self.state)

    @property
    def succeeded(self) -> bool:
        return self.state is PipelineState.ANALYZED

    @property
    def failed_stage(self) -> StageName | None:
        return self.failure.stage if self.failure is not None else None

    def transition(self, state: PipelineState) -> None:
        if self.state in _TERMINAL:
            raise RuntimeError(f"run {self.run_id} is already terminal ({self.state.value})")
        self.state = state
        self.history.append(state)


# ===================================================================== #
#  Pipeline                                                              #
# ===================================================================== #


class SelectionPipeline:
    """Compose the three stages into one cancellable run.

    Parameters
    ----------
    invoker:
        Language model boundary used by stages 1 and 3.
    screener:
        External screening capability used by stage 2.
    catalog:
        Role catalog; defaults to the built-in one.
    config:
        Stage timeout and recommendation cap.
    event_bus:
        Optional bus receiving stage lifecycle events.
    criteria_stage / screening_stage / analysis_stage:
        Override the default stage executors.
    """

    def __init__(
        self,
        invoker: LanguageModelInvoker | None = None,
        screener: ExternalScreeningService | None = None,
        catalog: AnalystRoleCatalog | None = None,
        config: PipelineConfig | None = None,
        event_bus: AsyncEventBus | None = None,
        *,
        criteria_stage: StageExecutor[SelectionRequest, CriteriaEnvelope] | None = None,
        screening_stage: StageExecutor[CriteriaEnvelope, ScreeningEnvelope] | None = None,
        analysis_stage: StageExecutor[ScreeningEnvelope, SelectionResult] | None = None,
    ) -> None:
        self.config = config or PipelineConfig()
        self.config.validate()
        self.catalog = catalog or default_catalog()
        self.event_bus = event_bus

        if (criteria_stage is None or analysis_stage is None) and invoker is None:
            raise ValueError("an invoker is required unless both model stages are supplied")
        if screening_stage is None and screener is None:
            raise ValueError("a screener is required unless a screening stage is supplied")

        self.criteria_stage = criteria_stage or GenerateCriteria(invoker, self.catalog, self.config)  # type: ignore[arg-type]
        self.screening_stage = screening_stage or ScreenStocks(screener, self.config)  # type: ignore[arg-type]
        self.analysis_stage = analysis_stage or AnalyzeStocks(invoker, self.catalog, self.config)  # type: ignore[arg-type]

    # -- public API ---------------------------------------------------------

    async def run(
        self, request: SelectionRequest, cancel_event: asyncio.Event | None = None
    ) -> SelectionResult:
        """Run all three stages and return the result.

        Raises
        ------
        StageFailure
            Identifying the stage that failed and its cause.
        """
        trace = await self.run_traced(request, cancel_event)
        if trace.failure is not None:
            raise trace.failure
        return _require(trace.result, "result", trace)

    async def run_traced(
        self, request: SelectionRequest, cancel_event: asyncio.Event | None = None
    ) -> PipelineRun:
        """Run all three stages; failures are recorded on the trace, not raised."""
        trace = PipelineRun(request=request)
        return await self._drive(trace, cancel_event)

    async def resume_from_criteria(
        self, envelope: CriteriaEnvelope, cancel_event: asyncio.Event | None = None
    ) -> PipelineRun:
        """Continue a run from a cached stage 1 output."""
        trace = PipelineRun(
            request=envelope.original_request,
            state=PipelineState.CRITERIA_GENERATED,
            criteria=envelope,
        )
        return await self._drive(trace, cancel_event)

    async def resume_from_screening(
        self, envelope: ScreeningEnvelope, cancel_event: asyncio.Event | None = None
    ) -> PipelineRun:
        """Continue a run from a cached stage 2 output."""
        trace = PipelineRun(
            request=envelope.original_request,
            state=PipelineState.SCREENED,
            criteria=envelope.criteria,
            screening=envelope,
        )
        return await self._drive(trace, cancel_event)

    # -- state machine ------------------------------------------------------

    async def _drive(
        self, trace: PipelineRun, cancel_event: asyncio.Event | None
    ) -> PipelineRun:
        start = time.monotonic()
        try:
            if trace.state is PipelineState.CREATED:
                request = _require(trace.request, "request", trace)
                trace.criteria = await self._step(
                    trace, self.criteria_stage, request, cancel_event
                )
                trace.transition(PipelineState.CRITERIA_GENERATED)

            if trace.state is PipelineState.CRITERIA_GENERATED:
                criteria = _require(trace.criteria, "criteria", trace)
                trace.screening = await self._step(
                    trace, self.screening_stage, criteria, cancel_event
                )
                trace.transition(PipelineState.SCREENED)

            if trace.state is PipelineState.SCREENED:
                screening = _require(trace.screening, "screening", trace)
                trace.result = await self._step(
                    trace, self.analysis_stage, screening, cancel_event
                )
                trace.transition(PipelineState.ANALYZED)
        except StageFailure as failure:
            trace.failure = failure
            trace.transition(PipelineState.FAILED)
            logger.error(
                "SelectionPipeline[%s]: failed at %s: %s",
                trace.run_id[:8],
                failure.stage.value,
                failure,
            )
        finally:
            trace.elapsed_seconds = time.monotonic() - start

        result = trace.result
        await self._publish(
            PipelineCompleted(
                source_id=trace.run_id,
                final_state=trace.state,
                recommendation_count=len(result.recommendations) if result else 0,
                confidence_score=result.confidence_score if result else 0.0,
                elapsed=trace.elapsed_seconds,
            )
        )
        logger.info(
            "SelectionPipeline[%s]: %s in %.2fs",
            trace.run_id[:8],
            trace.state.value,
            trace.elapsed_seconds,
        )
        return trace

    async def _step(
        self,
        trace: PipelineRun,
        executor: StageExecutor[Any, Any],
        value: Any,
        cancel_event: asyncio.Event | None,
    ) -> Any:
        stage = executor.stage
        if cancel_event is not None and cancel_event.is_set():
            cause = LLMCancelledError(f"pipeline cancelled before {stage.value}")
            failure = StageFailure(stage, cause)
            failure.__cause__ = cause
            await self._publish_failure(trace, failure)
            raise failure

        await self._publish(StageStarted(source_id=trace.run_id, stage=stage, step=executor.step))
        started = time.monotonic()
        try:
            output = await executor.run(value, cancel_event)
        except StageFailure as failure:
            await self._publish_failure(trace, failure)
            raise
        await self._publish(
            StageCompleted(
                source_id=trace.run_id,
                stage=stage,
                step=executor.step,
                elapsed=time.monotonic() - started,
                summary=_describe(output),
            )
        )
        return output

    async def _publish_failure(self, trace: PipelineRun, failure: StageFailure) -> None:
        await self._publish(
            StageFailed(
                source_id=trace.run_id,
                stage=failure.stage,
                error=str(failure),
                error_type=type(failure.cause).__name__ if failure.cause else "",
            )
        )

    async def _publish(self, event: Any) -> None:
        if self.event_bus is not None:
            await self.event_bus.publish(event)


def _describe(output: Any) -> str:
    if isinstance(output, CriteriaEnvelope):
        return f"{len(output.criteria)} criteria"
    if isinstance(output, ScreeningEnvelope):
        return f"{len(output.screened_stocks)} stocks"
    if isinstance(output, SelectionResult):
        return f"{len(output.recommendations)} recommendations"
    return type(output).__name__


def _require(value: T | None, name: str, trace: PipelineRun) -> T:
    if value is None:
        raise RuntimeError(
            f"run {trace.run_id} has no {name} in state {trace.state.value}"
        )
    return value
