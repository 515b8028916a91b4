"""The three stages of the selection pipeline.

Each stage is a :class:`StageExecutor`: one typed input, one logical step,
one typed output.  Every failure leaves a stage as :class:`StageFailure`
carrying the stage name and the underlying cause; a ``StageFailure`` raised
inside a stage is passed through unchanged.

Classes
-------
StageExecutor
    Abstract base wrapping failures with stage identity.
GenerateCriteria
    ``SelectionRequest -> CriteriaEnvelope`` (one structured model call).
ScreenStocks
    ``CriteriaEnvelope -> ScreeningEnvelope`` (external screening service).
AnalyzeStocks
    ``ScreeningEnvelope -> SelectionResult`` (one structured model call).
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from typing import ClassVar, Generic, TypeVar

from market_assistant.domain.enums import SelectionType, StageName
from market_assistant.domain.exceptions import StageFailure
from market_assistant.domain.schemas import SelectionResult, StockCriteria
from market_assistant.domain.values import (
    ChatMessage,
    CriteriaEnvelope,
    ScreeningEnvelope,
    SelectionRequest,
)
from market_assistant.infrastructure.config import PipelineConfig
from market_assistant.infrastructure.llm import (
    LanguageModelInvoker,
    SchemaValidationError,
    run_cancellable,
)
from market_assistant.roles.catalog import AnalystRoleCatalog
from market_assistant.roles.definitions import (
    CRITERIA_GENERATOR,
    NEWS_CRITERIA_GENERATOR,
    SELECTION_ANALYST,
    selection_analysis_instructions,
)
from market_assistant.services import prompts
from market_assistant.services.screening import ExternalScreeningService

logger = logging.getLogger(__name__)

TIn = TypeVar("TIn")
TOut = TypeVar("TOut")


# ===================================================================== #
#  Base                                                                  #
# ===================================================================== #


class StageExecutor(ABC, Generic[TIn, TOut]):
    """One unit of pipeline work.

    Subclasses implement :meth:`_execute`; :meth:`run` converts any
    exception other than native task cancellation into a
    :class:`StageFailure` chained to its cause.
    """

    stage: ClassVar[StageName]
    step: ClassVar[int]

    async def run(self, value: TIn, cancel_event: asyncio.Event | None = None) -> TOut:
        try:
            return await self._execute(value, cancel_event)
        except StageFailure:
            raise
        except Exception as exc:
            logger.warning(
                "[%d/3] %s failed: %s: %s",
                self.step,
                self.stage.value,
                type(exc).__name__,
                exc,
            )
            raise StageFailure(self.stage, exc) from exc

    @abstractmethod
    async def _execute(self, value: TIn, cancel_event: asyncio.Event | None) -> TOut:
        ...


# ===================================================================== #
#  Stage 1: GenerateCriteria                                             #
# ===================================================================== #


class GenerateCriteria(StageExecutor[SelectionRequest, CriteriaEnvelope]):
    """Translate a requirement or a news snippet into screening criteria."""

    stage = StageName.GENERATE_CRITERIA
    step = 1

    def __init__(
        self,
        invoker: LanguageModelInvoker,
        catalog: AnalystRoleCatalog,
        config: PipelineConfig | None = None,
    ) -> None:
        self.invoker = invoker
        self.catalog = catalog
        self.config = config or PipelineConfig()

    async def _execute(
        self, request: SelectionRequest, cancel_event: asyncio.Event | None
    ) -> CriteriaEnvelope:
        role_name = NEWS_CRITERIA_GENERATOR if request.is_news_driven else CRITERIA_GENERATOR
        role = self.catalog.get(role_name)
        logger.info(
            "[1/3] GenerateCriteria: %s request (%d chars)",
            "news" if request.is_news_driven else "requirement",
            len(request.content),
        )

        result = await self.invoker.invoke(
            role,
            [ChatMessage.user(prompts.criteria_user_prompt(request))],
            output_schema=StockCriteria,
            cancel_event=cancel_event,
            timeout=self.config.stage_timeout,
        )
        criteria = result.structured
        if not isinstance(criteria, StockCriteria):
            raise SchemaValidationError(
                "criteria generator returned no StockCriteria",
                schema_name=StockCriteria.__name__,
                raw_text=result.text,
            )
        if not criteria.criteria:
            raise SchemaValidationError(
                "no supported screening criteria produced",
                schema_name=StockCriteria.__name__,
                raw_text=result.text,
            )

        envelope = CriteriaEnvelope(
            criteria=tuple(criteria.criteria),
            market=criteria.market,
            industry=criteria.industry,
            result_limit=criteria.limit,
            original_request=request,
        )
        logger.info(
            "[1/3] GenerateCriteria: %d criteria (%s), market=%s, industry=%s, limit=%d",
            len(envelope.criteria),
            ", ".join(envelope.indicator_codes),
            envelope.market.value,
            envelope.industry.value,
            envelope.result_limit,
        )
        return envelope


# ===================================================================== #
#  Stage 2: ScreenStocks                                                 #
# ===================================================================== #


class ScreenStocks(StageExecutor[CriteriaEnvelope, ScreeningEnvelope]):
    """Run the criteria against the external screening service.

    An empty match list is forwarded, not raised.
    """

    stage = StageName.SCREEN_STOCKS
    step = 2

    def __init__(
        self,
        screener: ExternalScreeningService,
        config: PipelineConfig | None = None,
    ) -> None:
        self.screener = screener
        self.config = config or PipelineConfig()

    async def _execute(
        self, envelope: CriteriaEnvelope, cancel_event: asyncio.Event | None
    ) -> ScreeningEnvelope:
        logger.info(
            "[2/3] ScreenStocks: %d criteria, market=%s, industry=%s, limit=%d",
            len(envelope.criteria),
            envelope.market.value,
            envelope.industry.value,
            envelope.result_limit,
        )
        stocks = await run_cancellable(
            self.screener.screen(
                list(envelope.criteria),
                envelope.market,
                envelope.industry,
                envelope.result_limit,
            ),
            cancel_event,
            self.config.stage_timeout,
            label="stock screening",
        )
        if len(stocks) > envelope.result_limit:
            logger.debug(
                "[2/3] ScreenStocks: truncating %d matches to %d",
                len(stocks),
                envelope.result_limit,
            )
        screened = tuple(stocks[: envelope.result_limit])
        logger.info("[2/3] ScreenStocks: %d stocks matched", len(screened))
        return ScreeningEnvelope(
            screened_stocks=screened,
            criteria=envelope,
            original_request=envelope.original_request,
        )


# ===================================================================== #
#  Stage 3: AnalyzeStocks                                                #
# ===================================================================== #


class AnalyzeStocks(StageExecutor[ScreeningEnvelope, SelectionResult]):
    """Rank the screened stocks into at most eight recommendations.

    Missing request and empty screens short-circuit to an empty result
    without a model call.  A response that fails schema validation degrades
    to an explicit empty result; transport errors, timeouts and
    cancellation still fail the stage.
    """

    stage = StageName.ANALYZE_STOCKS
    step = 3

    def __init__(
        self,
        invoker: LanguageModelInvoker,
        catalog: AnalystRoleCatalog,
        config: PipelineConfig | None = None,
    ) -> None:
        self.invoker = invoker
        self.catalog = catalog
        self.config = config or PipelineConfig()

    async def _execute(
        self, envelope: ScreeningEnvelope, cancel_event: asyncio.Event | None
    ) -> SelectionResult:
        request = envelope.original_request
        if request is None:
            logger.warning("[3/3] AnalyzeStocks: envelope has no original request")
            return SelectionResult.empty(prompts.NO_ORIGINAL_REQUEST_SUMMARY)

        selection_type = (
            SelectionType.NEWS_BASED if request.is_news_driven else SelectionType.USER_REQUEST
        )
        if not envelope.screened_stocks:
            logger.info("[3/3] AnalyzeStocks: no screened stocks, skipping analysis")
            return SelectionResult.empty(prompts.NO_MATCH_SUMMARY, selection_type)

        role = self.catalog.get(SELECTION_ANALYST)
        logger.info(
            "[3/3] AnalyzeStocks: analysing %d stocks", len(envelope.screened_stocks)
        )
        try:
            response = await self.invoker.invoke(
                role,
                [
                    ChatMessage.user(
                        prompts.analysis_user_prompt(request, envelope.screened_stocks)
                    )
                ],
                system_instruction=selection_analysis_instructions(request.is_news_driven),
                output_schema=SelectionResult,
                cancel_event=cancel_event,
                timeout=self.config.stage_timeout,
            )
        except SchemaValidationError as exc:
            logger.warning("[3/3] AnalyzeStocks: unparseable analysis result: %s", exc)
            return self._parse_failure_result(selection_type)

        result = response.structured
        if not isinstance(result, SelectionResult):
            logger.warning("[3/3] AnalyzeStocks: model returned no SelectionResult")
            return self._parse_failure_result(selection_type)

        cap = self.config.max_recommendations_cap
        result = result.model_copy(
            update={
                "request_id": result.request_id or uuid.uuid4().hex,
                "selection_type": selection_type,
                "recommendations": result.recommendations[:cap],
            }
        )
        _log_soft_validation(result)
        logger.info(
            "[3/3] AnalyzeStocks: %d recommendations, confidence %.1f",
            len(result.recommendations),
            result.confidence_score,
        )
        return result

    @staticmethod
    def _parse_failure_result(selection_type: SelectionType) -> SelectionResult:
        return SelectionResult.empty(
            prompts.PARSE_FAILURE_SUMMARY,
            selection_type,
            market_environment_analysis=prompts.PARSE_FAILURE_MARKET,
            investment_advice=prompts.PARSE_FAILURE_ADVICE,
            risk_warnings=[prompts.PARSE_FAILURE_WARNING],
        )


def _log_soft_validation(result: SelectionResult) -> None:
    """Warn about blank narrative fields without failing the stage."""
    problems: list[str] = []
    if not result.analysis_summary.strip():
        problems.append("analysis summary is blank")
    if not result.market_environment_analysis.strip():
        problems.append("market environment analysis is blank")
    if not result.investment_advice.strip():
        problems.append("investment advice is blank")
    if not result.risk_warnings:
        problems.append("no risk warnings")
    for index, rec in enumerate(result.recommendations, start=1):
        if not rec.symbol.strip():
            problems.append(f"recommendation {index}: blank symbol")
        if not rec.name.strip():
            problems.append(f"recommendation {index}: blank name")
        if not rec.reason.strip():
            problems.append(f"recommendation {index}: blank reason")
    for problem in problems:
        logger.warning("[3/3] AnalyzeStocks: %s", problem)
