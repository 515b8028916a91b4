"""Stock selection facade over :class:`SelectionPipeline`.

Handles request normalisation before the pipeline runs and the per-mode
post-processing of its result:

- requirement-driven: risk preference filtering / ordering;
- news-driven: recommendation limit and reason tagging;
- quick selection: six preset requirement texts.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from dataclasses import dataclass

from market_assistant.domain.enums import QuickSelectionStrategy, RiskLevel, RiskPreference
from market_assistant.domain.exceptions import InvalidRequestError
from market_assistant.domain.schemas import SelectionResult
from market_assistant.domain.values import SelectionRequest
from market_assistant.services import prompts
from market_assistant.services.pipeline import SelectionPipeline

logger = logging.getLogger(__name__)

NEWS_MAX_RECOMMENDATIONS = 10

_RISK_SPELLINGS: dict[str, RiskPreference] = {
    "conservative": RiskPreference.CONSERVATIVE,
    "保守": RiskPreference.CONSERVATIVE,
    "低风险": RiskPreference.CONSERVATIVE,
    "aggressive": RiskPreference.AGGRESSIVE,
    "激进": RiskPreference.AGGRESSIVE,
    "高风险": RiskPreference.AGGRESSIVE,
    "moderate": RiskPreference.MODERATE,
    "稳健": RiskPreference.MODERATE,
    "中等风险": RiskPreference.MODERATE,
    "中风险": RiskPreference.MODERATE,
}


def normalize_risk_preference(value: str | RiskPreference | None) -> RiskPreference:
    """Map a risk preference spelling onto :class:`RiskPreference`.

    Only whole-word spellings are recognised; anything else is moderate.
    """
    if isinstance(value, RiskPreference):
        return value
    text = (value or "").strip().lower()
    return _RISK_SPELLINGS.get(text, RiskPreference.MODERATE)


# ===================================================================== #
#  Quick strategies                                                      #
# ===================================================================== #


@dataclass(frozen=True)
class QuickStrategyInfo:
    """Display metadata and requirement text of a preset strategy."""

    strategy: QuickSelectionStrategy
    name: str
    icon: str
    description: str
    scenario: str
    risk_label: str
    requirement: str
    risk_preference: RiskPreference


QUICK_STRATEGIES: dict[QuickSelectionStrategy, QuickStrategyInfo] = {
    info.strategy: info
    for info in (
        QuickStrategyInfo(
            QuickSelectionStrategy.VALUE_STOCKS,
            "价值股筛选",
            "💎",
            "筛选PE低、PB低、ROE高的优质价值股",
            "适合稳健型投资者，追求长期价值投资",
            "低风险",
            "请筛选价值股：PE低于20，PB低于3，ROE大于10%，负债率低于60%的优质价值股",
            RiskPreference.CONSERVATIVE,
        ),
        QuickStrategyInfo(
            QuickSelectionStrategy.GROWTH_STOCKS,
            "成长股筛选",
            "🚀",
            "筛选营收和利润高增长的成长型股票",
            "适合积极型投资者，追求高成长收益",
            "中高风险",
            "请筛选成长股：营收增长率大于20%，净利润增长率大于15%，PEG小于1.5的高成长股",
            RiskPreference.AGGRESSIVE,
        ),
        QuickStrategyInfo(
            QuickSelectionStrategy.ACTIVE_STOCKS,
            "活跃股筛选",
            "🔥",
            "筛选换手率高、成交活跃的热门股票",
            "适合短线交易者，追求市场热点",
            "高风险",
            "请筛选活跃股：换手率大于2%，成交额大于5亿，量比大于1.5的活跃股票",
            RiskPreference.MODERATE,
        ),
        QuickStrategyInfo(
            QuickSelectionStrategy.LARGE_CAP,
            "大盘股筛选",
            "🏢",
            "筛选市值大、业绩稳定的蓝筹股",
            "适合保守型投资者，追求稳定收益",
            "低风险",
            "请筛选大盘股：市值大于500亿，流动性好，业绩稳定的大盘蓝筹股",
            RiskPreference.CONSERVATIVE,
        ),
        QuickStrategyInfo(
            QuickSelectionStrategy.SMALL_CAP,
            "小盘股筛选",
            "🌱",
            "筛选市值较小、具有成长潜力的股票",
            "适合风险偏好较高的投资者",
            "高风险",
            "请筛选小盘股：市值在50-200亿之间，具有成长潜力的优质小盘股",
            RiskPreference.AGGRESSIVE,
        ),
        QuickStrategyInfo(
            QuickSelectionStrategy.DIVIDEND,
            "高股息筛选",
            "💰",
            "筛选股息率高、分红稳定的股票",
            "适合追求稳定现金流的投资者",
            "低风险",
            "请筛选高股息股：股息率大于3%，连续分红3年以上，现金流稳定的高股息股票",
            RiskPreference.CONSERVATIVE,
        ),
    )
}


# ===================================================================== #
#  Service                                                               #
# ===================================================================== #


class StockSelectionService:
    """Entry point for requirement-, news- and preset-driven selection.

    Errors from the pipeline (:class:`StageFailure`) propagate unchanged.
    """

    def __init__(self, pipeline: SelectionPipeline) -> None:
        self.pipeline = pipeline

    async def recommend_by_requirement(
        self, request: SelectionRequest, cancel_event: asyncio.Event | None = None
    ) -> SelectionResult:
        if not request.content.strip():
            raise InvalidRequestError("用户需求不能为空", field_name="content")

        preference = normalize_risk_preference(request.risk_preference)
        request = dataclasses.replace(
            request, is_news_driven=False, risk_preference=preference.value
        )
        logger.info(
            "StockSelectionService: requirement selection (risk=%s)", preference.value
        )
        result = await self.pipeline.run(request, cancel_event)
        return self._apply_risk_preference(result, preference)

    async def recommend_by_news(
        self,
        content: str,
        max_recommendations: int = 5,
        cancel_event: asyncio.Event | None = None,
    ) -> SelectionResult:
        if not content.strip():
            raise InvalidRequestError("新闻内容不能为空", field_name="content")

        limit = max(1, min(max_recommendations, NEWS_MAX_RECOMMENDATIONS))
        request = SelectionRequest(
            content=content, is_news_driven=True, max_recommendations=limit
        )
        logger.info("StockSelectionService: news selection (limit=%d)", limit)
        result = await self.pipeline.run(request, cancel_event)

        tagged = [
            rec
            if rec.reason.startswith(prompts.NEWS_REASON_PREFIX)
            else rec.model_copy(update={"reason": prompts.NEWS_REASON_PREFIX + rec.reason})
            for rec in result.recommendations[:limit]
        ]
        return result.model_copy(update={"recommendations": tagged})

    async def quick_select(
        self,
        strategy: QuickSelectionStrategy | str,
        cancel_event: asyncio.Event | None = None,
    ) -> SelectionResult:
        info = QUICK_STRATEGIES[QuickSelectionStrategy(strategy)]
        logger.info("StockSelectionService: quick selection %s", info.strategy.value)
        request = SelectionRequest(
            content=info.requirement, risk_preference=info.risk_preference.value
        )
        return await self.recommend_by_requirement(request, cancel_event)

    @staticmethod
    def quick_strategies() -> list[QuickStrategyInfo]:
        return list(QUICK_STRATEGIES.values())

    # -- post-processing ----------------------------------------------------

    @staticmethod
    def _apply_risk_preference(
        result: SelectionResult, preference: RiskPreference
    ) -> SelectionResult:
        recommendations = list(result.recommendations)
        if preference is RiskPreference.CONSERVATIVE:
            recommendations = [r for r in recommendations if r.risk_level is not RiskLevel.HIGH]
        elif preference is RiskPreference.AGGRESSIVE:
            recommendations.sort(key=lambda r: r.expected_return or 0.0, reverse=True)
        else:
            return result
        return result.model_copy(update={"recommendations": recommendations})
