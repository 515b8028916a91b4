"""Structured-output schemas for analyst roles.

These Pydantic models are handed to ``BaseChatModel.with_structured_output``
and double as the validated Python representation of the model's answer.
Field names follow the wire names the prompts ask for (camelCase aliases),
while attribute access stays snake_case.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from .enums import IndustryType, MarketType, RiskLevel, SelectionType
from .indicators import SUPPORTED_INDICATORS

logger = logging.getLogger(__name__)

MAX_RECOMMENDATIONS = 8


def _to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


class _WireModel(BaseModel):
    """Base for schemas exchanged with the model (camelCase on the wire)."""

    model_config = ConfigDict(
        alias_generator=_to_camel,
        populate_by_name=True,
    )


# -- Stage 1: screening criteria ---------------------------------------------


class ScreeningCriterion(_WireModel):
    """One indicator bound. Either bound may be omitted."""

    model_config = ConfigDict(frozen=True)

    code: str = Field(description="Indicator code from the supported catalog, e.g. 'pettm'")
    display_name: str = Field(default="", description="Chinese display name of the indicator")
    min_value: float | None = Field(default=None, description="Inclusive lower bound")
    max_value: float | None = Field(default=None, description="Inclusive upper bound")


class StockCriteria(_WireModel):
    """Screening parameters: criteria, market, industry and result limit.

    Unknown indicator codes are dropped with a warning; they are never mapped
    onto a default indicator.
    """

    criteria: list[ScreeningCriterion] = Field(
        default_factory=list,
        description="Screening conditions, each naming an indicator code and a range",
    )
    market: MarketType = Field(default=MarketType.ALL_A_SHARES, description="Market segment")
    industry: IndustryType = Field(default=IndustryType.ALL, description="Industry filter")
    limit: int = Field(default=20, ge=1, description="Maximum number of stocks to return")

    @field_validator("market", "industry", mode="before")
    @classmethod
    def _coerce_enum_spelling(cls, value: Any, info: ValidationInfo) -> Any:
        if not isinstance(value, str):
            return value
        enum_cls = MarketType if info.field_name == "market" else IndustryType
        wanted = value.strip().lower()
        for member in enum_cls:
            if wanted in (member.value.lower(), member.name.lower(), member.label.lower()):
                return member
        return value

    @field_validator("criteria")
    @classmethod
    def _drop_unknown_codes(
        cls, value: list[ScreeningCriterion]
    ) -> list[ScreeningCriterion]:
        kept: list[ScreeningCriterion] = []
        for criterion in value:
            if criterion.code in SUPPORTED_INDICATORS:
                kept.append(criterion)
            else:
                logger.warning(
                    "StockCriteria: dropping unsupported indicator code %r",
                    criterion.code,
                )
        return kept


# -- Stage 3: selection analysis ---------------------------------------------


class StockRecommendation(_WireModel):
    """A single ranked recommendation."""

    symbol: str = Field(description="Stock code, e.g. 'SH600519'")
    name: str = Field(description="Stock name")
    recommendation_score: float = Field(
        default=0.0, ge=0, le=100, description="Recommendation strength [0, 100]"
    )
    reason: str = Field(default="", description="Data-backed reason for the pick")
    expected_return: float | None = Field(
        default=None, description="Expected return in percent"
    )
    risk_level: RiskLevel = Field(
        default=RiskLevel.MEDIUM, description="One of Low, Medium, High"
    )
    recommended_holding_period: int | None = Field(
        default=None, description="Suggested holding period in days"
    )
    recommended_position: float | None = Field(
        default=None, description="Suggested position size in percent"
    )
    target_price: float | None = None
    stop_loss: float | None = None
    related_news: list[str] = Field(default_factory=list)
    technical_indicators: dict[str, Any] = Field(default_factory=dict)
    fundamental_data: dict[str, Any] = Field(default_factory=dict)

    @field_validator("risk_level", mode="before")
    @classmethod
    def _normalise_risk_level(cls, value: Any) -> Any:
        if isinstance(value, str):
            for level in RiskLevel:
                if value.strip().lower() == level.value.lower():
                    return level
        return value


class SelectionResult(_WireModel):
    """Terminal output of the selection pipeline."""

    request_id: str = ""
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    selection_type: SelectionType = SelectionType.USER_REQUEST
    analysis_summary: str = Field(default="", description="Narrative summary of the analysis")
    market_environment_analysis: str = ""
    recommendations: list[StockRecommendation] = Field(
        default_factory=list,
        description=f"Between 3 and {MAX_RECOMMENDATIONS} ranked recommendations",
    )
    risk_warnings: list[str] = Field(default_factory=list)
    investment_advice: str = ""
    confidence_score: float = Field(default=0.0, description="Overall confidence [0, 100]")

    @field_validator("recommendations")
    @classmethod
    def _cap_recommendations(
        cls, value: list[StockRecommendation]
    ) -> list[StockRecommendation]:
        if len(value) > MAX_RECOMMENDATIONS:
            logger.warning(
                "SelectionResult: truncating %d recommendations to %d",
                len(value),
                MAX_RECOMMENDATIONS,
            )
            return value[:MAX_RECOMMENDATIONS]
        return value

    @field_validator("confidence_score")
    @classmethod
    def _clamp_confidence(cls, value: float) -> float:
        return max(0.0, min(100.0, value))

    @classmethod
    def empty(
        cls,
        summary: str,
        selection_type: SelectionType = SelectionType.USER_REQUEST,
        **extra: Any,
    ) -> SelectionResult:
        """Zero-recommendation, zero-confidence result with an explanation."""
        return cls(
            selection_type=selection_type,
            analysis_summary=summary,
            recommendations=[],
            confidence_score=0.0,
            **extra,
        )


# -- Analyst roles ------------------------------------------------------------


class KeyIndicator(_WireModel):
    """A data point extracted from a specialist analyst's report."""

    analyst_source: str = ""
    category: str = ""
    name: str = ""
    value: str = ""
    signal: str = ""
    suggestion: str = ""


class CoordinatorResult(_WireModel):
    """Consolidated verdict produced by the coordinator analyst."""

    overall_score: float = Field(default=0.0, ge=0, le=10)
    investment_rating: str = ""
    target_price: str = ""
    price_change_expectation: str = ""
    time_horizon: str = ""
    risk_level: str = ""
    confidence_percentage: float = Field(default=0.0, ge=0, le=100)
    dimension_scores: dict[str, float] = Field(default_factory=dict)
    investment_highlights: list[str] = Field(default_factory=list)
    risk_factors: list[str] = Field(default_factory=list)
    operation_suggestions: list[str] = Field(default_factory=list)
    summary: str = Field(default="", description="One-sentence summary, 30 characters max")
    consensus_analysis: str = ""
    disagreement_analysis: str = ""
    key_indicators: list[KeyIndicator] = Field(default_factory=list)


OUTPUT_SCHEMAS: dict[str, type[BaseModel]] = {
    "StockCriteria": StockCriteria,
    "SelectionResult": SelectionResult,
    "CoordinatorResult": CoordinatorResult,
}
