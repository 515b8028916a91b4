"""Value objects for the market assistant core.

All types here are frozen dataclasses, immutable and compared by value.
They describe analyst roles, selection requests, screened stocks, chat
messages and the envelopes threaded through the selection pipeline.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel

from .enums import IndustryType, MarketType, MessageRole
from .schemas import ScreeningCriterion

# ---------------------------------------------------------------------------
# Analyst roles
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SamplingParams:
    """Generation parameters attached to an analyst role.

    ``top_k`` is optional; providers that do not support it ignore it.
    """

    temperature: float = 0.7
    top_p: float = 1.0
    top_k: int | None = None
    max_output_tokens: int | None = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.temperature <= 2.0:
            raise ValueError(f"temperature must be in [0, 2], got {self.temperature}")
        if not 0.0 <= self.top_p <= 1.0:
            raise ValueError(f"top_p must be in [0, 1], got {self.top_p}")
        if self.top_k is not None and self.top_k < 1:
            raise ValueError(f"top_k must be a positive integer, got {self.top_k}")
        if self.max_output_tokens is not None and self.max_output_tokens < 1:
            raise ValueError(
                f"max_output_tokens must be >= 1, got {self.max_output_tokens}"
            )


@dataclass(frozen=True)
class AnalystRole:
    """A named system-prompt persona with its own sampling and output schema.

    When ``output_schema`` is set, every call made on behalf of this role must
    request schema-constrained output and reject responses that do not
    validate against it.
    """

    name: str
    instructions: str
    sampling: SamplingParams = field(default_factory=SamplingParams)
    output_schema: type[BaseModel] | None = None
    description: str = ""

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("AnalystRole.name must not be empty")

    @property
    def is_structured(self) -> bool:
        return self.output_schema is not None

    def json_schema(self) -> dict[str, Any] | None:
        """Return the JSON schema of the role's structured output, if any."""
        if self.output_schema is None:
            return None
        return self.output_schema.model_json_schema(by_alias=True)


# ---------------------------------------------------------------------------
# Selection request
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SelectionRequest:
    """A single user action asking for stock recommendations.

    ``content`` is either a free-text requirement or a news snippet,
    discriminated by ``is_news_driven``.
    """

    content: str
    is_news_driven: bool = False
    risk_preference: str = "moderate"
    investment_amount: float | None = None
    investment_horizon: int | None = None  # days
    preferred_sectors: tuple[str, ...] = ()
    excluded_sectors: tuple[str, ...] = ()
    max_recommendations: int = 10

    def __post_init__(self) -> None:
        if self.max_recommendations < 1:
            raise ValueError(
                f"max_recommendations must be >= 1, got {self.max_recommendations}"
            )
        if self.investment_horizon is not None and self.investment_horizon < 1:
            raise ValueError(
                f"investment_horizon must be >= 1 day, got {self.investment_horizon}"
            )


# ---------------------------------------------------------------------------
# Screened stock
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StockRecord:
    """A screened stock: identifier, name and a sparse set of metrics.

    ``metrics`` is keyed by indicator code (see
    :mod:`market_assistant.domain.indicators`); absent codes mean "unknown".
    """

    symbol: str
    name: str
    metrics: Mapping[str, float] = field(default_factory=dict)

    def metric(self, code: str, default: float = 0.0) -> float:
        return self.metrics.get(code, default)


# ---------------------------------------------------------------------------
# Pipeline envelopes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CriteriaEnvelope:
    """Output of the criteria stage, input of the screening stage."""

    criteria: tuple[ScreeningCriterion, ...]
    market: MarketType = MarketType.ALL_A_SHARES
    industry: IndustryType = IndustryType.ALL
    result_limit: int = 20
    original_request: SelectionRequest | None = None

    @property
    def indicator_codes(self) -> tuple[str, ...]:
        return tuple(c.code for c in self.criteria)


@dataclass(frozen=True)
class ScreeningEnvelope:
    """Output of the screening stage, input of the analysis stage.

    An empty ``screened_stocks`` tuple is a valid "no match" outcome.
    """

    screened_stocks: tuple[StockRecord, ...]
    criteria: CriteriaEnvelope
    original_request: SelectionRequest | None = None


# ---------------------------------------------------------------------------
# Chat messages
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ChatMessage:
    """A single message in an analyst session log."""

    role: MessageRole
    content: str

    @property
    def is_system(self) -> bool:
        return self.role is MessageRole.SYSTEM

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}

    @classmethod
    def system(cls, content: str) -> ChatMessage:
        return cls(MessageRole.SYSTEM, content)

    @classmethod
    def user(cls, content: str) -> ChatMessage:
        return cls(MessageRole.USER, content)

    @classmethod
    def assistant(cls, content: str) -> ChatMessage:
        return cls(MessageRole.ASSISTANT, content)

