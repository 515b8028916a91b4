"""Domain layer for the market assistant core.

Re-exports all public domain types so that consumers can write::

    from market_assistant.domain import SelectionRequest, StockCriteria
"""

# -- Enumerations -------------------------------------------------------------
from .enums import (
    IndustryType,
    MarketType,
    MessageRole,
    PipelineState,
    QuickSelectionStrategy,
    RiskLevel,
    RiskPreference,
    SelectionType,
    StageName,
)

# -- Indicators ---------------------------------------------------------------
from .indicators import SUPPORTED_INDICATORS, Indicator, get_indicator, is_supported

# -- Structured output schemas ------------------------------------------------
from .schemas import (
    CoordinatorResult,
    KeyIndicator,
    ScreeningCriterion,
    SelectionResult,
    StockCriteria,
    StockRecommendation,
)

# -- Value Objects ------------------------------------------------------------
from .values import (
    AnalystRole,
    ChatMessage,
    CriteriaEnvelope,
    SamplingParams,
    ScreeningEnvelope,
    SelectionRequest,
    StockRecord,
)

# -- Domain Events ------------------------------------------------------------
from .events import (
    ContextCompacted,
    DomainEvent,
    PipelineCompleted,
    StageCompleted,
    StageFailed,
    StageStarted,
)

# -- Exceptions ---------------------------------------------------------------
from .exceptions import (
    InvalidRequestError,
    MarketAssistantError,
    StageFailure,
    UnknownRoleError,
)

__all__ = [
    # enums
    "IndustryType",
    "MarketType",
    "MessageRole",
    "PipelineState",
    "QuickSelectionStrategy",
    "RiskLevel",
    "RiskPreference",
    "SelectionType",
    "StageName",
    # indicators
    "SUPPORTED_INDICATORS",
    "Indicator",
    "get_indicator",
    "is_supported",
    # schemas
    "CoordinatorResult",
    "KeyIndicator",
    "ScreeningCriterion",
    "SelectionResult",
    "StockCriteria",
    "StockRecommendation",
    # values
    "AnalystRole",
    "ChatMessage",
    "CriteriaEnvelope",
    "SamplingParams",
    "ScreeningEnvelope",
    "SelectionRequest",
    "StockRecord",
    # events
    "ContextCompacted",
    "DomainEvent",
    "PipelineCompleted",
    "StageCompleted",
    "StageFailed",
    "StageStarted",
    # exceptions
    "InvalidRequestError",
    "MarketAssistantError",
    "StageFailure",
    "UnknownRoleError",
]
