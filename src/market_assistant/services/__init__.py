"""Services: selection pipeline, context window management and chat sessions."""

from market_assistant.services.chat_session import AnalystChatSession
from market_assistant.services.context_window import CompactionResult, ContextWindowManager
from market_assistant.services.pipeline import PipelineRun, SelectionPipeline
from market_assistant.services.scoring import ImportanceScorer
from market_assistant.services.screening import ExternalScreeningService
from market_assistant.services.selection import (
    QUICK_STRATEGIES,
    QuickStrategyInfo,
    StockSelectionService,
    normalize_risk_preference,
)
from market_assistant.services.stages import (
    AnalyzeStocks,
    GenerateCriteria,
    ScreenStocks,
    StageExecutor,
)

__all__ = [
    # pipeline
    "AnalyzeStocks",
    "ExternalScreeningService",
    "GenerateCriteria",
    "PipelineRun",
    "ScreenStocks",
    "SelectionPipeline",
    "StageExecutor",
    # facade
    "QUICK_STRATEGIES",
    "QuickStrategyInfo",
    "StockSelectionService",
    "normalize_risk_preference",
    # context
    "AnalystChatSession",
    "CompactionResult",
    "ContextWindowManager",
    "ImportanceScorer",
]
