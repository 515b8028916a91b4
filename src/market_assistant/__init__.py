"""Market assistant core: stock selection pipeline and analyst chat sessions.

Quick start::

    from market_assistant import SelectionPipeline, SelectionRequest
    from market_assistant.infrastructure.llm.invoker import ChatModelInvoker

    pipeline = SelectionPipeline(ChatModelInvoker(chat_model), screener)
    result = await pipeline.run(SelectionRequest("筛选市值100亿以上、PE低于20的价值股"))
"""

from market_assistant.domain import (
    AnalystRole,
    ChatMessage,
    SelectionRequest,
    SelectionResult,
    StageFailure,
    StockCriteria,
    StockRecord,
    UnknownRoleError,
)
from market_assistant.infrastructure.config import AppConfig, ContextWindowConfig, PipelineConfig
from market_assistant.roles import AnalystRoleCatalog, default_catalog
from market_assistant.services import (
    AnalystChatSession,
    ContextWindowManager,
    ImportanceScorer,
    SelectionPipeline,
    StockSelectionService,
)

__version__ = "0.3.0"

__all__ = [
    "AnalystChatSession",
    "AnalystRole",
    "AnalystRoleCatalog",
    "AppConfig",
    "ChatMessage",
    "ContextWindowConfig",
    "ContextWindowManager",
    "ImportanceScorer",
    "PipelineConfig",
    "SelectionPipeline",
    "SelectionRequest",
    "SelectionResult",
    "StageFailure",
    "StockCriteria",
    "StockRecord",
    "StockSelectionService",
    "UnknownRoleError",
    "default_catalog",
    "__version__",
]
