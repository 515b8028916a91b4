"""Infrastructure layer: configuration, event bus and the language model boundary."""

from market_assistant.infrastructure.config import (
    AppConfig,
    ContextWindowConfig,
    LLMSettings,
    PipelineConfig,
    load_config_from_json,
)
from market_assistant.infrastructure.event_bus import AsyncEventBus, EventStore

__all__ = [
    "AppConfig",
    "AsyncEventBus",
    "ContextWindowConfig",
    "EventStore",
    "LLMSettings",
    "PipelineConfig",
    "load_config_from_json",
]
