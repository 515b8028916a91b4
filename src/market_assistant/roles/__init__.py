"""Analyst role table and the read-only catalog built from it."""

from market_assistant.roles.catalog import (
    AnalystRoleCatalog,
    build_role,
    default_catalog,
    load_role_definitions,
)
from market_assistant.roles.definitions import (
    CHAT_ANALYST,
    CONVERSATION_SUMMARIZER,
    COORDINATOR_ANALYST,
    CRITERIA_GENERATOR,
    DEFAULT_ROLE_DEFINITIONS,
    FINANCIAL_ANALYST,
    FUNDAMENTAL_ANALYST,
    MARKET_SENTIMENT_ANALYST,
    NEWS_CRITERIA_GENERATOR,
    NEWS_EVENT_ANALYST,
    SELECTION_ANALYST,
    TECHNICAL_ANALYST,
    RoleDefinition,
    selection_analysis_instructions,
)

__all__ = [
    "AnalystRoleCatalog",
    "RoleDefinition",
    "DEFAULT_ROLE_DEFINITIONS",
    "build_role",
    "default_catalog",
    "load_role_definitions",
    "selection_analysis_instructions",
    # role names
    "CHAT_ANALYST",
    "CONVERSATION_SUMMARIZER",
    "COORDINATOR_ANALYST",
    "CRITERIA_GENERATOR",
    "FINANCIAL_ANALYST",
    "FUNDAMENTAL_ANALYST",
    "MARKET_SENTIMENT_ANALYST",
    "NEWS_CRITERIA_GENERATOR",
    "NEWS_EVENT_ANALYST",
    "SELECTION_ANALYST",
    "TECHNICAL_ANALYST",
]
