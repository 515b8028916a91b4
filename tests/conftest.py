"""Shared fixtures for the market assistant test suite."""

from __future__ import annotations

import pytest

from market_assistant.domain.values import SelectionRequest, StockRecord
from market_assistant.infrastructure.config import ContextWindowConfig
from market_assistant.infrastructure.event_bus import AsyncEventBus, EventStore
from market_assistant.roles.catalog import AnalystRoleCatalog, default_catalog
from tests.helpers.factories import make_stocks

# ---------------------------------------------------------------------------
# Roles
# ---------------------------------------------------------------------------


@pytest.fixture
def catalog() -> AnalystRoleCatalog:
    return default_catalog()


# ---------------------------------------------------------------------------
# Requests and screening data
# ---------------------------------------------------------------------------


@pytest.fixture
def value_request() -> SelectionRequest:
    return SelectionRequest(content="筛选市值100亿以上、PE低于20的价值股")


@pytest.fixture
def news_request() -> SelectionRequest:
    return SelectionRequest(
        content="国务院发布支持人工智能产业发展的指导意见",
        is_news_driven=True,
        max_recommendations=5,
    )


@pytest.fixture
def twelve_stocks() -> list[StockRecord]:
    return make_stocks(12)


# ---------------------------------------------------------------------------
# Infrastructure
# ---------------------------------------------------------------------------


@pytest.fixture
def small_window() -> ContextWindowConfig:
    """Budget of 10 messages, keeps 2 recent + 2 important."""
    return ContextWindowConfig(
        max_context_messages=10,
        min_messages_after_compression=4,
        important_messages_count=2,
    )


@pytest.fixture
def recording_bus() -> tuple[AsyncEventBus, EventStore]:
    bus = AsyncEventBus()
    store = EventStore()
    store.attach(bus)
    return bus, store
