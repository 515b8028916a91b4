"""Tests for domain value objects."""

from __future__ import annotations

import dataclasses

import pytest

from market_assistant.domain.enums import MessageRole
from market_assistant.domain.schemas import ScreeningCriterion, StockCriteria
from market_assistant.domain.values import (
    AnalystRole,
    ChatMessage,
    CriteriaEnvelope,
    SamplingParams,
    SelectionRequest,
    StockRecord,
)


class TestSamplingParams:

    def test_defaults(self) -> None:
        params = SamplingParams()
        assert params.temperature == 0.7
        assert params.top_k is None

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"temperature": -0.1},
            {"temperature": 2.5},
            {"top_p": 1.5},
            {"top_k": 0},
            {"max_output_tokens": 0},
        ],
    )
    def test_out_of_range(self, kwargs: dict) -> None:
        with pytest.raises(ValueError):
            SamplingParams(**kwargs)

    def test_frozen(self) -> None:
        params = SamplingParams()
        with pytest.raises(dataclasses.FrozenInstanceError):
            params.temperature = 1.0  # type: ignore[misc]


class TestAnalystRole:

    def test_structured_role_exposes_schema(self) -> None:
        role = AnalystRole(name="r", instructions="x", output_schema=StockCriteria)
        assert role.is_structured
        schema = role.json_schema()
        assert schema is not None
        assert "criteria" in schema["properties"]

    def test_text_role(self) -> None:
        role = AnalystRole(name="r", instructions="x")
        assert not role.is_structured
        assert role.json_schema() is None

    def test_name_required(self) -> None:
        with pytest.raises(ValueError):
            AnalystRole(name="", instructions="x")


class TestSelectionRequest:

    def test_defaults(self) -> None:
        request = SelectionRequest(content="价值股")
        assert request.is_news_driven is False
        assert request.risk_preference == "moderate"
        assert request.max_recommendations == 10
        assert request.preferred_sectors == ()

    def test_rejects_non_positive_limit(self) -> None:
        with pytest.raises(ValueError):
            SelectionRequest(content="价值股", max_recommendations=0)

    def test_rejects_non_positive_horizon(self) -> None:
        with pytest.raises(ValueError):
            SelectionRequest(content="价值股", investment_horizon=0)


class TestStockRecord:

    def test_metric_default(self) -> None:
        stock = StockRecord("SH600519", "贵州茅台", {"pettm": 25.1})
        assert stock.metric("pettm") == 25.1
        assert stock.metric("pb") == 0.0
        assert stock.metric("pb", -1.0) == -1.0


class TestCriteriaEnvelope:

    def test_indicator_codes(self) -> None:
        envelope = CriteriaEnvelope(
            criteria=(
                ScreeningCriterion(code="mc", min_value=1e10),
                ScreeningCriterion(code="pettm", max_value=20),
            )
        )
        assert envelope.indicator_codes == ("mc", "pettm")
        assert envelope.result_limit == 20
        assert envelope.original_request is None


class TestChatMessage:

    def test_constructors(self) -> None:
        assert ChatMessage.system("s").role is MessageRole.SYSTEM
        assert ChatMessage.user("u").role is MessageRole.USER
        assert ChatMessage.assistant("a").role is MessageRole.ASSISTANT
        assert ChatMessage.system("s").is_system
        assert not ChatMessage.user("u").is_system

    def test_to_dict(self) -> None:
        assert ChatMessage.user("你好").to_dict() == {"role": "user", "content": "你好"}

    def test_value_equality(self) -> None:
        assert ChatMessage.user("x") == ChatMessage.user("x")
        assert ChatMessage.user("x") != ChatMessage.assistant("x")
