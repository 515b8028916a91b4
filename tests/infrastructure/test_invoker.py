"""Tests for ChatModelInvoker with a mocked chat model."""

from __future__ import annotations

import asyncio

import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from market_assistant.domain.schemas import StockCriteria
from market_assistant.domain.values import AnalystRole, ChatMessage, SamplingParams
from market_assistant.infrastructure.llm import (
    LLMCancelledError,
    LLMError,
    LLMTimeoutError,
    SchemaValidationError,
)
from market_assistant.infrastructure.llm.invoker import (
    ChatModelInvoker,
    message_text,
    normalise_keys,
    parse_structured,
    to_langchain_messages,
)
from tests.helpers.factories import mock_invoker, value_criteria
from tests.helpers.mock_llm import MockStructuredChatModel

TEXT_ROLE = AnalystRole(name="chat", instructions="你是分析助手")
CRITERIA_ROLE = AnalystRole(
    name="criteria",
    instructions="生成筛选条件",
    sampling=SamplingParams(temperature=0.1),
    output_schema=StockCriteria,
)


class TestMessageConversion:

    def test_roles_map_to_langchain_types(self) -> None:
        converted = to_langchain_messages(
            [ChatMessage.system("s"), ChatMessage.user("u"), ChatMessage.assistant("a")],
            system_instruction="head",
        )
        assert [type(m) for m in converted] == [
            SystemMessage,
            SystemMessage,
            HumanMessage,
            AIMessage,
        ]
        assert converted[0].content == "head"

    def test_message_text_joins_content_blocks(self) -> None:
        message = AIMessage(content=[{"type": "text", "text": "你"}, {"type": "text", "text": "好"}])
        assert message_text(message) == "你好"


class TestLenientParsing:

    def test_fenced_json_with_odd_key_casing(self) -> None:
        text = (
            "好的，以下是筛选条件：\n```json\n"
            '{"CRITERIA": [{"Code": "mc", "MIN_VALUE": 10000000000}], "Market": "AllAShares", "LIMIT": 5}'
            "\n```"
        )
        criteria = parse_structured(text, StockCriteria)
        assert isinstance(criteria, StockCriteria)
        assert criteria.criteria[0].code == "mc"
        assert criteria.criteria[0].min_value == 1e10
        assert criteria.limit == 5

    def test_normalise_keys_leaves_unknown_keys(self) -> None:
        data = normalise_keys({"Limit": 3, "extra": 1}, StockCriteria)
        assert data == {"limit": 3, "extra": 1}

    def test_not_json(self) -> None:
        with pytest.raises(SchemaValidationError) as info:
            parse_structured("我无法完成这个请求", StockCriteria)
        assert info.value.schema_name == "StockCriteria"
        assert info.value.raw_text == "我无法完成这个请求"

    def test_schema_mismatch(self) -> None:
        with pytest.raises(SchemaValidationError) as info:
            parse_structured('{"limit": "many"}', StockCriteria)
        assert info.value.details["errors"]


class TestChatModelInvoker:

    @pytest.mark.asyncio
    async def test_text_call_sends_role_instructions(self) -> None:
        invoker, model = mock_invoker("平安银行估值偏低。")
        result = await invoker.invoke(TEXT_ROLE, [ChatMessage.user("平安银行怎么样？")])

        assert result.text == "平安银行估值偏低。"
        assert result.structured is None
        sent = model.received[0]
        assert isinstance(sent[0], SystemMessage)
        assert sent[0].content == "你是分析助手"
        assert isinstance(sent[-1], HumanMessage)

    @pytest.mark.asyncio
    async def test_empty_system_instruction_sends_none(self) -> None:
        invoker, model = mock_invoker("ok")
        await invoker.invoke(TEXT_ROLE, [ChatMessage.user("hi")], system_instruction="")
        assert all(not isinstance(m, SystemMessage) for m in model.received[0])

    @pytest.mark.asyncio
    async def test_structured_instance(self) -> None:
        invoker, _ = mock_invoker(value_criteria())
        result = await invoker.invoke(CRITERIA_ROLE, [ChatMessage.user("价值股")])
        assert isinstance(result.structured, StockCriteria)
        assert [c.code for c in result.structured.criteria] == ["mc", "pettm"]

    @pytest.mark.asyncio
    async def test_structured_raw_text_is_parsed_once(self) -> None:
        invoker, _ = mock_invoker('```json\n{"criteria": [{"code": "pb", "maxValue": 3}]}\n```')
        result = await invoker.invoke(CRITERIA_ROLE, [ChatMessage.user("低PB")])
        assert isinstance(result.structured, StockCriteria)
        assert result.structured.criteria[0].max_value == 3
        assert "```json" in result.text

    @pytest.mark.asyncio
    async def test_structured_dict(self) -> None:
        invoker, _ = mock_invoker({"Criteria": [{"code": "tr", "minValue": 2}], "limit": 8})
        result = await invoker.invoke(CRITERIA_ROLE, [ChatMessage.user("活跃股")])
        assert isinstance(result.structured, StockCriteria)
        assert result.structured.limit == 8

    @pytest.mark.asyncio
    async def test_output_schema_override(self) -> None:
        invoker, _ = mock_invoker(value_criteria())
        result = await invoker.invoke(
            TEXT_ROLE, [ChatMessage.user("价值股")], output_schema=StockCriteria
        )
        assert isinstance(result.structured, StockCriteria)

    @pytest.mark.asyncio
    async def test_malformed_structured_output_fails_fast(self) -> None:
        invoker, _ = mock_invoker("抱歉，我不能提供投资建议。")
        with pytest.raises(SchemaValidationError):
            await invoker.invoke(CRITERIA_ROLE, [ChatMessage.user("价值股")])

    @pytest.mark.asyncio
    async def test_empty_structured_output(self) -> None:
        invoker, _ = mock_invoker("")
        with pytest.raises(SchemaValidationError, match="empty"):
            await invoker.invoke(CRITERIA_ROLE, [ChatMessage.user("价值股")])

    @pytest.mark.asyncio
    async def test_transport_error_is_wrapped(self) -> None:
        invoker, _ = mock_invoker(ConnectionError("connection reset"))
        with pytest.raises(LLMError) as info:
            await invoker.invoke(TEXT_ROLE, [ChatMessage.user("hi")])
        assert not isinstance(info.value, SchemaValidationError)
        assert isinstance(info.value.__cause__, ConnectionError)
        assert info.value.details["role"] == "chat"

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        invoker, _ = mock_invoker("slow", delay=0.5)
        with pytest.raises(LLMTimeoutError):
            await invoker.invoke(TEXT_ROLE, [ChatMessage.user("hi")], timeout=0.05)

    @pytest.mark.asyncio
    async def test_default_timeout(self) -> None:
        model = MockStructuredChatModel(responses=["slow"], response_delay=0.5)
        invoker = ChatModelInvoker(model, default_timeout=0.05)
        with pytest.raises(LLMTimeoutError):
            await invoker.invoke(TEXT_ROLE, [ChatMessage.user("hi")])

    @pytest.mark.asyncio
    async def test_cancel_event_aborts_call(self) -> None:
        invoker, _ = mock_invoker(value_criteria(), delay=1.0)
        cancel = asyncio.Event()
        asyncio.get_running_loop().call_later(0.05, cancel.set)
        with pytest.raises(LLMCancelledError):
            await invoker.invoke(
                CRITERIA_ROLE, [ChatMessage.user("价值股")], cancel_event=cancel
            )

    @pytest.mark.asyncio
    async def test_cancel_event_set_before_call(self) -> None:
        invoker, model = mock_invoker("never")
        cancel = asyncio.Event()
        cancel.set()
        with pytest.raises(LLMCancelledError):
            await invoker.invoke(TEXT_ROLE, [ChatMessage.user("hi")], cancel_event=cancel)
        assert model.call_count == 0

    @pytest.mark.asyncio
    async def test_factory_called_once_per_role(self) -> None:
        built: list[str] = []

        def factory(role: AnalystRole) -> MockStructuredChatModel:
            built.append(role.name)
            return MockStructuredChatModel(responses=["ok"])

        invoker = ChatModelInvoker(factory)
        await invoker.invoke(TEXT_ROLE, [ChatMessage.user("1")])
        await invoker.invoke(TEXT_ROLE, [ChatMessage.user("2")])
        assert built == ["chat"]
        assert invoker.model_for(TEXT_ROLE) is invoker.model_for(TEXT_ROLE)
