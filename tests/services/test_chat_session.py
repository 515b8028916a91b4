"""Tests for AnalystChatSession."""

from __future__ import annotations

import asyncio

import pytest
from langchain_core.messages import SystemMessage

from market_assistant.domain.enums import MessageRole
from market_assistant.domain.exceptions import InvalidRequestError
from market_assistant.infrastructure.config import ContextWindowConfig
from market_assistant.roles import CHAT_ANALYST, AnalystRoleCatalog
from market_assistant.services import prompts
from market_assistant.services.chat_session import AnalystChatSession
from tests.helpers.factories import mock_invoker


class TestConversation:

    @pytest.mark.asyncio
    async def test_seeded_with_chat_instructions(self, catalog: AnalystRoleCatalog) -> None:
        invoker, _ = mock_invoker("ok")
        session = AnalystChatSession(invoker, subject="SH600519")

        seed = session.messages[0]
        assert seed.role is MessageRole.SYSTEM
        assert seed.content.startswith(catalog.get(CHAT_ANALYST).instructions)
        assert seed.content.endswith("**当前分析焦点：SH600519**")

    @pytest.mark.asyncio
    async def test_reply_is_appended(self) -> None:
        invoker, model = mock_invoker("【核心观点】估值合理。")
        session = AnalystChatSession(invoker)

        reply = await session.send_message("贵州茅台现在能买吗？")

        assert reply == "【核心观点】估值合理。"
        roles = [m.role for m in session.messages]
        assert roles == [MessageRole.SYSTEM, MessageRole.USER, MessageRole.ASSISTANT]
        sent = model.received[0]
        assert sum(isinstance(m, SystemMessage) for m in sent) == 1

    @pytest.mark.asyncio
    async def test_model_failure_returns_apology(self) -> None:
        invoker, _ = mock_invoker(ConnectionError("timeout talking to provider"))
        session = AnalystChatSession(invoker)

        reply = await session.send_message("今天大盘怎么样？")

        assert reply == prompts.CHAT_ERROR_REPLY
        assert session.messages[-1].content == prompts.CHAT_ERROR_REPLY
        assert not session.is_busy

    @pytest.mark.asyncio
    async def test_cancel_inflight_turn(self) -> None:
        invoker, _ = mock_invoker("迟到的回答", delay=1.0)
        session = AnalystChatSession(invoker)

        turn = asyncio.ensure_future(session.send_message("分析一下宁德时代"))
        await asyncio.sleep(0.05)
        assert session.is_busy
        assert session.cancel() is True

        reply = await turn
        assert reply == prompts.CHAT_CANCELLED_REPLY
        assert session.messages[-1].role is MessageRole.USER
        assert not session.is_busy

    def test_cancel_without_turn(self) -> None:
        invoker, _ = mock_invoker("ok")
        assert AnalystChatSession(invoker).cancel() is False

    @pytest.mark.asyncio
    async def test_blank_message_rejected(self) -> None:
        invoker, model = mock_invoker("ok")
        session = AnalystChatSession(invoker)
        with pytest.raises(InvalidRequestError):
            await session.send_message("  ")
        assert model.call_count == 0

    @pytest.mark.asyncio
    async def test_long_conversation_is_compacted(self) -> None:
        config = ContextWindowConfig(
            max_context_messages=10, min_messages_after_compression=4, important_messages_count=2
        )
        invoker, _ = mock_invoker("回答")
        session = AnalystChatSession(invoker, context_config=config)
        seed = session.messages[0]

        for i in range(20):
            await session.send_message(f"问题{i}")

        # summaries are system messages and accumulate, so no exact bound
        assert len(session.messages) < 1 + 2 * 20
        assert session.messages[0] == seed
        assert session.context.compaction_count > 0
        assert [m.content for m in session.messages[-2:]] == ["问题19", "回答"]


class TestSubject:

    @pytest.mark.asyncio
    async def test_first_subject_without_history(self) -> None:
        invoker, _ = mock_invoker("ok")
        session = AnalystChatSession(invoker)

        await session.update_subject("SH600519")

        assert session.subject == "SH600519"
        assert session.context.subject == "SH600519"
        added = session.messages[1:]
        assert len(added) == 1
        assert added[0].content.startswith("当前股票：SH600519。")

    @pytest.mark.asyncio
    async def test_switch_after_conversation(self) -> None:
        invoker, _ = mock_invoker("茅台的毛利率超过 90%。")
        session = AnalystChatSession(invoker, subject="SH600519")
        await session.send_message("茅台毛利率怎么样？")

        await session.update_subject("SZ000858")

        context_note, notice = session.messages[-2:]
        assert context_note.is_system
        assert "当前分析股票：SZ000858" in context_note.content
        assert "- 分析师: 茅台的毛利率超过 90%。" in context_note.content
        assert notice.content == "分析焦点已从 SH600519 切换到 SZ000858"

    @pytest.mark.asyncio
    async def test_same_subject_is_noop(self) -> None:
        invoker, _ = mock_invoker("ok")
        session = AnalystChatSession(invoker, subject="SH600519")
        before = session.messages
        await session.update_subject("SH600519")
        assert session.messages == before

    @pytest.mark.asyncio
    async def test_clear_reseeds_system_context(self) -> None:
        invoker, _ = mock_invoker("ok")
        session = AnalystChatSession(invoker)
        await session.update_subject("SH600519")
        await session.send_message("怎么样？")

        await session.clear()

        assert len(session.messages) == 1
        assert session.messages[0].is_system
        assert session.messages[0].content.endswith("**当前分析焦点：SH600519**")

    @pytest.mark.asyncio
    async def test_add_system_message(self) -> None:
        invoker, _ = mock_invoker("ok")
        session = AnalystChatSession(invoker)
        await session.add_system_message("用户偏好短线交易")
        assert session.messages[-1].content == "用户偏好短线交易"
        assert session.messages[-1].is_system
