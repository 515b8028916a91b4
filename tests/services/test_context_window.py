"""Tests for ContextWindowManager compaction."""

from __future__ import annotations

import asyncio

import pytest

from market_assistant.domain.events import ContextCompacted
from market_assistant.domain.values import ChatMessage
from market_assistant.infrastructure.config import ContextWindowConfig
from market_assistant.infrastructure.event_bus import AsyncEventBus, EventStore
from market_assistant.services import prompts
from market_assistant.services.context_window import ContextWindowManager
from tests.helpers.factories import conversation, mock_invoker


def _small_log() -> list[ChatMessage]:
    """11 messages: two system messages and nine alternating turns."""
    return [
        ChatMessage.system("初始系统提示"),
        ChatMessage.user("u0 平安银行怎么样？"),
        ChatMessage.assistant("a0 估值偏低"),
        ChatMessage.system("当前股票：SZ000001"),
        ChatMessage.user("u1 市盈率多少？"),
        ChatMessage.assistant("a1 市盈率约 4.5 倍"),
        ChatMessage.user("u2 有什么风险？"),
        ChatMessage.assistant("a2 地产敞口"),
        ChatMessage.user("u3 技术面呢"),
        ChatMessage.assistant("a3 均线多头"),
        ChatMessage.user("u4 结论"),
    ]


class TestNoCompaction:

    @pytest.mark.asyncio
    async def test_under_budget_is_noop(self, small_window: ContextWindowConfig) -> None:
        invoker, model = mock_invoker("摘要")
        manager = ContextWindowManager(small_window, invoker, initial_messages=_small_log()[:9])
        assert await manager.append(ChatMessage.user("再问一句")) is None
        assert len(manager) == 10
        assert model.call_count == 0

    @pytest.mark.asyncio
    async def test_few_non_system_messages_are_all_kept(self) -> None:
        config = ContextWindowConfig(
            max_context_messages=3, min_messages_after_compression=4, important_messages_count=1
        )
        log = conversation(2)  # 1 system + 4 turns
        manager = ContextWindowManager(config, initial_messages=log[:-1])
        assert await manager.append(log[-1]) is None
        assert list(manager.messages) == log


class TestCompaction:

    @pytest.mark.asyncio
    async def test_size_law_and_system_messages_preserved(
        self, small_window: ContextWindowConfig
    ) -> None:
        invoker, _ = mock_invoker("讨论了平安银行的估值与风险。")
        log = _small_log()
        manager = ContextWindowManager(small_window, invoker, initial_messages=log[:-1])

        result = await manager.append(log[-1])

        after = list(manager.messages)
        system_before = [m for m in log if m.is_system]
        assert result is not None
        assert len(after) < len(log)
        assert after[: len(system_before)] == system_before
        assert result.before_count == 11
        assert result.after_count == len(after) == 7
        assert result.compacted_count == 5
        assert result.retained_count == 4
        assert result.degraded is False

    @pytest.mark.asyncio
    async def test_summary_message_follows_system_messages(
        self, small_window: ContextWindowConfig
    ) -> None:
        invoker, _ = mock_invoker("讨论了平安银行的估值与风险。")
        log = _small_log()
        manager = ContextWindowManager(small_window, invoker, initial_messages=log[:-1])
        await manager.append(log[-1])

        summary = manager.messages[2]
        assert summary.is_system
        assert summary.content == prompts.summary_message(5, "讨论了平安银行的估值与风险。")

    @pytest.mark.asyncio
    async def test_recent_messages_kept_verbatim_in_order(
        self, small_window: ContextWindowConfig
    ) -> None:
        invoker, _ = mock_invoker("摘要")
        log = _small_log()
        manager = ContextWindowManager(small_window, invoker, initial_messages=log[:-1])
        await manager.append(log[-1])

        reserve = small_window.recent_reserve
        recent_before = [m for m in log if not m.is_system][-reserve:]
        recent_after = [m for m in manager.messages if not m.is_system][-reserve:]
        assert recent_after == recent_before

    @pytest.mark.asyncio
    async def test_kept_messages_stay_in_original_order(
        self, small_window: ContextWindowConfig
    ) -> None:
        manager = ContextWindowManager(small_window, initial_messages=_small_log()[:-1])
        await manager.append(_small_log()[-1])

        kept = [m for m in manager.messages if not m.is_system]
        others = [m for m in _small_log() if not m.is_system]
        positions = [others.index(m) for m in kept]
        assert positions == sorted(positions)

    @pytest.mark.asyncio
    async def test_important_older_message_survives(self) -> None:
        config = ContextWindowConfig(
            max_context_messages=10, min_messages_after_compression=4, important_messages_count=1
        )
        important = ChatMessage.user("SH600519 的市盈率 30%，基本面和财务风险的结论是什么？")
        log = [ChatMessage.system("s")] + [ChatMessage.assistant(f"好的{i}") for i in range(4)]
        log += [important] + [ChatMessage.assistant(f"嗯{i}") for i in range(5)]
        manager = ContextWindowManager(config, subject="SH600519", initial_messages=log[:-1])

        await manager.append(log[-1])
        assert important in manager.messages

    def test_ties_go_to_the_later_message(self) -> None:
        config = ContextWindowConfig(min_messages_after_compression=2, important_messages_count=2)
        manager = ContextWindowManager(config)
        others = [ChatMessage.assistant("同样的内容") for _ in range(6)]
        # one recent message reserved (index 5); ties among 0..4 favour 4 and 3
        assert manager.select_retained(others) == {3, 4, 5}


class TestDegradation:

    @pytest.mark.asyncio
    async def test_failed_summarizer_falls_back(
        self, small_window: ContextWindowConfig, recording_bus: tuple[AsyncEventBus, EventStore]
    ) -> None:
        bus, store = recording_bus
        invoker, _ = mock_invoker(RuntimeError("provider unavailable"))
        log = _small_log()
        manager = ContextWindowManager(
            small_window,
            invoker,
            event_bus=bus,
            session_id="s-1",
            subject="SZ000001",
            initial_messages=log[:-1],
        )

        result = await manager.append(log[-1])

        assert result is not None and result.degraded
        summary = manager.messages[2]
        assert summary.is_system
        assert summary.content.strip()
        assert "压缩了 5 条消息" in summary.content
        assert "SZ000001" in summary.content
        event = store.latest
        assert isinstance(event, ContextCompacted)
        assert event.degraded is True
        assert event.source_id == "s-1"

    @pytest.mark.asyncio
    async def test_fallback_counts_turns(self, small_window: ContextWindowConfig) -> None:
        manager = ContextWindowManager(small_window, initial_messages=_small_log()[:-1])
        result = await manager.append(_small_log()[-1])
        assert result is not None and result.degraded
        # u1 and u2 score highest; u0 a0 a1 a2 u3 are compacted
        assert result.compacted_count == 5
        assert "压缩了 5 条消息" in result.summary
        assert "2 轮用户询问和 3 次AI回复" in result.summary

    @pytest.mark.asyncio
    async def test_blank_summary_falls_back(self, small_window: ContextWindowConfig) -> None:
        invoker, _ = mock_invoker("   ")
        manager = ContextWindowManager(small_window, invoker, initial_messages=_small_log()[:-1])
        result = await manager.append(_small_log()[-1])
        assert result is not None and result.degraded

    @pytest.mark.asyncio
    async def test_summarizer_input_is_truncated(self) -> None:
        config = ContextWindowConfig(
            max_context_messages=10,
            min_messages_after_compression=4,
            important_messages_count=2,
            summary_input_char_limit=20,
        )
        invoker, model = mock_invoker("摘要")
        manager = ContextWindowManager(config, invoker, initial_messages=_small_log()[:-1])
        await manager.append(_small_log()[-1])

        sent = model.received[0][-1].content
        assert sent.endswith(prompts.TRUNCATION_MARKER)


class TestScenario:

    @pytest.mark.asyncio
    async def test_101_message_session(
        self, recording_bus: tuple[AsyncEventBus, EventStore]
    ) -> None:
        bus, store = recording_bus
        invoker, model = mock_invoker("用户关注贵州茅台的估值与风险。")
        log = conversation(50)  # 1 system + 100 alternating turns
        manager = ContextWindowManager(
            ContextWindowConfig(), invoker, event_bus=bus, initial_messages=log[:1]
        )

        results = await manager.extend(log[1:])

        assert len(results) == 1
        assert model.call_count == 1
        assert len(store.query(ContextCompacted)) == 1
        assert len(manager) < 101
        assert len(manager) == 22
        assert manager.messages[0] == log[0]
        assert manager.messages[1].content.startswith("之前对话摘要（压缩了 80 条消息）")


class TestSerialization:

    @pytest.mark.asyncio
    async def test_appends_wait_for_inflight_compaction(
        self, small_window: ContextWindowConfig
    ) -> None:
        invoker, _ = mock_invoker("摘要", delay=0.05)
        manager = ContextWindowManager(small_window, invoker, initial_messages=_small_log()[:-1])
        x1, x2, x3 = (ChatMessage.user(f"x{i}") for i in range(1, 4))

        await asyncio.gather(manager.append(x1), manager.append(x2), manager.append(x3))

        assert manager.compaction_count == 1
        assert list(manager.messages[-3:]) == [x1, x2, x3]
        assert len(manager) == 9

    @pytest.mark.asyncio
    async def test_sessions_do_not_block_each_other(
        self, small_window: ContextWindowConfig
    ) -> None:
        slow_invoker, _ = mock_invoker("摘要", delay=0.5)
        busy = ContextWindowManager(small_window, slow_invoker, initial_messages=_small_log()[:-1])
        idle = ContextWindowManager(small_window)

        compaction = asyncio.ensure_future(busy.append(ChatMessage.user("触发压缩")))
        await asyncio.sleep(0.01)
        await asyncio.wait_for(idle.append(ChatMessage.user("独立会话")), timeout=0.1)
        assert not compaction.done()
        await compaction

    @pytest.mark.asyncio
    async def test_reset(self) -> None:
        manager = ContextWindowManager(initial_messages=conversation(3))
        await manager.reset([ChatMessage.system("fresh")])
        assert manager.messages == (ChatMessage.system("fresh"),)
