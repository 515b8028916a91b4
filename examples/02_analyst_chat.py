#!/usr/bin/env python3
"""Example 02: analyst chat session with context compaction.

Demonstrates:
- ``AnalystChatSession`` over a small message budget
- Switching the analysis focus between stocks
- ``ContextCompacted`` events when the log is summarized

Run:
    PYTHONPATH=src python examples/02_analyst_chat.py
"""

from __future__ import annotations

import asyncio

from market_assistant import AnalystChatSession, ContextWindowConfig
from market_assistant.domain.events import ContextCompacted
from market_assistant.infrastructure import AsyncEventBus, EventStore
from market_assistant.infrastructure.llm.invoker import ChatModelInvoker
from market_assistant.testing import MockStructuredChatModel

QUESTIONS = [
    "贵州茅台现在的估值贵吗？",
    "它的毛利率和净利率怎么样？",
    "技术面上有支撑吗？",
    "主要风险是什么？",
    "总结一下你的结论。",
]


async def main() -> None:
    model = MockStructuredChatModel(
        responses=[
            "【核心观点】市盈率约 25 倍，处于近五年低位。",
            "毛利率超过 90%，净利率约 50%，盈利能力突出。",
            "1500 元附近有较强支撑，均线呈多头排列。",
            "需关注消费疲软和渠道库存风险。",
            "之前讨论了茅台的估值、盈利能力、技术支撑和风险。",
        ]
    )
    bus = AsyncEventBus()
    store = EventStore()
    store.attach(bus)

    session = AnalystChatSession(
        ChatModelInvoker(model),
        context_config=ContextWindowConfig(
            max_context_messages=8,
            min_messages_after_compression=4,
            important_messages_count=2,
        ),
        event_bus=bus,
        subject="SH600519",
    )

    print("=== Analyst chat ===")
    for question in QUESTIONS:
        reply = await session.send_message(question)
        print(f"用户: {question}")
        print(f"分析师: {reply}")
        print(f"  ({len(session.messages)} messages in context)")

    await session.update_subject("SZ000858")
    print()
    print(f"Focus switched, last note: {session.messages[-1].content}")

    for event in store.query(ContextCompacted):
        print(
            f"Compacted {event.before_count} -> {event.after_count} messages "
            f"(summarized {event.compacted_count}, degraded={event.degraded})"
        )
    print()
    print("Done.")


if __name__ == "__main__":
    asyncio.run(main())
