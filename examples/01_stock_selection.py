#!/usr/bin/env python3
"""Example 01: requirement- and news-driven stock selection.

Demonstrates:
- Wiring ``SelectionPipeline`` with a mock chat model and an in-memory screener
- Recording stage lifecycle events with ``EventStore``
- The news-driven path with reason tagging

Run:
    PYTHONPATH=src python examples/01_stock_selection.py
"""

from __future__ import annotations

import asyncio
import logging

from market_assistant import SelectionPipeline, SelectionRequest, StockSelectionService
from market_assistant.domain.schemas import ScreeningCriterion, StockCriteria
from market_assistant.domain.values import StockRecord
from market_assistant.infrastructure import AsyncEventBus, EventStore
from market_assistant.infrastructure.llm.invoker import ChatModelInvoker
from market_assistant.testing import MockStructuredChatModel, StaticScreeningService

STOCKS = [
    StockRecord("SZ000001", "平安银行", {"mc": 2.1e11, "pettm": 4.6, "pb": 0.55, "dy_l": 6.1}),
    StockRecord("SH601398", "工商银行", {"mc": 2.0e12, "pettm": 5.2, "pb": 0.6, "dy_l": 5.8}),
    StockRecord("SH600900", "长江电力", {"mc": 6.8e11, "pettm": 21.3, "pb": 3.4, "dy_l": 3.4}),
    StockRecord("SH600036", "招商银行", {"mc": 8.5e11, "pettm": 6.0, "pb": 0.9, "dy_l": 5.2}),
]

CRITERIA = StockCriteria(
    criteria=[
        ScreeningCriterion(code="mc", display_name="总市值", min_value=1e11),
        ScreeningCriterion(code="pettm", display_name="市盈率TTM", max_value=25),
    ],
    limit=3,
)

ANALYSIS = {
    "analysisSummary": "低估值高股息的银行与公用事业龙头",
    "marketEnvironmentAnalysis": "利率下行，红利资产受青睐",
    "recommendations": [
        {
            "symbol": "SZ000001",
            "name": "平安银行",
            "recommendationScore": 82,
            "reason": "PB 0.55，股息率 6.1%",
            "expectedReturn": 12,
            "riskLevel": "Medium",
        },
        {
            "symbol": "SH601398",
            "name": "工商银行",
            "recommendationScore": 78,
            "reason": "国有大行，分红稳定",
            "expectedReturn": 8,
            "riskLevel": "Low",
        },
    ],
    "riskWarnings": ["息差收窄风险"],
    "investmentAdvice": "分批建仓，长期持有",
    "confidenceScore": 74,
}


async def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")

    model = MockStructuredChatModel(responses=[CRITERIA, ANALYSIS])
    bus = AsyncEventBus()
    store = EventStore()
    store.attach(bus)
    pipeline = SelectionPipeline(
        ChatModelInvoker(model), StaticScreeningService(stocks=STOCKS), event_bus=bus
    )
    service = StockSelectionService(pipeline)

    print("=== Requirement-driven selection ===")
    result = await service.recommend_by_requirement(
        SelectionRequest("筛选市值千亿以上、市盈率低于25的高股息股票", risk_preference="保守")
    )
    for rec in result.recommendations:
        print(f"  {rec.symbol} {rec.name} score={rec.recommendation_score:.0f} {rec.reason}")
    print(f"Confidence: {result.confidence_score:.0f}")
    print(f"Events: {[type(e).__name__ for e in store.query()]}")
    print()

    print("=== News-driven selection ===")
    news = await service.recommend_by_news("央行宣布全面降准0.5个百分点", max_recommendations=1)
    for rec in news.recommendations:
        print(f"  {rec.symbol} {rec.reason}")
    print()
    print("Done.")


if __name__ == "__main__":
    asyncio.run(main())
