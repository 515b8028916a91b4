"""Contract of the external screening capability.

Physical data sourcing (screener website automation, market data HTTP
clients) lives outside this package; the pipeline only depends on this
protocol.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from market_assistant.domain.enums import IndustryType, MarketType
from market_assistant.domain.schemas import ScreeningCriterion
from market_assistant.domain.values import StockRecord


@runtime_checkable
class ExternalScreeningService(Protocol):
    """Screens the market for stocks matching a set of indicator bounds."""

    async def screen(
        self,
        criteria: Sequence[ScreeningCriterion],
        market: MarketType,
        industry: IndustryType,
        limit: int,
    ) -> list[StockRecord]:
        """Return up to *limit* matching stocks, best match first.

        An empty list is a valid "no match" outcome.
        """
        ...
