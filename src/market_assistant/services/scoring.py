"""Importance scoring for chat messages considered during compaction."""

from __future__ import annotations

import re
from dataclasses import dataclass

from market_assistant.domain.enums import MessageRole
from market_assistant.domain.values import ChatMessage

DOMAIN_KEYWORDS: tuple[str, ...] = (
    "股票", "股价", "涨跌", "市盈率", "市净率", "成交量", "技术分析", "基本面",
    "财务", "收益", "风险", "投资", "分析", "建议", "趋势", "指标",
)
CONCLUSION_MARKERS: tuple[str, ...] = ("结论", "建议", "总结")

_NUMBER_RE = re.compile(r"\d+\.?\d*%?")


@dataclass(frozen=True)
class ImportanceScorer:
    """Deterministic, additive importance heuristic.

    ``score = min(len / length_divisor, length_cap)
            + keyword_bonus * keyword hits
            + subject_bonus (if the active subject is mentioned)
            + min(number_bonus * numeric tokens, number_cap)
            + question_bonus + conclusion_bonus``,
    multiplied by ``user_multiplier`` for user-authored messages.
    Matching is case-insensitive.  Blank messages score ``0``.
    """

    length_divisor: float = 100.0
    length_cap: float = 5.0
    keyword_bonus: float = 2.0
    subject_bonus: float = 5.0
    number_bonus: float = 0.5
    number_cap: float = 3.0
    question_bonus: float = 1.0
    conclusion_bonus: float = 2.0
    user_multiplier: float = 1.5
    keywords: tuple[str, ...] = DOMAIN_KEYWORDS

    def score(self, message: ChatMessage, subject: str | None = None) -> float:
        text = message.content.lower()
        if not text.strip():
            return 0.0

        value = min(len(text) / self.length_divisor, self.length_cap)
        value += self.keyword_bonus * sum(1 for kw in self.keywords if kw in text)
        if subject and subject.lower() in text:
            value += self.subject_bonus
        value += min(self.number_bonus * len(_NUMBER_RE.findall(text)), self.number_cap)
        if "?" in text or "？" in text:
            value += self.question_bonus
        if any(marker in text for marker in CONCLUSION_MARKERS):
            value += self.conclusion_bonus
        if message.role is MessageRole.USER:
            value *= self.user_multiplier
        return value

    __call__ = score
