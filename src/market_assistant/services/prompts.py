"""Prompt builders for the selection pipeline and the chat analyst session.

System instructions live with the roles
(:mod:`market_assistant.roles.definitions`); this module renders the
per-request user prompts and the fixed texts the services emit themselves.
"""

from __future__ import annotations

import json
from collections.abc import Sequence

from market_assistant.domain.indicators import SUPPORTED_INDICATORS
from market_assistant.domain.values import ChatMessage, SelectionRequest, StockRecord

# -- Fixed texts ----------------------------------------------------------------

NO_ORIGINAL_REQUEST_SUMMARY = "分析失败：缺少原始请求信息"
NO_MATCH_SUMMARY = "未找到符合条件的股票，建议放宽筛选条件。"

PARSE_FAILURE_SUMMARY = "解析分析结果失败"
PARSE_FAILURE_MARKET = "无可用分析"
PARSE_FAILURE_ADVICE = "建议重新尝试分析"
PARSE_FAILURE_WARNING = "分析失败，请联系技术支持"

CHAT_CANCELLED_REPLY = "对话已被取消。"
CHAT_ERROR_REPLY = "抱歉，我暂时无法回复您的问题，请稍后重试。"

NEWS_REASON_PREFIX = "[新闻热点] "
TRUNCATION_MARKER = "...（内容已截断）"

_ROLE_LABELS = {"system": "系统", "user": "用户", "assistant": "分析师"}


# -- Stage 1 ----------------------------------------------------------------------


def criteria_user_prompt(request: SelectionRequest) -> str:
    """User prompt for criteria generation (requirement or news variant)."""
    if request.is_news_driven:
        return (
            f"新闻内容：\n{request.content}\n\n"
            f"推荐股票数量限制：{request.max_recommendations}\n\n"
            "请根据新闻内容生成股票筛选条件。"
        )
    return (
        f"用户需求：\n{request.content}\n\n"
        f"推荐股票数量限制：{request.max_recommendations}\n\n"
        "请根据用户需求生成股票筛选条件。"
    )


# -- Stage 3 ----------------------------------------------------------------------


def compact_stock(stock: StockRecord) -> dict[str, object]:
    """Field-sparse, unit-tagged representation of one screened stock.

    Only non-zero metrics of supported indicators are included; values are
    rescaled and rounded according to the indicator catalog.
    """
    payload: dict[str, object] = {"名称": stock.name, "代码": stock.symbol}
    for code, raw in stock.metrics.items():
        indicator = SUPPORTED_INDICATORS.get(code)
        if indicator is None or raw is None or raw == 0:
            continue
        payload[indicator.compact_key] = indicator.render(raw)
    return payload


def compact_stocks_json(stocks: Sequence[StockRecord]) -> str:
    return json.dumps([compact_stock(s) for s in stocks], ensure_ascii=False, indent=2)


def _requirement_section(request: SelectionRequest) -> str:
    lines = [
        "## 用户需求",
        f"- 需求描述: {request.content}",
        f"- 风险偏好: {request.risk_preference}",
    ]
    if request.investment_amount is not None:
        lines.append(f"- 投资金额: {request.investment_amount:.0f}")
    if request.investment_horizon is not None:
        lines.append(f"- 投资期限: {request.investment_horizon}天")
    if request.preferred_sectors:
        lines.append(f"- 偏好行业: {', '.join(request.preferred_sectors)}")
    if request.excluded_sectors:
        lines.append(f"- 排除行业: {', '.join(request.excluded_sectors)}")
    return "\n".join(lines) + "\n\n"


def analysis_user_prompt(request: SelectionRequest, stocks: Sequence[StockRecord]) -> str:
    """User prompt for the analysis stage."""
    if request.is_news_driven:
        head = f"## 新闻内容\n{request.content}\n\n"
    else:
        head = _requirement_section(request)
    return (
        head
        + f"## 筛选出的股票数据（JSON格式）\n{compact_stocks_json(stocks)}\n\n"
        + "## 分析任务\n"
        + "请基于以上股票数据和用户需求，进行综合分析并生成推荐报告。\n"
        + "- 从中选择最优的3-8只股票进行推荐\n"
        + "- 说明推荐理由和风险提示"
    )


# -- Chat session -------------------------------------------------------------------


def chat_system_prompt(base_instructions: str, subject: str | None = None) -> str:
    if subject:
        return f"{base_instructions}\n\n**当前分析焦点：{subject}**"
    return base_instructions


def subject_context_message(subject: str, recent_assistant: Sequence[ChatMessage]) -> str:
    """Context note added when the session's active stock changes."""
    if not recent_assistant:
        return (
            f"当前股票：{subject}。您可以询问关于该股票的技术分析、基本面分析、"
            "市场情绪等问题，我会为您提供专业的分析。"
        )
    lines = ["当前股票分析上下文：", f"当前分析股票：{subject}", "最近的分析观点摘要："]
    for msg in recent_assistant:
        text = msg.content
        if len(text) > 200:
            text = text[:200] + "..."
        lines.append(f"- 分析师: {text}")
    return "\n".join(lines)


def subject_switch_notice(previous: str | None, current: str) -> str:
    if previous:
        return f"分析焦点已从 {previous} 切换到 {current}"
    return f"开始分析股票: {current}"


# -- Compaction ------------------------------------------------------------------------


def summary_input(messages: Sequence[ChatMessage], char_limit: int) -> str:
    """Concatenate *messages* for summarization, truncated to *char_limit*."""
    parts = [
        f"{_ROLE_LABELS.get(m.role.value, m.role.value)}: {m.content}"
        for m in messages
        if m.content.strip()
    ]
    text = "\n\n".join(parts)
    if len(text) > char_limit:
        text = text[:char_limit] + TRUNCATION_MARKER
    return text


def summary_message(compacted_count: int, summary: str) -> str:
    return f"之前对话摘要（压缩了 {compacted_count} 条消息）：\n{summary}"


def fallback_summary(
    compacted_count: int, user_turns: int, assistant_turns: int, subject: str | None
) -> str:
    """Deterministic summary used when the summarization call fails."""
    text = (
        f"之前对话摘要（压缩了 {compacted_count} 条消息）：\n"
        f"之前进行了 {user_turns} 轮用户询问和 {assistant_turns} 次AI回复"
    )
    if subject:
        text += f"，主要围绕股票 {subject} 的相关分析"
    return text + "。"
