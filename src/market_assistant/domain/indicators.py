"""Catalog of supported screening indicators.

Every criterion produced by the criteria stage must name one of these codes.
Each indicator also knows how it is rendered in the compact, unit-tagged
stock representation sent to the analysis model (``compact_key``, an
optional ``divisor`` to rescale raw values, and the rounding precision).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

_YI = 100_000_000.0  # 1 亿


@dataclass(frozen=True)
class Indicator:
    """A single screening indicator.

    Attributes
    ----------
    code:
        Screener identifier (e.g. ``"pettm"``).
    display_name:
        Human-readable Chinese name.
    category:
        ``"basic"``, ``"market"`` or ``"snowball"``.
    compact_key:
        Key used in the compact analysis payload, tagged with its unit.
    divisor:
        Raw values are divided by this before rendering.
    decimals:
        Rounding precision in the compact payload.
    """

    code: str
    display_name: str
    category: str
    compact_key: str
    divisor: float = 1.0
    decimals: int = 2

    def render(self, raw: float) -> float | int:
        """Convert a raw screener value into its compact, rounded form."""
        value = raw / self.divisor if self.divisor != 1.0 else raw
        if self.decimals == 0:
            return int(round(value))
        return round(value, self.decimals)


_INDICATORS: tuple[Indicator, ...] = (
    # -- basic ---------------------------------------------------------------
    Indicator("mc", "总市值", "basic", "总市值_亿元", _YI),
    Indicator("fmc", "流通市值", "basic", "流通市值_亿元", _YI),
    Indicator("pettm", "市盈率TTM", "basic", "市盈率TTM"),
    Indicator("pelyr", "市盈率LYR", "basic", "市盈率LYR"),
    Indicator("pb", "市净率MRQ", "basic", "市净率"),
    Indicator("psr", "市销率(倍)", "basic", "市销率"),
    Indicator("roediluted", "净资产收益率", "basic", "净资产收益率ROE_百分比"),
    Indicator("bps", "每股净资产", "basic", "每股净资产_元"),
    Indicator("eps", "每股收益", "basic", "每股收益_元"),
    Indicator("netprofit", "净利润", "basic", "净利润_亿元", _YI),
    Indicator("total_revenue", "营业收入", "basic", "营业收入_亿元", _YI),
    Indicator("dy_l", "股息收益率", "basic", "股息收益率_百分比"),
    Indicator("npay", "净利润同比增长", "basic", "净利润同比增长_百分比"),
    Indicator("oiy", "营业收入同比增长", "basic", "营收同比增长_百分比"),
    Indicator("niota", "总资产报酬率", "basic", "总资产报酬率_百分比"),
    # -- market --------------------------------------------------------------
    Indicator("current", "当前价", "market", "当前价_元"),
    Indicator("pct", "当日涨跌幅", "market", "涨跌幅_百分比"),
    Indicator("pct5", "近5日涨跌幅", "market", "近5日涨跌幅_百分比"),
    Indicator("pct10", "近10日涨跌幅", "market", "近10日涨跌幅_百分比"),
    Indicator("pct20", "近20日涨跌幅", "market", "近20日涨跌幅_百分比"),
    Indicator("pct60", "近60日涨跌幅", "market", "近60日涨跌幅_百分比"),
    Indicator("pct120", "近120日涨跌幅", "market", "近120日涨跌幅_百分比"),
    Indicator("pct250", "近250日涨跌幅", "market", "近250日涨跌幅_百分比"),
    Indicator("pct_current_year", "年初至今涨跌幅", "market", "年初至今涨跌幅_百分比"),
    Indicator("amount", "当日成交额", "market", "成交额_亿元", _YI),
    Indicator("volume", "本日成交量", "market", "成交量_万股"),
    Indicator("volume_ratio", "当日量比", "market", "量比"),
    Indicator("tr", "当日换手率", "market", "换手率_百分比"),
    Indicator("chgpct", "当日振幅", "market", "当日振幅_百分比"),
    # -- snowball ------------------------------------------------------------
    Indicator("follow", "累计关注人数", "snowball", "累计关注人数", decimals=0),
    Indicator("tweet", "累计讨论次数", "snowball", "累计讨论次数", decimals=0),
    Indicator("deal", "累计交易分享数", "snowball", "累计交易分享数", decimals=0),
    Indicator("follow7d", "一周新增关注", "snowball", "一周新增关注", decimals=0),
    Indicator("tweet7d", "一周新增讨论数", "snowball", "一周新增讨论数", decimals=0),
    Indicator("deal7d", "一周新增交易分享数", "snowball", "一周新增交易分享数", decimals=0),
    Indicator("follow7dpct", "一周关注增长率", "snowball", "一周关注增长率_百分比"),
    Indicator("tweet7dpct", "一周讨论增长率", "snowball", "一周讨论增长率_百分比"),
    Indicator("deal7dpct", "一周交易分享增长率", "snowball", "一周交易分享增长率_百分比"),
)

SUPPORTED_INDICATORS: Mapping[str, Indicator] = MappingProxyType(
    {ind.code: ind for ind in _INDICATORS}
)


def is_supported(code: str) -> bool:
    return code in SUPPORTED_INDICATORS


def get_indicator(code: str) -> Indicator:
    """Return the indicator for *code*.

    Raises
    ------
    KeyError
        If *code* is not a supported screening indicator.
    """
    return SUPPORTED_INDICATORS[code]


def indicators_by_category(category: str) -> list[Indicator]:
    return [ind for ind in _INDICATORS if ind.category == category]
