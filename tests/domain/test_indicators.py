"""Tests for the supported indicator catalog."""

from __future__ import annotations

import pytest

from market_assistant.domain.indicators import (
    SUPPORTED_INDICATORS,
    get_indicator,
    indicators_by_category,
    is_supported,
)


class TestIndicatorCatalog:

    def test_catalog_size_by_category(self) -> None:
        assert len(SUPPORTED_INDICATORS) == 38
        assert len(indicators_by_category("basic")) == 15
        assert len(indicators_by_category("market")) == 14
        assert len(indicators_by_category("snowball")) == 9

    def test_lookup(self) -> None:
        assert is_supported("pettm")
        assert not is_supported("peg")
        assert get_indicator("roediluted").display_name == "净资产收益率"

    def test_unknown_code_raises(self) -> None:
        with pytest.raises(KeyError):
            get_indicator("peg")

    def test_catalog_is_read_only(self) -> None:
        with pytest.raises(TypeError):
            SUPPORTED_INDICATORS["peg"] = get_indicator("pettm")  # type: ignore[index]


class TestIndicatorRender:

    def test_market_cap_rendered_in_yi(self) -> None:
        assert get_indicator("mc").render(123_456_789_000) == 1234.57

    def test_plain_ratio_is_rounded(self) -> None:
        assert get_indicator("pettm").render(15.6789) == 15.68

    def test_counts_render_as_int(self) -> None:
        value = get_indicator("follow").render(12345.6)
        assert value == 12346
        assert isinstance(value, int)
