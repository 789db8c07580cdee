"""Tests for the funding-rate sentiment ladder, colors and labels."""

from decimal import Decimal

import pytest

from fomo.sentiment import (
    NEUTRAL_COLOR,
    classify_daily,
    color_for,
    daily_funding,
    gauge_value,
    label_for,
    sentiment_index,
)


class TestClassifyDaily:
    """Threshold ladder on daily funding."""

    @pytest.mark.parametrize(
        "daily, expected",
        [
            ("0.18", 3),
            ("0.25", 3),
            ("0.11", 2),
            ("0.1799", 2),
            ("0.07", 1),
            ("0.1099", 1),
            ("0", -1),
            ("0.0699", -1),
            ("-0.0001", -2),
            ("-0.14", -2),
            ("-0.1401", -3),
            ("-5", -3),
        ],
    )
    def test_ladder(self, daily: str, expected: int) -> None:
        assert classify_daily(Decimal(daily)) == expected

    def test_zero_index_never_produced(self) -> None:
        samples = [Decimal(n) / Decimal(1000) for n in range(-300, 301)]
        assert all(sentiment_index(s) != 0 for s in samples)


class TestSentimentIndex:
    """Index from an 8-hour funding rate."""

    def test_daily_is_three_periods(self) -> None:
        assert daily_funding(Decimal("0.01")) == Decimal("0.03")

    def test_funding_at_canary_threshold(self) -> None:
        # 0.0234 * 3 = 0.0702
        assert sentiment_index(Decimal("0.0234")) == 1

    def test_funding_just_below_canary(self) -> None:
        # 0.0233 * 3 = 0.0699
        assert sentiment_index(Decimal("0.0233")) == -1

    def test_fomo(self) -> None:
        assert sentiment_index(Decimal("0.06")) == 3

    def test_capitulation(self) -> None:
        assert sentiment_index(Decimal("-0.063")) == -3

    def test_premium_does_not_affect_index(self) -> None:
        rate = Decimal("0.03")
        assert sentiment_index(rate, premium=Decimal("5")) == sentiment_index(rate)
        assert sentiment_index(rate, premium=Decimal("-5")) == sentiment_index(rate)


class TestColorsAndLabels:
    """Display mappings for index values."""

    @pytest.mark.parametrize(
        "index, color",
        [
            (-3, "#ec4899"),
            (-2, "#c084fc"),
            (-1, "#facc15"),
            (1, "#facc15"),
            (2, "#fb923c"),
            (3, "#ef4444"),
        ],
    )
    def test_colors(self, index: int, color: str) -> None:
        assert color_for(index) == color

    def test_unknown_index_gets_neutral_color(self) -> None:
        assert color_for(0) == NEUTRAL_COLOR
        assert color_for(7) == NEUTRAL_COLOR

    def test_labels(self) -> None:
        assert label_for(3) == "FOMO"
        assert label_for(-3) == "CAPITULATION"
        assert label_for(0) == "BALANCE"
        assert label_for(9) == ""

    def test_gauge_range(self) -> None:
        assert gauge_value(-3) == 0
        assert gauge_value(0) == 50
        assert gauge_value(3) == 100
