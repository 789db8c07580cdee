"""Tests for exchange payload parsing helpers."""

from decimal import Decimal

import pytest

from fomo.exceptions import ParseFailure
from fomo.exchange.types import (
    extract_current_funding,
    parse_funding_record,
    parse_kline,
    to_decimal,
)

EIGHT_HOURS_MS = 8 * 60 * 60 * 1000


class TestToDecimal:
    """Number coercion."""

    def test_float_goes_through_str(self) -> None:
        assert to_decimal(0.1) == Decimal("0.1")

    def test_string(self) -> None:
        assert to_decimal("42000.5") == Decimal("42000.5")

    @pytest.mark.parametrize("value", [None, True, "abc", "NaN", float("inf")])
    def test_rejects_non_numbers(self, value: object) -> None:
        with pytest.raises(ParseFailure):
            to_decimal(value)


class TestParseKline:
    """Kline rows in ccxt and native Binance shapes."""

    def test_ccxt_row_derives_close_time(self) -> None:
        candle = parse_kline([1000, 1.0, 2.0, 0.5, 1.5, 10.0], EIGHT_HOURS_MS)
        assert candle.open_time == 1000
        assert candle.close_time == 1000 + EIGHT_HOURS_MS - 1
        assert candle.high == Decimal("2.0")

    def test_native_row_uses_close_time(self) -> None:
        row = [1000, "1", "2", "0.5", "1.5", "10", 5999, "0", 1, "0", "0", "0"]
        candle = parse_kline(row, EIGHT_HOURS_MS)
        assert candle.close_time == 5999

    def test_short_row_rejected(self) -> None:
        with pytest.raises(ParseFailure):
            parse_kline([1000, 1.0, 2.0], EIGHT_HOURS_MS)

    def test_high_below_low_rejected(self) -> None:
        with pytest.raises(ParseFailure):
            parse_kline([1000, 1.0, 0.5, 2.0, 1.5], EIGHT_HOURS_MS)

    def test_null_price_rejected(self) -> None:
        with pytest.raises(ParseFailure):
            parse_kline([1000, None, 2.0, 0.5, 1.5], EIGHT_HOURS_MS)


class TestFunding:
    """Funding records are scaled from fractions to percentage-decimals."""

    def test_ccxt_history_record(self) -> None:
        sample = parse_funding_record({"timestamp": 1000, "fundingRate": 0.0001})
        assert sample.time == 1000
        assert sample.rate_8h == Decimal("0.0100")

    def test_raw_history_record(self) -> None:
        sample = parse_funding_record({"fundingTime": "2000", "fundingRate": "-0.00063"})
        assert sample.time == 2000
        assert sample.rate_8h == Decimal("-0.063")

    def test_record_without_time_rejected(self) -> None:
        with pytest.raises(ParseFailure):
            parse_funding_record({"fundingRate": "0.0001"})

    def test_current_prefers_last_funding_rate(self) -> None:
        snapshot = {"fundingRate": 0.0002, "info": {"lastFundingRate": "0.0001"}}
        assert extract_current_funding(snapshot) == Decimal("0.0100")

    def test_current_falls_back_to_unified_field(self) -> None:
        assert extract_current_funding({"fundingRate": 0.0002, "info": {}}) == Decimal("0.02")

    def test_current_missing_returns_none(self) -> None:
        assert extract_current_funding({"info": {}}) is None
        assert extract_current_funding([]) is None
