"""Tests for building colored candles from raw klines."""

from decimal import Decimal

from factories import EIGHT_HOURS_MS, T0, make_raw
from fomo.data.builder import build_candle, build_candles, compute_premium
from fomo.funding.aligner import FundingAligner
from fomo.models import FundingSample
from fomo.sentiment import color_for


class TestComputePremium:
    """Futures-over-spot premium."""

    def test_premium_percent(self) -> None:
        assert compute_premium(Decimal("101"), Decimal("100")) == Decimal("1")

    def test_missing_or_zero_spot(self) -> None:
        assert compute_premium(Decimal("101"), None) is None
        assert compute_premium(Decimal("101"), Decimal("0")) is None


class TestBuildCandle:
    """Single candle assembly."""

    def test_color_matches_index(self) -> None:
        candle = build_candle(make_raw(T0), Decimal("0.07"))
        assert candle.sentiment_index == 3
        assert candle.color == color_for(3)
        assert candle.spot_open is None
        assert candle.premium is None

    def test_spot_fields(self) -> None:
        candle = build_candle(make_raw(T0, "101"), Decimal("0"), spot=make_raw(T0, "100"))
        assert candle.spot_open == Decimal("100")
        assert candle.spot_close == Decimal("100")
        assert candle.premium == Decimal("1")


class TestBuildCandles:
    """Funding alignment across a batch."""

    def test_aligned_on_close_time(self) -> None:
        raw = [make_raw(T0), make_raw(T0 + EIGHT_HOURS_MS)]
        aligner = FundingAligner(
            [
                FundingSample(raw[0].close_time + 1, Decimal("0.06")),
                FundingSample(raw[1].close_time + 1, Decimal("-0.06")),
            ]
        )
        candles = build_candles(raw, aligner)
        assert candles[0].funding_rate_8h == Decimal("0.06")
        assert candles[1].funding_rate_8h == Decimal("-0.06")

    def test_latest_funding_overrides_last_candle_only(self) -> None:
        raw = [make_raw(T0), make_raw(T0 + EIGHT_HOURS_MS)]
        aligner = FundingAligner([FundingSample(T0, Decimal("0.01"))])
        candles = build_candles(raw, aligner, latest_funding=Decimal("0.08"))
        assert candles[0].funding_rate_8h == Decimal("0.01")
        assert candles[1].funding_rate_8h == Decimal("0.08")
        assert candles[1].sentiment_index == 3

    def test_empty_timeline_gives_zero_funding(self) -> None:
        candles = build_candles([make_raw(T0)], FundingAligner())
        assert candles[0].funding_rate_8h == Decimal("0")
        assert candles[0].sentiment_index == -1

    def test_spot_joined_by_open_time(self) -> None:
        raw = [make_raw(T0, "101"), make_raw(T0 + EIGHT_HOURS_MS, "101")]
        spot = {T0: make_raw(T0, "100")}
        candles = build_candles(raw, FundingAligner(), spot)
        assert candles[0].spot_close == Decimal("100")
        assert candles[1].spot_close is None
