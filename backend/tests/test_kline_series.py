"""Tests for Kline parsing and the series merge rule."""

import pytest

from core.models import Kline, KlineParseError, KlineSeries, make_kline


def make_kline_at(time: float, close: float = 100.0, volume: float = 1.0) -> Kline:
    """Helper to create a kline at a given time."""
    return Kline(time=time, open=100.0, high=max(close, 100.0) + 1, low=min(close, 100.0) - 1, close=close, volume=volume)


class TestKline:
    """Tests for Kline properties and construction."""

    def test_candle_shape(self):
        k = Kline(time=0, open=100, high=110, low=95, close=104, volume=5)

        assert k.is_bullish
        assert not k.is_bearish
        assert k.body_size == 4
        assert k.range_size == 15
        assert k.upper_wick == 6
        assert k.lower_wick == 5

    def test_make_kline_from_strings(self):
        k = make_kline(1700000000000, "100.5", "101", "99.5", "100.75", "12.3")

        assert k.time == 1700000000.0
        assert k.open == 100.5
        assert k.close == 100.75
        assert k.volume == 12.3

    @pytest.mark.parametrize(
        "fields",
        [
            (1700000000000, "abc", "101", "99", "100", "1"),
            (1700000000000, "NaN", "101", "99", "100", "1"),
            (1700000000000, "100", "inf", "99", "100", "1"),
            (1700000000000, "100", "101", "0", "100", "1"),
            (1700000000000, "100", "101", "99", "-5", "1"),
            (1700000000000, None, "101", "99", "100", "1"),
            (None, "100", "101", "99", "100", "1"),
        ],
    )
    def test_make_kline_rejects_bad_fields(self, fields):
        with pytest.raises(KlineParseError):
            make_kline(*fields)

    def test_parse_error_is_value_error(self):
        assert issubclass(KlineParseError, ValueError)


class TestKlineSeries:
    """Tests for bootstrap and live merge."""

    def test_bootstrap_is_verbatim(self):
        klines = [make_kline_at(t) for t in (0, 60, 120)]
        series = KlineSeries(symbol="BTCUSDT", interval="1m")

        series.bootstrap(klines)

        assert series.klines == klines
        assert series.last is klines[-1]

    def test_bootstrap_replaces_previous_data(self):
        series = KlineSeries(symbol="BTCUSDT", interval="1m")
        series.bootstrap([make_kline_at(t) for t in (0, 60)])

        series.bootstrap([make_kline_at(600)])

        assert series.times() == [600]

    def test_merge_same_time_replaces_last(self):
        series = KlineSeries(symbol="BTCUSDT", interval="1m")
        series.bootstrap([make_kline_at(0), make_kline_at(60, close=100.0)])

        assert series.merge(make_kline_at(60, close=101.0, volume=2.0))
        assert series.merge(make_kline_at(60, close=102.0, volume=3.0))

        assert len(series) == 2
        assert series.last.close == 102.0
        assert series.last.volume == 3.0

    def test_merge_identical_bar_twice_is_idempotent(self):
        series = KlineSeries(symbol="BTCUSDT", interval="1m")
        series.bootstrap([make_kline_at(0)])
        bar = make_kline_at(60, close=101.0)

        series.merge(bar)
        series.merge(bar)

        assert len(series) == 2
        assert series.last == bar

    def test_merge_new_time_appends(self):
        series = KlineSeries(symbol="BTCUSDT", interval="1m")
        series.bootstrap([make_kline_at(0)])

        series.merge(make_kline_at(60))
        series.merge(make_kline_at(120))

        assert series.times() == [0, 60, 120]

    def test_merge_into_empty_series(self):
        series = KlineSeries(symbol="BTCUSDT", interval="1m")

        assert series.merge(make_kline_at(60))
        assert len(series) == 1

    def test_merge_ignores_older_bar(self):
        series = KlineSeries(symbol="BTCUSDT", interval="1m")
        series.bootstrap([make_kline_at(0), make_kline_at(60)])

        assert series.merge(make_kline_at(0, close=50.0)) is False

        assert series.times() == [0, 60]
        assert series.klines[0].close == 100.0

    def test_max_size_drops_oldest(self):
        series = KlineSeries(symbol="BTCUSDT", interval="1m", max_size=3)
        series.bootstrap([make_kline_at(t * 60) for t in range(5)])

        assert series.times() == [120, 180, 240]

        series.merge(make_kline_at(300))

        assert series.times() == [180, 240, 300]

    def test_matches(self):
        series = KlineSeries(symbol="BTCUSDT", interval="1m")

        assert series.matches("BTCUSDT", "1m")
        assert not series.matches("BTCUSDT", "5m")
        assert not series.matches("ETHUSDT", "1m")
