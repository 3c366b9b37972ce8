"""Tests for candlestick, double top/bottom and divergence detection."""

import pytest
from trendlens.models.data import Candle
from trendlens.models.patterns import DoublePattern, PatternDirection
from trendlens.tools.patterns import (
    PATTERN_PROFILES,
    PatternContext,
    build_candle,
    calculate_pattern_probability,
    calculate_trend_direction,
    detect_candle_patterns,
    detect_divergence,
    engulfing_direction,
    find_double_pattern,
    is_doji,
    is_hammer,
    is_shooting_star,
    soldiers_direction,
    star_direction,
)


class TestBuildCandle:
    """Tests for proxy candle synthesis."""

    def test_build_candle_from_pair(self, make_series):
        series = make_series([100.0, 104.0, 101.0], [10.0, 20.0, 30.0])

        rising = build_candle(series, 1)
        assert (rising.open, rising.close, rising.high, rising.low) == (100.0, 104.0, 104.0, 100.0)
        assert rising.volume == 20.0
        assert rising.is_bullish

        falling = build_candle(series, 2)
        assert (falling.open, falling.close, falling.high, falling.low) == (104.0, 101.0, 104.0, 101.0)
        assert falling.is_bearish

    def test_build_candle_needs_prior_point(self, make_series):
        series = make_series([100.0, 101.0])
        with pytest.raises(ValueError, match="index must be between"):
            build_candle(series, 0)


class TestSingleCandlePredicates:
    """Tests for doji, hammer and shooting star."""

    def test_doji(self):
        candle = Candle(open=100.0, high=101.0, low=99.0, close=100.05)
        assert is_doji(candle)

    def test_doji_zero_range(self):
        """A candle with no range is not a doji."""
        assert not is_doji(Candle(open=100.0, high=100.0, low=100.0, close=100.0))

    def test_doji_large_body(self):
        assert not is_doji(Candle(open=100.0, high=102.0, low=99.0, close=101.5))

    def test_hammer(self):
        candle = Candle(open=100.0, high=101.2, low=97.0, close=101.0)

        assert is_hammer(candle)
        assert not is_shooting_star(candle)

    def test_shooting_star(self):
        candle = Candle(open=100.0, high=103.0, low=98.8, close=99.0)

        assert is_shooting_star(candle)
        assert not is_hammer(candle)

    def test_no_body_is_not_hammer(self):
        assert not is_hammer(Candle(open=100.0, high=100.0, low=95.0, close=100.0))


class TestMultiCandlePredicates:
    """Tests for engulfing, star and soldiers/crows predicates."""

    def test_bullish_engulfing(self):
        previous = Candle(open=100.0, high=100.0, low=99.0, close=99.0)
        current = Candle(open=99.0, high=101.5, low=99.0, close=101.5)

        assert engulfing_direction(current, previous) == PatternDirection.BULLISH

    def test_bearish_engulfing(self):
        previous = Candle(open=100.0, high=101.0, low=100.0, close=101.0)
        current = Candle(open=101.0, high=101.0, low=98.5, close=98.5)

        assert engulfing_direction(current, previous) == PatternDirection.BEARISH

    def test_engulfing_requires_larger_body(self):
        """Body must exceed the prior body by more than 10%."""
        previous = Candle(open=100.0, high=100.0, low=99.0, close=99.0)
        current = Candle(open=99.0, high=100.05, low=99.0, close=100.05)

        assert engulfing_direction(current, previous) is None

    def test_engulfing_requires_opposite_colors(self):
        previous = Candle(open=99.0, high=100.0, low=99.0, close=100.0)
        current = Candle(open=100.0, high=103.0, low=100.0, close=103.0)

        assert engulfing_direction(current, previous) is None

    def test_morning_star(self):
        first = Candle(open=100.0, high=100.0, low=90.0, close=90.0)
        middle = Candle(open=90.0, high=90.0, low=89.0, close=89.0)
        current = Candle(open=89.0, high=97.0, low=89.0, close=97.0)

        assert star_direction(current, middle, first) == PatternDirection.BULLISH

    def test_evening_star(self):
        first = Candle(open=100.0, high=110.0, low=100.0, close=110.0)
        middle = Candle(open=110.0, high=111.0, low=110.0, close=111.0)
        current = Candle(open=111.0, high=111.0, low=103.0, close=103.0)

        assert star_direction(current, middle, first) == PatternDirection.BEARISH

    def test_star_requires_small_middle(self):
        first = Candle(open=100.0, high=100.0, low=90.0, close=90.0)
        middle = Candle(open=90.0, high=90.0, low=85.0, close=85.0)
        current = Candle(open=85.0, high=97.0, low=85.0, close=97.0)

        assert star_direction(current, middle, first) is None

    def test_three_white_soldiers(self):
        candles = [
            Candle(open=100.0, high=101.0, low=100.0, close=101.0),
            Candle(open=101.0, high=102.0, low=101.0, close=102.0),
            Candle(open=102.0, high=103.0, low=102.0, close=103.0),
        ]
        assert soldiers_direction(*candles) == PatternDirection.BULLISH

    def test_three_black_crows(self):
        candles = [
            Candle(open=103.0, high=103.0, low=102.0, close=102.0),
            Candle(open=102.0, high=102.0, low=101.0, close=101.0),
            Candle(open=101.0, high=101.0, low=100.0, close=100.0),
        ]
        assert soldiers_direction(*candles) == PatternDirection.BEARISH

    def test_mixed_candles_are_not_soldiers(self):
        candles = [
            Candle(open=100.0, high=101.0, low=100.0, close=101.0),
            Candle(open=101.0, high=101.0, low=100.5, close=100.5),
            Candle(open=100.5, high=103.0, low=100.5, close=103.0),
        ]
        assert soldiers_direction(*candles) is None


class TestFindDoublePattern:
    """Tests for double top/bottom detection in a price window."""

    def test_double_top(self):
        prices = [10, 12, 15, 12, 10, 9, 10, 12, 15.1, 12, 10]

        name, confirmation, invalidation = find_double_pattern(prices)

        assert name == "Double Top"
        assert confirmation == 9
        assert invalidation == 15.1

    def test_double_bottom(self):
        prices = [15, 12, 10, 12, 14, 15, 14, 12, 10.1, 12, 15]

        name, confirmation, invalidation = find_double_pattern(prices)

        assert name == "Double Bottom"
        assert confirmation == 15
        assert invalidation == 10

    def test_peaks_too_close(self):
        """Peaks fewer than 5 indices apart do not count."""
        prices = [10, 15, 12, 11, 15, 10]
        assert find_double_pattern(prices) is None

    def test_peaks_too_different(self):
        prices = [10, 12, 15, 12, 10, 9, 10, 12, 16, 12, 10]
        assert find_double_pattern(prices) is None

    def test_monotonic_window(self):
        assert find_double_pattern([float(i) for i in range(31)]) is None


class TestPatternProbability:
    """Tests for context-adjusted pattern probability."""

    def test_probability_flat_context(self, flat_series):
        """Constant volume gives volume factor 0.5; no trend gives 0."""
        probability = calculate_pattern_probability(flat_series, "Doji", 25)
        assert probability == pytest.approx(0.55 * 1.15)

    def test_probability_unknown_pattern(self, flat_series):
        probability = calculate_pattern_probability(flat_series, "Head and Shoulders", 25)
        assert probability == pytest.approx(0.5 * 1.15)

    def test_probability_capped(self, rising_volume_series):
        probability = calculate_pattern_probability(rising_volume_series, "Three White Soldiers", 29)
        assert probability == 0.95

    def test_probability_zero_volume(self, make_series):
        """All-zero volume treats the latest volume as average."""
        series = make_series([100.0] * 25, [0.0] * 25)
        probability = calculate_pattern_probability(series, "Hammer", 24)
        assert probability == pytest.approx(0.65 * 1.15)

    def test_context_matches_window_computation(self, make_series):
        """Shared context gives the same value as a fresh per-window computation."""
        prices = [100.0 + (i % 7) * 1.5 - (i % 3) * 2.0 for i in range(60)]
        volumes = [1000.0 + (i * 37) % 500 for i in range(60)]
        series = make_series(prices, volumes)
        context = PatternContext(series)

        for index in (0, 5, 20, 21, 40, 59):
            recent = series[max(0, index - 20): index + 1]
            window_volumes = [p.volume for p in recent]
            relative_volume = window_volumes[-1] / (sum(window_volumes) / len(window_volumes))
            changes = [0.0] + [
                (b.price - a.price) / a.price for a, b in zip(recent, recent[1:])
            ]
            trend_factor = min(abs(sum(changes) / len(changes)) * 100, 1.0)
            expected = min(0.65 * (1 + min(relative_volume, 2.0) / 2 * 0.3 + trend_factor * 0.2), 0.95)

            assert context.probability("Hammer", index) == pytest.approx(expected)
            assert calculate_pattern_probability(series, "Hammer", index) == pytest.approx(expected)

    def test_context_caches_factors_per_index(self, rising_volume_series):
        context = PatternContext(rising_volume_series)

        first = context.factors(25)
        assert context.factors(25) is first
        assert context.probability("Doji", 25) < context.probability("Morning Star", 25)


class TestDetectCandlePatterns:
    """Tests for scanning a series for patterns."""

    def test_short_series(self, make_series):
        """Nothing is scanned before index 20."""
        assert detect_candle_patterns(make_series([100.0 + i for i in range(20)])) == []

    def test_flat_series(self, flat_series):
        assert detect_candle_patterns(flat_series) == []

    def test_uptrend_three_white_soldiers(self, uptrend_series):
        patterns = detect_candle_patterns(uptrend_series)

        assert len(patterns) == 20
        assert all(p.pattern == "Three White Soldiers" for p in patterns)
        assert [p.index for p in patterns] == list(range(20, 40))
        assert all(p.direction == PatternDirection.BULLISH for p in patterns)
        assert all(p.type == "continuation" for p in patterns)

    def test_downtrend_three_black_crows(self, downtrend_series):
        patterns = detect_candle_patterns(downtrend_series)

        assert patterns
        assert all(p.pattern == "Three Black Crows" for p in patterns)
        assert all(p.direction == PatternDirection.BEARISH for p in patterns)

    def test_morning_star_in_series(self, make_series):
        series = make_series([100.0] * 20 + [90.0, 89.0, 97.0])
        patterns = detect_candle_patterns(series)
        by_name = {p.pattern: p for p in patterns}

        assert "Morning Star" in by_name
        assert "Bullish Engulfing" in by_name
        assert by_name["Morning Star"].index == 22
        assert by_name["Morning Star"].strength == 0.85
        assert by_name["Morning Star"].timeframe == "long"

    def test_evening_star_in_series(self, make_series):
        series = make_series([100.0] * 20 + [110.0, 111.0, 103.0])
        names = [p.pattern for p in detect_candle_patterns(series)]

        assert "Evening Star" in names
        assert "Bearish Engulfing" in names

    def test_double_top_in_series(self, make_series):
        prices = [100.0] * 20 + [102.0, 105.0, 102.0, 100.0, 99.0, 100.0, 102.0, 105.2, 102.0, 100.0, 100.0, 100.0]
        patterns = detect_candle_patterns(make_series(prices))
        doubles = [p for p in patterns if isinstance(p, DoublePattern)]

        assert len(doubles) == 1
        double = doubles[0]
        assert double.pattern == "Double Top"
        assert double.direction == PatternDirection.BEARISH
        assert double.index == 31
        assert double.confirmation_level == 99.0
        assert double.invalidation_level == 105.2

    def test_profiles_applied(self, uptrend_series):
        for pattern in detect_candle_patterns(uptrend_series):
            profile = PATTERN_PROFILES[pattern.pattern]
            assert pattern.strength == profile.strength
            assert pattern.significance == profile.significance
            assert profile.base_probability <= pattern.probability <= 0.95


class TestDivergence:
    """Tests for price/indicator divergence."""

    def test_trend_direction(self):
        assert calculate_trend_direction([1.0, 2.0, 3.0]) == "up"
        assert calculate_trend_direction([3.0, 2.0, 1.0]) == "down"
        assert calculate_trend_direction([5.0, 5.0, 5.0]) == "sideways"
        assert calculate_trend_direction([5.0]) == "sideways"

    def test_bullish_divergence(self):
        prices = [float(p) for p in range(10, 0, -1)]
        indicator = [float(v) for v in range(10, 20)]

        divergence = detect_divergence(prices, indicator)

        assert divergence.type == "bullish"
        assert divergence.strength == 1.0

    def test_bearish_divergence(self):
        prices = [100.0 + i for i in range(10)]
        indicator = [50.0 - i for i in range(10)]

        divergence = detect_divergence(prices, indicator)

        assert divergence.type == "bearish"
        assert divergence.strength == pytest.approx(abs(0.09 - (-0.18)))

    def test_no_divergence_when_trends_agree(self):
        prices = [100.0 + i for i in range(10)]
        indicator = [40.0 + i for i in range(10)]

        divergence = detect_divergence(prices, indicator)

        assert divergence.type is None
        assert divergence.strength == 0.0

    def test_sideways_indicator(self):
        prices = [100.0 - i for i in range(10)]
        assert detect_divergence(prices, [100.0] * 10).type is None

    def test_zero_first_indicator_value(self):
        """Relative change of the indicator uses 1 as denominator."""
        prices = [float(p) for p in range(10, 0, -1)]
        indicator = [i * 0.01 for i in range(10)]

        divergence = detect_divergence(prices, indicator)

        assert divergence.type == "bullish"
        assert divergence.strength == pytest.approx(0.9 + 0.09)

    def test_single_value_window(self):
        """A one-value indicator window cannot diverge."""
        assert detect_divergence([100.0, 99.0, 98.0], [30.0]).type is None

    def test_window_limits_comparison(self):
        """Only the trailing window is compared."""
        prices = [200.0 - i for i in range(10)] + [100.0 + i for i in range(10)]
        indicator = [float(i) for i in range(10)] + [50.0 + i for i in range(10)]

        assert detect_divergence(prices, indicator, window=10).type is None
