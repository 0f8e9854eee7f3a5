"""Tests for numeric indicator primitives."""

from __future__ import annotations

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from supercore.engine.indicators import (
    binary_entropy,
    ema,
    macd,
    rsi,
    sma,
    std_dev,
    stochastic,
)
from supercore.models.outcome import Outcome

draws = st.integers(min_value=0, max_value=9).map(float)


class TestMovingAverages:
    def test_sma_uses_newest_values(self) -> None:
        assert sma([9, 7, 5, 1, 1], 3) == pytest.approx(7.0)

    @pytest.mark.parametrize(("data", "period"), [([1, 2], 3), ([1, 2, 3], 0), ([], 1)])
    def test_sma_invalid(self, data: list[float], period: int) -> None:
        assert sma(data, period) is None

    @given(st.lists(draws, min_size=1, max_size=40))
    @settings(max_examples=50)
    def test_ema_equals_sma_at_minimum_length(self, data: list[float]) -> None:
        period = len(data)
        assert ema(data, period) == pytest.approx(sma(data, period))

    def test_ema_weights_recent_values(self) -> None:
        # Oldest first: 1, 1, 1, 9 -> newest-first below.
        value = ema([9, 1, 1, 1], 3)
        assert value is not None
        assert value == pytest.approx(9 * 0.5 + 1 * 0.5)

    def test_ema_too_short(self) -> None:
        assert ema([1, 2], 3) is None

    def test_std_dev_population(self) -> None:
        assert std_dev([2, 4, 4, 4, 5, 5, 7, 9], 8) == pytest.approx(2.0)

    def test_std_dev_requires_two_points(self) -> None:
        assert std_dev([5.0], 1) is None


class TestRsi:
    def test_all_gains_is_100(self) -> None:
        rising_newest_first = [float(x) for x in range(15, 0, -1)]
        assert rsi(rising_newest_first, 14) == 100.0

    def test_all_losses_is_0(self) -> None:
        falling_newest_first = [float(x) for x in range(1, 16)]
        assert rsi(falling_newest_first, 14) == pytest.approx(0.0)

    def test_needs_period_plus_one(self) -> None:
        assert rsi([1.0] * 14, 14) is None

    @given(st.lists(draws, min_size=15, max_size=80))
    @settings(max_examples=50)
    def test_bounded(self, data: list[float]) -> None:
        value = rsi(data, 14)
        assert value is not None
        assert 0.0 <= value <= 100.0


class TestStochastic:
    def test_insufficient_data(self) -> None:
        assert stochastic([1.0] * 10, 14, 3, 3) is None

    def test_flat_series_is_fifty(self) -> None:
        result = stochastic([5.0] * 30, 14, 3, 3)
        assert result is not None
        assert result.k == pytest.approx(50.0)
        assert result.d == pytest.approx(50.0)

    def test_close_at_high_is_overbought(self) -> None:
        newest_first = [9.0, 9.0, 9.0] + [float(i % 5) for i in range(30)]
        result = stochastic(newest_first, 14, 3, 3)
        assert result is not None
        assert result.k > 80

    @given(st.lists(draws, min_size=20, max_size=60))
    @settings(max_examples=50)
    def test_bounded(self, data: list[float]) -> None:
        result = stochastic(data, 14, 3, 3)
        assert result is not None
        for value in (result.k, result.prev_k, result.d, result.prev_d):
            assert 0.0 <= value <= 100.0


class TestMacd:
    def test_insufficient_data(self) -> None:
        assert macd([1.0] * 30, 12, 26, 9) is None

    def test_fast_not_below_slow_is_invalid(self) -> None:
        assert macd([1.0] * 60, 26, 12, 9) is None

    def test_flat_series_is_zero(self) -> None:
        result = macd([4.0] * 60, 12, 26, 9)
        assert result is not None
        assert result.macd == pytest.approx(0.0)
        assert result.histogram == pytest.approx(0.0)

    def test_rising_series_positive_line(self) -> None:
        newest_first = [min(9.0, i / 6) for i in range(60, 0, -1)]
        result = macd(newest_first, 12, 26, 9)
        assert result is not None
        assert result.macd > 0


class TestBinaryEntropy:
    def test_single_class_is_zero(self) -> None:
        assert binary_entropy([Outcome.BIG] * 10, 10) == 0.0

    def test_balanced_is_one(self) -> None:
        outcomes = [Outcome.BIG, Outcome.SMALL] * 5
        assert binary_entropy(outcomes, 10) == pytest.approx(1.0)

    def test_too_short(self) -> None:
        assert binary_entropy([Outcome.BIG] * 3, 10) is None

    def test_unclassifiable_window_is_max(self) -> None:
        assert binary_entropy([None] * 5, 5) == 1.0

    @given(st.lists(st.sampled_from([Outcome.BIG, Outcome.SMALL]), min_size=2, max_size=50))
    @settings(max_examples=50)
    def test_bounded(self, outcomes: list[Outcome]) -> None:
        value = binary_entropy(outcomes, len(outcomes))
        assert value is not None
        assert 0.0 <= value <= 1.0 + 1e-12

    @given(st.integers(min_value=1, max_value=25))
    @settings(max_examples=25)
    def test_even_balanced_windows(self, half: int) -> None:
        outcomes = [Outcome.BIG] * half + [Outcome.SMALL] * half
        assert binary_entropy(outcomes, 2 * half) == pytest.approx(1.0)
