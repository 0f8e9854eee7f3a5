"""Tests for indicator signals."""

from __future__ import annotations

import random

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from supercore.models.context import (
    EntropyState,
    MarketEntropyResult,
    TrendContext,
    VolatilityLevel,
)
from supercore.models.outcome import HistoryRecord, Outcome
from supercore.models.signal import SignalCategory
from supercore.signals import technical
from supercore.signals.base import GeneratorContext


def _ctx(draws: list[int], volatility: VolatilityLevel = VolatilityLevel.UNKNOWN) -> GeneratorContext:
    history = [HistoryRecord(period=str(1000 - i), actual=d) for i, d in enumerate(draws)]
    return GeneratorContext.build(
        history,
        TrendContext(volatility=volatility),
        MarketEntropyResult(state=EntropyState.STABLE_MODERATE),
        random.Random(0),
    )


# Newest first; chronologically a slow climb from 0 to 8.
CLIMB = list(reversed([i * 9 // 80 for i in range(80)]))


class TestRsiSignal:
    def test_overbought_predicts_small(self) -> None:
        signal = technical.rsi_signal(_ctx([9, 8, 7, 6, 5, 4, 3, 3, 2, 2, 1, 1, 0, 0, 0]), 0.08)
        assert signal is not None
        assert signal.prediction == Outcome.SMALL
        assert signal.source == "RSI"
        assert signal.category == SignalCategory.MOMENTUM
        assert signal.weight == pytest.approx(0.08)

    def test_oversold_predicts_big(self) -> None:
        signal = technical.rsi_signal(_ctx([0, 1, 2, 3, 4, 5, 6, 6, 7, 7, 8, 8, 9, 9, 9]), 0.08)
        assert signal is not None
        assert signal.prediction == Outcome.BIG

    def test_neutral_abstains(self) -> None:
        assert technical.rsi_signal(_ctx([7, 2] * 10), 0.08) is None

    def test_insufficient_abstains(self) -> None:
        assert technical.rsi_signal(_ctx([5] * 10), 0.08) is None


class TestMacdSignal:
    def test_flat_abstains(self) -> None:
        assert technical.macd_signal(_ctx([4] * 60), 0.09) is None

    def test_insufficient_abstains(self) -> None:
        assert technical.macd_signal(_ctx([4] * 30), 0.09) is None

    def test_sharp_jump_is_bullish(self) -> None:
        signal = technical.macd_signal(_ctx([9, 9, 9] + [2] * 57), 0.09)
        assert signal is not None
        assert signal.prediction == Outcome.BIG
        assert signal.source == "MACD_CrossB"
        assert signal.category == SignalCategory.TREND
        assert 0.09 * 0.55 <= signal.weight <= 0.09


class TestBollingerSignal:
    def test_upper_breach_predicts_small(self) -> None:
        signal = technical.bollinger_signal(_ctx([9] + [5, 4] * 10), 0.07)
        assert signal is not None
        assert signal.prediction == Outcome.SMALL
        assert signal.category == SignalCategory.MEAN_REVERSION
        assert signal.weight == pytest.approx(0.07 * (0.65 + 0.9 * 0.35))

    def test_lower_breach_predicts_big(self) -> None:
        signal = technical.bollinger_signal(_ctx([0] + [5, 6] * 10), 0.07)
        assert signal is not None
        assert signal.prediction == Outcome.BIG

    def test_flat_band_abstains(self) -> None:
        assert technical.bollinger_signal(_ctx([5] * 25), 0.07) is None

    def test_inside_band_abstains(self) -> None:
        assert technical.bollinger_signal(_ctx([5, 4] * 12), 0.07) is None


class TestIchimokuSignal:
    def test_needs_long_history(self) -> None:
        assert technical.ichimoku_signal(_ctx(CLIMB[:70]), 0.14) is None

    def test_price_above_cloud_predicts_big(self) -> None:
        signal = technical.ichimoku_signal(_ctx(CLIMB), 0.14)
        assert signal is not None
        assert signal.prediction == Outcome.BIG
        assert signal.source == "Ichimoku"
        assert 0 < signal.weight <= 0.14

    def test_price_below_cloud_predicts_small(self) -> None:
        signal = technical.ichimoku_signal(_ctx([9 - n for n in CLIMB]), 0.14)
        assert signal is not None
        assert signal.prediction == Outcome.SMALL


class TestStochasticSignal:
    def test_insufficient_abstains(self) -> None:
        assert technical.stochastic_signal(_ctx([5] * 12), 0.08) is None

    def test_flat_abstains(self) -> None:
        assert technical.stochastic_signal(_ctx([5] * 30), 0.08) is None

    @given(st.lists(st.integers(min_value=0, max_value=9), min_size=20, max_size=60))
    @settings(max_examples=50)
    def test_weight_bounded_by_base(self, draws: list[int]) -> None:
        signal = technical.stochastic_signal(_ctx(draws), 0.08)
        if signal is not None:
            assert 0.08 * 0.5 <= signal.weight <= 0.08 + 1e-12
            assert signal.category == SignalCategory.MOMENTUM


class TestVolatilitySqueeze:
    def test_continuation(self) -> None:
        signal = technical.volatility_squeeze(_ctx([6, 5, 4], VolatilityLevel.VERY_LOW), 0.07)
        assert signal is not None
        assert signal.source == "VolSqueezeBreakoutCont"
        assert signal.prediction == Outcome.BIG
        assert signal.category == SignalCategory.VOLATILITY
        assert signal.weight == pytest.approx(0.07 * 0.8)

    def test_initial_break(self) -> None:
        signal = technical.volatility_squeeze(_ctx([4, 5, 5], VolatilityLevel.VERY_LOW), 0.07)
        assert signal is not None
        assert signal.source == "VolSqueezeBreakoutInitial"
        assert signal.prediction == Outcome.SMALL
        assert signal.weight == pytest.approx(0.07 * 0.6)

    def test_requires_very_low_volatility(self) -> None:
        assert technical.volatility_squeeze(_ctx([6, 5, 4], VolatilityLevel.LOW), 0.07) is None
