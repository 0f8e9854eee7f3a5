"""Trend analyzer — EMA-spread direction/strength and volatility tier."""

from __future__ import annotations

from typing import TYPE_CHECKING

from supercore.core.logging import get_logger
from supercore.engine.indicators import ema, std_dev
from supercore.models.context import (
    TrendContext,
    TrendDirection,
    TrendStrength,
    VolatilityLevel,
)
from supercore.models.outcome import HistoryRecord, to_numbers

if TYPE_CHECKING:
    from supercore.config.loader import ConfigLoader

log = get_logger(__name__)

_SPREAD_EPSILON = 0.001


class TrendAnalyzer:
    """Classifies the recent number stream by short/medium/long EMA alignment."""

    def __init__(self, config: ConfigLoader) -> None:
        self._short = int(config.get("trend.short_period", 5))
        self._medium = int(config.get("trend.medium_period", 10))
        self._long = int(config.get("trend.long_period", 20))
        self._strong_spread = float(config.get("trend.strong_spread", 0.80))
        self._moderate_spread = float(config.get("trend.moderate_spread", 0.45))
        self._vol_window = int(config.get("trend.volatility_window", 30))
        self._vol_min = int(config.get("trend.volatility_min_samples", 15))
        self._vol_high = float(config.get("trend.volatility_high", 3.3))
        self._vol_medium = float(config.get("trend.volatility_medium", 2.0))
        self._vol_low = float(config.get("trend.volatility_low", 0.9))

    @property
    def short_period(self) -> int:
        return self._short

    @property
    def medium_period(self) -> int:
        return self._medium

    def analyze(self, history: list[HistoryRecord]) -> TrendContext:
        """Analyze resolved history (newest first).

        Returns an UNKNOWN context when fewer than ``long_period`` numbers
        are available; callers must skip rather than guess on it.
        """
        numbers = to_numbers(history)
        if len(numbers) < self._long:
            return TrendContext(details="Insufficient numbers")

        short_ma = ema(numbers, self._short)
        medium_ma = ema(numbers, self._medium)
        long_ma = ema(numbers, self._long)
        if short_ma is None or medium_ma is None or long_ma is None:
            return TrendContext(details="MA calculation failed")

        std_long = std_dev(numbers, self._long)
        if std_long is not None and std_long > _SPREAD_EPSILON:
            spread = (short_ma - long_ma) / std_long
        else:
            spread = (short_ma - long_ma) / _SPREAD_EPSILON

        if short_ma > medium_ma > long_ma:
            direction = TrendDirection.BIG
            strength = self._tier(spread)
        elif short_ma < medium_ma < long_ma:
            direction = TrendDirection.SMALL
            strength = self._tier(-spread)
        else:
            strength = TrendStrength.RANGING
            if short_ma > long_ma:
                direction = TrendDirection.BIG_BIASED_RANGE
            elif long_ma > short_ma:
                direction = TrendDirection.SMALL_BIASED_RANGE
            else:
                direction = TrendDirection.NONE

        volatility, vol_std = self._volatility(numbers)
        details = f"S:{short_ma:.1f},M:{medium_ma:.1f},L:{long_ma:.1f},NormSpread:{spread:.2f}"
        if vol_std is not None:
            details += f",VolStdDev:{vol_std:.2f}"

        log.debug(
            "trend_context_computed",
            direction=direction.value,
            strength=strength.value,
            volatility=volatility.value,
            spread=round(spread, 3),
        )
        return TrendContext(
            direction=direction,
            strength=strength,
            volatility=volatility,
            details=details,
        )

    def _tier(self, aligned_spread: float) -> TrendStrength:
        if aligned_spread > self._strong_spread:
            return TrendStrength.STRONG
        if aligned_spread > self._moderate_spread:
            return TrendStrength.MODERATE
        return TrendStrength.WEAK

    def _volatility(self, numbers: list[float]) -> tuple[VolatilityLevel, float | None]:
        window = numbers[: self._vol_window]
        if len(window) < self._vol_min:
            return VolatilityLevel.UNKNOWN, None
        value = std_dev(window, len(window))
        if value is None:
            return VolatilityLevel.UNKNOWN, None
        if value > self._vol_high:
            return VolatilityLevel.HIGH, value
        if value > self._vol_medium:
            return VolatilityLevel.MEDIUM, value
        if value > self._vol_low:
            return VolatilityLevel.LOW, value
        return VolatilityLevel.VERY_LOW, value
