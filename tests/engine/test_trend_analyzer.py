"""Tests for TrendAnalyzer."""

from __future__ import annotations

from supercore.engine.trend_analyzer import TrendAnalyzer
from supercore.models.context import TrendDirection, TrendStrength, VolatilityLevel

# Newest first: a steady climb from 0 to 9.
RISING = [9, 9, 8, 8, 7, 7, 6, 6, 5, 5, 4, 4, 3, 3, 2, 2, 1, 1, 0, 0, 0, 0, 0, 0, 0]


class TestTrendAnalyzer:
    """Tests for TrendAnalyzer.analyze()."""

    def test_rising_numbers_trend_big(self, config_loader, make_history) -> None:
        result = TrendAnalyzer(config_loader).analyze(make_history(RISING))
        assert result.direction == TrendDirection.BIG
        assert result.strength in (TrendStrength.STRONG, TrendStrength.MODERATE, TrendStrength.WEAK)
        assert result.leans_big
        assert result.volatility == VolatilityLevel.MEDIUM

    def test_falling_numbers_trend_small(self, config_loader, make_history) -> None:
        falling = [9 - n for n in RISING]
        result = TrendAnalyzer(config_loader).analyze(make_history(falling))
        assert result.direction == TrendDirection.SMALL
        assert not result.leans_big

    def test_flat_numbers_ranging(self, config_loader, make_history) -> None:
        result = TrendAnalyzer(config_loader).analyze(make_history([5] * 30))
        assert result.strength == TrendStrength.RANGING
        assert result.direction == TrendDirection.NONE
        assert result.volatility == VolatilityLevel.VERY_LOW

    def test_insufficient_history_unknown(self, config_loader, make_history) -> None:
        result = TrendAnalyzer(config_loader).analyze(make_history([5] * 19))
        assert result.strength == TrendStrength.UNKNOWN
        assert not result.is_known
        assert result.details == "Insufficient numbers"

    def test_empty_history_unknown(self, config_loader) -> None:
        result = TrendAnalyzer(config_loader).analyze([])
        assert not result.is_known
        assert result.volatility == VolatilityLevel.UNKNOWN

    def test_wide_swings_high_volatility(self, config_loader, make_history) -> None:
        result = TrendAnalyzer(config_loader).analyze(make_history([9, 9, 0, 0] * 8))
        assert result.volatility == VolatilityLevel.HIGH

    def test_details_report_averages(self, config_loader, make_history) -> None:
        result = TrendAnalyzer(config_loader).analyze(make_history(RISING))
        assert "NormSpread" in result.details
        assert "VolStdDev" in result.details
