"""Vol-Trend-Fusion — a small decision table over trend, volatility and entropy."""

from __future__ import annotations

from supercore.models.context import EntropyState, TrendContext, TrendStrength, VolatilityLevel
from supercore.models.outcome import Outcome, opposite
from supercore.models.signal import Signal, SignalCategory
from supercore.signals.base import GeneratorContext
from supercore.signals.registry import register


def _trend_side(trend: TrendContext) -> Outcome:
    return Outcome.BIG if trend.leans_big else Outcome.SMALL


@register("vol_trend_fusion", base_weight=0.25)
def vol_trend_fusion(ctx: GeneratorContext, base_weight: float) -> Signal | None:
    """Continuation in orderly trends, reversal in chaotic ones.

    The ranging/low-volatility/orderly branch has no directional edge and
    picks a side with the cycle RNG at reduced weight.
    """
    trend = ctx.trend
    entropy = ctx.entropy.state

    if (
        trend.strength == TrendStrength.STRONG
        and trend.volatility in (VolatilityLevel.LOW, VolatilityLevel.MEDIUM)
        and entropy == EntropyState.ORDERLY
    ):
        prediction, factor = _trend_side(trend), 1.4
    elif (
        trend.strength == TrendStrength.STRONG
        and trend.volatility == VolatilityLevel.HIGH
        and entropy.is_chaotic
    ):
        prediction, factor = opposite(_trend_side(trend)), 1.2
    elif (
        trend.strength == TrendStrength.RANGING
        and trend.volatility == VolatilityLevel.LOW
        and entropy == EntropyState.ORDERLY
    ):
        prediction = Outcome.BIG if ctx.rng.random() > 0.5 else Outcome.SMALL
        factor = 0.8
    else:
        return None

    return Signal(
        source="Vol-Trend-Fusion",
        prediction=prediction,
        weight=base_weight * factor,
        category=SignalCategory.TREND,
    )
