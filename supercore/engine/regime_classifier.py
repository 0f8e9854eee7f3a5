"""Regime classifier — macro regime labels and regime probabilities.

The macro label is the cross product of trend strength and volatility
tier, e.g. TREND_STRONG_LOW_VOL or RANGE_HIGH_VOL, with a _TRANSITION
suffix when the short EMA just crossed the medium EMA.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from supercore.core.logging import get_logger
from supercore.engine.indicators import ema
from supercore.models.context import (
    EntropyState,
    MarketEntropyResult,
    RegimeProbabilities,
    TrendContext,
    TrendStrength,
    VolatilityLevel,
)
from supercore.models.outcome import HistoryRecord, to_numbers

if TYPE_CHECKING:
    from supercore.config.loader import ConfigLoader

log = get_logger(__name__)

TRANSITION_SUFFIX = "_TRANSITION"

_STRENGTH_PREFIX: dict[TrendStrength, str] = {
    TrendStrength.STRONG: "TREND_STRONG",
    TrendStrength.MODERATE: "TREND_MOD",
    TrendStrength.RANGING: "RANGE",
}


def _volatility_suffix(volatility: VolatilityLevel) -> str:
    if volatility in (VolatilityLevel.LOW, VolatilityLevel.VERY_LOW):
        return "LOW_VOL"
    if volatility == VolatilityLevel.MEDIUM:
        return "MED_VOL"
    return "HIGH_VOL"


def macro_label(strength: TrendStrength, volatility: VolatilityLevel) -> str:
    """Lookup-table label for a strength/volatility pair."""
    prefix = _STRENGTH_PREFIX.get(strength)
    if prefix is not None:
        return f"{prefix}_{_volatility_suffix(volatility)}"
    # WEAK and UNKNOWN strength share the WEAK_* labels.
    if volatility == VolatilityLevel.HIGH:
        return "WEAK_HIGH_VOL"
    if volatility == VolatilityLevel.MEDIUM:
        return "WEAK_MED_VOL"
    return "WEAK_LOW_VOL"


class RegimeClassifier:
    """Attaches a macro regime label and a transition flag to a trend context."""

    def __init__(self, config: ConfigLoader) -> None:
        self._short = int(config.get("trend.short_period", 5))
        self._medium = int(config.get("trend.medium_period", 10))

    def classify(self, history: list[HistoryRecord], context: TrendContext) -> TrendContext:
        """Return ``context`` with ``macro_regime`` and ``is_transitioning`` filled in."""
        if not context.is_known:
            return context

        numbers = to_numbers(history)
        transitioning = self._crossed(numbers)
        label = macro_label(context.strength, context.volatility)
        if transitioning:
            label += TRANSITION_SUFFIX

        log.debug("macro_regime_classified", regime=label, transitioning=transitioning)
        return context.model_copy(
            update={
                "macro_regime": label,
                "is_transitioning": transitioning,
                "details": f"{context.details},Regime:{label}",
            }
        )

    def _crossed(self, numbers: list[float]) -> bool:
        if len(numbers) <= self._medium + 5:
            return False
        prev_short = ema(numbers[1:], self._short)
        prev_medium = ema(numbers[1:], self._medium)
        cur_short = ema(numbers, self._short)
        cur_medium = ema(numbers, self._medium)
        if prev_short is None or prev_medium is None or cur_short is None or cur_medium is None:
            return False
        crossed_up = prev_short <= prev_medium and cur_short > cur_medium
        crossed_down = prev_short >= prev_medium and cur_short < cur_medium
        return crossed_up or crossed_down


def estimate_regime_probabilities(
    context: TrendContext,
    entropy: MarketEntropyResult,
) -> RegimeProbabilities:
    """Coarse probabilities of bull/bear trend and volatile/quiet range."""
    if (
        context.strength == TrendStrength.STRONG
        and context.volatility != VolatilityLevel.HIGH
        and entropy.state == EntropyState.ORDERLY
    ):
        if context.leans_big:
            return RegimeProbabilities(bull_trend=0.8, bear_trend=0.05, volatile_range=0.1, quiet_range=0.05)
        return RegimeProbabilities(bull_trend=0.05, bear_trend=0.8, volatile_range=0.1, quiet_range=0.05)
    if (
        context.strength == TrendStrength.RANGING
        and context.volatility == VolatilityLevel.HIGH
        and entropy.state.is_chaotic
    ):
        return RegimeProbabilities(bull_trend=0.1, bear_trend=0.1, volatile_range=0.7, quiet_range=0.1)
    if context.strength == TrendStrength.RANGING and context.volatility == VolatilityLevel.VERY_LOW:
        return RegimeProbabilities(bull_trend=0.1, bear_trend=0.1, volatile_range=0.1, quiet_range=0.7)
    return RegimeProbabilities()
