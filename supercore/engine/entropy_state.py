"""Market entropy state — orderly vs chaotic regimes from entropy and volatility."""

from __future__ import annotations

from typing import TYPE_CHECKING

from supercore.core.logging import get_logger
from supercore.engine.indicators import binary_entropy, std_dev
from supercore.models.context import EntropyState, MarketEntropyResult, StabilityResult
from supercore.models.outcome import HistoryRecord, to_numbers, to_outcomes

if TYPE_CHECKING:
    from supercore.config.loader import ConfigLoader

log = get_logger(__name__)


def _fmt(value: float | None) -> str:
    return "n/a" if value is None else f"{value:.2f}"


class MarketEntropyAnalyzer:
    """Compares short/long window entropy and short-window volatility drift."""

    def __init__(self, config: ConfigLoader) -> None:
        self._short = int(config.get("entropy.short_window", 10))
        self._long = int(config.get("entropy.long_window", 25))
        self._vol_change = float(config.get("entropy.volatility_change", 0.3))

    def analyze(self, history: list[HistoryRecord], stability: StabilityResult) -> MarketEntropyResult:
        if len(history) < self._long:
            return MarketEntropyResult(
                state=EntropyState.UNCERTAIN_ENTROPY,
                details="Insufficient history for entropy state.",
            )

        outcomes = to_outcomes(history)
        entropy_short = binary_entropy(outcomes, self._short)
        entropy_long = binary_entropy(outcomes, self._long)

        min_samples = self._short * 0.8
        recent = to_numbers(history[: self._short])
        previous = to_numbers(history[self._short : 2 * self._short])
        vol_short = std_dev(recent, len(recent)) if len(recent) >= min_samples else None
        vol_prev = std_dev(previous, len(previous)) if len(previous) >= min_samples else None

        details = (
            f"E_S:{_fmt(entropy_short)} E_L:{_fmt(entropy_long)} "
            f"Vol_S:{_fmt(vol_short)} Vol_P:{_fmt(vol_prev)}"
        )
        if entropy_short is None or entropy_long is None:
            return MarketEntropyResult(state=EntropyState.UNCERTAIN_ENTROPY, details=details)

        rising = 1 + self._vol_change
        falling = 1 - self._vol_change
        state = EntropyState.STABLE_MODERATE
        if entropy_short < 0.5 and entropy_long < 0.6 and vol_short is not None and vol_short < 1.5:
            state = EntropyState.ORDERLY
        elif entropy_short > 0.95 and entropy_long > 0.9:
            if vol_short and vol_prev and vol_short > vol_prev * rising and vol_short > 2.5:
                state = EntropyState.RISING_CHAOS
            else:
                state = EntropyState.STABLE_CHAOS
        elif vol_short and vol_prev:
            if vol_short > vol_prev * rising and entropy_short > 0.85 and vol_short > 2.0:
                state = EntropyState.RISING_CHAOS
            elif vol_short < vol_prev * falling and entropy_long > 0.85 and entropy_short < 0.80:
                state = EntropyState.SUBSIDING_CHAOS

        # Instability evidence always dominates calm-looking entropy.
        if not stability.is_stable and state in (EntropyState.ORDERLY, EntropyState.STABLE_MODERATE):
            state = EntropyState.POTENTIAL_CHAOS_FROM_INSTABILITY
            details += f" | StabilityOverride: {stability.reason}"

        log.debug("market_entropy_state", state=state.value, details=details)
        return MarketEntropyResult(state=state, details=details)
