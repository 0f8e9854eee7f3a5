"""Trend stability — flags dominance, entropy collapse, numeric volatility and chop."""

from __future__ import annotations

from typing import TYPE_CHECKING

from supercore.core.logging import get_logger
from supercore.engine.indicators import binary_entropy, std_dev
from supercore.models.context import Dominance, InstabilityKind, StabilityResult
from supercore.models.outcome import HistoryRecord, Outcome, resolved_only, to_numbers

if TYPE_CHECKING:
    from supercore.config.loader import ConfigLoader

log = get_logger(__name__)


class StabilityAnalyzer:
    """Checks the last resolved window for conditions that make signals unreliable.

    Checks run in a fixed order and the first hit wins: outcome dominance,
    low entropy, high numeric volatility, excessive alternation. Too little
    data is reported as stable.
    """

    def __init__(self, config: ConfigLoader) -> None:
        self._window = int(config.get("stability.window", 20))
        self._min_valid = int(config.get("stability.min_valid", 18))
        self._dominance = float(config.get("stability.dominance_ratio", 0.80))
        self._min_entropy = float(config.get("stability.min_entropy", 0.45))
        self._numeric_window = int(config.get("stability.numeric_window", 15))
        self._numeric_min = int(config.get("stability.numeric_min_samples", 10))
        self._max_std = float(config.get("stability.max_numeric_std", 3.3))
        self._max_alternation = float(config.get("stability.max_alternation_rate", 0.75))

    def analyze(self, history: list[HistoryRecord]) -> StabilityResult:
        resolved = resolved_only(history)
        if len(resolved) < self._window:
            return StabilityResult(
                is_stable=True,
                reason="Not enough confirmed results.",
                details=f"Confirmed: {len(resolved)}",
                instability=InstabilityKind.INSUFFICIENT_DATA,
            )

        recent = [o for o in (r.outcome for r in resolved[: self._window]) if o is not None]
        if len(recent) < self._min_valid:
            return StabilityResult(
                is_stable=True,
                reason="Not enough valid outcomes.",
                details=f"Valid: {len(recent)}",
                instability=InstabilityKind.INSUFFICIENT_DATA,
            )

        big = sum(1 for o in recent if o == Outcome.BIG)
        small = len(recent) - big
        counts = f"BIG:{big}, SMALL:{small} in last {len(recent)}"
        if big / len(recent) >= self._dominance:
            return self._unstable("Extreme Outcome Dominance", counts, InstabilityKind.DOMINANCE, Dominance.BIG)
        if small / len(recent) >= self._dominance:
            return self._unstable("Extreme Outcome Dominance", counts, InstabilityKind.DOMINANCE, Dominance.SMALL)

        entropy = binary_entropy(recent, len(recent))
        if entropy is not None and entropy < self._min_entropy:
            return self._unstable("Very Low Entropy", f"Entropy: {entropy:.2f}", InstabilityKind.LOW_ENTROPY)

        numbers = to_numbers(resolved[: self._numeric_window])
        if len(numbers) >= self._numeric_min:
            spread = std_dev(numbers, len(numbers))
            if spread is not None and spread > self._max_std:
                return self._unstable(
                    "High Numerical Volatility", f"StdDev: {spread:.2f}", InstabilityKind.HIGH_VOLATILITY
                )

        alternations = sum(1 for a, b in zip(recent, recent[1:]) if a != b)
        if alternations / len(recent) > self._max_alternation:
            return self._unstable(
                "Excessive Choppiness",
                f"Alternations: {alternations}/{len(recent)}",
                InstabilityKind.CHOPPINESS,
            )

        return StabilityResult(
            is_stable=True,
            reason="Trend appears stable.",
            details=f"Entropy: {entropy:.2f}" if entropy is not None else "",
        )

    @staticmethod
    def _unstable(
        label: str,
        details: str,
        kind: InstabilityKind,
        dominance: Dominance = Dominance.NONE,
    ) -> StabilityResult:
        log.debug("trend_unstable", reason=label, details=details)
        return StabilityResult(
            is_stable=False,
            reason=f"Unstable: {label}",
            details=details,
            dominance=dominance,
            instability=kind,
        )
