"""Regime profiles — per-regime aggression learned from that regime's hit rate.

A profile is looked up by macro regime label (falling back to DEFAULT) and
supplies the contextual aggression applied to every signal weight plus the
signal types allowed to run. Profiles learn slowly from their own rolling
accuracy, and new profiles can be discovered at runtime when a condition
persists long enough.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from supercore.core.logging import get_logger
from supercore.engine.regime_classifier import TRANSITION_SUFFIX
from supercore.models.context import InstabilityKind, StabilityResult, VolatilityLevel
from supercore.models.outcome import Outcome
from supercore.models.state import RegimeProfile

if TYPE_CHECKING:
    from supercore.config.loader import ConfigLoader

log = get_logger(__name__)

DEFAULT_PROFILE = "DEFAULT"

# (base_weight_multiplier, contextual_aggression, active_signal_types)
_DEFAULTS: dict[str, tuple[float, float, list[str]]] = {
    "TREND_STRONG_LOW_VOL": (1.30, 1.35, ["trend", "momentum", "ichimoku", "volatility", "fusion", "ml_standard"]),
    "TREND_STRONG_MED_VOL": (1.20, 1.25, ["trend", "momentum", "ichimoku", "pattern", "fusion", "ml_standard"]),
    "TREND_STRONG_HIGH_VOL": (0.70, 0.70, ["trend", "ichimoku", "fusion", "ml_volatile"]),
    "RANGE_LOW_VOL": (1.30, 1.30, ["mean_reversion", "pattern", "volatility", "stochastic", "bollinger"]),
    "RANGE_MED_VOL": (1.15, 1.15, ["mean_reversion", "pattern", "stochastic", "rsi", "bollinger"]),
    "RANGE_HIGH_VOL": (0.85, 0.85, ["mean_reversion", "bollinger", "fusion", "ml_volatile"]),
    DEFAULT_PROFILE: (0.9, 0.9, ["all"]),
}

_DISCOVERED_TYPES = ["pattern", "mean_reversion", "stochastic", "bollinger"]


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class RegimeProfileBook:
    """Default profiles, lookup, learning and runtime discovery."""

    def __init__(self, config: ConfigLoader) -> None:
        self._window = int(config.get("regime.accuracy_window", 35))
        self._learning_rate = float(config.get("regime.learning_rate", 0.028))
        self._persistence = int(config.get("regime.choppy_persistence", 8))
        self.discovered_key = str(config.get("regime.discovered_profile", "CUSTOM_CHOPPY_SQUEEZE"))

    @staticmethod
    def defaults() -> dict[str, RegimeProfile]:
        return {
            key: RegimeProfile(
                base_weight_multiplier=base,
                contextual_aggression=aggression,
                active_signal_types=list(types),
            )
            for key, (base, aggression, types) in _DEFAULTS.items()
        }

    def ensure_defaults(self, profiles: dict[str, RegimeProfile]) -> dict[str, RegimeProfile]:
        """Insert any missing default profile; learned values are kept."""
        merged = dict(profiles)
        for key, profile in self.defaults().items():
            merged.setdefault(key, profile)
        return merged

    def resolve(self, profiles: dict[str, RegimeProfile], label: str) -> tuple[str, RegimeProfile]:
        """Profile for a macro regime label; transitions use their base regime."""
        key = label.removesuffix(TRANSITION_SUFFIX)
        if key in profiles:
            return key, profiles[key]
        if DEFAULT_PROFILE in profiles:
            return DEFAULT_PROFILE, profiles[DEFAULT_PROFILE]
        return DEFAULT_PROFILE, self.defaults()[DEFAULT_PROFILE]

    def update(
        self,
        profiles: dict[str, RegimeProfile],
        key: str,
        actual: Outcome,
        predicted: Outcome,
        global_accuracy: float,
    ) -> dict[str, RegimeProfile]:
        """Record one resolved prediction for ``key`` and nudge its multipliers."""
        if key not in profiles:
            return profiles
        profile = profiles[key].model_copy(deep=True)
        hit = 1 if actual == predicted else 0
        profile.total_predictions += 1
        profile.correct_predictions += hit
        profile.recent_accuracy.append(hit)
        if len(profile.recent_accuracy) > self._window:
            profile.recent_accuracy = profile.recent_accuracy[-self._window :]

        if len(profile.recent_accuracy) >= self._window * 0.7:
            accuracy = sum(profile.recent_accuracy) / len(profile.recent_accuracy)
            factor = _clamp(1.0 + abs(0.5 - global_accuracy) * 0.7, 0.65, 1.5)
            rate = _clamp(self._learning_rate * factor, 0.01, 0.07)
            if accuracy > 0.62:
                profile.base_weight_multiplier = min(1.9, profile.base_weight_multiplier + rate)
                profile.contextual_aggression = min(1.8, profile.contextual_aggression + rate * 0.5)
            elif accuracy < 0.38:
                profile.base_weight_multiplier = max(0.20, profile.base_weight_multiplier - rate * 1.3)
                profile.contextual_aggression = max(0.30, profile.contextual_aggression - rate * 0.7)

        updated = dict(profiles)
        updated[key] = profile
        return updated

    def track_choppiness(
        self,
        choppy_count: int,
        volatility: VolatilityLevel,
        stability: StabilityResult,
    ) -> int:
        """Length of the current run of very-low-volatility chop."""
        if volatility == VolatilityLevel.VERY_LOW and stability.instability == InstabilityKind.CHOPPINESS:
            return choppy_count + 1
        return 0

    def is_persistent(self, choppy_count: int) -> bool:
        return choppy_count >= self._persistence

    def discover(self, profiles: dict[str, RegimeProfile], choppy_count: int) -> dict[str, RegimeProfile]:
        """Create the choppy-squeeze profile once the run persists; never recreate it."""
        if not self.is_persistent(choppy_count) or self.discovered_key in profiles:
            return profiles
        log.info("regime_discovered", profile=self.discovered_key, choppy_cycles=choppy_count)
        updated = dict(profiles)
        updated[self.discovered_key] = RegimeProfile(
            base_weight_multiplier=1.40,
            contextual_aggression=1.50,
            active_signal_types=list(_DISCOVERED_TYPES),
            discovered=True,
        )
        return updated
