"""Market context models — trend, stability, entropy and regime probabilities."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class TrendDirection(str, Enum):
    BIG = "BIG"
    SMALL = "SMALL"
    BIG_BIASED_RANGE = "BIG_BIASED_RANGE"
    SMALL_BIASED_RANGE = "SMALL_BIASED_RANGE"
    NONE = "NONE"


class TrendStrength(str, Enum):
    STRONG = "STRONG"
    MODERATE = "MODERATE"
    WEAK = "WEAK"
    RANGING = "RANGING"
    UNKNOWN = "UNKNOWN"


class VolatilityLevel(str, Enum):
    VERY_LOW = "VERY_LOW"
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    UNKNOWN = "UNKNOWN"


UNKNOWN_REGIME = "UNKNOWN_REGIME"


class TrendContext(BaseModel):
    """Direction, strength and volatility derived from the tail of the history."""

    direction: TrendDirection = TrendDirection.NONE
    strength: TrendStrength = TrendStrength.UNKNOWN
    volatility: VolatilityLevel = VolatilityLevel.UNKNOWN
    macro_regime: str = UNKNOWN_REGIME
    is_transitioning: bool = False
    details: str = ""

    model_config = {"frozen": True}

    @property
    def is_known(self) -> bool:
        return self.strength != TrendStrength.UNKNOWN

    @property
    def leans_big(self) -> bool:
        return self.direction in (TrendDirection.BIG, TrendDirection.BIG_BIASED_RANGE)


class Dominance(str, Enum):
    NONE = "NONE"
    BIG = "BIG_DOMINANCE"
    SMALL = "SMALL_DOMINANCE"


class InstabilityKind(str, Enum):
    NONE = "NONE"
    DOMINANCE = "DOMINANCE"
    LOW_ENTROPY = "LOW_ENTROPY"
    HIGH_VOLATILITY = "HIGH_VOLATILITY"
    CHOPPINESS = "CHOPPINESS"
    INSUFFICIENT_DATA = "INSUFFICIENT_DATA"


class StabilityResult(BaseModel):
    is_stable: bool
    reason: str
    details: str = ""
    dominance: Dominance = Dominance.NONE
    instability: InstabilityKind = InstabilityKind.NONE

    model_config = {"frozen": True}


class EntropyState(str, Enum):
    ORDERLY = "ORDERLY"
    STABLE_CHAOS = "STABLE_CHAOS"
    RISING_CHAOS = "RISING_CHAOS"
    SUBSIDING_CHAOS = "SUBSIDING_CHAOS"
    STABLE_MODERATE = "STABLE_MODERATE"
    UNCERTAIN_ENTROPY = "UNCERTAIN_ENTROPY"
    POTENTIAL_CHAOS_FROM_INSTABILITY = "POTENTIAL_CHAOS_FROM_INSTABILITY"

    @property
    def is_chaotic(self) -> bool:
        return "CHAOS" in self.value


class MarketEntropyResult(BaseModel):
    state: EntropyState
    details: str = ""

    model_config = {"frozen": True}


class RegimeProbabilities(BaseModel):
    bull_trend: float = 0.25
    bear_trend: float = 0.25
    volatile_range: float = 0.25
    quiet_range: float = 0.25

    model_config = {"frozen": True}

    @property
    def details(self) -> str:
        return f"Prob(B:{self.bull_trend:.2f},S:{self.bear_trend:.2f})"
