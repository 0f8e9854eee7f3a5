"""Persisted engine state — performance, regime profiles, drift and reflexive trackers.

Everything the learning loop remembers between cycles lives in
``EngineState``. The orchestrator reads it at the start of a cycle and
hands back an updated copy; nothing is kept in module globals.
"""

from __future__ import annotations

import json
from datetime import datetime  # noqa: TCH003
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from supercore.core.logging import get_logger
from supercore.models.context import EntropyState, VolatilityLevel
from supercore.models.outcome import Outcome  # noqa: TCH001
from supercore.models.signal import ContributingSignal  # noqa: TCH001

log = get_logger(__name__)

STATE_VERSION = 1

# Hard limits for persisted factors. Config bounds must fall inside these.
WEIGHT_FACTOR_LIMITS = (0.01, 2.5)
ALPHA_FACTOR_LIMITS = (0.4, 1.6)


class VolatilityBucketStats(BaseModel):
    correct: int = 0
    total: int = 0


class SignalPerformanceRecord(BaseModel):
    """Track record of one signal source, keyed by its source name."""

    correct: int = 0
    total: int = 0
    recent_accuracy: list[int] = Field(default_factory=list)
    current_adjustment_factor: float = Field(default=1.0, ge=WEIGHT_FACTOR_LIMITS[0], le=WEIGHT_FACTOR_LIMITS[1])
    alpha_factor: float = Field(default=1.0, ge=ALPHA_FACTOR_LIMITS[0], le=ALPHA_FACTOR_LIMITS[1])
    long_term_importance_score: float = Field(default=0.5, ge=0.0, le=1.0)
    performance_by_volatility: dict[str, VolatilityBucketStats] = Field(default_factory=dict)
    session_key: str | None = None
    session_correct: int = 0
    session_total: int = 0
    is_on_probation: bool = False
    last_active_period: str | None = None
    last_active_cycle: int | None = None
    last_decay_cycle: int | None = None

    @property
    def recent_mean(self) -> float | None:
        if not self.recent_accuracy:
            return None
        return sum(self.recent_accuracy) / len(self.recent_accuracy)


class RegimeProfile(BaseModel):
    base_weight_multiplier: float
    contextual_aggression: float
    active_signal_types: list[str] = Field(default_factory=lambda: ["all"])
    recent_accuracy: list[int] = Field(default_factory=list)
    total_predictions: int = 0
    correct_predictions: int = 0
    discovered: bool = False

    def allows(self, signal_type: str) -> bool:
        return "all" in self.active_signal_types or signal_type in self.active_signal_types


class DriftState(str, Enum):
    STABLE = "STABLE"
    WARNING = "WARNING"
    DRIFT = "DRIFT"


class DriftDetectorState(BaseModel):
    """DDM running statistics. ``None`` minima stand for +infinity."""

    n: int = 0
    p: float = 0.0
    s: float = 0.0
    p_min: float | None = None
    s_min: float | None = None
    last_state: DriftState = DriftState.STABLE


class ReflexiveState(BaseModel):
    consecutive_high_conf_losses: int = 0
    remaining_cycles: int = 0


class LastPrediction(BaseModel):
    """What the previous cycle predicted, kept to score it once it resolves."""

    period: str
    decision: Outcome
    confidence: float
    confidence_level: int
    is_forced: bool = False
    macro_regime: str
    profile_key: str
    signals: list[ContributingSignal] = Field(default_factory=list)
    concentration_mode: bool = False
    entropy_state: EntropyState = EntropyState.STABLE_MODERATE
    volatility: VolatilityLevel = VolatilityLevel.UNKNOWN


class EngineState(BaseModel):
    version: int = STATE_VERSION
    cycle_index: int = 0
    signal_performance: dict[str, SignalPerformanceRecord] = Field(default_factory=dict)
    regime_profiles: dict[str, RegimeProfile] = Field(default_factory=dict)
    drift: DriftDetectorState = Field(default_factory=DriftDetectorState)
    reflexive: ReflexiveState = Field(default_factory=ReflexiveState)
    choppy_count: int = 0
    global_correct: int = 0
    global_total: int = 0
    last_resolved_period: str | None = None
    last_prediction: LastPrediction | None = None
    updated_at: datetime | None = None

    def global_accuracy(self, min_samples: int = 20) -> float:
        """Long-term system hit rate, neutral 0.5 until enough samples exist."""
        if self.global_total < min_samples:
            return 0.5
        return self.global_correct / self.global_total

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    @classmethod
    def from_payload(cls, raw: Any) -> EngineState:
        """Decode persisted state, cold-starting on anything unreadable."""
        if raw is None or raw == {} or raw == "":
            return cls()
        if isinstance(raw, EngineState):
            return raw.model_copy(deep=True)
        try:
            if isinstance(raw, (str, bytes)):
                raw = json.loads(raw)
            return cls.model_validate(raw)
        except (ValidationError, ValueError, TypeError) as exc:
            log.warning("engine_state_corrupt", error=str(exc)[:200], action="cold_start")
            return cls()
