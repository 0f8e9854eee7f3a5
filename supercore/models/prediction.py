"""Prediction output models."""

from __future__ import annotations

from pydantic import BaseModel, Field

from supercore.models.context import EntropyState
from supercore.models.outcome import HistoryRecord, Outcome  # noqa: TCH001
from supercore.models.signal import ContributingSignal  # noqa: TCH001
from supercore.models.state import DriftState, EngineState  # noqa: TCH001


class Prediction(BaseModel):
    """Final decision for one period."""

    period: str
    final_decision: Outcome
    final_confidence: float = Field(gt=0.0, lt=1.0)
    confidence_level: int = Field(ge=1, le=3)
    is_forced_prediction: bool = False
    source: str = "EnsembleFusion"
    contributing_signals: list[ContributingSignal] = Field(default_factory=list)
    prediction_quality_score: float = 0.5
    uncertainty_score: float = 0.0
    macro_regime: str = "UNKNOWN_REGIME"
    market_entropy_state: EntropyState = EntropyState.UNCERTAIN_ENTROPY
    drift_state: DriftState = DriftState.STABLE
    reflexive_correction_active: bool = False
    diagnostic_log: str = ""

    model_config = {"frozen": True}

    @property
    def big_confidence(self) -> float:
        value = self.final_confidence if self.final_decision == Outcome.BIG else 1 - self.final_confidence
        return max(0.001, min(0.999, value))

    @property
    def small_confidence(self) -> float:
        value = self.final_confidence if self.final_decision == Outcome.SMALL else 1 - self.final_confidence
        return max(0.001, min(0.999, value))


class CycleResult(BaseModel):
    """Everything a caller persists after one cycle."""

    prediction: Prediction
    state: EngineState
    history: list[HistoryRecord]
