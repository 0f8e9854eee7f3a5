"""Signal models — one directional vote from one analytical method."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from supercore.models.outcome import Outcome  # noqa: TCH001


class SignalCategory(str, Enum):
    TREND = "trend"
    MOMENTUM = "momentum"
    MEAN_REVERSION = "mean_reversion"
    PATTERN = "pattern"
    VOLATILITY = "volatility"
    ML = "ml"
    OTHER = "other"


class Signal(BaseModel):
    """Raw generator output, later annotated with its adjusted weight."""

    source: str
    prediction: Outcome
    weight: float = Field(ge=0.0)
    category: SignalCategory = SignalCategory.OTHER
    adjusted_weight: float | None = None
    is_on_probation: bool = False

    model_config = {"frozen": True}

    @property
    def effective_weight(self) -> float:
        return self.adjusted_weight if self.adjusted_weight is not None else self.weight


class ContributingSignal(BaseModel):
    """Persisted form of a signal that took part in a prediction."""

    source: str
    prediction: Outcome
    weight: float
    category: SignalCategory = SignalCategory.OTHER
    is_on_probation: bool = False

    model_config = {"frozen": True}

    @classmethod
    def from_signal(cls, signal: Signal) -> ContributingSignal:
        return cls(
            source=signal.source,
            prediction=signal.prediction,
            weight=signal.effective_weight,
            category=signal.category,
            is_on_probation=signal.is_on_probation,
        )
