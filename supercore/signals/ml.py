"""Model-backed signals — ML-Standard and ML-Volatile.

Both signals share one feature vector and delegate the decision to an
``MLPredictionClient``: the deterministic ``LocalRuleModel`` by default, or
the generative-model HTTP client. Calls are time-boxed and any failure makes
the signal abstain; a slow or broken model never blocks the other signals.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from supercore.core.logging import get_logger
from supercore.engine.indicators import macd, rsi, sma, std_dev, stochastic
from supercore.models.context import TrendContext, TrendStrength, VolatilityLevel
from supercore.models.outcome import Outcome
from supercore.models.signal import Signal, SignalCategory

if TYPE_CHECKING:
    from supercore.engine.time_of_day import SessionWindow
    from supercore.interfaces import MLPredictionClient

log = get_logger(__name__)

MIN_FEATURE_HISTORY = 52


class MLModelType(str, Enum):
    STANDARD = "Standard"
    VOLATILE = "Volatile"


class MLSignalSpec(BaseModel):
    profile_type: str
    source: str
    base_weight: float
    model_config = {"frozen": True}


ML_SIGNALS: dict[MLModelType, MLSignalSpec] = {
    MLModelType.STANDARD: MLSignalSpec(profile_type="ml_standard", source="ML-Standard", base_weight=0.40),
    MLModelType.VOLATILE: MLSignalSpec(profile_type="ml_volatile", source="ML-Volatile", base_weight=0.45),
}


class MLFeatures(BaseModel):
    """Fixed feature vector handed to every model."""

    time_sin: float
    time_cos: float
    last_5_mean: float
    last_20_mean: float
    stddev_10: float
    stddev_30: float
    rsi_14: float
    stoch_k_14: float
    macd_hist: float
    trend_strength: int
    volatility_level: int
    model_config = {"frozen": True}


class MLResponse(BaseModel):
    prediction: Outcome
    confidence: float = Field(ge=0.0, le=1.0)
    model_config = {"frozen": True}


def build_features(numbers: list[float], trend: TrendContext, session: SessionWindow) -> MLFeatures | None:
    """Build the feature vector; None below 52 numbers."""
    if len(numbers) < MIN_FEATURE_HISTORY:
        return None
    last_5 = sma(numbers, 5)
    last_20 = sma(numbers, 20)
    std_10 = std_dev(numbers, 10)
    std_30 = std_dev(numbers, 30)
    rsi_14 = rsi(numbers, 14)
    if last_5 is None or last_20 is None or std_10 is None or std_30 is None or rsi_14 is None:
        return None
    stoch = stochastic(numbers, 14, 3, 3)
    macd_result = macd(numbers, 12, 26, 9)

    strength_level = {TrendStrength.STRONG: 2, TrendStrength.MODERATE: 1}.get(trend.strength, 0)
    volatility_level = {VolatilityLevel.HIGH: 2, VolatilityLevel.MEDIUM: 1}.get(trend.volatility, 0)
    return MLFeatures(
        time_sin=session.hour_sin,
        time_cos=session.hour_cos,
        last_5_mean=last_5,
        last_20_mean=last_20,
        stddev_10=std_10,
        stddev_30=std_30,
        rsi_14=rsi_14,
        stoch_k_14=stoch.k if stoch is not None else 50.0,
        macd_hist=macd_result.histogram if macd_result is not None else 0.0,
        trend_strength=strength_level,
        volatility_level=volatility_level,
    )


class LocalRuleModel:
    """Deterministic rule table standing in for a trained model.

    Each rule casts +1 (BIG) or -1 (SMALL). Standard weighs trend and
    momentum; Volatile weighs oscillator extremes and mean reversion.
    No net vote means no prediction.
    """

    async def predict(self, features: MLFeatures, model_type: MLModelType) -> MLResponse | None:
        if model_type == MLModelType.STANDARD:
            net = self._standard_votes(features)
        else:
            net = self._volatile_votes(features)
        if net == 0:
            return None
        return MLResponse(
            prediction=Outcome.BIG if net > 0 else Outcome.SMALL,
            confidence=min(0.9, 0.5 + 0.1 * abs(net)),
        )

    @staticmethod
    def _standard_votes(f: MLFeatures) -> int:
        net = 0
        drift = f.last_5_mean - f.last_20_mean
        if drift > 0.4:
            net += 1
        elif drift < -0.4:
            net -= 1
        if f.rsi_14 > 60:
            net += 1
        elif f.rsi_14 < 40:
            net -= 1
        if f.macd_hist > 0.1:
            net += 1
        elif f.macd_hist < -0.1:
            net -= 1
        return net

    @staticmethod
    def _volatile_votes(f: MLFeatures) -> int:
        net = 0
        if f.rsi_14 > 65:
            net -= 1
        elif f.rsi_14 < 35:
            net += 1
        if f.stoch_k_14 > 80:
            net -= 1
        elif f.stoch_k_14 < 20:
            net += 1
        # Short mean stretched away from the long mean by more than the short-term spread.
        deviation = f.last_5_mean - f.last_20_mean
        if deviation > f.stddev_10:
            net -= 1
        elif deviation < -f.stddev_10:
            net += 1
        return net


async def ml_signal(
    client: MLPredictionClient,
    features: MLFeatures | None,
    model_type: MLModelType,
    timeout: float,
) -> Signal | None:
    """Run one model call under ``timeout``; abstain on any failure."""
    if features is None:
        return None
    spec = ML_SIGNALS[model_type]
    try:
        response = await asyncio.wait_for(client.predict(features, model_type), timeout=timeout)
    except TimeoutError:
        log.warning("ml_signal_timeout", model_type=model_type.value, timeout=timeout)
        return None
    except Exception as exc:
        log.warning("ml_signal_failed", model_type=model_type.value, error=str(exc))
        return None
    if response is None:
        log.debug("ml_signal_abstained", model_type=model_type.value)
        return None

    confidence = max(0.5, min(1.0, response.confidence))
    return Signal(
        source=spec.source,
        prediction=response.prediction,
        weight=spec.base_weight * confidence * 1.5,
        category=SignalCategory.ML,
    )
