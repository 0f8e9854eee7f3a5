"""Fusion engine — turns weighted signals into one calibrated decision.

Pipeline:
1. Short-circuit to a forced coin flip when history or signals are missing.
2. Category consensus, regime-probability tilt and per-side scoring.
3. Session/external calibration, then an uncertainty-driven shrink toward 0.5.
4. Prediction Quality Score (PQS), confidence level, and the forcing valve
   that refuses to be confident when uncertainty is too high.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from supercore.core.logging import get_logger
from supercore.models.context import (
    EntropyState,
    InstabilityKind,
    MarketEntropyResult,
    RegimeProbabilities,
    StabilityResult,
    TrendContext,
    TrendStrength,
    VolatilityLevel,
)
from supercore.models.outcome import Outcome
from supercore.models.signal import Signal, SignalCategory
from supercore.models.state import DriftState

if TYPE_CHECKING:
    from supercore.config.loader import ConfigLoader
    from supercore.engine.time_of_day import SessionWindow

log = get_logger(__name__)

NO_VALID_SIGNALS = "NoValidSignals"
INSUFFICIENT_HISTORY = "InsufficientHistory"
ENSEMBLE_SOURCE = "EnsembleFusion"


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


@dataclass(frozen=True)
class ConsensusResult:
    score: float
    factor: float
    dominant: Outcome | None
    details: str


@dataclass(frozen=True)
class ConfluenceResult:
    score: float
    diverse_paths: int


@dataclass(frozen=True)
class FusionInputs:
    """Everything fusion needs for one cycle. ``signals`` carry adjusted weights."""

    signals: list[Signal]
    trend: TrendContext
    stability: StabilityResult
    entropy: MarketEntropyResult
    probabilities: RegimeProbabilities
    session: SessionWindow
    drift_state: DriftState
    reflexive_active: bool
    global_accuracy: float
    confirmed_count: int
    rng: random.Random
    external_factor: float = 1.0


@dataclass(frozen=True)
class FusionResult:
    decision: Outcome
    confidence: float
    level: int
    is_forced: bool
    source: str
    pqs: float
    uncertainty_score: float
    signals: list[Signal] = field(default_factory=list)
    diagnostics: list[str] = field(default_factory=list)


class FusionEngine:
    """Combines adjusted signals into a decision, confidence and confidence level."""

    def __init__(self, config: ConfigLoader) -> None:
        self._min_history = int(config.get("engine.min_confirmed_history", 52))
        self._min_weight = float(config.get("performance.min_absolute_weight", 0.0003))
        self._high_conf = float(config.get("fusion.high_confidence", 0.78))
        self._med_conf = float(config.get("fusion.medium_confidence", 0.65))
        self._high_pqs = float(config.get("fusion.high_pqs", 0.75))
        self._med_pqs = float(config.get("fusion.medium_pqs", 0.60))
        self._prime_high_conf = float(config.get("fusion.prime_high_confidence", 0.72))
        self._prime_med_conf = float(config.get("fusion.prime_medium_confidence", 0.60))
        self._prime_high_pqs = float(config.get("fusion.prime_high_pqs", 0.70))
        self._prime_med_pqs = float(config.get("fusion.prime_medium_pqs", 0.55))
        self._forcing_score = float(config.get("fusion.forcing_score", 95))
        self._forcing_score_tight = float(config.get("fusion.forcing_score_tight", 65))
        self._pqs_floor = float(config.get("fusion.pqs_floor", 0.20))

    # ------------------------------------------------------------------
    # Context helpers used before fusion (weighting and aggression)
    # ------------------------------------------------------------------

    @staticmethod
    def contextual_multipliers(trend: TrendContext, entropy: MarketEntropyResult) -> dict[SignalCategory, float]:
        """Per-category weight multipliers for the current market state."""
        mult: dict[SignalCategory, float] = {}
        if entropy.state == EntropyState.ORDERLY:
            mult = {
                SignalCategory.TREND: 1.15,
                SignalCategory.MOMENTUM: 1.10,
                SignalCategory.MEAN_REVERSION: 0.85,
                SignalCategory.ML: 1.10,
            }
        elif entropy.state.is_chaotic:
            mult = {
                SignalCategory.TREND: 0.80,
                SignalCategory.MOMENTUM: 0.90,
                SignalCategory.MEAN_REVERSION: 1.20,
                SignalCategory.VOLATILITY: 1.15,
                SignalCategory.ML: 1.25,
            }

        if trend.strength == TrendStrength.STRONG:
            mult[SignalCategory.TREND] = mult.get(SignalCategory.TREND, 1.0) * 1.10
        elif trend.strength == TrendStrength.RANGING:
            mult[SignalCategory.MEAN_REVERSION] = mult.get(SignalCategory.MEAN_REVERSION, 1.0) * 1.10
            mult[SignalCategory.PATTERN] = mult.get(SignalCategory.PATTERN, 1.0) * 1.05
        return mult

    @staticmethod
    def is_concentration(
        stability: StabilityResult,
        entropy: MarketEntropyResult,
        reflexive_active: bool,
        drift_state: DriftState,
    ) -> bool:
        return (
            not stability.is_stable
            or entropy.state.is_chaotic
            or reflexive_active
            or drift_state != DriftState.STABLE
        )

    @staticmethod
    def aggression(
        profile_aggression: float,
        session: SessionWindow,
        reflexive_active: bool,
        drift_state: DriftState,
        concentration: bool,
    ) -> float:
        value = profile_aggression * session.aggression
        if reflexive_active or drift_state == DriftState.DRIFT:
            return value * 0.25
        if concentration:
            return value * 0.6
        return value

    # ------------------------------------------------------------------
    # Fusion
    # ------------------------------------------------------------------

    def forced(self, source: str, rng: random.Random, diagnostics: list[str] | None = None) -> FusionResult:
        """Coin-flip decision at confidence 0.5, level 1."""
        decision = Outcome.BIG if rng.random() > 0.5 else Outcome.SMALL
        notes = list(diagnostics or [])
        notes.append(f"{source}_ForceRandom")
        log.info("forced_prediction", source=source, decision=decision.value)
        return FusionResult(
            decision=decision,
            confidence=0.5,
            level=1,
            is_forced=True,
            source=source,
            pqs=0.5,
            uncertainty_score=0.0,
            diagnostics=notes,
        )

    def fuse(self, inputs: FusionInputs) -> FusionResult:
        diagnostics: list[str] = []
        if inputs.confirmed_count < self._min_history:
            return self.forced(INSUFFICIENT_HISTORY, inputs.rng, diagnostics)

        valid = [s for s in inputs.signals if s.effective_weight > self._min_weight]
        diagnostics.append(f"ValidSignals({len(valid)}/{len(inputs.signals)})")
        if not valid:
            return self.forced(NO_VALID_SIGNALS, inputs.rng, diagnostics)

        consensus = self.consensus(valid, inputs.trend)
        diagnostics.append(f"Consensus:{consensus.details},Factor:{consensus.factor:.2f}")

        big = sum(s.effective_weight for s in valid if s.prediction == Outcome.BIG)
        small = sum(s.effective_weight for s in valid if s.prediction == Outcome.SMALL)
        probs = inputs.probabilities
        big *= 1 + probs.bull_trend - probs.bear_trend
        small *= 1 + probs.bear_trend - probs.bull_trend
        if consensus.dominant == Outcome.BIG:
            big *= consensus.factor
            small *= 2.0 - consensus.factor
        elif consensus.dominant == Outcome.SMALL:
            small *= consensus.factor
            big *= 2.0 - consensus.factor

        total = big + small
        if total > 0:
            decision = Outcome.BIG if big >= small else Outcome.SMALL
            confidence = max(big, small) / total
        else:
            decision = Outcome.BIG if inputs.rng.random() > 0.5 else Outcome.SMALL
            confidence = 0.5

        confidence = 0.5 + (confidence - 0.5) * inputs.session.confidence * inputs.external_factor
        consistency = self.consistency(valid)
        confluence = self.confluence(valid, decision)
        pqs_base = _clamp(0.5 + (consistency - 0.5) * 0.4 + confluence.score * 1.2, 0.01, 0.99)
        diagnostics.append(f"Consistency:{consistency:.2f},Confluence:{confluence.score:.2f}")

        score, reasons = self.uncertainty(inputs, consistency, confluence, pqs_base)
        uncertainty_factor = 1.0 - min(1.0, score / (120.0 + pqs_base * 50))
        confidence = _clamp(0.5 + (confidence - 0.5) * uncertainty_factor, 0.001, 0.999)
        pqs = _clamp(pqs_base - score / 500, 0.01, 0.99)
        diagnostics.append(f"Uncertainty:{score:.0f},Factor:{uncertainty_factor:.2f},Reasons:{';'.join(reasons)}")
        diagnostics.append(f"PQS:{pqs:.3f}")

        level = self.confidence_level(confidence, pqs, valid, decision, inputs)

        threshold = (
            self._forcing_score_tight
            if inputs.reflexive_active or inputs.drift_state == DriftState.DRIFT
            else self._forcing_score
        )
        is_forced = score >= threshold or pqs < self._pqs_floor
        if is_forced:
            level = 1
            confidence = 0.5 + (inputs.rng.random() - 0.5) * 0.02
            diagnostics.append(f"FORCED(Uncertainty:{score:.0f}/{threshold:.0f},PQS:{pqs:.2f})")

        log.debug(
            "fusion_complete",
            decision=decision.value,
            confidence=round(confidence, 4),
            level=level,
            pqs=round(pqs, 3),
            uncertainty=round(score, 1),
            forced=is_forced,
        )
        return FusionResult(
            decision=decision,
            confidence=confidence,
            level=level,
            is_forced=is_forced,
            source=ENSEMBLE_SOURCE,
            pqs=pqs,
            uncertainty_score=score,
            signals=sorted(valid, key=lambda s: s.effective_weight, reverse=True),
            diagnostics=diagnostics,
        )

    def consensus(self, signals: list[Signal], trend: TrendContext) -> ConsensusResult:
        """Agreement across signal categories rather than individual signals."""
        if len(signals) < 4:
            return ConsensusResult(score=0.5, factor=1.0, dominant=None, details="InsufficientSignals")

        sides: dict[SignalCategory, dict[Outcome, float]] = {}
        for s in signals:
            bucket = sides.setdefault(s.category, {Outcome.BIG: 0.0, Outcome.SMALL: 0.0})
            bucket[s.prediction] += s.effective_weight

        big_cats = small_cats = mixed_cats = 0
        big_weight = small_weight = 0.0
        for bucket in sides.values():
            b, sm = bucket[Outcome.BIG], bucket[Outcome.SMALL]
            if b + sm <= 0.001:
                continue
            big_weight += b
            small_weight += sm
            if b > sm * 1.5:
                big_cats += 1
            elif sm > b * 1.5:
                small_cats += 1
            else:
                mixed_cats += 1

        active = big_cats + small_cats + mixed_cats
        score = 0.0
        if active > 0:
            score = (max(big_cats, small_cats) - min(big_cats, small_cats)) / active
        factor = 1.0 + score * 0.5

        if trend.strength == TrendStrength.STRONG:
            t = sides.get(SignalCategory.TREND, {Outcome.BIG: 0.0, Outcome.SMALL: 0.0})
            m = sides.get(SignalCategory.MOMENTUM, {Outcome.BIG: 0.0, Outcome.SMALL: 0.0})
            trend_big = t[Outcome.BIG] > t[Outcome.SMALL]
            trend_small = t[Outcome.SMALL] > t[Outcome.BIG]
            if (trend_big and m[Outcome.SMALL] > m[Outcome.BIG]) or (trend_small and m[Outcome.BIG] > m[Outcome.SMALL]):
                factor *= 0.6

        if big_cats != small_cats:
            dominant: Outcome | None = Outcome.BIG if big_cats > small_cats else Outcome.SMALL
        elif big_weight != small_weight:
            dominant = Outcome.BIG if big_weight > small_weight else Outcome.SMALL
        else:
            dominant = None

        return ConsensusResult(
            score=score,
            factor=_clamp(factor, 0.4, 1.6),
            dominant=dominant,
            details=f"Bcat:{big_cats},Scat:{small_cats},Mcat:{mixed_cats},Score:{score:.2f}",
        )

    @staticmethod
    def consistency(signals: list[Signal]) -> float:
        """Share of signals on the majority side; 0.70 with fewer than three signals."""
        if len(signals) < 3:
            return 0.70
        big = sum(1 for s in signals if s.prediction == Outcome.BIG)
        return max(big, len(signals) - big) / len(signals)

    def confluence(self, signals: list[Signal], decision: Outcome) -> ConfluenceResult:
        """How many distinct kinds of analysis agree with the decision."""
        agreeing = [
            s for s in signals if s.prediction == decision and s.effective_weight > self._min_weight * 10
        ]
        if len(agreeing) < 2:
            return ConfluenceResult(score=0.0, diverse_paths=len(agreeing))

        paths = len({s.category for s in agreeing})
        if paths >= 4:
            score = 0.20
        elif paths == 3:
            score = 0.12
        elif paths == 2:
            score = 0.05
        else:
            score = 0.0
        strong = sum(1 for s in agreeing if s.effective_weight > 0.10)
        score += min(strong * 0.02, 0.10)
        return ConfluenceResult(score=min(score, 0.30), diverse_paths=paths)

    @staticmethod
    def uncertainty(
        inputs: FusionInputs,
        consistency: float,
        confluence: ConfluenceResult,
        pqs_base: float,
    ) -> tuple[float, list[str]]:
        """Additive uncertainty penalties, relieved by a high base PQS."""
        score = 0.0
        reasons: list[str] = []
        if inputs.reflexive_active:
            score += 80
            reasons.append("ReflexiveCorrection")
        if inputs.drift_state == DriftState.DRIFT:
            score += 70
            reasons.append("ConceptDrift")
        elif inputs.drift_state == DriftState.WARNING:
            score += 40
            reasons.append("DriftWarning")
        if not inputs.stability.is_stable:
            severe = inputs.stability.instability in (InstabilityKind.DOMINANCE, InstabilityKind.CHOPPINESS)
            score += 50 if severe else 40
            reasons.append(f"Instability:{inputs.stability.instability.value}")
        state = inputs.entropy.state
        if state.is_chaotic:
            score += 45 if state == EntropyState.RISING_CHAOS else 35
            reasons.append(state.value)
        if consistency < 0.6:
            score += (1 - consistency) * 50
            reasons.append(f"LowConsistency:{consistency:.2f}")
        if confluence.diverse_paths < 3:
            score += (3 - confluence.diverse_paths) * 15
            reasons.append(f"LowConfluence:{confluence.diverse_paths}")
        if inputs.trend.is_transitioning:
            score += 25
            reasons.append("RegimeTransition")
        if inputs.trend.volatility == VolatilityLevel.HIGH:
            score += 20
            reasons.append("HighVolatility")
        if inputs.global_accuracy < 0.48:
            score += (0.48 - inputs.global_accuracy) * 150
            reasons.append(f"LowGlobalAcc:{inputs.global_accuracy:.2f}")
        return max(0.0, score - (pqs_base - 0.5) * 100), reasons

    def confidence_level(
        self,
        confidence: float,
        pqs: float,
        signals: list[Signal],
        decision: Outcome,
        inputs: FusionInputs,
    ) -> int:
        if inputs.drift_state == DriftState.DRIFT:
            return 1
        if inputs.session.is_prime_time:
            high_conf, med_conf = self._prime_high_conf, self._prime_med_conf
            high_pqs, med_pqs = self._prime_high_pqs, self._prime_med_pqs
        else:
            high_conf, med_conf = self._high_conf, self._med_conf
            high_pqs, med_pqs = self._high_pqs, self._med_pqs

        ml_agrees = any(s.category == SignalCategory.ML and s.prediction == decision for s in signals)
        if (
            confidence > high_conf
            and pqs > high_pqs
            and inputs.drift_state == DriftState.STABLE
            and ml_agrees
        ):
            return 3
        if confidence > med_conf and pqs > med_pqs:
            return 2
        return 1
