"""Cycle orchestrator — one prediction cycle from history and prior state.

Order of work:
1. Decode prior state and compute the market context.
2. Resolve the previous prediction (reflexive step, drift, signal and
   regime performance, global accuracy) exactly once per period.
3. Generate signals (model calls concurrently and time-boxed), weight
   them from their track record, and fuse.
4. Hand back the prediction, the new state and the updated history.

The orchestrator performs no I/O. Cycles are serialized by a lock and
state updates are all-or-nothing: if anything fails mid-cycle the prior
state is returned untouched with a forced fallback prediction.
"""

from __future__ import annotations

import asyncio
import random
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from supercore.core.logging import get_logger, log_cycle_event
from supercore.engine.entropy_state import MarketEntropyAnalyzer
from supercore.engine.external_factors import ExternalFactor, SimulatedExternalFactors
from supercore.engine.fusion import FusionEngine, FusionInputs, FusionResult
from supercore.engine.regime_classifier import RegimeClassifier, estimate_regime_probabilities
from supercore.engine.stability import StabilityAnalyzer
from supercore.engine.time_of_day import SessionClock
from supercore.engine.trend_analyzer import TrendAnalyzer
from supercore.learning.drift import DriftDetector
from supercore.learning.performance import PerformanceTracker
from supercore.learning.regime_profiles import RegimeProfileBook
from supercore.models.outcome import HistoryRecord, RecordStatus, resolved_only
from supercore.models.prediction import CycleResult, Prediction
from supercore.models.signal import ContributingSignal, Signal
from supercore.models.state import DriftState, EngineState, LastPrediction
from supercore.risk.reflexive import ReflexiveCorrection
from supercore.signals import registry
from supercore.signals.base import GeneratorContext
from supercore.signals.ml import ML_SIGNALS, LocalRuleModel, build_features, ml_signal

if TYPE_CHECKING:
    from supercore.config.loader import ConfigLoader
    from supercore.engine.time_of_day import SessionWindow
    from supercore.interfaces import MLPredictionClient
    from supercore.models.context import EntropyState, MarketEntropyResult, TrendContext
    from supercore.models.state import RegimeProfile

log = get_logger(__name__)

FALLBACK_SOURCE = "CycleFallback"


def next_period(history: list[HistoryRecord]) -> str:
    """Period id the next prediction is for.

    An unresolved newest record is the period being predicted; otherwise the
    id after the newest resolved one.
    """
    if not history:
        return "1"
    newest = history[0]
    if not newest.is_resolved:
        return newest.period
    if newest.period.isdigit():
        return str(int(newest.period) + 1)
    return f"{newest.period}-next"


def _with_pending(history: list[HistoryRecord], period: str) -> list[HistoryRecord]:
    if history and history[0].period == period:
        return list(history)
    return [HistoryRecord(period=period), *history]


def _settle(history: list[HistoryRecord], period: str, won: bool) -> list[HistoryRecord]:
    """Move the record for ``period`` from pending to win/loss."""
    status = RecordStatus.WIN if won else RecordStatus.LOSS
    return [
        r.model_copy(update={"status": status}) if r.period == period and r.status == RecordStatus.PENDING else r
        for r in history
    ]


class CycleOrchestrator:
    """Runs prediction cycles one at a time."""

    def __init__(
        self,
        config: ConfigLoader,
        ml_client: MLPredictionClient | None = None,
    ) -> None:
        self._config = config
        self._trend = TrendAnalyzer(config)
        self._regimes = RegimeClassifier(config)
        self._stability = StabilityAnalyzer(config)
        self._entropy = MarketEntropyAnalyzer(config)
        self._clock = SessionClock(config)
        self._tracker = PerformanceTracker(config)
        self._profiles = RegimeProfileBook(config)
        self._drift = DriftDetector(config)
        self._reflexive = ReflexiveCorrection(config)
        self._fusion = FusionEngine(config)
        self._external = (
            SimulatedExternalFactors(config) if bool(config.get("external.simulated", False)) else None
        )
        self._ml_enabled = bool(config.get("ml.enabled", True))
        self._ml_timeout = float(config.get("ml.timeout_seconds", 8.0))
        self._ml_client: MLPredictionClient = ml_client or LocalRuleModel()
        self._max_contributing = int(config.get("engine.max_contributing_signals", 15))
        self._generators = registry.load_builtin()
        self._lock = asyncio.Lock()

    async def run_cycle(
        self,
        history: list[HistoryRecord],
        prior_state: Any = None,
        *,
        now: datetime | None = None,
        rng: random.Random | None = None,
        external_factor: ExternalFactor | None = None,
    ) -> CycleResult:
        """Run one cycle. Never raises; a failure yields a forced fallback."""
        rng = rng or random.Random()
        now = now or datetime.now(tz=UTC)
        async with self._lock:
            prior = EngineState.from_payload(prior_state)
            try:
                return await self._run(history, prior.model_copy(deep=True), now, rng, external_factor)
            except Exception:
                log.exception("cycle_failed", action="fallback")
                return self._fallback(history, prior, rng)

    def run_cycle_sync(
        self,
        history: list[HistoryRecord],
        prior_state: Any = None,
        **kwargs: Any,
    ) -> CycleResult:
        return asyncio.run(self.run_cycle(history, prior_state, **kwargs))

    async def _run(
        self,
        history: list[HistoryRecord],
        state: EngineState,
        now: datetime,
        rng: random.Random,
        external_factor: ExternalFactor | None,
    ) -> CycleResult:
        state.cycle_index += 1
        profiles = self._profiles.ensure_defaults(state.regime_profiles)
        resolved = resolved_only(history)
        diagnostics: list[str] = []

        # Context
        trend = self._regimes.classify(resolved, self._trend.analyze(resolved))
        stability = self._stability.analyze(history)
        state.choppy_count = self._profiles.track_choppiness(state.choppy_count, trend.volatility, stability)
        profiles = self._profiles.discover(profiles, state.choppy_count)
        if self._profiles.is_persistent(state.choppy_count) and self._profiles.discovered_key in profiles:
            trend = trend.model_copy(update={"macro_regime": self._profiles.discovered_key})
        entropy = self._entropy.analyze(history, stability)
        probabilities = estimate_regime_probabilities(trend, entropy)
        session = self._clock.window(now)
        if session.is_prime_time:
            diagnostics.append(f"PrimeTime:{session.session}")
        if external_factor is None and self._external is not None:
            external_factor = self._external.sample(rng)
        if external_factor is not None:
            diagnostics.append(external_factor.reason)
        diagnostics.append(
            f"TrendCtx(Dir:{trend.direction.value},Str:{trend.strength.value},"
            f"Vol:{trend.volatility.value},Regime:{trend.macro_regime})"
        )
        diagnostics.append(f"MarketEntropy:{entropy.state.value}")

        # Resolution of the previous prediction
        history, reflexive_active = self._resolve(history, state, profiles, session.key)
        profiles = state.regime_profiles
        drift_state = state.drift.last_state
        if reflexive_active:
            diagnostics.append(f"ReflexiveCorrection(Remaining:{state.reflexive.remaining_cycles})")
        if drift_state != DriftState.STABLE:
            diagnostics.append(f"Drift:{drift_state.value}")

        concentration = self._fusion.is_concentration(stability, entropy, reflexive_active, drift_state)
        profile_key, profile = self._profiles.resolve(profiles, trend.macro_regime)
        aggression = self._fusion.aggression(
            profile.contextual_aggression, session, reflexive_active, drift_state, concentration
        )
        if concentration:
            diagnostics.append("ConcentrationMode")

        signals: list[Signal] = []
        if len(resolved) >= int(self._config.get("engine.min_confirmed_history", 52)):
            ctx = GeneratorContext.build(resolved, trend, entropy, rng)
            raw = self._generate(ctx)
            if self._ml_enabled:
                raw.extend(await self._model_signals(ctx, profile, session))
            signals = self._weigh(
                raw, state, trend, entropy, aggression, session.key, profile.contextual_aggression
            )

        result = self._fusion.fuse(
            FusionInputs(
                signals=signals,
                trend=trend,
                stability=stability,
                entropy=entropy,
                probabilities=probabilities,
                session=session,
                drift_state=drift_state,
                reflexive_active=reflexive_active,
                global_accuracy=state.global_accuracy(),
                confirmed_count=len(resolved),
                rng=rng,
                external_factor=external_factor.factor if external_factor is not None else 1.0,
            )
        )

        period = next_period(history)
        state.last_prediction = LastPrediction(
            period=period,
            decision=result.decision,
            confidence=result.confidence,
            confidence_level=result.level,
            is_forced=result.is_forced,
            macro_regime=trend.macro_regime,
            profile_key=profile_key,
            signals=[ContributingSignal.from_signal(s) for s in result.signals],
            concentration_mode=concentration,
            entropy_state=entropy.state,
            volatility=trend.volatility,
        )
        state.updated_at = now

        prediction = self._prediction(
            period, result, diagnostics, trend.macro_regime, entropy.state, state, reflexive_active
        )
        log_cycle_event(
            "predict",
            period,
            decision=prediction.final_decision.value,
            confidence=round(prediction.final_confidence, 4),
            level=prediction.confidence_level,
            forced=prediction.is_forced_prediction,
            source=prediction.source,
        )
        return CycleResult(prediction=prediction, state=state, history=_with_pending(history, period))

    def _resolve(
        self,
        history: list[HistoryRecord],
        state: EngineState,
        profiles: dict[str, RegimeProfile],
        session_key: str,
    ) -> tuple[list[HistoryRecord], bool]:
        """Score the previous prediction if its period has resolved. Mutates ``state``."""
        state.regime_profiles = profiles
        last = state.last_prediction
        record = None
        if last is not None and last.period != state.last_resolved_period:
            record = next((r for r in history if r.period == last.period and r.is_resolved), None)

        if last is None or record is None or record.outcome is None:
            state.reflexive, active = self._reflexive.step(state.reflexive)
            return history, active

        actual = record.outcome
        correct = last.decision == actual
        state.reflexive, active = self._reflexive.step(state.reflexive, last.confidence_level, correct)
        state.drift = self._drift.update(state.drift, correct)
        state.signal_performance = self._tracker.update(
            state.signal_performance,
            last.signals,
            actual,
            last.period,
            last.volatility,
            last.confidence,
            last.decision,
            last.concentration_mode,
            last.entropy_state,
            state.cycle_index,
            session_key,
        )
        state.regime_profiles = self._profiles.update(
            profiles, last.profile_key, actual, last.decision, state.global_accuracy()
        )
        state.global_total += 1
        state.global_correct += 1 if correct else 0
        state.last_resolved_period = last.period
        log_cycle_event(
            "resolve",
            last.period,
            predicted=last.decision.value,
            outcome=actual.value,
            correct=correct,
            drift=state.drift.last_state.value,
        )
        return _settle(history, last.period, correct), active

    def _generate(self, ctx: GeneratorContext) -> list[Signal]:
        signals: list[Signal] = []
        for spec in self._generators:
            try:
                signal = spec.func(ctx, spec.base_weight)
            except Exception as exc:
                log.warning("signal_generator_failed", generator=spec.name, error=str(exc))
                continue
            if signal is None:
                log.debug("signal_abstained", generator=spec.name)
                continue
            signals.append(signal)
        return signals

    async def _model_signals(
        self, ctx: GeneratorContext, profile: RegimeProfile, session: SessionWindow
    ) -> list[Signal]:
        features = build_features(ctx.numbers, ctx.trend, session)
        if features is None:
            return []
        calls = [
            ml_signal(self._ml_client, features, model_type, self._ml_timeout)
            for model_type, spec in ML_SIGNALS.items()
            if profile.allows(spec.profile_type)
        ]
        results = await asyncio.gather(*calls)
        return [s for s in results if s is not None]

    def _weigh(
        self,
        raw: list[Signal],
        state: EngineState,
        trend: TrendContext,
        entropy: MarketEntropyResult,
        aggression: float,
        session_key: str,
        regime_aggression: float,
    ) -> list[Signal]:
        """Attach adjusted weights from each source's track record."""
        multipliers = self._fusion.contextual_multipliers(trend, entropy)
        performance = dict(state.signal_performance)
        adjusted: list[Signal] = []
        for signal in raw:
            record = self._tracker.decay(
                self._tracker.record_for(performance, signal.source), state.cycle_index
            )
            performance[signal.source] = record
            weight = self._tracker.effective_weight(
                record,
                signal.weight,
                aggression,
                trend.volatility,
                session_key,
                multipliers.get(signal.category, 1.0),
                regime_aggression=regime_aggression,
            )
            adjusted.append(
                signal.model_copy(update={"adjusted_weight": weight, "is_on_probation": record.is_on_probation})
            )
        state.signal_performance = performance
        return adjusted

    def _prediction(
        self,
        period: str,
        result: FusionResult,
        diagnostics: list[str],
        macro_regime: str,
        entropy_state: EntropyState,
        state: EngineState,
        reflexive_active: bool,
    ) -> Prediction:
        return Prediction(
            period=period,
            final_decision=result.decision,
            final_confidence=result.confidence,
            confidence_level=result.level,
            is_forced_prediction=result.is_forced,
            source=result.source,
            contributing_signals=[
                ContributingSignal.from_signal(s) for s in result.signals[: self._max_contributing]
            ],
            prediction_quality_score=result.pqs,
            uncertainty_score=result.uncertainty_score,
            macro_regime=macro_regime,
            market_entropy_state=entropy_state,
            drift_state=state.drift.last_state,
            reflexive_correction_active=reflexive_active,
            diagnostic_log=" -> ".join([*diagnostics, *result.diagnostics]),
        )

    def _fallback(self, history: list[HistoryRecord], prior: EngineState, rng: random.Random) -> CycleResult:
        """Forced prediction with the prior state returned unmodified."""
        result = self._fusion.forced(FALLBACK_SOURCE, rng)
        period = next_period(history)
        prediction = Prediction(
            period=period,
            final_decision=result.decision,
            final_confidence=result.confidence,
            confidence_level=1,
            is_forced_prediction=True,
            source=FALLBACK_SOURCE,
            drift_state=prior.drift.last_state,
            diagnostic_log=" -> ".join(result.diagnostics),
        )
        log_cycle_event("fallback", period, decision=prediction.final_decision.value)
        return CycleResult(prediction=prediction, state=prior, history=_with_pending(history, period))
