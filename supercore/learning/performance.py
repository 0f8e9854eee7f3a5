"""Per-signal performance tracking and adaptive weighting.

Each signal source keeps a rolling hit record. Two multiplicative factors
come out of it: the fast ``current_adjustment_factor`` (recomputed from the
recent window) and the slow ``alpha_factor`` (which drifts toward it, faster
when the source is clearly failing). Chronically wrong sources are put on
probation, which caps their weight multiplier. Idle sources relax back
toward neutral.

All methods return new records; input mappings are never mutated.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from supercore.core.logging import get_logger
from supercore.models.context import EntropyState, VolatilityLevel
from supercore.models.outcome import Outcome
from supercore.models.state import SignalPerformanceRecord, VolatilityBucketStats

if TYPE_CHECKING:
    from supercore.config.loader import ConfigLoader
    from supercore.models.signal import ContributingSignal

log = get_logger(__name__)

HIGH_CONFIDENCE = 0.75


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class PerformanceTracker:
    """Updates and reads ``SignalPerformanceRecord`` entries."""

    def __init__(self, config: ConfigLoader) -> None:
        self.window = int(config.get("performance.window", 30))
        self.min_observations = int(config.get("performance.min_observations", 10))
        self.max_factor = float(config.get("performance.max_weight_factor", 2.5))
        self.min_factor = float(config.get("performance.min_weight_factor", 0.01))
        self.max_alpha = float(config.get("performance.max_alpha_factor", 1.6))
        self.min_alpha = float(config.get("performance.min_alpha_factor", 0.4))
        self.min_absolute_weight = float(config.get("performance.min_absolute_weight", 0.0003))
        self.inactivity_cycles = int(config.get("performance.inactivity_cycles", 90))
        self.decay_rate = float(config.get("performance.decay_rate", 0.025))
        self.alpha_rate = float(config.get("performance.alpha_update_rate", 0.06))
        self.factor_gain = float(config.get("performance.factor_gain", 3.5))
        self.probation_threshold = float(config.get("performance.probation_threshold", 0.40))
        self.probation_min_obs = int(config.get("performance.probation_min_observations", 15))
        self.probation_cap = float(config.get("performance.probation_weight_cap", 0.10))

    @staticmethod
    def record_for(
        performance: dict[str, SignalPerformanceRecord],
        source: str,
    ) -> SignalPerformanceRecord:
        """Existing record for ``source``, or a neutral one on first sighting."""
        existing = performance.get(source)
        if existing is None:
            return SignalPerformanceRecord()
        return existing

    def update(
        self,
        performance: dict[str, SignalPerformanceRecord],
        signals: list[ContributingSignal],
        actual: Outcome,
        period: str,
        volatility: VolatilityLevel,
        last_confidence: float,
        last_decision: Outcome,
        concentration_active: bool,
        entropy_state: EntropyState,
        cycle_index: int,
        session_key: str | None = None,
    ) -> dict[str, SignalPerformanceRecord]:
        """Score each contributing signal against ``actual``, once per period."""
        updated = dict(performance)
        high_confidence = last_confidence > HIGH_CONFIDENCE
        system_correct = last_decision == actual
        amplify = concentration_active or entropy_state.is_chaotic

        for signal in signals:
            record = self.record_for(updated, signal.source)
            if record.last_active_period == period:
                log.debug("performance_update_skipped", source=signal.source, period=period)
                continue
            updated[signal.source] = self._score(
                record.model_copy(deep=True),
                correct=signal.prediction == actual,
                high_confidence=high_confidence,
                system_correct=system_correct,
                amplify=amplify,
                volatility=volatility,
                period=period,
                cycle_index=cycle_index,
                session_key=session_key,
            )
        return updated

    def _score(
        self,
        record: SignalPerformanceRecord,
        *,
        correct: bool,
        high_confidence: bool,
        system_correct: bool,
        amplify: bool,
        volatility: VolatilityLevel,
        period: str,
        cycle_index: int,
        session_key: str | None,
    ) -> SignalPerformanceRecord:
        hit = 1 if correct else 0
        if session_key is not None and record.session_key != session_key:
            record.session_key = session_key
            record.session_correct = 0
            record.session_total = 0

        bucket = record.performance_by_volatility.setdefault(volatility.value, VolatilityBucketStats())
        record.total += 1
        record.session_total += 1
        bucket.total += 1
        record.correct += hit
        record.session_correct += hit
        bucket.correct += hit

        if correct:
            delta = 0.025 if high_confidence else 0.01
        else:
            delta = -0.040 if high_confidence and not system_correct else -0.015
        if amplify:
            delta *= 1.5
        record.long_term_importance_score = _clamp(record.long_term_importance_score + delta, 0.0, 1.0)

        record.recent_accuracy.append(hit)
        if len(record.recent_accuracy) > self.window:
            record.recent_accuracy = record.recent_accuracy[-self.window :]

        if record.total >= self.min_observations and len(record.recent_accuracy) >= self.window / 2:
            self._adjust(record)

        record.last_active_period = period
        record.last_active_cycle = cycle_index
        return record

    def _adjust(self, record: SignalPerformanceRecord) -> None:
        accuracy = sum(record.recent_accuracy) / len(record.recent_accuracy)
        target = _clamp(1 + (accuracy - 0.5) * self.factor_gain, self.min_factor, self.max_factor)
        record.current_adjustment_factor = target

        if len(record.recent_accuracy) >= self.probation_min_obs and accuracy < self.probation_threshold:
            record.is_on_probation = True
        elif accuracy > self.probation_threshold + 0.15:
            record.is_on_probation = False

        rate = self.alpha_rate
        if accuracy < 0.35:
            rate *= 1.75
        elif accuracy < 0.45:
            rate *= 1.4
        alpha = record.alpha_factor + rate * (target - record.alpha_factor)
        record.alpha_factor = _clamp(alpha, self.min_alpha, self.max_alpha)

    def decay(self, record: SignalPerformanceRecord, cycle_index: int) -> SignalPerformanceRecord:
        """Relax an idle source toward neutral, at most once per cycle."""
        if record.last_decay_cycle == cycle_index:
            return record
        record = record.model_copy(deep=True)
        record.last_decay_cycle = cycle_index
        if record.last_active_cycle is None or cycle_index - record.last_active_cycle <= self.inactivity_cycles:
            return record

        factor = record.current_adjustment_factor
        if factor > 1.0:
            record.current_adjustment_factor = max(1.0, factor - self.decay_rate)
        elif factor < 1.0:
            record.current_adjustment_factor = min(1.0, factor + self.decay_rate)
        if record.is_on_probation:
            log.info("probation_cleared_by_inactivity", idle_cycles=cycle_index - record.last_active_cycle)
        record.is_on_probation = False
        return record

    def effective_weight(
        self,
        record: SignalPerformanceRecord,
        base_weight: float,
        aggression: float,
        volatility: VolatilityLevel,
        session_key: str | None = None,
        contextual: float = 1.0,
        regime_aggression: float | None = None,
    ) -> float:
        """Weight a signal carries into fusion, given its track record.

        ``aggression`` is the full cycle aggression (profile x session, reduced
        under concentration). A source on probation is held to
        ``probation_cap x base_weight x regime_aggression``, where
        ``regime_aggression`` is the profile aggression alone; without it the
        cap applies to ``aggression``.
        """
        volatility_adj = 1.0
        bucket = record.performance_by_volatility.get(volatility.value)
        if bucket is not None and bucket.total >= self.min_observations / 2:
            volatility_adj = _clamp(1 + (bucket.correct / bucket.total - 0.5) * 1.3, 0.55, 1.45)

        session_adj = 1.0
        if record.session_key == session_key and record.session_total >= 3:
            session_adj = _clamp(1 + (record.session_correct / record.session_total - 0.5) * 1.5, 0.6, 1.4)

        factor = (
            record.current_adjustment_factor
            * record.alpha_factor
            * volatility_adj
            * session_adj
            * (0.70 + record.long_term_importance_score * 0.6)
            * contextual
        )
        weight = base_weight * aggression * factor
        if record.is_on_probation:
            ceiling = regime_aggression if regime_aggression is not None else aggression
            weight = min(weight, base_weight * ceiling * self.probation_cap)
        return max(weight, self.min_absolute_weight)
