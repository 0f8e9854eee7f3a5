"""Tests for persisted engine state."""

from __future__ import annotations

import json
from datetime import UTC, datetime

import pytest

from supercore.models.context import EntropyState, VolatilityLevel
from supercore.models.outcome import Outcome
from supercore.models.signal import ContributingSignal, SignalCategory
from supercore.models.state import (
    DriftState,
    EngineState,
    LastPrediction,
    RegimeProfile,
    SignalPerformanceRecord,
    VolatilityBucketStats,
)


@pytest.fixture()
def populated_state() -> EngineState:
    return EngineState(
        cycle_index=12,
        signal_performance={
            "RSI": SignalPerformanceRecord(
                correct=6,
                total=10,
                recent_accuracy=[1, 0, 1, 1, 0, 1, 1, 0, 1, 0],
                current_adjustment_factor=1.2,
                performance_by_volatility={"LOW": VolatilityBucketStats(correct=4, total=6)},
                last_active_period="1011",
            ),
        },
        regime_profiles={
            "DEFAULT": RegimeProfile(base_weight_multiplier=1.0, contextual_aggression=1.0),
        },
        global_correct=14,
        global_total=25,
        last_resolved_period="1011",
        last_prediction=LastPrediction(
            period="1012",
            decision=Outcome.BIG,
            confidence=0.71,
            confidence_level=2,
            macro_regime="RANGING_LOW_VOL",
            profile_key="DEFAULT",
            signals=[
                ContributingSignal(
                    source="RSI", prediction=Outcome.BIG, weight=0.08, category=SignalCategory.MOMENTUM
                )
            ],
            entropy_state=EntropyState.ORDERLY,
            volatility=VolatilityLevel.LOW,
        ),
        updated_at=datetime(2025, 1, 1, 12, 0, tzinfo=UTC),
    )


class TestEngineState:
    def test_payload_round_trip(self, populated_state: EngineState) -> None:
        payload = populated_state.to_payload()
        restored = EngineState.from_payload(json.loads(json.dumps(payload)))
        assert restored == populated_state

    def test_payload_round_trip_from_string(self, populated_state: EngineState) -> None:
        restored = EngineState.from_payload(json.dumps(populated_state.to_payload()))
        assert restored.last_prediction is not None
        assert restored.last_prediction.signals[0].category == SignalCategory.MOMENTUM
        assert restored.signal_performance["RSI"].performance_by_volatility["LOW"].total == 6

    @pytest.mark.parametrize("raw", [None, {}, ""])
    def test_empty_is_cold_start(self, raw: object) -> None:
        state = EngineState.from_payload(raw)
        assert state == EngineState()

    @pytest.mark.parametrize(
        "raw",
        [
            "{not json",
            {"cycle_index": "many"},
            {"signal_performance": {"RSI": {"total": [1, 2]}}},
            {"drift": {"last_state": "EXPLODED"}},
            42,
            {"signal_performance": {"RSI": {"current_adjustment_factor": 9.0}}},
            {"signal_performance": {"RSI": {"alpha_factor": 0.0}}},
            {"signal_performance": {"RSI": {"long_term_importance_score": -0.2}}},
        ],
    )
    def test_corrupt_is_cold_start(self, raw: object) -> None:
        state = EngineState.from_payload(raw)
        assert state.cycle_index == 0
        assert state.signal_performance == {}
        assert state.drift.last_state == DriftState.STABLE

    def test_from_payload_copies_instances(self, populated_state: EngineState) -> None:
        copy = EngineState.from_payload(populated_state)
        copy.signal_performance["RSI"].total = 99
        assert populated_state.signal_performance["RSI"].total == 10

    def test_global_accuracy_neutral_until_enough_samples(self) -> None:
        assert EngineState(global_correct=5, global_total=5).global_accuracy() == 0.5
        assert EngineState(global_correct=15, global_total=20).global_accuracy() == 0.75


class TestRecords:
    def test_recent_mean(self) -> None:
        assert SignalPerformanceRecord().recent_mean is None
        assert SignalPerformanceRecord(recent_accuracy=[1, 0, 1, 1]).recent_mean == 0.75

    def test_profile_allows_wildcard(self) -> None:
        profile = RegimeProfile(base_weight_multiplier=1.0, contextual_aggression=1.0)
        assert profile.allows("ml_standard")

    def test_profile_allows_listed_only(self) -> None:
        profile = RegimeProfile(
            base_weight_multiplier=1.0, contextual_aggression=1.0, active_signal_types=["ml_volatile"]
        )
        assert profile.allows("ml_volatile")
        assert not profile.allows("ml_standard")
