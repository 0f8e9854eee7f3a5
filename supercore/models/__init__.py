from supercore.models.context import (
    EntropyState,
    MarketEntropyResult,
    RegimeProbabilities,
    StabilityResult,
    TrendContext,
    TrendDirection,
    TrendStrength,
    VolatilityLevel,
)
from supercore.models.outcome import HistoryRecord, Outcome, RecordStatus, classify, opposite
from supercore.models.prediction import CycleResult, Prediction
from supercore.models.signal import ContributingSignal, Signal, SignalCategory
from supercore.models.state import (
    DriftDetectorState,
    DriftState,
    EngineState,
    LastPrediction,
    RegimeProfile,
    SignalPerformanceRecord,
)

__all__ = [
    "ContributingSignal",
    "CycleResult",
    "DriftDetectorState",
    "DriftState",
    "EngineState",
    "EntropyState",
    "HistoryRecord",
    "LastPrediction",
    "MarketEntropyResult",
    "Outcome",
    "Prediction",
    "RecordStatus",
    "RegimeProbabilities",
    "RegimeProfile",
    "Signal",
    "SignalCategory",
    "SignalPerformanceRecord",
    "StabilityResult",
    "TrendContext",
    "TrendDirection",
    "TrendStrength",
    "VolatilityLevel",
    "classify",
    "opposite",
]
