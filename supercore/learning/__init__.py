"""Online learning — signal performance, regime profiles and drift detection."""

from __future__ import annotations

from supercore.learning.drift import DriftDetector
from supercore.learning.performance import PerformanceTracker
from supercore.learning.regime_profiles import DEFAULT_PROFILE, RegimeProfileBook

__all__ = [
    "DEFAULT_PROFILE",
    "DriftDetector",
    "PerformanceTracker",
    "RegimeProfileBook",
]
