"""Concept drift detection (DDM) over the system's own hit/miss stream.

Tracks the running error rate ``p`` and its standard error ``s``, remembers
the lowest ``p + s`` seen, and flags WARNING / DRIFT when the current value
climbs ``warning_level`` / ``drift_level`` standard errors above that
minimum. A DRIFT resets all statistics so the next window starts clean.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from supercore.core.logging import get_logger
from supercore.models.state import DriftDetectorState, DriftState

if TYPE_CHECKING:
    from supercore.config.loader import ConfigLoader

log = get_logger(__name__)


class DriftDetector:
    def __init__(self, config: ConfigLoader) -> None:
        self._warning_level = float(config.get("drift.warning_level", 2.0))
        self._drift_level = float(config.get("drift.drift_level", 3.0))
        self._min_instances = int(config.get("drift.min_instances", 30))

    def update(self, state: DriftDetectorState, correct: bool) -> DriftDetectorState:
        """Feed one prediction result; returns the new state with ``last_state`` set."""
        n = state.n + 1
        error = 0.0 if correct else 1.0
        p = state.p + (error - state.p) / n
        s = math.sqrt(p * (1 - p) / n)

        if n < self._min_instances:
            return DriftDetectorState(n=n, p=p, s=s, p_min=state.p_min, s_min=state.s_min)

        p_min, s_min = state.p_min, state.s_min
        if p_min is None or s_min is None or p + s <= p_min + s_min:
            p_min, s_min = p, s

        level = p + s
        if level > p_min + self._drift_level * s_min:
            log.warning("drift_detected", n=n, error_rate=round(p, 4), min_error_rate=round(p_min, 4))
            return DriftDetectorState(last_state=DriftState.DRIFT)
        if level > p_min + self._warning_level * s_min:
            result = DriftState.WARNING
        else:
            result = DriftState.STABLE
        if result != state.last_state:
            log.info("drift_state_changed", previous=state.last_state.value, current=result.value, n=n)
        return DriftDetectorState(n=n, p=p, s=s, p_min=p_min, s_min=s_min, last_state=result)
