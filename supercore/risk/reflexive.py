"""Reflexive correction — the engine distrusts itself after repeated confident failure.

Two consecutive level-3 losses start a fixed countdown during which
aggression is cut hard and the forcing threshold tightens.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from supercore.core.logging import get_logger
from supercore.models.state import ReflexiveState

if TYPE_CHECKING:
    from supercore.config.loader import ConfigLoader

log = get_logger(__name__)

HIGH_CONFIDENCE_LEVEL = 3


class ReflexiveCorrection:
    """Circuit breaker over high-confidence losses."""

    def __init__(self, config: ConfigLoader) -> None:
        self._loss_trigger = int(config.get("reflexive.loss_trigger", 2))
        self._cycles = int(config.get("reflexive.correction_cycles", 5))

    def step(
        self,
        state: ReflexiveState,
        last_level: int | None = None,
        last_correct: bool | None = None,
    ) -> tuple[ReflexiveState, bool]:
        """Advance one cycle. Returns the new state and whether correction is active.

        ``last_level``/``last_correct`` describe the prediction that resolved
        this cycle; leave them None when nothing resolved.
        """
        if state.remaining_cycles > 0:
            return (
                ReflexiveState(
                    consecutive_high_conf_losses=state.consecutive_high_conf_losses,
                    remaining_cycles=state.remaining_cycles - 1,
                ),
                True,
            )

        losses = state.consecutive_high_conf_losses
        if last_correct is not None:
            if last_level == HIGH_CONFIDENCE_LEVEL and not last_correct:
                losses += 1
            else:
                losses = 0

        if losses >= self._loss_trigger:
            log.warning("reflexive_correction_activated", losses=losses, cycles=self._cycles)
            # The triggering cycle counts as the first corrected cycle.
            return ReflexiveState(consecutive_high_conf_losses=0, remaining_cycles=self._cycles - 1), True
        return ReflexiveState(consecutive_high_conf_losses=losses, remaining_cycles=0), False
