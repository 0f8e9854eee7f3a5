"""Shared inputs for signal generators.

A generator is a plain function ``(ctx, base_weight) -> Signal | None``.
Returning ``None`` means the generator abstains: its preconditions
(history length, valid periods, matching context) are not met.
"""

from __future__ import annotations

import random
from collections.abc import Callable
from dataclasses import dataclass, field

from supercore.models.context import MarketEntropyResult, TrendContext
from supercore.models.outcome import HistoryRecord, Outcome, to_numbers, to_outcomes
from supercore.models.signal import Signal


@dataclass(frozen=True)
class GeneratorContext:
    """Read-only view of one cycle handed to every generator."""

    history: list[HistoryRecord]
    trend: TrendContext
    entropy: MarketEntropyResult
    rng: random.Random = field(default_factory=random.Random)
    numbers: list[float] = field(default_factory=list)
    outcomes: list[Outcome | None] = field(default_factory=list)

    @classmethod
    def build(
        cls,
        history: list[HistoryRecord],
        trend: TrendContext,
        entropy: MarketEntropyResult,
        rng: random.Random | None = None,
    ) -> GeneratorContext:
        """Build a context from resolved history (newest first)."""
        return cls(
            history=history,
            trend=trend,
            entropy=entropy,
            rng=rng or random.Random(),
            numbers=to_numbers(history),
            outcomes=to_outcomes(history),
        )


SignalGenerator = Callable[[GeneratorContext, float], Signal | None]
