"""Streak, transition and sequence-pattern signals over BIG/SMALL outcomes."""

from __future__ import annotations

from supercore.models.outcome import Outcome, opposite
from supercore.models.signal import Signal, SignalCategory
from supercore.signals.base import GeneratorContext
from supercore.signals.registry import register

_B = Outcome.BIG
_S = Outcome.SMALL


def _pattern(source: str, prediction: Outcome, weight: float) -> Signal:
    return Signal(source=source, prediction=prediction, weight=weight, category=SignalCategory.PATTERN)


def _head(ctx: GeneratorContext, size: int) -> list[Outcome] | None:
    """Newest ``size`` outcomes, or None if any of them is unclassifiable."""
    if len(ctx.outcomes) < size:
        return None
    head = ctx.outcomes[:size]
    if any(o is None for o in head):
        return None
    return [o for o in head if o is not None]


@register("transitions", base_weight=0.05)
def transitions(ctx: GeneratorContext, base_weight: float) -> Signal | None:
    """First-order transition probabilities out of the latest outcome."""
    if len(ctx.outcomes) < 15:
        return None
    counts: dict[Outcome, dict[Outcome, int]] = {_B: {_B: 0, _S: 0}, _S: {_B: 0, _S: 0}}
    for current, previous in zip(ctx.outcomes, ctx.outcomes[1:]):
        if current is not None and previous is not None:
            counts[previous][current] += 1

    last = ctx.outcomes[0]
    if last is None:
        return None
    total = counts[last][_B] + counts[last][_S]
    if total < 6:
        return None
    p_big = counts[last][_B] / total
    p_small = counts[last][_S] / total
    if p_big > p_small + 0.30:
        return _pattern("Transition", _B, base_weight * p_big)
    if p_small > p_big + 0.30:
        return _pattern("Transition", _S, base_weight * p_small)
    return None


@register("streak_break", base_weight=0.045)
def streak_break(ctx: GeneratorContext, base_weight: float) -> Signal | None:
    """Bet on the end of a run of two or more identical outcomes."""
    actuals = [o for o in ctx.outcomes if o is not None]
    if len(actuals) < 3:
        return None
    length = 0
    for outcome in actuals:
        if outcome != actuals[0]:
            break
        length += 1
    if length < 2:
        return None
    factor = min(0.45 + length * 0.18, 0.95)
    return Signal(
        source=f"StreakBreak-{length}",
        prediction=opposite(actuals[0]),
        weight=base_weight * factor,
        category=SignalCategory.MEAN_REVERSION,
    )


@register("alternating", base_weight=0.06)
def alternating(ctx: GeneratorContext, base_weight: float) -> Signal | None:
    if len(ctx.history) < 5:
        return None
    actuals = [o for o in ctx.outcomes[:5] if o is not None]
    if len(actuals) < 4:
        return None
    if actuals[:4] == [_S, _B, _S, _B]:
        return _pattern("Alt-BSBS->S", _S, base_weight * 1.15)
    if actuals[:4] == [_B, _S, _B, _S]:
        return _pattern("Alt-SBSB->B", _B, base_weight * 1.15)
    return None


@register("weighted_history", base_weight=0.05)
def weighted_history(ctx: GeneratorContext, base_weight: float, decay: float = 0.85) -> Signal | None:
    """Exponentially decayed vote over the last 20 outcomes."""
    if len(ctx.outcomes) < 5:
        return None
    big = small = 0.0
    w = 1.0
    for outcome in ctx.outcomes[:20]:
        if outcome == _B:
            big += w
        elif outcome == _S:
            small += w
        w *= decay
    if big == small:
        return None
    total = big + small + 0.0001
    if big > small:
        return _pattern("WeightedHist", _B, base_weight * big / total)
    return _pattern("WeightedHist", _S, base_weight * small / total)


@register("two_plus_one", base_weight=0.04)
def two_plus_one(ctx: GeneratorContext, base_weight: float) -> Signal | None:
    head = _head(ctx, 3)
    if head == [_B, _B, _S]:
        return _pattern("Pattern-BBS->B", _B, base_weight * 0.85)
    if head == [_S, _S, _B]:
        return _pattern("Pattern-SSB->S", _S, base_weight * 0.85)
    return None


@register("double_pair", base_weight=0.045)
def double_pair(ctx: GeneratorContext, base_weight: float) -> Signal | None:
    """BBSS / SSBB: expect the newest pair to complete another double."""
    head = _head(ctx, 4)
    if head == [_B, _B, _S, _S]:
        return _pattern("Pattern-SSBB->B", _B, base_weight * 1.1)
    if head == [_S, _S, _B, _B]:
        return _pattern("Pattern-BBSS->S", _S, base_weight * 1.1)
    return None


@register("mirror", base_weight=0.045)
def mirror(ctx: GeneratorContext, base_weight: float) -> Signal | None:
    """ABBA with A != B predicts A."""
    head = _head(ctx, 4)
    if head is None:
        return None
    a, b, c, d = head
    if a == d and b == c and a != b:
        return _pattern(f"Pattern-Mirror->{a.value}", a, base_weight * 1.2)
    return None
