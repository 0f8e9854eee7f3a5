"""Tests for streak, transition and sequence-pattern signals."""

from __future__ import annotations

import random

import pytest

from supercore.models.context import EntropyState, MarketEntropyResult, TrendContext
from supercore.models.outcome import Outcome
from supercore.models.signal import SignalCategory
from supercore.signals import patterns
from supercore.signals.base import GeneratorContext


@pytest.fixture()
def ctx_for(make_history):
    def _build(draws: list[int | None]) -> GeneratorContext:
        return GeneratorContext.build(
            make_history(draws),
            TrendContext(),
            MarketEntropyResult(state=EntropyState.UNCERTAIN_ENTROPY),
            random.Random(0),
        )

    return _build


class TestTransitions:
    def test_alternating_history_predicts_switch(self, ctx_for) -> None:
        signal = patterns.transitions(ctx_for([7, 2] * 10), 0.05)
        assert signal is not None
        assert signal.source == "Transition"
        assert signal.prediction == Outcome.SMALL
        assert signal.weight == pytest.approx(0.05)

    def test_needs_fifteen_outcomes(self, ctx_for) -> None:
        assert patterns.transitions(ctx_for([7, 2] * 7), 0.05) is None

    def test_too_few_transitions_abstains(self, ctx_for) -> None:
        # Only five transitions out of BIG are on record.
        draws = [7, 7, 2, 7, 7, 2, 7, 7, 2, 2, 2, 2, 2, 2, 2, 2]
        assert patterns.transitions(ctx_for(draws), 0.05) is None


class TestStreakBreak:
    def test_run_of_three_predicts_reversal(self, ctx_for) -> None:
        signal = patterns.streak_break(ctx_for([8, 8, 8, 2, 7]), 0.045)
        assert signal is not None
        assert signal.source == "StreakBreak-3"
        assert signal.prediction == Outcome.SMALL
        assert signal.category == SignalCategory.MEAN_REVERSION
        assert signal.weight == pytest.approx(0.045 * 0.95)

    def test_run_of_two_weaker(self, ctx_for) -> None:
        signal = patterns.streak_break(ctx_for([1, 1, 8, 2]), 0.045)
        assert signal is not None
        assert signal.prediction == Outcome.BIG
        assert signal.weight == pytest.approx(0.045 * 0.81)

    def test_single_outcome_abstains(self, ctx_for) -> None:
        assert patterns.streak_break(ctx_for([8, 2, 8, 2]), 0.045) is None

    def test_long_big_run_predicts_small(self, ctx_for) -> None:
        signal = patterns.streak_break(ctx_for([8] * 25), 0.045)
        assert signal is not None
        assert signal.source == "StreakBreak-25"
        assert signal.prediction == Outcome.SMALL


class TestSequencePatterns:
    def test_alternating_bsbs(self, ctx_for) -> None:
        signal = patterns.alternating(ctx_for([2, 7, 2, 7, 2]), 0.06)
        assert signal is not None
        assert signal.source == "Alt-BSBS->S"
        assert signal.prediction == Outcome.SMALL
        assert signal.weight == pytest.approx(0.06 * 1.15)

    def test_alternating_needs_five_records(self, ctx_for) -> None:
        assert patterns.alternating(ctx_for([2, 7, 2, 7]), 0.06) is None

    def test_weighted_history_follows_majority(self, ctx_for) -> None:
        signal = patterns.weighted_history(ctx_for([8, 8, 8, 2, 8, 8]), 0.05)
        assert signal is not None
        assert signal.prediction == Outcome.BIG
        assert 0 < signal.weight < 0.05

    def test_two_plus_one(self, ctx_for) -> None:
        signal = patterns.two_plus_one(ctx_for([8, 8, 2]), 0.04)
        assert signal is not None
        assert signal.source == "Pattern-BBS->B"
        assert signal.prediction == Outcome.BIG

    def test_double_pair(self, ctx_for) -> None:
        signal = patterns.double_pair(ctx_for([8, 8, 2, 2, 5]), 0.045)
        assert signal is not None
        assert signal.prediction == Outcome.BIG
        assert signal.weight == pytest.approx(0.045 * 1.1)

    def test_mirror(self, ctx_for) -> None:
        signal = patterns.mirror(ctx_for([8, 2, 2, 8]), 0.045)
        assert signal is not None
        assert signal.source == "Pattern-Mirror->BIG"
        assert signal.prediction == Outcome.BIG

    def test_mirror_requires_two_classes(self, ctx_for) -> None:
        assert patterns.mirror(ctx_for([8, 8, 8, 8]), 0.045) is None

    def test_too_short_abstains(self, ctx_for) -> None:
        ctx = ctx_for([8, 8])
        assert patterns.two_plus_one(ctx, 0.04) is None
        assert patterns.double_pair(ctx, 0.045) is None
        assert patterns.mirror(ctx, 0.045) is None
