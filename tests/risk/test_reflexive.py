"""Tests for reflexive correction."""

from __future__ import annotations

from supercore.models.state import ReflexiveState
from supercore.risk.reflexive import ReflexiveCorrection


class TestReflexiveCorrection:
    def test_idle_without_resolution(self, config_loader) -> None:
        state, active = ReflexiveCorrection(config_loader).step(ReflexiveState())
        assert not active
        assert state == ReflexiveState()

    def test_single_confident_loss_counts(self, config_loader) -> None:
        state, active = ReflexiveCorrection(config_loader).step(ReflexiveState(), 3, False)
        assert not active
        assert state.consecutive_high_conf_losses == 1

    def test_low_level_loss_resets_count(self, config_loader) -> None:
        state, active = ReflexiveCorrection(config_loader).step(
            ReflexiveState(consecutive_high_conf_losses=1), 2, False
        )
        assert not active
        assert state.consecutive_high_conf_losses == 0

    def test_win_resets_count(self, config_loader) -> None:
        state, _ = ReflexiveCorrection(config_loader).step(ReflexiveState(consecutive_high_conf_losses=1), 3, True)
        assert state.consecutive_high_conf_losses == 0

    def test_second_loss_activates_for_five_cycles(self, config_loader) -> None:
        reflexive = ReflexiveCorrection(config_loader)
        state, active = reflexive.step(ReflexiveState(), 3, False)
        flags = []
        state, active = reflexive.step(state, 3, False)
        flags.append(active)
        for _ in range(6):
            state, active = reflexive.step(state)
            flags.append(active)
        assert flags == [True, True, True, True, True, False, False]
        assert state.remaining_cycles == 0
        assert state.consecutive_high_conf_losses == 0

    def test_countdown_ignores_new_results(self, config_loader) -> None:
        reflexive = ReflexiveCorrection(config_loader)
        state, active = reflexive.step(ReflexiveState(remaining_cycles=2), 3, False)
        assert active
        assert state.remaining_cycles == 1
        assert state.consecutive_high_conf_losses == 0
