"""Tests for config validation."""

from __future__ import annotations

from pathlib import Path  # noqa: TCH003

import pytest

from supercore.config.loader import ConfigError, ConfigLoader


def _load_with(config_dir: Path, old: str, new: str) -> ConfigLoader:
    toml = config_dir / "default.toml"
    content = toml.read_text()
    assert old in content
    toml.write_text(content.replace(old, new))
    loader = ConfigLoader(config_dir=config_dir)
    loader.load()
    return loader


class TestConfigValidation:
    def test_valid_config_passes(self, config_dir: Path) -> None:
        loader = ConfigLoader(config_dir=config_dir)
        loader.load()
        loader.validate_ranges()

    def test_shipped_presets_pass(self, config_dir: Path) -> None:
        repo_presets = Path(__file__).resolve().parents[2] / "config" / "presets"
        for preset in sorted(repo_presets.glob("*.toml")):
            target = config_dir / "presets"
            target.mkdir(exist_ok=True)
            (target / preset.name).write_text(preset.read_text())
            loader = ConfigLoader(config_dir=config_dir)
            loader.load_preset(preset.stem)
            loader.validate_ranges()

    def test_inverted_weight_factors(self, config_dir: Path) -> None:
        loader = _load_with(config_dir, "min_weight_factor = 0.01", "min_weight_factor = 3.0")
        with pytest.raises(ConfigError, match="weight factors"):
            loader.validate_ranges()

    def test_inverted_alpha_factors(self, config_dir: Path) -> None:
        loader = _load_with(config_dir, "max_alpha_factor = 1.6", "max_alpha_factor = 0.2")
        with pytest.raises(ConfigError, match="alpha factors"):
            loader.validate_ranges()

    def test_weight_factor_above_state_limit(self, config_dir: Path) -> None:
        loader = _load_with(config_dir, "max_weight_factor = 2.5", "max_weight_factor = 5.0")
        with pytest.raises(ConfigError, match="weight factors"):
            loader.validate_ranges()

    def test_alpha_factor_below_state_limit(self, config_dir: Path) -> None:
        loader = _load_with(config_dir, "min_alpha_factor = 0.4", "min_alpha_factor = 0.1")
        with pytest.raises(ConfigError, match="alpha factors"):
            loader.validate_ranges()

    def test_probation_cap_zero(self, config_dir: Path) -> None:
        loader = _load_with(config_dir, "probation_weight_cap = 0.10", "probation_weight_cap = 0.0")
        with pytest.raises(ConfigError, match="probation_weight_cap"):
            loader.validate_ranges()

    def test_probation_cap_over_one(self, config_dir: Path) -> None:
        loader = _load_with(config_dir, "probation_weight_cap = 0.10", "probation_weight_cap = 1.5")
        with pytest.raises(ConfigError, match="probation_weight_cap"):
            loader.validate_ranges()

    def test_zero_window(self, config_dir: Path) -> None:
        loader = _load_with(config_dir, "accuracy_window = 35", "accuracy_window = 0")
        with pytest.raises(ConfigError, match="regime.accuracy_window"):
            loader.validate_ranges()

    def test_drift_levels_inverted(self, config_dir: Path) -> None:
        loader = _load_with(config_dir, "warning_level = 2.0", "warning_level = 3.5")
        with pytest.raises(ConfigError, match="drift levels"):
            loader.validate_ranges()

    def test_ml_timeout_non_positive(self, config_dir: Path) -> None:
        loader = _load_with(config_dir, "timeout_seconds = 8.0", "timeout_seconds = 0")
        with pytest.raises(ConfigError, match="ml.timeout_seconds"):
            loader.validate_ranges()

    def test_multiple_errors_reported_together(self, config_dir: Path) -> None:
        _load_with(config_dir, "timeout_seconds = 8.0", "timeout_seconds = -1")
        loader = _load_with(config_dir, "\nwindow = 30", "\nwindow = 0")
        with pytest.raises(ConfigError) as exc_info:
            loader.validate_ranges()
        assert "ml.timeout_seconds" in str(exc_info.value)
        assert "performance.window" in str(exc_info.value)
