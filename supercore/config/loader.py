"""TOML config loader with environment variable overrides."""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from supercore.models.state import ALPHA_FACTOR_LIMITS, WEIGHT_FACTOR_LIMITS


class ConfigError(Exception):
    """Raised when config loading or validation fails."""


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base, returning a new dict."""
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _apply_env_overrides(config: dict[str, Any], prefix: str = "SUPERCORE") -> dict[str, Any]:
    """Apply environment variable overrides.

    Env var naming: SUPERCORE__section__key=value (double underscore separator).
    Nested keys: SUPERCORE__performance__probation_weight_cap=0.05
    """
    result = dict(config)
    env_prefix = f"{prefix}__"

    for env_key, env_value in os.environ.items():
        if not env_key.startswith(env_prefix):
            continue

        parts = env_key[len(env_prefix) :].lower().split("__")
        target = result
        for part in parts[:-1]:
            if part not in target:
                target[part] = {}
            elif isinstance(target[part], dict):
                target[part] = dict(target[part])
            if isinstance(target[part], dict):
                target = target[part]
            else:
                break
        else:
            target[parts[-1]] = _coerce_value(env_value)

    return result


def _coerce_value(value: str) -> Any:
    """Coerce string env var value to appropriate Python type.

    Numeric conversion is attempted before boolean so "0"/"1" stay integers.
    """
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        pass
    if value.lower() in ("true", "yes"):
        return True
    if value.lower() in ("false", "no"):
        return False
    return value


class ConfigLoader:
    """Load and merge TOML config files with env var overrides."""

    def __init__(
        self,
        config_dir: str | Path = "config",
        env: str | None = None,
    ) -> None:
        self._config_dir = Path(config_dir)
        self._env = env or os.environ.get("SUPERCORE_ENV", "development")
        self._config: dict[str, Any] = {}

    def load(self) -> dict[str, Any]:
        """Load config: default.toml -> {env}.toml -> env vars."""
        default_path = self._config_dir / "default.toml"
        if not default_path.exists():
            msg = f"Default config not found: {default_path}"
            raise ConfigError(msg)

        self._config = self._load_toml(default_path)

        env_path = self._config_dir / f"{self._env}.toml"
        if env_path.exists():
            self._config = _deep_merge(self._config, self._load_toml(env_path))

        self._config = _apply_env_overrides(self._config)
        return self._config

    def load_preset(self, preset_name: str) -> dict[str, Any]:
        """Merge a named tuning preset (config/presets/<name>.toml) on top."""
        if not self._config:
            self.load()

        preset_path = self._config_dir / "presets" / f"{preset_name}.toml"
        if not preset_path.exists():
            msg = f"Preset not found: {preset_path}"
            raise ConfigError(msg)
        self._config = _deep_merge(self._config, self._load_toml(preset_path))
        return self._config

    def get(self, dotted_key: str, default: Any = None) -> Any:
        """Get a config value using dotted notation: 'performance.window'."""
        if not self._config:
            self.load()

        current: Any = self._config
        for part in dotted_key.split("."):
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return default
        return current

    def require(self, dotted_key: str) -> Any:
        """Get a config value, raising ConfigError if missing."""
        value = self.get(dotted_key)
        if value is None:
            msg = f"Required config key missing: {dotted_key}"
            raise ConfigError(msg)
        return value

    def validate_keys(self, required_keys: list[str]) -> None:
        """Validate that all required keys exist."""
        missing = [k for k in required_keys if self.get(k) is None]
        if missing:
            msg = f"Missing required config keys: {', '.join(missing)}"
            raise ConfigError(msg)

    def validate_ranges(self) -> None:
        """Validate ranges of the parameters the learning loop depends on.

        Raises:
            ConfigError: If any bound is inverted or out of range.
        """
        if not self._config:
            self.load()

        errors: list[str] = []

        low, high = WEIGHT_FACTOR_LIMITS
        min_factor = self.get("performance.min_weight_factor")
        max_factor = self.get("performance.max_weight_factor")
        if min_factor is not None and max_factor is not None and not (low <= min_factor < max_factor <= high):
            errors.append(
                f"performance weight factors must satisfy {low} <= min < max <= {high}, "
                f"got {min_factor}..{max_factor}"
            )

        low, high = ALPHA_FACTOR_LIMITS
        min_alpha = self.get("performance.min_alpha_factor")
        max_alpha = self.get("performance.max_alpha_factor")
        if min_alpha is not None and max_alpha is not None and not (low <= min_alpha < max_alpha <= high):
            errors.append(
                f"performance alpha factors must satisfy {low} <= min < max <= {high}, "
                f"got {min_alpha}..{max_alpha}"
            )

        cap = self.get("performance.probation_weight_cap")
        if cap is not None and not (0 < cap <= 1):
            errors.append(f"performance.probation_weight_cap must be in (0, 1], got {cap}")

        for key in ("performance.window", "regime.accuracy_window", "entropy.short_window",
                    "entropy.long_window", "engine.min_confirmed_history"):
            value = self.get(key)
            if value is not None and value <= 0:
                errors.append(f"{key} must be > 0, got {value}")

        warning = self.get("drift.warning_level")
        drift = self.get("drift.drift_level")
        if warning is not None and drift is not None and not (0 < warning < drift):
            errors.append(f"drift levels must satisfy 0 < warning < drift, got {warning}/{drift}")

        timeout = self.get("ml.timeout_seconds")
        if timeout is not None and timeout <= 0:
            errors.append(f"ml.timeout_seconds must be > 0, got {timeout}")

        if errors:
            msg = "Config validation failed:\n  " + "\n  ".join(errors)
            raise ConfigError(msg)

    @property
    def config(self) -> dict[str, Any]:
        if not self._config:
            self.load()
        return self._config

    @staticmethod
    def _load_toml(path: Path) -> dict[str, Any]:
        with open(path, "rb") as f:
            return tomllib.load(f)
