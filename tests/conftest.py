"""Shared test fixtures."""

from __future__ import annotations

import random
import shutil
from collections.abc import Callable
from pathlib import Path

import pytest

from supercore.config.loader import ConfigLoader
from supercore.models.outcome import HistoryRecord, RecordStatus

REPO_CONFIG = Path(__file__).resolve().parent.parent / "config"

HistoryFactory = Callable[..., list[HistoryRecord]]


@pytest.fixture()
def config_dir(tmp_path: Path) -> Path:
    """Temp config directory holding a copy of the shipped default.toml."""
    config = tmp_path / "config"
    config.mkdir()
    shutil.copy(REPO_CONFIG / "default.toml", config / "default.toml")
    return config


@pytest.fixture()
def config_loader(config_dir: Path) -> ConfigLoader:
    """ConfigLoader with test config."""
    loader = ConfigLoader(config_dir=config_dir, env="test")
    loader.load()
    return loader


@pytest.fixture()
def make_history() -> HistoryFactory:
    """Build a newest-first history from draws listed newest first.

    The newest record gets ``newest_period``; older ones count down.
    ``None`` draws become pending records.
    """

    def _make(
        draws: list[int | None],
        newest_period: int = 10_000,
        status: RecordStatus = RecordStatus.SKIPPED,
    ) -> list[HistoryRecord]:
        return [
            HistoryRecord(
                period=str(newest_period - i),
                actual=draw,
                status=status if draw is not None else RecordStatus.PENDING,
            )
            for i, draw in enumerate(draws)
        ]

    return _make


@pytest.fixture()
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture()
def random_draws() -> list[int]:
    """120 pseudo-random draws, newest first."""
    gen = random.Random(42)
    return [gen.randint(0, 9) for _ in range(120)]
