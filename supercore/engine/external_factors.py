"""External confidence factors — optional multiplier from outside conditions.

The only built-in provider is a simulation of weather, news sentiment and
market-volatility feeds driven by the injected RNG, including a simulated
outage rate. A provider returning ``None`` leaves confidence untouched.
"""

from __future__ import annotations

import random
from typing import TYPE_CHECKING

from pydantic import BaseModel

from supercore.core.logging import get_logger

if TYPE_CHECKING:
    from supercore.config.loader import ConfigLoader

log = get_logger(__name__)

_WEATHER: dict[str, float] = {
    "Clear": 1.01, "Clouds": 1.01, "Haze": 1.0, "Smoke": 1.0, "Rain": 0.99, "Drizzle": 0.99,
}
_NEWS: dict[str, float] = {
    "Strongly Positive": 1.05,
    "Positive": 1.02,
    "Neutral": 1.0,
    "Negative": 0.98,
    "Strongly Negative": 0.95,
}
_MARKET_VOL: dict[str, float] = {"Low": 1.0, "Normal": 1.0, "Elevated": 0.97, "High": 0.94}


class ExternalFactor(BaseModel):
    factor: float
    reason: str
    model_config = {"frozen": True}


class SimulatedExternalFactors:
    """Draws a combined factor from simulated feeds; fails ``failure_rate`` of the time."""

    def __init__(self, config: ConfigLoader) -> None:
        self._failure_rate = float(config.get("external.failure_rate", 0.1))

    def sample(self, rng: random.Random) -> ExternalFactor | None:
        if rng.random() < self._failure_rate:
            log.warning("external_factors_unavailable", reason="simulated_outage")
            return None
        weather = rng.choice(list(_WEATHER))
        news = rng.choice(list(_NEWS))
        market = rng.choice(list(_MARKET_VOL))
        factor = _WEATHER[weather] * _NEWS[news] * _MARKET_VOL[market]
        return ExternalFactor(
            factor=factor,
            reason=f"ExtData(Weather:{weather},News:{news},MktVol:{market})",
        )
