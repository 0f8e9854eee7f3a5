"""Time-of-day sessions — prime-time aggression/confidence multipliers and time features."""

from __future__ import annotations

import math
from datetime import UTC, datetime, timedelta, timezone
from typing import TYPE_CHECKING

from pydantic import BaseModel

from supercore.core.logging import get_logger

if TYPE_CHECKING:
    from supercore.config.loader import ConfigLoader

log = get_logger(__name__)

OFF_PEAK = "OFF_PEAK"


class SessionWindow(BaseModel):
    """Multipliers that apply during one named session."""

    session: str
    local_hour: int
    aggression: float = 1.0
    confidence: float = 1.0
    is_prime_time: bool = False
    hour_sin: float = 0.0
    hour_cos: float = 1.0
    key: str = ""
    model_config = {"frozen": True}


# (session, start hour inclusive, end hour exclusive, aggression, confidence).
# The first matching row wins, so the evening peak is listed before the evening block.
_DEFAULT_SESSIONS: list[tuple[str, int, int, float, float]] = [
    ("PRIME_MORNING", 10, 12, 1.25, 1.15),
    ("PRIME_AFTERNOON_1", 13, 14, 1.15, 1.10),
    ("PRIME_AFTERNOON_2", 15, 16, 1.15, 1.10),
    ("PRIME_EVENING_PEAK", 19, 20, 1.35, 1.25),
    ("PRIME_EVENING", 17, 20, 1.30, 1.20),
]


class SessionClock:
    """Maps wall-clock time to the local (IST by default) session window."""

    def __init__(self, config: ConfigLoader) -> None:
        offset_minutes = int(config.get("session.timezone_offset_minutes", 330))
        self._tz = timezone(timedelta(minutes=offset_minutes))
        custom: list[list[object]] | None = config.get("session.prime_sessions")
        if custom is not None:
            self._sessions = [
                (str(s), int(a), int(b), float(g), float(c))  # type: ignore[arg-type]
                for s, a, b, g, c in custom
            ]
            log.info("session_clock_init", source="config_override", sessions=len(self._sessions))
        else:
            self._sessions = list(_DEFAULT_SESSIONS)

    def local_time(self, now: datetime | None = None) -> datetime:
        moment = now or datetime.now(tz=UTC)
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=UTC)
        return moment.astimezone(self._tz)

    def window(self, now: datetime | None = None) -> SessionWindow:
        """Session window for ``now`` (defaults to the current time)."""
        local = self.local_time(now)
        hour = local.hour
        angle = hour / 24 * 2 * math.pi
        for name, start, end, aggression, confidence in self._sessions:
            if start <= hour < end:
                return SessionWindow(
                    session=name,
                    local_hour=hour,
                    aggression=aggression,
                    confidence=confidence,
                    is_prime_time=True,
                    hour_sin=math.sin(angle),
                    hour_cos=math.cos(angle),
                    key=f"{local.date().isoformat()}:{name}",
                )
        return SessionWindow(
            session=OFF_PEAK,
            local_hour=hour,
            hour_sin=math.sin(angle),
            hour_cos=math.cos(angle),
            key=f"{local.date().isoformat()}:{OFF_PEAK}",
        )
