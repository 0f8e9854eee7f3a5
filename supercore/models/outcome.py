"""Outcome models — BIG/SMALL classification and history records."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class Outcome(str, Enum):
    BIG = "BIG"
    SMALL = "SMALL"


class RecordStatus(str, Enum):
    PENDING = "pending"
    WIN = "win"
    LOSS = "loss"
    SKIPPED = "skipped"


def classify(value: Any) -> Outcome | None:
    """Map a draw to its class: 0-4 SMALL, 5-9 BIG, anything else None.

    Non-integral numbers are truncated first, so 4.7 is SMALL.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if 0 <= number <= 4:
        return Outcome.SMALL
    if 5 <= number <= 9:
        return Outcome.BIG
    return None


def opposite(outcome: Outcome) -> Outcome:
    return Outcome.SMALL if outcome == Outcome.BIG else Outcome.BIG


class HistoryRecord(BaseModel):
    """One period of the outcome stream. Histories are ordered newest-first."""

    period: str
    actual: int | None = Field(default=None, ge=0, le=9)
    status: RecordStatus = RecordStatus.PENDING

    model_config = {"frozen": True}

    @property
    def is_resolved(self) -> bool:
        return self.actual is not None

    @property
    def outcome(self) -> Outcome | None:
        return classify(self.actual)


def resolved_only(history: list[HistoryRecord]) -> list[HistoryRecord]:
    """Records that carry an actual result, preserving newest-first order."""
    return [record for record in history if record.is_resolved]


def to_numbers(history: list[HistoryRecord]) -> list[float]:
    return [float(record.actual) for record in history if record.actual is not None]


def to_outcomes(history: list[HistoryRecord]) -> list[Outcome | None]:
    return [record.outcome for record in history]
