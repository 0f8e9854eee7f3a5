"""Tests for outcome classification and history records."""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st
from pydantic import ValidationError

from supercore.models.outcome import (
    HistoryRecord,
    Outcome,
    RecordStatus,
    classify,
    opposite,
    resolved_only,
    to_numbers,
    to_outcomes,
)


class TestClassify:
    @pytest.mark.parametrize("value", [0, 1, 2, 3, 4])
    def test_small_range(self, value: int) -> None:
        assert classify(value) == Outcome.SMALL

    @pytest.mark.parametrize("value", [5, 6, 7, 8, 9])
    def test_big_range(self, value: int) -> None:
        assert classify(value) == Outcome.BIG

    @pytest.mark.parametrize(
        "value",
        [None, -1, 10, "x", "", True, 3.7j, float("inf"), float("-inf"), float("nan")],
    )
    def test_invalid_is_none(self, value: object) -> None:
        assert classify(value) is None

    def test_fraction_truncates(self) -> None:
        assert classify(4.7) == Outcome.SMALL
        assert classify(5.2) == Outcome.BIG

    def test_numeric_string(self) -> None:
        assert classify("7") == Outcome.BIG

    @given(st.integers(min_value=0, max_value=9))
    def test_threshold_is_five(self, value: int) -> None:
        expected = Outcome.BIG if value >= 5 else Outcome.SMALL
        assert classify(value) == expected

    def test_opposite(self) -> None:
        assert opposite(Outcome.BIG) == Outcome.SMALL
        assert opposite(Outcome.SMALL) == Outcome.BIG


class TestHistoryRecord:
    def test_defaults_pending(self) -> None:
        record = HistoryRecord(period="101")
        assert record.status == RecordStatus.PENDING
        assert not record.is_resolved
        assert record.outcome is None

    def test_resolved_outcome(self) -> None:
        record = HistoryRecord(period="101", actual=8, status=RecordStatus.WIN)
        assert record.is_resolved
        assert record.outcome == Outcome.BIG

    def test_rejects_out_of_range_actual(self) -> None:
        with pytest.raises(ValidationError):
            HistoryRecord(period="101", actual=12)

    def test_frozen(self) -> None:
        record = HistoryRecord(period="101", actual=3)
        with pytest.raises(ValidationError):
            record.actual = 4  # type: ignore[misc]

    def test_helpers_preserve_order(self) -> None:
        history = [
            HistoryRecord(period="103"),
            HistoryRecord(period="102", actual=7),
            HistoryRecord(period="101", actual=2),
        ]
        assert [r.period for r in resolved_only(history)] == ["102", "101"]
        assert to_numbers(history) == [7.0, 2.0]
        assert to_outcomes(history) == [None, Outcome.BIG, Outcome.SMALL]
