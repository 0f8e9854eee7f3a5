"""Tests for structured logging."""

from __future__ import annotations

from supercore.core.logging import get_audit_logger, get_logger, log_cycle_event


class TestStructuredLogging:
    def test_get_logger_returns_bound_logger(self) -> None:
        logger = get_logger("test.module")
        assert logger is not None

    def test_get_logger_same_name_returns_logger(self) -> None:
        logger1 = get_logger("test.same")
        logger2 = get_logger("test.same")
        assert logger1 is not None
        assert logger2 is not None

    def test_get_audit_logger(self) -> None:
        logger = get_audit_logger()
        assert logger is not None

    def test_log_cycle_event_predict_does_not_raise(self) -> None:
        log_cycle_event(
            action="predict",
            period="20250101001",
            decision="BIG",
            confidence=0.71,
            level=2,
        )

    def test_log_cycle_event_resolve_does_not_raise(self) -> None:
        log_cycle_event(
            action="resolve",
            period="20250101001",
            predicted="BIG",
            outcome="SMALL",
            correct=False,
        )
