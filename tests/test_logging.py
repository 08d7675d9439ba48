"""
Tests for the JSON log lines written by closing_kernel.logging_config.

Lines are exercised through the events the engines and the review service
actually emit: engine traces, per-session summaries, and upstream
failures surfaced while loading a review window.
"""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO

import pytest

from closing_engines.alerts import AlertGenerator
from closing_kernel.exceptions import SessionNotFoundError, UpstreamFailure
from closing_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture
def log_lines():
    """Configure logging into a buffer; return a reader of parsed lines."""
    reset_logging()
    stream = StringIO()
    configure_logging(stream=stream, level=logging.DEBUG)

    def _read() -> list[dict]:
        return [json.loads(line) for line in stream.getvalue().splitlines() if line]

    yield _read
    reset_logging()


class TestEventLines:

    def test_envelope(self, log_lines):
        get_logger("engines.reconciliation").info("summary_computed")

        line = log_lines()[0]
        assert line["level"] == "INFO"
        assert line["message"] == "summary_computed"
        assert line["logger"] == "closing_kernel.engines.reconciliation"
        assert line["ts"].endswith("+00:00")

    def test_amounts_and_dates_keep_their_exact_text(self, log_lines):
        get_logger("engines.reconciliation").info("summary_computed", extra={
            "session_id": "s-1",
            "discrepancy_vs_physical_total": Decimal("10.00"),
            "foreign_equivalent": Decimal("0.2739726027397260273972602740"),
            "session_date": date(2024, 3, 1),
        })

        line = log_lines()[0]
        assert line["discrepancy_vs_physical_total"] == "10.00"
        assert line["foreign_equivalent"] == "0.2739726027397260273972602740"
        assert line["session_date"] == "2024-03-01"

    def test_field_names_reserved_by_log_records_are_allowed(self, log_lines):
        # A cashier's ``name`` would collide with LogRecord.name via plain extra
        get_logger("services.closing_review").info(
            "cashier_resolved", extra={"name": "Carmen Diaz", "args": 2},
        )

        line = log_lines()[0]
        assert line["name"] == "Carmen Diaz"
        assert line["args"] == 2
        assert line["logger"] == "closing_kernel.services.closing_review"

    def test_engine_trace_line(self, log_lines):
        AlertGenerator().generate_alerts([])

        traces = [line for line in log_lines() if line["message"] == "CLOSING_ENGINE_TRACE"]
        assert traces[0]["engine_name"] == "alerts"
        assert traces[0]["logger"] == "closing_kernel.engines.tracer"
        assert len(traces[0]["input_fingerprint"]) == 16

    def test_level_threshold(self):
        reset_logging()
        stream = StringIO()
        configure_logging(stream=stream)
        try:
            logger = get_logger("engines.trends")
            logger.debug("band_assigned")
            logger.info("daily_trend_built")
        finally:
            reset_logging()

        messages = [json.loads(line)["message"] for line in stream.getvalue().splitlines()]
        assert messages == ["daily_trend_built"]


class TestReviewScope:

    def test_bound_scope_on_every_line(self, log_lines):
        logger = get_logger("engines.alerts")
        with LogContext.bind(company_id="company-1", cashier_id="cashier-ana"):
            logger.info("alerts_generated", extra={"alert_count": 2})

        line = log_lines()[0]
        assert line["company_id"] == "company-1"
        assert line["cashier_id"] == "cashier-ana"
        assert line["alert_count"] == 2

    def test_scope_absent_when_unbound(self, log_lines):
        get_logger("engines.alerts").info("alerts_generated")

        line = log_lines()[0]
        assert "company_id" not in line
        assert "session_id" not in line

    def test_nested_bind_restores_outer_scope(self):
        with LogContext.bind(company_id="company-1"):
            with LogContext.bind(company_id="company-2", session_id="s-9"):
                assert LogContext.current() == {"company_id": "company-2", "session_id": "s-9"}
            assert LogContext.current() == {"company_id": "company-1"}
        assert LogContext.current() == {}

    def test_none_keeps_current_binding(self):
        # The service binds the window's company, which may be unset
        with LogContext.bind(company_id="company-1"):
            with LogContext.bind(company_id=None):
                assert LogContext.current()["company_id"] == "company-1"

    def test_unknown_scope_field_rejected(self):
        with pytest.raises(TypeError, match="branch_id"):
            with LogContext.bind(branch_id="b-1"):
                pass

    def test_scope_restored_when_block_raises(self):
        with pytest.raises(SessionNotFoundError):
            with LogContext.bind(session_id="s-1"):
                raise SessionNotFoundError(["s-1"])
        assert LogContext.current() == {}


class TestExceptionLines:

    def test_review_error_fields(self, log_lines):
        logger = get_logger("selectors.cash_session")
        try:
            raise UpstreamFailure("fetch_sessions", "connection reset")
        except UpstreamFailure:
            logger.error("sessions_fetch_failed", exc_info=True)

        line = log_lines()[0]
        assert line["exc_type"] == "UpstreamFailure"
        assert line["exc_code"] == "UPSTREAM_FAILURE"
        assert line["exc_operation"] == "fetch_sessions"
        assert line["exc_reason"] == "connection reset"
        assert "Traceback" in line["traceback"]

    def test_other_errors_have_no_code(self, log_lines):
        try:
            Decimal("1") / Decimal("0")
        except ArithmeticError:
            get_logger("engines.currency").exception("conversion_failed")

        line = log_lines()[0]
        assert line["level"] == "ERROR"
        assert line["exc_type"] == "DivisionByZero"
        assert "exc_code" not in line


class TestConfigureLogging:

    def test_idempotent(self, log_lines):
        configure_logging(stream=StringIO())
        assert len(logging.getLogger("closing_kernel").handlers) == 1

    def test_reset_detaches_handler(self):
        configure_logging(stream=StringIO())
        reset_logging()
        assert logging.getLogger("closing_kernel").handlers == []

    def test_formatter_without_event_fields(self):
        record = logging.LogRecord(
            "closing_kernel.raw", logging.WARNING, __file__, 1, "raw_event", (), None,
        )
        line = json.loads(StructuredFormatter().format(record))
        assert line["message"] == "raw_event"
        assert line["level"] == "WARNING"
