"""
Pytest fixtures for the closing review test suite.

Provides:
- Structured logging configured for the whole run, plus ``captured_logs``
- Record factories (sessions, counts, settlements, reconciled sessions)
- An in-memory SQLite session store for selector and service tests

Database:
    Tests run against ``sqlite://`` (in-memory, one shared connection).
    Each test gets a Session bound to an outer transaction that is rolled
    back afterwards, so tests never see each other's rows.
"""

import json
import logging
from collections.abc import Callable
from datetime import date, datetime, time, timezone
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest
from sqlalchemy.orm import Session

from closing_config.schema import ReconciliationPolicy
from closing_engines.reconciliation import ReconciledSession, ReconciliationCalculator
from closing_kernel.db.engine import (
    create_tables,
    drop_tables,
    init_engine_from_url,
    reset_engine,
)
from closing_kernel.domain.records import (
    CashCountDetail,
    CashSession,
    SessionRecord,
    SessionStatus,
    TerminalSettlement,
)
from closing_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from closing_kernel.models.cash_session import (
    CashCountModel,
    Cashier,
    CashSessionModel,
    TerminalSettlementModel,
)

BASE_DATE = date(2024, 3, 1)
DEFAULT_RATE = Decimal("36.50")
# Rate used by ``make_reconciled`` so foreign equivalents stay exact
ROUND_RATE = Decimal("10")
DECLARED_TOTAL = Decimal("1000")


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture closing_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            AlertGenerator().generate_alerts([])
            logs = captured_logs()
            assert any(r["message"] == "alerts_generated" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("closing_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Record factories
# =============================================================================


@pytest.fixture
def policy() -> ReconciliationPolicy:
    return ReconciliationPolicy.with_defaults()


@pytest.fixture
def make_session() -> Callable[..., CashSession]:
    """Factory for closed sessions with sensible defaults."""

    def _make(
        session_id: str | None = None,
        *,
        company_id: str = "company-1",
        cashier_id: str | None = "cashier-1",
        session_date: date = BASE_DATE,
        daily_rate: Decimal = DEFAULT_RATE,
        status: SessionStatus = SessionStatus.CLOSED,
        closed_at: datetime | None = None,
        **overrides,
    ) -> CashSession:
        if status == SessionStatus.CLOSED and closed_at is None:
            closed_at = datetime.combine(session_date, time(18, 0), tzinfo=timezone.utc)
        return CashSession(
            id=session_id or str(uuid4()),
            company_id=company_id,
            cashier_id=cashier_id,
            session_date=session_date,
            opened_at=datetime.combine(session_date, time(8, 0), tzinfo=timezone.utc),
            daily_rate=daily_rate,
            status=status,
            closed_at=closed_at,
            **overrides,
        )

    return _make


@pytest.fixture
def make_count() -> Callable[..., CashCountDetail]:
    def _make(session_id: str, **amounts) -> CashCountDetail:
        return CashCountDetail(session_id=session_id, **amounts)

    return _make


@pytest.fixture
def make_record(make_session) -> Callable[..., SessionRecord]:
    """
    Factory for nested session records.

    ``count`` is a dict of CashCountDetail amounts, or None for a session
    closed without a physical count.  ``settlements`` is a list of local
    amounts.
    """

    def _make(
        session_id: str | None = None,
        *,
        count: dict | None = None,
        settlements: tuple[Decimal, ...] | list[Decimal] = (),
        cashier_name: str | None = None,
        **session_kwargs,
    ) -> SessionRecord:
        session = make_session(session_id, **session_kwargs)
        count_detail = CashCountDetail(session_id=session.id, **count) if count is not None else None
        terminal = tuple(
            TerminalSettlement(
                session_id=session.id,
                bank_reference=f"bank-{i}",
                amount_local=amount,
            )
            for i, amount in enumerate(settlements)
        )
        return SessionRecord(
            session=session,
            count_detail=count_detail,
            settlements=terminal,
            cashier_name=cashier_name,
        )

    return _make


@pytest.fixture
def calculator() -> ReconciliationCalculator:
    return ReconciliationCalculator()


@pytest.fixture
def make_reconciled(make_record, calculator) -> Callable[..., ReconciledSession]:
    """
    Factory for reconciled sessions with a chosen fiscal foreign equivalent.

    Declared total is 1000 at a rate of 10; the fiscal report is set so that
    ``foreign_equivalent`` comes out exactly as requested.  ``sign=-1``
    makes declared lower than the fiscal report.  ``fe=0`` records no
    fiscal report.  ``with_count=False`` omits the physical count.
    """

    def _make(
        fe: Decimal | str | int = 0,
        *,
        sign: int = 1,
        with_count: bool = True,
        **record_kwargs,
    ) -> ReconciledSession:
        fe = Decimal(str(fe))
        record_kwargs.setdefault("daily_rate", ROUND_RATE)
        record_kwargs.setdefault("mobile_payments_total", DECLARED_TOTAL)
        fiscal = None
        if fe:
            fiscal = DECLARED_TOTAL - sign * fe * record_kwargs["daily_rate"]
        count = {"fiscal_report_total": fiscal} if with_count else None
        return calculator.reconcile(make_record(count=count, **record_kwargs))

    return _make


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture(scope="session")
def db_engine():
    """In-memory SQLite engine with every table created once per run."""
    engine = init_engine_from_url("sqlite://")
    create_tables()
    yield engine
    drop_tables()
    reset_engine()


@pytest.fixture
def db_session(db_engine):
    """Session bound to an outer transaction rolled back after the test."""
    connection = db_engine.connect()
    transaction = connection.begin()
    session = Session(bind=connection)
    yield session
    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def seed_session(db_session) -> Callable[..., CashSessionModel]:
    """
    Insert a session row with optional count and settlements.

    Returns the ORM row after flush.
    """

    def _seed(
        *,
        company_id: str = "company-1",
        cashier_id: str | None = "cashier-1",
        session_date: date = BASE_DATE,
        daily_rate: Decimal = DEFAULT_RATE,
        status: str = "closed",
        closed_hour: int = 18,
        count: dict | None = None,
        settlements: tuple[Decimal, ...] | list[Decimal] = (),
        **columns,
    ) -> CashSessionModel:
        row = CashSessionModel(
            company_id=company_id,
            cashier_id=cashier_id,
            session_date=session_date,
            opened_at=datetime.combine(session_date, time(8, 0), tzinfo=timezone.utc),
            closed_at=(
                datetime.combine(session_date, time(closed_hour, 0), tzinfo=timezone.utc)
                if status == "closed" else None
            ),
            daily_rate=daily_rate,
            status=status,
            **columns,
        )
        db_session.add(row)
        db_session.flush()
        if count is not None:
            db_session.add(CashCountModel(session_id=row.id, **count))
        for i, amount in enumerate(settlements):
            db_session.add(TerminalSettlementModel(
                session_id=row.id,
                bank_reference=f"bank-{i}",
                amount_local=amount,
            ))
        db_session.flush()
        db_session.expire(row)
        return row

    return _seed


@pytest.fixture
def seed_cashier(db_session) -> Callable[..., Cashier]:
    def _seed(display_name: str, *, company_id: str = "company-1", role: str = "user", cashier_id: str | None = None) -> Cashier:
        cashier = Cashier(display_name=display_name, company_id=company_id, role=role)
        if cashier_id is not None:
            cashier.id = cashier_id
        db_session.add(cashier)
        db_session.flush()
        return cashier

    return _seed
