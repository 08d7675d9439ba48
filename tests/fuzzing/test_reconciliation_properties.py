"""
Property-based tests for the closing engines.

Properties fuzzed here:
- Physical identity holds exactly for any amounts and rate
- Foreign equivalent is non-negative and uses the session's own rate
- Classifiers are total; severity never drops as the magnitude grows
- Alert sorting is a stable, rank-descending permutation
- Aggregation and distribution counts stay consistent
- Comparing a session with itself yields zero deltas
"""

from datetime import date, datetime, timezone
from decimal import Decimal

from hypothesis import given, settings
from hypothesis import strategies as st

from closing_engines.aggregation import StatisticalAggregator
from closing_engines.alerts import Alert, AlertKind, sort_alerts
from closing_engines.classification import DiscrepancyClassifier, PhysicalDiscrepancyTier, Severity
from closing_engines.comparison import SessionComparator
from closing_engines.reconciliation import ReconciliationCalculator
from closing_engines.trends import TrendAnalyzer
from closing_kernel.domain.filters import SessionFilter
from closing_kernel.domain.records import (
    CashCountDetail,
    CashSession,
    SessionRecord,
    SessionStatus,
    TerminalSettlement,
)

amounts = st.decimals(
    min_value=Decimal("0"), max_value=Decimal("1000000"), places=2,
    allow_nan=False, allow_infinity=False,
)
rates = st.decimals(
    min_value=Decimal("0.01"), max_value=Decimal("10000"), places=2,
    allow_nan=False, allow_infinity=False,
)
signed = st.decimals(
    min_value=Decimal("-100000"), max_value=Decimal("100000"), places=4,
    allow_nan=False, allow_infinity=False,
)

CALCULATOR = ReconciliationCalculator()
CLASSIFIER = DiscrepancyClassifier()


def _severity_rank(value: Decimal) -> int:
    severity = CLASSIFIER.classify_fiscal(value)
    return 0 if severity is None else severity.rank


@st.composite
def session_records(draw, session_id="s-1"):
    rate = draw(rates)
    session = CashSession(
        id=session_id,
        company_id="company-1",
        cashier_id=draw(st.sampled_from(["c1", "c2", "c3", None])),
        session_date=date(2024, 3, draw(st.integers(min_value=1, max_value=28))),
        opened_at=datetime(2024, 3, 1, 8, tzinfo=timezone.utc),
        closed_at=datetime(2024, 3, 1, 18, tzinfo=timezone.utc),
        status=SessionStatus.CLOSED,
        daily_rate=rate,
        mobile_payments_total=draw(amounts),
        foreign_transfers_total_local=draw(amounts),
        credit_notes_total=draw(amounts),
        credit_sales_total_local=draw(amounts),
    )
    count = None
    if draw(st.booleans()):
        count = CashCountDetail(
            session_id=session_id,
            counted_foreign_primary=draw(amounts),
            counted_foreign_secondary=draw(amounts),
            counted_local=draw(amounts),
            fiscal_report_total=draw(st.one_of(st.none(), amounts)),
        )
    settlements = tuple(
        TerminalSettlement(session_id=session_id, bank_reference=f"b{i}", amount_local=amount)
        for i, amount in enumerate(draw(st.lists(amounts, max_size=4)))
    )
    return SessionRecord(session=session, count_detail=count, settlements=settlements)


class TestReconciliationProperties:

    @given(record=session_records())
    @settings(max_examples=200, deadline=None)
    def test_physical_identity(self, record):
        summary = CALCULATOR.reconcile(record).summary
        assert summary.total_declared - (
            summary.total_cash_counted + summary.total_terminal_settlements
        ) == summary.discrepancy_vs_physical_total

    @given(record=session_records())
    @settings(max_examples=200, deadline=None)
    def test_foreign_equivalent(self, record):
        summary = CALCULATOR.reconcile(record).summary

        assert summary.foreign_equivalent >= 0
        assert summary.foreign_equivalent == (
            abs(summary.discrepancy_vs_fiscal_report) / record.session.daily_rate
        )
        if not summary.has_fiscal_report:
            assert summary.discrepancy_vs_fiscal_report == 0

    @given(record=session_records())
    @settings(max_examples=100, deadline=None)
    def test_self_comparison_has_zero_deltas(self, record):
        summary = CALCULATOR.reconcile(record).summary
        result = SessionComparator().compare(summary, summary)

        assert result.declared_delta == 0
        assert result.cash_counted_delta == 0
        assert result.terminal_delta == 0
        assert result.physical_discrepancy_delta == 0

    @given(first=session_records(), second=session_records())
    @settings(max_examples=100, deadline=None)
    def test_deltas_are_first_minus_second(self, first, second):
        a = CALCULATOR.reconcile(first).summary
        b = CALCULATOR.reconcile(second).summary

        forward = SessionComparator().compare(a, b)
        backward = SessionComparator().compare(b, a)

        assert forward.declared_delta == a.total_declared - b.total_declared
        assert forward.physical_discrepancy_delta == -backward.physical_discrepancy_delta


class TestClassificationProperties:

    @given(value=signed)
    def test_physical_total(self, value):
        assert CLASSIFIER.classify_physical(value) in set(PhysicalDiscrepancyTier)

    @given(value=signed)
    def test_fiscal_none_iff_zero(self, value):
        assert (CLASSIFIER.classify_fiscal(value) is None) == (value == 0)

    @given(a=signed, b=signed)
    def test_severity_monotonic(self, a, b):
        low, high = sorted([abs(a), abs(b)])
        assert _severity_rank(low) <= _severity_rank(high)
        assert CLASSIFIER.classify_physical(low).rank <= CLASSIFIER.classify_physical(high).rank


class TestAlertOrderingProperties:

    @given(severities=st.lists(st.sampled_from(list(Severity)), max_size=30))
    def test_sort_is_stable_permutation(self, severities):
        alerts = [
            Alert(f"s-{i}", None, AlertKind.HIGH_FISCAL_DISCREPANCY, severity, "m")
            for i, severity in enumerate(severities)
        ]

        ordered = sort_alerts(alerts)

        assert sorted(a.session_id for a in ordered) == sorted(a.session_id for a in alerts)
        ranks = [a.severity.rank for a in ordered]
        assert ranks == sorted(ranks, reverse=True)
        for severity in Severity:
            original = [a.session_id for a in alerts if a.severity == severity]
            assert [a.session_id for a in ordered if a.severity == severity] == original


class TestAggregationProperties:

    @given(records=st.lists(session_records(), max_size=12))
    @settings(max_examples=50, deadline=None)
    def test_counts_consistent(self, records):
        reconciled = CALCULATOR.reconcile_all(records)

        stats = StatisticalAggregator().aggregate(reconciled, SessionFilter())
        bands = TrendAnalyzer().discrepancy_distribution(reconciled)

        assert 0 <= stats.sessions_with_discrepancy <= stats.session_count == len(records)
        assert sum(b.session_count for b in bands) == len(records)
        assert len(stats.top_cashiers) <= 5
        assert sum(c.session_count for c in stats.top_cashiers) <= stats.session_count
