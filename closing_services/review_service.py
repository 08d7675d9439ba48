"""
ClosingReviewService -- Supervisor-facing review of cash-register closings.

Composes a ``SessionSource`` (data retrieval) with the pure engines
(reconciliation, aggregation, alerts, patterns, trends, comparison).

Architecture: closing_services -- imperative shell.
    Fetches through the source, hands frozen records to the engines and
    returns their results unchanged.  All arithmetic lives in the engines.

Failure modes:
    - ValidationError subclasses when a filter is malformed (raised at
      ``SessionFilter`` construction, before any fetch).
    - SessionNotFoundError from ``compare_sessions``.
    - UpstreamFailure propagated from the source; never retried here.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, timedelta

from closing_config.schema import ReconciliationPolicy
from closing_kernel.domain.clock import Clock, SystemClock
from closing_kernel.domain.filters import SessionFilter
from closing_kernel.domain.records import SessionRecord
from closing_kernel.exceptions import SessionNotFoundError
from closing_kernel.logging_config import LogContext, get_logger
from closing_kernel.selectors.base import SessionSource

from closing_engines.aggregation import ClosingStatistics, StatisticalAggregator
from closing_engines.alerts import Alert, AlertGenerator, sort_alerts
from closing_engines.comparison import SessionComparator, SessionComparison
from closing_engines.patterns import PatternDetector
from closing_engines.reconciliation import ReconciledSession, ReconciliationCalculator
from closing_engines.trends import (
    CashierPerformance,
    DailyTrendPoint,
    DistributionBand,
    TrendAnalyzer,
)

logger = get_logger("services.closing_review")

DEFAULT_ANALYSIS_DAYS = 30


@dataclass(frozen=True)
class ClosingDashboard:
    """Everything the review dashboard shows for one window."""

    window: SessionFilter
    statistics: ClosingStatistics
    daily_trend: tuple[DailyTrendPoint, ...] = field(default_factory=tuple)
    cashier_performance: tuple[CashierPerformance, ...] = field(default_factory=tuple)
    distribution: tuple[DistributionBand, ...] = field(default_factory=tuple)


class ClosingReviewService:
    """Service that reviews closed cash sessions.

    Contract:
        - ``list_reconciled()`` returns sessions matching every filter
          criterion, newest first, each with its summary.
        - ``summary_statistics()`` aggregates one window.
        - ``review_alerts()`` merges per-session, pattern and trend alerts,
          most severe first.
        - ``compare_sessions()`` compares two sessions by id.
        - ``dashboard()`` builds statistics and the three dashboard series.

    Non-goals:
        - Does NOT write anything (read-only).
        - Does NOT retry failed fetches.
        - Does NOT track alert read state.
    """

    def __init__(
        self,
        source: SessionSource,
        policy: ReconciliationPolicy | None = None,
        clock: Clock | None = None,
        analysis_days: int = DEFAULT_ANALYSIS_DAYS,
    ) -> None:
        self._source = source
        self._policy = policy or ReconciliationPolicy.with_defaults()
        self._clock = clock or SystemClock()
        self._analysis_days = analysis_days
        self._calculator = ReconciliationCalculator(self._policy)
        self._aggregator = StatisticalAggregator(self._policy)
        self._alerts = AlertGenerator(self._policy)
        self._patterns = PatternDetector(self._policy)
        self._trends = TrendAnalyzer(self._policy)
        self._comparator = SessionComparator(self._policy.comparison)

    # =========================================================================
    # Listing and statistics
    # =========================================================================

    def list_reconciled(self, session_filter: SessionFilter) -> list[ReconciledSession]:
        """Reconciled sessions matching every criterion of ``session_filter``."""
        with LogContext.bind(company_id=session_filter.company_id):
            reconciled = self._reconcile(session_filter)
            selected = self._aggregator.select(reconciled, session_filter)
            logger.info("reconciled_sessions_listed", extra={
                "fetched_count": len(reconciled),
                "selected_count": len(selected),
            })
            return selected

    def summary_statistics(self, session_filter: SessionFilter) -> ClosingStatistics:
        """Aggregate statistics for the window."""
        with LogContext.bind(company_id=session_filter.company_id):
            return self._aggregator.aggregate(self._reconcile(session_filter), session_filter)

    # =========================================================================
    # Alerts
    # =========================================================================

    def review_alerts(
        self,
        session_filter: SessionFilter | None = None,
        include_patterns: bool = True,
        include_trends: bool = True,
    ) -> list[Alert]:
        """
        All alerts for the window, most severe first.

        Args:
            session_filter: Window to review.  Defaults to the last
                ``analysis_days`` days.
            include_patterns: Add per-cashier pattern alerts.
            include_trends: Add the company-level trend alert.
        """
        window = session_filter or self.default_window()
        with LogContext.bind(company_id=window.company_id):
            reconciled = self.list_reconciled(window)
            alerts = self._alerts.generate_alerts(reconciled)
            if include_patterns:
                alerts.extend(self._patterns.detect_cashier_patterns(reconciled))
            if include_trends:
                alerts.extend(self._patterns.detect_company_trend(reconciled))
            merged = sort_alerts(alerts)
            logger.info("review_alerts_ready", extra={
                "alert_count": len(merged),
                "include_patterns": include_patterns,
                "include_trends": include_trends,
            })
            return merged

    # =========================================================================
    # Comparison
    # =========================================================================

    def compare_sessions(self, first_id: str, second_id: str) -> SessionComparison:
        """
        Compare two sessions by id.

        Raises:
            SessionNotFoundError: If either id does not resolve.
        """
        first = self._source.fetch_session(first_id)
        second = self._source.fetch_session(second_id)
        missing = [
            session_id
            for session_id, record in ((first_id, first), (second_id, second))
            if record is None
        ]
        if missing:
            logger.warning("compare_sessions_not_found", extra={"missing": missing})
            raise SessionNotFoundError(missing)

        return self._comparator.compare_reconciled(
            self._calculator.reconcile(first),
            self._calculator.reconcile(second),
        )

    # =========================================================================
    # Dashboard
    # =========================================================================

    def dashboard(
        self,
        session_filter: SessionFilter | None = None,
        previous_filter: SessionFilter | None = None,
    ) -> ClosingDashboard:
        """
        Statistics plus daily trend, cashier performance and distribution.

        Args:
            session_filter: Current window.  Defaults to the last
                ``analysis_days`` days.
            previous_filter: Window the cashier trend compares against.
                Defaults to the equally long window just before the
                current one when it has both dates.
        """
        window = session_filter or self.default_window()
        previous_window = previous_filter or self.previous_window(window)

        with LogContext.bind(company_id=window.company_id):
            current = self.list_reconciled(window)
            previous = self.list_reconciled(previous_window) if previous_window else []
            statistics = self._aggregator.aggregate(current, window)

            start, end = self._trend_range(window, current)
            daily = self._trends.daily_trend(current, start, end) if start and end else []

            return ClosingDashboard(
                window=window,
                statistics=statistics,
                daily_trend=tuple(daily),
                cashier_performance=tuple(self._trends.cashier_performance(current, previous)),
                distribution=tuple(self._trends.discrepancy_distribution(current)),
            )

    def default_window(self, company_id: str | None = None) -> SessionFilter:
        """The last ``analysis_days`` days up to today."""
        today = self._clock.today()
        return SessionFilter(
            date_from=today - timedelta(days=self._analysis_days),
            date_to=today,
            company_id=company_id,
        )

    @staticmethod
    def previous_window(window: SessionFilter) -> SessionFilter | None:
        """Equally long window ending the day before ``window`` starts."""
        if window.date_from is None or window.date_to is None:
            return None
        length = window.date_to - window.date_from
        previous_end = window.date_from - timedelta(days=1)
        return replace(window, date_from=previous_end - length, date_to=previous_end)

    # =========================================================================
    # Internals
    # =========================================================================

    def _reconcile(self, session_filter: SessionFilter) -> list[ReconciledSession]:
        records = self._source.fetch_sessions(session_filter)
        if session_filter.company_id is not None:
            records = self._attach_cashier_names(records, session_filter.company_id)
        return self._calculator.reconcile_all(records)

    def _attach_cashier_names(
        self,
        records: list[SessionRecord],
        company_id: str,
    ) -> list[SessionRecord]:
        names = {c.id: c.display_name for c in self._source.fetch_cashiers(company_id)}
        return [
            replace(record, cashier_name=names[record.session.cashier_id])
            if record.session.cashier_id in names
            else record
            for record in records
        ]

    @staticmethod
    def _trend_range(
        window: SessionFilter,
        reconciled: list[ReconciledSession],
    ) -> tuple[date | None, date | None]:
        dates = [item.session_date for item in reconciled]
        start = window.date_from or (min(dates) if dates else None)
        end = window.date_to or (max(dates) if dates else None)
        return start, end
