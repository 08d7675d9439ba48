"""
closing_engines.aggregation -- Summary statistics over a window of sessions.

Responsibility:
    Filter reconciled sessions by a ``SessionFilter`` and summarize them:
    counts, mean fiscal discrepancy, channel sums and the cashiers with the
    most sessions in the window.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Consumed by ``closing_services.ClosingReviewService``.

Invariants enforced:
    - Every filter criterion is applied before any statistic is computed,
      including the two that only exist after reconciliation
      (``with_discrepancy`` and the declared-amount range).
    - An empty window yields zero counts, zero sums and a zero mean; it
      never divides by zero.
    - Top cashiers are ordered by session count descending with ties in
      first-seen order; sessions without a cashier are left out of the
      breakdown but still counted in the totals.

Failure modes:
    - None.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal

from closing_config.schema import ReconciliationPolicy
from closing_kernel.domain.filters import SessionFilter
from closing_kernel.domain.records import ZERO
from closing_kernel.logging_config import get_logger
from closing_engines.classification import DiscrepancyClassifier
from closing_engines.reconciliation import ReconciledSession
from closing_engines.tracer import traced_engine

logger = get_logger("engines.aggregation")


@dataclass(frozen=True)
class CashierStatistic:
    """Per-cashier entry of the top-cashiers breakdown."""

    cashier_id: str
    cashier_label: str
    session_count: int
    mean_discrepancy: Decimal


@dataclass(frozen=True)
class ClosingStatistics:
    """Summary of a filtered window of sessions."""

    session_count: int = 0
    sessions_with_discrepancy: int = 0
    mean_discrepancy: Decimal = ZERO
    total_cash_counted: Decimal = ZERO
    total_declared: Decimal = ZERO
    total_terminal_settlements: Decimal = ZERO
    total_closing_cash: Decimal = ZERO
    top_cashiers: tuple[CashierStatistic, ...] = field(default_factory=tuple)

    @property
    def discrepancy_rate(self) -> Decimal:
        """Percentage of sessions with a discrepancy; 0 for an empty window."""
        if self.session_count == 0:
            return ZERO
        return Decimal(self.sessions_with_discrepancy) * Decimal("100") / Decimal(self.session_count)


def _mean(values: Sequence[Decimal]) -> Decimal:
    if not values:
        return ZERO
    return sum(values, ZERO) / Decimal(len(values))


class StatisticalAggregator:
    """
    Computes ``ClosingStatistics`` for a window.

    Contract:
        Pure; the input list is not modified.
    Guarantees:
        - ``sessions_with_discrepancy`` counts foreign equivalents at or
          above ``thresholds.has_discrepancy_from``.
        - ``top_cashiers`` holds at most ``aggregation.top_cashiers`` entries.
    Non-goals:
        - Does not fetch; the window is re-applied to whatever is passed.
    """

    def __init__(self, policy: ReconciliationPolicy | None = None):
        self.policy = policy or ReconciliationPolicy.with_defaults()
        self._classifier = DiscrepancyClassifier(self.policy.thresholds)

    def select(
        self,
        reconciled: Sequence[ReconciledSession],
        window: SessionFilter,
    ) -> list[ReconciledSession]:
        """Sessions of ``reconciled`` that satisfy every criterion of ``window``."""
        return [item for item in reconciled if self._matches(item, window)]

    def _matches(self, item: ReconciledSession, window: SessionFilter) -> bool:
        session = item.session
        if window.status is not None and session.status != window.status:
            return False
        if not window.matches_date(session.session_date):
            return False
        if window.company_id is not None and session.company_id != window.company_id:
            return False
        if window.cashier_id is not None and session.cashier_id != window.cashier_id:
            return False
        if window.with_discrepancy and not self._classifier.has_discrepancy(item.foreign_equivalent):
            return False
        return window.matches_declared(item.summary.total_declared)

    @traced_engine("aggregation", "1.0", fingerprint_fields=("window",))
    def aggregate(
        self,
        reconciled: Sequence[ReconciledSession],
        window: SessionFilter,
    ) -> ClosingStatistics:
        """
        Filter, then summarize.

        Args:
            reconciled: Reconciled sessions, typically from
                ``ReconciliationCalculator.reconcile_all``.
            window: Criteria to apply before summarizing.

        Returns:
            ClosingStatistics (all zero when nothing matches).
        """
        selected = self.select(reconciled, window)

        with_discrepancy = sum(
            1 for item in selected if self._classifier.has_discrepancy(item.foreign_equivalent)
        )
        stats = ClosingStatistics(
            session_count=len(selected),
            sessions_with_discrepancy=with_discrepancy,
            mean_discrepancy=_mean([item.foreign_equivalent for item in selected]),
            total_cash_counted=sum((item.summary.total_cash_counted for item in selected), ZERO),
            total_declared=sum((item.summary.total_declared for item in selected), ZERO),
            total_terminal_settlements=sum(
                (item.summary.total_terminal_settlements for item in selected), ZERO
            ),
            total_closing_cash=sum(
                (item.session.closing_cash_local or ZERO for item in selected), ZERO
            ),
            top_cashiers=self._top_cashiers(selected),
        )

        logger.info("statistics_aggregated", extra={
            "input_count": len(reconciled),
            "session_count": stats.session_count,
            "sessions_with_discrepancy": stats.sessions_with_discrepancy,
            "mean_discrepancy": str(stats.mean_discrepancy),
            "top_cashier_count": len(stats.top_cashiers),
        })
        return stats

    def _top_cashiers(self, selected: Sequence[ReconciledSession]) -> tuple[CashierStatistic, ...]:
        groups: dict[str, list[ReconciledSession]] = {}
        for item in selected:
            if item.cashier_id is None:
                continue
            groups.setdefault(item.cashier_id, []).append(item)

        ranked = sorted(groups.items(), key=lambda kv: len(kv[1]), reverse=True)
        limit = self.policy.aggregation.top_cashiers
        return tuple(
            CashierStatistic(
                cashier_id=cashier_id,
                cashier_label=items[0].cashier_label,
                session_count=len(items),
                mean_discrepancy=_mean([item.foreign_equivalent for item in items]),
            )
            for cashier_id, items in ranked[:limit]
        )
