"""
closing_engines.trends -- Dashboard series: daily trend, cashier performance,
discrepancy distribution.

Responsibility:
    Shape reconciled sessions into the three views a supervisor's
    dashboard shows next to the summary statistics:

    * ``daily_trend``: one point per calendar day, empty days included;
    * ``cashier_performance``: per-cashier efficiency with a trend against
      the previous window;
    * ``discrepancy_distribution``: how many sessions fall in each
      fiscal-discrepancy band.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Consumed by ``ClosingReviewService.dashboard``.

Invariants enforced:
    - Efficiency is ``(count - with_discrepancy) / count * 100`` and
      100 when there are no sessions.
    - Cashier trend compares mean foreign equivalents: a drop of more than
      ``trends.trend_delta`` is IMPROVING, a rise of more than it is
      WORSENING, anything else (or no previous data) is STABLE.
    - Distribution bands partition the input: balanced below the
      discrepancy floor, then the fiscal classifier's bands.  Percentages
      are 0 for an empty input.

Failure modes:
    - InvalidRangeError from ``daily_trend`` if ``start > end``.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum

from closing_config.schema import ReconciliationPolicy
from closing_kernel.domain.records import ZERO
from closing_kernel.exceptions import InvalidRangeError
from closing_kernel.logging_config import get_logger
from closing_engines.classification import DiscrepancyClassifier, Severity
from closing_engines.reconciliation import ReconciledSession
from closing_engines.tracer import traced_engine

logger = get_logger("engines.trends")

HUNDRED = Decimal("100")


class CashierTrend(str, Enum):
    IMPROVING = "improving"
    STABLE = "stable"
    WORSENING = "worsening"


class DiscrepancyBand(str, Enum):
    """Distribution bands; everything above balanced follows ``Severity``."""

    BALANCED = "balanced"
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"


_BAND_BY_SEVERITY = {
    Severity.MILD: DiscrepancyBand.MILD,
    Severity.MODERATE: DiscrepancyBand.MODERATE,
    Severity.SEVERE: DiscrepancyBand.SEVERE,
}


@dataclass(frozen=True)
class DailyTrendPoint:
    day: date
    session_count: int
    sessions_with_discrepancy: int
    mean_discrepancy: Decimal
    total_declared: Decimal
    efficiency: Decimal


@dataclass(frozen=True)
class CashierPerformance:
    cashier_id: str | None
    cashier_label: str
    session_count: int
    sessions_with_discrepancy: int
    mean_discrepancy: Decimal
    efficiency: Decimal
    trend: CashierTrend


@dataclass(frozen=True)
class DistributionBand:
    band: DiscrepancyBand
    session_count: int
    percentage: Decimal


def efficiency(session_count: int, with_discrepancy: int) -> Decimal:
    """Share of sessions without a discrepancy, in percent."""
    if session_count == 0:
        return HUNDRED
    return Decimal(session_count - with_discrepancy) * HUNDRED / Decimal(session_count)


def _mean(values: Sequence[Decimal]) -> Decimal:
    if not values:
        return ZERO
    return sum(values, ZERO) / Decimal(len(values))


class TrendAnalyzer:
    """
    Builds the dashboard series.

    Contract:
        Pure; the caller chooses both windows.
    Non-goals:
        - Chart rendering and colour choice beyond the enums' ``color``.
    """

    def __init__(self, policy: ReconciliationPolicy | None = None):
        self.policy = policy or ReconciliationPolicy.with_defaults()
        self._classifier = DiscrepancyClassifier(self.policy.thresholds)

    @traced_engine("trends", "1.0", fingerprint_fields=("start", "end"))
    def daily_trend(
        self,
        reconciled: Sequence[ReconciledSession],
        start: date,
        end: date,
    ) -> list[DailyTrendPoint]:
        """
        One point per day in ``[start, end]``, oldest first.

        Sessions dated outside the range are ignored.

        Raises:
            InvalidRangeError: If ``start`` is after ``end``.
        """
        if start > end:
            raise InvalidRangeError("trend_window", start, end)

        by_day: dict[date, list[ReconciledSession]] = {}
        for item in reconciled:
            if start <= item.session_date <= end:
                by_day.setdefault(item.session_date, []).append(item)

        points: list[DailyTrendPoint] = []
        day = start
        while day <= end:
            items = by_day.get(day, [])
            flagged = sum(1 for i in items if self._classifier.has_discrepancy(i.foreign_equivalent))
            points.append(DailyTrendPoint(
                day=day,
                session_count=len(items),
                sessions_with_discrepancy=flagged,
                mean_discrepancy=_mean([i.foreign_equivalent for i in items]),
                total_declared=sum((i.summary.total_declared for i in items), ZERO),
                efficiency=efficiency(len(items), flagged),
            ))
            day += timedelta(days=1)

        logger.info("daily_trend_computed", extra={
            "start": start,
            "end": end,
            "day_count": len(points),
            "session_count": sum(p.session_count for p in points),
        })
        return points

    @traced_engine("trends", "1.0")
    def cashier_performance(
        self,
        current: Sequence[ReconciledSession],
        previous: Sequence[ReconciledSession] = (),
    ) -> list[CashierPerformance]:
        """
        Per-cashier performance over ``current``, trend against ``previous``.

        Sorted by efficiency descending; ties keep first-seen order.
        """
        current_groups = self._group_by_cashier(current)
        previous_means = {
            cashier_id: _mean([i.foreign_equivalent for i in items])
            for cashier_id, items in self._group_by_cashier(previous).items()
        }

        delta_limit = self.policy.trends.trend_delta
        rows: list[CashierPerformance] = []
        for cashier_id, items in current_groups.items():
            flagged = sum(1 for i in items if self._classifier.has_discrepancy(i.foreign_equivalent))
            mean = _mean([i.foreign_equivalent for i in items])

            trend = CashierTrend.STABLE
            if cashier_id in previous_means:
                delta = mean - previous_means[cashier_id]
                if delta < -delta_limit:
                    trend = CashierTrend.IMPROVING
                elif delta > delta_limit:
                    trend = CashierTrend.WORSENING

            rows.append(CashierPerformance(
                cashier_id=cashier_id,
                cashier_label=items[0].cashier_label,
                session_count=len(items),
                sessions_with_discrepancy=flagged,
                mean_discrepancy=mean,
                efficiency=efficiency(len(items), flagged),
                trend=trend,
            ))

        rows.sort(key=lambda row: row.efficiency, reverse=True)
        logger.info("cashier_performance_computed", extra={
            "cashier_count": len(rows),
            "worsening_count": sum(1 for r in rows if r.trend == CashierTrend.WORSENING),
        })
        return rows

    @traced_engine("trends", "1.0")
    def discrepancy_distribution(
        self,
        reconciled: Sequence[ReconciledSession],
    ) -> list[DistributionBand]:
        """Count and percentage per band, every band present, in band order."""
        counts = dict.fromkeys(DiscrepancyBand, 0)
        for item in reconciled:
            counts[self.band_of(item.foreign_equivalent)] += 1

        total = len(reconciled)
        return [
            DistributionBand(
                band=band,
                session_count=count,
                percentage=(Decimal(count) * HUNDRED / Decimal(total)) if total else ZERO,
            )
            for band, count in counts.items()
        ]

    def band_of(self, foreign_equivalent: Decimal) -> DiscrepancyBand:
        if not self._classifier.has_discrepancy(foreign_equivalent):
            return DiscrepancyBand.BALANCED
        severity = self._classifier.classify_fiscal(foreign_equivalent)
        if severity is None:
            return DiscrepancyBand.BALANCED
        return _BAND_BY_SEVERITY[severity]

    @staticmethod
    def _group_by_cashier(
        reconciled: Sequence[ReconciledSession],
    ) -> dict[str | None, list[ReconciledSession]]:
        groups: dict[str | None, list[ReconciledSession]] = {}
        for item in reconciled:
            groups.setdefault(item.cashier_id, []).append(item)
        return groups
