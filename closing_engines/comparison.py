"""
closing_engines.comparison -- Side-by-side comparison of two sessions.

Responsibility:
    Given two sessions, report the deltas of the headline figures, which
    session closed more precisely (smaller absolute physical discrepancy)
    and a list of recommendations naming the differences worth a
    reviewer's attention.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    The review service resolves session ids and calls
    ``compare_reconciled``; ``compare`` works on bare summaries.

Invariants enforced:
    - Deltas are ``first - second``: a positive ``declared_delta`` means
      the first session declared more.  Comparing a session with itself
      yields all-zero deltas.
    - Ties on precision go to the second session, while the
      recommendations report the tie as EQUAL_PRECISION.
    - Recommendations keep a fixed order: precision, volume, cash share,
      cashier, fiscal agreement, shift length.

Failure modes:
    - None.  Unknown ids are the service's concern (SessionNotFoundError).
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from closing_config.schema import ComparisonSettings
from closing_kernel.logging_config import get_logger
from closing_engines.reconciliation import ReconciledSession, ReconciliationSummary
from closing_engines.tracer import traced_engine

logger = get_logger("engines.comparison")

_SECONDS_PER_HOUR = Decimal("3600")


class ComparisonSide(str, Enum):
    """Which of the two compared sessions."""

    FIRST = "first"
    SECOND = "second"


class ComparisonFinding(str, Enum):
    """What a comparison recommendation calls out."""

    MORE_PRECISE = "more_precise"
    EQUAL_PRECISION = "equal_precision"
    HIGHER_VOLUME = "higher_volume"
    HIGHER_CASH_SHARE = "higher_cash_share"
    SHARE_PRACTICES = "share_practices"
    BETTER_FISCAL_AGREEMENT = "better_fiscal_agreement"
    LONGER_SHIFT = "longer_shift"


@dataclass(frozen=True)
class ComparisonRecommendation:
    """
    One finding of a comparison.

    ``side`` names the session the finding is about; it is None only for
    EQUAL_PRECISION.
    """

    finding: ComparisonFinding
    side: ComparisonSide | None
    session_id: str | None
    message: str


@dataclass(frozen=True)
class SessionComparison:
    """
    Result of comparing two sessions.

    All deltas are ``first - second`` in local currency.
    """

    first: ReconciliationSummary
    second: ReconciliationSummary
    declared_delta: Decimal
    cash_counted_delta: Decimal
    terminal_delta: Decimal
    physical_discrepancy_delta: Decimal
    more_precise: ComparisonSide
    recommendations: tuple[ComparisonRecommendation, ...] = ()

    @property
    def more_precise_summary(self) -> ReconciliationSummary:
        if self.more_precise == ComparisonSide.FIRST:
            return self.first
        return self.second

    @property
    def more_precise_session_id(self) -> str:
        return self.more_precise_summary.session_id

    @property
    def findings(self) -> list[ComparisonFinding]:
        return [r.finding for r in self.recommendations]


def cash_share(summary: ReconciliationSummary) -> Decimal | None:
    """Counted cash as a share of cash plus terminals; None when both are zero."""
    physical = summary.total_physical
    if physical == 0:
        return None
    return summary.total_cash_counted / physical


def shift_hours(item: ReconciledSession) -> Decimal:
    """Open-to-close duration in hours; 0 while the session is open."""
    session = item.session
    if session.closed_at is None:
        return Decimal("0")
    seconds = Decimal(str((session.closed_at - session.opened_at).total_seconds()))
    return seconds / _SECONDS_PER_HOUR


def _side(first_wins: bool) -> ComparisonSide:
    return ComparisonSide.FIRST if first_wins else ComparisonSide.SECOND


class SessionComparator:
    """
    Compares two sessions.

    Contract:
        Pure; the gaps that trigger a recommendation come from
        ``ComparisonSettings`` and are strict (a gap equal to the
        setting is not reported).
    Guarantees:
        - ``more_precise`` is FIRST iff |first.physical| < |second.physical|.
        - Exactly one of MORE_PRECISE / EQUAL_PRECISION is always present.
        - ``compare`` omits the cashier and shift findings, which need the
          session records.
    """

    def __init__(self, settings: ComparisonSettings | None = None):
        self.settings = settings or ComparisonSettings()

    @traced_engine("comparison", "1.1", fingerprint_fields=("first", "second"))
    def compare(
        self,
        first: ReconciliationSummary,
        second: ReconciliationSummary,
    ) -> SessionComparison:
        """Compare two sessions' summaries."""
        return self._compare(first, second, None, None)

    @traced_engine("comparison", "1.1", fingerprint_fields=("first", "second"))
    def compare_reconciled(
        self,
        first: ReconciledSession,
        second: ReconciledSession,
    ) -> SessionComparison:
        """Compare two reconciled sessions, including cashier and shift findings."""
        return self._compare(first.summary, second.summary, first, second)

    def _compare(
        self,
        first: ReconciliationSummary,
        second: ReconciliationSummary,
        first_item: ReconciledSession | None,
        second_item: ReconciledSession | None,
    ) -> SessionComparison:
        more_precise = _side(
            abs(first.discrepancy_vs_physical_total) < abs(second.discrepancy_vs_physical_total)
        )
        declared_delta = first.total_declared - second.total_declared

        if first_item is not None and second_item is not None:
            labels = {
                ComparisonSide.FIRST: _closing_label(first_item),
                ComparisonSide.SECOND: _closing_label(second_item),
            }
        else:
            labels = {
                ComparisonSide.FIRST: f"Session {first.session_id}",
                ComparisonSide.SECOND: f"Session {second.session_id}",
            }
        ids = {ComparisonSide.FIRST: first.session_id, ComparisonSide.SECOND: second.session_id}

        def recommend(finding: ComparisonFinding, side: ComparisonSide, message: str):
            return ComparisonRecommendation(finding, side, ids[side], message)

        recommendations: list[ComparisonRecommendation] = []

        first_abs = abs(first.discrepancy_vs_physical_total)
        second_abs = abs(second.discrepancy_vs_physical_total)
        if first_abs == second_abs:
            recommendations.append(ComparisonRecommendation(
                ComparisonFinding.EQUAL_PRECISION, None, None,
                "Both closings are equally precise",
            ))
        else:
            side = _side(first_abs < second_abs)
            recommendations.append(recommend(
                ComparisonFinding.MORE_PRECISE, side,
                f"{labels[side]} is more precise (smaller discrepancy)",
            ))

        if abs(declared_delta) > self.settings.volume_gap:
            side = _side(declared_delta > 0)
            recommendations.append(recommend(
                ComparisonFinding.HIGHER_VOLUME, side,
                f"{labels[side]} handled a significantly higher volume",
            ))

        first_share, second_share = cash_share(first), cash_share(second)
        if (
            first_share is not None
            and second_share is not None
            and abs(first_share - second_share) > self.settings.cash_share_gap
        ):
            side = _side(first_share > second_share)
            recommendations.append(recommend(
                ComparisonFinding.HIGHER_CASH_SHARE, side,
                f"{labels[side]} took a larger share of its payments in cash",
            ))

        if (
            first_item is not None
            and second_item is not None
            and first_item.cashier_id != second_item.cashier_id
        ):
            best = first_item if more_precise == ComparisonSide.FIRST else second_item
            recommendations.append(recommend(
                ComparisonFinding.SHARE_PRACTICES, more_precise,
                f"{best.cashier_label}, cashier of the more precise closing, "
                "could share their practices",
            ))

        if first.has_fiscal_report and second.has_fiscal_report:
            first_fiscal = abs(first.discrepancy_vs_fiscal_report)
            second_fiscal = abs(second.discrepancy_vs_fiscal_report)
            if abs(first_fiscal - second_fiscal) > self.settings.fiscal_agreement_gap:
                side = _side(first_fiscal < second_fiscal)
                recommendations.append(recommend(
                    ComparisonFinding.BETTER_FISCAL_AGREEMENT, side,
                    f"{labels[side]} agrees more closely with its fiscal report",
                ))

        if first_item is not None and second_item is not None:
            first_hours, second_hours = shift_hours(first_item), shift_hours(second_item)
            if abs(first_hours - second_hours) > self.settings.shift_hours_gap:
                side = _side(first_hours > second_hours)
                recommendations.append(recommend(
                    ComparisonFinding.LONGER_SHIFT, side,
                    f"{labels[side]} had a longer shift",
                ))

        comparison = SessionComparison(
            first=first,
            second=second,
            declared_delta=declared_delta,
            cash_counted_delta=first.total_cash_counted - second.total_cash_counted,
            terminal_delta=first.total_terminal_settlements - second.total_terminal_settlements,
            physical_discrepancy_delta=(
                first.discrepancy_vs_physical_total - second.discrepancy_vs_physical_total
            ),
            more_precise=more_precise,
            recommendations=tuple(recommendations),
        )

        logger.info("sessions_compared", extra={
            "first_session_id": first.session_id,
            "second_session_id": second.session_id,
            "declared_delta": str(comparison.declared_delta),
            "physical_discrepancy_delta": str(comparison.physical_discrepancy_delta),
            "more_precise": more_precise.value,
            "findings": [f.value for f in comparison.findings],
        })
        return comparison


def _closing_label(item: ReconciledSession) -> str:
    return f"Closing of {item.session_date.isoformat()} by {item.cashier_label}"
