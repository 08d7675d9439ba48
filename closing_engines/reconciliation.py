"""
closing_engines.reconciliation -- Per-session reconciliation figures.

Responsibility:
    Derive, for one cash session, the totals and discrepancies every
    downstream engine consumes: physical cash counted (in local currency),
    terminal settlements, declared channel total, the discrepancy against
    the fiscal ("Z") report (local and foreign-equivalent), and the
    discrepancy against cash plus terminals.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import closing_kernel.domain, closing_config and sibling
    engines.  Produces ``ReconciliationSummary`` / ``ReconciledSession``
    for the classifier, comparator, aggregator and alert generator.

Invariants enforced:
    - Physical identity: ``total_declared - (total_cash_counted +
      total_terminal_settlements) == discrepancy_vs_physical_total``,
      exactly, in Decimal.
    - No fiscal report (absent, zero or negative) means zero fiscal
      discrepancy, never an error.
    - The foreign equivalent is always ``abs(fiscal) / daily_rate`` with
      the session's own rate; it is never quantized here.
    - Records are never mutated; summaries are recomputed on each call.

Failure modes:
    - None on well-formed records.  Incomplete sessions degrade to zeroed
      figures; open sessions are flagged ``is_provisional``.

Audit relevance:
    Every figure a reviewer sees (statistics, alerts, comparisons) is
    derived from one of these summaries, so they are traced via
    ``@traced_engine``.

Usage:
    from closing_engines.reconciliation import ReconciliationCalculator

    calculator = ReconciliationCalculator()
    summary = calculator.summarize(session, count_detail, settlements)
    summary.discrepancy_vs_physical_total
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from closing_config.schema import ReconciliationPolicy
from closing_kernel.domain.records import (
    ZERO,
    CashCountDetail,
    CashSession,
    SessionRecord,
    TerminalSettlement,
)
from closing_kernel.logging_config import get_logger
from closing_engines.currency_normalizer import CurrencyNormalizer
from closing_engines.tracer import traced_engine

logger = get_logger("engines.reconciliation")


@dataclass(frozen=True)
class ReconciliationSummary:
    """
    Derived figures for one session.  All amounts are local currency except
    ``discrepancy_vs_fiscal_report_foreign_equivalent``.
    """

    session_id: str
    total_cash_counted: Decimal
    total_terminal_settlements: Decimal
    total_declared: Decimal
    discrepancy_vs_fiscal_report: Decimal
    discrepancy_vs_fiscal_report_foreign_equivalent: Decimal
    discrepancy_vs_physical_total: Decimal
    is_provisional: bool = False
    has_fiscal_report: bool = False

    @property
    def foreign_equivalent(self) -> Decimal:
        """Short alias for the fiscal discrepancy in foreign units."""
        return self.discrepancy_vs_fiscal_report_foreign_equivalent

    @property
    def total_physical(self) -> Decimal:
        return self.total_cash_counted + self.total_terminal_settlements


@dataclass(frozen=True)
class ReconciledSession:
    """A session record paired with its summary."""

    record: SessionRecord
    summary: ReconciliationSummary

    @property
    def session_id(self) -> str:
        return self.record.session_id

    @property
    def session(self) -> CashSession:
        return self.record.session

    @property
    def cashier_id(self) -> str | None:
        return self.record.session.cashier_id

    @property
    def cashier_label(self) -> str:
        return self.record.cashier_label

    @property
    def session_date(self) -> date:
        return self.record.session.session_date

    @property
    def foreign_equivalent(self) -> Decimal:
        return self.summary.discrepancy_vs_fiscal_report_foreign_equivalent


class ReconciliationCalculator:
    """
    Pure calculator for session reconciliation figures.

    Contract:
        No I/O, no database access, fully deterministic.  The daily rate
        and the cross factor are the only conversion inputs.
    Guarantees:
        - ``total_cash_counted`` is 0 when there is no count detail.
        - ``discrepancy_vs_fiscal_report`` is 0 unless a positive fiscal
          total was recorded.
        - The physical identity holds exactly.
    Non-goals:
        - Does not classify or alert; see ``classification`` and ``alerts``.
        - Does not round; presentation rounds via ``format_amount``.
    """

    def __init__(self, policy: ReconciliationPolicy | None = None):
        self.policy = policy or ReconciliationPolicy.with_defaults()
        self._normalizer = CurrencyNormalizer(self.policy.currency.secondary_cross_factor)

    @traced_engine(
        "reconciliation", "1.0",
        fingerprint_fields=("session", "count_detail", "settlements"),
    )
    def summarize(
        self,
        session: CashSession,
        count_detail: CashCountDetail | None = None,
        settlements: Sequence[TerminalSettlement] = (),
    ) -> ReconciliationSummary:
        """
        Compute the reconciliation summary for one session.

        Args:
            session: The cash session (open sessions are summarized
                provisionally).
            count_detail: Physical count, or None when none was recorded.
            settlements: Terminal settlements of the session.

        Returns:
            ReconciliationSummary; never raises on well-formed records.
        """
        summary = self._compute(session, count_detail, settlements)
        logger.debug("summary_computed", extra={
            "session_id": session.id,
            "total_declared": str(summary.total_declared),
            "total_cash_counted": str(summary.total_cash_counted),
            "total_terminal_settlements": str(summary.total_terminal_settlements),
            "discrepancy_vs_physical_total": str(summary.discrepancy_vs_physical_total),
            "foreign_equivalent": str(summary.foreign_equivalent),
            "is_provisional": summary.is_provisional,
        })
        return summary

    def reconcile(self, record: SessionRecord) -> ReconciledSession:
        """Summarize a nested session record and pair it with the result."""
        summary = self.summarize(record.session, record.count_detail, record.settlements)
        return ReconciledSession(record=record, summary=summary)

    @traced_engine("reconciliation_batch", "1.0")
    def reconcile_all(self, records: Iterable[SessionRecord]) -> list[ReconciledSession]:
        """Reconcile many records, preserving input order."""
        reconciled = [
            ReconciledSession(
                record=record,
                summary=self._compute(record.session, record.count_detail, record.settlements),
            )
            for record in records
        ]
        provisional = sum(1 for r in reconciled if r.summary.is_provisional)
        logger.info("sessions_reconciled", extra={
            "session_count": len(reconciled),
            "provisional_count": provisional,
        })
        return reconciled

    def _compute(
        self,
        session: CashSession,
        count_detail: CashCountDetail | None,
        settlements: Sequence[TerminalSettlement],
    ) -> ReconciliationSummary:
        rate = session.daily_rate

        if count_detail is not None:
            total_cash_counted = self._normalizer.to_local(
                count_detail.counted_foreign_primary,
                count_detail.counted_foreign_secondary,
                count_detail.counted_local,
                rate,
            )
        else:
            total_cash_counted = ZERO

        total_terminal_settlements = sum((s.amount_local for s in settlements), ZERO)

        total_declared = (
            session.mobile_payments_total
            + session.foreign_transfers_total_local
            + session.credit_notes_total
            + session.credit_sales_total_local
        )

        has_fiscal_report = count_detail is not None and count_detail.has_fiscal_report
        if has_fiscal_report:
            discrepancy_vs_fiscal = total_declared - count_detail.fiscal_report_total
        else:
            discrepancy_vs_fiscal = ZERO

        if discrepancy_vs_fiscal:
            foreign_equivalent = abs(discrepancy_vs_fiscal) / rate
        else:
            foreign_equivalent = ZERO

        discrepancy_vs_physical = total_declared - (total_cash_counted + total_terminal_settlements)

        return ReconciliationSummary(
            session_id=session.id,
            total_cash_counted=total_cash_counted,
            total_terminal_settlements=total_terminal_settlements,
            total_declared=total_declared,
            discrepancy_vs_fiscal_report=discrepancy_vs_fiscal,
            discrepancy_vs_fiscal_report_foreign_equivalent=foreign_equivalent,
            discrepancy_vs_physical_total=discrepancy_vs_physical,
            is_provisional=not session.is_closed,
            has_fiscal_report=has_fiscal_report,
        )
