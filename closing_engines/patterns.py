"""
closing_engines.patterns -- Cross-session discrepancy patterns.

Responsibility:
    Look across many sessions for behaviour no single session reveals:

    * per cashier: consistently high fiscal discrepancies, consistent
      one-sided discrepancies (always short or always over), and a
      strictly escalating run of discrepancies;
    * per company: daily mean discrepancies rising over the last days and
      already above the mild threshold.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Emits ``closing_engines.alerts.Alert`` so the review service can merge
    these with per-session alerts.

Invariants enforced:
    - Sessions are analysed in chronological order (session date, then
      close time), whatever order they arrive in.
    - A cashier is only analysed with at least ``patterns.min_sessions``
      sessions; escalation needs ``patterns.escalation_window`` sessions.
    - Company trends need ``trends.min_sessions`` sessions and
      ``trends.rising_days`` distinct days.
    - Every alert anchors to the latest session of its group.
    - Sessions without a cashier are skipped by the per-cashier checks
      and still count toward the company trend.

Failure modes:
    - None.  Too little data means no alerts.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date, datetime
from decimal import Decimal

from closing_config.schema import ReconciliationPolicy
from closing_kernel.domain.currency import format_amount
from closing_kernel.logging_config import get_logger
from closing_engines.alerts import Alert, AlertKind, RecommendedAction, sort_alerts
from closing_engines.classification import Severity
from closing_engines.reconciliation import ReconciledSession
from closing_engines.tracer import traced_engine

logger = get_logger("engines.patterns")


def chronological(reconciled: Sequence[ReconciledSession]) -> list[ReconciledSession]:
    """Oldest first, by session date then close (or open) time."""
    return sorted(reconciled, key=_chronological_key)


def _chronological_key(item: ReconciledSession) -> tuple[date, datetime]:
    session = item.session
    return (session.session_date, session.closed_at or session.opened_at)


def _strictly_increasing(values: Sequence[Decimal]) -> bool:
    return all(later > earlier for earlier, later in zip(values, values[1:]))


def _share(count: int, total: int) -> Decimal:
    return Decimal(count) / Decimal(total)


class PatternDetector:
    """
    Detects cashier patterns and company trends.

    Contract:
        Pure; callers decide the window (typically the last 30 days).
    Guarantees:
        - SUSPICIOUS_PATTERN (SEVERE) when the share of sessions above the
          moderate threshold exceeds ``patterns.high_share``.
        - SUSPICIOUS_PATTERN (MODERATE) when the share of shortages, or of
          overages, above the discrepancy floor exceeds
          ``patterns.one_sided_share``.
        - ESCALATING_DISCREPANCY (SEVERE) when the last
          ``patterns.escalation_window`` foreign equivalents strictly rise.
        - NEGATIVE_TREND (SEVERE) when the last ``trends.rising_days``
          daily means strictly rise and the last exceeds the mild threshold.
    """

    def __init__(self, policy: ReconciliationPolicy | None = None):
        self.policy = policy or ReconciliationPolicy.with_defaults()

    @traced_engine("patterns", "1.0")
    def detect_cashier_patterns(self, reconciled: Sequence[ReconciledSession]) -> list[Alert]:
        """Per-cashier pattern alerts, most severe first."""
        by_cashier: dict[str, list[ReconciledSession]] = {}
        for item in chronological(reconciled):
            if item.cashier_id is None:
                continue
            by_cashier.setdefault(item.cashier_id, []).append(item)

        alerts: list[Alert] = []
        analysed = 0
        for sessions in by_cashier.values():
            if len(sessions) < self.policy.patterns.min_sessions:
                continue
            analysed += 1
            alerts.extend(self._cashier_alerts(sessions))

        logger.info("cashier_patterns_detected", extra={
            "cashier_count": len(by_cashier),
            "analysed_count": analysed,
            "alert_count": len(alerts),
        })
        return sort_alerts(alerts)

    def _cashier_alerts(self, sessions: list[ReconciledSession]) -> list[Alert]:
        patterns = self.policy.patterns
        thresholds = self.policy.thresholds
        latest = sessions[-1]
        total = len(sessions)
        alerts: list[Alert] = []

        high = [s for s in sessions if s.foreign_equivalent > thresholds.fiscal.moderate_up_to]
        if _share(len(high), total) > patterns.high_share:
            alerts.append(Alert(
                session_id=latest.session_id,
                cashier_id=latest.cashier_id,
                kind=AlertKind.SUSPICIOUS_PATTERN,
                severity=Severity.SEVERE,
                message=(
                    f"Consistently high discrepancies for {latest.cashier_label}: "
                    f"{len(high)} of {total} closings"
                ),
                recommended_actions=(
                    RecommendedAction.TRAINING_REVIEW,
                    RecommendedAction.DIRECT_SUPERVISION,
                    RecommendedAction.CLOSING_AUDIT,
                ),
                session_date=latest.session_date,
                variant="high",
            ))

        floor = thresholds.has_discrepancy_from
        shortages = [
            s for s in sessions
            if s.summary.discrepancy_vs_fiscal_report > 0 and s.foreign_equivalent > floor
        ]
        overages = [
            s for s in sessions
            if s.summary.discrepancy_vs_fiscal_report < 0 and s.foreign_equivalent > floor
        ]
        if (
            _share(len(shortages), total) > patterns.one_sided_share
            or _share(len(overages), total) > patterns.one_sided_share
        ):
            variant = "shortage" if len(shortages) > len(overages) else "overage"
            alerts.append(Alert(
                session_id=latest.session_id,
                cashier_id=latest.cashier_id,
                kind=AlertKind.SUSPICIOUS_PATTERN,
                severity=Severity.MODERATE,
                message=f"Consistent {variant} pattern in recent closings by {latest.cashier_label}",
                recommended_actions=(
                    RecommendedAction.VERIFY_PROCEDURES,
                    RecommendedAction.COUNT_TRAINING,
                ),
                session_date=latest.session_date,
                variant=variant,
            ))

        window = patterns.escalation_window
        if total >= window:
            recent = [s.foreign_equivalent for s in sessions[-window:]]
            if _strictly_increasing(recent):
                alerts.append(Alert(
                    session_id=latest.session_id,
                    cashier_id=latest.cashier_id,
                    kind=AlertKind.ESCALATING_DISCREPANCY,
                    severity=Severity.SEVERE,
                    message=(
                        f"Discrepancies rising over the last {window} closings "
                        f"by {latest.cashier_label}"
                    ),
                    recommended_actions=(
                        RecommendedAction.IMMEDIATE_INTERVENTION,
                        RecommendedAction.VERIFY_PROCEDURES,
                    ),
                    session_date=latest.session_date,
                ))

        return alerts

    @traced_engine("patterns", "1.0")
    def detect_company_trend(self, reconciled: Sequence[ReconciledSession]) -> list[Alert]:
        """
        Company-level NEGATIVE_TREND alert, if any.

        Returns:
            A list with at most one alert.
        """
        trends = self.policy.trends
        if len(reconciled) < trends.min_sessions:
            return []

        ordered = chronological(reconciled)
        daily: dict[date, list[Decimal]] = {}
        for item in ordered:
            daily.setdefault(item.session_date, []).append(item.foreign_equivalent)
        means = [
            sum(values, Decimal("0")) / Decimal(len(values))
            for _, values in sorted(daily.items())
        ]
        if len(means) < trends.rising_days:
            return []

        recent = means[-trends.rising_days:]
        mild = self.policy.thresholds.fiscal.mild_up_to
        if not (_strictly_increasing(recent) and recent[-1] > mild):
            return []

        latest = ordered[-1]
        amount = format_amount(recent[-1], self.policy.currency.primary_foreign)
        logger.warning("negative_trend_detected", extra={
            "company_id": latest.session.company_id,
            "latest_daily_mean": str(recent[-1]),
            "day_count": len(means),
        })
        return [Alert(
            session_id=latest.session_id,
            cashier_id=None,
            kind=AlertKind.NEGATIVE_TREND,
            severity=Severity.SEVERE,
            message=(
                f"Daily mean discrepancy rising for {trends.rising_days} days, "
                f"now {amount}"
            ),
            recommended_actions=(
                RecommendedAction.PROCESS_REVIEW,
                RecommendedAction.GENERAL_TRAINING,
                RecommendedAction.SYSTEMS_AUDIT,
            ),
            session_date=latest.session_date,
        )]
