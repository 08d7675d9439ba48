"""
closing_engines.alerts -- Per-session review alerts.

Responsibility:
    Turn reconciled sessions into actionable alerts: a fiscal-discrepancy
    alert whenever the Z report disagrees with the declared channels, and
    a missing-count alert whenever a session was closed without a physical
    cash count.  Each alert carries the follow-up actions a supervisor
    should take.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Pattern and trend alerts (``closing_engines.patterns``) reuse ``Alert``
    and ``sort_alerts`` from here.

Invariants enforced:
    - Only the fiscal scale drives severity; the physical tier never does.
    - A session with a zero fiscal discrepancy produces no fiscal alert.
    - The two alert kinds are independent: one session may yield both.
    - Output is sorted by severity rank descending; equal severities keep
      their input order (stable sort).
    - ``alert_id`` is deterministic: ``"{session_id}-{kind}"``.

Failure modes:
    - None.

Usage:
    from closing_engines.alerts import AlertGenerator

    alerts = AlertGenerator().generate_alerts(reconciled_sessions)
    alerts[0].severity  # the most severe first
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from closing_config.schema import ReconciliationPolicy
from closing_kernel.domain.currency import format_amount
from closing_kernel.logging_config import get_logger
from closing_engines.classification import DiscrepancyClassifier, Severity
from closing_engines.reconciliation import ReconciledSession
from closing_engines.tracer import traced_engine

logger = get_logger("engines.alerts")


class AlertKind(str, Enum):
    """What an alert is about."""

    HIGH_FISCAL_DISCREPANCY = "high_fiscal_discrepancy"
    MISSING_CASH_COUNT = "missing_cash_count"
    SUSPICIOUS_PATTERN = "suspicious_pattern"
    ESCALATING_DISCREPANCY = "escalating_discrepancy"
    NEGATIVE_TREND = "negative_trend"


class RecommendedAction(str, Enum):
    """Follow-up a supervisor can take on an alert."""

    VERIFY_FISCAL_REPORT = "verify_fiscal_report"
    REVIEW_FISCAL_DEVICE = "review_fiscal_device"
    DIRECT_SUPERVISION = "direct_supervision"
    IMMEDIATE_AUDIT = "immediate_audit"
    COMPLETE_CASH_COUNT = "complete_cash_count"
    PROCEDURE_TRAINING = "procedure_training"
    DETAILED_INVESTIGATION = "detailed_investigation"
    CONTINUOUS_SUPERVISION = "continuous_supervision"
    IMMEDIATE_INTERVENTION = "immediate_intervention"
    PROCESS_REVIEW = "process_review"
    TRAINING_REVIEW = "training_review"
    CLOSING_AUDIT = "closing_audit"
    VERIFY_PROCEDURES = "verify_procedures"
    COUNT_TRAINING = "count_training"
    GENERAL_TRAINING = "general_training"
    SYSTEMS_AUDIT = "systems_audit"


@dataclass(frozen=True)
class Alert:
    """
    A review alert anchored to one session.

    Company-level alerts anchor to the latest session of the window and
    carry no cashier.  ``variant`` tells apart two alerts of the same kind
    on the same session (e.g. shortage vs. overage patterns).
    """

    session_id: str
    cashier_id: str | None
    kind: AlertKind
    severity: Severity
    message: str
    recommended_actions: tuple[RecommendedAction, ...] = field(default_factory=tuple)
    session_date: date | None = None
    variant: str | None = None

    @property
    def alert_id(self) -> str:
        if self.variant:
            return f"{self.session_id}-{self.kind.value}-{self.variant}"
        return f"{self.session_id}-{self.kind.value}"


def recommended_actions(kind: AlertKind, severity: Severity) -> tuple[RecommendedAction, ...]:
    """Follow-up actions for an alert of ``kind`` at ``severity``."""
    if kind == AlertKind.HIGH_FISCAL_DISCREPANCY:
        actions = [RecommendedAction.VERIFY_FISCAL_REPORT, RecommendedAction.REVIEW_FISCAL_DEVICE]
        if severity == Severity.SEVERE:
            actions += [RecommendedAction.DIRECT_SUPERVISION, RecommendedAction.IMMEDIATE_AUDIT]
        return tuple(actions)
    if kind == AlertKind.MISSING_CASH_COUNT:
        return (RecommendedAction.COMPLETE_CASH_COUNT, RecommendedAction.PROCEDURE_TRAINING)
    if kind in (AlertKind.SUSPICIOUS_PATTERN, AlertKind.ESCALATING_DISCREPANCY):
        return (RecommendedAction.DETAILED_INVESTIGATION, RecommendedAction.CONTINUOUS_SUPERVISION)
    return (RecommendedAction.IMMEDIATE_INTERVENTION, RecommendedAction.PROCESS_REVIEW)


def sort_alerts(alerts: Iterable[Alert]) -> list[Alert]:
    """Most severe first; equal severities keep their relative order."""
    return sorted(alerts, key=lambda alert: alert.severity.rank, reverse=True)


class AlertGenerator:
    """
    Generates per-session alerts.

    Contract:
        Pure; does not fetch, persist or deduplicate across calls.
    Guarantees:
        - HIGH_FISCAL_DISCREPANCY iff the foreign equivalent is non-zero,
          with severity from the fiscal scale.
        - MISSING_CASH_COUNT (MILD) iff the session has no count detail.
    Non-goals:
        - Cross-session patterns; see ``closing_engines.patterns``.
        - Read/unread state and notification delivery.
    """

    def __init__(self, policy: ReconciliationPolicy | None = None):
        self.policy = policy or ReconciliationPolicy.with_defaults()
        self._classifier = DiscrepancyClassifier(self.policy.thresholds)

    @traced_engine("alerts", "1.0")
    def generate_alerts(self, reconciled: Sequence[ReconciledSession]) -> list[Alert]:
        """
        Alerts for every session, most severe first.

        Args:
            reconciled: Sessions with their summaries.

        Returns:
            Stably sorted alerts (may be empty).
        """
        alerts: list[Alert] = []
        for item in reconciled:
            fiscal_alert = self._fiscal_alert(item)
            if fiscal_alert is not None:
                alerts.append(fiscal_alert)
            if item.record.count_detail is None:
                alerts.append(self._missing_count_alert(item))

        ordered = sort_alerts(alerts)
        logger.info("alerts_generated", extra={
            "session_count": len(reconciled),
            "alert_count": len(ordered),
            "severe_count": sum(1 for a in ordered if a.severity == Severity.SEVERE),
        })
        return ordered

    def _fiscal_alert(self, item: ReconciledSession) -> Alert | None:
        severity = self._classifier.classify_fiscal(item.foreign_equivalent)
        if severity is None:
            return None
        amount = format_amount(item.foreign_equivalent, self.policy.currency.primary_foreign)
        kind = AlertKind.HIGH_FISCAL_DISCREPANCY
        return Alert(
            session_id=item.session_id,
            cashier_id=item.cashier_id,
            kind=kind,
            severity=severity,
            message=f"Fiscal report discrepancy of {amount} in closing by {item.cashier_label}",
            recommended_actions=recommended_actions(kind, severity),
            session_date=item.session_date,
        )

    def _missing_count_alert(self, item: ReconciledSession) -> Alert:
        kind = AlertKind.MISSING_CASH_COUNT
        severity = Severity.MILD
        return Alert(
            session_id=item.session_id,
            cashier_id=item.cashier_id,
            kind=kind,
            severity=severity,
            message=f"Closing by {item.cashier_label} has no cash count detail",
            recommended_actions=recommended_actions(kind, severity),
            session_date=item.session_date,
        )
