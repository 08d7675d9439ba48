"""
End-to-end engine scenarios: record -> summary -> classification -> alerts.

Both scenarios use one session declaring 1000.00, counting 950.00 in local
cash and settling 40.00 through a card terminal.
"""

from decimal import Decimal

import pytest

from closing_engines.alerts import AlertGenerator, AlertKind
from closing_engines.classification import (
    DiscrepancyClassifier,
    PhysicalDiscrepancyTier,
    Severity,
)
from closing_engines.reconciliation import ReconciliationCalculator


@pytest.fixture
def closing(make_record):
    def _make(**count):
        return make_record(
            "session-1",
            cashier_name="Carmen Diaz",
            mobile_payments_total=Decimal("1000.00"),
            count={"counted_local": Decimal("950.00"), **count},
            settlements=[Decimal("40.00")],
            daily_rate=Decimal("40"),
        )

    return _make


class TestWithoutFiscalReport:

    def test_acceptable_and_silent(self, closing):
        reconciled = ReconciliationCalculator().reconcile(closing())
        summary = reconciled.summary

        assert summary.total_cash_counted == Decimal("950.00")
        assert summary.total_terminal_settlements == Decimal("40.00")
        assert summary.discrepancy_vs_physical_total == Decimal("10.00")
        assert summary.discrepancy_vs_fiscal_report == Decimal("0")

        classifier = DiscrepancyClassifier()
        assert classifier.classify_physical(summary.discrepancy_vs_physical_total) == (
            PhysicalDiscrepancyTier.ACCEPTABLE
        )
        # Count detail present: no missing-count alert either
        assert AlertGenerator().generate_alerts([reconciled]) == []


class TestWithFiscalReport:

    def test_mild_alert_naming_cashier(self, closing):
        reconciled = ReconciliationCalculator().reconcile(
            closing(fiscal_report_total=Decimal("960.00"))
        )
        summary = reconciled.summary

        assert summary.discrepancy_vs_fiscal_report == Decimal("40.00")
        assert summary.discrepancy_vs_fiscal_report_foreign_equivalent == Decimal("1.00")
        assert DiscrepancyClassifier().classify_fiscal(summary.foreign_equivalent) == Severity.MILD

        alerts = AlertGenerator().generate_alerts([reconciled])

        assert len(alerts) == 1
        assert alerts[0].kind == AlertKind.HIGH_FISCAL_DISCREPANCY
        assert alerts[0].severity == Severity.MILD
        assert alerts[0].session_id == "session-1"
        assert "Carmen Diaz" in alerts[0].message
        assert "$ 1.00" in alerts[0].message
