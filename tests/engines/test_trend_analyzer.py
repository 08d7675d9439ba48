"""Tests for the dashboard series: daily trend, cashier performance, distribution."""

from datetime import date
from decimal import Decimal

import pytest

from closing_engines.trends import (
    CashierTrend,
    DiscrepancyBand,
    TrendAnalyzer,
    efficiency,
)
from closing_kernel.exceptions import InvalidRangeError


class TestEfficiency:

    def test_no_sessions_is_full_efficiency(self):
        assert efficiency(0, 0) == Decimal("100")

    def test_share_without_discrepancy(self):
        assert efficiency(4, 1) == Decimal("75")
        assert efficiency(3, 3) == Decimal("0")


class TestDailyTrend:

    def setup_method(self):
        self.analyzer = TrendAnalyzer()

    def test_inverted_range_rejected(self):
        with pytest.raises(InvalidRangeError) as exc_info:
            self.analyzer.daily_trend([], date(2024, 3, 5), date(2024, 3, 1))
        assert exc_info.value.field_name == "trend_window"

    def test_empty_days_included(self, make_reconciled):
        sessions = [
            make_reconciled(4, session_date=date(2024, 3, 1)),
            make_reconciled(0, session_date=date(2024, 3, 3)),
        ]

        points = self.analyzer.daily_trend(sessions, date(2024, 3, 1), date(2024, 3, 3))

        assert [p.day for p in points] == [date(2024, 3, d) for d in (1, 2, 3)]
        assert [p.session_count for p in points] == [1, 0, 1]
        empty = points[1]
        assert empty.mean_discrepancy == Decimal("0")
        assert empty.total_declared == Decimal("0")
        assert empty.efficiency == Decimal("100")

    def test_day_figures(self, make_reconciled):
        day = date(2024, 3, 2)
        sessions = [make_reconciled(fe, session_date=day) for fe in (0, 0, 0, 8)]

        point = self.analyzer.daily_trend(sessions, day, day)[0]

        assert point.session_count == 4
        assert point.sessions_with_discrepancy == 1
        assert point.mean_discrepancy == Decimal("2")
        assert point.total_declared == Decimal("4000")
        assert point.efficiency == Decimal("75")

    def test_sessions_outside_range_ignored(self, make_reconciled):
        sessions = [make_reconciled(session_date=date(2024, 2, 28))]
        points = self.analyzer.daily_trend(sessions, date(2024, 3, 1), date(2024, 3, 2))
        assert sum(p.session_count for p in points) == 0

    def test_single_day(self):
        points = self.analyzer.daily_trend([], date(2024, 3, 1), date(2024, 3, 1))
        assert len(points) == 1


class TestCashierPerformance:

    def setup_method(self):
        self.analyzer = TrendAnalyzer()

    def test_trend_against_previous_window(self, make_reconciled):
        current = [
            make_reconciled(10, cashier_id="worse"),
            make_reconciled(2, cashier_id="better"),
            make_reconciled(3, cashier_id="steady"),
            make_reconciled(3, cashier_id="new"),
        ]
        previous = [
            make_reconciled(2, cashier_id="worse"),
            make_reconciled(8, cashier_id="better"),
            make_reconciled("3.5", cashier_id="steady"),
        ]

        rows = {r.cashier_id: r for r in self.analyzer.cashier_performance(current, previous)}

        assert rows["worse"].trend == CashierTrend.WORSENING
        assert rows["better"].trend == CashierTrend.IMPROVING
        assert rows["steady"].trend == CashierTrend.STABLE
        assert rows["new"].trend == CashierTrend.STABLE

    def test_delta_threshold_is_exclusive(self, make_reconciled):
        rows = self.analyzer.cashier_performance(
            [make_reconciled(3, cashier_id="c")],
            [make_reconciled(2, cashier_id="c")],
        )
        assert rows[0].trend == CashierTrend.STABLE

    def test_sorted_by_efficiency(self, make_reconciled):
        current = [
            make_reconciled(5, cashier_id="low"),
            make_reconciled(0, cashier_id="high"),
            make_reconciled(5, cashier_id="mid"),
            make_reconciled(0, cashier_id="mid"),
        ]

        rows = self.analyzer.cashier_performance(current)

        assert [r.cashier_id for r in rows] == ["high", "mid", "low"]
        assert [r.efficiency for r in rows] == [Decimal("100"), Decimal("50"), Decimal("0")]

    def test_unassigned_sessions_grouped(self, make_reconciled):
        rows = self.analyzer.cashier_performance([make_reconciled(cashier_id=None)])

        assert rows[0].cashier_id is None
        assert rows[0].cashier_label == "Unassigned cashier"

    def test_label_from_name(self, make_reconciled):
        rows = self.analyzer.cashier_performance([make_reconciled(cashier_name="Luis")])
        assert rows[0].cashier_label == "Luis"


class TestDistribution:

    def setup_method(self):
        self.analyzer = TrendAnalyzer()

    def test_bands_and_percentages(self, make_reconciled):
        sessions = [make_reconciled(fe) for fe in ("0", "0.5", "3", "10", "20")]

        bands = self.analyzer.discrepancy_distribution(sessions)

        assert [b.band for b in bands] == list(DiscrepancyBand)
        assert [b.session_count for b in bands] == [2, 1, 1, 1]
        assert [b.percentage for b in bands] == [
            Decimal("40"), Decimal("20"), Decimal("20"), Decimal("20"),
        ]

    def test_empty_input(self):
        bands = self.analyzer.discrepancy_distribution([])

        assert len(bands) == 4
        assert all(b.session_count == 0 and b.percentage == 0 for b in bands)

    @pytest.mark.parametrize("fe,band", [
        ("0", DiscrepancyBand.BALANCED),
        ("0.99", DiscrepancyBand.BALANCED),
        ("1", DiscrepancyBand.MILD),
        ("5.00", DiscrepancyBand.MILD),
        ("5.01", DiscrepancyBand.MODERATE),
        ("15.01", DiscrepancyBand.SEVERE),
    ])
    def test_band_of(self, fe, band):
        assert self.analyzer.band_of(Decimal(fe)) == band
