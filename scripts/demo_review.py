#!/usr/bin/env python3
"""
Closing review demo against a seeded session store.

Seeds one company with three cashiers and two weeks of closings (one
cashier drifting into ever larger fiscal discrepancies, one closing a day
without a cash count), then runs the full review: statistics, alerts,
a session comparison and the dashboard series.

Usage:
    python3 scripts/demo_review.py
    python3 scripts/demo_review.py --policy path/to/policy.yaml
    python3 scripts/demo_review.py --db-url sqlite:///closings.db --verbose
"""

import argparse
import logging
import sys
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from pathlib import Path

# ---------------------------------------------------------------------------
# Project root on sys.path
# ---------------------------------------------------------------------------
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
DB_URL = "sqlite://"
COMPANY_ID = "demo-company"
TODAY = date(2024, 3, 14)
DAYS = 14
BASE_RATE = Decimal("36.20")

CASHIERS = [
    ("cashier-ana", "Ana Romero"),
    ("cashier-luis", "Luis Perez"),
    ("cashier-marta", "Marta Silva"),
]


def _fiscal_offset(cashier_id: str, day: int) -> Decimal:
    """Foreign-equivalent gap between declared channels and the Z report."""
    if cashier_id == "cashier-luis":
        # Drifts upward every day
        return Decimal(day) * Decimal("1.5")
    if cashier_id == "cashier-marta":
        return Decimal("0.40") if day % 3 == 0 else Decimal("0")
    return Decimal("0")


def seed(session) -> int:
    """Insert cashiers and DAYS of closed sessions; return the session count."""
    from closing_kernel.models.cash_session import (
        CashCountModel,
        Cashier,
        CashSessionModel,
        TerminalSettlementModel,
    )

    for cashier_id, name in CASHIERS:
        session.add(Cashier(id=cashier_id, company_id=COMPANY_ID, display_name=name, role="user"))

    created = 0
    for day in range(DAYS):
        session_date = TODAY - timedelta(days=DAYS - 1 - day)
        rate = BASE_RATE + Decimal(day) * Decimal("0.05")
        for index, (cashier_id, _) in enumerate(CASHIERS):
            mobile = Decimal("5200.00") + Decimal(index * 350)
            transfers = Decimal("1800.00")
            row = CashSessionModel(
                company_id=COMPANY_ID,
                cashier_id=cashier_id,
                session_date=session_date,
                opened_at=datetime.combine(session_date, time(8, 0), tzinfo=timezone.utc),
                closed_at=datetime.combine(session_date, time(18, index * 10), tzinfo=timezone.utc),
                daily_rate=rate,
                opening_cash_local=Decimal("200.00"),
                closing_cash_local=Decimal("180.00"),
                mobile_payments_total=mobile,
                mobile_payments_count=40 + index,
                foreign_transfers_total_local=transfers,
                foreign_transfers_count=6,
                status="closed",
            )
            session.add(row)
            session.flush()
            created += 1

            declared = mobile + transfers
            if cashier_id == "cashier-marta" and day == DAYS - 2:
                # Closed without a physical count
                continue

            gap = _fiscal_offset(cashier_id, day) * rate
            session.add(CashCountModel(
                session_id=row.id,
                counted_foreign_primary=Decimal("20"),
                counted_local=declared - Decimal("2500.00") - Decimal("20") * rate,
                fiscal_report_total=declared - gap,
            ))
            session.add(TerminalSettlementModel(
                session_id=row.id,
                bank_reference=f"POS-{day:02d}-{index}",
                bank_name="Banco Demo",
                amount_local=Decimal("2500.00"),
            ))
    session.flush()
    return created


def _print_alerts(alerts) -> None:
    for alert in alerts:
        actions = ", ".join(a.value for a in alert.recommended_actions)
        print(f"    [{alert.severity.label:8s}] {alert.kind.value:24s} {alert.message}")
        print(f"               actions: {actions}")


def main() -> int:
    parser = argparse.ArgumentParser(description="Cash closing review demo")
    parser.add_argument("--db-url", default=DB_URL, help="Database URL")
    parser.add_argument("--policy", type=Path, default=None, help="Policy YAML override")
    parser.add_argument("--verbose", action="store_true", help="Emit structured JSON logs")
    args = parser.parse_args()

    from closing_config import get_active_policy
    from closing_kernel.db.engine import create_tables, init_engine_from_url, session_scope
    from closing_kernel.domain.clock import DeterministicClock
    from closing_kernel.domain.currency import format_amount
    from closing_kernel.domain.filters import SessionFilter
    from closing_kernel.logging_config import configure_logging
    from closing_kernel.selectors.session_selector import CashSessionSelector
    from closing_services import ClosingReviewService

    configure_logging(level=logging.INFO if args.verbose else logging.WARNING)

    print()
    print("  [1/5] Loading reconciliation policy...")
    policy = get_active_policy(args.policy)
    print(f"         Policy: {policy.policy_id} v{policy.version} ({policy.checksum[:12]})")

    print("  [2/5] Creating session store...")
    init_engine_from_url(args.db_url)
    create_tables()

    with session_scope() as session:
        print("  [3/5] Seeding closings...")
        count = seed(session)
        print(f"         Seeded {count} sessions for {len(CASHIERS)} cashiers")

        clock = DeterministicClock(datetime.combine(TODAY, time(20, 0), tzinfo=timezone.utc))
        service = ClosingReviewService(CashSessionSelector(session), policy=policy, clock=clock)
        window = service.default_window(COMPANY_ID)
        primary = policy.currency.primary_foreign
        local = policy.currency.local

        print("  [4/5] Reviewing window "
              f"{window.date_from.isoformat()} .. {window.date_to.isoformat()}")
        stats = service.summary_statistics(window)
        print(f"         Sessions: {stats.session_count}  "
              f"with discrepancy: {stats.sessions_with_discrepancy} "
              f"({stats.discrepancy_rate:.1f}%)")
        print(f"         Mean discrepancy: {format_amount(stats.mean_discrepancy, primary)}")
        print(f"         Declared: {format_amount(stats.total_declared, local)}  "
              f"counted: {format_amount(stats.total_cash_counted, local)}  "
              f"terminals: {format_amount(stats.total_terminal_settlements, local)}")
        for entry in stats.top_cashiers:
            print(f"           {entry.cashier_label:14s} {entry.session_count:3d} sessions  "
                  f"mean {format_amount(entry.mean_discrepancy, primary)}")

        print()
        alerts = service.review_alerts(window)
        print(f"    ALERTS ({len(alerts)}):")
        _print_alerts(alerts)

        latest = service.list_reconciled(SessionFilter(company_id=COMPANY_ID, date_from=TODAY))
        if len(latest) >= 2:
            comparison = service.compare_sessions(latest[0].session_id, latest[1].session_id)
            print()
            print("    COMPARISON (two latest closings):")
            print(f"      declared delta:  {format_amount(comparison.declared_delta, local)}")
            print(f"      physical delta:  {format_amount(comparison.physical_discrepancy_delta, local)}")
            print(f"      more precise:    {comparison.more_precise.value}")
            for recommendation in comparison.recommendations:
                print(f"      - {recommendation.message}")

        print()
        print("  [5/5] Dashboard...")
        dashboard = service.dashboard(window)
        for point in dashboard.daily_trend[-5:]:
            print(f"      {point.day.isoformat()}  sessions={point.session_count}  "
                  f"mean={format_amount(point.mean_discrepancy, primary)}  "
                  f"efficiency={point.efficiency:.0f}%")
        for row in dashboard.cashier_performance:
            print(f"      {row.cashier_label:14s} efficiency={row.efficiency:.0f}%  trend={row.trend.value}")
        for band in dashboard.distribution:
            print(f"      {band.band.value:9s} {band.session_count:3d} ({band.percentage:.0f}%)")

    print()
    return 0


if __name__ == "__main__":
    sys.exit(main())
