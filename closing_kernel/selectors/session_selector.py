"""
Cash-session query selector.

Provides read-only access to sessions together with their cash count and
terminal settlements, plus the cashier directory of a company.

Key design decisions:
- Returns frozen domain records, not ORM models.
- Uses the caller's Session; never opens its own.
- Nested children are eager-loaded with ``selectinload`` so one call
  yields complete ``SessionRecord`` objects.
- Only the criteria a database can evaluate are pushed down (dates,
  company, cashier, status).  Criteria that need a reconciliation summary
  are left to the engines.
- Any SQLAlchemyError becomes UpstreamFailure; nothing is retried here.
"""

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload

from closing_kernel.domain.filters import SessionFilter
from closing_kernel.domain.records import (
    CashCountDetail,
    CashierRef,
    CashSession,
    SessionRecord,
    SessionStatus,
    TerminalSettlement,
)
from closing_kernel.exceptions import InvalidIdentifierError, UpstreamFailure
from closing_kernel.logging_config import get_logger
from closing_kernel.models.cash_session import (
    CashCountModel,
    Cashier,
    CashSessionModel,
    TerminalSettlementModel,
)
from closing_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.session")

TILL_ROLES = ("user", "admin")


class CashSessionSelector(BaseSelector[CashSessionModel]):
    """SQLAlchemy implementation of ``SessionSource``."""

    def fetch_sessions(self, session_filter: SessionFilter) -> list[SessionRecord]:
        """
        Fetch sessions matching the database-evaluable part of the filter.

        Ordered by session date, then close time, newest first.

        Raises:
            UpstreamFailure: If the query fails.
        """
        stmt = (
            select(CashSessionModel)
            .options(
                selectinload(CashSessionModel.cash_count),
                selectinload(CashSessionModel.settlements),
            )
            .order_by(
                CashSessionModel.session_date.desc(),
                CashSessionModel.closed_at.desc(),
            )
        )
        if session_filter.status is not None:
            stmt = stmt.where(CashSessionModel.status == session_filter.status.value)
        if session_filter.date_from is not None:
            stmt = stmt.where(CashSessionModel.session_date >= session_filter.date_from)
        if session_filter.date_to is not None:
            stmt = stmt.where(CashSessionModel.session_date <= session_filter.date_to)
        if session_filter.company_id is not None:
            stmt = stmt.where(CashSessionModel.company_id == session_filter.company_id)
        if session_filter.cashier_id is not None:
            stmt = stmt.where(CashSessionModel.cashier_id == session_filter.cashier_id)

        try:
            rows = self.session.execute(stmt).scalars().all()
        except SQLAlchemyError as exc:
            logger.error(
                "fetch_sessions_failed",
                extra={"error": str(exc), "company_id": session_filter.company_id},
            )
            raise UpstreamFailure("fetch_sessions", str(exc)) from exc

        records = [self._to_record(row) for row in rows]
        logger.info(
            "sessions_fetched",
            extra={
                "count": len(records),
                "company_id": session_filter.company_id,
                "cashier_id": session_filter.cashier_id,
                "date_from": session_filter.date_from,
                "date_to": session_filter.date_to,
            },
        )
        return records

    def fetch_session(self, session_id: str) -> SessionRecord | None:
        """
        Fetch one session by id regardless of status.

        Raises:
            InvalidIdentifierError: If ``session_id`` is blank.
            UpstreamFailure: If the query fails.
        """
        if not session_id or not session_id.strip():
            raise InvalidIdentifierError("session_id", session_id)

        stmt = (
            select(CashSessionModel)
            .options(
                selectinload(CashSessionModel.cash_count),
                selectinload(CashSessionModel.settlements),
            )
            .where(CashSessionModel.id == session_id)
        )
        try:
            row = self.session.execute(stmt).scalars().one_or_none()
        except SQLAlchemyError as exc:
            logger.error("fetch_session_failed", extra={"session_id": session_id, "error": str(exc)})
            raise UpstreamFailure("fetch_session", str(exc)) from exc

        if row is None:
            logger.debug("session_not_found", extra={"session_id": session_id})
            return None
        return self._to_record(row)

    def fetch_cashiers(self, company_id: str) -> list[CashierRef]:
        """
        Cashiers of a company who may run a till, ordered by name.

        Raises:
            InvalidIdentifierError: If ``company_id`` is blank.
            UpstreamFailure: If the query fails.
        """
        if not company_id or not company_id.strip():
            raise InvalidIdentifierError("company_id", company_id)

        stmt = (
            select(Cashier)
            .where(Cashier.company_id == company_id)
            .where(Cashier.role.in_(TILL_ROLES))
            .order_by(Cashier.display_name)
        )
        try:
            rows = self.session.execute(stmt).scalars().all()
        except SQLAlchemyError as exc:
            logger.error("fetch_cashiers_failed", extra={"company_id": company_id, "error": str(exc)})
            raise UpstreamFailure("fetch_cashiers", str(exc)) from exc

        return [CashierRef(id=row.id, display_name=row.display_name) for row in rows]

    # =========================================================================
    # Row conversion
    # =========================================================================

    def _to_record(self, row: CashSessionModel) -> SessionRecord:
        session = CashSession(
            id=row.id,
            company_id=row.company_id,
            cashier_id=row.cashier_id,
            session_date=row.session_date,
            opened_at=row.opened_at,
            closed_at=row.closed_at,
            daily_rate=row.daily_rate,
            opening_cash_local=row.opening_cash_local,
            opening_cash_foreign=row.opening_cash_foreign,
            closing_cash_local=row.closing_cash_local,
            mobile_payments_total=row.mobile_payments_total,
            mobile_payments_count=row.mobile_payments_count,
            foreign_transfers_total_local=row.foreign_transfers_total_local,
            foreign_transfers_total_foreign=row.foreign_transfers_total_foreign,
            foreign_transfers_count=row.foreign_transfers_count,
            credit_notes_total=row.credit_notes_total,
            credit_notes_count=row.credit_notes_count,
            credit_sales_total_local=row.credit_sales_total_local,
            credit_sales_total_foreign=row.credit_sales_total_foreign,
            credit_sales_count=row.credit_sales_count,
            status=SessionStatus(row.status),
            notes=row.notes,
        )
        count_detail = self._to_count_detail(row.cash_count) if row.cash_count else None
        settlements = tuple(self._to_settlement(s) for s in row.settlements)
        return SessionRecord(
            session=session,
            count_detail=count_detail,
            settlements=settlements,
        )

    @staticmethod
    def _to_count_detail(row: CashCountModel) -> CashCountDetail:
        return CashCountDetail(
            session_id=row.session_id,
            counted_foreign_primary=row.counted_foreign_primary,
            counted_foreign_secondary=row.counted_foreign_secondary,
            counted_local=row.counted_local,
            retained_float_local=row.retained_float_local,
            retained_float_foreign=row.retained_float_foreign,
            fiscal_report_total=row.fiscal_report_total,
        )

    @staticmethod
    def _to_settlement(row: TerminalSettlementModel) -> TerminalSettlement:
        return TerminalSettlement(
            session_id=row.session_id,
            bank_reference=row.bank_reference,
            bank_name=row.bank_name,
            amount_local=row.amount_local,
            amount_foreign=row.amount_foreign,
            batch_id=row.batch_id,
        )
