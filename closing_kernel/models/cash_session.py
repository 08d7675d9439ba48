"""
Module: closing_kernel.models.cash_session
Responsibility: ORM persistence for cash-register sessions, their physical
    cash counts and their terminal settlements.  These tables are written by
    the point-of-sale application; the review layer only reads them.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - At most one cash count per session (unique ``session_id``).
    - Channel totals are stored as exact Numeric values, never floats.
    - Rows are converted to frozen domain records by the selector; ORM
      instances never leave the selector.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Date, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from closing_kernel.db.base import Base, TimestampedBase


class Cashier(Base):
    """Cashier directory entry (read-only mirror of the user directory)."""

    __tablename__ = "cashiers"

    __table_args__ = (Index("idx_cashier_company", "company_id"),)

    company_id: Mapped[str] = mapped_column(String(36), nullable=False)
    display_name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str | None] = mapped_column(String(200), nullable=True)
    # Only "user" and "admin" roles may run a till
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="user")

    def __repr__(self) -> str:
        return f"<Cashier {self.display_name}>"


class CashSessionModel(TimestampedBase):
    """
    One cash-register day for one cashier at one company.

    Guarantees:
        - ``status`` is either ``open`` or ``closed``.
        - ``daily_rate`` is the fixed local-per-foreign rate for the day.
    """

    __tablename__ = "cash_sessions"

    __table_args__ = (
        Index("idx_session_company_date", "company_id", "session_date"),
        Index("idx_session_cashier", "cashier_id"),
        Index("idx_session_status", "status"),
    )

    company_id: Mapped[str] = mapped_column(String(36), nullable=False)
    cashier_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    session_date: Mapped[date] = mapped_column(Date, nullable=False)
    opened_at: Mapped[datetime] = mapped_column(nullable=False)
    closed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    opening_cash_local: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    opening_cash_foreign: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    daily_rate: Mapped[Decimal] = mapped_column(nullable=False)
    closing_cash_local: Mapped[Decimal | None] = mapped_column(nullable=True)

    mobile_payments_total: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    mobile_payments_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    foreign_transfers_total_local: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    foreign_transfers_total_foreign: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    foreign_transfers_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    credit_notes_total: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    credit_notes_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    credit_sales_total_local: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    credit_sales_total_foreign: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    credit_sales_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    status: Mapped[str] = mapped_column(String(10), nullable=False, default="open")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    cash_count: Mapped["CashCountModel | None"] = relationship(
        back_populates="session",
        uselist=False,
    )
    settlements: Mapped[list["TerminalSettlementModel"]] = relationship(
        back_populates="session",
        order_by="TerminalSettlementModel.created_at",
    )

    def __repr__(self) -> str:
        return f"<CashSession {self.id} {self.session_date} {self.status}>"


class CashCountModel(TimestampedBase):
    """Physical count recorded at close, including the fiscal (Z) report total."""

    __tablename__ = "cash_count_details"

    session_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("cash_sessions.id"),
        nullable=False,
        unique=True,
    )
    counted_foreign_primary: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    counted_foreign_secondary: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    counted_local: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    retained_float_local: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    retained_float_foreign: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    fiscal_report_total: Mapped[Decimal | None] = mapped_column(nullable=True)

    session: Mapped[CashSessionModel] = relationship(back_populates="cash_count")


class TerminalSettlementModel(TimestampedBase):
    """A point-of-sale terminal batch closed against a session."""

    __tablename__ = "terminal_settlements"

    __table_args__ = (Index("idx_settlement_session", "session_id"),)

    session_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("cash_sessions.id"),
        nullable=False,
    )
    bank_reference: Mapped[str] = mapped_column(String(36), nullable=False)
    bank_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    amount_local: Mapped[Decimal] = mapped_column(nullable=False)
    amount_foreign: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    batch_id: Mapped[str | None] = mapped_column(String(50), nullable=True)

    session: Mapped[CashSessionModel] = relationship(back_populates="settlements")
