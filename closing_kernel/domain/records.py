"""
Records -- Immutable input records for cash-session reconciliation.

Responsibility:
    Explicit, tagged records for the three inputs the reconciliation
    engines consume: the cash session itself, its optional physical cash
    count, and its terminal settlements.  ``SessionRecord`` bundles them
    the way the data source returns them (one session with its nested
    children).

Architecture position:
    Kernel > Domain -- pure value objects, zero I/O.
    Produced by selectors, consumed by closing_engines.

Invariants enforced:
    - Every monetary field is ``Decimal`` and non-negative.
    - ``status == CLOSED`` implies ``closed_at`` is set.
    - ``daily_rate > 0`` (the rate is per session, never process-global).
    - Records are frozen; the engines never mutate them.

Failure modes:
    - RecordInvariantError on construction with negative amounts, a
      non-positive daily rate, or a closed session without ``closed_at``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from closing_kernel.exceptions import RecordInvariantError

ZERO = Decimal("0")


class SessionStatus(str, Enum):
    """Lifecycle of a cash-register session."""

    OPEN = "open"
    CLOSED = "closed"


def _require_non_negative(record_type: str, record_id: str, **amounts: Decimal | None) -> None:
    for name, value in amounts.items():
        if value is not None and value < ZERO:
            raise RecordInvariantError(record_type, record_id, f"{name} cannot be negative ({value})")


@dataclass(frozen=True)
class CashSession:
    """
    One cashier's open-to-close cash-register day at one company.

    Contract:
        Channel totals are already expressed in local currency; the
        ``*_foreign`` companions of the mixed channels are informational
        and were converted at ``daily_rate`` when recorded.

    Guarantees:
        - Immutable (frozen dataclass).
        - All channel totals are non-negative.
        - A closed session always carries ``closed_at``.

    Non-goals:
        - Does NOT compute reconciliation figures (see
          ``closing_engines.reconciliation``).
    """

    id: str
    company_id: str
    cashier_id: str | None
    session_date: date
    opened_at: datetime
    daily_rate: Decimal
    opening_cash_local: Decimal = ZERO
    opening_cash_foreign: Decimal = ZERO
    closed_at: datetime | None = None
    closing_cash_local: Decimal | None = None
    # Declared channels
    mobile_payments_total: Decimal = ZERO
    mobile_payments_count: int = 0
    foreign_transfers_total_local: Decimal = ZERO
    foreign_transfers_total_foreign: Decimal = ZERO
    foreign_transfers_count: int = 0
    credit_notes_total: Decimal = ZERO
    credit_notes_count: int = 0
    credit_sales_total_local: Decimal = ZERO
    credit_sales_total_foreign: Decimal = ZERO
    credit_sales_count: int = 0
    status: SessionStatus = SessionStatus.OPEN
    notes: str | None = None

    def __post_init__(self) -> None:
        if self.daily_rate <= ZERO:
            raise RecordInvariantError(
                "cash_session", self.id, f"daily_rate must be positive ({self.daily_rate})"
            )
        _require_non_negative(
            "cash_session",
            self.id,
            opening_cash_local=self.opening_cash_local,
            opening_cash_foreign=self.opening_cash_foreign,
            closing_cash_local=self.closing_cash_local,
            mobile_payments_total=self.mobile_payments_total,
            foreign_transfers_total_local=self.foreign_transfers_total_local,
            foreign_transfers_total_foreign=self.foreign_transfers_total_foreign,
            credit_notes_total=self.credit_notes_total,
            credit_sales_total_local=self.credit_sales_total_local,
            credit_sales_total_foreign=self.credit_sales_total_foreign,
        )
        if self.status == SessionStatus.CLOSED and self.closed_at is None:
            raise RecordInvariantError(
                "cash_session", self.id, "closed session must have closed_at"
            )

    @property
    def is_closed(self) -> bool:
        return self.status == SessionStatus.CLOSED


@dataclass(frozen=True)
class CashCountDetail:
    """
    Physical cash count taken at close, plus the fiscal ("Z") report total.

    At most one per closed session.  A closed session without one is a
    reportable condition, not an error.
    """

    session_id: str
    counted_foreign_primary: Decimal = ZERO
    counted_foreign_secondary: Decimal = ZERO
    counted_local: Decimal = ZERO
    retained_float_local: Decimal = ZERO
    retained_float_foreign: Decimal = ZERO
    fiscal_report_total: Decimal | None = None

    def __post_init__(self) -> None:
        _require_non_negative(
            "cash_count_detail",
            self.session_id,
            counted_foreign_primary=self.counted_foreign_primary,
            counted_foreign_secondary=self.counted_foreign_secondary,
            counted_local=self.counted_local,
            retained_float_local=self.retained_float_local,
            retained_float_foreign=self.retained_float_foreign,
        )

    @property
    def has_fiscal_report(self) -> bool:
        """True when a positive fiscal total was recorded."""
        return self.fiscal_report_total is not None and self.fiscal_report_total > ZERO


@dataclass(frozen=True)
class TerminalSettlement:
    """A point-of-sale terminal batch settled against the session."""

    session_id: str
    bank_reference: str
    amount_local: Decimal
    amount_foreign: Decimal = ZERO
    batch_id: str | None = None
    bank_name: str | None = None

    def __post_init__(self) -> None:
        _require_non_negative(
            "terminal_settlement",
            self.session_id,
            amount_local=self.amount_local,
            amount_foreign=self.amount_foreign,
        )


@dataclass(frozen=True)
class SessionRecord:
    """
    A session with its nested count detail and settlements.

    This is the shape the data source returns; ``cashier_name`` is filled
    in from the cashier directory when available.
    """

    session: CashSession
    count_detail: CashCountDetail | None = None
    settlements: tuple[TerminalSettlement, ...] = field(default_factory=tuple)
    cashier_name: str | None = None

    @property
    def session_id(self) -> str:
        return self.session.id

    @property
    def cashier_label(self) -> str:
        """Display name, falling back to the cashier id."""
        if self.cashier_name:
            return self.cashier_name
        if self.session.cashier_id:
            return f"Cashier {self.session.cashier_id}"
        return "Unassigned cashier"


@dataclass(frozen=True)
class CashierRef:
    """Cashier directory entry used to attribute per-cashier statistics."""

    id: str
    display_name: str
