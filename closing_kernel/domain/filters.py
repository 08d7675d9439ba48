"""
Filters -- Validated query window for fetching and aggregating sessions.

``SessionFilter`` is used twice: by the data source to narrow the query
(date range, company, cashier) and by the statistical aggregator, which
re-applies every criterion, including the two that only exist after
reconciliation (``with_discrepancy`` and the declared-amount range).

Malformed filters are rejected at construction, before any query runs.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from closing_kernel.domain.records import SessionStatus
from closing_kernel.exceptions import InvalidIdentifierError, InvalidRangeError


def _check_identifier(field_name: str, value: str | None) -> None:
    if value is None:
        return
    if not isinstance(value, str) or not value.strip():
        raise InvalidIdentifierError(field_name, value)


@dataclass(frozen=True)
class SessionFilter:
    """
    Criteria for selecting sessions.

    Guarantees:
        - ``company_id`` / ``cashier_id``, when given, are non-blank.
        - ``date_from <= date_to`` and ``min_declared <= max_declared``
          when both bounds are given.
    """

    date_from: date | None = None
    date_to: date | None = None
    company_id: str | None = None
    cashier_id: str | None = None
    with_discrepancy: bool = False
    min_declared: Decimal | None = None
    max_declared: Decimal | None = None
    status: SessionStatus | None = SessionStatus.CLOSED

    def __post_init__(self) -> None:
        _check_identifier("company_id", self.company_id)
        _check_identifier("cashier_id", self.cashier_id)
        if (
            self.date_from is not None
            and self.date_to is not None
            and self.date_from > self.date_to
        ):
            raise InvalidRangeError("session_date", self.date_from, self.date_to)
        if (
            self.min_declared is not None
            and self.max_declared is not None
            and self.min_declared > self.max_declared
        ):
            raise InvalidRangeError("total_declared", self.min_declared, self.max_declared)

    def matches_date(self, session_date: date) -> bool:
        if self.date_from is not None and session_date < self.date_from:
            return False
        if self.date_to is not None and session_date > self.date_to:
            return False
        return True

    def matches_declared(self, total_declared: Decimal) -> bool:
        if self.min_declared is not None and total_declared < self.min_declared:
            return False
        if self.max_declared is not None and total_declared > self.max_declared:
            return False
        return True
