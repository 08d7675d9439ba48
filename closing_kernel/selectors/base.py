"""
Module: closing_kernel.selectors.base
Responsibility: Read-side contracts.  ``SessionSource`` is the shape the
    review service needs from whatever stores sessions; ``BaseSelector`` is
    the SQLAlchemy-backed starting point for concrete implementations.
Architecture position: Kernel > Selectors.  May import from db/, models/
    and domain/.  MUST NOT import from closing_engines or closing_services.

Invariants enforced:
    - Read-only access: selectors accept a Session from the caller and never
      add, delete, flush or commit.
    - DTO return convention: selectors return frozen domain records, never
      ORM instances.

Failure modes:
    - UpstreamFailure when the underlying store fails.  Selectors do not
      retry.
"""

from abc import ABC
from typing import Generic, Protocol, TypeVar, runtime_checkable

from sqlalchemy.orm import Session

from closing_kernel.db.base import Base
from closing_kernel.domain.filters import SessionFilter
from closing_kernel.domain.records import CashierRef, SessionRecord

ModelType = TypeVar("ModelType", bound=Base)


@runtime_checkable
class SessionSource(Protocol):
    """What the review service consumes from the session store."""

    def fetch_sessions(self, session_filter: SessionFilter) -> list[SessionRecord]:
        """Sessions with nested count detail and settlements."""
        ...

    def fetch_session(self, session_id: str) -> SessionRecord | None:
        """One session by id, or None when it does not resolve."""
        ...

    def fetch_cashiers(self, company_id: str) -> list[CashierRef]:
        """Cashiers of a company, for attributing per-cashier statistics."""
        ...


class BaseSelector(ABC, Generic[ModelType]):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session from the caller, perform read-only queries,
        and return DTOs.  They MUST NOT mutate any data.
    """

    def __init__(self, session: Session):
        self.session = session
