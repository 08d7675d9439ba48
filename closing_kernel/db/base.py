"""
Module: closing_kernel.db.base
Responsibility: Declarative base for the ORM tables the session selector
    reads from.  Provides the string-UUID primary key convention and a
    type annotation map so monetary columns are always exact numerics.
Architecture position: Kernel > DB.  Lowest-level import target for
    closing_kernel.models.  MUST NOT import from models/, selectors/ or
    outer layers.

Invariants enforced:
    - Primary keys are uuid4 strings (the identifiers callers pass around).
    - Decimal maps to Numeric(18, 4); monetary columns never use float.
    - datetime maps to DateTime(timezone=True).
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import uuid4

from sqlalchemy import DateTime, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def new_id() -> str:
    """Generate a primary key value."""
    return str(uuid4())


class Base(DeclarativeBase):
    """
    Declarative base for all closing-review ORM models.

    Guarantees:
        - ``id`` is a uuid4 string stored as String(36).
        - Decimal maps to Numeric(18, 4).
        - datetime maps to DateTime(timezone=True).
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(18, 4),
        datetime: DateTime(timezone=True),
    }

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=new_id,
    )


class TimestampedBase(Base):
    """Abstract base adding a server-side ``created_at`` column."""

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
