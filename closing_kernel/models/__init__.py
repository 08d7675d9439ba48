"""ORM models for the session store."""

from closing_kernel.models.cash_session import (
    CashCountModel,
    Cashier,
    CashSessionModel,
    TerminalSettlementModel,
)

__all__ = [
    "CashCountModel",
    "CashSessionModel",
    "Cashier",
    "TerminalSettlementModel",
]
