"""Pure domain value objects for cash-session reconciliation."""

from closing_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from closing_kernel.domain.currency import (
    CurrencyInfo,
    CurrencyRegistry,
    format_amount,
    round_to_currency,
)
from closing_kernel.domain.filters import SessionFilter
from closing_kernel.domain.records import (
    ZERO,
    CashCountDetail,
    CashierRef,
    CashSession,
    SessionRecord,
    SessionStatus,
    TerminalSettlement,
)

__all__ = [
    "ZERO",
    "CashCountDetail",
    "CashierRef",
    "CashSession",
    "Clock",
    "CurrencyInfo",
    "DeterministicClock",
    "CurrencyRegistry",
    "SessionFilter",
    "SessionRecord",
    "SessionStatus",
    "SystemClock",
    "TerminalSettlement",
    "format_amount",
    "round_to_currency",
]
