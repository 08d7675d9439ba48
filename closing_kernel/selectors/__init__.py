"""Read-only query selectors for the session store."""

from closing_kernel.selectors.base import BaseSelector, SessionSource
from closing_kernel.selectors.session_selector import CashSessionSelector

__all__ = [
    "BaseSelector",
    "CashSessionSelector",
    "SessionSource",
]
