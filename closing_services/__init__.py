"""
closing_services -- Imperative shell around the pure closing engines.

The service layer fetches through a ``SessionSource`` and delegates every
calculation to ``closing_engines``.
"""

from closing_services.review_service import (
    DEFAULT_ANALYSIS_DAYS,
    ClosingDashboard,
    ClosingReviewService,
)

__all__ = [
    "DEFAULT_ANALYSIS_DAYS",
    "ClosingDashboard",
    "ClosingReviewService",
]
