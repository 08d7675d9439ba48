"""
closing_engines.classification -- Two discrepancy scales, two enums.

Responsibility:
    Map a session's discrepancies onto review categories:

    * the physical discrepancy (declared vs. cash + terminals, local
      currency) onto ``PhysicalDiscrepancyTier``;
    * the fiscal discrepancy (declared vs. Z report, foreign-equivalent
      units) onto ``Severity``, or ``None`` when there is nothing to alert.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Thresholds come from ``closing_config.DiscrepancyThresholds``.
    Consumed by the alert generator, pattern detector and trend analyzer.

Invariants enforced:
    - The two scales are never mixed: a physical tier is never a severity.
    - Boundaries are exact Decimal comparisons:
        physical  |d| < 1 balanced, 1 <= |d| < 50 acceptable, >= 50 review
        fiscal    0 none, (0, 5] mild, (5, 15] moderate, > 15 severe
    - Total functions: every Decimal maps to exactly one outcome.

Failure modes:
    - None.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from enum import Enum

from closing_config.schema import DiscrepancyThresholds
from closing_engines.tracer import traced_engine


class PhysicalDiscrepancyTier(str, Enum):
    """Review tier of the declared vs. physical discrepancy."""

    BALANCED = "balanced"
    ACCEPTABLE = "acceptable"
    REQUIRES_REVIEW = "requires_review"

    @property
    def rank(self) -> int:
        return _PHYSICAL_RANK[self]

    @property
    def label(self) -> str:
        return _PHYSICAL_LABEL[self]

    @property
    def color(self) -> str:
        return _PHYSICAL_COLOR[self]


_PHYSICAL_RANK = {
    PhysicalDiscrepancyTier.BALANCED: 0,
    PhysicalDiscrepancyTier.ACCEPTABLE: 1,
    PhysicalDiscrepancyTier.REQUIRES_REVIEW: 2,
}
_PHYSICAL_LABEL = {
    PhysicalDiscrepancyTier.BALANCED: "Balanced",
    PhysicalDiscrepancyTier.ACCEPTABLE: "Acceptable",
    PhysicalDiscrepancyTier.REQUIRES_REVIEW: "Requires review",
}
_PHYSICAL_COLOR = {
    PhysicalDiscrepancyTier.BALANCED: "green",
    PhysicalDiscrepancyTier.ACCEPTABLE: "yellow",
    PhysicalDiscrepancyTier.REQUIRES_REVIEW: "red",
}


class Severity(str, Enum):
    """Alert severity on the fiscal (foreign-equivalent) scale."""

    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    @property
    def label(self) -> str:
        return _SEVERITY_LABEL[self]

    @property
    def color(self) -> str:
        return _SEVERITY_COLOR[self]


_SEVERITY_RANK = {
    Severity.MILD: 1,
    Severity.MODERATE: 2,
    Severity.SEVERE: 3,
}
_SEVERITY_LABEL = {
    Severity.MILD: "Mild",
    Severity.MODERATE: "Moderate",
    Severity.SEVERE: "Severe",
}
_SEVERITY_COLOR = {
    Severity.MILD: "yellow",
    Severity.MODERATE: "orange",
    Severity.SEVERE: "red",
}

# Presentation colour for a session with no fiscal discrepancy at all
NO_DISCREPANCY_COLOR = "blue"


class DiscrepancyClassifier:
    """
    Classifies discrepancies on the physical and fiscal scales.

    Contract:
        Pure; thresholds are fixed at construction.
    Guarantees:
        - ``classify_physical`` uses the absolute value of its input.
        - ``classify_fiscal`` returns None exactly when the input is zero.
    Non-goals:
        - Does not decide whether to alert on the physical scale; only the
          fiscal scale drives alerts.
    """

    def __init__(self, thresholds: DiscrepancyThresholds | None = None):
        self.thresholds = thresholds or DiscrepancyThresholds()

    @traced_engine(
        "classification", "1.0", fingerprint_fields=("discrepancy",), level=logging.DEBUG,
    )
    def classify_physical(self, discrepancy: Decimal) -> PhysicalDiscrepancyTier:
        """
        Tier of a declared vs. physical discrepancy (local currency).

        Args:
            discrepancy: Signed ``discrepancy_vs_physical_total``.
        """
        magnitude = abs(discrepancy)
        physical = self.thresholds.physical
        if magnitude < physical.balanced_below:
            return PhysicalDiscrepancyTier.BALANCED
        if magnitude < physical.review_from:
            return PhysicalDiscrepancyTier.ACCEPTABLE
        return PhysicalDiscrepancyTier.REQUIRES_REVIEW

    @traced_engine(
        "classification", "1.0", fingerprint_fields=("foreign_equivalent",), level=logging.DEBUG,
    )
    def classify_fiscal(self, foreign_equivalent: Decimal) -> Severity | None:
        """
        Severity of a fiscal discrepancy in foreign-equivalent units.

        Returns:
            None for exactly zero; otherwise the severity band.
        """
        magnitude = abs(foreign_equivalent)
        if magnitude == 0:
            return None
        fiscal = self.thresholds.fiscal
        if magnitude <= fiscal.mild_up_to:
            return Severity.MILD
        if magnitude <= fiscal.moderate_up_to:
            return Severity.MODERATE
        return Severity.SEVERE

    def has_discrepancy(self, foreign_equivalent: Decimal) -> bool:
        """True when the fiscal discrepancy counts toward discrepancy statistics."""
        return abs(foreign_equivalent) >= self.thresholds.has_discrepancy_from

    def fiscal_color(self, foreign_equivalent: Decimal) -> str:
        """Badge colour for a fiscal discrepancy, blue when there is none."""
        severity = self.classify_fiscal(foreign_equivalent)
        if severity is None:
            return NO_DISCREPANCY_COLOR
        return severity.color
