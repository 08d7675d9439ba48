"""
ReconciliationPolicy schema.

Defines the reviewable, version-controlled knobs of the review engines:
the two discrepancy scales, the currency triple and its cross factor,
the aggregation cut-off, the pattern / trend detection parameters and the
gaps a session comparison reports on.
YAML files are parsed into these types by the loader.

Every dataclass validates itself in ``__post_init__`` and raises
``ValueError`` on a structurally invalid value (non-monotone thresholds,
unknown currency code, share outside (0, 1]).  Defaults reproduce the
thresholds the point-of-sale application has always used.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from closing_kernel.domain.currency import CurrencyRegistry

# ---------------------------------------------------------------------------
# Discrepancy scales
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PhysicalThresholds:
    """Local-currency tiers for declared vs. counted-plus-terminals."""

    balanced_below: Decimal = Decimal("1")
    review_from: Decimal = Decimal("50")

    def __post_init__(self) -> None:
        if self.balanced_below <= 0:
            raise ValueError(f"balanced_below must be positive, got {self.balanced_below}")
        if self.review_from <= self.balanced_below:
            raise ValueError(
                f"review_from ({self.review_from}) must exceed "
                f"balanced_below ({self.balanced_below})"
            )


@dataclass(frozen=True)
class FiscalThresholds:
    """Foreign-equivalent severity bands for declared vs. fiscal report."""

    mild_up_to: Decimal = Decimal("5")
    moderate_up_to: Decimal = Decimal("15")

    def __post_init__(self) -> None:
        if self.mild_up_to <= 0:
            raise ValueError(f"mild_up_to must be positive, got {self.mild_up_to}")
        if self.moderate_up_to <= self.mild_up_to:
            raise ValueError(
                f"moderate_up_to ({self.moderate_up_to}) must exceed "
                f"mild_up_to ({self.mild_up_to})"
            )


@dataclass(frozen=True)
class DiscrepancyThresholds:
    """Both scales plus the cut-off for counting a session as discrepant."""

    physical: PhysicalThresholds = field(default_factory=PhysicalThresholds)
    fiscal: FiscalThresholds = field(default_factory=FiscalThresholds)
    # Foreign-equivalent units; used by the with_discrepancy filter and counters
    has_discrepancy_from: Decimal = Decimal("1")

    def __post_init__(self) -> None:
        if self.has_discrepancy_from < 0:
            raise ValueError(
                f"has_discrepancy_from cannot be negative, got {self.has_discrepancy_from}"
            )


# ---------------------------------------------------------------------------
# Currency
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CurrencySettings:
    """Local currency, the two counted foreign currencies and the cross factor."""

    local: str = "VES"
    primary_foreign: str = "USD"
    secondary_foreign: str = "EUR"
    secondary_cross_factor: Decimal = Decimal("1.1")

    def __post_init__(self) -> None:
        for code in (self.local, self.primary_foreign, self.secondary_foreign):
            CurrencyRegistry.validate(code)
        if len({self.local, self.primary_foreign, self.secondary_foreign}) != 3:
            raise ValueError("local, primary_foreign and secondary_foreign must differ")
        if self.secondary_cross_factor <= 0:
            raise ValueError(
                f"secondary_cross_factor must be positive, got {self.secondary_cross_factor}"
            )


# ---------------------------------------------------------------------------
# Analytics knobs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AggregationSettings:
    top_cashiers: int = 5

    def __post_init__(self) -> None:
        if self.top_cashiers < 1:
            raise ValueError(f"top_cashiers must be at least 1, got {self.top_cashiers}")


def _check_share(name: str, value: Decimal) -> None:
    if not (Decimal("0") < value <= Decimal("1")):
        raise ValueError(f"{name} must be in (0, 1], got {value}")


@dataclass(frozen=True)
class PatternSettings:
    """Per-cashier pattern detection parameters."""

    min_sessions: int = 3
    high_share: Decimal = Decimal("0.6")
    one_sided_share: Decimal = Decimal("0.8")
    escalation_window: int = 5

    def __post_init__(self) -> None:
        if self.min_sessions < 1:
            raise ValueError(f"min_sessions must be at least 1, got {self.min_sessions}")
        if self.escalation_window < 2:
            raise ValueError(
                f"escalation_window must be at least 2, got {self.escalation_window}"
            )
        _check_share("high_share", self.high_share)
        _check_share("one_sided_share", self.one_sided_share)


@dataclass(frozen=True)
class TrendSettings:
    """Company-level trend detection and cashier trend parameters."""

    min_sessions: int = 5
    rising_days: int = 3
    trend_delta: Decimal = Decimal("1")

    def __post_init__(self) -> None:
        if self.min_sessions < 1:
            raise ValueError(f"min_sessions must be at least 1, got {self.min_sessions}")
        if self.rising_days < 2:
            raise ValueError(f"rising_days must be at least 2, got {self.rising_days}")
        if self.trend_delta < 0:
            raise ValueError(f"trend_delta cannot be negative, got {self.trend_delta}")


@dataclass(frozen=True)
class ComparisonSettings:
    """Gaps above which a two-session comparison calls out a difference."""

    volume_gap: Decimal = Decimal("1000")
    cash_share_gap: Decimal = Decimal("0.2")
    fiscal_agreement_gap: Decimal = Decimal("10")
    shift_hours_gap: Decimal = Decimal("2")

    def __post_init__(self) -> None:
        for name in ("volume_gap", "fiscal_agreement_gap", "shift_hours_gap"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} cannot be negative, got {getattr(self, name)}")
        _check_share("cash_share_gap", self.cash_share_gap)


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ReconciliationPolicy:
    """
    Root policy artifact handed to every engine.

    ``checksum`` is the SHA-256 of the canonical source document; the
    built-in defaults carry an empty checksum.
    """

    policy_id: str = "builtin"
    version: int = 1
    thresholds: DiscrepancyThresholds = field(default_factory=DiscrepancyThresholds)
    currency: CurrencySettings = field(default_factory=CurrencySettings)
    aggregation: AggregationSettings = field(default_factory=AggregationSettings)
    patterns: PatternSettings = field(default_factory=PatternSettings)
    trends: TrendSettings = field(default_factory=TrendSettings)
    comparison: ComparisonSettings = field(default_factory=ComparisonSettings)
    checksum: str = ""

    def __post_init__(self) -> None:
        if not self.policy_id or not self.policy_id.strip():
            raise ValueError("policy_id must be non-empty")
        if self.version < 1:
            raise ValueError(f"version must be at least 1, got {self.version}")

    @classmethod
    def with_defaults(cls) -> ReconciliationPolicy:
        """Policy equivalent to the shipped default set, without reading a file."""
        return cls()
