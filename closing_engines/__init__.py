"""
Module: closing_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the import surface for
    ``closing_services`` and for callers that bring their own data.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import closing_kernel.domain, closing_kernel.logging_config,
    closing_config and sibling engine modules.
    MUST NOT import closing_services or the kernel's db/selectors.

Invariants enforced:
    - Purity: engines never read the clock; dates are passed in.
    - Decimal-only arithmetic: floats never enter an engine.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Every public engine entry point is traced via ``@traced_engine``
    (see ``closing_engines.tracer``), emitting CLOSING_ENGINE_TRACE log
    records with engine name, version, input fingerprint and duration.

Usage:
    from closing_engines import ReconciliationCalculator, AlertGenerator

    reconciled = ReconciliationCalculator().reconcile_all(records)
    alerts = AlertGenerator().generate_alerts(reconciled)
"""

from closing_engines.aggregation import (
    CashierStatistic,
    ClosingStatistics,
    StatisticalAggregator,
)
from closing_engines.alerts import (
    Alert,
    AlertGenerator,
    AlertKind,
    RecommendedAction,
    recommended_actions,
    sort_alerts,
)
from closing_engines.classification import (
    DiscrepancyClassifier,
    PhysicalDiscrepancyTier,
    Severity,
)
from closing_engines.comparison import (
    ComparisonFinding,
    ComparisonRecommendation,
    ComparisonSide,
    SessionComparator,
    SessionComparison,
)
from closing_engines.currency_normalizer import (
    SECONDARY_CROSS_FACTOR,
    CurrencyNormalizer,
    to_local,
)
from closing_engines.patterns import PatternDetector, chronological
from closing_engines.reconciliation import (
    ReconciledSession,
    ReconciliationCalculator,
    ReconciliationSummary,
)
from closing_engines.tracer import traced_engine
from closing_engines.trends import (
    CashierPerformance,
    CashierTrend,
    DailyTrendPoint,
    DiscrepancyBand,
    DistributionBand,
    TrendAnalyzer,
    efficiency,
)

__all__ = [
    "Alert",
    "AlertGenerator",
    "AlertKind",
    "CashierPerformance",
    "CashierStatistic",
    "CashierTrend",
    "ClosingStatistics",
    "ComparisonFinding",
    "ComparisonRecommendation",
    "ComparisonSide",
    "CurrencyNormalizer",
    "DailyTrendPoint",
    "DiscrepancyBand",
    "DiscrepancyClassifier",
    "DistributionBand",
    "PatternDetector",
    "PhysicalDiscrepancyTier",
    "RecommendedAction",
    "ReconciledSession",
    "ReconciliationCalculator",
    "ReconciliationSummary",
    "SECONDARY_CROSS_FACTOR",
    "SessionComparator",
    "SessionComparison",
    "Severity",
    "StatisticalAggregator",
    "TrendAnalyzer",
    "chronological",
    "efficiency",
    "recommended_actions",
    "sort_alerts",
    "to_local",
    "traced_engine",
]
