"""
Policy loader (``closing_config.loader``).

Responsibility
--------------
Loads a YAML policy file and parses it into the frozen dataclasses of
``closing_config.schema``.  Runtime callers go through
``closing_config.get_active_policy()``; this module is its tooling.

Invariants enforced
-------------------
* Amounts and shares are parsed to ``Decimal`` from their string form,
  so ``"1.1"`` in YAML is exactly ``Decimal("1.1")``.
* Omitted sections fall back to the schema defaults; present sections
  are validated by the schema's ``__post_init__``.
* ``compute_checksum`` is a deterministic SHA-256 over the canonical JSON
  of the source document.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing ``policy_id``  -> ``KeyError`` propagates.
* Non-numeric amount or invalid threshold  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from closing_config.schema import (
    AggregationSettings,
    ComparisonSettings,
    CurrencySettings,
    DiscrepancyThresholds,
    FiscalThresholds,
    PatternSettings,
    PhysicalThresholds,
    ReconciliationPolicy,
    TrendSettings,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_decimal(value: Any, name: str) -> Decimal:
    """
    Parse an exact Decimal from a YAML scalar.

    Floats are converted through their ``str`` form, so ``1.1`` becomes
    ``Decimal("1.1")`` rather than its binary approximation.

    Raises:
        ValueError: if ``value`` is not numeric.
    """
    if isinstance(value, bool):
        raise ValueError(f"{name}: expected a number, got {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"{name}: expected a number, got {value!r}") from exc


def parse_thresholds(data: dict[str, Any]) -> DiscrepancyThresholds:
    physical = data.get("physical", {})
    fiscal = data.get("fiscal", {})
    defaults = DiscrepancyThresholds()
    return DiscrepancyThresholds(
        physical=PhysicalThresholds(
            balanced_below=parse_decimal(
                physical.get("balanced_below", defaults.physical.balanced_below),
                "thresholds.physical.balanced_below",
            ),
            review_from=parse_decimal(
                physical.get("review_from", defaults.physical.review_from),
                "thresholds.physical.review_from",
            ),
        ),
        fiscal=FiscalThresholds(
            mild_up_to=parse_decimal(
                fiscal.get("mild_up_to", defaults.fiscal.mild_up_to),
                "thresholds.fiscal.mild_up_to",
            ),
            moderate_up_to=parse_decimal(
                fiscal.get("moderate_up_to", defaults.fiscal.moderate_up_to),
                "thresholds.fiscal.moderate_up_to",
            ),
        ),
        has_discrepancy_from=parse_decimal(
            data.get("has_discrepancy_from", defaults.has_discrepancy_from),
            "thresholds.has_discrepancy_from",
        ),
    )


def parse_currency(data: dict[str, Any]) -> CurrencySettings:
    defaults = CurrencySettings()
    return CurrencySettings(
        local=str(data.get("local", defaults.local)).upper(),
        primary_foreign=str(data.get("primary_foreign", defaults.primary_foreign)).upper(),
        secondary_foreign=str(data.get("secondary_foreign", defaults.secondary_foreign)).upper(),
        secondary_cross_factor=parse_decimal(
            data.get("secondary_cross_factor", defaults.secondary_cross_factor),
            "currency.secondary_cross_factor",
        ),
    )


def parse_patterns(data: dict[str, Any]) -> PatternSettings:
    defaults = PatternSettings()
    return PatternSettings(
        min_sessions=int(data.get("min_sessions", defaults.min_sessions)),
        high_share=parse_decimal(
            data.get("high_share", defaults.high_share), "patterns.high_share"
        ),
        one_sided_share=parse_decimal(
            data.get("one_sided_share", defaults.one_sided_share), "patterns.one_sided_share"
        ),
        escalation_window=int(data.get("escalation_window", defaults.escalation_window)),
    )


def parse_trends(data: dict[str, Any]) -> TrendSettings:
    defaults = TrendSettings()
    return TrendSettings(
        min_sessions=int(data.get("min_sessions", defaults.min_sessions)),
        rising_days=int(data.get("rising_days", defaults.rising_days)),
        trend_delta=parse_decimal(
            data.get("trend_delta", defaults.trend_delta), "trends.trend_delta"
        ),
    )


def parse_comparison(data: dict[str, Any]) -> ComparisonSettings:
    defaults = ComparisonSettings()
    return ComparisonSettings(**{
        name: parse_decimal(data.get(name, getattr(defaults, name)), f"comparison.{name}")
        for name in ("volume_gap", "cash_share_gap", "fiscal_agreement_gap", "shift_hours_gap")
    })


def parse_policy(data: dict[str, Any]) -> ReconciliationPolicy:
    """
    Parse a ``ReconciliationPolicy`` from a source document.

    Raises:
        KeyError: if ``policy_id`` is missing.
        ValueError: if any section fails validation.
    """
    aggregation = data.get("aggregation", {})
    return ReconciliationPolicy(
        policy_id=data["policy_id"],
        version=int(data.get("version", 1)),
        thresholds=parse_thresholds(data.get("thresholds", {})),
        currency=parse_currency(data.get("currency", {})),
        aggregation=AggregationSettings(
            top_cashiers=int(aggregation.get("top_cashiers", AggregationSettings().top_cashiers)),
        ),
        patterns=parse_patterns(data.get("patterns", {})),
        trends=parse_trends(data.get("trends", {})),
        comparison=parse_comparison(data.get("comparison", {})),
        checksum=compute_checksum(data),
    )


def load_policy(path: Path) -> ReconciliationPolicy:
    """Load and parse the policy file at ``path``."""
    return parse_policy(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical documents always produce identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
