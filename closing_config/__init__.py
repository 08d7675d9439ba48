"""
closing_config -- single public entrypoint for reconciliation policy.

Responsibility:
    Provides ``get_active_policy()``, the way runtime code obtains the
    thresholds and detection parameters the engines apply.  Returns a
    frozen ``ReconciliationPolicy``.

Architecture position:
    Configuration -- YAML-driven policy, validated at load.
    Sits above ``closing_kernel`` and below ``closing_engines`` /
    ``closing_services``.  The kernel MUST NEVER import from
    ``closing_config``.

Invariants enforced:
    - Load-time validation: every section passes its schema checks before
      a policy is returned.
    - Deterministic checksum: the same YAML document always yields the
      same ``ReconciliationPolicy.checksum``.

Failure modes:
    - ``FileNotFoundError`` -- the policy file does not exist.
    - ``yaml.YAMLError`` -- the policy file is not valid YAML.
    - ``ValueError`` -- a threshold, share or currency code is invalid.

Audit relevance:
    Every successful ``get_active_policy()`` call emits a
    ``CLOSING_CONFIG_TRACE`` log entry with the policy id, version and
    checksum, tying each review run to the exact thresholds it used.
"""

from __future__ import annotations

from pathlib import Path

from closing_config.loader import load_policy
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
from closing_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULT_POLICY_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_policy(path: Path | None = None) -> ReconciliationPolicy:
    """The public policy entrypoint.

    Args:
        path: Override path to a policy YAML file.  Defaults to
            ``closing_config/sets/default.yaml``.

    Returns:
        The validated, frozen ``ReconciliationPolicy``.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If validation fails.
    """
    policy_path = path or DEFAULT_POLICY_PATH
    policy = load_policy(policy_path)

    _logger.info(
        "CLOSING_CONFIG_TRACE",
        extra={
            "trace_type": "CLOSING_CONFIG_TRACE",
            "policy_id": policy.policy_id,
            "policy_version": policy.version,
            "checksum": policy.checksum,
            "source": str(policy_path),
            "local_currency": policy.currency.local,
        },
    )
    return policy


__all__ = [
    "AggregationSettings",
    "ComparisonSettings",
    "CurrencySettings",
    "DEFAULT_POLICY_PATH",
    "DiscrepancyThresholds",
    "FiscalThresholds",
    "PatternSettings",
    "PhysicalThresholds",
    "ReconciliationPolicy",
    "TrendSettings",
    "get_active_policy",
]
