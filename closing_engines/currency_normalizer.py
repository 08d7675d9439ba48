"""
closing_engines.currency_normalizer -- Physical cash expressed in local currency.

Responsibility:
    Convert a three-currency physical count (primary foreign, secondary
    foreign, local) into a single local-currency figure using the
    session's own daily rate.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Consumed by ``closing_engines.reconciliation``.

Invariants enforced:
    - Decimal-only arithmetic; the result is exact (no rounding here).
    - The rate is an argument, never process-global state.

Failure modes:
    - None.  Zero amounts yield zero; the function never raises on
      Decimal input.

Usage:
    from closing_engines.currency_normalizer import to_local

    to_local(Decimal("10"), Decimal("0"), Decimal("0"), Decimal("36.5"))
    # Decimal("365.00")
"""

from __future__ import annotations

from decimal import Decimal

# Secondary foreign cash is valued at the primary rate times this factor.
# Fixed approximation, not a live cross rate.
SECONDARY_CROSS_FACTOR = Decimal("1.1")


def to_local(
    amount_foreign_primary: Decimal,
    amount_foreign_secondary: Decimal,
    amount_local: Decimal,
    rate: Decimal,
    cross_factor: Decimal = SECONDARY_CROSS_FACTOR,
) -> Decimal:
    """
    Sum a physical count in local currency.

    Formula: primary * rate + secondary * rate * cross_factor + local

    Args:
        amount_foreign_primary: Counted primary foreign notes.
        amount_foreign_secondary: Counted secondary foreign notes.
        amount_local: Counted local notes.
        rate: Local units per primary foreign unit for the session.
        cross_factor: Secondary-to-primary factor (policy override).

    Returns:
        Exact local-currency total.
    """
    return (
        amount_foreign_primary * rate
        + amount_foreign_secondary * rate * cross_factor
        + amount_local
    )


class CurrencyNormalizer:
    """
    Policy-bound wrapper around ``to_local``.

    Contract:
        Holds the cross factor from ``CurrencySettings`` so callers do not
        thread it through every call.
    """

    def __init__(self, cross_factor: Decimal = SECONDARY_CROSS_FACTOR):
        self.cross_factor = cross_factor

    def to_local(
        self,
        amount_foreign_primary: Decimal,
        amount_foreign_secondary: Decimal,
        amount_local: Decimal,
        rate: Decimal,
    ) -> Decimal:
        return to_local(
            amount_foreign_primary,
            amount_foreign_secondary,
            amount_local,
            rate,
            cross_factor=self.cross_factor,
        )
