"""Tests for the three-currency physical count normalizer."""

from decimal import Decimal

from closing_engines.currency_normalizer import (
    SECONDARY_CROSS_FACTOR,
    CurrencyNormalizer,
    to_local,
)


class TestToLocal:

    def test_primary_only(self):
        assert to_local(Decimal("10"), Decimal("0"), Decimal("0"), Decimal("36.5")) == Decimal("365")

    def test_secondary_uses_cross_factor(self):
        result = to_local(Decimal("0"), Decimal("10"), Decimal("0"), Decimal("40"))
        assert result == Decimal("440")

    def test_local_added_as_is(self):
        result = to_local(Decimal("0"), Decimal("0"), Decimal("123.45"), Decimal("40"))
        assert result == Decimal("123.45")

    def test_all_three(self):
        result = to_local(Decimal("100"), Decimal("50"), Decimal("200"), Decimal("40"))
        # 100*40 + 50*40*1.1 + 200
        assert result == Decimal("6400")

    def test_all_zero(self):
        assert to_local(Decimal("0"), Decimal("0"), Decimal("0"), Decimal("36.5")) == 0

    def test_default_cross_factor(self):
        assert SECONDARY_CROSS_FACTOR == Decimal("1.1")

    def test_exact_no_rounding(self):
        result = to_local(Decimal("0.01"), Decimal("0.01"), Decimal("0"), Decimal("36.123"))
        assert result == Decimal("0.01") * Decimal("36.123") + Decimal("0.01") * Decimal("36.123") * Decimal("1.1")


class TestCurrencyNormalizer:

    def test_policy_cross_factor_override(self):
        normalizer = CurrencyNormalizer(cross_factor=Decimal("1.08"))
        result = normalizer.to_local(Decimal("0"), Decimal("100"), Decimal("0"), Decimal("10"))
        assert result == Decimal("1080")

    def test_default_matches_function(self):
        normalizer = CurrencyNormalizer()
        args = (Decimal("3"), Decimal("4"), Decimal("5"), Decimal("36.5"))
        assert normalizer.to_local(*args) == to_local(*args)
