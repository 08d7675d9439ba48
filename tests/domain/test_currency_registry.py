"""Tests for the currency registry, rounding and amount formatting."""

from decimal import Decimal

import pytest

from closing_kernel.domain.currency import (
    CurrencyRegistry,
    format_amount,
    round_to_currency,
)


class TestCurrencyRegistry:

    def test_known_codes(self):
        for code in ("VES", "USD", "EUR"):
            assert CurrencyRegistry.is_valid(code)

    def test_case_insensitive(self):
        assert CurrencyRegistry.validate("usd") == "USD"

    def test_unknown_code_rejected(self):
        assert not CurrencyRegistry.is_valid("XXX")
        with pytest.raises(ValueError, match="Unsupported currency"):
            CurrencyRegistry.validate("XXX")

    def test_empty_code_invalid(self):
        assert not CurrencyRegistry.is_valid("")

    def test_decimal_places(self):
        assert CurrencyRegistry.get_decimal_places("USD") == 2
        assert CurrencyRegistry.get_decimal_places("CLP") == 0
        assert CurrencyRegistry.get_decimal_places("XXX") == 2

    def test_quantize_string(self):
        assert CurrencyRegistry.get_info("USD").quantize_string == "0.01"
        assert CurrencyRegistry.get_info("CLP").quantize_string == "1"


class TestRoundingAndFormatting:

    def test_round_half_up(self):
        assert round_to_currency(Decimal("1.005"), "USD") == Decimal("1.01")
        assert round_to_currency(Decimal("1.004"), "USD") == Decimal("1.00")

    def test_round_zero_decimal_currency(self):
        assert round_to_currency(Decimal("10.5"), "CLP") == Decimal("11")

    def test_format_primary_foreign(self):
        assert format_amount(Decimal("20"), "USD") == "$ 20.00"

    def test_format_groups_thousands(self):
        assert format_amount(Decimal("1234567.891"), "VES") == "Bs 1,234,567.89"

    def test_format_repeating_decimal(self):
        assert format_amount(Decimal("10") / Decimal("3"), "USD") == "$ 3.33"
