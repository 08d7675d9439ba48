"""Currency -- ISO 4217 registry and precision-derived rounding for cash sessions."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import ClassVar


@dataclass(frozen=True)
class CurrencyInfo:
    """Information about a single ISO 4217 currency."""

    code: str
    decimal_places: int
    name: str
    symbol: str

    @property
    def quantize_string(self) -> str:
        """String for Decimal.quantize() to round to this currency's precision."""
        if self.decimal_places == 0:
            return "1"
        return "0." + "0" * self.decimal_places


class CurrencyRegistry:
    """Currencies a retail point may denominate sessions, counts and reports in."""

    _CURRENCIES: ClassVar[dict[str, CurrencyInfo]] = {
        # Local currencies
        "VES": CurrencyInfo("VES", 2, "Venezuelan Bolivar", "Bs"),
        "COP": CurrencyInfo("COP", 2, "Colombian Peso", "COL$"),
        "ARS": CurrencyInfo("ARS", 2, "Argentine Peso", "AR$"),
        "PEN": CurrencyInfo("PEN", 2, "Peruvian Sol", "S/"),
        "MXN": CurrencyInfo("MXN", 2, "Mexican Peso", "MX$"),
        "CLP": CurrencyInfo("CLP", 0, "Chilean Peso", "CLP$"),
        # Foreign currencies accepted at the till
        "USD": CurrencyInfo("USD", 2, "US Dollar", "$"),
        "EUR": CurrencyInfo("EUR", 2, "Euro", "EUR"),
    }

    @classmethod
    def is_valid(cls, code: str) -> bool:
        """True if ``code`` is a registered currency."""
        if not code:
            return False
        return code.upper() in cls._CURRENCIES

    @classmethod
    def get_info(cls, code: str) -> CurrencyInfo | None:
        return cls._CURRENCIES.get(code.upper())

    @classmethod
    def get_decimal_places(cls, code: str) -> int:
        """Decimal places for ``code``; 2 for unknown codes."""
        info = cls.get_info(code)
        if info is None:
            return 2
        return info.decimal_places

    @classmethod
    def validate(cls, code: str) -> str:
        """
        Validate and normalize a currency code.

        Raises:
            ValueError: If the code is not registered.
        """
        normalized = code.upper().strip() if code else ""
        if not cls.is_valid(normalized):
            raise ValueError(f"Unsupported currency code: {code}")
        return normalized

    @classmethod
    def all_codes(cls) -> frozenset[str]:
        return frozenset(cls._CURRENCIES)


def round_to_currency(amount: Decimal, code: str) -> Decimal:
    """Round ``amount`` half-up to the precision of ``code``."""
    places = CurrencyRegistry.get_decimal_places(code)
    quantum = Decimal(1).scaleb(-places)
    return amount.quantize(quantum, rounding=ROUND_HALF_UP)


def format_amount(amount: Decimal, code: str) -> str:
    """Render ``amount`` with its currency symbol, e.g. ``$ 1.00``."""
    info = CurrencyRegistry.get_info(code)
    symbol = info.symbol if info is not None else code.upper()
    return f"{symbol} {round_to_currency(amount, code):,}"
