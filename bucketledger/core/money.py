"""Money handling utilities."""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENT = Decimal('0.01')
ZERO = Decimal('0')


def to_decimal(value, field: str = 'amount') -> Decimal:
    """Convert user input to Decimal without going through binary floats."""
    if isinstance(value, Decimal):
        return value
    if value is None or isinstance(value, bool):
        raise ValueError(f"Invalid {field}: {value!r}")
    try:
        cleaned = str(value).strip().replace(' ', '').replace(',', '.')
        result = Decimal(cleaned)
    except (InvalidOperation, ValueError):
        raise ValueError(f"Invalid {field}: {value!r}")
    if not result.is_finite():
        raise ValueError(f"Invalid {field}: {value!r}")
    return result


def quantize(amount) -> Decimal:
    """Round to cents, half up."""
    if amount is None:
        return ZERO.quantize(CENT)
    return to_decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


class Money:
    """Immutable money value with currency, used for display."""

    def __init__(self, amount, currency='USD'):
        self._amount = to_decimal(amount if amount is not None else ZERO)
        self._currency = currency

    @property
    def amount(self) -> Decimal:
        return self._amount

    @property
    def currency(self) -> str:
        return self._currency

    def __str__(self) -> str:
        return self.format()

    def format(self, show_currency: bool = True) -> str:
        rounded = quantize(self.amount)
        sign = '-' if rounded < 0 else ''
        formatted = f"{abs(rounded):,.2f}"
        if not show_currency:
            return f"{sign}{formatted}"
        if self.currency == 'USD':
            return f"{sign}${formatted}"
        if self.currency == 'EUR':
            return f"{sign}{formatted} €"
        return f"{sign}{formatted} {self.currency}"

