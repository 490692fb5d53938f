"""Number parsing and rounding helpers for quantities and money."""
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

# Stock comparisons tolerate float noise coming from the Android clients
STOCK_EPSILON = Decimal('1e-9')
MONEY_EPSILON = Decimal('1e-6')

CENTS = Decimal('0.01')

AR_NUMBER_PATTERN = re.compile(r"^(?:\d{1,3}(?:\.\d{3})+|\d+)(?:,\d+)?$")


def parse_decimal(value) -> Decimal:
    """
    Parse a JSON number or numeric string to Decimal.

    Accepts ints, floats and strings using either dot or comma as decimal
    separator ("12.5", "12,5", "1.234,56").

    Raises:
        ValueError: if the value is empty, not numeric or not finite.
    """
    if value is None or isinstance(value, bool):
        raise ValueError('Valor numérico inválido')

    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    else:
        cleaned = str(value).strip().replace(' ', '')
        if not cleaned:
            raise ValueError('Valor numérico inválido')
        if AR_NUMBER_PATTERN.match(cleaned) and ',' in cleaned:
            normalized = cleaned.replace('.', '').replace(',', '.')
        else:
            normalized = cleaned.replace(',', '.')
        try:
            result = Decimal(normalized)
        except (InvalidOperation, ValueError):
            raise ValueError('Valor numérico inválido')

    if not result.is_finite():
        raise ValueError('Valor numérico inválido')
    return result


def parse_positive(value) -> Decimal:
    """Parse a strictly positive quantity or amount."""
    result = parse_decimal(value)
    if result <= 0:
        raise ValueError('El valor debe ser mayor a 0')
    return result


def round_money(value) -> Decimal:
    """Round to cents, half up."""
    return Decimal(str(value or 0)).quantize(CENTS, rounding=ROUND_HALF_UP)


def to_float(value):
    """Decimal -> float for JSON responses (None stays None)."""
    if value is None:
        return None
    return float(value)


def to_decimal(value) -> Decimal:
    """Coerce a DB aggregate (Decimal, float, int or None) to Decimal."""
    if value is None:
        return Decimal('0')
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))
