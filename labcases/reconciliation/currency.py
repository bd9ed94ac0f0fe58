"""
Currency normalization between the reference currency (USD) and the
local currency (VES).

Amounts typed in the dashboard follow the es-VE locale ("1.234,56") but
pasted values frequently arrive in US format ("1,234.56"), so parsing
decides the decimal separator from the position of the marks.
"""

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

from ..exceptions import InvalidRateError
from ..models.enums import Currency, PaymentMethod

ZERO = Decimal("0")
CENT = Decimal("0.01")

# Currency markers and whitespace that may surround a typed amount
_NOISE = re.compile(r"(?i)bs\.?|\$|usd|ves|\s")


def parse_amount(value: Any) -> Decimal:
    """
    Parse a locale-formatted amount.

    Examples:
        "5606,39"   -> 5606.39
        "5.606,39"  -> 5606.39   (es-VE)
        "5,606.39"  -> 5606.39   (US)
        "5.606.789" -> 5606789   (grouping only)

    Unparseable input returns 0 instead of raising, since this backs
    live typing.
    """
    if value is None or isinstance(value, bool):
        return ZERO

    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO

    if isinstance(value, (int, float)):
        try:
            parsed = Decimal(str(value))
        except InvalidOperation:
            return ZERO
        return parsed if parsed.is_finite() else ZERO

    if not isinstance(value, str):
        return ZERO

    cleaned = _NOISE.sub("", value)
    if not cleaned:
        return ZERO

    comma_count = cleaned.count(",")
    dot_count = cleaned.count(".")

    if comma_count == 1 and dot_count == 0:
        normalized = cleaned.replace(",", ".")
    elif comma_count > 0 and dot_count > 0:
        if cleaned.rfind(",") > cleaned.rfind("."):
            normalized = cleaned.replace(".", "").replace(",", ".")
        else:
            normalized = cleaned.replace(",", "")
    elif comma_count > 1:
        normalized = cleaned.replace(",", "")
    elif dot_count > 1:
        normalized = cleaned.replace(".", "")
    else:
        normalized = cleaned

    try:
        parsed = Decimal(normalized)
    except InvalidOperation:
        return ZERO

    return parsed if parsed.is_finite() else ZERO


def quantize_money(amount: Decimal) -> Decimal:
    """Round to cents, half up."""
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def coerce_rate(rate: Any) -> Decimal:
    """Return the rate as a Decimal, raising InvalidRateError unless it is > 0."""
    if rate is None or isinstance(rate, bool):
        raise InvalidRateError(rate)
    try:
        value = rate if isinstance(rate, Decimal) else Decimal(str(rate))
    except InvalidOperation:
        raise InvalidRateError(rate)
    if not value.is_finite() or value <= 0:
        raise InvalidRateError(rate)
    return value


def to_reference(amount: Decimal, method: PaymentMethod, rate: Optional[Decimal]) -> Decimal:
    """
    Express a payment amount in the reference currency.

    USD methods pass through unchanged; VES methods are divided by the
    rate (VES per USD). A missing or non-positive rate on a VES method
    raises InvalidRateError.
    """
    if method.currency == Currency.USD:
        return amount
    return amount / coerce_rate(rate)


def to_local(amount: Decimal, rate: Optional[Decimal]) -> Decimal:
    """Express a reference-currency amount in the local currency."""
    return amount * coerce_rate(rate)


def format_amount(amount: Any) -> str:
    """Format with two decimals in es-VE style: 1.234,56"""
    value = quantize_money(parse_amount(amount))
    sign = "-" if value < 0 else ""
    us_style = f"{abs(value):,.2f}"
    return sign + us_style.replace(",", "_").replace(".", ",").replace("_", ".")
