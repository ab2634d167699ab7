"""
Currency and Formatting Module

Resolves ISO 4217 currency codes to display symbols and formats monetary
amounts. Also holds the Decimal helpers every other module uses so that
money is never handled as float.

The calculation engine is currency-agnostic: it works on raw Decimal
amounts. Currency codes only matter here, at the display boundary.
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation, getcontext
from typing import Any, Optional, Union
from enum import Enum
import re

# High precision for intermediate results; amounts are quantized explicitly
getcontext().prec = 28

CENTS = Decimal('0.01')
ZERO = Decimal('0.00')

DEFAULT_CURRENCY_CODE = "USD"

Number = Union[Decimal, int, float, str]


class Currency(Enum):
    """ISO 4217 currency codes with display precision and symbol"""
    USD = ("USD", 2, "$")
    EUR = ("EUR", 2, "€")
    GBP = ("GBP", 2, "£")
    JPY = ("JPY", 0, "¥")
    CAD = ("CAD", 2, "CA$")
    AUD = ("AUD", 2, "A$")
    NZD = ("NZD", 2, "NZ$")
    CHF = ("CHF", 2, "CHF")
    CNY = ("CNY", 2, "CN¥")
    INR = ("INR", 2, "₹")
    ZAR = ("ZAR", 2, "R")
    NAD = ("NAD", 2, "N$")
    BWP = ("BWP", 2, "P")
    KES = ("KES", 2, "KSh")
    NGN = ("NGN", 2, "₦")

    def __init__(self, code: str, precision: int, symbol: str):
        self.code = code
        self.precision = precision
        self.symbol = symbol


def resolve_currency(code: Optional[str]) -> Currency:
    """
    Resolve a currency code for display.

    Unknown, malformed or missing codes fall back to USD.
    """
    if not code or not isinstance(code, str):
        return Currency[DEFAULT_CURRENCY_CODE]
    try:
        return Currency[code.strip().upper()]
    except KeyError:
        return Currency[DEFAULT_CURRENCY_CODE]


def currency_symbol(code: Optional[str]) -> str:
    """Display symbol for a currency code ("$" when unknown)"""
    return resolve_currency(code).symbol


def is_currency_code(code: Any) -> bool:
    """Check that a value is shaped like an ISO 4217 code (three letters)"""
    return isinstance(code, str) and re.fullmatch(r'[A-Za-z]{3}', code.strip()) is not None


def to_decimal(value: Number) -> Decimal:
    """
    Convert a number to Decimal without passing through binary float.

    Raises:
        ValueError: If the value is not a finite number
    """
    if isinstance(value, bool) or value is None:
        raise ValueError(f"Cannot convert {value!r} to Decimal")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"Cannot convert {value!r} to Decimal")
    if not result.is_finite():
        raise ValueError(f"Cannot convert {value!r} to Decimal")
    return result


def round_money(value: Number) -> Decimal:
    """
    Round an amount to 2 decimal places, half up.

    Raises:
        ValueError: If the value is not a finite number or has too many
            digits to hold at cent precision
    """
    amount = to_decimal(value)
    try:
        return amount.quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValueError(f"Amount {value!r} is too large")


def format_amount(value: Optional[Number], decimal_places: int = 2) -> str:
    """
    Format a number with thousands separators and fixed decimals.

    Empty values format as an empty string; anything that is not a number
    is returned unchanged as a string.
    """
    if value is None or value == "":
        return ""
    try:
        amount = to_decimal(value)
    except ValueError:
        return str(value)
    quantum = Decimal(1).scaleb(-decimal_places)
    try:
        amount = amount.quantize(quantum, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return str(value)
    return f"{amount:,.{decimal_places}f}"


def format_money(value: Number, currency_code: Optional[str] = None) -> str:
    """Format an amount with its currency symbol, e.g. "$1,234.50" """
    currency = resolve_currency(currency_code)
    formatted = format_amount(abs(to_decimal(value)), currency.precision)
    sign = "-" if to_decimal(value) < 0 else ""
    return f"{sign}{currency.symbol}{formatted}"

