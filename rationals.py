"""
Exact rational numbers for Ember numeric literals
"""

from typing import Optional
from fractions import Fraction

from error_handling import NumericLiteralError


def _digits_to_int(digits: str) -> int:
    if not digits or not digits.isdigit() or not digits.isascii():
        raise NumericLiteralError(f"not a digit sequence: {digits!r}")
    try:
        # int() reads leading zeros as decimal, never octal
        return int(digits, 10)
    except ValueError as e:
        raise NumericLiteralError(f"cannot build an integer from {len(digits)} digits: {e}") from e


def build_rational(int_digits: str, frac_digits: Optional[str] = None) -> Fraction:
    """
    Build the exact value of `int_digits` or `int_digits.frac_digits`.

    "12.50" becomes 1250/100, which Fraction keeps in lowest terms as 25/2.
    """
    if frac_digits is None:
        return Fraction(_digits_to_int(int_digits), 1)

    _digits_to_int(int_digits)
    _digits_to_int(frac_digits)
    numerator = _digits_to_int(int_digits + frac_digits)
    return Fraction(numerator, 10 ** len(frac_digits))


def render_decimal(value: Fraction) -> str:
    """Canonical decimal text of a terminating rational: 25/2 -> "12.5", 7/1 -> "7" """
    if value.denominator == 1:
        return str(value.numerator)

    denominator = value.denominator
    twos = fives = 0
    while denominator % 2 == 0:
        denominator //= 2
        twos += 1
    while denominator % 5 == 0:
        denominator //= 5
        fives += 1
    if denominator != 1:
        raise ValueError(f"{value} has no finite decimal expansion")

    places = max(twos, fives)
    scaled = abs(value.numerator) * (10 ** places // value.denominator)
    digits = str(scaled).rjust(places + 1, "0")
    sign = "-" if value < 0 else ""
    return f"{sign}{digits[:-places]}.{digits[-places:]}"
