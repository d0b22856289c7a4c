"""Fixed-point integer arithmetic shared by every risk calculation.

Values are plain Python ints held to the signed 128-bit range. Products are
range-checked before they are divided, and division truncates toward zero
(not Python's floor) so results match two's-complement integer hardware
bit for bit.
"""

from vantis_risk.protocol.errors import ArithmeticOverflow, InvalidInput

# Basis points: 10_000 = 100% = ratio 1.0
BPS = 10_000

# USD prices and values carry 14 decimals
PRICE_DECIMALS = 14
PRICE_SCALE = 10**PRICE_DECIMALS

I128_MAX = 2**127 - 1
I128_MIN = -(2**127)

SECONDS_PER_YEAR = 365 * 24 * 60 * 60

# floor(sqrt(365)), used to annualize daily figures and scale time horizons
SQRT_DAYS_PER_YEAR = 19


def check_i128(value: int, what: str = "value") -> int:
    """Return *value* unchanged, or raise if it does not fit in an i128."""
    if value > I128_MAX or value < I128_MIN:
        raise ArithmeticOverflow(f"{what} overflows signed 128-bit range: {value}")
    return value


def mul(*factors: int) -> int:
    """Checked product; every partial product must stay in range."""
    result = 1
    for factor in factors:
        result = check_i128(result * factor, "product")
    return result


def tdiv(numerator: int, denominator: int) -> int:
    """Integer division truncating toward zero."""
    if denominator == 0:
        raise InvalidInput("division by zero")
    quotient = abs(numerator) // abs(denominator)
    if (numerator < 0) != (denominator < 0):
        return -quotient
    return quotient


def mul_div(a: int, b: int, denominator: int) -> int:
    """``a * b / denominator`` with the product fully formed before dividing."""
    return tdiv(mul(a, b), denominator)


def saturating_sub(a: int, b: int, floor: int = 0) -> int:
    """``a - b`` clamped so it never drops below *floor*."""
    return max(a - b, floor)


def integer_sqrt(n: int) -> int:
    """Floor square root by Newton's method.

    ``integer_sqrt(n) ** 2 <= n < (integer_sqrt(n) + 1) ** 2`` for every
    non-negative ``n``. Non-positive inputs return 0.
    """
    if n <= 0:
        return 0
    if n == 1:
        return 1

    x = n
    y = (x + 1) // 2
    while y < x:
        x = y
        y = (x + n // x) // 2
    return x
