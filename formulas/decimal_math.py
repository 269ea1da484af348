"""
Exact decimal arithmetic for payroll and financial formulas.

Every function takes decimal strings (``None`` and ``""`` count as zero) and
returns a decimal string. Arithmetic results are truncated toward zero at the
requested scale and stripped of insignificant trailing zeros; rounding
helpers return exactly ``precision`` fraction digits.

    add("100.50", "50.25")              # "150.75"
    round_value("100.125", 2)           # "100.13"
    div("100", "3", 4)                  # "33.3333"
    allocate("100", ["1", "1", "1"])    # ["33.34", "33.33", "33.33"]
"""
import math
import re
from decimal import Decimal, Context, InvalidOperation, MAX_PREC, MAX_EMAX, MIN_EMIN, ROUND_DOWN
from enum import Enum
from fractions import Fraction
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

DEFAULT_INTERNAL_SCALE = 10
DEFAULT_PRECISION = 2

# Additions and multiplications under this context are exact.
_EXACT = Context(prec=MAX_PREC, Emax=MAX_EMAX, Emin=MIN_EMIN, rounding=ROUND_DOWN)

_NON_NUMERIC = re.compile(r"[^\d.\-]")
_ZERO = Decimal(0)
_ONE = Decimal(1)
_HALF = Decimal("0.5")


class RoundingMode(str, Enum):
    HALF_UP = "HALF_UP"
    HALF_DOWN = "HALF_DOWN"
    BANKERS = "BANKERS"
    FLOOR = "FLOOR"
    CEIL = "CEIL"
    TRUNCATE = "TRUNCATE"

    @classmethod
    def parse(cls, mode) -> "RoundingMode":
        """Unknown modes fall back to HALF_UP."""
        if isinstance(mode, cls):
            return mode
        try:
            return cls(str(mode).strip().upper())
        except ValueError:
            return cls.HALF_UP


# =========================================================================
# Normalization
# =========================================================================

def normalize(value: Any) -> str:
    """
    Coerce loosely-typed input into a clean decimal string.

    Strings are stripped of everything except digits, signs and points.
    Anything that still doesn't parse becomes "0" rather than an error.
    """
    return _format(to_decimal(value))


def to_decimal(value: Any) -> Decimal:
    if value is None or value == "":
        return _ZERO
    if isinstance(value, bool):
        return _ONE if value else _ZERO
    if isinstance(value, Decimal):
        return value if value.is_finite() else _ZERO
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            return _ZERO
        return Decimal(repr(value))
    cleaned = _NON_NUMERIC.sub("", str(value))
    if not cleaned:
        return _ZERO
    try:
        number = Decimal(cleaned)
    except InvalidOperation:
        return _ZERO
    return number if number.is_finite() else _ZERO


def _format(number: Decimal) -> str:
    if number.is_zero():
        return "0"
    return format(number, "f")


def _canonical(number: Decimal) -> str:
    """Strip insignificant trailing zeros."""
    if number.is_zero():
        return "0"
    text = format(number, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def _quantum(places: int) -> Decimal:
    return _ONE.scaleb(-places, context=_EXACT)


def _truncate_at(number: Decimal, scale: int) -> Decimal:
    return number.quantize(_quantum(max(scale, 0)), rounding=ROUND_DOWN, context=_EXACT)


def _scaled(number: Decimal, scale: Optional[int]) -> str:
    scale = DEFAULT_INTERNAL_SCALE if scale is None else scale
    return _canonical(_truncate_at(number, scale))


def _fixed(number: Decimal, precision: int) -> str:
    quantized = number.quantize(_quantum(precision), rounding=ROUND_DOWN, context=_EXACT)
    if quantized.is_zero():
        quantized = quantized.copy_abs()
    return format(quantized, "f")


def _total(values) -> Decimal:
    total = _ZERO
    for value in values:
        total = _EXACT.add(total, value)
    return total


# =========================================================================
# Arithmetic
# =========================================================================

def add(a: Optional[str], b: Optional[str], scale: Optional[int] = None) -> str:
    return _scaled(_EXACT.add(to_decimal(a), to_decimal(b)), scale)


def sub(a: Optional[str], b: Optional[str], scale: Optional[int] = None) -> str:
    return _scaled(_EXACT.subtract(to_decimal(a), to_decimal(b)), scale)


def mul(a: Optional[str], b: Optional[str], scale: Optional[int] = None) -> str:
    return _scaled(_EXACT.multiply(to_decimal(a), to_decimal(b)), scale)


def _exact_quotient(a: Decimal, b: Decimal, scale: int) -> Decimal:
    quotient = Fraction(a) / Fraction(b)
    # int() truncates toward zero
    return Decimal(int(quotient * 10 ** scale)).scaleb(-scale, context=_EXACT)


def div(
    a: Optional[str],
    b: Optional[str],
    scale: Optional[int] = None,
    throw_on_zero: bool = False,
) -> Optional[str]:
    """
    Divide a by b.

    Returns None on a zero divisor, or raises ZeroDivisionError when
    ``throw_on_zero`` is set.
    """
    scale = DEFAULT_INTERNAL_SCALE if scale is None else max(scale, 0)
    divisor = to_decimal(b)
    if _truncate_at(divisor, scale).is_zero():
        if throw_on_zero:
            raise ZeroDivisionError("Division by zero")
        return None
    return _canonical(_exact_quotient(to_decimal(a), divisor, scale))


def mod(a: Optional[str], b: Optional[str], scale: Optional[int] = None) -> Optional[str]:
    scale = DEFAULT_INTERNAL_SCALE if scale is None else scale
    divisor = to_decimal(b)
    if _truncate_at(divisor, scale).is_zero():
        return None
    return _scaled(_EXACT.remainder(to_decimal(a), divisor), scale)


def power(base: Optional[str], exponent: int, scale: Optional[int] = None) -> Optional[str]:
    exponent = int(exponent)
    number = to_decimal(base)
    if exponent == 0:
        return "1"
    if exponent > 0:
        return _scaled(_EXACT.power(number, exponent), scale)
    if number.is_zero():
        return None
    return div("1", _format(_EXACT.power(number, -exponent)), scale)


def sqrt(number: Optional[str], scale: Optional[int] = None) -> Optional[str]:
    """Square root truncated at scale, or None for negative input."""
    scale = DEFAULT_INTERNAL_SCALE if scale is None else max(scale, 0)
    value = to_decimal(number)
    if value < 0:
        return None
    shifted = int(value.scaleb(2 * scale, context=_EXACT).to_integral_value(rounding=ROUND_DOWN))
    return _canonical(Decimal(math.isqrt(shifted)).scaleb(-scale, context=_EXACT))


def absolute(number: Optional[str], scale: Optional[int] = None) -> str:
    return _scaled(to_decimal(number).copy_abs(), scale)


def negate(number: Optional[str], scale: Optional[int] = None) -> str:
    return _scaled(to_decimal(number).copy_negate(), scale)


# =========================================================================
# Comparison
# =========================================================================

def comp(a: Optional[str], b: Optional[str], scale: Optional[int] = None) -> int:
    """Return -1, 0 or 1 comparing a and b truncated at scale."""
    scale = DEFAULT_INTERNAL_SCALE if scale is None else scale
    left = _truncate_at(to_decimal(a), scale)
    right = _truncate_at(to_decimal(b), scale)
    if left < right:
        return -1
    if left > right:
        return 1
    return 0


def is_zero(number: Optional[str], scale: Optional[int] = None) -> bool:
    return comp(number, "0", scale) == 0


def is_positive(number: Optional[str], scale: Optional[int] = None) -> bool:
    return comp(number, "0", scale) > 0


def is_negative(number: Optional[str], scale: Optional[int] = None) -> bool:
    return comp(number, "0", scale) < 0


def gt(a: Optional[str], b: Optional[str], scale: Optional[int] = None) -> bool:
    return comp(a, b, scale) > 0


def gte(a: Optional[str], b: Optional[str], scale: Optional[int] = None) -> bool:
    return comp(a, b, scale) >= 0


def lt(a: Optional[str], b: Optional[str], scale: Optional[int] = None) -> bool:
    return comp(a, b, scale) < 0


def lte(a: Optional[str], b: Optional[str], scale: Optional[int] = None) -> bool:
    return comp(a, b, scale) <= 0


def eq(a: Optional[str], b: Optional[str], scale: Optional[int] = None) -> bool:
    return comp(a, b, scale) == 0


# =========================================================================
# Min / max
# =========================================================================

def minimum(*values) -> str:
    candidates = [to_decimal(v) for v in values if v is not None]
    if not candidates:
        return "0"
    return _format(min(candidates))


def maximum(*values) -> str:
    candidates = [to_decimal(v) for v in values if v is not None]
    if not candidates:
        return "0"
    return _format(max(candidates))


def clamp(
    value: Optional[str],
    low: Optional[str],
    high: Optional[str],
    scale: Optional[int] = None,
) -> str:
    """Clamp value into [low, high]; a None bound is open."""
    if low is not None and comp(value, low, scale) < 0:
        return normalize(low)
    if high is not None and comp(value, high, scale) > 0:
        return normalize(high)
    return normalize(value)


# =========================================================================
# Rounding
# =========================================================================

def round_value(
    number: Optional[str],
    precision: int = DEFAULT_PRECISION,
    mode: Union[str, RoundingMode] = RoundingMode.HALF_UP,
) -> str:
    """
    Round to ``precision`` fraction digits.

    The sign is set aside, the magnitude is shifted by 10**precision and
    split into integer and fraction parts, the mode decides whether the
    integer part is bumped, and the result is shifted back. All steps are
    exact decimal operations.
    """
    mode = RoundingMode.parse(mode)
    precision = max(int(precision), 0)
    value = to_decimal(number)

    negative = value < 0
    scaled = value.copy_abs().scaleb(precision, context=_EXACT)
    integer = scaled.to_integral_value(rounding=ROUND_DOWN)
    fraction = _EXACT.subtract(scaled, integer)

    bump = False
    if mode is RoundingMode.HALF_UP:
        bump = fraction >= _HALF
    elif mode is RoundingMode.HALF_DOWN:
        bump = fraction > _HALF
    elif mode is RoundingMode.BANKERS:
        bump = fraction > _HALF or (fraction == _HALF and _EXACT.remainder(integer, 2) == 1)
    elif mode is RoundingMode.CEIL:
        bump = fraction > 0 and not negative
    elif mode is RoundingMode.FLOOR:
        bump = fraction > 0 and negative

    if bump:
        integer = _EXACT.add(integer, _ONE)

    result = integer.scaleb(-precision, context=_EXACT)
    if negative:
        result = result.copy_negate()
    return _fixed(result, precision)


def truncate(number: Optional[str], precision: int = 0) -> str:
    return round_value(number, precision, RoundingMode.TRUNCATE)


def floor(number: Optional[str], precision: int = 0) -> str:
    return round_value(number, precision, RoundingMode.FLOOR)


def ceil(number: Optional[str], precision: int = 0) -> str:
    return round_value(number, precision, RoundingMode.CEIL)


# =========================================================================
# Percentages and financial helpers
# =========================================================================

def percent(value: Optional[str], rate: Optional[str], scale: Optional[int] = None) -> str:
    """value * rate / 100"""
    return mul(value, div(rate, "100", scale), scale)


def percent_change(old_value: Optional[str], new_value: Optional[str], scale: Optional[int] = None) -> Optional[str]:
    """(new - old) / old * 100, or None when old is zero."""
    if is_zero(old_value, scale):
        return None
    ratio = div(sub(new_value, old_value, scale), old_value, scale)
    return mul(ratio, "100", scale)


def apply_discount(value: Optional[str], factor: Optional[str], scale: Optional[int] = None) -> str:
    factor = clamp(factor, "0", "1", scale)
    return mul(value, sub("1", factor, scale), scale)


def discount_amount(value: Optional[str], factor: Optional[str], scale: Optional[int] = None) -> str:
    return mul(value, clamp(factor, "0", "1", scale), scale)


def tax_from_net(net: Optional[str], tax_rate: Optional[str], scale: Optional[int] = None) -> str:
    return percent(net, tax_rate, scale)


def net_from_gross(gross: Optional[str], tax_rate: Optional[str], scale: Optional[int] = None) -> Optional[str]:
    divisor = add("1", div(tax_rate, "100", scale), scale)
    return div(gross, divisor, scale)


def gross_from_net(net: Optional[str], tax_rate: Optional[str], scale: Optional[int] = None) -> str:
    multiplier = add("1", div(tax_rate, "100", scale), scale)
    return mul(net, multiplier, scale)


def sum_values(values: Sequence[Optional[str]], scale: Optional[int] = None) -> str:
    total = "0"
    for value in values:
        if value is not None:
            total = add(total, value, scale)
    return total


def avg_values(values: Sequence[Optional[str]], scale: Optional[int] = None) -> Optional[str]:
    present = [v for v in values if v is not None]
    if not present:
        return None
    return div(sum_values(present, scale), str(len(present)), scale)


# =========================================================================
# Proration and allocation
# =========================================================================

def prorate_days(amount: Optional[str], worked_days: int, total_days: int, scale: Optional[int] = None) -> str:
    if total_days <= 0:
        return "0"
    return mul(amount, div(str(worked_days), str(total_days), scale), scale)


def prorate_hours(
    amount: Optional[str],
    worked_hours: Optional[str],
    total_hours: Optional[str],
    scale: Optional[int] = None,
) -> str:
    if is_zero(total_hours, 6):
        return "0"
    return mul(amount, div(worked_hours, total_hours, scale), scale)


def allocate(
    amount: Optional[str],
    weights: Union[Sequence[Optional[str]], Mapping[Any, Optional[str]]],
    precision: int = DEFAULT_PRECISION,
    mode: Union[str, RoundingMode] = RoundingMode.HALF_UP,
) -> Union[List[str], Dict[Any, str]]:
    """
    Split ``amount`` proportionally to ``weights``.

    The parts always sum to ``amount`` rounded at ``precision``: whatever
    rounding leaves over is added to the bucket holding the largest part.
    A mapping of weights gives back a dict with the same keys.
    """
    keyed = isinstance(weights, Mapping)
    keys = list(weights.keys()) if keyed else list(range(len(weights)))
    values = [weights[k] for k in keys]
    precision = max(int(precision), 0)

    target = to_decimal(round_value(amount, precision, mode))
    total_weight = _total(to_decimal(w) for w in values)

    if total_weight.is_zero():
        parts = [_fixed(_ZERO, precision)] * len(keys)
    else:
        rounded = []
        for weight in values:
            portion = _exact_quotient(_EXACT.multiply(target, to_decimal(weight)), total_weight, DEFAULT_INTERNAL_SCALE + precision)
            rounded.append(to_decimal(round_value(_format(portion), precision, mode)))

        remainder = _EXACT.subtract(target, _total(rounded))
        if not remainder.is_zero() and rounded:
            largest = 0
            for index, part in enumerate(rounded):
                if part > rounded[largest]:
                    largest = index
            rounded[largest] = _EXACT.add(rounded[largest], remainder)
        parts = [_fixed(part, precision) for part in rounded]

    if keyed:
        return dict(zip(keys, parts))
    return parts


# =========================================================================
# Formatting
# =========================================================================

def format_number(
    number: Optional[str],
    decimals: int = DEFAULT_PRECISION,
    decimal_sep: str = ".",
    thousand_sep: str = ",",
) -> str:
    rounded = round_value(number, decimals)
    negative = rounded.startswith("-")
    integer, _, fraction = rounded.lstrip("-").partition(".")

    groups = []
    while len(integer) > 3:
        groups.insert(0, integer[-3:])
        integer = integer[:-3]
    groups.insert(0, integer)

    result = thousand_sep.join(groups)
    if decimals > 0:
        result += decimal_sep + fraction.ljust(decimals, "0")
    return "-" + result if negative else result


def parse_number(formatted: str, decimal_sep: str = ".", thousand_sep: str = ",") -> str:
    cleaned = formatted.replace(thousand_sep, "")
    if decimal_sep != ".":
        cleaned = cleaned.replace(decimal_sep, ".")
    return normalize(cleaned)
