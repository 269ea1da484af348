from collections import namedtuple

from .. import decimal_math
from .errors import FormulaSyntaxError

# Strict functions: every argument is evaluated before the call.
# Special forms (IF, COALESCE, PARAM, ...) live in the evaluator.
Function = namedtuple("Function", ["impl", "min_args", "max_args"])

DEFAULT_MAX_PRECISION = 50


def as_int(value):
    """Integer part of a decimal string, e.g. a precision argument."""
    return int(decimal_math.to_decimal(value))


def precision_arg(name, context, value):
    precision = as_int(value)
    if precision > context.max_precision:
        raise FormulaSyntaxError(
            f"{name} precision {precision} exceeds the maximum of {context.max_precision}"
        )
    return precision


def _round(context, value, precision="2", mode=decimal_math.RoundingMode.HALF_UP):
    return decimal_math.round_value(value, precision_arg("ROUND", context, precision), mode)


def _truncate(context, value, precision="0"):
    return decimal_math.truncate(value, precision_arg("TRUNCATE", context, precision))


ALLOWED_FUNCTIONS = {
    "MIN": Function(lambda context, *args: decimal_math.minimum(*args), 0, None),
    "MAX": Function(lambda context, *args: decimal_math.maximum(*args), 0, None),
    "ABS": Function(lambda context, value: decimal_math.absolute(value, context.scale), 1, 1),
    "FLOOR": Function(lambda context, value: decimal_math.floor(value), 1, 1),
    "CEIL": Function(lambda context, value: decimal_math.ceil(value), 1, 1),
    "TRUNCATE": Function(_truncate, 1, 2),
    "ROUND": Function(_round, 1, 3),
}
