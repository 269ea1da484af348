import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date as date_type
from typing import Any, Dict, List, Optional

from .. import decimal_math
from .ast_nodes import (
    BinaryOpNode, BooleanNode, FunctionCallNode, NumberNode, StringNode, UnaryOpNode, VarNode,
)
from .errors import (
    DivisionByZeroError, FormulaError, FormulaSyntaxError, UndefinedFunctionError, UndefinedVariableError,
)
from .functions import ALLOWED_FUNCTIONS, DEFAULT_MAX_PRECISION, as_int
from .resolution import Resolver

ARITHMETIC = {
    "+": decimal_math.add,
    "-": decimal_math.sub,
    "*": decimal_math.mul,
}
COMPARISONS = {
    "<": decimal_math.lt,
    ">": decimal_math.gt,
    "<=": decimal_math.lte,
    ">=": decimal_math.gte,
    "==": decimal_math.eq,
    "!=": lambda a, b, scale: not decimal_math.eq(a, b, scale),
}

# DSL name -> (tier calculator method, argument count)
COUNTRY_TAX_FUNCTIONS = {
    "CL_IMPUESTO_UNICO": ("chile_impuesto_unico", 2),
    "BR_INSS_PROGRESSIVO": ("brazil_inss_progressivo", 1),
    "BR_IRRF_PROGRESSIVO": ("brazil_irrf_progressivo", 1),
}
TIER_MODE_MARGINAL = "MARGINAL"


def _lower_keys(value):
    if isinstance(value, Mapping):
        return {str(k).lower(): _lower_keys(v) for k, v in value.items()}
    return value


def as_value(raw) -> str:
    """Render an external scalar as a formula value."""
    if isinstance(raw, str):
        return raw
    if isinstance(raw, bool):
        return "1" if raw else "0"
    return decimal_math.normalize(raw)


@dataclass
class EvaluationContext:
    """Everything one evaluation may read. Built per call, never shared."""
    variables: Dict[str, Any] = field(default_factory=dict)
    concepts: Dict[str, Any] = field(default_factory=dict)
    groups: Dict[str, List[Mapping]] = field(default_factory=dict)
    date: str = ""
    employee_id: Optional[int] = None
    scale: int = decimal_math.DEFAULT_INTERNAL_SCALE
    max_precision: int = DEFAULT_MAX_PRECISION

    @classmethod
    def from_mapping(
        cls,
        context: Optional[Mapping] = None,
        scale: Optional[int] = None,
        max_precision: Optional[int] = None,
    ):
        context = context or {}
        evaluation_date = context.get("date") or date_type.today()
        if isinstance(evaluation_date, date_type):
            evaluation_date = evaluation_date.isoformat()
        employee_id = context.get("employee_id")
        return cls(
            variables=_lower_keys(context.get("variables") or {}),
            concepts={str(k).lower(): v for k, v in (context.get("concepts") or {}).items()},
            groups=dict(context.get("groups") or {}),
            date=str(evaluation_date),
            employee_id=int(employee_id) if employee_id is not None else None,
            scale=decimal_math.DEFAULT_INTERNAL_SCALE if scale is None else int(scale),
            max_precision=DEFAULT_MAX_PRECISION if max_precision is None else int(max_precision),
        )


class Evaluator:
    def __init__(self, context, resolver=None, tier_calculator=None, trace=None):
        self.context = context
        self.trace = trace if trace is not None else []
        self.resolver = resolver or Resolver(self.trace, {})
        self.tier_calculator = tier_calculator

    @property
    def scale(self):
        return self.context.scale

    def eval(self, node):
        if isinstance(node, NumberNode):
            return node.value

        if isinstance(node, StringNode):
            return node.value

        if isinstance(node, BooleanNode):
            return "1" if node.value else "0"

        if isinstance(node, VarNode):
            return self.resolve_variable(node)

        if isinstance(node, FunctionCallNode):
            return self.call(node.name, node.args)

        if isinstance(node, UnaryOpNode):
            value = self.eval(node.operand)
            if node.op == "-":
                return decimal_math.negate(value, self.scale)
            if node.op == "NOT":
                return "1" if decimal_math.is_zero(value, self.scale) else "0"
            raise FormulaError(f"Unsupported unary operator {node.op}")

        if isinstance(node, BinaryOpNode):
            return self.binary(node)

        raise FormulaError(f"Invalid AST node {node!r}")

    def truthy(self, node):
        return not decimal_math.is_zero(self.eval(node), self.scale)

    def binary(self, node):
        op = node.op

        # Right side only runs when the left side doesn't settle the result
        if op == "AND":
            if not self.truthy(node.left):
                return "0"
            return "1" if self.truthy(node.right) else "0"
        if op == "OR":
            if self.truthy(node.left):
                return "1"
            return "1" if self.truthy(node.right) else "0"

        left = self.eval(node.left)
        right = self.eval(node.right)

        if op in ARITHMETIC:
            return ARITHMETIC[op](left, right, self.scale)
        if op == "/":
            try:
                return decimal_math.div(left, right, self.scale, throw_on_zero=True)
            except ZeroDivisionError:
                raise DivisionByZeroError(f"Division by zero: {left} / {right}") from None
        if op in COMPARISONS:
            return "1" if COMPARISONS[op](left, right, self.scale) else "0"

        raise FormulaError(f"Unsupported operator {op}")

    def resolve_variable(self, node):
        key = node.name

        if self.context.concepts.get(key) is not None:
            value = as_value(self.context.concepts[key])
            self.trace.append(f"VAR[{key}] = {value}")
            return value

        current = self.context.variables
        for part in node.path:
            part = part.lower()
            if not isinstance(current, Mapping) or current.get(part) is None:
                raise UndefinedVariableError(f"Undefined variable: {key}")
            current = current[part]

        if isinstance(current, (Mapping, list, tuple)):
            raise UndefinedVariableError(f"Variable {key} does not resolve to a value")

        value = as_value(current)
        self.trace.append(f"VAR[{key}] = {value}")
        return value

    # =========================================================================
    # Function calls
    # =========================================================================

    def call(self, name, args):
        if name in ALLOWED_FUNCTIONS:
            func = ALLOWED_FUNCTIONS[name]
            check_arity(name, args, func.min_args, func.max_args)
            values = [self.eval(a) for a in args]
            return func.impl(self.context, *values)

        if name in ("IF", "IIF"):
            check_arity(name, args, 3, 3)
            if self.truthy(args[0]):
                return self.eval(args[1])
            return self.eval(args[2])

        if name == "COALESCE":
            for arg in args:
                value = self.eval(arg)
                if value is not None and value != "":
                    return value
            return "0"

        if name == "PARAM":
            check_arity(name, args, 1, 2)
            key = self.eval(args[0])
            evaluation_date = self.eval(args[1]) if len(args) > 1 else self.context.date
            return self.resolver.param(key, evaluation_date)

        if name == "EMP_PARAM":
            check_arity(name, args, 1, 3)
            key = self.eval(args[0])
            employee_id = as_int(self.eval(args[1])) if len(args) > 1 else self.context.employee_id
            evaluation_date = self.eval(args[2]) if len(args) > 2 else self.context.date
            return self.resolver.employee_param(key, employee_id, evaluation_date)

        if name == "SUM_GROUP":
            check_arity(name, args, 1, 1)
            code = self.eval(args[0])
            return self.resolver.group_sum(code, self.context.concepts, self.context.groups, self.scale)

        if name in COUNTRY_TAX_FUNCTIONS:
            return self.country_tax(name, args)

        if name == "TIER_CALC":
            return self.tier_calc(args)

        raise UndefinedFunctionError(f"Unknown function: {name}")

    def require_tier_calculator(self, name):
        if self.tier_calculator is None:
            raise UndefinedFunctionError(f"{name} requires a tier calculator, none is configured")
        return self.tier_calculator

    def country_tax(self, name, args):
        method, arity = COUNTRY_TAX_FUNCTIONS[name]
        check_arity(name, args, arity, arity)
        calculator = self.require_tier_calculator(name)
        values = [self.eval(a) for a in args]

        result = getattr(calculator, method)(*values, date=self.context.date)
        amount = str(result["amount"])

        if name == "CL_IMPUESTO_UNICO":
            shown = f"{values[0]}, UTM={values[1]}"
        else:
            shown = ", ".join(values)
        self.trace.append(f"{name}({shown}) = {amount} (rate: {result['effective_rate']})")
        return amount

    def tier_calc(self, args):
        check_arity("TIER_CALC", args, 2, 3)
        calculator = self.require_tier_calculator("TIER_CALC")
        base = self.eval(args[0])
        tiers_json = self.eval(args[1])
        mode = self.eval(args[2]).upper() if len(args) > 2 else TIER_MODE_MARGINAL

        try:
            tiers = json.loads(tiers_json)
        except (TypeError, ValueError):
            tiers = None
        # An object table is taken as its tiers in key order
        if isinstance(tiers, Mapping):
            tiers = list(tiers.values())
        if not isinstance(tiers, list):
            raise FormulaError("TIER_CALC: Invalid tiers JSON")

        result = calculator.calculate(base, tiers, mode)
        amount = str(result["amount"])
        self.trace.append(f"TIER_CALC({base}, mode={mode}) = {amount}")
        return amount


def check_arity(name, args, min_args, max_args):
    count = len(args)
    if count < min_args or (max_args is not None and count > max_args):
        if max_args is None:
            expected = f"at least {min_args}"
        elif min_args == max_args:
            expected = str(min_args)
        else:
            expected = f"{min_args}-{max_args}"
        raise FormulaSyntaxError(f"{name} expects {expected} arguments, got {count}")
