"""
Stateless entry points for formula evaluation and validation.

Every call builds its own FormulaEngine, so evaluations never share a
context, trace or parameter ledger:

    evaluate("ROUND(earnings.base * PARAM('rate'), 2)",
             {"variables": {"earnings": {"base": "1500"}}},
             {"params": {"rate": "0.1"}})
"""
import logging
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .conf import engine_setting
from .dsl.ast_nodes import BinaryOpNode, FunctionCallNode, StringNode, UnaryOpNode, VarNode
from .dsl.errors import SYNTAX_ERROR, FormulaError
from .dsl.evaluator import EvaluationContext, Evaluator
from .dsl.parser import Parser
from .dsl.resolution import Resolver
from .dsl.tokenizer import Tokenizer

logger = logging.getLogger(__name__)

ENGINE_VERSION = "1.1.0"
DYNAMIC_DEPENDENCY = "dynamic"

# Call name -> dependency bucket for its first (key) argument
KEYED_CALLS = {
    "PARAM": "params",
    "EMP_PARAM": "emp_params",
    "SUM_GROUP": "groups",
}


class EngineState(Enum):
    UNSTARTED = "unstarted"
    TOKENIZING = "tokenizing"
    PARSING = "parsing"
    EVALUATING = "evaluating"
    DONE = "done"
    ERROR = "error"


class FormulaEngine:
    """One evaluation or validation. Not reusable across calls."""

    def __init__(self):
        self.state = EngineState.UNSTARTED
        self.trace: List[str] = []
        self.params_used: Dict[str, Dict[str, Any]] = {}

    def parse(self, expression):
        self.state = EngineState.TOKENIZING
        tokens = Tokenizer(expression).generate_tokens()
        self.state = EngineState.PARSING
        return Parser(
            tokens,
            max_depth=engine_setting("MAX_DEPTH"),
            strict=engine_setting("STRICT_TRAILING_TOKENS"),
        ).parse()

    def evaluate(self, expression: str, context: Optional[Mapping] = None, options: Optional[Mapping] = None) -> dict:
        options = options or {}
        scale = options.get("scale")
        if scale is None:
            scale = engine_setting("SCALE")

        try:
            evaluation_context = EvaluationContext.from_mapping(
                context, scale, max_precision=engine_setting("MAX_PRECISION"),
            )
            resolver = Resolver(
                self.trace,
                self.params_used,
                param_resolver=options.get("param_resolver"),
                emp_param_resolver=options.get("emp_param_resolver"),
                group_resolver=options.get("group_resolver"),
                params=options.get("params"),
                employee_params=options.get("employee_params"),
            )
            ast = self.parse(expression)
            self.state = EngineState.EVALUATING
            evaluator = Evaluator(
                evaluation_context,
                resolver=resolver,
                tier_calculator=options.get("tier_calculator"),
                trace=self.trace,
            )
            value = evaluator.eval(ast)
        except FormulaError as e:
            logger.debug(f"Formula evaluation error ({e.code}): {e} for formula: {expression}")
            return self.failure(expression, str(e), e.code)
        except Exception as e:
            logger.error(f"Unexpected error evaluating formula {expression!r}: {e}", exc_info=True)
            return self.failure(expression, str(e), SYNTAX_ERROR)

        self.state = EngineState.DONE
        return {
            "success": True,
            "value": value,
            "expression": expression,
            "trace": self.trace,
            "params_used": self.params_used,
            "engine_version": ENGINE_VERSION,
        }

    def failure(self, expression, message, code):
        self.state = EngineState.ERROR
        return {
            "success": False,
            "error": message,
            "error_code": code,
            "expression": expression,
            "trace": self.trace,
            "params_used": self.params_used,
        }

    def validate(self, expression: str) -> dict:
        try:
            ast = self.parse(expression)
            dependencies = extract_dependencies(ast)
        except FormulaError as e:
            self.state = EngineState.ERROR
            return {"valid": False, "error": str(e), "error_code": e.code}
        except Exception as e:
            logger.error(f"Unexpected error validating formula {expression!r}: {e}", exc_info=True)
            self.state = EngineState.ERROR
            return {"valid": False, "error": str(e), "error_code": SYNTAX_ERROR}

        self.state = EngineState.DONE
        return {
            "valid": True,
            "ast": ast,
            "dependencies": dependencies,
        }


def walk(node) -> Iterable:
    """Yield every node of the tree, parents before children, left to right."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        if isinstance(current, BinaryOpNode):
            stack.extend((current.right, current.left))
        elif isinstance(current, UnaryOpNode):
            stack.append(current.operand)
        elif isinstance(current, FunctionCallNode):
            stack.extend(reversed(current.args))


def extract_dependencies(ast) -> Dict[str, List[str]]:
    """
    Collect what a formula reads so callers can pre-resolve it.

    Keys passed as anything other than a string literal are reported as
    "dynamic". ``concepts`` stays empty: concept values and variables share
    one namespace, so every reference is listed under ``variables``.
    """
    dependencies = {"variables": [], "params": [], "emp_params": [], "groups": [], "concepts": []}

    def add(bucket, value):
        if value not in dependencies[bucket]:
            dependencies[bucket].append(value)

    for node in walk(ast):
        if isinstance(node, VarNode):
            add("variables", node.name)
        elif isinstance(node, FunctionCallNode) and node.name in KEYED_CALLS and node.args:
            key = node.args[0]
            add(KEYED_CALLS[node.name], key.value if isinstance(key, StringNode) else DYNAMIC_DEPENDENCY)

    return dependencies


def evaluate(expression: str, context: Optional[Mapping] = None, options: Optional[Mapping] = None) -> dict:
    """
    Evaluate a formula.

    Args:
        expression: DSL source text
        context: date, employee_id, variables, concepts and groups
        options: scale, resolver callbacks, tier_calculator and the static
            ``params``/``employee_params`` fallback maps

    Returns:
        {"success": True, "value", "trace", "params_used", ...} or
        {"success": False, "error", "error_code", "trace", ...}
    """
    return FormulaEngine().evaluate(expression, context, options)


def validate(expression: str) -> dict:
    """Tokenize and parse without evaluating; report dependencies."""
    return FormulaEngine().validate(expression)


def validate_formulas(formulas: Iterable[Mapping]) -> dict:
    """
    Validate a set of formulas.

    Args:
        formulas: items with "formula_code" and "expression"

    Returns:
        {"valid", "formula_count", "errors": [{formula_code, error, error_code}]}
    """
    errors = []
    count = 0
    for formula in formulas:
        count += 1
        result = validate(formula["expression"])
        if not result["valid"]:
            errors.append({
                "formula_code": formula.get("formula_code"),
                "error": result["error"],
                "error_code": result["error_code"],
            })

    return {
        "valid": not errors,
        "formula_count": count,
        "errors": errors,
    }
