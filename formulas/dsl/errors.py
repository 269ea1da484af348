SYNTAX_ERROR = "SYNTAX_ERROR"
UNDEFINED_VARIABLE = "UNDEFINED_VARIABLE"
UNDEFINED_FUNCTION = "UNDEFINED_FUNCTION"
DIVISION_BY_ZERO = "DIVISION_BY_ZERO"
PARAM_NOT_FOUND = "PARAM_NOT_FOUND"
# Declared for API consumers; nothing raises it.
TYPE_MISMATCH = "TYPE_MISMATCH"


class FormulaError(Exception):
    """Base error for tokenizing, parsing and evaluating formulas."""
    code = SYNTAX_ERROR

    def __init__(self, message, code=None):
        super().__init__(message)
        if code is not None:
            self.code = code


class FormulaSyntaxError(FormulaError):
    code = SYNTAX_ERROR


class UndefinedVariableError(FormulaError):
    code = UNDEFINED_VARIABLE


class UndefinedFunctionError(FormulaError):
    code = UNDEFINED_FUNCTION


class DivisionByZeroError(FormulaError):
    code = DIVISION_BY_ZERO


class ParamNotFoundError(FormulaError):
    code = PARAM_NOT_FOUND
