"""
Domain Specific Language for payroll and tax formula evaluation.

This DSL provides a safe way to evaluate business rules over exact
decimal values without using eval().
"""

from .tokenizer import Tokenizer
from .parser import Parser
from .evaluator import EvaluationContext, Evaluator
from .errors import FormulaError

__all__ = ['Tokenizer', 'Parser', 'Evaluator', 'EvaluationContext', 'FormulaError']
