"""
Unit Tests for the formula Tokenizer
"""

import pytest

from formulas.dsl.errors import SYNTAX_ERROR, FormulaSyntaxError
from formulas.dsl.tokenizer import Tokenizer
from formulas.dsl.tokens import TokenType


def kinds(text):
    return [(t.type, t.value) for t in Tokenizer(text).generate_tokens()]


class TestTokenizer:
    """Tests for text -> token stream."""

    def test_tokens_when_arithmetic_then_numbers_and_operators(self):
        assert kinds("2 + 3.5*4") == [
            (TokenType.NUMBER, "2"),
            (TokenType.OPERATOR, "+"),
            (TokenType.NUMBER, "3.5"),
            (TokenType.OPERATOR, "*"),
            (TokenType.NUMBER, "4"),
            (TokenType.EOF, None),
        ]

    def test_tokens_when_leading_dot_number_then_number(self):
        assert kinds(".5")[0] == (TokenType.NUMBER, ".5")

    def test_tokens_when_identifiers_then_upper_cased(self):
        assert kinds("salary.base")[:3] == [
            (TokenType.IDENTIFIER, "SALARY"),
            (TokenType.DOT, "."),
            (TokenType.IDENTIFIER, "BASE"),
        ]

    def test_tokens_when_two_char_operators_then_preferred(self):
        values = [v for _, v in kinds("a <= b >= c == d != e < f")]
        assert values[1::2][:5] == ["<=", ">=", "==", "!=", "<"]

    def test_tokens_when_symbolic_logic_then_keyword_operators(self):
        assert kinds("a && b || c")[1] == (TokenType.OPERATOR, "AND")
        assert kinds("a && b || c")[3] == (TokenType.OPERATOR, "OR")

    def test_tokens_when_strings_then_quotes_removed_and_case_kept(self):
        assert kinds("PARAM('Rate')")[2] == (TokenType.STRING, "Rate")
        assert kinds('"double"')[0] == (TokenType.STRING, "double")

    def test_tokens_when_escaped_quote_then_kept_in_value(self):
        assert kinds(r"'it\'s'")[0] == (TokenType.STRING, "it's")

    def test_tokens_when_call_then_punctuation(self):
        types = [t for t, _ in kinds("MIN(1, 2)")]
        assert types == [
            TokenType.IDENTIFIER, TokenType.LPAREN, TokenType.NUMBER, TokenType.COMMA,
            TokenType.NUMBER, TokenType.RPAREN, TokenType.EOF,
        ]

    def test_tokens_when_positions_then_track_source_offsets(self):
        tokens = Tokenizer("ab + 12").generate_tokens()
        assert [t.position for t in tokens] == [0, 3, 5, 7]

    def test_tokens_when_empty_then_only_eof(self):
        assert kinds("") == [(TokenType.EOF, None)]
        assert kinds("   ") == [(TokenType.EOF, None)]

    def test_tokens_when_unexpected_character_then_syntax_error(self):
        with pytest.raises(FormulaSyntaxError, match="Unexpected character: '#' at position 2") as exc:
            Tokenizer("2 # 3").generate_tokens()
        assert exc.value.code == SYNTAX_ERROR

    def test_tokens_when_unterminated_string_then_syntax_error(self):
        with pytest.raises(FormulaSyntaxError, match="Unterminated string"):
            Tokenizer("PARAM('rate").generate_tokens()
