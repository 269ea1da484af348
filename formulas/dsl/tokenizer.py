from .errors import FormulaSyntaxError
from .tokens import Token, TokenType

TWO_CHAR_OPERATORS = {
    "<=": "<=",
    ">=": ">=",
    "==": "==",
    "!=": "!=",
    "&&": "AND",
    "||": "OR",
}
SINGLE_CHAR_OPERATORS = "+-*/<>!"
PUNCTUATION = {
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    ",": TokenType.COMMA,
    ".": TokenType.DOT,
}
QUOTES = "'\""


class Tokenizer:
    def __init__(self, text):
        self.text = text
        self.pos = 0
        self.current = text[0] if text else None

    def advance(self, count=1):
        self.pos += count
        self.current = self.text[self.pos] if self.pos < len(self.text) else None

    def peek(self):
        return self.text[self.pos + 1] if self.pos + 1 < len(self.text) else None

    def skip_spaces(self):
        while self.current and self.current.isspace():
            self.advance()

    def number(self):
        start = self.pos
        while self.current and (self.current.isdigit() or self.current == '.'):
            self.advance()
        return Token(TokenType.NUMBER, self.text[start:self.pos], start)

    def string(self):
        start = self.pos
        quote = self.current
        self.advance()
        chars = []
        while self.current is not None and self.current != quote:
            if self.current == '\\' and self.peek() is not None:
                self.advance()
            chars.append(self.current)
            self.advance()
        if self.current is None:
            raise FormulaSyntaxError(f"Unterminated string literal at position {start}")
        self.advance()
        return Token(TokenType.STRING, "".join(chars), start)

    def identifier(self):
        start = self.pos
        while self.current and (self.current.isalnum() or self.current == '_'):
            self.advance()
        return Token(TokenType.IDENTIFIER, self.text[start:self.pos].upper(), start)

    def generate_tokens(self):
        tokens = []
        while self.current:
            if self.current.isspace():
                self.skip_spaces()
                continue

            next_char = self.peek()
            if self.current.isdigit() or (self.current == '.' and next_char and next_char.isdigit()):
                tokens.append(self.number())
                continue

            if self.current in QUOTES:
                tokens.append(self.string())
                continue

            if self.current.isalpha() or self.current == '_':
                tokens.append(self.identifier())
                continue

            # Two-char operators take priority over their one-char prefixes
            two_char = self.text[self.pos:self.pos + 2]
            if two_char in TWO_CHAR_OPERATORS:
                tokens.append(Token(TokenType.OPERATOR, TWO_CHAR_OPERATORS[two_char], self.pos))
                self.advance(2)
                continue

            if self.current in SINGLE_CHAR_OPERATORS:
                tokens.append(Token(TokenType.OPERATOR, self.current, self.pos))
            elif self.current in PUNCTUATION:
                tokens.append(Token(PUNCTUATION[self.current], self.current, self.pos))
            else:
                raise FormulaSyntaxError(f"Unexpected character: {self.current!r} at position {self.pos}")

            self.advance()

        tokens.append(Token(TokenType.EOF, None, self.pos))
        return tokens
