from .ast_nodes import (
    BinaryOpNode, BooleanNode, FunctionCallNode, NumberNode, StringNode, UnaryOpNode, VarNode,
)
from .errors import FormulaSyntaxError
from .tokens import TokenType

# Higher binds tighter
PRECEDENCE = {
    "OR": 1,
    "AND": 2,
    "<": 3, ">": 3, "<=": 3, ">=": 3, "==": 3, "!=": 3,
    "+": 4, "-": 4,
    "*": 5, "/": 5,
}
KEYWORD_OPERATORS = ("AND", "OR")
BOOLEANS = {"TRUE": True, "FALSE": False}

DEFAULT_MAX_DEPTH = 128


class Parser:
    def __init__(self, tokens, max_depth=DEFAULT_MAX_DEPTH, strict=True):
        self.tokens = tokens
        self.index = 0
        self.current = tokens[0]
        self.max_depth = max_depth
        self.strict = strict
        self.depth = 0

    def eat(self, type_):
        if self.current.type == type_:
            token = self.current
            self.index += 1
            self.current = self.tokens[self.index]
            return token
        raise FormulaSyntaxError(f"Expected {type_.name}, got {self.current.type.name}")

    def parse(self):
        result = self.expression()
        if self.strict and self.current.type != TokenType.EOF:
            raise FormulaSyntaxError(
                f"Unexpected {self.current.type.name} {self.current.value!r} "
                f"at position {self.current.position} after complete expression"
            )
        return result

    def operator(self):
        """Return the binary operator at the cursor, if any."""
        token = self.current
        if token.type == TokenType.OPERATOR and token.value in PRECEDENCE:
            return token.value
        if token.type == TokenType.IDENTIFIER and token.value in KEYWORD_OPERATORS:
            return token.value
        return None

    def expression(self, min_precedence=0):
        self.enter()
        left = self.primary()
        levels = 1

        while True:
            op = self.operator()
            if op is None or PRECEDENCE[op] < min_precedence:
                break
            # Every operator in a chain wraps the tree built so far one level deeper
            self.enter()
            levels += 1
            self.index += 1
            self.current = self.tokens[self.index]
            right = self.expression(PRECEDENCE[op] + 1)
            left = BinaryOpNode(left, op, right)

        self.depth -= levels
        return left

    def enter(self):
        self.depth += 1
        if self.depth > self.max_depth:
            raise FormulaSyntaxError(f"Expression nested deeper than {self.max_depth} levels")

    def primary(self):
        token = self.current

        if (token.type == TokenType.IDENTIFIER and token.value == "NOT") or \
                (token.type == TokenType.OPERATOR and token.value == "!"):
            self.eat(token.type)
            return UnaryOpNode("NOT", self.unary_operand())

        if token.type == TokenType.OPERATOR and token.value == "-":
            self.eat(TokenType.OPERATOR)
            return UnaryOpNode("-", self.unary_operand())

        if token.type == TokenType.LPAREN:
            self.eat(TokenType.LPAREN)
            expr = self.expression()
            self.eat(TokenType.RPAREN)
            return expr

        if token.type == TokenType.NUMBER:
            self.eat(TokenType.NUMBER)
            return NumberNode(token.value)

        if token.type == TokenType.STRING:
            self.eat(TokenType.STRING)
            return StringNode(token.value)

        if token.type == TokenType.IDENTIFIER:
            return self.identifier()

        raise FormulaSyntaxError(f"Unexpected token: {token.type.name} {token.value!r} at position {token.position}")

    def unary_operand(self):
        self.enter()
        operand = self.primary()
        self.depth -= 1
        return operand

    def identifier(self):
        name = self.eat(TokenType.IDENTIFIER).value

        if name in BOOLEANS:
            return BooleanNode(BOOLEANS[name])

        # Dotted variable path
        if self.current.type == TokenType.DOT:
            path = [name]
            while self.current.type == TokenType.DOT:
                self.eat(TokenType.DOT)
                if self.current.type != TokenType.IDENTIFIER:
                    raise FormulaSyntaxError(
                        f"Expected IDENTIFIER after dot, got {self.current.type.name}"
                    )
                path.append(self.eat(TokenType.IDENTIFIER).value)
            return VarNode(tuple(path))

        # Function call?
        if self.current.type == TokenType.LPAREN:
            self.eat(TokenType.LPAREN)
            args = []
            if self.current.type != TokenType.RPAREN:
                args.append(self.expression())
                while self.current.type == TokenType.COMMA:
                    self.eat(TokenType.COMMA)
                    args.append(self.expression())
            self.eat(TokenType.RPAREN)
            return FunctionCallNode(name, tuple(args))

        return VarNode((name,))
