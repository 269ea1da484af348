from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional


class TokenType(Enum):
    NUMBER = auto()
    STRING = auto()
    IDENTIFIER = auto()
    OPERATOR = auto()
    LPAREN = auto()
    RPAREN = auto()
    COMMA = auto()
    DOT = auto()
    EOF = auto()


@dataclass(frozen=True)
class Token:
    type: TokenType
    value: Optional[str] = None
    position: int = 0

    def __repr__(self):
        return f"Token({self.type.name}, {self.value!r})"
