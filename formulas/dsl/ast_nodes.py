from dataclasses import dataclass
from typing import Tuple


class Node:
    def to_dict(self):
        raise NotImplementedError


@dataclass(frozen=True)
class NumberNode(Node):
    value: str

    def to_dict(self):
        return {"type": "number", "value": self.value}


@dataclass(frozen=True)
class StringNode(Node):
    value: str

    def to_dict(self):
        return {"type": "string", "value": self.value}


@dataclass(frozen=True)
class BooleanNode(Node):
    value: bool

    def to_dict(self):
        return {"type": "boolean", "value": self.value}


@dataclass(frozen=True)
class VarNode(Node):
    path: Tuple[str, ...]

    @property
    def name(self):
        """Lower-cased dotted path, the key used for lookups and dependencies."""
        return ".".join(self.path).lower()

    def to_dict(self):
        return {"type": "variable", "path": list(self.path)}


@dataclass(frozen=True)
class FunctionCallNode(Node):
    name: str
    args: Tuple[Node, ...]

    def to_dict(self):
        return {"type": "call", "name": self.name, "args": [a.to_dict() for a in self.args]}


@dataclass(frozen=True)
class UnaryOpNode(Node):
    op: str
    operand: Node

    def to_dict(self):
        return {"type": "unary", "op": self.op, "operand": self.operand.to_dict()}


@dataclass(frozen=True)
class BinaryOpNode(Node):
    left: Node
    op: str
    right: Node

    def to_dict(self):
        return {"type": "binary", "op": self.op, "left": self.left.to_dict(), "right": self.right.to_dict()}
