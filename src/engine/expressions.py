"""
Expression tree for spell damage formulas.

Nodes are frozen dataclasses, so a parsed formula can be handed to the
presentation layer for redisplay without anything being able to change it.
str() on any node renders canonical formula text.
"""

from dataclasses import dataclass, field
from typing import Iterator, Optional, Tuple


# Binding strength used when rendering; higher binds tighter
PRECEDENCE = {
    '<': 1, '<=': 1, '>': 1, '>=': 1, '==': 1, '!=': 1,
    '+': 2, '-': 2,
    '*': 3, '/': 3,
}
UNARY_PRECEDENCE = 4
DICE_PRECEDENCE = 5

COMPARISON_OPERATORS = frozenset(('<', '<=', '>', '>=', '==', '!='))


class Node:
    """Base class for expression nodes."""

    precedence = 10

    def children(self) -> Tuple['Node', ...]:
        return ()

    def _wrap(self, child: 'Node', minimum: int) -> str:
        text = str(child)
        return f"({text})" if child.precedence < minimum else text


@dataclass(frozen=True)
class Number(Node):
    value: int

    def __str__(self) -> str:
        return str(self.value)

    @property
    def precedence(self) -> int:
        # A negative literal renders with a sign
        return UNARY_PRECEDENCE if self.value < 0 else 10


@dataclass(frozen=True)
class ParameterDeclaration:
    """
    Inline declaration attached to a parameter reference.

    Written as name{1..4, default=2, kind=slider, label="Beams", group="Combat"}.
    Every field is optional; missing ones come from the parameter catalog.
    """
    minimum: Optional[int] = None
    maximum: Optional[int] = None
    step: Optional[int] = None
    default: Optional[int] = None
    kind: Optional[str] = None
    label: Optional[str] = None
    group: Optional[str] = None

    def __str__(self) -> str:
        parts = []
        if self.minimum is not None and self.maximum is not None:
            parts.append(f"{self.minimum}..{self.maximum}")
        else:
            if self.minimum is not None:
                parts.append(f"min={self.minimum}")
            if self.maximum is not None:
                parts.append(f"max={self.maximum}")
        for key in ('step', 'default', 'kind'):
            value = getattr(self, key)
            if value is not None:
                parts.append(f"{key}={value}")
        for key in ('label', 'group'):
            value = getattr(self, key)
            if value is not None:
                parts.append(f'{key}="{value}"')
        return '{' + ', '.join(parts) + '}'


@dataclass(frozen=True)
class Parameter(Node):
    name: str
    declaration: Optional[ParameterDeclaration] = None
    line: Optional[int] = field(default=None, compare=False)

    def __str__(self) -> str:
        return self.name + (str(self.declaration) if self.declaration else '')


@dataclass(frozen=True)
class Dice(Node):
    """Sum of `count` independent uniform draws over 1..`sides`."""
    count: Node
    sides: Node

    precedence = DICE_PRECEDENCE

    def children(self) -> Tuple[Node, ...]:
        return (self.count, self.sides)

    def __str__(self) -> str:
        count = '' if self.count == Number(1) else self._wrap(self.count, DICE_PRECEDENCE + 1)
        return f"{count}d{self._wrap(self.sides, DICE_PRECEDENCE + 1)}"


@dataclass(frozen=True)
class UnaryOp(Node):
    operand: Node
    op: str = '-'

    precedence = UNARY_PRECEDENCE

    def children(self) -> Tuple[Node, ...]:
        return (self.operand,)

    def __str__(self) -> str:
        return f"{self.op}{self._wrap(self.operand, UNARY_PRECEDENCE)}"


@dataclass(frozen=True)
class BinaryOp(Node):
    op: str
    left: Node
    right: Node

    def children(self) -> Tuple[Node, ...]:
        return (self.left, self.right)

    @property
    def precedence(self) -> int:
        return PRECEDENCE[self.op]

    def __str__(self) -> str:
        mine = PRECEDENCE[self.op]
        # Left-associative; comparisons do not chain at all
        left = mine + 1 if self.op in COMPARISON_OPERATORS else mine
        return f"{self._wrap(self.left, left)} {self.op} {self._wrap(self.right, mine + 1)}"


@dataclass(frozen=True)
class Aggregate(Node):
    """Higher (max) or lower (min) of independent sub-results."""
    kind: str
    operands: Tuple[Node, ...]

    def children(self) -> Tuple[Node, ...]:
        return self.operands

    def __str__(self) -> str:
        return f"{self.kind}({', '.join(str(op) for op in self.operands)})"


@dataclass(frozen=True)
class Repeat(Node):
    """Sum of `count` independent copies of `body`."""
    count: Node
    body: Node

    def children(self) -> Tuple[Node, ...]:
        return (self.count, self.body)

    def __str__(self) -> str:
        return f"repeat({self.count}, {self.body})"


def walk(node: Node) -> Iterator[Node]:
    """Yield node and all of its descendants, depth-first pre-order."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children()))


__all__ = [
    'Node', 'Number', 'Parameter', 'ParameterDeclaration', 'Dice', 'UnaryOp',
    'BinaryOp', 'Aggregate', 'Repeat', 'walk',
    'COMPARISON_OPERATORS',
]
