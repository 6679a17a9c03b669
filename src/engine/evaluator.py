"""
Distribution evaluator for spell formulas.

Turns an expression tree plus concrete parameter values into an exact
Distribution. Dice counts, die sizes and repeat counts must come out as
single values after substitution; everything else may be random.
"""

import operator
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

from .distribution import Distribution
from .errors import EvaluationError, UnresolvedParameterError
from .expressions import Aggregate, BinaryOp, Dice, Node, Number, Parameter, Repeat, UnaryOp


@dataclass(frozen=True)
class EngineLimits:
    """Upper bounds that keep a single analysis pass interactive."""
    max_dice_count: int = 1000
    max_die_size: int = 1000
    max_repeat: int = 1000
    max_support: int = 20000      # Distinct outcomes in any intermediate distribution
    max_pairs: int = 1_000_000    # Outcome pairs visited by one combine or repeat


def _compare(op: Callable[[int, int], bool]) -> Callable[[int, int], int]:
    return lambda a, b: int(op(a, b))


OPERATORS: Dict[str, Callable[[int, int], int]] = {
    '+': operator.add,
    '-': operator.sub,
    '*': operator.mul,
    '/': operator.floordiv,   # Damage always rounds down
    '<': _compare(operator.lt),
    '<=': _compare(operator.le),
    '>': _compare(operator.gt),
    '>=': _compare(operator.ge),
    '==': _compare(operator.eq),
    '!=': _compare(operator.ne),
}


def coerce_parameter_value(name: str, value: Any) -> int:
    """
    Validate a host-supplied parameter value.

    Integers pass through; floats must have no fractional part.

    Raises:
        EvaluationError: For anything that is not a whole number
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise EvaluationError(f"parameter '{name}' must be a number, got {value!r}")
    if isinstance(value, float):
        if not value.is_integer():
            raise EvaluationError(f"parameter '{name}' must be a whole number, got {value}")
        return int(value)
    return value


class Evaluator:
    """
    Evaluates expression trees against one set of parameter values.

    Args:
        values: Parameter id -> value, already merged with defaults
        limits: Size limits; defaults to EngineLimits()
        defaults: Parameter id -> fallback value for ids missing from values

    Example:
        evaluator = Evaluator({'slot': 3})
        dist = evaluator.evaluate(parse_expression('(5 + slot)d6'))
    """

    def __init__(
        self,
        values: Mapping[str, Any],
        limits: Optional[EngineLimits] = None,
        defaults: Optional[Mapping[str, int]] = None
    ):
        self.values = dict(values)
        self.defaults = dict(defaults or {})
        self.limits = limits or EngineLimits()
        self._cache: Dict[Node, Distribution] = {}

    def evaluate(self, node: Node) -> Distribution:
        """
        Compute the distribution of node.

        Raises:
            EvaluationError: On invalid operands or exceeded limits
            UnresolvedParameterError: For parameters with no value or default
        """
        cached = self._cache.get(node)
        if cached is not None:
            return cached

        if isinstance(node, Number):
            result = Distribution.point(node.value)
        elif isinstance(node, Parameter):
            result = Distribution.point(self._resolve(node))
        elif isinstance(node, Dice):
            result = self._dice(node)
        elif isinstance(node, UnaryOp):
            result = -self.evaluate(node.operand)
        elif isinstance(node, BinaryOp):
            result = self._binary(node)
        elif isinstance(node, Aggregate):
            result = self._aggregate(node)
        elif isinstance(node, Repeat):
            result = self._repeat(node)
        else:
            raise TypeError(f"Unknown expression node {type(node).__name__}")

        self._check_support(result, node)
        self._cache[node] = result
        return result

    def _resolve(self, node: Parameter) -> int:
        if node.name in self.values:
            return coerce_parameter_value(node.name, self.values[node.name])
        if node.name in self.defaults:
            return self.defaults[node.name]
        raise UnresolvedParameterError(f"unknown parameter '{node.name}'", line=node.line)

    def _constant(self, node: Node, what: str) -> int:
        dist = self.evaluate(node)
        if not dist.is_point():
            raise EvaluationError(f"{what} must not be random, got '{node}'")
        return dist.minimum

    def _check_support(self, dist: Distribution, node: Node) -> None:
        if len(dist) > self.limits.max_support:
            raise EvaluationError(
                f"'{node}' has {len(dist)} possible outcomes (limit {self.limits.max_support})"
            )

    def _check_pairs(self, left: Distribution, right: Distribution, node: Node) -> None:
        if len(left) * len(right) > self.limits.max_pairs:
            raise EvaluationError(f"'{node}' is too large to combine exactly")

    def _check_repeat_cost(self, base: Distribution, times: int, node: Node) -> None:
        if base.repeat_cost(times) > self.limits.max_pairs:
            raise EvaluationError(f"'{node}' is too large to combine exactly")

    def _dice(self, node: Dice) -> Distribution:
        count = self._constant(node.count, "dice count")
        sides = self._constant(node.sides, "die size")

        if count < 0:
            raise EvaluationError(f"dice count must not be negative, got {count} in '{node}'")
        if count > self.limits.max_dice_count:
            raise EvaluationError(
                f"dice count {count} exceeds the limit of {self.limits.max_dice_count} in '{node}'"
            )
        if sides < 1:
            raise EvaluationError(f"a die needs at least 1 side, got {sides} in '{node}'")
        if sides > self.limits.max_die_size:
            raise EvaluationError(
                f"die size {sides} exceeds the limit of {self.limits.max_die_size} in '{node}'"
            )
        if count * (sides - 1) + 1 > self.limits.max_support:
            raise EvaluationError(f"'{node}' has too many possible outcomes")

        die = Distribution.uniform(sides)
        self._check_repeat_cost(die, count, node)
        return die.repeat(count)

    def _binary(self, node: BinaryOp) -> Distribution:
        left = self.evaluate(node.left)
        right = self.evaluate(node.right)

        if node.op == '/' and 0 in right:
            raise EvaluationError(f"division by zero in '{node}'")
        self._check_pairs(left, right, node)

        return left.combine(right, OPERATORS[node.op])

    def _aggregate(self, node: Aggregate) -> Distribution:
        # Every operand is an independent sub-roll, even when two are identical
        operands = [self.evaluate(operand) for operand in node.operands]
        result = operands[0]
        for operand in operands[1:]:
            self._check_pairs(result, operand, node)
            result = result.higher_of(operand) if node.kind == 'max' else result.lower_of(operand)
        return result

    def _repeat(self, node: Repeat) -> Distribution:
        times = self._constant(node.count, "repeat count")
        if times < 0:
            raise EvaluationError(f"repeat count must not be negative, got {times} in '{node}'")
        if times > self.limits.max_repeat:
            raise EvaluationError(
                f"repeat count {times} exceeds the limit of {self.limits.max_repeat} in '{node}'"
            )
        if times == 0:
            return Distribution.point(0)

        body = self.evaluate(node.body)
        if times * (body.maximum - body.minimum) + 1 > self.limits.max_support:
            raise EvaluationError(f"'{node}' has too many possible outcomes")
        self._check_repeat_cost(body, times, node)
        return body.repeat(times)


def evaluate(
    node: Node,
    values: Mapping[str, Any],
    limits: Optional[EngineLimits] = None,
    defaults: Optional[Mapping[str, int]] = None
) -> Distribution:
    """Convenience wrapper: evaluate one expression with fresh state."""
    return Evaluator(values, limits, defaults).evaluate(node)


__all__ = ['EngineLimits', 'Evaluator', 'evaluate', 'coerce_parameter_value', 'OPERATORS']
