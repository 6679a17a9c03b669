"""
Exact discrete probability distributions over integers.

Weights are Python integers and are never normalized, so the distribution
of NdM has total weight M**N and repeated convolutions accumulate no
rounding error. Floats only appear in the reporting helpers.
"""

import math
import operator
from fractions import Fraction
from types import MappingProxyType
from typing import Callable, Dict, Iterator, List, Mapping, Tuple


class Distribution:
    """
    Immutable mapping from integer outcome to positive integer weight.

    Examples:
        >>> Distribution.uniform(6).repeat(2).weights[7]
        6
        >>> Distribution.point(5).mean()
        Fraction(5, 1)
    """

    __slots__ = ('_weights', '_total')

    def __init__(self, weights: Mapping[int, int]):
        cleaned: Dict[int, int] = {}
        for outcome, weight in weights.items():
            if weight < 0:
                raise ValueError(f"Negative weight {weight} for outcome {outcome}")
            if weight:
                cleaned[outcome] = weight
        if not cleaned:
            raise ValueError("Distribution needs a positive total weight")
        self._weights = dict(sorted(cleaned.items()))
        self._total = sum(self._weights.values())

    @classmethod
    def point(cls, value: int) -> 'Distribution':
        """Single-point mass of weight 1."""
        return cls({value: 1})

    @classmethod
    def uniform(cls, sides: int) -> 'Distribution':
        """One fair die numbered 1..sides."""
        if sides < 1:
            raise ValueError(f"A die needs at least 1 side, got {sides}")
        return cls({face: 1 for face in range(1, sides + 1)})

    @classmethod
    def dice(cls, count: int, sides: int) -> 'Distribution':
        """Sum of `count` independent dice with `sides` sides."""
        return cls.uniform(sides).repeat(count)

    # ---- inspection ----

    @property
    def weights(self) -> Mapping[int, int]:
        return MappingProxyType(self._weights)

    @property
    def total(self) -> int:
        return self._total

    @property
    def minimum(self) -> int:
        return next(iter(self._weights))

    @property
    def maximum(self) -> int:
        return next(reversed(self._weights))

    def is_point(self) -> bool:
        return len(self._weights) == 1

    def items(self) -> Iterator[Tuple[int, int]]:
        return iter(self._weights.items())

    def __len__(self) -> int:
        return len(self._weights)

    def __contains__(self, outcome: int) -> bool:
        return outcome in self._weights

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Distribution):
            return NotImplemented
        return self._weights == other._weights

    def __hash__(self) -> int:
        return hash(tuple(self._weights.items()))

    def __repr__(self) -> str:
        body = ', '.join(f"{outcome}: {weight}" for outcome, weight in self._weights.items())
        return f"Distribution({{{body}}})"

    # ---- combination ----

    def combine(self, other: 'Distribution', op: Callable[[int, int], int]) -> 'Distribution':
        """
        Distribution of op(x, y) for independent x ~ self and y ~ other.

        Every pair of outcomes contributes the product of their weights.
        """
        result: Dict[int, int] = {}
        for a, wa in self._weights.items():
            for b, wb in other._weights.items():
                value = op(a, b)
                result[value] = result.get(value, 0) + wa * wb
        return Distribution(result)

    def map(self, fn: Callable[[int], int]) -> 'Distribution':
        result: Dict[int, int] = {}
        for outcome, weight in self._weights.items():
            value = fn(outcome)
            result[value] = result.get(value, 0) + weight
        return Distribution(result)

    def convolve(self, other: 'Distribution') -> 'Distribution':
        """Distribution of the sum of two independent variables."""
        return self.combine(other, operator.add)

    __add__ = convolve

    def __neg__(self) -> 'Distribution':
        return self.map(operator.neg)

    def repeat(self, times: int) -> 'Distribution':
        """
        Sum of `times` independent copies (times-fold self-convolution).

        Uses binary powering, so the cost is polynomial in the support size
        and logarithmic in `times`. Zero copies give the zero point mass.
        """
        if times < 0:
            raise ValueError(f"Cannot repeat a negative number of times ({times})")
        result = Distribution.point(0)
        base = self
        while times:
            if times & 1:
                result = result.convolve(base)
            times >>= 1
            if times:
                base = base.convolve(base)
        return result

    def repeat_cost(self, times: int) -> int:
        """
        Upper bound on the outcome pairs repeat(times) visits.

        Follows the same binary powering steps as repeat(). A sum of k copies
        has at most k * (maximum - minimum) + 1 distinct outcomes.
        """
        span = self.maximum - self.minimum

        def size(copies: int) -> int:
            return len(self) if copies == 1 else copies * span + 1

        cost = 0
        result_copies, base_copies = 0, 1
        while times:
            if times & 1:
                cost += size(result_copies) * size(base_copies)
                result_copies += base_copies
            times >>= 1
            if times:
                cost += size(base_copies) ** 2
                base_copies *= 2
        return cost

    def higher_of(self, other: 'Distribution') -> 'Distribution':
        return self.combine(other, max)

    def lower_of(self, other: 'Distribution') -> 'Distribution':
        return self.combine(other, min)

    # ---- statistics ----

    def probability(self, outcome: int) -> Fraction:
        return Fraction(self._weights.get(outcome, 0), self._total)

    def mean(self) -> Fraction:
        return Fraction(sum(o * w for o, w in self._weights.items()), self._total)

    def variance(self) -> Fraction:
        mean = self.mean()
        return sum((w * (o - mean) ** 2 for o, w in self._weights.items()), Fraction(0)) / self._total

    def stddev(self) -> float:
        return math.sqrt(self.variance())

    def quantile(self, q: Fraction) -> int:
        """Smallest outcome whose cumulative weight reaches q of the total."""
        if not 0 <= q <= 1:
            raise ValueError(f"Quantile must be between 0 and 1, got {q}")
        q = Fraction(q)
        threshold = self._total * q.numerator
        cumulative = 0
        for outcome, weight in self._weights.items():
            cumulative += weight
            if cumulative * q.denominator >= threshold:
                return outcome
        return self.maximum

    def probabilities(self) -> List[Tuple[int, float]]:
        """(outcome, probability) pairs in ascending outcome order."""
        return [(outcome, weight / self._total) for outcome, weight in self._weights.items()]


__all__ = ['Distribution']
