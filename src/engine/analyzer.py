"""
Collection analyzer: the engine's public entry point.

analyze(source, params) parses a spell collection, discovers its parameters,
evaluates every spell as an exact distribution and summarizes it. It is a
pure function of its two inputs and never raises for bad input; problems
come back as display-ready strings in CollectionAnalysis.errors.
"""

import logging
from dataclasses import dataclass, field
from fractions import Fraction
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .distribution import Distribution
from .errors import SpellError
from .evaluator import EngineLimits, Evaluator, coerce_parameter_value
from .expressions import Node
from .parameters import SLOT_PARAMETER, ParameterGroup, discover_parameters, index_descriptors
from .parser import SpellDefinition, parse_document

logger = logging.getLogger(__name__)

# Displays scale to this quantile rather than the support maximum, so a
# single extreme outcome does not squash every histogram
PLAUSIBLE_MAX_QUANTILE = Fraction(99, 100)


@dataclass(frozen=True)
class SpellAnalysis:
    """
    Analysis of one spell.

    Attributes:
        name: Spell name
        level: Declared minimum casting level (None if level-independent)
        cast_level: Level used for evaluation when it differs from `level`
        mean: Expected damage
        stddev: Standard deviation of damage
        plausible_max: 99th percentile of damage, for scaling displays
        distribution: Exact damage distribution
        expression: Parsed formula, for read-only redisplay
        below_minimum: Cast below the declared level (still evaluated)
        line: Source line of the spell header
    """
    name: str
    level: Optional[int]
    cast_level: Optional[int]
    mean: float
    stddev: float
    plausible_max: int
    distribution: Distribution
    expression: Node
    below_minimum: bool
    line: int

    @property
    def formula(self) -> str:
        return str(self.expression)

    def histogram(self) -> List[Tuple[int, float]]:
        """(damage, probability) bars in ascending damage order."""
        return self.distribution.probabilities()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'name': self.name,
            'level': self.level,
            'cast_level': self.cast_level,
            'below_minimum': self.below_minimum,
            'line': self.line,
            'formula': self.formula,
            'mean': self.mean,
            'stddev': self.stddev,
            'plausible_max': self.plausible_max,
            'min': self.distribution.minimum,
            'max': self.distribution.maximum,
            'histogram': [[outcome, probability] for outcome, probability in self.histogram()],
        }


@dataclass
class CollectionAnalysis:
    """Everything one analysis pass produced."""
    spells: List[SpellAnalysis] = field(default_factory=list)
    parameter_groups: List[ParameterGroup] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def spell(self, name: str) -> Optional[SpellAnalysis]:
        return next((s for s in self.spells if s.name == name), None)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'spells': [s.to_dict() for s in self.spells],
            'parameters': [g.to_dict() for g in self.parameter_groups],
            'errors': list(self.errors),
        }


def summarize(
    spell: SpellDefinition,
    distribution: Distribution,
    cast_level: Optional[int] = None,
    below_minimum: bool = False
) -> SpellAnalysis:
    """Reduce a spell's distribution to display statistics."""
    return SpellAnalysis(
        name=spell.name,
        level=spell.level,
        cast_level=cast_level,
        mean=float(distribution.mean()),
        stddev=distribution.stddev(),
        plausible_max=distribution.quantile(PLAUSIBLE_MAX_QUANTILE),
        distribution=distribution,
        expression=spell.expression,
        below_minimum=below_minimum,
        line=spell.line,
    )


def analyze_spell(
    spell: SpellDefinition,
    params: Mapping[str, Any],
    defaults: Mapping[str, int],
    limits: Optional[EngineLimits] = None
) -> SpellAnalysis:
    """
    Evaluate one spell.

    A leveled spell is cast at the assigned slot level, or at its own level
    when no slot is assigned; casting below the declared level sets
    below_minimum but still evaluates. Inside a formula, `slot` is that
    cast level.

    Raises:
        SpellError: If evaluation fails
    """
    values = dict(params)
    cast_level = None
    below_minimum = False

    if spell.level is not None:
        if SLOT_PARAMETER in values:
            cast = coerce_parameter_value(SLOT_PARAMETER, values[SLOT_PARAMETER])
        else:
            cast = spell.level
        values[SLOT_PARAMETER] = cast
        below_minimum = cast < spell.level
        if cast != spell.level:
            cast_level = cast

    distribution = Evaluator(values, limits, defaults).evaluate(spell.expression)
    return summarize(spell, distribution, cast_level, below_minimum)


def analyze(
    source: str,
    params: Optional[Mapping[str, Any]] = None,
    limits: Optional[EngineLimits] = None
) -> CollectionAnalysis:
    """
    Analyze a whole spell collection.

    Args:
        source: Collection source text
        params: Parameter id -> value; missing ids use their defaults.
            The mapping is copied before use.
        limits: Evaluation size limits

    Returns:
        CollectionAnalysis with spells in source order, the discovered
        parameter groups, and one error line per rejected spell, ordered
        by source line

    Example:
        result = analyze("Fireball [3]: (5 + slot)d6", {'slot': 4})
        result.spells[0].mean  # 31.5
    """
    params = dict(params or {})
    try:
        document = parse_document(source)
        groups = discover_parameters(document.spells)
    except Exception as e:
        logger.exception("Unexpected error while parsing collection")
        return CollectionAnalysis(errors=[f"unexpected error: {e}"])

    defaults = {pid: d.default for pid, d in index_descriptors(groups).items()}

    problems: List[Tuple[int, str]] = [(e.line or 0, e.describe()) for e in document.errors]
    spells: List[SpellAnalysis] = []

    for spell in document.spells:
        try:
            spells.append(analyze_spell(spell, params, defaults, limits))
        except SpellError as e:
            e.spell = spell.name
            if e.line is None:
                e.line = spell.line
            logger.warning(f"Could not evaluate {spell.name}: {e.message}")
            problems.append((spell.line, e.describe()))
        except Exception as e:
            logger.exception(f"Unexpected error while evaluating {spell.name}")
            problems.append((spell.line, f"{spell.name} (line {spell.line}): unexpected error: {e}"))

    problems.sort(key=lambda problem: problem[0])
    logger.debug(f"Analyzed {len(spells)} spells, {len(problems)} errors, {len(groups)} parameter groups")

    return CollectionAnalysis(
        spells=spells,
        parameter_groups=groups,
        errors=[message for _, message in problems],
    )


__all__ = [
    'SpellAnalysis', 'CollectionAnalysis', 'PLAUSIBLE_MAX_QUANTILE',
    'analyze', 'analyze_spell', 'summarize',
]
