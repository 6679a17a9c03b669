"""
Spell damage analysis engine.

Parses spell collections, discovers their parameters and computes exact
damage distributions. The only entry point most callers need is analyze().
"""

from .analyzer import CollectionAnalysis, SpellAnalysis, analyze
from .distribution import Distribution
from .errors import EvaluationError, SpellError, SpellSyntaxError, UnresolvedParameterError
from .evaluator import EngineLimits
from .parameters import ParameterDescriptor, ParameterGroup, discover_parameters
from .parser import SpellDefinition, parse_document, parse_expression

__all__ = [
    'analyze', 'CollectionAnalysis', 'SpellAnalysis',
    'Distribution', 'EngineLimits',
    'SpellError', 'SpellSyntaxError', 'UnresolvedParameterError', 'EvaluationError',
    'ParameterDescriptor', 'ParameterGroup', 'discover_parameters',
    'SpellDefinition', 'parse_document', 'parse_expression',
]
