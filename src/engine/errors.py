"""
Exception types raised inside the analysis engine.

Every error knows the spell it belongs to (when there is one) and the source
line it points at, so the analyzer can turn it into a single display line.
"""

from typing import Optional

from src.core.result import ErrorCode


class SpellError(Exception):
    """Base class for engine errors."""

    code = ErrorCode.UNEXPECTED_ERROR

    def __init__(self, message: str, line: Optional[int] = None, spell: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.line = line
        self.spell = spell

    def describe(self) -> str:
        """
        Human-readable one-liner naming the spell and line.

        Examples:
            "Fireball (line 3): unexpected ')'"
            "line 7: expected ':' after spell name"
        """
        if self.spell and self.line is not None:
            return f"{self.spell} (line {self.line}): {self.message}"
        if self.spell:
            return f"{self.spell}: {self.message}"
        if self.line is not None:
            return f"line {self.line}: {self.message}"
        return self.message

    def __str__(self) -> str:
        return self.describe()


class SpellSyntaxError(SpellError):
    """Malformed spell block or formula."""
    code = ErrorCode.SYNTAX_ERROR


class UnresolvedParameterError(SpellError):
    """A referenced parameter has neither a value nor a descriptor."""
    code = ErrorCode.UNRESOLVED_PARAMETER


class EvaluationError(SpellError):
    """Invalid operand while computing a distribution."""
    code = ErrorCode.EVALUATION_ERROR


__all__ = ['SpellError', 'SpellSyntaxError', 'UnresolvedParameterError', 'EvaluationError']
