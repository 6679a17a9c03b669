"""
Result object for error handling at the host boundary of Arcane Odds.

Host-facing operations that can fail (request parsing, state persistence,
catalog lookups) return a Result instead of raising. The analysis engine
itself reports per-spell problems inside its CollectionAnalysis.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class ErrorCode(Enum):
    """Error codes shared by Result objects, SpellError.code and API responses."""

    # Engine errors
    SYNTAX_ERROR = "syntax_error"
    UNRESOLVED_PARAMETER = "unresolved_parameter"
    EVALUATION_ERROR = "evaluation_error"

    # Host errors
    INVALID_REQUEST = "invalid_request"
    NOT_FOUND = "not_found"
    STORAGE_ERROR = "storage_error"

    UNEXPECTED_ERROR = "unexpected_error"

    def __str__(self) -> str:
        return self.value


@dataclass
class Result:
    """
    Outcome of a host operation: a payload on success, or a message plus
    an ErrorCode value the API turns into an HTTP status.

    `data` holds whatever the operation produces, e.g. a HostState after
    loading the state file or an AnalyzeRequest after parsing JSON.

    Examples:
        >>> loaded = store.load()
        >>> state = loaded.data if loaded else HostState()

        >>> parsed = parse_request({'type': 'analyze'})
        >>> parsed.error_code
        'invalid_request'
    """
    success: bool
    data: Any = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    @staticmethod
    def ok(data: Any = None) -> 'Result':
        return Result(success=True, data=data)

    @staticmethod
    def fail(error: str, code: Optional[str | ErrorCode] = None) -> 'Result':
        """Failed result; an ErrorCode is stored as its string value so it serializes as-is."""
        error_code_str = code.value if isinstance(code, ErrorCode) else code
        return Result(success=False, error=error, error_code=error_code_str)

    def __bool__(self) -> bool:
        return self.success
