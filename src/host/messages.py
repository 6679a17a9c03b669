"""
Message protocol between the host and the analysis engine.

Requests and responses are a small closed set of tagged dataclasses.
Incoming JSON payloads are validated against REQUEST_SCHEMA before they are
turned into request objects, so handlers never inspect raw dictionaries.

Request payloads:
    {"type": "analyze", "request_id": 7, "source": "...", "params": {"slot": 4}}
    {"type": "discover", "request_id": 8, "source": "..."}
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

import jsonschema

from src.core.result import ErrorCode, Result
from src.engine import CollectionAnalysis, EngineLimits, analyze, discover_parameters, parse_document
from src.engine.parameters import ParameterGroup

logger = logging.getLogger(__name__)


REQUEST_SCHEMA: Dict[str, Any] = {
    "oneOf": [
        {
            "type": "object",
            "properties": {
                "type": {"const": "analyze"},
                "request_id": {"type": "integer", "minimum": 0},
                "source": {"type": "string"},
                "params": {
                    "type": "object",
                    "additionalProperties": {"type": "number"}
                }
            },
            "required": ["type", "source"],
            "additionalProperties": False
        },
        {
            "type": "object",
            "properties": {
                "type": {"const": "discover"},
                "request_id": {"type": "integer", "minimum": 0},
                "source": {"type": "string"}
            },
            "required": ["type", "source"],
            "additionalProperties": False
        }
    ]
}


# ========== Requests ==========

@dataclass(frozen=True)
class AnalyzeRequest:
    """Analyze a collection with a snapshot of parameter values."""
    source: str
    params: Dict[str, Any] = field(default_factory=dict)
    request_id: int = 0

    def __post_init__(self):
        # Snapshot: later edits to the caller's mapping must not leak in
        object.__setattr__(self, 'params', dict(self.params))


@dataclass(frozen=True)
class DiscoverRequest:
    """List a collection's parameters without evaluating anything."""
    source: str
    request_id: int = 0


Request = Union[AnalyzeRequest, DiscoverRequest]


# ========== Responses ==========

@dataclass(frozen=True)
class AnalysisResponse:
    request_id: int
    analysis: CollectionAnalysis

    def to_dict(self) -> Dict[str, Any]:
        return {'type': 'analysis', 'request_id': self.request_id, 'analysis': self.analysis.to_dict()}


@dataclass(frozen=True)
class ParametersResponse:
    request_id: int
    groups: List[ParameterGroup]
    errors: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': 'parameters',
            'request_id': self.request_id,
            'parameters': [g.to_dict() for g in self.groups],
            'errors': list(self.errors),
        }


@dataclass(frozen=True)
class FailureResponse:
    request_id: Optional[int]
    error: str
    error_code: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': 'failure',
            'request_id': self.request_id,
            'error': self.error,
            'error_code': self.error_code,
        }


Response = Union[AnalysisResponse, ParametersResponse, FailureResponse]


def parse_request(payload: Any) -> Result:
    """
    Validate a JSON payload and build the matching request.

    Args:
        payload: Decoded JSON

    Returns:
        Result with the request object, or a failure with INVALID_REQUEST
    """
    try:
        jsonschema.validate(payload, REQUEST_SCHEMA)
    except jsonschema.ValidationError as e:
        return Result.fail(f"Invalid request: {e.message}", ErrorCode.INVALID_REQUEST)

    request_id = payload.get('request_id', 0)
    if payload['type'] == 'analyze':
        return Result.ok(AnalyzeRequest(
            source=payload['source'],
            params=payload.get('params', {}),
            request_id=request_id,
        ))
    return Result.ok(DiscoverRequest(source=payload['source'], request_id=request_id))


def handle_request(request: Request, limits: Optional[EngineLimits] = None) -> Response:
    """
    Run a request against the engine.

    Raises:
        TypeError: For objects that are not a known request type
    """
    if isinstance(request, AnalyzeRequest):
        return AnalysisResponse(request.request_id, analyze(request.source, request.params, limits))
    if isinstance(request, DiscoverRequest):
        document = parse_document(request.source)
        return ParametersResponse(
            request.request_id,
            discover_parameters(document.spells),
            [e.describe() for e in document.errors],
        )
    raise TypeError(f"Unknown request type {type(request).__name__}")


def handle_payload(payload: Any, limits: Optional[EngineLimits] = None) -> Response:
    """Validate and handle a raw payload in one step."""
    result = parse_request(payload)
    if not result:
        request_id = payload.get('request_id') if isinstance(payload, dict) else None
        if not isinstance(request_id, int) or isinstance(request_id, bool):
            request_id = None
        logger.info(f"Rejected request: {result.error}")
        return FailureResponse(request_id, result.error, result.error_code)
    return handle_request(result.data, limits)


__all__ = [
    'REQUEST_SCHEMA', 'AnalyzeRequest', 'DiscoverRequest', 'AnalysisResponse',
    'ParametersResponse', 'FailureResponse', 'parse_request', 'handle_request',
    'handle_payload',
]
