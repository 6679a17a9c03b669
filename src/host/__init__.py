"""
Host-side collaborators of the analysis engine.

- messages: typed request/response protocol
- worker: background analysis with last-request-wins delivery
- state: user state owned by the host, with JSON persistence
"""

from .messages import (
    AnalysisResponse, AnalyzeRequest, DiscoverRequest, FailureResponse,
    ParametersResponse, handle_payload, handle_request, parse_request,
)
from .state import HostState, StateStore
from .worker import AnalysisWorker

__all__ = [
    'AnalyzeRequest', 'DiscoverRequest', 'AnalysisResponse', 'ParametersResponse',
    'FailureResponse', 'parse_request', 'handle_request', 'handle_payload',
    'HostState', 'StateStore', 'AnalysisWorker',
]
