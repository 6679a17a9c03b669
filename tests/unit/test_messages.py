"""
Unit tests for the host/engine message protocol.
"""

import pytest

from src.core.result import ErrorCode
from src.host.messages import (
    AnalysisResponse, AnalyzeRequest, DiscoverRequest, FailureResponse,
    ParametersResponse, handle_payload, handle_request, parse_request,
)


class TestParseRequest:
    """Test payload validation."""

    def test_analyze_payload(self):
        """Test a complete analyze payload."""
        result = parse_request({
            'type': 'analyze', 'request_id': 7, 'source': 'Bolt: 1d6', 'params': {'slot': 4}
        })
        assert result
        assert result.data == AnalyzeRequest('Bolt: 1d6', {'slot': 4}, request_id=7)

    def test_discover_payload(self):
        """Test a discover payload without a request id."""
        result = parse_request({'type': 'discover', 'source': 'Bolt: 1d6 + x'})
        assert result.data == DiscoverRequest('Bolt: 1d6 + x', request_id=0)

    @pytest.mark.parametrize('payload', [
        None,
        'analyze',
        {'type': 'analyze'},
        {'type': 'analyze', 'source': 42},
        {'type': 'analyze', 'source': 'x', 'params': {'slot': 'three'}},
        {'type': 'analyze', 'source': 'x', 'request_id': -1},
        {'type': 'analyze', 'source': 'x', 'colour': 'red'},
        {'type': 'discover', 'source': 'x', 'params': {}},
        {'type': 'explode', 'source': 'x'},
    ])
    def test_invalid_payloads(self, payload):
        """Test payloads that do not match the schema."""
        result = parse_request(payload)
        assert not result
        assert result.error_code == ErrorCode.INVALID_REQUEST.value

    def test_request_snapshots_params(self):
        """Test that a request does not see later edits to the caller's dict."""
        params = {'slot': 3}
        request = AnalyzeRequest('Fireball [3]: (5 + slot)d6', params)
        params['slot'] = 9
        assert request.params == {'slot': 3}


class TestHandleRequest:
    """Test running requests against the engine."""

    def test_analyze(self, sample_source):
        """Test an analysis request."""
        response = handle_request(AnalyzeRequest(sample_source, {'slot': 5}, request_id=3))
        assert isinstance(response, AnalysisResponse)
        assert response.request_id == 3
        assert response.analysis.spell('Fireball').mean == 35.0

        data = response.to_dict()
        assert data['type'] == 'analysis'
        assert data['request_id'] == 3
        assert len(data['analysis']['spells']) == 4

    def test_discover(self):
        """Test a discovery request that also reports syntax errors."""
        response = handle_request(DiscoverRequest("A: 1d6 + bonus\nB: 1d6 +\n", request_id=2))
        assert isinstance(response, ParametersResponse)
        data = response.to_dict()
        assert data['type'] == 'parameters'
        assert [p['id'] for g in data['parameters'] for p in g['parameters']] == ['bonus']
        assert data['errors'] == ["B (line 2): unexpected end of formula"]

    def test_unknown_request(self):
        """Test an object that is not a request."""
        with pytest.raises(TypeError):
            handle_request({'type': 'analyze'})

    def test_invalid_payload_becomes_failure(self):
        """Test that bad payloads come back as failure responses."""
        response = handle_payload({'type': 'analyze', 'request_id': 5})
        assert isinstance(response, FailureResponse)
        assert response.request_id == 5
        assert response.to_dict()['error_code'] == 'invalid_request'

    def test_failure_without_request_id(self):
        """Test a failure for a payload that is not even an object."""
        response = handle_payload(['analyze'])
        assert response.request_id is None

    def test_valid_payload(self, sample_source):
        """Test the one-step path."""
        response = handle_payload({'type': 'analyze', 'source': sample_source})
        assert isinstance(response, AnalysisResponse)
        assert response.analysis.errors == []
