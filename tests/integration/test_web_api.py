"""
Integration tests for the Flask API and the live-analysis socket.
"""

import json
import time

import pytest

from src.catalog import EXAMPLES
from src.core.config import Config
from src.web.server import create_app


@pytest.fixture
def app_and_socketio(state_file):
    config = Config()
    config.state_file = state_file
    config.socketio_async_mode = 'threading'
    app, socketio = create_app(config)
    app.config['TESTING'] = True
    return app, socketio


@pytest.fixture
def client(app_and_socketio):
    app, _ = app_and_socketio
    return app.test_client()


class TestEngineEndpoints:
    """Test analysis and discovery over HTTP."""

    def test_health(self, client):
        response = client.get('/api/health')
        assert response.status_code == 200
        assert response.get_json() == {'status': 'ok'}

    def test_analyze(self, client, sample_source):
        """Test analyzing a collection."""
        response = client.post('/api/analyze', json={
            'source': sample_source, 'params': {'slot': 5}, 'request_id': 4
        })
        assert response.status_code == 200
        data = response.get_json()
        assert data['type'] == 'analysis'
        assert data['request_id'] == 4
        spells = {s['name']: s for s in data['analysis']['spells']}
        assert spells['Fireball']['cast_level'] == 5
        assert spells['Fireball']['mean'] == 35.0
        assert data['display_order'] == ['Fire Bolt', 'Magic Missile', 'Fireball', 'Eldritch Blast']

    def test_analyze_reports_spell_errors(self, client):
        """Test that per-spell errors are part of a successful response."""
        response = client.post('/api/analyze', json={'source': "Good: 1d6\nBad: 1d6 +\n"})
        assert response.status_code == 200
        assert response.get_json()['analysis']['errors'] == ["Bad (line 2): unexpected end of formula"]

    def test_analyze_invalid_request(self, client):
        """Test a payload missing its source."""
        response = client.post('/api/analyze', json={'params': {'slot': 3}})
        assert response.status_code == 400
        assert response.get_json()['error_code'] == 'invalid_request'

    def test_analyze_non_json_body(self, client):
        """Test a body that is not JSON."""
        response = client.post('/api/analyze', data='Fireball', content_type='text/plain')
        assert response.status_code == 400

    def test_parameters(self, client, sample_source):
        """Test parameter discovery."""
        response = client.post('/api/parameters', json={'source': sample_source})
        assert response.status_code == 200
        data = response.get_json()
        assert data['type'] == 'parameters'
        assert [g['name'] for g in data['parameters']] == [
            'Caster', 'Casting', 'Other', 'Ability modifiers'
        ]


class TestExampleEndpoints:
    """Test the bundled example catalog."""

    def test_list_and_open(self, client, state_file):
        """Test that opening an example marks it as seen and persists."""
        listed = client.get('/api/examples').get_json()['examples']
        assert {e['key'] for e in listed} == set(EXAMPLES)
        assert not any(e['seen'] for e in listed)

        response = client.get('/api/examples/advantage')
        assert response.status_code == 200
        assert 'adv(1d20)' in response.get_json()['source']

        listed = client.get('/api/examples').get_json()['examples']
        assert [e['key'] for e in listed if e['seen']] == ['advantage']

        with open(state_file) as f:
            assert json.load(f)['seen_examples'] == ['advantage']

    def test_unknown_example(self, client):
        response = client.get('/api/examples/necromancy')
        assert response.status_code == 404
        assert response.get_json()['error_code'] == 'not_found'


class TestStateEndpoints:
    """Test host state over HTTP."""

    def test_pins_reorder_display(self, client, sample_source):
        """Test that pinning changes display order but not results."""
        before = client.post('/api/analyze', json={'source': sample_source}).get_json()

        pinned = client.post('/api/state/pins/Fireball').get_json()
        assert pinned == {'pinned': ['Fireball']}

        after = client.post('/api/analyze', json={'source': sample_source}).get_json()
        assert after['display_order'][0] == 'Fireball'
        assert after['analysis'] == before['analysis']

        assert client.delete('/api/state/pins/Fireball').get_json() == {'pinned': []}

    def test_replace_state(self, client):
        """Test replacing the whole state."""
        state = {'source': 'Bolt: 1d6', 'params': {'slot': 2}, 'saved': {}, 'pinned': ['Bolt'], 'seen_examples': []}
        response = client.put('/api/state', json=state)
        assert response.status_code == 200
        assert client.get('/api/state').get_json() == state

    def test_replace_state_invalid(self, client):
        """Test that malformed state is rejected."""
        response = client.put('/api/state', json={'pinned': 'Bolt'})
        assert response.status_code == 400
        assert response.get_json()['error_code'] == 'invalid_request'


class TestSavedCollections:
    """Test saving, loading and deleting named collections."""

    def test_save_load_delete(self, client, state_file):
        """Test the full lifecycle of a saved collection."""
        assert client.get('/api/state/saved').get_json() == {'saved': []}

        response = client.post('/api/state/saved/Blasts', json={'source': 'Bolt: 1d10'})
        assert response.status_code == 201
        assert response.get_json() == {'saved': ['Blasts'], 'source': 'Bolt: 1d10'}

        client.put('/api/state', json={'source': 'Scratch: 1d4'})
        client.post('/api/state/saved/Blasts')
        loaded = client.post('/api/state/saved/Blasts/load').get_json()
        assert loaded['source'] == 'Scratch: 1d4'

        with open(state_file) as f:
            assert json.load(f)['saved'] == {'Blasts': 'Scratch: 1d4'}

        assert client.delete('/api/state/saved/Blasts').get_json()['saved'] == []

    def test_save_current_draft(self, client):
        """Test saving without a body keeps the existing draft."""
        client.put('/api/state', json={'source': 'Ray: 2d8'})
        client.post('/api/state/saved/Rays')
        client.put('/api/state', json={'source': '', 'saved': {'Rays': 'Ray: 2d8'}})
        assert client.post('/api/state/saved/Rays/load').get_json()['source'] == 'Ray: 2d8'

    @pytest.mark.parametrize('method, url', [
        ('post', '/api/state/saved/Missing/load'),
        ('delete', '/api/state/saved/Missing'),
    ])
    def test_unknown_name(self, client, method, url):
        response = getattr(client, method)(url)
        assert response.status_code == 404
        assert response.get_json()['error_code'] == 'not_found'

    def test_blank_name(self, client):
        response = client.post('/api/state/saved/%20%20')
        assert response.status_code == 400
        assert response.get_json()['error_code'] == 'invalid_request'

    def test_source_must_be_text(self, client):
        response = client.post('/api/state/saved/Blasts', json={'source': 7})
        assert response.status_code == 400
        assert client.get('/api/state/saved').get_json() == {'saved': []}


class TestLiveAnalysis:
    """Test the SocketIO channel."""

    def _wait_for(self, socket_client, event, timeout=5.0):
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            for message in socket_client.get_received():
                if message['name'] == event:
                    return message['args'][0]
            time.sleep(0.02)
        raise AssertionError(f"no '{event}' event within {timeout}s")

    def test_analyze_event(self, app_and_socketio, sample_source):
        """Test that an 'analyze' event is answered by an 'analysis' event."""
        app, socketio = app_and_socketio
        socket_client = socketio.test_client(app)
        assert socket_client.is_connected()
        assert len(app.analysis_workers) == 1

        socket_client.emit('analyze', {'source': sample_source, 'params': {'slot': 4}, 'request_id': 1})
        data = self._wait_for(socket_client, 'analysis')
        assert data['type'] == 'analysis'
        assert data['request_id'] == 1
        assert len(data['analysis']['spells']) == 4

        socket_client.disconnect()
        assert app.analysis_workers == {}

    def test_invalid_event(self, app_and_socketio):
        """Test that a malformed event is answered with a failure."""
        app, socketio = app_and_socketio
        socket_client = socketio.test_client(app)
        socket_client.emit('analyze', {'params': {}})
        data = self._wait_for(socket_client, 'analysis')
        assert data['type'] == 'failure'
        assert data['error_code'] == 'invalid_request'
        socket_client.disconnect()
