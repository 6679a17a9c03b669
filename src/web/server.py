"""
Web interface for Arcane Odds.

Flask app exposing the analysis engine as a JSON API, plus a SocketIO
channel for live re-analysis while the user edits:
- /api/...: see src/web/blueprints/api.py
- socket event 'analyze' -> 'analysis' (latest request per connection wins)
"""

import logging
import threading
from typing import Optional

from flask import Flask, request
from flask_socketio import SocketIO, emit

from src.core.config import Config, get_config
from src.core.logging_config import setup_logging
from src.host.messages import FailureResponse, parse_request
from src.host.state import HostState, StateStore
from src.host.worker import AnalysisWorker
from src.web.blueprints import api_bp

logger = logging.getLogger(__name__)


def create_app(config: Optional[Config] = None):
    """
    Create Flask app with SocketIO support for live analysis.

    Args:
        config: Configuration; defaults to the global config

    Returns:
        Tuple of (Flask app, SocketIO instance)
    """
    config = config or get_config()

    app = Flask(__name__)
    app.config['SECRET_KEY'] = config.secret_key
    app.config['ENGINE_LIMITS'] = config.engine_limits()

    # Host state is shared by every request; guard it with one lock
    app.state_store = StateStore(config.state_file)
    loaded = app.state_store.load()
    if loaded:
        app.host_state = loaded.data
    else:
        logger.warning(f"Starting with empty state: {loaded.error}")
        app.host_state = HostState()
    app.state_lock = threading.Lock()

    # One background worker per socket connection
    app.analysis_workers = {}

    socketio = SocketIO(
        app,
        cors_allowed_origins="*",
        async_mode=config.socketio_async_mode,
        logger=False,
        engineio_logger=False
    )

    app.register_blueprint(api_bp)

    @socketio.on('connect')
    def handle_connect():
        sid = request.sid
        logger.info(f"Client connected: {sid}")

        def deliver(response):
            socketio.emit('analysis', response.to_dict(), to=sid)

        app.analysis_workers[sid] = AnalysisWorker(
            deliver, app.config['ENGINE_LIMITS'], name=f'analysis-{sid}'
        ).start()
        emit('connection_status', {'status': 'connected', 'message': 'Connected to Arcane Odds'})

    @socketio.on('disconnect')
    def handle_disconnect(*args):
        sid = request.sid
        worker = app.analysis_workers.pop(sid, None)
        if worker is not None:
            worker.stop(timeout=1.0)
        logger.info(f"Client disconnected: {sid}")

    @socketio.on('analyze')
    def handle_analyze(data):
        """Queue an analysis; the result arrives later as an 'analysis' event."""
        payload = dict(data) if isinstance(data, dict) else data
        if isinstance(payload, dict):
            payload.setdefault('type', 'analyze')

        result = parse_request(payload)
        if not result:
            emit('analysis', FailureResponse(None, result.error, result.error_code).to_dict())
            return

        worker = app.analysis_workers.get(request.sid)
        if worker is None:
            emit('analysis', FailureResponse(
                result.data.request_id, 'Not connected', 'invalid_request'
            ).to_dict())
            return
        worker.submit_request(result.data)

    return app, socketio


def main():
    """Run development server."""
    import argparse

    config = get_config()

    parser = argparse.ArgumentParser(description='Arcane Odds Web Interface')
    parser.add_argument('--host', default=config.host, help='Host to bind to')
    parser.add_argument('--port', type=int, default=config.port, help='Port to bind to')
    parser.add_argument('--debug', action='store_true', default=config.debug, help='Enable debug mode')

    args = parser.parse_args()
    run_server(config, args.host, args.port, args.debug)


def run_server(config: Config, host: str, port: int, debug: bool = False) -> None:
    setup_logging(level=config.log_level, log_file=config.log_file)
    app, socketio = create_app(config)

    print(f"\n╔══════════════════════════════════════════════════╗")
    print(f"║     Arcane Odds Web Interface                    ║")
    print(f"╚══════════════════════════════════════════════════╝")
    print(f"")
    print(f"  API URL:     http://{host}:{port}/api")
    print(f"  WebSocket:   Enabled ({config.socketio_async_mode})")
    print(f"  State file:  {config.state_file}")
    print(f"")
    print(f"  Press Ctrl+C to stop")
    print(f"")

    # Use socketio.run() instead of app.run() for WebSocket support
    socketio.run(app, host=host, port=port, debug=debug, allow_unsafe_werkzeug=True)


if __name__ == '__main__':
    main()
