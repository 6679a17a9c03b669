"""
API Blueprint - JSON endpoints for the spell analysis host.

Analysis requests go through the typed message protocol; everything about
drafts, pins and seen examples is host state and never reaches the engine.
"""

import logging

import jsonschema
from flask import Blueprint, current_app, jsonify, request

from src.catalog import get_example, list_examples
from src.core.result import ErrorCode
from src.host.messages import AnalysisResponse, FailureResponse, handle_payload
from src.host.state import HostState

logger = logging.getLogger(__name__)

api_bp = Blueprint('api', __name__, url_prefix='/api')


def get_state() -> HostState:
    """Get the host state shared by this app."""
    return current_app.host_state


def persist_state() -> None:
    """Write host state to disk, logging rather than failing the request."""
    result = current_app.state_store.save(get_state())
    if not result:
        logger.warning(f"State not saved: {result.error}")


def error_response(message: str, code: ErrorCode | str, status: int = 400):
    code = code.value if isinstance(code, ErrorCode) else code
    return jsonify({'error': message, 'error_code': code}), status


def run_payload(payload_type: str):
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return error_response('Request body must be a JSON object', ErrorCode.INVALID_REQUEST)

    payload = dict(payload)
    payload.setdefault('type', payload_type)
    response = handle_payload(payload, current_app.config['ENGINE_LIMITS'])

    if isinstance(response, FailureResponse):
        return error_response(response.error, response.error_code)

    data = response.to_dict()
    if isinstance(response, AnalysisResponse):
        with current_app.state_lock:
            order = get_state().display_order(response.analysis)
        data['display_order'] = [spell.name for spell in order]
    return jsonify(data)


# ========== Engine Endpoints ==========

@api_bp.route('/health')
def health():
    return jsonify({'status': 'ok'})


@api_bp.route('/analyze', methods=['POST'])
def analyze():
    """Analyze a collection: {"source": "...", "params": {...}, "request_id": 1}."""
    return run_payload('analyze')


@api_bp.route('/parameters', methods=['POST'])
def parameters():
    """Discover a collection's parameters: {"source": "..."}."""
    return run_payload('discover')


# ========== Example Endpoints ==========

@api_bp.route('/examples')
def examples():
    """List bundled examples, flagging ones the user has not opened."""
    catalog = list_examples()
    with current_app.state_lock:
        unseen = set(get_state().unseen_examples(e['key'] for e in catalog))
    return jsonify({
        'examples': [dict(example, seen=example['key'] not in unseen) for example in catalog]
    })


@api_bp.route('/examples/<key>')
def example(key: str):
    """Return one example's source and mark it as seen."""
    try:
        data = get_example(key)
    except ValueError as e:
        return error_response(str(e), ErrorCode.NOT_FOUND, 404)

    with current_app.state_lock:
        get_state().mark_seen(key)
        persist_state()
    return jsonify(data)


# ========== State Endpoints ==========

@api_bp.route('/state', methods=['GET'])
def get_host_state():
    with current_app.state_lock:
        return jsonify(get_state().to_dict())


@api_bp.route('/state', methods=['PUT'])
def put_host_state():
    """Replace the host state (draft, params, saved collections, pins, seen)."""
    payload = request.get_json(silent=True)
    try:
        state = HostState.from_dict(payload)
    except jsonschema.ValidationError as e:
        return error_response(f"Invalid state: {e.message}", ErrorCode.INVALID_REQUEST)

    with current_app.state_lock:
        current_app.host_state = state
        persist_state()
        return jsonify(state.to_dict())


@api_bp.route('/state/pins/<name>', methods=['POST'])
def pin_spell(name: str):
    with current_app.state_lock:
        get_state().pin(name)
        persist_state()
        return jsonify({'pinned': list(get_state().pinned)})


@api_bp.route('/state/pins/<name>', methods=['DELETE'])
def unpin_spell(name: str):
    with current_app.state_lock:
        get_state().unpin(name)
        persist_state()
        return jsonify({'pinned': list(get_state().pinned)})


# ========== Saved Collection Endpoints ==========

def saved_response(result, status: int = 200):
    """Reply with the saved collection names, or the failure with its status."""
    if not result:
        status = 404 if result.error_code == ErrorCode.NOT_FOUND.value else 400
        return error_response(result.error, result.error_code, status)
    persist_state()
    state = get_state()
    return jsonify({'saved': sorted(state.saved), 'source': state.source}), status


@api_bp.route('/state/saved')
def list_saved():
    with current_app.state_lock:
        return jsonify({'saved': sorted(get_state().saved)})


@api_bp.route('/state/saved/<name>', methods=['POST'])
def save_collection(name: str):
    """Save the draft under name; {"source": "..."} replaces the draft first."""
    payload = request.get_json(silent=True) or {}
    source = payload.get('source') if isinstance(payload, dict) else None
    if source is not None and not isinstance(source, str):
        return error_response("'source' must be a string", ErrorCode.INVALID_REQUEST)

    with current_app.state_lock:
        if source is not None:
            get_state().source = source
        return saved_response(get_state().save_collection(name), 201)


@api_bp.route('/state/saved/<name>/load', methods=['POST'])
def load_collection(name: str):
    """Make a saved collection the current draft."""
    with current_app.state_lock:
        return saved_response(get_state().load_collection(name))


@api_bp.route('/state/saved/<name>', methods=['DELETE'])
def delete_collection(name: str):
    with current_app.state_lock:
        return saved_response(get_state().delete_collection(name))
