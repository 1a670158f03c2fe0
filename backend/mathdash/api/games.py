import uuid

from flask import Blueprint, jsonify, request, current_app, session
from flask_login import login_required, current_user

from mathdash.services.games.engine import SessionEngine
from mathdash.services.games.persistence import (
    SqlProgressStore,
    SqlScoreReporter,
    current_user_identity,
    owner_key_for,
    reset_scores,
    top_scores,
)
from mathdash.services.games.problems import Operation
from mathdash.services.games.registry import create_session, drop_session, get_entry
from mathdash.services.games.scheduler import emit_state, schedule_later, start_session_clock


games = Blueprint('games', __name__)


def _build_engine(app, session_id: str, user_id, device_id) -> SessionEngine:
    def _schedule(delay, fn):
        schedule_later(app, session_id, delay, fn)

    return SessionEngine(
        progress_store=SqlProgressStore(owner_key_for(user_id, device_id)),
        # The clock may end the game outside any request, so bind the identity now
        score_reporter=SqlScoreReporter(identity=lambda: user_id),
        schedule=_schedule,
        feedback_delay=float(app.config.get('FEEDBACK_DISPLAY_SEC', 1.5)),
    )


def _caller_owner() -> str:
    user_id = current_user_identity()
    if user_id is not None:
        return f"user:{user_id}"
    # Anonymous players are told apart by a token in their signed session cookie
    if 'guest_token' not in session:
        session['guest_token'] = uuid.uuid4().hex
    return f"guest:{session['guest_token']}"


def _get_entry_or_error(session_id, owned=True):
    entry = get_entry(session_id)
    if entry is None:
        return None, (jsonify({'error': 'Session not found'}), 404)
    if owned and entry.owner != _caller_owner():
        current_app.logger.info(f"[forbidden] session={session_id}")
        return None, (jsonify({'error': 'Session belongs to another player'}), 403)
    entry.touch()
    return entry, None


def _state_payload(session_id, engine):
    return {'session_id': session_id, 'state': engine.state.to_dict()}


@games.route('/start', methods=['POST'])
def start_game():
    data = request.get_json(silent=True) or {}
    try:
        operation = Operation.parse(data.get('operation'))
    except ValueError as exc:
        return jsonify({'error': str(exc)}), 400

    app = current_app._get_current_object()
    session_id = data.get('session_id')
    if session_id and get_entry(session_id) is not None:
        # Restarting an existing session; only its owner may do that
        entry, error = _get_entry_or_error(session_id)
        if error:
            return error
    else:
        session_id = uuid.uuid4().hex
        engine = _build_engine(app, session_id, current_user_identity(), data.get('device_id'))
        create_session(
            engine,
            _caller_owner(),
            session_id,
            idle_ttl=float(app.config.get('SESSION_IDLE_TTL_SEC', 600)),
        )
        entry = get_entry(session_id)

    engine = entry.engine
    with entry.lock:
        engine.start_game(operation)
        app.logger.info(f"[start] session={session_id} operation={operation.value} level={engine.state.difficulty_level}")
        emit_state(session_id)
    start_session_clock(app, session_id)
    return jsonify(_state_payload(session_id, engine)), 201


@games.route('/<string:session_id>/answer', methods=['POST'])
def submit_answer(session_id):
    entry, error = _get_entry_or_error(session_id)
    if error:
        return error
    data = request.get_json(silent=True) or {}
    answer = data.get('answer')
    if answer is None or str(answer).strip() == '':
        return jsonify({'error': 'Answer is required'}), 400

    engine = entry.engine
    with entry.lock:
        if not engine.state.is_playing:
            return jsonify({'error': 'Session is not in play'}), 409
        correct = engine.submit_answer(answer)
        emit_state(session_id)
        payload = _state_payload(session_id, engine)
    payload['correct'] = correct
    return jsonify(payload)


@games.route('/<string:session_id>/tick', methods=['POST'])
def tick(session_id):
    entry, error = _get_entry_or_error(session_id)
    if error:
        return error
    with entry.lock:
        entry.engine.tick()
        emit_state(session_id)
        return jsonify(_state_payload(session_id, entry.engine))


@games.route('/<string:session_id>/end', methods=['POST'])
def end_game(session_id):
    entry, error = _get_entry_or_error(session_id)
    if error:
        return error
    with entry.lock:
        entry.engine.end_game()
        emit_state(session_id)
        return jsonify(_state_payload(session_id, entry.engine))


@games.route('/<string:session_id>/reset', methods=['POST'])
def reset_game(session_id):
    entry, error = _get_entry_or_error(session_id)
    if error:
        return error
    with entry.lock:
        entry.engine.reset_game()
        emit_state(session_id)
        return jsonify(_state_payload(session_id, entry.engine))


@games.route('/<string:session_id>', methods=['DELETE'])
def close_session(session_id):
    """End the session if still running and forget it."""
    entry, error = _get_entry_or_error(session_id)
    if error:
        return error
    drop_session(session_id)
    engine = entry.engine
    with entry.lock:
        if engine.state.is_playing:
            engine.end_game()
        current_app.logger.info(f"[close] session={session_id} score={engine.state.score}")
        return jsonify(_state_payload(session_id, engine))


@games.route('/<string:session_id>/state', methods=['GET'])
def get_state(session_id):
    entry, error = _get_entry_or_error(session_id, owned=False)
    if error:
        return error
    with entry.lock:
        return jsonify(_state_payload(session_id, entry.engine))


@games.route('/leaderboard/<string:operation>', methods=['GET'])
def leaderboard(operation):
    limit = current_app.config.get('LEADERBOARD_LIMIT', 10)
    try:
        rows = top_scores(operation, limit=limit)
    except ValueError as exc:
        return jsonify({'error': str(exc)}), 400
    return jsonify([row.to_dict() for row in rows])


@games.route('/scores', methods=['DELETE'])
@login_required
def delete_own_scores():
    removed = reset_scores(current_user.id)
    current_app.logger.info(f"[scores-reset] user={current_user.id} removed={removed}")
    return jsonify({'removed': removed})
