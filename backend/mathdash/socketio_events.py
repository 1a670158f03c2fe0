from flask_socketio import join_room, leave_room, emit
from mathdash import socketio
from mathdash.services.games.registry import get_session


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_join_session(data):
    session_id = (data or {}).get('session_id')
    if not session_id:
        emit('error', {'message': 'session_id is required'})
        return
    room = f"session:{session_id}"
    join_room(room)
    emit('joined', {'room': room})
    # Send the current state right away so late joiners can render the clock
    engine = get_session(session_id)
    if engine is not None:
        emit('state_update', {'session_id': session_id, 'state': engine.state.to_dict()})


def handle_leave_session(data):
    session_id = (data or {}).get('session_id')
    if not session_id:
        emit('error', {'message': 'session_id is required'})
        return
    room = f"session:{session_id}"
    leave_room(room)
    emit('left', {'room': room})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    handlers = {
        'connect': handle_connect,
        'join_session': handle_join_session,
        'leave_session': handle_leave_session,
        'ping': handle_ping,
    }
    for name, handler in handlers.items():
        socketio.on_event(name, handler, namespace='/ws')
    if testing:
        for name, handler in handlers.items():
            socketio.on_event(name, handler, namespace='/')
