import time
from typing import Callable, Set, Tuple

from mathdash import socketio
from .registry import get_entry, get_session


_running_clocks: Set[Tuple[str, int]] = set()


def _scheduler_enabled(app) -> bool:
    return not app.config.get('TESTING') or app.config.get('ENABLE_SCHEDULER_IN_TESTS')


def emit_state(session_id: str) -> None:
    engine = get_session(session_id)
    if engine is None:
        return
    socketio.emit(
        'state_update',
        {'session_id': session_id, 'state': engine.state.to_dict()},
        to=f"session:{session_id}",
        namespace='/ws',
    )


def start_session_clock(app, session_id: str) -> None:
    """Tick the session once per TICK_INTERVAL_SEC until it stops playing.

    - No-ops in TESTING unless ENABLE_SCHEDULER_IN_TESTS is set
    - No-ops when SERVER_CLOCK is off (clients drive /tick themselves)
    - Ensures a single clock per (session_id, run)
    - Aborts once the session is restarted, reset or over
    """
    if not _scheduler_enabled(app) or not app.config.get('SERVER_CLOCK', True):
        return

    engine = get_session(session_id)
    if engine is None or not engine.state.is_playing:
        return
    key = (session_id, engine.run)
    if key in _running_clocks:
        app.logger.info(f"[clock-skip] session={session_id} run={engine.run} already running")
        return
    _running_clocks.add(key)
    interval = float(app.config.get('TICK_INTERVAL_SEC', 1))
    app.logger.info(f"[clock-start] session={session_id} run={engine.run} interval={interval}s")

    def _worker(sid: str, expected_run: int):
        try:
            while True:
                time.sleep(interval)
                with app.app_context():
                    entry = get_entry(sid)
                    if entry is None:
                        app.logger.info(f"[clock-abort] session={sid} run={expected_run} gone")
                        return
                    with entry.lock:
                        current = entry.engine
                        if current.run != expected_run or not current.state.is_playing:
                            app.logger.info(f"[clock-abort] session={sid} run={expected_run}")
                            return
                        state = current.tick()
                        emit_state(sid)
                    if state.is_game_over:
                        app.logger.info(f"[clock-finish] session={sid} score={state.score}")
                        return
        finally:
            _running_clocks.discard((sid, expected_run))

    if app.config.get('TESTING'):
        _worker(session_id, engine.run)
    else:
        socketio.start_background_task(_worker, session_id, engine.run)


def schedule_later(app, session_id: str, delay: float, fn: Callable[[], object]) -> None:
    """Run ``fn`` after ``delay`` seconds and push the new state if it did anything."""
    if not _scheduler_enabled(app):
        return

    def _runner():
        time.sleep(delay)
        with app.app_context():
            entry = get_entry(session_id)
            if entry is None:
                return
            with entry.lock:
                if fn():
                    emit_state(session_id)

    if app.config.get('TESTING'):
        _runner()
    else:
        socketio.start_background_task(_runner)
