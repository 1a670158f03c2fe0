import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, Optional

from .engine import SessionEngine


@dataclass
class SessionEntry:
    """A hosted engine plus who may drive it.

    Routes and background workers hold ``lock`` around every engine call.
    It is re-entrant because test runs execute the clock and feedback
    workers inline, inside the route that scheduled them.
    """
    engine: SessionEngine
    owner: str
    lock: threading.RLock = field(default_factory=threading.RLock)
    touched_at: float = field(default_factory=time.monotonic)

    def touch(self) -> None:
        self.touched_at = time.monotonic()


_sessions: Dict[str, SessionEntry] = {}


def create_session(
    engine: SessionEngine,
    owner: str,
    session_id: Optional[str] = None,
    idle_ttl: Optional[float] = None,
) -> str:
    if idle_ttl is not None:
        evict_idle(idle_ttl)
    session_id = session_id or uuid.uuid4().hex
    _sessions[session_id] = SessionEntry(engine=engine, owner=owner)
    return session_id


def get_entry(session_id: str) -> Optional[SessionEntry]:
    return _sessions.get(session_id)


def get_session(session_id: str) -> Optional[SessionEngine]:
    entry = _sessions.get(session_id)
    return entry.engine if entry else None


def drop_session(session_id: str) -> Optional[SessionEngine]:
    entry = _sessions.pop(session_id, None)
    return entry.engine if entry else None


def evict_idle(max_age: float, now: Optional[float] = None) -> int:
    """Forget sessions that are not playing and were untouched for ``max_age`` seconds."""
    now = time.monotonic() if now is None else now
    stale = [
        sid for sid, entry in list(_sessions.items())
        if not entry.engine.state.is_playing and now - entry.touched_at >= max_age
    ]
    for sid in stale:
        _sessions.pop(sid, None)
    return len(stale)


def session_count() -> int:
    return len(_sessions)


def clear_sessions() -> None:
    _sessions.clear()
