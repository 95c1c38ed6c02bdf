from threading import Lock
from uuid import uuid4
import time
from typing import Optional

from app.core.config import settings

# In-memory TTL registry of open grading sessions. Not persistent; a session
# lives from entering the grading screen until exit or expiry.

_lock = Lock()
_sessions = {}  # token -> (session, owner_id, expires_at)

DEFAULT_TTL = settings.GRADING_SESSION_TTL


def create_session(session, owner_id: str, ttl: int = DEFAULT_TTL) -> str:
    """Register a grading session for its grader and return the token."""
    token = str(uuid4())
    expires_at = time.time() + ttl
    with _lock:
        _sessions[token] = (session, owner_id, expires_at)
    return token


def get_session(token: str, owner_id: str, ttl: int = DEFAULT_TTL):
    """Return the session if the token is valid, unexpired and owned by ``owner_id``, else None.

    Each successful lookup extends the expiry.
    """
    now = time.time()
    with _lock:
        data = _sessions.get(token)
        if not data:
            return None
        session, owner, expires_at = data
        if expires_at < now:
            # expired
            del _sessions[token]
            return None
        if owner != owner_id:
            return None
        _sessions[token] = (session, owner, now + ttl)
        return session


def invalidate_session(token: str) -> None:
    with _lock:
        _sessions.pop(token, None)


def clear_expired() -> None:
    now = time.time()
    with _lock:
        expired = [t for t, (_, _, e) in _sessions.items() if e < now]
        for t in expired:
            del _sessions[t]


def active_count() -> int:
    with _lock:
        return len(_sessions)
