"""
session_manager.py
Module for keeping per-session conversation state between turns.

Sessions idle for longer than the configured expiry start over with a fresh state,
and are evicted by a periodic sweep so abandoned sessions do not pile up.
"""
import threading
import time
import uuid

SWEEP_INTERVAL_SECONDS = 60


class SessionStore:
    def __init__(self, idle_minutes=30, clock=time.monotonic):
        self.idle_seconds = idle_minutes * 60
        self._clock = clock
        self._lock = threading.Lock()
        self._sessions = {}
        self._next_sweep = clock() + SWEEP_INTERVAL_SECONDS

    def _new_session(self, owner_id=None):
        return {
            "state": None,
            "owner_id": owner_id or str(uuid.uuid4()),
            "last_seen": self._clock(),
        }

    def _expired(self, session, now):
        return now - session["last_seen"] > self.idle_seconds

    def _sweep(self, now):
        """Drop every expired session. Caller holds the lock."""
        if now < self._next_sweep:
            return
        for session_id in [sid for sid, s in self._sessions.items() if self._expired(s, now)]:
            del self._sessions[session_id]
        self._next_sweep = now + SWEEP_INTERVAL_SECONDS

    def get_session(self, session_id):
        """Retrieve the session for session_id, creating or expiring it as needed."""
        with self._lock:
            now = self._clock()
            self._sweep(now)
            session = self._sessions.get(session_id)
            if session is None or self._expired(session, now):
                session = self._new_session(owner_id=session_id)
                self._sessions[session_id] = session
            session["last_seen"] = now
            return dict(session)

    def find_session(self, session_id):
        """The live session for session_id, or None; never creates one."""
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None or self._expired(session, self._clock()):
                return None
            return dict(session)

    def get_state(self, session_id):
        """Serialized conversation state, or None for a fresh session."""
        return self.get_session(session_id)["state"]

    def save_state(self, session_id, state, owner_id=None):
        with self._lock:
            now = self._clock()
            self._sweep(now)
            session = self._sessions.get(session_id)
            if session is None:
                session = self._new_session(owner_id=session_id)
                self._sessions[session_id] = session
            if owner_id:
                session["owner_id"] = owner_id
            session["state"] = state
            session["last_seen"] = now

    def reset_session(self, session_id):
        with self._lock:
            self._sessions.pop(session_id, None)

    def __len__(self):
        return len(self._sessions)
