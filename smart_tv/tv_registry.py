"""
Registry: the live sessions + broadcast fan-out.
- Tracks connected sessions and their writers
- Delivers NOTIFY lines to every live session, pruning dead ones
- Keeps a bounded structured log and a snapshot() for the web remote
"""

import logging
import threading
from collections import deque
from typing import Any, Dict, List, Optional

from .tv_config import LOG_MAX
from .tv_models import SessionInfo, utcnow_iso
from .tv_version import VERSION

logger = logging.getLogger(__name__)

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class SessionRegistry:
    """Thread-safe registry of connected sessions."""

    def __init__(self, log_max: int = LOG_MAX) -> None:

        # Session storage + lock
        self.sessions: Dict[str, SessionInfo] = {}
        self.sessions_lock = threading.Lock()

        # System log (newest first)
        self.logs: deque = deque(maxlen=log_max)

        # Counters
        self.broadcasts: int = 0
        self.pruned: int = 0
        self.started_at: str = utcnow_iso()

    # ---------------- Utilities ----------------

    def log(self, msg: str, level: str = "info", source: str = "server", session_id: Optional[str] = None) -> None:
        """Append a structured log entry and forward it to the logging module."""
        entry = {"ts": utcnow_iso(), "level": level, "source": source, "session_id": session_id, "msg": msg}
        self.logs.appendleft(entry)
        logger.log(_LEVELS.get(level, logging.INFO), msg)

    def recent_logs(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        entries = list(self.logs)
        return entries if limit is None else entries[:limit]

    def clear_logs(self) -> None:
        self.logs.clear()
        self.log("Logs cleared")

    # ---------------- Session lifecycle ----------------

    def add_session(self, session_id: str, ip: str, writer: Any) -> SessionInfo:
        """Register a new session; a stale entry under the same id is replaced."""
        session = SessionInfo(session_id=session_id, ip=ip, _writer=writer)
        with self.sessions_lock:
            self.sessions[session_id] = session
            count = len(self.sessions)
        self.log(f"Session {session_id} connected ({count} active)", session_id=session_id)
        return session

    def remove_session(self, session_id: str, reason: str = "disconnected",
                       expected: Optional[SessionInfo] = None) -> bool:
        """
        Drop a session. Returns False if it was already gone.

        With `expected`, only that exact entry is dropped; a newer session that
        reused the same peer address is left alone.
        """
        with self.sessions_lock:
            session = self.sessions.get(session_id)
            if session is not None and (expected is None or session is expected):
                del self.sessions[session_id]
            else:
                session = None
            count = len(self.sessions)
        if session is None:
            return False
        session._writer = None
        self.log(f"Session {session_id} {reason} ({count} active)", session_id=session_id)
        return True

    def get(self, session_id: str) -> Optional[SessionInfo]:
        with self.sessions_lock:
            return self.sessions.get(session_id)

    def active_count(self) -> int:
        with self.sessions_lock:
            return len(self.sessions)

    def record_command(self, session_id: str, line: str) -> None:
        with self.sessions_lock:
            s = self.sessions.get(session_id)
            if s is not None:
                s.commands += 1
                s.last_command = line

    # ---------------- Broadcast ----------------

    def broadcast(self, line: str, exclude: Optional[str] = None) -> int:
        """
        Send one line to every registered session (except `exclude`).

        Iterates a snapshot; a session whose write fails is removed from the
        live registry and delivery continues with the rest.
        Returns the number of sessions that received the line.
        """
        with self.sessions_lock:
            targets = [s for sid, s in self.sessions.items() if sid != exclude]
            self.broadcasts += 1

        delivered = 0
        for session in targets:
            try:
                session.send_line(line)
                delivered += 1
            except (OSError, ValueError) as e:
                self.log(f"Send failed to session {session.session_id}: {e}", level="warning",
                         session_id=session.session_id)
                if self.remove_session(session.session_id, reason="pruned after failed write",
                                      expected=session):
                    with self.sessions_lock:
                        self.pruned += 1
        self.log(f"Broadcast '{line}' to {delivered}/{len(targets)} sessions", level="debug")
        return delivered

    # ---------------- Snapshot for UI ----------------

    def snapshot(self) -> Dict[str, Any]:
        """Return the current connection state consumed by the web remote."""
        with self.sessions_lock:
            sessions = [s.to_dict() for s in self.sessions.values()]
            broadcasts = self.broadcasts
            pruned = self.pruned
        return {
            "sessions": sessions,
            "active": len(sessions),
            "broadcasts": broadcasts,
            "pruned": pruned,
            "started_at": self.started_at,
            "version": VERSION,
        }
