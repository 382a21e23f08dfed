"""
Dataclasses and small model helpers used throughout the system.
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional


def utcnow_iso() -> str:
    """UTC timestamp in ISO 8601 format (seconds precision)."""
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


@dataclass
class SessionInfo:
    """
    Represents one connected client.

    Note: _writer is a transient handle to the socket writer; not serialized.
    """
    session_id: str
    ip: str
    connected_at: str = field(default_factory=utcnow_iso)
    commands: int = 0
    last_command: Optional[str] = None
    _writer: Any = field(default=None, repr=False, compare=False)
    _write_lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def send_line(self, line: str) -> None:
        """Write one protocol line; raises OSError/ValueError when the peer is gone."""
        data = (line + "\n").encode("utf-8")
        with self._write_lock:
            writer = self._writer
            if writer is None:
                raise BrokenPipeError(f"session {self.session_id} has no writer")
            writer.write(data)
            writer.flush()

    def to_dict(self) -> dict:
        return {
            "session_id": self.session_id,
            "ip": self.ip,
            "connected_at": self.connected_at,
            "commands": self.commands,
            "last_command": self.last_command,
        }
