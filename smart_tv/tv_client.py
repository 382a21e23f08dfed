"""
Remote client for the Smart TV line protocol.

Used by the console client, the web remote and the tests. One background
thread reads every line from the server: NOTIFY lines go to the
notification buffer (and the optional callback), everything else is the
response to the command in flight.
"""

import logging
import queue
import socket
import threading
import time
from collections import deque
from typing import Callable, List, Optional

from .tv_config import CLIENT_TIMEOUT_SECS, TV_TCP_PORT
from .tv_protocol import is_notification

logger = logging.getLogger(__name__)

_CLOSED = object()


class RemoteClient:
    """Blocking request/response client with asynchronous notifications."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = TV_TCP_PORT,
        timeout: float = CLIENT_TIMEOUT_SECS,
        on_notify: Optional[Callable[[str], None]] = None,
        notify_max: int = 200,
    ) -> None:
        self.host = host
        self.port = port
        self.timeout = timeout
        self.on_notify = on_notify
        self.notifications: deque = deque(maxlen=notify_max)

        self._sock: Optional[socket.socket] = None
        self._reader = None
        self._writer = None
        self._listener: Optional[threading.Thread] = None
        self._responses: "queue.Queue" = queue.Queue()
        self._send_lock = threading.Lock()
        self._notify_cond = threading.Condition()
        self._connected = False
        # Replies still owed for commands that timed out; the server answers in order.
        self._stale_replies = 0

    # ---------------- Connection ----------------

    @property
    def connected(self) -> bool:
        return self._connected

    def connect(self) -> "RemoteClient":
        sock = socket.create_connection((self.host, self.port), timeout=self.timeout)
        sock.settimeout(None)
        self._sock = sock
        self._reader = sock.makefile("rb")
        self._writer = sock.makefile("wb")
        self._responses = queue.Queue()
        self._stale_replies = 0
        self._connected = True
        self._listener = threading.Thread(target=self._listen, args=(self._reader, self._responses),
                                          name="smart-tv-client", daemon=True)
        self._listener.start()
        logger.info("Connected to Smart TV server at %s:%s", self.host, self.port)
        return self

    def close(self) -> None:
        self._connected = False
        sock, self._sock = self._sock, None
        if sock is None:
            return
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        for f in (self._writer, self._reader):
            try:
                f.close()
            except OSError:
                pass
        sock.close()
        if self._listener is not None and self._listener is not threading.current_thread():
            self._listener.join(timeout=2.0)
        logger.info("Disconnected from %s:%s", self.host, self.port)

    def __enter__(self) -> "RemoteClient":
        if not self._connected:
            self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ---------------- Commands ----------------

    def send(self, command: str) -> str:
        """
        Send one command line and wait for its response.

        Raises ValueError for multi-line commands, ConnectionError when the
        connection is gone and TimeoutError when no response arrives in time.
        """
        if "\n" in command or "\r" in command:
            raise ValueError("command must be a single line")
        with self._send_lock:
            if not self._connected or self._writer is None:
                raise ConnectionError("not connected to Smart TV server")
            try:
                self._writer.write((command + "\n").encode("utf-8"))
                self._writer.flush()
            except OSError as e:
                self._connected = False
                raise ConnectionError(f"send failed: {e}") from e
            deadline = time.monotonic() + self.timeout
            while True:
                try:
                    reply = self._responses.get(timeout=max(deadline - time.monotonic(), 0))
                except queue.Empty:
                    self._stale_replies += 1
                    raise TimeoutError(f"no response to {command!r} within {self.timeout}s") from None
                if reply is _CLOSED:
                    raise ConnectionError("connection closed by server")
                if self._stale_replies:
                    self._stale_replies -= 1
                    logger.debug("Discarding late response %r", reply)
                    continue
                return reply

    def wait_for_notification(self, predicate: Callable[[str], bool], timeout: Optional[float] = None) -> Optional[str]:
        """Block until a buffered notification matches predicate; returns it or None."""
        timeout = self.timeout if timeout is None else timeout
        with self._notify_cond:
            found: List[str] = []

            def _match() -> bool:
                for n in self.notifications:
                    if predicate(n):
                        found.append(n)
                        return True
                return False

            if self._notify_cond.wait_for(_match, timeout=timeout):
                return found[0]
        return None

    def drain_notifications(self) -> List[str]:
        with self._notify_cond:
            items = list(self.notifications)
            self.notifications.clear()
        return items

    # ---------------- Listener ----------------

    def _listen(self, reader, responses: "queue.Queue") -> None:
        # Bound to one connection; a reconnect gets its own reader and queue.
        try:
            while True:
                raw = reader.readline()
                if not raw:
                    break
                line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
                if is_notification(line):
                    self._deliver_notification(line)
                else:
                    responses.put(line)
        except (OSError, ValueError) as e:
            if self._connected and responses is self._responses:
                logger.warning("Connection to %s:%s lost: %s", self.host, self.port, e)
        finally:
            if responses is self._responses:
                self._connected = False
            responses.put(_CLOSED)

    def _deliver_notification(self, line: str) -> None:
        with self._notify_cond:
            self.notifications.append(line)
            self._notify_cond.notify_all()
        if self.on_notify is not None:
            try:
                self.on_notify(line)
            except Exception:
                logger.exception("Notification callback failed for %r", line)
