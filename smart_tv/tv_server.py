"""
TCP command server that remote clients connect to.

Exposes:
- SmartTVServer: thread-per-connection server owning the shared TV,
  the device lock and the session registry
- start_tv_server() -> returns the server instance
  (call .shutdown() in your main on exit)
"""

import socket
import socketserver
import threading
from typing import Optional, Tuple

from .tv_config import HOST, MAX_LINE_BYTES, NOTIFY_ORIGINATOR, READ_TIMEOUT_SECS, TV_TCP_PORT
from .tv_device import SmartTV
from .tv_protocol import ERR_TOO_LONG, CommandResult, handle_command, notification_for
from .tv_registry import SessionRegistry


class TVRequestHandler(socketserver.StreamRequestHandler):
    """Read command lines from one client, reply, and fan out NOTIFY lines."""

    server: "SmartTVServer"

    def setup(self) -> None:
        # Keep-alive helps detect dead connections
        self.request.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)
        try:
            self.request.setsockopt(socket.IPPROTO_TCP, socket.TCP_KEEPIDLE, 30)
            self.request.setsockopt(socket.IPPROTO_TCP, socket.TCP_KEEPINTVL, 5)
            self.request.setsockopt(socket.IPPROTO_TCP, socket.TCP_KEEPCNT, 3)
        except (OSError, AttributeError):
            pass
        timeout = self.server.read_timeout
        self.request.settimeout(timeout if timeout and timeout > 0 else None)
        super().setup()

    def handle(self) -> None:
        registry = self.server.registry
        peer_ip, peer_port = self.client_address[0], self.client_address[1]
        session_id = f"{peer_ip}:{peer_port}"
        session = registry.add_session(session_id, peer_ip, self.wfile)

        try:
            while True:
                try:
                    max_line = self.server.max_line
                    raw = self.rfile.readline(max_line + 1)
                    if not raw:
                        registry.log(f"Session {session_id} closed connection cleanly", session_id=session_id)
                        break
                    if len(raw) > max_line and not raw.endswith(b"\n"):
                        registry.log(f"Session {session_id} sent a line over {max_line} bytes, closing",
                                     level="warning", session_id=session_id)
                        session.send_line(CommandResult.failure(ERR_TOO_LONG).render())
                        break
                    line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
                    registry.record_command(session_id, line)
                    _, replied = self.server.execute(line, session_id)
                    if not replied:
                        break

                except socket.timeout:
                    registry.log(f"Timeout from session {session_id} - connection may be dead", level="warning",
                                 session_id=session_id)
                    break
                except (ConnectionResetError, BrokenPipeError):
                    registry.log(f"Session {session_id} connection error/reset", session_id=session_id)
                    break
                except OSError as e:
                    registry.log(f"Session {session_id} I/O error: {e}", level="error", session_id=session_id)
                    break
        finally:
            session._writer = None
            registry.remove_session(session_id, expected=session)


class SmartTVServer(socketserver.ThreadingTCPServer):
    """Thread-per-connection server around one shared SmartTV."""
    allow_reuse_address = True
    daemon_threads = True

    def __init__(
        self,
        server_address: Tuple[str, int],
        tv: SmartTV,
        registry: Optional[SessionRegistry] = None,
        notify_originator: bool = NOTIFY_ORIGINATOR,
        read_timeout: float = READ_TIMEOUT_SECS,
        max_line: int = MAX_LINE_BYTES,
        handler_cls=TVRequestHandler,
    ):
        self.tv = tv
        self.tv_lock = threading.Lock()
        self.registry = registry if registry is not None else SessionRegistry()
        self.notify_originator = notify_originator
        self.read_timeout = read_timeout
        self.max_line = max_line
        super().__init__(server_address, handler_cls)
        self.registry.log(f"TCP server configured on {self.server_address}")

    @property
    def port(self) -> int:
        return self.server_address[1]

    def execute(self, line: str, session_id: Optional[str] = None) -> Tuple[str, bool]:
        """
        Run one request for `session_id` under the device lock.

        Interpret, reply to the originator, then broadcast any resulting
        NOTIFY line, all as one critical section so device effects and
        notifications are totally ordered. Without a session id nothing is
        written back, only broadcast.

        Returns (response, replied); replied is False when the originator
        could not be written to.
        """
        replied = True
        with self.tv_lock:
            response = handle_command(line, self.tv)
            self.registry.log(f"Received: {line} | Responded: {response}", level="debug", session_id=session_id)

            session = self.registry.get(session_id) if session_id is not None else None
            if session is not None:
                try:
                    session.send_line(response)
                except (OSError, ValueError) as e:
                    self.registry.log(f"Reply to session {session_id} failed: {e}", level="warning",
                                      session_id=session_id)
                    self.registry.remove_session(session_id, reason="dropped after failed reply", expected=session)
                    replied = False

            # The change already happened; peers hear about it even if the originator is gone.
            notification = notification_for(line, response)
            if notification is not None:
                exclude = None if self.notify_originator else session_id
                self.registry.broadcast(notification, exclude=exclude)
        return response, replied

    def serve_forever(self, poll_interval=0.5):
        try:
            self.registry.log("TCP server ready for remote connections")
            super().serve_forever(poll_interval=poll_interval)
        except KeyboardInterrupt:
            self.registry.log("TCP server interrupted, shutting down...")


def start_tv_server(
    tv: SmartTV,
    host: str = HOST,
    port: int = TV_TCP_PORT,
    registry: Optional[SessionRegistry] = None,
    **kwargs,
) -> SmartTVServer:
    """
    Start the threaded TV server in a background thread.

    Raises OSError if the port cannot be bound.

    Returns:
        The server instance; call .shutdown() and .server_close() on exit.
    """
    srv = SmartTVServer((host, port), tv, registry=registry, **kwargs)
    t = threading.Thread(target=srv.serve_forever, name="smart-tv-accept", daemon=True)
    t.start()
    srv.registry.log(f"Smart TV server started on {host}:{srv.port}")
    return srv
