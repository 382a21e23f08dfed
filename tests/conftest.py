import socket
import time

import pytest

from smart_tv.tv_client import RemoteClient
from smart_tv.tv_device import SmartTV
from smart_tv.tv_server import start_tv_server

CHANNELS = ["Channel1", "Channel2", "Channel3", "Channel4", "Channel5"]


def wait_for(predicate, timeout=3.0, interval=0.01):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


class LineClient:
    """Raw socket client: sees responses and NOTIFY lines in arrival order."""

    def __init__(self, port, timeout=3.0):
        self.sock = socket.create_connection(("127.0.0.1", port), timeout=timeout)
        self.reader = self.sock.makefile("rb")

    def send(self, line):
        self.sock.sendall((line + "\n").encode("utf-8"))

    def read_line(self):
        raw = self.reader.readline()
        return raw.decode("utf-8").rstrip("\r\n") if raw else None

    def request(self, line):
        self.send(line)
        return self.read_line()

    def close(self):
        try:
            self.reader.close()
        finally:
            self.sock.close()


@pytest.fixture
def tv():
    return SmartTV(len(CHANNELS))


@pytest.fixture
def named_tv():
    return SmartTV(channel_names=CHANNELS)


@pytest.fixture
def server():
    srv = start_tv_server(SmartTV(5), host="127.0.0.1", port=0)
    yield srv
    srv.shutdown()
    srv.server_close()


@pytest.fixture
def line_clients(server):
    """Factory for raw clients; waits until the server has registered them."""
    opened = []

    def _open(count=1):
        new = [LineClient(server.port) for _ in range(count)]
        opened.extend(new)
        expected = len(opened)
        assert wait_for(lambda: server.registry.active_count() >= expected)
        return new

    yield _open
    for c in opened:
        c.close()


@pytest.fixture
def remote_clients(server):
    opened = []

    def _open(count=1, **kwargs):
        kwargs.setdefault("timeout", 3.0)
        new = [RemoteClient("127.0.0.1", server.port, **kwargs).connect() for _ in range(count)]
        opened.extend(new)
        expected = len(opened)
        assert wait_for(lambda: server.registry.active_count() >= expected)
        return new

    yield _open
    for c in opened:
        c.close()
