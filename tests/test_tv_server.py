import random
import socket
import struct
import threading
from collections import Counter

import pytest

from smart_tv.tv_client import RemoteClient
from smart_tv.tv_device import SmartTV
from smart_tv.tv_protocol import handle_command
from smart_tv.tv_server import start_tv_server
from tests.conftest import LineClient, wait_for


def test_direct_response_then_own_notification(server, line_clients):
    (a,) = line_clients(1)
    assert a.request("TURN_ON") == "OK ON"
    assert a.read_line() == "NOTIFY STATE ON"


def test_turn_on_is_broadcast_to_every_client(server, line_clients):
    a, b = line_clients(2)
    assert a.request("TURN_ON") == "OK ON"
    assert a.read_line() == "NOTIFY STATE ON"
    assert b.read_line() == "NOTIFY STATE ON"


def test_channel_up_from_two_of_five(server, line_clients):
    a, b, c = line_clients(3)
    assert a.request("TURN_ON") == "OK ON"
    assert a.read_line() == "NOTIFY STATE ON"
    assert a.request("SET_CHANNEL 2") == "OK 2"
    assert a.read_line() == "NOTIFY CHANNEL 2"
    for client in (b, c):
        assert client.read_line() == "NOTIFY STATE ON"
        assert client.read_line() == "NOTIFY CHANNEL 2"

    assert a.request("CHANNEL_UP") == "OK 3"
    for client in (a, b, c):
        assert client.read_line() == "NOTIFY CHANNEL 3"


def test_read_only_and_failed_commands_never_notify(server, remote_clients):
    a, b = remote_clients(2)
    assert a.send("GET_STATE") == "OK OFF"
    assert a.send("GET_CHANNEL") == "ERROR: TV is OFF"
    assert a.send("SET_CHANNEL abc") == "ERROR: Invalid command format"
    assert a.send("BOGUS") == "ERROR: Unknown Command"
    assert a.send("TURN_ON") == "OK ON"
    assert a.send("GET_CHANNELS") == "OK 5"
    assert a.send("GET_CHANNEL") == "OK 1"
    assert a.send("SET_CHANNEL 9") == "ERROR: Invalid channel number"
    # TURN_ON is the only mutation; it must be the first and only NOTIFY.
    assert b.wait_for_notification(lambda n: n == "NOTIFY STATE ON")
    assert b.drain_notifications() == ["NOTIFY STATE ON"]
    assert a.drain_notifications() == ["NOTIFY STATE ON"]


def test_errors_keep_connection_open(server, line_clients):
    (a,) = line_clients(1)
    assert a.request("") == "ERROR: Empty command"
    assert a.request("CHANNEL_UP") == "ERROR: TV is OFF"
    assert a.request("GET_STATE") == "OK OFF"


def test_crlf_and_invalid_utf8_are_tolerated(server, line_clients):
    (a,) = line_clients(1)
    a.sock.sendall(b"GET_STATE\r\n")
    assert a.read_line() == "OK OFF"
    a.sock.sendall(b"\xff\xfe\n")
    assert a.read_line() == "ERROR: Unknown Command"


def _reset(client):
    # SO_LINGER 0 turns close() into a TCP RST
    client.sock.setsockopt(socket.SOL_SOCKET, socket.SO_LINGER, struct.pack("ii", 1, 0))
    client.close()


def test_dead_client_is_pruned_and_others_still_notified(server, line_clients):
    a, b, c = line_clients(3)
    _reset(c)

    assert a.request("TURN_ON") == "OK ON"
    assert a.read_line() == "NOTIFY STATE ON"
    assert b.read_line() == "NOTIFY STATE ON"
    assert wait_for(lambda: server.registry.active_count() == 2)

    assert a.request("CHANNEL_UP") == "OK 2"
    assert a.read_line() == "NOTIFY CHANNEL 2"
    assert b.read_line() == "NOTIFY CHANNEL 2"


def test_disconnect_deregisters_session(server, line_clients):
    a, b = line_clients(2)
    b.close()
    assert wait_for(lambda: server.registry.active_count() == 1)
    assert a.request("GET_STATE") == "OK OFF"


def test_notify_originator_can_be_disabled():
    srv = start_tv_server(SmartTV(5), host="127.0.0.1", port=0, notify_originator=False)
    a, b = LineClient(srv.port), LineClient(srv.port)
    try:
        assert wait_for(lambda: srv.registry.active_count() == 2)
        assert a.request("TURN_ON") == "OK ON"
        assert b.read_line() == "NOTIFY STATE ON"
        assert a.request("GET_STATE") == "OK ON"
    finally:
        a.close()
        b.close()
        srv.shutdown()
        srv.server_close()


def test_execute_without_network_serializes_and_broadcasts(server):
    response, replied = server.execute("TURN_ON")
    assert (response, replied) == ("OK ON", True)
    assert server.execute("SET_CHANNEL 4")[0] == "OK 4"
    assert server.tv.get_current_channel() == 4
    assert server.registry.snapshot()["broadcasts"] == 2


def test_bind_failure_is_raised(server):
    with pytest.raises(OSError):
        start_tv_server(SmartTV(5), host="127.0.0.1", port=server.port)


class BrokenWriter:
    def write(self, data):
        raise BrokenPipeError("peer went away")

    def flush(self):
        pass


def test_failed_reply_drops_originator_but_peers_are_notified(server, line_clients):
    (peer,) = line_clients(1)
    server.registry.add_session("10.0.0.9:4000", "10.0.0.9", BrokenWriter())
    response, replied = server.execute("TURN_ON", "10.0.0.9:4000")
    assert (response, replied) == ("OK ON", False)
    assert server.registry.get("10.0.0.9:4000") is None
    assert server.tv.is_on()
    assert peer.read_line() == "NOTIFY STATE ON"


def test_overlong_line_is_rejected_and_session_closed():
    srv = start_tv_server(SmartTV(5), host="127.0.0.1", port=0, max_line=16)
    a = LineClient(srv.port)
    try:
        assert wait_for(lambda: srv.registry.active_count() == 1)
        assert a.request("GET_STATE") == "OK OFF"
        a.sock.sendall(b"A" * 17)
        assert a.read_line() == "ERROR: Command too long"
        assert a.read_line() is None
        assert wait_for(lambda: srv.registry.active_count() == 0)
    finally:
        a.close()
        srv.shutdown()
        srv.server_close()


class RecordingTV(SmartTV):
    """Records each channel mutation in the order the server applied it."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.history = []

    def set_channel(self, channel):
        super().set_channel(channel)
        self.history.append((f"SET_CHANNEL {channel}", f"OK {channel}"))

    def channel_up(self):
        result = super().channel_up()
        self.history.append(("CHANNEL_UP", f"OK {result}"))
        return result

    def channel_down(self):
        result = super().channel_down()
        self.history.append(("CHANNEL_DOWN", f"OK {result}"))
        return result


def test_concurrent_mutations_are_serializable():
    clients_n, per_client, channels = 6, 40, 5
    tv = RecordingTV(channels)
    tv.turn_on()
    srv = start_tv_server(tv, host="127.0.0.1", port=0)
    clients = [RemoteClient("127.0.0.1", srv.port, timeout=5.0, notify_max=1000).connect()
               for _ in range(clients_n)]
    results = [[] for _ in range(clients_n)]
    errors = []

    def worker(idx):
        rnd = random.Random(idx)
        try:
            for _ in range(per_client):
                cmd = rnd.choice(["CHANNEL_UP", "CHANNEL_DOWN", f"SET_CHANNEL {rnd.randint(1, channels)}"])
                results[idx].append((cmd, clients[idx].send(cmd)))
        except Exception as e:  # pragma: no cover - failure path
            errors.append(e)

    try:
        assert wait_for(lambda: srv.registry.active_count() == clients_n)
        threads = [threading.Thread(target=worker, args=(i,)) for i in range(clients_n)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)
        assert errors == []

        issued = [pair for r in results for pair in r]
        assert len(issued) == clients_n * per_client
        for _, response in issued:
            assert response.startswith("OK ")
            assert 1 <= int(response.split()[1]) <= channels

        # Responses are exactly those of the serial order the server applied.
        assert Counter(issued) == Counter(tv.history)
        replay = SmartTV(channels)
        replay.turn_on()
        for cmd, response in tv.history:
            assert handle_command(cmd, replay) == response
        assert replay.get_current_channel() == tv.get_current_channel()

        # Every client saw every notification, in the same order.
        total = len(tv.history)
        for c in clients:
            assert wait_for(lambda: len(c.notifications) == total, timeout=5.0)
        expected = [f"NOTIFY CHANNEL {resp.split()[1]}" for _, resp in tv.history]
        for c in clients:
            assert list(c.notifications) == expected
    finally:
        for c in clients:
            c.close()
        srv.shutdown()
        srv.server_close()
