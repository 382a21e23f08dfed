#!/usr/bin/env python3
"""
Smart TV – Interactive Console Remote
-------------------------------------
Line-oriented client for the Smart TV server.

CLI:
  python smart_tv_console.py localhost 1238
"""

import argparse
import sys
from typing import Callable, Optional, TextIO

from smart_tv.tv_client import RemoteClient
from smart_tv.tv_config import CLIENT_TIMEOUT_SECS, TV_TCP_PORT

HELP_TEXT = """Available commands:
  HELP              - Show this help message
  TURN_ON           - Turn the TV on
  TURN_OFF          - Turn the TV off
  GET_STATE         - Get TV power state
  GET_CHANNEL       - Get current channel
  GET_CHANNELS      - Get channel names (or number of channels)
  SET_CHANNEL <n>   - Set channel to <n>
  CHANNEL_UP        - Go to next channel
  CHANNEL_DOWN      - Go to previous channel
  EXIT              - Disconnect from server
"""


class ConsoleSession:
    """One console conversation over a connected RemoteClient."""

    def __init__(self, client: RemoteClient, out: TextIO = sys.stdout) -> None:
        self.client = client
        self.out = out

    def handle_line(self, line: str) -> bool:
        """Process one typed line. Returns False when the user asked to quit."""
        command = line.strip()
        if command.upper() == "EXIT":
            return False
        if command.upper() == "HELP":
            self.out.write(HELP_TEXT + "\n")
            return True
        try:
            response = self.client.send(command)
        except (ConnectionError, TimeoutError) as e:
            self.out.write(f"[ERROR] {e}\n")
            return self.client.connected
        self.out.write(f"Server: {response}\n")
        return True

    def run(self, read_line: Callable[[], Optional[str]]) -> None:
        """Loop until EXIT, end of input or a lost connection."""
        while True:
            line = read_line()
            if line is None:
                break
            if not self.handle_line(line):
                break


def _parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Smart TV - Console Remote")
    parser.add_argument("host", nargs="?", default="localhost", help="Server host (default localhost)")
    parser.add_argument("port", nargs="?", type=int, default=TV_TCP_PORT, help=f"Server port (default {TV_TCP_PORT})")
    parser.add_argument("--timeout", type=float, default=CLIENT_TIMEOUT_SECS, help="Response timeout in seconds")
    return parser.parse_args(argv)


def _prompt() -> Optional[str]:
    try:
        return input("> ")
    except EOFError:
        return None


def main(argv=None) -> int:
    args = _parse_args(argv)
    client = RemoteClient(
        args.host,
        args.port,
        timeout=args.timeout,
        on_notify=lambda line: print(f"\nNotify: {line}"),
    )
    try:
        client.connect()
    except OSError as e:
        print(f"Cannot connect to {args.host}:{args.port}: {e}")
        return 1

    print("Connected to Smart TV Server. Enter commands (type EXIT to quit and HELP for instructions):")
    try:
        ConsoleSession(client).run(_prompt)
    except KeyboardInterrupt:
        pass
    finally:
        client.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
