"""
Command interpreter for the line protocol.

Exposes:
- interpret(line, tv) -> CommandResult
- handle_command(line, tv) -> response line (never raises)
- notification_for(line, response) -> NOTIFY line or None
- is_notification(line)

Request:  KEYWORD[ <param>]      (keyword case-insensitive)
Response: OK <payload> | ERROR: <reason>
Push:     NOTIFY STATE <ON|OFF> | NOTIFY CHANNEL <n>
"""

import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from .tv_device import SmartTV, TVError

# Commands
TURN_ON = "TURN_ON"
TURN_OFF = "TURN_OFF"
GET_STATE = "GET_STATE"
GET_CHANNEL = "GET_CHANNEL"
GET_CHANNELS = "GET_CHANNELS"
SET_CHANNEL = "SET_CHANNEL"
CHANNEL_UP = "CHANNEL_UP"
CHANNEL_DOWN = "CHANNEL_DOWN"

COMMANDS = (TURN_ON, TURN_OFF, GET_STATE, GET_CHANNEL, GET_CHANNELS, SET_CHANNEL, CHANNEL_UP, CHANNEL_DOWN)

# Fixed error texts
ERR_EMPTY = "Empty command"
ERR_UNKNOWN = "Unknown Command"
ERR_MISSING_CHANNEL = "Missing channel number"
ERR_FORMAT = "Invalid command format"
ERR_TOO_LONG = "Command too long"

NOTIFY_PREFIX = "NOTIFY"

# Optionally signed ASCII digits; int() alone would also take "1_0" or "٣".
_INT_RE = re.compile(r"^[+-]?[0-9]+$")


class CommandFormatError(ValueError):
    """A request parameter is missing or malformed."""


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one request: either a success payload or an error reason."""
    ok: bool
    payload: str = ""
    error: str = ""

    @classmethod
    def success(cls, payload: str) -> "CommandResult":
        return cls(ok=True, payload=payload)

    @classmethod
    def failure(cls, error: str) -> "CommandResult":
        return cls(ok=False, error=error)

    def render(self) -> str:
        if self.ok:
            return f"OK {self.payload}"
        return f"ERROR: {self.error}"


def _on_off(flag: bool) -> str:
    return "ON" if flag else "OFF"


def _parse_channel(params: List[str]) -> int:
    if not params:
        raise CommandFormatError(ERR_MISSING_CHANNEL)
    raw = params[0]
    if not _INT_RE.match(raw):
        raise CommandFormatError(ERR_FORMAT)
    return int(raw)


# ----- handlers: (tv, params) -> payload -----

def _turn_on(tv: SmartTV, params: List[str]) -> str:
    tv.turn_on()
    return "ON"


def _turn_off(tv: SmartTV, params: List[str]) -> str:
    tv.turn_off()
    return "OFF"


def _get_state(tv: SmartTV, params: List[str]) -> str:
    return _on_off(tv.is_on())


def _get_channel(tv: SmartTV, params: List[str]) -> str:
    return str(tv.get_current_channel())


def _get_channels(tv: SmartTV, params: List[str]) -> str:
    count = tv.get_channel_count()
    if tv.has_channel_names:
        return ",".join(tv.get_channel_names())
    return str(count)


def _set_channel(tv: SmartTV, params: List[str]) -> str:
    channel = _parse_channel(params)
    tv.set_channel(channel)
    return str(channel)


def _channel_up(tv: SmartTV, params: List[str]) -> str:
    return str(tv.channel_up())


def _channel_down(tv: SmartTV, params: List[str]) -> str:
    return str(tv.channel_down())


_HANDLERS: Dict[str, Callable[[SmartTV, List[str]], str]] = {
    TURN_ON: _turn_on,
    TURN_OFF: _turn_off,
    GET_STATE: _get_state,
    GET_CHANNEL: _get_channel,
    GET_CHANNELS: _get_channels,
    SET_CHANNEL: _set_channel,
    CHANNEL_UP: _channel_up,
    CHANNEL_DOWN: _channel_down,
}


def interpret(line: Optional[str], tv: SmartTV) -> CommandResult:
    """Run exactly one TV operation for one request line."""
    if line is None or not line.strip():
        return CommandResult.failure(ERR_EMPTY)

    parts = line.strip().split(" ")
    keyword = parts[0].upper()
    handler = _HANDLERS.get(keyword)
    if handler is None:
        return CommandResult.failure(ERR_UNKNOWN)

    try:
        return CommandResult.success(handler(tv, parts[1:]))
    except CommandFormatError as e:
        return CommandResult.failure(str(e))
    except TVError as e:
        return CommandResult.failure(str(e))
    except Exception:
        return CommandResult.failure(ERR_FORMAT)


def handle_command(line: Optional[str], tv: SmartTV) -> str:
    """Translate one request line into one response line."""
    return interpret(line, tv).render()


def notification_for(line: Optional[str], response: str) -> Optional[str]:
    """
    Return the NOTIFY line a request/response pair fans out, if any.

    Only successful (OK) mutations notify; queries never do.
    """
    if line is None or not response.startswith("OK"):
        return None
    cmd = line.strip().upper()
    if cmd.startswith(TURN_ON):
        return f"{NOTIFY_PREFIX} STATE ON"
    if cmd.startswith(TURN_OFF):
        return f"{NOTIFY_PREFIX} STATE OFF"
    if cmd.startswith((SET_CHANNEL, CHANNEL_UP, CHANNEL_DOWN)):
        tokens = response.split()
        if len(tokens) < 2:
            return None
        return f"{NOTIFY_PREFIX} CHANNEL {tokens[1]}"
    return None


def is_notification(line: str) -> bool:
    return line.startswith(NOTIFY_PREFIX)
