"""
Central configuration and tunables.

If you need to change ports, timeouts, or file paths, do it here.
Prefer environment overrides where sensible.
"""

import os

# Network
HOST: str = os.getenv("SMART_TV_HOST", "0.0.0.0")
TV_TCP_PORT: int = int(os.getenv("SMART_TV_PORT", "1238"))

# Timeouts (0 disables the per-session read timeout)
READ_TIMEOUT_SECS: float = float(os.getenv("SMART_TV_READ_TIMEOUT", "0"))
CLIENT_TIMEOUT_SECS: float = float(os.getenv("SMART_TV_CLIENT_TIMEOUT", "5.0"))

# Longest accepted command line in bytes; a longer one ends the session
MAX_LINE_BYTES: int = int(os.getenv("SMART_TV_MAX_LINE", "65536"))

# Broadcast: whether the client that issued a command also gets its own NOTIFY
NOTIFY_ORIGINATOR: bool = bool(int(os.getenv("SMART_TV_NOTIFY_ORIGINATOR", "1")))

# Logs
LOG_MAX: int = int(os.getenv("SMART_TV_LOG_MAX", "1000"))
LOG_LEVEL: str = os.getenv("SMART_TV_LOG_LEVEL", "INFO")

# Channels
CHANNEL_FILE: str = os.getenv("SMART_TV_CHANNEL_FILE", "channels.json")
DEFAULT_CHANNEL_COUNT: int = int(os.getenv("SMART_TV_CHANNEL_COUNT", "5"))

# Web remote
WEB_HOST: str = os.getenv("SMART_TV_WEB_HOST", "0.0.0.0")
WEB_PORT: int = int(os.getenv("SMART_TV_WEB_PORT", "5000"))
