"""
The TV itself: power flag, current channel and an immutable channel catalog.

Pure state machine. No I/O and no locking; the server serializes every call
on the single shared instance (see SmartTVServer.tv_lock).
"""

from typing import Optional, Sequence, Tuple


class TVError(Exception):
    """Base class for errors the TV reports back to a client."""


class NotPoweredError(TVError):
    def __init__(self, message: str = "TV is OFF") -> None:
        super().__init__(message)


class InvalidChannelError(TVError):
    def __init__(self, message: str = "Invalid channel number") -> None:
        super().__init__(message)


class SmartTV:
    """
    One TV with channels numbered 1..channel_count.

    Channel names are optional; without them channels are known only by
    number. The current channel survives power-off/power-on cycles.
    """

    def __init__(self, channel_count: Optional[int] = None, channel_names: Optional[Sequence[str]] = None) -> None:
        if channel_names is not None:
            names = tuple(str(n) for n in channel_names)
            if not names:
                raise ValueError("Must have at least 1 channel")
            if channel_count is not None and channel_count != len(names):
                raise ValueError(f"channel_count={channel_count} does not match {len(names)} channel names")
            channel_count = len(names)
        else:
            names = None
            if channel_count is None or channel_count < 1:
                raise ValueError("Must have at least 1 channel")

        self._channel_names: Optional[Tuple[str, ...]] = names
        self._channel_count: int = int(channel_count)
        self._powered: bool = False
        self._current_channel: int = 1

    def __repr__(self) -> str:
        return (
            f"SmartTV(powered={self._powered}, channel={self._current_channel}, "
            f"channels={self._channel_count})"
        )

    # ---------------- Power ----------------

    def turn_on(self) -> None:
        self._powered = True

    def turn_off(self) -> None:
        self._powered = False

    def is_on(self) -> bool:
        return self._powered

    def _require_power(self) -> None:
        if not self._powered:
            raise NotPoweredError()

    # ---------------- Catalog ----------------

    @property
    def has_channel_names(self) -> bool:
        return self._channel_names is not None

    def get_channel_count(self) -> int:
        self._require_power()
        return self._channel_count

    def get_channel_names(self) -> Tuple[str, ...]:
        """
        Return the catalog as a tuple.

        Unnamed catalogs are reported as their 1-based numbers ("1", "2", ...).
        """
        self._require_power()
        if self._channel_names is None:
            return tuple(str(i) for i in range(1, self._channel_count + 1))
        return self._channel_names

    # ---------------- Channel ----------------

    def get_current_channel(self) -> int:
        self._require_power()
        return self._current_channel

    def set_channel(self, channel: int) -> None:
        self._require_power()
        if channel < 1 or channel > self._channel_count:
            raise InvalidChannelError()
        self._current_channel = channel

    def channel_up(self) -> int:
        """Move one channel up; stays on the last channel (no wraparound)."""
        self._require_power()
        if self._current_channel < self._channel_count:
            self._current_channel += 1
        return self._current_channel

    def channel_down(self) -> int:
        """Move one channel down; stays on channel 1 (no wraparound)."""
        self._require_power()
        if self._current_channel > 1:
            self._current_channel -= 1
        return self._current_channel
