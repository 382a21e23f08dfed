"""
Optional: periodic connection summary logging.
Safe to import; does nothing unless you call start_connection_monitor().
"""

import threading
from typing import Optional

from .tv_registry import SessionRegistry


def start_connection_monitor(
    registry: SessionRegistry,
    interval_secs: float = 30,
    stop_event: Optional[threading.Event] = None,
) -> threading.Thread:
    """Log a brief connection summary every interval until stop_event is set."""
    stop = stop_event if stop_event is not None else threading.Event()

    def run():
        while not stop.wait(interval_secs):
            snap = registry.snapshot()
            if snap["active"] or snap["pruned"]:
                registry.log(
                    f"Connection status - Active: {snap['active']}, "
                    f"Broadcasts: {snap['broadcasts']}, Pruned: {snap['pruned']}",
                    source="monitor",
                )

    t = threading.Thread(target=run, name="smart-tv-monitor", daemon=True)
    t.start()
    registry.log("Connection monitoring started", source="monitor")
    return t
