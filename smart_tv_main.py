#!/usr/bin/env python3
"""
Smart TV – Server Launcher
--------------------------
Starts:
  1) The TCP command server (remote clients connect here)
  2) Optionally the Flask web remote (itself a client of the TCP server)

Key characteristics:
- One SmartTV built from the channel catalog, shared by every session
- Clean signal handling (Ctrl+C and SIGTERM)
- CLI flags with environment fallbacks

CLI:
  python smart_tv_main.py --port 1238 --channels NRK1,NRK2,TV2 --web
ENV:
  SMART_TV_HOST, SMART_TV_PORT, SMART_TV_CHANNEL_FILE, SMART_TV_WEB_PORT, SMART_TV_LOG_LEVEL
"""

import argparse
import logging
import signal
import sys
import threading
from typing import Optional

from smart_tv.tv_channels import build_tv, load_channel_catalog, parse_channel_spec
from smart_tv.tv_client import RemoteClient
from smart_tv.tv_config import CHANNEL_FILE, HOST, LOG_LEVEL, TV_TCP_PORT, WEB_HOST, WEB_PORT
from smart_tv.tv_monitor import start_connection_monitor
from smart_tv.tv_server import SmartTVServer, start_tv_server
from smart_tv.tv_version import VERSION

logger = logging.getLogger("smart_tv.main")

_SHUTDOWN = threading.Event()


def _signal_handler(signum, frame):
    """Basic signal handler: flip the flag so the main loop can exit promptly."""
    del signum, frame
    _SHUTDOWN.set()


def _parse_args(argv=None) -> argparse.Namespace:
    """Parse CLI args with environment-based defaults."""
    parser = argparse.ArgumentParser(description="Smart TV - Server Launcher")
    parser.add_argument("--host", default=HOST, help="TCP bind host (default env SMART_TV_HOST)")
    parser.add_argument("--port", type=int, default=TV_TCP_PORT, help="TCP port (default env SMART_TV_PORT)")
    parser.add_argument("--channels", default=None,
                        help="Channel count or comma-separated names (overrides --channel-file)")
    parser.add_argument("--channel-file", default=CHANNEL_FILE, help="JSON channel catalog")
    parser.add_argument("--web", action="store_true", help="Also start the Flask web remote")
    parser.add_argument("--web-host", default=WEB_HOST)
    parser.add_argument("--web-port", type=int, default=WEB_PORT)
    parser.add_argument("--monitor-interval", type=float, default=30.0, help="Connection summary interval (s)")
    parser.add_argument("--log-level", default=LOG_LEVEL, help="DEBUG, INFO, WARNING, ERROR")
    return parser.parse_args(argv)


def _start_web_remote(args: argparse.Namespace, tv_port: int) -> Optional[RemoteClient]:
    """Connect the web remote to our own TCP server and serve it in a thread."""
    import smart_tv_web

    client = RemoteClient("127.0.0.1", tv_port)
    client.connect()
    smart_tv_web.configure_remote(client)

    def run_web():
        # use_reloader=False: the reloader would fork a second TV server
        smart_tv_web.app.run(host=args.web_host, port=args.web_port, debug=False, use_reloader=False)

    threading.Thread(target=run_web, name="smart-tv-web", daemon=True).start()
    logger.info("Web remote on http://%s:%s", args.web_host, args.web_port)
    return client


def _graceful_stop(server: Optional[SmartTVServer]) -> None:
    if server is None:
        return
    try:
        server.shutdown()
    finally:
        server.server_close()


def main(argv=None) -> int:
    """Boot the services and handle lifecycle cleanly."""
    args = _parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
    )

    try:
        catalog = parse_channel_spec(args.channels) if args.channels else load_channel_catalog(args.channel_file)
    except (OSError, ValueError) as e:
        logger.error("Invalid channel catalog: %s", e)
        return 1
    tv = build_tv(catalog)

    signal.signal(signal.SIGINT, _signal_handler)
    try:
        signal.signal(signal.SIGTERM, _signal_handler)
    except (AttributeError, ValueError):
        # Windows may not support SIGTERM
        pass

    logger.info("=== Smart TV %s - %d channels ===", VERSION, catalog.count)
    try:
        server = start_tv_server(tv, host=args.host, port=args.port)
    except OSError as e:
        logger.error("Failed to start Smart TV server on %s:%s: %s", args.host, args.port, e)
        return 1

    start_connection_monitor(server.registry, interval_secs=args.monitor_interval, stop_event=_SHUTDOWN)

    web_client: Optional[RemoteClient] = None
    try:
        if args.web:
            web_client = _start_web_remote(args, server.port)
        while not _SHUTDOWN.wait(0.5):
            pass
    except KeyboardInterrupt:
        pass
    except OSError as e:
        logger.error("Failed to start web remote: %s", e)
        return 1
    finally:
        logger.info("Shutting down Smart TV...")
        _SHUTDOWN.set()
        if web_client is not None:
            web_client.close()
        _graceful_stop(server)
    return 0


if __name__ == "__main__":
    sys.exit(main())
