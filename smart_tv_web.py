#!/usr/bin/env python3
"""
Smart TV – Flask Web Remote
---------------------------
Responsibilities:
- Renders the remote page (templates/index.html) with {{ version }}
- Exposes REST APIs consumed by the front-end JS
- Every action goes through the TV line protocol via one RemoteClient,
  so the browser is just another client of the shared TV

Notes:
- This file does NOT start the TV server; use smart_tv_main.py.
- Call configure_remote() with a connected RemoteClient before serving.
"""

import logging
import os
from datetime import datetime, timezone
from typing import Optional

from flask import Flask, jsonify, render_template, request

from smart_tv.tv_client import RemoteClient
from smart_tv.tv_version import VERSION

logger = logging.getLogger(__name__)

app = Flask(__name__)

# Track when this process started
START_TIME = datetime.now(timezone.utc).isoformat(timespec="seconds")

# RemoteClient instance will be set by smart_tv_main.py (or tests)
remote_client: Optional[RemoteClient] = None


def configure_remote(client: Optional[RemoteClient]) -> None:
    """Set the RemoteClient used by every route"""
    global remote_client
    remote_client = client


def _send(command: str):
    """Forward one command; returns (json, status)."""
    if remote_client is None or not remote_client.connected:
        return jsonify({"success": False, "error": "Smart TV server not connected"}), 503
    try:
        response = remote_client.send(command)
    except (ConnectionError, TimeoutError) as e:
        logger.warning("Command %r failed: %s", command, e)
        return jsonify({"success": False, "command": command, "error": str(e)}), 503
    return jsonify({
        "success": response.startswith("OK"),
        "command": command,
        "response": response,
    }), 200


# ---------------------------- Pages ----------------------------

@app.get("/")
def index():
    """Remote page: the template uses {{ version }} in the header."""
    return render_template("index.html", version=VERSION)


@app.get("/health")
def health():
    """Health check endpoint - shows version and connection status"""
    return jsonify({
        "service": "smart-tv-web-remote",
        "version": VERSION,
        "pid": os.getpid(),
        "started_at": START_TIME,
        "tv_connected": bool(remote_client is not None and remote_client.connected),
        "status": "healthy",
    })


# ---------------------------- TV state ----------------------------

@app.get("/api/state")
def api_state():
    """Power state plus, when on, current channel and catalog."""
    if remote_client is None or not remote_client.connected:
        return jsonify({"success": False, "error": "Smart TV server not connected"}), 503
    try:
        state = remote_client.send("GET_STATE")
        data = {"success": state.startswith("OK"), "power": state[3:] if state.startswith("OK ") else None}
        if data["power"] == "ON":
            channel = remote_client.send("GET_CHANNEL")
            channels = remote_client.send("GET_CHANNELS")
            data["channel"] = int(channel[3:]) if channel.startswith("OK ") else None
            data["channels"] = _parse_channels(channels)
        return jsonify(data)
    except (ConnectionError, TimeoutError) as e:
        logger.warning("State query failed: %s", e)
        return jsonify({"success": False, "error": str(e)}), 503


def _parse_channels(response: str):
    """'OK 5' -> ['1'..'5'], 'OK NRK1,NRK2' -> ['NRK1', 'NRK2']"""
    if not response.startswith("OK "):
        return []
    payload = response[3:]
    if payload.isdigit():
        return [str(i) for i in range(1, int(payload) + 1)]
    return [c.strip() for c in payload.split(",")]


# ---------------------------- Commands ----------------------------

@app.route("/api/command", methods=["POST"])
def api_command():
    data = request.get_json(silent=True) or {}
    command = data.get("command")
    if not isinstance(command, str) or not command.strip():
        return jsonify({"success": False, "error": "command required"}), 400
    if "\n" in command or "\r" in command:
        return jsonify({"success": False, "error": "command must be a single line"}), 400
    body, status = _send(command.strip())
    return body, status


@app.route("/api/power/<state>", methods=["POST"])
def api_power(state: str):
    state = state.lower()
    if state not in ("on", "off"):
        return jsonify({"success": False, "error": "state must be 'on' or 'off'"}), 400
    body, status = _send("TURN_ON" if state == "on" else "TURN_OFF")
    return body, status


@app.route("/api/channel/up", methods=["POST"])
def api_channel_up():
    body, status = _send("CHANNEL_UP")
    return body, status


@app.route("/api/channel/down", methods=["POST"])
def api_channel_down():
    body, status = _send("CHANNEL_DOWN")
    return body, status


@app.route("/api/channel/<int:number>", methods=["POST"])
def api_set_channel(number: int):
    body, status = _send(f"SET_CHANNEL {number}")
    return body, status


# ---------------------------- Notifications ----------------------------

@app.get("/api/notifications")
def api_notifications():
    """Recent NOTIFY lines seen by the web remote (oldest first)."""
    if remote_client is None:
        return jsonify({"success": False, "error": "Smart TV server not connected"}), 503
    items = list(remote_client.notifications)
    limit = request.args.get("limit", type=int)
    if limit:
        items = items[-limit:]
    return jsonify({"success": True, "notifications": items})
