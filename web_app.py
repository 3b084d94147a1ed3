"""Homeboard relay -- web and real-time transport.

Flask serves the built dashboard and a JSON snapshot of the latest
broadcasts. Flask-SocketIO carries the real-time channel: every client
message is handed to the relay's command table, and every broadcast on
the relay's event bus goes out to all connected clients.
"""

import logging
import os

from flask import Flask, jsonify, send_from_directory
from flask_cors import CORS
from flask_socketio import SocketIO

from core.registry import COMMAND_REGISTRY
from core.relay import HomeRelay

logger = logging.getLogger(__name__)


def create_app(relay: HomeRelay):
    """Create the Flask app and Socket.IO server bound to ``relay``.

    Returns:
        (app, socketio)
    """
    web = relay.config.get("web", {})
    origins = web.get("origins") or []
    static_dir = os.path.abspath(web.get("path") or "")
    serve_static = bool(web.get("path")) and os.path.isdir(static_dir)

    app = Flask(
        __name__,
        static_folder=static_dir if serve_static else None,
        static_url_path="",
    )
    CORS(app, resources={r"/api/*": {"origins": origins}})
    socketio = SocketIO(app, cors_allowed_origins=origins, async_mode="threading")

    # ─── Broadcast: bus -> every client ───

    def broadcast(tag, payload):
        socketio.emit(tag, payload)

    relay.bus.attach(broadcast)

    # ─── Routes: UI ───

    if serve_static:
        @app.route("/")
        def index():
            return send_from_directory(static_dir, "index.html")
        logger.info("Serving dashboard from %s", static_dir)
    else:
        logger.info("No dashboard build at %s, static serving off", static_dir)

    # ─── Routes: State snapshot ───

    @app.route("/api/state")
    def state_snapshot():
        """Return the latest payload for every broadcast tag."""
        return jsonify(relay.bus.get_latest())

    # ─── Socket.IO ───

    @socketio.on("connect")
    def on_connect(auth=None):
        logger.info("Dashboard client connected")
        relay.on_connect()

    @socketio.on("disconnect")
    def on_disconnect(*args):
        logger.info("Dashboard client disconnected")

    def bind(name):
        def on_message(data=None):
            relay.handle(name, data)
        on_message.__name__ = f"on_{name}"
        socketio.on_event(name, on_message)

    for name in sorted(COMMAND_REGISTRY):
        bind(name)
    logger.debug("Bound %d client messages", len(COMMAND_REGISTRY))

    return app, socketio
