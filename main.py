#!/usr/bin/env python3
"""Homeboard relay -- Entry point.

Starts the relay: builds every configured integration, begins speaker
discovery and motion watching, and serves the Socket.IO channel the
dashboards connect to.

Usage:
    python3 main.py                          # homeboard.yaml in the working dir
    python3 main.py --config /etc/homeboard.yaml
    python3 main.py --port 8000 --log-level DEBUG
"""

__version__ = "1.0.0"

import argparse
import logging

from config import load_config


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Homeboard relay — home dashboard integration hub",
    )
    parser.add_argument(
        "--config", default="homeboard.yaml",
        help="Path to YAML config (default: homeboard.yaml)",
    )
    parser.add_argument("--host", default=None, help="Bind address (overrides web.host)")
    parser.add_argument("--port", type=int, default=None, help="Port (overrides web.port)")
    parser.add_argument(
        "--log-level", default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set the logging verbosity (default: INFO)",
    )
    parser.add_argument(
        "--version", action="version",
        version=f"Homeboard relay {__version__}",
    )
    return parser.parse_args(argv)


def setup_logging(level_name: str) -> None:
    """Configure root logger with a consistent format."""
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s  %(levelname)-7s  %(name)s  %(message)s",
        datefmt="%H:%M:%S",
    )


def main(argv=None):
    args = parse_args(argv)
    setup_logging(args.log_level)

    logger = logging.getLogger(__name__)
    logger.info("Homeboard relay v%s starting", __version__)

    from core.relay import HomeRelay
    from web_app import create_app

    config = load_config(args.config)
    web = config.get("web", {})
    host = args.host or web.get("host", "0.0.0.0")
    port = args.port or web.get("port", 8000)

    relay = HomeRelay(config)
    app, socketio = create_app(relay)
    relay.start()

    logger.info("Server listening on %s:%d", host, port)
    try:
        socketio.run(app, host=host, port=port, allow_unsafe_werkzeug=True)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    finally:
        relay.close()
        logger.info("Shutdown complete")


if __name__ == "__main__":
    main()
