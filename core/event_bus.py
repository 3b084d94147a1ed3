"""Broadcast event bus for the Homeboard relay.

Handlers and sources publish tagged payloads via publish() from any
thread. Every publish is fanned out to all connected dashboard clients
through the attached emitter (Socket.IO in production). The latest
payload per tag is kept so the HTTP snapshot can see current state.

Delivery is fire-and-forget: no acknowledgement, no retry, no per-client
addressing.
"""

import logging
import threading
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

Emitter = Callable[[str, Any], None]


class EventBus:
    """Thread-safe fan-out hub shared by every source and handler."""

    def __init__(self, emitter: Optional[Emitter] = None):
        self._latest: Dict[str, Any] = {}
        self._lock = threading.Lock()
        self._emitter = emitter

    def attach(self, emitter: Emitter):
        """Set the function that delivers a broadcast to all clients."""
        self._emitter = emitter

    def publish(self, tag: str, payload: Any):
        """Broadcast a tagged payload. Thread-safe, never raises."""
        with self._lock:
            self._latest[tag] = payload

        if self._emitter is None:
            logger.debug("EventBus: no emitter attached, %s kept as latest only", tag)
            return
        try:
            self._emitter(tag, payload)
        except Exception as exc:
            logger.error("EventBus emit error [%s]: %s", tag, exc)

    def get_latest(self, tag: Optional[str] = None) -> Any:
        """Get latest payload for a tag, or all tags."""
        with self._lock:
            if tag:
                return self._latest.get(tag)
            return dict(self._latest)
