"""Source abstraction for the Homeboard relay.

A Source wraps one external integration (a vendor API, a device on the
LAN, the host OS). The relay doesn't care how a source talks to the
outside world -- handlers ask it for data or tell it to act, and the
results are published to the EventBus under a tag.

A source whose required credentials are missing is constructed anyway
but reports ``enabled == False``; handlers skip it silently.
"""

import logging
from abc import ABC
from typing import Any, Dict, Optional, Tuple

from core.event_bus import EventBus

logger = logging.getLogger(__name__)

# Capability flags
PUSH = "push"          # emits events on its own (device subscriptions, GPIO edges)
REQUEST = "request"    # answers request/response fetches
COMMAND = "command"    # accepts fire-and-forget commands

DEFAULT_TIMEOUT = 15.0  # seconds, outbound HTTP


class RelayError(Exception):
    """Base error for failures raised inside sources."""


class InvalidCommandValue(RelayError):
    """A client-supplied value was rejected before reaching a source."""


class Source(ABC):
    """Base class for all integrations.

    Subclasses set:
        REQUIRED   -- config keys that must be non-empty for the source to be enabled
        CAPABILITIES -- tuple of PUSH / REQUEST / COMMAND
    """

    REQUIRED: Tuple[str, ...] = ()
    CAPABILITIES: Tuple[str, ...] = (REQUEST,)

    def __init__(self, source_id: str, bus: EventBus, config: Optional[Dict] = None):
        self.source_id = source_id
        self.bus = bus
        self.config = config or {}
        self.timeout = self.config.get("timeout", DEFAULT_TIMEOUT)
        missing = [key for key in self.REQUIRED if not self.config.get(key)]
        self._enabled = not missing
        if missing:
            logger.info(
                "Source %s disabled (missing %s)", source_id, ", ".join(missing)
            )

    @property
    def enabled(self) -> bool:
        return self._enabled

    def can(self, capability: str) -> bool:
        return self.enabled and capability in self.CAPABILITIES

    def start(self):
        """Begin background work. Push-capable sources override this."""

    def close(self):
        """Release resources. Override if needed."""

    def publish(self, tag: str, payload: Any):
        self.bus.publish(tag, payload)

    def __repr__(self) -> str:
        status = "enabled" if self._enabled else "disabled"
        return f"<{self.__class__.__name__} {self.source_id} {status}>"
