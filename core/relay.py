"""The Homeboard relay -- one context object for the whole control plane.

HomeRelay owns everything that used to be process-wide state: the
event bus, the task runner, and one instance of every source built
from configuration. Inbound client messages go through handle(), new
client connections through on_connect().

Mutable state and its writers:
    speaker session  -- SpeakerSource, swapped under its own lock
    weather token    -- WeatherTokenCache, under its own lock
    motion counter   -- MotionGate, under its own lock (PIR thread only)
    latest payloads  -- EventBus, under its own lock
"""

import logging
from typing import Any, Dict, Optional

import sources  # noqa: F401  (registers source types)
from core import commands  # noqa: F401  (registers command handlers)
from core.data_source import Source
from core.event_bus import EventBus
from core.registry import COMMAND_REGISTRY, SOURCE_REGISTRY
from core.tasks import TaskRunner

logger = logging.getLogger(__name__)

# source id -> configuration section
SOURCE_SECTIONS = {
    "host": "commands",
    "speaker": "sonos",
    "weather": "netatmo",
    "quotes": "quotes",
    "news": "newsapi",
    "calendar": "calendar",
    "tibber": "tibber",
    "tibber2": "tibber2",
    "lights": "hue",
    "motion": "motion",
}


class HomeRelay:
    """Source registry, command dispatch and connection replay."""

    def __init__(
        self,
        config: Dict,
        bus: Optional[EventBus] = None,
        tasks: Optional[TaskRunner] = None,
        sources: Optional[Dict[str, Source]] = None,
    ):
        self.config = config
        self.bus = bus or EventBus()
        self.tasks = tasks or TaskRunner(config.get("workers", 8))
        self.sources: Dict[str, Source] = (
            sources if sources is not None else self._build_sources()
        )

    def _build_sources(self) -> Dict[str, Source]:
        built = {}
        timeout = self.config.get("http_timeout")
        for source_id, section in SOURCE_SECTIONS.items():
            cls = SOURCE_REGISTRY.get(source_id)
            if cls is None:
                logger.warning("Source type unavailable: %s", source_id)
                continue

            src_cfg = dict(self.config.get(section) or {})
            if timeout and source_id != "host":
                src_cfg.setdefault("timeout", timeout)
            extra = {"on_wake": self.wake_display} if source_id == "motion" else {}
            try:
                built[source_id] = cls(source_id, self.bus, src_cfg, **extra)
            except Exception as exc:
                logger.error("Failed to create source %s: %s", source_id, exc)
        return built

    def source(self, source_id: str, capability: Optional[str] = None) -> Optional[Source]:
        """An enabled source by id, or None.

        With ``capability`` the source must also declare it.
        """
        src = self.sources.get(source_id)
        if src is None or not src.enabled:
            return None
        if capability and not src.can(capability):
            return None
        return src

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self):
        for src in self.sources.values():
            try:
                src.start()
            except Exception as exc:
                logger.error("Failed to start source %s: %s", src.source_id, exc)
        enabled = [s.source_id for s in self.sources.values() if s.enabled]
        logger.info("Relay started with sources: %s", ", ".join(enabled) or "none")

    def close(self):
        for src in self.sources.values():
            src.close()
        self.tasks.shutdown()

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def handle(self, name: str, payload: Any = None) -> bool:
        """Dispatch one inbound client message. Never raises.

        Returns:
            False if no handler is registered for ``name``.
        """
        handler = COMMAND_REGISTRY.get(name)
        if handler is None:
            logger.warning("Unknown client message: %s", name)
            return False
        logger.debug("Client message %s %r", name, payload)
        try:
            handler(self, payload)
        except Exception as exc:
            logger.error("Handler %s failed: %s", name, exc)
        return True

    def fetch_and_publish(self, tag: str, func, *args):
        """Run func in the background and broadcast its result under tag.

        A None result broadcasts nothing.
        """
        def publish(result):
            if result is not None:
                self.bus.publish(tag, result)
        return self.tasks.submit(tag, func, *args, then=publish)

    def run_host_command(self, name: str):
        host = self.source("host")
        if host is None:
            return None
        return self.tasks.submit(name, host.run, name)

    def wake_display(self):
        """Motion gate action: nudge the pointer to end the screensaver."""
        logger.info("Motion detected, waking display")
        self.run_host_command("motion_wake")

    # ------------------------------------------------------------------
    # Connections
    # ------------------------------------------------------------------

    def on_connect(self):
        """Replay speaker state so a new client isn't left blank."""
        speaker = self.source("speaker")
        if speaker is None or not speaker.bound:
            return None
        return self.tasks.submit("replay", speaker.replay)
