"""Motion source -- wakes the display when someone walks past.

Wraps the PIR watcher and feeds every edge into a MotionGate. When the
gate fires, the configured ``motion_wake`` host command runs (by
default a one-pixel pointer nudge, which ends the screensaver).

Config example (in homeboard.yaml):
    motion:
      pin: 17          # BCM 17 = Physical Pin 11
      threshold: 10
"""

import logging
from typing import Callable, Dict, Optional

from core.data_source import PUSH, Source
from core.motion_gate import DEFAULT_THRESHOLD, MotionGate
from core.registry import register_source
from sensors.pir import PIRWatcher

logger = logging.getLogger(__name__)


@register_source("motion")
class MotionSource(Source):
    """GPIO motion input gated into display wake triggers."""

    REQUIRED = ("pin",)
    CAPABILITIES = (PUSH,)

    def __init__(self, source_id: str, bus, config: Dict,
                 on_wake: Optional[Callable[[], None]] = None):
        super().__init__(source_id, bus, config)
        self.gate = MotionGate(
            on_wake or (lambda: None),
            threshold=self.config.get("threshold", DEFAULT_THRESHOLD),
        )
        self._watcher: Optional[PIRWatcher] = None

    def start(self):
        if not self.enabled or self._watcher is not None:
            return
        self._watcher = PIRWatcher(int(self.config["pin"]), self.gate.update)
        if not self._watcher.start():
            self._watcher = None
            self._enabled = False

    def close(self):
        if self._watcher:
            self._watcher.stop()
            self._watcher = None
