"""Accumulate-and-threshold gate for a noisy motion sensor.

The PIR output chatters. Instead of reacting to every edge, each edge
nudges a signed counter: +1 when the line goes active, -1 when it goes
inactive. Once the counter's magnitude exceeds the threshold the gate
fires a single wake action and starts counting again from zero.

This is not a time-windowed debounce: transitions never
reset the counter, only crossing the threshold does.
"""

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 10


class MotionGate:
    """Signed accumulator that turns sensor edges into wake triggers."""

    def __init__(self, on_wake: Callable[[], None], threshold: int = DEFAULT_THRESHOLD):
        self._on_wake = on_wake
        self.threshold = threshold
        self.counter = 0
        # Last raw edge; nothing reads it yet
        self.last_value: Optional[bool] = None
        self._lock = threading.Lock()

    def update(self, value: bool) -> bool:
        """Feed one edge. Returns True if this edge fired a wake."""
        with self._lock:
            self.counter += 1 if value else -1
            self.last_value = bool(value)
            if abs(self.counter) <= self.threshold:
                return False
            logger.debug("Motion counter %d crossed %d", self.counter, self.threshold)
            self.counter = 0

        try:
            self._on_wake()
        except Exception as exc:
            logger.error("Motion wake action failed: %s", exc)
        return True
