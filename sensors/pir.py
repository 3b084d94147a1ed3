"""PIR (Passive Infrared) motion sensor (HC-SR501).

How it works:
  The sensor has two IR-sensitive slots. When a warm body (person, animal)
  moves across its field of view, one slot sees more IR than the other,
  creating a voltage difference that triggers the digital output HIGH.

Module features:
  - Two potentiometers: sensitivity (range) and hold-time (how long HIGH stays)
  - Jumper for single-trigger vs repeatable-trigger mode
  - Needs 5V supply but outputs 3.3V-safe HIGH signal

The watcher reports every edge on the output line, both directions.
"""

import logging
import threading
from typing import Callable, Optional

from sensors.gpio_utils import read_edges, request_edge_line

logger = logging.getLogger(__name__)


class PIRWatcher:
    """Background thread forwarding PIR edges to a callback."""

    def __init__(self, pin: int, on_edge: Callable[[bool], None]):
        self.pin = pin
        self._on_edge = on_edge
        self._request = None
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def available(self) -> bool:
        return self._request is not None

    def start(self) -> bool:
        """Claim the GPIO line and start watching. False if unavailable."""
        if self._thread and self._thread.is_alive():
            return True
        self._request = request_edge_line(self.pin)
        if self._request is None:
            logger.info("PIR: GPIO %d unavailable", self.pin)
            return False

        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, daemon=True, name=f"pir-{self.pin}"
        )
        self._thread.start()
        logger.info("PIR: watching GPIO %d", self.pin)
        return True

    def _run(self):
        while not self._stop.is_set():
            try:
                edges = read_edges(self._request, timeout=0.5)
            except OSError as exc:
                logger.error("PIR: read failed on GPIO %d: %s", self.pin, exc)
                break
            for value in edges:
                self._on_edge(value)

    def stop(self):
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=2)
        if self._request:
            self._request.release()
            self._request = None
