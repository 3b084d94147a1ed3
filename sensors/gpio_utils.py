"""GPIO utilities for the motion sensor input.

Raspberry Pi GPIO pins are accessed through the gpiod library, which talks
to the kernel's GPIO character device (/dev/gpiochipN).

Each Pi model has one or more GPIO chips:
  Pi 3B/3B+/4  ->  /dev/gpiochip0  (BCM2835/BCM2711, 54 lines)
  Pi 5         ->  /dev/gpiochip4  (RP1, 54 lines)

We auto-detect the correct chip so the code works across Pi models.
"""

import logging
from datetime import timedelta

import gpiod
from gpiod.line import Bias, Direction, Edge

logger = logging.getLogger(__name__)

CONSUMER = "homeboard-relay"

# Cached chip path - detected once at first use
_chip_path = None


def get_chip_path():
    """Find the main Broadcom GPIO chip (the one with 54 lines)."""
    global _chip_path
    if _chip_path is not None:
        return _chip_path

    # Try common paths; pick the first chip with >= 28 GPIO lines
    for path in ["/dev/gpiochip0", "/dev/gpiochip4"]:
        try:
            with gpiod.Chip(path) as chip:
                if chip.get_info().num_lines >= 28:
                    _chip_path = path
                    return path
        except (OSError, PermissionError):
            continue

    # Fallback
    _chip_path = "/dev/gpiochip0"
    return _chip_path


def request_edge_line(pin, bias=Bias.PULL_DOWN):
    """Request a single GPIO input line that reports both edges.

    Args:
        pin:  BCM GPIO number (e.g. 17)
        bias: Internal pull resistor setting

    Returns:
        gpiod.LineRequest on success, None on failure.
    """
    try:
        return gpiod.request_lines(
            get_chip_path(),
            consumer=CONSUMER,
            config={
                pin: gpiod.LineSettings(
                    direction=Direction.INPUT,
                    edge_detection=Edge.BOTH,
                    bias=bias,
                ),
            },
        )
    except OSError as exc:
        logger.warning("GPIO %s: edge request failed - %s", pin, exc)
        return None


def read_edges(request, timeout=1.0):
    """Wait up to ``timeout`` seconds and return pending edges.

    Returns a list of booleans: True for a rising edge (line went
    active), False for a falling edge.
    """
    if not request.wait_edge_events(timedelta(seconds=timeout)):
        return []
    return [
        event.event_type == gpiod.EdgeEvent.Type.RISING_EDGE
        for event in request.read_edge_events()
    ]
