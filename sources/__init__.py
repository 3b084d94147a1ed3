"""Source implementations for the Homeboard relay.

Importing this package registers all built-in source types.
The motion source depends on the gpiod GPIO library, which is only
available on the Pi. It is imported with fallback so the relay still
runs on machines without GPIO.
"""

import logging

logger = logging.getLogger(__name__)

from sources.host_source import HostSource
from sources.speaker_source import SpeakerSource
from sources.weather_source import WeatherSource
from sources.quotes_source import QuotesSource
from sources.news_source import NewsSource
from sources.calendar_source import CalendarSource
from sources.tibber_source import TibberHomeSource, TibberSource
from sources.lights_source import LightsSource

_all = [
    "HostSource", "SpeakerSource", "WeatherSource", "QuotesSource",
    "NewsSource", "CalendarSource", "TibberSource", "TibberHomeSource",
    "LightsSource",
]

# Motion source depends on GPIO hardware libraries (gpiod)
# which are only available on the Pi. Import with fallback.
try:
    from sources.motion_source import MotionSource
    _all.append("MotionSource")
except ImportError as exc:
    logger.warning("MotionSource unavailable: %s", exc)

__all__ = _all
