"""Netatmo weather station source and forecast token cache.

Two pieces live here:

WeatherTokenCache
    The dashboard's forecast widget talks to Netatmo's public weather
    map, which needs a bearer token. There is no API for it; the token
    is scraped out of the weather map page text and held for the rest
    of the run.

WeatherSource
    Reads the household's own station through the Netatmo API and
    reduces each station record to an ``indoor`` / ``outdoor`` pair of
    dashboard blocks.

Config example (in homeboard.yaml):
    netatmo:
      client_id: "..."
      client_secret: "..."
      refresh_token: "..."      # or username + password
      options:
        device_id: "70:ee:50:..."
      forecast:
        device_id: "70:ee:50:..."
"""

import logging
import threading
from typing import Any, Callable, Dict, List, Optional

import requests

from core.data_source import RelayError, Source
from core.registry import register_source

logger = logging.getLogger(__name__)

WEATHER_MAP_URL = "https://weathermap.netatmo.com/"
TOKEN_URL = "https://api.netatmo.com/oauth2/token"
STATIONS_URL = "https://api.netatmo.com/api/getstationsdata"

TOKEN_MARKER = 'accessToken":'
TOKEN_SCOPE = "read_station"


def scrape_token(body: str) -> Optional[str]:
    """Pull the token out of raw page text.

    Finds the marker, then the next quote after it and the quote after
    that, and returns whatever sits between them. No JSON parsing.
    """
    place = body.find(TOKEN_MARKER)
    if place < 0:
        return None
    start = body.find('"', place + len(TOKEN_MARKER)) + 1
    end = body.find('"', start + 1)
    return body[start:end]


class WeatherTokenCache:
    """Holds the scraped forecast bearer for the lifetime of the process."""

    def __init__(self, url: str = WEATHER_MAP_URL, session=None, timeout: float = 15.0):
        self.url = url
        self.token: Optional[str] = None
        self._session = session or requests.Session()
        self._timeout = timeout
        self._lock = threading.Lock()

    def ensure_token(self, callback: Callable[[], None]) -> bool:
        """Make sure a token is cached, then call back.

        The callback also runs when the page has no token in it. It does
        not run when the page can't be fetched at all.

        Returns:
            True if the callback ran.
        """
        with self._lock:
            cached = self.token
        if cached:
            callback()
            return True

        try:
            resp = self._session.get(self.url, timeout=self._timeout)
            resp.raise_for_status()
        except requests.RequestException as exc:
            logger.warning("Weather token fetch failed: %s", exc)
            return False

        token = scrape_token(resp.text)
        if token is None:
            logger.warning("Could not find weather token in page")
        else:
            with self._lock:
                self.token = token
            logger.info("Got weather token")
        callback()
        return True

    def invalidate(self):
        with self._lock:
            self.token = None


def parse_station_data(
    device: Dict[str, Any],
    indoor_name: str = "Indoor",
    outdoor_name: str = "Outdoor",
) -> Optional[Dict[str, Any]]:
    """Reduce one station record to its indoor/outdoor dashboard blocks.

    Returns None when the record has no timestamped dashboard data.
    """
    dashboard = device.get("dashboard_data")
    if not isinstance(dashboard, dict) or "time_utc" not in dashboard:
        logger.warning("Invalid weather data for %s", device.get("_id", "?"))
        logger.debug("Weather record: %s", device)
        return None

    result = {}
    if device.get("module_name") == indoor_name:
        result["indoor"] = dashboard
    for module in device.get("modules", []):
        if module.get("module_name") == outdoor_name and module.get("dashboard_data"):
            result["outdoor"] = module["dashboard_data"]
    return result


@register_source("weather")
class WeatherSource(Source):
    """Reads station data from the Netatmo API."""

    REQUIRED = ("client_id", "client_secret")

    def __init__(self, source_id: str, bus, config: Dict, session=None):
        super().__init__(source_id, bus, config)
        self.options = self.config.get("options", {})
        self.indoor_name = self.config.get("indoor_module", "Indoor")
        self.outdoor_name = self.config.get("outdoor_module", "Outdoor")
        self._session = session or requests.Session()
        self._access_token: Optional[str] = None
        self._refresh_token = self.config.get("refresh_token")
        forecast = self.config.get("forecast", {})
        self.forecast_device = forecast.get("device_id")
        self.tokens = WeatherTokenCache(
            forecast.get("url", WEATHER_MAP_URL),
            session=self._session,
            timeout=self.timeout,
        )

    def _authenticate(self) -> str:
        data = {
            "client_id": self.config["client_id"],
            "client_secret": self.config["client_secret"],
        }
        if self._refresh_token:
            data.update(grant_type="refresh_token", refresh_token=self._refresh_token)
        elif self.config.get("username") and self.config.get("password"):
            data.update(
                grant_type="password",
                username=self.config["username"],
                password=self.config["password"],
                scope=TOKEN_SCOPE,
            )
        else:
            raise RelayError("netatmo needs a refresh_token or username/password")

        resp = self._session.post(TOKEN_URL, data=data, timeout=self.timeout)
        resp.raise_for_status()
        body = resp.json()
        self._access_token = body["access_token"]
        self._refresh_token = body.get("refresh_token", self._refresh_token)
        return self._access_token

    def get_stations_data(self) -> List[Dict[str, Any]]:
        """Fetch the raw station list."""
        if not self.enabled:
            return []
        token = self._access_token or self._authenticate()
        resp = self._session.get(
            STATIONS_URL,
            params=self.options,
            headers={"Authorization": f"Bearer {token}"},
            timeout=self.timeout,
        )
        if resp.status_code in (401, 403):
            # Access tokens expire after a few hours
            token = self._authenticate()
            resp = self._session.get(
                STATIONS_URL,
                params=self.options,
                headers={"Authorization": f"Bearer {token}"},
                timeout=self.timeout,
            )
        resp.raise_for_status()
        return resp.json().get("body", {}).get("devices", [])

    def fetch(self) -> List[Dict[str, Any]]:
        """One parsed block per valid station; invalid records are skipped."""
        parsed = []
        for device in self.get_stations_data():
            data = parse_station_data(device, self.indoor_name, self.outdoor_name)
            if data is not None:
                parsed.append(data)
        return parsed
