"""Tibber energy source -- prices, home telemetry, EV state, thermostat.

Talks GraphQL over plain HTTPS POST. Every query is a fixed document;
configured identifiers and client-supplied values travel only as
GraphQL variables, never spliced into the query text.

Two accounts are supported because Tibber splits its data:
    tibber   -- public API (price info)
    tibber2  -- app API (thermostat, inverter, production, EVs)

Config example (in homeboard.yaml):
    tibber:
      token: "..."
    tibber2:
      token: "..."
      url: "https://app.tibber.com/v4/gql"
      homeId: "..."
      thermostat: "..."
      inverter: "..."
      production: "..."
      min_temperature: 5
      max_temperature: 30
"""

import logging
import math
from typing import Any, Dict, Optional

import requests

from core.data_source import COMMAND, REQUEST, InvalidCommandValue, RelayError, Source
from core.registry import register_source

logger = logging.getLogger(__name__)

PUBLIC_URL = "https://api.tibber.com/v1-beta/gql"
APP_URL = "https://app.tibber.com/v4/gql"

PRICE_QUERY = """
query {
  viewer {
    homes {
      currentSubscription {
        id validFrom validTo status
        priceInfo { current { total energy tax startsAt currency level } }
      }
    }
  }
}
"""

HOME_QUERY = """
query Home($homeId: String!, $inverter: String!, $production: String!) {
  me {
    home(id: $homeId) {
      thermostats {
        state { comfortTemperature }
        temperatureSensor { measurement { value } }
      }
      inverter(id: $inverter) { bubble { value percent } }
      inverterProduction(id: $production) {
        keyFigures { valueText unitText description }
      }
    }
  }
}
"""

VEHICLE_QUERY = """
query Vehicles($homeId: String!) {
  me {
    home(id: $homeId) {
      electricVehicles { battery { percent } isAlive imgUrl batteryText }
    }
  }
}
"""

THERMOSTAT_MUTATION = """
mutation SetThermostat($homeId: String!, $thermostat: String!, $temperature: Float!) {
  me {
    home(id: $homeId) {
      thermostat(id: $thermostat) { setState(comfortTemperature: $temperature) }
    }
  }
}
"""


def validate_temperature(value: Any, low: float, high: float) -> float:
    """Coerce a client-supplied temperature to a bounded float."""
    if isinstance(value, bool):
        raise InvalidCommandValue(f"temperature must be a number, got {value!r}")
    try:
        temp = float(value)
    except (TypeError, ValueError):
        raise InvalidCommandValue(f"temperature must be a number, got {value!r}")
    if not math.isfinite(temp):
        raise InvalidCommandValue(f"temperature must be finite, got {value!r}")
    if not low <= temp <= high:
        raise InvalidCommandValue(f"temperature {temp} outside {low}..{high}")
    return round(temp, 1)


class TibberClient:
    """Minimal GraphQL-over-HTTP client."""

    def __init__(self, url: str, token: str, session=None, timeout: float = 15.0):
        self.url = url
        self._token = token
        self._session = session or requests.Session()
        self._timeout = timeout

    def query(self, document: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        resp = self._session.post(
            self.url,
            json={"query": document, "variables": variables or {}},
            headers={"Authorization": f"Bearer {self._token}"},
            timeout=self._timeout,
        )
        resp.raise_for_status()
        body = resp.json()
        if body.get("errors"):
            raise RelayError(f"GraphQL errors: {body['errors']}")
        return body.get("data") or {}


@register_source("tibber")
class TibberSource(Source):
    """Price information from the public Tibber API."""

    REQUIRED = ("token",)

    def __init__(self, source_id: str, bus, config: Dict, session=None):
        super().__init__(source_id, bus, config)
        self.client = TibberClient(
            self.config.get("url", PUBLIC_URL),
            self.config.get("token", ""),
            session=session,
            timeout=self.timeout,
        )

    def fetch_prices(self) -> Optional[Dict[str, Any]]:
        """The first home's subscription and current price."""
        if not self.enabled:
            return None
        homes = (self.client.query(PRICE_QUERY).get("viewer") or {}).get("homes")
        if not homes:
            logger.info("Tibber %s: no homes on account", self.source_id)
            return None
        return homes[0]


@register_source("tibber2")
class TibberHomeSource(Source):
    """Home telemetry and thermostat control from the Tibber app API."""

    REQUIRED = ("token", "homeId")
    CAPABILITIES = (REQUEST, COMMAND)

    def __init__(self, source_id: str, bus, config: Dict, session=None):
        super().__init__(source_id, bus, config)
        self.home_id = self.config.get("homeId", "")
        self.min_temperature = self.config.get("min_temperature", 5)
        self.max_temperature = self.config.get("max_temperature", 30)
        self.client = TibberClient(
            self.config.get("url", APP_URL),
            self.config.get("token", ""),
            session=session,
            timeout=self.timeout,
        )

    def _home(self, document: str, **variables) -> Optional[Dict[str, Any]]:
        data = self.client.query(document, {"homeId": self.home_id, **variables})
        me = data.get("me")
        if not me:
            return None
        return me.get("home")

    def fetch_home(self) -> Optional[Dict[str, Any]]:
        if not self.enabled:
            return None
        return self._home(
            HOME_QUERY,
            inverter=self.config.get("inverter", ""),
            production=self.config.get("production", ""),
        )

    def fetch_vehicles(self) -> Optional[Dict[str, Any]]:
        if not self.enabled:
            return None
        return self._home(VEHICLE_QUERY)

    def set_comfort_temperature(self, value: Any) -> Optional[Dict[str, Any]]:
        """Set the thermostat comfort temperature.

        Raises:
            InvalidCommandValue: before any request, if ``value`` is not
                a finite number within the configured bounds.
        """
        if not self.enabled or not self.config.get("thermostat"):
            return None
        temp = validate_temperature(value, self.min_temperature, self.max_temperature)
        logger.info("Set thermostat to %.1f", temp)
        return self.client.query(
            THERMOSTAT_MUTATION,
            {
                "homeId": self.home_id,
                "thermostat": self.config["thermostat"],
                "temperature": temp,
            },
        )
