"""Homeboard relay - Configuration

Defaults for every integration live in DEFAULT_CONFIG. A YAML file
(homeboard.yaml by default) is merged on top at startup; after that the
configuration is read-only.

An integration is switched on by filling in its credentials. Leave a
key empty and the matching source stays disabled: the dashboard simply
never gets that data.

Pin numbers use BCM (Broadcom) numbering scheme.
  BCM 17 = Physical Pin 11  (PIR output)
"""

import copy
import logging
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------
DEFAULT_CONFIG: Dict[str, Any] = {
    "web": {
        "host": "0.0.0.0",
        "port": 8000,
        "path": "../homeboard/dist",    # built dashboard, served if present
        "origins": [
            "http://homeboard.local:8080",
            "http://localhost:8080",
        ],
    },
    "http_timeout": 15,     # seconds, every outbound HTTP call
    "workers": 8,           # background task threads

    # === SPEAKER ===
    "sonos": {
        "group": "",        # first group whose coordinator room name starts with this
        "volume_step": 1,
    },

    # === WEATHER ===
    "netatmo": {
        "client_id": "",
        "client_secret": "",
        "refresh_token": "",
        "username": "",
        "password": "",
        "options": {},      # getstationsdata params, e.g. device_id
        "indoor_module": "Indoor",
        "outdoor_module": "Outdoor",
        "forecast": {
            "device_id": "",    # set to scrape a forecast bearer for the dashboard
        },
    },

    # === DATA ===
    "quotes": {},
    "newsapi": {
        "key": "",
        "headlines": {"country": "no", "pageSize": 20},
        "exclude": [],
    },
    "calendar": {
        "shared": {"url": "", "type": "VEVENT", "days": 14},
        "holiday": {"url": "", "type": "VEVENT", "days": 60},
    },

    # === ENERGY ===
    "tibber": {"token": ""},
    "tibber2": {
        "token": "",
        "homeId": "",
        "thermostat": "",
        "inverter": "",
        "production": "",
        "min_temperature": 5,
        "max_temperature": 30,
    },

    # === LIGHTS ===
    "hue": {
        "bridge": "",
        "username": "",
        "group": "Kitchen",
        "scenes": {},
    },

    # === HOST ===
    "commands": {
        "restart": "sudo systemctl restart homeboard",
        "reboot": "sudo reboot",
        "sleep": "export DISPLAY=:0; sleep 1; xset -display :0.0 s activate; /usr/bin/tvservice -p",
        "wakeup": (
            "export DISPLAY=:0; xset -display :0.0 s off; "
            "xset -display :0.0 dpms force on; xset -display :0.0 -dpms"
        ),
        "motion_wake": "export DISPLAY=:0 && xdotool mousemove 1 2",
    },
    "motion": {
        "pin": 17,          # BCM 17 = Physical Pin 11
        "threshold": 10,
    },
}

# Never sent to dashboards
SECRET_KEYS = {
    "client_secret", "password", "refresh_token", "token", "key", "username",
}


def deep_merge(base: Dict, override: Dict) -> Dict:
    """Return a copy of base with override merged in, recursing into dicts."""
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def load_config(path: Optional[str] = "homeboard.yaml") -> Dict[str, Any]:
    """Load the YAML config file and merge it over the defaults."""
    if not path:
        return copy.deepcopy(DEFAULT_CONFIG)
    try:
        with open(path) as f:
            user = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning("Config file not found: %s (using defaults)", path)
        return copy.deepcopy(DEFAULT_CONFIG)

    if not isinstance(user, dict):
        logger.warning("Config file %s is not a mapping, ignoring it", path)
        return copy.deepcopy(DEFAULT_CONFIG)
    return deep_merge(DEFAULT_CONFIG, user)


def _strip_secrets(value):
    if isinstance(value, dict):
        return {
            k: _strip_secrets(v) for k, v in value.items() if k not in SECRET_KEYS
        }
    if isinstance(value, list):
        return [_strip_secrets(v) for v in value]
    return value


def public_config(config: Dict[str, Any], forecast_bearer: Optional[str] = None) -> Dict[str, Any]:
    """The configuration as dashboards see it: no credentials, no host commands."""
    public = _strip_secrets(config)
    public.pop("commands", None)
    if forecast_bearer:
        public.setdefault("netatmo", {}).setdefault("forecast", {})["bearer"] = forecast_bearer
    return public
