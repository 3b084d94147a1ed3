"""Philips Hue light scenes.

Applies a named scene (a group action) to one room group on a Hue
bridge through its local REST API.

Config example (in homeboard.yaml):
    hue:
      bridge: "192.168.1.20"
      username: "..."
      group: "Kitchen"
      scenes:
        tv: {on: true, bri: 60, sat: 120}
        off: {on: false}
"""

import logging
from typing import Any, Dict, Optional

import requests

from core.data_source import COMMAND, RelayError, Source
from core.registry import register_source

logger = logging.getLogger(__name__)

# Brightness and saturation are 1-254 on the bridge
DEFAULT_SCENES = {
    "tv": {"on": True, "bri": 60, "sat": 140},
    "dinner": {"on": True, "bri": 178, "sat": 203},
    "evening": {"on": True, "bri": 110, "sat": 180},
    "off": {"on": False},
}


@register_source("lights")
class LightsSource(Source):
    """Sets group state on a Hue bridge."""

    REQUIRED = ("bridge", "username")
    CAPABILITIES = (COMMAND,)

    def __init__(self, source_id: str, bus, config: Dict, session=None):
        super().__init__(source_id, bus, config)
        self.group = self.config.get("group", "Kitchen")
        self.scenes = {**DEFAULT_SCENES, **self.config.get("scenes", {})}
        self._session = session or requests.Session()
        self._group_id: Optional[str] = None

    @property
    def base_url(self) -> str:
        return f"http://{self.config['bridge']}/api/{self.config['username']}"

    def _resolve_group(self) -> str:
        if self._group_id:
            return self._group_id
        resp = self._session.get(f"{self.base_url}/groups", timeout=self.timeout)
        resp.raise_for_status()
        for group_id, group in resp.json().items():
            if group.get("name") == self.group:
                self._group_id = group_id
                return group_id
        raise RelayError(f"Hue group {self.group!r} not found")

    def set_scene(self, mode: str) -> Optional[Any]:
        if not self.enabled:
            return None
        action = self.scenes.get(mode)
        if action is None:
            logger.warning("Unknown light scene: %s", mode)
            return None

        group_id = self._resolve_group()
        resp = self._session.put(
            f"{self.base_url}/groups/{group_id}/action",
            json=action,
            timeout=self.timeout,
        )
        resp.raise_for_status()
        logger.info("Lights %s set to %s", self.group, mode)
        return resp.json()
