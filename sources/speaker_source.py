"""Sonos speaker source -- discovery, group binding and playback control.

The speaker is the one integration with real setup before use: the
relay discovers any Sonos player on the LAN, asks it for the zone
topology, and binds a session to the first group whose coordinator
room name starts with the configured prefix. Group labels join every
member name, so they are not matched. From then on the session's event
subscriptions push track, play state and volume changes to every
dashboard.

Discovery is a single pass on a background thread. If nothing turns up
the session stays unbound and every command is a logged no-op.

Config example (in homeboard.yaml):
    sonos:
      group: "Living"
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import soco
from soco.discovery import any_soco
from soco.exceptions import SoCoException
from soco.plugins.sharelink import ShareLinkPlugin

from core.data_source import COMMAND, PUSH, REQUEST, Source
from core.registry import register_source

logger = logging.getLogger(__name__)

TRACK = "SONOS_TRACK"
STATE = "SONOS_STATE"
VOLUME = "SONOS_VOLUME"

SHUFFLE = "SHUFFLE"
TUNEIN_URI = "x-sonosapi-stream:{station}?sid=254&flags=8224&sn=0"


@dataclass
class DeviceSession:
    """The bound control session to one speaker group."""

    host: str
    group: str
    device: Any
    track: Optional[Dict[str, Any]] = None
    state: Optional[str] = None
    volume: Optional[int] = None
    subscriptions: List[Any] = field(default_factory=list)


@register_source("speaker")
class SpeakerSource(Source):
    """Owns the speaker session for the lifetime of the process."""

    REQUIRED = ("group",)
    CAPABILITIES = (PUSH, REQUEST, COMMAND)

    def __init__(
        self,
        source_id: str,
        bus,
        config: Dict,
        discover: Optional[Callable[[], Any]] = None,
        connect: Optional[Callable[[str], Any]] = None,
    ):
        super().__init__(source_id, bus, config)
        self.group_prefix = self.config.get("group", "")
        self._discover = discover or (lambda: any_soco(allow_network_scan=True))
        self._connect = connect or soco.SoCo
        self._session: Optional[DeviceSession] = None
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    @property
    def session(self) -> Optional[DeviceSession]:
        with self._lock:
            return self._session

    @property
    def bound(self) -> bool:
        return self.session is not None

    def start(self):
        """Run discovery once in the background."""
        if not self.enabled or (self._thread and self._thread.is_alive()):
            return
        self._thread = threading.Thread(
            target=self.discover, daemon=True, name=f"src-{self.source_id}"
        )
        self._thread.start()

    def discover(self) -> Optional[DeviceSession]:
        """Find a player, resolve the topology and bind the matching group."""
        try:
            device = self._discover()
        except (SoCoException, OSError) as exc:
            logger.warning("Sonos discovery failed: %s", exc)
            return None
        if device is None:
            logger.warning("No Sonos device found")
            return None

        try:
            # Coordinator room names, not group labels
            coordinators = [
                (group.coordinator.player_name or "", group.coordinator.ip_address)
                for group in device.all_groups
            ]
        except (SoCoException, OSError) as exc:
            logger.warning("Error loading topology: %s", exc)
            return None

        for name, host in coordinators:
            if name.startswith(self.group_prefix):
                return self.bind(host, name)

        logger.warning("No Sonos group matching %r", self.group_prefix)
        return None

    def bind(self, host: str, group: str) -> DeviceSession:
        """Bind a new session, replacing any previous one atomically."""
        session = DeviceSession(host=host, group=group, device=self._connect(host))
        self._subscribe(session)
        with self._lock:
            old, self._session = self._session, session
        if old is not None:
            self._unsubscribe(old)
        logger.info("Sonos bound to %s (%s)", group, host)
        return session

    def _subscribe(self, session: DeviceSession):
        device = session.device
        try:
            transport = device.avTransport.subscribe(auto_renew=True)
            transport.callback = lambda event: self._on_transport_event(session, event)
            rendering = device.renderingControl.subscribe(auto_renew=True)
            rendering.callback = lambda event: self._on_rendering_event(session, event)
            session.subscriptions = [transport, rendering]
        except (SoCoException, OSError) as exc:
            logger.warning("Sonos event subscription failed: %s", exc)

    def _unsubscribe(self, session: DeviceSession):
        for sub in session.subscriptions:
            try:
                sub.unsubscribe()
            except (SoCoException, OSError) as exc:
                logger.debug("Sonos unsubscribe failed: %s", exc)

    # ------------------------------------------------------------------
    # Push events
    # ------------------------------------------------------------------

    def _on_transport_event(self, session: DeviceSession, event):
        variables = getattr(event, "variables", {}) or {}
        if "current_track_meta_data" in variables or "current_track_uri" in variables:
            try:
                session.track = session.device.get_current_track_info()
                self.publish(TRACK, session.track)
            except (SoCoException, OSError) as exc:
                logger.warning("Sonos track refresh failed: %s", exc)
        if "transport_state" in variables:
            session.state = variables["transport_state"]
            self.publish(STATE, session.state)

    def _on_rendering_event(self, session: DeviceSession, event):
        variables = getattr(event, "variables", {}) or {}
        volume = variables.get("volume")
        if isinstance(volume, dict):
            volume = volume.get("Master")
        if volume is None:
            return
        try:
            session.volume = int(volume)
        except (TypeError, ValueError):
            logger.debug("Ignoring volume event %r", volume)
            return
        self.publish(VOLUME, session.volume)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def _call(self, action: str, func: Callable[[DeviceSession], Any]) -> Any:
        """Run func against a snapshot of the bound session."""
        session = self.session
        if session is None:
            logger.info("Sonos not ready, ignoring %s", action)
            return None
        try:
            return func(session)
        except (SoCoException, OSError, KeyError, ValueError) as exc:
            logger.warning("Sonos %s failed: %s", action, exc)
            return None

    def current_track(self) -> Optional[Dict[str, Any]]:
        def fetch(session):
            session.track = session.device.get_current_track_info()
            return session.track
        return self._call("current track", fetch)

    def play_state(self) -> Optional[str]:
        def fetch(session):
            info = session.device.get_current_transport_info()
            session.state = info.get("current_transport_state")
            return session.state
        return self._call("play state", fetch)

    def volume(self) -> Optional[int]:
        def fetch(session):
            session.volume = session.device.volume
            return session.volume
        return self._call("volume", fetch)

    def toggle_playback(self):
        def toggle(session):
            state = session.device.get_current_transport_info().get("current_transport_state")
            if state == "PLAYING":
                session.device.pause()
            else:
                session.device.play()
            logger.info("Sonos toggled playback (was %s)", state)
            return state
        return self._call("toggle playback", toggle)

    def next(self):
        return self._call("next", lambda session: session.device.next())

    def set_play_mode(self, mode: str):
        def apply(session):
            session.device.play_mode = mode
            logger.info("Sonos play mode set to %s", mode)
            return mode
        return self._call("set play mode", apply)

    def set_shuffle(self):
        return self.set_play_mode(SHUFFLE)

    def adjust_volume(self, delta: int) -> Optional[int]:
        def adjust(session):
            session.volume = session.device.set_relative_volume(int(delta))
            return session.volume
        return self._call("adjust volume", adjust)

    def play_uri(self, uri: str):
        """Replace the queue with ``uri`` and play it shuffled."""
        if not isinstance(uri, str) or not uri:
            logger.warning("Ignoring empty Sonos URI")
            return None

        def play(session):
            device = session.device
            device.clear_queue()
            device.play_mode = SHUFFLE
            share = ShareLinkPlugin(device)
            if share.is_share_link(uri):
                share.add_share_link_to_queue(uri)
            else:
                device.add_uri_to_queue(uri)
            device.play_from_queue(0)
            logger.info("Sonos playing %s", uri)
        return self._call("play uri", play)

    def play_radio(self, station):
        """Play a TuneIn station given as ``[station_id, title]``."""
        if not isinstance(station, (list, tuple)) or len(station) < 2:
            logger.warning("Ignoring malformed radio station %r", station)
            return None
        station_id, title = station[0], station[1]

        def play(session):
            uri = TUNEIN_URI.format(station=station_id)
            session.device.play_uri(uri, title=str(title), force_radio=True)
            logger.info("Sonos playing radio %s", title)
        return self._call("play radio", play)

    def replay(self) -> int:
        """Publish current track, state and volume for a new client.

        Each fetch stands alone; one failing does not stop the others.
        Returns the number of broadcasts made.
        """
        if not self.bound:
            return 0
        sent = 0
        for tag, fetch in ((TRACK, self.current_track),
                           (STATE, self.play_state),
                           (VOLUME, self.volume)):
            value = fetch()
            if value is not None:
                self.publish(tag, value)
                sent += 1
        return sent

    def close(self):
        session = self.session
        if session is not None:
            self._unsubscribe(session)
