"""Tests for the Sonos session manager."""

import pytest

from soco.groups import ZoneGroup

from conftest import FakeEvent, FakeSoCo, tags
from core.relay import HomeRelay
from sources import speaker_source
from sources.speaker_source import SHUFFLE, STATE, TRACK, VOLUME, SpeakerSource


class FakeShareLink:
    def __init__(self, device):
        self.device = device

    def is_share_link(self, uri):
        return uri.startswith("https://open.spotify.com/")

    def add_share_link_to_queue(self, uri):
        self.device.calls.append(("add_share_link_to_queue", uri, self.device.play_mode))
        return 1


@pytest.fixture(autouse=True)
def fake_share_link(monkeypatch):
    monkeypatch.setattr(speaker_source, "ShareLinkPlugin", FakeShareLink)


@pytest.fixture
def devices():
    """ip -> FakeSoCo, used by the connect hook."""
    return {}


def make_speaker(bus, devices, groups=None, prefix="Living"):
    entry = FakeSoCo(ip_address="192.168.1.10", groups=groups)

    def connect(host):
        return devices.setdefault(host, FakeSoCo(ip_address=host))

    return SpeakerSource(
        "speaker", bus, {"group": prefix},
        discover=lambda: entry,
        connect=connect,
    )


def bound_speaker(bus, devices):
    src = make_speaker(bus, devices)
    src.bind("192.168.1.50", "Living Room")
    return src, devices["192.168.1.50"]


# ─── Binding ───

def zone(uid, coordinator, *others):
    return ZoneGroup(uid, coordinator, members=[coordinator, *others])


def test_discover_binds_first_matching_group(bus, devices):
    groups = [
        zone("g1", FakeSoCo("192.168.1.40", player_name="Kitchen")),
        zone("g2", FakeSoCo("192.168.1.50", player_name="Living Room"),
             FakeSoCo("192.168.1.51", player_name="Bath")),
        zone("g3", FakeSoCo("192.168.1.60", player_name="Living Room Sub")),
    ]
    src = make_speaker(bus, devices, groups=groups)

    session = src.discover()
    assert session.host == "192.168.1.50"
    assert session.group == "Living Room"
    assert src.bound


def test_group_matched_by_coordinator_name_not_label(bus, devices):
    stue = FakeSoCo("192.168.1.70", player_name="Stue")
    group = zone("g1", stue, FakeSoCo("192.168.1.71", player_name="Bad"))
    assert group.label == "Bad, Stue"

    src = make_speaker(bus, devices, groups=[group], prefix="Stue")
    session = src.discover()
    assert session is not None
    assert session.host == "192.168.1.70"
    assert session.group == "Stue"


def test_member_name_does_not_match(bus, devices):
    group = zone("g1", FakeSoCo("192.168.1.70", player_name="Stue"),
                 FakeSoCo("192.168.1.71", player_name="Bad"))
    src = make_speaker(bus, devices, groups=[group], prefix="Bad")
    assert src.discover() is None


def test_empty_group_prefix_disables_speaker(bus, devices):
    src = make_speaker(bus, devices, prefix="")
    assert not src.enabled
    src.start()
    assert not src.bound


def test_discover_without_match_stays_unbound(bus, devices):
    src = make_speaker(bus, devices,
                       groups=[zone("g1", FakeSoCo("192.168.1.40", player_name="Kitchen"))])
    assert src.discover() is None
    assert not src.bound


def test_discover_without_device_stays_unbound(bus):
    src = SpeakerSource("speaker", bus, {"group": "Living"}, discover=lambda: None)
    assert src.discover() is None
    assert not src.bound


def test_rebind_unsubscribes_previous_session(bus, devices):
    src, _ = bound_speaker(bus, devices)
    old = src.session
    src.bind("192.168.1.60", "Living Room")

    assert src.session.host == "192.168.1.60"
    assert all(sub.unsubscribed for sub in old.subscriptions)
    assert not any(sub.unsubscribed for sub in src.session.subscriptions)


# ─── Unbound ───

def test_commands_while_unbound_do_nothing(bus, emitted, devices):
    src = make_speaker(bus, devices)
    assert src.toggle_playback() is None
    assert src.next() is None
    assert src.adjust_volume(1) is None
    assert src.play_uri("x-file-cifs://nas/music.mp3") is None
    assert src.replay() == 0
    assert emitted == []


def test_speaker_messages_while_unbound_broadcast_nothing(bus, tasks, emitted, devices):
    src = make_speaker(bus, devices)
    relay = HomeRelay({}, bus=bus, tasks=tasks, sources={"speaker": src})

    for name in ("playpause", "playnext", "playshuffle", "volumeup",
                 "volumedown", "gettrack", "playURI", "playRadio"):
        assert relay.handle(name, None) is True
    relay.on_connect()
    assert emitted == []


# ─── Events ───

def test_transport_event_publishes_track_and_state(bus, emitted, devices):
    src, device = bound_speaker(bus, devices)
    transport = src.session.subscriptions[0]

    transport.callback(FakeEvent(current_track_uri="x-sonos-spotify:1",
                                 transport_state="PAUSED_PLAYBACK"))
    assert emitted == [
        (TRACK, device.track),
        (STATE, "PAUSED_PLAYBACK"),
    ]


def test_rendering_event_publishes_master_volume(bus, emitted, devices):
    src, _ = bound_speaker(bus, devices)
    rendering = src.session.subscriptions[1]

    rendering.callback(FakeEvent(volume={"Master": "31", "LF": "100"}))
    rendering.callback(FakeEvent(mute={"Master": "0"}))
    assert emitted == [(VOLUME, 31)]
    assert src.session.volume == 31


# ─── Commands ───

def test_toggle_playback(bus, devices):
    src, device = bound_speaker(bus, devices)
    src.toggle_playback()
    src.toggle_playback()
    assert device.calls == ["pause", "play"]


def test_adjust_volume(bus, devices):
    src, device = bound_speaker(bus, devices)
    assert src.adjust_volume(-2) == 18
    assert device.volume == 18


def test_set_shuffle(bus, devices):
    src, device = bound_speaker(bus, devices)
    src.set_shuffle()
    assert device.play_mode == SHUFFLE


def test_play_uri_replaces_queue_in_shuffle(bus, devices):
    src, device = bound_speaker(bus, devices)
    src.play_uri("x-file-cifs://nas/music/album")

    assert device.calls == [
        "clear_queue",
        ("add_uri_to_queue", "x-file-cifs://nas/music/album", SHUFFLE),
        ("play_from_queue", 0),
    ]


def test_play_uri_share_link(bus, devices):
    src, device = bound_speaker(bus, devices)
    link = "https://open.spotify.com/playlist/37i9dQZF1DXcBWIGoYBM5M"
    src.play_uri(link)
    assert ("add_share_link_to_queue", link, SHUFFLE) in device.calls


def test_play_radio(bus, devices):
    src, device = bound_speaker(bus, devices)
    src.play_radio(["s24861", "NRK P1"])

    (call,) = device.calls
    assert call[0] == "play_uri"
    assert call[1].startswith("x-sonosapi-stream:s24861?")
    assert call[2:] == ("NRK P1", True)


def test_play_radio_malformed_station_is_ignored(bus, devices):
    src, device = bound_speaker(bus, devices)
    assert src.play_radio("s24861") is None
    assert device.calls == []


# ─── Connection replay ───

def test_connect_replays_track_state_and_volume(bus, tasks, emitted, devices):
    src, device = bound_speaker(bus, devices)
    relay = HomeRelay({}, bus=bus, tasks=tasks, sources={"speaker": src})

    relay.on_connect()
    assert sorted(tags(emitted)) == sorted([TRACK, STATE, VOLUME])
    assert dict(emitted) == {TRACK: device.track, STATE: "PLAYING", VOLUME: 20}


def test_replay_continues_past_a_failed_fetch(bus, emitted, devices):
    src, device = bound_speaker(bus, devices)

    def broken():
        raise OSError("connection reset")

    device.get_current_transport_info = broken
    assert src.replay() == 2
    assert tags(emitted) == [TRACK, VOLUME]


def test_volume_messages_use_configured_step(bus, tasks, devices):
    src, device = bound_speaker(bus, devices)
    relay = HomeRelay({"sonos": {"volume_step": 3}}, bus=bus, tasks=tasks,
                      sources={"speaker": src})

    relay.handle("volumeup")
    assert device.volume == 23
    relay.handle("volumedown")
    relay.handle("volumedown")
    assert device.volume == 17


def test_gettrack_broadcasts_track(bus, tasks, emitted, devices):
    src, device = bound_speaker(bus, devices)
    relay = HomeRelay({}, bus=bus, tasks=tasks, sources={"speaker": src})

    relay.handle("gettrack")
    assert emitted == [(TRACK, device.track)]
