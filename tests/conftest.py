"""Shared fixtures and fakes for the relay tests."""

from concurrent.futures import Future

import pytest
import requests

from core.event_bus import EventBus
from core.tasks import TaskRunner


class ImmediateExecutor:
    """Executor stand-in that runs work inline on submit."""

    def submit(self, fn, *args, **kwargs):
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as exc:
            future.set_exception(exc)
        return future

    def shutdown(self, wait=False):
        pass


class FakeResponse:
    def __init__(self, status_code=200, json_data=None, text=""):
        self.status_code = status_code
        self._json = json_data
        self.text = text

    def json(self):
        return self._json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeSession:
    """Routes requests by URL prefix to canned responses or exceptions."""

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []

    def _reply(self, method, url, kwargs):
        self.calls.append((method, url, kwargs))
        for prefix, reply in self.routes.items():
            if url.startswith(prefix):
                if isinstance(reply, Exception):
                    raise reply
                if isinstance(reply, list):
                    reply = reply.pop(0)
                return reply
        raise requests.ConnectionError(f"no route for {url}")

    def get(self, url, **kwargs):
        return self._reply("GET", url, kwargs)

    def post(self, url, **kwargs):
        return self._reply("POST", url, kwargs)

    def put(self, url, **kwargs):
        return self._reply("PUT", url, kwargs)

    def urls(self, method=None):
        return [url for m, url, _ in self.calls if method is None or m == method]


# ─── Fake Sonos ───

class FakeSubscription:
    def __init__(self):
        self.callback = None
        self.unsubscribed = False

    def unsubscribe(self):
        self.unsubscribed = True


class FakeService:
    def __init__(self):
        self.subscriptions = []

    def subscribe(self, auto_renew=False):
        sub = FakeSubscription()
        self.subscriptions.append(sub)
        return sub


class FakeEvent:
    def __init__(self, **variables):
        self.variables = variables


class FakeSoCo:
    def __init__(self, ip_address="192.168.1.50", groups=None, player_name=""):
        self.ip_address = ip_address
        self.player_name = player_name
        self.all_groups = groups or []
        self.avTransport = FakeService()
        self.renderingControl = FakeService()
        self.track = {"title": "Heroes", "artist": "David Bowie"}
        self.state = "PLAYING"
        self.volume = 20
        self.play_mode = "NORMAL"
        self.calls = []

    def get_current_track_info(self):
        return dict(self.track)

    def get_current_transport_info(self):
        return {"current_transport_state": self.state}

    def play(self):
        self.calls.append("play")
        self.state = "PLAYING"

    def pause(self):
        self.calls.append("pause")
        self.state = "PAUSED_PLAYBACK"

    def next(self):
        self.calls.append("next")

    def set_relative_volume(self, delta):
        self.volume += delta
        return self.volume

    def clear_queue(self):
        self.calls.append("clear_queue")

    def add_uri_to_queue(self, uri):
        self.calls.append(("add_uri_to_queue", uri, self.play_mode))
        return 1

    def play_from_queue(self, index):
        self.calls.append(("play_from_queue", index))

    def play_uri(self, uri, title="", force_radio=False):
        self.calls.append(("play_uri", uri, title, force_radio))


# ─── Fixtures ───

@pytest.fixture
def emitted():
    """Every (tag, payload) the bus broadcast to clients."""
    return []


@pytest.fixture
def bus(emitted):
    return EventBus(emitter=lambda tag, payload: emitted.append((tag, payload)))


@pytest.fixture
def tasks():
    return TaskRunner(executor=ImmediateExecutor())


def tags(emitted):
    return [tag for tag, _ in emitted]
