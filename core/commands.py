"""Client command handlers.

Each handler is registered under the Socket.IO message name the
dashboard sends. A handler receives the relay and the message payload,
checks that the source it needs is configured (and, for the speaker,
bound), hands the outbound call to the task runner and publishes the
result under its broadcast tag.

Missing integrations are normal: a handler whose source is disabled
returns without logging an error and without broadcasting.
"""

import logging

from config import public_config
from core.data_source import InvalidCommandValue
from core.registry import register_command
from sources.tibber_source import validate_temperature

logger = logging.getLogger(__name__)


# ─── Data requests ───

@register_command("quotes")
def quotes(relay, symbols):
    src = relay.source("quotes")
    if src:
        relay.fetch_and_publish("QUOTES", src.fetch, symbols)


@register_command("news")
def news(relay, _payload):
    src = relay.source("news")
    if src:
        relay.fetch_and_publish("NEWS", src.fetch)


@register_command("calendar")
def calendar(relay, _payload):
    src = relay.source("calendar")
    if src:
        relay.fetch_and_publish("CALENDAR", src.fetch)


@register_command("weather")
def weather(relay, _payload):
    src = relay.source("weather")
    if not src:
        return

    def publish_each(stations):
        for station in stations:
            logger.info("Weather update")
            relay.bus.publish("WEATHER", station)

    relay.tasks.submit("WEATHER", src.fetch, then=publish_each)


@register_command("config")
def send_config(relay, _payload):
    """Broadcast the client-facing config, scraping a forecast token first if needed."""
    logger.info("Send config")
    weather_src = relay.sources.get("weather")

    def publish():
        token = weather_src.tokens.token if weather_src is not None else None
        relay.bus.publish("CONFIG", public_config(relay.config, forecast_bearer=token))

    if weather_src is not None and weather_src.forecast_device:
        relay.tasks.submit("CONFIG", weather_src.tokens.ensure_token, publish)
    else:
        publish()


# ─── Energy ───

@register_command("tibber")
def tibber_prices(relay, _payload):
    src = relay.source("tibber")
    if src:
        relay.fetch_and_publish("TIBBER", src.fetch_prices)


@register_command("tibber2")
def tibber_home(relay, _payload):
    src = relay.source("tibber2")
    if src:
        relay.fetch_and_publish("TIBBER2", src.fetch_home)


@register_command("tibber3")
def tibber_vehicles(relay, _payload):
    src = relay.source("tibber2")
    if src:
        relay.fetch_and_publish("TIBBER3", src.fetch_vehicles)


@register_command("setthermo")
def set_thermostat(relay, temperature):
    src = relay.source("tibber2")
    if not src:
        return
    logger.info("Set thermostat %r", temperature)
    try:
        value = validate_temperature(temperature, src.min_temperature, src.max_temperature)
    except InvalidCommandValue as exc:
        logger.warning("Rejected thermostat value: %s", exc)
        return
    relay.tasks.submit("setthermo", src.set_comfort_temperature, value)


# ─── Host ───

def _host_handler(name):
    def handler(relay, _payload):
        logger.info("Host command requested: %s", name)
        relay.run_host_command(name)
    handler.__name__ = f"host_{name}"
    return handler


for _name in ("restart", "reboot", "sleep", "wakeup"):
    register_command(_name)(_host_handler(_name))


# ─── Lights ───

@register_command("setLights")
def set_lights(relay, mode):
    src = relay.source("lights")
    if not src:
        return
    logger.info("Set lights %s", mode)
    relay.tasks.submit("setLights", src.set_scene, mode)


# ─── Speaker ───

def _speaker(relay):
    """The speaker source, or None when unconfigured or not yet bound."""
    src = relay.source("speaker")
    if src is None:
        return None
    if not src.bound:
        logger.info("Sonos not ready")
        return None
    return src


@register_command("playpause")
def play_pause(relay, _payload):
    src = _speaker(relay)
    if src:
        relay.tasks.submit("playpause", src.toggle_playback)


@register_command("playnext")
def play_next(relay, _payload):
    src = _speaker(relay)
    if src:
        relay.tasks.submit("playnext", src.next)


@register_command("playshuffle")
def play_shuffle(relay, _payload):
    src = _speaker(relay)
    if src:
        relay.tasks.submit("playshuffle", src.set_shuffle)


@register_command("volumeup")
def volume_up(relay, _payload):
    src = _speaker(relay)
    if src:
        step = relay.config.get("sonos", {}).get("volume_step", 1)
        relay.tasks.submit("volumeup", src.adjust_volume, step)


@register_command("volumedown")
def volume_down(relay, _payload):
    src = _speaker(relay)
    if src:
        step = relay.config.get("sonos", {}).get("volume_step", 1)
        relay.tasks.submit("volumedown", src.adjust_volume, -step)


@register_command("gettrack")
def get_track(relay, _payload):
    src = _speaker(relay)
    if src:
        relay.fetch_and_publish("SONOS_TRACK", src.current_track)


@register_command("playURI")
def play_uri(relay, uri):
    src = _speaker(relay)
    if src:
        logger.info("Play sonos uri %s", uri)
        relay.tasks.submit("playURI", src.play_uri, uri)


@register_command("playRadio")
def play_radio(relay, station):
    src = _speaker(relay)
    if src:
        logger.info("Play sonos radio %s", station)
        relay.tasks.submit("playRadio", src.play_radio, station)
