"""Tests for the Tibber GraphQL source and thermostat validation."""

import math

import pytest

from conftest import FakeResponse, FakeSession, tags
from core.data_source import InvalidCommandValue, RelayError
from core.relay import HomeRelay
from sources.tibber_source import (
    APP_URL,
    PUBLIC_URL,
    THERMOSTAT_MUTATION,
    TibberHomeSource,
    TibberSource,
    validate_temperature,
)

HOME_CONFIG = {
    "token": "t2",
    "homeId": "home-1",
    "thermostat": "thermo-1",
    "inverter": "inv-1",
    "production": "prod-1",
    "min_temperature": 5,
    "max_temperature": 30,
}


def ok(data):
    return FakeResponse(json_data={"data": data})


@pytest.mark.parametrize("value, expected", [
    (21, 21.0),
    ("21.5", 21.5),
    (22.26, 22.3),
    (5, 5.0),
    (30, 30.0),
])
def test_validate_temperature_accepts(value, expected):
    assert validate_temperature(value, 5, 30) == expected


@pytest.mark.parametrize("value", [
    "21; mutation { evil }",
    "21) { x }",
    None,
    True,
    [21],
    float("nan"),
    math.inf,
    4.9,
    31,
])
def test_validate_temperature_rejects(value):
    with pytest.raises(InvalidCommandValue):
        validate_temperature(value, 5, 30)


def test_fetch_prices_returns_first_home():
    session = FakeSession({PUBLIC_URL: ok({"viewer": {"homes": [{"id": "a"}, {"id": "b"}]}})})
    src = TibberSource("tibber", None, {"token": "t1"}, session=session)

    assert src.fetch_prices() == {"id": "a"}
    _, _, kwargs = session.calls[0]
    assert kwargs["headers"]["Authorization"] == "Bearer t1"


def test_fetch_prices_without_homes():
    session = FakeSession({PUBLIC_URL: ok({"viewer": {"homes": []}})})
    src = TibberSource("tibber", None, {"token": "t1"}, session=session)
    assert src.fetch_prices() is None


def test_graphql_errors_raise():
    session = FakeSession({PUBLIC_URL: FakeResponse(json_data={"errors": [{"message": "bad"}]})})
    src = TibberSource("tibber", None, {"token": "t1"}, session=session)
    with pytest.raises(RelayError):
        src.fetch_prices()


def test_home_query_passes_ids_as_variables():
    session = FakeSession({APP_URL: ok({"me": {"home": {"thermostats": []}}})})
    src = TibberHomeSource("tibber2", None, HOME_CONFIG, session=session)

    assert src.fetch_home() == {"thermostats": []}
    _, _, kwargs = session.calls[0]
    assert kwargs["json"]["variables"] == {
        "homeId": "home-1", "inverter": "inv-1", "production": "prod-1",
    }
    assert "home-1" not in kwargs["json"]["query"]


def test_vehicles_without_me_returns_none():
    session = FakeSession({APP_URL: ok({})})
    src = TibberHomeSource("tibber2", None, HOME_CONFIG, session=session)
    assert src.fetch_vehicles() is None


def test_set_comfort_temperature_sends_variable():
    session = FakeSession({APP_URL: ok({"me": {}})})
    src = TibberHomeSource("tibber2", None, HOME_CONFIG, session=session)

    src.set_comfort_temperature("21.5")
    _, _, kwargs = session.calls[0]
    assert kwargs["json"]["query"] == THERMOSTAT_MUTATION
    assert kwargs["json"]["variables"] == {
        "homeId": "home-1", "thermostat": "thermo-1", "temperature": 21.5,
    }


def test_set_comfort_temperature_rejects_before_request():
    session = FakeSession({APP_URL: ok({"me": {}})})
    src = TibberHomeSource("tibber2", None, HOME_CONFIG, session=session)

    with pytest.raises(InvalidCommandValue):
        src.set_comfort_temperature('21) } } mutation { x')
    assert session.calls == []


# ─── Handlers ───

def make_relay(bus, tasks, session):
    sources = {
        "tibber": TibberSource("tibber", bus, {"token": "t1"}, session=session),
        "tibber2": TibberHomeSource("tibber2", bus, HOME_CONFIG, session=session),
    }
    return HomeRelay({}, bus=bus, tasks=tasks, sources=sources)


def test_setthermo_with_injection_attempt_sends_nothing(bus, tasks, emitted):
    session = FakeSession({APP_URL: ok({"me": {}})})
    relay = make_relay(bus, tasks, session)

    for value in ('22) { setState(comfortTemperature: 99) }', "nan", 99, None):
        relay.handle("setthermo", value)
    assert session.calls == []
    assert emitted == []


def test_setthermo_valid_value_is_posted(bus, tasks):
    session = FakeSession({APP_URL: ok({"me": {}})})
    relay = make_relay(bus, tasks, session)

    relay.handle("setthermo", 19)
    assert session.urls("POST") == [APP_URL]
    _, _, kwargs = session.calls[0]
    assert kwargs["json"]["variables"]["temperature"] == 19.0


def test_energy_handlers_broadcast_under_their_tags(bus, tasks, emitted):
    session = FakeSession({
        PUBLIC_URL: ok({"viewer": {"homes": [{"id": "a"}]}}),
        APP_URL: ok({"me": {"home": {"electricVehicles": []}}}),
    })
    relay = make_relay(bus, tasks, session)

    relay.handle("tibber")
    relay.handle("tibber2")
    relay.handle("tibber3")
    assert tags(emitted) == ["TIBBER", "TIBBER2", "TIBBER3"]
