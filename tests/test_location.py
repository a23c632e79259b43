"""Tests for LocationResolver."""

from __future__ import annotations

import json

import httpx
import pytest

from conftest import DictStore, FakeGeolocation, Recorder
from weatherview.crud import CUSTOM_LOCATION_KEY
from weatherview.location import (
    ClientGeolocation,
    LocationResolver,
    PermissionDenied,
    PermissionStatus,
    PositionUnavailable,
)
from weatherview.schemas import Coordinates
from weatherview.weather_clients import OpenWeatherClient


def geocode_route(body, status: int = 200) -> Recorder:
    return Recorder({"/geo/1.0/reverse": httpx.Response(status, json=body)})


@pytest.mark.asyncio
async def test_saved_location_skips_geolocation(make_client, london_record):
    store = DictStore({CUSTOM_LOCATION_KEY: london_record})
    geo = FakeGeolocation()
    recorder = geocode_route([])
    resolver = LocationResolver(store, geo, make_client(recorder))

    location = await resolver.resolve_location()

    assert location.name == "London, GB"
    assert location.latitude == 51.5
    assert location.longitude == -0.12
    assert store.reads == 1
    assert geo.permission_calls == 0
    assert geo.position_calls == 0
    assert recorder.requests == []


@pytest.mark.asyncio
async def test_malformed_saved_location_falls_back_to_device(make_client):
    store = DictStore({CUSTOM_LOCATION_KEY: json.dumps({"latitude": 200, "name": "Nowhere"})})
    geo = FakeGeolocation()
    resolver = LocationResolver(store, geo, make_client(geocode_route([{"name": "Paris", "country": "FR"}])))

    location = await resolver.resolve_location()

    assert location.name == "Paris, FR"
    assert geo.permission_calls == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [PermissionStatus.DENIED, PermissionStatus.UNDETERMINED])
async def test_permission_denied_makes_no_network_call(make_client, status):
    geo = FakeGeolocation(status=status)
    recorder = geocode_route([{"name": "Paris", "country": "FR"}])
    resolver = LocationResolver(DictStore(), geo, make_client(recorder))

    with pytest.raises(PermissionDenied):
        await resolver.resolve_location()

    assert geo.position_calls == 0
    assert recorder.requests == []


@pytest.mark.asyncio
async def test_position_failure_is_fatal(make_client):
    geo = FakeGeolocation(error=RuntimeError("GPS off"))
    recorder = geocode_route([])
    resolver = LocationResolver(DictStore(), geo, make_client(recorder))

    with pytest.raises(PositionUnavailable):
        await resolver.resolve_location()

    assert recorder.requests == []


@pytest.mark.asyncio
async def test_device_location_is_reverse_geocoded(make_client):
    geo = FakeGeolocation(coords=Coordinates(latitude=48.85, longitude=2.35))
    recorder = geocode_route([{"name": "Paris", "country": "FR", "state": "Ile-de-France"}])
    resolver = LocationResolver(DictStore(), geo, make_client(recorder))

    location = await resolver.resolve_location()

    assert location.name == "Paris, FR"
    assert location.coordinates == Coordinates(latitude=48.85, longitude=2.35)
    assert geo.position_calls == 1
    assert recorder.paths() == ["/geo/1.0/reverse"]


@pytest.mark.asyncio
async def test_empty_reverse_geocode_uses_placeholder(make_client):
    resolver = LocationResolver(DictStore(), FakeGeolocation(), make_client(geocode_route([])))

    location = await resolver.resolve_location()

    assert location.name == "Current Location"


@pytest.mark.asyncio
async def test_failed_reverse_geocode_uses_placeholder(make_client):
    recorder = geocode_route({"cod": 500, "message": "internal"}, status=500)
    resolver = LocationResolver(DictStore(), FakeGeolocation(), make_client(recorder))

    location = await resolver.resolve_location()

    assert location.name == "Current Location"
    assert location.latitude == 48.85


@pytest.mark.asyncio
async def test_client_geolocation_without_position():
    geo = ClientGeolocation(PermissionStatus.GRANTED)

    assert await geo.request_foreground_permission() == PermissionStatus.GRANTED
    with pytest.raises(PositionUnavailable):
        await geo.get_current_position()


@pytest.mark.asyncio
async def test_client_geolocation_out_of_range():
    geo = ClientGeolocation(PermissionStatus.GRANTED, lat=95.0, lon=10.0)

    with pytest.raises(PositionUnavailable):
        await geo.get_current_position()


@pytest.mark.asyncio
async def test_reverse_geocode_transport_error_uses_placeholder():
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = OpenWeatherClient("test-key", transport=httpx.MockTransport(refuse))
    resolver = LocationResolver(DictStore(), FakeGeolocation(), client)

    location = await resolver.resolve_location()

    assert location.name == "Current Location"
    assert location.longitude == 2.35


@pytest.mark.asyncio
async def test_reverse_geocode_non_json_uses_placeholder(make_client):
    recorder = Recorder({"/geo/1.0/reverse": httpx.Response(200, text="<html>")})
    resolver = LocationResolver(DictStore(), FakeGeolocation(), make_client(recorder))

    location = await resolver.resolve_location()

    assert location.name == "Current Location"
    assert recorder.paths() == ["/geo/1.0/reverse"]


@pytest.mark.asyncio
async def test_reverse_geocode_non_list_uses_placeholder(make_client):
    resolver = LocationResolver(DictStore(), FakeGeolocation(), make_client(geocode_route({"cod": 200})))

    location = await resolver.resolve_location()

    assert location.name == "Current Location"
