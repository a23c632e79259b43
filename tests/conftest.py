"""Pytest configuration and fixtures for weatherview tests."""

from __future__ import annotations

import json
import os
import tempfile
from typing import Any, Callable

# Settings are read at import time; give them a key and a throwaway database.
os.environ.setdefault("OPENWEATHER_API_KEY", "test-key")
os.environ.setdefault("SQLITE_PATH", os.path.join(tempfile.mkdtemp(), "weatherview-test.sqlite3"))

import httpx
import pytest

from weatherview.location import PermissionStatus
from weatherview.schemas import Coordinates
from weatherview.weather_clients import OpenWeatherClient

BASE = "https://owm.test"

LONDON_WEATHER: dict[str, Any] = {
    "coord": {"lon": -0.12, "lat": 51.5},
    "weather": [{"id": 803, "main": "Clouds", "description": "broken clouds", "icon": "04d"}],
    "main": {
        "temp": 14.2,
        "feels_like": 13.5,
        "temp_min": 12.9,
        "temp_max": 15.3,
        "pressure": 1016,
        "humidity": 72,
    },
    "visibility": 10000,
    "wind": {"speed": 4.1, "deg": 240},
    "clouds": {"all": 75},
    "dt": 1700000000,
    "sys": {"country": "GB", "sunrise": 1699975000, "sunset": 1700008000},
    "timezone": 0,
    "name": "London",
}


def make_forecast_item(dt: int, temp: float, icon: str = "01d", desc: str = "clear sky", pop: float | None = 0.0) -> dict[str, Any]:
    item: dict[str, Any] = {
        "dt": dt,
        "main": {"temp": temp, "feels_like": temp, "pressure": 1012, "humidity": 60},
        "weather": [{"id": 800, "main": "Clear", "description": desc, "icon": icon}],
        "wind": {"speed": 3.0, "deg": 180},
        "visibility": 10000,
    }
    if pop is not None:
        item["pop"] = pop
    return item


class Recorder:
    """httpx.MockTransport handler that records requests and routes by path."""

    def __init__(self, routes: dict[str, Callable[[httpx.Request], httpx.Response] | httpx.Response]):
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, json={"message": "not routed"})
        if callable(route):
            return route(request)
        # Fresh response per request; the same route may be hit more than once.
        return httpx.Response(route.status_code, headers=route.headers, content=route.content)

    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]


class DictStore:
    """In-memory stand-in for KeyValueStore that counts reads."""

    def __init__(self, items: dict[str, str] | None = None):
        self.items = dict(items or {})
        self.reads = 0

    def get_item(self, key: str) -> str | None:
        self.reads += 1
        return self.items.get(key)


class FakeGeolocation:
    def __init__(self, status: PermissionStatus = PermissionStatus.GRANTED, coords: Coordinates | None = None, error: Exception | None = None):
        self.status = status
        self.coords = coords or Coordinates(latitude=48.85, longitude=2.35)
        self.error = error
        self.permission_calls = 0
        self.position_calls = 0

    async def request_foreground_permission(self) -> PermissionStatus:
        self.permission_calls += 1
        return self.status

    async def get_current_position(self) -> Coordinates:
        self.position_calls += 1
        if self.error is not None:
            raise self.error
        return self.coords


@pytest.fixture
def make_client() -> Callable[[Recorder], OpenWeatherClient]:
    def _make(recorder: Recorder) -> OpenWeatherClient:
        return OpenWeatherClient("test-key", base=BASE, transport=httpx.MockTransport(recorder))

    return _make


@pytest.fixture
def london_record() -> str:
    return json.dumps({"latitude": 51.5, "longitude": -0.12, "name": "London, GB"})
