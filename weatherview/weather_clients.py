"""
Weather clients.

API logic is kept apart from the FastAPI endpoints and from the refresh state:
- easier to test in isolation (inject an httpx transport)
- the fetch functions never see or touch application state
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from .schemas import Coordinates, DailySummary, Forecast, WeatherSnapshot

logger = logging.getLogger(__name__)

PLACEHOLDER_LOCATION_NAME = "Current Location"


class WeatherError(RuntimeError):
    """Base class for failures during a refresh cycle."""
    pass


class WeatherApiError(WeatherError):
    """
    The weather endpoint answered with a non-success status or a payload
    that does not match the expected shape.
    """

    def __init__(self, message: str, status: Optional[int] = None, invalid_format: bool = False):
        super().__init__(message)
        self.status = status
        self.invalid_format = invalid_format


class GeocodeLookupFailed(WeatherError):
    """Reverse geocoding failed. Callers degrade to a placeholder name."""
    pass


class OpenWeatherClient:
    """
    OpenWeatherMap wrapper.

    Endpoints used:
    - Reverse geocoding:
        /geo/1.0/reverse?lat=...&lon=...&limit=1&appid=KEY
    - Current weather:
        /data/2.5/weather?lat=...&lon=...&units=metric&appid=KEY
    - 5-day forecast (3-hour increments):
        /data/2.5/forecast?lat=...&lon=...&units=metric&appid=KEY

    Every call is a fresh round trip: no retry, no caching.
    """

    # Display code assumes Celsius and m/s.
    UNITS = "metric"

    def __init__(
        self,
        api_key: str,
        timeout_s: float = 10.0,
        base: str = "https://api.openweathermap.org",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.timeout_s = timeout_s
        self.base = base.rstrip("/")
        # Tests plug an httpx.MockTransport in here.
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout_s, transport=self.transport)

    async def _get_json(self, path: str, params: Dict[str, Any], what: str) -> Any:
        """
        Single GET against the API. Non-2xx and non-JSON bodies become WeatherApiError.
        """
        try:
            async with self._client() as client:
                r = await client.get(f"{self.base}{path}", params=params)
        except httpx.HTTPError as e:
            logger.error("%s request failed: %s", what, e)
            raise WeatherApiError(f"{what} request failed: {e}") from e

        if not r.is_success:
            logger.error("%s failed (%s): %s", what, r.status_code, r.text[:200])
            raise WeatherApiError(f"Weather API Error: {r.status_code}", status=r.status_code)

        try:
            return r.json()
        except ValueError as e:
            logger.error("%s returned a non-JSON body", what)
            raise WeatherApiError("Invalid weather data format", invalid_format=True) from e

    async def fetch_weather(self, coords: Coordinates) -> WeatherSnapshot:
        """
        Retrieves current weather conditions for a lat/lon.

        The payload is validated before it is handed out: a body without the
        current-conditions block ("main") is rejected even on HTTP 200.
        """
        params = {
            "lat": coords.latitude,
            "lon": coords.longitude,
            "appid": self.api_key,
            "units": self.UNITS,
        }
        data = await self._get_json("/data/2.5/weather", params, "Current weather")
        try:
            return WeatherSnapshot.model_validate(data)
        except ValidationError as e:
            logger.error("Current weather payload rejected: %s", e.errors(include_url=False))
            raise WeatherApiError("Invalid weather data format", invalid_format=True) from e

    async def fetch_forecast(self, coords: Coordinates) -> Forecast:
        """
        Retrieves the 5-day forecast in 3-hour increments.
        We later summarize this into one card per day (min/max + icon).
        """
        params = {
            "lat": coords.latitude,
            "lon": coords.longitude,
            "appid": self.api_key,
            "units": self.UNITS,
        }
        data = await self._get_json("/data/2.5/forecast", params, "Forecast")
        try:
            return Forecast.model_validate(data)
        except ValidationError as e:
            logger.error("Forecast payload rejected: %s", e.errors(include_url=False))
            raise WeatherApiError("Invalid forecast data format", invalid_format=True) from e

    async def reverse_geocode(self, coords: Coordinates) -> Optional[str]:
        """
        lat/lon -> "Name, CC" for the best match, or None when nothing matched.

        Raises GeocodeLookupFailed for transport errors, non-2xx statuses and
        bodies that are not a list of places.
        """
        params = {
            "lat": coords.latitude,
            "lon": coords.longitude,
            "limit": 1,
            "appid": self.api_key,
        }
        try:
            async with self._client() as client:
                r = await client.get(f"{self.base}/geo/1.0/reverse", params=params)
        except httpx.HTTPError as e:
            raise GeocodeLookupFailed(f"Reverse geocoding request failed: {e}") from e

        if not r.is_success:
            raise GeocodeLookupFailed(f"Reverse geocoding failed ({r.status_code}): {r.text}")

        try:
            results = r.json() or []
        except ValueError as e:
            raise GeocodeLookupFailed("Reverse geocoding returned a non-JSON body") from e
        if not isinstance(results, list):
            raise GeocodeLookupFailed("Reverse geocoding returned an unexpected shape")

        if not results:
            return None

        best = results[0] if isinstance(results[0], dict) else {}
        name = best.get("name")
        if not name:
            return None
        country = best.get("country")
        return f"{name}, {country}" if country else name

    @staticmethod
    def summarize_daily(forecast: Forecast, days: int = 5) -> List[DailySummary]:
        """
        OpenWeather forecast returns ~40 data points (3-hour steps).
        The forecast list is best shown as daily cards.

        Strategy:
        - Group items by local date (using city timezone offset)
        - For each day:
          - temp min/max over all steps
          - the most frequent (icon, description) pair
          - the highest precipitation probability
        """
        tz_offset = forecast.city.timezone

        def local_day(dt_utc: int) -> date:
            return datetime.fromtimestamp(dt_utc + tz_offset, tz=timezone.utc).date()

        grouped: Dict[date, list] = {}
        for slot in forecast.list:
            grouped.setdefault(local_day(slot.dt), []).append(slot)

        out: List[DailySummary] = []
        for d in sorted(grouped.keys())[:days]:
            steps = grouped[d]

            pops = [s.pop for s in steps if s.pop is not None]
            pop_max = max(pops) if pops else None

            temps = [s.main.temp for s in steps]

            counts = Counter(
                (s.weather[0].icon or "", s.weather[0].description or "") for s in steps if s.weather
            )
            icon, desc = counts.most_common(1)[0][0] if counts else ("", "")

            out.append(DailySummary(
                date=d,
                dow=d.strftime("%a"),
                tmin=min(temps) if temps else None,
                tmax=max(temps) if temps else None,
                icon=icon,
                description=desc,
                pop_max=pop_max,
                pop_pct=round(pop_max * 100) if pop_max is not None else None,
            ))

        return out
