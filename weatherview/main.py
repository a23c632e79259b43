"""
FastAPI entrypoint.

This file focuses on:
- routing
- request/response handling
- wiring together DB + client + refresh state
"""

from __future__ import annotations

import logging
from typing import Literal, Optional

from fastapi import FastAPI, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from .settings import settings, configure_logging
from .db import Base, engine, get_db
from . import models  # noqa: F401  (registers tables on Base.metadata)
from .crud import KeyValueStore, load_custom_location, save_custom_location, clear_custom_location
from .location import ClientGeolocation, LocationResolver, PermissionStatus
from .refresh import WeatherController
from .schemas import Coordinates, CustomLocation, ForecastOut, NamedLocation, WeatherSnapshot, WeatherStateOut
from .weather_clients import OpenWeatherClient, WeatherError

configure_logging()
logger = logging.getLogger(__name__)

# Create tables automatically; the store is a single table.
Base.metadata.create_all(bind=engine)

app = FastAPI(title=settings.app_name)

# API client and refresh state (constructed once).
owm = OpenWeatherClient(
    settings.openweather_api_key,
    timeout_s=settings.http_timeout_s,
    base=settings.openweather_base_url,
)
controller = WeatherController()


def get_weather_client() -> OpenWeatherClient:
    return owm


def get_controller() -> WeatherController:
    return controller


def get_store(db: Session = Depends(get_db)) -> KeyValueStore:
    return KeyValueStore(db)


def coords_or_400(lat: float, lon: float) -> Coordinates:
    try:
        return Coordinates(latitude=lat, longitude=lon)
    except ValueError:
        raise HTTPException(
            status_code=400,
            detail="Invalid coordinates. Latitude must be in [-90, 90], longitude in [-180, 180].",
        )


# -------------------------
# Weather
# -------------------------

@app.get("/api/weather", response_model=WeatherStateOut)
def api_weather_state(wc: WeatherController = Depends(get_controller)):
    """Last settled refresh: location, snapshot, error/loading flags."""
    return wc.state.to_out()


@app.post("/api/weather/refresh", response_model=WeatherStateOut)
async def api_weather_refresh(
    permission: PermissionStatus = PermissionStatus.GRANTED,
    lat: Optional[float] = None,
    lon: Optional[float] = None,
    store: KeyValueStore = Depends(get_store),
    client: OpenWeatherClient = Depends(get_weather_client),
    wc: WeatherController = Depends(get_controller),
):
    """
    Run one refresh cycle (initial load or pull-to-refresh).

    The caller reports its own geolocation outcome: permission status and,
    when granted, the device position. A saved custom location takes precedence.
    """
    resolver = LocationResolver(store, ClientGeolocation(permission, lat, lon), client)
    state = await wc.refresh(resolver, client)
    return state.to_out()


@app.get("/api/weather/by-coords", response_model=WeatherSnapshot)
async def api_weather_by_coords(
    lat: float,
    lon: float,
    client: OpenWeatherClient = Depends(get_weather_client),
):
    """One-off current weather for a lat/lon. Does not touch the refresh state."""
    coords = coords_or_400(lat, lon)
    try:
        return await client.fetch_weather(coords)
    except WeatherError as e:
        raise HTTPException(status_code=400, detail=str(e))


# -------------------------
# Forecast
# -------------------------

async def _forecast_for(
    wc: WeatherController,
    client: OpenWeatherClient,
    lat: Optional[float],
    lon: Optional[float],
) -> ForecastOut:
    if (lat is None) != (lon is None):
        raise HTTPException(status_code=400, detail="Pass both lat and lon, or neither.")
    if lat is not None and lon is not None:
        location = NamedLocation(coordinates=coords_or_400(lat, lon), name=f"{lat},{lon}")
    elif wc.state.location is not None:
        location = wc.state.location
    else:
        raise HTTPException(status_code=409, detail="No location yet. Refresh the weather first.")

    try:
        forecast = await client.fetch_forecast(location.coordinates)
    except WeatherError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return ForecastOut(
        location=location,
        hourly=forecast.list,
        daily=client.summarize_daily(forecast),
    )


@app.get("/api/forecast", response_model=ForecastOut)
async def api_forecast(
    lat: Optional[float] = None,
    lon: Optional[float] = None,
    client: OpenWeatherClient = Depends(get_weather_client),
    wc: WeatherController = Depends(get_controller),
):
    """3-hour slots plus daily cards, for the refreshed location unless lat/lon are given."""
    return await _forecast_for(wc, client, lat, lon)


@app.get("/api/forecast/{kind}/{index}")
async def api_forecast_slot(
    kind: Literal["hourly", "daily"],
    index: int,
    lat: Optional[float] = None,
    lon: Optional[float] = None,
    client: OpenWeatherClient = Depends(get_weather_client),
    wc: WeatherController = Depends(get_controller),
):
    """A single forecast slot, as carried into the detail view."""
    out = await _forecast_for(wc, client, lat, lon)
    slots = out.hourly if kind == "hourly" else out.daily
    if not 0 <= index < len(slots):
        raise HTTPException(status_code=404, detail="Forecast slot not found")
    return {"type": kind, "location": out.location, "data": slots[index]}


# -------------------------
# Custom location
# -------------------------

@app.get("/api/location/custom", response_model=CustomLocation)
def api_get_custom_location(store: KeyValueStore = Depends(get_store)):
    saved = load_custom_location(store)
    if saved is None:
        raise HTTPException(status_code=404, detail="No custom location saved")
    return saved


@app.put("/api/location/custom", response_model=CustomLocation)
def api_put_custom_location(payload: CustomLocation, store: KeyValueStore = Depends(get_store)):
    """Save a location that refreshes will use instead of device geolocation."""
    save_custom_location(store, payload)
    logger.info("Custom location set to %r", payload.name)
    return payload


@app.delete("/api/location/custom")
def api_delete_custom_location(store: KeyValueStore = Depends(get_store)):
    """Forget the custom location; refreshes fall back to device geolocation."""
    return {"ok": clear_custom_location(store)}
