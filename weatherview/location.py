"""
Location resolution.

Order of preference:
1) a saved custom location (one store read, nothing else)
2) device geolocation (permission prompt + single position read),
   labelled through reverse geocoding
"""

from __future__ import annotations

import enum
import logging
from typing import Optional, Protocol

from pydantic import ValidationError

from .crud import load_custom_location
from .schemas import Coordinates, NamedLocation
from .weather_clients import (
    PLACEHOLDER_LOCATION_NAME,
    GeocodeLookupFailed,
    OpenWeatherClient,
    WeatherError,
)

logger = logging.getLogger(__name__)


class PermissionDenied(WeatherError):
    """The user refused foreground location access."""
    pass


class PositionUnavailable(WeatherError):
    """Permission was granted but no position could be read."""
    pass


class PermissionStatus(str, enum.Enum):
    GRANTED = "granted"
    DENIED = "denied"
    UNDETERMINED = "undetermined"


class GeolocationService(Protocol):
    async def request_foreground_permission(self) -> PermissionStatus: ...

    async def get_current_position(self) -> Coordinates: ...


class ItemStore(Protocol):
    def get_item(self, key: str) -> Optional[str]: ...


class ClientGeolocation:
    """
    Geolocation reported by the calling client.

    The browser (or app shell) asks the user for permission and reads the
    position itself; it then passes the outcome along with the request.
    """

    def __init__(self, permission: PermissionStatus, lat: Optional[float] = None, lon: Optional[float] = None):
        self.permission = permission
        self.lat = lat
        self.lon = lon

    async def request_foreground_permission(self) -> PermissionStatus:
        return self.permission

    async def get_current_position(self) -> Coordinates:
        if self.lat is None or self.lon is None:
            raise PositionUnavailable("Client did not report a position")
        try:
            return Coordinates(latitude=self.lat, longitude=self.lon)
        except ValidationError as e:
            raise PositionUnavailable(f"Client reported an invalid position: {self.lat},{self.lon}") from e


class LocationResolver:
    """Produces the NamedLocation one refresh cycle will query."""

    def __init__(self, store: ItemStore, geolocation: GeolocationService, client: OpenWeatherClient):
        self.store = store
        self.geolocation = geolocation
        self.client = client

    async def resolve_location(self) -> NamedLocation:
        saved = load_custom_location(self.store)
        if saved is not None:
            logger.debug("Using saved custom location %r", saved.name)
            return saved.to_named_location()

        status = await self.geolocation.request_foreground_permission()
        if status != PermissionStatus.GRANTED:
            raise PermissionDenied("Permission to access location was denied")

        try:
            coords = await self.geolocation.get_current_position()
        except PositionUnavailable:
            raise
        except Exception as e:
            raise PositionUnavailable(str(e)) from e

        return NamedLocation(coordinates=coords, name=await self._place_name(coords))

    async def _place_name(self, coords: Coordinates) -> str:
        try:
            name = await self.client.reverse_geocode(coords)
        except GeocodeLookupFailed as e:
            logger.warning("Reverse geocoding failed, using placeholder name: %s", e)
            return PLACEHOLDER_LOCATION_NAME
        return name or PLACEHOLDER_LOCATION_NAME
