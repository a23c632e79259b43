"""
Refresh cycle + the state presentation reads.

WeatherController owns the only copy of "current weather". The resolver and
the client are handed in per refresh and never see the state.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import Optional

from .location import LocationResolver, PermissionDenied
from .schemas import NamedLocation, WeatherSnapshot, WeatherStateOut
from .weather_clients import OpenWeatherClient, WeatherError

logger = logging.getLogger(__name__)

PERMISSION_DENIED_MESSAGE = "Permission to access location was denied"
GENERIC_ERROR_MESSAGE = "Error fetching weather data"


@dataclass(frozen=True)
class WeatherState:
    loading: bool = False
    location: Optional[NamedLocation] = None
    weather: Optional[WeatherSnapshot] = None
    error: Optional[str] = None

    def to_out(self) -> WeatherStateOut:
        return WeatherStateOut(
            loading=self.loading,
            location=self.location,
            weather=self.weather,
            error=self.error,
        )


class WeatherController:
    """
    Sequences one refresh: loading -> resolve location -> fetch weather -> settled.

    State is replaced, never mutated in place. Refreshes are not de-duplicated;
    when two overlap, whichever settles last wins.
    """

    def __init__(self) -> None:
        self.state = WeatherState()

    def _update(self, **changes) -> WeatherState:
        self.state = dataclasses.replace(self.state, **changes)
        return self.state

    async def refresh(self, resolver: LocationResolver, client: OpenWeatherClient) -> WeatherState:
        self._update(loading=True)
        try:
            location = await resolver.resolve_location()
            snapshot = await client.fetch_weather(location.coordinates)
        except PermissionDenied as e:
            logger.warning("Refresh aborted: %s", e)
            return self._update(loading=False, error=PERMISSION_DENIED_MESSAGE)
        except WeatherError as e:
            logger.error("Refresh failed: %s", e)
            return self._update(loading=False, error=GENERIC_ERROR_MESSAGE)
        except Exception:
            logger.exception("Refresh failed unexpectedly")
            return self._update(loading=False, error=GENERIC_ERROR_MESSAGE)
        finally:
            # Cancellation skips the handlers above; never leave the cycle in flight.
            if self.state.loading:
                self._update(loading=False)

        logger.info(
            "Weather refreshed for %s (%.4f, %.4f)",
            location.name, location.latitude, location.longitude,
        )
        return self._update(loading=False, location=location, weather=snapshot, error=None)
