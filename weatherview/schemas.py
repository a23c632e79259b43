"""
Pydantic schemas.

Why:
- Validation at the boundary (coordinate ranges, required payload blocks)
- Defines the contract of the OpenWeather payloads we consume and of our REST endpoints
"""

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Coordinates(BaseModel):
    """A latitude/longitude pair, fixed for one fetch cycle."""
    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)


class NamedLocation(BaseModel):
    """Coordinates plus the label shown to the user."""
    model_config = ConfigDict(frozen=True)

    coordinates: Coordinates
    name: str

    @property
    def latitude(self) -> float:
        return self.coordinates.latitude

    @property
    def longitude(self) -> float:
        return self.coordinates.longitude


class CustomLocation(BaseModel):
    """
    Persisted user-chosen location.
    Stored as JSON: {"latitude": ..., "longitude": ..., "name": ...}
    """
    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)
    name: str = Field(..., min_length=1, max_length=255)

    def to_named_location(self) -> NamedLocation:
        return NamedLocation(
            coordinates=Coordinates(latitude=self.latitude, longitude=self.longitude),
            name=self.name,
        )


# -------------------------
# OpenWeather payloads
# -------------------------

class _Payload(BaseModel):
    # OpenWeather adds fields over time; unknown keys are dropped, not rejected.
    model_config = ConfigDict(frozen=True, extra="ignore")


class WeatherCondition(_Payload):
    id: Optional[int] = None
    main: Optional[str] = None
    description: Optional[str] = None
    icon: Optional[str] = None


class MainConditions(_Payload):
    """The current-conditions block. `temp` is the one field we cannot do without."""
    temp: float
    feels_like: Optional[float] = None
    temp_min: Optional[float] = None
    temp_max: Optional[float] = None
    pressure: Optional[float] = None
    humidity: Optional[float] = None


class Wind(_Payload):
    speed: Optional[float] = None
    deg: Optional[float] = None
    gust: Optional[float] = None


class Clouds(_Payload):
    all: Optional[int] = None


class SunTimes(_Payload):
    country: Optional[str] = None
    sunrise: Optional[int] = None
    sunset: Optional[int] = None


class PayloadCoord(_Payload):
    lat: float
    lon: float


class WeatherSnapshot(_Payload):
    """
    Parsed /data/2.5/weather response (metric units).
    Read-only once fetched; a new fetch produces a new snapshot.
    """
    coord: Optional[PayloadCoord] = None
    weather: List[WeatherCondition] = Field(default_factory=list)
    main: MainConditions
    visibility: Optional[int] = None
    wind: Wind = Field(default_factory=Wind)
    clouds: Clouds = Field(default_factory=Clouds)
    dt: Optional[int] = None
    sys: SunTimes = Field(default_factory=SunTimes)
    timezone: Optional[int] = None
    name: Optional[str] = None

    @property
    def condition(self) -> Optional[WeatherCondition]:
        return self.weather[0] if self.weather else None


class ForecastSlot(_Payload):
    """One 3-hour step of /data/2.5/forecast."""
    dt: int
    main: MainConditions
    weather: List[WeatherCondition] = Field(default_factory=list)
    wind: Wind = Field(default_factory=Wind)
    clouds: Clouds = Field(default_factory=Clouds)
    visibility: Optional[int] = None
    pop: Optional[float] = Field(None, ge=0.0, le=1.0)
    dt_txt: str = ""


class ForecastCity(_Payload):
    name: str = ""
    country: str = ""
    timezone: int = 0
    sunrise: Optional[int] = None
    sunset: Optional[int] = None


class Forecast(_Payload):
    """Parsed /data/2.5/forecast response."""
    list: List[ForecastSlot]
    city: ForecastCity = Field(default_factory=ForecastCity)


class DailySummary(BaseModel):
    """One day card built from the 3-hour forecast steps."""
    date: date
    dow: str
    tmin: Optional[float] = None
    tmax: Optional[float] = None
    icon: str = ""
    description: str = ""
    pop_max: Optional[float] = None
    pop_pct: Optional[int] = None


# -------------------------
# API output
# -------------------------

class WeatherStateOut(BaseModel):
    """What presentation sees after (or during) a refresh cycle."""
    loading: bool
    location: Optional[NamedLocation] = None
    weather: Optional[WeatherSnapshot] = None
    error: Optional[str] = None


class ForecastOut(BaseModel):
    location: NamedLocation
    hourly: List[ForecastSlot]
    daily: List[DailySummary]
