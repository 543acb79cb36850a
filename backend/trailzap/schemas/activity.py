from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from trailzap.tracking.models import LocationSample


class ActivityType(str, Enum):
    running = "running"
    cycling = "cycling"
    walking = "walking"
    hiking = "hiking"
    swimming = "swimming"
    other = "other"


class LocationSampleIn(BaseModel):
    """One GPS fix as sent by a device.

    Coordinates are not range-checked here: the tracking core drops bad
    fixes itself instead of failing the whole request.
    """

    latitude: float
    longitude: float
    altitude: Optional[float] = None
    timestamp: int  # epoch milliseconds

    def to_sample(self) -> LocationSample:
        return LocationSample(
            latitude=self.latitude,
            longitude=self.longitude,
            altitude=self.altitude,
            captured_at_ms=self.timestamp,
        )


class ActivityCreate(BaseModel):
    """Schema for saving an activity recorded on the client."""

    title: str
    description: str = ""
    activity_type: ActivityType = ActivityType.running
    is_public: bool = True
    samples: list[LocationSampleIn]
    # Active time measured on the device (pauses excluded).
    # When omitted, the time span of the samples is used.
    duration_seconds: Optional[float] = None


class ActivityRead(BaseModel):
    """Schema returned to the frontend when reading an activity."""

    id: int
    title: str
    description: str
    activity_type: ActivityType
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    start_time_local: Optional[str] = None  # 'YYYY-MM-DD HH:MM'

    duration_seconds: float
    duration: str  # 'H:MM:SS' or 'M:SS'
    distance_m: float
    distance: str  # e.g. '2.3km'
    elevation_gain_m: float
    avg_pace_s_per_km: Optional[float] = None
    pace: str  # e.g. '5:30/km' or '--:--'
    max_speed_kmh: float

    is_public: bool
    source: str

    model_config = ConfigDict(from_attributes=True)


class TrackRead(BaseModel):
    geojson: Optional[dict] = None
    bounds: Optional[dict] = None
    points_count: Optional[int] = None


class ActivityUpdate(BaseModel):
    """Editable fields; anything omitted is left as is."""

    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    is_public: Optional[bool] = None


class ActivityTypeStats(BaseModel):
    activity_type: ActivityType
    count: int
    total_distance_m: float
    total_distance: str
    total_duration_seconds: float
    total_duration: str
    total_elevation_gain_m: float
    avg_pace_s_per_km: Optional[float] = None
    avg_pace: str
    max_speed_kmh: float
