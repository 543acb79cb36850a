"""Value types for recorded tracks."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class TrackState(str, Enum):
    idle = "idle"
    active = "active"
    paused = "paused"
    stopped = "stopped"


@dataclass(frozen=True)
class LocationSample:
    """One GPS fix. Coordinates in degrees, altitude in meters."""

    latitude: float
    longitude: float
    altitude: Optional[float] = None
    captured_at_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "altitude": self.altitude,
            "timestamp": self.captured_at_ms,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LocationSample":
        alt = data.get("altitude")
        return cls(
            latitude=float(data["latitude"]),
            longitude=float(data["longitude"]),
            altitude=float(alt) if alt is not None else None,
            captured_at_ms=int(data.get("timestamp") or data.get("captured_at_ms") or 0),
        )


@dataclass
class Track:
    """Owning aggregate for one activity attempt.

    Mutated only through TrackProcessor. `distance_meters` is the running
    total kept up to date by each accepted sample.
    """

    samples: list[LocationSample] = field(default_factory=list)
    state: TrackState = TrackState.idle
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    accumulated_duration_seconds: float = 0.0
    distance_meters: float = 0.0
    rejected_samples: int = 0


@dataclass(frozen=True)
class SegmentAssessment:
    """Validity assessment for the segment between samples index-1 and index."""

    index: int
    distance_meters: float
    duration_seconds: Optional[float]
    speed_mps: Optional[float]
    altitude_delta: Optional[float]
    non_monotonic: bool = False
    implausible_speed: bool = False
    stationary: bool = False

    @property
    def is_valid(self) -> bool:
        return not (self.non_monotonic or self.implausible_speed)


@dataclass(frozen=True)
class TrackMetrics:
    """Read-only snapshot for live display."""

    state: TrackState
    distance_meters: float
    elapsed_seconds: float
    pace_seconds_per_km: Optional[float]
    elevation_gain_meters: float
    sample_count: int
    rejected_samples: int
    outlier_segments: int


@dataclass(frozen=True)
class TrackSummary:
    """A finished track as handed to the persistence collaborator."""

    title: str
    activity_type: str
    started_at: Optional[datetime]
    ended_at: Optional[datetime]
    duration_seconds: float
    distance_meters: float
    elevation_gain_meters: float
    avg_pace_seconds_per_km: Optional[float]
    max_speed_kmh: float
    samples: tuple[LocationSample, ...]
    description: str = ""
    is_public: bool = True

    def geojson(self) -> Optional[dict[str, Any]]:
        """GeoJSON LineString of [lon, lat] or [lon, lat, alt] positions."""
        if not self.samples:
            return None
        coords = []
        for s in self.samples:
            pos = [s.longitude, s.latitude]
            if s.altitude is not None:
                pos.append(s.altitude)
            coords.append(pos)
        return {"type": "LineString", "coordinates": coords}

    def bounds(self) -> Optional[dict[str, float]]:
        if not self.samples:
            return None
        lats = [s.latitude for s in self.samples]
        lons = [s.longitude for s in self.samples]
        return {
            "minLat": min(lats),
            "minLon": min(lons),
            "maxLat": max(lats),
            "maxLon": max(lons),
        }
