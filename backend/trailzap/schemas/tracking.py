from typing import Optional

from pydantic import BaseModel

from trailzap.schemas.activity import ActivityType, LocationSampleIn
from trailzap.tracking.models import TrackState


class StartRequest(BaseModel):
    # Current fix at the moment the user pressed start; None when the
    # device could not get one.
    initial: Optional[LocationSampleIn] = None


class SaveRequest(BaseModel):
    title: str
    description: str = ""
    activity_type: ActivityType = ActivityType.running
    is_public: bool = True
    # Save even when the track is below the minimum duration/distance
    force: bool = False


class TrackMetricsRead(BaseModel):
    state: TrackState
    distance_m: float
    distance: str
    elapsed_seconds: float
    duration: str
    pace_s_per_km: Optional[float] = None
    pace: str
    elevation_gain_m: float
    sample_count: int
    rejected_samples: int
    outlier_segments: int
    too_short: bool


class IngestResponse(BaseModel):
    received: int
    accepted: int
    rejected: int
    metrics: TrackMetricsRead


class SegmentRead(BaseModel):
    index: int
    distance_m: float
    duration_seconds: Optional[float] = None
    speed_mps: Optional[float] = None
    altitude_delta: Optional[float] = None
    non_monotonic: bool
    implausible_speed: bool
    stationary: bool
    valid: bool
