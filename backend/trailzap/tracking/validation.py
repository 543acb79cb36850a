"""Sample validation and per-segment outlier assessment."""

import math
from typing import Sequence

from trailzap.core.constants import LAT_RANGE, LON_RANGE, MPS_TO_KMH
from trailzap.tracking.errors import InvalidSampleError
from trailzap.tracking.geo import distance_between
from trailzap.tracking.models import LocationSample, SegmentAssessment


def validate_sample(sample: LocationSample) -> LocationSample:
    """Return the sample unchanged, or raise InvalidSampleError."""
    lat, lon = sample.latitude, sample.longitude
    if not (isinstance(lat, (int, float)) and math.isfinite(lat)):
        raise InvalidSampleError(sample, "latitude is not a finite number")
    if not (isinstance(lon, (int, float)) and math.isfinite(lon)):
        raise InvalidSampleError(sample, "longitude is not a finite number")
    if not LAT_RANGE[0] <= lat <= LAT_RANGE[1]:
        raise InvalidSampleError(sample, f"latitude {lat} out of range")
    if not LON_RANGE[0] <= lon <= LON_RANGE[1]:
        raise InvalidSampleError(sample, f"longitude {lon} out of range")
    return sample


def assess_segment(
    index: int,
    a: LocationSample,
    b: LocationSample,
    max_speed_mps: float,
) -> SegmentAssessment:
    d = distance_between(a, b)
    dt_ms = b.captured_at_ms - a.captured_at_ms
    duration = dt_ms / 1000.0 if dt_ms > 0 else None
    speed = d / duration if duration else None
    alt_delta = (
        b.altitude - a.altitude
        if a.altitude is not None and b.altitude is not None
        else None
    )
    return SegmentAssessment(
        index=index,
        distance_meters=d,
        duration_seconds=duration,
        speed_mps=speed,
        altitude_delta=alt_delta,
        non_monotonic=dt_ms < 0,
        implausible_speed=speed is not None and speed > max_speed_mps,
        stationary=d == 0.0,
    )


def assess_segments(
    samples: Sequence[LocationSample],
    max_speed_mps: float,
) -> list[SegmentAssessment]:
    """One assessment per consecutive pair, in arrival order.

    Assessment is advisory: it never drops samples or changes totals.
    """
    return [
        assess_segment(i, samples[i - 1], samples[i], max_speed_mps)
        for i in range(1, len(samples))
    ]


def max_speed_kmh(segments: Sequence[SegmentAssessment]) -> float:
    """Fastest valid segment in km/h (0 when no segment has a usable duration)."""
    speeds = [s.speed_mps for s in segments if s.is_valid and s.speed_mps is not None]
    if not speeds:
        return 0.0
    return max(speeds) * MPS_TO_KMH
