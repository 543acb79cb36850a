"""Geodesic distance, elevation and pace over location samples.

Everything here is a pure function of its inputs. Outlier handling lives
in `trailzap.tracking.validation` so these formulas can be checked in
isolation.
"""

import math
from typing import Optional, Sequence

from trailzap.core.constants import EARTH_RADIUS_M, KM_M
from trailzap.tracking.models import LocationSample


def haversine(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Return great-circle distance in meters between two WGS84 points."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    # rounding can push a past 1 for near-antipodal points
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def distance_between(a: LocationSample, b: LocationSample) -> float:
    """Great-circle distance in meters between two samples."""
    return haversine(a.latitude, a.longitude, b.latitude, b.longitude)


def total_distance(samples: Sequence[LocationSample]) -> float:
    """Polyline length in meters, summed over consecutive pairs in arrival order."""
    if len(samples) < 2:
        return 0.0
    total = 0.0
    for i in range(1, len(samples)):
        total += distance_between(samples[i - 1], samples[i])
    return total


def elevation_gain(samples: Sequence[LocationSample]) -> float:
    """Sum of positive altitude deltas between immediate neighbours.

    A pair contributes only when both samples report altitude, so one
    missing altitude breaks the comparison on both of its sides instead of
    being bridged to the next known altitude.
    """
    gain = 0.0
    for i in range(1, len(samples)):
        prev, curr = samples[i - 1], samples[i]
        if prev.altitude is None or curr.altitude is None:
            continue
        de = curr.altitude - prev.altitude
        if de > 0:
            gain += de
    return gain


def elevation_loss(samples: Sequence[LocationSample]) -> float:
    """Mirror of `elevation_gain` for descent (returned as a positive number)."""
    loss = 0.0
    for i in range(1, len(samples)):
        prev, curr = samples[i - 1], samples[i]
        if prev.altitude is None or curr.altitude is None:
            continue
        de = curr.altitude - prev.altitude
        if de < 0:
            loss += -de
    return loss


def average_pace(total_distance_meters: float, elapsed_seconds: float) -> Optional[float]:
    """Minutes per kilometer, or None when no distance has been covered."""
    if total_distance_meters <= 0:
        return None
    return (max(elapsed_seconds, 0.0) / 60) / (total_distance_meters / KM_M)


def average_pace_seconds_per_km(total_distance_meters: float, elapsed_seconds: float) -> Optional[float]:
    """Seconds per kilometer, or None when no distance has been covered."""
    pace = average_pace(total_distance_meters, elapsed_seconds)
    return pace * 60 if pace is not None else None
