"""Read GPX files into location samples."""

import logging
from datetime import timezone

import gpxpy

from trailzap.tracking.models import LocationSample

logger = logging.getLogger(__name__)


def _to_ms(dt) -> int | None:
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


def read_gpx(text: str) -> tuple[str | None, list[LocationSample]]:
    """Parse GPX text into (name, arrival-ordered samples).

    Track points are preferred; a file with only a planned route falls back
    to route points. A point with no time inherits the previous timestamp
    (0 before the first timed point).

    Raises gpxpy.gpx.GPXException on malformed input.
    """
    gpx = gpxpy.parse(text)

    raw = []
    for track in gpx.tracks:
        for segment in track.segments:
            raw.extend(segment.points)
    if not raw:
        for route in gpx.routes:
            raw.extend(route.points)

    samples: list[LocationSample] = []
    last_ms = 0
    for p in raw:
        ms = _to_ms(p.time)
        if ms is None:
            ms = last_ms
        last_ms = ms
        samples.append(LocationSample(
            latitude=p.latitude,
            longitude=p.longitude,
            altitude=p.elevation,
            captured_at_ms=ms,
        ))
    name = next((t.name for t in gpx.tracks if t.name), None) or gpx.name
    logger.debug("parsed %d points from GPX %r", len(samples), name)
    return name, samples
