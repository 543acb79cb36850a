"""Turns raw location samples into distance, elevation and pace.

A TrackProcessor owns exactly one Track. State transitions:

    idle --start--> active --pause--> paused --resume--> active
    active|paused --stop--> stopped          (terminal)
    any --reset--> idle

Elapsed time is computed on read from the accumulated active time plus the
currently running interval; nothing ticks in the background.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from trailzap.core.config import settings
from trailzap.tracking import geo
from trailzap.tracking.errors import InvalidSampleError, NotTrackingError, TrackStateError
from trailzap.tracking.models import (
    LocationSample,
    SegmentAssessment,
    Track,
    TrackMetrics,
    TrackState,
    TrackSummary,
)
from trailzap.tracking.validation import assess_segments, max_speed_kmh, validate_sample

logger = logging.getLogger(__name__)


class TrackProcessor:
    def __init__(
        self,
        track: Optional[Track] = None,
        clock: Callable[[], float] = time.time,
        max_speed_mps: Optional[float] = None,
    ):
        self.track = track if track is not None else Track()
        self._clock = clock
        self._max_speed_mps = (
            max_speed_mps if max_speed_mps is not None else settings.max_plausible_speed_mps
        )
        # clock reading when the current active interval began
        self._resumed_at: Optional[float] = None

    @property
    def state(self) -> TrackState:
        return self.track.state

    @property
    def is_active(self) -> bool:
        return self.track.state == TrackState.active

    # --------- Lifecycle --------- #

    def start(self) -> None:
        if self.track.state == TrackState.active:
            logger.debug("start ignored: track already active")
            return
        if self.track.state != TrackState.idle:
            raise TrackStateError("start", self.track.state)
        now = self._clock()
        self.track.state = TrackState.active
        self.track.started_at = datetime.fromtimestamp(now, tz=timezone.utc)
        self._resumed_at = now
        logger.info("track started at %s", self.track.started_at.isoformat())

    def pause(self) -> None:
        if self.track.state == TrackState.paused:
            return
        if self.track.state != TrackState.active:
            raise TrackStateError("pause", self.track.state)
        self._fold_running_interval()
        self.track.state = TrackState.paused
        logger.info("track paused after %.1fs active", self.track.accumulated_duration_seconds)

    def resume(self) -> None:
        if self.track.state == TrackState.active:
            return
        if self.track.state != TrackState.paused:
            raise TrackStateError("resume", self.track.state)
        self.track.state = TrackState.active
        self._resumed_at = self._clock()
        logger.info("track resumed")

    def stop(self) -> None:
        if self.track.state == TrackState.stopped:
            return
        if self.track.state == TrackState.idle:
            raise TrackStateError("stop", self.track.state)
        self._fold_running_interval()
        self.track.state = TrackState.stopped
        self.track.ended_at = datetime.fromtimestamp(self._clock(), tz=timezone.utc)
        m = self.metrics()
        logger.info(
            "track stopped: %d samples, %.1fm, %.1fs active, gain %.1fm, %d rejected",
            m.sample_count,
            m.distance_meters,
            m.elapsed_seconds,
            m.elevation_gain_meters,
            m.rejected_samples,
        )

    def reset(self) -> None:
        """Discard everything and return to idle."""
        self.track.samples.clear()
        self.track.state = TrackState.idle
        self.track.started_at = None
        self.track.ended_at = None
        self.track.accumulated_duration_seconds = 0.0
        self.track.distance_meters = 0.0
        self.track.rejected_samples = 0
        self._resumed_at = None

    def _fold_running_interval(self) -> None:
        if self._resumed_at is not None:
            self.track.accumulated_duration_seconds += max(0.0, self._clock() - self._resumed_at)
            self._resumed_at = None

    # --------- Ingestion --------- #

    def ingest(self, sample: LocationSample) -> bool:
        """Append a sample to the active track.

        Returns False when the sample was dropped for bad coordinates.
        Raises NotTrackingError when the track is not active.
        """
        if self.track.state != TrackState.active:
            raise NotTrackingError(self.track.state)
        try:
            validate_sample(sample)
        except InvalidSampleError as e:
            self.track.rejected_samples += 1
            logger.warning("dropping sample: %s", e.reason)
            return False

        samples = self.track.samples
        if samples:
            prev = samples[-1]
            if sample.captured_at_ms < prev.captured_at_ms:
                logger.debug(
                    "sample timestamp went backwards (%d < %d)",
                    sample.captured_at_ms,
                    prev.captured_at_ms,
                )
            self.track.distance_meters += geo.distance_between(prev, sample)
        samples.append(sample)
        return True

    # --------- Derived metrics --------- #

    def elapsed_seconds(self) -> float:
        elapsed = self.track.accumulated_duration_seconds
        if self.track.state == TrackState.active and self._resumed_at is not None:
            elapsed += max(0.0, self._clock() - self._resumed_at)
        return elapsed

    def total_distance_meters(self) -> float:
        return self.track.distance_meters

    def elevation_gain_meters(self) -> float:
        return geo.elevation_gain(self.track.samples)

    def average_pace_seconds_per_km(self) -> Optional[float]:
        return geo.average_pace_seconds_per_km(self.track.distance_meters, self.elapsed_seconds())

    def segments(self) -> list[SegmentAssessment]:
        return assess_segments(self.track.samples, self._max_speed_mps)

    def metrics(self) -> TrackMetrics:
        return TrackMetrics(
            state=self.track.state,
            distance_meters=self.track.distance_meters,
            elapsed_seconds=self.elapsed_seconds(),
            pace_seconds_per_km=self.average_pace_seconds_per_km(),
            elevation_gain_meters=self.elevation_gain_meters(),
            sample_count=len(self.track.samples),
            rejected_samples=self.track.rejected_samples,
            outlier_segments=sum(1 for s in self.segments() if not s.is_valid),
        )

    def summary(
        self,
        title: str,
        activity_type: str = "running",
        description: str = "",
        is_public: bool = True,
    ) -> TrackSummary:
        """Snapshot of the track in the shape the persistence layer stores."""
        elapsed = self.elapsed_seconds()
        return TrackSummary(
            title=title,
            activity_type=activity_type,
            description=description,
            is_public=is_public,
            started_at=self.track.started_at,
            ended_at=self.track.ended_at,
            duration_seconds=elapsed,
            distance_meters=self.track.distance_meters,
            elevation_gain_meters=self.elevation_gain_meters(),
            avg_pace_seconds_per_km=geo.average_pace_seconds_per_km(self.track.distance_meters, elapsed),
            max_speed_kmh=max_speed_kmh(self.segments()),
            samples=tuple(self.track.samples),
        )


def replay(
    samples,
    max_speed_mps: Optional[float] = None,
) -> TrackProcessor:
    """Run a stored sample sequence through a fresh processor.

    The clock follows the sample timestamps, so the active duration equals
    the recorded time span. Used for imports and batch reprocessing.
    """
    samples = list(samples)
    cursor = {"t": samples[0].captured_at_ms / 1000.0 if samples else 0.0}

    processor = TrackProcessor(clock=lambda: cursor["t"], max_speed_mps=max_speed_mps)
    processor.start()
    for s in samples:
        # never move the clock backwards on jittery timestamps
        cursor["t"] = max(cursor["t"], s.captured_at_ms / 1000.0)
        processor.ingest(s)
    processor.stop()
    return processor
