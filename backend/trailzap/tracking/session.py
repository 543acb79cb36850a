"""Recording session: one device, one track, one location subscription."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from trailzap.core.config import settings
from trailzap.tracking.errors import (
    LocationUnavailableError,
    NotTrackingError,
    TrackStateError,
)
from trailzap.tracking.models import LocationSample, TrackState
from trailzap.tracking.processor import TrackProcessor
from trailzap.tracking.source import LocationRequest, LocationSource

logger = logging.getLogger(__name__)

# Wakes run() when the session is closed
_CLOSE = object()


class RecordingSession:
    """Owns a TrackProcessor and the subscription feeding it.

    The location source pushes fixes onto `queue`; the session drains it
    one sample at a time. Releasing the subscription is synchronous and
    idempotent, so stopping twice is harmless.
    """

    def __init__(
        self,
        source: LocationSource,
        processor: Optional[TrackProcessor] = None,
        request: Optional[LocationRequest] = None,
    ):
        self.source = source
        self.processor = processor if processor is not None else TrackProcessor()
        self.request = request or LocationRequest.from_settings()
        self.queue: asyncio.Queue = asyncio.Queue()
        self.dropped_samples = 0
        self._subscription = None

    @property
    def state(self) -> TrackState:
        return self.processor.state

    @property
    def is_subscribed(self) -> bool:
        return self._subscription is not None

    # --------- Lifecycle --------- #

    async def start(self) -> None:
        if self.processor.is_active:
            return
        try:
            initial = await self.source.current_location()
        except Exception as e:
            raise LocationUnavailableError(f"location source failed: {e}") from e
        if initial is None:
            raise LocationUnavailableError("no location fix available")

        self.processor.start()
        # close markers or late fixes left over from an earlier track
        self._clear_queue()
        self.processor.ingest(initial)
        self._subscribe()

    def pause(self) -> None:
        self.drain()
        self.processor.pause()
        self._release()

    def resume(self) -> None:
        self.processor.resume()
        self._subscribe()

    def stop(self) -> None:
        if self.processor.state == TrackState.stopped:
            self._release()
            return
        self.drain()
        self._release()
        self.processor.stop()
        self.queue.put_nowait(_CLOSE)

    def discard(self) -> None:
        """Drop the track and everything queued for it."""
        self._release()
        self._clear_queue()
        self.processor.reset()
        self.queue.put_nowait(_CLOSE)

    def close(self) -> None:
        """Teardown without touching the recorded data."""
        self._release()
        self.queue.put_nowait(_CLOSE)

    def _clear_queue(self) -> None:
        while not self.queue.empty():
            self.queue.get_nowait()

    def _subscribe(self) -> None:
        if self._subscription is None:
            self._subscription = self.source.subscribe(self.queue, self.request)

    def _release(self) -> None:
        sub, self._subscription = self._subscription, None
        if sub is not None:
            sub.remove()

    # --------- Sample delivery --------- #

    def _consume(self, sample: LocationSample) -> None:
        try:
            self.processor.ingest(sample)
        except NotTrackingError as e:
            self.dropped_samples += 1
            logger.info("sample dropped: %s", e)

    def drain(self) -> int:
        """Ingest everything already queued without waiting. Returns the count."""
        n = 0
        while not self.queue.empty():
            item = self.queue.get_nowait()
            if item is _CLOSE:
                continue
            self._consume(item)
            n += 1
        return n

    async def run(self) -> None:
        """Consume fixes until the session is stopped, discarded or closed."""
        while True:
            item = await self.queue.get()
            if item is _CLOSE:
                return
            self._consume(item)

    # --------- Finishing --------- #

    def is_too_short(self) -> bool:
        m = self.processor.metrics()
        return (
            m.elapsed_seconds < settings.min_save_duration_s
            or m.distance_meters < settings.min_save_distance_m
        )

    def save(self, store, title: str, activity_type: str = "running", description: str = "", is_public: bool = True):
        """Hand the stopped track to `store`.

        PersistenceError propagates and the track is kept so the caller can
        retry or discard. On success the session returns to idle.
        """
        if self.processor.state != TrackState.stopped:
            raise TrackStateError("save", self.processor.state)
        summary = self.processor.summary(
            title=title,
            activity_type=activity_type,
            description=description,
            is_public=is_public,
        )
        saved = store.save(summary)
        self.processor.reset()
        return saved
