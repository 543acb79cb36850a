"""Location source boundary.

A source pushes samples onto an asyncio.Queue owned by the recording
session; it never calls into the processor directly.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Protocol

from trailzap.core.config import settings
from trailzap.tracking.models import LocationSample

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LocationRequest:
    """How often the platform should deliver fixes."""

    time_interval_s: float = 5.0
    distance_interval_m: float = 10.0

    @classmethod
    def from_settings(cls) -> "LocationRequest":
        return cls(
            time_interval_s=settings.location_time_interval_s,
            distance_interval_m=settings.location_distance_interval_m,
        )


class Subscription(Protocol):
    def remove(self) -> None: ...


class LocationSource(Protocol):
    async def current_location(self) -> Optional[LocationSample]: ...

    def subscribe(self, queue: asyncio.Queue, request: LocationRequest) -> Subscription: ...


class QueueSubscription:
    """Handle returned by QueueLocationSource.subscribe; remove() is idempotent."""

    def __init__(self, source: "QueueLocationSource", queue: asyncio.Queue):
        self._source = source
        self.queue = queue
        self.active = True

    def remove(self) -> None:
        if not self.active:
            return
        self.active = False
        self._source._detach(self)


class QueueLocationSource:
    """In-process source fed by `emit()`.

    Used for replaying recorded fixes and in tests. Samples emitted while no
    one is subscribed are dropped, as a platform location service would.
    """

    def __init__(self, initial: Optional[LocationSample] = None):
        self.initial = initial
        self.requests: list[LocationRequest] = []
        self._subscriptions: list[QueueSubscription] = []

    async def current_location(self) -> Optional[LocationSample]:
        return self.initial

    def subscribe(self, queue: asyncio.Queue, request: LocationRequest) -> QueueSubscription:
        sub = QueueSubscription(self, queue)
        self._subscriptions.append(sub)
        self.requests.append(request)
        return sub

    def _detach(self, sub: QueueSubscription) -> None:
        if sub in self._subscriptions:
            self._subscriptions.remove(sub)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def emit(self, sample: LocationSample) -> int:
        """Deliver a fix to every subscriber. Returns the number of receivers."""
        for sub in self._subscriptions:
            sub.queue.put_nowait(sample)
        if not self._subscriptions:
            logger.debug("no subscribers; fix dropped")
        return len(self._subscriptions)

    def emit_many(self, samples: Iterable[LocationSample]) -> None:
        for s in samples:
            self.emit(s)
