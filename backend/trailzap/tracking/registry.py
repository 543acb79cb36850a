"""Per-device recording sessions for the HTTP layer."""

import logging
from typing import Optional

from trailzap.tracking.processor import TrackProcessor
from trailzap.tracking.session import RecordingSession
from trailzap.tracking.source import QueueLocationSource

logger = logging.getLogger(__name__)


class TrackerRegistry:
    """Hands out one RecordingSession per device.

    Each session gets its own QueueLocationSource; HTTP handlers push the
    fixes a device uploads through it, so they reach the processor the same
    way live platform fixes would.
    """

    def __init__(self, max_speed_mps: Optional[float] = None):
        self._max_speed_mps = max_speed_mps
        self._sessions: dict[str, RecordingSession] = {}

    def get(self, device_id: str) -> Optional[RecordingSession]:
        return self._sessions.get(device_id)

    def open(self, device_id: str) -> RecordingSession:
        session = self._sessions.get(device_id)
        if session is None:
            session = RecordingSession(
                QueueLocationSource(),
                TrackProcessor(max_speed_mps=self._max_speed_mps),
            )
            self._sessions[device_id] = session
            logger.debug("opened recording session for device %s", device_id)
        return session

    def release(self, device_id: str) -> None:
        session = self._sessions.pop(device_id, None)
        if session is not None:
            session.close()

    def __len__(self) -> int:
        return len(self._sessions)
