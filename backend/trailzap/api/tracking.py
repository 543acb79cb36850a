from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from trailzap.api.activities import activity_to_read
from trailzap.core.time_utils import format_distance, format_duration, format_pace
from trailzap.db import get_db
from trailzap.repositories.activities import ActivityStore
from trailzap.schemas.activity import ActivityRead, LocationSampleIn
from trailzap.schemas.tracking import (
    IngestResponse,
    SaveRequest,
    SegmentRead,
    StartRequest,
    TrackMetricsRead,
)
from trailzap.tracking.errors import (
    LocationUnavailableError,
    PersistenceError,
    TrackStateError,
)
from trailzap.tracking.models import TrackState
from trailzap.tracking.registry import TrackerRegistry
from trailzap.tracking.session import RecordingSession

# Handlers are async: sessions are only ever touched from the event loop thread
router = APIRouter(prefix="/tracking", tags=["tracking"])


def get_registry(request: Request) -> TrackerRegistry:
    return request.app.state.trackers


def _session_or_404(registry: TrackerRegistry, device_id: str) -> RecordingSession:
    session = registry.get(device_id)
    if session is None:
        raise HTTPException(status_code=404, detail="No recording for device")
    return session


def _metrics(session: RecordingSession) -> TrackMetricsRead:
    m = session.processor.metrics()
    return TrackMetricsRead(
        state=m.state,
        distance_m=m.distance_meters,
        distance=format_distance(m.distance_meters),
        elapsed_seconds=m.elapsed_seconds,
        duration=format_duration(m.elapsed_seconds),
        pace_s_per_km=m.pace_seconds_per_km,
        pace=format_pace(m.pace_seconds_per_km),
        elevation_gain_m=m.elevation_gain_meters,
        sample_count=m.sample_count,
        rejected_samples=m.rejected_samples,
        outlier_segments=m.outlier_segments,
        too_short=session.is_too_short(),
    )


@router.post("/{device_id}/start", response_model=TrackMetricsRead)
async def start_tracking(
    device_id: str,
    payload: StartRequest,
    registry: TrackerRegistry = Depends(get_registry),
):
    session = registry.open(device_id)
    session.source.initial = payload.initial.to_sample() if payload.initial else None
    try:
        await session.start()
    except LocationUnavailableError as e:
        raise HTTPException(status_code=503, detail=f"Location unavailable: {e}")
    except TrackStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _metrics(session)


@router.post("/{device_id}/samples", response_model=IngestResponse)
async def push_samples(
    device_id: str,
    payload: list[LocationSampleIn],
    registry: TrackerRegistry = Depends(get_registry),
):
    session = _session_or_404(registry, device_id)
    if session.state != TrackState.active:
        raise HTTPException(status_code=409, detail=f"Not tracking (state={session.state.value})")

    track = session.processor.track
    count_before = len(track.samples)
    rejected_before = track.rejected_samples

    session.source.emit_many(s.to_sample() for s in payload)
    session.drain()

    return IngestResponse(
        received=len(payload),
        accepted=len(track.samples) - count_before,
        rejected=track.rejected_samples - rejected_before,
        metrics=_metrics(session),
    )


@router.post("/{device_id}/pause", response_model=TrackMetricsRead)
async def pause_tracking(device_id: str, registry: TrackerRegistry = Depends(get_registry)):
    session = _session_or_404(registry, device_id)
    try:
        session.pause()
    except TrackStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _metrics(session)


@router.post("/{device_id}/resume", response_model=TrackMetricsRead)
async def resume_tracking(device_id: str, registry: TrackerRegistry = Depends(get_registry)):
    session = _session_or_404(registry, device_id)
    try:
        session.resume()
    except TrackStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _metrics(session)


@router.post("/{device_id}/stop", response_model=TrackMetricsRead)
async def stop_tracking(device_id: str, registry: TrackerRegistry = Depends(get_registry)):
    session = _session_or_404(registry, device_id)
    try:
        session.stop()
    except TrackStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _metrics(session)


@router.post("/{device_id}/reset")
async def reset_tracking(device_id: str, registry: TrackerRegistry = Depends(get_registry)):
    """Discard the device's track, whatever state it is in."""
    session = _session_or_404(registry, device_id)
    session.discard()
    registry.release(device_id)
    return {"message": "Track discarded"}


@router.get("/{device_id}", response_model=TrackMetricsRead)
async def get_tracking_metrics(device_id: str, registry: TrackerRegistry = Depends(get_registry)):
    return _metrics(_session_or_404(registry, device_id))


@router.get("/{device_id}/segments", response_model=list[SegmentRead])
async def get_tracking_segments(device_id: str, registry: TrackerRegistry = Depends(get_registry)):
    session = _session_or_404(registry, device_id)
    return [
        SegmentRead(
            index=s.index,
            distance_m=s.distance_meters,
            duration_seconds=s.duration_seconds,
            speed_mps=s.speed_mps,
            altitude_delta=s.altitude_delta,
            non_monotonic=s.non_monotonic,
            implausible_speed=s.implausible_speed,
            stationary=s.stationary,
            valid=s.is_valid,
        )
        for s in session.processor.segments()
    ]


@router.post("/{device_id}/save", response_model=ActivityRead)
async def save_tracking(
    device_id: str,
    payload: SaveRequest,
    registry: TrackerRegistry = Depends(get_registry),
    db: Session = Depends(get_db),
):
    session = _session_or_404(registry, device_id)
    if session.state != TrackState.stopped:
        raise HTTPException(status_code=409, detail="Stop the activity before saving")
    if session.is_too_short() and not payload.force:
        raise HTTPException(status_code=422, detail="Activity too short to save")

    try:
        activity = session.save(
            ActivityStore(db),
            title=payload.title,
            activity_type=payload.activity_type.value,
            description=payload.description,
            is_public=payload.is_public,
        )
    except PersistenceError as e:
        # Track stays in memory; the client may retry or reset
        raise HTTPException(status_code=503, detail=str(e))

    registry.release(device_id)
    return activity_to_read(activity)
