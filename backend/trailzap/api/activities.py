import dataclasses
import logging
import os
from typing import Optional

import gpxpy.gpx
from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from sqlalchemy.orm import Session

from trailzap.core.config import settings
from trailzap.core.time_utils import format_distance, format_duration, format_pace, to_local_datetime
from trailzap.db import get_db
from trailzap.models.activity import Activity
from trailzap.repositories.activities import ActivityStore
from trailzap.schemas.activity import (
    ActivityCreate,
    ActivityRead,
    ActivityType,
    ActivityTypeStats,
    ActivityUpdate,
    TrackRead,
)
from trailzap.tracking import geo
from trailzap.tracking.errors import PersistenceError
from trailzap.tracking.gpx_import import read_gpx
from trailzap.tracking.processor import replay

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/activities", tags=["activities"])


def activity_to_read(activity: Activity) -> ActivityRead:
    """Build the response schema, adding display strings."""
    start_local = None
    if activity.start_time is not None:
        start_local = to_local_datetime(activity.start_time, settings.timezone).strftime("%Y-%m-%d %H:%M")
    return ActivityRead(
        id=activity.id,
        title=activity.title,
        description=activity.description or "",
        activity_type=activity.activity_type,
        start_time=activity.start_time,
        end_time=activity.end_time,
        start_time_local=start_local,
        duration_seconds=activity.duration_seconds,
        duration=format_duration(activity.duration_seconds),
        distance_m=activity.distance_m,
        distance=format_distance(activity.distance_m),
        elevation_gain_m=activity.elevation_gain_m,
        avg_pace_s_per_km=activity.avg_pace_s_per_km,
        pace=format_pace(activity.avg_pace_s_per_km),
        max_speed_kmh=activity.max_speed_kmh,
        is_public=activity.is_public,
        source=activity.source,
    )


def _save_or_503(store: ActivityStore, summary, source: str) -> Activity:
    try:
        return store.save(summary, source=source)
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.post("/", response_model=ActivityRead)
def create_activity(payload: ActivityCreate, db: Session = Depends(get_db)):
    """Save an activity recorded client-side; all metrics are recomputed here."""
    samples = [s.to_sample() for s in payload.samples]
    if not samples:
        raise HTTPException(status_code=422, detail="samples must not be empty")

    processor = replay(samples)
    if not processor.track.samples:
        raise HTTPException(status_code=422, detail="no valid samples")

    summary = processor.summary(
        title=payload.title,
        activity_type=payload.activity_type.value,
        description=payload.description,
        is_public=payload.is_public,
    )
    if payload.duration_seconds is not None:
        if payload.duration_seconds < 0:
            raise HTTPException(status_code=422, detail="duration_seconds must be >= 0")
        summary = dataclasses.replace(
            summary,
            duration_seconds=payload.duration_seconds,
            avg_pace_seconds_per_km=geo.average_pace_seconds_per_km(
                summary.distance_meters, payload.duration_seconds
            ),
        )

    activity = _save_or_503(ActivityStore(db), summary, source="manual")
    return activity_to_read(activity)


@router.get("/", response_model=list[ActivityRead])
def list_activities(
    activity_type: Optional[ActivityType] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    page: int = Query(1, ge=1),
    db: Session = Depends(get_db),
):
    """List activities, most recent first."""
    rows = ActivityStore(db).list_recent(
        activity_type=activity_type.value if activity_type else None,
        limit=limit,
        offset=(page - 1) * limit,
    )
    return [activity_to_read(a) for a in rows]


@router.get("/stats", response_model=list[ActivityTypeStats])
def get_activity_stats(db: Session = Depends(get_db)):
    """Totals per activity type across all stored activities."""
    return [
        ActivityTypeStats(
            **s,
            total_distance=format_distance(s["total_distance_m"]),
            total_duration=format_duration(s["total_duration_seconds"]),
            avg_pace=format_pace(s["avg_pace_s_per_km"]),
        )
        for s in ActivityStore(db).stats_by_type()
    ]


@router.get("/{activity_id}", response_model=ActivityRead)
def get_activity(activity_id: int, db: Session = Depends(get_db)):
    activity = ActivityStore(db).get(activity_id)
    if not activity:
        raise HTTPException(status_code=404, detail="Activity not found")
    return activity_to_read(activity)


@router.put("/{activity_id}", response_model=ActivityRead)
def update_activity(activity_id: int, payload: ActivityUpdate, db: Session = Depends(get_db)):
    """Edit title, description or visibility. Metrics are never edited here."""
    store = ActivityStore(db)
    activity = store.get(activity_id)
    if not activity:
        raise HTTPException(status_code=404, detail="Activity not found")
    try:
        activity = store.update_details(activity, payload.model_dump(exclude_unset=True))
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return activity_to_read(activity)


@router.get("/{activity_id}/track", response_model=TrackRead)
def get_activity_track(activity_id: int, db: Session = Depends(get_db)):
    t = ActivityStore(db).track_for(activity_id)
    if not t:
        raise HTTPException(status_code=404, detail="No track")
    return TrackRead(geojson=t.geojson, bounds=t.bounds, points_count=t.points_count)


@router.post("/{activity_id}/reprocess", response_model=ActivityRead)
def reprocess_activity(activity_id: int, db: Session = Depends(get_db)):
    """Recompute distance, elevation and speed from the stored samples.

    The stored active duration is kept, since pauses cannot be recovered
    from sample timestamps.
    """
    store = ActivityStore(db)
    activity = store.get(activity_id)
    if not activity:
        raise HTTPException(status_code=404, detail="Activity not found")
    samples = store.samples_for(activity_id)
    if not samples:
        raise HTTPException(status_code=404, detail="No stored samples for activity")

    processor = replay(samples)
    summary = processor.summary(title=activity.title, activity_type=activity.activity_type)
    summary = dataclasses.replace(
        summary,
        duration_seconds=activity.duration_seconds,
        avg_pace_seconds_per_km=geo.average_pace_seconds_per_km(
            summary.distance_meters, activity.duration_seconds
        ),
    )
    try:
        activity = store.update_metrics(activity, summary)
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e))
    logger.info("reprocessed activity %d from %d samples", activity_id, len(samples))
    return activity_to_read(activity)


@router.post("/import", response_model=ActivityRead)
def import_gpx(
    file: UploadFile = File(...),
    activity_type: ActivityType = Query(ActivityType.running),
    db: Session = Depends(get_db),
):
    filename = file.filename or "import.gpx"
    ext = os.path.splitext(filename)[1].lower()
    if ext != ".gpx":
        raise HTTPException(status_code=400, detail="Only .gpx files are supported")

    data = file.file.read()
    try:
        name, samples = read_gpx(data.decode("utf-8"))
    except (gpxpy.gpx.GPXException, UnicodeDecodeError) as e:
        raise HTTPException(status_code=400, detail=f"Invalid file: {e}")
    if not samples:
        raise HTTPException(status_code=400, detail="GPX file has no points")

    processor = replay(samples)
    summary = processor.summary(
        title=name or os.path.splitext(filename)[0] or "GPX import",
        activity_type=activity_type.value,
    )
    activity = _save_or_503(ActivityStore(db), summary, source="gpx")
    return activity_to_read(activity)


@router.delete("/{activity_id}")
def delete_activity(activity_id: int, db: Session = Depends(get_db)):
    try:
        deleted = ActivityStore(db).delete(activity_id)
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=404, detail="Activity not found")
    return {"message": "Activity deleted"}
