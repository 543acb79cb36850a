"""
Activity store.

Persistence collaborator for finished tracks. Any database failure is
rolled back and surfaced as PersistenceError; nothing is retried here.
"""

import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from trailzap.models.activity import Activity
from trailzap.models.activity_track import ActivityTrack
from trailzap.tracking.errors import PersistenceError
from trailzap.tracking.geo import average_pace_seconds_per_km
from trailzap.tracking.models import LocationSample, TrackSummary

logger = logging.getLogger(__name__)


class ActivityStore:
    """Saves and loads activities together with their recorded track."""

    def __init__(self, db: Session):
        self.db = db

    def save(self, summary: TrackSummary, source: str = "recorded") -> Activity:
        """
        Persist a finished track.

        Args:
            summary: Derived metrics plus the ordered samples
            source: Where the samples came from (recorded, manual, gpx)

        Returns:
            The stored Activity row
        """
        activity = Activity(
            title=summary.title,
            description=summary.description or "",
            activity_type=summary.activity_type,
            start_time=summary.started_at,
            end_time=summary.ended_at,
            duration_seconds=summary.duration_seconds,
            distance_m=summary.distance_meters,
            elevation_gain_m=summary.elevation_gain_meters,
            avg_pace_s_per_km=summary.avg_pace_seconds_per_km,
            max_speed_kmh=summary.max_speed_kmh,
            is_public=summary.is_public,
            source=source,
        )
        try:
            self.db.add(activity)
            self.db.flush()
            self.db.add(ActivityTrack(
                activity_id=activity.id,
                geojson=summary.geojson(),
                bounds=summary.bounds(),
                points_count=len(summary.samples),
                samples=[s.to_dict() for s in summary.samples],
            ))
            self.db.commit()
            self.db.refresh(activity)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("failed to save activity %r: %s", summary.title, e)
            raise PersistenceError(f"could not save activity: {e}") from e

        logger.info(
            "saved activity %d (%s, %.0fm, %d points)",
            activity.id,
            activity.activity_type,
            activity.distance_m,
            len(summary.samples),
        )
        return activity

    def update_metrics(self, activity: Activity, summary: TrackSummary) -> Activity:
        """Overwrite derived numbers and the track with a recomputed summary."""
        activity.duration_seconds = summary.duration_seconds
        activity.distance_m = summary.distance_meters
        activity.elevation_gain_m = summary.elevation_gain_meters
        activity.avg_pace_s_per_km = summary.avg_pace_seconds_per_km
        activity.max_speed_kmh = summary.max_speed_kmh
        try:
            track = self.track_for(activity.id)
            if track is None:
                track = ActivityTrack(activity_id=activity.id)
                self.db.add(track)
            track.geojson = summary.geojson()
            track.bounds = summary.bounds()
            track.points_count = len(summary.samples)
            track.samples = [s.to_dict() for s in summary.samples]
            self.db.commit()
            self.db.refresh(activity)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"could not update activity {activity.id}: {e}") from e
        return activity

    def update_details(self, activity: Activity, changes: dict) -> Activity:
        """Edit user-facing fields (title, description, is_public) only."""
        for field in ("title", "description", "is_public"):
            if field in changes and changes[field] is not None:
                setattr(activity, field, changes[field])
        try:
            self.db.commit()
            self.db.refresh(activity)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"could not update activity {activity.id}: {e}") from e
        return activity

    def stats_by_type(self) -> list[dict]:
        """Totals per activity type, most used type first."""
        rows = (
            self.db.query(
                Activity.activity_type,
                func.count(Activity.id),
                func.coalesce(func.sum(Activity.distance_m), 0.0),
                func.coalesce(func.sum(Activity.duration_seconds), 0.0),
                func.coalesce(func.sum(Activity.elevation_gain_m), 0.0),
                func.coalesce(func.max(Activity.max_speed_kmh), 0.0),
            )
            .group_by(Activity.activity_type)
            .order_by(func.count(Activity.id).desc(), Activity.activity_type)
            .all()
        )
        stats = []
        for activity_type, count, distance, duration, gain, max_speed in rows:
            stats.append({
                "activity_type": activity_type,
                "count": count,
                "total_distance_m": float(distance),
                "total_duration_seconds": float(duration),
                "total_elevation_gain_m": float(gain),
                "avg_pace_s_per_km": average_pace_seconds_per_km(float(distance), float(duration)),
                "max_speed_kmh": float(max_speed),
            })
        return stats

    def get(self, activity_id: int) -> Optional[Activity]:
        return self.db.query(Activity).filter(Activity.id == activity_id).first()

    def list_recent(
        self,
        activity_type: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Activity]:
        query = self.db.query(Activity)
        if activity_type is not None:
            query = query.filter(Activity.activity_type == activity_type)
        # Most recent first
        return (
            query.order_by(Activity.created_at.desc(), Activity.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def track_for(self, activity_id: int) -> Optional[ActivityTrack]:
        return self.db.query(ActivityTrack).filter(ActivityTrack.activity_id == activity_id).first()

    def samples_for(self, activity_id: int) -> list[LocationSample]:
        track = self.track_for(activity_id)
        if track is None or not track.samples:
            return []
        return [LocationSample.from_dict(d) for d in track.samples]

    def delete(self, activity_id: int) -> bool:
        activity = self.get(activity_id)
        if activity is None:
            return False
        try:
            # SQLite ignores ON DELETE CASCADE unless foreign keys are enabled
            self.db.query(ActivityTrack).filter(ActivityTrack.activity_id == activity_id).delete()
            self.db.delete(activity)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"could not delete activity {activity_id}: {e}") from e
        return True
