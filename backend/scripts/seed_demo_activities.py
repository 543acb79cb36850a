from datetime import datetime, timedelta, timezone
import math
import random

from trailzap.db import Base, SessionLocal, engine
from trailzap.models.activity import Activity
from trailzap.models.activity_track import ActivityTrack
from trailzap.repositories.activities import ActivityStore
from trailzap.tracking.models import LocationSample
from trailzap.tracking.processor import replay


def loop_samples(
    center_lat: float,
    center_lon: float,
    radius_m: float,
    start: datetime,
    speed_mps: float,
    interval_s: int = 5,
) -> list[LocationSample]:
    """Fixes around a circular loop with a gentle hill, one every `interval_s`."""
    circumference = 2 * math.pi * radius_m
    n = max(2, int(circumference / (speed_mps * interval_s)))
    t0_ms = int(start.timestamp() * 1000)
    samples = []
    for i in range(n + 1):
        theta = 2 * math.pi * i / n
        dlat = (radius_m * math.cos(theta)) / 111320.0
        dlon = (radius_m * math.sin(theta)) / (111320.0 * math.cos(math.radians(center_lat)))
        samples.append(LocationSample(
            latitude=center_lat + dlat,
            longitude=center_lon + dlon,
            altitude=round(50 + 15 * math.sin(theta) + random.uniform(-0.5, 0.5), 1),
            captured_at_ms=t0_ms + i * interval_s * 1000,
        ))
    return samples


def clear_demo_activities(db) -> None:
    """Delete demo activities so we can reseed cleanly."""
    ids = [a.id for a in db.query(Activity).filter(Activity.source == "demo").all()]
    if ids:
        db.query(ActivityTrack).filter(ActivityTrack.activity_id.in_(ids)).delete(synchronize_session=False)
        db.query(Activity).filter(Activity.id.in_(ids)).delete(synchronize_session=False)
        db.commit()


def seed_demo_activities(db, weeks: int = 4) -> None:
    """Three activities a week: easy run, bike loop, weekend hike."""
    store = ActivityStore(db)
    now = datetime.now(timezone.utc)
    first_monday = (now - timedelta(weeks=weeks - 1, days=now.weekday())).replace(
        hour=7, minute=0, second=0, microsecond=0
    )

    count = 0
    for week in range(weeks):
        week_start = first_monday + timedelta(weeks=week)
        plan = [
            (week_start + timedelta(days=1), "Easy run", "running", 800, 3.0),
            (week_start + timedelta(days=3), "Bike loop", "cycling", 2500, 7.5),
            (week_start + timedelta(days=5), "Weekend hike", "hiking", 1200, 1.3),
        ]
        for start, title, kind, radius_m, speed in plan:
            if start > now:
                continue
            samples = loop_samples(51.5007, -0.1246, radius_m, start, speed * random.uniform(0.9, 1.1))
            summary = replay(samples).summary(title=title, activity_type=kind)
            store.save(summary, source="demo")
            count += 1

    print(f"Seeded {count} demo activities")


def main():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        clear_demo_activities(db)
        seed_demo_activities(db)
    finally:
        db.close()


if __name__ == "__main__":
    main()
