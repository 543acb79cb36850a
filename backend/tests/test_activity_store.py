import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from trailzap.db import Base
from trailzap.models.activity import Activity
from trailzap.models.activity_track import ActivityTrack
from trailzap.repositories.activities import ActivityStore
from trailzap.tracking.errors import PersistenceError
from trailzap.tracking.models import LocationSample
from trailzap.tracking.processor import replay


def pt(lat, lon, alt=None, t_ms=0):
    return LocationSample(latitude=lat, longitude=lon, altitude=alt, captured_at_ms=t_ms)


@pytest.fixture
def db(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'store.db'}")
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


def make_summary(title="Hill repeats", samples=None):
    samples = samples or [
        pt(0, 0, 100, 0),
        pt(0, 0.001, 104, 30_000),
        pt(0, 0.002, None, 60_000),
        pt(0, 0.003, 101, 90_000),
    ]
    return replay(samples, max_speed_mps=15).summary(title=title, activity_type="running")


def test_save_persists_summary_and_track(db):
    store = ActivityStore(db)
    activity = store.save(make_summary())

    assert activity.id is not None
    assert activity.title == "Hill repeats"
    assert activity.distance_m == pytest.approx(333.6, abs=0.5)
    assert activity.elevation_gain_m == pytest.approx(4)
    assert activity.duration_seconds == pytest.approx(90)
    assert activity.source == "recorded"

    track = store.track_for(activity.id)
    assert track.points_count == 4
    assert track.geojson["type"] == "LineString"
    assert track.geojson["coordinates"][2] == [0.002, 0]
    assert track.bounds["maxLon"] == pytest.approx(0.003)


def test_samples_round_trip_through_store(db):
    store = ActivityStore(db)
    summary = make_summary()
    activity = store.save(summary)
    assert store.samples_for(activity.id) == list(summary.samples)


def test_list_filters_and_orders(db):
    store = ActivityStore(db)
    first = store.save(make_summary("one"))
    second = store.save(make_summary("two"))
    store.save(make_summary("ride"), source="gpx")
    db.query(Activity).filter(Activity.title == "ride").update({"activity_type": "cycling"})
    db.commit()

    runs = store.list_recent(activity_type="running")
    assert [a.id for a in runs] == [second.id, first.id]
    assert len(store.list_recent(limit=1)) == 1
    assert [a.title for a in store.list_recent(activity_type="cycling")] == ["ride"]


def test_delete_removes_track_too(db):
    store = ActivityStore(db)
    activity = store.save(make_summary())
    assert store.delete(activity.id) is True
    assert store.get(activity.id) is None
    assert db.query(ActivityTrack).count() == 0
    assert store.delete(activity.id) is False


def test_update_metrics_overwrites_numbers(db):
    store = ActivityStore(db)
    activity = store.save(make_summary())
    shorter = make_summary(samples=[pt(0, 0, 0, 0), pt(0, 0.001, 0, 10_000)])
    store.update_metrics(activity, shorter)
    assert activity.distance_m == pytest.approx(111.2, abs=0.1)
    assert store.track_for(activity.id).points_count == 2


def test_database_failure_becomes_persistence_error(db, monkeypatch):
    store = ActivityStore(db)

    def broken_flush(*args, **kwargs):
        raise OperationalError("INSERT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db, "flush", broken_flush)
    with pytest.raises(PersistenceError):
        store.save(make_summary())

    monkeypatch.undo()
    assert db.query(Activity).count() == 0


def test_update_details_only_touches_editable_fields(db):
    store = ActivityStore(db)
    activity = store.save(make_summary())
    distance = activity.distance_m

    store.update_details(activity, {"title": "Renamed", "is_public": False, "distance_m": 1.0})
    again = store.get(activity.id)
    assert again.title == "Renamed"
    assert again.is_public is False
    assert again.description == ""
    assert again.distance_m == pytest.approx(distance)


def test_stats_by_type(db):
    store = ActivityStore(db)
    store.save(make_summary("one"))
    store.save(make_summary("two"))
    ride = store.save(make_summary("ride"))
    db.query(Activity).filter(Activity.id == ride.id).update({"activity_type": "cycling"})
    db.commit()

    running, cycling = store.stats_by_type()
    assert running["activity_type"] == "running"
    assert running["count"] == 2
    assert running["total_distance_m"] == pytest.approx(2 * ride.distance_m)
    assert running["total_duration_seconds"] == pytest.approx(180)
    assert running["total_elevation_gain_m"] == pytest.approx(8)
    assert running["avg_pace_s_per_km"] == pytest.approx(180 / (2 * ride.distance_m / 1000))
    assert running["max_speed_kmh"] == pytest.approx(ride.max_speed_kmh)
    assert cycling["activity_type"] == "cycling"
    assert cycling["count"] == 1


def test_stats_empty(db):
    assert ActivityStore(db).stats_by_type() == []
