"""
HTTP tests for the tracking and activities routers.
"""

import asyncio
import uuid

import httpx
import pytest


def get_client():
    # conftest points DATABASE_URL at a temporary SQLite file
    from trailzap.main import app  # noqa: WPS433
    from fastapi.testclient import TestClient  # noqa: WPS433
    return TestClient(app)


@pytest.fixture
def client():
    return get_client()


@pytest.fixture
def device():
    return f"device-{uuid.uuid4().hex[:8]}"


def fix(lat, lon, alt=None, ts=0):
    return {"latitude": lat, "longitude": lon, "altitude": alt, "timestamp": ts}


def test_root_ok(client):
    r = client.get("/")
    assert r.status_code == 200
    assert "message" in r.json()


# =============================================================================
# Live tracking
# =============================================================================

class TestTracking:

    def test_full_recording_flow(self, client, device):
        r = client.post(f"/tracking/{device}/start", json={"initial": fix(0, 0, 0, 0)})
        assert r.status_code == 200, r.text
        assert r.json()["state"] == "active"
        assert r.json()["sample_count"] == 1

        r = client.post(
            f"/tracking/{device}/samples",
            json=[fix(0, 0.001, 5, 10_000), fix(95, 0, None, 12_000), fix(0, 0.002, 3, 20_000)],
        )
        assert r.status_code == 200, r.text
        body = r.json()
        assert (body["received"], body["accepted"], body["rejected"]) == (3, 2, 1)
        assert body["metrics"]["distance_m"] == pytest.approx(222.4, abs=0.5)
        assert body["metrics"]["elevation_gain_m"] == pytest.approx(5)

        assert client.post(f"/tracking/{device}/pause").json()["state"] == "paused"
        r = client.post(f"/tracking/{device}/samples", json=[fix(0, 0.003, 3, 25_000)])
        assert r.status_code == 409

        assert client.post(f"/tracking/{device}/resume").json()["state"] == "active"
        assert client.post(f"/tracking/{device}/stop").json()["state"] == "stopped"

        segments = client.get(f"/tracking/{device}/segments").json()
        assert [s["index"] for s in segments] == [1, 2]
        assert all(s["valid"] for s in segments)

        # a few real seconds of recording is below the minimum duration
        payload = {"title": "Track stand", "activity_type": "walking"}
        r = client.post(f"/tracking/{device}/save", json=payload)
        assert r.status_code == 422

        r = client.post(f"/tracking/{device}/save", json={**payload, "force": True})
        assert r.status_code == 200, r.text
        saved = r.json()
        assert saved["title"] == "Track stand"
        assert saved["activity_type"] == "walking"
        assert saved["source"] == "recorded"
        assert saved["distance_m"] == pytest.approx(222.4, abs=0.5)

        # the session is gone, the activity is stored
        assert client.get(f"/tracking/{device}").status_code == 404
        assert client.get(f"/activities/{saved['id']}").status_code == 200

    def test_start_without_fix_is_unavailable(self, client, device):
        r = client.post(f"/tracking/{device}/start", json={})
        assert r.status_code == 503
        assert client.get(f"/tracking/{device}").json()["state"] == "idle"

        r = client.post(f"/tracking/{device}/start", json={"initial": fix(1, 1)})
        assert r.status_code == 200
        assert r.json()["state"] == "active"

    def test_illegal_transitions_conflict(self, client, device):
        client.post(f"/tracking/{device}/start", json={})
        assert client.post(f"/tracking/{device}/pause").status_code == 409
        assert client.post(f"/tracking/{device}/stop").status_code == 409

        client.post(f"/tracking/{device}/start", json={"initial": fix(1, 1)})
        client.post(f"/tracking/{device}/stop")
        r = client.post(f"/tracking/{device}/start", json={"initial": fix(1, 1)})
        assert r.status_code == 409

    def test_save_requires_stop(self, client, device):
        client.post(f"/tracking/{device}/start", json={"initial": fix(1, 1)})
        r = client.post(f"/tracking/{device}/save", json={"title": "x", "force": True})
        assert r.status_code == 409

    def test_unknown_device(self, client, device):
        assert client.get(f"/tracking/{device}").status_code == 404
        assert client.post(f"/tracking/{device}/samples", json=[fix(0, 0)]).status_code == 404

    def test_reset_discards_track(self, client, device):
        client.post(f"/tracking/{device}/start", json={"initial": fix(1, 1)})
        client.post(f"/tracking/{device}/samples", json=[fix(1, 1.001, None, 5000)])
        r = client.post(f"/tracking/{device}/reset")
        assert r.status_code == 200
        assert client.get(f"/tracking/{device}").status_code == 404

        # a fresh recording starts from nothing
        r = client.post(f"/tracking/{device}/start", json={"initial": fix(2, 2)})
        assert r.json()["sample_count"] == 1
        assert r.json()["distance_m"] == 0


# =============================================================================
# Stored activities
# =============================================================================

SAMPLES = [fix(0, 0, 100, 0), fix(0, 0.001, 104, 30_000), fix(0, 0.002, 102, 60_000)]

GPX = b"""<?xml version="1.0" encoding="UTF-8"?>
<gpx version="1.1" creator="tests" xmlns="http://www.topografix.com/GPX/1/1">
  <trk>
    <name>Imported hike</name>
    <trkseg>
      <trkpt lat="46.0" lon="8.0"><ele>500</ele><time>2024-06-01T08:00:00Z</time></trkpt>
      <trkpt lat="46.001" lon="8.0"><ele>520</ele><time>2024-06-01T08:01:00Z</time></trkpt>
    </trkseg>
  </trk>
</gpx>
"""


class TestActivities:

    def test_create_get_track_and_delete(self, client):
        title = f"Easy run {uuid.uuid4().hex[:6]}"
        r = client.post("/activities/", json={"title": title, "samples": SAMPLES})
        assert r.status_code == 200, r.text
        a = r.json()
        assert a["source"] == "manual"
        assert a["activity_type"] == "running"
        assert a["duration_seconds"] == pytest.approx(60)
        assert a["duration"] == "1:00"
        assert a["distance_m"] == pytest.approx(222.4, abs=0.5)
        assert a["elevation_gain_m"] == pytest.approx(4)
        assert a["pace"].endswith("/km")

        assert client.get(f"/activities/{a['id']}").json()["title"] == title

        track = client.get(f"/activities/{a['id']}/track").json()
        assert track["points_count"] == 3
        assert track["geojson"]["coordinates"][0] == [0, 0, 100]

        listed = client.get("/activities/", params={"activity_type": "running", "limit": 100}).json()
        assert any(x["id"] == a["id"] for x in listed)
        listed = client.get("/activities/", params={"activity_type": "swimming", "limit": 100}).json()
        assert all(x["id"] != a["id"] for x in listed)

        assert client.delete(f"/activities/{a['id']}").status_code == 200
        assert client.get(f"/activities/{a['id']}").status_code == 404
        assert client.delete(f"/activities/{a['id']}").status_code == 404

    def test_duration_override_sets_pace(self, client):
        r = client.post(
            "/activities/",
            json={"title": "Paused run", "samples": SAMPLES, "duration_seconds": 45},
        )
        a = r.json()
        assert a["duration_seconds"] == pytest.approx(45)
        assert a["avg_pace_s_per_km"] == pytest.approx(45 / (a["distance_m"] / 1000))

    def test_create_rejects_empty_or_invalid_samples(self, client):
        assert client.post("/activities/", json={"title": "x", "samples": []}).status_code == 422
        r = client.post("/activities/", json={"title": "x", "samples": [fix(120, 0), fix(0, 500)]})
        assert r.status_code == 422

    def test_reprocess_keeps_duration(self, client):
        a = client.post(
            "/activities/",
            json={"title": "Reprocess me", "samples": SAMPLES, "duration_seconds": 50},
        ).json()
        r = client.post(f"/activities/{a['id']}/reprocess")
        assert r.status_code == 200, r.text
        again = r.json()
        assert again["duration_seconds"] == pytest.approx(50)
        assert again["distance_m"] == pytest.approx(a["distance_m"])
        assert again["elevation_gain_m"] == pytest.approx(a["elevation_gain_m"])

    def test_missing_activity(self, client):
        assert client.get("/activities/999999").status_code == 404
        assert client.get("/activities/999999/track").status_code == 404
        assert client.post("/activities/999999/reprocess").status_code == 404

    def test_import_gpx(self, client):
        r = client.post(
            "/activities/import",
            params={"activity_type": "hiking"},
            files={"file": ("hike.gpx", GPX, "application/gpx+xml")},
        )
        assert r.status_code == 200, r.text
        a = r.json()
        assert a["title"] == "Imported hike"
        assert a["source"] == "gpx"
        assert a["activity_type"] == "hiking"
        assert a["duration_seconds"] == pytest.approx(60)
        assert a["elevation_gain_m"] == pytest.approx(20)

    @pytest.mark.parametrize(
        "name,content",
        [("ride.fit", b"\x0e\x10"), ("broken.gpx", b"not a gpx file <"), ("latin.gpx", b"\xff\xfe\x00")],
    )
    def test_import_rejects_bad_files(self, client, name, content):
        r = client.post("/activities/import", files={"file": (name, content, "application/octet-stream")})
        assert r.status_code == 400

    def test_update_details(self, client):
        a = client.post("/activities/", json={"title": "Before", "samples": SAMPLES}).json()
        r = client.put(f"/activities/{a['id']}", json={"title": "After", "is_public": False})
        assert r.status_code == 200, r.text
        updated = r.json()
        assert updated["title"] == "After"
        assert updated["is_public"] is False
        assert updated["distance_m"] == pytest.approx(a["distance_m"])
        assert client.get(f"/activities/{a['id']}").json()["title"] == "After"

        assert client.put(f"/activities/{a['id']}", json={"title": ""}).status_code == 422
        assert client.put("/activities/999999", json={"title": "x"}).status_code == 404

    def test_stats_per_type(self, client):
        client.post("/activities/", json={"title": "Swim", "activity_type": "swimming", "samples": SAMPLES})
        r = client.get("/activities/stats")
        assert r.status_code == 200, r.text
        by_type = {s["activity_type"]: s for s in r.json()}
        swim = by_type["swimming"]
        assert swim["count"] >= 1
        assert swim["total_distance_m"] >= 222
        assert swim["avg_pace"].endswith("/km")
        assert swim["total_duration"]


# =============================================================================
# Concurrency
# =============================================================================

def test_tracking_handlers_run_on_event_loop():
    from trailzap.main import app

    tracking = [r for r in app.routes if getattr(r, "path", "").startswith("/tracking")]
    assert tracking
    assert all(asyncio.iscoroutinefunction(r.endpoint) for r in tracking)


def test_concurrent_sample_batches_are_credited_to_their_request(device):
    from trailzap.main import app

    async def scenario():
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
            await ac.post(f"/tracking/{device}/start", json={"initial": fix(0, 0, 0, 0)})
            batches = [
                [fix(0, 0.0001 * (i + 1), None, 10_000 * (i + 1)) for i in range(n)]
                for n in (3, 5)
            ]
            return await asyncio.gather(
                *(ac.post(f"/tracking/{device}/samples", json=b) for b in batches)
            )

    responses = asyncio.run(scenario())
    assert [r.json()["accepted"] for r in responses] == [3, 5]
    assert max(r.json()["metrics"]["sample_count"] for r in responses) == 9
