import logging
import sys

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from trailzap.api.activities import router as activities_router
from trailzap.api.tracking import router as tracking_router
from trailzap.db import Base, engine
from trailzap.models.activity import Activity  # noqa: F401  (import ensures table is registered)
from trailzap.models.activity_track import ActivityTrack  # noqa: F401
from trailzap.core.config import settings
from trailzap.tracking.registry import TrackerRegistry


logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

app = FastAPI()

# Allow CORS for the mobile client / local frontend
origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Create DB tables (activities, activity_track) on startup
Base.metadata.create_all(bind=engine)

# One recording session per device, shared by the tracking routes
app.state.trackers = TrackerRegistry(max_speed_mps=settings.max_plausible_speed_mps)

app.include_router(activities_router)
app.include_router(tracking_router)


@app.get("/")
def root():
    return {"message": "TrailZap backend is running"}
