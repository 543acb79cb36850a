from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String
from sqlalchemy.sql import func
from trailzap.db import Base


class Activity(Base):
    __tablename__ = "activities"

    id = Column(Integer, primary_key=True, index=True)

    title = Column(String(100), nullable=False)
    description = Column(String(1000), nullable=False, server_default="")

    # running, cycling, walking, hiking, swimming, other
    activity_type = Column(String(20), nullable=False, server_default="running", index=True)

    start_time = Column(DateTime(timezone=True), nullable=True)
    end_time = Column(DateTime(timezone=True), nullable=True)

    # Active time only (pauses excluded), seconds
    duration_seconds = Column(Float, nullable=False, default=0.0)
    distance_m = Column(Float, nullable=False, default=0.0)
    elevation_gain_m = Column(Float, nullable=False, default=0.0)
    # NULL when no distance was covered (pace undefined)
    avg_pace_s_per_km = Column(Float, nullable=True)
    max_speed_kmh = Column(Float, nullable=False, default=0.0)

    is_public = Column(Boolean, nullable=False, default=True)

    # Origin of the samples: recorded, manual, gpx
    source = Column(String(20), nullable=False, server_default="recorded")

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
