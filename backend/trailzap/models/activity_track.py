from sqlalchemy import JSON, Column, ForeignKey, Integer
from sqlalchemy.dialects.postgresql import JSONB
from trailzap.db import Base

# JSONB on Postgres, plain JSON elsewhere (SQLite in tests)
JsonType = JSON().with_variant(JSONB(), "postgresql")


class ActivityTrack(Base):
    __tablename__ = "activity_track"

    activity_id = Column(Integer, ForeignKey("activities.id", ondelete="CASCADE"), primary_key=True)
    geojson = Column(JsonType, nullable=True)  # LineString [lon, lat, alt?]
    bounds = Column(JsonType, nullable=True)   # {minLat, minLon, maxLat, maxLon}
    points_count = Column(Integer, nullable=True)
    # Full ordered sample list: [{latitude, longitude, altitude, timestamp}]
    samples = Column(JsonType, nullable=True)
