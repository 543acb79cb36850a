"""Shared application constants.

Centralizes repeat values used across track processing so we can
document and adjust them in one place.
"""

# Mean Earth radius used by the haversine formula, in meters
EARTH_RADIUS_M = 6371000.0

# Meters in one kilometer
KM_M = 1000.0

# m/s -> km/h
MPS_TO_KMH = 3.6

# Valid coordinate ranges (degrees)
LAT_RANGE = (-90.0, 90.0)
LON_RANGE = (-180.0, 180.0)
