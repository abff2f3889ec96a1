"""Internal constants shared across the library."""

#: Mean earth radius used by the haversine formula, in meters.
EARTH_RADIUS_M = 6_371_000.0

MPS_TO_KMH = 3.6

# ------------------------------------------------------------------
# Detector tuning that is not exposed through VerificationConfig
# ------------------------------------------------------------------

#: Extra meters around the geofence inside which a jump/speed spike is
#: treated as GPS drift rather than relocation.
DRIFT_MARGIN_METERS = 300.0

#: Jumps at or above this distance are never treated as drift.
DRIFT_MAX_JUMP_METERS = 1000.0

#: Displacement at or below which a subject counts as stationary.
STATIONARY_THRESHOLD_METERS = 50.0

#: Pairs closer together in time than this are skipped by the speed check.
MIN_SPEED_INTERVAL_SECONDS = 3.0

# Threshold to distinguish epoch seconds from milliseconds.
MS_THRESHOLD = 100_000_000_000

#: Decimal places kept when coordinates are written to logs (~110 m).
LOG_COORDINATE_PRECISION = 3
