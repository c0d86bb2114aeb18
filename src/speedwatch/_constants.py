"""Internal constants shared across the library."""

USER_AGENT = "speedwatch/1"

DEFAULT_SPEED_LIMIT_KPH: float = 60.0
WARNING_MULTIPLIER: float = 1.10

# ------------------------------------------------------------------
# Speed units  (m/s → km/h)
# ------------------------------------------------------------------

KPH_PER_MPS: float = 3.6


def mps_to_kph(speed_mps: float) -> float:
    """Convert a speed in metres/second to km/h."""
    return float(speed_mps) * KPH_PER_MPS


# ------------------------------------------------------------------
# Display
# ------------------------------------------------------------------

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

COLOR_EXCEEDING = 0xFFCC0000
COLOR_WARNING = 0xFFFF8800
COLOR_NORMAL = 0xFFAAAAAA
