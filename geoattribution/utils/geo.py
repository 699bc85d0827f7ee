"""Geographic utility functions."""


def is_valid_coordinates(lat: float, lon: float) -> bool:
    """Check if latitude and longitude are within WGS84 bounds."""
    return -90 <= lat <= 90 and -180 <= lon <= 180


def clean_coordinates(
    lat: float | None,
    lon: float | None,
    precision: int = 6,
) -> tuple[float | None, float | None]:
    """Round a coordinate pair to storage precision, dropping invalid pairs.

    The log stores coordinates as NUMERIC(9, 6); rounding here keeps a resolved
    value equal to its own stored copy on the next run.

    Args:
        lat: Latitude value (may be a string or Decimal)
        lon: Longitude value (may be a string or Decimal)
        precision: Number of decimal places kept

    Returns:
        Tuple of (lat, lon), or (None, None) if either is missing or invalid
    """
    if lat is None or lon is None:
        return None, None

    try:
        lat = round(float(lat), precision)
        lon = round(float(lon), precision)
    except (TypeError, ValueError):
        return None, None

    if not is_valid_coordinates(lat, lon):
        return None, None

    return lat, lon
