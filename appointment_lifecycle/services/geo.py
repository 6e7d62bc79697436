"""Geo-distance calculation for appointment check-in."""

import math

from appointment_lifecycle.errors import InvalidCoordinate

EARTH_RADIUS_METERS = 6_371_000


def validate_coordinate(latitude: float, longitude: float) -> tuple[float, float]:
    """Return the pair as floats, or raise InvalidCoordinate if out of range."""
    try:
        lat = float(latitude)
        lon = float(longitude)
    except (TypeError, ValueError):
        raise InvalidCoordinate(
            "Coordinates must be numeric",
            {"latitude": latitude, "longitude": longitude},
        )

    errors = {}
    if math.isnan(lat) or not -90.0 <= lat <= 90.0:
        errors["latitude"] = latitude
    if math.isnan(lon) or not -180.0 <= lon <= 180.0:
        errors["longitude"] = longitude
    if errors:
        raise InvalidCoordinate("Coordinate out of range", errors)
    return lat, lon


def haversine_meters(
    lat1: float, lon1: float, lat2: float, lon2: float
) -> int:
    """Great-circle distance between two points, floored to whole meters."""
    lat1, lon1 = validate_coordinate(lat1, lon1)
    lat2, lon2 = validate_coordinate(lat2, lon2)

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    # Rounding can push a a hair past 1 for antipodal points
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return max(0, math.floor(EARTH_RADIUS_METERS * c))
