"""Geospatial utilities including Haversine distance calculation."""

import math


# Earth's radius in meters (spherical approximation)
EARTH_RADIUS_M = 6_371_000


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great-circle distance between two points on Earth.

    Uses the Haversine formula on a spherical Earth.

    Args:
        lat1: Latitude of first point in degrees
        lon1: Longitude of first point in degrees
        lat2: Latitude of second point in degrees
        lon2: Longitude of second point in degrees

    Returns:
        Distance in meters between the two points
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_M * c


def destination_point(
    lat: float, lon: float, bearing: float, distance_m: float
) -> tuple[float, float]:
    """
    Project a point along a great circle (forward geodesic on the sphere).

    Inverse of haversine_distance: the returned point lies exactly
    ``distance_m`` from the origin on the same spherical model.

    Args:
        lat: Origin latitude in degrees
        lon: Origin longitude in degrees
        bearing: Initial bearing in degrees clockwise from north
        distance_m: Distance to travel in meters

    Returns:
        (latitude, longitude) of the destination in degrees
    """
    lat_rad = math.radians(lat)
    lon_rad = math.radians(lon)
    bearing_rad = math.radians(bearing)
    angular = distance_m / EARTH_RADIUS_M

    dest_lat = math.asin(
        math.sin(lat_rad) * math.cos(angular)
        + math.cos(lat_rad) * math.sin(angular) * math.cos(bearing_rad)
    )
    dest_lon = lon_rad + math.atan2(
        math.sin(bearing_rad) * math.sin(angular) * math.cos(lat_rad),
        math.cos(angular) - math.sin(lat_rad) * math.sin(dest_lat),
    )

    # Normalize longitude to [-180, 180)
    dest_lon_deg = (math.degrees(dest_lon) + 540) % 360 - 180
    return math.degrees(dest_lat), dest_lon_deg
