"""
Distance calculation utilities.
"""

import math
from typing import Tuple

EARTH_RADIUS_M = 6371000
METERS_PER_DEGREE_LAT = 111320.0


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great circle distance between two points on Earth.

    Args:
        lat1, lon1: First point coordinates
        lat2, lon2: Second point coordinates

    Returns:
        Distance in meters
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (math.sin(delta_lat / 2) ** 2 +
         math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_M * c


def meters_to_degrees(meters: float, latitude: float) -> Tuple[float, float]:
    """
    Convert a distance to (lat_degrees, lon_degrees) at a given latitude.
    """
    lat_deg = meters / METERS_PER_DEGREE_LAT
    cos_lat = max(math.cos(math.radians(latitude)), 1e-6)
    lon_deg = meters / (METERS_PER_DEGREE_LAT * cos_lat)
    return lat_deg, lon_deg


def offset_coords(lat: float, lon: float, north_m: float = 0.0, east_m: float = 0.0) -> Tuple[float, float]:
    """Shift a coordinate by a number of meters north and east."""
    lat_per_m, lon_per_m = meters_to_degrees(1.0, lat)
    return lat + north_m * lat_per_m, lon + east_m * lon_per_m


def bbox_margin_m(route_distance_m: float) -> float:
    """
    Margin added around origin/destination when fetching data.

    Short trips get a wider relative margin so alternates have room to diverge.
    """
    if route_distance_m < 1000:
        return 500.0
    if route_distance_m < 3000:
        return 400.0
    return 300.0
