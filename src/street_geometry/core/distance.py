"""
Great-circle distance helpers.

Distance from a point to a way is the distance to its nearest vertex,
not to the nearest point on a segment.
"""

import math
from typing import Iterable, Tuple, Union

from ..models import Vertex

EARTH_RADIUS_M = 6371000.0

VertexLike = Union[Vertex, Tuple[float, float]]


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate distance in meters between two lat/lon points.

    Args:
        lat1, lon1: First point
        lat2, lon2: Second point

    Returns:
        Distance in meters
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)

    a = math.sin(dlat / 2) ** 2 + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_M * c


def _lat_lon(vertex: VertexLike) -> Tuple[float, float]:
    if isinstance(vertex, Vertex):
        return vertex.lat, vertex.lon
    return vertex[0], vertex[1]


def min_distance_meters(lat: float, lon: float, geometry: Iterable[VertexLike]) -> float:
    """Smallest haversine distance from (lat, lon) to any vertex.

    Vertices may be Vertex models or (lat, lon) tuples. Returns math.inf
    for an empty geometry.
    """
    best = math.inf
    for vertex in geometry:
        v_lat, v_lon = _lat_lon(vertex)
        d = haversine_distance(lat, lon, v_lat, v_lon)
        if d < best:
            best = d
    return best


def proximity_bonus(distance_m: float, radius_m: float, weight: float = 0.15) -> float:
    """Score bonus for closeness: weight at distance 0, zero at the radius."""
    if radius_m <= 0 or math.isinf(distance_m):
        return 0.0
    return max(0.0, 1.0 - distance_m / radius_m) * weight
