"""
Pydantic models for queries, candidates and resolution results.
"""

import math
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field
from shapely.geometry import LineString, mapping

from .errors import InvalidInputError


def _finite(value: Any) -> Optional[float]:
    """Coerce to float, None when missing or not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def validate_point(lat: Any, lon: Any) -> Tuple[float, float]:
    """Validate a caller-supplied WGS84 point.

    Raises:
        InvalidInputError: If a coordinate is missing, non-finite or out
            of range
    """
    lat_value = _finite(lat)
    lon_value = _finite(lon)
    if lat_value is None or lon_value is None:
        raise InvalidInputError("Missing lat/lon")
    if not -90 <= lat_value <= 90 or not -180 <= lon_value <= 180:
        raise InvalidInputError(f"Coordinates out of range: {lat_value}, {lon_value}")
    return lat_value, lon_value


class RawQuery(BaseModel):
    """A single street lookup as supplied by the caller."""

    street_name: str
    city: str = ""
    barangay: str = ""
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)

    class Config:
        """Pydantic config."""
        frozen = True

    @classmethod
    def build(
        cls,
        street_name: Any,
        city: Any = "",
        barangay: Any = "",
        lat: Any = None,
        lon: Any = None,
    ) -> "RawQuery":
        """Validate raw caller values and build a query.

        Raises:
            InvalidInputError: If the street name is blank or a coordinate
                is missing, non-finite or out of range
        """
        street = str(street_name if street_name is not None else "").strip()
        if not street:
            raise InvalidInputError("Missing streetName")

        lat_value, lon_value = validate_point(lat, lon)

        return cls(
            street_name=street,
            city=str(city or "").strip(),
            barangay=str(barangay or "").strip(),
            lat=lat_value,
            lon=lon_value,
        )


class Vertex(BaseModel):
    """One WGS84 vertex of a way."""

    lat: float
    lon: float

    class Config:
        """Pydantic config."""
        frozen = True


class Candidate(BaseModel):
    """A named OSM way returned by the spatial database."""

    id: int
    tags: Dict[str, str] = Field(default_factory=dict)
    geometry: List[Vertex] = Field(..., min_length=1)

    class Config:
        """Pydantic config."""
        frozen = True

    @classmethod
    def from_element(cls, element: Any) -> Optional["Candidate"]:
        """Build a candidate from an Overpass JSON element.

        Returns:
            Candidate, or None for non-way elements, ways without an integer
            id or tag mapping, and ways without any usable vertex
        """
        if not isinstance(element, dict) or element.get("type") != "way":
            return None

        way_id = element.get("id")
        if isinstance(way_id, bool) or not isinstance(way_id, (int, str)):
            return None
        try:
            way_id = int(way_id)
        except ValueError:
            return None

        tags = element.get("tags") or {}
        if not isinstance(tags, dict):
            return None

        raw_geometry = element.get("geometry")
        if not isinstance(raw_geometry, list):
            return None

        vertices = []
        for node in raw_geometry:
            if not isinstance(node, dict):
                continue
            lat, lon = _finite(node.get("lat")), _finite(node.get("lon"))
            if lat is None or lon is None:
                continue
            vertices.append(Vertex(lat=lat, lon=lon))

        if not vertices:
            return None

        return cls(
            id=way_id,
            tags={str(k): str(v) for k, v in tags.items()},
            geometry=vertices,
        )

    @property
    def display_name(self) -> Optional[str]:
        for tag in ("name", "official_name", "short_name", "alt_name"):
            if self.tags.get(tag):
                return self.tags[tag]
        return None

    def to_linestring(self) -> LineString:
        """Shapely LineString in (lon, lat) order.

        A single-vertex way becomes a zero-length line so the output is
        always a LineString.
        """
        coords = [(v.lon, v.lat) for v in self.geometry]
        if len(coords) == 1:
            coords = coords * 2
        return LineString(coords)

    def to_feature(self, chosen_name: Optional[str] = None) -> Dict[str, Any]:
        """GeoJSON Feature tagged with the matched name."""
        return {
            "type": "Feature",
            "properties": {
                "id": self.id,
                "name": chosen_name or self.display_name,
            },
            "geometry": mapping(self.to_linestring()),
        }


class ScoredMatch(BaseModel):
    """A (candidate, name variant) pair with its composite score."""

    candidate: Candidate
    matched_name: str
    base_score: float = Field(..., ge=0, le=1)
    distance_m: float = Field(..., ge=0)
    proximity_bonus: float = Field(..., ge=0)
    score: float


class TierAttempt(BaseModel):
    """Outcome of one retrieval tier, kept for diagnostics."""

    tier: str
    radius_m: float
    candidates: int = 0
    upstream_failed: bool = False
    elapsed_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tier": self.tier,
            "radiusMeters": self.radius_m,
            "candidates": self.candidates,
            "upstreamFailed": self.upstream_failed,
            "elapsedMs": self.elapsed_ms,
        }


EMPTY_FEATURE_COLLECTION: Dict[str, Any] = {"type": "FeatureCollection", "features": []}


class ResolutionResult(BaseModel):
    """Outcome of resolving one street query."""

    matched: bool
    feature: Optional[Dict[str, Any]] = None
    best_score: Optional[float] = None
    matched_name: Optional[str] = None
    target: Optional[str] = None
    tier: Optional[str] = None
    radius_m: Optional[float] = None
    tiers_attempted: List[TierAttempt] = Field(default_factory=list)
    note: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the response shape consumed by map clients."""
        return {
            "matched": self.matched,
            "geometry": self.feature if self.matched and self.feature else dict(EMPTY_FEATURE_COLLECTION, features=[]),
            "meta": {
                "matched": self.matched,
                "bestScore": self.best_score,
                "name": self.matched_name,
                "target": self.target,
                "tier": self.tier,
                "radiusMeters": self.radius_m,
                "tiersAttempted": [attempt.to_dict() for attempt in self.tiers_attempted],
                "note": self.note,
            },
        }


class NearbyStreet(BaseModel):
    """Nearest named street to a point."""

    name: str
    distance_m: float = Field(0.0, ge=0)
    source: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "bestDistanceMeters": round(self.distance_m),
            "source": self.source,
        }
