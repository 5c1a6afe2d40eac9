"""
Nearest named street lookup.

Finds the name of the street closest to a point, used to pre-fill the
street field before a full resolution. Tries Nominatim reverse geocoding
first (fast, single request) and falls back to an Overpass search for the
nearest vertex of any named highway.
"""

import logging
import math
from typing import Any, Optional

import requests

from .cache.ttl_cache import TTLCache
from .config_manager import ResolverConfig
from .core.distance import min_distance_meters
from .errors import UpstreamUnavailableError
from .models import NearbyStreet, validate_point
from .retrieval.overpass_client import OverpassClient
from .retrieval.query_builder import build_named_highway_query

logger = logging.getLogger(__name__)

# Nominatim address keys that name a way, in preference order
NOMINATIM_ROAD_KEYS = ("road", "pedestrian", "footway", "path")


class NearbyStreetFinder:
    """Find the nearest named street to a point."""

    def __init__(
        self,
        config: Optional[ResolverConfig] = None,
        client: Optional[OverpassClient] = None,
        session: Optional[requests.Session] = None,
        cache: Optional[TTLCache] = None,
    ):
        """Initialize finder.

        Args:
            config: Resolver configuration
            client: Overpass client for the fallback search
            session: requests session for Nominatim (and the default client)
            cache: Caller-owned cache for found streets (no caching if None)
        """
        self.config = config or ResolverConfig()
        self._owns_session = session is None
        self.session = session or requests.Session()
        self.client = client or OverpassClient.from_config(self.config, session=self.session)
        self.cache = cache

    def clamp_radius(self, radius_m: Optional[Any]) -> int:
        """Clamp a requested radius to the configured bounds."""
        try:
            radius = float(radius_m) if radius_m is not None else self.config.nearby_default_radius_m
        except (TypeError, ValueError):
            radius = self.config.nearby_default_radius_m
        if math.isnan(radius):
            radius = self.config.nearby_default_radius_m
        radius = max(self.config.nearby_min_radius_m, min(self.config.nearby_max_radius_m, radius))
        return int(round(radius))

    def find(self, lat: Any, lon: Any, radius_m: Optional[Any] = None) -> Optional[NearbyStreet]:
        """Find the nearest named street.

        Args:
            lat, lon: WGS84 point
            radius_m: Overpass search radius (clamped to configured bounds)

        Returns:
            NearbyStreet, or None when no named street is found

        Raises:
            InvalidInputError: If coordinates are missing or non-finite
        """
        lat, lon = validate_point(lat, lon)
        radius = self.clamp_radius(radius_m)

        key = f"{lat:.5f}|{lon:.5f}|{radius}"
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        street = self._reverse_nominatim(lat, lon)
        if street is None:
            street = self._nearest_overpass(lat, lon, radius)

        if street is not None and self.cache is not None:
            self.cache.set(key, street)
        return street

    def _reverse_nominatim(self, lat: float, lon: float) -> Optional[NearbyStreet]:
        """Reverse geocode with Nominatim; None on any failure."""
        try:
            response = self.session.get(
                self.config.nominatim_url,
                params={
                    "format": "jsonv2",
                    "lat": lat,
                    "lon": lon,
                    "zoom": 18,
                    "addressdetails": 1,
                },
                headers={"User-Agent": self.config.user_agent},
                timeout=self.config.timeout_s,
            )
        except requests.exceptions.RequestException as e:
            logger.warning(f"Nominatim reverse failed: {e}")
            return None

        if not response.ok:
            logger.warning(f"Nominatim reverse returned HTTP {response.status_code}")
            return None

        try:
            payload = response.json()
        except ValueError:
            logger.warning("Nominatim reverse returned a non-JSON body")
            return None

        address = payload.get("address") if isinstance(payload, dict) else None
        if not isinstance(address, dict):
            return None

        for key in NOMINATIM_ROAD_KEYS:
            name = str(address.get(key) or "").strip()
            if name:
                return NearbyStreet(name=name, distance_m=0.0, source="nominatim")
        return None

    def _nearest_overpass(self, lat: float, lon: float, radius_m: int) -> Optional[NearbyStreet]:
        """Nearest vertex of any named highway way within radius_m."""
        query = build_named_highway_query(lat, lon, radius_m, timeout_s=20)
        try:
            candidates = self.client.fetch_ways(query)
        except UpstreamUnavailableError as e:
            logger.warning(f"Overpass nearby search failed: {e}")
            return None

        best_name = None
        best_distance = float("inf")
        for candidate in candidates:
            name = candidate.tags.get("name")
            if not name:
                continue
            distance = min_distance_meters(lat, lon, candidate.geometry)
            if distance < best_distance:
                best_distance = distance
                best_name = name

        if best_name is None:
            return None
        return NearbyStreet(name=best_name, distance_m=best_distance, source="overpass")

    def close(self) -> None:
        self.client.close()
        if self._owns_session:
            self.session.close()

    def __enter__(self) -> "NearbyStreetFinder":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
