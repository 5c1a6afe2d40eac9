"""
Retrieval tiers.

Each tier is one strategy for finding candidate ways around a point.
Tiers are tried in order by the CandidateRetriever; the first tier that
returns candidates ends the search.
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional

from ..errors import UpstreamUnavailableError
from ..models import Candidate, TierAttempt
from .overpass_client import OverpassClient
from .query_builder import build_named_highway_query, build_token_filtered_query

logger = logging.getLogger(__name__)


@dataclass
class TierResult:
    """Result of running a single tier."""
    attempt: TierAttempt
    candidates: List[Candidate] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return bool(self.candidates)


class RetrievalTier(ABC):
    """Abstract base class for retrieval tiers."""

    def __init__(self, name: str, radius_m: float, timeout_s: int = 25):
        """Initialize tier.

        Args:
            name: Unique tier name, reported in diagnostics
            radius_m: Search radius; also the radius used for proximity
                scoring of candidates found by this tier
            timeout_s: Server-side Overpass timeout
        """
        self.name = name
        self.radius_m = radius_m
        self.timeout_s = timeout_s

    @abstractmethod
    def build_query(self, lat: float, lon: float, target: str) -> str:
        """Build the Overpass query for this tier."""

    def run(
        self,
        client: OverpassClient,
        lat: float,
        lon: float,
        target: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> TierResult:
        """Run tier against the client.

        An upstream failure is recorded on the attempt and yields no
        candidates; it is not raised.
        """
        start_time = time.time()
        query = self.build_query(lat, lon, target)

        upstream_failed = False
        try:
            candidates = client.fetch_ways(query, cancel_event=cancel_event)
        except UpstreamUnavailableError as e:
            logger.warning(f"Tier {self.name}: {e}")
            candidates = []
            upstream_failed = True

        attempt = TierAttempt(
            tier=self.name,
            radius_m=self.radius_m,
            candidates=len(candidates),
            upstream_failed=upstream_failed,
            elapsed_ms=int((time.time() - start_time) * 1000),
        )
        logger.info(
            f"Tier {self.name} (r={self.radius_m:.0f}m): {len(candidates)} candidate(s)"
            + (" [upstream unavailable]" if upstream_failed else "")
        )
        return TierResult(attempt=attempt, candidates=candidates)


class TokenFilteredTier(RetrievalTier):
    """Ways whose name tags match leading target tokens, plus close named ways."""

    def __init__(
        self,
        radius_m: float = 1500.0,
        close_radius_m: float = 400.0,
        max_tokens: int = 3,
        timeout_s: int = 25,
    ):
        super().__init__("token_filtered", radius_m, timeout_s)
        self.close_radius_m = close_radius_m
        self.max_tokens = max_tokens

    def build_query(self, lat: float, lon: float, target: str) -> str:
        return build_token_filtered_query(
            lat,
            lon,
            target,
            radius_m=self.radius_m,
            close_radius_m=self.close_radius_m,
            max_tokens=self.max_tokens,
            timeout_s=self.timeout_s,
        )


class NamedHighwayTier(RetrievalTier):
    """Any named highway way within the radius."""

    def build_query(self, lat: float, lon: float, target: str) -> str:
        return build_named_highway_query(lat, lon, self.radius_m, timeout_s=self.timeout_s)


def default_tiers(config) -> List[RetrievalTier]:
    """Token-filtered search, then named ways nearby, then a wider radius."""
    timeout_s = int(round(config.timeout_s))
    return [
        TokenFilteredTier(
            radius_m=config.search_radius_m,
            close_radius_m=config.close_radius_m,
            max_tokens=config.max_filter_tokens,
            timeout_s=timeout_s,
        ),
        NamedHighwayTier("named_nearby", config.search_radius_m, timeout_s),
        NamedHighwayTier("named_wide", config.wide_radius_m, timeout_s),
    ]
