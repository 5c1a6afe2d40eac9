"""
Tiered candidate retrieval.

Runs the retrieval tiers in order and stops at the first tier that
returns any candidate. Upstream outages only make a tier empty, so a
complete outage ends with no candidates rather than an error.
"""

import copy
import logging
import threading
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ..config_manager import ResolverConfig
from ..models import Candidate, TierAttempt
from .overpass_client import OverpassClient
from .tiers import RetrievalTier, default_tiers

logger = logging.getLogger(__name__)


@dataclass
class RetrievalOutcome:
    """Candidates from the first productive tier plus every attempt made."""
    candidates: List[Candidate] = field(default_factory=list)
    tier: Optional[str] = None
    radius_m: Optional[float] = None
    attempts: List[TierAttempt] = field(default_factory=list)

    @property
    def upstream_unavailable(self) -> bool:
        """True when every attempted tier failed upstream."""
        return bool(self.attempts) and all(a.upstream_failed for a in self.attempts)


class CandidateRetriever:
    """Retrieves candidate ways around a point through ordered tiers."""

    def __init__(
        self,
        client: OverpassClient,
        tiers: Optional[Sequence[RetrievalTier]] = None,
        config: Optional[ResolverConfig] = None,
    ):
        """Initialize retriever.

        Args:
            client: Overpass client used by every tier
            tiers: Tiers in fallback order (default: built from config)
            config: Resolver configuration for the default tiers
        """
        self.client = client
        self.config = config or ResolverConfig()
        self.tiers = list(tiers) if tiers is not None else default_tiers(self.config)

    def tiers_for_radius(self, radius_m: Optional[float]) -> List[RetrievalTier]:
        """The configured tiers with the primary radius overridden.

        Tiers searching at the configured primary radius move to radius_m;
        the other tiers keep their radius but never search a smaller area
        than radius_m. The tier objects themselves are left untouched.
        """
        if radius_m is None or radius_m == self.config.search_radius_m:
            return self.tiers

        overridden = []
        for tier in self.tiers:
            tier_copy = copy.copy(tier)
            if tier.radius_m == self.config.search_radius_m:
                tier_copy.radius_m = radius_m
            else:
                tier_copy.radius_m = max(radius_m, tier.radius_m)
            overridden.append(tier_copy)
        return overridden

    def retrieve(
        self,
        lat: float,
        lon: float,
        target: str,
        radius_m: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> RetrievalOutcome:
        """Run tiers in order until one returns candidates.

        Args:
            lat, lon: Query point
            target: Canonical street name
            radius_m: Primary search radius (default from config)
            cancel_event: Cancellation flag passed to the client

        Returns:
            RetrievalOutcome; empty candidates when every tier came back empty
        """
        outcome = RetrievalOutcome()

        for tier in self.tiers_for_radius(radius_m):
            result = tier.run(self.client, lat, lon, target, cancel_event=cancel_event)
            outcome.attempts.append(result.attempt)

            if result.found:
                outcome.candidates = result.candidates
                outcome.tier = tier.name
                outcome.radius_m = tier.radius_m
                return outcome

        logger.info(f"No candidates for {target!r} after {len(outcome.attempts)} tier(s)")
        return outcome
