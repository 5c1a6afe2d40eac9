"""
Street match resolver.

Resolves an informally written street name near a point to the single
best matching OSM way:

    CANONICALIZING  alias table, then generic canonicalization
    RETRIEVING      tiered Overpass retrieval (token filter, named, wide)
    SCORING         every (candidate, name variant) pair is scored as
                    text similarity + proximity bonus
    MATCHED / UNMATCHED
                    best score against the acceptance threshold

Upstream outages and weak matches both end in an unmatched result. Only
malformed input raises, and it does so before any request is made.
"""

import logging
import threading
from enum import Enum
from typing import Any, Iterable, List, Optional, Sequence

import requests

from .config_manager import ResolverConfig
from .core.canonicalize import ALIAS_RULES, AliasRule, candidate_name_variants, canonical_target
from .core.distance import min_distance_meters, proximity_bonus
from .core.similarity import name_match_score
from .errors import InvalidInputError
from .models import Candidate, RawQuery, ResolutionResult, ScoredMatch
from .retrieval.candidate_retriever import CandidateRetriever, RetrievalOutcome
from .retrieval.overpass_client import OverpassClient

logger = logging.getLogger(__name__)


class ResolutionState(str, Enum):
    """Resolution state machine states."""
    CANONICALIZING = "CANONICALIZING"
    RETRIEVING = "RETRIEVING"
    SCORING = "SCORING"
    MATCHED = "MATCHED"
    UNMATCHED = "UNMATCHED"


class MatchScorer:
    """Scores candidate ways against a canonical target."""

    def __init__(
        self,
        bonus_weight: float = 0.15,
        containment_score: float = 0.92,
    ):
        self.bonus_weight = bonus_weight
        self.containment_score = containment_score

    def score_candidate(
        self,
        candidate: Candidate,
        target: str,
        lat: float,
        lon: float,
        radius_m: float,
    ) -> List[ScoredMatch]:
        """Score every name variant of one candidate, in enumeration order."""
        variants = candidate_name_variants(candidate.tags)
        if not variants:
            return []

        distance_m = min_distance_meters(lat, lon, candidate.geometry)
        bonus = proximity_bonus(distance_m, radius_m, self.bonus_weight)

        scored = []
        for name in variants:
            base = name_match_score(name, target, self.containment_score)
            scored.append(ScoredMatch(
                candidate=candidate,
                matched_name=name,
                base_score=base,
                distance_m=distance_m,
                proximity_bonus=bonus,
                score=base + bonus,
            ))
        return scored

    def best_match(
        self,
        candidates: Iterable[Candidate],
        target: str,
        lat: float,
        lon: float,
        radius_m: float,
    ) -> Optional[ScoredMatch]:
        """Highest scoring pair; ties keep the first pair encountered."""
        best: Optional[ScoredMatch] = None
        for candidate in candidates:
            for match in self.score_candidate(candidate, target, lat, lon, radius_m):
                logger.debug(
                    f"  way {candidate.id} {match.matched_name!r}: "
                    f"base={match.base_score:.3f} d={match.distance_m:.0f}m score={match.score:.3f}"
                )
                if best is None or match.score > best.score:
                    best = match
        return best


class StreetMatchResolver:
    """Resolve street names near a point to OSM way geometries."""

    def __init__(
        self,
        config: Optional[ResolverConfig] = None,
        retriever: Optional[CandidateRetriever] = None,
        alias_rules: Sequence[AliasRule] = ALIAS_RULES,
        session: Optional[requests.Session] = None,
    ):
        """Initialize resolver.

        Args:
            config: Resolver configuration (defaults if omitted)
            retriever: Candidate retriever (built from config if omitted)
            alias_rules: Ordered alias override table
            session: requests session for the default Overpass client
        """
        self.config = config or ResolverConfig()
        if retriever is None:
            client = OverpassClient.from_config(self.config, session=session)
            retriever = CandidateRetriever(client, config=self.config)
        self.retriever = retriever
        self.alias_rules = tuple(alias_rules)
        self.scorer = MatchScorer(
            bonus_weight=self.config.proximity_bonus_weight,
            containment_score=self.config.containment_score,
        )

    def resolve(
        self,
        street_name: Any,
        city: Any = "",
        barangay: Any = "",
        lat: Any = None,
        lon: Any = None,
        radius_m: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ResolutionResult:
        """Resolve one street query.

        Args:
            street_name: Street name as typed by the user
            city: City name (used by alias rules)
            barangay: Barangay / district name (used by alias rules)
            lat, lon: Approximate WGS84 location
            radius_m: Primary search radius (default from config)
            cancel_event: Set to abandon in-flight upstream requests

        Returns:
            ResolutionResult, matched or not

        Raises:
            InvalidInputError: If the street name or coordinates are unusable
            ResolutionCancelledError: If cancel_event was set
        """
        query = RawQuery.build(street_name, city, barangay, lat, lon)
        return self.resolve_query(query, radius_m=radius_m, cancel_event=cancel_event)

    def resolve_query(
        self,
        query: RawQuery,
        radius_m: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ResolutionResult:
        """Resolve an already validated query."""
        logger.debug(f"State {ResolutionState.CANONICALIZING.value}: {query.street_name!r}")
        target = canonical_target(query.street_name, query.city, query.barangay, self.alias_rules)
        if not target:
            raise InvalidInputError(f"Street name has no usable characters: {query.street_name!r}")
        if radius_m is not None and not radius_m > 0:
            raise InvalidInputError(f"Search radius must be positive: {radius_m}")

        logger.info(f"Resolving {query.street_name!r} -> {target!r} near ({query.lat}, {query.lon})")

        state = ResolutionState.RETRIEVING
        logger.debug(f"State {state.value}: target {target!r}")
        outcome = self.retriever.retrieve(
            query.lat, query.lon, target, radius_m=radius_m, cancel_event=cancel_event
        )
        if not outcome.candidates:
            return self._decide(ResolutionState.UNMATCHED, target, outcome, None)

        state = ResolutionState.SCORING
        logger.debug(f"State {state.value}: {len(outcome.candidates)} candidate(s) from {outcome.tier}")
        best = self.scorer.best_match(
            outcome.candidates, target, query.lat, query.lon, outcome.radius_m
        )

        if best is not None and best.score >= self.config.acceptance_threshold:
            state = ResolutionState.MATCHED
        else:
            state = ResolutionState.UNMATCHED
        return self._decide(state, target, outcome, best)

    def _decide(
        self,
        state: ResolutionState,
        target: str,
        outcome: RetrievalOutcome,
        best: Optional[ScoredMatch],
    ) -> ResolutionResult:
        matched = state == ResolutionState.MATCHED

        note = None
        if not outcome.candidates:
            note = "upstream-unavailable" if outcome.upstream_unavailable else "no-candidates"
        elif best is None:
            note = "no-named-candidates"
        elif not matched:
            note = "below-threshold"

        result = ResolutionResult(
            matched=matched,
            feature=best.candidate.to_feature(best.matched_name) if matched else None,
            best_score=best.score if best is not None else None,
            matched_name=best.matched_name if best is not None else None,
            target=target,
            tier=outcome.tier,
            radius_m=outcome.radius_m,
            tiers_attempted=outcome.attempts,
            note=note,
        )

        if matched:
            logger.info(f"Matched {target!r} to way {best.candidate.id} ({best.matched_name!r}, score {best.score:.3f})")
        else:
            logger.info(
                f"No match for {target!r}"
                + (f" (best {best.score:.3f} {best.matched_name!r})" if best is not None else "")
                + (f" [{note}]" if note else "")
            )
        return result

    def close(self) -> None:
        self.retriever.client.close()

    def __enter__(self) -> "StreetMatchResolver":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def resolve(
    street_name: Any,
    city: Any = "",
    barangay: Any = "",
    lat: Any = None,
    lon: Any = None,
    config: Optional[ResolverConfig] = None,
) -> ResolutionResult:
    """Resolve one street with a short-lived resolver."""
    with StreetMatchResolver(config=config) as resolver:
        return resolver.resolve(street_name, city, barangay, lat, lon)
