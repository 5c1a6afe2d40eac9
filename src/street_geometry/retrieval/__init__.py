"""
Candidate retrieval from the Overpass API.

Queries are built per tier, sent to redundant mirrors, and the first
tier that returns candidate ways wins.
"""

from .candidate_retriever import CandidateRetriever, RetrievalOutcome
from .overpass_client import OverpassClient
from .query_builder import (
    build_named_highway_query,
    build_token_filtered_query,
    escape_regex,
    filter_tokens,
)
from .tiers import NamedHighwayTier, RetrievalTier, TierResult, TokenFilteredTier, default_tiers

__all__ = [
    "CandidateRetriever",
    "RetrievalOutcome",
    "OverpassClient",
    "build_named_highway_query",
    "build_token_filtered_query",
    "escape_regex",
    "filter_tokens",
    "NamedHighwayTier",
    "RetrievalTier",
    "TierResult",
    "TokenFilteredTier",
    "default_tiers",
]
