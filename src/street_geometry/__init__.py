"""
Street geometry resolution.

Resolves informally written street names near a point to the best
matching OpenStreetMap road geometry.
"""

__version__ = "0.3.0"

from .config_manager import ConfigManager, ResolverConfig
from .errors import (
    ConfigError,
    InvalidInputError,
    ResolutionCancelledError,
    StreetGeometryError,
    UpstreamUnavailableError,
)
from .models import Candidate, NearbyStreet, RawQuery, ResolutionResult, ScoredMatch
from .resolver import MatchScorer, ResolutionState, StreetMatchResolver, resolve

__all__ = [
    "__version__",
    "ConfigManager",
    "ResolverConfig",
    "ConfigError",
    "InvalidInputError",
    "ResolutionCancelledError",
    "StreetGeometryError",
    "UpstreamUnavailableError",
    "Candidate",
    "NearbyStreet",
    "RawQuery",
    "ResolutionResult",
    "ScoredMatch",
    "MatchScorer",
    "ResolutionState",
    "StreetMatchResolver",
    "resolve",
]
