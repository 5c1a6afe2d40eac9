"""
Pure scoring primitives: name canonicalization, text similarity and
point-to-way distance.
"""

from .canonicalize import (
    ALIAS_RULES,
    AliasRule,
    apply_alias_rules,
    candidate_name_variants,
    canonical_target,
    canonicalize,
    tokenize_name_field,
)
from .distance import haversine_distance, min_distance_meters, proximity_bonus
from .similarity import levenshtein_distance, name_match_score, similarity

__all__ = [
    "ALIAS_RULES",
    "AliasRule",
    "apply_alias_rules",
    "candidate_name_variants",
    "canonical_target",
    "canonicalize",
    "tokenize_name_field",
    "haversine_distance",
    "min_distance_meters",
    "proximity_bonus",
    "levenshtein_distance",
    "name_match_score",
    "similarity",
]
