"""
Edit-distance similarity between canonical street names.
"""

from rapidfuzz.distance import Levenshtein

CONTAINMENT_SCORE = 0.92


def levenshtein_distance(s1: str, s2: str) -> int:
    """Levenshtein distance over code points, unit cost per edit.

    The result never exceeds max(len(s1), len(s2)).
    """
    return Levenshtein.distance(s1, s2)


def similarity(a: str, b: str) -> float:
    """Normalized similarity in [0, 1]; 0.0 when either side is empty."""
    if not a or not b:
        return 0.0

    distance = levenshtein_distance(a, b)
    return 1.0 - distance / max(len(a), len(b), 1)


def name_match_score(
    candidate_name: str,
    target: str,
    containment_score: float = CONTAINMENT_SCORE,
) -> float:
    """Textual base score of a candidate name against the canonical target.

    Exact equality scores 1.0. Containment in either direction scores a
    fixed containment_score whatever the length difference. Anything else
    falls back to edit-distance similarity.
    """
    if not candidate_name or not target:
        return 0.0
    if candidate_name == target:
        return 1.0
    if target in candidate_name or candidate_name in target:
        return containment_score
    return similarity(candidate_name, target)
