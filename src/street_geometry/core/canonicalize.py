"""
Street name canonicalization.

Turns informally written street names ("st. peter rd", "Rizal Ave.")
into a comparable upper-case form with common abbreviations expanded,
and splits multi-valued OSM name tags ("A;B", "A|B") into variants.

A small, explicit alias table covers local colloquial names that generic
canonicalization cannot recover (a road that residents call a street).
"""

import re
from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional, Sequence

# Whole-word abbreviation expansions, applied in order
ABBREVIATIONS = (
    ("ST", "STREET"),
    ("RD", "ROAD"),
    ("AVE", "AVENUE"),
    ("BLVD", "BOULEVARD"),
    ("DR", "DRIVE"),
)

_ABBREVIATION_PATTERNS = [
    (re.compile(rf"\b{short}\b", re.IGNORECASE), full)
    for short, full in ABBREVIATIONS
]

_PUNCTUATION = re.compile(r"[.,]")
_WHITESPACE = re.compile(r"\s+")
_FIELD_SEPARATOR = re.compile(r"[;|]")

# OSM tags that carry a street name, in enumeration order
NAME_TAGS = ("name", "official_name", "short_name", "alt_name")


def canonicalize(raw: Optional[str]) -> str:
    """Normalize a street name for comparison.

    Args:
        raw: Street name as typed or as stored in a tag

    Returns:
        Upper-case name with commas/periods removed, whitespace collapsed
        and abbreviations expanded. Empty string for None or blank input.

    Examples:
        >>> canonicalize("st. peter rd")
        'STREET PETER ROAD'
        >>> canonicalize("Rizal  Ave.")
        'RIZAL AVENUE'
    """
    if raw is None:
        return ""

    name = str(raw).upper()
    name = _PUNCTUATION.sub(" ", name)
    name = _WHITESPACE.sub(" ", name)

    for pattern, full in _ABBREVIATION_PATTERNS:
        name = pattern.sub(full, name)

    return name.strip()


def tokenize_name_field(raw: Optional[str]) -> List[str]:
    """Split a multi-valued name tag and canonicalize each alternative.

    Empty alternatives are dropped; duplicates keep their first position
    so that enumeration order stays stable.
    """
    if not raw:
        return []

    parts = (canonicalize(part) for part in _FIELD_SEPARATOR.split(str(raw)))
    return list(dict.fromkeys(part for part in parts if part))


def candidate_name_variants(tags: Mapping[str, str]) -> List[str]:
    """All canonical names of a way across its name tags, de-duplicated."""
    variants: List[str] = []
    for tag in NAME_TAGS:
        variants.extend(tokenize_name_field(tags.get(tag)))
    return list(dict.fromkeys(variants))


@dataclass(frozen=True)
class AliasRule:
    """Forced canonical rewrite for a (city, barangay, name) combination.

    Patterns are case-insensitive regular expressions searched anywhere in
    the value, so a plain word behaves as substring containment.
    """
    city_pattern: str
    barangay_pattern: str
    name_pattern: str
    canonical: str

    def matches(self, city: str, barangay: str, name: str) -> bool:
        return all(
            re.search(pattern, value or "", re.IGNORECASE)
            for pattern, value in (
                (self.city_pattern, city),
                (self.barangay_pattern, barangay),
                (self.name_pattern, name),
            )
        )


# Evaluated in order, first match wins
ALIAS_RULES: Sequence[AliasRule] = (
    # Aznar Road is known locally as Aznar Street in Sambag II, Cebu City
    AliasRule(
        city_pattern=r"CEBU",
        barangay_pattern=r"SAMBAG\s*(II|2)\b",
        name_pattern=r"AZNAR",
        canonical="AZNAR STREET",
    ),
)


def apply_alias_rules(
    name: str,
    city: str,
    barangay: str,
    rules: Iterable[AliasRule] = ALIAS_RULES,
) -> Optional[str]:
    """Return the forced canonical name of the first matching rule, if any."""
    for rule in rules:
        if rule.matches(city, barangay, name):
            return canonicalize(rule.canonical)
    return None


def canonical_target(
    street_name: str,
    city: str = "",
    barangay: str = "",
    rules: Iterable[AliasRule] = ALIAS_RULES,
) -> str:
    """Canonical search target for a query, alias table first."""
    canonical = canonicalize(street_name)
    alias = apply_alias_rules(canonical, city, barangay, rules)
    return alias if alias is not None else canonical
