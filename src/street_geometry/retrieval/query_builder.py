"""
Overpass QL query construction for named highway ways around a point.
"""

import re
from typing import List

from ..core.canonicalize import NAME_TAGS

DEFAULT_QUERY_TIMEOUT_S = 25

_REGEX_SPECIAL = re.compile(r'([.*+?^${}()|\[\]\\])')


def escape_regex(token: str) -> str:
    """Escape a token for use inside a quoted Overpass regex filter.

    Regex metacharacters are escaped first, then backslashes and double
    quotes are escaped again for the QL string literal.
    """
    escaped = _REGEX_SPECIAL.sub(r'\\\1', str(token))
    return escaped.replace('\\', '\\\\').replace('"', '\\"')


def filter_tokens(target: str, max_tokens: int = 3) -> List[str]:
    """Leading whitespace tokens of the target used for tag filtering.

    Single-character tokens ("N", "E") match nearly every way and are
    skipped.
    """
    tokens = [token for token in target.split(" ") if len(token) >= 2]
    return tokens[:max_tokens]


def _coord(value: float) -> str:
    return f"{value:.7f}".rstrip("0").rstrip(".")


def _around(radius_m: float, lat: float, lon: float) -> str:
    return f"around:{int(round(radius_m))},{_coord(lat)},{_coord(lon)}"


def _wrap(statements: List[str], timeout_s: int) -> str:
    body = "\n".join(f"  {statement}" for statement in statements)
    return f"[out:json][timeout:{timeout_s}];\n(\n{body}\n);\nout tags geom;"


def build_token_filtered_query(
    lat: float,
    lon: float,
    target: str,
    radius_m: float,
    close_radius_m: float = 400.0,
    max_tokens: int = 3,
    timeout_s: int = DEFAULT_QUERY_TIMEOUT_S,
) -> str:
    """Ways whose name tags match any leading token of the target.

    Each name tag gets its own statement, and the union also includes
    every named way within close_radius_m so nearby roads spelled very
    differently are still scored.

    Args:
        lat, lon: Query point
        target: Canonical street name
        radius_m: Search radius for the filtered statements
        close_radius_m: Radius of the unfiltered close-proximity statement
            (never larger than radius_m)
        max_tokens: Number of leading tokens to filter on
        timeout_s: Server-side query timeout

    Returns:
        Overpass QL query string
    """
    tokens = filter_tokens(target, max_tokens)
    around = _around(radius_m, lat, lon)

    statements = []
    for tag in NAME_TAGS:
        if tokens:
            pattern = "|".join(escape_regex(token) for token in tokens)
            statements.append(f'way({around})["highway"]["{tag}"~"{pattern}", i];')
        else:
            statements.append(f'way({around})["highway"]["{tag}"];')

    close_around = _around(min(close_radius_m, radius_m), lat, lon)
    statements.append(f'way({close_around})["highway"]["name"];')

    return _wrap(statements, timeout_s)


def build_named_highway_query(
    lat: float,
    lon: float,
    radius_m: float,
    timeout_s: int = DEFAULT_QUERY_TIMEOUT_S,
) -> str:
    """Every named highway way within radius_m."""
    return _wrap([f'way({_around(radius_m, lat, lon)})["highway"]["name"];'], timeout_s)
