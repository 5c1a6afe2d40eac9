"""Shared fixtures: Overpass-like payloads and a scripted HTTP session."""

from typing import Any, Dict, List, Optional, Sequence, Tuple

import pytest
import requests

from street_geometry.config_manager import ResolverConfig


def make_way(
    way_id: int,
    coords: Sequence[Tuple[float, float]],
    name: Optional[str] = None,
    highway: str = "residential",
    **tags: str,
) -> Dict[str, Any]:
    """Overpass way element with (lat, lon) vertices."""
    all_tags = {"highway": highway}
    if name is not None:
        all_tags["name"] = name
    all_tags.update(tags)
    return {
        "type": "way",
        "id": way_id,
        "tags": all_tags,
        "geometry": [{"lat": lat, "lon": lon} for lat, lon in coords],
    }


def payload(*elements: Dict[str, Any]) -> Dict[str, Any]:
    return {"version": 0.6, "elements": list(elements)}


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, json_data: Any = None, status_code: int = 200, text: Optional[str] = None):
        self._json = json_data
        self.status_code = status_code
        self.text = text

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def json(self) -> Any:
        if self.text is not None:
            raise ValueError("No JSON object could be decoded")
        return self._json


class FakeSession:
    """Scripted session: each call pops the next response or raises it."""

    def __init__(self, post_responses: Optional[List[Any]] = None, get_responses: Optional[List[Any]] = None):
        self.headers: Dict[str, str] = {}
        self.post_responses = list(post_responses or [])
        self.get_responses = list(get_responses or [])
        self.post_calls: List[Dict[str, Any]] = []
        self.get_calls: List[Dict[str, Any]] = []
        self.closed = False

    def _next(self, responses: List[Any]) -> Any:
        if not responses:
            raise requests.exceptions.ConnectionError("no scripted response left")
        item = responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def post(self, url, data=None, timeout=None, **kwargs):
        self.post_calls.append({"url": url, "data": data, "timeout": timeout})
        return self._next(self.post_responses)

    def get(self, url, params=None, headers=None, timeout=None, **kwargs):
        self.get_calls.append({"url": url, "params": params, "headers": headers, "timeout": timeout})
        return self._next(self.get_responses)

    def close(self):
        self.closed = True


@pytest.fixture
def config():
    """Default configuration with two short-timeout mirrors."""
    return ResolverConfig(
        overpass_endpoints=("https://mirror-a.test/api/interpreter", "https://mirror-b.test/api/interpreter"),
        timeout_s=5,
    )


# Cebu City, around Sambag II
QUERY_LAT = 10.2945
QUERY_LON = 123.8847


@pytest.fixture
def near_point():
    """Vertices a few meters to a few hundred meters from the query point."""
    return {
        "at": [(QUERY_LAT, QUERY_LON), (QUERY_LAT + 0.0002, QUERY_LON + 0.0002)],
        "close": [(QUERY_LAT + 0.0003, QUERY_LON), (QUERY_LAT + 0.0005, QUERY_LON)],
        "far": [(QUERY_LAT + 0.009, QUERY_LON), (QUERY_LAT + 0.010, QUERY_LON)],
    }
