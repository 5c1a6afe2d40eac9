"""Tests for the nearest named street lookup."""

import math

import pytest
import requests

from conftest import QUERY_LAT, QUERY_LON, FakeResponse, FakeSession, make_way, payload
from street_geometry.cache import TTLCache
from street_geometry.errors import InvalidInputError
from street_geometry.nearby import NearbyStreetFinder
from street_geometry.retrieval.overpass_client import OverpassClient


def finder_for(config, get_responses=(), post_responses=(), cache=None):
    session = FakeSession(post_responses=list(post_responses), get_responses=list(get_responses))
    client = OverpassClient.from_config(config, session=session)
    return NearbyStreetFinder(config=config, client=client, session=session, cache=cache), session


def nominatim(**address):
    return FakeResponse({"place_id": 1, "address": address})


class TestClampRadius:

    @pytest.mark.parametrize("requested,expected", [
        (None, 220),
        (10, 80),
        (5000, 800),
        (300.4, 300),
        ("250", 250),
        ("wide", 220),
        (math.nan, 220),
    ])
    def test_clamp(self, config, requested, expected):
        finder, _ = finder_for(config)
        assert finder.clamp_radius(requested) == expected


class TestFind:

    def test_nominatim_road(self, config):
        finder, session = finder_for(config, get_responses=[nominatim(road="Rizal Street", city="Cebu City")])
        street = finder.find(QUERY_LAT, QUERY_LON)

        assert street.name == "Rizal Street"
        assert street.source == "nominatim"
        assert street.distance_m == 0.0
        assert session.post_calls == []

        params = session.get_calls[0]["params"]
        assert params["format"] == "jsonv2"
        assert params["zoom"] == 18
        assert session.get_calls[0]["headers"]["User-Agent"] == config.user_agent

    def test_nominatim_pedestrian_key(self, config):
        finder, _ = finder_for(config, get_responses=[nominatim(pedestrian="Plaza Independencia")])
        assert finder.find(QUERY_LAT, QUERY_LON).name == "Plaza Independencia"

    def test_overpass_fallback_picks_nearest_vertex(self, config, near_point):
        finder, session = finder_for(
            config,
            get_responses=[nominatim(suburb="Sambag II")],
            post_responses=[FakeResponse(payload(
                make_way(1, near_point["far"], "Colon Street"),
                make_way(2, near_point["close"], "Aznar Road"),
                make_way(3, near_point["at"]),
            ))],
        )
        street = finder.find(QUERY_LAT, QUERY_LON, 500)

        assert street.name == "Aznar Road"
        assert street.source == "overpass"
        assert street.distance_m == pytest.approx(33.4, abs=1.0)
        assert "around:500," in session.post_calls[0]["data"]["data"]

    def test_nominatim_failure_falls_back(self, config, near_point):
        finder, _ = finder_for(
            config,
            get_responses=[requests.exceptions.Timeout()],
            post_responses=[FakeResponse(payload(make_way(2, near_point["close"], "Aznar Road")))],
        )
        assert finder.find(QUERY_LAT, QUERY_LON).source == "overpass"

    def test_nominatim_non_json_falls_back(self, config, near_point):
        finder, _ = finder_for(
            config,
            get_responses=[FakeResponse(text="<html/>")],
            post_responses=[FakeResponse(payload(make_way(2, near_point["close"], "Aznar Road")))],
        )
        assert finder.find(QUERY_LAT, QUERY_LON).name == "Aznar Road"

    def test_nothing_found(self, config):
        finder, _ = finder_for(
            config,
            get_responses=[FakeResponse(status_code=503)],
            post_responses=[FakeResponse(payload())],
        )
        assert finder.find(QUERY_LAT, QUERY_LON) is None

    def test_overpass_outage_returns_none(self, config):
        finder, _ = finder_for(
            config,
            get_responses=[FakeResponse(status_code=503)],
            post_responses=[requests.exceptions.ConnectionError()] * 2,
        )
        assert finder.find(QUERY_LAT, QUERY_LON) is None

    def test_invalid_point(self, config):
        finder, session = finder_for(config)
        with pytest.raises(InvalidInputError):
            finder.find(None, QUERY_LON)
        assert session.get_calls == []


class TestCaching:

    def test_found_street_is_cached(self, config):
        cache = TTLCache(ttl_s=60)
        finder, session = finder_for(config, get_responses=[nominatim(road="Rizal Street")], cache=cache)

        first = finder.find(QUERY_LAT, QUERY_LON)
        second = finder.find(QUERY_LAT, QUERY_LON)

        assert first == second
        assert len(session.get_calls) == 1
        assert cache.get_statistics()["hits"] == 1

    def test_key_includes_clamped_radius(self, config):
        cache = TTLCache(ttl_s=60)
        finder, session = finder_for(
            config,
            get_responses=[nominatim(road="Rizal Street"), nominatim(road="Rizal Street")],
            cache=cache,
        )
        finder.find(QUERY_LAT, QUERY_LON, 100)
        finder.find(QUERY_LAT, QUERY_LON, 600)
        assert len(session.get_calls) == 2

    def test_misses_are_not_cached(self, config):
        cache = TTLCache(ttl_s=60)
        finder, session = finder_for(
            config,
            get_responses=[FakeResponse(status_code=503), nominatim(road="Rizal Street")],
            post_responses=[FakeResponse(payload())],
            cache=cache,
        )
        assert finder.find(QUERY_LAT, QUERY_LON) is None
        assert finder.find(QUERY_LAT, QUERY_LON).name == "Rizal Street"
        assert len(cache) == 1


class TestSessionLifecycle:

    def test_borrowed_session_left_open(self, config):
        finder, session = finder_for(config)
        finder.close()
        assert session.closed is False

    def test_context_manager_keeps_borrowed_session_open(self, config):
        session = FakeSession()
        with NearbyStreetFinder(config=config, session=session):
            pass
        assert session.closed is False

    def test_owned_session_closed(self, config, monkeypatch):
        created = FakeSession()
        monkeypatch.setattr("street_geometry.nearby.requests.Session", lambda: created)
        NearbyStreetFinder(config=config).close()
        assert created.closed is True
