"""Tests for batch resolution and GIS export."""

import json
from unittest.mock import MagicMock

import pandas as pd
import pytest

from conftest import QUERY_LAT, QUERY_LON, make_way
from street_geometry.batch import BatchResolver, export, load_queries, normalize_columns, to_geodataframe
from street_geometry.errors import InvalidInputError
from street_geometry.models import Candidate, ResolutionResult


def matched_result(way_id, name):
    way = Candidate.from_element(make_way(way_id, [(QUERY_LAT, QUERY_LON), (QUERY_LAT + 0.001, QUERY_LON)], name))
    return ResolutionResult(
        matched=True,
        feature=way.to_feature(name),
        best_score=1.12,
        matched_name=name,
        target=name,
        tier="token_filtered",
        radius_m=1500.0,
    )


@pytest.fixture
def queries():
    return pd.DataFrame([
        {"street_name": "Rizal St", "city": "Cebu City", "barangay": "", "lat": QUERY_LAT, "lon": QUERY_LON},
        {"street_name": "Nowhere Lane", "city": "Cebu City", "barangay": "", "lat": QUERY_LAT, "lon": QUERY_LON},
        {"street_name": "Colon", "city": "Cebu City", "barangay": "", "lat": None, "lon": QUERY_LON},
    ])


@pytest.fixture
def resolver():
    def fake_resolve(street_name, city, barangay, lat, lon):
        if street_name == "Colon":
            raise InvalidInputError("Missing lat/lon")
        if street_name == "Rizal St":
            return matched_result(101, "RIZAL STREET")
        return ResolutionResult(matched=False, best_score=0.21, matched_name="NOWHERE", note="below-threshold")

    mock = MagicMock()
    mock.resolve.side_effect = fake_resolve
    return mock


class TestNormalizeColumns:

    def test_aliases_and_case(self):
        df = pd.DataFrame([{"Street Name": "Rizal", "Latitude": 10.0, "LNG": 123.0, "Brgy": "Sambag II"}])
        df = normalize_columns(df)
        assert {"street_name", "lat", "lon", "barangay", "city"} <= set(df.columns)
        assert df.loc[0, "barangay"] == "Sambag II"
        assert df.loc[0, "city"] == ""

    def test_missing_required(self):
        with pytest.raises(ValueError, match="lat"):
            normalize_columns(pd.DataFrame([{"street_name": "Rizal", "lon": 123.0}]))


class TestLoadQueries:

    def test_csv(self, tmp_path):
        path = tmp_path / "queries.csv"
        path.write_text("streetName,city,barangay,lat,lon\nAznar Rd,Cebu City,Sambag II,10.2945,123.8847\n")
        df = load_queries(path)
        assert df.loc[0, "street_name"] == "Aznar Rd"
        assert df.loc[0, "lat"] == pytest.approx(10.2945)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_queries(tmp_path / "missing.csv")


class TestBatchResolver:

    def test_run_adds_result_columns(self, queries, resolver):
        results = BatchResolver(resolver, show_progress=False).run(queries)

        assert list(results["matched"]) == [True, False, False]
        assert results.loc[0, "matched_name"] == "RIZAL STREET"
        assert results.loc[0, "tier"] == "token_filtered"
        assert results.loc[1, "note"] == "below-threshold"
        assert results.loc[2, "error"] == "Missing lat/lon"
        assert results.loc[2, "feature"] is None
        assert resolver.resolve.call_count == 3

    def test_missing_optional_values_become_empty(self, resolver):
        df = pd.DataFrame([{"street_name": "Rizal St", "lat": QUERY_LAT, "lon": QUERY_LON}])
        BatchResolver(resolver, show_progress=False).run(df)
        args = resolver.resolve.call_args.args
        assert args[:3] == ("Rizal St", "", "")


class TestExport:

    def test_to_geodataframe(self, queries, resolver):
        results = BatchResolver(resolver, show_progress=False).run(queries)
        gdf = to_geodataframe(results)

        assert len(gdf) == 1
        assert gdf.crs.to_epsg() == 4326
        assert gdf.iloc[0]["osm_way_id"] == 101
        assert gdf.geometry.iloc[0].geom_type == "LineString"

    def test_geojson(self, tmp_path, queries, resolver):
        results = BatchResolver(resolver, show_progress=False).run(queries)
        output = export(results, tmp_path / "out" / "streets.geojson")

        data = json.loads(output.read_text())
        assert data["type"] == "FeatureCollection"
        assert len(data["features"]) == 1
        assert data["features"][0]["properties"]["matched_name"] == "RIZAL STREET"
        assert data["features"][0]["geometry"]["type"] == "LineString"

    def test_unsupported_format(self, tmp_path, queries, resolver):
        results = BatchResolver(resolver, show_progress=False).run(queries)
        with pytest.raises(ValueError):
            export(results, tmp_path / "streets.shp")
