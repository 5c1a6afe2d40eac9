"""Tests for Overpass query construction."""

from street_geometry.retrieval.query_builder import (
    build_named_highway_query,
    build_token_filtered_query,
    escape_regex,
    filter_tokens,
)


class TestEscapeRegex:

    def test_plain_token_unchanged(self):
        assert escape_regex("RIZAL") == "RIZAL"

    def test_regex_metacharacters(self):
        # "A.B" -> regex "A\.B" -> QL literal "A\\.B"
        assert escape_regex("A.B") == "A\\\\.B"
        assert escape_regex("(X)") == "\\\\(X\\\\)"

    def test_double_quote(self):
        assert escape_regex('SAN "JUAN"') == 'SAN \\"JUAN\\"'

    def test_alternation_bar_is_escaped(self):
        assert "|" not in escape_regex("A|B").replace("\\\\|", "")


class TestFilterTokens:

    def test_first_three_tokens(self):
        assert filter_tokens("GENERAL MAXILOM AVENUE EXTENSION") == ["GENERAL", "MAXILOM", "AVENUE"]

    def test_single_character_tokens_skipped(self):
        assert filter_tokens("N BACALSO AVENUE") == ["BACALSO", "AVENUE"]

    def test_custom_limit(self):
        assert filter_tokens("AZNAR STREET", max_tokens=1) == ["AZNAR"]

    def test_empty(self):
        assert filter_tokens("") == []


class TestBuildTokenFilteredQuery:

    def test_statement_per_name_tag(self):
        query = build_token_filtered_query(10.2945, 123.8847, "AZNAR STREET", radius_m=1500)
        for tag in ("name", "official_name", "short_name", "alt_name"):
            assert f'way(around:1500,10.2945,123.8847)["highway"]["{tag}"~"AZNAR|STREET", i];' in query

    def test_close_proximity_union(self):
        query = build_token_filtered_query(10.2945, 123.8847, "AZNAR STREET", radius_m=1500)
        assert 'way(around:400,10.2945,123.8847)["highway"]["name"];' in query

    def test_close_radius_never_exceeds_radius(self):
        query = build_token_filtered_query(10.2945, 123.8847, "AZNAR STREET", radius_m=300)
        assert "around:300," in query
        assert "around:400," not in query

    def test_output_header_and_footer(self):
        query = build_token_filtered_query(10.2945, 123.8847, "AZNAR STREET", radius_m=1500, timeout_s=25)
        assert query.startswith("[out:json][timeout:25];")
        assert query.endswith("out tags geom;")

    def test_tokens_are_escaped(self):
        query = build_token_filtered_query(10.0, 123.0, "ST. JUDE+ STREET", radius_m=1500)
        assert "JUDE\\\\+" in query

    def test_no_usable_tokens(self):
        query = build_token_filtered_query(10.0, 123.0, "A", radius_m=1500)
        assert 'way(around:1500,10,123)["highway"]["name"];' in query
        assert "~" not in query


class TestBuildNamedHighwayQuery:

    def test_named_highways(self):
        query = build_named_highway_query(10.2945, 123.8847, 2500)
        assert 'way(around:2500,10.2945,123.8847)["highway"]["name"];' in query
        assert query.endswith("out tags geom;")

    def test_negative_coordinates(self):
        query = build_named_highway_query(-33.8688, -70.25, 1500)
        assert "around:1500,-33.8688,-70.25)" in query
