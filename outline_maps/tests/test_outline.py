"""Tests for directive parsing (ZOOM, CENTER, filter, MARKERS)."""

import math

import pytest

from conftest import node
from outline_maps.config import DEFAULT_CENTER, DEFAULT_ZOOM
from outline_maps.core.outline import (
    get_center,
    get_filter,
    get_markers,
    get_zoom,
    parse_outline,
    serialize_center,
)
from outline_maps.core.types import MapConfig, OutlineNode, RawMarkerDecl


# ------------------------------------------------------------------
# Defaults
# ------------------------------------------------------------------

@pytest.mark.parametrize(
    "root",
    [
        OutlineNode(),
        node("{{maps}}", "just some prose", "another line"),
        node("{{maps}}", node("ZOOM"), node("CENTER"), node("MARKERS")),
    ],
)
def test_missing_sections_use_defaults(root):
    parsed = parse_outline(root)
    assert parsed.config == MapConfig(zoom=13, center=(51.505, -0.09))
    assert parsed.filter_tag is None
    assert parsed.markers == []


# ------------------------------------------------------------------
# ZOOM
# ------------------------------------------------------------------

class TestZoom:

    def test_integer(self):
        assert get_zoom(node("", node("ZOOM", "8"))) == 8

    def test_directive_name_is_trimmed_and_case_insensitive(self):
        assert get_zoom(node("", node("  zoom ", "4"))) == 4

    def test_leading_integer_parse(self):
        assert get_zoom(node("", node("ZOOM", "12.7"))) == 12
        assert get_zoom(node("", node("ZOOM", " 15 (city)"))) == 15

    def test_malformed_falls_back(self):
        assert get_zoom(node("", node("ZOOM", "close"))) == DEFAULT_ZOOM
        assert get_zoom(node("", node("ZOOM", ""))) == DEFAULT_ZOOM


# ------------------------------------------------------------------
# CENTER
# ------------------------------------------------------------------

class TestCenter:

    def test_pair(self):
        assert get_center(node("", node("CENTER", "48.8566, 2.3522"))) == (48.8566, 2.3522)

    def test_negative_and_no_space(self):
        assert get_center(node("", node("CENTER", "-33.8688,151.2093"))) == (-33.8688, 151.2093)

    @pytest.mark.parametrize("text", ["48.8566", "1, 2, 3", "north, 2.35", "", ","])
    def test_malformed_falls_back(self, text):
        assert get_center(node("", node("CENTER", text))) == DEFAULT_CENTER

    def test_round_trip(self):
        first = get_center(node("", node("CENTER", "48.8566, 2.3522")))
        again = get_center(node("", node("CENTER", serialize_center(first))))
        assert math.isclose(first[0], again[0])
        assert math.isclose(first[1], again[1])


# ------------------------------------------------------------------
# Filter
# ------------------------------------------------------------------

class TestFilter:

    def test_plain(self):
        assert get_filter(node("", node("FILTER", "Europe"))) == "Europe"

    def test_substring_anywhere_case_insensitive(self):
        assert get_filter(node("", node("Filtered by:", "Asia"))) == "Asia"
        assert get_filter(node("", node("my filter", "Asia"))) == "Asia"

    def test_first_match_wins(self):
        root = node("", node("filter", "Europe"), node("FILTER", "Asia"))
        assert get_filter(root) == "Europe"

    def test_filter_without_value(self):
        assert get_filter(node("", node("FILTER"))) is None

    def test_absent(self):
        assert get_filter(node("", node("ZOOM", "3"))) is None


# ------------------------------------------------------------------
# MARKERS
# ------------------------------------------------------------------

class TestMarkers:

    def test_declarations_in_order(self):
        root = node(
            "",
            node(
                "MARKERS",
                node(" [[Paris]] ", uid="a"),
                node("[[New York]]", node("40.7128, -74.0060"), uid="b"),
            ),
        )
        assert get_markers(root) == [
            RawMarkerDecl(tag="[[Paris]]", location_text="", uid="a"),
            RawMarkerDecl(tag="[[New York]]", location_text="40.7128, -74.0060", uid="b"),
        ]

    def test_only_first_grandchild_is_location(self):
        root = node("", node("markers", node("Home", "1, 2", "3, 4", uid="h")))
        assert get_markers(root)[0].location_text == "1, 2"

    def test_full_outline(self, graph):
        parsed = parse_outline(graph.tree("mapblock1"))
        assert parsed.config == MapConfig(zoom=5, center=(48.8566, 2.3522))
        assert [m.uid for m in parsed.markers] == ["m-paris", "m-tokyo", "m-nyc", "m-nowhere"]
