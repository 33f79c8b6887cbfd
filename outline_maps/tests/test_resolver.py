"""Tests for coordinate resolution: literal short-circuit, geocoding, validation."""

import asyncio
import math

import pytest

from conftest import FakeGeocoder
from outline_maps.core.resolver import CoordinateResolver, parse_coords
from outline_maps.core.tags import extract_tag
from outline_maps.core.types import RawMarkerDecl, ResolvedMarker


def resolve(geocoder, decls):
    return asyncio.run(CoordinateResolver(geocoder).resolve_all(decls))


# ------------------------------------------------------------------
# Literal coordinates
# ------------------------------------------------------------------

class TestParseCoords:

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("40.7128, -74.0060", (40.7128, -74.006)),
            ("40.7128,-74.0060", (40.7128, -74.006)),
            ("0.5, 0", (0.5, 0.0)),
            ("-0.09, 51", (-0.09, 51.0)),
            ("home: 10, 20", (10.0, 20.0)),
        ],
    )
    def test_matches(self, text, expected):
        assert parse_coords(text) == expected

    @pytest.mark.parametrize("text", ["Paris", "", "40.7128", "40.7128,  -74", "12 , 13"])
    def test_no_match(self, text):
        assert parse_coords(text) is None


def test_literal_pair_skips_geocoder(geocoder):
    decl = RawMarkerDecl(tag="[[New York]]", location_text="40.7128, -74.0060", uid="ny")
    markers = resolve(geocoder, [decl])
    assert markers == [ResolvedMarker(tag="[[New York]]", uid="ny", lat=40.7128, lng=-74.006)]
    assert geocoder.calls == []


def test_literal_pair_in_tag_when_location_blank(geocoder):
    markers = resolve(geocoder, [RawMarkerDecl(tag="35.0, 139.0", uid="t")])
    assert markers[0].position == (35.0, 139.0)
    assert geocoder.calls == []


# ------------------------------------------------------------------
# Geocoding
# ------------------------------------------------------------------

def test_blank_location_geocodes_extracted_tag(geocoder):
    markers = resolve(geocoder, [RawMarkerDecl(tag="[[Paris]]", uid="p")])
    assert geocoder.calls == ["Paris"]
    assert markers[0].position == (48.8566, 2.3522)


def test_location_text_is_geocoded_instead_of_tag(geocoder):
    markers = resolve(geocoder, [RawMarkerDecl(tag="Office", location_text="#Berlin", uid="o")])
    assert geocoder.calls == ["Berlin"]
    assert markers[0].tag == "Office"
    assert markers[0].position == (52.52, 13.405)


def test_empty_geocode_result_is_dropped(geocoder):
    assert resolve(geocoder, [RawMarkerDecl(tag="Nowhereville", uid="n")]) == []


def test_n_minus_m_regardless_of_completion_order():
    geocoder = FakeGeocoder(
        places={"A": (1.0, 1.0), "B": (2.0, 2.0), "C": (3.0, 3.0)},
        # Later declarations finish first
        delays={"A": 0.03, "B": 0.02, "X": 0.01, "C": 0.0, "Y": 0.015},
    )
    decls = [RawMarkerDecl(tag=t, uid=t.lower()) for t in ["A", "B", "X", "C", "Y"]]
    markers = resolve(geocoder, decls)
    assert len(markers) == 3
    assert {m.uid for m in markers} == {"a", "b", "c"}
    assert all(math.isfinite(m.lat) and math.isfinite(m.lng) for m in markers)


def test_geocoder_exception_drops_only_that_marker(geocoder):
    class Flaky(FakeGeocoder):
        async def get_coords(self, place):
            if place == "Boom":
                raise RuntimeError("unexpected")
            return await super().get_coords(place)

    flaky = Flaky(places=geocoder.places)
    markers = resolve(flaky, [RawMarkerDecl(tag="Boom", uid="b"), RawMarkerDecl(tag="Paris", uid="p")])
    assert [m.uid for m in markers] == ["p"]


def test_lookups_run_concurrently():
    geocoder = FakeGeocoder(
        places={str(i): (float(i), float(i)) for i in range(10)},
        delays={str(i): 0.05 for i in range(10)},
    )
    decls = [RawMarkerDecl(tag=str(i), uid=str(i)) for i in range(10)]

    async def timed():
        loop = asyncio.get_running_loop()
        start = loop.time()
        result = await CoordinateResolver(geocoder).resolve_all(decls)
        return result, loop.time() - start

    markers, elapsed = asyncio.run(timed())
    assert len(markers) == 10
    assert elapsed < 0.4


# ------------------------------------------------------------------
# Tag extraction
# ------------------------------------------------------------------

@pytest.mark.parametrize(
    "raw, expected",
    [
        ("[[Paris]]", "Paris"),
        ("#[[New York]]", "New York"),
        ("#Berlin", "Berlin"),
        ("((abc123def))", "abc123def"),
        ("Home::", "Home"),
        ("  Plain Place ", "Plain Place"),
        ("", ""),
    ],
)
def test_extract_tag(raw, expected):
    assert extract_tag(raw) == expected
