"""Shared fixtures: outline builders, a scripted geocoder, an in-memory host."""

import asyncio

import httpx
import pytest

from outline_maps.api.geocoding_client import NAN_PAIR, GeocodingClient
from outline_maps.api.host_graph import InMemoryGraph
from outline_maps.api.renderer import RendererLoader
from outline_maps.core.types import OutlineNode


def node(text, *children, uid=""):
    """Build an OutlineNode; children may be strings or nodes."""
    kids = [c if isinstance(c, OutlineNode) else OutlineNode(text=c) for c in children]
    return OutlineNode(text=text, children=kids, uid=uid)


class FakeGeocoder:
    """Geocoder stand-in with scripted answers, per-place delays and a gate."""

    def __init__(self, places=None, delays=None):
        self.places = places or {}
        self.delays = delays or {}
        self.gate = None
        self.calls = []
        self.closed = False

    async def get_coords(self, place):
        self.calls.append(place)
        if self.gate is not None:
            await self.gate.wait()
        await asyncio.sleep(self.delays.get(place, 0))
        return self.places.get(place, NAN_PAIR)

    async def close(self):
        self.closed = True


def mapbox_transport(places, requests=None, status=200):
    """httpx transport answering Mapbox places queries from *places* ({name: (lat, lng)})."""

    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        if status != 200:
            return httpx.Response(status, json={"message": "error"})
        # URL.path is already percent-decoded
        name = request.url.path.rsplit("/", 1)[-1].removesuffix(".json")
        features = []
        if name in places:
            lat, lng = places[name]
            features.append({"place_name": name, "center": [lng, lat], "relevance": 1.0})
        return httpx.Response(200, json={"type": "FeatureCollection", "features": features})

    return httpx.MockTransport(handler)


@pytest.fixture
def geocoder():
    return FakeGeocoder(
        places={
            "Paris": (48.8566, 2.3522),
            "Tokyo": (35.6762, 139.6503),
            "Berlin": (52.52, 13.405),
        }
    )


@pytest.fixture
def mapbox_client():
    def make(places, requests=None, status=200):
        return GeocodingClient(
            token="test-token",
            transport=mapbox_transport(places, requests, status),
        )

    return make


@pytest.fixture
def loader():
    return RendererLoader()


@pytest.fixture
def graph():
    """A small graph: a map block, plus pages linking to cities."""
    return InMemoryGraph.from_pages(
        {
            "Travel": [
                {
                    "uid": "mapblock1",
                    "text": "{{maps}}",
                    "children": [
                        {"text": "ZOOM", "children": ["5"]},
                        {"text": "CENTER", "children": ["48.8566, 2.3522"]},
                        {
                            "text": "MARKERS",
                            "children": [
                                {"uid": "m-paris", "text": "[[Paris]]"},
                                {"uid": "m-tokyo", "text": "[[Tokyo]]"},
                                {
                                    "uid": "m-nyc",
                                    "text": "[[New York]]",
                                    "children": ["40.7128, -74.0060"],
                                },
                                {"uid": "m-nowhere", "text": "Nowhereville"},
                            ],
                        },
                    ],
                },
            ],
            "Europe": ["Visited [[Paris]] in spring", "Also [[Berlin]]"],
            "Asia": ["[[Tokyo]] trip"],
            "Paris": [{"uid": "paris-note", "text": "Capital of **France**"}],
        }
    )
