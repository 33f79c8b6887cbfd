"""Tests for the Mapbox geocoding client against a mocked transport."""

import asyncio
import math

import httpx

from outline_maps.api.geocoding_client import GeocodingClient


def run(client, place):
    async def go():
        try:
            return await client.get_coords(place)
        finally:
            await client.close()

    return asyncio.run(go())


def test_first_candidate_is_reversed_to_lat_lng(mapbox_client):
    lat, lng = run(mapbox_client({"Paris": (48.8566, 2.3522)}), "Paris")
    assert (lat, lng) == (48.8566, 2.3522)


def test_request_shape(mapbox_client):
    requests = []
    run(mapbox_client({}, requests), "New York")
    assert len(requests) == 1
    url = requests[0].url
    assert url.path == "/geocoding/v5/mapbox.places/New York.json"
    assert url.params["access_token"] == "test-token"


def test_empty_features_give_nan(mapbox_client):
    lat, lng = run(mapbox_client({}), "Nowhereville")
    assert math.isnan(lat) and math.isnan(lng)


def test_http_error_gives_nan(mapbox_client):
    lat, lng = run(mapbox_client({"Paris": (1.0, 2.0)}, status=500), "Paris")
    assert math.isnan(lat) and math.isnan(lng)


def test_transport_error_gives_nan():
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    client = GeocodingClient(token="t", transport=httpx.MockTransport(handler))
    lat, lng = run(client, "Paris")
    assert math.isnan(lat) and math.isnan(lng)


def test_malformed_payload_gives_nan():
    def handler(request):
        return httpx.Response(200, json={"features": [{"center": [1.0]}]})

    client = GeocodingClient(token="t", transport=httpx.MockTransport(handler))
    lat, lng = run(client, "Paris")
    assert math.isnan(lat) and math.isnan(lng)


def test_non_json_body_gives_nan():
    def handler(request):
        return httpx.Response(200, text="<html>maintenance</html>")

    client = GeocodingClient(token="t", transport=httpx.MockTransport(handler))
    lat, lng = run(client, "Paris")
    assert math.isnan(lat) and math.isnan(lng)
