"""Client for the Mapbox geocoding API (place name -> coordinates)."""

from __future__ import annotations

import logging
import math
from typing import Optional
from urllib.parse import quote

import httpx
from pydantic import BaseModel, Field, ValidationError

from outline_maps.config import HTTP_TIMEOUT, MAPBOX_API_URL, MAPBOX_TOKEN

logger = logging.getLogger(__name__)

# Returned for any place that cannot be resolved; dropped by the resolver.
NAN_PAIR: tuple[float, float] = (math.nan, math.nan)


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class GeocodeFeature(BaseModel):
    """One ranked candidate. Mapbox orders ``center`` as [lng, lat]."""

    place_name: str = ""
    center: list[float] = Field(..., min_length=2, max_length=2)
    relevance: float = 0.0


class GeocodeResponse(BaseModel):
    """Body of ``/geocoding/v5/mapbox.places/{query}.json``."""

    features: list[GeocodeFeature] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class GeocodingClient:
    """Resolve free-text place names through Mapbox places."""

    def __init__(
        self,
        token: str = MAPBOX_TOKEN,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._token = token
        self._client = httpx.AsyncClient(
            base_url=MAPBOX_API_URL,
            timeout=HTTP_TIMEOUT,
            transport=transport,
        )
        if not token:
            logger.warning("mapbox_token_missing")

    async def close(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Public
    # ------------------------------------------------------------------

    async def lookup(self, place: str) -> list[GeocodeFeature]:
        """Return the ranked candidates for *place*. Raises on transport errors."""
        resp = await self._client.get(
            f"/geocoding/v5/mapbox.places/{quote(place, safe='')}.json",
            params={"access_token": self._token},
        )
        resp.raise_for_status()
        return GeocodeResponse.model_validate(resp.json()).features

    async def get_coords(self, place: str) -> tuple[float, float]:
        """Best match for *place* as (lat, lng), or a NaN pair on any failure."""
        try:
            features = await self.lookup(place)
        except (httpx.HTTPError, ValidationError, ValueError) as e:
            logger.warning(
                "geocode_failed",
                extra={"place": place, "error": str(e)},
            )
            return NAN_PAIR

        if not features:
            logger.info("geocode_no_match", extra={"place": place})
            return NAN_PAIR

        lng, lat = features[0].center
        return (lat, lng)
