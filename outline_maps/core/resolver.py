"""Coordinate resolver: marker declarations -> validated markers.

Literal ``lat, lng`` text is parsed in place. Anything else is sent to the
geocoder, one request per marker, all in flight at once. Markers that end up
without finite coordinates are dropped here and nowhere else.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Optional

from outline_maps.api.geocoding_client import NAN_PAIR, GeocodingClient
from outline_maps.core.tags import extract_tag
from outline_maps.core.types import RawMarkerDecl, ResolvedMarker

logger = logging.getLogger(__name__)

_NUMBER = r"(-?(?:0|[1-9][0-9]*)(?:\.[0-9]+)?)"
COORDS_REGEX = re.compile(_NUMBER + r",\s?" + _NUMBER)


def parse_coords(text: str) -> Optional[tuple[float, float]]:
    """Return the literal coordinate pair in *text*, if there is one."""
    match = COORDS_REGEX.search(text or "")
    if not match:
        return None
    return (float(match.group(1)), float(match.group(2)))


class CoordinateResolver:
    """Turn raw marker declarations into markers with coordinates."""

    def __init__(self, geocoder: GeocodingClient) -> None:
        self.geocoder = geocoder

    async def resolve_all(self, decls: list[RawMarkerDecl]) -> list[ResolvedMarker]:
        """Resolve every declaration concurrently, then drop invalid ones."""
        if not decls:
            return []

        results = await asyncio.gather(
            *(self.resolve(d) for d in decls),
            return_exceptions=True,
        )

        valid: list[ResolvedMarker] = []
        for decl, result in zip(decls, results):
            if isinstance(result, Exception):
                logger.error(
                    "marker_resolve_error",
                    extra={"tag": decl.tag, "uid": decl.uid, "error": str(result)},
                )
            elif result.is_valid:
                valid.append(result)
            else:
                logger.warning(
                    "marker_dropped",
                    extra={"tag": decl.tag, "uid": decl.uid},
                )

        logger.info(
            "markers_resolved",
            extra={"declared": len(decls), "valid": len(valid)},
        )
        return valid

    async def resolve(self, decl: RawMarkerDecl) -> ResolvedMarker:
        """Resolve one declaration; an unresolvable place gets NaN coordinates."""
        text = decl.location_text.strip() or decl.tag
        coords = parse_coords(text)
        if coords is None:
            place = extract_tag(text)
            coords = await self.geocoder.get_coords(place) if place else NAN_PAIR
        lat, lng = coords
        return ResolvedMarker(tag=decl.tag, uid=decl.uid, lat=lat, lng=lng)
