"""Parse map directives (ZOOM, CENTER, filter, MARKERS) out of a block's outline.

Every directive is optional. A missing or malformed directive falls back to
its default without raising: the map always mounts.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from outline_maps.config import DEFAULT_CENTER, DEFAULT_ZOOM
from outline_maps.core.types import MapConfig, OutlineNode, ParsedOutline, RawMarkerDecl

logger = logging.getLogger(__name__)

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_LEADING_FLOAT = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")
_FILTER = re.compile("filter", re.IGNORECASE)


def parse_outline(root: OutlineNode) -> ParsedOutline:
    """Extract map config, filter tag and marker declarations from *root*."""
    parsed = ParsedOutline(
        config=MapConfig(zoom=get_zoom(root), center=get_center(root)),
        filter_tag=get_filter(root),
        markers=get_markers(root),
    )
    logger.debug(
        "outline_parsed",
        extra={
            "block_uid": root.uid,
            "zoom": parsed.config.zoom,
            "filter": parsed.filter_tag,
            "markers": len(parsed.markers),
        },
    )
    return parsed


def get_zoom(root: OutlineNode) -> int:
    node = _find_directive(root, "ZOOM")
    text = node.first_child_text() if node else None
    zoom = _parse_int(text) if text is not None else None
    return DEFAULT_ZOOM if zoom is None else zoom


def get_center(root: OutlineNode) -> tuple[float, float]:
    node = _find_directive(root, "CENTER")
    text = node.first_child_text() if node else None
    if text is None:
        return DEFAULT_CENTER
    parts = [_parse_float(s) for s in text.split(",")]
    if len(parts) != 2 or any(p is None for p in parts):
        return DEFAULT_CENTER
    return (parts[0], parts[1])


def serialize_center(center: tuple[float, float]) -> str:
    """Render a center back into CENTER directive text."""
    lat, lng = center
    return f"{lat!r}, {lng!r}"


def get_filter(root: OutlineNode) -> Optional[str]:
    for child in root.children:
        if _FILTER.search(child.text):
            return child.first_child_text()
    return None


def get_markers(root: OutlineNode) -> list[RawMarkerDecl]:
    node = _find_directive(root, "MARKERS")
    if node is None:
        return []
    return [
        RawMarkerDecl(
            tag=m.text.strip(),
            location_text=m.first_child_text() or "",
            uid=m.uid,
        )
        for m in node.children
    ]


# ---------------------------------------------------------------------------
# Internal
# ---------------------------------------------------------------------------


def _find_directive(root: OutlineNode, name: str) -> Optional[OutlineNode]:
    for child in root.children:
        if child.text.strip().upper() == name:
            return child
    return None


def _parse_int(text: str) -> Optional[int]:
    # Leading-integer parse: "12.7" -> 12, "15 (city)" -> 15
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else None


def _parse_float(text: str) -> Optional[float]:
    match = _LEADING_FLOAT.match(text.strip())
    return float(match.group(1)) if match else None
