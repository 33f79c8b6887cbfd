"""Data classes and enums for the outline-driven map model."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from outline_maps.config import BASE_LAYERS, DEFAULT_CENTER, DEFAULT_ZOOM


@dataclass
class OutlineNode:
    """A block of the host outline. Owned by the host, read-only here."""
    text: str = ""
    children: list[OutlineNode] = field(default_factory=list)
    uid: str = ""

    @classmethod
    def from_dict(cls, raw: dict) -> OutlineNode:
        return cls(
            text=raw.get("text", "") or "",
            children=[cls.from_dict(c) for c in raw.get("children") or []],
            uid=raw.get("uid", "") or "",
        )

    def first_child_text(self) -> Optional[str]:
        return self.children[0].text if self.children else None


@dataclass(frozen=True)
class MapConfig:
    """Initial view of one mounted map."""
    zoom: int = DEFAULT_ZOOM
    center: tuple[float, float] = DEFAULT_CENTER


@dataclass(frozen=True)
class RawMarkerDecl:
    """One child of the MARKERS directive, before coordinates are known."""
    tag: str
    location_text: str = ""       # blank means "geocode the tag itself"
    uid: str = ""


@dataclass(frozen=True)
class ResolvedMarker:
    """A marker with coordinates. Only finite coordinates reach the map."""
    tag: str
    uid: str
    lat: float
    lng: float

    @property
    def is_valid(self) -> bool:
        return math.isfinite(self.lat) and math.isfinite(self.lng)

    @property
    def position(self) -> tuple[float, float]:
        return (self.lat, self.lng)


@dataclass
class ParsedOutline:
    """Everything the outline parser extracts from one map block."""
    config: MapConfig = field(default_factory=MapConfig)
    filter_tag: Optional[str] = None
    markers: list[RawMarkerDecl] = field(default_factory=list)


@dataclass(frozen=True)
class BaseLayer:
    """A selectable tile style offered by the map's layer control."""
    name: str
    style_id: str
    checked: bool = False


class HoverPhase(str, Enum):
    """Where a marker popup is in its open/close cycle."""
    IDLE = "idle"
    HOVERING = "hovering"
    CLOSING = "closing"


def base_layers() -> list[BaseLayer]:
    """Configured tile styles; the first one is shown on mount."""
    return [
        BaseLayer(name=name, style_id=style_id, checked=(i == 0))
        for i, (name, style_id) in enumerate(BASE_LAYERS)
    ]
