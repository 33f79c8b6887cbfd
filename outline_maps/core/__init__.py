"""Core map model: outline parsing, coordinate resolution, membership filtering."""
from .types import (
    BaseLayer,
    HoverPhase,
    MapConfig,
    OutlineNode,
    ParsedOutline,
    RawMarkerDecl,
    ResolvedMarker,
)

__all__ = [
    "BaseLayer",
    "HoverPhase",
    "MapConfig",
    "OutlineNode",
    "ParsedOutline",
    "RawMarkerDecl",
    "ResolvedMarker",
]
