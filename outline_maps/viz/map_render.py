"""Folium rendering of a resolved map block.

Produces a standalone HTML snapshot of what a mounted widget shows: the
initial view, the five Mapbox base layers behind a layer control, and one
marker per resolved location with its popup body.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Optional

import folium

from outline_maps.config import MAPBOX_ATTRIBUTION, MAPBOX_TILE_URL, MAPBOX_TOKEN
from outline_maps.core.tags import extract_tag
from outline_maps.core.types import BaseLayer, MapConfig, ResolvedMarker, base_layers


class MapRenderer:
    """Render markers on an interactive Folium map."""

    POPUP_WIDTH = 300

    def __init__(
        self,
        config: MapConfig,
        markers: list[ResolvedMarker],
        popup_body: Optional[Callable[[str], str]] = None,
        layers: Optional[list[BaseLayer]] = None,
        token: str = MAPBOX_TOKEN,
    ) -> None:
        self.config = config
        self.markers = markers
        self.popup_body = popup_body or (lambda uid: "")
        self.layers = layers if layers is not None else base_layers()
        self.token = token

    def build(self) -> folium.Map:
        m = folium.Map(
            location=list(self.config.center),
            zoom_start=self.config.zoom,
            tiles=None,
        )
        for layer in self.layers:
            folium.TileLayer(
                tiles=MAPBOX_TILE_URL.format(style=layer.style_id, token=self.token),
                attr=MAPBOX_ATTRIBUTION,
                name=layer.name,
                overlay=False,
                control=True,
                show=layer.checked,
            ).add_to(m)

        for marker in self.markers:
            body = self.popup_body(marker.uid)
            folium.Marker(
                location=[marker.lat, marker.lng],
                tooltip=extract_tag(marker.tag),
                popup=folium.Popup(body, max_width=self.POPUP_WIDTH) if body else None,
            ).add_to(m)

        folium.LayerControl(position="bottomleft").add_to(m)
        return m

    def render(self) -> str:
        """Render map to HTML string."""
        return self.build().get_root().render()

    def save_html(self, path: str) -> None:
        """Save rendered map to HTML file."""
        self.build().save(path)
