"""Map host adapter: the boundary between the core and the map widget.

The core hands the host a view (center, zoom, base layers) and validated
markers; the host owns pins and popups as elements under ``root`` and reports
pointer activity as ``mouseover``/``mouseout``/``click`` events on the pins.
Popup bodies are mounted lazily, when a popup opens, which is what the popup
synchronizer's reconciliation reacts to.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Optional

from outline_maps.core.types import BaseLayer, MapConfig, ResolvedMarker
from outline_maps.widget.dom import Element, parse_fragment

logger = logging.getLogger(__name__)

PopupBody = Callable[[str], str]

PIN_CLASS = "leaflet-marker-icon"
POPUP_CLASS = "leaflet-popup"
POPUP_CONTENT_CLASS = "leaflet-popup-content"


class MapHost:
    """Interface to a map widget. Subclasses implement every method."""

    root: Element

    def show(self, config: MapConfig, layers: list[BaseLayer]) -> None:
        raise NotImplementedError

    def set_markers(self, markers: list[ResolvedMarker], popup_body: PopupBody) -> None:
        raise NotImplementedError

    def pin(self, uid: str) -> Optional[Element]:
        raise NotImplementedError

    def open_popup(self, uid: str) -> None:
        raise NotImplementedError

    def close_popup(self, uid: str) -> None:
        raise NotImplementedError

    def refresh_popup(self, uid: str) -> None:
        """Re-mount an open popup's body after its content changed."""
        raise NotImplementedError

    def open_popups(self) -> list[str]:
        raise NotImplementedError

    def rendered_width(self) -> Optional[float]:
        raise NotImplementedError

    def set_height(self, height: float) -> None:
        raise NotImplementedError

    def invalidate_size(self) -> None:
        raise NotImplementedError


class ElementMapHost(MapHost):
    """Map host that keeps its pins and popups in an in-process element tree.

    Attributes:
        width: Rendered container width in px, or None before layout.
        invalidations: Number of times the surface was asked to re-measure.
        popup_log: (uid, "open" | "close") in the order they happened.
    """

    def __init__(self, root: Optional[Element] = None, width: Optional[float] = None) -> None:
        self.root = root or Element.create("div", "map-container")
        self.width = width
        self.height: Optional[float] = None
        self.config: Optional[MapConfig] = None
        self.layers: list[BaseLayer] = []
        self.markers: list[ResolvedMarker] = []
        self.invalidations = 0
        self.popup_log: list[tuple[str, str]] = []
        self._pins: dict[str, Element] = {}
        self._popups: dict[str, Element] = {}
        self._popup_body: PopupBody = lambda uid: ""
        self._marker_pane = Element.create("div", "leaflet-pane leaflet-marker-pane")
        self._popup_pane = Element.create("div", "leaflet-pane leaflet-popup-pane")

    def show(self, config: MapConfig, layers: list[BaseLayer]) -> None:
        self.config = config
        self.layers = list(layers)
        self.root.append(self._marker_pane, self._popup_pane)

    def set_markers(self, markers: list[ResolvedMarker], popup_body: PopupBody) -> None:
        for uid in list(self._popups):
            self.close_popup(uid)
        for pin in self._pins.values():
            pin.remove()
        self._pins.clear()

        self.markers = list(markers)
        self._popup_body = popup_body
        pins = []
        for m in markers:
            pin = Element.create("img", PIN_CLASS, title=m.uid)
            self._pins[m.uid] = pin
            pins.append(pin)
        if pins:
            self._marker_pane.append(*pins)
        logger.debug("pins_rendered", extra={"count": len(pins)})

    def pin(self, uid: str) -> Optional[Element]:
        return self._pins.get(uid)

    def open_popup(self, uid: str) -> None:
        if uid in self._popups or uid not in self._pins:
            return
        content = Element.create("div", POPUP_CONTENT_CLASS)
        self._fill(content, uid)
        popup = Element.create("div", POPUP_CLASS)
        popup.append(content)
        self._popups[uid] = popup
        self.popup_log.append((uid, "open"))
        self._popup_pane.append(popup)

    def close_popup(self, uid: str) -> None:
        popup = self._popups.pop(uid, None)
        if popup is None:
            return
        popup.remove()
        self.popup_log.append((uid, "close"))

    def refresh_popup(self, uid: str) -> None:
        popup = self._popups.get(uid)
        content = popup.find_class(POPUP_CONTENT_CLASS) if popup else None
        if content is None:
            return
        for child in list(content.children):
            child.remove()
        self._fill(content, uid)

    def open_popups(self) -> list[str]:
        return list(self._popups)

    def popup(self, uid: str) -> Optional[Element]:
        return self._popups.get(uid)

    def rendered_width(self) -> Optional[float]:
        return self.width

    def set_height(self, height: float) -> None:
        self.height = height

    def invalidate_size(self) -> None:
        self.invalidations += 1

    def _fill(self, content: Element, uid: str) -> None:
        body = self._popup_body(uid)
        content.inner_html = body
        nodes = parse_fragment(body)
        if nodes:
            content.append(*nodes)
