"""Popup synchronizer: hover/click behavior and popup-body reconciliation.

Each marker popup runs a small state machine::

    idle --(enter)--> hovering --(leave)--> closing --(timeout)--> idle
    closing --(enter, same marker)--> hovering

Leaving a pin only schedules the close, so the pointer can travel from the
pin onto its popup (which reports enter/leave too) without the popup
flickering shut. A later enter always wins over an earlier pending close.

Popup bodies are rendered through the shared inline renderer and stay empty
until it has loaded. The host mounts bodies lazily, so the synchronizer
watches the widget's subtree and wires whatever popup containers and alias
links show up, each exactly once.
"""

from __future__ import annotations

import asyncio
import html
import logging
import re
import weakref
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Optional

from outline_maps.api.host_graph import HostGraph
from outline_maps.api.renderer import RendererLoader, get_parse_inline, renderer_loader
from outline_maps.config import POPUP_CLOSE_DELAY
from outline_maps.core.tags import extract_tag
from outline_maps.core.types import HoverPhase, ResolvedMarker
from outline_maps.widget.alias_preview import AliasPreview
from outline_maps.widget.dom import Element, Listener, MutationRecord
from outline_maps.widget.host import POPUP_CLASS, MapHost

logger = logging.getLogger(__name__)

MARKER_DATA_CLASS = "map-marker-data"
ALIAS_CLASS = "rm-alias"

_PAGE_HREF = re.compile(r"/page/(.*)")


@dataclass
class PopupState:
    """Transient per-marker popup state."""
    phase: HoverPhase = HoverPhase.IDLE
    close_handle: Optional[asyncio.TimerHandle] = None

    def cancel_close(self) -> None:
        if self.close_handle is not None:
            self.close_handle.cancel()
            self.close_handle = None


class PopupSynchronizer:
    """Drive marker popups for one mounted map widget."""

    def __init__(
        self,
        host: MapHost,
        graph: HostGraph,
        loader: Optional[RendererLoader] = None,
        close_delay: float = POPUP_CLOSE_DELAY,
    ) -> None:
        self.host = host
        self.graph = graph
        self.loader = loader or renderer_loader
        self.close_delay = close_delay
        self.previews: list[AliasPreview] = []
        self._markers: dict[str, ResolvedMarker] = {}
        self._states: dict[str, PopupState] = {}
        self._parse: Optional[Callable[[str], str]] = None
        self._wired: weakref.WeakSet[Element] = weakref.WeakSet()
        self._pin_handlers: list[tuple[Element, str, Listener]] = []
        self._disconnect: Optional[Callable[[], None]] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._stopped = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Subscribe to insertions under the widget root."""
        self._loop = asyncio.get_running_loop()
        self._disconnect = self.host.root.observe(self.reconcile)

    async def load_renderer(self) -> bool:
        """Wait for the shared renderer, then fill any popup already open."""
        try:
            self._parse = await get_parse_inline(self.graph, self.loader)
        except Exception:
            logger.warning("popup_renderer_unavailable")
            return False
        if self._stopped:
            return False
        for uid in self.host.open_popups():
            self.host.refresh_popup(uid)
        return True

    def stop(self) -> None:
        self._stopped = True
        for state in self._states.values():
            state.cancel_close()
            state.phase = HoverPhase.IDLE
        self._unwire_pins()
        if self._disconnect is not None:
            self._disconnect()
            self._disconnect = None
        for preview in self.previews:
            preview.stop()
        self.previews.clear()

    @property
    def renderer_loaded(self) -> bool:
        return self._parse is not None

    # ------------------------------------------------------------------
    # Markers
    # ------------------------------------------------------------------

    def set_markers(self, markers: list[ResolvedMarker]) -> None:
        """Hand *markers* to the host and attach pin handlers."""
        for state in self._states.values():
            state.cancel_close()
        self._unwire_pins()
        self._markers = {m.uid: m for m in markers}
        self._states = {m.uid: PopupState() for m in markers}
        self.host.set_markers(markers, self.popup_body)

        for uid in self._markers:
            pin = self.host.pin(uid)
            if pin is None:
                continue
            self._on(pin, "mouseover", lambda _e, uid=uid: self.enter(uid))
            self._on(pin, "mouseout", lambda _e, uid=uid: self.leave(uid))
            self._on(pin, "click", lambda e, uid=uid: self.click(uid, _shift(e)))

    def popup_body(self, uid: str) -> str:
        """Popup HTML for marker *uid*; empty until the renderer has loaded."""
        marker = self._markers.get(uid)
        if marker is None or self._parse is None:
            return ""
        safe_uid = html.escape(uid)
        return (
            f'<div class="{MARKER_DATA_CLASS} block-view" id="map-marker-{safe_uid}" '
            f'data-uid="{safe_uid}" style="display: flex">'
            f"{self._parse(marker.tag)}</div>"
        )

    # ------------------------------------------------------------------
    # Hover state machine
    # ------------------------------------------------------------------

    def phase(self, uid: str) -> HoverPhase:
        state = self._states.get(uid)
        return state.phase if state else HoverPhase.IDLE

    def enter(self, uid: str) -> None:
        state = self._states.get(uid)
        if state is None or self._stopped:
            return
        previous = state.phase
        state.cancel_close()
        state.phase = HoverPhase.HOVERING
        if previous is HoverPhase.IDLE:
            self.host.open_popup(uid)

    def leave(self, uid: str) -> None:
        state = self._states.get(uid)
        if state is None or state.phase is not HoverPhase.HOVERING:
            return
        state.phase = HoverPhase.CLOSING
        loop = self._loop or asyncio.get_running_loop()
        state.close_handle = loop.call_later(self.close_delay, self._close, uid)

    def _close(self, uid: str) -> None:
        state = self._states.get(uid)
        if state is None or state.phase is not HoverPhase.CLOSING:
            return
        state.close_handle = None
        state.phase = HoverPhase.IDLE
        self.host.close_popup(uid)
        self._release_detached_previews()

    # ------------------------------------------------------------------
    # Click navigation
    # ------------------------------------------------------------------

    def click(self, uid: str, shift: bool = False) -> None:
        """Open the marker's page; in the sidebar when shift is held."""
        marker = self._markers.get(uid)
        if marker is None:
            return
        page_uid = self.graph.page_uid(extract_tag(marker.tag))
        if not page_uid:
            logger.debug("marker_page_missing", extra={"tag": marker.tag})
            return
        if shift:
            self.graph.open_in_sidebar(page_uid)
        else:
            self.graph.open_page(page_uid)

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def reconcile(self, records: list[MutationRecord]) -> None:
        """Wire popup containers and alias links inserted under the root."""
        if self._stopped:
            return
        added = [n for r in records for n in r.added_nodes]

        for node in added:
            if node.tag != "div":
                continue
            popup = (
                node if POPUP_CLASS in node.classes
                else node.find_class(POPUP_CLASS) or node.closest_class(POPUP_CLASS)
            )
            if popup is not None:
                self._wire_popup(popup)

        for node in added:
            if node.parent is None:
                continue
            for anchor in node.parent.find_all_class(ALIAS_CLASS):
                self._wire_alias(anchor)

        # A refreshed popup body replaces its anchors
        self._release_detached_previews()

    def _wire_popup(self, popup: Element) -> None:
        if popup in self._wired:
            return
        data = popup.find_class(MARKER_DATA_CLASS)
        uid = data.get_attribute("data-uid") if data else None
        if uid not in self._markers:
            return
        self._wired.add(popup)
        popup.add_event_listener("mouseenter", lambda _e: self.enter(uid))
        popup.add_event_listener("mouseleave", lambda _e: self.leave(uid))
        logger.debug("popup_wired", extra={"uid": uid})

    def _wire_alias(self, anchor: Element) -> None:
        if anchor in self._wired:
            return
        match = _PAGE_HREF.search(anchor.get_attribute("href") or "")
        self._wired.add(anchor)
        preview = AliasPreview(
            anchor,
            block_uid=match.group(1) if match else "",
            graph=self.graph,
            loader=self.loader,
        )
        preview.start()
        self.previews.append(preview)

    def _release_detached_previews(self) -> None:
        """Stop previews whose anchor left the widget with its popup."""
        live = []
        for preview in self.previews:
            if self.host.root.contains(preview.anchor):
                live.append(preview)
                continue
            preview.stop()
            self._wired.discard(preview.anchor)
        if len(live) != len(self.previews):
            logger.debug(
                "alias_previews_released",
                extra={"released": len(self.previews) - len(live)},
            )
        self.previews = live

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _on(self, element: Element, event: str, listener: Listener) -> None:
        element.add_event_listener(event, listener)
        self._pin_handlers.append((element, event, listener))

    def _unwire_pins(self) -> None:
        for element, event, listener in self._pin_handlers:
            element.remove_event_listener(event, listener)
        self._pin_handlers.clear()


def _shift(event: Any) -> bool:
    if isinstance(event, dict):
        return bool(event.get("shift") or event.get("shiftKey"))
    return bool(getattr(event, "shift_key", False))
