"""One map widget mounted into a block.

Mounting reads the block's outline fresh, shows the initial view, starts the
shared renderer load, then resolves and filters markers. Marker resolution is
not cancelled on unmount; a widget that is gone by the time it finishes
simply discards the result.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from outline_maps.api.geocoding_client import GeocodingClient
from outline_maps.api.host_graph import HostGraph
from outline_maps.api.renderer import RendererLoader
from outline_maps.config import DEFAULT_HEIGHT, HEIGHT_RATIO, POPUP_CLOSE_DELAY
from outline_maps.core.membership import MembershipFilter
from outline_maps.core.outline import parse_outline
from outline_maps.core.resolver import CoordinateResolver
from outline_maps.core.types import ParsedOutline, ResolvedMarker, base_layers
from outline_maps.viz.map_render import MapRenderer
from outline_maps.widget.host import MapHost
from outline_maps.widget.popup import PopupSynchronizer

logger = logging.getLogger(__name__)


class MapWidget:
    """Map for a single block, alive between ``mount()`` and ``unmount()``."""

    def __init__(
        self,
        block_uid: str,
        host: MapHost,
        graph: HostGraph,
        geocoder: GeocodingClient,
        loader: Optional[RendererLoader] = None,
        close_delay: float = POPUP_CLOSE_DELAY,
    ) -> None:
        self.block_uid = block_uid
        self.id = f"map-container-{block_uid}"
        self.host = host
        self.graph = graph
        self.resolver = CoordinateResolver(geocoder)
        self.membership = MembershipFilter(graph)
        self.popups = PopupSynchronizer(host, graph, loader=loader, close_delay=close_delay)
        self.parsed: Optional[ParsedOutline] = None
        self.markers: list[ResolvedMarker] = []
        self.height: float = DEFAULT_HEIGHT
        self.mounted = False
        self._renderer_task: Optional[asyncio.Task] = None

    async def mount(self) -> list[ResolvedMarker]:
        """Render the block's map. Returns the markers handed to the host."""
        self.parsed = parse_outline(self.graph.tree(self.block_uid))
        self.host.root.set_attribute("id", self.id)
        self.host.show(self.parsed.config, base_layers())
        self.mounted = True

        self.popups.start()
        self.fix_height()
        self._renderer_task = asyncio.get_running_loop().create_task(
            self.popups.load_renderer()
        )

        resolved = await self.resolver.resolve_all(self.parsed.markers)
        if not self.mounted:
            logger.info(
                "stale_markers_discarded",
                extra={"block_uid": self.block_uid, "count": len(resolved)},
            )
            return []

        self.markers = self.membership.apply(resolved, self.parsed.filter_tag)
        self.popups.set_markers(self.markers)
        logger.info(
            "map_mounted",
            extra={"block_uid": self.block_uid, "markers": len(self.markers)},
        )
        return self.markers

    def unmount(self) -> None:
        if not self.mounted:
            return
        self.mounted = False
        self.popups.stop()
        if self._renderer_task is not None and not self._renderer_task.done():
            self._renderer_task.cancel()
        logger.info("map_unmounted", extra={"block_uid": self.block_uid})

    async def wait_renderer(self) -> bool:
        """Wait until popup bodies can be rendered (False if the load failed)."""
        if self._renderer_task is None:
            return False
        try:
            return await self._renderer_task
        except asyncio.CancelledError:
            return False

    def snapshot(self) -> MapRenderer:
        """Static folium rendering of what this widget currently shows."""
        if self.parsed is None:
            raise RuntimeError("MapWidget.snapshot() called before mount()")
        return MapRenderer(
            self.parsed.config,
            self.markers,
            popup_body=self.popups.popup_body,
        )

    def fix_height(self) -> None:
        """Size the map to 4:3 of its rendered width and make it re-measure."""
        width = self.host.rendered_width()
        if not width:
            width = round(DEFAULT_HEIGHT * 4 / 3)
        self.height = int(width) * HEIGHT_RATIO
        self.host.set_height(self.height)
        self.host.invalidate_size()
