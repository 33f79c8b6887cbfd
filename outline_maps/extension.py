"""Extension lifecycle: shared resources and the set of mounted map widgets."""

from __future__ import annotations

import logging
from typing import Optional

from outline_maps.api.geocoding_client import GeocodingClient
from outline_maps.api.host_graph import HostGraph
from outline_maps.api.renderer import RendererLoader, renderer_loader
from outline_maps.config import POPUP_CLOSE_DELAY, setup_logging
from outline_maps.widget.host import MapHost
from outline_maps.widget.maps import MapWidget

logger = logging.getLogger(__name__)


class MapsExtension:
    """Owns the geocoder and renderer loader, and every widget mounted with them."""

    def __init__(
        self,
        graph: HostGraph,
        geocoder: Optional[GeocodingClient] = None,
        loader: Optional[RendererLoader] = None,
        close_delay: float = POPUP_CLOSE_DELAY,
    ) -> None:
        self.graph = graph
        self.geocoder = geocoder or GeocodingClient()
        self.loader = loader or renderer_loader
        self.close_delay = close_delay
        self.widgets: dict[str, MapWidget] = {}
        self._running = False

    def run(self, configure_logging: bool = True) -> None:
        if configure_logging:
            setup_logging()
        self._running = True
        logger.info("maps_extension_started")

    async def mount(self, block_uid: str, host: MapHost) -> MapWidget:
        """Mount a map for *block_uid*, replacing any widget already there."""
        if not self._running:
            raise RuntimeError("MapsExtension.run() must be called before mount()")
        self.unmount(block_uid)
        widget = MapWidget(
            block_uid,
            host,
            self.graph,
            self.geocoder,
            loader=self.loader,
            close_delay=self.close_delay,
        )
        self.widgets[block_uid] = widget
        await widget.mount()
        return widget

    def unmount(self, block_uid: str) -> None:
        widget = self.widgets.pop(block_uid, None)
        if widget is not None:
            widget.unmount()

    async def teardown(self) -> None:
        """Unmount every widget and release the shared resources."""
        for block_uid in list(self.widgets):
            self.unmount(block_uid)
        self.loader.unload()
        await self.geocoder.close()
        self._running = False
        logger.info("maps_extension_stopped")
