"""Hover preview for alias links that appear inside popup bodies."""

from __future__ import annotations

import asyncio
import html
import logging
from typing import Any, Optional

from outline_maps.api.host_graph import HostGraph
from outline_maps.api.renderer import RendererLoader, get_parse_inline, renderer_loader
from outline_maps.widget.dom import Element

logger = logging.getLogger(__name__)

TOOLTIP_CLASS = "alias-preview-tooltip"

_PAGE_SNIPPET = (
    '<span data-link-title="{title}" data-link-uid="{uid}">'
    '<span class="rm-page-ref__brackets">[[</span>'
    '<span tabindex="-1" class="rm-page-ref rm-page-ref--link">{title}</span>'
    '<span class="rm-page-ref__brackets">]]</span>'
    "</span>"
)


class AliasPreview:
    """Tooltip behavior bound to one alias anchor.

    Shows the referenced page's title right away when the uid is a page, then
    swaps in the rendered block text once the shared renderer is available.
    """

    def __init__(
        self,
        anchor: Element,
        block_uid: str,
        graph: HostGraph,
        loader: Optional[RendererLoader] = None,
    ) -> None:
        self.anchor = anchor
        self.block_uid = block_uid
        self.graph = graph
        self.loader = loader or renderer_loader
        self.html = ""
        self.tooltip: Optional[Element] = None
        self._task: Optional[asyncio.Task] = None
        self._stopped = False

    def start(self) -> None:
        title = self.graph.page_title(self.block_uid)
        if title:
            self.html = _PAGE_SNIPPET.format(
                title=html.escape(title), uid=html.escape(self.block_uid)
            )
        self.anchor.add_event_listener("mouseenter", self._show)
        self.anchor.add_event_listener("mouseleave", self._hide)
        self._task = asyncio.get_running_loop().create_task(self._render())

    def stop(self) -> None:
        self._stopped = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self.anchor.remove_event_listener("mouseenter", self._show)
        self.anchor.remove_event_listener("mouseleave", self._hide)
        self._hide(None)

    async def wait_rendered(self) -> None:
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)

    async def _render(self) -> None:
        try:
            parse = await get_parse_inline(self.graph, self.loader)
        except Exception:
            logger.warning("alias_preview_render_skipped", extra={"uid": self.block_uid})
            return
        if self._stopped:
            return
        text = self.graph.block_text(self.block_uid)
        # A page has no block text; keep the title snippet for it
        if text:
            self.html = parse(text)
            if self.tooltip is not None:
                self.tooltip.inner_html = self.html

    def _show(self, _event: Any) -> None:
        if self.tooltip is not None:
            return
        self.tooltip = Element.create("div", TOOLTIP_CLASS)
        self.tooltip.inner_html = self.html
        self.anchor.append(self.tooltip)

    def _hide(self, _event: Any) -> None:
        if self.tooltip is not None:
            self.tooltip.remove()
            self.tooltip = None
