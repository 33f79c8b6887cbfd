"""Inline rich-text renderer for popup bodies and alias previews.

Block text uses the host's inline syntax on top of Markdown: ``[[Page]]``
links, ``#tag`` links, ``((uid))`` block references, ``[alias]([[Page]])``
aliases, ``^^highlight^^`` and ``{{component}}`` embeds. The renderer turns
that into an HTML fragment.

Loading the Markdown engine is deferred to first use and shared by every map
on the page: ``renderer_loader`` hands all concurrent callers the same
in-flight load.
"""

from __future__ import annotations

import asyncio
import html
import logging
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Optional

import markdown

from outline_maps.api.host_graph import HostGraph

logger = logging.getLogger(__name__)

_COMPONENT = re.compile(r"\{\{\s*(?:\[\[)?([^}\]]*?)(?:\]\])?\s*(?::[^}]*)?\}\}")
_PAGE_ALIAS = re.compile(r"\[([^\]]+)\]\(\[\[([^\]]+)\]\]\)")
_BLOCK_ALIAS = re.compile(r"\[([^\]]+)\]\(\(\(([\w-]+)\)\)\)")
_BLOCK_REF = re.compile(r"\(\(([\w-]+)\)\)")
_TAG_REF = re.compile(r"#\[\[([^\[\]]+)\]\]|(?<![^\s(])#([\w/-]+)")
_PAGE_REF = re.compile(r"\[\[([^\[\]]+)\]\]")
_HIGHLIGHT = re.compile(r"\^\^(.+?)\^\^")


@dataclass
class RenderContext:
    """Host lookups the renderer needs while expanding references."""

    pages_to_hrefs: Callable[[str, Optional[str]], str]
    block_references: Callable[[str], dict]
    components: Callable[[str], Any]

    @classmethod
    def for_graph(cls, graph: HostGraph) -> RenderContext:
        def pages_to_hrefs(page: str, ref: Optional[str] = None) -> str:
            return graph.url_for(ref) if ref else graph.url_for(graph.page_uid(page) or "")

        def block_references(ref: str) -> dict:
            return {
                "text": graph.block_text(ref),
                "page": graph.page_title_of_block(ref) or "",
            }

        return cls(
            pages_to_hrefs=pages_to_hrefs,
            block_references=block_references,
            components=lambda name: False,
        )


class InlineRenderer:
    """Render one block's inline markup to HTML."""

    def __init__(self, md: Any) -> None:
        self._md = md

    def render(self, text: str, context: RenderContext) -> str:
        source = self._expand(html.escape(text or "", quote=False), context)
        self._md.reset()
        out = self._md.convert(source).strip()
        # Inline output: drop the single wrapping paragraph
        if out.startswith("<p>") and out.endswith("</p>") and out.count("<p>") == 1:
            out = out[3:-4]
        return out

    def _expand(self, text: str, context: RenderContext) -> str:
        def component(m: re.Match) -> str:
            rendered = context.components(m.group(1).strip())
            return rendered if isinstance(rendered, str) else ""

        def page_alias(m: re.Match) -> str:
            href = _page_href(context, m.group(2))
            return f'<a class="rm-alias rm-alias--page" href="{href}">{m.group(1)}</a>'

        def block_alias(m: re.Match) -> str:
            href = html.escape(context.pages_to_hrefs("", m.group(2)))
            return f'<a class="rm-alias rm-alias--block" href="{href}">{m.group(1)}</a>'

        def block_ref(m: re.Match) -> str:
            ref = context.block_references(m.group(1))
            body = html.escape(ref.get("text", ""), quote=False)
            return f'<span class="rm-block-ref" data-uid="{m.group(1)}">{body}</span>'

        def tag_ref(m: re.Match) -> str:
            title = m.group(1) or m.group(2)
            href = _page_href(context, title)
            return (
                f'<a class="rm-page-ref rm-page-ref--tag" data-tag="{_attr(title)}" '
                f'href="{href}">#{title}</a>'
            )

        def page_ref(m: re.Match) -> str:
            title = m.group(1)
            href = _page_href(context, title)
            return (
                f'<span data-link-title="{_attr(title)}">'
                '<span class="rm-page-ref__brackets">[[</span>'
                f'<a class="rm-page-ref rm-page-ref--link" href="{href}">{title}</a>'
                '<span class="rm-page-ref__brackets">]]</span></span>'
            )

        text = _COMPONENT.sub(component, text)
        text = _PAGE_ALIAS.sub(page_alias, text)
        text = _BLOCK_ALIAS.sub(block_alias, text)
        text = _BLOCK_REF.sub(block_ref, text)
        text = _TAG_REF.sub(tag_ref, text)
        text = _PAGE_REF.sub(page_ref, text)
        text = _HIGHLIGHT.sub(r"<mark>\1</mark>", text)
        return text


# Captured titles come from already-escaped text: unescape for lookups,
# and only quote them for attributes.

def _page_href(context: RenderContext, title: str) -> str:
    return html.escape(context.pages_to_hrefs(html.unescape(title), None))


def _attr(value: str) -> str:
    return value.replace('"', "&quot;")


async def load_markdown_renderer() -> InlineRenderer:
    """Build the Markdown engine used for every popup body."""
    return InlineRenderer(markdown.Markdown(extensions=["sane_lists"]))


class RendererLoader:
    """Process-wide, single-flight loader for the inline renderer.

    Every ``get()`` issued while a load is in flight awaits that same load. A
    failed load is forgotten so the next caller retries. ``unload()`` is
    called from the extension's teardown.
    """

    def __init__(
        self, load: Callable[[], Awaitable[InlineRenderer]] = load_markdown_renderer
    ) -> None:
        self._load = load
        self._task: Optional[asyncio.Task] = None
        self.load_count = 0

    async def get(self) -> InlineRenderer:
        task = self._task
        if task is None or task.get_loop() is not asyncio.get_running_loop():
            self.load_count += 1
            task = self._task = asyncio.ensure_future(self._load())
            logger.debug("renderer_load_started")
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            raise
        except Exception:
            if self._task is task:
                self._task = None
                logger.error("renderer_load_failed", exc_info=True)
            raise

    def current(self) -> Optional[InlineRenderer]:
        """The loaded renderer, or None while loading / before first use."""
        task = self._task
        if task is None or not task.done() or task.cancelled() or task.exception():
            return None
        return task.result()

    def unload(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None


renderer_loader = RendererLoader()


async def get_parse_inline(
    graph: HostGraph, loader: Optional[RendererLoader] = None
) -> Callable[[str], str]:
    """Wait for the shared renderer and bind it to *graph*'s lookups."""
    renderer = await (loader or renderer_loader).get()
    context = RenderContext.for_graph(graph)
    return lambda text: renderer.render(text, context)
