"""Host document access: outline reads, reference queries and navigation.

``HostGraph`` is the interface the map core talks to. ``InMemoryGraph`` is a
complete implementation backed by dicts, used for embedding the engine
outside the editor and in tests.
"""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass, field
from typing import Optional

from outline_maps.config import HOST_BASE_URL
from outline_maps.core.types import OutlineNode

logger = logging.getLogger(__name__)

_REF_PATTERNS = (
    re.compile(r"\[\[([^\[\]]+)\]\]"),          # [[Page]] and #[[Page]]
    re.compile(r"(?:^|\s)#([\w/-]+)"),           # #Page
    re.compile(r"^([^:\n]+)::"),                 # Page:: value
)


def page_refs(text: str) -> set[str]:
    """Titles of every page referenced in a block's text."""
    refs: set[str] = set()
    for pattern in _REF_PATTERNS:
        refs.update(m.strip() for m in pattern.findall(text or ""))
    return refs


class HostGraph:
    """Interface to the host outline. Subclasses implement every method."""

    # Outline reads -----------------------------------------------------

    def tree(self, block_uid: str) -> OutlineNode:
        raise NotImplementedError

    def block_text(self, uid: str) -> str:
        raise NotImplementedError

    def page_title(self, page_uid: str) -> Optional[str]:
        raise NotImplementedError

    def page_uid(self, title: str) -> Optional[str]:
        raise NotImplementedError

    def page_title_of_block(self, uid: str) -> Optional[str]:
        raise NotImplementedError

    def url_for(self, uid: str) -> str:
        return f"{HOST_BASE_URL}/page/{uid}"

    # Reference query ---------------------------------------------------

    def block_on_page_references(self, page_title: str, ref_title: str) -> bool:
        """Does any block on page *page_title* reference page *ref_title*?"""
        raise NotImplementedError

    # Navigation --------------------------------------------------------

    def open_page(self, page_uid: str) -> None:
        raise NotImplementedError

    def open_in_sidebar(self, uid: str) -> None:
        raise NotImplementedError


@dataclass
class _Block:
    uid: str
    text: str
    page_uid: str
    children: list[str] = field(default_factory=list)


class InMemoryGraph(HostGraph):
    """Pages and blocks held in dicts; navigation is recorded, not performed."""

    def __init__(self) -> None:
        self._pages: dict[str, str] = {}           # uid -> title
        self._page_children: dict[str, list[str]] = {}
        self._blocks: dict[str, _Block] = {}
        self.main_view: list[str] = []
        self.sidebar: list[str] = []

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    @classmethod
    def from_pages(cls, pages: dict[str, list]) -> InMemoryGraph:
        """Build a graph from ``{title: [block, ...]}``.

        A block is either a string or a dict with ``text``, optional ``uid``
        and optional ``children`` (same shape, recursively).
        """
        g = cls()
        for title, blocks in pages.items():
            page_uid = g.add_page(title)
            for b in blocks:
                g._add_tree(page_uid, b)
        return g

    def add_page(self, title: str, uid: Optional[str] = None) -> str:
        existing = self.page_uid(title)
        if existing:
            return existing
        page_uid = uid or _new_uid()
        self._pages[page_uid] = title
        self._page_children[page_uid] = []
        return page_uid

    def add_block(self, parent_uid: str, text: str, uid: Optional[str] = None) -> str:
        """Append a block under a page or another block."""
        if parent_uid in self._pages:
            page_uid = parent_uid
            siblings = self._page_children[parent_uid]
        elif parent_uid in self._blocks:
            parent = self._blocks[parent_uid]
            page_uid = parent.page_uid
            siblings = parent.children
        else:
            raise KeyError(f"Unknown parent uid: {parent_uid}")

        block_uid = uid or _new_uid()
        self._blocks[block_uid] = _Block(uid=block_uid, text=text, page_uid=page_uid)
        siblings.append(block_uid)
        for ref in page_refs(text):
            self.add_page(ref)
        return block_uid

    def _add_tree(self, parent_uid: str, raw) -> str:
        if isinstance(raw, str):
            return self.add_block(parent_uid, raw)
        uid = self.add_block(parent_uid, raw.get("text", ""), raw.get("uid"))
        for child in raw.get("children") or []:
            self._add_tree(uid, child)
        return uid

    # ------------------------------------------------------------------
    # HostGraph
    # ------------------------------------------------------------------

    def tree(self, block_uid: str) -> OutlineNode:
        if block_uid in self._pages:
            return OutlineNode(
                text=self._pages[block_uid],
                children=[self.tree(c) for c in self._page_children[block_uid]],
                uid=block_uid,
            )
        block = self._blocks.get(block_uid)
        if block is None:
            return OutlineNode(uid=block_uid)
        return OutlineNode(
            text=block.text,
            children=[self.tree(c) for c in block.children],
            uid=block.uid,
        )

    def block_text(self, uid: str) -> str:
        # Pages have a title but no block text
        block = self._blocks.get(uid)
        return block.text if block is not None else ""

    def page_title(self, page_uid: str) -> Optional[str]:
        return self._pages.get(page_uid)

    def page_uid(self, title: str) -> Optional[str]:
        for uid, t in self._pages.items():
            if t == title:
                return uid
        return None

    def page_title_of_block(self, uid: str) -> Optional[str]:
        block = self._blocks.get(uid)
        return self._pages.get(block.page_uid) if block else None

    def block_on_page_references(self, page_title: str, ref_title: str) -> bool:
        page_uid = self.page_uid(page_title)
        if page_uid is None:
            return False
        return any(
            b.page_uid == page_uid and ref_title in page_refs(b.text)
            for b in self._blocks.values()
        )

    def open_page(self, page_uid: str) -> None:
        logger.info("open_page", extra={"uid": page_uid})
        self.main_view.append(page_uid)

    def open_in_sidebar(self, uid: str) -> None:
        logger.info("open_in_sidebar", extra={"uid": uid})
        self.sidebar.append(uid)


def _new_uid() -> str:
    return uuid.uuid4().hex[:9]
