"""Minimal element tree standing in for the host's DOM inside a map widget.

Only what the map core needs: classes and attributes, event listeners, and a
subtree-insertion subscription equivalent to a ``childList``/``subtree``
mutation observer.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import Any, Optional

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

logger = logging.getLogger(__name__)

Listener = Callable[[Any], None]


@dataclass(eq=False)
class MutationRecord:
    """Nodes appended to ``target`` in one insertion."""
    target: Element
    added_nodes: list[Element]


MutationCallback = Callable[[list[MutationRecord]], None]


@dataclass(eq=False)
class Element:
    tag: str = "div"
    classes: set[str] = field(default_factory=set)
    attrs: dict[str, str] = field(default_factory=dict)
    text: str = ""
    inner_html: str = ""
    children: list[Element] = field(default_factory=list)
    parent: Optional[Element] = None
    _listeners: dict[str, list[Listener]] = field(default_factory=dict, repr=False)
    _observers: list[MutationCallback] = field(default_factory=list, repr=False)

    @classmethod
    def create(
        cls,
        tag: str = "div",
        class_name: str = "",
        text: str = "",
        **attrs: str,
    ) -> Element:
        return cls(
            tag=tag.lower(),
            classes=set(class_name.split()),
            attrs={k.replace("_", "-"): v for k, v in attrs.items()},
            text=text,
        )

    # ------------------------------------------------------------------
    # Tree
    # ------------------------------------------------------------------

    def append(self, *nodes: Element) -> Element:
        """Insert *nodes* as last children and notify subtree observers."""
        for node in nodes:
            if node.parent is not None:
                node.parent.children.remove(node)
            node.parent = self
            self.children.append(node)
        self._notify(MutationRecord(target=self, added_nodes=list(nodes)))
        return self

    def remove(self) -> None:
        if self.parent is not None:
            self.parent.children.remove(self)
            self.parent = None

    def iter(self) -> Iterator[Element]:
        """Depth-first walk over this element's descendants (not itself)."""
        for child in self.children:
            yield child
            yield from child.iter()

    def find_class(self, class_name: str) -> Optional[Element]:
        """First descendant carrying *class_name*, like ``querySelector('.x')``."""
        return next((e for e in self.iter() if class_name in e.classes), None)

    def find_all_class(self, class_name: str) -> list[Element]:
        return [e for e in self.iter() if class_name in e.classes]

    def contains(self, other: Element) -> bool:
        """True when *other* is this element or one of its descendants."""
        node: Optional[Element] = other
        while node is not None:
            if node is self:
                return True
            node = node.parent
        return False

    def closest_class(self, class_name: str) -> Optional[Element]:
        """This element or its nearest ancestor carrying *class_name*."""
        node: Optional[Element] = self
        while node is not None:
            if class_name in node.classes:
                return node
            node = node.parent
        return None

    def get_attribute(self, name: str) -> Optional[str]:
        return self.attrs.get(name)

    def set_attribute(self, name: str, value: str) -> None:
        self.attrs[name] = value

    @property
    def inner_text(self) -> str:
        return self.text + "".join(c.inner_text for c in self.children)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def add_event_listener(self, event: str, listener: Listener) -> None:
        self._listeners.setdefault(event, []).append(listener)

    def remove_event_listener(self, event: str, listener: Listener) -> None:
        handlers = self._listeners.get(event, [])
        if listener in handlers:
            handlers.remove(listener)

    def listeners(self, event: str) -> list[Listener]:
        return list(self._listeners.get(event, []))

    def dispatch(self, event: str, payload: Any = None) -> None:
        """Run every listener for *event*; a failing listener is logged and skipped."""
        for listener in self.listeners(event):
            try:
                listener(payload)
            except Exception:
                logger.error(
                    "event_listener_failed",
                    extra={"event": event, "tag": self.tag},
                    exc_info=True,
                )

    # ------------------------------------------------------------------
    # Subtree observation
    # ------------------------------------------------------------------

    def observe(self, callback: MutationCallback) -> Callable[[], None]:
        """Call *callback* for every insertion in this subtree. Returns a disconnect."""
        self._observers.append(callback)

        def disconnect() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return disconnect

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    def _notify(self, record: MutationRecord) -> None:
        node: Optional[Element] = self
        while node is not None:
            for callback in list(node._observers):
                try:
                    callback([record])
                except Exception:
                    logger.error("mutation_observer_failed", exc_info=True)
            node = node.parent


def _to_element(tag: Tag, parent: Optional[Element] = None) -> Element:
    attrs = {
        name: " ".join(value) if isinstance(value, list) else value
        for name, value in tag.attrs.items()
    }
    el = Element(
        tag=tag.name,
        classes=set(attrs.pop("class", "").split()),
        attrs=attrs,
        parent=parent,
    )
    for child in tag.children:
        if isinstance(child, Tag):
            el.children.append(_to_element(child, el))
        elif isinstance(child, NavigableString) and not isinstance(child, Comment):
            el.text += str(child)
    return el


def parse_fragment(markup: str) -> list[Element]:
    """Build detached elements from an HTML fragment; no observers fire."""
    soup = BeautifulSoup(markup or "", "html.parser")
    nodes: list[Element] = []
    for child in soup.contents:
        if isinstance(child, Tag):
            nodes.append(_to_element(child))
        elif isinstance(child, NavigableString) and not isinstance(child, Comment) and child.strip():
            nodes.append(Element(tag="#text", text=str(child)))
    return nodes
