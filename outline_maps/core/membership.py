"""Membership filter: keep markers whose page is linked from the filter page."""

from __future__ import annotations

import logging
from typing import Optional

from outline_maps.api.host_graph import HostGraph
from outline_maps.core.tags import extract_tag
from outline_maps.core.types import ResolvedMarker

logger = logging.getLogger(__name__)


class MembershipFilter:
    """Apply an optional filter tag to resolved markers via the host graph."""

    def __init__(self, graph: HostGraph) -> None:
        self.graph = graph

    def is_member(self, marker: ResolvedMarker, filter_tag: str) -> bool:
        return self.graph.block_on_page_references(filter_tag, extract_tag(marker.tag))

    def apply(
        self, markers: list[ResolvedMarker], filter_tag: Optional[str]
    ) -> list[ResolvedMarker]:
        if not filter_tag:
            return markers
        kept = [m for m in markers if self.is_member(m, filter_tag)]
        logger.info(
            "markers_filtered",
            extra={"filter": filter_tag, "before": len(markers), "after": len(kept)},
        )
        return kept
