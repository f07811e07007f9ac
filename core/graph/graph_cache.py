"""
Graph Cache — keeps the most recently built funding graph.

Time Complexity: O(1) for cache hit, O(B + I) for miss
Memory: O(V + E) for cached graph
"""

import logging
from typing import Optional, Tuple

from core.chain.models import BlockSource
from core.graph.graph_builder import build_transaction_graph
from core.graph.graph_store import GraphStore

logger = logging.getLogger(__name__)


class GraphCache:
    """Single-entry cache keyed by the scanned height range."""

    def __init__(self):
        self._key: Optional[Tuple[int, int]] = None
        self._graph: Optional[GraphStore[str]] = None

    def get(self, start_height: int, end_height: int) -> Optional[GraphStore[str]]:
        if self._key == (start_height, end_height):
            return self._graph
        return None

    def get_or_build(
        self, start_height: int, end_height: int, block_source: BlockSource
    ) -> GraphStore[str]:
        """Return cached graph if the range is unchanged, else rebuild."""
        cached = self.get(start_height, end_height)
        if cached is not None:
            logger.debug("Graph cache hit for heights %d-%d", start_height, end_height)
            return cached

        # A failed build leaves the previous entry untouched.
        graph = build_transaction_graph(start_height, end_height, block_source)
        self._key = (start_height, end_height)
        self._graph = graph
        return graph

    def invalidate(self):
        self._key = None
        self._graph = None
