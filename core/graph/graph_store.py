"""
Graph Store — generic directed multigraph over hashable identifiers.

Backed by a NetworkX MultiDiGraph. Node order follows first insertion, and
every edge is stamped with a sequence number so a vertex's outgoing
neighbors come back in the order they were inserted, duplicates included.

Time Complexity: O(1) insert, O(d log d) neighbors, O(V + E) reachability
Memory: O(V + E)
"""

from collections import deque
from typing import Deque, Generic, Hashable, List, Set, TypeVar

import networkx as nx

T = TypeVar("T", bound=Hashable)


class GraphStore(Generic[T]):
    """Insertion-ordered directed multigraph.

    Parallel edges are never merged: inserting the same (source, target)
    pair twice records two edges and both show up in ``neighbors``.

    Identifiers must be hashable and not ``None``; NetworkX refuses ``None``
    as a node, so ``insert_edge(None, x)`` raises ``ValueError``.
    """

    def __init__(self) -> None:
        self._graph = nx.MultiDiGraph()
        self._seq = 0

    def insert_edge(self, source: T, target: T) -> None:
        """Record an edge, adding unseen endpoints (source first)."""
        self._graph.add_edge(source, target, seq=self._seq)
        self._seq += 1

    def contains_vertex(self, vertex: T) -> bool:
        return vertex in self._graph

    def number_of_vertices(self) -> int:
        return self._graph.number_of_nodes()

    def number_of_edges(self) -> int:
        return self._graph.number_of_edges()

    def vertices(self) -> List[T]:
        """All vertices in first-insertion order."""
        return list(self._graph.nodes())

    def neighbors(self, vertex: T) -> List[T]:
        """Outgoing neighbors in insertion order, one entry per edge."""
        if vertex not in self._graph:
            return []
        edges = sorted(self._graph.out_edges(vertex, data="seq"), key=lambda e: e[2])
        return [target for _, target, _ in edges]

    def predecessors(self, vertex: T) -> List[T]:
        """Distinct vertices with at least one edge into ``vertex``."""
        if vertex not in self._graph:
            return []
        return list(self._graph.predecessors(vertex))

    def reachable_from(self, source: T) -> Set[T]:
        """Vertices reachable from ``source`` by a walk of one or more edges."""
        reached: Set[T] = set()
        if source not in self._graph:
            return reached

        queue: Deque[T] = deque([source])
        while queue:
            node = queue.popleft()
            for nbr in self._graph.successors(node):
                if nbr not in reached:
                    reached.add(nbr)
                    queue.append(nbr)
        return reached

    def path_exists_between(self, source: T, target: T) -> bool:
        """
        BFS from ``source``; True as soon as ``target`` is discovered.

        A vertex only reaches itself through a self-loop or a cycle.
        ``successors`` yields each distinct neighbor once, so parallel edges
        never cause extra work.
        """
        if source not in self._graph or target not in self._graph:
            return False

        visited: Set[T] = set()
        queue: Deque[T] = deque([source])
        while queue:
            node = queue.popleft()
            for nbr in self._graph.successors(node):
                if nbr == target:
                    return True
                if nbr not in visited:
                    visited.add(nbr)
                    queue.append(nbr)
        return False

    def as_networkx(self) -> nx.MultiDiGraph:
        """Read-only view of the underlying graph."""
        return self._graph.copy(as_view=True)

    def __contains__(self, vertex: object) -> bool:
        return vertex in self._graph

    def __len__(self) -> int:
        return self.number_of_vertices()

    def __repr__(self) -> str:
        return (
            f"GraphStore(vertices={self.number_of_vertices()}, "
            f"edges={self.number_of_edges()})"
        )
