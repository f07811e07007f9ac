"""
Graph Metrics — summary statistics for the funding graph.

Time Complexity: O(V + E)
Memory: O(V) for the degree table
"""

from typing import Any, Dict

import networkx as nx
import pandas as pd

from core.chain.models import NULL_TXID
from core.graph.graph_store import GraphStore


def compute_graph_summary(store: GraphStore) -> Dict[str, Any]:
    """Return basic graph-level metrics."""
    G = store.as_networkx()
    simple = nx.DiGraph(G)
    return {
        "total_vertices": store.number_of_vertices(),
        "total_edges": store.number_of_edges(),
        "unique_edges": simple.number_of_edges(),
        "coinbase_edges": len(store.neighbors(NULL_TXID)),
        "num_weakly_connected_components": (
            nx.number_weakly_connected_components(simple) if simple.number_of_nodes() > 0 else 0
        ),
        "density": round(nx.density(simple), 4),
    }


def funding_degree_table(store: GraphStore) -> pd.DataFrame:
    """
    One row per vertex: how many edges it funds and how many fund it.

    Parallel edges count individually. Ties on ``funds`` keep first-insertion
    order (stable sort).
    """
    G = store.as_networkx()
    vertices = store.vertices()
    df = pd.DataFrame(
        {
            "txid": vertices,
            "funds": [G.out_degree(v) for v in vertices],
            "funded_by": [G.in_degree(v) for v in vertices],
        },
        columns=["txid", "funds", "funded_by"],
    )
    return df.sort_values("funds", ascending=False, kind="stable").reset_index(drop=True)
