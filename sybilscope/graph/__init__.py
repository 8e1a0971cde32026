"""
Wallet interaction graph and community detection.
"""

from .network import (
    Community,
    GraphEdge,
    GraphNode,
    NetworkGraph,
    NetworkGraphBuilder,
    build_network_graph,
)

__all__ = [
    "Community",
    "GraphEdge",
    "GraphNode",
    "NetworkGraph",
    "NetworkGraphBuilder",
    "build_network_graph",
]
