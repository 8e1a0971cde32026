"""
Wallet interaction graph and community detection.

Edges run from each profiled wallet to the counterparties it transacted
with often enough. Communities are the connected components of that
graph, with edge direction ignored.
"""

import math
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from ..config import GraphSettings, get_settings
from ..exceptions import InvalidParameterError
from ..features.extractor import WalletFeatureVector
from ..secure_logging import get_secure_logger
from ..validation import normalize_address

logger = get_secure_logger(__name__)


@dataclass(frozen=True)
class GraphNode:
    address: str
    label: str
    importance: float

    def to_dict(self) -> Dict[str, Any]:
        return {'address': self.address, 'label': self.label, 'importance': self.importance}


@dataclass(frozen=True)
class GraphEdge:
    from_address: str
    to_address: str
    weight: int      # Interaction count
    value: float     # Cumulative value estimate

    def to_dict(self) -> Dict[str, Any]:
        return {
            'from': self.from_address,
            'to': self.to_address,
            'weight': self.weight,
            'value': self.value,
        }


@dataclass(frozen=True)
class Community:
    id: str
    members: List[str]
    density: float  # 0-1, share of possible member pairs that are connected

    @property
    def size(self) -> int:
        return len(self.members)

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'members': list(self.members), 'density': self.density}


@dataclass(frozen=True)
class NetworkGraph:
    nodes: List[GraphNode] = field(default_factory=list)
    edges: List[GraphEdge] = field(default_factory=list)
    communities: List[Community] = field(default_factory=list)

    def community_of(self, address: str) -> Optional[Community]:
        """Community containing `address`, if any."""
        for community in self.communities:
            if normalize_address(address) in community.members:
                return community
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'nodes': [n.to_dict() for n in self.nodes],
            'edges': [e.to_dict() for e in self.edges],
            'communities': [c.to_dict() for c in self.communities],
        }


class NetworkGraphBuilder:
    """Builds a NetworkGraph from a population of wallet profiles."""

    def __init__(self, settings: Optional[GraphSettings] = None):
        self.settings = settings or get_settings().graph

    def build(self,
              wallets: Sequence[WalletFeatureVector],
              min_interactions: Optional[int] = None) -> NetworkGraph:
        """
        Build the interaction graph.

        Args:
            wallets: Profiled wallets (the graph's nodes)
            min_interactions: Minimum interaction count for an edge
                (defaults to the configured value)
        """
        threshold = self.settings.min_interactions if min_interactions is None else min_interactions
        if threshold < 1:
            raise InvalidParameterError('min_interactions', threshold, "Must be at least 1")

        nodes = []
        edges = []
        for wallet in wallets:
            address = normalize_address(wallet.address)
            nodes.append(GraphNode(
                address=address,
                label=address[:self.settings.label_length] + "...",
                importance=self.node_importance(wallet),
            ))

            for counterparty, count in merged_counterparties(wallet).items():
                if count >= threshold:
                    edges.append(GraphEdge(
                        from_address=address,
                        to_address=counterparty,
                        weight=count,
                        value=count * wallet.avg_transaction_value,
                    ))

        communities = self.detect_communities([n.address for n in nodes], edges)

        logger.info("network_graph_built",
                    nodes=len(nodes),
                    edges=len(edges),
                    communities=len(communities),
                    min_interactions=threshold)

        return NetworkGraph(nodes=nodes, edges=edges, communities=communities)

    @staticmethod
    def node_importance(wallet: WalletFeatureVector) -> float:
        """Activity-times-reach importance score."""
        return math.log(wallet.transaction_count + 1) * math.log(len(merged_counterparties(wallet)) + 1)

    def detect_communities(self, nodes: Sequence[str], edges: Sequence[GraphEdge]) -> List[Community]:
        """
        Connected components of the undirected edge set.

        Traversal starts from each node in order and uses an explicit
        stack, so large populations do not hit the recursion limit.
        Components with a single member are dropped. Addresses are
        compared in canonical form.
        """
        # dict-of-dicts keeps neighbor order deterministic
        adjacency: Dict[str, Dict[str, None]] = {}
        for edge in edges:
            source, target = normalize_address(edge.from_address), normalize_address(edge.to_address)
            adjacency.setdefault(source, {})[target] = None
            adjacency.setdefault(target, {})[source] = None

        visited = set()
        communities = []

        for start in map(normalize_address, nodes):
            if start in visited:
                continue

            members = []
            stack = [start]
            while stack:
                current = stack.pop()
                if current in visited:
                    continue
                visited.add(current)
                members.append(current)
                for neighbor in reversed(list(adjacency.get(current, ()))):
                    if neighbor not in visited:
                        stack.append(neighbor)

            if len(members) > 1:
                communities.append(Community(
                    id=f"community-{len(communities)}",
                    members=members,
                    density=self.community_density(members, edges),
                ))

        return communities

    @staticmethod
    def community_density(members: Sequence[str], edges: Sequence[GraphEdge]) -> float:
        """Distinct connected member pairs over all possible pairs."""
        member_set = {normalize_address(m) for m in members}
        pairs = set()
        for edge in edges:
            source, target = normalize_address(edge.from_address), normalize_address(edge.to_address)
            if source != target and source in member_set and target in member_set:
                pairs.add(frozenset((source, target)))

        max_pairs = len(members) * (len(members) - 1) / 2
        return len(pairs) / max_pairs if max_pairs > 0 else 0.0


def merged_counterparties(wallet: WalletFeatureVector) -> Counter:
    """Interaction counts keyed by canonical counterparty address."""
    merged: Counter = Counter()
    for counterparty, count in wallet.counterparty_counts.items():
        merged[normalize_address(counterparty)] += count
    return merged


def build_network_graph(wallets: Sequence[WalletFeatureVector],
                        min_interactions: Optional[int] = None) -> NetworkGraph:
    """Convenience wrapper using the configured graph settings."""
    return NetworkGraphBuilder().build(wallets, min_interactions)
