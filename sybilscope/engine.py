"""
Population analysis pipeline.

Ties the components together: extract features for every wallet, cluster
them, build the interaction graph, classify each wallet and optionally run
sybil detection for one target. The engine holds configuration only, so
concurrent analyses never share state.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

from .clustering.kmeans import Cluster, KMeansClusterer, RandomState
from .config import Settings, get_settings
from .detection.behavior import BehaviorClassification, BehaviorClassifier
from .detection.sybil import SybilAnalysis, SybilDetector
from .features.extractor import FeatureExtractor, TransactionInput, WalletFeatureVector
from .graph.network import NetworkGraph, NetworkGraphBuilder
from .secure_logging import get_secure_logger
from .validation import same_address

logger = get_secure_logger(__name__)


@dataclass(frozen=True)
class PopulationReport:
    """Everything computed for one population of wallets."""

    features: List[WalletFeatureVector] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)
    clusters: List[Cluster] = field(default_factory=list)
    graph: NetworkGraph = field(default_factory=NetworkGraph)
    classifications: Dict[str, BehaviorClassification] = field(default_factory=dict)
    sybil: Optional[SybilAnalysis] = None

    def get_cluster_by_wallet(self, wallet_address: str) -> Optional[Cluster]:
        """Get cluster containing the specified wallet."""
        for cluster in self.clusters:
            if any(same_address(wallet_address, w) for w in cluster.wallets):
                return cluster
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'features': [f.to_dict() for f in self.features],
            'failures': dict(self.failures),
            'clusters': [c.to_dict() for c in self.clusters],
            'graph': self.graph.to_dict(),
            'classifications': {a: c.to_dict() for a, c in self.classifications.items()},
            'sybil': self.sybil.to_dict() if self.sybil else None,
        }


class WalletClusteringEngine:
    """
    Runs the full analysis over a population keyed by address.

    Usage:
        engine = WalletClusteringEngine(random_state=42)
        report = engine.analyze(transactions_by_address, target_address="0xabc...")
    """

    def __init__(self,
                 settings: Optional[Settings] = None,
                 random_state: RandomState = None):
        self.settings = settings or get_settings()
        self.random_state = random_state

    def analyze(self,
                transactions_by_address: Mapping[str, List[TransactionInput]],
                target_address: Optional[str] = None,
                k: Optional[int] = None,
                min_interactions: Optional[int] = None,
                reference_time_ms: Optional[int] = None,
                should_cancel: Optional[Callable[[], bool]] = None) -> PopulationReport:
        """
        Analyze a population of wallets.

        Args:
            transactions_by_address: Address -> that wallet's transactions
            target_address: Wallet to run sybil detection for (optional)
            k: Cluster count (None picks one from the population size)
            min_interactions: Edge threshold for the interaction graph
            reference_time_ms: "Now" for account age calculations
            should_cancel: Polled between K-means iterations

        Returns:
            PopulationReport; wallets that failed extraction are listed in
            `failures` and excluded from every other section
        """
        logger.info("population_analysis_started", wallet_count=len(transactions_by_address))

        extraction = FeatureExtractor(self.settings.features).extract_batch(
            transactions_by_address, reference_time_ms
        )
        features = extraction.features

        clusterer = KMeansClusterer(self.settings.clustering, random_state=self.random_state)
        clusters = clusterer.cluster_wallets(features, k, should_cancel=should_cancel)

        graph = NetworkGraphBuilder(self.settings.graph).build(features, min_interactions)

        classifier = BehaviorClassifier()
        classifications = {f.address: classifier.classify(f) for f in features}

        sybil = None
        if target_address is not None:
            sybil = SybilDetector(self.settings.sybil).analyze_address(target_address, features)

        report = PopulationReport(
            features=features,
            failures=extraction.failures,
            clusters=clusters,
            graph=graph,
            classifications=classifications,
            sybil=sybil,
        )

        logger.info("population_analysis_completed",
                    analyzed=len(features),
                    failed=len(extraction.failures),
                    clusters=len(clusters),
                    communities=len(graph.communities),
                    sybil_flagged=bool(sybil and sybil.is_sybil))

        return report

    async def analyze_async(self,
                            transactions_by_address: Mapping[str, List[TransactionInput]],
                            **kwargs) -> PopulationReport:
        """Run `analyze` on a worker thread so the event loop stays responsive."""
        return await asyncio.to_thread(self.analyze, transactions_by_address, **kwargs)
