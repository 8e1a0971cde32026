"""
SybilScope: wallet behavioral clustering and sybil detection.
"""

from .clustering import Cluster, KMeansClusterer, cluster_wallets
from .detection import (
    AttackPattern,
    BehaviorClassifier,
    BehaviorPattern,
    SybilAnalysis,
    SybilDetector,
)
from .engine import PopulationReport, WalletClusteringEngine
from .exceptions import (
    InsufficientDataError,
    InvalidParameterError,
    SybilScopeError,
)
from .features import FeatureExtractor, WalletFeatureVector, extract_features
from .graph import NetworkGraph, NetworkGraphBuilder

__version__ = "0.1.0"

__all__ = [
    "Cluster",
    "KMeansClusterer",
    "cluster_wallets",
    "AttackPattern",
    "BehaviorClassifier",
    "BehaviorPattern",
    "SybilAnalysis",
    "SybilDetector",
    "PopulationReport",
    "WalletClusteringEngine",
    "InsufficientDataError",
    "InvalidParameterError",
    "SybilScopeError",
    "FeatureExtractor",
    "WalletFeatureVector",
    "extract_features",
    "NetworkGraph",
    "NetworkGraphBuilder",
]
