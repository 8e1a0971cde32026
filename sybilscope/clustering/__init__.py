"""
Clustering module for grouping wallets by behavior.

Provides the feature-vector projection and normalization, the similarity
primitives, and K-means clustering with K-means++ seeding.
"""

from .kmeans import (
    Cluster,
    ClusterCharacteristics,
    KMeansClusterer,
    KMeansResult,
    cluster_wallets,
)
from .normalizer import (
    FEATURE_DIMENSIONS,
    feature_matrix,
    feature_tuple,
    normalize_features,
    normalize_vectors,
)
from .similarity import (
    cosine_similarity,
    euclidean_distance,
    rank_similar_wallets,
    wallet_similarity,
)

__all__ = [
    "Cluster",
    "ClusterCharacteristics",
    "KMeansClusterer",
    "KMeansResult",
    "cluster_wallets",
    "FEATURE_DIMENSIONS",
    "feature_matrix",
    "feature_tuple",
    "normalize_features",
    "normalize_vectors",
    "cosine_similarity",
    "euclidean_distance",
    "rank_similar_wallets",
    "wallet_similarity",
]
