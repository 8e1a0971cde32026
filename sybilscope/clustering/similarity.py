"""
Distance and similarity primitives.

Euclidean distance is used by K-means on normalized vectors. Cosine
similarity compares raw feature tuples, so a wallet's similarity to
another does not depend on which population it is analysed in.
"""

from typing import List, Optional, Sequence, Tuple

import numpy as np

from ..config import SybilSettings, get_settings
from ..features.extractor import WalletFeatureVector
from ..validation import same_address
from .normalizer import feature_tuple


def euclidean_distance(v1: Sequence[float], v2: Sequence[float]) -> float:
    """Straight-line distance between two vectors."""
    return float(np.linalg.norm(np.asarray(v1, dtype=float) - np.asarray(v2, dtype=float)))


def cosine_similarity(v1: Sequence[float], v2: Sequence[float]) -> float:
    """
    Cosine of the angle between two vectors.

    Returns 0.0 when either vector has zero magnitude.
    """
    a = np.asarray(v1, dtype=float)
    b = np.asarray(v2, dtype=float)

    norm1 = np.linalg.norm(a)
    norm2 = np.linalg.norm(b)
    if norm1 == 0 or norm2 == 0:
        return 0.0

    return float(np.dot(a, b) / (norm1 * norm2))


def wallet_similarity(wallet1: WalletFeatureVector, wallet2: WalletFeatureVector) -> float:
    """Cosine similarity of two wallets' raw feature tuples."""
    return cosine_similarity(feature_tuple(wallet1), feature_tuple(wallet2))


def rank_similar_wallets(target: WalletFeatureVector,
                         population: Sequence[WalletFeatureVector],
                         min_similarity: Optional[float] = None,
                         limit: Optional[int] = None,
                         settings: Optional[SybilSettings] = None) -> List[Tuple[str, float]]:
    """
    Wallets in `population` most similar to `target`.

    Args:
        target: Wallet to compare against
        population: Candidate wallets (the target itself is skipped)
        min_similarity: Cut-off; defaults to the configured ranking threshold
        limit: Maximum number of results (None for all)

    Returns:
        (address, similarity) pairs, highest similarity first; ties keep
        population order
    """
    settings = settings or get_settings().sybil
    threshold = settings.min_ranking_similarity if min_similarity is None else min_similarity

    target_vector = feature_tuple(target)
    scored = []
    for wallet in population:
        if same_address(wallet.address, target.address):
            continue
        similarity = cosine_similarity(target_vector, feature_tuple(wallet))
        if similarity >= threshold:
            scored.append((wallet.address, similarity))

    scored.sort(key=lambda pair: pair[1], reverse=True)
    return scored if limit is None else scored[:limit]
