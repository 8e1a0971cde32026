"""
Projection of wallet profiles onto numeric vectors, and batch min-max scaling.
"""

from typing import List, Sequence

import numpy as np

from ..features.extractor import WalletFeatureVector

# Order of dimensions in every projected vector.
FEATURE_DIMENSIONS = (
    "transaction_count",
    "unique_protocols",
    "avg_transaction_value",
    "avg_gas_price",
    "transaction_frequency",
    "gas_spent",
    "account_age_days",
    "preferred_hour_breadth",
    "preferred_day_breadth",
)


def feature_tuple(features: WalletFeatureVector) -> np.ndarray:
    """Project a profile onto the fixed-order raw numeric vector."""
    return np.array([
        features.transaction_count,
        features.unique_protocols,
        features.avg_transaction_value,
        features.avg_gas_price,
        features.transaction_frequency,
        features.gas_spent,
        features.account_age_days,
        len(features.preferred_hours),
        len(features.preferred_days),
    ], dtype=float)


def feature_matrix(features: Sequence[WalletFeatureVector]) -> np.ndarray:
    """Stack raw vectors for a batch, one row per wallet."""
    if not features:
        return np.empty((0, len(FEATURE_DIMENSIONS)))
    return np.vstack([feature_tuple(f) for f in features])


def normalize_vectors(vectors: np.ndarray) -> np.ndarray:
    """
    Min-max scale each column of `vectors` to [0, 1].

    Columns with zero range become all zeros. The result depends on the
    whole batch, so scaled values are not comparable across batches.
    """
    vectors = np.asarray(vectors, dtype=float)
    if vectors.size == 0:
        return vectors.copy()

    mins = vectors.min(axis=0)
    ranges = vectors.max(axis=0) - mins

    normalized = np.zeros_like(vectors)
    nonzero = ranges > 0
    normalized[:, nonzero] = (vectors[:, nonzero] - mins[nonzero]) / ranges[nonzero]

    # Guard against float drift just outside the unit interval
    return np.clip(normalized, 0.0, 1.0)


def normalize_features(features: Sequence[WalletFeatureVector]) -> List[np.ndarray]:
    """Project and normalize a batch of profiles in one step."""
    return list(normalize_vectors(feature_matrix(features)))
