"""
K-means clustering of wallet behavior profiles.

Profiles are projected and min-max normalized as a batch, seeded with
K-means++, then refined with Lloyd iterations until assignments stop
changing or the iteration cap is reached.
"""

import math
import time
from collections import Counter
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

import numpy as np

from ..config import ClusteringSettings, get_settings
from ..exceptions import ClusteringCancelledError
from ..features.extractor import WalletFeatureVector
from ..secure_logging import get_secure_logger
from ..validation import validate_cluster_count
from .normalizer import feature_matrix, normalize_vectors

logger = get_secure_logger(__name__)

RandomState = Union[None, int, np.random.Generator]

# A member needs at least this many distinct preferred hours for the
# cluster to look human-operated.
VARIED_TIMING_MIN_HOURS = 3
HUMAN_MAX_FREQUENCY = 10.0
SIMILAR_FUNDING_MIN_WALLETS = 10
SIMILAR_FUNDING_MAX_CV = 0.2


@dataclass(frozen=True)
class ClusterCharacteristics:
    """Aggregated description of a cluster's members."""

    avg_transaction_value: float
    common_protocols: List[str]
    behavior_pattern: str
    likely_human: bool
    suspicion_score: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'avg_transaction_value': self.avg_transaction_value,
            'common_protocols': list(self.common_protocols),
            'behavior_pattern': self.behavior_pattern,
            'likely_human': self.likely_human,
            'suspicion_score': self.suspicion_score,
        }


@dataclass(frozen=True)
class Cluster:
    """A group of behaviorally similar wallets."""

    id: str
    wallets: List[str]
    centroid: List[float]  # Normalized feature space
    cohesion: float        # 0-1, 1 = members sit on the centroid
    characteristics: ClusterCharacteristics

    @property
    def size(self) -> int:
        return len(self.wallets)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'wallets': list(self.wallets),
            'centroid': list(self.centroid),
            'size': self.size,
            'cohesion': self.cohesion,
            'characteristics': self.characteristics.to_dict(),
        }


@dataclass(frozen=True)
class KMeansResult:
    """Raw output of a K-means run on a vector batch."""

    assignments: np.ndarray
    centroids: np.ndarray
    iterations: int
    converged: bool


class KMeansClusterer:
    """
    K-means with K-means++ seeding.

    Create one per clustering run. Pass `random_state` (a seed or a numpy
    Generator) for reproducible partitions; the default draws fresh entropy.
    """

    def __init__(self,
                 settings: Optional[ClusteringSettings] = None,
                 random_state: RandomState = None):
        self.settings = settings or get_settings().clustering
        self.rng = np.random.default_rng(random_state)

    def determine_cluster_count(self, n: int) -> int:
        """Heuristic k = ceil(sqrt(n / 2)), capped at the configured maximum."""
        if n <= 0:
            return 0
        return min(math.ceil(math.sqrt(n / 2)), self.settings.max_clusters)

    def cluster_wallets(self,
                        features: Sequence[WalletFeatureVector],
                        k: Optional[int] = None,
                        should_cancel: Optional[Callable[[], bool]] = None) -> List[Cluster]:
        """
        Partition wallets into behavioral clusters.

        Args:
            features: Wallet profiles to cluster
            k: Number of clusters (None picks one from the batch size)
            should_cancel: Polled between iterations; returning True aborts

        Returns:
            Non-empty clusters, largest first. Every input wallet appears
            in exactly one cluster.

        Raises:
            InvalidParameterError: If k is given and not positive
            ClusteringCancelledError: If cancelled or timed out
        """
        validate_cluster_count(k)

        if not features:
            return []

        vectors = normalize_vectors(feature_matrix(features))
        k = k if k is not None else self.determine_cluster_count(len(features))

        result = self.fit(vectors, k, should_cancel=should_cancel)

        clusters = []
        for index in range(len(result.centroids)):
            member_idx = np.flatnonzero(result.assignments == index)
            if member_idx.size == 0:
                continue

            centroid = result.centroids[index]
            members = [features[i] for i in member_idx]

            clusters.append(Cluster(
                id=f"cluster-{index}",
                wallets=[m.address for m in members],
                centroid=centroid.tolist(),
                cohesion=self.calculate_cohesion(vectors[member_idx], centroid),
                characteristics=analyze_cluster_characteristics(members),
            ))

        clusters.sort(key=lambda c: c.size, reverse=True)

        logger.info("clustering_completed",
                    wallets=len(features),
                    requested_k=k,
                    clusters=len(clusters),
                    iterations=result.iterations,
                    converged=result.converged)

        return clusters

    def fit(self,
            vectors: np.ndarray,
            k: int,
            should_cancel: Optional[Callable[[], bool]] = None) -> KMeansResult:
        """
        Run K-means on already-normalized vectors.

        k is clamped to the number of vectors. A centroid whose cluster
        empties during an iteration is kept as a zero vector for that round.
        """
        validate_cluster_count(k)
        vectors = np.asarray(vectors, dtype=float)
        n = len(vectors)
        if n == 0:
            return KMeansResult(np.empty(0, dtype=int), np.empty((0, 0)), 0, True)
        k = min(k, n)

        centroids = self.initialize_centroids(vectors, k)
        assignments: Optional[np.ndarray] = None
        converged = False
        iterations = 0
        started = time.monotonic()
        timeout = self.settings.timeout_seconds

        while not converged and iterations < self.settings.max_iterations:
            if iterations > 0:
                if should_cancel is not None and should_cancel():
                    logger.warning("kmeans_cancelled", iterations=iterations)
                    raise ClusteringCancelledError(iterations, "cancelled")
                if timeout is not None and time.monotonic() - started > timeout:
                    logger.warning("kmeans_timed_out", iterations=iterations, timeout_seconds=timeout)
                    raise ClusteringCancelledError(iterations, "timed out")

            new_assignments = self.assign(vectors, centroids)
            converged = assignments is not None and np.array_equal(assignments, new_assignments)
            assignments = new_assignments
            centroids = self.update_centroids(vectors, assignments, k)
            iterations += 1

        logger.debug("kmeans_finished",
                     k=k,
                     iterations=iterations,
                     converged=converged)

        return KMeansResult(
            assignments=assignments,
            centroids=centroids,
            iterations=iterations,
            converged=converged,
        )

    def initialize_centroids(self, vectors: np.ndarray, k: int) -> np.ndarray:
        """
        K-means++ seeding.

        The first centroid is a uniformly random vector; each next one is
        drawn with probability proportional to its squared distance from
        the nearest centroid chosen so far.
        """
        n = len(vectors)
        centroids = [vectors[self.rng.integers(n)].copy()]

        while len(centroids) < k:
            chosen = np.asarray(centroids)
            sq_dist = ((vectors[:, None, :] - chosen[None, :, :]) ** 2).sum(axis=2).min(axis=1)
            total = sq_dist.sum()

            if total <= 0:
                # Every vector already sits on a centroid
                index = int(self.rng.integers(n))
            else:
                threshold = self.rng.random() * total
                index = int(np.searchsorted(np.cumsum(sq_dist), threshold, side="right"))
                index = min(index, n - 1)

            centroids.append(vectors[index].copy())

        return np.asarray(centroids)

    @staticmethod
    def assign(vectors: np.ndarray, centroids: np.ndarray) -> np.ndarray:
        """Index of the nearest centroid for every vector (ties go to the lower index)."""
        distances = np.linalg.norm(vectors[:, None, :] - centroids[None, :, :], axis=2)
        return distances.argmin(axis=1)

    @staticmethod
    def update_centroids(vectors: np.ndarray, assignments: np.ndarray, k: int) -> np.ndarray:
        """Mean of each cluster's vectors; empty clusters get a zero vector."""
        centroids = np.zeros((k, vectors.shape[1]))
        for index in range(k):
            members = vectors[assignments == index]
            if len(members):
                centroids[index] = members.mean(axis=0)
        return centroids

    @staticmethod
    def calculate_cohesion(member_vectors: np.ndarray, centroid: np.ndarray) -> float:
        """1 - mean distance to the centroid, floored at 0."""
        if len(member_vectors) == 0:
            return 0.0
        mean_distance = float(np.linalg.norm(member_vectors - centroid, axis=1).mean())
        return max(0.0, 1.0 - mean_distance)


def analyze_cluster_characteristics(wallets: Sequence[WalletFeatureVector]) -> ClusterCharacteristics:
    """Summarize the members of one cluster."""
    avg_values = np.array([w.avg_transaction_value for w in wallets], dtype=float)
    avg_frequency = float(np.mean([w.transaction_frequency for w in wallets]))

    protocol_totals: Counter = Counter()
    for wallet in wallets:
        protocol_totals.update(wallet.protocol_distribution)
    common_protocols = [protocol for protocol, _ in protocol_totals.most_common(5)]

    if avg_frequency > 5:
        behavior_pattern = "Very active traders"
    elif avg_frequency > 1:
        behavior_pattern = "Regular users"
    else:
        behavior_pattern = "Occasional users"

    has_varied_timing = any(len(w.preferred_hours) >= VARIED_TIMING_MIN_HOURS for w in wallets)
    likely_human = has_varied_timing and avg_frequency < HUMAN_MAX_FREQUENCY

    suspicion_score = 0
    if not likely_human:
        suspicion_score += 30
    if len(wallets) > SIMILAR_FUNDING_MIN_WALLETS and _have_similar_funding(avg_values):
        suspicion_score += 40

    return ClusterCharacteristics(
        avg_transaction_value=float(avg_values.mean()),
        common_protocols=common_protocols,
        behavior_pattern=behavior_pattern,
        likely_human=likely_human,
        suspicion_score=suspicion_score,
    )


def _have_similar_funding(avg_values: np.ndarray) -> bool:
    """Low coefficient of variation across member average values."""
    if len(avg_values) < 2:
        return False
    mean = avg_values.mean()
    if mean <= 0:
        return False
    return float(avg_values.std() / mean) < SIMILAR_FUNDING_MAX_CV


def cluster_wallets(features: Sequence[WalletFeatureVector],
                    k: Optional[int] = None,
                    random_state: RandomState = None) -> List[Cluster]:
    """Convenience wrapper: one fresh clusterer per call."""
    return KMeansClusterer(random_state=random_state).cluster_wallets(features, k)
