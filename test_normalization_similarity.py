"""Tests for vector projection, min-max scaling and similarity ranking."""

import numpy as np
import pytest

from conftest import make_wallet
from sybilscope.clustering import (
    FEATURE_DIMENSIONS,
    cosine_similarity,
    euclidean_distance,
    feature_tuple,
    normalize_features,
    normalize_vectors,
    rank_similar_wallets,
    wallet_similarity,
)


class TestProjection:

    def test_tuple_follows_dimension_order(self):
        wallet = make_wallet("0xa", transaction_count=4, unique_protocols=3, avg_value=50.0,
                             avg_gas_price=7.0, age_days=2.0, preferred_hours=(1, 2),
                             preferred_days=(5,))
        vector = feature_tuple(wallet)

        assert len(vector) == len(FEATURE_DIMENSIONS)
        assert vector.tolist() == [4, 3, 50.0, 7.0, 2.0, 7.0 * 21000 * 4, 2.0, 2, 1]


class TestNormalization:

    def test_values_stay_in_unit_interval(self):
        rng = np.random.default_rng(7)
        vectors = rng.normal(scale=1000.0, size=(40, 9))

        normalized = normalize_vectors(vectors)

        assert normalized.min() >= 0.0
        assert normalized.max() <= 1.0
        assert np.allclose(normalized.min(axis=0), 0.0)
        assert np.allclose(normalized.max(axis=0), 1.0)

    def test_zero_range_column_becomes_zero(self):
        vectors = np.array([[5.0, 1.0], [5.0, 3.0], [5.0, 2.0]])

        normalized = normalize_vectors(vectors)

        assert normalized[:, 0].tolist() == [0.0, 0.0, 0.0]
        assert normalized[:, 1].tolist() == [0.0, 1.0, 0.5]

    def test_single_vector_normalizes_to_zeros(self):
        normalized = normalize_vectors(np.array([[3.0, 4.0, 5.0]]))

        assert normalized.tolist() == [[0.0, 0.0, 0.0]]

    def test_empty_batch(self):
        assert normalize_vectors(np.empty((0, 9))).shape == (0, 9)
        assert normalize_features([]) == []

    def test_does_not_mutate_input(self):
        vectors = np.array([[1.0, 10.0], [3.0, 20.0]])
        normalize_vectors(vectors)

        assert vectors.tolist() == [[1.0, 10.0], [3.0, 20.0]]


class TestDistances:

    def test_euclidean(self):
        assert euclidean_distance([0, 0], [3, 4]) == pytest.approx(5.0)

    def test_self_similarity_is_one(self):
        assert cosine_similarity([1.0, 2.0, 3.0], [1.0, 2.0, 3.0]) == pytest.approx(1.0)

    def test_zero_vector_similarity_is_zero(self):
        assert cosine_similarity([0.0, 0.0], [1.0, 2.0]) == 0.0
        assert cosine_similarity([1.0, 2.0], [0.0, 0.0]) == 0.0

    def test_orthogonal_and_opposite(self):
        assert cosine_similarity([1, 0], [0, 1]) == pytest.approx(0.0)
        assert cosine_similarity([1, 1], [-1, -1]) == pytest.approx(-1.0)

    def test_similarity_is_symmetric(self):
        a = make_wallet("0xa", avg_value=10.0)
        b = make_wallet("0xb", avg_value=10_000.0, avg_gas_price=1.0)

        assert wallet_similarity(a, b) == pytest.approx(wallet_similarity(b, a))


class TestRanking:

    def test_ranks_descending_and_skips_target(self):
        target = make_wallet("0xtarget")
        twin = make_wallet("0xtwin")
        close = make_wallet("0xclose", avg_gas_price=18.0, transaction_count=9)
        far = make_wallet("0xfar", transaction_count=2, avg_gas_price=1.0, avg_value=100_000.0)

        ranked = rank_similar_wallets(target, [far, close, target, twin])

        addresses = [address for address, _ in ranked]
        assert addresses[:2] == ["0xtwin", "0xclose"]
        assert "0xtarget" not in addresses
        assert "0xfar" not in addresses
        assert ranked[0][1] == pytest.approx(1.0)

    def test_ties_keep_population_order(self):
        target = make_wallet("0xtarget")
        clones = [make_wallet(f"0xclone{i}") for i in range(4)]

        ranked = rank_similar_wallets(target, clones)

        assert [address for address, _ in ranked] == [c.address for c in clones]

    def test_threshold_and_limit(self):
        target = make_wallet("0xtarget")
        clones = [make_wallet(f"0xclone{i}") for i in range(5)]
        far = make_wallet("0xfar", transaction_count=2, avg_gas_price=1.0, avg_value=100_000.0)

        assert len(rank_similar_wallets(target, clones + [far], limit=3)) == 3
        assert len(rank_similar_wallets(target, clones + [far], min_similarity=-1.0)) == 6
