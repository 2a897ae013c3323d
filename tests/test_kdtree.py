"""Tests for KD-tree nearest-neighbour search."""

import numpy as np
import pytest
from scipy.spatial import distance as sp_dist

from spatialfdr.neighbors.kdtree import KDTreeNeighborSearch, kth_nearest_distances


class TestKNNQuery:
    """Tests for KDTreeNeighborSearch.query_knn."""

    def test_excludes_self(self):
        """Test the query point is not its own neighbour."""
        rng = np.random.default_rng(0)
        coords = rng.standard_normal((50, 3))
        searcher = KDTreeNeighborSearch(coords)

        dists, nbrs = searcher.query_knn([0, 5, 9], k=4)

        assert dists.shape == (3, 4)
        assert not np.any(nbrs == np.array([0, 5, 9])[:, None])
        assert np.all(dists[:, 1:] >= dists[:, :-1])

    def test_duplicate_coordinates(self):
        """Test duplicated points keep their twin as a zero-distance neighbour."""
        coords = np.array([[0.0, 0.0], [0.0, 0.0], [1.0, 0.0], [3.0, 0.0]])
        searcher = KDTreeNeighborSearch(coords)

        dists, nbrs = searcher.query_knn([0, 1], k=2)

        assert nbrs[0].tolist() == [1, 2]
        assert nbrs[1].tolist() == [0, 2]
        assert np.allclose(dists, [[0.0, 1.0], [0.0, 1.0]])

    def test_k_capped(self):
        """Test k is capped at the number of other points."""
        coords = np.arange(8, dtype=float).reshape(4, 2)
        dists, nbrs = KDTreeNeighborSearch(coords).query_knn([0], k=21)

        assert dists.shape == (1, 3)

    def test_k_one(self):
        """Test a single neighbour keeps a 2D result."""
        coords = np.array([[0.0], [1.0], [5.0]])
        dists, nbrs = KDTreeNeighborSearch(coords).query_knn([2], k=1)

        assert nbrs.tolist() == [[1]]
        assert np.allclose(dists, [[4.0]])

    def test_invalid_k(self):
        """Test k must be positive."""
        with pytest.raises(ValueError, match="k must be"):
            KDTreeNeighborSearch(np.zeros((3, 2))).query_knn([0], k=0)

    def test_coords_2d(self):
        """Test coordinates must be 2D."""
        with pytest.raises(ValueError, match="2D"):
            KDTreeNeighborSearch(np.zeros(5))


class TestKthDistance:
    """Tests for k-th nearest neighbour distance."""

    def test_matches_brute_force(self):
        """Test against sorted pairwise distances."""
        rng = np.random.default_rng(1)
        coords = rng.standard_normal((100, 10))
        indices = [3, 40, 99]
        k = 21

        result = kth_nearest_distances(coords, indices, k=k)

        D = sp_dist.cdist(coords[indices], coords)
        expected = np.sort(D, axis=1)[:, k]
        assert np.allclose(result, expected)

    def test_single_point(self):
        """Test a lone point has distance 0."""
        result = KDTreeNeighborSearch(np.zeros((1, 2))).kth_distance([0], k=21)

        assert result.tolist() == [0.0]
