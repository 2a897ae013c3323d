"""
KD-tree based k-nearest-neighbour search in reduced-dimension space.

Uses scipy.spatial.cKDTree for O(n log n) neighbor queries. Used by the
k-distance weighting when no precomputed distances are available.
"""

from typing import Tuple

import numpy as np
from scipy.spatial import cKDTree


class KDTreeNeighborSearch:
    """
    KD-tree based nearest-neighbour search.

    Parameters
    ----------
    coords : array-like
        Coordinates of shape (n_cells, n_dims), e.g. PCA embedding.
    leafsize : int, default=16
        Number of points at which to switch to brute-force search.

    Examples
    --------
    >>> coords = np.random.randn(1000, 30)
    >>> searcher = KDTreeNeighborSearch(coords)
    >>> searcher.kth_distance([0, 10, 20], k=21).shape
    (3,)
    """

    def __init__(self, coords, leafsize: int = 16):
        self.coords = np.asarray(coords, dtype=np.float64)
        if self.coords.ndim != 2:
            raise ValueError("coords must be 2D (n_cells, n_dims)")
        self.n_points = self.coords.shape[0]
        self.tree = cKDTree(self.coords, leafsize=leafsize)

    def query_knn(
        self,
        indices,
        k: int,
        exclude_self: bool = True,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Find the k nearest neighbours of a subset of points.

        Parameters
        ----------
        indices : array-like of int
            Row indices of the query points.
        k : int
            Number of neighbours per query point. Capped at the number of
            other points available.
        exclude_self : bool, default=True
            Drop the query point itself from its neighbour list.

        Returns
        -------
        Tuple[np.ndarray, np.ndarray]
            (distances, neighbor_indices), each of shape (n_queries, k),
            sorted by increasing distance.
        """
        indices = np.asarray(indices, dtype=np.intp).reshape(-1)
        if k < 1:
            raise ValueError("k must be a positive integer")

        available = self.n_points - 1 if exclude_self else self.n_points
        k = min(k, available)
        if k < 1 or len(indices) == 0:
            return (
                np.zeros((len(indices), 0), dtype=np.float64),
                np.zeros((len(indices), 0), dtype=np.intp),
            )

        n_query = k + 1 if exclude_self else k
        # cKDTree squeezes the neighbour axis when k == 1
        dists, nbrs = self.tree.query(self.coords[indices], k=[*range(1, n_query + 1)])

        if exclude_self:
            dists, nbrs = _drop_self(dists, nbrs, indices)

        return dists, nbrs

    def kth_distance(self, indices, k: int = 21) -> np.ndarray:
        """
        Distance from each query point to its k-th nearest neighbour.

        Parameters
        ----------
        indices : array-like of int
            Row indices of the query points.
        k : int, default=21
            Neighbour rank.

        Returns
        -------
        np.ndarray
            Distances of shape (n_queries,).
        """
        dists, _ = self.query_knn(indices, k, exclude_self=True)
        if dists.shape[1] == 0:
            return np.zeros(dists.shape[0], dtype=np.float64)
        return dists.max(axis=1)


def _drop_self(
    dists: np.ndarray,
    nbrs: np.ndarray,
    indices: np.ndarray,
) -> Tuple[np.ndarray, np.ndarray]:
    """Remove each query point from its own neighbour list.

    Duplicated coordinates can put the query point anywhere among the
    zero-distance hits, so it is removed by identity rather than by column.
    Rows that do not contain the query point lose their farthest hit.
    """
    n_query, n_cols = nbrs.shape
    is_self = nbrs == indices[:, None]
    no_self = ~is_self.any(axis=1)
    is_self[no_self, n_cols - 1] = True
    # Exactly one True per row: keep the rest in order
    keep = ~is_self
    return (
        dists[keep].reshape(n_query, n_cols - 1),
        nbrs[keep].reshape(n_query, n_cols - 1),
    )


def kth_nearest_distances(coords, indices, k: int = 21) -> np.ndarray:
    """
    Convenience function for k-th nearest neighbour distances.

    Parameters
    ----------
    coords : array-like
        Coordinates (n_cells, n_dims).
    indices : array-like of int
        Query rows.
    k : int, default=21
        Neighbour rank.

    Returns
    -------
    np.ndarray
        Distance to the k-th nearest neighbour of each query row.

    Examples
    --------
    >>> pcs = np.random.randn(500, 10)
    >>> kth_nearest_distances(pcs, [0, 1, 2], k=5)
    """
    searcher = KDTreeNeighborSearch(coords)
    return searcher.kth_distance(indices, k=k)
