"""
Within-neighbourhood distance summaries.

Implements:
- Mean pairwise Euclidean distance among member cells (strict triangle only)
- Mean of per-row means of a precomputed distance matrix
- Largest distance in a matrix (distance to the farthest recorded neighbour)
"""

import numpy as np
from scipy import sparse as sp_sparse
from scipy.spatial import distance as sp_dist

from spatialfdr.gpu.backend import GPU_AVAILABLE, ensure_numpy, get_array_module


def mean_pairwise_distance(points, use_gpu: bool = False) -> float:
    """
    Mean Euclidean distance over all distinct pairs of points.

    Only the strict lower triangle of the distance matrix is used, so each
    pair counts once and zero self-distances are excluded.

    Parameters
    ----------
    points : array-like
        Coordinates of shape (n_points, n_dims).
    use_gpu : bool, default=False
        Use CuPy if available.

    Returns
    -------
    float
        Mean pairwise distance, or 0.0 when fewer than two points are given.
    """
    points = np.asarray(points, dtype=np.float64)
    n = points.shape[0]
    if n < 2:
        return 0.0

    if use_gpu and GPU_AVAILABLE:
        return _mean_pairwise_distance_gpu(points)

    # pdist returns the condensed upper triangle: same pairs as the lower one
    return float(sp_dist.pdist(points, metric="euclidean").mean())


def _mean_pairwise_distance_gpu(points: np.ndarray) -> float:
    """GPU implementation of mean_pairwise_distance."""
    xp = get_array_module(use_gpu=True)

    points_gpu = xp.asarray(points)
    sq = xp.sum(points_gpu**2, axis=1)
    dist_sq = sq[:, None] + sq[None, :] - 2.0 * points_gpu @ points_gpu.T
    rows, cols = xp.tril_indices(points.shape[0], k=-1)
    dists = xp.sqrt(xp.maximum(dist_sq[rows, cols], 0.0))
    return float(ensure_numpy(dists.mean()))


def mean_row_means(matrix) -> float:
    """Mean of the per-row means of a distance matrix (implicit zeros count)."""
    if sp_sparse.issparse(matrix):
        row_means = np.asarray(matrix.mean(axis=1)).ravel()
    else:
        row_means = np.asarray(matrix, dtype=np.float64).mean(axis=1)
    if row_means.size == 0:
        return 0.0
    return float(row_means.mean())


def max_distance(matrix) -> float:
    """Largest entry of a distance matrix."""
    if sp_sparse.issparse(matrix):
        return float(matrix.max()) if matrix.nnz else 0.0
    matrix = np.asarray(matrix, dtype=np.float64)
    if matrix.size == 0:
        return 0.0
    return float(matrix.max())
