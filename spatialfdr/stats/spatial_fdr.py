"""
Spatial FDR correction over KNN-graph neighbourhoods.

Neighbourhoods overlap, so their differential-abundance tests are not
independent. Each p-value is weighted by the inverse connectivity (or
density) of its neighbourhood and the weighted BH procedure is applied.
Missing p-values are left out and come back as NaN at the same positions.
"""

import logging
from typing import Optional, Sequence, Tuple

import numpy as np

from spatialfdr.config.dataclasses import Weighting
from spatialfdr.core.inputs import (
    NeighbourhoodDistances,
    as_distance_source,
    as_index_list,
    as_nhood_list,
    as_pvalues,
)
from spatialfdr.core.weights import compute_nhood_connectivity, inverse_weights
from spatialfdr.exceptions import ShapeMismatchError
from spatialfdr.stats.fdr import weighted_bh

logger = logging.getLogger(__name__)


def _spatial_fdr(
    nhoods,
    graph,
    pvalues,
    weighting,
    reduced_dimensions,
    distances,
    indices,
    k,
    n_jobs,
    use_gpu,
) -> Tuple[Weighting, np.ndarray, np.ndarray]:
    """Run the correction; returns (policy, adjusted p-values, weights)."""
    policy = Weighting.parse(weighting)
    pvalues = as_pvalues(pvalues)
    n = len(pvalues)

    adjusted = np.full(n, np.nan)
    weights = np.full(n, np.nan)

    if policy is Weighting.NONE:
        return policy, adjusted, weights

    nhoods = as_nhood_list(nhoods)
    if len(nhoods) != n:
        raise ShapeMismatchError(f"Got {n} p-values for {len(nhoods)} neighbourhoods")
    indices = as_index_list(indices, n)

    # Discard NA p-values; the same mask applies to every aligned input
    has_pval = ~np.isnan(pvalues)
    kept = np.flatnonzero(has_pval)
    logger.debug(
        f"Spatial FDR with {policy.value} weighting: {len(kept)} neighbourhoods tested, "
        f"{n - len(kept)} without p-value"
    )
    if len(kept) == 0:
        return policy, adjusted, weights

    kept_nhoods = [nhoods[i] for i in kept]
    kept_indices = None if indices is None else [indices[i] for i in kept]

    if policy in (Weighting.NEIGHBOUR_DISTANCE, Weighting.K_DISTANCE):
        distances = as_distance_source(distances)
        if isinstance(distances, NeighbourhoodDistances):
            distances = distances.aligned(kept_indices, kept, n)

    connectivity = compute_nhood_connectivity(
        kept_nhoods,
        weighting=policy,
        graph=graph,
        reduced_dimensions=reduced_dimensions,
        distances=distances,
        indices=kept_indices,
        k=k,
        n_jobs=n_jobs,
        use_gpu=use_gpu,
    )

    # use 1/connectivity as the weighting for the weighted BH adjustment
    w = inverse_weights(connectivity)

    adjusted[has_pval] = weighted_bh(pvalues[has_pval], w)
    weights[has_pval] = w
    return policy, adjusted, weights


def graph_spatial_fdr(
    nhoods,
    graph,
    pvalues,
    weighting="vertex",
    reduced_dimensions=None,
    distances=None,
    indices: Optional[Sequence] = None,
    k: int = 21,
    n_jobs: int = 1,
    use_gpu: bool = False,
) -> np.ndarray:
    """
    Control the spatial FDR of neighbourhood p-values.

    Each neighbourhood is weighted according to the weighting scheme: vertex
    and edge use the connectivity of the subgraph induced by the
    neighbourhood, k-distance uses the distance from the index vertex to its
    k-th nearest neighbour, and neighbour-distance uses the mean
    within-neighbourhood Euclidean distance. The frequency-weighted BH method
    is then applied with weight ``1 / score``.

    Parameters
    ----------
    nhoods : sequence or matrix
        Member vertices of each neighbourhood, or a binary
        (n_vertices, n_nhoods) membership matrix.
    graph : networkx.Graph or adjacency matrix
        The KNN graph used to define the neighbourhoods. Only used by
        vertex and edge weighting.
    pvalues : array-like
        Differential-abundance p-value per neighbourhood; NaN for untested
        neighbourhoods.
    weighting : str, Weighting or sequence, default="vertex"
        "vertex", "edge", "neighbour-distance", "k-distance" or "none".
        For a sequence, only the first element is used.
    reduced_dimensions : array-like, optional
        Cells x dimensions matrix used to build the graph.
    distances : matrix, sequence or mapping of matrices, optional
        Cell-to-cell distance matrix, or one distance matrix per
        neighbourhood (positional, or keyed by index vertex).
    indices : sequence, optional
        Index vertex of each neighbourhood, same order as ``nhoods``. Only
        used for k-distance weighting.
    k : int, default=21
        Neighbour rank for k-distance from reduced dimensions.
    n_jobs : int, default=1
        joblib workers for per-neighbourhood weight computation.
    use_gpu : bool, default=False
        Use CuPy for within-neighbourhood distances if available.

    Returns
    -------
    np.ndarray
        Adjusted p-values aligned with ``pvalues``. All NaN for
        ``weighting="none"``.

    Raises
    ------
    UnsupportedPolicyError
        Unknown weighting.
    MissingInputError
        An input required by the weighting is missing.
    ShapeMismatchError
        ``nhoods``, ``pvalues`` and ``indices`` differ in length.
    TypeMismatchError
        ``distances`` is neither a matrix nor a collection of matrices.

    Examples
    --------
    >>> G = nx.complete_graph(6)
    >>> nhoods = [[0, 1, 2], [2, 3, 4, 5], [0, 5]]
    >>> graph_spatial_fdr(nhoods, G, [0.01, 0.2, 0.04], weighting="vertex")
    """
    _, adjusted, _ = _spatial_fdr(
        nhoods, graph, pvalues, weighting, reduced_dimensions, distances, indices, k, n_jobs, use_gpu
    )
    return adjusted


def spatial_fdr_correction(
    nhoods,
    graph,
    pvalues,
    weighting="vertex",
    reduced_dimensions=None,
    distances=None,
    indices: Optional[Sequence] = None,
    k: int = 21,
    n_jobs: int = 1,
    use_gpu: bool = False,
    alpha: float = 0.1,
) -> dict:
    """
    Spatial FDR correction with weights and significance calls.

    Takes the same inputs as :func:`graph_spatial_fdr`, plus ``alpha``.

    Returns
    -------
    dict
        Dictionary with:
        - 'adjusted_pvalues': Spatially corrected p-values
        - 'weights': BH weight per neighbourhood (NaN where untested)
        - 'significant': Boolean mask of adjusted p-value < alpha
        - 'n_significant': Number of significant neighbourhoods
        - 'weighting': Weighting policy name used
        - 'alpha': Alpha threshold used
    """
    policy, adjusted, weights = _spatial_fdr(
        nhoods, graph, pvalues, weighting, reduced_dimensions, distances, indices, k, n_jobs, use_gpu
    )
    significant = adjusted < alpha

    return {
        "adjusted_pvalues": adjusted,
        "weights": weights,
        "significant": significant,
        "n_significant": int(np.sum(significant)),
        "weighting": policy.value,
        "alpha": alpha,
    }
