"""
Neighbourhood weighting for spatial FDR correction.

Each policy maps a neighbourhood to a non-negative connectivity/density
score; the BH weight is its inverse:

- vertex: vertex connectivity of the induced subgraph
- edge: edge connectivity of the induced subgraph
- neighbour-distance: mean within-neighbourhood Euclidean distance
- k-distance: distance from the index vertex to its k-th nearest neighbour

Per-neighbourhood work is fanned out with joblib; every task reads shared
inputs and returns its own score.
"""

import logging
from typing import Callable, Dict, Optional, Sequence

import numpy as np
from joblib import Parallel, delayed

from spatialfdr.config.dataclasses import Weighting
from spatialfdr.core.distances import max_distance, mean_pairwise_distance, mean_row_means
from spatialfdr.core.graph import as_graph, edge_connectivity, induced_subgraph, vertex_connectivity
from spatialfdr.core.inputs import (
    DenseDistances,
    NeighbourhoodDistances,
    as_distance_source,
    as_index_list,
    as_nhood_list,
    as_reduced_dimensions,
    vertex_positions,
)
from spatialfdr.exceptions import MissingInputError, UnsupportedPolicyError
from spatialfdr.neighbors.kdtree import KDTreeNeighborSearch

logger = logging.getLogger(__name__)


def _graph_connectivity(nhoods, graph, n_jobs, measure: Callable) -> np.ndarray:
    if graph is None:
        raise MissingInputError("A graph is required for vertex or edge weighting")
    graph = as_graph(graph)

    # Subgraphs are induced up front so workers receive only their own piece
    subgraphs = [induced_subgraph(graph, members) for members in nhoods]
    scores = Parallel(n_jobs=n_jobs)(delayed(measure)(sg) for sg in subgraphs)
    return np.asarray(scores, dtype=np.float64)


def _vertex_weighting(nhoods, *, graph=None, n_jobs=1, **kwargs) -> np.ndarray:
    return _graph_connectivity(nhoods, graph, n_jobs, vertex_connectivity)


def _edge_weighting(nhoods, *, graph=None, n_jobs=1, **kwargs) -> np.ndarray:
    return _graph_connectivity(nhoods, graph, n_jobs, edge_connectivity)


def _neighbour_distance_weighting(
    nhoods,
    *,
    reduced_dimensions=None,
    distances=None,
    n_jobs=1,
    use_gpu=False,
    **kwargs,
) -> np.ndarray:
    if reduced_dimensions is not None:
        small = sum(len(members) < 2 for members in nhoods)
        if small:
            logger.warning(
                f"{small} neighbourhoods have fewer than 2 cells; their distance score is 0"
            )
        member_coords = [reduced_dimensions[vertex_positions(members)] for members in nhoods]
        if use_gpu:
            # GPU work stays in-process
            scores = [mean_pairwise_distance(x, use_gpu=True) for x in member_coords]
        else:
            scores = Parallel(n_jobs=n_jobs)(
                delayed(mean_pairwise_distance)(x) for x in member_coords
            )
        return np.asarray(scores, dtype=np.float64)

    if isinstance(distances, NeighbourhoodDistances):
        return np.array([mean_row_means(m) for m in distances.matrices], dtype=np.float64)

    raise MissingInputError(
        "A matrix of reduced dimensions or a list of per-neighbourhood distance matrices "
        "is required to calculate neighbour distances"
    )


def _k_distance_weighting(
    nhoods,
    *,
    reduced_dimensions=None,
    distances=None,
    indices=None,
    k=21,
    **kwargs,
) -> np.ndarray:
    if indices is not None:
        if isinstance(distances, DenseDistances):
            return np.array([distances.row_max(v) for v in indices], dtype=np.float64)

        if isinstance(distances, NeighbourhoodDistances):
            return np.array([max_distance(m) for m in distances.matrices], dtype=np.float64)

        if reduced_dimensions is not None:
            searcher = KDTreeNeighborSearch(reduced_dimensions)
            return searcher.kth_distance(vertex_positions(indices), k=k)

    if indices is None:
        raise MissingInputError(
            "No neighbourhood indices found - required to compute k-distance weighting"
        )
    raise MissingInputError(
        "k-distance weighting requires either a distance matrix or reduced dimensions"
    )


_POLICIES: Dict[Weighting, Callable[..., np.ndarray]] = {
    Weighting.VERTEX: _vertex_weighting,
    Weighting.EDGE: _edge_weighting,
    Weighting.NEIGHBOUR_DISTANCE: _neighbour_distance_weighting,
    Weighting.K_DISTANCE: _k_distance_weighting,
}


def compute_nhood_connectivity(
    nhoods,
    weighting="vertex",
    graph=None,
    reduced_dimensions=None,
    distances=None,
    indices: Optional[Sequence] = None,
    k: int = 21,
    n_jobs: int = 1,
    use_gpu: bool = False,
) -> np.ndarray:
    """
    Connectivity/density score of each neighbourhood.

    Parameters
    ----------
    nhoods : sequence or matrix
        Neighbourhood member vertices (see ``as_nhood_list``).
    weighting : str or Weighting, default="vertex"
        One of "vertex", "edge", "neighbour-distance", "k-distance".
    graph : networkx.Graph or adjacency matrix, optional
        KNN graph. Required for vertex and edge weighting.
    reduced_dimensions : array-like, optional
        Cells x dimensions coordinates.
    distances : matrix, sequence or mapping of matrices, optional
        Dense cell-to-cell distances or per-neighbourhood distance matrices.
    indices : sequence, optional
        Index vertex of each neighbourhood. Required for k-distance.
    k : int, default=21
        Neighbour rank for k-distance computed from reduced dimensions.
    n_jobs : int, default=1
        Number of joblib workers for per-neighbourhood computations.
    use_gpu : bool, default=False
        Use CuPy for pairwise distances if available.

    Returns
    -------
    np.ndarray
        One non-negative score per neighbourhood.

    Raises
    ------
    UnsupportedPolicyError
        If ``weighting`` is not a weighting policy.
    MissingInputError
        If an input required by the policy is missing.
    """
    policy = Weighting.parse(weighting)
    if policy is Weighting.NONE:
        raise UnsupportedPolicyError("Weighting 'none' does not define a connectivity score")

    nhoods = as_nhood_list(nhoods)
    indices = as_index_list(indices, len(nhoods))
    reduced_dimensions = as_reduced_dimensions(reduced_dimensions)

    if policy in (Weighting.NEIGHBOUR_DISTANCE, Weighting.K_DISTANCE):
        distances = as_distance_source(distances)
        if isinstance(distances, NeighbourhoodDistances):
            distances = distances.aligned(indices, range(len(nhoods)), len(nhoods))

    logger.debug(f"Computing {policy.value} weighting for {len(nhoods)} neighbourhoods")

    return _POLICIES[policy](
        nhoods,
        graph=graph,
        reduced_dimensions=reduced_dimensions,
        distances=distances,
        indices=indices,
        k=k,
        n_jobs=n_jobs,
        use_gpu=use_gpu,
    )


def inverse_weights(scores) -> np.ndarray:
    """
    Convert connectivity scores into BH weights.

    ``w = 1 / score``; a zero score (e.g. a disconnected neighbourhood)
    gets weight 0 instead of an infinite weight. Undefined scores also
    get weight 0.

    Examples
    --------
    >>> inverse_weights([1.0, 4.0, 0.0])
    array([1.  , 0.25, 0.  ])
    """
    scores = np.asarray(scores, dtype=np.float64)
    with np.errstate(divide="ignore", invalid="ignore"):
        w = 1.0 / scores

    degenerate = ~np.isfinite(w)
    if degenerate.any():
        logger.warning(
            f"{int(degenerate.sum())} neighbourhoods have zero or undefined connectivity; "
            "assigning weight 0"
        )
        w[degenerate] = 0.0
    return w

