"""Core neighbourhood weighting functions."""

from spatialfdr.core.distances import max_distance, mean_pairwise_distance, mean_row_means
from spatialfdr.core.graph import as_graph, edge_connectivity, induced_subgraph, vertex_connectivity
from spatialfdr.core.inputs import (
    DenseDistances,
    NeighbourhoodDistances,
    as_distance_source,
    as_nhood_list,
)
from spatialfdr.core.weights import compute_nhood_connectivity, inverse_weights

__all__ = [
    "as_nhood_list",
    "as_distance_source",
    "DenseDistances",
    "NeighbourhoodDistances",
    "as_graph",
    "induced_subgraph",
    "vertex_connectivity",
    "edge_connectivity",
    "mean_pairwise_distance",
    "mean_row_means",
    "max_distance",
    "compute_nhood_connectivity",
    "inverse_weights",
]
