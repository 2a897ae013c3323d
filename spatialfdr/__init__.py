"""
spatialfdr - spatial FDR correction for neighbourhood differential abundance

Differential-abundance tests over neighbourhoods of a KNN graph overlap in
the cells they test. This package corrects their p-values with a weighted
Benjamini-Hochberg procedure where each neighbourhood is weighted by the
inverse of its graph connectivity or local density.

Key Features:
- Vertex / edge connectivity weighting of induced neighbourhood subgraphs
- Within-neighbourhood distance and k-th nearest neighbour distance weighting
- Weighted BH with positional handling of missing p-values
- AnnData input loading and HDF5 result export

Example:
    >>> from spatialfdr import graph_spatial_fdr
    >>> adjp = graph_spatial_fdr(nhoods, graph, pvalues, weighting="k-distance",
    ...                          distances=knn_dists, indices=index_cells)
"""

__version__ = "0.1.0"

from spatialfdr.analysis.nhood_fdr import annotate_nhoods
from spatialfdr.config.dataclasses import SpatialFDRConfig, Weighting
from spatialfdr.core.weights import compute_nhood_connectivity, inverse_weights
from spatialfdr.exceptions import (
    MissingInputError,
    ShapeMismatchError,
    SpatialFDRError,
    TypeMismatchError,
    UnsupportedPolicyError,
)
from spatialfdr.stats.fdr import apply_fdr_correction, weighted_bh
from spatialfdr.stats.spatial_fdr import graph_spatial_fdr, spatial_fdr_correction

__all__ = [
    # Version
    "__version__",
    # Correction
    "graph_spatial_fdr",
    "spatial_fdr_correction",
    "weighted_bh",
    "apply_fdr_correction",
    # Weighting
    "compute_nhood_connectivity",
    "inverse_weights",
    # Configuration
    "Weighting",
    "SpatialFDRConfig",
    # Analysis
    "annotate_nhoods",
    # Errors
    "SpatialFDRError",
    "UnsupportedPolicyError",
    "MissingInputError",
    "ShapeMismatchError",
    "TypeMismatchError",
]
