"""Statistical testing modules."""

from spatialfdr.stats.fdr import apply_fdr_correction, weighted_bh
from spatialfdr.stats.spatial_fdr import graph_spatial_fdr, spatial_fdr_correction

__all__ = [
    "apply_fdr_correction",
    "weighted_bh",
    "graph_spatial_fdr",
    "spatial_fdr_correction",
]
