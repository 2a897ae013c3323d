"""Analysis modules for neighbourhood differential abundance."""

from spatialfdr.analysis.nhood_fdr import annotate_nhoods

__all__ = ["annotate_nhoods"]
