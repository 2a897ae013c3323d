"""I/O utilities for input loading and results export."""

from spatialfdr.io.hdf5 import load_results_hdf5, save_results_hdf5
from spatialfdr.io.loaders import load_nhood_inputs, load_pvalues

__all__ = [
    "load_nhood_inputs",
    "load_pvalues",
    "save_results_hdf5",
    "load_results_hdf5",
]
