"""
GPU/CPU backend selection.

Within-neighbourhood pairwise distances can be computed with CuPy when it is
installed; otherwise NumPy is used.
"""

import numpy as np

# Try to import CuPy
try:
    import cupy as cp

    GPU_AVAILABLE = True
except ImportError:
    cp = None
    GPU_AVAILABLE = False


def get_array_module(use_gpu: bool = False):
    """
    Get the appropriate array module (NumPy or CuPy).

    Parameters
    ----------
    use_gpu : bool, default=False
        Whether to use GPU if available. If False or GPU not available,
        returns NumPy.

    Returns
    -------
    module
        Either cupy or numpy module.
    """
    if use_gpu and GPU_AVAILABLE:
        return cp
    return np


def ensure_numpy(arr) -> np.ndarray:
    """
    Convert array to NumPy array (from CuPy if necessary).

    Parameters
    ----------
    arr : array-like
        Input array (NumPy, CuPy, or other array-like).

    Returns
    -------
    np.ndarray
        NumPy array.
    """
    if GPU_AVAILABLE and hasattr(arr, "get"):
        # CuPy array - transfer to CPU
        return arr.get()
    return np.asarray(arr)
