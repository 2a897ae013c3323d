"""
HDF5 I/O utilities for storing and loading spatial FDR results.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np

_ARRAY_KEYS = ("adjusted_pvalues", "weights", "significant")


def save_results_hdf5(
    path: str,
    result: Dict[str, Any],
    pvalues=None,
    indices: Optional[List[int]] = None,
    index_names: Optional[List[str]] = None,
    metadata: Optional[Dict[str, Any]] = None,
    compression: str = "gzip",
    compression_level: int = 4,
) -> None:
    """
    Save a spatial FDR result to HDF5 file.

    Parameters
    ----------
    path : str
        Output file path.
    result : dict
        Output of ``spatial_fdr_correction``. Its arrays become datasets;
        'weighting', 'alpha' and 'n_significant' become attributes.
    pvalues : array-like, optional
        Raw p-values to store alongside.
    indices : list, optional
        Index vertex of each neighbourhood.
    index_names : list, optional
        Cell names of the index vertices.
    metadata : dict, optional
        Additional metadata as attributes.
    compression : str, default="gzip"
        Compression algorithm.
    compression_level : int, default=4
        Compression level (1-9).

    Examples
    --------
    >>> result = spatial_fdr_correction(nhoods, graph, pvalues)
    >>> save_results_hdf5("spatial_fdr.h5", result, pvalues=pvalues)
    """
    try:
        import h5py
    except ImportError:
        raise ImportError("h5py is required. Install with: pip install h5py")

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    datasets = {key: np.asarray(result[key]) for key in _ARRAY_KEYS if key in result}
    if pvalues is not None:
        datasets["pvalues"] = np.asarray(pvalues, dtype=np.float64)
    if indices is not None:
        datasets["indices"] = np.asarray(indices, dtype=np.int64)

    attrs = {key: result[key] for key in ("weighting", "alpha", "n_significant") if key in result}
    if metadata is not None:
        attrs.update(metadata)

    with h5py.File(path, "w") as f:
        for name, arr in datasets.items():
            f.create_dataset(
                name,
                data=arr,
                compression=compression,
                compression_opts=compression_level,
            )

        # Save metadata as attributes
        for key, value in attrs.items():
            if isinstance(value, (int, float, str, bool, np.integer, np.floating)):
                f.attrs[key] = value
            elif isinstance(value, (list, tuple)):
                f.attrs[key] = np.array(value)

        if index_names is not None:
            f.create_dataset(
                "index_names",
                data=np.array(index_names, dtype="S"),
            )


def load_results_hdf5(path: str) -> Dict[str, Any]:
    """
    Load a spatial FDR result from HDF5 file.

    Parameters
    ----------
    path : str
        Input file path.

    Returns
    -------
    dict
        Dictionary with:
        - Each dataset as a key-value pair
        - 'index_names': list of index cell names (if present)
        - 'metadata': dict of file attributes

    Examples
    --------
    >>> results = load_results_hdf5("spatial_fdr.h5")
    >>> results['metadata']['weighting']
    'k-distance'
    """
    try:
        import h5py
    except ImportError:
        raise ImportError("h5py is required. Install with: pip install h5py")

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    result = {}
    metadata = {}

    with h5py.File(path, "r") as f:
        for key in f.keys():
            if key == "index_names":
                result["index_names"] = [x.decode() for x in f[key][:]]
            else:
                result[key] = f[key][:]

        for key, value in f.attrs.items():
            metadata[key] = value.decode() if isinstance(value, bytes) else value

    result["metadata"] = metadata
    return result
