"""
Data loading utilities for neighbourhood spatial FDR inputs.
"""

from pathlib import Path
from typing import Any, Optional

import numpy as np
from scipy import sparse

from spatialfdr.core.inputs import DenseDistances, as_nhood_list


def load_nhood_inputs(
    adata,
    nhoods_key: str = "nhoods",
    index_key: str = "nhood_ixs_refined",
    neighbors_key: Optional[str] = None,
    use_rep: Optional[str] = "X_pca",
) -> dict[str, Any]:
    """
    Load spatial FDR inputs from an AnnData with neighbourhoods.

    Expects the layout written by the Python Milo tools:
    ``obsm[nhoods_key]`` (cells x nhoods binary matrix),
    ``obs[index_key]`` (1 for neighbourhood index cells),
    ``obsp["connectivities"]`` / ``obsp["distances"]`` (KNN graph).

    Parameters
    ----------
    adata : AnnData or str
        AnnData object, or path to .h5ad file.
    nhoods_key : str, default="nhoods"
        Key in .obsm for the neighbourhood membership matrix.
    index_key : str, default="nhood_ixs_refined"
        Key in .obs marking index cells. Index cells are taken in
        increasing cell order, matching the column order of the
        membership matrix.
    neighbors_key : str, optional
        Prefix of the KNN graph keys in .obsp
        (``{neighbors_key}_connectivities``). Default: unprefixed keys.
    use_rep : str, optional
        Key in .obsm for reduced dimensions. Skipped if None or absent.

    Returns
    -------
    dict
        Dictionary with:
        - 'nhoods': list of member cell positions per neighbourhood
        - 'graph': sparse adjacency matrix (cells x cells)
        - 'distances': DenseDistances over the KNN distances, or None
        - 'reduced_dimensions': cells x dims array, or None
        - 'indices': index cell position per neighbourhood, or None
        - 'index_names': obs names of the index cells, or None
        - 'adata': Original AnnData object

    Examples
    --------
    >>> inputs = load_nhood_inputs("milo.h5ad")
    >>> adjp = graph_spatial_fdr(inputs['nhoods'], inputs['graph'], pvalues,
    ...                          weighting="k-distance", distances=inputs['distances'],
    ...                          indices=inputs['indices'])
    """
    if isinstance(adata, (str, Path)):
        adata = _read_h5ad(adata)

    if nhoods_key not in adata.obsm:
        raise KeyError(
            f"Neighbourhoods '{nhoods_key}' not found in obsm. Available: {list(adata.obsm.keys())}"
        )
    membership = adata.obsm[nhoods_key]
    if not sparse.issparse(membership):
        membership = sparse.csc_matrix(np.asarray(membership) != 0)
    nhoods = as_nhood_list(membership)

    conn_key = "connectivities" if neighbors_key is None else f"{neighbors_key}_connectivities"
    dist_key = "distances" if neighbors_key is None else f"{neighbors_key}_distances"
    if conn_key not in adata.obsp:
        raise KeyError(f"KNN graph '{conn_key}' not found in obsp. Available: {list(adata.obsp.keys())}")
    graph = adata.obsp[conn_key]

    distances = None
    if dist_key in adata.obsp:
        distances = DenseDistances(sparse.csr_matrix(adata.obsp[dist_key]))

    reduced_dimensions = None
    if use_rep is not None and use_rep in adata.obsm:
        reduced_dimensions = np.asarray(adata.obsm[use_rep], dtype=np.float64)

    indices = None
    index_names = None
    if index_key in adata.obs.columns:
        is_index = np.asarray(adata.obs[index_key]).astype(bool)
        indices = np.flatnonzero(is_index).tolist()
        index_names = adata.obs_names[is_index].tolist()
        if len(indices) != len(nhoods):
            raise ValueError(
                f"Found {len(indices)} index cells in obs['{index_key}'] for {len(nhoods)} neighbourhoods"
            )

    return {
        "nhoods": nhoods,
        "graph": graph,
        "distances": distances,
        "reduced_dimensions": reduced_dimensions,
        "indices": indices,
        "index_names": index_names,
        "adata": adata,
    }


def _read_h5ad(path):
    try:
        import anndata as ad
    except ImportError:
        raise ImportError("anndata is required. Install with: pip install anndata")

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    return ad.read_h5ad(path)


def load_pvalues(path: str, column: str = "PValue") -> np.ndarray:
    """
    Load neighbourhood p-values from a CSV or TSV table.

    Parameters
    ----------
    path : str
        Path to table with one row per neighbourhood, in neighbourhood order.
    column : str, default="PValue"
        Column holding the p-values. Empty cells are read as NaN.

    Returns
    -------
    np.ndarray
        P-values (float64).
    """
    import pandas as pd

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    sep = "\t" if path.suffix in (".tsv", ".txt") else ","
    df = pd.read_csv(path, sep=sep)
    if column not in df.columns:
        raise KeyError(f"Column '{column}' not found. Available: {list(df.columns)}")
    return df[column].to_numpy(dtype=np.float64)
