"""
Neighbourhood-level spatial FDR table.

Wraps the spatial FDR correction into a per-neighbourhood results table in
the column layout of neighbourhood differential-abundance tools
(``PValue``, ``SpatialFDR``).
"""

import logging
from typing import Optional, Sequence

import numpy as np
import pandas as pd

from spatialfdr.config.dataclasses import SpatialFDRConfig
from spatialfdr.core.inputs import as_nhood_list
from spatialfdr.stats.spatial_fdr import spatial_fdr_correction

logger = logging.getLogger(__name__)


def annotate_nhoods(
    nhoods,
    graph,
    pvalues,
    config: Optional[SpatialFDRConfig] = None,
    reduced_dimensions=None,
    distances=None,
    indices: Optional[Sequence] = None,
    index_names: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """
    Spatial FDR results table, one row per neighbourhood.

    Parameters
    ----------
    nhoods, graph, pvalues, reduced_dimensions, distances, indices
        As for :func:`spatialfdr.graph_spatial_fdr`.
    config : SpatialFDRConfig, optional
        Weighting, k, n_jobs, use_gpu and alpha. Default: SpatialFDRConfig().
    index_names : sequence of str, optional
        Names of the index cells, used as the table index.

    Returns
    -------
    pd.DataFrame
        Columns:
        - 'index_cell': index vertex (if ``indices`` given)
        - 'n_cells': neighbourhood size
        - 'PValue': raw p-value
        - 'weight': BH weight (NaN where untested)
        - 'SpatialFDR': adjusted p-value
        - 'is_signif': SpatialFDR < alpha

    Examples
    --------
    >>> inputs = load_nhood_inputs("milo.h5ad")
    >>> config = SpatialFDRConfig(weighting="k-distance")
    >>> df = annotate_nhoods(inputs['nhoods'], inputs['graph'], pvalues, config,
    ...                      distances=inputs['distances'], indices=inputs['indices'])
    >>> df.sort_values("SpatialFDR").head()
    """
    if config is None:
        config = SpatialFDRConfig()

    nhoods = as_nhood_list(nhoods)
    pvalues = np.asarray(pvalues, dtype=np.float64)

    result = spatial_fdr_correction(
        nhoods,
        graph,
        pvalues,
        reduced_dimensions=reduced_dimensions,
        distances=distances,
        indices=indices,
        alpha=config.alpha,
        **config.to_kwargs(),
    )

    df = pd.DataFrame(
        {
            "n_cells": [len(members) for members in nhoods],
            "PValue": pvalues,
            "weight": result["weights"],
            "SpatialFDR": result["adjusted_pvalues"],
            "is_signif": result["significant"],
        }
    )
    if indices is not None:
        df.insert(0, "index_cell", list(indices))
    if index_names is not None:
        df.index = pd.Index(list(index_names), name="nhood")
    else:
        df.index.name = "nhood"

    logger.info(
        f"{result['n_significant']}/{len(df)} neighbourhoods with SpatialFDR < {config.alpha} "
        f"({result['weighting']} weighting)"
    )
    return df
