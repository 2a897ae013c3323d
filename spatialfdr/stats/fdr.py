"""
FDR correction methods.

Implements:
- Weighted Benjamini-Hochberg (BH), with BH as the uniform-weight case
- Benjamini-Yekutieli (BY)
- Bonferroni

The weighted step-up form follows the frequency-weighted BH used for
spatial FDR control:

    q_(i) = min_{j >= i} ( sum(w) * p_(j) / sum_{l <= j} w_(l) )
"""

from typing import Literal, Optional

import numpy as np

from spatialfdr.exceptions import ShapeMismatchError


def _step_up(pvalues_sorted: np.ndarray, weights_sorted: np.ndarray) -> np.ndarray:
    """Weighted step-up adjustment of sorted p-values, without the ceiling at 1."""
    cum_w = np.cumsum(weights_sorted)
    total_w = np.sum(weights_sorted)

    # Zero cumulative weight leaves the position unbounded
    raw = np.full(len(pvalues_sorted), np.inf)
    positive = cum_w > 0
    raw[positive] = total_w * pvalues_sorted[positive] / cum_w[positive]

    # Enforce monotonicity (cumulative minimum from the end)
    return np.minimum.accumulate(raw[::-1])[::-1]


def weighted_bh(pvalues, weights=None) -> np.ndarray:
    """
    Weighted Benjamini-Hochberg adjustment.

    Parameters
    ----------
    pvalues : array-like
        P-values without missing entries.
    weights : array-like, optional
        Non-negative weight per hypothesis. Default: all 1, which gives the
        classical BH adjustment.

    Returns
    -------
    np.ndarray
        Adjusted p-values in the input order, capped at 1.

    Examples
    --------
    >>> weighted_bh([0.01, 0.2, 0.04])
    array([0.03, 0.2 , 0.06])
    """
    pvalues = np.asarray(pvalues, dtype=np.float64)
    n = len(pvalues)

    if weights is None:
        weights = np.ones(n)
    weights = np.asarray(weights, dtype=np.float64)
    if weights.shape != pvalues.shape:
        raise ShapeMismatchError(
            f"Got {weights.shape[0] if weights.ndim else 1} weights for {n} p-values"
        )
    if np.isnan(pvalues).any():
        raise ValueError("pvalues must not contain NaN; filter missing values first")

    if n == 0:
        return np.array([])

    # Ties keep their input order
    order = np.argsort(pvalues, kind="stable")
    adjusted_sorted = _step_up(pvalues[order], weights[order])

    # Unsort
    adjusted = np.empty(n)
    adjusted[order] = adjusted_sorted
    return np.minimum(adjusted, 1.0)


def apply_fdr_correction(
    pvalues,
    method: Literal["bh", "by", "bonferroni"] = "bh",
    alpha: float = 0.05,
    weights=None,
) -> dict:
    """
    Apply FDR correction to p-values.

    Parameters
    ----------
    pvalues : array-like
        Array of p-values. NaN entries are left out of the correction and
        stay NaN.
    method : {"bh", "by", "bonferroni"}, default="bh"
        Correction method:
        - "bh": Benjamini-Hochberg (controls FDR)
        - "by": Benjamini-Yekutieli (controls FDR under dependency)
        - "bonferroni": Bonferroni (controls FWER)
    alpha : float, default=0.05
        Significance threshold after correction.
    weights : array-like, optional
        Per-hypothesis weights for "bh" and "by", aligned with ``pvalues``.

    Returns
    -------
    dict
        Dictionary with:
        - 'adjusted_pvalues': Corrected p-values
        - 'significant': Boolean mask of significant tests
        - 'n_significant': Number of significant tests
        - 'method': Method used
        - 'alpha': Alpha threshold used

    Examples
    --------
    >>> pvalues = np.array([0.001, 0.01, 0.05, 0.1, 0.5])
    >>> result = apply_fdr_correction(pvalues, method="bh")
    >>> result['n_significant']
    2
    """
    pvalues = np.asarray(pvalues, dtype=np.float64)
    n = len(pvalues)

    if method not in ("bh", "by", "bonferroni"):
        raise ValueError(f"Unknown method: '{method}'. Use 'bh', 'by', or 'bonferroni'.")
    if weights is not None:
        if method == "bonferroni":
            raise ValueError("weights are only supported for 'bh' and 'by'")
        weights = np.asarray(weights, dtype=np.float64)
        if weights.shape != pvalues.shape:
            raise ShapeMismatchError(f"Got {len(weights)} weights for {n} p-values")

    # Handle NaN values
    nan_mask = np.isnan(pvalues)
    valid_pvalues = pvalues[~nan_mask]
    valid_weights = None if weights is None else weights[~nan_mask]
    n_valid = len(valid_pvalues)

    adjusted = np.full(n, np.nan)

    if n_valid > 0:
        if method == "bonferroni":
            adjusted_valid = np.minimum(valid_pvalues * n_valid, 1.0)
        elif method == "bh":
            adjusted_valid = weighted_bh(valid_pvalues, valid_weights)
        else:
            adjusted_valid = _benjamini_yekutieli(valid_pvalues, valid_weights)
        adjusted[~nan_mask] = adjusted_valid

    significant = adjusted < alpha

    return {
        "adjusted_pvalues": adjusted,
        "significant": significant,
        "n_significant": int(np.sum(significant)),
        "method": method,
        "alpha": alpha,
    }


def _benjamini_yekutieli(pvalues: np.ndarray, weights: Optional[np.ndarray]) -> np.ndarray:
    n = len(pvalues)
    if weights is None:
        weights = np.ones(n)

    # BY correction factor: sum(1/i) for i in 1..n
    c_n = np.sum(1.0 / np.arange(1, n + 1))

    order = np.argsort(pvalues, kind="stable")
    adjusted_sorted = np.minimum(_step_up(pvalues[order], weights[order]) * c_n, 1.0)

    adjusted = np.empty(n)
    adjusted[order] = adjusted_sorted
    return adjusted
