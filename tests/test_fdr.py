"""Tests for FDR correction."""

import numpy as np
import pytest

from spatialfdr.exceptions import ShapeMismatchError
from spatialfdr.stats.fdr import apply_fdr_correction, weighted_bh


def classical_bh(pvalues):
    """Independent Benjamini-Hochberg reference."""
    pvalues = np.asarray(pvalues, dtype=np.float64)
    n = len(pvalues)
    order = np.argsort(pvalues)
    ranked = pvalues[order] * n / np.arange(1, n + 1)
    adjusted_sorted = np.minimum(np.minimum.accumulate(ranked[::-1])[::-1], 1.0)
    adjusted = np.empty(n)
    adjusted[order] = adjusted_sorted
    return adjusted


class TestWeightedBH:
    """Tests for weighted_bh."""

    def test_uniform_weights_example(self):
        """Test unit weights reproduce classical BH on a worked example."""
        result = weighted_bh([0.01, 0.2, 0.04], [1, 1, 1])

        assert np.allclose(result, [0.03, 0.2, 0.06])

    def test_default_weights_are_uniform(self):
        """Test omitted weights behave as unit weights."""
        pvalues = np.array([0.01, 0.2, 0.04])

        assert np.allclose(weighted_bh(pvalues), weighted_bh(pvalues, np.ones(3)))

    def test_matches_classical_bh(self):
        """Test uniform weights equal an independent BH implementation."""
        rng = np.random.default_rng(42)
        pvalues = rng.uniform(0, 1, 200) ** 3

        assert np.allclose(weighted_bh(pvalues), classical_bh(pvalues))

    def test_scale_invariance(self):
        """Test constant weights give the same result whatever the constant."""
        rng = np.random.default_rng(0)
        pvalues = rng.uniform(0, 0.2, 50)

        assert np.allclose(weighted_bh(pvalues, np.full(50, 0.25)), classical_bh(pvalues))

    def test_heavy_weight(self):
        """Test a heavy weight is applied per hypothesis through the cumulative sum."""
        pvalues = np.array([0.01, 0.2, 0.04])
        uniform = weighted_bh(pvalues, [1, 1, 1])
        result = weighted_bh(pvalues, [1, 1, 100])

        # Sorted: 0.01 (w=1), 0.04 (w=100), 0.2 (w=1); total weight 102
        expected_heavy = 102 * 0.04 / 101
        assert np.isclose(result[2], expected_heavy)
        assert np.isclose(result[0], expected_heavy)
        assert np.isclose(result[1], 0.2)

        assert result[2] < uniform[2]
        assert result[0] > uniform[0]

    def test_zero_weight_is_finite(self):
        """Test a zero weight neither crashes nor produces NaN."""
        result = weighted_bh([0.01, 0.02, 0.03], [0.0, 1.0, 1.0])

        assert np.all(np.isfinite(result))
        assert np.allclose(result, [0.03, 0.03, 0.03])

    def test_all_zero_weights(self):
        """Test all-zero weights give adjusted p-values of 1."""
        result = weighted_bh([0.01, 0.02], [0.0, 0.0])

        assert np.allclose(result, 1.0)

    def test_capped_at_one(self):
        """Test adjusted p-values never exceed 1."""
        result = weighted_bh([0.9, 0.95, 0.99], [5.0, 0.1, 1.0])

        assert np.all(result <= 1.0)

    def test_monotonicity(self):
        """Test adjusted p-values follow the order of raw p-values."""
        rng = np.random.default_rng(7)
        pvalues = rng.uniform(0, 1, 100)
        weights = rng.uniform(0.1, 3.0, 100)
        result = weighted_bh(pvalues, weights)

        sorted_adj = result[np.argsort(pvalues)]
        assert np.all(sorted_adj[1:] >= sorted_adj[:-1])

    def test_ties_keep_input_order(self):
        """Test tied p-values are processed in input order."""
        result = weighted_bh([0.02, 0.02], [0.0, 1.0])

        # Sorted order is the input order: cum weights 0, 1; total 1
        assert np.allclose(result, [0.02, 0.02])

    def test_empty_input(self):
        """Test empty input."""
        assert len(weighted_bh([], [])) == 0

    def test_weight_length_mismatch(self):
        """Test weights must align with p-values."""
        with pytest.raises(ShapeMismatchError):
            weighted_bh([0.01, 0.02], [1.0])

    def test_nan_rejected(self):
        """Test NaN p-values must be filtered by the caller."""
        with pytest.raises(ValueError, match="NaN"):
            weighted_bh([0.01, np.nan])


class TestFDRCorrection:
    """Tests for apply_fdr_correction."""

    def test_bonferroni(self):
        """Test Bonferroni correction."""
        pvalues = np.array([0.01, 0.02, 0.03, 0.04, 0.05])
        result = apply_fdr_correction(pvalues, method="bonferroni")

        expected = pvalues * len(pvalues)
        assert np.allclose(result["adjusted_pvalues"], expected)

    def test_bh_matches_weighted_bh(self):
        """Test BH equals weighted_bh with unit weights."""
        pvalues = np.array([0.001, 0.01, 0.02, 0.05, 0.1])
        result = apply_fdr_correction(pvalues, method="bh")

        assert np.allclose(result["adjusted_pvalues"], classical_bh(pvalues))

    def test_by_more_conservative(self):
        """Test BY is more conservative than BH."""
        pvalues = np.array([0.01, 0.02, 0.03])

        bh_result = apply_fdr_correction(pvalues, method="bh")
        by_result = apply_fdr_correction(pvalues, method="by")

        assert np.all(by_result["adjusted_pvalues"] >= bh_result["adjusted_pvalues"])

    def test_by_factor(self):
        """Test BY scales BH by the harmonic number when uncapped."""
        pvalues = np.array([0.001, 0.002, 0.003])
        c_n = 1 + 1 / 2 + 1 / 3

        bh = apply_fdr_correction(pvalues, method="bh")["adjusted_pvalues"]
        by = apply_fdr_correction(pvalues, method="by")["adjusted_pvalues"]
        assert np.allclose(by, bh * c_n)

    def test_weighted_bh(self):
        """Test explicit weights are passed to the BH step-up."""
        pvalues = np.array([0.01, 0.2, 0.04])
        result = apply_fdr_correction(pvalues, method="bh", weights=[1, 1, 100])

        assert np.allclose(result["adjusted_pvalues"], weighted_bh(pvalues, [1, 1, 100]))

    def test_weights_with_nan(self):
        """Test weights at NaN positions are dropped with their p-values."""
        pvalues = np.array([0.01, np.nan, 0.04])
        result = apply_fdr_correction(pvalues, weights=[1.0, 50.0, 2.0])

        expected = weighted_bh([0.01, 0.04], [1.0, 2.0])
        assert np.isnan(result["adjusted_pvalues"][1])
        assert np.allclose(result["adjusted_pvalues"][[0, 2]], expected)

    def test_bonferroni_rejects_weights(self):
        """Test weights are refused for Bonferroni."""
        with pytest.raises(ValueError, match="weights"):
            apply_fdr_correction([0.01, 0.02], method="bonferroni", weights=[1, 1])

    def test_significance_count(self):
        """Test n_significant is correct."""
        pvalues = np.array([0.001, 0.01, 0.1, 0.5])
        result = apply_fdr_correction(pvalues, method="bh", alpha=0.05)

        expected_sig = np.sum(result["adjusted_pvalues"] < 0.05)
        assert result["n_significant"] == expected_sig

    def test_nan_handling(self):
        """Test NaN p-values are handled."""
        pvalues = np.array([0.01, np.nan, 0.03])
        result = apply_fdr_correction(pvalues, method="bh")

        assert np.isnan(result["adjusted_pvalues"][1])
        assert not np.isnan(result["adjusted_pvalues"][0])
        assert not np.isnan(result["adjusted_pvalues"][2])

    def test_all_nan(self):
        """Test all-NaN input stays NaN."""
        result = apply_fdr_correction(np.array([np.nan, np.nan]))

        assert np.all(np.isnan(result["adjusted_pvalues"]))
        assert result["n_significant"] == 0

    def test_empty_input(self):
        """Test empty input."""
        result = apply_fdr_correction(np.array([]), method="bh")

        assert len(result["adjusted_pvalues"]) == 0
        assert result["n_significant"] == 0

    def test_invalid_method(self):
        """Test invalid method raises error."""
        with pytest.raises(ValueError, match="Unknown method"):
            apply_fdr_correction(np.array([0.01, 0.02]), method="invalid")
