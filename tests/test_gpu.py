"""
GPU vs CPU equivalence tests.

These tests verify that GPU (CuPy) and CPU (NumPy) implementations
produce identical results within numerical tolerance.
"""

import numpy as np
import pytest

from spatialfdr.gpu.backend import GPU_AVAILABLE

# Skip all tests if GPU not available
pytestmark = pytest.mark.skipif(
    not GPU_AVAILABLE,
    reason="CuPy/GPU not available"
)


class TestDistancesGPU:
    """GPU vs CPU tests for within-neighbourhood distances."""

    def test_mean_pairwise_distance_equivalence(self):
        """Test mean_pairwise_distance produces same result on GPU and CPU."""
        from spatialfdr.core.distances import mean_pairwise_distance

        rng = np.random.default_rng(42)
        points = rng.standard_normal((200, 30))

        result_cpu = mean_pairwise_distance(points, use_gpu=False)
        result_gpu = mean_pairwise_distance(points, use_gpu=True)

        assert np.isclose(result_cpu, result_gpu, rtol=1e-6)

    def test_neighbour_distance_weighting_equivalence(self):
        """Test neighbour-distance spatial FDR on GPU matches CPU."""
        from spatialfdr.stats.spatial_fdr import graph_spatial_fdr

        rng = np.random.default_rng(0)
        pcs = rng.standard_normal((100, 10))
        nhoods = [list(range(i, i + 10)) for i in range(0, 90, 10)]
        pvalues = rng.uniform(0, 0.1, len(nhoods))

        result_cpu = graph_spatial_fdr(
            nhoods, None, pvalues, weighting="neighbour-distance",
            reduced_dimensions=pcs, use_gpu=False,
        )
        result_gpu = graph_spatial_fdr(
            nhoods, None, pvalues, weighting="neighbour-distance",
            reduced_dimensions=pcs, use_gpu=True,
        )

        assert np.allclose(result_cpu, result_gpu, rtol=1e-6)
