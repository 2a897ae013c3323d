"""
Weighting policy benchmarks for spatialfdr.

Measures the cost of each neighbourhood weighting scheme, the speedup from
joblib workers for the per-neighbourhood computations, and CuPy GPU vs NumPy
CPU for neighbour-distance weighting.
"""

import time
from typing import Dict, List

import networkx as nx
import numpy as np
from scipy.spatial import cKDTree

from spatialfdr.gpu.backend import GPU_AVAILABLE
from spatialfdr.stats.spatial_fdr import graph_spatial_fdr


def generate_test_data(n_cells: int, n_dims: int = 30, k: int = 15, prop: float = 0.1, seed: int = 42):
    """Random reduced dimensions, their KNN graph and neighbourhoods of sampled index cells."""
    rng = np.random.default_rng(seed)
    pcs = rng.standard_normal((n_cells, n_dims))

    tree = cKDTree(pcs)
    dist, nn = tree.query(pcs, k=k + 1)

    G = nx.Graph()
    G.add_nodes_from(range(n_cells))
    G.add_edges_from((i, int(j)) for i in range(n_cells) for j in nn[i, 1:])

    indices = np.sort(rng.choice(n_cells, max(1, int(prop * n_cells)), replace=False))
    nhoods = [nn[i].tolist() for i in indices]
    pvalues = rng.uniform(0, 1, len(indices))

    return {
        "nhoods": nhoods,
        "graph": G,
        "pvalues": pvalues,
        "reduced_dimensions": pcs,
        "indices": indices.tolist(),
    }


def benchmark_function(func, n_runs: int = 3, warmup: int = 1):
    """Benchmark a zero-argument function with warmup runs."""
    for _ in range(warmup):
        func()

    times = []
    for _ in range(n_runs):
        start = time.perf_counter()
        func()

        # Ensure GPU operations complete
        if GPU_AVAILABLE:
            import cupy as cp
            cp.cuda.Stream.null.synchronize()

        times.append(time.perf_counter() - start)

    return {
        'mean': np.mean(times),
        'std': np.std(times),
        'min': np.min(times),
        'max': np.max(times),
    }


def benchmark_weighting(data: Dict, weighting: str, n_jobs: int = 1, n_runs: int = 3) -> Dict:
    """Benchmark one weighting scheme with serial and parallel workers."""
    def run(jobs):
        return lambda: graph_spatial_fdr(
            data["nhoods"], data["graph"], data["pvalues"],
            weighting=weighting,
            reduced_dimensions=data["reduced_dimensions"],
            indices=data["indices"],
            n_jobs=jobs,
        )

    serial = benchmark_function(run(1), n_runs=n_runs)
    results = {'cpu': serial, 'parallel': None, 'speedup': None}

    # k-distance is a single KD-tree query and never fans out
    if n_jobs != 1 and weighting != "k-distance":
        parallel = benchmark_function(run(n_jobs), n_runs=n_runs)
        results['parallel'] = parallel
        results['speedup'] = serial['mean'] / parallel['mean']

    return results


def benchmark_neighbour_distance_gpu(data: Dict, n_runs: int = 3) -> Dict:
    """Benchmark neighbour-distance weighting CPU vs GPU."""
    def run(use_gpu):
        return lambda: graph_spatial_fdr(
            data["nhoods"], None, data["pvalues"],
            weighting="neighbour-distance",
            reduced_dimensions=data["reduced_dimensions"],
            use_gpu=use_gpu,
        )

    cpu_stats = benchmark_function(run(False), n_runs=n_runs)
    results = {'cpu': cpu_stats, 'gpu': None, 'speedup': None}

    if GPU_AVAILABLE:
        gpu_stats = benchmark_function(run(True), n_runs=n_runs)
        results['gpu'] = gpu_stats
        results['speedup'] = cpu_stats['mean'] / gpu_stats['mean']

    return results


def run_all_benchmarks(
    n_cells_list: List[int] = [2000, 10000],
    n_jobs: int = 4,
    n_runs: int = 3,
) -> Dict:
    """Run all benchmarks with various data sizes."""
    results = {
        'gpu_available': GPU_AVAILABLE,
        'benchmarks': {}
    }

    print(f"GPU Available: {GPU_AVAILABLE}")
    print("=" * 60)

    weightings = ["vertex", "edge", "neighbour-distance", "k-distance"]
    for step, weighting in enumerate(weightings, start=1):
        print(f"\n[{step}/{len(weightings) + 1}] Benchmarking {weighting} weighting...")
        results['benchmarks'][weighting] = {}
        for n_cells in n_cells_list:
            data = generate_test_data(n_cells)
            print(f"  n_cells={n_cells}...", end=" ", flush=True)
            result = benchmark_weighting(data, weighting, n_jobs=n_jobs, n_runs=n_runs)
            results['benchmarks'][weighting][str(n_cells)] = result

            if result['speedup']:
                print(f"Speedup ({n_jobs} jobs): {result['speedup']:.1f}x")
            else:
                print(f"CPU: {result['cpu']['mean']*1000:.1f}ms")

    print(f"\n[{len(weightings) + 1}/{len(weightings) + 1}] Benchmarking neighbour-distance on GPU...")
    results['benchmarks']['neighbour-distance-gpu'] = {}
    for n_cells in n_cells_list:
        data = generate_test_data(n_cells)
        print(f"  n_cells={n_cells}...", end=" ", flush=True)
        result = benchmark_neighbour_distance_gpu(data, n_runs=n_runs)
        results['benchmarks']['neighbour-distance-gpu'][str(n_cells)] = result

        if result['speedup']:
            print(f"Speedup: {result['speedup']:.1f}x")
        else:
            print(f"CPU: {result['cpu']['mean']*1000:.1f}ms")

    print("\n" + "=" * 60)
    print("Benchmarks complete!")

    return results


def print_summary(results: Dict):
    """Print a summary table of benchmark results."""
    print("\n" + "=" * 60)
    print("BENCHMARK SUMMARY")
    print("=" * 60)

    for benchmark_name, benchmark_data in results['benchmarks'].items():
        print(f"\n{benchmark_name}:")
        print("-" * 40)
        print(f"{'n_cells':<15} {'Base (ms)':<12} {'Alt (ms)':<12} {'Speedup':<10}")
        print("-" * 40)

        for size, data in benchmark_data.items():
            base_ms = data['cpu']['mean'] * 1000
            alt = data.get('parallel') or data.get('gpu')
            if alt:
                print(f"{size:<15} {base_ms:<12.2f} {alt['mean'] * 1000:<12.2f} {data['speedup']:<10.1f}x")
            else:
                print(f"{size:<15} {base_ms:<12.2f} {'N/A':<12} {'N/A':<10}")


if __name__ == "__main__":
    results = run_all_benchmarks(n_cells_list=[2000, 5000], n_runs=3)
    print_summary(results)
