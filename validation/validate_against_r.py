#!/usr/bin/env python3
"""
Cross-validation script: spatialfdr vs miloR graphSpatialFDR.

Simulates a KNN graph with neighbourhoods, runs every weighting scheme in
Python and in R, and compares the adjusted p-values.

Usage:
    python validation/validate_against_r.py

Requirements:
    - spatialfdr installed
    - R with the miloR and igraph packages installed
"""

import subprocess
import sys
import tempfile
from pathlib import Path

import numpy as np
import pandas as pd
from scipy import io as sp_io
from scipy import sparse
from scipy.spatial import cKDTree

from spatialfdr.stats.spatial_fdr import graph_spatial_fdr

WEIGHTINGS = ["vertex", "edge", "neighbour-distance", "k-distance"]


def simulate_nhoods(n_cells=500, n_dims=10, k=21, prop=0.1, seed=1):
    """KNN graph over random reduced dimensions, with neighbourhoods of sampled index cells."""
    rng = np.random.default_rng(seed)
    pcs = rng.standard_normal((n_cells, n_dims))

    _, nn = cKDTree(pcs).query(pcs, k=k + 1)
    rows = np.repeat(np.arange(n_cells), k)
    adj = sparse.csr_matrix((np.ones(len(rows)), (rows, nn[:, 1:].ravel())), shape=(n_cells, n_cells))
    adj = ((adj + adj.T) > 0).astype(np.float64)

    indices = np.sort(rng.choice(n_cells, int(prop * n_cells), replace=False))
    membership = sparse.lil_matrix((n_cells, len(indices)))
    for j, v in enumerate(indices):
        membership[nn[v], j] = 1

    pvalues = rng.uniform(0, 0.2, len(indices))
    pvalues[::7] = np.nan
    return pcs, adj, membership.tocsc(), indices, pvalues


def run_r_validation(tmpdir, k):
    """Run graphSpatialFDR in R for every weighting and return its outputs."""
    r_code = f'''
    suppressPackageStartupMessages({{library(miloR); library(igraph); library(Matrix)}})

    adj <- readMM("{tmpdir}/adj.mtx")
    nhoods <- as(readMM("{tmpdir}/nhoods.mtx"), "dgCMatrix")
    pcs <- as.matrix(read.csv("{tmpdir}/pcs.csv", header=FALSE))
    indices <- scan("{tmpdir}/indices.txt", quiet=TRUE) + 1
    pvalues <- as.numeric(read.csv("{tmpdir}/pvalues.csv")$PValue)

    graph <- graph_from_adjacency_matrix(adj, mode="undirected")
    out <- list()
    for (w in c({", ".join(f'"{w}"' for w in WEIGHTINGS)})) {{
        out[[w]] <- graphSpatialFDR(x.nhoods=nhoods, graph=graph, pvalues=pvalues,
                                    weighting=w, k={k}, reduced.dimensions=pcs,
                                    indices=indices)
    }}
    write.csv(as.data.frame(out, check.names=FALSE), "{tmpdir}/r_results.csv", row.names=FALSE)
    '''

    result = subprocess.run(
        ['Rscript', '-e', r_code],
        capture_output=True, text=True
    )
    return result.stdout, result.stderr


def main():
    print("=" * 60)
    print("spatialfdr vs miloR graphSpatialFDR Validation")
    print("=" * 60)

    k = 21
    pcs, adj, membership, indices, pvalues = simulate_nhoods(k=k)
    print(f"  {pcs.shape[0]} cells, {membership.shape[1]} neighbourhoods, "
          f"{int(np.isnan(pvalues).sum())} missing p-values")

    # Python computations
    print("\n--- Python (spatialfdr) ---")
    py_results = {}
    for weighting in WEIGHTINGS:
        py_results[weighting] = graph_spatial_fdr(
            membership, adj, pvalues, weighting=weighting, k=k,
            reduced_dimensions=pcs, indices=indices,
        )
        print(f"{weighting:<20} min SpatialFDR: {np.nanmin(py_results[weighting]):.10f}")

    # R computations
    print("\n--- R (miloR) ---")

    with tempfile.TemporaryDirectory() as tmpdir:
        sp_io.mmwrite(f"{tmpdir}/adj.mtx", sparse.coo_matrix(adj))
        sp_io.mmwrite(f"{tmpdir}/nhoods.mtx", sparse.coo_matrix(membership))
        np.savetxt(f"{tmpdir}/pcs.csv", pcs, delimiter=",")
        np.savetxt(f"{tmpdir}/indices.txt", indices, fmt="%d")
        pd.DataFrame({"PValue": pvalues}).to_csv(f"{tmpdir}/pvalues.csv", index=False)

        stdout, stderr = run_r_validation(tmpdir, k)

        results_path = Path(tmpdir) / "r_results.csv"
        if not results_path.exists():
            print(f"R Error: {stderr}")
            return 1
        r_results = pd.read_csv(results_path)

    for weighting in WEIGHTINGS:
        print(f"{weighting:<20} min SpatialFDR: {np.nanmin(r_results[weighting]):.10f}")

    # Comparison
    print("\n--- Validation Results ---")

    passed = True
    for weighting in WEIGHTINGS:
        py = py_results[weighting]
        r = r_results[weighting].to_numpy(dtype=np.float64)
        same_nan = np.array_equal(np.isnan(py), np.isnan(r))
        diff = np.nanmax(np.abs(py - r)) if same_nan else np.inf
        ok = same_nan and diff < 1e-10
        passed &= ok
        print(f"{weighting:<20} max difference: {diff:.6e} {'PASS' if ok else 'FAIL'}")

    if passed:
        print("\n" + "=" * 60)
        print("VALIDATION PASSED: Python matches R implementation")
        print("=" * 60)
        return 0
    else:
        print("\n" + "=" * 60)
        print("VALIDATION FAILED: Results differ beyond tolerance")
        print("=" * 60)
        return 1


if __name__ == "__main__":
    sys.exit(main())
