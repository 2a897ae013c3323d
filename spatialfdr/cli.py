"""
Command-line spatial FDR correction of neighbourhood p-values.

Usage:
    spatialfdr --h5ad milo.h5ad --pvalues da_results.csv --weighting k-distance \
        --output spatial_fdr.csv
"""

import argparse
import logging
from pathlib import Path

from spatialfdr.analysis.nhood_fdr import annotate_nhoods
from spatialfdr.config.dataclasses import SpatialFDRConfig, Weighting
from spatialfdr.io.hdf5 import save_results_hdf5
from spatialfdr.io.loaders import load_nhood_inputs, load_pvalues

logger = logging.getLogger(__name__)


def run_spatial_fdr(
    h5ad_path: str,
    pvalues_path: str,
    output_path: str,
    config: SpatialFDRConfig,
    pvalue_column: str = "PValue",
    nhoods_key: str = "nhoods",
    index_key: str = "nhood_ixs_refined",
    neighbors_key=None,
    use_rep="X_pca",
    hdf5_path=None,
):
    """Load inputs, run the correction and write the results table."""
    logger.info(f"Loading {h5ad_path}")
    inputs = load_nhood_inputs(
        h5ad_path,
        nhoods_key=nhoods_key,
        index_key=index_key,
        neighbors_key=neighbors_key,
        use_rep=use_rep,
    )
    pvalues = load_pvalues(pvalues_path, column=pvalue_column)
    logger.info(f"Loaded {len(inputs['nhoods'])} neighbourhoods, {len(pvalues)} p-values")

    df = annotate_nhoods(
        inputs["nhoods"],
        inputs["graph"],
        pvalues,
        config=config,
        reduced_dimensions=inputs["reduced_dimensions"],
        distances=inputs["distances"],
        indices=inputs["indices"],
        index_names=inputs["index_names"],
    )

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(output_path)
    logger.info(f"Saved results table: {output_path}")

    if hdf5_path is not None:
        result = {
            "adjusted_pvalues": df["SpatialFDR"].to_numpy(),
            "weights": df["weight"].to_numpy(),
            "significant": df["is_signif"].to_numpy(),
            "n_significant": int(df["is_signif"].sum()),
            "weighting": config.weighting.value,
            "alpha": config.alpha,
        }
        save_results_hdf5(
            hdf5_path,
            result,
            pvalues=pvalues,
            indices=inputs["indices"],
            index_names=inputs["index_names"],
            metadata={"k": config.k, "source": str(h5ad_path)},
        )
        logger.info(f"Saved HDF5 results: {hdf5_path}")

    return df


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Spatial FDR correction of neighbourhood differential-abundance p-values",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--h5ad", required=True, help="AnnData with neighbourhoods and KNN graph")
    parser.add_argument("--pvalues", required=True, help="CSV/TSV with one row per neighbourhood")
    parser.add_argument("--output", required=True, help="Output CSV path")
    parser.add_argument(
        "--weighting",
        default=Weighting.K_DISTANCE.value,
        choices=[w.value for w in Weighting],
        help="Neighbourhood weighting scheme",
    )
    parser.add_argument("--config", default=None, help="JSON SpatialFDRConfig (overrides options)")
    parser.add_argument("--pvalue-column", default="PValue", help="P-value column name")
    parser.add_argument("--nhoods-key", default="nhoods", help="obsm key for neighbourhoods")
    parser.add_argument("--index-key", default="nhood_ixs_refined", help="obs key for index cells")
    parser.add_argument("--neighbors-key", default=None, help="Prefix of obsp graph keys")
    parser.add_argument("--use-rep", default="X_pca", help="obsm key for reduced dimensions")
    parser.add_argument("--k", type=int, default=21, help="Neighbour rank for k-distance")
    parser.add_argument("--n-jobs", type=int, default=1, help="Parallel workers")
    parser.add_argument("--alpha", type=float, default=0.1, help="Significance threshold")
    parser.add_argument("--hdf5", default=None, help="Optional HDF5 output path")

    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")

    if args.config is not None:
        config = SpatialFDRConfig.load(args.config)
    else:
        config = SpatialFDRConfig(
            weighting=args.weighting,
            k=args.k,
            n_jobs=args.n_jobs,
            alpha=args.alpha,
        )

    run_spatial_fdr(
        h5ad_path=args.h5ad,
        pvalues_path=args.pvalues,
        output_path=args.output,
        config=config,
        pvalue_column=args.pvalue_column,
        nhoods_key=args.nhoods_key,
        index_key=args.index_key,
        neighbors_key=args.neighbors_key,
        use_rep=args.use_rep,
        hdf5_path=args.hdf5,
    )


if __name__ == "__main__":
    main()
