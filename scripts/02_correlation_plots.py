#!/usr/bin/env python3
"""
Step 2: Correlation Heatmap

Computes pairwise correlations between the configured survey scores,
annotates each pair with significance stars and renders a triangular
heatmap on a fixed [-1, 1] color scale.

Usage:
    python scripts/02_correlation_plots.py --method spearman

Outputs:
    - results/tables/correlation_annotations.csv
    - results/figures/correlation_heatmap.png
"""

import argparse
import sys
from pathlib import Path

from loguru import logger

# Add repo root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from clinsurvey.pipeline import load_survey, run_correlations
from clinsurvey.utils.config import load_config
from clinsurvey.utils.log import setup_logging


def main():
    parser = argparse.ArgumentParser(description="Correlation annotation and heatmap")
    parser.add_argument("--config", type=str, default="configs/report.yaml", help="Report config YAML")
    parser.add_argument("--data", type=str, default=None, help="Override dataset path")
    parser.add_argument(
        "--method",
        type=str,
        default=None,
        choices=["pearson", "spearman"],
        help="Correlation method",
    )
    parser.add_argument(
        "--undefined-p",
        type=str,
        default=None,
        choices=["not_applicable", "sentinel"],
        help="How to mark pairs without a defined p-value",
    )
    parser.add_argument("--dpi", type=int, default=None, help="Resolution of the saved PNG")
    parser.add_argument("--output", type=str, default=None, help="Override results directory")
    args = parser.parse_args()

    config = load_config(args.config)
    if args.data:
        config.data.path = args.data
    if args.method:
        config.correlation.method = args.method
    if args.undefined_p:
        config.correlation.undefined_p = args.undefined_p
    if args.dpi:
        config.plots.dpi = args.dpi
    if args.output:
        config.output.results_dir = args.output

    setup_logging(config.output.results_dir, "correlations")

    logger.info("=" * 60)
    logger.info("Correlation Heatmap")
    logger.info("=" * 60)
    logger.info(f"Correlation method: {config.correlation.method}")
    logger.info(f"Undefined p-values: {config.correlation.undefined_p}")

    df, recoder = load_survey(config)
    annotations, heatmap_path = run_correlations(config, df, recoder)

    logger.info(f"Annotated pairs: {len(annotations)}")
    logger.info(f"Heatmap: {heatmap_path}")


if __name__ == "__main__":
    main()
