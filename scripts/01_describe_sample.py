#!/usr/bin/env python3
"""
Step 1: Describe the Sample

Builds Table-1 style summaries of the survey sample, overall and stratified
by the configured grouping variable, with group comparison p-values.

Usage:
    python scripts/01_describe_sample.py --config configs/report.yaml

Outputs:
    - results/tables/table1_overall.{csv,tex,docx}
    - results/tables/table1_by_group.{csv,tex,docx}
    - results/tables/descriptive_statistics.{csv,tex,docx}
"""

import argparse
import sys
from pathlib import Path

from loguru import logger

# Add repo root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from clinsurvey.pipeline import load_survey, run_descriptives
from clinsurvey.utils.config import load_config
from clinsurvey.utils.log import setup_logging


def main():
    parser = argparse.ArgumentParser(description="Descriptive statistics tables")
    parser.add_argument("--config", type=str, default="configs/report.yaml", help="Report config YAML")
    parser.add_argument("--data", type=str, default=None, help="Override dataset path")
    parser.add_argument("--by", type=str, default=None, help="Override grouping column")
    parser.add_argument(
        "--statistic",
        type=str,
        default=None,
        choices=["mean_sd", "median_iqr"],
        help="Summary statistic for continuous variables",
    )
    parser.add_argument("--output", type=str, default=None, help="Override results directory")
    args = parser.parse_args()

    config = load_config(args.config)
    if args.data:
        config.data.path = args.data
    if args.by:
        config.descriptive.by = args.by
    if args.statistic:
        config.descriptive.statistic = args.statistic
    if args.output:
        config.output.results_dir = args.output

    setup_logging(config.output.results_dir, "describe")

    logger.info("=" * 60)
    logger.info("Descriptive Statistics")
    logger.info("=" * 60)

    df, recoder = load_survey(config)
    tables = run_descriptives(config, df, recoder)

    for name, table in tables.items():
        logger.info(f"{name}: {len(table)} rows")
    logger.info(f"Tables written to {config.output.tables_dir}")


if __name__ == "__main__":
    main()
