#!/usr/bin/env python3
"""
Step 3: Interactive Widgets

Exports interactive plotly figures as standalone HTML files that can be
opened in any browser or linked from slides:
- correlation heatmap with hover captions
- scatter plots and bubble charts listed under `plots` in the config

Usage:
    python scripts/03_interactive_plots.py --cdn

Outputs:
    - results/widgets/*.html
"""

import argparse
import sys
from pathlib import Path

from loguru import logger

# Add repo root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from clinsurvey.pipeline import load_survey, run_interactive
from clinsurvey.utils.config import load_config
from clinsurvey.utils.log import setup_logging


def main():
    parser = argparse.ArgumentParser(description="Interactive plot widgets")
    parser.add_argument("--config", type=str, default="configs/report.yaml", help="Report config YAML")
    parser.add_argument("--data", type=str, default=None, help="Override dataset path")
    parser.add_argument(
        "--cdn",
        action="store_true",
        help="Reference plotly.js from a CDN instead of inlining it (smaller files)",
    )
    parser.add_argument("--output", type=str, default=None, help="Override results directory")
    args = parser.parse_args()

    config = load_config(args.config)
    if args.data:
        config.data.path = args.data
    if args.cdn:
        config.plots.self_contained = False
    if args.output:
        config.output.results_dir = args.output

    setup_logging(config.output.results_dir, "interactive")

    logger.info("=" * 60)
    logger.info("Interactive Widgets")
    logger.info("=" * 60)

    df, recoder = load_survey(config)
    figures = run_interactive(config, df, recoder)

    logger.info(f"Exported {len(figures)} widgets to {config.output.widgets_dir}")


if __name__ == "__main__":
    main()
