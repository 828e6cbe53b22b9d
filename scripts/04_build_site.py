#!/usr/bin/env python3
"""
Step 4: Build the Static Site

Runs the full pipeline and assembles tables, the correlation heatmap and
the interactive widgets into a single page under the site directory.
Commit the site directory and enable static hosting (e.g. GitHub Pages
from docs/) to publish it.

Usage:
    python scripts/04_build_site.py --base-url https://<user>.github.io/<repo>

Outputs:
    - docs/index.html, docs/.nojekyll
    - docs/figures/, docs/widgets/, docs/qr/ (when --base-url is set)
"""

import argparse
import sys
from pathlib import Path

from loguru import logger

# Add repo root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from clinsurvey.pipeline import (
    build_site,
    load_survey,
    run_correlations,
    run_descriptives,
    run_interactive,
)
from clinsurvey.utils.config import load_config
from clinsurvey.utils.log import setup_logging


def main():
    parser = argparse.ArgumentParser(description="Build the static report site")
    parser.add_argument("--config", type=str, default="configs/report.yaml", help="Report config YAML")
    parser.add_argument("--data", type=str, default=None, help="Override dataset path")
    parser.add_argument("--site-dir", type=str, default=None, help="Override site directory")
    parser.add_argument("--base-url", type=str, default=None, help="Public URL of the site (enables QR codes)")
    parser.add_argument("--output", type=str, default=None, help="Override results directory")
    args = parser.parse_args()

    config = load_config(args.config)
    if args.data:
        config.data.path = args.data
    if args.site_dir:
        config.site.site_dir = args.site_dir
    if args.base_url:
        config.site.base_url = args.base_url
    if args.output:
        config.output.results_dir = args.output

    setup_logging(config.output.results_dir, "site")

    logger.info("=" * 60)
    logger.info("Static Site")
    logger.info("=" * 60)

    df, recoder = load_survey(config)

    logger.info("\n[1/4] Descriptive tables...")
    tables = run_descriptives(config, df, recoder)

    logger.info("\n[2/4] Correlation heatmap...")
    annotations, heatmap_path = run_correlations(config, df, recoder)

    logger.info("\n[3/4] Interactive widgets...")
    figures = run_interactive(config, df, recoder, annotations=annotations)

    logger.info("\n[4/4] Site...")
    index_path = build_site(config, tables, heatmap_path, figures)

    logger.info(f"\nSite ready: {index_path}")
    if config.site.base_url:
        logger.info(f"Will be served at {config.site.base_url}")


if __name__ == "__main__":
    main()
