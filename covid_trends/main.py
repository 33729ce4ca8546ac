"""
COVID Trends - Main Entry Point

Usage:
    python -m covid_trends.main --snapshot-dir snapshots/
    python -m covid_trends.main --confirmed confirmed.csv --deaths deaths.csv --vaccine vaccine.csv
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

import pandas as pd

from .config import CovidTrendsConfig
from .exceptions import CovidTrendsError
from .fetch import SnapshotFetcher
from .models import Weekday
from .pipeline import CovidTrendsPipeline, PipelineResult

logger = logging.getLogger(__name__)


def setup_logging(level: str = CovidTrendsConfig.LOG_LEVEL):
    logging.basicConfig(level=level.upper(), format=CovidTrendsConfig.LOG_FORMAT)


def print_results(result: PipelineResult):
    """Print the summary tables to stdout"""
    with pd.option_context('display.width', 160, 'display.max_columns', 20):
        print("\nREGION SUMMARY")
        print("=" * 80)
        print(result.region_summary.sort_values('deaths_per_thousand', ascending=False).head(15).round(3))

        print("\nCORRELATION MATRIX")
        print("=" * 80)
        print(result.correlation.round(3))

        print("\nMODEL COMPARISON")
        print("=" * 80)
        print(result.model_comparison.round(4).to_string(index=False))

        for label, model in result.models.items():
            terms = ", ".join(f"{name}={coef:.4f}" for name, coef in model.coefficients.items())
            print(f"  {label}: intercept={model.intercept:.4f}, {terms}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Per-capita COVID-19 trends and death-rate regression for US states",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument('--confirmed', type=Path, help='Local wide confirmed-cases CSV')
    parser.add_argument('--deaths', type=Path, help='Local wide deaths CSV')
    parser.add_argument('--vaccine', type=Path, help='Local vaccination time series CSV')
    parser.add_argument(
        '--snapshot-dir',
        type=Path,
        default=CovidTrendsConfig.SNAPSHOT_DIR,
        help='Cache fetched sources in this directory'
    )
    parser.add_argument('--refresh', action='store_true', help='Ignore cached snapshots')
    parser.add_argument('--week-start', default=CovidTrendsConfig.WEEK_START, help='First weekday of a week (MON..SUN)')
    parser.add_argument('--log-level', default=CovidTrendsConfig.LOG_LEVEL)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI."""
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    if not CovidTrendsConfig.validate():
        return 2

    if args.week_start.strip().upper() not in Weekday.__members__:
        logger.error(f"--week-start must be one of {list(Weekday.__members__)}, got {args.week_start!r}")
        return 2

    pipeline = CovidTrendsPipeline(week_start=args.week_start)
    local = [args.confirmed, args.deaths, args.vaccine]

    try:
        if all(local):
            result = pipeline.run(*(path.read_bytes() for path in local))
        elif any(local):
            logger.error("--confirmed, --deaths and --vaccine must be given together")
            return 2
        else:
            fetcher = SnapshotFetcher(snapshot_dir=args.snapshot_dir)
            result = pipeline.run_from_sources(fetcher, refresh=args.refresh)
    except CovidTrendsError as e:
        logger.error(f"Pipeline failed: {e}")
        return 1

    print_results(result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
