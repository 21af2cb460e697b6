"""Command-line interface for running the K0-short resolution analysis."""

from __future__ import annotations

import argparse
import logging
from dataclasses import replace

from .analysis import K0sResolutionTask
from .io import load_config_json, load_events_json, write_histograms_table
from .models import AnalysisConfig, InvalidSelectionError

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Define and return the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="k0s-resolution",
        description="Select K0-short V0 candidates and fill mass and momentum-resolution histograms.",
    )
    parser.add_argument("--events", required=True, help="Input JSON with key 'events'.")
    parser.add_argument(
        "--config",
        default=None,
        help="Optional JSON configuration (binning, preselection, event_selection, selection, options).",
    )
    parser.add_argument(
        "--out",
        required=True,
        help="Output table file for histogram contents (.parquet, .csv, .pkl).",
    )
    mode = parser.add_argument_group("processing modes (override the configuration)")
    mode.add_argument("--data", dest="process_data", action=argparse.BooleanOptionalAction, default=None,
                      help="Enable or disable data mode.")
    mode.add_argument("--mc", dest="process_mc", action=argparse.BooleanOptionalAction, default=None,
                      help="Enable or disable truth-comparison mode.")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging verbosity.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint: load config and events, run the analysis, write the table."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        config = load_config_json(args.config) if args.config else AnalysisConfig()
        config = _apply_mode_overrides(config, args.process_data, args.process_mc)
        task = K0sResolutionTask(config)
    except InvalidSelectionError as exc:
        logger.critical("Invalid selection configuration: %s", exc)
        return 2

    records = load_events_json(args.events)
    task.process_events(records)
    write_histograms_table(args.out, task.histograms)
    logger.info("Wrote %d histograms to %s", len(task.histograms.names()), args.out)
    return 0


def _apply_mode_overrides(
    config: AnalysisConfig, process_data: bool | None, process_mc: bool | None
) -> AnalysisConfig:
    changes = {}
    if process_data is not None:
        changes["process_data"] = process_data
    if process_mc is not None:
        changes["process_mc"] = process_mc
    if not changes:
        return config
    return replace(config, options=replace(config.options, **changes))


if __name__ == "__main__":
    raise SystemExit(main())
