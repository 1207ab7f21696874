#!/usr/bin/env python3
"""Command-line runner for the offshore vessel fleet forecast.

Workflow:
    load rule set -> ingest schedule -> filter -> forecast -> summary
    -> recommendations -> (optional) scenario comparison and CSV export

Usage::

    # Default Aug 2026 rules, 18 months from Jan 2026
    python scripts/run_forecast.py --schedule data/rig_schedule_mean.csv --start 2026-01

    # Older tabular multipliers, prorated demand, write the table
    python scripts/run_forecast.py --schedule data/rig_schedule_mean.csv --start 2026-01 \\
        --rule-set tabular_legacy --policy prorated --output out/forecast.csv

    # Compare the EARLY case against MEAN
    python scripts/run_forecast.py --schedule data/rig_schedule_mean.csv \\
        --compare-schedule data/rig_schedule_early.csv --start 2026-01
"""

from __future__ import annotations

import argparse
import sys
from datetime import date
from pathlib import Path

from loguru import logger

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

PROJECT_ROOT = Path(__file__).resolve().parent.parent
LOG_DIR = PROJECT_ROOT / "logs"
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "config" / "business_rules.yaml"
DEFAULT_HORIZON_MONTHS = 18

# Ensure the src package is importable when running as a script.
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from src.data.schedule_loader import filter_activities, load_schedule_csv  # noqa: E402
from src.forecast.engine import FleetForecastEngine, ForecastRun  # noqa: E402
from src.forecast.month_grid import display_label, month_start  # noqa: E402
from src.forecast.spreader import DemandSpreadPolicy  # noqa: E402
from src.reference.rule_sets import BusinessRuleSet, load_rule_set  # noqa: E402
from src.scenarios.comparison import compare_scenarios  # noqa: E402


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

def _configure_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """Configure a console sink and an optional forecast audit file.

    The console follows *level*.  The file sink always records DEBUG so a
    run's alias resolution and fallback lookups can be traced afterwards.

    Args:
        level: Minimum console log level.
        log_file: Optional log file.  A bare file name is placed under
            ``logs/`` in the project root.
    """
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
        colorize=True,
    )
    if log_file:
        log_path = Path(log_file)
        if log_path.parent == Path("."):
            log_path = LOG_DIR / log_path
        log_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(log_path),
            level="DEBUG",
            rotation="5 MB",
            retention=5,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{line} | {message}",
        )
        logger.debug("Forecast audit log at {}", log_path)


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

def _parse_start(text: str) -> date:
    """Accept ``YYYY-MM`` or ``YYYY-MM-DD``."""
    try:
        if len(text) == 7:
            return month_start(text)
        return date.fromisoformat(text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid start month '{text}': {exc}") from exc


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Argument list (defaults to ``sys.argv[1:]``).

    Returns:
        Parsed argument namespace.
    """
    parser = argparse.ArgumentParser(
        description="Offshore vessel fleet demand and capacity forecast",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--schedule", type=Path, required=True, help="Rig schedule CSV export")
    parser.add_argument(
        "--compare-schedule",
        type=Path,
        default=None,
        help="Alternative schedule (e.g. EARLY case) to compare against --schedule",
    )
    parser.add_argument("--start", type=_parse_start, required=True, help="First month (YYYY-MM)")
    parser.add_argument(
        "--horizon", type=int, default=DEFAULT_HORIZON_MONTHS, help="Number of months"
    )
    parser.add_argument(
        "--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Business rules YAML"
    )
    parser.add_argument(
        "--rule-set", default=None, help="Rule set name (default: the file's default_rule_set)"
    )
    parser.add_argument(
        "--policy",
        choices=[p.value for p in DemandSpreadPolicy],
        default=DemandSpreadPolicy.FULL_MONTH.value,
        help="How multi-month activities spread demand",
    )
    parser.add_argument("--rigs", nargs="+", default=None, help="Only include these rigs")
    parser.add_argument(
        "--locations", nargs="+", default=None, help="Only include these location keys"
    )
    parser.add_argument("--output", type=Path, default=None, help="Write the forecast table as CSV")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging verbosity",
    )
    parser.add_argument("--log-file", default=None, help="Optional rotating log file")
    return parser.parse_args(argv)


# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------

def run_schedule(
    engine: FleetForecastEngine,
    rule_set: BusinessRuleSet,
    schedule: Path,
    args: argparse.Namespace,
) -> ForecastRun:
    """Ingest one schedule file and run the forecast over it."""
    report = load_schedule_csv(schedule, rule_set)
    for issue in report.issues:
        logger.warning("Row {} rejected ({}): {}", issue.row, issue.field, issue.reason)
    activities = filter_activities(report.activities, rigs=args.rigs, locations=args.locations)
    if len(activities) != report.accepted:
        logger.info("Filters kept {}/{} activities", len(activities), report.accepted)
    return engine.run(activities, args.start, args.horizon)


def log_summary(engine: FleetForecastEngine, run: ForecastRun) -> None:
    summary = run.summary
    logger.info("=== Fleet summary ({} months) ===", summary.horizon_months)
    logger.info("Average demand:        {:.1f} deliveries/month", summary.average_monthly_demand)
    logger.info(
        "Peak month:            {} ({:.1f} deliveries, {:.2f} vessels)",
        display_label(summary.peak_month),
        summary.peak_demand,
        summary.peak_vessels_required,
    )
    logger.info("Average external:      {:.2f} vessels", summary.average_externally_sourced)
    logger.info(
        "Recommended fleet:     {} vessels (gap {:+.1f} vs core {:.1f})",
        summary.recommended_vessels,
        summary.baseline_gap,
        summary.core_fleet_baseline,
    )
    logger.info("Internal utilisation:  {:.0%}", summary.utilization)
    for line in engine.recommendations(run):
        logger.info("Recommendation: {}", line)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    """Entry point for the forecast runner.

    Args:
        argv: Command-line arguments (defaults to ``sys.argv[1:]``).

    Returns:
        Exit code (0 = success, 1 = configuration or input failure).
    """
    args = parse_args(argv)
    _configure_logging(level=args.log_level, log_file=args.log_file)

    try:
        rule_set = load_rule_set(args.config, args.rule_set)
    except (FileNotFoundError, KeyError, ValueError) as exc:
        logger.critical("Failed to load business rules: {}", exc)
        return 1

    engine = FleetForecastEngine(rule_set, DemandSpreadPolicy(args.policy))

    try:
        run = run_schedule(engine, rule_set, args.schedule, args)
        alternative = (
            run_schedule(engine, rule_set, args.compare_schedule, args)
            if args.compare_schedule is not None
            else None
        )
    except (FileNotFoundError, ValueError) as exc:
        logger.critical("Forecast failed: {}", exc)
        return 1

    log_summary(engine, run)

    if alternative is not None:
        comparison = compare_scenarios(run.forecast, alternative.forecast)
        if comparison.new_external_months:
            logger.warning(
                "{} case needs external vessels in {} month(s) the {} case does not: {}",
                comparison.alternative_label,
                len(comparison.new_external_months),
                comparison.base_label,
                ", ".join(display_label(m) for m in comparison.new_external_months),
            )

    if args.output is not None:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        run.forecast.to_frame(display=True).write_csv(args.output)
        logger.info("Forecast table written to {}", args.output)

    return 0


if __name__ == "__main__":
    sys.exit(main())
