"""Command Line Interface for the review pipeline.

Provides CLI entry point with argument parsing and command handling
for batch scoring, calibration, show lookup, and audit export.
"""

import argparse
import asyncio
import logging
import sys
import traceback
from pathlib import Path

from src.database import ReviewStore
from src.etl.pipeline.batch import ReviewBatch, load_batch
from src.etl.pipeline.job import BatchJob
from src.etl.pipeline.orchestrator import PipelineResult, ReviewPipeline
from src.etl.scoring import CalibrationJob
from src.etl.utils import setup_logger
from src.etl.validation import build_audit_report
from src.settings import settings

logger = logging.getLogger(__name__)

AUDIT_FILENAME = "audit_report.json"
"""Default audit export file name."""


# =============================================================================
# ARGUMENT PARSING
# =============================================================================


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser.

    Returns:
        Parser with run, calibrate, show and audit subcommands.
    """
    parser = argparse.ArgumentParser(
        prog="python -m src",
        description="Critic review scoring pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m src run --input batch.json --export scores.json
  python -m src calibrate --samples samples.json
  python -m src show hamlet-2024
  python -m src audit --output audit.json
        """,
    )
    subparsers = parser.add_subparsers(dest="command", help="Command")

    run_parser = subparsers.add_parser("run", help="Score and store a review batch")
    run_parser.add_argument("--input", type=Path, required=True, help="Batch JSON file")
    run_parser.add_argument("--export", type=Path, default=None, help="Write show aggregates to JSON")
    run_parser.add_argument("--audit", type=Path, default=None, help="Write the batch audit report to JSON")
    run_parser.add_argument(
        "--max-workers",
        type=int,
        default=None,
        help=f"Shows processed concurrently (default: {settings.pipeline.max_workers})",
    )

    calibrate_parser = subparsers.add_parser("calibrate", help="Derive calibration offsets")
    calibrate_parser.add_argument("--samples", type=Path, required=True, help="Sample JSON file")
    calibrate_parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help=f"Offset table (default: {settings.calibration.offsets_path})",
    )

    show_parser = subparsers.add_parser("show", help="Print the stored aggregate of a show")
    show_parser.add_argument("show_id", help="Production identifier")

    audit_parser = subparsers.add_parser("audit", help="Audit every stored review")
    audit_parser.add_argument("--output", type=Path, default=None, help="Audit report JSON file")

    return parser


# =============================================================================
# COMMAND HANDLERS
# =============================================================================


async def _run_batch(args: argparse.Namespace, batch: ReviewBatch) -> PipelineResult:
    """Run one batch, export its results, and close oracle clients."""
    pipeline = ReviewPipeline.from_settings(max_workers=args.max_workers)
    try:
        result = await pipeline.run(batch, BatchJob())
    finally:
        await pipeline.aclose()

    if args.export:
        pipeline.aggregator.export_json(result.aggregates, args.export)
    if args.audit:
        result.audit.export_json(args.audit)
    return result


def _handle_run(args: argparse.Namespace) -> None:
    """Handle run command.

    Args:
        args: Parsed arguments with input and export paths.
    """
    batch = load_batch(args.input)
    result = asyncio.run(_run_batch(args, batch))

    for show_id, error in result.failures.items():
        print(f"❌ {show_id}: {error}", file=sys.stderr)
    print(
        f"✅ {result.stats.shows_written}/{result.stats.shows_total} shows written, "
        f"{len(result.rejections)} reviews rejected"
    )


def _handle_calibrate(args: argparse.Namespace) -> None:
    """Handle calibrate command.

    Args:
        args: Parsed arguments with samples and output paths.
    """
    _, report = CalibrationJob().run(args.samples, args.output)
    print(f"✅ Calibration: {report.count} samples, MAE {report.mae}, bias {report.mean_bias:+}")


def _handle_show(args: argparse.Namespace) -> None:
    """Handle show command.

    Args:
        args: Parsed arguments with the show id.
    """
    aggregate = ReviewStore().get_aggregate(args.show_id)
    if aggregate is None:
        print(f"❌ Unknown show: {args.show_id}", file=sys.stderr)
        sys.exit(1)
    print(aggregate.model_dump_json(indent=2))


def _handle_audit(args: argparse.Namespace) -> None:
    """Handle audit command.

    Args:
        args: Parsed arguments with the output path.
    """
    report = build_audit_report(ReviewStore().load_all_reviews())
    report.log_summary()
    output_path = args.output or settings.paths.processed_dir / AUDIT_FILENAME
    report.export_json(output_path)
    print(f"✅ {len(report.flagged)}/{len(report.entries)} reviews flagged -> {output_path}")


def _handle_fatal_error(error: Exception) -> None:
    """Handle fatal pipeline error.

    Args:
        error: Exception that caused the failure.
    """
    print(f"\n❌ FATAL ERROR: {error}", file=sys.stderr)
    traceback.print_exc()
    logger.error("Command failed: %s", error)
    sys.exit(1)


# =============================================================================
# COMMAND DISPATCH
# =============================================================================

_HANDLERS = {
    "run": _handle_run,
    "calibrate": _handle_calibrate,
    "show": _handle_show,
    "audit": _handle_audit,
}


def _execute_cli_command(args: argparse.Namespace) -> None:
    """Execute CLI command based on arguments.

    Args:
        args: Parsed command line arguments.
    """
    _HANDLERS[args.command](args)


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the review pipeline.

    Args:
        argv: Arguments (default: sys.argv).
    """
    parser = _build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        sys.exit(1)

    setup_logger("src")

    try:
        _execute_cli_command(args)
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        sys.exit(130)
    except Exception as e:
        _handle_fatal_error(e)


if __name__ == "__main__":
    main()
