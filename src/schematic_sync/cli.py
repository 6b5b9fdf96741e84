"""Command-line entry point: one synchronisation run, then exit."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from . import __version__
from .config import Config, load_config
from .config_loader import discover_config_files, load_hierarchical_config
from .config_schema import UnifiedConfig, build_config, to_fallbacks
from .errors import (
    EXIT_INTERRUPTED,
    EXIT_OK,
    EXIT_RECORD_FAILURES,
    SchematicSyncError,
)
from .logger import setup_logging
from .pipeline import build_current
from .sync import (
    Reconciler,
    SyncReport,
    format_sync_report,
    read_snapshot,
    report_to_json,
)

logger = logging.getLogger(__name__)


async def run_sync_once(config: Config) -> SyncReport:
    """Build the current collection, read the last one, and reconcile.

    Raises:
        SchematicSyncError: If the current collection cannot be built.
    """
    parsed = await build_current(config)

    output_dir = Path(config.output_dir).resolve()
    last = await read_snapshot(
        output_dir, config.suffix, config.max_parallel_io
    )

    reconciler = Reconciler(
        output_dir, config.suffix, max_parallel=config.max_parallel_io
    )
    return await reconciler.run(
        parsed.collection,
        last,
        dry_run=config.dry_run,
        rejected=parsed.rejected,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="schematic-sync",
        description="Synchronise a schematic directory with the shared spreadsheet",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Export the document and update ./schematics
  SCHEMATIC_SYNC_COOKIES='...' schematic-sync

  # Work from a previously downloaded workbook
  schematic-sync --local-file "archive.xlsx"

  # Preview changes only
  schematic-sync --local-file "archive.xlsx" --dry-run

Exit codes: 0 ok, 1 some schematics failed, 2 configuration error,
3 export or workbook error.
        """,
    )
    parser.add_argument(
        "--output-dir",
        help="Output root directory (default: ./schematics)",
    )
    parser.add_argument(
        "--local-file",
        help="Read this .xlsx workbook instead of exporting the document",
    )
    parser.add_argument(
        "--save-workbook",
        help="Keep a copy of the exported workbook at this path",
    )
    parser.add_argument("--sheet", help="Name of the schematic sheet")
    parser.add_argument("--doc-id", help="Document id to export")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would change without touching the output tree",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the report as JSON",
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )
    parser.add_argument("--log-file", help="Also append logs to this file")
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        help="Log record format (default: text)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"schematic-sync version {__version__}",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, run once, print the report, return the exit code."""
    args = build_parser().parse_args(argv)

    # .env first so ${VAR} interpolation in YAML can use its values
    load_dotenv()

    unified = UnifiedConfig()
    try:
        if discover_config_files():
            unified = build_config(load_hierarchical_config())
    except SchematicSyncError as exc:
        setup_logging(debug=args.debug)
        logger.error("%s", exc)
        return exc.exit_code

    setup_logging(
        debug=args.debug or unified.debug,
        log_file=args.log_file or unified.logging.file,
        log_format=args.log_format or unified.logging.format,
        level=unified.logging.level,
    )

    try:
        config = load_config(
            output_dir=args.output_dir,
            local_file=args.local_file,
            save_workbook=args.save_workbook,
            sheet_name=args.sheet,
            doc_id=args.doc_id,
            dry_run=args.dry_run,
            debug=args.debug,
            yaml_fallbacks=to_fallbacks(unified),
        )
        if config.debug:
            logging.getLogger().setLevel(logging.DEBUG)
        report = asyncio.run(run_sync_once(config))
    except SchematicSyncError as exc:
        logger.error("%s", exc)
        return exc.exit_code
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return EXIT_INTERRUPTED

    if args.json:
        print(json.dumps(report_to_json(report), indent=2, ensure_ascii=False))
    else:
        print(format_sync_report(report))

    if report.errors:
        logger.error("%d schematics failed", len(report.errors))
        return EXIT_RECORD_FAILURES
    return EXIT_OK


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
