"""Command-line entry point for twinsync.

Resolves configuration (CLI > environment / .env > YAML config files >
defaults), sets up logging, runs one sync and prints the report to
stdout.  Diagnostics and prompts go to stderr.

Exit status:
    0  success
    1  the run finished but at least one file failed
    2  configuration error, nothing was synchronised
    130  interrupted
"""

import argparse
import json
import logging
import sys

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from . import __version__
from .config import load_config
from .config_loader import load_hierarchical_config
from .config_schema import build_config
from .logger import setup_logging
from .sync import (
    SyncEngine,
    format_dry_run_preview,
    format_sync_report,
    report_to_json,
)
from .validators import VALID_STRATEGIES

logger = logging.getLogger(__name__)


def _yaml_fallbacks(unified) -> dict:
    """Flatten the YAML sections into ``load_config`` fallbacks."""
    fallbacks = unified.sync.model_dump(exclude_none=True)
    if unified.logging.file:
        fallbacks["log_file"] = unified.logging.file
    return fallbacks


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="twinsync",
        description="twinsync - two-way synchronisation of two local directories",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Preview what would change
  twinsync ~/work /mnt/backup/work --dry-run

  # Newest modification time wins conflicts
  twinsync ~/work /mnt/backup/work --strategy newest

  # Ignore editor swap files and the .git directory
  twinsync ~/work /mnt/backup/work --exclude '(^|/)(\\.git/|.*\\.swp$)'

Strategies:
  prompt       ask for every conflict and one-sided file (default)
  source-wins  the source tree is authoritative
  dest-wins    the destination tree is authoritative
  newest       newer modification time wins, one-sided files are copied
  keep-both    keep both versions under new names, nothing is deleted
        """,
    )
    parser.add_argument(
        "source",
        nargs="?",
        help="Source directory (or TWINSYNC_SOURCE / config file)",
    )
    parser.add_argument(
        "destination",
        nargs="?",
        help="Destination directory (or TWINSYNC_DESTINATION / config file)",
    )
    parser.add_argument(
        "-s",
        "--strategy",
        choices=VALID_STRATEGIES,
        help="Conflict strategy (default: prompt)",
    )
    parser.add_argument(
        "-n",
        "--dry-run",
        action="store_true",
        help="Report every decision without changing any file",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Also show identical files on the terminal",
    )
    parser.add_argument(
        "-e",
        "--exclude",
        help="Regular expression; matching relative paths are ignored",
    )
    parser.add_argument(
        "--log-file",
        help="Log file path (default: twinsync_<timestamp>.log)",
    )
    parser.add_argument(
        "--log-format",
        choices=("text", "json"),
        help="Log line format (default: text)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the report as JSON instead of text",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"twinsync version {__version__}",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run one sync and return the process exit status."""
    args = build_parser().parse_args(argv)

    load_dotenv()

    try:
        unified = build_config(load_hierarchical_config())
        config = load_config(
            source=args.source,
            destination=args.destination,
            strategy=args.strategy,
            dry_run=args.dry_run,
            verbose=args.verbose,
            exclude=args.exclude,
            log_file=args.log_file,
            yaml_fallbacks=_yaml_fallbacks(unified),
        )
    except (ValueError, ValidationError, OSError, yaml.YAMLError) as exc:
        print(f"twinsync: configuration error: {exc}", file=sys.stderr)
        return 2

    setup_logging(
        debug=args.debug,
        log_file=config.log_file,
        verbose=config.verbose,
        debug_format=args.log_format or unified.logging.format,
        level=unified.logging.level,
    )

    engine = SyncEngine.from_config(config)
    try:
        report = engine.run()
    except KeyboardInterrupt:
        logger.warning("Interrupted, sync incomplete")
        return 130

    if args.json:
        print(json.dumps(report_to_json(report), indent=2))
    elif report.dry_run:
        print(format_dry_run_preview(report))
        print()
        print(format_sync_report(report))
    else:
        print(format_sync_report(report))

    return 1 if report.stats.errors else 0


def run() -> None:
    """Console-script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
