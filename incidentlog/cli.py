"""
incidentlog/cli.py
Command-line entry points for the incident log.

USAGE:
  incidentlog-record --source zima-01 --type network --summary "WiFi restored"
  incidentlog-record --source zima-01 --type boot --summary "GRUB fixed" --details-file grub.log
  ./wifi-rescue.sh 2>&1 | incidentlog-record -s zima-01 -t network -m "Rescue run" --details-file -
  incidentlog-dashboard
  incidentlog-dashboard --db /srv/log/incidents.db --output /var/www/incidents/index.html

EXIT STATUS:
  0  success (record id printed on stdout / dashboard written)
  1  validation error — a required field is empty or out of bounds
  2  usage error — missing or unknown arguments
  3  storage error — database or output file cannot be opened, read or written
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from incidentlog.config import DEFAULT_TITLE, load_config, resolve_path
from incidentlog.dashboard_html import generate_dashboard
from incidentlog.errors import StorageError, ValidationError
from incidentlog.writer import read_details, record_incident

logger = logging.getLogger(__name__)

EXIT_OK         = 0
EXIT_VALIDATION = 1
EXIT_STORAGE    = 3

RED    = '\033[91m'
RESET  = '\033[0m'


def _setup_logging(verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level   = log_level,
        format  = '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt = '%H:%M:%S',
    )


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        '--db',
        type    = Path,
        default = None,
        help    = 'SQLite incident database; relative to --project-root (default: db_path from config)',
    )
    parser.add_argument(
        '--project-root',
        type    = Path,
        default = None,
        help    = 'Directory holding incidentlog_config.json and relative paths (default: cwd)',
    )
    parser.add_argument(
        '--verbose', '-v',
        action  = 'store_true',
        help    = 'Enable debug logging on stderr',
    )


# ── RECORD WRITER ────────────────────────────────────────────

def record_main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog        = 'incidentlog-record',
        description = 'Append one incident record and print its id',
        formatter_class = argparse.RawDescriptionHelpFormatter,
        epilog = """
Records are append-only. Captured script output can be attached with
--details-file PATH, or piped in with --details-file -.
        """
    )
    parser.add_argument(
        '--source', '-s',
        required = True,
        help     = 'Device or session label, e.g. zima-01',
    )
    parser.add_argument(
        '--type', '-t',
        required = True,
        help     = 'Category, e.g. network, boot, ssh',
    )
    parser.add_argument(
        '--summary', '-m',
        required = True,
        help     = 'One-line description (max 200 characters)',
    )
    details = parser.add_mutually_exclusive_group()
    details.add_argument(
        '--details', '-d',
        default = None,
        help    = 'Long-form details text',
    )
    details.add_argument(
        '--details-file',
        default = None,
        metavar = 'PATH',
        help    = 'Read details from a file, or from stdin when PATH is -',
    )
    _add_common_arguments(parser)

    args = parser.parse_args(argv)
    _setup_logging(args.verbose)

    config  = load_config(args.project_root)
    db_path = resolve_path(config, 'db_path', args.project_root, override=args.db)

    try:
        details_text = read_details(text=args.details, path=args.details_file)
    except OSError as e:
        _error(f"Cannot read details file {args.details_file}: {e}")
        return EXIT_VALIDATION

    try:
        record = record_incident(
            source            = args.source,
            type              = args.type,
            summary           = args.summary,
            details           = details_text,
            db_path           = db_path,
            details_max_chars = config['details_max_chars'],
        )
    except ValidationError as e:
        _error(f"Invalid record: {e}")
        return EXIT_VALIDATION
    except StorageError as e:
        _error(str(e))
        return EXIT_STORAGE

    print(record.id)
    return EXIT_OK


# ── DASHBOARD GENERATOR ──────────────────────────────────────

def dashboard_main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog        = 'incidentlog-dashboard',
        description = 'Render every incident record into a static HTML dashboard',
    )
    parser.add_argument(
        '--output', '-o',
        type    = Path,
        default = None,
        help    = 'Output HTML file; relative to --project-root (default: output_path from config)',
    )
    parser.add_argument(
        '--title',
        default = None,
        help    = 'Page title (default: dashboard_title from config)',
    )
    _add_common_arguments(parser)

    args = parser.parse_args(argv)
    _setup_logging(args.verbose)

    config      = load_config(args.project_root)
    db_path     = resolve_path(config, 'db_path', args.project_root, override=args.db)
    output_path = resolve_path(config, 'output_path', args.project_root, override=args.output)
    title       = args.title or config.get('dashboard_title') or DEFAULT_TITLE

    try:
        written = generate_dashboard(db_path=db_path, output_path=output_path, title=title)
    except StorageError as e:
        _error(str(e))
        return EXIT_STORAGE

    print(written)
    return EXIT_OK


# ── PRINT HELPERS ────────────────────────────────────────────

def _error(msg: str) -> None:
    color = sys.stderr.isatty()
    prefix = f"{RED}error:{RESET}" if color else "error:"
    print(f"{prefix} {msg}", file=sys.stderr)


def run_record() -> None:
    sys.exit(record_main())


def run_dashboard() -> None:
    sys.exit(dashboard_main())


if __name__ == '__main__':
    run_record()
