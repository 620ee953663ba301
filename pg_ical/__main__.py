"""Command-line entry for pg_ical.

Parses an iCalendar file and prints its rows (or the whole component tree)
as JSON on stdout. Diagnostics go to the log on stderr.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from .calendar.parser import ICalParser
from .core.settings import load_settings
from .exceptions import ICalError
from .ical_logging import configure_logging
from .rows import project_rows

logger = logging.getLogger(__name__)


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for pg_ical CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="pg_ical",
        description="Parse an iCalendar file into typed rows",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m pg_ical calendar.ics              # Print one JSON row per event/todo/journal
  python -m pg_ical calendar.ics --strict     # Fail on the first malformed line or value
  python -m pg_ical - --tree < calendar.ics   # Print the component tree from stdin
        """,
    )
    parser.add_argument("path", help="iCalendar file to parse, or '-' for stdin")
    parser.add_argument(
        "--strict",
        action="store_true",
        default=None,
        help="Treat malformed lines and invalid values as fatal (default: PGICAL_STRICT or lenient)",
    )
    parser.add_argument("--tree", action="store_true", help="Print the component tree instead of rows")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Run the pg_ical CLI.

    Returns:
        Process exit status
    """
    args = _create_parser().parse_args(argv)
    settings = load_settings(strict=args.strict, debug=args.debug or None)
    configure_logging(debug_mode=settings.debug, log_level=settings.log_level)

    parser = ICalParser(settings)
    try:
        if args.path == "-":
            result = parser.parse(sys.stdin.buffer, source_name="<stdin>")
        else:
            with Path(args.path).open("rb") as f:
                result = parser.parse(f, source_name=args.path)
    except ICalError as e:
        print(f"pg_ical: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"pg_ical: cannot read {args.path}: {e}", file=sys.stderr)
        return 2

    if args.tree:
        print(result.calendar.model_dump_json(indent=2))
    else:
        for row in project_rows(result.calendar):
            print(json.dumps(row.as_record()))

    if result.diagnostics:
        logger.info("%d diagnostics recorded", len(result.diagnostics))
    return 0


if __name__ == "__main__":
    sys.exit(main())
