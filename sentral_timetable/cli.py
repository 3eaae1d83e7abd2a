"""
Command-line interface: show the next school day's timetable and what
changed compared to the previous school day.
"""
from __future__ import annotations

import argparse
import getpass
import sys
from datetime import date
from pathlib import Path
from typing import List, Optional, Tuple

from pydantic import ValidationError
from pydantic_settings import SettingsError

from . import __version__
from .config import TimetableConfig, get_config, local_today
from .diff import diff_days
from .errors import TimetableError
from .export import export
from .logging import get_logger, setup_logging
from .models import Day
from .portal_fetch import PortalClient, extract_with_fallback, fetch_comparison
from .timetable_html import extract_day

log = get_logger(__name__)


def _parse_date(text: str) -> date:
    try:
        return date.fromisoformat(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a YYYY-MM-DD date: {text!r}")


def _read_html(path: str) -> str:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"HTML file not found: {p}")
    return p.read_text(encoding="utf-8", errors="ignore")


def format_report(next_day: Day, previous_day: Day) -> str:
    """Render the next day's classes and the subject changes as text."""
    lines: List[str] = [f"Timetable for {next_day.date} ({next_day.weekday})"]
    for p in next_day.scheduled:
        lines.append(
            f"{p.period_number:<2} - {p.subject:<25} {p.class_id:<10} "
            f"in {p.classroom:<4} with {p.teacher}"
        )

    diff = diff_days(next_day, previous_day)
    lines.append("")
    lines.append(
        f"In comparison to previous timetable {previous_day.date} ({previous_day.weekday})"
    )
    lines.extend(f" + {p.subject}" for p in diff.added)
    lines.extend(f" - {p.subject}" for p in diff.removed)
    if diff.is_empty:
        lines.append(" (no subject changes)")
    return "\n".join(lines)


def _fetch_days(args, config: TimetableConfig, today: date) -> Tuple[Day, Day]:
    username = args.username or config.username
    if not username:
        raise TimetableError(
            "No portal username. Use --username or set SENTRAL_USERNAME."
        )
    password = config.password or getpass.getpass(f"Password for {username}: ")

    client = PortalClient(
        config.portal_url,
        timeout=config.request_timeout,
        retry_attempts=config.retry_attempts,
    )
    print("Authenticating...", file=sys.stderr)
    client.login(username, password)
    return fetch_comparison(
        client,
        today,
        next_offsets=config.next_offsets,
        previous_offsets=config.previous_offsets,
        days_per_block=config.days_per_block,
        rows_per_block=config.rows_per_block,
    )


def _read_days(args, config: TimetableConfig, today: date) -> Tuple[Day, Day]:
    html = _read_html(args.html)
    next_day = extract_day(
        html,
        config.next_offsets,
        today,
        days_per_block=config.days_per_block,
        rows_per_block=config.rows_per_block,
    )
    fallback = (lambda: _read_html(args.previous_html)) if args.previous_html else None
    previous_day = extract_with_fallback(
        html,
        config.previous_offsets,
        today,
        fallback,
        days_per_block=config.days_per_block,
        rows_per_block=config.rows_per_block,
    )
    return next_day, previous_day


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description=(
            "Show the next school day's timetable from a Sentral portal and the "
            "subjects added or dropped compared to the previous school day.\n"
            "- Fetch mode: log into the portal (SENTRAL_* settings or .env).\n"
            "- HTML mode: read a saved daily timetable page."
        ),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument(
        "--fetch",
        action="store_true",
        help="Log into the portal and fetch the daily timetable page(s).",
    )
    mode.add_argument(
        "--html",
        metavar="HTML_PATH",
        help="Use a saved daily timetable HTML file instead of logging in.",
    )
    parser.add_argument(
        "--previous-html",
        metavar="HTML_PATH",
        help="(HTML mode) Earlier daily page, used when the previous school day is not on --html.",
    )
    parser.add_argument(
        "--username",
        help="(Fetch mode) Portal username. Default: SENTRAL_USERNAME. "
        "The password is read from SENTRAL_PASSWORD or prompted for.",
    )
    parser.add_argument(
        "--today",
        metavar="YYYY-MM-DD",
        type=_parse_date,
        help="Reference date instead of today in SENTRAL_TIMEZONE.",
    )
    parser.add_argument(
        "-o",
        "--output",
        help="Also export both days to this path (extension added from --format).",
    )
    parser.add_argument(
        "-f",
        "--format",
        choices=["json", "csv", "ics"],
        default="json",
        help="Export format. Default: json",
    )
    parser.add_argument("--log-level", help="Override SENTRAL_LOG_LEVEL.")
    args = parser.parse_args(argv)

    try:
        config = get_config()
    except (ValidationError, SettingsError) as e:
        print(f"Error: invalid SENTRAL_* settings: {e}", file=sys.stderr)
        return 1
    setup_logging(json_output=config.log_json, log_level=args.log_level or config.log_level)

    today = args.today or local_today(config.timezone)
    log.debug("reference_date", today=today.isoformat(), timezone=config.timezone)

    try:
        if args.fetch:
            next_day, previous_day = _fetch_days(args, config, today)
        else:
            next_day, previous_day = _read_days(args, config, today)
    except (FileNotFoundError, TimetableError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print()
    print(format_report(next_day, previous_day))

    if args.output:
        ext = "." + args.format
        out_path = Path(args.output) if Path(args.output).suffix else Path(args.output + ext)
        export([next_day, previous_day], out_path, args.format)
        print(f"\nExported 2 day(s) to {out_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
