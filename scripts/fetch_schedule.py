"""Get your Aurion timetable as JSON or a table.

Logs in with the credentials from .env (AURION_USER / AURION_PASS), fetches
the schedule for the requested range, and prints it to stdout.

Run with: python scripts/fetch_schedule.py
Table:    python scripts/fetch_schedule.py --table
Range:    python scripts/fetch_schedule.py --from 2024-09-16 --to 2024-09-22
Menu:     python scripts/fetch_schedule.py --menu [submenu_299102]
Groups:   python scripts/fetch_schedule.py --groups 1_4

Exit codes:
  0 = success (JSON or table on stdout)
  1 = error (message on stderr)
  2 = invalid credentials
"""

import argparse
import json
import sys
from datetime import date, datetime, time, timedelta

from dotenv import load_dotenv

from webaurion import AurionClient, DateRange, InvalidCredentialsError, ScheduleEvent
from webaurion.config import get_config
from webaurion.errors import AurionError
from webaurion.logging import setup_logging

load_dotenv()


def _log(msg: str) -> None:
    """Write diagnostic messages to stderr so stdout stays clean for JSON."""
    print(msg, file=sys.stderr)


def _parse_args() -> argparse.Namespace:
    """Parse CLI arguments using argparse."""
    parser = argparse.ArgumentParser(
        description="Get your Aurion timetable as JSON or table.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--url",
        type=str,
        default=None,
        help="Aurion service URL (default: AURION_URL).",
    )
    parser.add_argument(
        "--from",
        dest="start",
        type=date.fromisoformat,
        default=None,
        help="First day to fetch, YYYY-MM-DD (default: Monday of this week).",
    )
    parser.add_argument(
        "--to",
        dest="end",
        type=date.fromisoformat,
        default=None,
        help="Last day to fetch, YYYY-MM-DD (default: 6 days after --from).",
    )

    output_group = parser.add_mutually_exclusive_group()
    output_group.add_argument(
        "--table",
        action="store_true",
        help="Output a human-readable table instead of JSON.",
    )
    output_group.add_argument(
        "--menu",
        type=str,
        nargs="?",
        const="",
        metavar="SUBMENU_ID",
        help="List the children of a sidebar submenu as JSON (default: AURION_GROUPS_PLANNING_ID).",
    )
    output_group.add_argument(
        "--groups",
        type=str,
        metavar="MENU_ID",
        help="List the class groups behind a group planning menu entry as JSON.",
    )
    return parser.parse_args()


def _week_range(start: date | None, end: date | None) -> DateRange:
    """Whole days from `start` to `end`; defaults to the current Mon-Sun week."""
    if start is None:
        today = date.today()
        start = today - timedelta(days=today.weekday())
    if end is None:
        end = start + timedelta(days=6)
    return DateRange(
        start=datetime.combine(start, time.min),
        end=datetime.combine(end, time(23, 59, 59)),
    )


def _format_table(events: list[ScheduleEvent]) -> str:
    """Format events as a human-readable table.

    Columns: Date | Time | Subject | Kind | Room | Teacher
    """
    if not events:
        return "(no events scheduled)"

    headers = ["Date", "Time", "Subject", "Kind", "Room", "Teacher"]

    rows = []
    for e in events:
        rows.append(
            [
                e.start.strftime("%a %d/%m"),
                f"{e.start:%H:%M}-{e.end:%H:%M}",
                e.subject,
                e.kind.value,
                e.location or "-",
                e.instructor or "-",
            ]
        )

    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    header_line = " | ".join(h.ljust(widths[i]) for i, h in enumerate(headers))
    separator = "-+-".join("-" * w for w in widths)
    row_lines = [" | ".join(cell.ljust(widths[i]) for i, cell in enumerate(row)) for row in rows]

    return "\n".join([header_line, separator, *row_lines])


def main(args: argparse.Namespace) -> int:
    config = get_config()
    setup_logging(json_output=config.log_json, log_level=config.log_level)

    if not config.aurion_user or not config.aurion_pass:
        _log("ERROR: AURION_USER and AURION_PASS must be set (environment or .env)")
        return 1

    client = AurionClient(args.url, config=config)
    _log(f"fetch_schedule: logging in to {client.base_url} as {config.aurion_user}")

    try:
        session = client.login(config.aurion_user, config.aurion_pass)
    except InvalidCredentialsError as e:
        _log(f"ERROR: {e}")
        return 2

    try:
        if args.menu is not None:
            nodes = client.get_menu_children(session, args.menu or None)
            print(json.dumps([n.model_dump(mode="json") for n in nodes], indent=2, ensure_ascii=False))
        elif args.groups:
            groups = client.get_class_groups(session, args.groups)
            print(json.dumps([g.model_dump(mode="json") for g in groups], indent=2, ensure_ascii=False))
        else:
            schedule = client.get_schedule(session, _week_range(args.start, args.end))
            _log(f"  Fetched {len(schedule)} events")
            if args.table:
                print(_format_table(schedule.events))
            else:
                print(schedule.model_dump_json(indent=2))
    finally:
        try:
            client.logout(session)
        except AurionError as e:
            _log(f"WARNING: logout failed: {e}")

    _log("fetch_schedule: done")
    return 0


if __name__ == "__main__":
    args = _parse_args()
    try:
        sys.exit(main(args))
    except AurionError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)
