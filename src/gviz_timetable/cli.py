"""Command-line front-end for the timetable.

Run with: gviz-timetable fetch --day today
Table:    gviz-timetable fetch --day 2 --table
Search:   gviz-timetable search BCS-1G --day all
Rooms:    gviz-timetable free-rooms --day 0 --start 9:00 --end 11:00
Free:     gviz-timetable free E-31
Serve:    gviz-timetable serve --port 8000

Configuration comes from the environment / .env (SHEET_ID, SHEET_DAY_GIDS, ...).

Exit codes:
  0 = success (JSON or table on stdout)
  1 = error (message on stderr)
"""

import argparse
import asyncio
import json
import sys

import uvicorn
from dotenv import load_dotenv
from pydantic import ValidationError
from pydantic_settings import SettingsError

from gviz_timetable.api import create_app
from gviz_timetable.config import TimetableConfig, load_config
from gviz_timetable.logging import get_logger, setup_logging
from gviz_timetable.models import DayFetchResult, ErrorResult
from gviz_timetable.service import ALL_DAYS, TimetableService

log = get_logger(__name__)


def _log(msg: str) -> None:
    """Write diagnostic messages to stderr so stdout stays clean for JSON."""
    print(msg, file=sys.stderr)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="gviz-timetable",
        description="Classroom timetable from a published Google Sheet.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    fetch = sub.add_parser("fetch", help="Fetch one day (0-4, today) or the whole week (all).")
    fetch.add_argument("--day", default="today", help="Day selector (default: today).")
    fetch.add_argument(
        "--table",
        action="store_true",
        help="Output a room x time table instead of JSON (single day only).",
    )

    search = sub.add_parser("search", help="Search class codes, titles and room names.")
    search.add_argument("query")
    search.add_argument("--day", default=ALL_DAYS, help="Day selector (default: all).")

    rooms = sub.add_parser("free-rooms", help="Rooms free during a time range.")
    rooms.add_argument("--day", default="today", help="Day selector (default: today).")
    rooms.add_argument("--start", required=True, help="Range start, e.g. 9:00.")
    rooms.add_argument("--end", required=True, help="Range end (exclusive), e.g. 11:00.")

    free = sub.add_parser("free", help="Free time ranges for a room id or a class.")
    free.add_argument("query")
    free.add_argument("--day", default=ALL_DAYS, help="Day selector (default: all).")

    serve = sub.add_parser("serve", help="Run the HTTP API.")
    serve.add_argument("--host", default=None, help="Bind address (default: API_HOST).")
    serve.add_argument("--port", type=int, default=None, help="Port (default: API_PORT).")

    return parser.parse_args(argv)


def format_day_table(result: DayFetchResult) -> str:
    """Format a day as a human-readable table.

    Columns: Room | one column per time header
    """
    headers = ["Room", *result.data.time_headers]
    rows = [
        [room["name"], *(cell or "-" for cell in room["schedule"])]
        for room in result.data.classrooms_simple
    ]
    if not rows:
        return "(no classrooms)"

    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    header_line = " | ".join(h.ljust(widths[i]) for i, h in enumerate(headers))
    separator = "-+-".join("-" * w for w in widths)
    row_lines = [" | ".join(cell.ljust(widths[i]) for i, cell in enumerate(row)) for row in rows]
    return "\n".join([header_line, separator, *row_lines])


async def _run(args: argparse.Namespace, service: TimetableService):
    if args.command == "fetch":
        return await service.fetch_day(args.day)
    if args.command == "search":
        return await service.search(args.query, args.day)

    # Free-time lookups work on loaded data, so load the week first
    week = await service.fetch_week()
    _log(f"  Loaded {len(week.week)} day(s): {', '.join(week.week) or 'none'}")
    if args.command == "free-rooms":
        return service.free_rooms(args.day, args.start, args.end)
    return service.free_ranges(args.query, args.day)


async def _main(args: argparse.Namespace, config: TimetableConfig) -> int:
    service = TimetableService(config)
    try:
        result = await _run(args, service)
    finally:
        await service.aclose()

    if isinstance(result, ErrorResult):
        _log(f"ERROR: {result.error}")
        return 1
    if getattr(args, "table", False) and isinstance(result, DayFetchResult):
        print(format_day_table(result))
    else:
        print(json.dumps(result.model_dump(mode="json"), indent=2, ensure_ascii=False))
    return 0


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    args = _parse_args(argv)
    try:
        config = load_config()
    except (ValidationError, SettingsError) as e:
        _log(f"ERROR: invalid configuration: {e}")
        return 1
    setup_logging(json_output=config.log_json, log_level=config.log_level)

    if args.command == "serve":
        host = args.host or config.api_host
        port = args.port or config.api_port
        log.info("api_starting", host=host, port=port)
        uvicorn.run(create_app(config=config), host=host, port=port)
        return 0

    try:
        return asyncio.run(_main(args, config))
    except Exception as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
