#!/usr/bin/env python3
"""
Prayer Time command-line tool.

Prints the five daily prayer times for a city in the location registry:
  - 12-hour display (or 24-hour with --24h)
  - countdown to the next prayer when showing today
  - daily sync of every known city on start-up
  - --add NAME LAT LNG to save an extra city for later runs
"""

import argparse
import datetime
import logging
import sys

import pytz

from src.config import load_settings
from src.errors import PrayerTimeError
from src.formatting import format_prayer_times, get_next_prayer, is_ordered
from src.location import save_custom_location
from src.models import PRAYER_NAMES, Location
from src.service import PrayerTimeService

logger = logging.getLogger("prayertime")


def _fmt_countdown(seconds: int) -> str:
    """Format seconds into HH:MM:SS countdown string."""
    if seconds < 0:
        return "00:00:00"
    h = seconds // 3600
    m = (seconds % 3600) // 60
    s = seconds % 60
    return f"{h:02d}:{m:02d}:{s:02d}"


def _parse_date(value: str) -> datetime.date:
    try:
        return datetime.date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date '{value}', expected YYYY-MM-DD")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Show daily prayer times for a city.")
    parser.add_argument("city", nargs="?", help="city name from the location registry")
    parser.add_argument("--date", type=_parse_date, help="date as YYYY-MM-DD (default: today)")
    parser.add_argument("--days", type=int, default=1, help="number of consecutive days to show")
    parser.add_argument("--24h", dest="clock24", action="store_true", help="show 24-hour times")
    parser.add_argument("--list", action="store_true", help="list known cities and exit")
    parser.add_argument(
        "--add", nargs=3, metavar=("NAME", "LAT", "LNG"), help="save a city to the user locations file and exit"
    )
    parser.add_argument("--no-sync", action="store_true", help="skip the daily sync of all cities")
    parser.add_argument("--config", help="path to a JSON config file")
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true")
    verbosity.add_argument("-q", "--quiet", action="store_true")
    return parser


def print_times(times, clock24: bool) -> None:
    shown = times.timings() if clock24 else format_prayer_times(times)
    print(times.date)
    for name in PRAYER_NAMES:
        print(f"  {name:<8} {shown[name]}")
    if not is_ordered(times):
        print("  (times are not in the usual order at this latitude)")


def add_location(values, path) -> int:
    name, lat, lng = values
    try:
        location = Location(name.strip(), float(lat), float(lng))
    except ValueError:
        print(f"error: invalid coordinates '{lat}', '{lng}'", file=sys.stderr)
        return 2
    if not location.name or not -90 <= location.lat <= 90 or not -180 <= location.lng <= 180:
        print(f"error: invalid location {name!r} ({lat}, {lng})", file=sys.stderr)
        return 2
    try:
        save_custom_location(location, path)
    except OSError as e:
        print(f"error: could not save location: {e}", file=sys.stderr)
        return 1
    print(f"Added {location.name} ({location.lat}, {location.lng})")
    return 0


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.ERROR if args.quiet else logging.WARNING
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    settings = load_settings(args.config)
    if args.add:
        return add_location(args.add, settings.locations_file)

    service = PrayerTimeService(settings, sync_on_request=False)

    if args.list:
        for name in service.registry.names():
            print(name)
        return 0
    if not args.city:
        print("error: a city name is required (see --list)", file=sys.stderr)
        return 2

    if not args.no_sync:
        service.check_and_sync(service.today())

    start = args.date or service.today()
    try:
        if args.days > 1:
            end = start + datetime.timedelta(days=args.days - 1)
            days = service.fetch_prayer_times_range(args.city, start, end)
        else:
            days = [service.get_prayer_times(args.city, start)]
    except PrayerTimeError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    print(f"Prayer times for {service.registry.get(args.city).name}")
    for times in days:
        print_times(times, args.clock24)

    if start == service.today() and days:
        now = datetime.datetime.now(pytz.timezone(settings.timezone))
        name, prayer_dt = get_next_prayer(days[0], now)
        if name:
            remaining = int((prayer_dt - now).total_seconds())
            print(f"Next: {name} in {_fmt_countdown(remaining)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
