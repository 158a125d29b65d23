"""Display formatting and sanity checks for "HH:MM" prayer times."""

import datetime
import re

from src.models import PRAYER_NAMES, PrayerTimeSet

_TIME_RE = re.compile(r"^\s*(\d{1,2}):(\d{1,2})(?::\d{1,2})?")


def normalize_time(raw: str) -> str:
    """
    Reduce "HH:MM", "H:MM", "HH:MM:SS" or "HH:MM (PKT)" to "HH:MM".

    Raises ValueError when the value is not a valid 24-hour time.
    """
    match = _TIME_RE.match(raw or "")
    if not match:
        raise ValueError(f"Malformed time value: {raw!r}")
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise ValueError(f"Time out of range: {raw!r}")
    return f"{hour:02d}:{minute:02d}"


def time_to_minutes(time_str: str) -> int:
    """Minutes since midnight for an "HH:MM" string."""
    hour, minute = map(int, time_str.split(":")[:2])
    return hour * 60 + minute


def format_to_12_hour(time24: str) -> str:
    """
    Convert "HH:MM" (24-hour) to "HH:MM AM/PM".

    Hour 0 is shown as 12 AM and any hour from 12 onwards is PM. Out-of-range
    hours and minutes are clamped. Unparseable input is returned unchanged.
    """
    if not time24 or time24 == "N/A":
        return "N/A"
    try:
        parts = time24.split(":")
        hours = int(parts[0])
        minutes = int(parts[1][:2])
    except (IndexError, ValueError):
        return time24

    hours = max(0, min(23, hours))
    minutes = max(0, min(59, minutes))
    hour12 = 12 if hours == 0 else hours - 12 if hours > 12 else hours
    ampm = "PM" if hours >= 12 else "AM"
    return f"{hour12:02d}:{minutes:02d} {ampm}"


def format_prayer_times(times: PrayerTimeSet) -> dict:
    """Return {prayer_name: "HH:MM AM/PM"} plus the date label."""
    formatted = {name: format_to_12_hour(value) for name, value in times.timings().items()}
    # Asr, Maghrib and Isha always fall after noon
    for name in ("Asr", "Maghrib", "Isha"):
        if formatted[name].endswith(" AM"):
            formatted[name] = formatted[name][:-3] + " PM"
    formatted["date"] = times.date
    return formatted


def is_ordered(times: PrayerTimeSet) -> bool:
    """True when Fajr < Dhuhr < Asr < Maghrib < Isha on one clock face."""
    minutes = [time_to_minutes(v) for v in times.timings().values()]
    return all(a < b for a, b in zip(minutes, minutes[1:]))


def get_next_prayer(times: PrayerTimeSet, now: datetime.datetime) -> tuple:
    """
    Return (prayer_name, prayer_datetime) of the next prayer after `now` on
    the same day, keeping now's tzinfo. Returns (None, None) after Isha.
    """
    for name in PRAYER_NAMES:
        hour, minute = map(int, getattr(times, name).split(":"))
        prayer_dt = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
        if prayer_dt > now:
            return name, prayer_dt
    return None, None
