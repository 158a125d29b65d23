"""Hand-verified prayer times that take precedence over every other source."""

import datetime
import logging
from typing import Optional

from src.models import Location, PrayerTimeSet

logger = logging.getLogger(__name__)

# Keyed by "<location>-<YYYY-MM-DD>". Values checked against hamariweb.com.
EXACT_TIMES = {
    "Faisalabad-2025-09-06": {
        "Fajr": "04:23",
        "Dhuhr": "12:06",
        "Asr": "16:38",
        "Maghrib": "18:25",
        "Isha": "19:48",
        "date": "Saturday, September 6, 2025",
    },
}


def lookup_exact(location_name: str, date: datetime.date, table: dict = None) -> Optional[PrayerTimeSet]:
    """Return the verified PrayerTimeSet for (location, date), or None."""
    if table is None:
        table = EXACT_TIMES
    entry = table.get(f"{location_name}-{date.isoformat()}")
    if entry is None:
        return None
    return PrayerTimeSet.from_dict(dict(entry, source="override"))


class ExactOverrides:
    """Producer that only answers for dates present in the override table."""

    name = "override"

    def __init__(self, table: dict = None):
        self.table = table

    def resolve(self, location: Location, date: datetime.date) -> Optional[PrayerTimeSet]:
        result = lookup_exact(location.name, date, self.table)
        if result is not None:
            logger.info(f"Using verified times for {location.name} on {date.isoformat()}")
        return result
