"""Fetch prayer times from Aladhan-compatible calculation services."""

import datetime
import logging

import requests

from src.config import ALADHAN_BASE, DEFAULT_TIMEZONE, METHOD_KARACHI
from src.errors import RemoteError, RemoteUnavailable
from src.formatting import normalize_time
from src.models import PRAYER_NAMES, Location, PrayerTimeSet

logger = logging.getLogger(__name__)

# Per-prayer minute tuning sent to the service: Imsak, Fajr, Sunrise, Dhuhr,
# Asr, Maghrib, Sunset, Isha, Midnight. All zero so the service's own tuning
# never stacks with local corrections.
ZERO_ADJUSTMENTS = ",".join(["0"] * 9)


def fetch_prayer_times(
    lat: float,
    lon: float,
    date: datetime.date,
    method: int = METHOD_KARACHI,
    school: int = 0,
    base_url: str = ALADHAN_BASE,
    timezone: str = DEFAULT_TIMEZONE,
    timeout: float = 10,
) -> dict:
    """
    Fetch the five prayer times for given coordinates and date.

    Returns a dict with:
        timings: {prayer_name: "HH:MM"} for Fajr, Dhuhr, Asr, Maghrib, Isha
        date: human-readable date label from the service
    Raises requests.RequestException, KeyError or ValueError on failure.
    """
    params = {
        "latitude": lat,
        "longitude": lon,
        "date": date.isoformat(),
        "method": method,
        "school": school,
        "tune": ZERO_ADJUSTMENTS,
        "midnightMode": 0,
        "timezonestring": timezone,
    }
    resp = requests.get(f"{base_url}/timings", params=params, timeout=timeout)
    resp.raise_for_status()
    body = resp.json()
    if body.get("code") != 200:
        raise ValueError(f"Aladhan API error: {body.get('status')}")

    data = body["data"]
    raw_timings = data["timings"]
    timings = {name: normalize_time(raw_timings[name]) for name in PRAYER_NAMES}
    return {"timings": timings, "date": data["date"]["readable"]}


class AladhanResolver:
    """One remote calculation service configured for one juristic method."""

    def __init__(
        self,
        name: str,
        method: int,
        school: int = 0,
        base_url: str = ALADHAN_BASE,
        timezone: str = DEFAULT_TIMEZONE,
        timeout: float = 10,
    ):
        self.name = name
        self.method = method
        self.school = school
        self.base_url = base_url
        self.timezone = timezone
        self.timeout = timeout

    def resolve(self, location: Location, date: datetime.date) -> PrayerTimeSet:
        try:
            result = fetch_prayer_times(
                location.lat,
                location.lng,
                date,
                method=self.method,
                school=self.school,
                base_url=self.base_url,
                timezone=self.timezone,
                timeout=self.timeout,
            )
        except (requests.RequestException, AttributeError, KeyError, TypeError, ValueError) as e:
            raise RemoteError(f"{self.name} service failed for {location.name}: {type(e).__name__}: {e}") from e
        return PrayerTimeSet(date=result["date"], source=self.name, **result["timings"])

    def __repr__(self):
        return f"AladhanResolver(name={self.name!r}, method={self.method}, base_url={self.base_url!r})"


def resolve_remote(location: Location, date: datetime.date, resolvers: list) -> PrayerTimeSet:
    """
    Try each resolver in order and return the first result.

    Raises RemoteUnavailable carrying every resolver's error when all fail.
    """
    errors = []
    for resolver in resolvers:
        try:
            result = resolver.resolve(location, date)
        except RemoteError as e:
            logger.warning(str(e))
            errors.append(e)
            continue
        if errors:
            logger.info(f"Using {resolver.name} service for {location.name} after {len(errors)} failure(s)")
        return result
    raise RemoteUnavailable(errors)


class RemoteResolverChain:
    """Producer that walks an ordered list of remote resolvers."""

    name = "remote"

    def __init__(self, resolvers: list):
        self.resolvers = list(resolvers)

    def resolve(self, location: Location, date: datetime.date) -> PrayerTimeSet:
        return resolve_remote(location, date, self.resolvers)


def build_default_chain(settings) -> RemoteResolverChain:
    """Primary Karachi-method service, then the ISNA-method fallback."""
    return RemoteResolverChain([
        AladhanResolver(
            "primary",
            method=settings.primary_method,
            school=settings.school,
            base_url=settings.primary_url,
            timezone=settings.timezone,
            timeout=settings.request_timeout,
        ),
        AladhanResolver(
            "fallback",
            method=settings.fallback_method,
            school=settings.school,
            base_url=settings.fallback_url,
            timezone=settings.timezone,
            timeout=settings.request_timeout,
        ),
    ])
