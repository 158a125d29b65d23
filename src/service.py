"""Prayer time resolution: cache, producer chain and the daily sync."""

import datetime
import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor

import pytz

from src.cache import JsonFileStore, MemoryStore, PrayerTimesCache
from src.calculator import LocalCalculator
from src.config import Settings
from src.errors import PrayerTimeError, UnresolvablePrayerTimes
from src.location import LocationRegistry, build_registry
from src.models import Location, PrayerTimeSet
from src.overrides import ExactOverrides
from src.prayer_api import build_default_chain

logger = logging.getLogger(__name__)


class SyncMarker:
    """
    Last calendar date (ISO string) on which a full sync ran.

    With a path the value survives restarts; a missing file means never synced.
    A value set in this process is answered from memory, so a marker file
    that cannot be written does not trigger another sync.
    """

    def __init__(self, path: str = None):
        self.path = path
        self._value = None

    def get(self):
        if self._value is not None or self.path is None or not os.path.isfile(self.path):
            return self._value
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return f.read().strip() or None
        except OSError as e:
            logger.warning(f"Could not read sync marker {self.path}: {e}")
            return None

    def set(self, value: str) -> None:
        self._value = value
        if self.path is None:
            return
        try:
            os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                f.write(value)
        except OSError as e:
            logger.warning(f"Could not write sync marker {self.path}: {e}")


def default_producers(settings: Settings) -> list:
    """Exact overrides, then the remote chain, then the local calculator."""
    return [
        ExactOverrides(),
        build_default_chain(settings),
        LocalCalculator(settings.utc_offset_hours, settings.asr_shadow_factor),
    ]


class PrayerTimeService:
    """
    Owns the cache tiers and the sync marker for one process.

    Producers are tried in order; each exposes `name` and
    `resolve(location, date)` returning a PrayerTimeSet, returning None to
    pass, or raising PrayerTimeError.
    """

    def __init__(
        self,
        settings: Settings = None,
        registry: LocationRegistry = None,
        producers: list = None,
        cache: PrayerTimesCache = None,
        sync_marker: SyncMarker = None,
        sync_on_request: bool = True,
        today=None,
    ):
        self.settings = settings or Settings()
        self.registry = registry if registry is not None else build_registry(self.settings.locations_file)
        self.producers = producers if producers is not None else default_producers(self.settings)
        if cache is None:
            persistent = JsonFileStore(self.settings.cache_file) if self.settings.cache_file else MemoryStore()
            cache = PrayerTimesCache(MemoryStore(), persistent)
        self.cache = cache
        self.sync_marker = sync_marker or SyncMarker(self.settings.sync_marker_file)
        self.sync_on_request = sync_on_request
        self._today = today
        self._sync_lock = threading.Lock()
        self.last_sync_failures = []

    def today(self) -> datetime.date:
        """Current date in the configured region."""
        if self._today is not None:
            return self._today()
        return datetime.datetime.now(pytz.timezone(self.settings.timezone)).date()

    def get_prayer_times(self, location_name: str, date: datetime.date = None) -> PrayerTimeSet:
        """
        Return prayer times for a registry location and date (default today).

        Raises InvalidLocation for unknown names and UnresolvablePrayerTimes
        when every producer fails.
        """
        location = self.registry.get(location_name)
        if self.sync_on_request:
            self.check_and_sync(self.today())
        if date is None:
            date = self.today()
        return self._resolve(location, date)

    def _resolve(self, location: Location, date: datetime.date) -> PrayerTimeSet:
        date_str = date.isoformat()
        cached = self.cache.get(location.name, date_str)
        if cached is not None:
            return cached

        errors = []
        for producer in self.producers:
            try:
                result = producer.resolve(location, date)
            except PrayerTimeError as e:
                logger.warning(f"{producer.name} failed for {location.name} on {date_str}: {e}")
                errors.append(e)
                continue
            if result is None:
                continue
            logger.info(f"Resolved {location.name} on {date_str} via {producer.name}")
            self.cache.put(location.name, date_str, result)
            return result

        raise UnresolvablePrayerTimes(
            f"No prayer times for {location.name} on {date_str}: " + "; ".join(str(e) for e in errors)
        )

    def fetch_prayer_times_range(self, location_name: str, start: datetime.date, end: datetime.date) -> list:
        """Resolve every date from start to end inclusive, skipping failures."""
        location = self.registry.get(location_name)
        results = []
        current = start
        while current <= end:
            try:
                results.append(self._resolve(location, current))
            except PrayerTimeError as e:
                logger.error(f"Failed to resolve {location.name} on {current.isoformat()}: {e}")
            current += datetime.timedelta(days=1)
        return results

    def clear_cache(self) -> None:
        self.cache.clear()

    def cache_stats(self) -> dict:
        return self.cache.stats()

    def check_and_sync(self, today: datetime.date) -> bool:
        """
        Run a full sync unless one already ran for `today`.

        Returns True when a sync pass was performed.
        """
        today_str = today.isoformat()
        with self._sync_lock:
            if self.sync_marker.get() == today_str:
                return False
            self.sync_all(today)
            self.sync_marker.set(today_str)
        return True

    def sync_all(self, date: datetime.date) -> dict:
        """
        Clear the cache and resolve every registry location for `date`.

        Resolutions run concurrently; a failure for one location is logged and
        does not stop the others. Returns {location_name: succeeded}.
        """
        self.cache.clear()
        locations = list(self.registry)
        outcomes = {}

        def _sync_one(location):
            try:
                self._resolve(location, date)
            except PrayerTimeError as e:
                logger.error(f"Failed to sync {location.name}: {e}")
                return location.name, False
            except Exception:
                logger.exception(f"Unexpected error while syncing {location.name}")
                return location.name, False
            return location.name, True

        with ThreadPoolExecutor(max_workers=self.settings.sync_workers) as executor:
            for name, ok in executor.map(_sync_one, locations):
                outcomes[name] = ok

        self.last_sync_failures = [name for name, ok in outcomes.items() if not ok]
        succeeded = len(outcomes) - len(self.last_sync_failures)
        logger.info(
            f"Daily prayer times sync for {date.isoformat()}: "
            f"{succeeded} succeeded, {len(self.last_sync_failures)} failed"
        )
        return outcomes
