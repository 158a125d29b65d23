"""Two-tier prayer time cache keyed by (location name, ISO date)."""

import json
import logging
import os
import threading
from typing import Optional

from src.models import PrayerTimeSet

logger = logging.getLogger(__name__)


def cache_key(location_name: str, date_str: str) -> str:
    return f"{location_name}|{date_str}"


class MemoryStore:
    """In-process store. Single dict operations are atomic, so no lock is taken."""

    def __init__(self):
        self._data = {}

    def get(self, key: str) -> Optional[dict]:
        return self._data.get(key)

    def set(self, key: str, value: dict) -> None:
        self._data[key] = value

    def clear(self) -> None:
        self._data = {}

    def keys(self) -> list:
        return list(self._data)


class JsonFileStore(MemoryStore):
    """
    Store that mirrors its contents to a JSON file.

    The file is read once at construction. Writes rewrite the whole file under
    a lock; readers never take the lock.
    """

    def __init__(self, path: str):
        super().__init__()
        self.path = path
        self._write_lock = threading.Lock()
        self._load()

    def _load(self) -> None:
        if not os.path.isfile(self.path):
            logger.info(f"No existing cache file found at {self.path}")
            return
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load cache file {self.path}: {type(e).__name__}: {e}")
            return
        if not isinstance(data, dict):
            logger.warning(f"Invalid cache structure in {self.path}, ignoring cache")
            return
        self._data = data
        logger.info(f"Loaded {len(data)} cached entries from {self.path}")

    def _flush(self) -> None:
        with self._write_lock:
            snapshot = dict(self._data)
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            tmp_path = f"{self.path}.tmp"
            try:
                with open(tmp_path, "w", encoding="utf-8") as f:
                    json.dump(snapshot, f, indent=2)
                os.replace(tmp_path, self.path)
            except OSError as e:
                logger.error(f"Failed to write cache file {self.path}: {e}")

    def set(self, key: str, value: dict) -> None:
        super().set(key, value)
        self._flush()

    def clear(self) -> None:
        super().clear()
        self._flush()


class PrayerTimesCache:
    """
    Transient tier checked first, then the longer-lived tier.

    Every put writes both tiers. A hit in the longer-lived tier repopulates the
    transient one. There is no per-entry expiry; clear() is the only invalidation.
    """

    def __init__(self, transient=None, persistent=None):
        self.transient = transient if transient is not None else MemoryStore()
        self.persistent = persistent if persistent is not None else MemoryStore()

    def get(self, location_name: str, date_str: str) -> Optional[PrayerTimeSet]:
        key = cache_key(location_name, date_str)
        value = self.transient.get(key)
        if value is not None:
            logger.debug(f"Transient cache hit for {key}")
            return PrayerTimeSet.from_dict(value)
        value = self.persistent.get(key)
        if value is not None:
            logger.debug(f"Persistent cache hit for {key}")
            self.transient.set(key, value)
            return PrayerTimeSet.from_dict(value)
        return None

    def put(self, location_name: str, date_str: str, times: PrayerTimeSet) -> None:
        key = cache_key(location_name, date_str)
        value = times.to_dict()
        self.transient.set(key, value)
        self.persistent.set(key, value)

    def clear(self) -> None:
        self.transient.clear()
        self.persistent.clear()
        logger.info("Prayer times cache cleared")

    def stats(self) -> dict:
        """Distinct locations and total entries across both tiers."""
        keys = set(self.transient.keys()) | set(self.persistent.keys())
        locations = {key.split("|", 1)[0] for key in keys}
        return {"locations": len(locations), "total_entries": len(keys)}
