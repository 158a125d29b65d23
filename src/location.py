"""Location registry: built-in city list plus user-defined locations."""

import json
import logging
import os

from src.config import CONFIG_DIR
from src.errors import InvalidLocation
from src.models import Location

logger = logging.getLogger(__name__)

# Coordinates as used by the University of Islamic Sciences, Karachi
PAKISTANI_CITIES = [
    Location("Islamabad", 33.7000, 73.1667),
    Location("Lahore", 31.5497, 74.3436),
    Location("Karachi", 24.8607, 67.0011),
    Location("Peshawar", 34.0151, 71.5249),
    Location("Quetta", 30.2000, 67.0167),
    Location("Gujranwala", 32.1500, 74.1833),
    Location("Faisalabad", 31.4167, 73.0833),
    Location("Hyderabad", 25.3667, 68.3667),
    Location("Multan", 30.2000, 71.4333),
    Location("Rawalpindi", 33.6000, 73.0667),
]

LOCATIONS_FILE = os.path.join(CONFIG_DIR, "locations.json")


class LocationRegistry:
    """
    Immutable-entry registry looked up by exact, case-insensitive name.

    Later entries with the same name replace earlier ones, so user-defined
    locations can correct a built-in city's coordinates.
    """

    def __init__(self, locations=None):
        self._by_key = {}
        for location in PAKISTANI_CITIES if locations is None else locations:
            self._by_key[location.name.lower()] = location

    def get(self, name: str) -> Location:
        """Return the Location called `name` or raise InvalidLocation."""
        location = self._by_key.get((name or "").strip().lower())
        if location is None:
            raise InvalidLocation(name)
        return location

    def __contains__(self, name) -> bool:
        return (name or "").strip().lower() in self._by_key

    def __iter__(self):
        return iter(list(self._by_key.values()))

    def __len__(self):
        return len(self._by_key)

    def names(self) -> list:
        return [location.name for location in self._by_key.values()]


def load_custom_locations(path: str = None) -> list:
    """Load user-defined locations, skipping malformed entries."""
    if path is None:
        path = LOCATIONS_FILE
    if not os.path.isfile(path):
        return []
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning(f"Could not read locations from {path}: {e}")
        return []

    locations = []
    for entry in data if isinstance(data, list) else []:
        try:
            locations.append(Location.from_dict(entry))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping invalid location entry {entry!r}: {e}")
    return locations


def save_custom_location(location: Location, path: str = None) -> None:
    """Add or replace a user-defined location in the locations file."""
    if path is None:
        path = LOCATIONS_FILE
    existing = [loc for loc in load_custom_locations(path) if loc.name.lower() != location.name.lower()]
    existing.append(location)
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump([loc.to_dict() for loc in existing], f, indent=2)


def build_registry(path: str = None) -> LocationRegistry:
    """Built-in cities followed by user-defined locations."""
    return LocationRegistry(PAKISTANI_CITIES + load_custom_locations(path))
