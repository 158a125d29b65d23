"""Exceptions raised while resolving prayer times."""


class PrayerTimeError(Exception):
    """Base class for all prayer-time resolution errors."""


class InvalidLocation(PrayerTimeError):
    """Requested location is not in the registry."""

    def __init__(self, name: str):
        super().__init__(f"Location '{name}' not found in the location registry")
        self.name = name


class RemoteError(PrayerTimeError):
    """A single remote calculation service failed or returned bad data."""


class RemoteUnavailable(PrayerTimeError):
    """Every remote calculation service in the chain failed."""

    def __init__(self, errors: list):
        details = "; ".join(str(e) for e in errors) or "no remote services configured"
        super().__init__(f"All remote prayer time services failed: {details}")
        self.errors = errors


class CalculationError(PrayerTimeError):
    """The local astronomical calculation could not produce a result."""


class UnresolvablePrayerTimes(PrayerTimeError):
    """No producer in the chain could resolve prayer times."""
