"""Value objects shared by the prayer time modules."""

from dataclasses import asdict, dataclass

PRAYER_NAMES = ["Fajr", "Dhuhr", "Asr", "Maghrib", "Isha"]


@dataclass(frozen=True)
class Location:
    """A named point in the location registry."""
    name: str
    lat: float
    lng: float

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Location":
        return cls(name=str(data["name"]), lat=float(data["lat"]), lng=float(data["lng"]))


@dataclass(frozen=True)
class PrayerTimeSet:
    """
    The five daily prayer times for one location on one date.

    Times are "HH:MM" strings in 24-hour form. `date` is the human-readable
    label of the originating date and `source` names the producer that
    created the set.
    """
    Fajr: str
    Dhuhr: str
    Asr: str
    Maghrib: str
    Isha: str
    date: str
    source: str = ""

    def timings(self) -> dict:
        """Return {prayer_name: "HH:MM"} in prayer order."""
        return {name: getattr(self, name) for name in PRAYER_NAMES}

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "PrayerTimeSet":
        return cls(
            Fajr=data["Fajr"],
            Dhuhr=data["Dhuhr"],
            Asr=data["Asr"],
            Maghrib=data["Maghrib"],
            Isha=data["Isha"],
            date=data.get("date", ""),
            source=data.get("source", ""),
        )
