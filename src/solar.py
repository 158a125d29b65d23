"""Solar position model used by the local prayer time calculator.

All angles are in degrees and all times are decimal hours on the local clock
of a region with a fixed UTC offset.
"""

import datetime
import math
from typing import NamedTuple

from src.config import DEFAULT_UTC_OFFSET

# Sun's centre on the horizon, corrected for refraction and the solar radius
SUNSET_ANGLE = -0.833

# Hour angle used when the sun never reaches the requested angle
SATURATED_OFFSET_HOURS = 12.0


class SolarPosition(NamedTuple):
    declination: float
    equation_of_time_minutes: float
    solar_noon_hour: float


def day_of_year(date: datetime.date) -> int:
    """1-based day number within the date's calendar year."""
    return (date - datetime.date(date.year, 1, 1)).days + 1


def declination(day: int) -> float:
    return 23.4397 * math.sin(math.radians(360 / 365.25 * (284 + day)))


def equation_of_time(day: int) -> float:
    """
    Apparent minus mean solar time, in minutes.

    Two-term approximation built from the sun's mean longitude and mean
    anomaly: the eccentricity term (mean anomaly) plus the obliquity term
    (ecliptic longitude).
    """
    mean_anomaly = math.radians((357.528 + 0.9856003 * day) % 360)
    mean_longitude = (280.466 + 0.9856474 * day) % 360
    ecliptic_longitude = math.radians(
        mean_longitude
        + 1.915 * math.sin(mean_anomaly)
        + 0.020 * math.sin(2 * mean_anomaly)
    )
    degrees = (
        -1.915 * math.sin(mean_anomaly)
        - 0.020 * math.sin(2 * mean_anomaly)
        + 2.466 * math.sin(2 * ecliptic_longitude)
        - 0.053 * math.sin(4 * ecliptic_longitude)
    )
    return 4 * degrees


def solar_position(latitude: float, longitude: float, date: datetime.date, utc_offset_hours: float = DEFAULT_UTC_OFFSET) -> SolarPosition:
    """
    Declination, equation of time and local-clock solar noon for a date.

    Longitude is east-positive. Latitude does not affect the result but is
    accepted so callers can pass a location's coordinates as a pair.
    """
    day = day_of_year(date)
    dec = declination(day)
    eot = equation_of_time(day)
    noon = 12 + utc_offset_hours - longitude / 15 - eot / 60
    return SolarPosition(dec, eot, noon)


def hour_angle_offset(latitude: float, dec: float, angle: float) -> float:
    """
    Hours between solar noon and the moment the sun's altitude equals `angle`.

    Negative angles are below the horizon (-18 for astronomical twilight).
    When the sun never crosses `angle` on that day (polar day or night) the
    offset saturates at 12 hours instead of raising.
    """
    lat = math.radians(latitude)
    d = math.radians(dec)
    cos_hour_angle = (math.sin(math.radians(angle)) - math.sin(lat) * math.sin(d)) / (
        math.cos(lat) * math.cos(d)
    )
    if cos_hour_angle < -1 or cos_hour_angle > 1:
        return SATURATED_OFFSET_HOURS
    return math.degrees(math.acos(cos_hour_angle)) / 15


def asr_altitude(latitude: float, dec: float, shadow_factor: int = 1) -> float:
    """Sun altitude at which a shadow is `shadow_factor` times its object plus the noon shadow."""
    zenith_at_noon = math.radians(abs(latitude - dec))
    return math.degrees(math.atan(1 / (shadow_factor + math.tan(zenith_at_noon))))
