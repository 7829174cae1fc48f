# src/wvwater/services/geometry_service.py
from __future__ import annotations

"""
Geometría derivada de la escena (sin I/O).

La distancia Tierra–Sol se calcula con la efeméride solar de baja precisión
usada en "Radiometric Use of WorldView-2 Imagery":
  JD -> D = JD - 2451545.0 -> g = 357.529 + 0.98560028*D
  d  = 1.00014 - 0.01671*cos(g) - 0.00014*cos(2g)     [UA]
"""

import calendar
import math
import re
from dataclasses import dataclass

from ..contracts.errors import MetadataError

# "2016-10-23T17:46:54.796950Z" (se tolera un ';' final del .IMD)
_FIRST_LINE_TIME_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{6}Z;?$")


@dataclass(frozen=True)
class UtcTimestamp:
    year: int
    month: int
    day: int
    hour: int
    minute: int
    second: float


def parse_first_line_time(text: str) -> UtcTimestamp:
    """Extrae los campos por posición fija; el formato se valida antes de cortar."""
    s = text.strip()
    if not _FIRST_LINE_TIME_RE.match(s):
        raise MetadataError(f"firstLineTime con formato inválido (se espera YYYY-MM-DDThh:mm:ss.ffffffZ): {text!r}")
    ts = UtcTimestamp(
        year=int(s[0:4]),
        month=int(s[5:7]),
        day=int(s[8:10]),
        hour=int(s[11:13]),
        minute=int(s[14:16]),
        second=float(s[17:26]),
    )
    if not (1 <= ts.month <= 12 and ts.hour < 24 and ts.minute < 60 and ts.second < 61.0):
        raise MetadataError(f"firstLineTime fuera de rango: {text!r}")
    if not 1 <= ts.day <= calendar.monthrange(ts.year, ts.month)[1]:
        raise MetadataError(f"firstLineTime con día inexistente: {text!r}")
    return ts


def julian_day(year: int, month: int, day: int, hour: int, minute: int, second: float) -> float:
    if month <= 2:
        year -= 1
        month += 12
    a = year // 100
    b = 2 - a + a // 4
    ut = hour + minute / 60.0 + second / 3600.0
    return (math.floor(365.25 * (year + 4716)) + math.floor(30.6001 * (month + 1))
            + day + ut / 24.0 + b - 1524.5)


def compute_earth_sun_distance(year: int, month: int, day: int,
                               hour: int = 0, minute: int = 0, second: float = 0.0) -> float:
    d = julian_day(year, month, day, hour, minute, second) - 2451545.0
    g = math.radians(357.529 + 0.98560028 * d)
    return 1.00014 - 0.01671 * math.cos(g) - 0.00014 * math.cos(2.0 * g)


def earth_sun_distance_from_timestamp(text: str) -> float:
    ts = parse_first_line_time(text)
    return compute_earth_sun_distance(ts.year, ts.month, ts.day, ts.hour, ts.minute, ts.second)


__all__ = [
    "UtcTimestamp",
    "parse_first_line_time",
    "julian_day",
    "compute_earth_sun_distance",
    "earth_sun_distance_from_timestamp",
]
