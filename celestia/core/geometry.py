# celestia/core/geometry.py
from __future__ import annotations

"""
Angular geometry on the 360° circle.

All functions are pure and total for finite inputs. Longitudes are
normalized into [0, 360) before any comparison.
"""

import math
from typing import NamedTuple, Tuple

from celestia.core.constants import (
    FULL_CIRCLE_DEG,
    HALF_CIRCLE_DEG,
    SIGNS,
    SIGN_ELEMENTS,
    SIGN_MODALITIES,
    SIGN_SPAN_DEG,
)
from celestia.core.validators import OutOfRange, _as_float, _err

__all__ = [
    "normalize", "shortest_distance", "directed_separation",
    "to_radians", "to_degrees",
    "DMS", "to_dms", "from_dms",
    "sign_index", "longitude_to_sign", "element_of", "modality_of",
    "division_position",
]

# ─────────────────────────────────────────────────────────────────────────────
# Circle arithmetic
# ─────────────────────────────────────────────────────────────────────────────

def normalize(angle: float) -> float:
    """Wrap any angle to [0, 360)."""
    x = math.fmod(float(angle), FULL_CIRCLE_DEG)
    if x < 0.0:
        x += FULL_CIRCLE_DEG
    # fmod of a tiny negative can round up to exactly 360
    return 0.0 if x >= FULL_CIRCLE_DEG else x

def shortest_distance(a: float, b: float) -> float:
    """Smallest unsigned separation on the circle, in [0, 180]."""
    # fmod(-x) == -fmod(x), so swapping a and b gives the identical result
    d = abs(math.fmod(float(a) - float(b), FULL_CIRCLE_DEG))
    return FULL_CIRCLE_DEG - d if d > HALF_CIRCLE_DEG else d

def directed_separation(a: float, b: float) -> float:
    """Counter-clockwise separation from a to b, in [0, 360)."""
    return normalize(b - a)

def to_radians(deg: float) -> float:
    return math.radians(float(deg))

def to_degrees(rad: float) -> float:
    return math.degrees(float(rad))

# ─────────────────────────────────────────────────────────────────────────────
# Degrees ↔ (degrees, minutes, seconds)
# ─────────────────────────────────────────────────────────────────────────────

class DMS(NamedTuple):
    degrees: int
    minutes: int
    seconds: float
    negative: bool = False

    def __str__(self) -> str:
        sign = "-" if self.negative else ""
        return f"{sign}{self.degrees}°{self.minutes:02d}′{self.seconds:06.3f}″"

def to_dms(angle: float, seconds_places: int = 6) -> DMS:
    """
    Split an angle into whole degrees, whole minutes and decimal seconds.
    The sign is carried separately so -0°30′ survives the round trip.
    Seconds are rounded to `seconds_places`; a rounded 60″ carries upward.
    """
    x = float(angle)
    negative = x < 0.0
    total = abs(x)
    deg = int(total)
    rem = (total - deg) * 60.0
    minutes = int(rem)
    seconds = round((rem - minutes) * 60.0, seconds_places)
    if seconds >= 60.0:
        seconds -= 60.0
        minutes += 1
    if minutes >= 60:
        minutes -= 60
        deg += 1
    return DMS(deg, minutes, seconds, negative)

def from_dms(degrees: float, minutes: float = 0.0, seconds: float = 0.0, negative: bool = False) -> float:
    """Inverse of to_dms. Minutes and seconds must be in [0, 60)."""
    m = _as_float(minutes)
    s = _as_float(seconds)
    d = _as_float(degrees)
    if d is None:
        raise OutOfRange(_err("degrees", "degrees must be a finite number", "type_error.float"))
    if m is None or not (0.0 <= m < 60.0):
        raise OutOfRange(_err("minutes", "minutes must be in [0, 60)", "value_error.range"))
    if s is None or not (0.0 <= s < 60.0):
        raise OutOfRange(_err("seconds", "seconds must be in [0, 60)", "value_error.range"))
    value = abs(d) + m / 60.0 + s / 3600.0
    return -value if (negative or d < 0.0) else value

# ─────────────────────────────────────────────────────────────────────────────
# Zodiac helpers
# ─────────────────────────────────────────────────────────────────────────────

def sign_index(lon: float) -> int:
    return int(normalize(lon) // SIGN_SPAN_DEG) % 12

def longitude_to_sign(lon: float) -> Tuple[str, float]:
    """Sign name and degree within the sign."""
    x = normalize(lon)
    idx = sign_index(x)
    return SIGNS[idx], x - idx * SIGN_SPAN_DEG

def element_of(lon: float) -> str:
    return SIGN_ELEMENTS[SIGNS[sign_index(lon)]]

def modality_of(lon: float) -> str:
    return SIGN_MODALITIES[SIGNS[sign_index(lon)]]

def division_position(lon: float, divisions: int) -> Tuple[int, float]:
    """
    Index of the equal division of the circle holding `lon`, and the
    fractional position inside it in [0, 1).
    """
    width = FULL_CIRCLE_DEG / int(divisions)
    x = normalize(lon)
    idx = min(int(x // width), int(divisions) - 1)
    frac = (x - idx * width) / width
    return idx, min(max(frac, 0.0), math.nextafter(1.0, 0.0))
