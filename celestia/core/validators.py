# celestia/core/validators.py
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

# ───────────────────────── errors ─────────────────────────

class ValidationError(ValueError):
    """Structured validator error (has .errors() like the API layer expects)."""
    default_type = "value_error"

    def __init__(self, details: Union[str, Dict[str, Any], List[Dict[str, Any]]]):
        if isinstance(details, str):
            self._details = [{"loc": [], "msg": details, "type": self.default_type}]
            super().__init__(details)
        elif isinstance(details, dict):
            self._details = [details]
            super().__init__(details.get("msg", "validation_error"))
        elif isinstance(details, list):
            self._details = details
            super().__init__(self._details[0]["msg"] if self._details else "validation_error")
        else:
            self._details = [{"loc": [], "msg": "validation_error", "type": self.default_type}]
            super().__init__("validation_error")

    def errors(self) -> List[Dict[str, Any]]:
        return list(self._details)


class InvalidInput(ValidationError):
    """Malformed or out-of-range body/date data for a single query."""
    default_type = "value_error.input"


class InvalidConfiguration(ValidationError):
    """Bad orb or duration tables; raised before any query runs."""
    default_type = "value_error.config"


class OutOfRange(ValidationError):
    """A degree/minute/second component outside its valid range."""
    default_type = "value_error.range"


class InvalidEpoch(InvalidInput):
    """Reference epoch is not a usable point in time."""
    default_type = "value_error.epoch"


# ───────────────────────── helpers ─────────────────────────

def _err(loc: List[Any] | str, msg: str, typ: str = "value_error") -> Dict[str, Any]:
    return {"loc": [loc] if isinstance(loc, str) else loc, "msg": msg, "type": typ}

def _as_float(v: Any) -> Optional[float]:
    if v is None or isinstance(v, bool):
        return None
    try:
        x = float(v)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(x):
        return None
    return x


# ───────────────────────── bodies ─────────────────────────

@dataclass(frozen=True)
class Body:
    name: str
    longitude: float
    velocity: Optional[float] = None

    @property
    def retrograde(self) -> bool:
        return self.velocity is not None and self.velocity < 0.0

    def as_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "longitude": self.longitude, "velocity": self.velocity}


BodyLike = Union[Body, Mapping[str, Any]]

def parse_body(raw: BodyLike, loc: Optional[List[Any]] = None) -> Body:
    """
    Normalize one body record.
    Accepts a Body or a mapping {name, longitude, velocity?} (aliases: lon, speed).
    Longitude must already lie in [0, 360).
    """
    loc = loc or []
    if isinstance(raw, Body):
        name, lon, vel = raw.name, raw.longitude, raw.velocity
    elif isinstance(raw, Mapping):
        name = raw.get("name")
        lon = raw.get("longitude", raw.get("lon"))
        vel = raw.get("velocity", raw.get("speed"))
    else:
        raise InvalidInput(_err(loc, "body must be a Body or an object", "type_error.body"))

    if not isinstance(name, str) or not name.strip():
        raise InvalidInput(_err(loc + ["name"], "body name is required", "value_error.input"))
    if lon is None:
        raise InvalidInput(_err(loc + ["longitude"], f"{name}: longitude is required", "value_error.input"))
    lon_f = _as_float(lon)
    if lon_f is None:
        raise InvalidInput(_err(loc + ["longitude"], f"{name}: longitude must be a finite number", "type_error.float"))
    if not (0.0 <= lon_f < 360.0):
        raise InvalidInput(_err(loc + ["longitude"], f"{name}: longitude must be in [0, 360)", "value_error.input"))

    vel_f: Optional[float] = None
    if vel is not None:
        vel_f = _as_float(vel)
        if vel_f is None:
            raise InvalidInput(_err(loc + ["velocity"], f"{name}: velocity must be a finite number", "type_error.float"))

    return Body(name=name.strip(), longitude=lon_f, velocity=vel_f)

def parse_bodies(raw: Iterable[BodyLike], *, min_count: int = 2) -> List[Body]:
    """Parse and validate a sequence of body records (order preserved, names unique)."""
    if raw is None or isinstance(raw, (str, bytes)) or isinstance(raw, Mapping):
        raise InvalidInput(_err("bodies", "bodies must be a sequence of records", "type_error.list"))
    out: List[Body] = []
    seen: set[str] = set()
    for i, item in enumerate(raw):
        b = parse_body(item, ["bodies", i])
        if b.name in seen:
            raise InvalidInput(_err(["bodies", i, "name"], f"duplicate body name '{b.name}'", "value_error.input"))
        seen.add(b.name)
        out.append(b)
    if len(out) < min_count:
        raise InvalidInput(_err("bodies", f"at least {min_count} bodies are required", "value_error.input"))
    return out

def bodies_from_positions(positions: Mapping[str, Any], velocities: Optional[Mapping[str, float]] = None) -> List[Body]:
    """Build bodies from a {name: longitude} map (the shape run_*_api callers send)."""
    rows: List[Dict[str, Any]] = []
    for name, lon in positions.items():
        rows.append({
            "name": name,
            "longitude": lon,
            "velocity": None if velocities is None else velocities.get(name),
        })
    return parse_bodies(rows)


# ───────────────────────── dates ─────────────────────────

def parse_moment(value: Any, loc: str = "date", *, error: type = InvalidInput) -> datetime:
    """
    Accept a datetime, a date (midnight), or an ISO-8601 string.
    Timezone awareness is preserved; mixing aware and naive values is the
    caller's problem and is reported by ensure_comparable().
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time(0, 0))
    if isinstance(value, str) and value.strip():
        try:
            return datetime.fromisoformat(value.strip())
        except ValueError:
            pass
    raise error(_err(loc, f"{loc} must be a date, datetime or ISO-8601 string", "value_error.date"))

def ensure_comparable(reference: datetime, other: datetime, loc: str = "date") -> None:
    if (reference.tzinfo is None) != (other.tzinfo is None):
        raise InvalidInput(_err(loc, "cannot compare timezone-aware and naive datetimes", "value_error.date"))

def check_fraction(value: Any, loc: str) -> float:
    f = _as_float(value)
    if f is None or not (0.0 <= f < 1.0):
        raise InvalidInput(_err(loc, f"{loc} must be a number in [0, 1)", "value_error.input"))
    return f


__all__ = [
    "ValidationError",
    "InvalidInput",
    "InvalidConfiguration",
    "OutOfRange",
    "InvalidEpoch",
    "Body",
    "BodyLike",
    "parse_body",
    "parse_bodies",
    "bodies_from_positions",
    "parse_moment",
    "ensure_comparable",
    "check_fraction",
]
