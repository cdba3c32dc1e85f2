# celestia/core/dasha.py
from __future__ import annotations

"""
Nested period (dasha) calculator.

A scheme is a fixed cyclic order of named periods with fixed nominal
durations (Vimshottari: nine rulers over 120 years). At the epoch the
driving body sits somewhere inside one of `divisions` equal arcs; the ruler
of that arc runs first, for the unelapsed fraction of its full span. The
rest of the cycle follows at full length.

Every period subdivides in the same cyclic order, starting from its own
ruler, each child taking `years(child) / cycle_total` of the parent's
nominal span. A partial (balance) period keeps only the tail of that
nominal span, so its children are clipped the same way.

Everything here is a pure function of (epoch, driving position, query date).
"NotFound" is a value: `active_period` returns None beyond the horizon.
"""

from bisect import bisect_right
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple
import logging

from celestia.core.constants import (
    DAYS_PER_YEAR,
    DEFAULT_NESTING_DEPTH,
    MAX_NESTING_DEPTH,
    MIN_SUBPERIOD_SECONDS,
    VIMSHOTTARI_DIVISIONS,
    VIMSHOTTARI_ORDER,
    VIMSHOTTARI_YEARS,
)
from celestia.core.geometry import division_position, normalize
from celestia.core.validators import (
    InvalidConfiguration,
    InvalidEpoch,
    InvalidInput,
    _as_float,
    _err,
    check_fraction,
    ensure_comparable,
    parse_moment,
)

__all__ = [
    "PeriodScheme", "VIMSHOTTARI", "SCHEMES",
    "PeriodBalance", "Period", "PeriodLevel",
    "compute_balance", "balance_from_longitude",
    "generate_sequence", "active_period",
    "subdivide", "nested_period", "expand_periods",
    "dasha_at", "run_dasha_api",
]

log = logging.getLogger(__name__)

# =============================================================================
# Scheme
# =============================================================================

@dataclass(frozen=True)
class PeriodScheme:
    name: str
    names: Tuple[str, ...]
    years: Mapping[str, float]
    divisions: int
    year_days: float = DAYS_PER_YEAR

    def __post_init__(self) -> None:
        names = tuple(self.names)
        if not names:
            raise InvalidConfiguration(_err("periods.names", "at least one period name is required", "value_error.config"))
        if len(set(names)) != len(names) or any(not isinstance(n, str) or not n.strip() for n in names):
            raise InvalidConfiguration(_err("periods.names", "period names must be unique non-empty strings",
                                            "value_error.config"))
        years: Dict[str, float] = {}
        for n in names:
            y = _as_float(self.years.get(n)) if isinstance(self.years, Mapping) else None
            if y is None or y <= 0.0:
                raise InvalidConfiguration(_err(["periods", "years", n], "duration must be a positive number",
                                                "value_error.config"))
            years[n] = y
        div = self.divisions
        if isinstance(div, bool) or not isinstance(div, int) or div <= 0 or div % len(names) != 0:
            raise InvalidConfiguration(_err("periods.divisions",
                                            "divisions must be a positive multiple of the number of names",
                                            "value_error.config"))
        yd = _as_float(self.year_days)
        if yd is None or yd <= 0.0:
            raise InvalidConfiguration(_err("periods.year_days", "year length must be positive", "value_error.config"))
        object.__setattr__(self, "names", names)
        object.__setattr__(self, "years", MappingProxyType(years))
        object.__setattr__(self, "year_days", yd)

    @property
    def cycle_years(self) -> float:
        return sum(self.years.values())

    def ruler_of(self, division_index: int) -> str:
        return self.names[int(division_index) % len(self.names)]

    def cycle_from(self, name: str) -> Tuple[str, ...]:
        i = self.names.index(name)
        return self.names[i:] + self.names[:i]

    def span(self, years: float) -> timedelta:
        return timedelta(days=years * self.year_days)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, name: str = "custom") -> "PeriodScheme":
        """Build from {"order": [...], "years": {...}, "divisions": n, "year_days": d}."""
        if not isinstance(data, Mapping):
            raise InvalidConfiguration(_err("periods", "period scheme must be a mapping", "type_error.config"))
        order = data.get("order") or data.get("names")
        if not isinstance(order, (list, tuple)):
            raise InvalidConfiguration(_err("periods.order", "order must be a list of names", "type_error.config"))
        years = data.get("years")
        if not isinstance(years, Mapping):
            raise InvalidConfiguration(_err("periods.years", "years must be a mapping", "type_error.config"))
        return cls(
            name=str(data.get("name") or name),
            names=tuple(str(n) for n in order),
            years=dict(years),
            divisions=data.get("divisions", len(order)),
            year_days=data.get("year_days", DAYS_PER_YEAR),
        )


VIMSHOTTARI = PeriodScheme(
    name="vimshottari",
    names=VIMSHOTTARI_ORDER,
    years=VIMSHOTTARI_YEARS,
    divisions=VIMSHOTTARI_DIVISIONS,
)

SCHEMES: Mapping[str, PeriodScheme] = MappingProxyType({VIMSHOTTARI.name: VIMSHOTTARI})

# =============================================================================
# Results
# =============================================================================

@dataclass(frozen=True)
class PeriodBalance:
    name: str
    division_index: int
    fractional_position: float
    remaining_fraction: float      # (0, 1]
    full_years: float

    @property
    def balance_years(self) -> float:
        return self.remaining_fraction * self.full_years


@dataclass(frozen=True)
class Period:
    name: str
    start: datetime
    end: datetime
    years: float                   # actual span
    full_years: float              # nominal span before clipping
    level: int = 1
    chain: Tuple[str, ...] = field(default=())
    partial: bool = False

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end

    def progress(self, moment: datetime) -> float:
        total = self.duration.total_seconds()
        if total <= 0.0:
            return 0.0
        return min(1.0, max(0.0, (moment - self.start).total_seconds() / total))

    def as_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "years": self.years,
            "full_years": self.full_years,
            "level": self.level,
            "chain": list(self.chain),
            "partial": self.partial,
        }


@dataclass(frozen=True)
class PeriodLevel:
    level: int
    period: Period
    progress: float

    def as_dict(self) -> Dict[str, Any]:
        return {"level": self.level, "period": self.period.as_dict(), "progress": self.progress}

# =============================================================================
# Balance at epoch
# =============================================================================

def compute_balance(
    fractional_position: float,
    division_index: int = 0,
    scheme: PeriodScheme = VIMSHOTTARI,
) -> PeriodBalance:
    """
    fractional_position: how far the driving body has travelled through its
    current division, in [0, 1). The ruler of that division runs first for
    the remaining 1 - fractional_position of its full span.
    """
    frac = check_fraction(fractional_position, "fractional_position")
    if isinstance(division_index, bool) or not isinstance(division_index, int) or division_index < 0:
        raise InvalidInput(_err("division_index", "must be a non-negative integer", "value_error.input"))
    name = scheme.ruler_of(division_index)
    return PeriodBalance(
        name=name,
        division_index=division_index,
        fractional_position=frac,
        remaining_fraction=1.0 - frac,
        full_years=scheme.years[name],
    )

def balance_from_longitude(
    longitude: float,
    scheme: PeriodScheme = VIMSHOTTARI,
    *,
    ayanamsa: float = 0.0,
) -> PeriodBalance:
    """Balance from the driving body's (tropical) longitude; sidereal via `ayanamsa`."""
    lon = _as_float(longitude)
    aya = _as_float(ayanamsa)
    if lon is None or aya is None:
        raise InvalidInput(_err("longitude", "longitude and ayanamsa must be finite numbers", "type_error.float"))
    idx, frac = division_position(normalize(lon - aya), scheme.divisions)
    return compute_balance(frac, idx, scheme)

# =============================================================================
# Top-level sequence
# =============================================================================

def _epoch(value: Any) -> datetime:
    return parse_moment(value, "epoch", error=InvalidEpoch)

def generate_sequence(
    epoch: Any,
    balance: PeriodBalance,
    scheme: PeriodScheme = VIMSHOTTARI,
    *,
    cycles: int = 1,
) -> List[Period]:
    """
    The balance period, then the remaining names in cyclic order at full
    length. One traversal of the cycle per `cycles`; each period starts where
    the previous ended.
    """
    t0 = _epoch(epoch)
    if balance.name not in scheme.years:
        raise InvalidInput(_err("balance.name", f"'{balance.name}' is not part of scheme '{scheme.name}'",
                                "value_error.input"))
    if not (0.0 < balance.remaining_fraction <= 1.0):
        raise InvalidInput(_err("balance.remaining_fraction", "must be in (0, 1]", "value_error.input"))
    if isinstance(cycles, bool) or not isinstance(cycles, int) or cycles < 1:
        raise InvalidInput(_err("cycles", "must be a positive integer", "value_error.input"))

    order = scheme.cycle_from(balance.name)
    out: List[Period] = []
    t = t0
    try:
        for c in range(cycles):
            for i, name in enumerate(order):
                full = scheme.years[name]
                first = c == 0 and i == 0
                years = full * balance.remaining_fraction if first else full
                end = t + scheme.span(years)
                out.append(Period(
                    name=name, start=t, end=end, years=years, full_years=full,
                    level=1, chain=(name,), partial=first and balance.remaining_fraction < 1.0,
                ))
                t = end
    except OverflowError as e:
        raise InvalidEpoch(_err("epoch", f"period horizon is not representable from {t0.isoformat()}",
                                "value_error.epoch")) from e
    log.debug("generate_sequence: %s from %s, %d periods to %s",
              scheme.name, t0.isoformat(), len(out), out[-1].end.isoformat())
    return out

def active_period(sequence: Sequence[Period], moment: Any) -> Optional[Period]:
    """Period whose [start, end) holds `moment`, or None outside the sequence."""
    if not sequence:
        return None
    when = parse_moment(moment)
    ensure_comparable(sequence[0].start, when)
    i = bisect_right([p.start for p in sequence], when) - 1
    if i < 0:
        return None
    p = sequence[i]
    return p if p.contains(when) else None

# =============================================================================
# Sub-periods
# =============================================================================

def subdivide(period: Period, scheme: PeriodScheme = VIMSHOTTARI) -> List[Period]:
    """
    Children of `period` in cyclic order from its own ruler. The nominal span
    is laid out backwards from `end`; anything before `start` is dropped.
    """
    t = period.end - scheme.span(period.full_years) if period.partial else period.start
    total = scheme.cycle_years
    out: List[Period] = []
    order = scheme.cycle_from(period.name)
    for k, name in enumerate(order):
        full = period.full_years * scheme.years[name] / total
        # last child closes exactly on the parent's end
        end = period.end if k == len(order) - 1 else min(t + scheme.span(full), period.end)
        if end <= period.start or (out and end <= t):
            t = end
            continue
        # first kept child opens exactly on the parent's start
        start = period.start if not out else t
        out.append(Period(
            name=name, start=start, end=end,
            years=(end - start).total_seconds() / 86400.0 / scheme.year_days,
            full_years=full, level=period.level + 1,
            chain=period.chain + (name,), partial=not out and t < period.start,
        ))
        t = end
    return out

def _clamp_depth(depth: Any) -> int:
    if isinstance(depth, bool) or not isinstance(depth, int) or depth < 1:
        raise InvalidInput(_err("depth", "depth must be a positive integer", "value_error.input"))
    if depth > MAX_NESTING_DEPTH:
        log.warning("nesting depth %d clamped to %d", depth, MAX_NESTING_DEPTH)
        return MAX_NESTING_DEPTH
    return depth

def nested_period(
    period: Period,
    moment: Any,
    depth: int = DEFAULT_NESTING_DEPTH,
    scheme: PeriodScheme = VIMSHOTTARI,
    *,
    min_duration: timedelta = timedelta(seconds=MIN_SUBPERIOD_SECONDS),
) -> List[PeriodLevel]:
    """
    Chain of active periods at `moment`: `period` itself at its own level,
    then the active child at each deeper level. Stops after `depth` entries,
    or before a child shorter than `min_duration`. Empty when `moment` is
    outside `period`.
    """
    levels = _clamp_depth(depth)
    when = parse_moment(moment)
    ensure_comparable(period.start, when)
    if not period.contains(when):
        return []

    chain = [PeriodLevel(period.level, period, period.progress(when))]
    current = period
    while len(chain) < levels:
        child = next((c for c in subdivide(current, scheme) if c.contains(when)), None)
        if child is None or child.duration < min_duration:
            break
        chain.append(PeriodLevel(child.level, child, child.progress(when)))
        current = child
    return chain

def expand_periods(
    sequence: Sequence[Period],
    levels: int = 2,
    scheme: PeriodScheme = VIMSHOTTARI,
) -> List[Period]:
    """Every period down to `levels`, flat, sorted by (start, level)."""
    depth = _clamp_depth(levels)
    result: List[Period] = list(sequence)
    frontier: List[Period] = list(sequence)
    for _ in range(depth - 1):
        nxt: List[Period] = []
        for p in frontier:
            nxt.extend(subdivide(p, scheme))
        result.extend(nxt)
        frontier = nxt
    result.sort(key=lambda p: (p.start, p.level))
    return result

# =============================================================================
# Convenience
# =============================================================================

def dasha_at(
    epoch: Any,
    driving_longitude: float,
    moment: Any,
    *,
    depth: int = DEFAULT_NESTING_DEPTH,
    scheme: PeriodScheme = VIMSHOTTARI,
    ayanamsa: float = 0.0,
    cycles: int = 1,
) -> Dict[str, Any]:
    """
    One-shot: balance → sequence → nested chain at `moment`.
    `found` is False when `moment` lies outside the generated horizon.
    """
    balance = balance_from_longitude(driving_longitude, scheme, ayanamsa=ayanamsa)
    sequence = generate_sequence(epoch, balance, scheme, cycles=cycles)
    top = active_period(sequence, moment)
    if top is None:
        return {"found": False, "balance": balance, "sequence": sequence, "levels": [], "remaining_years": None}
    chain = nested_period(top, moment, depth, scheme)
    when = parse_moment(moment)
    return {
        "found": True,
        "balance": balance,
        "sequence": sequence,
        "levels": chain,
        "remaining_years": top.years * (1.0 - top.progress(when)),
    }

def run_dasha_api(
    *,
    epoch: Optional[str] = None,
    driving_longitude: Optional[float] = None,
    date: Optional[str] = None,
    depth: int = DEFAULT_NESTING_DEPTH,
    ayanamsa: float = 0.0,
    scheme: str = "vimshottari",
) -> Dict[str, Any]:
    """
    Thin plain-dict adapter: ISO strings in, ISO strings out.
    - epoch: reference instant (birth), ISO-8601
    - driving_longitude: longitude of the driving body at epoch (deg)
    - date: query instant; omitted → only the top-level sequence is returned
    """
    if epoch is None or driving_longitude is None:
        raise InvalidInput(_err(["epoch", "driving_longitude"], "epoch and driving_longitude are required",
                                "value_error.input"))
    sch = SCHEMES.get(str(scheme).strip().lower())
    if sch is None:
        raise InvalidConfiguration(_err("scheme", f"unknown period scheme '{scheme}'", "value_error.config"))

    balance = balance_from_longitude(driving_longitude, sch, ayanamsa=ayanamsa)
    sequence = generate_sequence(epoch, balance, sch)
    out: Dict[str, Any] = {
        "scheme": sch.name,
        "balance": {
            "name": balance.name,
            "division_index": balance.division_index,
            "remaining_fraction": balance.remaining_fraction,
            "balance_years": balance.balance_years,
        },
        "sequence": [p.as_dict() for p in sequence],
    }
    if date is not None:
        top = active_period(sequence, date)
        out["found"] = top is not None
        out["levels"] = [] if top is None else [lv.as_dict() for lv in nested_period(top, date, depth, sch)]
    return out
