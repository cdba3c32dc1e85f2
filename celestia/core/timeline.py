# celestia/core/timeline.py
from __future__ import annotations

"""
Timeline pipeline: one parameterized pass over (start, end, granularity).

Daily, weekly, monthly and yearly runs differ only in how the cursor
advances, so granularity is a key into GRANULARITY_STEPS (a table of step
functions) rather than a family of generator classes. At every step the
injected `positions_at(moment)` supplies body records; the engine adds
aspects, patterns, influence and, when a DashaContext is given, the nested
period chain active at that moment.
"""

from calendar import monthrange
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence
import logging

from celestia.core.aspects import Aspect, AspectConfig, find_aspects
from celestia.core.constants import (
    DEFAULT_BASE_WEIGHTS,
    DEFAULT_CLUSTER_MAX_SPAN_DEG,
    DEFAULT_CLUSTER_MIN_SIZE,
    DEFAULT_NESTING_DEPTH,
    MAX_TIMELINE_STEPS,
)
from celestia.core.dasha import (
    VIMSHOTTARI,
    Period,
    PeriodLevel,
    PeriodScheme,
    active_period,
    nested_period,
)
from celestia.core.influence import score_bodies
from celestia.core.patterns import Pattern, detect_patterns
from celestia.core.validators import (
    BodyLike,
    InvalidInput,
    _err,
    ensure_comparable,
    parse_bodies,
    parse_moment,
)

__all__ = [
    "GRANULARITY_STEPS", "DashaContext", "TimelineEntry",
    "add_months", "build_timeline",
]

log = logging.getLogger(__name__)

PositionsProvider = Callable[[datetime], Iterable[BodyLike]]

# ─────────────────────────────────────────────────────────────────────────────
# Step strategies
# ─────────────────────────────────────────────────────────────────────────────

def add_months(moment: datetime, months: int) -> datetime:
    """Calendar month arithmetic; the day is clamped to the target month's length."""
    m0 = moment.month - 1 + months
    year = moment.year + m0 // 12
    month = m0 % 12 + 1
    day = min(moment.day, monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)

GRANULARITY_STEPS: Mapping[str, Callable[[datetime, int], datetime]] = MappingProxyType({
    "daily": lambda start, i: start + timedelta(days=i),
    "weekly": lambda start, i: start + timedelta(weeks=i),
    "monthly": lambda start, i: add_months(start, i),
    "yearly": lambda start, i: add_months(start, 12 * i),
})

# ─────────────────────────────────────────────────────────────────────────────
# Inputs & results
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class DashaContext:
    sequence: Sequence[Period]
    scheme: PeriodScheme = VIMSHOTTARI
    depth: int = DEFAULT_NESTING_DEPTH


@dataclass(frozen=True)
class TimelineEntry:
    at: datetime
    aspects: List[Aspect]
    patterns: List[Pattern]
    influence: Dict[str, float]
    periods: List[PeriodLevel] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "at": self.at.isoformat(),
            "aspects": [a.as_dict() for a in self.aspects],
            "patterns": [p.as_dict() for p in self.patterns],
            "influence": dict(self.influence),
            "periods": [lv.as_dict() for lv in self.periods],
        }

# ─────────────────────────────────────────────────────────────────────────────
# Pipeline
# ─────────────────────────────────────────────────────────────────────────────

def _moments(start: datetime, end: datetime, step: Callable[[datetime, int], datetime],
             max_steps: int) -> List[datetime]:
    out: List[datetime] = []
    i = 0
    while True:
        t = step(start, i)
        if t >= end:
            break
        if len(out) >= max_steps:
            log.warning("timeline truncated at %d steps (before %s)", max_steps, t.isoformat())
            break
        out.append(t)
        i += 1
    return out

def build_timeline(
    start: Any,
    end: Any,
    granularity: str,
    positions_at: PositionsProvider,
    *,
    aspect_config: Optional[AspectConfig] = None,
    dasha: Optional[DashaContext] = None,
    base_weights: Mapping[str, float] = DEFAULT_BASE_WEIGHTS,
    cluster_min_size: int = DEFAULT_CLUSTER_MIN_SIZE,
    cluster_max_span: float = DEFAULT_CLUSTER_MAX_SPAN_DEG,
    max_steps: int = MAX_TIMELINE_STEPS,
) -> List[TimelineEntry]:
    """
    Evaluate the engine at every step in [start, end).
    Steps are computed from `start` (not chained), so monthly runs starting on
    the 31st stay on month-ends instead of drifting.
    """
    t0 = parse_moment(start, "start")
    t1 = parse_moment(end, "end")
    ensure_comparable(t0, t1, "end")
    if t0 >= t1:
        raise InvalidInput(_err(["start", "end"], "start must be before end", "value_error.input"))
    key = str(granularity).strip().lower()
    step = GRANULARITY_STEPS.get(key)
    if step is None:
        raise InvalidInput(_err("granularity", f"granularity must be one of {sorted(GRANULARITY_STEPS)}",
                                "value_error.input"))
    if isinstance(max_steps, bool) or not isinstance(max_steps, int) or max_steps < 1:
        raise InvalidInput(_err("max_steps", "must be a positive integer", "value_error.input"))

    cfg = aspect_config or AspectConfig.default()
    entries: List[TimelineEntry] = []
    for t in _moments(t0, t1, step, max_steps):
        bodies = parse_bodies(positions_at(t))
        aspects = find_aspects(bodies, cfg)
        patterns = detect_patterns(bodies, aspects, cluster_min_size=cluster_min_size,
                                   cluster_max_span=cluster_max_span)
        levels: List[PeriodLevel] = []
        if dasha is not None:
            top = active_period(dasha.sequence, t)
            if top is not None:
                levels = nested_period(top, t, dasha.depth, dasha.scheme)
        influence = score_bodies(bodies, aspects, base_weights, active_levels=levels)
        entries.append(TimelineEntry(at=t, aspects=aspects, patterns=patterns,
                                     influence=influence, periods=levels))
    log.debug("build_timeline: %s %s..%s, %d entries", key, t0.isoformat(), t1.isoformat(), len(entries))
    return entries
