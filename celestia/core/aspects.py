# celestia/core/aspects.py
from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
import itertools
import logging

from celestia.core.constants import (
    DEFAULT_ORBS_DEG,
    EXACT_TOLERANCE_DEG,
    HALF_CIRCLE_DEG,
    MAJOR_ASPECT_ANGLES,
    MAX_ORB_DEG,
    MIN_ORB_DEG,
    MINOR_ASPECT_ANGLES,
)
from celestia.core.geometry import directed_separation, shortest_distance
from celestia.core.validators import (
    Body,
    BodyLike,
    InvalidConfiguration,
    InvalidInput,
    _as_float,
    _err,
    bodies_from_positions,
    parse_bodies,
)

__all__ = [
    "AspectDefinition",
    "AspectConfig",
    "Aspect",
    "find_aspects",       # PURE geometry function (list of aspects)
    "aspects_for_body",
    "aspects_between",
    "summarize_aspects",
    "run_aspects_api",    # plain-dict adapter
]

log = logging.getLogger(__name__)

# ─────────────────────────────────────────────────────────────────────────────
# Configuration
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class AspectDefinition:
    name: str
    angle: float
    orb: float

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise InvalidConfiguration(_err("aspects", "aspect name is required", "value_error.config"))
        angle = _as_float(self.angle)
        if angle is None or not (0.0 <= angle <= HALF_CIRCLE_DEG):
            raise InvalidConfiguration(_err(["aspects", self.name, "angle"],
                                            "nominal angle must be in [0, 180]", "value_error.config"))
        orb = _as_float(self.orb)
        if orb is None or not (MIN_ORB_DEG < orb <= MAX_ORB_DEG):
            raise InvalidConfiguration(_err(["aspects", self.name, "orb"],
                                            f"orb must be in ({MIN_ORB_DEG:g}, {MAX_ORB_DEG:g}]", "value_error.config"))
        object.__setattr__(self, "angle", angle)
        object.__setattr__(self, "orb", orb)


@dataclass(frozen=True)
class AspectConfig:
    """Recognized aspects, in exactness priority order (first wins a tie)."""
    definitions: Tuple[AspectDefinition, ...]

    def __post_init__(self) -> None:
        defs = tuple(self.definitions)
        if not defs:
            raise InvalidConfiguration(_err("aspects", "at least one aspect must be configured", "value_error.config"))
        seen: set[str] = set()
        for d in defs:
            if not isinstance(d, AspectDefinition):
                raise InvalidConfiguration(_err("aspects", "definitions must be AspectDefinition", "type_error.config"))
            if d.name in seen:
                raise InvalidConfiguration(_err(["aspects", d.name], "duplicate aspect name", "value_error.config"))
            seen.add(d.name)
        object.__setattr__(self, "definitions", defs)

    @classmethod
    def default(cls, *, include_minors: bool = False,
                orbs: Optional[Mapping[str, float]] = None) -> "AspectConfig":
        catalog = dict(MAJOR_ASPECT_ANGLES)
        if include_minors:
            catalog.update(MINOR_ASPECT_ANGLES)
        orbs = orbs or {}
        return cls(tuple(
            AspectDefinition(name, angle, orbs.get(name, DEFAULT_ORBS_DEG[name]))
            for name, angle in catalog.items()
        ))

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Mapping[str, Any]]) -> "AspectConfig":
        """
        Build from {name: {"angle": deg, "orb": deg}}.
        "nominal_angle"/"max_orb" are accepted as aliases.
        """
        if not isinstance(mapping, Mapping):
            raise InvalidConfiguration(_err("aspects", "aspect configuration must be a mapping", "type_error.config"))
        defs: List[AspectDefinition] = []
        for name, spec in mapping.items():
            if not isinstance(spec, Mapping):
                raise InvalidConfiguration(_err(["aspects", str(name)], "must be an object with angle and orb",
                                                "type_error.config"))
            angle = spec.get("angle", spec.get("nominal_angle"))
            orb = spec.get("orb", spec.get("max_orb"))
            defs.append(AspectDefinition(str(name), angle, orb))
        return cls(tuple(defs))

    def names(self) -> List[str]:
        return [d.name for d in self.definitions]

    def get(self, name: str) -> Optional[AspectDefinition]:
        for d in self.definitions:
            if d.name == name:
                return d
        return None

# ─────────────────────────────────────────────────────────────────────────────
# Results
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Aspect:
    body1: str
    body2: str
    type: str
    angle: float                   # nominal angle
    separation: float              # shortest separation [0, 180]
    orb_used: float                # |separation - angle|
    max_orb: float
    strength: float                # 1 - orb_used/max_orb, clipped [0,1]
    applying: bool
    exact: bool = False
    time_to_exact: Optional[float] = None   # in the velocity time unit

    @property
    def bodies(self) -> Tuple[str, str]:
        return (self.body1, self.body2)

    def involves(self, name: str) -> bool:
        return name == self.body1 or name == self.body2

    def other(self, name: str) -> str:
        return self.body2 if name == self.body1 else self.body1

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)

# ─────────────────────────────────────────────────────────────────────────────
# Per-pair geometry
# ─────────────────────────────────────────────────────────────────────────────

def _strength(deviation: float, orb: float) -> float:
    return min(1.0, max(0.0, 1.0 - deviation / orb))

def _separation_rate(a: Body, b: Body) -> float:
    """
    d(shortest separation)/dt. The directed separation a→b grows with
    (vb - va); past 180° the shortest arc runs the other way round.
    """
    va = a.velocity or 0.0
    vb = b.velocity or 0.0
    rel = vb - va
    if directed_separation(a.longitude, b.longitude) <= HALF_CIRCLE_DEG:
        return rel
    return -rel

def _motion(a: Body, b: Body, separation: float, angle: float) -> Tuple[bool, Optional[float]]:
    """(applying, time_to_exact). Exact or relatively motionless pairs separate."""
    rate = _separation_rate(a, b)
    deviation = separation - angle
    if rate == 0.0 or abs(deviation) <= EXACT_TOLERANCE_DEG:
        return False, None
    applying = deviation * rate < 0.0
    if not applying:
        return False, None
    return True, abs(deviation) / abs(rate)

def _best_match(separation: float, config: AspectConfig) -> Optional[Tuple[AspectDefinition, float]]:
    best: Optional[Tuple[AspectDefinition, float]] = None
    for d in config.definitions:
        deviation = abs(separation - d.angle)
        if deviation > d.orb:
            continue
        # strict < keeps the earlier (higher-priority) definition on ties
        if best is None or deviation < best[1]:
            best = (d, deviation)
    return best

def _aspect_for_pair(a: Body, b: Body, config: AspectConfig) -> Optional[Aspect]:
    sep = shortest_distance(a.longitude, b.longitude)
    match = _best_match(sep, config)
    if match is None:
        return None
    d, deviation = match
    applying, tte = _motion(a, b, sep, d.angle)
    return Aspect(
        body1=a.name, body2=b.name, type=d.name, angle=d.angle,
        separation=sep, orb_used=deviation, max_orb=d.orb,
        strength=_strength(deviation, d.orb), applying=applying,
        exact=deviation <= EXACT_TOLERANCE_DEG, time_to_exact=tte,
    )

# ─────────────────────────────────────────────────────────────────────────────
# PURE Geometry API (NO side effects)
# ─────────────────────────────────────────────────────────────────────────────

def find_aspects(bodies: Iterable[BodyLike], config: Optional[AspectConfig] = None) -> List[Aspect]:
    """
    PURE geometry: at most one aspect per unordered pair (the tightest match).
    - bodies: Body objects or {name, longitude, velocity?} records, ≥ 2.
    - config: AspectConfig (majors with default orbs if omitted).
    Pairs are visited in ascending input order, so output order is stable.
    """
    cfg = config or AspectConfig.default()
    parsed = parse_bodies(bodies)
    out: List[Aspect] = []
    for a, b in itertools.combinations(parsed, 2):
        hit = _aspect_for_pair(a, b, cfg)
        if hit is not None:
            out.append(hit)
    log.debug("find_aspects: %d bodies, %d aspects", len(parsed), len(out))
    return out

# ─────────────────────────────────────────────────────────────────────────────
# Lookups & summary
# ─────────────────────────────────────────────────────────────────────────────

def aspects_for_body(name: str, aspects: Iterable[Aspect]) -> List[Aspect]:
    return [a for a in aspects if a.involves(name)]

def aspects_between(first: str, second: str, aspects: Iterable[Aspect]) -> List[Aspect]:
    return [a for a in aspects if a.involves(first) and a.involves(second)]

def summarize_aspects(aspects: Sequence[Aspect]) -> Dict[str, Any]:
    """
    Aggregate counts for report generators:
      - total, major, minor, applying
      - average_strength (0.0 when there are no aspects)
      - by_type counts
    """
    by_type: Dict[str, int] = {}
    for a in aspects:
        by_type[a.type] = by_type.get(a.type, 0) + 1
    n = len(aspects)
    return {
        "total": n,
        "major": sum(1 for a in aspects if a.type in MAJOR_ASPECT_ANGLES),
        "minor": sum(1 for a in aspects if a.type not in MAJOR_ASPECT_ANGLES),
        "applying": sum(1 for a in aspects if a.applying),
        "average_strength": (sum(a.strength for a in aspects) / n) if n else 0.0,
        "by_type": by_type,
    }

# ─────────────────────────────────────────────────────────────────────────────
# Plain-dict adapter
# ─────────────────────────────────────────────────────────────────────────────

def run_aspects_api(
    *,
    positions: Optional[Dict[str, float]] = None,
    velocities: Optional[Dict[str, float]] = None,
    orbs: Optional[Dict[str, float]] = None,
    aspects: Optional[List[str]] = None,
    include_minors: bool = False,
) -> Dict[str, Any]:
    """
    Thin adapter around the pure engine for callers that speak plain dicts.
    - positions: body name -> longitude (deg, [0, 360))
    - velocities: body name -> deg per time unit (optional)
    - orbs: per-aspect orb overrides, e.g. {"conjunction": 8}
    - aspects: restrict to these aspect names; minors are enabled if requested
    Validation errors propagate (InvalidInput / InvalidConfiguration).
    """
    if not positions:
        raise InvalidInput(_err("positions", "at least two positions are required", "value_error.input"))

    wanted = {str(a) for a in aspects} if aspects else None
    if wanted and any(a in MINOR_ASPECT_ANGLES for a in wanted):
        include_minors = True
    unknown = sorted(wanted - set(MAJOR_ASPECT_ANGLES) - set(MINOR_ASPECT_ANGLES)) if wanted else []
    if unknown:
        raise InvalidConfiguration(_err("aspects", f"unknown aspect(s): {', '.join(unknown)}", "value_error.config"))

    base = AspectConfig.default(include_minors=include_minors, orbs=orbs)
    config = base if wanted is None else AspectConfig(
        tuple(d for d in base.definitions if d.name in wanted)
    )
    bodies = bodies_from_positions(positions, velocities)
    hits = find_aspects(bodies, config)

    return {
        "aspects": [h.as_dict() for h in hits],
        "count": len(hits),
        "summary": summarize_aspects(hits),
        "config": {
            "orbs_used": {d.name: d.orb for d in config.definitions},
            "include_minors": include_minors,
            "allowed_aspects": sorted(wanted) if wanted else None,
        },
    }
