# celestia/core/patterns.py
from __future__ import annotations

"""
Multi-body configurations read off the aspect graph.

Kinds:
  - grand_trine / triangle : three bodies mutually in the same aspect
  - t_square               : an opposition with a third body square to both ends
  - cluster                : ≥ N bodies inside a longitude window
  - stellium               : ≥ N bodies in one sign

Only the first match per kind is reported. Enumeration is in ascending
body index, so the earliest-found match wins ties.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
import itertools
import logging

from celestia.core.aspects import Aspect
from celestia.core.constants import (
    DEFAULT_CLUSTER_MAX_SPAN_DEG,
    DEFAULT_CLUSTER_MIN_SIZE,
    FULL_CIRCLE_DEG,
    SIGNS,
)
from celestia.core.geometry import (
    directed_separation,
    element_of,
    modality_of,
    normalize,
    sign_index,
)
from celestia.core.validators import (
    Body,
    BodyLike,
    InvalidConfiguration,
    _as_float,
    _err,
    parse_bodies,
)

__all__ = [
    "Pattern",
    "detect_patterns",
    "find_triangle",
    "find_t_square",
    "find_cluster",
    "find_stellium",
]

log = logging.getLogger(__name__)

MIXED = "mixed"


@dataclass(frozen=True)
class Pattern:
    kind: str
    bodies: Tuple[str, ...]
    descriptor: str
    strength: float
    aspect_type: Optional[str] = None
    apex: Optional[str] = None
    center: Optional[float] = None
    span: Optional[float] = None

    def as_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["bodies"] = list(self.bodies)
        return d

# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────

PairIndex = Dict[frozenset, Aspect]

def _index(aspects: Iterable[Aspect]) -> PairIndex:
    return {frozenset((a.body1, a.body2)): a for a in aspects}

def _lookup(idx: PairIndex, x: str, y: str, kind: str) -> Optional[Aspect]:
    a = idx.get(frozenset((x, y)))
    return a if a is not None and a.type == kind else None

def _common(labels: Sequence[str]) -> str:
    return labels[0] if labels and all(v == labels[0] for v in labels) else MIXED

def _mean(xs: Sequence[float]) -> float:
    return sum(xs) / len(xs) if xs else 0.0

# ─────────────────────────────────────────────────────────────────────────────
# Detectors
# ─────────────────────────────────────────────────────────────────────────────

def find_triangle(bodies: Sequence[Body], idx: PairIndex, aspect_type: str = "trine") -> Optional[Pattern]:
    for a, b, c in itertools.combinations(bodies, 3):
        legs = (
            _lookup(idx, a.name, b.name, aspect_type),
            _lookup(idx, a.name, c.name, aspect_type),
            _lookup(idx, b.name, c.name, aspect_type),
        )
        if any(leg is None for leg in legs):
            continue
        return Pattern(
            kind="grand_trine" if aspect_type == "trine" else "triangle",
            bodies=(a.name, b.name, c.name),
            descriptor=_common([element_of(x.longitude) for x in (a, b, c)]),
            strength=_mean([leg.strength for leg in legs]),  # type: ignore[union-attr]
            aspect_type=aspect_type,
        )
    return None

def find_t_square(bodies: Sequence[Body], idx: PairIndex) -> Optional[Pattern]:
    for a, b in itertools.combinations(bodies, 2):
        opp = _lookup(idx, a.name, b.name, "opposition")
        if opp is None:
            continue
        for apex in bodies:
            if apex.name in (a.name, b.name):
                continue
            sq1 = _lookup(idx, a.name, apex.name, "square")
            sq2 = _lookup(idx, b.name, apex.name, "square")
            if sq1 is None or sq2 is None:
                continue
            return Pattern(
                kind="t_square",
                bodies=(a.name, b.name, apex.name),
                descriptor=_common([modality_of(x.longitude) for x in (a, b, apex)]),
                strength=_mean([opp.strength, sq1.strength, sq2.strength]),
                aspect_type="opposition",
                apex=apex.name,
            )
    return None

def find_cluster(
    bodies: Sequence[Body],
    idx: PairIndex,
    *,
    min_size: int = DEFAULT_CLUSTER_MIN_SIZE,
    max_span: float = DEFAULT_CLUSTER_MAX_SPAN_DEG,
    weights: Optional[Mapping[str, float]] = None,
) -> Optional[Pattern]:
    """
    Window anchored on each body: members lie within `max_span` counter-clockwise
    of the anchor, so a cluster straddling 0° is measured as one arc.
    """
    best: Optional[Tuple[Body, List[Tuple[Body, float]]]] = None
    for anchor in bodies:
        members = []
        for b in bodies:
            off = directed_separation(anchor.longitude, b.longitude)
            if off <= max_span:
                members.append((b, off))
        if len(members) < min_size:
            continue
        if best is None or len(members) > len(best[1]):
            best = (anchor, members)
    if best is None:
        return None

    anchor, members = best
    w = weights or {}
    total_w = sum(float(w.get(b.name, 1.0)) for b, _ in members)
    if total_w > 0.0:
        mean_off = sum(float(w.get(b.name, 1.0)) * off for b, off in members) / total_w
    else:
        mean_off = _mean([off for _, off in members])
    offsets = [off for _, off in members]
    span = max(offsets) - min(offsets)

    names = tuple(b.name for b, _ in sorted(members, key=lambda m: m[1]))
    inner = [a.strength for a in idx.values() if a.body1 in names and a.body2 in names]
    strength = _mean(inner) if inner else max(0.0, 1.0 - span / max_span)

    return Pattern(
        kind="cluster",
        bodies=names,
        descriptor=_common([SIGNS[sign_index(b.longitude)] for b, _ in members]),
        strength=strength,
        center=normalize(anchor.longitude + mean_off),
        span=span,
    )

def find_stellium(
    bodies: Sequence[Body],
    idx: PairIndex,
    *,
    min_size: int = DEFAULT_CLUSTER_MIN_SIZE,
) -> Optional[Pattern]:
    by_sign: Dict[int, List[Body]] = {}
    for b in bodies:
        by_sign.setdefault(sign_index(b.longitude), []).append(b)
    best: Optional[List[Body]] = None
    # dicts keep first-seen order, i.e. the sign of the earliest body first
    for group in by_sign.values():
        if len(group) >= min_size and (best is None or len(group) > len(best)):
            best = group
    if best is None:
        return None
    names = tuple(b.name for b in best)
    inner = [a.strength for a in idx.values() if a.body1 in names and a.body2 in names]
    lons = [b.longitude for b in best]
    return Pattern(
        kind="stellium",
        bodies=names,
        descriptor=SIGNS[sign_index(best[0].longitude)],
        strength=_mean(inner),
        center=_mean(lons),
        span=max(lons) - min(lons),
    )

# ─────────────────────────────────────────────────────────────────────────────
# Public entry point
# ─────────────────────────────────────────────────────────────────────────────

def _check_cluster_params(
    min_size: Any,
    max_span: Any,
    weights: Optional[Mapping[str, Any]] = None,
) -> Tuple[int, float, Optional[Dict[str, float]]]:
    if isinstance(min_size, bool) or not isinstance(min_size, int) or min_size < 2:
        raise InvalidConfiguration(_err("cluster_min_size", "must be an integer ≥ 2", "value_error.config"))
    span = _as_float(max_span)
    if span is None or not (0.0 < span < FULL_CIRCLE_DEG):
        raise InvalidConfiguration(_err("cluster_max_span", "must be in (0, 360)", "value_error.config"))
    if weights is None:
        return min_size, span, None
    if not isinstance(weights, Mapping):
        raise InvalidConfiguration(_err("cluster_weights", "must be a mapping of body name to weight",
                                        "type_error.config"))
    checked: Dict[str, float] = {}
    for name, raw in weights.items():
        w = _as_float(raw)
        if w is None or w < 0.0:
            raise InvalidConfiguration(_err(["cluster_weights", str(name)], "weight must be a finite number ≥ 0",
                                            "value_error.config"))
        checked[str(name)] = w
    return min_size, span, checked

def detect_patterns(
    bodies: Iterable[BodyLike],
    aspects: Iterable[Aspect],
    *,
    triangle_aspect: str = "trine",
    cluster_min_size: int = DEFAULT_CLUSTER_MIN_SIZE,
    cluster_max_span: float = DEFAULT_CLUSTER_MAX_SPAN_DEG,
    cluster_weights: Optional[Mapping[str, float]] = None,
) -> List[Pattern]:
    """
    Search the aspect set for configurations, one of each kind at most,
    in the order triangle, t_square, cluster, stellium.
    """
    min_size, span, weights = _check_cluster_params(cluster_min_size, cluster_max_span, cluster_weights)
    parsed = parse_bodies(bodies, min_count=0)
    idx = _index(aspects)

    found: List[Pattern] = []
    for p in (
        find_triangle(parsed, idx, triangle_aspect),
        find_t_square(parsed, idx),
        find_cluster(parsed, idx, min_size=min_size, max_span=span, weights=weights),
        find_stellium(parsed, idx, min_size=min_size),
    ):
        if p is not None:
            found.append(p)
    log.debug("detect_patterns: %d bodies, %d patterns", len(parsed), len(found))
    return found
