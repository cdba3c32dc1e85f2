# celestia/core/influence.py
from __future__ import annotations

from typing import Dict, Iterable, Mapping, Optional, Sequence
import logging

from celestia.core.aspects import Aspect, aspects_for_body
from celestia.core.constants import (
    ASPECT_MODIFIERS,
    DEFAULT_BASE_WEIGHTS,
    FALLBACK_BASE_WEIGHT,
    RULER_EMPHASIS,
)
from celestia.core.dasha import PeriodLevel
from celestia.core.validators import BodyLike, InvalidInput, _as_float, _err, parse_bodies

__all__ = ["score", "score_bodies", "ruler_weights"]

log = logging.getLogger(__name__)


def _clamp01(x: float) -> float:
    return min(1.0, max(0.0, x))

def score(
    body_name: str,
    aspects_for: Sequence[Aspect],
    base_weight: float,
    modifiers: Mapping[str, float] = ASPECT_MODIFIERS,
) -> float:
    """
    influence = base × (1 + mean(strength × modifier(type))), clipped to [0, 1].
    Aspect types missing from `modifiers` contribute 0. No aspects → base.
    """
    base = _as_float(base_weight)
    if base is None or not (0.0 <= base <= 1.0):
        raise InvalidInput(_err(["base_weights", body_name], "base weight must be in [0, 1]", "value_error.input"))
    if not aspects_for:
        return base
    terms = [a.strength * float(modifiers.get(a.type, 0.0)) for a in aspects_for]
    return _clamp01(base * (1.0 + sum(terms) / len(terms)))

def ruler_weights(
    levels: Iterable[PeriodLevel],
    base_weights: Mapping[str, float] = DEFAULT_BASE_WEIGHTS,
) -> Dict[str, float]:
    """Base weights with each active ruler emphasised once per level it rules."""
    out = dict(base_weights)
    for lv in sorted(levels, key=lambda x: x.level):
        name = lv.period.name
        w = out.get(name, FALLBACK_BASE_WEIGHT)
        out[name] = _clamp01(w * RULER_EMPHASIS.get(lv.level, 1.0))
    return out

def score_bodies(
    bodies: Iterable[BodyLike],
    aspects: Sequence[Aspect],
    base_weights: Mapping[str, float] = DEFAULT_BASE_WEIGHTS,
    *,
    active_levels: Optional[Iterable[PeriodLevel]] = None,
    modifiers: Mapping[str, float] = ASPECT_MODIFIERS,
) -> Dict[str, float]:
    """Influence per body at one instant; unknown bodies use FALLBACK_BASE_WEIGHT."""
    parsed = parse_bodies(bodies, min_count=0)
    weights = ruler_weights(active_levels, base_weights) if active_levels else dict(base_weights)
    out: Dict[str, float] = {}
    for b in parsed:
        out[b.name] = score(b.name, aspects_for_body(b.name, aspects),
                            weights.get(b.name, FALLBACK_BASE_WEIGHT), modifiers)
    log.debug("score_bodies: %d bodies scored", len(out))
    return out
