# celestia/utils/config.py
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import yaml

from celestia.core.aspects import AspectConfig
from celestia.core.constants import (
    DEFAULT_CLUSTER_MAX_SPAN_DEG,
    DEFAULT_CLUSTER_MIN_SIZE,
    DEFAULT_NESTING_DEPTH,
    MAX_NESTING_DEPTH,
)
from celestia.core.dasha import SCHEMES, PeriodScheme
from celestia.core.validators import InvalidConfiguration, _err

__all__ = ["AttrDict", "load_config", "EngineSettings", "build_engine_settings"]

log = logging.getLogger(__name__)


class AttrDict(dict):
    """Dict that also supports attribute access: cfg.aspects and cfg['aspects'] both work."""
    def __getattr__(self, item):
        try:
            return self[item]
        except KeyError as e:
            raise AttributeError(item) from e
    def __setattr__(self, key, value):
        self[key] = value

def _to_attr(obj):
    if isinstance(obj, dict):
        return AttrDict({k: _to_attr(v) for k, v in obj.items()})
    if isinstance(obj, list):
        return [_to_attr(x) for x in obj]
    return obj

def _load_json(path: str, loc: str) -> dict:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f) or {}
    except (OSError, ValueError) as e:
        raise InvalidConfiguration(_err(loc, f"cannot read JSON from {path}: {e}", "value_error.config")) from e
    if not isinstance(data, dict):
        raise InvalidConfiguration(_err(loc, "JSON override must be an object", "type_error.config"))
    return data

def _mutable_section(data: dict, key: str) -> dict:
    """Return data[key] as a mutable mapping, creating it when absent."""
    value = data.get(key)
    if value is None:
        value = data[key] = {}
    if not isinstance(value, dict):
        raise InvalidConfiguration(_err(key, "must be a mapping", "type_error.config"))
    return value

def load_config(path: Optional[str] = None) -> AttrDict:
    """
    Load YAML config from `path` (or $CELESTIA_CONFIG) and apply env overrides:
      - CELESTIA_SCHEME         (overrides periods.scheme)
      - CELESTIA_NESTING_DEPTH  (overrides periods.depth)
      - CELESTIA_ORBS           (JSON file of {aspect: orb}, merged into aspects.orbs)
    With no path at all the result holds only the overrides, so
    build_engine_settings falls back to built-in defaults.
    Returns an AttrDict for convenient access.
    """
    path = path or os.getenv("CELESTIA_CONFIG")
    data: dict = {}
    if path:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except OSError as e:
            raise InvalidConfiguration(_err("config", f"cannot read {path}: {e}", "value_error.config")) from e
        except yaml.YAMLError as e:
            raise InvalidConfiguration(_err("config", f"invalid YAML in {path}: {e}", "value_error.config")) from e
        if not isinstance(data, dict):
            raise InvalidConfiguration(_err("config", "top-level config must be a mapping", "type_error.config"))

    periods = _mutable_section(data, "periods")
    scheme = os.getenv("CELESTIA_SCHEME")
    if scheme:
        periods["scheme"] = scheme
    depth = os.getenv("CELESTIA_NESTING_DEPTH")
    if depth:
        try:
            periods["depth"] = int(depth)
        except ValueError as e:
            raise InvalidConfiguration(_err("CELESTIA_NESTING_DEPTH", "must be an integer",
                                            "value_error.config")) from e

    orbs_path = os.getenv("CELESTIA_ORBS")
    if orbs_path:
        aspects = _mutable_section(data, "aspects")
        orbs = aspects.get("orbs") or {}
        if not isinstance(orbs, dict):
            raise InvalidConfiguration(_err(["aspects", "orbs"], "must be a mapping", "type_error.config"))
        orbs = dict(orbs)
        orbs.update(_load_json(orbs_path, "CELESTIA_ORBS"))
        aspects["orbs"] = orbs

    log.debug("load_config: path=%s keys=%s", path, sorted(data))
    return _to_attr(data)

# ─────────────────────────────────────────────────────────────────────────────
# Validated engine settings
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class EngineSettings:
    aspects: AspectConfig
    scheme: PeriodScheme
    nesting_depth: int = DEFAULT_NESTING_DEPTH
    cluster_min_size: int = DEFAULT_CLUSTER_MIN_SIZE
    cluster_max_span: float = DEFAULT_CLUSTER_MAX_SPAN_DEG


def _section(cfg: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    sec = cfg.get(key) or {}
    if not isinstance(sec, Mapping):
        raise InvalidConfiguration(_err(key, "must be a mapping", "type_error.config"))
    return sec

def build_engine_settings(cfg: Optional[Mapping[str, Any]] = None) -> EngineSettings:
    """
    Turn a loaded config into validated engine objects. Every table is
    checked here, so a bad orb or duration fails before any query runs.

    aspects:
      include_minors: bool
      orbs: {name: deg}                      overrides on the built-in catalog
      definitions: {name: {angle, orb}}      replaces the catalog entirely
    periods:
      scheme: vimshottari                    or a custom mapping (order/years/divisions)
      depth: int                             1..5
    patterns:
      cluster_min_size: int
      cluster_max_span: deg
    """
    cfg = cfg or {}
    asp = _section(cfg, "aspects")
    if asp.get("definitions"):
        aspects = AspectConfig.from_mapping(asp["definitions"])
    else:
        orbs = asp.get("orbs") or {}
        if not isinstance(orbs, Mapping):
            raise InvalidConfiguration(_err("aspects.orbs", "must be a mapping", "type_error.config"))
        aspects = AspectConfig.default(include_minors=bool(asp.get("include_minors", False)))
        unknown = sorted(set(orbs) - set(aspects.names()))
        if unknown:
            raise InvalidConfiguration(_err("aspects.orbs", f"unknown aspect(s): {', '.join(unknown)}",
                                            "value_error.config"))
        aspects = AspectConfig.default(include_minors=bool(asp.get("include_minors", False)), orbs=orbs)

    per = _section(cfg, "periods")
    raw_scheme = per.get("scheme", "vimshottari")
    if isinstance(raw_scheme, Mapping):
        scheme = PeriodScheme.from_mapping(raw_scheme)
    else:
        scheme = SCHEMES.get(str(raw_scheme).strip().lower())
        if scheme is None:
            raise InvalidConfiguration(_err("periods.scheme", f"unknown period scheme '{raw_scheme}'",
                                            "value_error.config"))
    depth = per.get("depth", DEFAULT_NESTING_DEPTH)
    if isinstance(depth, bool) or not isinstance(depth, int) or not (1 <= depth <= MAX_NESTING_DEPTH):
        raise InvalidConfiguration(_err("periods.depth", f"must be an integer in [1, {MAX_NESTING_DEPTH}]",
                                        "value_error.config"))

    pat = _section(cfg, "patterns")
    min_size = pat.get("cluster_min_size", DEFAULT_CLUSTER_MIN_SIZE)
    if isinstance(min_size, bool) or not isinstance(min_size, int) or min_size < 2:
        raise InvalidConfiguration(_err("patterns.cluster_min_size", "must be an integer ≥ 2", "value_error.config"))
    max_span = pat.get("cluster_max_span", DEFAULT_CLUSTER_MAX_SPAN_DEG)
    if isinstance(max_span, bool) or not isinstance(max_span, (int, float)) or not (0 < max_span < 360):
        raise InvalidConfiguration(_err("patterns.cluster_max_span", "must be in (0, 360)", "value_error.config"))

    return EngineSettings(
        aspects=aspects,
        scheme=scheme,
        nesting_depth=depth,
        cluster_min_size=min_size,
        cluster_max_span=float(max_span),
    )
