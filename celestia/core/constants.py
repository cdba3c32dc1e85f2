# -*- coding: utf-8 -*-
"""
Celestia: core constants

Purpose
-------
Single source of truth for:
- aspect angles, default orbs and orb bounds
- aspect classes (major / minor) and influence modifiers
- zodiac signs, elements and modalities
- per-body base weights for influence scoring
- the default nested period (dasha) scheme tables
- engine limits (nesting depth, timeline steps)

Design
------
- Pure-Python, no external dependencies.
- Safe to import from any core module.
- Tables are read-only (MappingProxyType / tuples) and built once at import.
"""

from __future__ import annotations
from types import MappingProxyType
from typing import Mapping, Tuple

__all__ = [
    # circle
    "FULL_CIRCLE_DEG", "HALF_CIRCLE_DEG",
    # aspects
    "MAJOR_ASPECT_ANGLES", "MINOR_ASPECT_ANGLES", "DEFAULT_ORBS_DEG",
    "MIN_ORB_DEG", "MAX_ORB_DEG", "EXACT_TOLERANCE_DEG",
    "ASPECT_MODIFIERS",
    # zodiac
    "SIGNS", "SIGN_ELEMENTS", "SIGN_MODALITIES", "SIGN_SPAN_DEG",
    # influence
    "DEFAULT_BASE_WEIGHTS", "FALLBACK_BASE_WEIGHT", "RULER_EMPHASIS",
    # periods
    "VIMSHOTTARI_ORDER", "VIMSHOTTARI_YEARS", "VIMSHOTTARI_DIVISIONS",
    "DAYS_PER_YEAR",
    # limits
    "MAX_NESTING_DEPTH", "DEFAULT_NESTING_DEPTH", "MIN_SUBPERIOD_SECONDS",
    "DEFAULT_CLUSTER_MIN_SIZE", "DEFAULT_CLUSTER_MAX_SPAN_DEG",
    "MAX_TIMELINE_STEPS",
    # version tag
    "CONSTANTS_VERSION",
]

# ── version tag ───────────────────────────────────────────────────────────────
CONSTANTS_VERSION: str = "v1.0.0"

FULL_CIRCLE_DEG: float = 360.0
HALF_CIRCLE_DEG: float = 180.0

# ── aspect geometry ──────────────────────────────────────────────────────────
# Insertion order is the exactness priority used to break ties.
MAJOR_ASPECT_ANGLES: Mapping[str, float] = MappingProxyType({
    "conjunction": 0.0,
    "opposition": 180.0,
    "trine": 120.0,
    "square": 90.0,
    "sextile": 60.0,
})

MINOR_ASPECT_ANGLES: Mapping[str, float] = MappingProxyType({
    "quincunx": 150.0,
    "semisextile": 30.0,
    "semisquare": 45.0,
    "sesquiquadrate": 135.0,
})

DEFAULT_ORBS_DEG: Mapping[str, float] = MappingProxyType({
    # majors
    "conjunction": 10.0,
    "opposition": 10.0,
    "trine": 8.0,
    "square": 8.0,
    "sextile": 6.0,
    # minors
    "quincunx": 3.0,
    "semisextile": 2.0,
    "semisquare": 2.0,
    "sesquiquadrate": 2.0,
})

# Orbs must lie in (MIN_ORB_DEG, MAX_ORB_DEG].
MIN_ORB_DEG: float = 0.0
MAX_ORB_DEG: float = 15.0

# Deviation below this counts as an exact aspect.
EXACT_TOLERANCE_DEG: float = 1e-9

# Signed influence modifiers: harmonious > 0, discordant < 0.
ASPECT_MODIFIERS: Mapping[str, float] = MappingProxyType({
    "conjunction": 0.9,
    "trine": 1.0,
    "sextile": 0.7,
    "semisextile": 0.3,
    "square": -0.9,
    "opposition": -1.0,
    "quincunx": -0.4,
    "semisquare": -0.5,
    "sesquiquadrate": -0.5,
})

# ── zodiac ───────────────────────────────────────────────────────────────────
SIGN_SPAN_DEG: float = 30.0

SIGNS: Tuple[str, ...] = (
    "Aries", "Taurus", "Gemini", "Cancer", "Leo", "Virgo",
    "Libra", "Scorpio", "Sagittarius", "Capricorn", "Aquarius", "Pisces",
)

SIGN_ELEMENTS: Mapping[str, str] = MappingProxyType({
    sign: ("fire", "earth", "air", "water")[i % 4] for i, sign in enumerate(SIGNS)
})

SIGN_MODALITIES: Mapping[str, str] = MappingProxyType({
    sign: ("cardinal", "fixed", "mutable")[i % 3] for i, sign in enumerate(SIGNS)
})

# ── influence scoring ────────────────────────────────────────────────────────
DEFAULT_BASE_WEIGHTS: Mapping[str, float] = MappingProxyType({
    "Sun": 0.80, "Moon": 0.80,
    "Mercury": 0.60, "Venus": 0.60, "Mars": 0.60,
    "Jupiter": 0.70, "Saturn": 0.70,
    "Uranus": 0.50, "Neptune": 0.50, "Pluto": 0.50,
    "Rahu": 0.55, "Ketu": 0.55,
})
FALLBACK_BASE_WEIGHT: float = 0.5

# Base-weight multiplier for a body ruling the active period at each level.
RULER_EMPHASIS: Mapping[int, float] = MappingProxyType({
    1: 1.25,
    2: 1.15,
    3: 1.08,
    4: 1.04,
    5: 1.02,
})

# ── periods (Vimshottari) ────────────────────────────────────────────────────
VIMSHOTTARI_ORDER: Tuple[str, ...] = (
    "Ketu", "Venus", "Sun", "Moon", "Mars", "Rahu", "Jupiter", "Saturn", "Mercury",
)
VIMSHOTTARI_YEARS: Mapping[str, float] = MappingProxyType({
    "Ketu": 7.0, "Venus": 20.0, "Sun": 6.0, "Moon": 10.0, "Mars": 7.0,
    "Rahu": 18.0, "Jupiter": 16.0, "Saturn": 19.0, "Mercury": 17.0,
})
VIMSHOTTARI_DIVISIONS: int = 27     # nakshatras of 13°20'
DAYS_PER_YEAR: float = 365.25

# ── limits ───────────────────────────────────────────────────────────────────
MAX_NESTING_DEPTH: int = 5          # maha, antar, pratyantar, sookshma, prana
DEFAULT_NESTING_DEPTH: int = 3
MIN_SUBPERIOD_SECONDS: float = 60.0

DEFAULT_CLUSTER_MIN_SIZE: int = 3
DEFAULT_CLUSTER_MAX_SPAN_DEG: float = 30.0

MAX_TIMELINE_STEPS: int = 10000
