"""
Core computation modules.

Every function here is pure: positions, dates and configuration in,
immutable result records out.
"""

from .aspects import Aspect, AspectConfig, AspectDefinition, find_aspects, summarize_aspects
from .dasha import (
    VIMSHOTTARI,
    Period,
    PeriodBalance,
    PeriodLevel,
    PeriodScheme,
    active_period,
    balance_from_longitude,
    compute_balance,
    generate_sequence,
    nested_period,
)
from .geometry import normalize, shortest_distance, to_dms, from_dms
from .influence import score, score_bodies
from .patterns import Pattern, detect_patterns
from .timeline import DashaContext, TimelineEntry, build_timeline
from .validators import (
    Body,
    InvalidConfiguration,
    InvalidEpoch,
    InvalidInput,
    OutOfRange,
    ValidationError,
)

__all__ = [
    "Aspect",
    "AspectConfig",
    "AspectDefinition",
    "find_aspects",
    "summarize_aspects",
    "VIMSHOTTARI",
    "Period",
    "PeriodBalance",
    "PeriodLevel",
    "PeriodScheme",
    "active_period",
    "balance_from_longitude",
    "compute_balance",
    "generate_sequence",
    "nested_period",
    "normalize",
    "shortest_distance",
    "to_dms",
    "from_dms",
    "score",
    "score_bodies",
    "Pattern",
    "detect_patterns",
    "DashaContext",
    "TimelineEntry",
    "build_timeline",
    "Body",
    "InvalidConfiguration",
    "InvalidEpoch",
    "InvalidInput",
    "OutOfRange",
    "ValidationError",
]
