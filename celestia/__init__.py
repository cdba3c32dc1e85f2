"""
Celestia

Deterministic celestial position & period analysis: angular geometry,
aspects, multi-body patterns, nested dasha periods and influence scores.
Positions come in from the caller; no ephemeris is computed here.
"""

from .version import VERSION

__version__ = VERSION
