# tests/conftest.py
from __future__ import annotations

"""
Pytest configuration for the celestia suite.

- Registers Hypothesis profiles for local dev and CI.
- Clears CELESTIA_* env overrides so config tests start from a known state.
"""

import os
from datetime import datetime

import pytest
from hypothesis import settings, HealthCheck

from celestia.core.validators import Body


# ──────────────────────────────────────────────────────────────────────────────
# Hypothesis profiles
# ──────────────────────────────────────────────────────────────────────────────
settings.register_profile(
    "dev",
    settings(
        deadline=None,
        max_examples=60,
        suppress_health_check=[HealthCheck.too_slow],
    ),
)
settings.register_profile(
    "ci",
    settings(
        deadline=None,
        max_examples=120,
        suppress_health_check=[HealthCheck.too_slow],
    ),
)

_profile = (
    "ci"
    if (os.getenv("CI") or os.getenv("GITHUB_ACTIONS"))
    else os.getenv("HYPOTHESIS_PROFILE", "dev")
)
settings.load_profile(_profile)


def pytest_report_header(config: pytest.Config) -> str:
    return f"Hypothesis profile: '{_profile}'"


# ──────────────────────────────────────────────────────────────────────────────
# Global fixtures
# ──────────────────────────────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def clean_celestia_env(monkeypatch):
    for key in ("CELESTIA_CONFIG", "CELESTIA_SCHEME", "CELESTIA_NESTING_DEPTH", "CELESTIA_ORBS"):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def epoch() -> datetime:
    return datetime(1990, 5, 21, 14, 30)


@pytest.fixture
def grand_trine_bodies():
    # Sun/Moon/Jupiter 120° apart in fire signs; Saturn makes no major aspect
    return [
        Body("Sun", 10.0, 1.0),
        Body("Moon", 130.0, 13.0),
        Body("Jupiter", 250.0, 0.1),
        Body("Saturn", 25.0, 0.05),
    ]
