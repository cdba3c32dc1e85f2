# tests/test_aspects.py
from __future__ import annotations

import pytest
from hypothesis import given, strategies as st

from celestia.core.aspects import (
    AspectConfig,
    AspectDefinition,
    aspects_between,
    aspects_for_body,
    find_aspects,
    run_aspects_api,
    summarize_aspects,
)
from celestia.core.validators import Body, InvalidConfiguration, InvalidInput

SEXTILE_ONLY = AspectConfig((AspectDefinition("sextile", 60.0, 6.0),))

lon = st.floats(min_value=0.0, max_value=359.999, allow_nan=False)
vel = st.one_of(st.none(), st.floats(min_value=-2.0, max_value=15.0, allow_nan=False))

# ─────────────────────────────────────────────────────────────────────────────
# Exactness & boundaries
# ─────────────────────────────────────────────────────────────────────────────

def test_sextile_scenario_exact() -> None:
    hits = find_aspects([Body("A", 0.0), Body("B", 60.0)], SEXTILE_ONLY)
    assert len(hits) == 1
    a = hits[0]
    assert a.type == "sextile"
    assert a.strength == 1.0
    assert a.orb_used == 0.0
    assert a.exact

def test_strength_zero_at_orb_boundary() -> None:
    hits = find_aspects([Body("A", 0.0), Body("B", 66.0)], SEXTILE_ONLY)
    assert len(hits) == 1
    assert hits[0].strength == pytest.approx(0.0, abs=1e-12)

def test_no_aspect_just_outside_orb() -> None:
    assert find_aspects([Body("A", 0.0), Body("B", 66.5)], SEXTILE_ONLY) == []

def test_separation_uses_shortest_arc() -> None:
    hits = find_aspects([Body("A", 355.0), Body("B", 5.0)])
    assert [h.type for h in hits] == ["conjunction"]
    assert hits[0].separation == pytest.approx(10.0)

def test_tightest_definition_wins_overlapping_orbs() -> None:
    cfg = AspectConfig((
        AspectDefinition("semisquare", 45.0, 10.0),
        AspectDefinition("sextile", 60.0, 10.0),
    ))
    hits = find_aspects([Body("A", 0.0), Body("B", 55.0)], cfg)
    assert hits[0].type == "sextile"

def test_equal_deviation_keeps_config_order() -> None:
    cfg = AspectConfig((
        AspectDefinition("semisquare", 45.0, 10.0),
        AspectDefinition("sextile", 60.0, 10.0),
    ))
    hits = find_aspects([Body("A", 0.0), Body("B", 52.5)], cfg)
    assert hits[0].type == "semisquare"

# ─────────────────────────────────────────────────────────────────────────────
# Applying / separating
# ─────────────────────────────────────────────────────────────────────────────

def test_faster_body_behind_is_applying() -> None:
    # Moon 5° behind Sun and faster: conjunction is closing
    hits = find_aspects([Body("Sun", 100.0, 1.0), Body("Moon", 95.0, 13.0)])
    a = hits[0]
    assert a.type == "conjunction"
    assert a.applying
    assert a.time_to_exact == pytest.approx(5.0 / 12.0)

def test_faster_body_ahead_is_separating() -> None:
    hits = find_aspects([Body("Sun", 100.0, 1.0), Body("Moon", 105.0, 13.0)])
    assert not hits[0].applying
    assert hits[0].time_to_exact is None

def test_applying_across_the_half_circle() -> None:
    # directed separation 245°, shortest 115°: B moving on shrinks the arc away from 120
    hits = find_aspects([Body("A", 0.0, 0.0), Body("B", 245.0, 1.0)])
    a = hits[0]
    assert a.type == "trine"
    assert a.separation == pytest.approx(115.0)
    assert not a.applying

def test_missing_velocities_are_separating() -> None:
    hits = find_aspects([Body("A", 0.0), Body("B", 95.0)])
    assert hits[0].type == "square"
    assert hits[0].applying is False

def test_exact_aspect_is_not_applying() -> None:
    hits = find_aspects([Body("A", 0.0, 1.0), Body("B", 120.0, 0.0)])
    assert hits[0].exact
    assert not hits[0].applying

# ─────────────────────────────────────────────────────────────────────────────
# Determinism & bounds
# ─────────────────────────────────────────────────────────────────────────────

@given(st.lists(st.tuples(lon, vel), min_size=2, max_size=8))
def test_find_aspects_is_deterministic_and_bounded(rows) -> None:
    bodies = [Body(f"B{i}", x, v) for i, (x, v) in enumerate(rows)]
    first = find_aspects(bodies)
    second = find_aspects(bodies)
    assert first == second
    pairs = [frozenset(a.bodies) for a in first]
    assert len(pairs) == len(set(pairs))
    for a in first:
        assert 0.0 <= a.strength <= 1.0
        assert a.orb_used <= a.max_orb
        assert 0.0 <= a.separation <= 180.0

def test_accepts_plain_records_with_aliases() -> None:
    hits = find_aspects([
        {"name": "Sun", "lon": 10.0, "speed": 1.0},
        {"name": "Mars", "longitude": 100.0},
    ])
    assert hits[0].type == "square"

# ─────────────────────────────────────────────────────────────────────────────
# Validation
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.parametrize("raw", [
    [{"name": "A", "longitude": 0.0}],
    [{"name": "A", "longitude": 0.0}, {"name": "A", "longitude": 10.0}],
    [{"name": "A", "longitude": 0.0}, {"name": "B", "longitude": 360.0}],
    [{"name": "A", "longitude": 0.0}, {"name": "B", "longitude": float("nan")}],
    [{"name": "A", "longitude": 0.0}, {"name": "", "longitude": 10.0}],
    [{"name": "A", "longitude": 0.0}, {"name": "B"}],
])
def test_invalid_bodies_raise(raw) -> None:
    with pytest.raises(InvalidInput):
        find_aspects(raw)

@pytest.mark.parametrize("angle, orb", [(-1.0, 5.0), (181.0, 5.0), (60.0, 0.0), (60.0, 15.5), ("x", 5.0)])
def test_invalid_definition_raises(angle, orb) -> None:
    with pytest.raises(InvalidConfiguration):
        AspectDefinition("bad", angle, orb)

def test_config_rejects_duplicates_and_empty() -> None:
    with pytest.raises(InvalidConfiguration):
        AspectConfig(())
    with pytest.raises(InvalidConfiguration):
        AspectConfig((AspectDefinition("x", 60, 5), AspectDefinition("x", 90, 5)))

def test_config_from_mapping_accepts_aliases() -> None:
    cfg = AspectConfig.from_mapping({
        "sextile": {"angle": 60, "orb": 4},
        "square": {"nominal_angle": "90", "max_orb": 7},
    })
    assert cfg.names() == ["sextile", "square"]
    assert cfg.get("square").angle == 90.0
    assert cfg.get("nope") is None

def test_default_config_with_minors_and_overrides() -> None:
    cfg = AspectConfig.default(include_minors=True, orbs={"trine": 5})
    assert "quincunx" in cfg.names()
    assert cfg.get("trine").orb == 5.0

# ─────────────────────────────────────────────────────────────────────────────
# Lookups, summary, adapter
# ─────────────────────────────────────────────────────────────────────────────

def test_lookups_and_summary(grand_trine_bodies) -> None:
    hits = find_aspects(grand_trine_bodies)
    assert {a.type for a in hits} == {"trine"}
    assert len(aspects_for_body("Sun", hits)) == 2
    assert aspects_for_body("Saturn", hits) == []
    assert len(aspects_between("Moon", "Jupiter", hits)) == 1

    s = summarize_aspects(hits)
    assert s["total"] == 3 and s["major"] == 3 and s["minor"] == 0
    assert s["by_type"] == {"trine": 3}
    assert s["average_strength"] == pytest.approx(1.0)
    assert summarize_aspects([])["average_strength"] == 0.0

def test_run_aspects_api_filters_and_enables_minors() -> None:
    out = run_aspects_api(
        positions={"Sun": 0.0, "Mars": 150.0, "Venus": 60.0},
        aspects=["quincunx"],
    )
    assert out["count"] == 1
    assert out["aspects"][0]["type"] == "quincunx"
    assert out["config"]["include_minors"] is True
    assert out["config"]["allowed_aspects"] == ["quincunx"]

def test_run_aspects_api_errors() -> None:
    with pytest.raises(InvalidInput):
        run_aspects_api(positions={})
    with pytest.raises(InvalidConfiguration):
        run_aspects_api(positions={"A": 0.0, "B": 10.0}, aspects=["bogus"])
