# tests/test_patterns.py
from __future__ import annotations

import pytest

from celestia.core.aspects import AspectConfig, AspectDefinition, find_aspects
from celestia.core.patterns import detect_patterns
from celestia.core.validators import Body, InvalidConfiguration


def _patterns(bodies, config=None, **kw):
    return detect_patterns(bodies, find_aspects(bodies, config), **kw)

def _kinds(found):
    return [p.kind for p in found]

# ─────────────────────────────────────────────────────────────────────────────
# Triangles & crosses
# ─────────────────────────────────────────────────────────────────────────────

def test_grand_trine_scenario() -> None:
    bodies = [Body("A", 0.0), Body("B", 120.0), Body("C", 240.0)]
    found = _patterns(bodies)
    assert len(found) == 1
    p = found[0]
    assert p.kind == "grand_trine"
    assert set(p.bodies) == {"A", "B", "C"}
    assert p.descriptor == "fire"
    assert p.strength == pytest.approx(1.0)

def test_grand_trine_ignores_unrelated_body(grand_trine_bodies) -> None:
    found = _patterns(grand_trine_bodies)
    assert _kinds(found) == ["grand_trine"]
    assert "Saturn" not in found[0].bodies

def test_triangle_with_custom_aspect_name() -> None:
    cfg = AspectConfig((AspectDefinition("harmonic", 120.0, 5.0),))
    bodies = [Body("A", 10.0), Body("B", 131.0), Body("C", 250.0)]
    found = _patterns(bodies, cfg, triangle_aspect="harmonic")
    assert found[0].kind == "triangle"
    assert found[0].aspect_type == "harmonic"
    assert found[0].descriptor == "fire"

def test_t_square_apex_and_modality() -> None:
    bodies = [Body("Sun", 0.0), Body("Moon", 180.0), Body("Mars", 90.0)]
    found = _patterns(bodies)
    assert _kinds(found) == ["t_square"]
    p = found[0]
    assert p.apex == "Mars"
    assert p.bodies == ("Sun", "Moon", "Mars")
    assert p.descriptor == "cardinal"

def test_no_patterns_for_scattered_bodies() -> None:
    bodies = [Body("A", 0.0), Body("B", 45.0), Body("C", 200.0)]
    assert _patterns(bodies) == []

# ─────────────────────────────────────────────────────────────────────────────
# Clusters & stellia
# ─────────────────────────────────────────────────────────────────────────────

def test_cluster_straddling_zero() -> None:
    bodies = [Body("A", 358.0), Body("B", 2.0), Body("C", 8.0)]
    found = _patterns(bodies)
    clusters = [p for p in found if p.kind == "cluster"]
    assert len(clusters) == 1
    c = clusters[0]
    assert c.bodies == ("A", "B", "C")
    assert c.span == pytest.approx(10.0)
    assert c.center == pytest.approx(358.0 + 14.0 / 3.0 - 360.0)
    assert c.descriptor == "mixed"
    # conj strengths: A-B 0.6, A-C 0.0, B-C 0.4
    assert c.strength == pytest.approx(1.0 / 3.0)
    assert "stellium" not in _kinds(found)

def test_cluster_without_aspects_uses_compactness() -> None:
    bodies = [Body("A", 0.0), Body("B", 12.0), Body("C", 24.0)]
    found = detect_patterns(bodies, [])
    c = next(p for p in found if p.kind == "cluster")
    assert c.strength == pytest.approx(1.0 - 24.0 / 30.0)
    assert c.descriptor == "Aries"

def test_cluster_weights_shift_center() -> None:
    bodies = [Body("A", 0.0), Body("B", 10.0), Body("C", 20.0)]
    found = detect_patterns(bodies, [], cluster_weights={"A": 0.0, "B": 0.0, "C": 1.0})
    c = next(p for p in found if p.kind == "cluster")
    assert c.center == pytest.approx(20.0)

def test_stellium_in_one_sign() -> None:
    bodies = [Body("Venus", 31.0), Body("Mercury", 45.0), Body("Sun", 59.0), Body("Mars", 200.0)]
    found = _patterns(bodies)
    st = next(p for p in found if p.kind == "stellium")
    assert st.descriptor == "Taurus"
    assert st.bodies == ("Venus", "Mercury", "Sun")
    assert st.span == pytest.approx(28.0)

def test_min_size_controls_cluster_and_stellium() -> None:
    bodies = [Body("A", 0.0), Body("B", 12.0), Body("C", 24.0)]
    assert detect_patterns(bodies, [], cluster_min_size=4) == []

def test_patterns_are_reported_in_fixed_kind_order() -> None:
    # grand trine plus a tight group around the first vertex
    bodies = [
        Body("A", 0.0), Body("B", 120.0), Body("C", 240.0),
        Body("D", 3.0), Body("E", 6.0),
    ]
    kinds = _kinds(_patterns(bodies))
    assert kinds.index("grand_trine") < kinds.index("cluster") < kinds.index("stellium")

@pytest.mark.parametrize("size, span", [(1, 30.0), (True, 30.0), (3, 0.0), (3, 360.0), (3, "wide")])
def test_bad_cluster_params(size, span) -> None:
    bodies = [Body("A", 0.0), Body("B", 12.0)]
    with pytest.raises(InvalidConfiguration):
        detect_patterns(bodies, [], cluster_min_size=size, cluster_max_span=span)

@pytest.mark.parametrize("weights", [{"C": -1.9}, {"A": "heavy"}, {"B": float("nan")}, [("A", 1.0)]])
def test_bad_cluster_weights(weights) -> None:
    bodies = [Body("A", 0.0), Body("B", 10.0), Body("C", 20.0)]
    with pytest.raises(InvalidConfiguration) as ei:
        detect_patterns(bodies, [], cluster_weights=weights)
    assert ei.value.errors()[0]["loc"][0] == "cluster_weights"

def test_cluster_weights_keep_center_inside_the_arc() -> None:
    bodies = [Body("A", 350.0), Body("B", 0.0), Body("C", 10.0)]
    found = detect_patterns(bodies, [], cluster_weights={"A": 3, "B": "1", "C": 0.5})
    c = next(p for p in found if p.kind == "cluster")
    assert c.center >= 350.0 or c.center <= 10.0

def test_pattern_as_dict() -> None:
    bodies = [Body("A", 0.0), Body("B", 120.0), Body("C", 240.0)]
    d = _patterns(bodies)[0].as_dict()
    assert d["kind"] == "grand_trine"
    assert d["bodies"] == ["A", "B", "C"]
