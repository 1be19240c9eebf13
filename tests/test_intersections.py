from __future__ import annotations

import numpy as np
import pytest

from contourfill.geometry.boundary import Boundary
from contourfill.regions.assembly import AssemblyConfig, assemble_regions
from contourfill.regions.border import collect_border_strips
from contourfill.regions.classify import ClassifierConfig
from contourfill.regions.intersections import (
    IntersectionConfig,
    build_intersection_graph,
    find_intersections,
    reorganise_intersecting_strips,
)
from contourfill.tracing.base import Strip


def _cross() -> list[Strip]:
    return [
        Strip(vertices=np.array([[5.0, 0.0], [5.0, 10.0]]), plane=0, strip_id=0),
        Strip(vertices=np.array([[0.0, 5.0], [10.0, 5.0]]), plane=1, strip_id=0),
    ]


def test_find_intersections_orders_by_x() -> None:
    strips = [
        Strip(vertices=np.array([[0.0, 5.0], [10.0, 5.0]]), plane=0, strip_id=0),
        Strip(vertices=np.array([[7.0, 0.0], [7.0, 10.0]]), plane=1, strip_id=0),
        Strip(vertices=np.array([[2.0, 0.0], [2.0, 10.0]]), plane=2, strip_id=0),
    ]
    found = find_intersections(strips)
    assert len(found) == 2
    np.testing.assert_allclose(found[0].point, [2.0, 5.0])
    np.testing.assert_allclose(found[1].point, [7.0, 5.0])
    assert [x.intersection_index for x in found] == [0, 1]
    assert found[0].param0 == pytest.approx(0.2)


def test_graph_has_border_and_crossing_nodes() -> None:
    strips = _cross()
    graph = build_intersection_graph(strips, find_intersections(strips))
    assert ("x", 0) in graph
    assert sum(1 for n in graph.nodes if n[0] == "b") == 4
    assert graph.degree[("x", 0)] == 4


def test_crossing_strips_are_split_into_quadrants() -> None:
    boundary = Boundary(0.0, 0.0, 10.0, 10.0)
    strips, found = reorganise_intersecting_strips(
        _cross(), boundary, 0.5, IntersectionConfig()
    )
    assert len(found) == 1
    assert len(strips) == 4
    for strip in strips:
        assert strip.extra
        assert strip.n_points == 3
        np.testing.assert_allclose(strip.vertices[1], [5.0, 5.0])

    buckets = collect_border_strips(strips, boundary, ClassifierConfig())
    entries = [entry for bucket in buckets for entry in bucket]
    regions = assemble_regions(entries, [], boundary, AssemblyConfig())
    assert len(regions) == 4
    assert [r.area for r in regions] == pytest.approx([25.0] * 4)


def test_disabled_reorganisation_keeps_strips() -> None:
    boundary = Boundary(0.0, 0.0, 10.0, 10.0)
    original = _cross()
    strips, found = reorganise_intersecting_strips(
        original, boundary, 0.5, IntersectionConfig(enabled=False)
    )
    assert found == []
    assert strips == original


def test_lens_between_two_crossings_becomes_closed_strip() -> None:
    boundary = Boundary(0.0, 0.0, 10.0, 10.0)
    strips = [
        Strip(vertices=np.array([[0.0, 5.0], [10.0, 5.0]]), plane=0, strip_id=0),
        Strip(
            vertices=np.array([[0.0, 8.0], [3.0, 2.0], [7.0, 2.0], [10.0, 8.0]]),
            plane=1,
            strip_id=0,
        ),
    ]
    out, found = reorganise_intersecting_strips(strips, boundary, 0.5, IntersectionConfig())
    assert len(found) == 2
    loops = [s for s in out if s.is_closed()]
    assert len(loops) == 1
    np.testing.assert_allclose(loops[0].vertices[0], loops[0].vertices[-1])
