from __future__ import annotations

import numpy as np

from contourfill.geometry.boundary import EDGE_BOTTOM, EDGE_RIGHT, Boundary
from contourfill.regions.border import collect_border_strips, join_strips
from contourfill.regions.classify import (
    STRIP_BORDER,
    STRIP_CLOSED,
    STRIP_DANGLING,
    STRIP_OPEN,
    ClassifierConfig,
    classify_strip,
    extend_to_limits,
    strip_kind,
)
from contourfill.tracing.base import DIR_NONE, DIR_X_FORWARD, DIR_Y_FORWARD, Strip


def _boundary() -> Boundary:
    return Boundary(left=0.0, bottom=0.0, right=10.0, top=10.0)


def test_bottom_to_right_strip_is_bucketed_on_bottom_edge() -> None:
    b = _boundary()
    strip = Strip(vertices=np.array([[5.0, 0.0], [10.0, 5.0]]), plane=0, strip_id=0)
    assert classify_strip(strip, b, 0.5) == (DIR_X_FORWARD, DIR_Y_FORWARD)

    buckets = collect_border_strips([strip], b, ClassifierConfig())
    assert len(buckets[EDGE_BOTTOM]) == 1
    assert all(len(buckets[k]) == 0 for k in (1, 2, 3))
    entry = buckets[EDGE_BOTTOM][0]
    assert not entry.reverse
    assert entry.strip.start_direction == DIR_X_FORWARD
    assert entry.strip.end_direction == DIR_Y_FORWARD


def test_reversed_strip_is_filed_under_its_perimeter_first_end() -> None:
    b = _boundary()
    strip = Strip(vertices=np.array([[10.0, 5.0], [5.0, 0.0]]), plane=0, strip_id=0)
    buckets = collect_border_strips([strip], b, ClassifierConfig())
    (entry,) = buckets[EDGE_BOTTOM]
    assert entry.reverse
    np.testing.assert_allclose(entry.first_point, [5.0, 0.0])
    np.testing.assert_allclose(entry.last_point, [10.0, 5.0])
    assert entry.first_position < entry.last_position


def test_bucket_order_follows_edge_direction() -> None:
    b = _boundary()
    strips = [
        Strip(vertices=np.array([[10.0, 7.0], [8.0, 10.0]]), plane=0, strip_id=0),
        Strip(vertices=np.array([[10.0, 2.0], [2.0, 10.0]]), plane=1, strip_id=1),
    ]
    buckets = collect_border_strips(strips, b, ClassifierConfig())
    assert [e.strip.strip_id for e in buckets[EDGE_RIGHT]] == [1, 0]


def test_closed_and_open_strips() -> None:
    b = _boundary()
    ring = Strip(
        vertices=np.array([[2.0, 2.0], [4.0, 2.0], [4.0, 4.0], [2.0, 2.0]]), plane=0, strip_id=0
    )
    dangling = Strip(vertices=np.array([[0.0, 5.0], [5.0, 5.0]]), plane=0, strip_id=1)
    cfg = ClassifierConfig()
    assert classify_strip(ring, b, cfg.eps) == (DIR_NONE, DIR_NONE)
    assert strip_kind(ring, b, cfg) == STRIP_CLOSED
    assert strip_kind(dangling, b, cfg) == STRIP_DANGLING
    floating = Strip(vertices=np.array([[3.0, 5.0], [5.0, 5.0]]), plane=0, strip_id=2)
    assert strip_kind(floating, b, cfg) == STRIP_OPEN
    assert strip_kind(dangling, b, ClassifierConfig(extrapolate_to_limits=True)) == STRIP_BORDER


def test_extend_to_limits_reaches_rectangle() -> None:
    b = _boundary()
    strip = Strip(vertices=np.array([[2.0, 5.0], [5.0, 5.0]]), plane=0, strip_id=3)
    extended = extend_to_limits(strip, b, 0.5)
    np.testing.assert_allclose(extended.start, [0.0, 5.0])
    np.testing.assert_allclose(extended.end, [10.0, 5.0])
    assert extended.n_points == 4
    assert extended.strip_id == 3


def test_join_strips_meeting_inside() -> None:
    b = _boundary()
    strips = [
        Strip(vertices=np.array([[0.0, 5.0], [5.0, 5.0]]), plane=0, strip_id=0),
        Strip(vertices=np.array([[5.0, 5.0], [10.0, 5.0]]), plane=0, strip_id=1),
        Strip(vertices=np.array([[5.0, 5.0], [5.0, 10.0]]), plane=1, strip_id=0),
    ]
    joined = join_strips(strips, b, 0.5, 1e-9)
    assert len(joined) == 2
    merged = [s for s in joined if s.plane == 0]
    assert len(merged) == 1
    assert merged[0].n_points == 3
    np.testing.assert_allclose(merged[0].vertices[[0, -1]], [[0.0, 5.0], [10.0, 5.0]])
