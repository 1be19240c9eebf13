from __future__ import annotations

import matplotlib.path as mpath
import numpy as np
import pytest

from contourfill.geometry.boundary import Boundary
from contourfill.tracing.base import PolylineTracer, Strip
from contourfill.tracing.grid_tracer import (
    GridTracer,
    _iter_contour_paths,
    orient_higher_left,
    split_path_to_polylines,
)


class _DummyCollection:
    def __init__(self, paths: list[mpath.Path]) -> None:
        self._paths = paths

    def get_paths(self) -> list[mpath.Path]:
        return self._paths


class _DummyCSCollections:
    def __init__(self, levels: np.ndarray, paths: list[mpath.Path]) -> None:
        self.levels = levels
        self.collections = [_DummyCollection(paths)]


class _DummyCSAllSegs:
    def __init__(self, levels: np.ndarray, segs: list[list[np.ndarray]]) -> None:
        self.levels = levels
        self.allsegs = segs


def _radial_grid() -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    xs = np.linspace(0.5, 9.5, 10)
    X, Y = np.meshgrid(xs, xs)
    return X, Y, X**2 + Y**2


def test_iter_contour_paths_with_collections() -> None:
    levels = np.array([0.5], float)
    path = mpath.Path(np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 0.0]], float))
    out = _iter_contour_paths(_DummyCSCollections(levels, [path]), levels)
    assert len(out) == 1
    assert out[0][0] == 0.5
    assert len(out[0][1]) == 1


def test_iter_contour_paths_with_allsegs_only() -> None:
    levels = np.array([0.5], float)
    seg = np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 0.0]], float)
    short = np.array([[0.0, 0.0]], float)
    out = _iter_contour_paths(_DummyCSAllSegs(levels, [[seg, short]]), levels)
    assert len(out) == 1
    assert len(out[0][1]) == 1
    assert out[0][1][0].vertices.shape == (3, 2)


def test_split_path_on_moveto_and_closepoly() -> None:
    verts = np.array(
        [[0.0, 0.0], [1.0, 0.0], [5.0, 5.0], [6.0, 5.0], [6.0, 6.0], [0.0, 0.0]], float
    )
    codes = [
        mpath.Path.MOVETO,
        mpath.Path.LINETO,
        mpath.Path.MOVETO,
        mpath.Path.LINETO,
        mpath.Path.LINETO,
        mpath.Path.CLOSEPOLY,
    ]
    lines = split_path_to_polylines(mpath.Path(verts, codes))
    assert len(lines) == 2
    assert lines[0].shape == (2, 2)
    np.testing.assert_allclose(lines[1][0], lines[1][-1])


def test_polyline_tracer_shares_coincident_points() -> None:
    extent = Boundary(0.0, 0.0, 10.0, 10.0)
    ring = np.array([[2.0, 2.0], [4.0, 2.0], [4.0, 4.0], [2.0, 2.0]])
    line = np.array([[0.0, 1.0], [10.0, 1.0]])
    tracer = PolylineTracer.from_polylines(
        [1.0, 2.0], {0: [ring], 1: [line]}, extent, undefined_points=np.array([[7.0, 7.0]])
    )
    (closed,) = tracer.strip_list(0)
    (open_line,) = tracer.strip_list(1)
    assert closed.is_closed()
    assert not open_line.is_closed()
    assert tracer.is_node_on_boundary(open_line.indices[0])
    assert not tracer.is_node_on_boundary(closed.indices[0])
    (undefined,) = tracer.undefined_point_indices()
    np.testing.assert_allclose(tracer.point_coordinates(undefined), [7.0, 7.0])

    (position, angle) = tracer.label_positions(1)[0]
    assert angle == pytest.approx(0.0)
    assert extent.on_boundary(position, 1e-9)


def test_polyline_tracer_rejects_bad_levels() -> None:
    extent = Boundary(0.0, 0.0, 1.0, 1.0)
    with pytest.raises(ValueError):
        PolylineTracer.from_polylines([2.0, 1.0], {}, extent)
    with pytest.raises(ValueError):
        PolylineTracer.from_polylines([1.0], {3: []}, extent)


def test_extra_strips_are_stored_per_level() -> None:
    tracer = PolylineTracer.from_polylines([1.0], {0: []}, Boundary(0.0, 0.0, 1.0, 1.0))
    strip = Strip(vertices=np.array([[0.0, 0.0], [1.0, 1.0]]), plane=0, strip_id=-1, extra=True)
    tracer.extra_strip_list(0).append(strip)
    assert tracer.extra_strip_list(0) == [strip]
    tracer.clear_extra()
    assert tracer.extra_strip_list(0) == []


def test_grid_tracer_traces_quarter_arcs() -> None:
    X, Y, Z = _radial_grid()
    tracer = GridTracer(X, Y, Z, np.array([25.0, 50.0]))
    assert tracer.n_rows == 10
    assert tracer.n_cols == 10
    assert tracer.delta_x == pytest.approx(1.0)
    for level, radius in ((0, 5.0), (1, np.sqrt(50.0))):
        (strip,) = tracer.strip_list(level)
        assert not strip.is_closed()
        assert tracer.extent.on_boundary(strip.start, 1e-9)
        assert tracer.extent.on_boundary(strip.end, 1e-9)
        radii = np.hypot(strip.vertices[:, 0], strip.vertices[:, 1])
        assert np.all(np.abs(radii - radius) < 0.5)


def test_grid_tracer_nodes_and_field_function() -> None:
    X, Y, Z = _radial_grid()
    Z = Z.copy()
    Z[4, 4] = np.nan
    tracer = GridTracer(X, Y, Z, np.array([25.0]))
    assert tracer.undefined_point_indices() == [44]
    assert tracer.is_node_on_boundary(0)
    assert tracer.is_node_on_boundary(9)
    assert not tracer.is_node_on_boundary(11)
    field = tracer.field_function()
    assert field(3.5, 2.5) == pytest.approx(3.5**2 + 2.5**2)
    assert np.isnan(field(20.0, 20.0))
    assert np.isnan(field(4.5, 4.5))


def test_grid_tracer_rejects_mismatched_shapes() -> None:
    X, Y, Z = _radial_grid()
    with pytest.raises(ValueError):
        GridTracer(X[:, :5], Y, Z, np.array([25.0]))
    with pytest.raises(ValueError):
        GridTracer(X, Y, Z, np.array([50.0, 25.0]))


def test_grid_tracer_runs_strips_with_higher_values_on_the_left() -> None:
    xs = np.linspace(0.0, 4.0, 5)
    X, Y = np.meshgrid(xs, xs)
    tracer = GridTracer(X, Y, X.copy(), np.array([2.5]))
    (strip,) = tracer.strip_list(0)
    assert strip.start[1] > strip.end[1]

    flipped = GridTracer(X, Y, -X, np.array([-2.5]))
    (strip,) = flipped.strip_list(0)
    assert strip.start[1] < strip.end[1]


def test_orient_higher_left_reverses_when_needed() -> None:
    def field(x: float, y: float) -> float:
        return y

    line = np.array([[0.0, 1.0], [2.0, 1.0]])
    # heading +x, the left side is +y
    np.testing.assert_allclose(orient_higher_left(line, field, 1.0, 0.1), line)
    np.testing.assert_allclose(orient_higher_left(line[::-1], field, 1.0, 0.1), line)
