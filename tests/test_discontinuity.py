from __future__ import annotations

import matplotlib.path as mpath
import numpy as np

from contourfill.geometry.boundary import Boundary
from contourfill.regions.discontinuity import (
    DiscontinuityCluster,
    DiscontinuityConfig,
    cluster_strip,
    concave_hull_ring,
    discontinuity_outline_path,
    discontinuity_outlines,
    discontinuity_strips,
    resolve_clusters,
    stitch_dangling_strips,
)
from contourfill.smoothing.curves import SmoothingConfig
from contourfill.tracing.base import PolylineTracer, Strip


def _block(x0: float, y0: float, nx: int, ny: int) -> np.ndarray:
    xs, ys = np.meshgrid(x0 + np.arange(nx, dtype=float), y0 + np.arange(ny, dtype=float))
    return np.column_stack([xs.ravel(), ys.ravel()])


def test_separated_clusters_are_not_merged() -> None:
    points = np.vstack([_block(10.0, 10.0, 3, 3), _block(30.0, 10.0, 3, 3)])
    clusters = resolve_clusters(points, (1.0, 1.0), DiscontinuityConfig())
    assert len(clusters) == 2
    assert sorted(c.n_points for c in clusters) == [9, 9]
    for cluster in clusters:
        assert np.allclose(cluster.hull[0], cluster.hull[-1])


def test_neighbouring_subclusters_merge() -> None:
    points = _block(0.0, 0.0, 4, 4)
    clusters = resolve_clusters(points, (1.0, 1.0), DiscontinuityConfig(min_clusters=1))
    assert len(clusters) == 1
    assert clusters[0].n_points == 16


def test_degenerate_points_get_padded_hull() -> None:
    ring = concave_hull_ring(np.array([[1.0, 1.0], [2.0, 1.0]]), 0.1, pad=0.5)
    assert ring.shape[0] >= 4
    assert np.allclose(ring[0], ring[-1])
    assert np.min(ring[:, 1]) < 1.0 < np.max(ring[:, 1])


def test_cluster_touching_edge_gives_open_strip() -> None:
    boundary = Boundary(0.0, 0.0, 10.0, 10.0)
    points = _block(0.0, 3.0, 5, 5)
    cluster = DiscontinuityCluster(points=points, hull=concave_hull_ring(points, 0.4, 0.5))
    strip = cluster_strip(cluster, boundary, touch_tol=1.5 * np.hypot(1.0, 1.0), strip_id=-1)
    assert not strip.is_closed()
    assert strip.plane is None
    assert strip.extra
    assert strip.strip_id == -1
    assert strip.start[0] == 0.0
    assert strip.end[0] == 0.0


def test_interior_cluster_gives_closed_strip() -> None:
    boundary = Boundary(0.0, 0.0, 10.0, 10.0)
    points = _block(4.0, 4.0, 2, 2)
    cluster = DiscontinuityCluster(points=points, hull=concave_hull_ring(points, 0.4, 0.5))
    strip = cluster_strip(cluster, boundary, touch_tol=1.5 * np.hypot(1.0, 1.0), strip_id=-2)
    assert strip.is_closed()
    assert strip.plane is None


def test_tracer_without_undefined_points_has_no_strips() -> None:
    tracer = PolylineTracer.from_polylines([1.0], {0: []}, Boundary(0.0, 0.0, 1.0, 1.0))
    strips, clusters = discontinuity_strips(tracer, tracer.extent, DiscontinuityConfig())
    assert strips == []
    assert clusters == []


def test_outline_keeps_axis_parallel_segments_straight() -> None:
    outline = np.array([[0.0, 0.0], [2.0, 0.0], [3.0, 1.0], [4.0, 3.0], [4.0, 5.0]])
    path = discontinuity_outline_path(outline, SmoothingConfig(mode="catmull_rom_centripetal"))
    assert path.codes[0] == mpath.Path.MOVETO
    assert path.codes[1] == mpath.Path.LINETO
    assert path.codes[-1] == mpath.Path.LINETO
    assert mpath.Path.CURVE4 in set(int(c) for c in path.codes)
    np.testing.assert_allclose(path.vertices[-1], outline[-1])


def test_dangling_ends_are_joined_around_closed_outline() -> None:
    b = Boundary(0.0, 0.0, 10.0, 10.0)
    ring = np.array([[4.0, 4.0], [6.0, 4.0], [6.0, 6.0], [4.0, 6.0]])
    upper = Strip(vertices=np.array([[5.0, 10.0], [5.0, 6.5]]), plane=0, strip_id=0)
    lower = Strip(vertices=np.array([[5.0, 3.5], [5.0, 0.0]]), plane=0, strip_id=1)
    far = Strip(vertices=np.array([[10.0, 8.0], [8.0, 8.0]]), plane=0, strip_id=2)

    stitched, left = stitch_dangling_strips([lower, far, upper], [(ring, True)], b, 0.5, 1.0)
    assert left == [far]
    assert len(stitched) == 1
    joined = stitched[0]
    assert joined.plane == 0
    np.testing.assert_allclose(joined.start, [5.0, 10.0])
    np.testing.assert_allclose(joined.end, [5.0, 0.0])
    # runs around one side of the outline, never through it
    assert np.all((joined.vertices[:, 0] <= 4.0) | (joined.vertices[:, 0] >= 5.0))
    assert np.any(np.all(np.isclose(joined.vertices, [4.0, 6.0]), axis=1))


def test_lone_end_follows_open_outline_to_rectangle() -> None:
    b = Boundary(0.0, 0.0, 10.0, 10.0)
    outline = np.array([[0.0, 4.0], [3.0, 4.0], [3.0, 6.0], [0.0, 6.0]])
    strip = Strip(vertices=np.array([[10.0, 5.0], [3.5, 5.0]]), plane=1, strip_id=0)

    stitched, left = stitch_dangling_strips([strip], [(outline, False)], b, 0.5, 1.0)
    assert left == []
    assert len(stitched) == 1
    np.testing.assert_allclose(stitched[0].start, [10.0, 5.0])
    assert b.on_boundary(stitched[0].end, 0.5)


def test_neighbouring_closed_clusters_share_one_outline() -> None:
    b = Boundary(0.0, 0.0, 20.0, 20.0)
    first = Strip(
        vertices=np.array([[5.0, 5.0], [7.0, 5.0], [7.0, 7.0], [5.0, 7.0], [5.0, 5.0]]),
        plane=None,
        strip_id=-1,
    )
    second = Strip(
        vertices=np.array([[7.5, 5.0], [9.0, 5.0], [9.0, 7.0], [7.5, 7.0], [7.5, 5.0]]),
        plane=None,
        strip_id=-2,
    )
    outlines = discontinuity_outlines([first, second], b, 0.5)
    assert len(outlines) == 1
    ring, closed = outlines[0]
    assert closed
    np.testing.assert_allclose(ring.min(axis=0), [4.5, 4.5])
    np.testing.assert_allclose(ring.max(axis=0), [9.5, 7.5])
