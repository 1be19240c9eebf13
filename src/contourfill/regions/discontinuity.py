from __future__ import annotations

import logging
from dataclasses import dataclass

import matplotlib.path as mpath
import numpy as np
import shapely
from scipy.spatial import cKDTree
from shapely.geometry import MultiPoint, Polygon
from sklearn.mixture import BayesianGaussianMixture

from contourfill.geometry.boundary import Boundary
from contourfill.geometry.polygon import (
    close_ring,
    ensure_ccw,
    nearest_on_polyline,
    open_ring,
    polyline_length,
    polyline_slice,
)
from contourfill.smoothing.curves import SmoothingConfig, smooth_path
from contourfill.tracing.base import Strip, Tracer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DiscontinuityConfig:
    gmm_components: int = 19
    hull_ratio_tight: float = 0.1
    hull_ratio_loose: float = 0.4
    merge_distance_factor: float = 2.0
    min_clusters: int = 3
    max_merge_passes: int = 4
    touch_factor: float = 1.5  # vertices this many diagonals from an edge touch it
    random_state: int = 0

    def __post_init__(self) -> None:
        if self.gmm_components < 1:
            raise ValueError("gmm_components must be >= 1.")
        for name in ("hull_ratio_tight", "hull_ratio_loose"):
            if not 0.0 <= getattr(self, name) <= 1.0:
                raise ValueError(f"{name} must be in [0, 1].")
        if not self.merge_distance_factor > 0.0:
            raise ValueError("merge_distance_factor must be > 0.")
        if self.min_clusters < 1:
            raise ValueError("min_clusters must be >= 1.")


@dataclass(frozen=True, eq=False)
class DiscontinuityCluster:
    """Field-undefined points and their concave-hull ring (closed, anticlockwise)."""

    points: np.ndarray
    hull: np.ndarray

    @property
    def n_points(self) -> int:
        return int(self.points.shape[0])


def concave_hull_ring(points: np.ndarray, ratio: float, pad: float) -> np.ndarray:
    """Concave hull as a closed ring; degenerate point sets get a padded outline."""
    pts = np.unique(np.asarray(points, float), axis=0)
    geom = shapely.concave_hull(MultiPoint(pts), ratio=ratio)
    if not isinstance(geom, Polygon) or geom.is_empty or geom.area <= 0.0:
        geom = MultiPoint(pts).buffer(pad, cap_style="square", join_style="mitre")
        geom = geom.envelope if not isinstance(geom, Polygon) else geom
    ring = np.asarray(geom.exterior.coords, float)
    return close_ring(ensure_ccw(open_ring(ring)))


def gmm_subclusters(points: np.ndarray, cfg: DiscontinuityConfig) -> list[np.ndarray]:
    """Partition points with a Bayesian Gaussian mixture."""
    n = points.shape[0]
    if n < 3:
        return [points]
    model = BayesianGaussianMixture(
        n_components=min(cfg.gmm_components, n - 1),
        covariance_type="full",
        random_state=cfg.random_state,
        max_iter=200,
    )
    labels = model.fit_predict(points)
    return [points[labels == k] for k in np.unique(labels)]


def _cluster_distance(a: DiscontinuityCluster, b: DiscontinuityCluster) -> float:
    tree = cKDTree(a.points)
    dist, _ = tree.query(b.points, k=1)
    return float(np.min(dist))


def merge_clusters(
    clusters: list[DiscontinuityCluster],
    threshold: float,
    cfg: DiscontinuityConfig,
    pad: float,
) -> list[DiscontinuityCluster]:
    """Merge clusters with a nearest neighbour closer than ``threshold``.

    Stops when a pass makes no merge or fewer than ``min_clusters`` remain.
    """
    merged = list(clusters)
    for _ in range(cfg.max_merge_passes):
        changed = False
        i = 0
        while i < len(merged) and len(merged) >= cfg.min_clusters:
            j = i + 1
            while j < len(merged) and len(merged) >= cfg.min_clusters:
                if _cluster_distance(merged[i], merged[j]) < threshold:
                    pts = np.vstack([merged[i].points, merged[j].points])
                    merged[i] = DiscontinuityCluster(
                        points=pts, hull=concave_hull_ring(pts, cfg.hull_ratio_tight, pad)
                    )
                    del merged[j]
                    changed = True
                    continue
                j += 1
            i += 1
        if not changed or len(merged) < cfg.min_clusters:
            break
    return merged


def resolve_clusters(
    points: np.ndarray, resolution: tuple[float, float], cfg: DiscontinuityConfig
) -> list[DiscontinuityCluster]:
    pts = np.asarray(points, float).reshape(-1, 2)
    if pts.shape[0] == 0:
        return []
    diagonal = float(np.hypot(*resolution))
    pad = 0.5 * diagonal
    clusters = [
        DiscontinuityCluster(points=sub, hull=concave_hull_ring(sub, cfg.hull_ratio_tight, pad))
        for sub in gmm_subclusters(pts, cfg)
        if sub.shape[0] > 0
    ]
    initial = len(clusters)
    clusters = merge_clusters(clusters, cfg.merge_distance_factor * diagonal, cfg, pad)
    logger.debug("discontinuity clusters: %d subclusters -> %d", initial, len(clusters))
    return [
        DiscontinuityCluster(
            points=c.points, hull=concave_hull_ring(c.points, cfg.hull_ratio_loose, pad)
        )
        for c in clusters
    ]


def _edge_distance(points: np.ndarray, boundary: Boundary) -> np.ndarray:
    return np.min(
        np.column_stack(
            [
                points[:, 1] - boundary.bottom,
                boundary.right - points[:, 0],
                boundary.top - points[:, 1],
                points[:, 0] - boundary.left,
            ]
        ),
        axis=1,
    )


def _snap_to_nearest_edge(point: np.ndarray, boundary: Boundary) -> np.ndarray:
    d = np.array(
        [
            point[1] - boundary.bottom,
            boundary.right - point[0],
            boundary.top - point[1],
            point[0] - boundary.left,
        ]
    )
    return boundary.snap(point, int(np.argmin(d)))


def cluster_strip(
    cluster: DiscontinuityCluster, boundary: Boundary, touch_tol: float, strip_id: int
) -> Strip:
    """Synthetic strip outlining a cluster, plane None.

    A cluster touching the rectangle yields an open strip between the hull
    vertices nearest the edges, snapped onto them; an interior cluster yields
    its closed hull.
    """
    ring = open_ring(cluster.hull)
    touching = _edge_distance(ring, boundary) <= touch_tol
    if np.count_nonzero(touching) < 2 or np.all(touching):
        return Strip(vertices=close_ring(ring), plane=None, strip_id=strip_id, extra=True)

    # longest run of interior vertices, cyclically
    n = ring.shape[0]
    start = int(np.flatnonzero(touching)[0])
    best_len, best_from = -1, start
    run_from, run_len = None, 0
    for step in range(1, n + 1):
        k = (start + step) % n
        if touching[k]:
            if run_from is not None and run_len > best_len:
                best_len, best_from = run_len, run_from
            run_from, run_len = None, 0
        else:
            if run_from is None:
                run_from = k
            run_len += 1
    first = (best_from - 1) % n
    count = max(best_len, 0) + 2
    order = [(first + m) % n for m in range(count)]
    verts = ring[order].copy()
    verts[0] = _snap_to_nearest_edge(verts[0], boundary)
    verts[-1] = _snap_to_nearest_edge(verts[-1], boundary)
    return Strip(vertices=verts, plane=None, strip_id=strip_id, extra=True)


def discontinuity_strips(
    tracer: Tracer, boundary: Boundary, cfg: DiscontinuityConfig
) -> tuple[list[Strip], list[DiscontinuityCluster]]:
    indices = tracer.undefined_point_indices()
    if not indices:
        return [], []
    points = np.array([tracer.point_coordinates(i) for i in indices], float)
    clusters = resolve_clusters(points, (tracer.delta_x, tracer.delta_y), cfg)
    touch_tol = cfg.touch_factor * float(np.hypot(tracer.delta_x, tracer.delta_y))
    strips = [
        cluster_strip(cluster, boundary, touch_tol, strip_id=-(k + 1))
        for k, cluster in enumerate(clusters)
    ]
    logger.info("discontinuities: %d points in %d clusters", len(indices), len(clusters))
    return strips, clusters


def discontinuity_outlines(
    strips: list[Strip], boundary: Boundary, pad: float
) -> list[tuple[np.ndarray, bool]]:
    """Outlines that dangling level strips are stitched along, with a closed flag.

    Closed cluster outlines are padded by ``pad`` and fused, so neighbouring
    clusters of one hole share a single ring. Open cluster strips are used as
    they are.
    """
    out: list[tuple[np.ndarray, bool]] = []
    padded = [
        Polygon(open_ring(s.vertices)).buffer(pad, join_style="mitre")
        for s in strips
        if s.is_closed() and s.n_points >= 4
    ]
    if padded:
        frame = shapely.box(boundary.left, boundary.bottom, boundary.right, boundary.top)
        fused = shapely.unary_union(padded).intersection(frame)
        for geom in shapely.get_parts(fused):
            if isinstance(geom, Polygon) and not geom.is_empty and geom.area > 0.0:
                ring = ensure_ccw(open_ring(np.asarray(geom.exterior.coords, float)))
                out.append((ring, True))
    out.extend((s.vertices, False) for s in strips if not s.is_closed())
    return out


@dataclass(frozen=True, eq=False)
class _LooseEnd:
    strip: Strip
    entering: bool  # the interior end is the strip's last vertex
    param: float
    position: float

    def to_interior(self) -> np.ndarray:
        verts = self.strip.vertices
        return verts if self.entering else verts[::-1]


def _drop_consecutive(points: np.ndarray, tol: float = 1e-12) -> np.ndarray:
    pts = np.asarray(points, float)
    if pts.shape[0] < 2:
        return pts
    keep = np.ones(pts.shape[0], dtype=bool)
    keep[1:] = np.linalg.norm(np.diff(pts, axis=0), axis=1) > tol
    return pts[keep]


def _arc_position(vertices: np.ndarray, param: float) -> float:
    i = min(int(np.floor(param)), vertices.shape[0] - 2)
    seg = np.linalg.norm(np.diff(vertices, axis=0), axis=1)
    return float(np.sum(seg[:i]) + (param - i) * seg[i])


def _forward_slice(vertices: np.ndarray, s0: float, s1: float) -> np.ndarray:
    if s1 - s0 <= 1e-12:
        return polyline_slice(vertices, s0, s0 + 1e-12)[:1]
    return polyline_slice(vertices, s0, s1)


def _ring_arc(ring: np.ndarray, s0: float, s1: float) -> np.ndarray:
    """Shorter arc of an open ring between two fractional positions."""
    n = ring.shape[0]
    loop = np.vstack([ring, ring, ring[:1]])
    forward = _forward_slice(loop, s0, s1 if s1 >= s0 else s1 + n)
    backward = _forward_slice(loop, s1, s0 if s0 >= s1 else s0 + n)[::-1]
    return forward if polyline_length(forward) <= polyline_length(backward) else backward


def _stitch_pair(a: _LooseEnd, b: _LooseEnd, outline: np.ndarray, closed: bool) -> Strip:
    if not a.entering and b.entering:
        a, b = b, a
    if closed:
        arc = _ring_arc(outline, a.param, b.param)
    elif a.param <= b.param:
        arc = _forward_slice(outline, a.param, b.param)
    else:
        arc = _forward_slice(outline, b.param, a.param)[::-1]
    verts = _drop_consecutive(np.vstack([a.to_interior(), arc, b.to_interior()[::-1]]))
    return Strip(vertices=verts, plane=a.strip.plane, strip_id=a.strip.strip_id, extra=True)


def _stitch_single(end: _LooseEnd, outline: np.ndarray) -> Strip:
    """Run a lone interior end along an open outline to its nearer end."""
    last = float(outline.shape[0] - 1)
    to_start = _forward_slice(outline, 0.0, end.param)[::-1]
    to_end = _forward_slice(outline, end.param, last)
    span = to_start if polyline_length(to_start) <= polyline_length(to_end) else to_end
    verts = _drop_consecutive(np.vstack([end.to_interior(), span]))
    if not end.entering:
        verts = verts[::-1].copy()
    return Strip(vertices=verts, plane=end.strip.plane, strip_id=end.strip.strip_id, extra=True)


def _pick_pair(ends: list[_LooseEnd], period: float | None) -> tuple[int, int]:
    """Neighbouring ends along the outline, preferring an entering/leaving pair."""
    count = len(ends) if period is not None else len(ends) - 1
    keyed = []
    for i in range(count):
        j = (i + 1) % len(ends)
        gap = abs(ends[j].position - ends[i].position)
        if period is not None:
            gap = min(gap, period - gap)
        keyed.append((ends[i].entering == ends[j].entering, gap, i, j))
    _, _, i, j = min(keyed)
    return i, j


def stitch_dangling_strips(
    strips: list[Strip],
    outlines: list[tuple[np.ndarray, bool]],
    boundary: Boundary,
    eps: float,
    tol: float,
) -> tuple[list[Strip], list[Strip]]:
    """Close strips with one interior end along the nearest discontinuity outline.

    Interior ends within ``tol`` of an outline are grouped per outline and
    level. Neighbouring ends are joined along the shorter arc between them; a
    lone end on an open outline follows it to its nearer boundary end. Returns
    the stitched boundary-to-boundary strips and the strips left dangling.
    """
    groups: dict[tuple[int, int | None], list[_LooseEnd]] = {}
    left: list[Strip] = []
    for strip in strips:
        entering = boundary.on_boundary(strip.start, eps)
        tip = strip.end if entering else strip.start
        best: tuple[float, int, float, float] | None = None
        for k, (outline, closed) in enumerate(outlines):
            path = close_ring(outline) if closed else outline
            dist, param, _ = nearest_on_polyline(path, tip)
            if dist <= tol and (best is None or dist < best[0]):
                best = (dist, k, param, _arc_position(path, param))
        if best is None:
            left.append(strip)
            continue
        _, k, param, position = best
        groups.setdefault((k, strip.plane), []).append(
            _LooseEnd(strip=strip, entering=entering, param=param, position=position)
        )

    stitched: list[Strip] = []
    for (k, _), ends in groups.items():
        outline, closed = outlines[k]
        period = polyline_length(close_ring(outline)) if closed else None
        ends.sort(key=lambda e: e.position)
        while len(ends) >= 2:
            i, j = _pick_pair(ends, period)
            stitched.append(_stitch_pair(ends[i], ends[j], outline, closed))
            for idx in sorted((i, j), reverse=True):
                del ends[idx]
        for end in ends:
            if closed:
                left.append(end.strip)
            else:
                stitched.append(_stitch_single(end, outline))
    logger.debug("stitched %d dangling strips, %d left", len(stitched), len(left))
    return stitched, left


def discontinuity_outline_path(
    vertices: np.ndarray, cfg: SmoothingConfig, tol: float = 1e-9
) -> mpath.Path:
    """Straight segments where the outline runs parallel to an axis, curves elsewhere."""
    pts = np.asarray(vertices, float)
    verts: list[np.ndarray] = [pts[0]]
    codes: list[int] = [mpath.Path.MOVETO]
    step = np.abs(np.diff(pts, axis=0))
    parallel = (step[:, 0] <= tol) | (step[:, 1] <= tol)

    i = 0
    n_seg = parallel.shape[0]
    while i < n_seg:
        if parallel[i]:
            verts.append(pts[i + 1])
            codes.append(mpath.Path.LINETO)
            i += 1
            continue
        j = i
        while j < n_seg and not parallel[j]:
            j += 1
        before = pts[i - 1] if i > 0 else None
        after = pts[j + 1] if j + 1 < pts.shape[0] else None
        piece = smooth_path(pts[i : j + 1], cfg, before=before, after=after)
        verts.extend(piece.vertices[1:])
        if piece.codes is None:
            codes.extend([mpath.Path.LINETO] * (len(piece.vertices) - 1))
        else:
            codes.extend(int(c) for c in piece.codes[1:])
        i = j
    return mpath.Path(np.asarray(verts, float), np.asarray(codes, dtype=mpath.Path.code_type))
