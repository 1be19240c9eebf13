from __future__ import annotations

import matplotlib.path as mpath
import numpy as np


def open_ring(vertices: np.ndarray, eps: float = 1e-12) -> np.ndarray:
    """Drop the repeated closing vertex, if any."""
    pts = np.asarray(vertices, float)
    if pts.shape[0] >= 2 and np.linalg.norm(pts[0] - pts[-1]) <= eps:
        return pts[:-1]
    return pts


def close_ring(vertices: np.ndarray, eps: float = 1e-12) -> np.ndarray:
    pts = np.asarray(vertices, float)
    if pts.shape[0] == 0:
        return pts.reshape(0, 2)
    if np.linalg.norm(pts[0] - pts[-1]) > eps:
        pts = np.vstack([pts, pts[0]])
    return pts


def polygon_signed_area(vertices: np.ndarray) -> float:
    pts = open_ring(vertices)
    if pts.shape[0] < 3:
        return 0.0
    x = pts[:, 0]
    y = pts[:, 1]
    return 0.5 * float(np.sum(x * np.roll(y, -1) - np.roll(x, -1) * y))


def polygon_area(vertices: np.ndarray) -> float:
    return abs(polygon_signed_area(vertices))


def ensure_ccw(points: np.ndarray) -> np.ndarray:
    return points if polygon_signed_area(points) >= 0 else points[::-1].copy()


def polygon_centroid(vertices: np.ndarray) -> np.ndarray:
    """Area centroid, falling back to the vertex mean for degenerate rings."""
    pts = open_ring(vertices)
    if pts.shape[0] == 0:
        return np.array([np.nan, np.nan])
    area = polygon_signed_area(pts)
    if abs(area) < 1e-12:
        return pts.mean(axis=0)
    x = pts[:, 0]
    y = pts[:, 1]
    xn = np.roll(x, -1)
    yn = np.roll(y, -1)
    cross = x * yn - xn * y
    cx = float(np.sum((x + xn) * cross)) / (6.0 * area)
    cy = float(np.sum((y + yn) * cross)) / (6.0 * area)
    return np.array([cx, cy])


def bounding_box(vertices: np.ndarray) -> np.ndarray:
    """Return [xmin, ymin, xmax, ymax]."""
    pts = np.asarray(vertices, float)
    return np.concatenate([pts.min(axis=0), pts.max(axis=0)])


def contains_points(vertices: np.ndarray, points: np.ndarray) -> np.ndarray:
    path = mpath.Path(close_ring(vertices))
    return path.contains_points(np.atleast_2d(np.asarray(points, float)))


def contains_point(vertices: np.ndarray, point: np.ndarray) -> bool:
    return bool(contains_points(vertices, point)[0])


def ring_inside(inner: np.ndarray, outer: np.ndarray) -> bool:
    """True when every vertex of ``inner`` lies inside ``outer``."""
    pts = open_ring(inner)
    if pts.shape[0] == 0:
        return False
    return bool(np.all(contains_points(outer, pts)))


def segment_intersection(
    p0: np.ndarray, p1: np.ndarray, q0: np.ndarray, q1: np.ndarray, eps: float = 1e-12
) -> tuple[np.ndarray, float, float] | None:
    """Proper crossing of segments p0-p1 and q0-q1.

    Returns the crossing point and the two segment parameters, or None.
    """
    r = np.asarray(p1, float) - np.asarray(p0, float)
    s = np.asarray(q1, float) - np.asarray(q0, float)
    denom = r[0] * s[1] - r[1] * s[0]
    if abs(denom) < eps:
        return None
    qp = np.asarray(q0, float) - np.asarray(p0, float)
    t = (qp[0] * s[1] - qp[1] * s[0]) / denom
    u = (qp[0] * r[1] - qp[1] * r[0]) / denom
    if t <= eps or t >= 1.0 - eps or u <= eps or u >= 1.0 - eps:
        return None
    return np.asarray(p0, float) + t * r, float(t), float(u)


def _scanline_intervals(rings: list[np.ndarray], y: float) -> np.ndarray:
    xs: list[float] = []
    for ring in rings:
        pts = close_ring(ring)
        a = pts[:-1]
        b = pts[1:]
        crosses = (a[:, 1] > y) != (b[:, 1] > y)
        if not np.any(crosses):
            continue
        a = a[crosses]
        b = b[crosses]
        t = (y - a[:, 1]) / (b[:, 1] - a[:, 1])
        xs.extend((a[:, 0] + t * (b[:, 0] - a[:, 0])).tolist())
    return np.sort(np.asarray(xs, float))


def interior_sample_points(
    outer: np.ndarray, holes: list[np.ndarray] | None = None, n_scanlines: int = 16
) -> list[np.ndarray]:
    """Candidate points strictly inside ``outer`` and outside every hole.

    The centroid comes first when it qualifies, followed by the midpoints of
    the even-odd scanline intervals from the widest down.
    """
    holes = holes or []
    out: list[np.ndarray] = []
    centroid = polygon_centroid(outer)
    if np.all(np.isfinite(centroid)) and contains_point(outer, centroid):
        if not any(contains_point(hole, centroid) for hole in holes):
            out.append(centroid)

    rings = [outer, *holes]
    bbox = bounding_box(outer)
    spans: list[tuple[float, np.ndarray]] = []
    for frac in (np.arange(n_scanlines) + 0.5) / n_scanlines:
        y = bbox[1] + frac * (bbox[3] - bbox[1])
        xs = _scanline_intervals(rings, y)
        for x0, x1 in zip(xs[0::2], xs[1::2], strict=False):
            if x1 > x0:
                spans.append((float(x1 - x0), np.array([0.5 * (x0 + x1), y])))
    spans.sort(key=lambda item: -item[0])
    out.extend(point for _, point in spans)
    if not out and np.all(np.isfinite(centroid)):
        out.append(centroid)
    return out


def interior_sample_point(
    outer: np.ndarray, holes: list[np.ndarray] | None = None, n_scanlines: int = 16
) -> np.ndarray:
    """A point strictly inside ``outer`` and outside every hole.

    Uses the centroid when it qualifies, otherwise the midpoint of the widest
    scanline interval of the even-odd fill.
    """
    candidates = interior_sample_points(outer, holes, n_scanlines)
    if not candidates:
        return polygon_centroid(outer)
    return candidates[0]


def point_at_param(vertices: np.ndarray, param: float) -> np.ndarray:
    """Point at a fractional vertex position along a polyline."""
    i = min(int(np.floor(param)), vertices.shape[0] - 2)
    t = param - i
    return (1.0 - t) * vertices[i] + t * vertices[i + 1]


def polyline_slice(vertices: np.ndarray, s0: float, s1: float) -> np.ndarray:
    """Polyline between fractional vertex positions s0 < s1."""
    inner = [k for k in range(int(np.floor(s0)) + 1, int(np.ceil(s1))) if s0 < k < s1]
    pts = [point_at_param(vertices, s0), *(vertices[k] for k in inner), point_at_param(vertices, s1)]
    return np.asarray(pts, float)


def nearest_on_polyline(vertices: np.ndarray, point: np.ndarray) -> tuple[float, float, np.ndarray]:
    """Distance, fractional vertex position and foot of the nearest point."""
    pts = np.asarray(vertices, float)
    p = np.asarray(point, float)
    a = pts[:-1]
    d = pts[1:] - a
    length2 = np.einsum("ij,ij->i", d, d)
    t = np.einsum("ij,ij->i", p - a, d) / np.where(length2 > 0.0, length2, 1.0)
    t = np.clip(t, 0.0, 1.0)
    feet = a + t[:, None] * d
    dist = np.linalg.norm(feet - p, axis=1)
    k = int(np.argmin(dist))
    return float(dist[k]), k + float(t[k]), feet[k]


def polyline_length(vertices: np.ndarray) -> float:
    pts = np.asarray(vertices, float)
    if pts.shape[0] < 2:
        return 0.0
    return float(np.sum(np.linalg.norm(np.diff(pts, axis=0), axis=1)))
