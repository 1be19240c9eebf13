from __future__ import annotations

from dataclasses import dataclass

import matplotlib.path as mpath
import numpy as np
from scipy.linalg import solve_banded

SMOOTHING_MODES = (
    "linear",
    "cubic",
    "catmull_rom_uniform",
    "catmull_rom_centripetal",
    "catmull_rom_chordal",
    "catmull_rom_custom",
    "hermite",
)
CATMULL_ROM_ALPHAS = {
    "catmull_rom_uniform": 0.0,
    "catmull_rom_centripetal": 0.5,
    "catmull_rom_chordal": 1.0,
}


@dataclass(frozen=True)
class SmoothingConfig:
    mode: str = "linear"  # see SMOOTHING_MODES
    custom_alpha: float = 0.5
    monotonic: bool = False  # hermite only
    jump_fraction: float = 0.5  # linear only, fraction of the drawing extent

    def __post_init__(self) -> None:
        if self.mode not in SMOOTHING_MODES:
            raise ValueError(f"mode must be one of {SMOOTHING_MODES}.")
        if not 0.0 <= self.custom_alpha <= 1.0:
            raise ValueError("custom_alpha must be in [0, 1].")
        if not self.jump_fraction > 0.0:
            raise ValueError("jump_fraction must be > 0.")

    @property
    def alpha(self) -> float:
        if self.mode == "catmull_rom_custom":
            return float(self.custom_alpha)
        return CATMULL_ROM_ALPHAS.get(self.mode, 0.5)


def _clean(points: np.ndarray) -> np.ndarray:
    """Drop consecutive repeated points, keeping the last point exact."""
    pts = np.asarray(points, float).reshape(-1, 2)
    if pts.shape[0] < 2:
        return pts
    keep = np.ones(pts.shape[0], dtype=bool)
    keep[1:] = np.any(pts[1:] != pts[:-1], axis=1)
    out = pts[keep]
    if out.shape[0] == 1:
        out = np.vstack([out, pts[-1]])
    return out


def cubic_spline_controls(knots: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Bezier control points of the natural cubic spline through ``knots``.

    Solves the tridiagonal system for the first control points, then derives
    the second control points from C2 continuity.
    """
    K = np.asarray(knots, float)
    n = K.shape[0] - 1
    if n < 1:
        raise ValueError("need at least 2 knots.")
    if n == 1:
        return K[:1].copy(), K[1:].copy()

    a = np.ones(n)
    b = np.full(n, 4.0)
    c = np.ones(n)
    r = 4.0 * K[:-1] + 2.0 * K[1:]
    a[0] = 0.0
    b[0] = 2.0
    r[0] = K[0] + 2.0 * K[1]
    a[-1] = 2.0
    b[-1] = 7.0
    c[-1] = 0.0
    r[-1] = 8.0 * K[n - 1] + K[n]

    ab = np.zeros((3, n))
    ab[0, 1:] = c[:-1]
    ab[1, :] = b
    ab[2, :-1] = a[1:]
    P1 = solve_banded((1, 1), ab, r)

    P2 = np.empty_like(P1)
    P2[:-1] = 2.0 * K[1:-1] - P1[1:]
    P2[-1] = 0.5 * (K[n] + P1[n - 1])
    return P1, P2


def catmull_rom_controls(
    points: np.ndarray,
    alpha: float,
    *,
    before: np.ndarray | None = None,
    after: np.ndarray | None = None,
    eps: float = 1e-5,
) -> tuple[np.ndarray, np.ndarray]:
    """Bezier control points of a Catmull-Rom spline with parameterization ``alpha``."""
    P = np.asarray(points, float)
    first = P[0] if before is None else np.asarray(before, float)
    last = P[-1] if after is None else np.asarray(after, float)
    ext = np.vstack([first, P, last])

    n = P.shape[0] - 1
    C1 = np.empty((n, 2))
    C2 = np.empty((n, 2))
    for i in range(n):
        p0, p1, p2, p3 = ext[i], ext[i + 1], ext[i + 2], ext[i + 3]
        d1 = float(np.linalg.norm(p1 - p0))
        d2 = float(np.linalg.norm(p2 - p1))
        d3 = float(np.linalg.norm(p3 - p2))
        d1a, d2a, d3a = d1**alpha, d2**alpha, d3**alpha
        d1_2a, d2_2a, d3_2a = d1a * d1a, d2a * d2a, d3a * d3a

        if d1 < eps or d2 < eps:
            C1[i] = p1
        else:
            num = d1_2a * p2 - d2_2a * p0 + (2.0 * d1_2a + 3.0 * d1a * d2a + d2_2a) * p1
            C1[i] = num / (3.0 * d1a * (d1a + d2a))
        if d3 < eps or d2 < eps:
            C2[i] = p2
        else:
            num = d3_2a * p1 - d2_2a * p3 + (2.0 * d3_2a + 3.0 * d3a * d2a + d2_2a) * p2
            C2[i] = num / (3.0 * d3a * (d3a + d2a))
    return C1, C2


def hermite_tangents(points: np.ndarray, *, monotonic: bool = False) -> np.ndarray:
    P = np.asarray(points, float)
    m = np.empty_like(P)
    m[0] = P[1] - P[0]
    m[-1] = P[-1] - P[-2]
    if P.shape[0] > 2:
        m[1:-1] = 0.5 * (P[2:] - P[:-2])
    if monotonic and is_monotonic(P):
        m = _fritsch_carlson(P, m)
    return m


def is_monotonic(points: np.ndarray) -> bool:
    """True when both coordinates are monotonic along the sequence."""
    d = np.diff(np.asarray(points, float), axis=0)
    return all(np.all(d[:, k] >= 0) or np.all(d[:, k] <= 0) for k in range(2))


def _fritsch_carlson(P: np.ndarray, m: np.ndarray) -> np.ndarray:
    m = m.copy()
    delta = np.diff(P, axis=0)
    for k in range(2):
        for i in range(delta.shape[0]):
            dk = delta[i, k]
            if dk == 0.0:
                m[i, k] = 0.0
                m[i + 1, k] = 0.0
                continue
            a = m[i, k] / dk
            b = m[i + 1, k] / dk
            if a < 0.0:
                m[i, k] = 0.0
                a = 0.0
            if b < 0.0:
                m[i + 1, k] = 0.0
                b = 0.0
            s = a * a + b * b
            if s > 9.0:
                tau = 3.0 / np.sqrt(s)
                m[i, k] = tau * a * dk
                m[i + 1, k] = tau * b * dk
    return m


def hermite_controls(points: np.ndarray, *, monotonic: bool = False) -> tuple[np.ndarray, np.ndarray]:
    P = np.asarray(points, float)
    m = hermite_tangents(P, monotonic=monotonic)
    return P[:-1] + m[:-1] / 3.0, P[1:] - m[1:] / 3.0


def _bezier_path(P: np.ndarray, C1: np.ndarray, C2: np.ndarray, closed: bool) -> mpath.Path:
    n = P.shape[0] - 1
    verts = np.empty((1 + 3 * n, 2))
    verts[0] = P[0]
    verts[1::3] = C1
    verts[2::3] = C2
    verts[3::3] = P[1:]
    codes = np.full(verts.shape[0], mpath.Path.CURVE4, dtype=mpath.Path.code_type)
    codes[0] = mpath.Path.MOVETO
    if closed:
        verts = np.vstack([verts, P[:1]])
        codes = np.append(codes, mpath.Path.CLOSEPOLY)
    return mpath.Path(verts, codes)


def _linear_path(
    P: np.ndarray, closed: bool, extent: tuple[float, float] | None, jump_fraction: float
) -> mpath.Path:
    codes = np.full(P.shape[0], mpath.Path.LINETO, dtype=mpath.Path.code_type)
    codes[0] = mpath.Path.MOVETO
    if extent is not None and not closed:
        step = np.abs(np.diff(P, axis=0))
        jumps = (step[:, 0] > jump_fraction * extent[0]) | (step[:, 1] > jump_fraction * extent[1])
        codes[1:][jumps] = mpath.Path.MOVETO
    verts = P
    if closed:
        verts = np.vstack([P, P[:1], P[:1]])
        codes = np.append(codes, [mpath.Path.LINETO, mpath.Path.CLOSEPOLY])
    return mpath.Path(verts, codes)


def smooth_path(
    points: np.ndarray,
    cfg: SmoothingConfig,
    *,
    closed: bool = False,
    extent: tuple[float, float] | None = None,
    before: np.ndarray | None = None,
    after: np.ndarray | None = None,
) -> mpath.Path:
    """Turn an ordered point list into path geometry.

    ``extent`` (width, height) enables the linear-mode jump rule for open
    polylines. ``before``/``after`` are optional context points for the
    Catmull-Rom end segments; closed rings use their own wrap-around
    neighbours. Every mode starts at ``points[0]`` and ends at ``points[-1]``.
    """
    P = _clean(points)
    if P.shape[0] < 2:
        raise ValueError("need at least 2 points.")
    if closed and P.shape[0] > 2 and np.array_equal(P[0], P[-1]):
        ring = P[:-1]
    else:
        ring = None

    if cfg.mode == "linear":
        if ring is not None:
            return _linear_path(ring, True, None, cfg.jump_fraction)
        return _linear_path(P, False, extent, cfg.jump_fraction)

    if P.shape[0] == 2 and before is None and after is None:
        return _bezier_path(P, P[:1].copy(), P[1:].copy(), False)

    if ring is not None and ring.shape[0] >= 3:
        knots = np.vstack([ring, ring[:1]])
        before = ring[-1]
        after = ring[1]
    else:
        knots = P

    if cfg.mode == "cubic":
        C1, C2 = cubic_spline_controls(knots)
    elif cfg.mode == "hermite":
        C1, C2 = hermite_controls(knots, monotonic=cfg.monotonic)
    else:
        C1, C2 = catmull_rom_controls(knots, cfg.alpha, before=before, after=after)
    return _bezier_path(knots, C1, C2, ring is not None)


def path_end_points(path: mpath.Path) -> tuple[np.ndarray, np.ndarray]:
    """First and last drawn vertex, ignoring a trailing CLOSEPOLY."""
    verts = path.vertices
    codes = path.codes
    last = -1
    if codes is not None and codes[-1] == mpath.Path.CLOSEPOLY:
        last = -2
    return verts[0], verts[last]
