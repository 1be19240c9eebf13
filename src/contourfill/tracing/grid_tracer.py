from __future__ import annotations

from collections.abc import Callable
from typing import Any

import matplotlib.path as mpath
import numpy as np
from matplotlib.figure import Figure
from scipy.interpolate import RegularGridInterpolator

from contourfill.geometry.boundary import Boundary

from .base import PolylineTracer


def _iter_contour_paths(
    contour_set: Any, levels: np.ndarray
) -> list[tuple[float, list[mpath.Path]]]:
    """Return contour paths across matplotlib API variants.

    Current matplotlib exposes ``allsegs``; older releases only expose
    ``collections``. This helper normalizes both into path lists.
    """
    contour_levels = np.asarray(getattr(contour_set, "levels", levels), float)

    allsegs = getattr(contour_set, "allsegs", None)
    if allsegs is not None:
        out: list[tuple[float, list[mpath.Path]]] = []
        for level, segs in zip(contour_levels, allsegs, strict=False):
            paths: list[mpath.Path] = []
            for seg in segs:
                verts = np.asarray(seg, float)
                if verts.ndim != 2 or verts.shape[1] != 2 or verts.shape[0] < 2:
                    continue
                paths.append(mpath.Path(verts))
            out.append((float(level), paths))
        return out

    if not hasattr(contour_set, "collections"):
        raise AttributeError("ContourSet has neither 'allsegs' nor 'collections'.")
    out = []
    for level, coll in zip(contour_levels, contour_set.collections, strict=False):
        out.append((float(level), list(coll.get_paths())))
    return out


def split_path_to_polylines(path_obj: mpath.Path) -> list[np.ndarray]:
    """Split a path on MOVETO codes; CLOSEPOLY repeats the first vertex."""
    vertices = np.asarray(path_obj.vertices, float)
    codes = path_obj.codes
    if codes is None:
        return [vertices] if vertices.shape[0] >= 2 else []

    lines: list[np.ndarray] = []
    current: list[np.ndarray] = []
    for v, code in zip(vertices, codes, strict=False):
        if code == mpath.Path.MOVETO:
            if len(current) >= 2:
                lines.append(np.array(current, float))
            current = [v]
        elif code == mpath.Path.CLOSEPOLY:
            if current:
                current.append(current[0])
                lines.append(np.array(current, float))
            current = []
        else:
            current.append(v)
    if len(current) >= 2:
        lines.append(np.array(current, float))
    return lines


def grid_contour_polylines(
    X: np.ndarray, Y: np.ndarray, Z: np.ndarray, levels: np.ndarray
) -> list[tuple[float, list[np.ndarray]]]:
    fig = Figure()
    ax = fig.add_subplot(111)
    cs = ax.contour(X, Y, np.ma.masked_invalid(Z), levels=levels)
    path_groups = _iter_contour_paths(cs, levels)
    out: list[tuple[float, list[np.ndarray]]] = []
    for level, paths in path_groups:
        lines: list[np.ndarray] = []
        for path in paths:
            lines.extend(split_path_to_polylines(path))
        out.append((level, lines))
    return out


def _grid_interpolant(X: np.ndarray, Y: np.ndarray, Z: np.ndarray) -> Callable[[float, float], float]:
    interp = RegularGridInterpolator(
        (Y[:, 0], X[0, :]), Z, method="linear", bounds_error=False, fill_value=np.nan
    )

    def evaluate(x: float, y: float) -> float:
        return float(interp([[y, x]])[0])

    return evaluate


def orient_higher_left(
    line: np.ndarray, evaluate: Callable[[float, float], float], level: float, step: float
) -> np.ndarray:
    """Return the polyline running with values above ``level`` on its left.

    The field is sampled a small step to either side of the longest segments;
    the first segment with a defined sample decides.
    """
    seg = np.diff(line, axis=0)
    lengths = np.linalg.norm(seg, axis=1)
    for k in np.argsort(-lengths)[:8]:
        if lengths[k] == 0.0:
            break
        mid = 0.5 * (line[k] + line[k + 1])
        normal = np.array([-seg[k, 1], seg[k, 0]]) / lengths[k]
        left = evaluate(*(mid + step * normal))
        right = evaluate(*(mid - step * normal))
        if not np.isnan(left) and left != level:
            return line if left > level else line[::-1].copy()
        if not np.isnan(right) and right != level:
            return line if right < level else line[::-1].copy()
    return line


class GridTracer(PolylineTracer):
    """Tracer over a rectilinear grid, backed by matplotlib's contour generator.

    Grid nodes occupy the first ``n_rows * n_cols`` entries of the point array
    (row-major), traced vertices follow. Traced lines are turned to run with
    higher values on their left.
    """

    def __init__(
        self,
        X: np.ndarray,
        Y: np.ndarray,
        Z: np.ndarray,
        levels: np.ndarray,
        *,
        close_tol: float = 1e-10,
    ) -> None:
        Z = np.asarray(Z, float)
        if Z.ndim != 2:
            raise ValueError("Z must be a 2-D grid.")
        X = np.asarray(X, float)
        Y = np.asarray(Y, float)
        if X.ndim == 1 and Y.ndim == 1:
            X, Y = np.meshgrid(X, Y)
        if X.shape != Z.shape or Y.shape != Z.shape:
            raise ValueError("X, Y and Z shapes must match.")
        levels = np.asarray(levels, float).ravel()
        if levels.size == 0:
            raise ValueError("levels must not be empty.")
        if np.any(np.diff(levels) <= 0):
            raise ValueError("levels must be strictly ascending.")

        n_rows, n_cols = Z.shape
        extent = Boundary(
            left=float(np.min(X)),
            bottom=float(np.min(Y)),
            right=float(np.max(X)),
            top=float(np.max(Y)),
        )
        delta_x = extent.width / max(n_cols - 1, 1)
        delta_y = extent.height / max(n_rows - 1, 1)

        nodes = np.column_stack([X.ravel(), Y.ravel()])
        points: list[np.ndarray] = [nodes]
        offset = nodes.shape[0]
        strips: dict[int, list[tuple[int, ...]]] = {}
        evaluate = _grid_interpolant(X, Y, Z)
        step = 0.25 * min(delta_x, delta_y)
        traced = grid_contour_polylines(X, Y, Z, levels)
        for level_index, (value, lines) in enumerate(traced):
            level_strips: list[tuple[int, ...]] = []
            for line in lines:
                line = orient_higher_left(line, evaluate, value, step)
                closed = np.linalg.norm(line[0] - line[-1]) <= close_tol
                body = line[:-1] if closed else line
                if body.shape[0] < 2:
                    continue
                idx = list(range(offset, offset + body.shape[0]))
                if closed:
                    idx.append(offset)
                points.append(body)
                offset += body.shape[0]
                level_strips.append(tuple(idx))
            strips[level_index] = level_strips

        super().__init__(
            points=np.vstack(points),
            levels=levels,
            strips=strips,
            extent=extent,
            delta_x=delta_x,
            delta_y=delta_y,
            n_rows=n_rows,
            n_cols=n_cols,
            undefined=[int(i) for i in np.flatnonzero(~np.isfinite(Z.ravel()))],
            boundary_eps=1e-6 * max(delta_x, delta_y),
        )
        self.X = X
        self.Y = Y
        self.Z = Z

    def is_node_on_boundary(self, index: int) -> bool:
        if index < self.n_rows * self.n_cols:
            row, col = divmod(int(index), self.n_cols)
            return row in (0, self.n_rows - 1) or col in (0, self.n_cols - 1)
        return super().is_node_on_boundary(index)

    def field_function(self) -> Callable[[float, float], float]:
        """Bilinear interpolant of the grid, NaN outside or next to undefined nodes."""
        return _grid_interpolant(self.X, self.Y, self.Z)
