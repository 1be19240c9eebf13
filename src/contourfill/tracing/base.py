from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace
from typing import Protocol

import numpy as np

from contourfill.geometry.boundary import Boundary

DIR_NONE = "none"
DIR_X_FORWARD = "x_forward"
DIR_Y_FORWARD = "y_forward"
DIR_X_BACKWARD = "x_backward"
DIR_Y_BACKWARD = "y_backward"
BORDER_DIRECTIONS = (DIR_NONE, DIR_X_FORWARD, DIR_Y_FORWARD, DIR_X_BACKWARD, DIR_Y_BACKWARD)


@dataclass(frozen=True, eq=False)
class Strip:
    """One traced polyline at a fixed level.

    ``indices`` refer to the tracer's point array; synthetic strips may carry
    vertices that are not tracer nodes, in which case ``indices`` is empty.
    ``plane`` is None for strips produced by the discontinuity resolver.
    """

    vertices: np.ndarray
    plane: int | None
    strip_id: int
    indices: tuple[int, ...] = ()
    start_direction: str = DIR_NONE
    end_direction: str = DIR_NONE
    reverse: bool = False
    extra: bool = False

    def __post_init__(self) -> None:
        verts = np.array(self.vertices, dtype=float)
        if verts.ndim != 2 or verts.shape[1] != 2:
            raise ValueError("vertices must have shape (N, 2).")
        if verts.shape[0] < 2:
            raise ValueError("a strip needs at least 2 vertices.")
        verts.setflags(write=False)
        object.__setattr__(self, "vertices", verts)
        object.__setattr__(self, "indices", tuple(int(i) for i in self.indices))
        if self.indices and len(self.indices) != verts.shape[0]:
            raise ValueError("indices length must match vertices.")
        for name in ("start_direction", "end_direction"):
            if getattr(self, name) not in BORDER_DIRECTIONS:
                raise ValueError(f"{name} must be one of {BORDER_DIRECTIONS}.")

    @property
    def start(self) -> np.ndarray:
        return self.vertices[0]

    @property
    def end(self) -> np.ndarray:
        return self.vertices[-1]

    @property
    def n_points(self) -> int:
        return int(self.vertices.shape[0])

    def is_closed(self, eps: float = 1e-9) -> bool:
        if self.indices:
            return self.indices[0] == self.indices[-1]
        return bool(np.linalg.norm(self.vertices[0] - self.vertices[-1]) <= eps)

    @property
    def on_border(self) -> bool:
        return self.start_direction != DIR_NONE or self.end_direction != DIR_NONE

    def with_directions(self, start: str, end: str, reverse: bool = False) -> Strip:
        return replace(self, start_direction=start, end_direction=end, reverse=reverse)

    def oriented_vertices(self) -> np.ndarray:
        """Vertices in canonical order (reversed when the reverse flag is set)."""
        return self.vertices[::-1] if self.reverse else self.vertices


class Tracer(Protocol):
    """Read-only view of a level-set tracer for one recompute."""

    levels: np.ndarray
    delta_x: float
    delta_y: float
    n_rows: int
    n_cols: int

    def strip_list(self, level: int) -> list[Strip]: ...

    def extra_strip_list(self, level: int) -> list[Strip]: ...

    def is_node_on_boundary(self, index: int) -> bool: ...

    def point_coordinates(self, index: int) -> np.ndarray: ...

    def undefined_point_indices(self) -> list[int]: ...

    def label_positions(self, level: int) -> list[tuple[np.ndarray, float]]: ...


@dataclass
class PolylineTracer:
    """In-memory tracer store: a shared point array and per-level index strips.

    Strips are expected to run with higher field values on their left.
    """

    points: np.ndarray
    levels: np.ndarray
    strips: dict[int, list[tuple[int, ...]]]
    extent: Boundary
    delta_x: float = 1.0
    delta_y: float = 1.0
    n_rows: int = 0
    n_cols: int = 0
    undefined: list[int] = field(default_factory=list)
    boundary_eps: float = 1e-9
    _extra: dict[int, list[Strip]] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        self.points = np.asarray(self.points, dtype=float).reshape(-1, 2)
        self.levels = np.asarray(self.levels, dtype=float).ravel()
        if self.levels.size > 1 and np.any(np.diff(self.levels) <= 0):
            raise ValueError("levels must be strictly ascending.")
        for level, strips in self.strips.items():
            if not 0 <= level < self.levels.size:
                raise ValueError(f"strip level {level} is out of range.")
            for idx in strips:
                if len(idx) < 2:
                    raise ValueError("each strip needs at least 2 indices.")

    @classmethod
    def from_polylines(
        cls,
        levels: Sequence[float],
        polylines: dict[int, Iterable[np.ndarray]],
        extent: Boundary,
        *,
        delta: tuple[float, float] = (1.0, 1.0),
        undefined_points: np.ndarray | None = None,
        eps: float = 1e-9,
    ) -> PolylineTracer:
        """Build a tracer from explicit coordinate polylines.

        Coincident vertices share one point index, so a polyline whose last vertex
        equals its first becomes a closed strip.
        """
        points: list[tuple[float, float]] = []
        lookup: dict[tuple[int, int], int] = {}
        scale = 1.0 / max(eps, 1e-15)

        def index_of(p: np.ndarray) -> int:
            key = (int(round(float(p[0]) * scale)), int(round(float(p[1]) * scale)))
            if key not in lookup:
                lookup[key] = len(points)
                points.append((float(p[0]), float(p[1])))
            return lookup[key]

        undefined: list[int] = []
        if undefined_points is not None:
            for p in np.asarray(undefined_points, float).reshape(-1, 2):
                undefined.append(index_of(p))

        strips: dict[int, list[tuple[int, ...]]] = {}
        for level, lines in polylines.items():
            strips[int(level)] = [
                tuple(index_of(p) for p in np.asarray(line, float)) for line in lines
            ]
        return cls(
            points=np.asarray(points, float).reshape(-1, 2),
            levels=np.asarray(levels, float),
            strips=strips,
            extent=extent,
            delta_x=float(delta[0]),
            delta_y=float(delta[1]),
            undefined=undefined,
            boundary_eps=eps,
        )

    def strip_list(self, level: int) -> list[Strip]:
        return [
            Strip(vertices=self.points[list(idx)], plane=level, strip_id=k, indices=idx)
            for k, idx in enumerate(self.strips.get(level, []))
        ]

    def extra_strip_list(self, level: int) -> list[Strip]:
        return self._extra.setdefault(level, [])

    def clear_extra(self) -> None:
        self._extra.clear()

    def is_node_on_boundary(self, index: int) -> bool:
        return self.extent.on_boundary(self.points[index], self.boundary_eps)

    def point_coordinates(self, index: int) -> np.ndarray:
        return self.points[index].copy()

    def undefined_point_indices(self) -> list[int]:
        return list(self.undefined)

    def label_positions(self, level: int) -> list[tuple[np.ndarray, float]]:
        """Mid-vertex of each strip and the local tangent angle in degrees."""
        out: list[tuple[np.ndarray, float]] = []
        for idx in self.strips.get(level, []):
            pts = self.points[list(idx)]
            mid = pts.shape[0] // 2
            a = pts[max(mid - 1, 0)]
            b = pts[min(mid + 1, pts.shape[0] - 1)]
            angle = float(np.degrees(np.arctan2(b[1] - a[1], b[0] - a[0])))
            if angle > 90.0:
                angle -= 180.0
            elif angle < -90.0:
                angle += 180.0
            out.append((pts[mid].copy(), angle))
        return out
