from __future__ import annotations

from dataclasses import dataclass

import numpy as np

# Edge buckets in classification order.
EDGE_BOTTOM = 0
EDGE_RIGHT = 1
EDGE_TOP = 2
EDGE_LEFT = 3
EDGE_NAMES = ("bottom", "right", "top", "left")


@dataclass(frozen=True)
class Boundary:
    """Plot rectangle given by its four edge coordinates."""

    left: float
    bottom: float
    right: float
    top: float

    def __post_init__(self) -> None:
        for name in ("left", "bottom", "right", "top"):
            value = float(getattr(self, name))
            if not np.isfinite(value):
                raise ValueError(f"{name} must be finite.")
            object.__setattr__(self, name, value)
        if not self.left < self.right:
            raise ValueError("left must be < right.")
        if not self.bottom < self.top:
            raise ValueError("bottom must be < top.")

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.top - self.bottom

    @property
    def centre(self) -> np.ndarray:
        return np.array([0.5 * (self.left + self.right), 0.5 * (self.bottom + self.top)])

    @property
    def perimeter(self) -> float:
        return 2.0 * (self.width + self.height)

    def corners(self) -> np.ndarray:
        """Corners anticlockwise from bottom-left."""
        return np.array(
            [
                [self.left, self.bottom],
                [self.right, self.bottom],
                [self.right, self.top],
                [self.left, self.top],
            ],
            dtype=float,
        )

    def as_polygon(self) -> np.ndarray:
        corners = self.corners()
        return np.vstack([corners, corners[:1]])

    def edge_of(self, point: np.ndarray, eps: float) -> int | None:
        """Return the first edge (bottom, right, top, left) within eps of point."""
        x, y = float(point[0]), float(point[1])
        inside_x = self.left - eps <= x <= self.right + eps
        inside_y = self.bottom - eps <= y <= self.top + eps
        if inside_x and abs(y - self.bottom) < eps:
            return EDGE_BOTTOM
        if inside_y and abs(x - self.right) < eps:
            return EDGE_RIGHT
        if inside_x and abs(y - self.top) < eps:
            return EDGE_TOP
        if inside_y and abs(x - self.left) < eps:
            return EDGE_LEFT
        return None

    def on_boundary(self, point: np.ndarray, eps: float) -> bool:
        return self.edge_of(point, eps) is not None

    def snap(self, point: np.ndarray, edge: int) -> np.ndarray:
        x = float(np.clip(point[0], self.left, self.right))
        y = float(np.clip(point[1], self.bottom, self.top))
        if edge == EDGE_BOTTOM:
            y = self.bottom
        elif edge == EDGE_RIGHT:
            x = self.right
        elif edge == EDGE_TOP:
            y = self.top
        elif edge == EDGE_LEFT:
            x = self.left
        return np.array([x, y], dtype=float)

    def perimeter_position(self, point: np.ndarray, eps: float) -> float | None:
        """Anticlockwise arc position of a boundary point, measured from bottom-left.

        Returns None for points that are not on the boundary.
        """
        edge = self.edge_of(point, eps)
        if edge is None:
            return None
        x, y = self.snap(point, edge)
        w, h = self.width, self.height
        if edge == EDGE_BOTTOM:
            pos = x - self.left
        elif edge == EDGE_RIGHT:
            pos = w + (y - self.bottom)
        elif edge == EDGE_TOP:
            pos = w + h + (self.right - x)
        else:
            pos = 2.0 * w + h + (self.top - y)
        return float(pos % self.perimeter)

    def point_at(self, position: float) -> np.ndarray:
        """Inverse of ``perimeter_position``."""
        w, h = self.width, self.height
        s = float(position) % self.perimeter
        if s <= w:
            return np.array([self.left + s, self.bottom])
        s -= w
        if s <= h:
            return np.array([self.right, self.bottom + s])
        s -= h
        if s <= w:
            return np.array([self.right - s, self.top])
        s -= w
        return np.array([self.left, self.top - s])

    def corner_positions(self) -> np.ndarray:
        w, h = self.width, self.height
        return np.array([0.0, w, w + h, 2.0 * w + h], dtype=float)
