from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from contourfill.geometry.boundary import EDGE_BOTTOM, EDGE_LEFT, EDGE_RIGHT, EDGE_TOP, Boundary
from contourfill.tracing.base import (
    DIR_NONE,
    DIR_X_BACKWARD,
    DIR_X_FORWARD,
    DIR_Y_BACKWARD,
    DIR_Y_FORWARD,
    Strip,
)

EDGE_DIRECTIONS = {
    EDGE_BOTTOM: DIR_X_FORWARD,
    EDGE_RIGHT: DIR_Y_FORWARD,
    EDGE_TOP: DIR_X_BACKWARD,
    EDGE_LEFT: DIR_Y_BACKWARD,
}
DIRECTION_EDGES = {direction: edge for edge, direction in EDGE_DIRECTIONS.items()}

STRIP_CLOSED = "closed"
STRIP_BORDER = "border"
STRIP_DANGLING = "dangling"  # one end on the rectangle
STRIP_OPEN = "open"  # line rendering only


@dataclass(frozen=True)
class ClassifierConfig:
    eps: float = 0.5
    extrapolate_to_limits: bool = False

    def __post_init__(self) -> None:
        if not self.eps > 0.0:
            raise ValueError("eps must be > 0.")


def classify_point(point: np.ndarray, boundary: Boundary, eps: float) -> str:
    """Border direction of the first edge (bottom, right, top, left) touching point."""
    edge = boundary.edge_of(point, eps)
    if edge is None:
        return DIR_NONE
    return EDGE_DIRECTIONS[edge]


def classify_strip(strip: Strip, boundary: Boundary, eps: float) -> tuple[str, str]:
    if strip.is_closed():
        return DIR_NONE, DIR_NONE
    return classify_point(strip.start, boundary, eps), classify_point(strip.end, boundary, eps)


def strip_kind(strip: Strip, boundary: Boundary, cfg: ClassifierConfig) -> str:
    if strip.is_closed():
        return STRIP_CLOSED
    start, end = classify_strip(strip, boundary, cfg.eps)
    if start != DIR_NONE and end != DIR_NONE:
        return STRIP_BORDER
    if cfg.extrapolate_to_limits:
        return STRIP_BORDER
    if start != DIR_NONE or end != DIR_NONE:
        return STRIP_DANGLING
    return STRIP_OPEN


def _ray_to_boundary(origin: np.ndarray, heading: np.ndarray, boundary: Boundary) -> np.ndarray:
    norm = float(np.linalg.norm(heading))
    if norm == 0.0:
        heading = boundary.centre - origin
        norm = float(np.linalg.norm(heading))
        if norm == 0.0:
            return boundary.snap(origin, EDGE_BOTTOM)
        heading = -heading
    d = heading / norm
    ts: list[float] = []
    if d[0] > 0:
        ts.append((boundary.right - origin[0]) / d[0])
    elif d[0] < 0:
        ts.append((boundary.left - origin[0]) / d[0])
    if d[1] > 0:
        ts.append((boundary.top - origin[1]) / d[1])
    elif d[1] < 0:
        ts.append((boundary.bottom - origin[1]) / d[1])
    t = max(0.0, min(ts))
    hit = origin + t * d
    return np.array(
        [
            float(np.clip(hit[0], boundary.left, boundary.right)),
            float(np.clip(hit[1], boundary.bottom, boundary.top)),
        ]
    )


def extend_to_limits(strip: Strip, boundary: Boundary, eps: float) -> Strip:
    """Extend interior end points along their end tangent onto the rectangle."""
    verts = strip.vertices
    head: list[np.ndarray] = []
    tail: list[np.ndarray] = []
    if classify_point(verts[0], boundary, eps) == DIR_NONE:
        head.append(_ray_to_boundary(verts[0], verts[0] - verts[1], boundary))
    if classify_point(verts[-1], boundary, eps) == DIR_NONE:
        tail.append(_ray_to_boundary(verts[-1], verts[-1] - verts[-2], boundary))
    if not head and not tail:
        return strip
    return Strip(
        vertices=np.vstack([*head, verts, *tail]),
        plane=strip.plane,
        strip_id=strip.strip_id,
        extra=strip.extra,
    )
