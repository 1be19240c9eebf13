from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from contourfill.geometry.boundary import Boundary
from contourfill.tracing.base import Strip

from .classify import (
    STRIP_BORDER,
    ClassifierConfig,
    classify_strip,
    extend_to_limits,
    strip_kind,
)


@dataclass(frozen=True)
class BorderEntry:
    """A boundary strip filed under the edge of its first endpoint in perimeter order.

    ``reverse`` is set when the strip's vertex order runs against the
    anticlockwise perimeter direction.
    """

    strip: Strip
    edge: int
    vertex_index: int
    reverse: bool
    first_position: float
    last_position: float

    @property
    def first_point(self) -> np.ndarray:
        return self.strip.vertices[self.vertex_index]

    @property
    def last_point(self) -> np.ndarray:
        return self.strip.vertices[-1 - self.vertex_index]


def orient_border_strip(strip: Strip, boundary: Boundary, eps: float) -> BorderEntry | None:
    start_dir, end_dir = classify_strip(strip, boundary, eps)
    pos_start = boundary.perimeter_position(strip.start, eps)
    pos_end = boundary.perimeter_position(strip.end, eps)
    if pos_start is None or pos_end is None:
        return None

    reverse = pos_end < pos_start
    first = strip.end if reverse else strip.start
    edge = boundary.edge_of(first, eps)
    if edge is None:
        return None
    tagged = strip.with_directions(start_dir, end_dir, reverse=reverse)
    return BorderEntry(
        strip=tagged,
        edge=edge,
        vertex_index=-1 if reverse else 0,
        reverse=reverse,
        first_position=min(pos_start, pos_end),
        last_position=max(pos_start, pos_end),
    )


def collect_border_strips(
    strips: Sequence[Strip], boundary: Boundary, cfg: ClassifierConfig
) -> list[list[BorderEntry]]:
    """Bucket boundary strips into bottom, right, top and left lists.

    Each list is ordered along the canonical forward direction of its edge.
    """
    buckets: list[list[BorderEntry]] = [[], [], [], []]
    for strip in strips:
        if strip_kind(strip, boundary, cfg) != STRIP_BORDER:
            continue
        if cfg.extrapolate_to_limits:
            strip = extend_to_limits(strip, boundary, cfg.eps)
        entry = orient_border_strip(strip, boundary, cfg.eps)
        if entry is not None:
            buckets[entry.edge].append(entry)
    for bucket in buckets:
        bucket.sort(key=lambda e: e.first_position)
    return buckets


def join_strips(strips: Sequence[Strip], boundary: Boundary, eps: float, tol: float) -> list[Strip]:
    """Join open strips of one level that meet at an interior end point."""
    pending = [s for s in strips]
    joined = True
    while joined:
        joined = False
        for i in range(len(pending)):
            a = pending[i]
            if a.is_closed():
                continue
            for j in range(i + 1, len(pending)):
                b = pending[j]
                if b.is_closed() or a.plane != b.plane:
                    continue
                merged = _join_pair(a, b, boundary, eps, tol)
                if merged is not None:
                    pending[i] = merged
                    del pending[j]
                    joined = True
                    break
            if joined:
                break
    return pending


def _join_pair(a: Strip, b: Strip, boundary: Boundary, eps: float, tol: float) -> Strip | None:
    """Join two strips at a shared interior end, keeping a's direction."""
    va, vb = a.vertices, b.vertices
    for a_end in (-1, 0):
        pa = va[a_end]
        if boundary.on_boundary(pa, eps):
            continue
        for b_end in (0, -1):
            if np.linalg.norm(pa - vb[b_end]) > tol:
                continue
            second = vb if b_end == 0 else vb[::-1]
            if a_end == -1:
                verts = np.vstack([va, second[1:]])
            else:
                verts = np.vstack([second[::-1], va[1:]])
            if verts.shape[0] > 2 and np.linalg.norm(verts[0] - verts[-1]) <= tol:
                verts[-1] = verts[0]
            return Strip(vertices=verts, plane=a.plane, strip_id=a.strip_id, extra=True)
    return None
