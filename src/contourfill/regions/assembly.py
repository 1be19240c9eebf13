from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field, replace

import matplotlib.path as mpath
import numpy as np

from contourfill.geometry.boundary import Boundary
from contourfill.geometry.polygon import (
    bounding_box,
    close_ring,
    polygon_area,
    polygon_centroid,
    polygon_signed_area,
    ring_inside,
)
from contourfill.tracing.base import Strip

from .border import BorderEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssemblyConfig:
    dedupe_tol: float = 0.5
    min_inner_area_ratio: float = 0.1
    area_eps: float = 1e-9

    def __post_init__(self) -> None:
        if not self.dedupe_tol > 0.0:
            raise ValueError("dedupe_tol must be > 0.")
        if not 0.0 <= self.min_inner_area_ratio <= 1.0:
            raise ValueError("min_inner_area_ratio must be in [0, 1].")


@dataclass(frozen=True)
class BorderIndex:
    """Perimeter-walk entry: a strip end point or a rectangle corner."""

    point: np.ndarray
    position: float
    slot: int | None = None  # owning strip in the entry list, None for corners
    at_start: bool = True  # entry sits at the strip's first vertex
    corner: int | None = None

    @property
    def is_corner(self) -> bool:
        return self.corner is not None


@dataclass(frozen=True, eq=False)
class ClosedPath:
    """Assembled region: a closed outer ring, its holes and bounding levels.

    Strips run with higher values on their left, so a region knows which side
    of each bounding level it lies on: ``below_levels`` holds the levels whose
    value is above the region. ``outline_mask`` flags the ring vertices that
    lie on a discontinuity outline and ``hole_outlines`` flags holes that are
    discontinuity outlines.
    """

    vertices: np.ndarray
    levels: frozenset[int]
    holes: tuple[np.ndarray, ...] = ()
    inner_levels: frozenset[int] = frozenset()
    below_levels: frozenset[int] = frozenset()
    touches_corner: bool = False
    from_closed_strip: bool = False
    fallback: bool = False
    outline_mask: np.ndarray | None = None
    hole_outlines: tuple[bool, ...] = ()
    path: mpath.Path | None = field(default=None, compare=False)

    @property
    def centroid(self) -> np.ndarray:
        return polygon_centroid(self.vertices)

    @property
    def area(self) -> float:
        return polygon_area(self.vertices) - sum(polygon_area(h) for h in self.holes)

    @property
    def bbox(self) -> np.ndarray:
        return bounding_box(self.vertices)

    @property
    def n_vertices(self) -> int:
        return int(self.vertices.shape[0])

    def bounding_levels(self) -> list[int]:
        return sorted(self.levels | self.inner_levels)

    def side_of(self, level: int) -> int:
        """-1 when the region lies below ``level``, +1 otherwise."""
        return -1 if level in self.below_levels else 1

    def is_same_region(self, other: ClosedPath, tol: float) -> bool:
        if self.n_vertices != other.n_vertices:
            return False
        if np.any(np.abs(self.centroid - other.centroid) >= tol):
            return False
        return bool(np.all(np.abs(self.bbox - other.bbox) < tol))


def build_border_indices(
    entries: Sequence[BorderEntry], boundary: Boundary
) -> tuple[list[BorderIndex], list[int | None]]:
    """Strip end points and the four corners, anticlockwise from bottom-left.

    Entries at the same position nest: corners first, then the entry whose
    partner lies furthest ahead, so that no two strips interleave.
    Returns the sorted list and, per entry, the index of its partner.
    """
    per = boundary.perimeter
    raw: list[tuple[tuple, BorderIndex]] = []
    for k, pos in enumerate(boundary.corner_positions()):
        point = boundary.corners()[k]
        raw.append(((round(pos, 9), 0, 0.0, 0), BorderIndex(point=point, position=pos, corner=k)))

    for slot, entry in enumerate(entries):
        strip = entry.strip
        for at_start, point, pos, other in (
            (True, strip.start, _pos(entry, True), _pos(entry, False)),
            (False, strip.end, _pos(entry, False), _pos(entry, True)),
        ):
            ahead = (other - pos) % per
            opening = at_start != entry.reverse
            tie = slot if opening else -(slot + 1)
            key = (round(pos, 9), 1, -ahead, tie)
            raw.append((key, BorderIndex(point=point, position=pos, slot=slot, at_start=at_start)))

    raw.sort(key=lambda item: item[0])
    indices = [item[1] for item in raw]
    where: dict[tuple[int, bool], int] = {}
    for k, bi in enumerate(indices):
        if bi.slot is not None:
            where[(bi.slot, bi.at_start)] = k
    partners: list[int | None] = []
    for bi in indices:
        if bi.slot is None:
            partners.append(None)
        else:
            partners.append(where.get((bi.slot, not bi.at_start)))
    return indices, partners


def _pos(entry: BorderEntry, at_start: bool) -> float:
    # first_position belongs to the perimeter-first end point
    if at_start != entry.reverse:
        return entry.first_position
    return entry.last_position


def _arc_length(a: BorderIndex, b: BorderIndex, per: float) -> float:
    return (b.position - a.position) % per


def walk_perimeter(
    entries: Sequence[BorderEntry], boundary: Boundary, cfg: AssemblyConfig
) -> list[ClosedPath]:
    """Stitch boundary strips and the rectangle perimeter into closed regions.

    Each walk leaves an unused gap along the perimeter; at a strip end point it
    splices in the strip and resumes after the strip's far end, until it is back
    at its start entry. A walk that cannot close is finished with a straight
    segment back to its start.
    """
    indices, partners = build_border_indices(entries, boundary)
    n = len(indices)
    per = boundary.perimeter
    used = np.zeros(n, dtype=bool)  # used[k]: gap from entry k to entry k + 1
    max_steps = 2 * n + 4
    paths: list[ClosedPath] = []

    for start in range(n):
        if used[start]:
            continue
        verts: list[np.ndarray] = [indices[start].point]
        flags: list[bool] = [False]
        levels: set[int] = set()
        below: set[int] = set()
        corner = indices[start].is_corner
        arc = False
        closed = False
        current = start
        for _ in range(max_steps):
            used[current] = True
            nxt = (current + 1) % n
            if _arc_length(indices[current], indices[nxt], per) > 0.0:
                arc = True
            if nxt == start:
                closed = True
                break
            entry = indices[nxt]
            if entry.is_corner:
                verts.append(entry.point)
                flags.append(False)
                corner = True
                current = nxt
                continue
            partner = partners[nxt]
            if partner is None:
                logger.warning("strip end point without partner at %s", entry.point)
                break
            strip = entries[entry.slot].strip
            verts.extend(strip.vertices if entry.at_start else strip.vertices[::-1])
            flags.extend([strip.plane is None] * strip.n_points)
            if strip.plane is not None:
                levels.add(strip.plane)
                # the walk keeps the region on its left
                if not entry.at_start:
                    below.add(strip.plane)
            if partner == start:
                closed = True
                break
            current = partner

        if not closed:
            logger.warning("perimeter walk from entry %d did not close; closing straight", start)
        ring, mask = _close_with_mask(*_drop_repeats(np.asarray(verts, float), np.asarray(flags)))
        if len(levels) < 2 and not corner and not arc:
            continue
        if ring.shape[0] < 4 or polygon_area(ring) <= cfg.area_eps:
            continue
        paths.append(
            ClosedPath(
                vertices=ring,
                levels=frozenset(levels),
                below_levels=frozenset(below),
                touches_corner=corner,
                fallback=not closed,
                outline_mask=mask if mask.any() else None,
            )
        )
    return paths


def _drop_repeats(points: np.ndarray, flags: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Drop consecutive repeated points; a kept point's flag ORs its repeats."""
    if points.shape[0] < 2:
        return points, flags.astype(bool)
    keep = np.ones(points.shape[0], dtype=bool)
    keep[1:] = np.any(np.abs(np.diff(points, axis=0)) > 1e-12, axis=1)
    merged = np.zeros(int(np.count_nonzero(keep)), dtype=bool)
    np.logical_or.at(merged, np.cumsum(keep) - 1, flags.astype(bool))
    return points[keep], merged


def _close_with_mask(points: np.ndarray, flags: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    ring = close_ring(points)
    mask = flags.copy()
    if ring.shape[0] > points.shape[0]:
        mask = np.append(mask, mask[0])
    elif mask.shape[0] > 1:
        mask[0] = mask[-1] = bool(mask[0] or mask[-1])
    return ring, mask


def dedupe_regions(paths: Sequence[ClosedPath], tol: float) -> list[ClosedPath]:
    out: list[ClosedPath] = []
    for path in paths:
        if any(path.is_same_region(kept, tol) for kept in out):
            logger.debug("dropping duplicate region at %s", path.centroid)
            continue
        out.append(path)
    return out


def _direct_children(
    ring: np.ndarray, loops: Sequence[Strip], exclude: int | None = None
) -> list[int]:
    inside = [
        k for k, loop in enumerate(loops) if k != exclude and ring_inside(loop.vertices, ring)
    ]
    return [
        k
        for k in inside
        if not any(
            j != k and ring_inside(loops[k].vertices, loops[j].vertices) for j in inside
        )
    ]


def attach_closed_strips(
    outer: Sequence[ClosedPath], loops: Sequence[Strip], cfg: AssemblyConfig
) -> list[ClosedPath]:
    """Record closed strips as holes and add one region per closed strip.

    A region's holes are the closed strips directly nested in it. Inner levels
    only count when the hole is larger than ``min_inner_area_ratio`` of the
    region. An anticlockwise closed strip has higher values inside.
    """
    regions: list[ClosedPath] = []
    rising = [polygon_signed_area(loop.vertices) > 0.0 for loop in loops]
    rings = [(path, None) for path in outer]
    for k, loop in enumerate(loops):
        ring = close_ring(loop.vertices)
        if loop.plane is None:
            own = ClosedPath(
                vertices=ring,
                levels=frozenset(),
                outline_mask=np.ones(ring.shape[0], dtype=bool),
            )
        else:
            own = ClosedPath(
                vertices=ring,
                levels=frozenset({loop.plane}),
                below_levels=frozenset() if rising[k] else frozenset({loop.plane}),
            )
        rings.append((own, k))

    for base, own in rings:
        ring = base.vertices
        children = _direct_children(ring, loops, exclude=own)
        area = polygon_area(ring)
        holes = tuple(close_ring(loops[k].vertices) for k in children)
        counted = [
            k
            for k in children
            if loops[k].plane is not None
            and polygon_area(loops[k].vertices) > cfg.min_inner_area_ratio * area
        ]
        below = set(base.below_levels)
        for k in counted:
            if loops[k].plane not in base.levels and rising[k]:
                below.add(loops[k].plane)
        regions.append(
            replace(
                base,
                holes=holes,
                inner_levels=frozenset(loops[k].plane for k in counted),
                below_levels=frozenset(below),
                from_closed_strip=own is not None,
                hole_outlines=tuple(loops[k].plane is None for k in children),
            )
        )
    return regions


def assemble_regions(
    entries: Sequence[BorderEntry],
    loops: Sequence[Strip],
    boundary: Boundary,
    cfg: AssemblyConfig,
) -> list[ClosedPath]:
    """Closed regions from boundary strips, closed strips and the rectangle."""
    outer = dedupe_regions(walk_perimeter(entries, boundary, cfg), cfg.dedupe_tol)
    unique_loops: list[Strip] = []
    kept_rings: list[ClosedPath] = []
    for loop in loops:
        ring = close_ring(loop.vertices)
        if polygon_area(ring) <= cfg.area_eps:
            continue
        candidate = ClosedPath(vertices=ring, levels=frozenset())
        if any(candidate.is_same_region(kept, cfg.dedupe_tol) for kept in kept_rings):
            continue
        unique_loops.append(loop)
        kept_rings.append(candidate)
    regions = attach_closed_strips(outer, unique_loops, cfg)
    logger.debug(
        "assembled %d boundary regions and %d closed regions", len(outer), len(unique_loops)
    )
    return regions
