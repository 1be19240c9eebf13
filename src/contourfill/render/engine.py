from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any

import matplotlib.path as mpath
import numpy as np
from matplotlib.transforms import Transform

from contourfill.fills.fill import ContourFill, DefaultStyle, FillTable, LineStyle, StyleStrategy
from contourfill.fills.resolver import FieldFunction, FillConfig, FillResolver
from contourfill.geometry.boundary import Boundary
from contourfill.geometry.polygon import ensure_ccw, open_ring, polygon_signed_area
from contourfill.regions.assembly import AssemblyConfig, ClosedPath, assemble_regions
from contourfill.regions.border import collect_border_strips, join_strips
from contourfill.regions.classify import (
    STRIP_BORDER,
    STRIP_CLOSED,
    STRIP_DANGLING,
    ClassifierConfig,
    extend_to_limits,
    strip_kind,
)
from contourfill.regions.discontinuity import (
    DiscontinuityCluster,
    DiscontinuityConfig,
    discontinuity_outline_path,
    discontinuity_outlines,
    discontinuity_strips,
    stitch_dangling_strips,
)
from contourfill.regions.intersections import (
    Intersection,
    IntersectionConfig,
    reorganise_intersecting_strips,
)
from contourfill.smoothing.curves import SmoothingConfig, smooth_path
from contourfill.tracing.base import Strip, Tracer

from .alignment import align_path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineConfig:
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    discontinuity: DiscontinuityConfig = field(default_factory=DiscontinuityConfig)
    intersections: IntersectionConfig = field(default_factory=IntersectionConfig)
    assembly: AssemblyConfig = field(default_factory=AssemblyConfig)
    smoothing: SmoothingConfig = field(default_factory=SmoothingConfig)
    resolve_discontinuities: bool = True
    join_strips: bool = True
    join_tol: float = 1e-9
    align_to_pixels: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EngineConfig:
        return cls(
            classifier=ClassifierConfig(**data.get("classifier", {})),
            discontinuity=DiscontinuityConfig(**data.get("discontinuity", {})),
            intersections=IntersectionConfig(**data.get("intersections", {})),
            assembly=AssemblyConfig(**data.get("assembly", {})),
            smoothing=SmoothingConfig(**data.get("smoothing", {})),
            resolve_discontinuities=bool(data.get("resolve_discontinuities", True)),
            join_strips=bool(data.get("join_strips", True)),
            join_tol=float(data.get("join_tol", 1e-9)),
            align_to_pixels=bool(data.get("align_to_pixels", False)),
        )


@dataclass(frozen=True)
class IsoLabel:
    level: int
    value: float
    position: np.ndarray
    rotation: float


@dataclass(frozen=True)
class ContourFillResult:
    regions: list[tuple[ClosedPath, ContourFill]]
    lines: list[tuple[mpath.Path, LineStyle]]
    labels: list[IsoLabel]
    fill_table: FillTable
    clusters: list[DiscontinuityCluster] = field(default_factory=list)
    intersections: list[Intersection] = field(default_factory=list)


@dataclass(frozen=True)
class _StripSets:
    border: list[Strip]
    loops: list[Strip]
    dangling: list[Strip] = field(default_factory=list)


def _closed_outline_path(ring: np.ndarray, cfg: SmoothingConfig) -> mpath.Path:
    piece = discontinuity_outline_path(np.vstack([ring, ring[:1]]), cfg)
    codes = np.append(np.asarray(piece.codes, dtype=mpath.Path.code_type), mpath.Path.CLOSEPOLY)
    return mpath.Path(np.vstack([piece.vertices, ring[:1]]), codes)


def _ring_path(ring: np.ndarray, mask: np.ndarray | None, cfg: SmoothingConfig) -> mpath.Path:
    """Closed path of an open ring; runs along discontinuity outlines use outline styling."""
    if mask is None or not mask.any():
        return smooth_path(np.vstack([ring, ring[:1]]), cfg, closed=True)
    if mask.all():
        return _closed_outline_path(ring, cfg)

    n = ring.shape[0]
    on_outline = mask & np.roll(mask, -1)  # segment k runs from vertex k to k + 1
    if not on_outline.any():
        return smooth_path(np.vstack([ring, ring[:1]]), cfg, closed=True)
    first = int(np.flatnonzero(on_outline != np.roll(on_outline, 1))[0])

    verts: list[np.ndarray] = [ring[first]]
    codes: list[int] = [mpath.Path.MOVETO]
    k = 0
    while k < n:
        kind = on_outline[(first + k) % n]
        m = k
        while m < n and on_outline[(first + m) % n] == kind:
            m += 1
        pts = ring[[(first + j) % n for j in range(k, m + 1)]]
        if kind:
            piece = discontinuity_outline_path(pts, cfg)
        else:
            piece = smooth_path(
                pts, cfg, before=ring[(first + k - 1) % n], after=ring[(first + m + 1) % n]
            )
        verts.extend(piece.vertices[1:])
        if piece.codes is None:
            codes.extend([mpath.Path.LINETO] * (len(piece.vertices) - 1))
        else:
            codes.extend(int(c) for c in piece.codes[1:])
        k = m
    verts.append(ring[first])
    codes.append(mpath.Path.CLOSEPOLY)
    return mpath.Path(np.asarray(verts, float), np.asarray(codes, dtype=mpath.Path.code_type))


def region_path(region: ClosedPath, cfg: SmoothingConfig) -> mpath.Path:
    """Outer ring anticlockwise, holes clockwise, as one compound path.

    Stretches along discontinuity outlines keep their straight axis-parallel
    steps.
    """
    outer = open_ring(region.vertices)
    mask = region.outline_mask
    if mask is not None:
        mask = np.asarray(mask, dtype=bool)[: outer.shape[0]]
    if polygon_signed_area(outer) < 0:
        outer = outer[::-1].copy()
        mask = None if mask is None else mask[::-1].copy()
    parts = [_ring_path(outer, mask, cfg)]
    for k, hole in enumerate(region.holes):
        ring = ensure_ccw(open_ring(hole))[::-1]
        outline = k < len(region.hole_outlines) and region.hole_outlines[k]
        if outline:
            parts.append(_closed_outline_path(ring, cfg))
        else:
            parts.append(smooth_path(np.vstack([ring, ring[:1]]), cfg, closed=True))
    if len(parts) == 1:
        return parts[0]
    return mpath.Path.make_compound_path(*parts)


class ContourFillEngine:
    """Builds filled regions and isocurve lines from a tracer for one frame."""

    def __init__(
        self,
        tracer: Tracer,
        config: EngineConfig | None = None,
        style: StyleStrategy | None = None,
    ) -> None:
        self.tracer = tracer
        self.config = config or EngineConfig()
        self.style = style or DefaultStyle()

    def _split_strips(self, boundary: Boundary) -> _StripSets:
        cfg = self.config
        border: list[Strip] = []
        loops: list[Strip] = []
        dangling: list[Strip] = []
        for level in range(len(self.tracer.levels)):
            strips = self.tracer.strip_list(level)
            if cfg.join_strips:
                strips = join_strips(strips, boundary, cfg.classifier.eps, cfg.join_tol)
            for strip in strips:
                kind = strip_kind(strip, boundary, cfg.classifier)
                if kind == STRIP_CLOSED:
                    loops.append(strip)
                elif kind == STRIP_BORDER:
                    if cfg.classifier.extrapolate_to_limits:
                        strip = extend_to_limits(strip, boundary, cfg.classifier.eps)
                    border.append(strip)
                elif kind == STRIP_DANGLING:
                    dangling.append(strip)
        return _StripSets(border=border, loops=loops, dangling=dangling)

    def _store_extra(self, strips: list[Strip]) -> None:
        for strip in strips:
            if strip.extra and strip.plane is not None:
                stored = self.tracer.extra_strip_list(strip.plane)
                if not any(s is strip for s in stored):
                    stored.append(strip)

    def _stitch(
        self, dangling: list[Strip], synthetic: list[Strip], boundary: Boundary
    ) -> tuple[list[Strip], list[Strip]]:
        """Lead level strips that stop at a discontinuity around it to the rectangle."""
        cfg = self.config
        diagonal = float(np.hypot(self.tracer.delta_x, self.tracer.delta_y))
        outlines = discontinuity_outlines(synthetic, boundary, 0.5 * diagonal)
        tol = cfg.discontinuity.touch_factor * diagonal
        return stitch_dangling_strips(dangling, outlines, boundary, cfg.classifier.eps, tol)

    def compute(
        self,
        boundary: Boundary,
        fill_cfg: FillConfig,
        field_function: FieldFunction | None = None,
        *,
        transform: Transform | None = None,
    ) -> ContourFillResult:
        cfg = self.config
        if len(fill_cfg.thresholds) != len(self.tracer.levels):
            raise ValueError("fill thresholds must match tracer levels.")
        clear = getattr(self.tracer, "clear_extra", None)
        if clear is not None:
            clear()

        sets = self._split_strips(boundary)
        clusters: list[DiscontinuityCluster] = []
        if cfg.resolve_discontinuities:
            synthetic, clusters = discontinuity_strips(self.tracer, boundary, cfg.discontinuity)
            for strip in synthetic:
                kind = strip_kind(strip, boundary, cfg.classifier)
                if kind == STRIP_CLOSED:
                    sets.loops.append(strip)
                elif kind == STRIP_BORDER:
                    sets.border.append(strip)
            if sets.dangling and synthetic:
                stitched, left = self._stitch(sets.dangling, synthetic, boundary)
                sets.dangling[:] = left
                sets.border.extend(stitched)
                self._store_extra(stitched)
        if sets.dangling:
            logger.debug("%d level strips end inside the rectangle", len(sets.dangling))

        border, intersections = reorganise_intersecting_strips(
            sets.border, boundary, cfg.classifier.eps, cfg.intersections
        )
        if intersections:
            loops = [s for s in border if s.is_closed()]
            border = [s for s in border if not s.is_closed()]
            sets.loops.extend(loops)
            self._store_extra(border + loops)

        buckets = collect_border_strips(border, boundary, cfg.classifier)
        entries = [entry for bucket in buckets for entry in bucket]
        regions = assemble_regions(entries, sets.loops, boundary, cfg.assembly)

        resolver = FillResolver(fill_cfg, field_function)
        filled: list[tuple[ClosedPath, ContourFill]] = []
        for region in regions:
            contour_fill = resolver.resolve(region)
            path = region_path(region, cfg.smoothing)
            if cfg.align_to_pixels:
                path = align_path(path, transform)
            filled.append((replace(region, path=path), contour_fill))

        lines = self._lines(boundary, fill_cfg, transform)
        labels = [
            IsoLabel(level=level, value=float(self.tracer.levels[level]), position=pos, rotation=rot)
            for level in range(len(self.tracer.levels))
            for pos, rot in self.tracer.label_positions(level)
        ]
        logger.info(
            "contour fill: %d regions, %d fills, %d lines", len(filled), len(resolver.table), len(lines)
        )
        return ContourFillResult(
            regions=filled,
            lines=lines,
            labels=labels,
            fill_table=resolver.table,
            clusters=clusters,
            intersections=intersections,
        )

    def _lines(
        self, boundary: Boundary, fill_cfg: FillConfig, transform: Transform | None
    ) -> list[tuple[mpath.Path, LineStyle]]:
        cfg = self.config
        extent = (boundary.width, boundary.height)
        out: list[tuple[mpath.Path, LineStyle]] = []
        for level in range(len(self.tracer.levels)):
            base = LineStyle(color=fill_cfg.line_color(level).rgba)
            style = self.style.style(level, float(self.tracer.levels[level]), base)
            for strip in self.tracer.strip_list(level):
                closed = strip.is_closed()
                path = smooth_path(
                    strip.vertices, cfg.smoothing, closed=closed, extent=None if closed else extent
                )
                if cfg.align_to_pixels:
                    path = align_path(path, transform)
                out.append((path, style))
        return out
