from __future__ import annotations

import logging
from collections.abc import Callable, Collection, Sequence
from dataclasses import dataclass, field

import numpy as np
from matplotlib import colormaps

from contourfill.geometry.polygon import interior_sample_points
from contourfill.regions.assembly import ClosedPath

from .fill import ColorFill, ContourFill, EmptyFill, Fill, FillTable, blend_fills

logger = logging.getLogger(__name__)

FieldFunction = Callable[[float, float], float]


@dataclass(frozen=True)
class FillConfig:
    """Thresholds (strictly ascending) and the user fill table.

    ``fills[k]`` covers the interval below ``thresholds[k]``; the last entry,
    when present, covers values above the last threshold. Missing fills are
    derived from the level line colours.
    """

    thresholds: tuple[float, ...]
    fills: tuple[Fill, ...] = ()
    line_colors: tuple[ColorFill, ...] = ()
    cmap: str = "viridis"
    sample_scanlines: int = 16

    def __post_init__(self) -> None:
        thresholds = tuple(float(t) for t in self.thresholds)
        if len(thresholds) == 0:
            raise ValueError("thresholds must not be empty.")
        if not all(np.isfinite(thresholds)):
            raise ValueError("thresholds must be finite.")
        if any(b <= a for a, b in zip(thresholds[:-1], thresholds[1:], strict=False)):
            raise ValueError("thresholds must be strictly ascending.")
        object.__setattr__(self, "thresholds", thresholds)
        if len(self.fills) > len(thresholds) + 1:
            raise ValueError("fills must have at most len(thresholds) + 1 entries.")
        if self.line_colors and len(self.line_colors) != len(thresholds):
            raise ValueError("line_colors length must match thresholds.")

    @property
    def n_levels(self) -> int:
        return len(self.thresholds)

    def line_color(self, level: int) -> ColorFill:
        if self.line_colors:
            return self.line_colors[level]
        cmap = colormaps[self.cmap]
        frac = 0.5 if self.n_levels == 1 else level / (self.n_levels - 1)
        return ColorFill(tuple(float(c) for c in cmap(frac)))


@dataclass
class FillResolver:
    """Selects a deduplicated fill per region.

    With a field function the region is sampled at an interior point; without
    one the fill follows from the levels bounding the region.
    """

    cfg: FillConfig
    field_function: FieldFunction | None = None
    table: FillTable = field(default_factory=FillTable)

    def interval_index(self, value: float) -> int | None:
        """Index of the threshold interval holding value; None for NaN."""
        if np.isnan(value):
            return None
        return int(np.searchsorted(np.asarray(self.cfg.thresholds), value, side="left"))

    def interval_bounds(self, index: int) -> tuple[float | None, float | None]:
        t = self.cfg.thresholds
        lo = t[index - 1] if index > 0 else None
        hi = t[index] if index < len(t) else None
        return lo, hi

    def _interval_fill(self, index: int) -> Fill:
        if index < len(self.cfg.fills):
            return self.cfg.fills[index]
        n = self.cfg.n_levels
        if index == 0:
            return self.cfg.line_color(0).with_alpha(0.5 * self.cfg.line_color(0).rgba[3])
        if index >= n:
            last = self.cfg.line_color(n - 1)
            return last.with_alpha(0.5 * last.rgba[3])
        return blend_fills(self.cfg.line_color(index - 1), self.cfg.line_color(index))

    def resolve_value(self, value: float) -> ContourFill:
        index = self.interval_index(value)
        if index is None:
            return self.table.append_if_new(ContourFill(None, None, EmptyFill()))
        lo, hi = self.interval_bounds(index)
        return self.table.append_if_new(ContourFill(lo, hi, self._interval_fill(index)))

    def resolve_levels(
        self, levels: Sequence[int], below: Collection[int] = frozenset()
    ) -> ContourFill:
        """Fill from the bounding levels alone.

        A region bounded by one level takes the interval on its side of that
        level, given by ``below``; two or more levels blend the outer ones.
        """
        levels = sorted({int(k) for k in levels if 0 <= k < self.cfg.n_levels})
        t = self.cfg.thresholds
        if not levels:
            logger.debug("region without bounding levels, using an empty fill")
            return self.table.append_if_new(ContourFill(None, None, EmptyFill()))
        if len(levels) == 1:
            k = levels[0]
            index = k if k in below else k + 1
            if index < len(self.cfg.fills):
                fill = self.cfg.fills[index]
            else:
                color = self.cfg.line_color(k)
                fill = color.with_alpha(0.5 * color.rgba[3])
            lo, hi = self.interval_bounds(index)
            return self.table.append_if_new(ContourFill(lo, hi, fill))
        i, j = levels[0], levels[-1]
        fill = blend_fills(self.cfg.line_color(i), self.cfg.line_color(j))
        return self.table.append_if_new(ContourFill(t[i], t[j], fill))

    def sample_points(self, region: ClosedPath) -> list[np.ndarray]:
        return interior_sample_points(
            region.vertices, list(region.holes), n_scanlines=self.cfg.sample_scanlines
        )

    def resolve(self, region: ClosedPath) -> ContourFill:
        """Fill for a region; with a field function the first defined sample wins."""
        if self.field_function is None:
            return self.resolve_levels(region.bounding_levels(), region.below_levels)
        value = np.nan
        for x, y in self.sample_points(region):
            value = float(self.field_function(float(x), float(y)))
            if not np.isnan(value):
                break
            logger.debug("undefined field value at (%g, %g)", x, y)
        return self.resolve_value(value)
