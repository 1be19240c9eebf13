from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

import numpy as np
from matplotlib.colors import rgb_to_hsv, to_rgba

RGBA = tuple[float, float, float, float]


@dataclass(frozen=True)
class ColorFill:
    """Solid colour given as gray + alpha (2 components) or RGBA (4 components)."""

    components: tuple[float, ...]

    def __post_init__(self) -> None:
        comps = tuple(float(c) for c in self.components)
        if len(comps) not in (2, 4):
            raise ValueError("components must hold 2 (gray, alpha) or 4 (RGBA) values.")
        if any(not 0.0 <= c <= 1.0 for c in comps):
            raise ValueError("components must be in [0, 1].")
        object.__setattr__(self, "components", comps)

    @classmethod
    def from_color(cls, color: object, alpha: float | None = None) -> ColorFill:
        return cls(tuple(to_rgba(color, alpha)))

    @property
    def rgba(self) -> RGBA:
        if len(self.components) == 2:
            gray, alpha = self.components
            return (gray, gray, gray, alpha)
        r, g, b, a = self.components
        return (r, g, b, a)

    def with_alpha(self, alpha: float) -> ColorFill:
        r, g, b, _ = self.rgba
        return ColorFill((r, g, b, float(alpha)))


@dataclass(frozen=True)
class ImageFill:
    """Image-backed fill; ``source`` identifies the image for the canvas."""

    source: str
    opacity: float = 1.0
    tiled: bool = False

    def __post_init__(self) -> None:
        if not 0.0 <= self.opacity <= 1.0:
            raise ValueError("opacity must be in [0, 1].")


@dataclass(frozen=True)
class EmptyFill:
    """Transparent fill, used where the field is undefined."""


Fill = ColorFill | ImageFill | EmptyFill


def fill_key(fill: Fill) -> tuple:
    match fill:
        case ColorFill():
            return ("color", *np.round(fill.rgba, 6).tolist())
        case ImageFill(source=source, opacity=opacity, tiled=tiled):
            return ("image", source, round(opacity, 6), tiled)
        case EmptyFill():
            return ("empty",)
    raise TypeError(f"unsupported fill type: {type(fill).__name__}")


def fill_rgba(fill: Fill) -> RGBA | None:
    match fill:
        case ColorFill():
            return fill.rgba
        case ImageFill(opacity=opacity):
            return (1.0, 1.0, 1.0, opacity)
        case EmptyFill():
            return (0.0, 0.0, 0.0, 0.0)
    return None


def blend_fills(a: ColorFill, b: ColorFill) -> ColorFill:
    """Average of two colours, channels and alpha alike."""
    mixed = 0.5 * (np.asarray(a.rgba) + np.asarray(b.rgba))
    return ColorFill(tuple(float(c) for c in mixed))


@dataclass(frozen=True)
class ContourFill:
    """Fill bounded by up to two threshold values; None marks an open side."""

    first: float | None
    second: float | None
    fill: Fill

    @property
    def bounds(self) -> tuple[float | None, float | None]:
        values = [v for v in (self.first, self.second) if v is not None]
        if len(values) == 2:
            lo, hi = sorted(values)
            return (lo, hi)
        return (self.first, self.second)

    def key(self) -> tuple:
        lo, hi = self.bounds
        return (fill_key(self.fill), lo, hi)

    def legend_label(self, fmt: str = "{:g}") -> str:
        lo, hi = self.bounds
        if lo is None and hi is None:
            return "undefined"
        if lo is None:
            return "< " + fmt.format(hi)
        if hi is None:
            return "> " + fmt.format(lo)
        return fmt.format(lo) + " - " + fmt.format(hi)


class FillTable:
    """Deduplicated list of computed fills, in first-seen order.

    Empty fills paint nothing and are not recorded.
    """

    def __init__(self) -> None:
        self._entries: list[ContourFill] = []
        self._keys: dict[tuple, int] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)

    def __getitem__(self, index: int) -> ContourFill:
        return self._entries[index]

    def append_if_new(self, entry: ContourFill) -> ContourFill:
        if isinstance(entry.fill, EmptyFill):
            return entry
        key = entry.key()
        if key in self._keys:
            return self._entries[self._keys[key]]
        self._keys[key] = len(self._entries)
        self._entries.append(entry)
        return entry

    def sorted_for_legend(self) -> list[ContourFill]:
        """Colour fills by hue then alpha, other fills after them."""

        def order(entry: ContourFill) -> tuple:
            rgba = fill_rgba(entry.fill)
            if not isinstance(entry.fill, ColorFill) or rgba is None:
                return (1, 0.0, 0.0)
            hue = float(rgb_to_hsv(np.asarray(rgba[:3]))[0])
            return (0, hue, rgba[3])

        return sorted(self._entries, key=order)

    def legend_entries(self, fmt: str = "{:g}") -> list[str]:
        return [entry.legend_label(fmt) for entry in self.sorted_for_legend()]


@dataclass(frozen=True)
class LineStyle:
    width: float = 1.0
    color: RGBA = (0.0, 0.0, 0.0, 1.0)
    fill: Fill | None = None


class StyleStrategy(Protocol):
    """Maps a level to its line style; implementations must not mutate state."""

    def style(self, level: int, value: float, base: LineStyle) -> LineStyle: ...


@dataclass(frozen=True)
class DefaultStyle:
    width: float = 1.0

    def style(self, level: int, value: float, base: LineStyle) -> LineStyle:
        return LineStyle(width=self.width, color=base.color, fill=base.fill)
