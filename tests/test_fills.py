from __future__ import annotations

import numpy as np
import pytest

from contourfill.fills.fill import (
    ColorFill,
    ContourFill,
    EmptyFill,
    FillTable,
    ImageFill,
    blend_fills,
    fill_key,
)
from contourfill.fills.resolver import FillConfig, FillResolver
from contourfill.regions.assembly import ClosedPath


def _square_region(x0: float, size: float, levels: frozenset[int]) -> ClosedPath:
    ring = np.array([[x0, 0.0], [x0 + size, 0.0], [x0 + size, size], [x0, size], [x0, 0.0]])
    return ClosedPath(vertices=ring, levels=levels)


def test_thresholds_must_ascend() -> None:
    with pytest.raises(ValueError):
        FillConfig(thresholds=(2.0, 1.0))
    with pytest.raises(ValueError):
        FillConfig(thresholds=(1.0, 1.0))
    with pytest.raises(ValueError):
        FillConfig(thresholds=())
    with pytest.raises(ValueError):
        FillConfig(thresholds=(1.0,), fills=(EmptyFill(), EmptyFill(), EmptyFill()))


def test_interval_selection_is_monotonic() -> None:
    resolver = FillResolver(FillConfig(thresholds=(1.0, 2.0, 3.0)))
    assert resolver.interval_index(0.5) == 0
    assert resolver.interval_index(1.0) == 0
    assert resolver.interval_index(1.5) == 1
    assert resolver.interval_index(2.5) == 2
    assert resolver.interval_index(3.5) == 3
    assert resolver.interval_index(-np.inf) == 0
    assert resolver.interval_index(np.inf) == 3
    assert resolver.interval_index(np.nan) is None

    values = np.linspace(-1.0, 5.0, 61)
    picked = [resolver.interval_index(v) for v in values]
    assert picked == sorted(picked)


def test_undefined_value_resolves_to_empty_fill() -> None:
    resolver = FillResolver(FillConfig(thresholds=(1.0,)))
    entry = resolver.resolve_value(np.nan)
    assert isinstance(entry.fill, EmptyFill)
    assert entry.legend_label() == "undefined"
    assert len(resolver.table) == 0


def test_empty_fills_stay_out_of_the_legend() -> None:
    table = FillTable()
    table.append_if_new(ContourFill(None, None, EmptyFill()))
    table.append_if_new(ContourFill(None, 1.0, ColorFill((1.0, 0.0, 0.0, 1.0))))
    assert len(table) == 1
    assert table.legend_entries() == ["< 1"]


def test_gray_and_rgba_fills_deduplicate() -> None:
    gray = ColorFill((0.5, 1.0))
    rgba = ColorFill((0.5, 0.5, 0.5, 1.0))
    assert fill_key(gray) == fill_key(rgba)

    table = FillTable()
    first = table.append_if_new(ContourFill(1.0, 2.0, gray))
    second = table.append_if_new(ContourFill(2.0, 1.0, rgba))
    assert len(table) == 1
    assert second is first


def test_color_fill_validation() -> None:
    with pytest.raises(ValueError):
        ColorFill((0.1, 0.2, 0.3))
    with pytest.raises(ValueError):
        ColorFill((1.5, 1.0))
    with pytest.raises(ValueError):
        ImageFill("texture.png", opacity=2.0)
    assert ColorFill.from_color("red").rgba == (1.0, 0.0, 0.0, 1.0)


def test_user_fills_and_legend_order() -> None:
    fills = (
        ColorFill.from_color("blue"),
        ColorFill.from_color("red"),
        ColorFill.from_color("lime"),
    )
    resolver = FillResolver(FillConfig(thresholds=(1.0, 2.0), fills=fills))
    low = resolver.resolve_value(0.0)
    mid = resolver.resolve_value(1.5)
    high = resolver.resolve_value(9.0)
    assert low.fill == fills[0]
    assert mid.fill == fills[1]
    assert high.fill == fills[2]
    assert len(resolver.table) == 3
    # legend is sorted by hue: red, green, blue
    assert resolver.table.legend_entries() == ["1 - 2", "> 2", "< 1"]


def test_derived_fills_blend_line_colors() -> None:
    line_colors = (ColorFill((0.0, 0.0, 0.0, 1.0)), ColorFill((1.0, 1.0, 1.0, 1.0)))
    resolver = FillResolver(FillConfig(thresholds=(1.0, 2.0), line_colors=line_colors))
    mid = resolver.resolve_value(1.5)
    assert mid.fill == blend_fills(*line_colors)
    low = resolver.resolve_value(0.0)
    assert low.fill == ColorFill((0.0, 0.0, 0.0, 0.5))
    high = resolver.resolve_value(5.0)
    assert high.fill == ColorFill((1.0, 1.0, 1.0, 0.5))


def test_levels_without_field_function() -> None:
    line_colors = (ColorFill((0.2, 1.0)), ColorFill((0.8, 1.0)))
    cfg = FillConfig(thresholds=(10.0, 20.0), line_colors=line_colors)
    resolver = FillResolver(cfg)

    none = resolver.resolve(_square_region(0.0, 1.0, frozenset()))
    assert isinstance(none.fill, EmptyFill)

    single = resolver.resolve(_square_region(0.0, 1.0, frozenset({1})))
    assert single.bounds == (20.0, None)
    assert single.fill == ColorFill((0.8, 0.8, 0.8, 0.5))

    lower = ClosedPath(
        vertices=_square_region(2.0, 1.0, frozenset()).vertices,
        levels=frozenset({0}),
        below_levels=frozenset({0}),
    )
    assert resolver.resolve(lower).bounds == (None, 10.0)

    both = resolver.resolve(_square_region(0.0, 1.0, frozenset({0, 1})))
    assert both.bounds == (10.0, 20.0)
    assert both.fill == blend_fills(*line_colors)


def test_field_function_is_sampled_inside_region() -> None:
    resolver = FillResolver(
        FillConfig(thresholds=(5.0,)), field_function=lambda x, y: x
    )
    left = resolver.resolve(_square_region(0.0, 2.0, frozenset()))
    right = resolver.resolve(_square_region(8.0, 2.0, frozenset()))
    assert left.bounds == (None, 5.0)
    assert right.bounds == (5.0, None)
    assert left.legend_label() == "< 5"
    assert right.legend_label() == "> 5"


def test_side_of_single_level_picks_outer_user_fills() -> None:
    fills = (
        ColorFill.from_color("blue"),
        ColorFill.from_color("red"),
        ColorFill.from_color("lime"),
    )
    resolver = FillResolver(FillConfig(thresholds=(25.0, 50.0), fills=fills))
    ring = _square_region(0.0, 1.0, frozenset()).vertices

    low = resolver.resolve(
        ClosedPath(vertices=ring, levels=frozenset({0}), below_levels=frozenset({0}))
    )
    high = resolver.resolve(ClosedPath(vertices=ring, levels=frozenset({1})))
    assert low.legend_label() == "< 25"
    assert low.fill == fills[0]
    assert high.legend_label() == "> 50"
    assert high.fill == fills[2]


def test_undefined_sample_falls_back_to_next_candidate() -> None:
    def field(x: float, y: float) -> float:
        return np.nan if 4.0 < x < 6.0 and 4.0 < y < 6.0 else x

    resolver = FillResolver(FillConfig(thresholds=(2.0,)), field_function=field)
    entry = resolver.resolve(_square_region(0.0, 10.0, frozenset()))
    assert entry.bounds == (2.0, None)
    assert not isinstance(entry.fill, EmptyFill)

    blank = FillResolver(FillConfig(thresholds=(2.0,)), field_function=lambda x, y: np.nan)
    assert isinstance(blank.resolve(_square_region(0.0, 10.0, frozenset())).fill, EmptyFill)
