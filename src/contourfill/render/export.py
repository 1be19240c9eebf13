from __future__ import annotations

import logging
import os

from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.figure import Figure
from matplotlib.patches import PathPatch

from contourfill.fills.fill import ColorFill, EmptyFill, ImageFill
from contourfill.geometry.boundary import Boundary

from .engine import ContourFillResult

logger = logging.getLogger(__name__)


def render_figure(result: ContourFillResult, boundary: Boundary, *, figsize=(6, 6)) -> Figure:
    fig = Figure(figsize=figsize)
    FigureCanvasAgg(fig)
    ax = fig.add_subplot(111)
    for region, contour_fill in result.regions:
        if region.path is None:
            continue
        match contour_fill.fill:
            case ColorFill():
                facecolor = contour_fill.fill.rgba
            case ImageFill(opacity=opacity):
                facecolor = (0.5, 0.5, 0.5, opacity)
            case EmptyFill():
                continue
        ax.add_patch(PathPatch(region.path, facecolor=facecolor, edgecolor="none"))
    for path, style in result.lines:
        ax.add_patch(PathPatch(path, facecolor="none", edgecolor=style.color, lw=style.width))
    ax.set_xlim(boundary.left, boundary.right)
    ax.set_ylim(boundary.bottom, boundary.top)
    ax.set_aspect("equal")
    return fig


def export_png(
    result: ContourFillResult,
    boundary: Boundary,
    out_path: str | os.PathLike[str],
    *,
    dpi: int = 100,
) -> bool:
    """Write the composed regions to an image file.

    Failures are logged and reported as False; the in-memory result is untouched.
    """
    try:
        fig = render_figure(result, boundary)
        fig.savefig(os.fspath(out_path), dpi=dpi)
    except (OSError, ValueError) as exc:
        logger.warning("contour image export to %s failed: %s", out_path, exc)
        return False
    return True
