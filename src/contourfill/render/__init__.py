from .alignment import align_path, align_points_to_device, snap_to_pixel_centres
from .engine import (
    ContourFillEngine,
    ContourFillResult,
    EngineConfig,
    IsoLabel,
    region_path,
)
from .export import export_png, render_figure

__all__ = [
    "ContourFillEngine",
    "ContourFillResult",
    "EngineConfig",
    "IsoLabel",
    "align_path",
    "align_points_to_device",
    "export_png",
    "region_path",
    "render_figure",
    "snap_to_pixel_centres",
]
