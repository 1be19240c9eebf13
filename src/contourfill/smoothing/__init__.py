from .curves import (
    SMOOTHING_MODES,
    SmoothingConfig,
    catmull_rom_controls,
    cubic_spline_controls,
    hermite_controls,
    hermite_tangents,
    is_monotonic,
    path_end_points,
    smooth_path,
)

__all__ = [
    "SMOOTHING_MODES",
    "SmoothingConfig",
    "catmull_rom_controls",
    "cubic_spline_controls",
    "hermite_controls",
    "hermite_tangents",
    "is_monotonic",
    "path_end_points",
    "smooth_path",
]
