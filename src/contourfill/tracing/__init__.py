from .base import (
    BORDER_DIRECTIONS,
    DIR_NONE,
    DIR_X_BACKWARD,
    DIR_X_FORWARD,
    DIR_Y_BACKWARD,
    DIR_Y_FORWARD,
    PolylineTracer,
    Strip,
    Tracer,
)
from .grid_tracer import GridTracer, grid_contour_polylines

__all__ = [
    "BORDER_DIRECTIONS",
    "DIR_NONE",
    "DIR_X_BACKWARD",
    "DIR_X_FORWARD",
    "DIR_Y_BACKWARD",
    "DIR_Y_FORWARD",
    "GridTracer",
    "PolylineTracer",
    "Strip",
    "Tracer",
    "grid_contour_polylines",
]
