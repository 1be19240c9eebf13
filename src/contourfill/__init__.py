"""Contour region assembly and fill engine."""

from .fills import ColorFill, ContourFill, EmptyFill, FillConfig, FillResolver, ImageFill
from .geometry import Boundary
from .regions import ClosedPath
from .render import ContourFillEngine, ContourFillResult, EngineConfig
from .smoothing import SmoothingConfig, smooth_path
from .tracing import GridTracer, PolylineTracer, Strip, Tracer

__all__ = [
    "Boundary",
    "ClosedPath",
    "ColorFill",
    "ContourFill",
    "ContourFillEngine",
    "ContourFillResult",
    "EmptyFill",
    "EngineConfig",
    "FillConfig",
    "FillResolver",
    "GridTracer",
    "ImageFill",
    "PolylineTracer",
    "SmoothingConfig",
    "Strip",
    "Tracer",
    "smooth_path",
]
