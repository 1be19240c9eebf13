from .fill import (
    ColorFill,
    ContourFill,
    DefaultStyle,
    EmptyFill,
    Fill,
    FillTable,
    ImageFill,
    LineStyle,
    StyleStrategy,
    blend_fills,
    fill_key,
    fill_rgba,
)
from .resolver import FieldFunction, FillConfig, FillResolver

__all__ = [
    "ColorFill",
    "ContourFill",
    "DefaultStyle",
    "EmptyFill",
    "FieldFunction",
    "Fill",
    "FillConfig",
    "FillResolver",
    "FillTable",
    "ImageFill",
    "LineStyle",
    "StyleStrategy",
    "blend_fills",
    "fill_key",
    "fill_rgba",
]
