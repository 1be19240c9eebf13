from .boundary import EDGE_BOTTOM, EDGE_LEFT, EDGE_NAMES, EDGE_RIGHT, EDGE_TOP, Boundary
from .polygon import (
    bounding_box,
    close_ring,
    contains_point,
    contains_points,
    ensure_ccw,
    interior_sample_point,
    interior_sample_points,
    nearest_on_polyline,
    open_ring,
    point_at_param,
    polygon_area,
    polygon_centroid,
    polygon_signed_area,
    polyline_length,
    polyline_slice,
    ring_inside,
    segment_intersection,
)

__all__ = [
    "Boundary",
    "EDGE_BOTTOM",
    "EDGE_LEFT",
    "EDGE_NAMES",
    "EDGE_RIGHT",
    "EDGE_TOP",
    "bounding_box",
    "close_ring",
    "contains_point",
    "contains_points",
    "ensure_ccw",
    "interior_sample_point",
    "interior_sample_points",
    "nearest_on_polyline",
    "open_ring",
    "point_at_param",
    "polygon_area",
    "polygon_centroid",
    "polygon_signed_area",
    "polyline_length",
    "polyline_slice",
    "ring_inside",
    "segment_intersection",
]
