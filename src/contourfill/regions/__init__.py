from .assembly import (
    AssemblyConfig,
    BorderIndex,
    ClosedPath,
    assemble_regions,
    attach_closed_strips,
    build_border_indices,
    dedupe_regions,
    walk_perimeter,
)
from .border import BorderEntry, collect_border_strips, join_strips, orient_border_strip
from .classify import (
    STRIP_BORDER,
    STRIP_CLOSED,
    STRIP_DANGLING,
    STRIP_OPEN,
    ClassifierConfig,
    classify_point,
    classify_strip,
    extend_to_limits,
    strip_kind,
)
from .discontinuity import (
    DiscontinuityCluster,
    DiscontinuityConfig,
    cluster_strip,
    concave_hull_ring,
    discontinuity_outline_path,
    discontinuity_outlines,
    discontinuity_strips,
    resolve_clusters,
    stitch_dangling_strips,
)
from .intersections import (
    Intersection,
    IntersectionConfig,
    build_intersection_graph,
    find_intersections,
    reorganise_intersecting_strips,
)

__all__ = [
    "AssemblyConfig",
    "BorderEntry",
    "BorderIndex",
    "ClassifierConfig",
    "ClosedPath",
    "DiscontinuityCluster",
    "DiscontinuityConfig",
    "Intersection",
    "IntersectionConfig",
    "STRIP_BORDER",
    "STRIP_CLOSED",
    "STRIP_DANGLING",
    "STRIP_OPEN",
    "assemble_regions",
    "attach_closed_strips",
    "build_border_indices",
    "build_intersection_graph",
    "classify_point",
    "classify_strip",
    "cluster_strip",
    "collect_border_strips",
    "concave_hull_ring",
    "dedupe_regions",
    "discontinuity_outline_path",
    "discontinuity_outlines",
    "discontinuity_strips",
    "extend_to_limits",
    "find_intersections",
    "join_strips",
    "orient_border_strip",
    "reorganise_intersecting_strips",
    "resolve_clusters",
    "stitch_dangling_strips",
    "strip_kind",
    "walk_perimeter",
]
