from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

import networkx as nx
import numpy as np

from contourfill.geometry.boundary import Boundary
from contourfill.geometry.polygon import bounding_box, polyline_slice, segment_intersection
from contourfill.tracing.base import Strip

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IntersectionConfig:
    enabled: bool = True
    collinear_eps: float = 1e-3

    def __post_init__(self) -> None:
        if not self.collinear_eps >= 0.0:
            raise ValueError("collinear_eps must be >= 0.")


@dataclass(frozen=True, eq=False)
class Intersection:
    """Crossing of two strips.

    ``index``/``jndex`` are the segment indices in ``strip0``/``strip1`` and
    ``param0``/``param1`` the fractional vertex positions of the crossing.
    """

    strip0: int
    strip1: int
    index: int
    jndex: int
    point: np.ndarray
    param0: float
    param1: float
    intersection_index: int = -1


def _boxes_overlap(a: np.ndarray, b: np.ndarray) -> bool:
    return not (a[2] < b[0] or b[2] < a[0] or a[3] < b[1] or b[3] < a[1])


def strip_pair_intersections(a: Strip, b: Strip) -> list[tuple[int, int, np.ndarray, float, float]]:
    out: list[tuple[int, int, np.ndarray, float, float]] = []
    va, vb = a.vertices, b.vertices
    boxes_b = [bounding_box(vb[j : j + 2]) for j in range(vb.shape[0] - 1)]
    for i in range(va.shape[0] - 1):
        box_a = bounding_box(va[i : i + 2])
        for j, box_b in enumerate(boxes_b):
            if not _boxes_overlap(box_a, box_b):
                continue
            hit = segment_intersection(va[i], va[i + 1], vb[j], vb[j + 1])
            if hit is not None:
                point, t, u = hit
                out.append((i, j, point, i + t, j + u))
    return out


def find_intersections(strips: Sequence[Strip]) -> list[Intersection]:
    """Pairwise crossings between distinct strips, ordered by increasing x."""
    boxes = [bounding_box(s.vertices) for s in strips]
    found: list[Intersection] = []
    for p in range(len(strips)):
        for q in range(p + 1, len(strips)):
            if not _boxes_overlap(boxes[p], boxes[q]):
                continue
            for i, j, point, s0, s1 in strip_pair_intersections(strips[p], strips[q]):
                found.append(
                    Intersection(
                        strip0=p, strip1=q, index=i, jndex=j, point=point, param0=s0, param1=s1
                    )
                )
    found.sort(key=lambda x: (float(x.point[0]), float(x.point[1])))
    return [
        Intersection(
            strip0=x.strip0,
            strip1=x.strip1,
            index=x.index,
            jndex=x.jndex,
            point=x.point,
            param0=x.param0,
            param1=x.param1,
            intersection_index=k,
        )
        for k, x in enumerate(found)
    ]


def build_intersection_graph(
    strips: Sequence[Strip], intersections: Sequence[Intersection]
) -> nx.Graph:
    """Undirected graph of boundary and crossing nodes.

    Nodes are ``("x", k)`` for crossings and ``("b", slot, end)`` for strip end
    points. An edge joins two nodes that follow each other along a strip with no
    other node between; its ``pieces`` hold the connecting polylines.
    """
    stops: dict[int, list[tuple[float, tuple]]] = {}
    for x in intersections:
        stops.setdefault(x.strip0, []).append((x.param0, ("x", x.intersection_index)))
        stops.setdefault(x.strip1, []).append((x.param1, ("x", x.intersection_index)))

    graph = nx.Graph()
    for x in intersections:
        graph.add_node(("x", x.intersection_index), point=x.point)
    for slot, along in stops.items():
        strip = strips[slot]
        last = float(strip.n_points - 1)
        graph.add_node(("b", slot, 0), point=strip.start, slot=slot)
        graph.add_node(("b", slot, 1), point=strip.end, slot=slot)
        chain = [(0.0, ("b", slot, 0)), *sorted(along), (last, ("b", slot, 1))]
        for (s0, u), (s1, v) in zip(chain[:-1], chain[1:], strict=False):
            if u == v:
                continue
            piece = polyline_slice(strip.vertices, s0, s1)
            if graph.has_edge(u, v):
                graph.edges[u, v]["pieces"].append((u, piece, slot))
            else:
                graph.add_edge(u, v, pieces=[(u, piece, slot)])
    return graph


def _piece_between(graph: nx.Graph, u: tuple, v: tuple) -> tuple[np.ndarray, int, bool]:
    """Polyline from ``u`` to ``v``, its strip slot and whether it runs along that strip."""
    origin, piece, slot = graph.edges[u, v]["pieces"][0]
    forward = origin == u
    return (piece if forward else piece[::-1]), slot, forward


def _collinear(a: np.ndarray, b: np.ndarray, c: np.ndarray, eps: float) -> bool:
    d0 = b - a
    d1 = c - b
    n0 = float(np.linalg.norm(d0))
    n1 = float(np.linalg.norm(d1))
    if n0 == 0.0 or n1 == 0.0:
        return True
    cross = (d0[0] * d1[1] - d0[1] * d1[0]) / (n0 * n1)
    return abs(cross) < eps and float(np.dot(d0, d1)) > 0.0


def _path_strip(
    graph: nx.Graph, nodes: list[tuple], strips: Sequence[Strip], strip_id: int
) -> Strip | None:
    """Synthetic strip along a node path; None when the path follows a single strip.

    The strip takes the level of its first level piece and runs in that piece's
    original direction.
    """
    pieces: list[np.ndarray] = []
    slots: list[int] = []
    forwards: list[bool] = []
    for u, v in zip(nodes[:-1], nodes[1:], strict=False):
        piece, slot, forward = _piece_between(graph, u, v)
        pieces.append(piece)
        slots.append(slot)
        forwards.append(forward)
    if len(set(slots)) == 1:
        return None
    verts = np.vstack([pieces[0], *(p[1:] for p in pieces[1:])])
    levelled = [k for k, s in enumerate(slots) if strips[s].plane is not None]
    plane = None
    if levelled:
        plane = strips[slots[levelled[0]]].plane
        if not forwards[levelled[0]]:
            verts = verts[::-1].copy()
    return Strip(vertices=verts, plane=plane, strip_id=strip_id, extra=True)


def _cycle_strips(
    graph: nx.Graph, strips: Sequence[Strip], first_id: int, eps: float
) -> list[Strip]:
    """Closed strips around the faces enclosed only by crossing nodes.

    Collinear consecutive crossing nodes are collapsed; a face left with fewer
    than three nodes is degenerate and dropped.
    """
    inner = graph.subgraph([n for n in graph.nodes if n[0] == "x"])
    out: list[Strip] = []

    def emit(pieces: list[np.ndarray], slot: int, forward: bool) -> None:
        verts = np.vstack([pieces[0], *(p[1:] for p in pieces[1:])])
        verts[-1] = verts[0]
        if not forward:
            verts = verts[::-1].copy()
        out.append(
            Strip(vertices=verts, plane=strips[slot].plane, strip_id=first_id - len(out), extra=True)
        )

    for u, v, data in inner.edges(data=True):
        if len(data["pieces"]) >= 2:
            (o0, p0, s0), (o1, p1, _) = data["pieces"][:2]
            a = p0 if o0 == u else p0[::-1]
            b = p1 if o1 == v else p1[::-1]
            emit([a, b], s0, o0 == u)

    for cycle in nx.minimum_cycle_basis(inner):
        ordered = _order_cycle(inner, cycle)
        points = [inner.nodes[n]["point"] for n in ordered]
        kept = [
            k
            for k in range(len(ordered))
            if not _collinear(points[k - 1], points[k], points[(k + 1) % len(points)], eps)
        ]
        if len(kept) < 3:
            logger.debug("dropping degenerate face through %d crossings", len(ordered))
            continue
        pieces = []
        slot = 0
        forward = True
        for a, b in zip(ordered, [*ordered[1:], ordered[0]], strict=False):
            piece, slot, forward = _piece_between(inner, a, b)
            pieces.append(piece)
        emit(pieces, slot, forward)
    return out


def _order_cycle(graph: nx.Graph, cycle: list[tuple]) -> list[tuple]:
    members = set(cycle)
    ordered = [cycle[0]]
    previous = None
    while len(ordered) < len(cycle):
        current = ordered[-1]
        nxt = next(
            n for n in graph.neighbors(current) if n in members and n != previous and n not in ordered
        )
        previous = current
        ordered.append(nxt)
    return ordered


def reorganise_intersecting_strips(
    strips: Sequence[Strip], boundary: Boundary, eps: float, cfg: IntersectionConfig
) -> tuple[list[Strip], list[Intersection]]:
    """Replace crossing boundary strips by non-crossing synthetic strips.

    Consecutive boundary nodes (anticlockwise) are joined by the minimal path
    found with a bidirectional breadth-first search; closed faces between
    crossings become closed strips. Node pairs without a path are skipped.
    """
    if not cfg.enabled or len(strips) < 2:
        return list(strips), []
    intersections = find_intersections(strips)
    if not intersections:
        return list(strips), []

    graph = build_intersection_graph(strips, intersections)
    involved = sorted({n[1] for n in graph.nodes if n[0] == "b"})
    border_nodes = [n for n in graph.nodes if n[0] == "b"]
    positions = {n: boundary.perimeter_position(graph.nodes[n]["point"], eps) for n in border_nodes}
    border_nodes = [n for n in border_nodes if positions[n] is not None]
    border_nodes.sort(key=lambda n: positions[n])

    skipped = set(involved)
    out = [s for k, s in enumerate(strips) if k not in skipped]
    next_id = -1000
    seen: set[tuple] = set()
    for k, u in enumerate(border_nodes):
        v = border_nodes[(k + 1) % len(border_nodes)]
        if u == v:
            continue
        try:
            nodes = nx.bidirectional_shortest_path(graph, u, v)
        except nx.NetworkXNoPath:
            logger.debug("no path between border nodes %s and %s", u, v)
            continue
        key = tuple(sorted([tuple(nodes), tuple(reversed(nodes))])[0])
        if key in seen:
            continue
        seen.add(key)
        strip = _path_strip(graph, nodes, strips, next_id)
        if strip is None:
            # the path follows one strip: keep it un-split
            original = strips[u[1]] if u[1] == v[1] else None
            if original is not None and ("orig", u[1]) not in seen:
                seen.add(("orig", u[1]))
                out.append(original)
            continue
        out.append(strip)
        next_id -= 1
    out.extend(_cycle_strips(graph, strips, next_id, cfg.collinear_eps))
    logger.info(
        "reorganised %d crossing strips at %d intersections", len(involved), len(intersections)
    )
    return out, intersections
