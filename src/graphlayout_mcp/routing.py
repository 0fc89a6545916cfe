"""
Obstacle-aware edge routing.

Produces SVG path strings (``M``/``L``/``Q`` commands) for diagram edges:

- Blocking-node detection on the straight source→target segment
- Single-obstacle detour around the nearest blocker (above/below for
  mostly-horizontal edges, left/right for mostly-vertical ones)
- Rounded-corner polylines with radius clamped to the adjacent segments
- Smooth-step paths (orthogonal, rounded bends) for unobstructed edges
  that carry handle sides

Only the nearest blocking node is routed around. Further blockers are
still detected and reported, but they do not add waypoints.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Literal, Optional, Sequence

from graphlayout_mcp.config import EngineConfig
from graphlayout_mcp.geometry import distance, padded_rect, segment_crosses_rect
from graphlayout_mcp.models import DiagramNode, GraphData, Point, Rect

logger = logging.getLogger(__name__)

RouteDirection = Literal["above", "below", "left", "right"]

_HANDLE_DIRECTIONS: dict[str, tuple[int, int]] = {
    "left": (-1, 0),
    "right": (1, 0),
    "top": (0, -1),
    "bottom": (0, 1),
}


@dataclass
class RoutedEdge:
    """Result of routing a single edge."""
    path: str
    waypoints: list[Point] = field(default_factory=list)
    blocking_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "waypoints": [p.to_dict() for p in self.waypoints],
            "blocking": list(self.blocking_ids),
        }


# ---------------------------------------------------------------------------
# Blocking-node detection
# ---------------------------------------------------------------------------

def find_blocking_nodes(
    source_point: Point,
    target_point: Point,
    nodes: Sequence[DiagramNode],
    source_id: str,
    target_id: str,
    config: EngineConfig | None = None,
) -> list[DiagramNode]:
    """Nodes whose padded box the straight edge segment visually crosses.

    The edge's own source and target nodes are skipped, as is any node
    whose padded box already contains either endpoint. Unpositioned nodes
    cannot block anything.
    """
    cfg = config or EngineConfig()
    blocking: list[DiagramNode] = []
    for node in nodes:
        if node.id == source_id or node.id == target_id:
            continue
        if node.position is None:
            continue

        rect = padded_rect(node, cfg.node_padding, cfg.default_width, cfg.default_height)
        if rect.contains_point(source_point) or rect.contains_point(target_point):
            continue

        if segment_crosses_rect(source_point, target_point, rect):
            blocking.append(node)
    return blocking


# ---------------------------------------------------------------------------
# Waypoint / direction selection
# ---------------------------------------------------------------------------

def route_direction(source: Point, target: Point, blocker: Rect) -> RouteDirection:
    """Pick the side of *blocker* the edge should pass on.

    Mostly-horizontal edges go above or below, depending on whether the
    segment's vertical midpoint lies above the blocker's center. Otherwise
    the edge goes left or right by the horizontal midpoint.
    """
    dx = abs(target.x - source.x)
    dy = abs(target.y - source.y)

    if dx > dy:
        mid_y = (source.y + target.y) / 2
        return "above" if mid_y < blocker.cy else "below"
    mid_x = (source.x + target.x) / 2
    return "left" if mid_x < blocker.cx else "right"


def find_routing_waypoints(
    source_point: Point,
    target_point: Point,
    blocking_nodes: Sequence[DiagramNode],
    config: EngineConfig | None = None,
) -> list[Point]:
    """Two detour waypoints around the blocker nearest to the source.

    Returns an empty list when nothing blocks the edge.
    """
    if not blocking_nodes:
        return []

    cfg = config or EngineConfig()
    nearest = min(
        blocking_nodes,
        key=lambda n: distance(n.position, source_point),
    )
    bounds = padded_rect(nearest, cfg.node_padding, cfg.default_width, cfg.default_height)
    direction = route_direction(source_point, target_point, bounds)
    offset = cfg.route_offset

    if direction == "above":
        route_y = bounds.y - offset
        return [Point(source_point.x, route_y), Point(target_point.x, route_y)]
    if direction == "below":
        route_y = bounds.bottom + offset
        return [Point(source_point.x, route_y), Point(target_point.x, route_y)]
    if direction == "left":
        route_x = bounds.x - offset
        return [Point(route_x, source_point.y), Point(route_x, target_point.y)]
    route_x = bounds.right + offset
    return [Point(route_x, source_point.y), Point(route_x, target_point.y)]


# ---------------------------------------------------------------------------
# Path generation
# ---------------------------------------------------------------------------

def generate_routed_path(
    source_point: Point,
    target_point: Point,
    waypoints: Sequence[Point],
) -> str:
    """Sharp-cornered polyline through every waypoint."""
    path = f"M {_fmt_exact(source_point.x)} {_fmt_exact(source_point.y)}"
    for wp in waypoints:
        path += f" L {_fmt(wp.x)} {_fmt(wp.y)}"
    path += f" L {_fmt_exact(target_point.x)} {_fmt_exact(target_point.y)}"
    return path


def generate_smooth_routed_path(
    source_point: Point,
    target_point: Point,
    waypoints: Sequence[Point],
    border_radius: float = 8,
) -> str:
    """Polyline through every waypoint with quadratic rounded corners.

    Each corner's radius is clamped to half of both adjacent segments, so
    a curve never starts or ends past a segment's midpoint.
    """
    return _rounded_path([source_point, *waypoints, target_point], border_radius)


def _rounded_path(points: Sequence[Point], border_radius: float) -> str:
    if not points:
        return ""
    first = points[0]
    if len(points) < 2:
        return f"M {_fmt_exact(first.x)} {_fmt_exact(first.y)}"

    path = f"M {_fmt_exact(first.x)} {_fmt_exact(first.y)}"
    for i in range(1, len(points) - 1):
        prev, curr, nxt = points[i - 1], points[i], points[i + 1]

        to_prev = (prev.x - curr.x, prev.y - curr.y)
        to_next = (nxt.x - curr.x, nxt.y - curr.y)
        len_prev = math.hypot(*to_prev)
        len_next = math.hypot(*to_next)

        if len_prev == 0 or len_next == 0:
            # Repeated vertex: nothing to round
            path += f" L {_fmt(curr.x)} {_fmt(curr.y)}"
            continue

        radius = min(border_radius, len_prev / 2, len_next / 2)
        start_x = curr.x + to_prev[0] / len_prev * radius
        start_y = curr.y + to_prev[1] / len_prev * radius
        end_x = curr.x + to_next[0] / len_next * radius
        end_y = curr.y + to_next[1] / len_next * radius

        path += f" L {_fmt(start_x)} {_fmt(start_y)}"
        path += f" Q {_fmt(curr.x)} {_fmt(curr.y)} {_fmt(end_x)} {_fmt(end_y)}"

    last = points[-1]
    path += f" L {_fmt_exact(last.x)} {_fmt_exact(last.y)}"
    return path


def smooth_step_points(
    source_point: Point,
    target_point: Point,
    source_position: str = "bottom",
    target_position: str = "top",
    offset: float = 20,
) -> list[Point]:
    """Vertices of an orthogonal step path between two handles.

    The path leaves the source perpendicular to *source_position*, enters
    the target perpendicular to *target_position*, and keeps *offset*
    clear of both handles before turning.
    """
    sdx, sdy = _HANDLE_DIRECTIONS[source_position]
    tdx, tdy = _HANDLE_DIRECTIONS[target_position]
    source_gapped = Point(source_point.x + sdx * offset, source_point.y + sdy * offset)
    target_gapped = Point(target_point.x + tdx * offset, target_point.y + tdy * offset)

    # Main travel axis and its sign
    if source_position in ("left", "right"):
        horizontal = True
        curr_dir = 1 if source_gapped.x < target_gapped.x else -1
    else:
        horizontal = False
        curr_dir = 1 if source_gapped.y < target_gapped.y else -1
    s_axis = sdx if horizontal else sdy
    t_axis = tdx if horizontal else tdy

    center_x = (source_point.x + target_point.x) / 2
    center_y = (source_point.y + target_point.y) / 2
    source_gap_offset = [0.0, 0.0]
    target_gap_offset = [0.0, 0.0]

    if s_axis * t_axis == -1:
        # Opposite handles: one split at the center line
        vertical_split = [Point(center_x, source_gapped.y), Point(center_x, target_gapped.y)]
        horizontal_split = [Point(source_gapped.x, center_y), Point(target_gapped.x, center_y)]
        if s_axis == curr_dir:
            middle = vertical_split if horizontal else horizontal_split
        else:
            middle = horizontal_split if horizontal else vertical_split
    else:
        source_target = [Point(source_gapped.x, target_gapped.y)]
        target_source = [Point(target_gapped.x, source_gapped.y)]
        if horizontal:
            middle = target_source if sdx == curr_dir else source_target
        else:
            middle = source_target if sdy == curr_dir else target_source

        axis = 0 if horizontal else 1
        if source_position == target_position:
            s_val = source_point.x if horizontal else source_point.y
            t_val = target_point.x if horizontal else target_point.y
            diff = abs(s_val - t_val)
            if diff <= offset:
                gap = min(offset - 1, offset - diff)
                if s_axis == curr_dir:
                    sg_val = source_gapped.x if horizontal else source_gapped.y
                    source_gap_offset[axis] = (-1 if sg_val > s_val else 1) * gap
                else:
                    tg_val = target_gapped.x if horizontal else target_gapped.y
                    target_gap_offset[axis] = (-1 if tg_val > t_val else 1) * gap
        else:
            # Mixed handles (e.g. bottom to left)
            s_opp = source_gapped.y if horizontal else source_gapped.x
            t_opp = target_gapped.y if horizontal else target_gapped.x
            t_opp_dir = tdy if horizontal else tdx
            same_dir = s_axis == t_opp_dir
            source_gt = s_opp > t_opp
            source_lt = s_opp < t_opp
            if s_axis == 1:
                flip = (not same_dir and source_gt) or (same_dir and source_lt)
            else:
                flip = (not same_dir and source_lt) or (same_dir and source_gt)
            if flip:
                middle = source_target if horizontal else target_source

    return [
        source_point,
        Point(source_gapped.x + source_gap_offset[0], source_gapped.y + source_gap_offset[1]),
        *middle,
        Point(target_gapped.x + target_gap_offset[0], target_gapped.y + target_gap_offset[1]),
        target_point,
    ]


def smooth_step_path(
    source_point: Point,
    target_point: Point,
    source_position: str = "bottom",
    target_position: str = "top",
    border_radius: float = 8,
    offset: float = 20,
) -> str:
    """Orthogonal step path with rounded bends between two handles."""
    points = smooth_step_points(
        source_point, target_point, source_position, target_position, offset,
    )
    return _rounded_path(_simplify(points), border_radius)


def _simplify(points: Sequence[Point]) -> list[Point]:
    """Drop repeated vertices and collinear interior vertices."""
    deduped: list[Point] = []
    for p in points:
        if deduped and _same(deduped[-1], p):
            continue
        deduped.append(p)

    if len(deduped) <= 2:
        return deduped

    result: list[Point] = [deduped[0]]
    for i in range(1, len(deduped) - 1):
        prev, curr, nxt = result[-1], deduped[i], deduped[i + 1]
        cross = (curr.x - prev.x) * (nxt.y - curr.y) - (curr.y - prev.y) * (nxt.x - curr.x)
        dot = (curr.x - prev.x) * (nxt.x - curr.x) + (curr.y - prev.y) * (nxt.y - curr.y)
        # Keep reversals: they are real turns
        if abs(cross) < 1e-9 and dot > 0:
            continue
        result.append(curr)
    result.append(deduped[-1])
    return result


def _same(a: Point, b: Point) -> bool:
    return abs(a.x - b.x) < 1e-9 and abs(a.y - b.y) < 1e-9


def _fmt(value: float) -> str:
    """Compact number for path data: 80 not 80.0, at most 3 decimals."""
    text = f"{value:.3f}".rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


def _fmt_exact(value: float) -> str:
    """Full-precision number for path endpoints: 80 not 80.0, no rounding."""
    text = repr(float(value))
    if text.endswith(".0"):
        text = text[:-2]
    return "0" if text == "-0" else text


# ---------------------------------------------------------------------------
# Router
# ---------------------------------------------------------------------------

def route_edge(
    source_point: Point,
    target_point: Point,
    nodes: Sequence[DiagramNode],
    source_id: str,
    target_id: str,
    source_position: Optional[str] = None,
    target_position: Optional[str] = None,
    config: EngineConfig | None = None,
) -> RoutedEdge:
    """Route one edge between its rendered endpoints.

    Unobstructed edges with handle sides get the standard smooth-step
    path; without sides they are a direct segment. Obstructed edges detour
    around the nearest blocker with rounded corners.
    """
    cfg = config or EngineConfig()
    blocking = find_blocking_nodes(
        source_point, target_point, nodes, source_id, target_id, cfg,
    )
    blocking_ids = [n.id for n in blocking]

    if not blocking:
        if source_position and target_position:
            path = smooth_step_path(
                source_point, target_point,
                source_position, target_position,
                border_radius=cfg.border_radius,
                offset=cfg.step_offset,
            )
        else:
            path = generate_smooth_routed_path(
                source_point, target_point, [], cfg.border_radius,
            )
        return RoutedEdge(path=path)

    waypoints = find_routing_waypoints(source_point, target_point, blocking, cfg)
    path = generate_smooth_routed_path(
        source_point, target_point, waypoints, cfg.border_radius,
    )
    return RoutedEdge(path=path, waypoints=waypoints, blocking_ids=blocking_ids)


def handle_point(
    node: DiagramNode,
    side: str,
    config: EngineConfig | None = None,
) -> Point:
    """Center of one side of a positioned node's (unpadded) box."""
    cfg = config or EngineConfig()
    rect = padded_rect(node, 0, cfg.default_width, cfg.default_height)
    if side == "top":
        return Point(rect.cx, rect.y)
    if side == "bottom":
        return Point(rect.cx, rect.bottom)
    if side == "left":
        return Point(rect.x, rect.cy)
    return Point(rect.right, rect.cy)


def route_graph_edge(
    graph: GraphData,
    edge_id: str,
    source_side: str = "bottom",
    target_side: str = "top",
    config: EngineConfig | None = None,
) -> RoutedEdge | None:
    """Route a single edge of *graph* from its node handles.

    Returns None when the edge is unknown or an endpoint is missing or
    unpositioned.
    """
    edge = graph.get_edge(edge_id)
    if edge is None:
        return None
    src = graph.get_node(edge.source)
    tgt = graph.get_node(edge.target)
    if src is None or tgt is None or src.position is None or tgt.position is None:
        logger.debug("Skipping edge %s: endpoint missing or unpositioned", edge_id)
        return None

    return route_edge(
        handle_point(src, source_side, config),
        handle_point(tgt, target_side, config),
        graph.nodes,
        src.id,
        tgt.id,
        source_side,
        target_side,
        config,
    )


def route_all_edges(
    graph: GraphData,
    source_side: str = "bottom",
    target_side: str = "top",
    config: EngineConfig | None = None,
) -> dict[str, RoutedEdge]:
    """Route every edge of *graph* independently.

    Edges whose endpoints cannot be resolved are left out of the result.
    """
    routes: dict[str, RoutedEdge] = {}
    for edge in graph.links:
        routed = route_graph_edge(graph, edge.id, source_side, target_side, config)
        if routed is not None:
            routes[edge.id] = routed
    return routes
