"""
Geometric primitives shared by the overlap resolver and the edge router.
"""

from __future__ import annotations

import math

from graphlayout_mcp.models import (
    DEFAULT_NODE_HEIGHT,
    DEFAULT_NODE_WIDTH,
    NODE_PADDING,
    DiagramNode,
    Point,
    Rect,
)

# Determinants smaller than this are treated as parallel segments.
PARALLEL_TOLERANCE = 0.0001


def distance(a: Point, b: Point) -> float:
    """Euclidean distance between two points."""
    return math.hypot(b.x - a.x, b.y - a.y)


def point_in_rect(point: Point, rect: Rect) -> bool:
    """Check if *point* lies inside *rect*, edges inclusive."""
    return rect.contains_point(point)


def padded_rect(
    node: DiagramNode,
    padding: float = NODE_PADDING,
    default_width: float = DEFAULT_NODE_WIDTH,
    default_height: float = DEFAULT_NODE_HEIGHT,
) -> Rect:
    """Bounding box of a positioned node, expanded by *padding* on every side."""
    width = node.width if node.width is not None else default_width
    height = node.height if node.height is not None else default_height
    return Rect(node.position.x, node.position.y, width, height).expanded(padding)


def segments_intersect(p1: Point, p2: Point, p3: Point, p4: Point) -> bool:
    """Parametric segment-segment test for p1-p2 against p3-p4.

    Solves for ua (along p1-p2) and ub (along p3-p4); both must fall in
    [0, 1]. Parallel or collinear segments never intersect.
    """
    denom = (p4.y - p3.y) * (p2.x - p1.x) - (p4.x - p3.x) * (p2.y - p1.y)
    if abs(denom) < PARALLEL_TOLERANCE:
        return False

    ua = ((p4.x - p3.x) * (p1.y - p3.y) - (p4.y - p3.y) * (p1.x - p3.x)) / denom
    ub = ((p2.x - p1.x) * (p1.y - p3.y) - (p2.y - p1.y) * (p1.x - p3.x)) / denom

    return 0 <= ua <= 1 and 0 <= ub <= 1


def segment_crosses_rect(p1: Point, p2: Point, rect: Rect) -> bool:
    """Check if segment p1-p2 crosses any of the four sides of *rect*.

    A segment lying entirely inside the box touches no side and is not
    reported.
    """
    return any(segments_intersect(p1, p2, a, b) for a, b in rect.sides())
