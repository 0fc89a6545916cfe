"""Tests for geometric primitives."""

from graphlayout_mcp.geometry import (
    distance,
    padded_rect,
    point_in_rect,
    segment_crosses_rect,
    segments_intersect,
)
from graphlayout_mcp.models import DiagramNode, Point, Rect


def test_distance() -> None:
    assert distance(Point(0, 0), Point(3, 4)) == 5
    assert distance(Point(1, 1), Point(1, 1)) == 0


def test_point_in_rect() -> None:
    r = Rect(0, 0, 100, 100)
    assert point_in_rect(Point(50, 50), r)
    assert point_in_rect(Point(100, 0), r)
    assert not point_in_rect(Point(-1, 50), r)


def test_padded_rect_uses_defaults() -> None:
    r = padded_rect(DiagramNode(id="n", position=Point(80, -30)))
    assert (r.x, r.y, r.right, r.bottom) == (60, -50, 240, 50)


def test_padded_rect_custom_padding_and_size() -> None:
    node = DiagramNode(id="n", position=Point(0, 0), width=10)
    r = padded_rect(node, padding=5, default_height=20)
    assert (r.x, r.y, r.width, r.height) == (-5, -5, 20, 30)


class TestSegmentsIntersect:
    def test_crossing(self) -> None:
        assert segments_intersect(Point(0, 0), Point(10, 10), Point(0, 10), Point(10, 0))

    def test_disjoint(self) -> None:
        assert not segments_intersect(Point(0, 0), Point(1, 1), Point(5, 0), Point(6, -1))

    def test_touching_endpoint_counts(self) -> None:
        assert segments_intersect(Point(0, 0), Point(10, 0), Point(10, -5), Point(10, 5))

    def test_parallel_never_intersects(self) -> None:
        assert not segments_intersect(Point(0, 0), Point(10, 0), Point(0, 0), Point(5, 0))
        assert not segments_intersect(Point(0, 0), Point(10, 0), Point(0, 1), Point(10, 1))

    def test_lines_cross_outside_segments(self) -> None:
        # Infinite lines meet at (20, 0), beyond the first segment
        assert not segments_intersect(Point(0, 0), Point(10, 0), Point(20, -5), Point(20, 5))


class TestSegmentCrossesRect:
    def test_straight_through(self) -> None:
        r = Rect(60, -50, 180, 100)
        assert segment_crosses_rect(Point(0, 0), Point(300, 0), r)

    def test_misses(self) -> None:
        r = Rect(60, 10, 180, 100)
        assert not segment_crosses_rect(Point(0, 0), Point(300, 0), r)

    def test_fully_inside_touches_no_side(self) -> None:
        r = Rect(0, 0, 100, 100)
        assert not segment_crosses_rect(Point(10, 10), Point(90, 90), r)

    def test_diagonal_through_two_sides(self) -> None:
        r = Rect(0, 0, 10, 10)
        assert segment_crosses_rect(Point(-5, 2), Point(5, 12), r)
