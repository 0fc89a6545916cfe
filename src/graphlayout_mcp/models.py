"""
Core data model for diagram layout.

Provides typed containers for the graph JSON exchanged with the layout
proposer (``{"nodes": [...], "links": [...]}``) and the geometric query
objects used by the overlap resolver and the edge router.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Optional


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

NODE_PADDING = 20
DEFAULT_NODE_WIDTH = 140
DEFAULT_NODE_HEIGHT = 60


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass
class Point:
    """A 2-D coordinate."""
    x: float
    y: float

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Point:
        return cls(x=float(data["x"]), y=float(data["y"]))


@dataclass
class Rect:
    """Axis-aligned bounding box."""
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def cx(self) -> float:
        return self.x + self.width / 2

    @property
    def cy(self) -> float:
        return self.y + self.height / 2

    def expanded(self, padding: float) -> Rect:
        """Return a copy grown by *padding* on all four sides."""
        return Rect(
            self.x - padding,
            self.y - padding,
            self.width + padding * 2,
            self.height + padding * 2,
        )

    def contains_point(self, point: Point) -> bool:
        """Check if a point is inside this box (edges inclusive)."""
        return (
            self.x <= point.x <= self.right
            and self.y <= point.y <= self.bottom
        )

    def sides(self) -> list[tuple[Point, Point]]:
        """The four sides as segments: top, right, bottom, left."""
        tl = Point(self.x, self.y)
        tr = Point(self.right, self.y)
        br = Point(self.right, self.bottom)
        bl = Point(self.x, self.bottom)
        return [(tl, tr), (tr, br), (bl, br), (tl, bl)]


@dataclass
class DiagramNode:
    """A positioned, sized entity in the drawing.

    ``position`` is the top-left corner of the node's box. It is ``None``
    until a proposer (or the fallback grid) assigns one.
    """
    id: str
    type: str = "default"
    label: Optional[str] = None
    value: Any = None
    object_type: Optional[str] = None
    position: Optional[Point] = None
    width: Optional[float] = None
    height: Optional[float] = None

    @property
    def display_label(self) -> str:
        return self.label or self.id

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "type": self.type}
        if self.label is not None:
            data["label"] = self.label
        if self.value is not None:
            data["value"] = self.value
        if self.object_type is not None:
            data["objectType"] = self.object_type
        if self.position is not None:
            data["position"] = self.position.to_dict()
        if self.width is not None:
            data["width"] = self.width
        if self.height is not None:
            data["height"] = self.height
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DiagramNode:
        pos = data.get("position")
        width = data.get("width")
        height = data.get("height")
        return cls(
            id=data["id"],
            type=data.get("type") or "default",
            label=data.get("label"),
            value=data.get("value"),
            object_type=data.get("objectType"),
            position=Point.from_dict(pos) if pos is not None else None,
            width=float(width) if width is not None else None,
            height=float(height) if height is not None else None,
        )


@dataclass
class DiagramEdge:
    """A directed relationship between two nodes."""
    id: str
    source: str
    target: str
    type: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "source": self.source, "target": self.target, "type": self.type}


@dataclass
class GraphData:
    """Nodes plus links, the shape exchanged with the layout proposer."""
    nodes: list[DiagramNode] = field(default_factory=list)
    links: list[DiagramEdge] = field(default_factory=list)

    def get_node(self, node_id: str) -> DiagramNode | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def get_edge(self, edge_id: str) -> DiagramEdge | None:
        for edge in self.links:
            if edge.id == edge_id:
                return edge
        return None

    def copy(self) -> GraphData:
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "links": [e.to_dict() for e in self.links],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GraphData:
        nodes = [DiagramNode.from_dict(n) for n in data.get("nodes", [])]
        links = [
            DiagramEdge(
                id=link.get("id") or f"e-{i}",
                source=link["source"],
                target=link["target"],
                type=link.get("type", ""),
            )
            for i, link in enumerate(data.get("links", []))
        ]
        return cls(nodes=nodes, links=links)
