"""Tests for the graph data model classes."""

from graphlayout_mcp.models import (
    DiagramNode,
    GraphData,
    Point,
    Rect,
)


def test_rect_properties() -> None:
    r = Rect(10, 20, 100, 50)
    assert r.right == 110
    assert r.bottom == 70
    assert r.cx == 60
    assert r.cy == 45


def test_rect_expanded() -> None:
    r = Rect(0, 0, 140, 60).expanded(20)
    assert (r.x, r.y, r.width, r.height) == (-20, -20, 180, 100)


def test_rect_contains_point_edges_inclusive() -> None:
    r = Rect(0, 0, 10, 10)
    assert r.contains_point(Point(0, 0))
    assert r.contains_point(Point(10, 10))
    assert r.contains_point(Point(5, 5))
    assert not r.contains_point(Point(10.01, 5))


def test_node_size_round_trip() -> None:
    n = DiagramNode.from_dict({"id": "a", "width": 50, "height": 30})
    assert (n.width, n.height) == (50.0, 30.0)
    assert n.to_dict() == {"id": "a", "type": "default", "width": 50.0, "height": 30.0}


def test_node_without_size_omits_it() -> None:
    assert "width" not in DiagramNode(id="a").to_dict()


def test_graph_from_dict() -> None:
    g = GraphData.from_dict({
        "nodes": [
            {"id": "name", "type": "literalVar", "label": "name", "value": '"John"'},
            {"id": "obj1", "type": "obj", "objectType": "object",
             "position": {"x": 200, "y": 150}},
        ],
        "links": [{"source": "name", "target": "obj1", "type": "reference"}],
    })
    assert [n.id for n in g.nodes] == ["name", "obj1"]
    assert g.nodes[0].position is None
    assert g.nodes[1].position == Point(200, 150)
    assert g.nodes[1].object_type == "object"
    assert g.links[0].id == "e-0"
    assert g.links[0].type == "reference"


def test_graph_link_explicit_id() -> None:
    g = GraphData.from_dict({
        "nodes": [{"id": "a"}, {"id": "b"}],
        "links": [{"id": "ab", "source": "a", "target": "b"}],
    })
    assert g.get_edge("ab") is not None
    assert g.get_edge("e-0") is None


def test_graph_to_dict_keeps_descriptive_fields() -> None:
    data = {
        "nodes": [{"id": "p", "type": "literalProp", "label": "prop", "value": 20,
                   "position": {"x": 1.5, "y": 2}}],
        "links": [],
    }
    out = GraphData.from_dict(data).to_dict()
    node = out["nodes"][0]
    assert node["label"] == "prop"
    assert node["value"] == 20
    assert node["position"] == {"x": 1.5, "y": 2.0}
    assert "objectType" not in node


def test_graph_copy_is_deep() -> None:
    g = GraphData(nodes=[DiagramNode(id="a", position=Point(0, 0))])
    c = g.copy()
    c.nodes[0].position.x = 99
    assert g.nodes[0].position.x == 0
