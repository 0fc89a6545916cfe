"""Tests for the MCP server tools (4-tool architecture)."""

import json

from graphlayout_mcp.server import (
    _graphs,
    agent_guide,
    graph,
    inspect,
    layout,
    layout_prompt,
    route,
)

SAMPLE = {
    "nodes": [
        {"id": "name", "type": "literalVar", "label": "name", "value": '"John"'},
        {"id": "obj1", "type": "obj", "objectType": "object"},
        {"id": "obj2", "type": "obj", "objectType": "object"},
        {"id": "age", "type": "literalVar", "label": "age", "value": 30},
    ],
    "links": [
        {"source": "name", "target": "obj1", "type": "reference"},
        {"source": "obj1", "target": "obj2", "type": "reference"},
        {"source": "age", "target": "obj2"},
    ],
}


def setup_function() -> None:
    """Clear graphs between tests."""
    _graphs.clear()


def _positioned(name: str, positions: dict[str, tuple[float, float]], links=()) -> None:
    graph(action="create", name=name, graph_data={
        "nodes": [{"id": nid, "position": {"x": x, "y": y}} for nid, (x, y) in positions.items()],
        "links": [{"source": s, "target": t} for s, t in links],
    })


def test_create_and_get_json() -> None:
    result = graph(action="create", name="g", graph_data=SAMPLE)
    assert result == "Graph 'g' created with 4 nodes and 3 links."

    data = json.loads(graph(action="get_json", name="g"))
    assert [n["id"] for n in data["nodes"]] == ["name", "obj1", "obj2", "age"]
    assert data["nodes"][1]["objectType"] == "object"
    assert data["links"][0] == {
        "id": "e-0", "source": "name", "target": "obj1", "type": "reference",
    }


def test_create_from_json_string() -> None:
    result = graph(action="create", name="g", graph_json=json.dumps(SAMPLE))
    assert "created" in result


def test_list_and_delete() -> None:
    graph(action="create", name="one", graph_data=SAMPLE)
    graph(action="create", name="two", graph_data={"nodes": []})
    listed = json.loads(graph(action="list"))
    assert {"name": "one", "nodes": 4, "links": 3} in listed
    assert len(listed) == 2

    assert "deleted" in graph(action="delete", name="one")
    assert [g["name"] for g in json.loads(graph(action="list"))] == ["two"]
    assert "not found" in graph(action="get_json", name="one")


def test_fallback_positions_in_grid() -> None:
    graph(action="create", name="g", graph_data=SAMPLE)
    result = json.loads(layout(action="fallback", graph_name="g"))
    assert result["positioned"] == ["name", "obj1", "obj2", "age"]

    nodes = json.loads(graph(action="get_json", name="g"))["nodes"]
    assert [n["position"] for n in nodes] == [
        {"x": 0, "y": 0}, {"x": 300, "y": 0}, {"x": 600, "y": 0}, {"x": 900, "y": 0},
    ]
    # Second run has nothing left to place
    assert json.loads(layout(action="fallback", graph_name="g"))["positioned"] == []


def test_resolve_overlaps_clears_crowding() -> None:
    _positioned("g", {"a": (0, 0), "b": (0, 0), "c": (100, 0)})
    report = json.loads(layout(action="resolve_overlaps", graph_name="g"))
    assert report["remaining_overlaps"] == []
    assert report["positions"]["a"] == {"x": 0, "y": 0}
    assert inspect(action="overlaps", graph_name="g") == "No overlaps found. Layout is clean!"


def test_resolve_overlaps_custom_distance() -> None:
    _positioned("g", {"a": (0, 0), "b": (100, 0)})
    report = json.loads(layout(action="resolve_overlaps", graph_name="g", min_distance=50))
    assert report["positions"]["b"] == {"x": 100, "y": 0}


def test_apply_proposal() -> None:
    graph(action="create", name="g", graph_data=SAMPLE)
    proposal = "```json\n" + json.dumps({"nodes": [
        {"id": "name", "position": {"x": 0, "y": 0}},
        {"id": "obj1", "position": {"x": 400, "y": 0}},
        {"id": "obj2", "position": {"x": 400, "y": 50}},
        {"id": "ghost", "position": {"x": 9, "y": 9}},
    ]}) + "\n```"
    report = json.loads(layout(action="apply_proposal", graph_name="g", proposal=proposal))

    assert report["remaining_overlaps"] == []
    assert report["ignored_ids"] == ["ghost"]
    assert report["positions"]["name"] == {"x": 0, "y": 0}
    assert report["positions"]["obj1"] == {"x": 400, "y": 0}
    # obj2 was pushed straight down from obj1
    assert report["positions"]["obj2"] == {"x": 400, "y": 200}
    # age was not in the proposal and got its grid slot
    assert report["positions"]["age"] == {"x": 900, "y": 0}


def test_apply_proposal_rejects_non_finite_coordinates() -> None:
    _positioned("g", {"a": (0, 0), "b": (500, 0)})
    result = layout(
        action="apply_proposal", graph_name="g",
        proposal='{"nodes": [{"id": "a", "position": {"x": NaN, "y": 0}},'
                 ' {"id": "b", "position": {"x": Infinity, "y": 0}}]}',
    )
    assert result.startswith("Error:")
    assert "finite" in result
    # Stored positions are untouched
    nodes = json.loads(graph(action="get_json", name="g"))["nodes"]
    assert [n["position"] for n in nodes] == [{"x": 0, "y": 0}, {"x": 500, "y": 0}]


def test_apply_proposal_rejects_string_coordinate() -> None:
    _positioned("g", {"a": (0, 0)})
    result = layout(
        action="apply_proposal", graph_name="g",
        proposal='{"nodes": [{"id": "a", "position": {"x": "12", "y": 0}}]}',
    )
    assert result.startswith("Error:")
    assert "must be a number" in result


def test_apply_proposal_rejects_non_string_ids() -> None:
    _positioned("g", {"z": (0, 0)})
    result = layout(
        action="apply_proposal", graph_name="g",
        proposal='{"nodes": [{"id": 1, "position": {"x": 0, "y": 0}},'
                 ' {"id": "z", "position": {"x": 300, "y": 0}}]}',
    )
    assert result.startswith("Error:")
    assert "'id'" in result


def test_move_node() -> None:
    _positioned("g", {"a": (0, 0)})
    assert "moved" in layout(action="move_node", graph_name="g", node_id="a", x=250, y=-40)
    nodes = json.loads(graph(action="get_json", name="g"))["nodes"]
    assert nodes[0]["position"] == {"x": 250, "y": -40}


def test_route_edge_detours_around_blocker() -> None:
    _positioned("g", {"a": (0, 0), "b": (0, 400), "c": (0, 200)}, links=[("a", "b")])
    routed = json.loads(route(action="edge", graph_name="g", edge_id="e-0"))
    assert routed["blocking"] == ["c"]
    assert routed["waypoints"] == [{"x": 190, "y": 60}, {"x": 190, "y": 400}]
    assert routed["path"].startswith("M 70 60 ")
    assert routed["path"].endswith(" L 70 400")


def test_route_edge_unblocked_is_smooth_step() -> None:
    _positioned("g", {"a": (0, 0), "b": (0, 300)}, links=[("a", "b")])
    routed = json.loads(route(action="edge", graph_name="g", edge_id="e-0"))
    assert routed == {"path": "M 70 60 L 70 300", "waypoints": [], "blocking": []}


def test_route_edge_unpositioned_endpoint() -> None:
    graph(action="create", name="g", graph_data=SAMPLE)
    assert "unpositioned" in route(action="edge", graph_name="g", edge_id="e-0")


def test_route_all_reports_skipped() -> None:
    graph(action="create", name="g", graph_data={
        "nodes": [
            {"id": "a", "position": {"x": 0, "y": 0}},
            {"id": "b", "position": {"x": 0, "y": 300}},
            {"id": "c"},
        ],
        "links": [{"source": "a", "target": "b"}, {"id": "bc", "source": "b", "target": "c"}],
    })
    result = json.loads(route(action="all", graph_name="g"))
    assert list(result["routes"]) == ["e-0"]
    assert result["skipped"] == ["bc"]


def test_route_all_after_fallback() -> None:
    graph(action="create", name="g", graph_data=SAMPLE)
    layout(action="fallback", graph_name="g")
    result = json.loads(route(action="all", graph_name="g"))
    assert set(result["routes"]) == {"e-0", "e-1", "e-2"}
    assert "skipped" not in result
    for r in result["routes"].values():
        assert r["path"].startswith("M ")


def test_route_points_direct_segment() -> None:
    _positioned("g", {"far": (1000, 1000)})
    routed = json.loads(route(
        action="points", graph_name="g",
        source_point={"x": 0, "y": 0}, target_point={"x": 300, "y": 0},
        source_side="", target_side="",
    ))
    assert routed["path"] == "M 0 0 L 300 0"


def test_route_points_around_obstacle() -> None:
    _positioned("g", {"o": (80, -30)})
    routed = json.loads(route(
        action="points", graph_name="g",
        source_point={"x": 0, "y": 0}, target_point={"x": 300, "y": 0},
    ))
    assert routed["blocking"] == ["o"]
    assert routed["path"] == "M 0 0 L 0 72 Q 0 80 8 80 L 292 80 Q 300 80 300 72 L 300 0"


def test_route_points_excludes_named_nodes() -> None:
    _positioned("g", {"o": (80, -30)})
    routed = json.loads(route(
        action="points", graph_name="g",
        source_point={"x": 0, "y": 0}, target_point={"x": 300, "y": 0},
        source_id="o", source_side="", target_side="",
    ))
    assert routed["blocking"] == []


def test_route_border_radius() -> None:
    _positioned("g", {"o": (80, -30)})
    routed = json.loads(route(
        action="points", graph_name="g",
        source_point={"x": 0, "y": 0}, target_point={"x": 300, "y": 0},
        border_radius=0,
    ))
    assert routed["path"] == "M 0 0 L 0 80 Q 0 80 0 80 L 300 80 Q 300 80 300 80 L 300 0"


def test_inspect_overlaps() -> None:
    graph(action="create", name="g", graph_data={
        "nodes": [
            {"id": "a", "label": "Alpha", "position": {"x": 0, "y": 0}},
            {"id": "b", "position": {"x": 50, "y": 0}},
        ],
    })
    report = json.loads(inspect(action="overlaps", graph_name="g"))
    assert report == [{"node_a": "a", "label_a": "Alpha", "node_b": "b", "label_b": "b"}]
    assert "clean" in inspect(action="overlaps", graph_name="g", min_distance=10)


def test_inspect_blocking() -> None:
    _positioned("g", {"a": (0, 0), "b": (0, 400), "c": (0, 200), "d": (600, 0)},
                links=[("a", "b"), ("a", "d")])
    report = json.loads(inspect(action="blocking", graph_name="g"))
    assert report == {"e-0": ["c"]}


def test_inspect_info() -> None:
    graph(action="create", name="g", graph_data={
        "nodes": [
            {"id": "a", "position": {"x": 0, "y": 0}},
            {"id": "b", "position": {"x": 3, "y": 4}},
            {"id": "c"},
        ],
    })
    info = json.loads(inspect(action="info", graph_name="g"))
    assert info == {
        "name": "g",
        "nodes": 3,
        "links": 0,
        "unpositioned": ["c"],
        "closest_pair_distance": 5.0,
    }


def test_layout_prompt_includes_graph_and_rules() -> None:
    graph(action="create", name="g", graph_data=SAMPLE)
    prompt = layout_prompt("g", "Group literals on the left.")
    assert "graph layout engine" in prompt
    assert "Additional Custom Rules:\nGroup literals on the left." in prompt
    assert '"id": "obj1"' in prompt


def test_layout_prompt_unknown_graph() -> None:
    assert "not found" in layout_prompt("missing")


def test_agent_guide() -> None:
    assert "apply_proposal" in agent_guide()
