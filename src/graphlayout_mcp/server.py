"""
Graph Layout MCP Server — repair proposed diagram layouts and route edges
via Model Context Protocol.

The client LLM proposes node coordinates (see the ``layout_prompt`` prompt);
this server makes them legible. Exposes 4 tools:

Tools:
  1. graph    — lifecycle: create, get_json, list, delete
  2. layout   — positioning: fallback, resolve_overlaps, apply_proposal, move_node
  3. route    — edge paths: edge, all, points (SVG path strings)
  4. inspect  — read-only: overlaps, blocking, info
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Any

from mcp.server.fastmcp import FastMCP

from graphlayout_mcp.config import EngineConfig
from graphlayout_mcp.layout_engine import (
    assign_fallback_positions,
    find_overlapping_nodes,
    min_pairwise_distance,
    resolve_overlaps,
)
from graphlayout_mcp.models import GraphData, Point
from graphlayout_mcp.proposal import ProposalError, build_system_prompt, parse_layout_response
from graphlayout_mcp.routing import (
    find_blocking_nodes,
    handle_point,
    route_all_edges,
    route_edge,
    route_graph_edge,
)
from graphlayout_mcp.validation import (
    ValidationError,
    validate_action,
    validate_graph_dict,
    validate_iterations,
    validate_non_empty_string,
    validate_non_negative_number,
    validate_number,
    validate_point_dict,
    validate_positive_number,
    validate_side,
    _GRAPH_ACTIONS,
    _INSPECT_ACTIONS,
    _LAYOUT_ACTIONS,
    _ROUTE_ACTIONS,
)

# ---------------------------------------------------------------------------
# Logging: suppress routine FastMCP INFO messages that clients show
# as warnings (they go to stderr).
# ---------------------------------------------------------------------------
logging.getLogger("mcp.server").setLevel(logging.WARNING)
logger = logging.getLogger("graphlayout-mcp")

# ---------------------------------------------------------------------------
# MCP Server
# ---------------------------------------------------------------------------
mcp = FastMCP(
    "graphlayout-mcp",
    instructions=(
        "MCP server that turns a proposed node layout into a legible diagram.\n\n"
        "=== ONLY 4 TOOLS — use the 'action' parameter to pick the operation ===\n\n"
        "1. graph(action, ...) — lifecycle: create, get_json, list, delete.\n"
        "2. layout(action, ...) — positioning: fallback, resolve_overlaps,\n"
        "   apply_proposal, move_node.\n"
        "3. route(action, ...) — edge paths: edge, all, points.\n"
        "4. inspect(action, ...) — read-only: overlaps, blocking, info.\n\n"
        "=== WORKFLOW ===\n"
        "- graph(action='create') with {\"nodes\": [...], \"links\": [...]}.\n"
        "- Use the 'layout_prompt' prompt to propose positions, then pass your\n"
        "  JSON reply to layout(action='apply_proposal').\n"
        "- Nodes without a position are placed on a 4-column grid.\n"
        "- route(action='all') returns one SVG path per edge; edges detour\n"
        "  around the nearest node they would otherwise cross.\n"
        "- Re-run route after every move_node; paths are never cached.\n"
    ),
)

# In-memory graph registry: name -> GraphData
# Guarded by _graphs_lock for thread-safety.
_graphs: dict[str, GraphData] = {}
_graphs_lock = threading.Lock()


# ===================================================================
# RESOURCES / PROMPTS
# ===================================================================

@mcp.resource("graphlayout://guide/agent")
def agent_guide() -> str:
    """Guide for AI agents on how to use the graph layout tools."""
    return """# Graph Layout MCP — Agent Guide

## Input format
```
{"nodes": [{"id": "a", "type": "obj", "label": "A",
            "position": {"x": 0, "y": 0}}, ...],
 "links": [{"source": "a", "target": "b", "type": "reference"}, ...]}
```
- `position` is optional; it is the top-left of a 140x60 box unless
  `width`/`height` are given.
- Links get ids `e-0`, `e-1`, ... in input order unless they carry an `id`.

## Recipe
1. graph(action='create', name='g', graph_data={...})
2. Get the prompt 'layout_prompt' (graph_name='g'), answer it with JSON.
3. layout(action='apply_proposal', graph_name='g', proposal='<your JSON>')
4. route(action='all', graph_name='g')  → {edge_id: {path, waypoints, blocking}}

## Spacing rules
- After resolve_overlaps every pair of node positions is at least
  min_distance (200) apart, unless the pass budget (100) ran out.
  inspect(action='overlaps') lists what is left.
- Only the FIRST (nearest) blocking node of an edge is routed around.
  inspect(action='blocking') shows every blocker per edge.
"""


@mcp.prompt()
def layout_prompt(graph_name: str, custom_rules: str = "") -> str:
    """Prompt asking the model to assign pixel coordinates to a stored graph."""
    g = _graphs.get(graph_name)
    if g is None:
        return f"Error: graph '{graph_name}' not found."
    return (
        build_system_prompt(custom_rules)
        + "\n\nINPUT:\n"
        + json.dumps(g.to_dict(), indent=2)
    )


# ===================================================================
# TOOL 1: graph, lifecycle
# ===================================================================

@mcp.tool()
def graph(
    action: str,
    name: str = "",
    graph_data: dict[str, Any] | None = None,
    graph_json: str = "",
) -> str:
    """Graph lifecycle management.

    Actions:
      create    — Store a new graph. Params: name, graph_data (object) or
                  graph_json (string) with {"nodes": [...], "links": [...]}.
                  Replaces an existing graph of the same name.
      get_json  — Return the stored graph as JSON. Params: name.
      list      — List stored graphs with node/link counts.
      delete    — Remove a graph. Params: name.

    Returns:
        Result string or JSON depending on action.
    """
    try:
        action = validate_action(action, "graph", _GRAPH_ACTIONS)
    except ValidationError as exc:
        return f"Error: {exc.message}"

    if action == "list":
        result = [
            {"name": n, "nodes": len(g.nodes), "links": len(g.links)}
            for n, g in _graphs.items()
        ]
        return json.dumps(result, indent=2)

    try:
        name = validate_non_empty_string(name, "name")
    except ValidationError as exc:
        return f"Error: {exc.message}"

    if action == "create":
        data = graph_data
        if data is None:
            if not graph_json.strip():
                return "Error: 'create' requires graph_data or graph_json."
            try:
                data = json.loads(graph_json)
            except json.JSONDecodeError as exc:
                return f"Error: invalid JSON format: {exc}"
        try:
            validate_graph_dict(data)
        except ValidationError as exc:
            return f"Error: {exc.message}"
        g = GraphData.from_dict(data)
        with _graphs_lock:
            _graphs[name] = g
        logger.info("Graph '%s' stored (%d nodes, %d links)", name, len(g.nodes), len(g.links))
        return f"Graph '{name}' created with {len(g.nodes)} nodes and {len(g.links)} links."

    g = _graphs.get(name)
    if g is None:
        return f"Error: graph '{name}' not found."

    if action == "get_json":
        return json.dumps(g.to_dict(), indent=2)

    elif action == "delete":
        with _graphs_lock:
            _graphs.pop(name, None)
        return f"Graph '{name}' deleted."

    else:
        return f"Error: unknown graph action '{action}'. Use: create, get_json, list, delete."


# ===================================================================
# TOOL 2: layout, positioning
# ===================================================================

@mcp.tool()
def layout(
    action: str,
    graph_name: str = "",
    # -- apply_proposal --
    proposal: str = "",
    # -- move_node --
    node_id: str = "",
    x: float = 0,
    y: float = 0,
    # -- resolver tuning --
    min_distance: float = 200,
    nudge_step: float = 50,
    max_iterations: int = 100,
) -> str:
    """Layout repair operations.

    Actions:
      fallback          — Give every unpositioned node a grid position
                          (4 columns, 300 x 150 px steps, by input order).
      resolve_overlaps  — Push nodes apart until every pair is at least
                          min_distance apart. Params: min_distance,
                          nudge_step, max_iterations.
      apply_proposal    — Take a layout model's JSON reply (code fences are
                          fine), copy its positions onto the stored graph
                          by node id, then resolve overlaps. Params:
                          proposal, plus the resolver tuning params.
      move_node         — Reposition one node (top-left corner). Params:
                          node_id, x, y.

    Returns:
        JSON results or confirmation message.
    """
    try:
        action = validate_action(action, "layout", _LAYOUT_ACTIONS)
        validate_non_empty_string(graph_name, "graph_name")
    except ValidationError as exc:
        return f"Error: {exc.message}"
    g = _graphs.get(graph_name)
    if g is None:
        return f"Error: graph '{graph_name}' not found."

    if action == "fallback":
        missing = [n.id for n in g.nodes if n.position is None]
        with _graphs_lock:
            g.nodes = assign_fallback_positions(g.nodes)
        return json.dumps({"positioned": missing}, indent=2)

    elif action == "move_node":
        try:
            validate_non_empty_string(node_id, "node_id")
            validate_number(x, "x")
            validate_number(y, "y")
        except ValidationError as exc:
            return f"Error: {exc.message}"
        node = g.get_node(node_id)
        if node is None:
            return f"Error: node '{node_id}' not found."
        with _graphs_lock:
            node.position = Point(float(x), float(y))
        return f"Node '{node_id}' moved to ({x}, {y})."

    try:
        cfg = EngineConfig(
            min_distance=validate_non_negative_number(min_distance, "min_distance"),
            nudge_step=validate_positive_number(nudge_step, "nudge_step"),
            max_iterations=validate_iterations(max_iterations),
        )
    except ValidationError as exc:
        return f"Error: {exc.message}"

    if action == "apply_proposal":
        try:
            validate_non_empty_string(proposal, "proposal")
            proposed = parse_layout_response(proposal, cfg)
        except ValidationError as exc:
            return f"Error: {exc.message}"
        except ProposalError as exc:
            return f"Error: {exc}"
        positions = {n.id: n.position for n in proposed.nodes}
        unknown = sorted(set(positions) - {n.id for n in g.nodes})
        with _graphs_lock:
            for node in g.nodes:
                if node.id in positions:
                    node.position = positions[node.id]
            g.nodes = resolve_overlaps(g.nodes, cfg)
        if unknown:
            logger.warning("Proposal for '%s' had unknown node ids: %s", graph_name, unknown)
        return _layout_report(g, cfg, ignored=unknown)

    elif action == "resolve_overlaps":
        with _graphs_lock:
            g.nodes = resolve_overlaps(g.nodes, cfg)
        return _layout_report(g, cfg)

    else:
        return f"Error: unknown layout action '{action}'. Use: fallback, resolve_overlaps, apply_proposal, move_node."


def _layout_report(g: GraphData, cfg: EngineConfig, ignored: list[str] | None = None) -> str:
    report: dict[str, Any] = {
        "positions": {n.id: n.position.to_dict() for n in g.nodes},
        "remaining_overlaps": [list(p) for p in find_overlapping_nodes(g.nodes, cfg.min_distance)],
    }
    if ignored:
        report["ignored_ids"] = ignored
    return json.dumps(report, indent=2)


# ===================================================================
# TOOL 3: route, edge paths
# ===================================================================

@mcp.tool()
def route(
    action: str,
    graph_name: str = "",
    edge_id: str = "",
    source_side: str = "bottom",
    target_side: str = "top",
    # -- points --
    source_point: dict[str, float] | None = None,
    target_point: dict[str, float] | None = None,
    source_id: str = "",
    target_id: str = "",
    border_radius: float = 8,
) -> str:
    """Compute SVG edge paths that avoid nodes.

    Actions:
      edge    — Route one edge from its nodes' handles. Params: edge_id,
                source_side, target_side (top/bottom/left/right).
      all     — Route every edge. Params: source_side, target_side.
      points  — Route between explicit coordinates against the graph's
                nodes. Params: source_point, target_point ({x, y}),
                source_id / target_id (nodes to exclude, optional),
                source_side / target_side (pass "" for a direct segment
                when unobstructed).

    Returns:
        JSON with path (M/L/Q commands), waypoints and blocking node ids.
        Path endpoints keep full precision; bend coordinates are rounded
        to 3 decimals.
    """
    try:
        action = validate_action(action, "route", _ROUTE_ACTIONS)
        validate_non_empty_string(graph_name, "graph_name")
        radius = validate_non_negative_number(border_radius, "border_radius")
    except ValidationError as exc:
        return f"Error: {exc.message}"
    g = _graphs.get(graph_name)
    if g is None:
        return f"Error: graph '{graph_name}' not found."
    cfg = EngineConfig(border_radius=radius)

    if action == "points":
        try:
            src = validate_point_dict(source_point, "source_point")
            tgt = validate_point_dict(target_point, "target_point")
            s_side = validate_side(source_side, "source_side") if source_side else None
            t_side = validate_side(target_side, "target_side") if target_side else None
        except ValidationError as exc:
            return f"Error: {exc.message}"
        unpositioned = [n.id for n in g.nodes if n.position is None]
        if unpositioned:
            logger.debug("Routing ignores unpositioned nodes: %s", unpositioned)
        routed = route_edge(
            Point(src["x"], src["y"]), Point(tgt["x"], tgt["y"]),
            g.nodes, source_id, target_id, s_side, t_side, cfg,
        )
        return json.dumps(routed.to_dict(), indent=2)

    try:
        s_side = validate_side(source_side, "source_side")
        t_side = validate_side(target_side, "target_side")
    except ValidationError as exc:
        return f"Error: {exc.message}"

    if action == "edge":
        try:
            validate_non_empty_string(edge_id, "edge_id")
        except ValidationError as exc:
            return f"Error: {exc.message}"
        if g.get_edge(edge_id) is None:
            return f"Error: edge '{edge_id}' not found."
        routed = route_graph_edge(g, edge_id, s_side, t_side, cfg)
        if routed is None:
            return f"Error: edge '{edge_id}' has an unpositioned endpoint. Run layout(action='fallback') first."
        return json.dumps(routed.to_dict(), indent=2)

    elif action == "all":
        routes = route_all_edges(g, s_side, t_side, cfg)
        skipped = [e.id for e in g.links if e.id not in routes]
        result: dict[str, Any] = {eid: r.to_dict() for eid, r in routes.items()}
        if skipped:
            return json.dumps({"routes": result, "skipped": skipped}, indent=2)
        return json.dumps({"routes": result}, indent=2)

    else:
        return f"Error: unknown route action '{action}'. Use: edge, all, points."


# ===================================================================
# TOOL 4: inspect, read-only
# ===================================================================

@mcp.tool()
def inspect(
    action: str,
    graph_name: str = "",
    min_distance: float = 200,
) -> str:
    """Read-only inspection of graphs.

    Actions:
      overlaps  — Pairs of nodes closer than min_distance.
      blocking  — For each edge, every node its straight line crosses
                  (bottom handle to top handle).
      info      — Node/link counts, unpositioned nodes, closest pair distance.

    Returns:
        JSON data or formatted text.
    """
    try:
        action = validate_action(action, "inspect", _INSPECT_ACTIONS)
        validate_non_empty_string(graph_name, "graph_name")
    except ValidationError as exc:
        return f"Error: {exc.message}"
    g = _graphs.get(graph_name)
    if g is None:
        return f"Error: graph '{graph_name}' not found."

    if action == "overlaps":
        try:
            limit = validate_non_negative_number(min_distance, "min_distance")
        except ValidationError as exc:
            return f"Error: {exc.message}"
        overlaps = find_overlapping_nodes(g.nodes, limit)
        if not overlaps:
            return "No overlaps found. Layout is clean!"
        labels = {n.id: n.display_label for n in g.nodes}
        report = [{"node_a": a, "label_a": labels[a], "node_b": b, "label_b": labels[b]}
                  for a, b in overlaps]
        return json.dumps(report, indent=2)

    elif action == "blocking":
        report: dict[str, list[str]] = {}
        for edge in g.links:
            src = g.get_node(edge.source)
            tgt = g.get_node(edge.target)
            if src is None or tgt is None or src.position is None or tgt.position is None:
                continue
            blockers = find_blocking_nodes(
                handle_point(src, "bottom"), handle_point(tgt, "top"),
                g.nodes, src.id, tgt.id,
            )
            if blockers:
                report[edge.id] = [n.id for n in blockers]
        return json.dumps(report, indent=2)

    elif action == "info":
        closest = min_pairwise_distance(g.nodes)
        return json.dumps({
            "name": graph_name,
            "nodes": len(g.nodes),
            "links": len(g.links),
            "unpositioned": [n.id for n in g.nodes if n.position is None],
            "closest_pair_distance": None if closest == float("inf") else round(closest, 3),
        }, indent=2)

    else:
        return f"Error: unknown inspect action '{action}'. Use: overlaps, blocking, info."


# ===================================================================
# Entry point
# ===================================================================

def main() -> None:
    """Run the MCP server."""
    mcp.run()


if __name__ == "__main__":
    main()
