"""
Overlap resolution for proposed diagram layouts.

The upstream proposer (an LLM, or anything else) suggests a position for
each node. Proposals are frequently crowded: nodes share coordinates, sit
on top of each other, or are missing entirely. This module repairs them:

- Fallback grid placement for nodes without a position
- Bounded pairwise repulsion until every pair of node positions is at
  least ``min_distance`` apart (or the pass budget runs out)
- Overlap inspection for reporting

The relaxation is intentionally asymmetric: for each pair (i, j) with
i < j in input order only node j moves. Input order therefore decides the
final arrangement. Reordering nodes changes the layout; scaling the
constants does not change which node yields.
"""

from __future__ import annotations

import copy
import logging
import math
from typing import Mapping, Sequence, Union

from graphlayout_mcp.config import EngineConfig
from graphlayout_mcp.geometry import distance
from graphlayout_mcp.models import DiagramNode, Point

logger = logging.getLogger(__name__)

NodeCollection = Union[Sequence[DiagramNode], Mapping[str, DiagramNode]]


# ---------------------------------------------------------------------------
# Fallback positions
# ---------------------------------------------------------------------------

def fallback_position(index: int, config: EngineConfig | None = None) -> Point:
    """Grid position for the node at *index* in input order."""
    cfg = config or EngineConfig()
    return Point(
        (index % cfg.grid_columns) * cfg.grid_step_x,
        (index // cfg.grid_columns) * cfg.grid_step_y,
    )


def assign_fallback_positions(
    nodes: NodeCollection,
    config: EngineConfig | None = None,
) -> list[DiagramNode]:
    """Return copies of *nodes* where every missing position is filled.

    Nodes that already carry a position keep it unchanged.
    """
    result: list[DiagramNode] = []
    for index, node in enumerate(_as_list(nodes)):
        node = copy.deepcopy(node)
        if node.position is None:
            node.position = fallback_position(index, config)
        result.append(node)
    return result


# ---------------------------------------------------------------------------
# Overlap Resolution
# ---------------------------------------------------------------------------

def resolve_overlaps(
    nodes: NodeCollection,
    config: EngineConfig | None = None,
) -> list[DiagramNode]:
    """Push nodes apart until every pair is at least ``min_distance`` apart.

    Each pass visits every unordered pair (i, j), i < j, in input order.
    A pair closer than the minimum distance nudges node j by
    ``nudge_step`` along the direction from i to j. Coincident pairs
    (both deltas below ``epsilon``) have no direction, so j is nudged
    diagonally instead. The loop stops after the first pass without an
    overlap, or after ``max_iterations`` passes.

    Args:
        nodes: Nodes in input order, or a mapping of id to node (mapping
            order is used). Unpositioned nodes get a fallback grid position
            first.
        config: Engine configuration.

    Returns:
        New node objects with adjusted positions. The input is not mutated.
    """
    cfg = config or EngineConfig()
    result = assign_fallback_positions(nodes, cfg)
    count = len(result)

    for iteration in range(cfg.max_iterations):
        had_overlap = False
        for i in range(count):
            for j in range(i + 1, count):
                if _nudge_pair(result[i], result[j], cfg):
                    had_overlap = True

        if not had_overlap:
            logger.debug("Overlaps resolved after %d pass(es)", iteration + 1)
            break
    else:
        logger.debug(
            "Overlap budget of %d passes exhausted; %d pair(s) still too close",
            cfg.max_iterations,
            len(find_overlapping_nodes(result, cfg.min_distance)),
        )

    return result


def _nudge_pair(a: DiagramNode, b: DiagramNode, cfg: EngineConfig) -> bool:
    """Move *b* away from *a* if they are too close. Returns True if moved."""
    dist = distance(a.position, b.position)
    if dist >= cfg.min_distance:
        return False

    dx = b.position.x - a.position.x
    dy = b.position.y - a.position.y

    if abs(dx) < cfg.epsilon and abs(dy) < cfg.epsilon:
        b.position = Point(
            b.position.x + cfg.nudge_step,
            b.position.y + cfg.nudge_step,
        )
        return True

    length = dist if dist > cfg.epsilon else 1
    b.position = Point(
        b.position.x + dx / length * cfg.nudge_step,
        b.position.y + dy / length * cfg.nudge_step,
    )
    return True


# ---------------------------------------------------------------------------
# Inspection
# ---------------------------------------------------------------------------

def find_overlapping_nodes(
    nodes: NodeCollection,
    min_distance: float | None = None,
) -> list[tuple[str, str]]:
    """Find all pairs of positioned nodes closer than *min_distance*.

    Returns:
        List of (id_a, id_b) tuples, in input order.
    """
    limit = min_distance if min_distance is not None else EngineConfig().min_distance
    positioned = [n for n in _as_list(nodes) if n.position is not None]
    pairs: list[tuple[str, str]] = []
    for i in range(len(positioned)):
        for j in range(i + 1, len(positioned)):
            a, b = positioned[i], positioned[j]
            if distance(a.position, b.position) < limit:
                pairs.append((a.id, b.id))
    return pairs


def min_pairwise_distance(nodes: NodeCollection) -> float:
    """Smallest distance between any two positioned nodes (inf if < 2)."""
    positioned = [n.position for n in _as_list(nodes) if n.position is not None]
    best = math.inf
    for i in range(len(positioned)):
        for j in range(i + 1, len(positioned)):
            best = min(best, distance(positioned[i], positioned[j]))
    return best


def _as_list(nodes: NodeCollection) -> list[DiagramNode]:
    if isinstance(nodes, Mapping):
        return list(nodes.values())
    return list(nodes)
