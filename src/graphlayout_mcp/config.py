"""
Tunable constants for the layout engine.
"""

from __future__ import annotations

from dataclasses import dataclass

from graphlayout_mcp.models import DEFAULT_NODE_HEIGHT, DEFAULT_NODE_WIDTH, NODE_PADDING


@dataclass
class EngineConfig:
    """Configuration shared by the overlap resolver and the edge router."""
    # Overlap resolution
    min_distance: float = 200       # Minimum center-to-center distance
    nudge_step: float = 50          # How far the second node of a pair moves
    max_iterations: int = 100       # Pass budget for the relaxation loop
    epsilon: float = 0.01           # Below this on both axes, points coincide

    # Fallback grid for nodes the proposer left unpositioned
    grid_columns: int = 4
    grid_step_x: float = 300
    grid_step_y: float = 150

    # Dimensions
    default_width: float = DEFAULT_NODE_WIDTH
    default_height: float = DEFAULT_NODE_HEIGHT
    node_padding: float = NODE_PADDING

    # Edge routing
    route_offset: float = 30        # Clearance beyond the blocker's padded box
    border_radius: float = 8        # Corner rounding
    step_offset: float = 20         # Handle stand-off for step paths
