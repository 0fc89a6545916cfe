"""
Input validation for graph layout MCP server tool parameters.

The layout engine assumes well-formed input: finite coordinates and links
that reference existing nodes. These validators enforce that at the tool
boundary and produce clear error messages for LLM callers.
"""

from __future__ import annotations

import math
from typing import Any


# ---------------------------------------------------------------------------
# Validation result
# ---------------------------------------------------------------------------

class ValidationError(Exception):
    """Raised when input validation fails."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


# ---------------------------------------------------------------------------
# Primitive validators
# ---------------------------------------------------------------------------

def validate_non_empty_string(value: Any, field_name: str) -> str:
    """Ensure *value* is a non-empty string after stripping whitespace."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"'{field_name}' must be a non-empty string.")
    return value.strip()


def validate_number(
    value: Any,
    field_name: str,
    *,
    min_val: float | None = None,
    max_val: float | None = None,
) -> float:
    """Validate a finite numeric value and optional range."""
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        raise ValidationError(
            f"'{field_name}' must be a number, got {type(value).__name__}."
        )
    val = float(value)
    if not math.isfinite(val):
        raise ValidationError(f"'{field_name}' must be finite, got {val}.")
    if min_val is not None and val < min_val:
        raise ValidationError(
            f"'{field_name}' must be >= {min_val}, got {val}."
        )
    if max_val is not None and val > max_val:
        raise ValidationError(
            f"'{field_name}' must be <= {max_val}, got {val}."
        )
    return val


def validate_int(
    value: Any,
    field_name: str,
    *,
    min_val: int | None = None,
    max_val: int | None = None,
) -> int:
    """Validate an integer value and optional range."""
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValidationError(
            f"'{field_name}' must be an integer, got {type(value).__name__}."
        )
    if min_val is not None and value < min_val:
        raise ValidationError(
            f"'{field_name}' must be >= {min_val}, got {value}."
        )
    if max_val is not None and value > max_val:
        raise ValidationError(
            f"'{field_name}' must be <= {max_val}, got {value}."
        )
    return value


def validate_enum(value: Any, field_name: str, allowed: set[str]) -> str:
    """Validate that a string value is one of the allowed choices (case-insensitive)."""
    if not isinstance(value, str):
        raise ValidationError(
            f"'{field_name}' must be a string, got {type(value).__name__}."
        )
    normalized = value.strip().upper()
    if normalized not in {a.upper() for a in allowed}:
        choices = ", ".join(sorted(a.lower() for a in allowed))
        raise ValidationError(
            f"'{field_name}' must be one of [{choices}], got '{value}'."
        )
    return normalized


def validate_list(value: Any, field_name: str, *, min_length: int = 0) -> list:
    """Ensure *value* is a list with at least *min_length* items."""
    if not isinstance(value, list):
        raise ValidationError(
            f"'{field_name}' must be a list, got {type(value).__name__}."
        )
    if len(value) < min_length:
        raise ValidationError(
            f"'{field_name}' must have at least {min_length} item(s), got {len(value)}."
        )
    return value


def validate_dict(value: Any, field_name: str) -> dict:
    """Ensure *value* is a dict."""
    if not isinstance(value, dict):
        raise ValidationError(
            f"'{field_name}' must be a dict/object, got {type(value).__name__}."
        )
    return value


# ---------------------------------------------------------------------------
# Composite / domain validators
# ---------------------------------------------------------------------------

_VALID_SIDES = {"TOP", "BOTTOM", "LEFT", "RIGHT"}

_GRAPH_ACTIONS = {"CREATE", "GET_JSON", "LIST", "DELETE"}
_LAYOUT_ACTIONS = {"FALLBACK", "RESOLVE_OVERLAPS", "APPLY_PROPOSAL", "MOVE_NODE"}
_ROUTE_ACTIONS = {"EDGE", "ALL", "POINTS"}
_INSPECT_ACTIONS = {"OVERLAPS", "BLOCKING", "INFO"}


def validate_action(value: Any, tool_name: str, allowed: set[str]) -> str:
    """Validate the action parameter for a tool."""
    if not isinstance(value, str) or not value.strip():
        choices = ", ".join(sorted(a.lower() for a in allowed))
        raise ValidationError(
            f"'{tool_name}' requires an 'action' parameter. Valid actions: {choices}."
        )
    normalized = value.strip().upper()
    if normalized not in allowed:
        choices = ", ".join(sorted(a.lower() for a in allowed))
        raise ValidationError(
            f"Unknown {tool_name} action '{value}'. Valid actions: {choices}."
        )
    return value.strip().lower()


def validate_side(value: Any, field_name: str) -> str:
    """Validate a handle side (top, bottom, left, right)."""
    return validate_enum(value, field_name, _VALID_SIDES).lower()


def validate_point_dict(value: Any, field_name: str) -> dict[str, float]:
    """Validate an ``{"x": number, "y": number}`` object."""
    validate_dict(value, field_name)
    if "x" not in value or "y" not in value:
        raise ValidationError(f"'{field_name}' must have both 'x' and 'y'.")
    return {
        "x": validate_number(value["x"], f"{field_name}.x"),
        "y": validate_number(value["y"], f"{field_name}.y"),
    }


# ---------------------------------------------------------------------------
# Node / link / graph validators
# ---------------------------------------------------------------------------

def validate_node_dict(n: Any, index: int) -> None:
    """Validate a single node dict from the nodes list."""
    if not isinstance(n, dict):
        raise ValidationError(f"Node at index {index} must be a dict/object.")
    if "id" not in n:
        raise ValidationError(f"Node at index {index} missing required key 'id'.")
    if not isinstance(n["id"], str) or not n["id"].strip():
        raise ValidationError(f"Node at index {index}: 'id' must be a non-empty string.")
    if "type" in n and not isinstance(n["type"], str):
        raise ValidationError(f"Node at index {index}: 'type' must be a string.")
    if "label" in n and not isinstance(n["label"], str):
        raise ValidationError(f"Node at index {index}: 'label' must be a string.")
    if n.get("position") is not None:
        validate_point_dict(n["position"], f"nodes[{index}].position")
    for key in ("width", "height"):
        if n.get(key) is not None:
            validate_number(n[key], f"nodes[{index}].{key}", min_val=0.001)


def validate_link_dict(link: Any, index: int) -> None:
    """Validate a single link dict from the links list."""
    if not isinstance(link, dict):
        raise ValidationError(f"Link at index {index} must be a dict/object.")
    for key in ("source", "target"):
        if key not in link:
            raise ValidationError(f"Link at index {index} missing required key '{key}'.")
        if not isinstance(link[key], str) or not link[key].strip():
            raise ValidationError(f"Link at index {index}: '{key}' must be a non-empty string.")
    if "type" in link and not isinstance(link["type"], str):
        raise ValidationError(f"Link at index {index}: 'type' must be a string.")
    if "id" in link and not isinstance(link["id"], str):
        raise ValidationError(f"Link at index {index}: 'id' must be a string.")


def validate_graph_dict(value: Any) -> dict:
    """Validate a whole ``{"nodes": [...], "links": [...]}`` graph.

    Node ids must be unique and every link must reference existing nodes.
    """
    validate_dict(value, "graph")
    nodes = validate_list(value.get("nodes"), "nodes")
    links = validate_list(value.get("links", []), "links")

    seen: set[str] = set()
    for i, n in enumerate(nodes):
        validate_node_dict(n, i)
        if n["id"] in seen:
            raise ValidationError(f"Node at index {i}: duplicate id '{n['id']}'.")
        seen.add(n["id"])

    link_ids: set[str] = set()
    for i, link in enumerate(links):
        validate_link_dict(link, i)
        for key in ("source", "target"):
            if link[key] not in seen:
                raise ValidationError(
                    f"Link at index {i}: {key} '{link[key]}' is not a known node id."
                )
        # Links without an id are addressed as e-<index>
        link_id = link.get("id") or f"e-{i}"
        if link_id in link_ids:
            raise ValidationError(f"Link at index {i}: duplicate id '{link_id}'.")
        link_ids.add(link_id)
    return value


# ---------------------------------------------------------------------------
# Composite tool-level validators
# ---------------------------------------------------------------------------

def validate_positive_number(value: Any, field_name: str) -> float:
    """Validate that a number is positive (> 0)."""
    return validate_number(value, field_name, min_val=0.001)


def validate_non_negative_number(value: Any, field_name: str) -> float:
    """Validate that a number is >= 0."""
    return validate_number(value, field_name, min_val=0)


def validate_iterations(value: Any) -> int:
    """Validate the overlap pass budget (1..10000)."""
    return validate_int(value, "max_iterations", min_val=1, max_val=10000)
