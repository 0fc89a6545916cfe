"""
Layout proposal boundary.

The initial coordinates of a diagram come from a text-generation model
driven by a prompt template. This module owns everything on our side of
that boundary: the prompt, the message payload, parsing the model's reply
back into a graph, and a session handle with explicit open/close that
callers hold for as long as the model is in use.

The model itself is injected as a chat client callable so the server, the
tests, or any other host can supply their own.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from graphlayout_mcp.config import EngineConfig
from graphlayout_mcp.layout_engine import fallback_position, resolve_overlaps
from graphlayout_mcp.models import GraphData
from graphlayout_mcp.validation import ValidationError, validate_node_dict

logger = logging.getLogger(__name__)

Message = Mapping[str, Any]
ChatClient = Callable[..., Dict[str, Any]]


BASE_SYSTEM_PROMPT = """You are a graph layout engine. Given nodes and edges in JSON, assign pixel coordinates to each node.

COORDINATE SYSTEM:
- x and y are pixel values: 0, 200, 400, 600, 800, etc.
- Minimum spacing between any two nodes: 200 pixels horizontally, 150 pixels vertically

RULES:
- Analyze the edges to understand node relationships
- Position nodes so the graph is easy to read with minimal edge crossings
- NO two nodes can overlap - every node must be at least 200px apart horizontally or 150px apart vertically
- Related nodes (connected by edges) should be positioned near each other
- Use the full coordinate range needed to avoid overlaps

EXAMPLE COORDINATE SCALE:
Node positions should look like: {"x": 0, "y": 0}, {"x": 200, "y": 150}, {"x": 400, "y": 0}, {"x": 600, "y": 300}

OUTPUT: Return ONLY valid JSON with the same structure as input, but with "position": {"x": number, "y": number} added to each node. No markdown, no explanation."""

DEFAULT_TEMPERATURE = 0.1
DEFAULT_MAX_TOKENS = 4096


class ProposalError(ValueError):
    """Raised when a layout proposal cannot be obtained or parsed."""


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------

def build_system_prompt(custom_template: Optional[str] = None) -> str:
    if not custom_template or not custom_template.strip():
        return BASE_SYSTEM_PROMPT
    return f"{BASE_SYSTEM_PROMPT}\n\nAdditional Custom Rules:\n{custom_template.strip()}"


def build_messages(graph: GraphData, custom_template: Optional[str] = None) -> List[Message]:
    return [
        {"role": "system", "content": build_system_prompt(custom_template)},
        {"role": "user", "content": json.dumps(graph.to_dict(), indent=2)},
    ]


# ---------------------------------------------------------------------------
# Reply parsing
# ---------------------------------------------------------------------------

def parse_layout_response(
    content: str,
    config: EngineConfig | None = None,
) -> GraphData:
    """Turn a model reply into a graph with a position on every node.

    Markdown code fences are stripped. If the reply still is not JSON, the
    outermost ``{...}`` span is tried. Every node must pass the same checks
    as graph creation (string id, finite coordinates), otherwise
    ``ProposalError`` is raised. Nodes the model left unpositioned get
    their fallback grid position by index.
    """
    content = (content or "").strip()
    if not content:
        raise ProposalError("Layout response is empty.")

    content = re.sub(r"```(?:json)?", "", content, flags=re.IGNORECASE).strip()

    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        start = content.find("{")
        end = content.rfind("}")
        if start == -1 or end <= start:
            raise ProposalError(f"Layout response is not valid JSON: {exc}") from exc
        try:
            data = json.loads(content[start:end + 1])
        except json.JSONDecodeError:
            raise ProposalError(f"Layout response is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise ProposalError("Layout response JSON must be an object.")
    if not isinstance(data.get("nodes"), list):
        raise ProposalError("Layout response is missing a 'nodes' list.")

    for index, node in enumerate(data["nodes"]):
        try:
            validate_node_dict(node, index)
        except ValidationError as exc:
            raise ProposalError(f"Layout response rejected: {exc.message}") from exc

    try:
        graph = GraphData.from_dict(data)
    except (KeyError, TypeError, ValueError) as exc:
        raise ProposalError(f"Layout response has malformed nodes or links: {exc}") from exc

    for index, node in enumerate(graph.nodes):
        if node.position is None:
            node.position = fallback_position(index, config)
    return graph


def _extract_content(response: Mapping[str, Any]) -> str:
    choices = response.get("choices")
    if not isinstance(choices, Iterable) or not choices:
        raise ProposalError("Chat response missing choices.")

    first_choice = next(iter(choices))
    if not isinstance(first_choice, Mapping):
        raise ProposalError("Invalid choice structure in chat response.")

    message = first_choice.get("message")
    if not isinstance(message, Mapping):
        raise ProposalError("Chat choice missing message content.")

    content = message.get("content")
    if not isinstance(content, str) or not content:
        raise ProposalError("No content in chat response.")
    return content


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

class LayoutSession:
    """Handle on a layout model for the duration of its use.

    ``open()`` must be called (or the session used as a context manager)
    before generating; ``close()`` releases it. A closed session can be
    reopened.
    """

    def __init__(
        self,
        client: ChatClient,
        *,
        config: EngineConfig | None = None,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> None:
        self._client = client
        self._config = config or EngineConfig()
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._open = False

    @property
    def is_ready(self) -> bool:
        return self._open

    def open(self) -> LayoutSession:
        if not self._open:
            logger.info("Layout session opened")
            self._open = True
        return self

    def close(self) -> None:
        if self._open:
            logger.info("Layout session closed")
            self._open = False

    def __enter__(self) -> LayoutSession:
        return self.open()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def generate_layout(
        self,
        graph: GraphData,
        custom_template: Optional[str] = None,
    ) -> GraphData:
        """Ask the model for positions, then resolve overlaps.

        Links are carried over from *graph*; the model only supplies node
        positions.
        """
        if not self._open:
            raise ProposalError("Layout session is not open.")

        response = self._client(
            build_messages(graph, custom_template),
            temperature=self._temperature,
            max_tokens=self._max_tokens,
        )
        proposed = parse_layout_response(_extract_content(response), self._config)

        positions = {n.id: n.position for n in proposed.nodes}
        result = graph.copy()
        for node in result.nodes:
            if node.id in positions:
                node.position = positions[node.id]
        result.nodes = resolve_overlaps(result.nodes, self._config)
        return result
