"""
Diagram Layout MCP Server - lay out AI-generated diagrams via Model Context Protocol.

Exposes 4 tools that let an LLM agent turn generated graph data into
positioned, styled diagrams and keep them laid out while editing.

Tools:
  1. diagram  - lifecycle: create (from a generated response), get, list, delete
  2. edit     - content:  add_node, add_child, relabel, delete_node, expand, replace
  3. layout   - positioning: apply (re-lay a stored diagram), compute (stateless)
  4. inspect  - read-only: palette, strategies, ranks, info

Every edit re-runs the layout over the whole graph; nothing is patched
incrementally.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field, replace
from typing import Any

from mcp.server.fastmcp import FastMCP

from diagram_layout.graph import Graph, default_layout_style
from diagram_layout.layout import GraphIndex, LayoutConfig, spanning_tree
from diagram_layout.layout_engine import (
    Strategy,
    apply_layout,
    assign_ranks,
    choose_strategy,
    default_direction,
)
from diagram_layout.models import DiagramType, Edge, LayoutStyle, Node, RadialMode
from diagram_layout.styles import BRANCH_COLORED, BRANCH_PALETTE, NEUTRAL_EDGE_COLOR
from diagram_layout.validation import (
    ValidationError,
    validate_action,
    validate_diagram_type,
    validate_direction,
    validate_edge_dict,
    validate_layout_config,
    validate_layout_style,
    validate_list,
    validate_node_dict,
    validate_non_empty_string,
    validate_palette,
    validate_radial_mode,
    validate_string,
    _DIAGRAM_ACTIONS,
    _EDIT_ACTIONS,
    _INSPECT_ACTIONS,
    _LAYOUT_ACTIONS,
)

# ---------------------------------------------------------------------------
# Logging - suppress routine FastMCP INFO messages that clients show
# as warnings (they go to stderr).
# ---------------------------------------------------------------------------
logging.getLogger("mcp.server").setLevel(logging.WARNING)
logger = logging.getLogger("diagram-layout")

# ---------------------------------------------------------------------------
# MCP Server
# ---------------------------------------------------------------------------
mcp = FastMCP(
    "diagram-layout",
    instructions=(
        "MCP server that lays out AI-generated diagrams.\n\n"
        "=== ONLY 4 TOOLS - use the 'action' parameter to pick the operation ===\n\n"
        "1. diagram(action, ...) - lifecycle: create, get, list, delete.\n"
        "2. edit(action, ...) - content: add_node, add_child, relabel,\n"
        "   delete_node, expand, replace.\n"
        "3. layout(action, ...) - positioning: apply, compute.\n"
        "4. inspect(action, ...) - read-only: palette, strategies, ranks, info.\n\n"
        "=== RULES ===\n"
        "- Generated graphs look like {nodes: [{id, label, type?, details?}],\n"
        "  edges: [{source, target, label?}]}.\n"
        "- Diagram types: Flowchart, Mindmap, Entity-Relationship Diagram (ERD),\n"
        "  Organizational Chart (ORG_CHART).\n"
        "- Layout styles: Tree, Radial, Hierarchical, Circular, Network.\n"
        "  Radial/Circular only change mind maps (radial strategy).\n"
        "- Positions are always recomputed for the WHOLE graph.\n"
        "- Edges to unknown node ids are kept but ignored for placement.\n"
    ),
)


@dataclass
class DiagramState:
    """A stored snapshot plus the options it was last laid out with."""
    graph: Graph
    layout_style: LayoutStyle
    config: LayoutConfig = field(default_factory=LayoutConfig)

    def relaid(self, graph: Graph) -> DiagramState:
        return replace(self, graph=graph.layout(self.layout_style, self.config))


# In-memory diagram registry: name -> DiagramState
# Guarded by _diagrams_lock for thread-safety.
_diagrams: dict[str, DiagramState] = {}
_diagrams_lock = threading.Lock()


# ===================================================================
# RESOURCES
# ===================================================================

@mcp.resource("diagram://styles/palette")
def palette_catalog() -> str:
    """Return the default branch palette and neutral edge color."""
    return json.dumps({"branch_palette": list(BRANCH_PALETTE), "neutral": NEUTRAL_EDGE_COLOR}, indent=2)


@mcp.resource("diagram://layouts/strategies")
def strategy_catalog() -> str:
    """Return which strategy each diagram type / layout style pair uses."""
    return json.dumps(_strategy_table(), indent=2)


# ===================================================================
# TOOL 1: diagram - lifecycle
# ===================================================================

@mcp.tool()
def diagram(
    action: str,
    name: str = "",
    diagram_type: str = "Flowchart",
    layout_style: str = "",
    response: dict[str, Any] | str | None = None,
) -> str:
    """Diagram lifecycle.

    Actions:
      create - Build a diagram from a generated response and lay it out.
               Params: name, diagram_type, response ({nodes, edges}),
               layout_style (defaults to Radial for mind maps, Tree otherwise).
      get    - Return the positioned snapshot as JSON. Params: name.
      list   - List stored diagram names.
      delete - Forget a diagram. Params: name.

    Returns:
        JSON results or confirmation message.
    """
    try:
        action = validate_action(action, "diagram", _DIAGRAM_ACTIONS)
    except ValidationError as exc:
        return f"Error: {exc.message}"

    if action == "list":
        with _diagrams_lock:
            names = sorted(_diagrams)
        return json.dumps(names)

    try:
        name = validate_non_empty_string(name, "name")
    except ValidationError as exc:
        return f"Error: {exc.message}"

    if action == "create":
        try:
            dtype = validate_diagram_type(diagram_type)
            style = validate_layout_style(layout_style) if layout_style else default_layout_style(dtype)
            graph = Graph.from_response(response, dtype)
        except ValidationError as exc:
            return f"Error: {exc.message}"
        dangling = _count_dangling(graph)
        if dangling:
            logger.warning("Diagram '%s': %d edge(s) reference unknown nodes and are not laid out", name, dangling)
        state = DiagramState(graph=graph, layout_style=style).relaid(graph)
        with _diagrams_lock:
            _diagrams[name] = state
        return (
            f"Diagram '{name}' created ({dtype.value}, {style.value}) with "
            f"{len(graph.nodes)} node(s) and {len(graph.edges)} edge(s)."
        )

    if action == "get":
        state = _get_state(name)
        if state is None:
            return f"Error: diagram '{name}' not found."
        return json.dumps(state.graph.to_dict(), indent=2)

    # delete
    with _diagrams_lock:
        removed = _diagrams.pop(name, None)
    if removed is None:
        return f"Error: diagram '{name}' not found."
    return f"Diagram '{name}' deleted."


# ===================================================================
# TOOL 2: edit - content changes (each re-lays the whole graph)
# ===================================================================

@mcp.tool()
def edit(
    action: str,
    diagram_name: str = "",
    node_id: str = "",
    label: str = "",
    response: dict[str, Any] | str | None = None,
) -> str:
    """Edit a stored diagram and re-lay it.

    Actions:
      add_node    - Add an unattached node. Params: label.
      add_child   - Add a node under node_id. Params: node_id, label.
      relabel     - Change a node's label. Params: node_id, label.
      delete_node - Remove a node and its edges. Params: node_id.
      expand      - Drill down: attach the nodes of a generated response
                    under node_id. Params: node_id, response.
      replace     - Replace the whole graph with a rewritten response.
                    Params: response.

    Returns:
        JSON with the affected node ids, or an error message.
    """
    try:
        action = validate_action(action, "edit", _EDIT_ACTIONS)
        diagram_name = validate_non_empty_string(diagram_name, "diagram_name")
    except ValidationError as exc:
        return f"Error: {exc.message}"

    with _diagrams_lock:
        state = _diagrams.get(diagram_name)
        if state is None:
            return f"Error: diagram '{diagram_name}' not found."
        graph = state.graph
        try:
            if action == "add_node":
                label = validate_string(label, "label", allow_empty=False)
                graph, new_id = graph.add_node(label)
                result: dict[str, Any] = {"node_ids": [new_id]}
            elif action == "add_child":
                node_id = validate_non_empty_string(node_id, "node_id")
                label = validate_string(label, "label", allow_empty=False)
                graph, new_id = graph.add_child(node_id, label)
                result = {"node_ids": [new_id]}
            elif action == "relabel":
                node_id = validate_non_empty_string(node_id, "node_id")
                label = validate_string(label, "label", allow_empty=False)
                graph = graph.relabel(node_id, label)
                result = {"node_ids": [node_id]}
            elif action == "delete_node":
                node_id = validate_non_empty_string(node_id, "node_id")
                graph = graph.remove_node(node_id)
                result = {"removed": [node_id]}
            elif action == "expand":
                node_id = validate_non_empty_string(node_id, "node_id")
                graph, new_ids = graph.expand(node_id, response)
                result = {"node_ids": new_ids}
            else:  # replace
                graph = graph.replace_with(response)
                result = {"node_ids": [n.id for n in graph.nodes]}
        except ValidationError as exc:
            return f"Error: {exc.message}"
        _diagrams[diagram_name] = state.relaid(graph)

    result["node_count"] = len(graph.nodes)
    result["edge_count"] = len(graph.edges)
    return json.dumps(result)


# ===================================================================
# TOOL 3: layout - positioning
# ===================================================================

@mcp.tool()
def layout(
    action: str,
    diagram_name: str = "",
    diagram_type: str = "",
    layout_style: str = "",
    # -- compute (stateless) --
    nodes: list[dict[str, Any]] | None = None,
    edges: list[dict[str, Any]] | None = None,
    # -- options --
    direction: str = "",
    radial_mode: str = "",
    spacing_x: float | None = None,
    spacing_y: float | None = None,
    grid_spacing_x: float | None = None,
    grid_spacing_y: float | None = None,
    branch_spacing: float | None = None,
    slot_height: float | None = None,
    ring_spacing: float | None = None,
    palette: list[str] | None = None,
) -> str:
    """Layout and positioning operations.

    Actions:
      apply   - Re-lay a stored diagram, optionally switching layout_style
                and overriding spacing. Params: diagram_name, layout_style,
                direction (TB/LR), radial_mode (balanced/sector), spacing_x,
                spacing_y, grid_spacing_x, grid_spacing_y, branch_spacing,
                slot_height, ring_spacing, palette.
      compute - Stateless: lay out the given nodes and edges and return
                them. Params: nodes, edges, diagram_type, layout_style and
                the same options as apply.

    Returns:
        JSON snapshot ({nodes, edges}) or an error message.
    """
    try:
        action = validate_action(action, "layout", _LAYOUT_ACTIONS)
    except ValidationError as exc:
        return f"Error: {exc.message}"

    overrides = {
        "spacing_x": spacing_x,
        "spacing_y": spacing_y,
        "grid_spacing_x": grid_spacing_x,
        "grid_spacing_y": grid_spacing_y,
        "branch_spacing": branch_spacing,
        "slot_height": slot_height,
        "ring_spacing": ring_spacing,
    }

    if action == "compute":
        try:
            dtype = validate_diagram_type(diagram_type or "Flowchart")
            style = validate_layout_style(layout_style) if layout_style else default_layout_style(dtype)
            cfg = _build_config(LayoutConfig(), direction, radial_mode, overrides, palette)
            node_list = validate_list(nodes or [], "nodes")
            edge_list = validate_list(edges or [], "edges")
            for i, n in enumerate(node_list):
                validate_node_dict(n, i)
            for i, e in enumerate(edge_list):
                validate_edge_dict(e, i)
        except ValidationError as exc:
            return f"Error: {exc.message}"
        in_nodes = [Node.from_dict(n) for n in node_list]
        in_edges = [Edge.from_dict(e, i) for i, e in enumerate(edge_list)]
        out_nodes, out_edges = apply_layout(in_nodes, in_edges, dtype, style, cfg)
        return json.dumps({
            "nodes": [n.to_dict() for n in out_nodes],
            "edges": [e.to_dict() for e in out_edges],
        })

    # apply
    try:
        diagram_name = validate_non_empty_string(diagram_name, "diagram_name")
    except ValidationError as exc:
        return f"Error: {exc.message}"
    with _diagrams_lock:
        state = _diagrams.get(diagram_name)
        if state is None:
            return f"Error: diagram '{diagram_name}' not found."
        try:
            style = validate_layout_style(layout_style) if layout_style else state.layout_style
            cfg = _build_config(state.config, direction, radial_mode, overrides, palette)
        except ValidationError as exc:
            return f"Error: {exc.message}"
        state = replace(state, layout_style=style, config=cfg).relaid(state.graph)
        _diagrams[diagram_name] = state
    return json.dumps(state.graph.to_dict())


# ===================================================================
# TOOL 4: inspect - read-only queries
# ===================================================================

@mcp.tool()
def inspect(
    action: str,
    diagram_name: str = "",
) -> str:
    """Read-only inspection.

    Actions:
      palette    - Default branch palette and neutral edge color.
      strategies - Strategy used for every diagram type / layout style pair.
      ranks      - Layer index per node of a stored diagram. Params: diagram_name.
      info       - Node, edge, root and island counts of a stored diagram.
                   Params: diagram_name.

    Returns:
        JSON data or an error message.
    """
    try:
        action = validate_action(action, "inspect", _INSPECT_ACTIONS)
    except ValidationError as exc:
        return f"Error: {exc.message}"

    if action == "palette":
        return palette_catalog()
    if action == "strategies":
        return strategy_catalog()

    try:
        diagram_name = validate_non_empty_string(diagram_name, "diagram_name")
    except ValidationError as exc:
        return f"Error: {exc.message}"
    state = _get_state(diagram_name)
    if state is None:
        return f"Error: diagram '{diagram_name}' not found."
    graph = state.graph
    index = GraphIndex.build(graph.nodes, graph.edges)

    if action == "ranks":
        return json.dumps(assign_ranks(index), indent=2)

    # info
    strategy = choose_strategy(graph.diagram_type, state.layout_style)
    root = index.root(prefer_degree=strategy is Strategy.RADIAL)
    reachable = spanning_tree(index, root) if root is not None else {}
    return json.dumps({
        "name": diagram_name,
        "diagram_type": graph.diagram_type.value,
        "layout_style": state.layout_style.value,
        "strategy": strategy.value,
        "nodes": len(graph.nodes),
        "edges": len(graph.edges),
        "dangling_edges": _count_dangling(graph),
        "roots": index.roots,
        "root": root,
        "unreachable": [nid for nid in index.ids if nid not in reachable],
    }, indent=2)


# ===================================================================
# Helpers
# ===================================================================

def _get_state(name: str) -> DiagramState | None:
    with _diagrams_lock:
        return _diagrams.get(name)


def _count_dangling(graph: Graph) -> int:
    ids = graph.node_ids()
    return sum(1 for e in graph.edges if e.source not in ids or e.target not in ids)


def _build_config(
    base: LayoutConfig,
    direction: str,
    radial_mode: str,
    overrides: dict[str, float | None],
    palette: list[str] | None,
) -> LayoutConfig:
    """Apply caller overrides on top of *base* and validate the result."""
    changes: dict[str, Any] = {k: v for k, v in overrides.items() if v is not None}
    if direction:
        changes["direction"] = validate_direction(direction)
    if radial_mode:
        changes["radial_mode"] = validate_radial_mode(radial_mode)
    if palette is not None:
        changes["palette"] = validate_palette(palette)
    return validate_layout_config(replace(base, **changes))


def _strategy_table() -> dict[str, dict[str, str]]:
    table: dict[str, dict[str, str]] = {}
    for dtype in DiagramType:
        row: dict[str, str] = {}
        for style in LayoutStyle:
            strategy = choose_strategy(dtype, style)
            if strategy is Strategy.LAYERED:
                row[style.value] = f"layered ({default_direction(dtype).name})"
            elif strategy is Strategy.RADIAL:
                row[style.value] = f"radial ({RadialMode.BALANCED.value.lower()} by default)"
            else:
                row[style.value] = strategy.value
        row["edges"] = "branch colors" if dtype in BRANCH_COLORED else "uniform"
        table[dtype.value] = row
    return table


# ===================================================================
# Entry point
# ===================================================================

def main() -> None:
    """Run the MCP server."""
    mcp.run()


if __name__ == "__main__":
    main()
