"""
Layout engine entry point.

Implements the layered (Sugiyama-lite) pipeline used for flowcharts, org
charts and tree-style mind maps, and the dispatcher that routes a snapshot
to the right strategy:

- Rank assignment by bounded relaxation (terminates on cycles)
- Crossing reduction with a single forward barycenter sweep
- Coordinate assignment that centers each layer on the perpendicular axis
- Strategy selection by diagram type and layout style
- Edge styling (branch colors or uniform)

The engine is a pure function of its inputs: it builds fresh Node and Edge
objects and holds no state between calls.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Sequence

from diagram_layout.layout import (
    Coords,
    GraphIndex,
    LayoutConfig,
    layout_balanced_tree,
    layout_grid,
    layout_radial_sectors,
)
from diagram_layout.models import (
    DiagramType,
    Direction,
    Edge,
    EdgeStyle,
    LayoutStyle,
    Node,
    RadialMode,
)
from diagram_layout.styles import style_edges

logger = logging.getLogger(__name__)


class Strategy(Enum):
    LAYERED = "layered"
    RADIAL = "radial"
    GRID = "grid"


# ---------------------------------------------------------------------------
# Rank assignment
# ---------------------------------------------------------------------------

def assign_ranks(index: GraphIndex) -> dict[str, int]:
    """Assign each node an integer layer by relaxing ``rank[t] >= rank[s] + 1``.

    Runs at most ``N + 2`` passes over the edges and stops early once a pass
    changes nothing. On a DAG this yields longest-path layers; on a cycle it
    simply stops after the pass budget, leaving a usable but not globally
    consistent ordering. Self-loops are ignored.
    """
    ranks = {nid: 0 for nid in index.ids}
    edges = [
        (src, tgt)
        for src in index.ids
        for tgt in index.children(src)
        if src != tgt
    ]
    passes = 0
    for passes in range(1, len(index.ids) + 3):
        changed = False
        for src, tgt in edges:
            if ranks[tgt] < ranks[src] + 1:
                ranks[tgt] = ranks[src] + 1
                changed = True
        if not changed:
            break
    logger.debug("Rank assignment finished after %d pass(es)", passes)
    return ranks


def group_layers(index: GraphIndex, ranks: dict[str, int]) -> list[list[str]]:
    """Bucket node ids by rank, keeping input order inside each layer."""
    if not index.ids:
        return []
    layers: list[list[str]] = [[] for _ in range(max(ranks.values()) + 1)]
    for nid in index.ids:
        layers[ranks[nid]].append(nid)
    return layers


# ---------------------------------------------------------------------------
# Crossing reduction
# ---------------------------------------------------------------------------

def order_layers(
    layers: list[list[str]],
    index: GraphIndex,
    ranks: dict[str, int],
) -> list[list[str]]:
    """Reorder each layer by the barycenter of its predecessors one layer up.

    A node without such a predecessor gets ``-1`` and sorts first. The sort
    is stable, so equal barycenters keep their previous order.
    """
    ordered: list[list[str]] = [list(layer) for layer in layers]
    for r in range(1, len(ordered)):
        above = {nid: i for i, nid in enumerate(ordered[r - 1])}
        barycenters: dict[str, float] = {}
        for nid in ordered[r]:
            preds = [above[p] for p in index.reverse.get(nid, []) if ranks[p] == r - 1]
            barycenters[nid] = sum(preds) / len(preds) if preds else -1.0
        ordered[r].sort(key=lambda n: barycenters[n])
    return ordered


# ---------------------------------------------------------------------------
# Coordinate assignment
# ---------------------------------------------------------------------------

def assign_coordinates(
    layers: list[list[str]],
    cfg: LayoutConfig,
    direction: Direction,
) -> Coords:
    """Place layer ``r`` at ``r * rank_step`` and center its nodes on the other axis."""
    if direction is Direction.TB:
        rank_step, node_step = cfg.spacing_y, cfg.spacing_x
    else:
        rank_step, node_step = cfg.spacing_x, cfg.spacing_y

    coords: Coords = {}
    for r, layer in enumerate(layers):
        extent = (len(layer) - 1) * node_step
        for i, nid in enumerate(layer):
            along = -extent / 2 + i * node_step
            across = r * rank_step
            if direction is Direction.TB:
                coords[nid] = (along, across)
            else:
                coords[nid] = (across, along)
    return coords


def layout_layered(index: GraphIndex, cfg: LayoutConfig, direction: Direction) -> Coords:
    """Ranks, one barycenter sweep, then centered coordinates."""
    ranks = assign_ranks(index)
    layers = order_layers(group_layers(index, ranks), index, ranks)
    return assign_coordinates(layers, cfg, direction)


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

def choose_strategy(diagram_type: DiagramType, layout_style: LayoutStyle) -> Strategy:
    """Pick the placement strategy for a diagram type and layout style."""
    if diagram_type is DiagramType.ERD:
        return Strategy.GRID
    if diagram_type is DiagramType.MINDMAP and layout_style in (LayoutStyle.RADIAL, LayoutStyle.CIRCULAR):
        return Strategy.RADIAL
    return Strategy.LAYERED


def default_direction(diagram_type: DiagramType) -> Direction:
    """Mind maps grow left to right; flowcharts and org charts top to bottom."""
    if diagram_type is DiagramType.MINDMAP:
        return Direction.LR
    return Direction.TB


def compute_positions(
    index: GraphIndex,
    diagram_type: DiagramType,
    layout_style: LayoutStyle,
    cfg: LayoutConfig,
) -> Coords:
    """Run the selected strategy and return node id -> (x, y)."""
    strategy = choose_strategy(diagram_type, layout_style)
    logger.debug(
        "Laying out %d node(s) as %s (%s / %s)",
        len(index.ids), strategy.value, diagram_type.value, layout_style.value,
    )
    if strategy is Strategy.GRID:
        return layout_grid(index, cfg)
    if strategy is Strategy.RADIAL:
        if cfg.radial_mode is RadialMode.SECTOR:
            return layout_radial_sectors(index, cfg)
        return layout_balanced_tree(index, cfg)
    direction = cfg.direction or default_direction(diagram_type)
    return layout_layered(index, cfg, direction)


def apply_layout(
    nodes: Sequence[Node],
    edges: Sequence[Edge],
    diagram_type: DiagramType,
    layout_style: LayoutStyle,
    config: LayoutConfig | None = None,
) -> tuple[list[Node], list[Edge]]:
    """Position every node and style every edge of a graph snapshot.

    Args:
        nodes: Input nodes. Ids should be unique; for duplicates the copies
            share one position.
        edges: Input edges. References to unknown ids are kept in the
            output but ignored for geometry.
        diagram_type: Selects the default strategy and edge styling.
        layout_style: Secondary hint; ``RADIAL``/``CIRCULAR`` send mind
            maps to the radial strategy.
        config: Spacing, palette and mode options.

    Returns:
        ``(positioned_nodes, styled_edges)``, new objects in input order.
    """
    cfg = config or LayoutConfig()
    index = GraphIndex.build(nodes, edges)
    coords = compute_positions(index, diagram_type, layout_style, cfg)

    positioned = [n.moved_to(*coords.get(n.id, (0.0, 0.0))) for n in nodes]
    neutral = EdgeStyle(cfg.neutral_color, cfg.neutral_edge_width)
    styled = style_edges(
        edges,
        diagram_type,
        index,
        cfg.palette,
        neutral,
        cfg.branch_edge_width,
        animate_flow=cfg.animate_flow,
    )
    return positioned, styled
