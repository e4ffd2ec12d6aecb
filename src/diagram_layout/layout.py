"""
Graph indexing and the root-based placement strategies.

- ``GraphIndex``: adjacency views and root detection over a node/edge snapshot
- Balanced horizontal tree for mind maps (subtree-height aware, left/right split)
- Angular sector sweep for mind maps
- Grid packing for entity-relationship diagrams
- Island placement for nodes the chosen root cannot reach

All functions return a mapping of node id -> (x, y); they never touch the
caller's Node objects.
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import Iterable, Optional

from diagram_layout.models import Direction, Edge, Node, RadialMode
from diagram_layout.styles import BRANCH_PALETTE, NEUTRAL_EDGE_COLOR

logger = logging.getLogger(__name__)

Coords = dict[str, tuple[float, float]]


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@dataclass
class LayoutConfig:
    """Spacing, palette and mode options for a single layout call."""
    # Layered (flowchart / org chart / mind map as tree)
    spacing_x: float = 230
    spacing_y: float = 150
    direction: Optional[Direction] = None  # None = pick from diagram type

    # Grid (ERD)
    grid_spacing_x: float = 250
    grid_spacing_y: float = 200

    # Radial (mind map)
    radial_mode: RadialMode = RadialMode.BALANCED
    branch_spacing: float = 280    # Horizontal step per depth (balanced tree)
    slot_height: float = 60        # Vertical slot of a leaf (balanced tree)
    ring_spacing: float = 250      # Radius step per level (sector sweep)

    # Unreachable nodes
    island_offset: float = 400
    island_spacing: float = 100

    # Edge styling
    palette: tuple[str, ...] = field(default_factory=lambda: tuple(BRANCH_PALETTE))
    neutral_color: str = NEUTRAL_EDGE_COLOR
    branch_edge_width: float = 2.5
    neutral_edge_width: float = 1.5
    animate_flow: bool = True


# ---------------------------------------------------------------------------
# Graph index
# ---------------------------------------------------------------------------

@dataclass
class GraphIndex:
    """Adjacency, reverse adjacency and roots of a node/edge snapshot.

    Edges whose source or target is not a known node are left out; they
    still exist in the caller's edge list, they just carry no geometry.
    """
    ids: list[str]
    adjacency: dict[str, list[str]]
    reverse: dict[str, list[str]]
    incoming: dict[str, int]
    roots: list[str]

    @classmethod
    def build(cls, nodes: Iterable[Node], edges: Iterable[Edge]) -> GraphIndex:
        ids: list[str] = []
        seen: set[str] = set()
        for node in nodes:
            if node.id not in seen:
                seen.add(node.id)
                ids.append(node.id)

        adjacency: dict[str, list[str]] = defaultdict(list)
        reverse: dict[str, list[str]] = defaultdict(list)
        incoming: dict[str, int] = {nid: 0 for nid in ids}
        for edge in edges:
            if edge.source not in seen or edge.target not in seen:
                continue
            adjacency[edge.source].append(edge.target)
            reverse[edge.target].append(edge.source)
            incoming[edge.target] += 1

        roots = [nid for nid in ids if incoming[nid] == 0]
        return cls(ids=ids, adjacency=adjacency, reverse=reverse, incoming=incoming, roots=roots)

    def children(self, node_id: str) -> list[str]:
        return self.adjacency.get(node_id, [])

    def degree(self, node_id: str) -> int:
        return len(self.adjacency.get(node_id, [])) + self.incoming.get(node_id, 0)

    def root(self, prefer_degree: bool = False) -> str | None:
        """Pick the layout root.

        The first zero-incoming node wins. Without one (every node sits on
        a cycle or has a parent) fall back to the first node, or to the most
        connected node when *prefer_degree* is set.
        """
        if not self.ids:
            return None
        if self.roots:
            return self.roots[0]
        if prefer_degree:
            # max() keeps the first of equal-degree nodes
            return max(self.ids, key=self.degree)
        return self.ids[0]


def spanning_tree(
    index: GraphIndex,
    root: str,
    depth_first: bool = True,
    claim_root_children: bool = False,
) -> dict[str, list[str]]:
    """Claim every node reachable from *root* exactly once.

    Returns parent -> ordered tree children. Depth-first claims match the
    order of a recursive walk; breadth-first claims match a level sweep.
    With *claim_root_children* every direct child of the root is claimed
    for the root before the depth-first walk descends.
    A node reached a second time is not descended into again, which keeps
    the walk bounded on cyclic input.
    """
    tree: dict[str, list[str]] = {root: []}
    if depth_first:
        # Each frame is (node, index of next neighbor to try).
        stack: list[tuple[str, int]] = [(root, 0)]
        if claim_root_children:
            for v in index.children(root):
                if v not in tree:
                    tree[v] = []
                    tree[root].append(v)
            stack = [(v, 0) for v in reversed(tree[root])]
        while stack:
            u, idx = stack[-1]
            neighbors = index.children(u)
            if idx < len(neighbors):
                stack[-1] = (u, idx + 1)
                v = neighbors[idx]
                if v not in tree:
                    tree[v] = []
                    tree[u].append(v)
                    stack.append((v, 0))
            else:
                stack.pop()
    else:
        queue = deque([root])
        while queue:
            u = queue.popleft()
            for v in index.children(u):
                if v not in tree:
                    tree[v] = []
                    tree[u].append(v)
                    queue.append(v)
    return tree


# ---------------------------------------------------------------------------
# Balanced horizontal tree (mind maps)
# ---------------------------------------------------------------------------

def subtree_heights(tree: dict[str, list[str]], root: str, slot_height: float) -> dict[str, float]:
    """Bottom-up height of each subtree: sum of children, or one slot for a leaf."""
    heights: dict[str, float] = {}
    order: list[str] = []
    stack = [root]
    while stack:
        node = stack.pop()
        order.append(node)
        stack.extend(tree.get(node, []))
    # Reverse pre-order visits children before parents.
    for node in reversed(order):
        kids = tree.get(node, [])
        heights[node] = sum(heights[k] for k in kids) if kids else slot_height
    return heights


def layout_balanced_tree(index: GraphIndex, cfg: LayoutConfig) -> Coords:
    """Mind-map layout with the root centered and branches split left/right.

    Root children alternate right (even index) and left (odd index). Each
    side is stacked as a block whose height is the sum of its subtree
    heights, centered on the root; deeper levels repeat the same stacking
    around their parent, stepping ``branch_spacing`` outward per level.
    """
    root = index.root(prefer_degree=True)
    if root is None:
        return {}
    tree = spanning_tree(index, root, depth_first=True, claim_root_children=True)
    heights = subtree_heights(tree, root, cfg.slot_height)

    coords: Coords = {root: (0.0, 0.0)}
    right = [c for i, c in enumerate(tree[root]) if i % 2 == 0]
    left = [c for i, c in enumerate(tree[root]) if i % 2 == 1]

    # Work items: (children to stack, parent x, parent y, side)
    stack: list[tuple[list[str], float, float, int]] = [
        (left, 0.0, 0.0, -1),
        (right, 0.0, 0.0, 1),
    ]
    while stack:
        kids, px, py, side = stack.pop()
        if not kids:
            continue
        block = sum(heights[k] for k in kids)
        cursor = py - block / 2
        x = px + side * cfg.branch_spacing
        for kid in kids:
            y = cursor + heights[kid] / 2
            coords[kid] = (x, y)
            cursor += heights[kid]
            stack.append((tree[kid], x, y, side))

    _place_islands(index, coords, cfg)
    return coords


# ---------------------------------------------------------------------------
# Angular sector sweep (mind maps)
# ---------------------------------------------------------------------------

def layout_radial_sectors(index: GraphIndex, cfg: LayoutConfig) -> Coords:
    """Concentric rings: each node's children split its angular sector evenly."""
    root = index.root(prefer_degree=True)
    if root is None:
        return {}
    tree = spanning_tree(index, root, depth_first=False)

    coords: Coords = {root: (0.0, 0.0)}
    queue = deque([(root, 0, 0.0, 2 * math.pi)])
    while queue:
        node, level, start, end = queue.popleft()
        kids = tree[node]
        if not kids:
            continue
        step = (end - start) / len(kids)
        radius = (level + 1) * cfg.ring_spacing
        for i, kid in enumerate(kids):
            a0 = start + i * step
            a1 = a0 + step
            mid = (a0 + a1) / 2
            coords[kid] = (radius * math.cos(mid), radius * math.sin(mid))
            queue.append((kid, level + 1, a0, a1))

    _place_islands(index, coords, cfg)
    return coords


# ---------------------------------------------------------------------------
# Grid packing (ERD)
# ---------------------------------------------------------------------------

def layout_grid(index: GraphIndex, cfg: LayoutConfig) -> Coords:
    """Pack nodes row by row into ``ceil(sqrt(n))`` columns, in input order."""
    if not index.ids:
        return {}
    cols = math.ceil(math.sqrt(len(index.ids)))
    coords: Coords = {}
    for i, nid in enumerate(index.ids):
        col = i % cols
        row = i // cols
        coords[nid] = (col * cfg.grid_spacing_x, row * cfg.grid_spacing_y)
    return coords


# ---------------------------------------------------------------------------
# Islands
# ---------------------------------------------------------------------------

def _place_islands(index: GraphIndex, coords: Coords, cfg: LayoutConfig) -> None:
    """Stack unplaced nodes in a column left of the placed structure."""
    islands = [nid for nid in index.ids if nid not in coords]
    if not islands:
        return
    min_x = min(x for x, _ in coords.values())
    min_y = min(y for _, y in coords.values())
    x = min_x - cfg.island_offset
    for i, nid in enumerate(islands):
        coords[nid] = (x, min_y + i * cfg.island_spacing)
    logger.debug("Placed %d island node(s) at x=%.1f", len(islands), x)
