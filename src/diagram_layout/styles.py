"""
Edge styling: branch color propagation and the uniform relational style.

Mind maps and org charts color every top-level branch with its own palette
entry so each subtree reads as a group. Flowcharts and ER diagrams use one
neutral stroke for every edge.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING, Sequence

from diagram_layout.models import DiagramType, Edge, EdgeStyle

if TYPE_CHECKING:
    from diagram_layout.layout import GraphIndex


# ---------------------------------------------------------------------------
# Color themes
# ---------------------------------------------------------------------------

@dataclass
class ColorTheme:
    """A named fill/stroke pair; the stroke doubles as a branch color."""
    fill: str
    stroke: str
    font: str


class Themes:
    """Pre-built color themes matching draw.io palettes."""
    BLUE = ColorTheme(fill="#dae8fc", stroke="#6c8ebf", font="#000000")
    GREEN = ColorTheme(fill="#d5e8d4", stroke="#82b366", font="#000000")
    ORANGE = ColorTheme(fill="#ffe6cc", stroke="#d79b00", font="#000000")
    RED = ColorTheme(fill="#f8cecc", stroke="#b85450", font="#000000")
    PURPLE = ColorTheme(fill="#e1d5e7", stroke="#9673a6", font="#000000")
    YELLOW = ColorTheme(fill="#fff2cc", stroke="#d6b656", font="#000000")
    PINK = ColorTheme(fill="#e6d0de", stroke="#996185", font="#000000")
    DARK_BLUE = ColorTheme(fill="#1ba1e2", stroke="#006eaf", font="#ffffff")
    GRAY = ColorTheme(fill="#f5f5f5", stroke="#b1b1b7", font="#333333")


BRANCH_PALETTE: tuple[str, ...] = (
    Themes.BLUE.stroke,
    Themes.GREEN.stroke,
    Themes.ORANGE.stroke,
    Themes.RED.stroke,
    Themes.PURPLE.stroke,
    Themes.YELLOW.stroke,
    Themes.PINK.stroke,
    Themes.DARK_BLUE.stroke,
)

NEUTRAL_EDGE_COLOR = Themes.GRAY.stroke

BRANCH_COLORED = frozenset({DiagramType.MINDMAP, DiagramType.ORG_CHART})


# ---------------------------------------------------------------------------
# Branch coloring
# ---------------------------------------------------------------------------

def branch_colors(index: GraphIndex, palette: Sequence[str]) -> dict[str, str]:
    """Color each branch under the root and spread it to every descendant.

    The root's direct children take ``palette[i % len(palette)]`` in edge
    order. A breadth-first walk then hands each child's color down; a node
    keeps the first color it receives, so cycles and shared descendants
    terminate. The root and anything it cannot reach stay uncolored.
    """
    root = index.root()
    if root is None or not palette:
        return {}

    colors: dict[str, str] = {}
    queue: deque[str] = deque()
    for child in index.children(root):
        if child == root or child in colors:
            continue
        colors[child] = palette[len(colors) % len(palette)]
        queue.append(child)

    while queue:
        node = queue.popleft()
        for child in index.children(node):
            if child == root or child in colors:
                continue
            colors[child] = colors[node]
            queue.append(child)
    return colors


def style_edges(
    edges: Sequence[Edge],
    diagram_type: DiagramType,
    index: GraphIndex,
    palette: Sequence[str],
    neutral: EdgeStyle,
    branch_width: float,
    animate_flow: bool = True,
) -> list[Edge]:
    """Return new edges carrying the style for *diagram_type*.

    Branch-colored diagrams give each edge the color of the node it points
    into; edges into the root, into unreachable nodes or into unknown ids
    fall back to *neutral*. Every other diagram type is uniformly neutral.
    """
    animated = animate_flow and diagram_type is DiagramType.FLOWCHART
    if diagram_type not in BRANCH_COLORED:
        return [e.styled(neutral, animated) for e in edges]

    colors = branch_colors(index, palette)
    styled: list[Edge] = []
    for edge in edges:
        color = colors.get(edge.target)
        style = EdgeStyle(color, branch_width) if color else neutral
        styled.append(edge.styled(style, animated))
    return styled
