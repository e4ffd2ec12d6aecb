"""Tests for the layered pipeline, strategy dispatch and apply_layout."""

import math

import pytest

from diagram_layout.layout import GraphIndex, LayoutConfig
from diagram_layout.layout_engine import (
    Strategy,
    apply_layout,
    assign_coordinates,
    assign_ranks,
    choose_strategy,
    default_direction,
    group_layers,
    order_layers,
)
from diagram_layout.models import (
    DiagramType,
    Direction,
    Edge,
    EdgeStyle,
    LayoutStyle,
    Node,
    Position,
    RadialMode,
)
from diagram_layout.styles import BRANCH_PALETTE, NEUTRAL_EDGE_COLOR


def _nodes(*ids: str) -> list[Node]:
    return [Node(id=i, label=i) for i in ids]


def _edges(*pairs: tuple[str, str]) -> list[Edge]:
    return [Edge(id=f"e{k}", source=s, target=t) for k, (s, t) in enumerate(pairs)]


def _positions(nodes: list[Node]) -> dict[str, tuple[float, float]]:
    return {n.id: (n.position.x, n.position.y) for n in nodes}


# ===================================================================
# Rank assignment
# ===================================================================

class TestRanks:
    def test_longest_path_on_dag(self) -> None:
        idx = GraphIndex.build(_nodes("A", "B", "C", "D"), _edges(("A", "B"), ("B", "C"), ("A", "C"), ("C", "D")))
        assert assign_ranks(idx) == {"A": 0, "B": 1, "C": 2, "D": 3}

    def test_self_loop_ignored(self) -> None:
        idx = GraphIndex.build(_nodes("A", "B"), _edges(("A", "A"), ("A", "B")))
        assert assign_ranks(idx) == {"A": 0, "B": 1}

    def test_cycle_terminates(self) -> None:
        idx = GraphIndex.build(_nodes("A", "B", "C"), _edges(("A", "B"), ("B", "C"), ("C", "A")))
        ranks = assign_ranks(idx)
        assert set(ranks) == {"A", "B", "C"}
        # Bounded by the pass budget: N + 2 passes, each adding at most N.
        assert max(ranks.values()) <= (3 + 2) * 3

    def test_isolated_nodes_rank_zero(self) -> None:
        idx = GraphIndex.build(_nodes("A", "B"), [])
        assert assign_ranks(idx) == {"A": 0, "B": 0}

    def test_group_layers_keeps_input_order(self) -> None:
        idx = GraphIndex.build(_nodes("A", "C", "B"), _edges(("A", "B"), ("A", "C")))
        assert group_layers(idx, assign_ranks(idx)) == [["A"], ["C", "B"]]


# ===================================================================
# Crossing reduction
# ===================================================================

class TestOrdering:
    def test_barycenter_reorders_layer(self) -> None:
        idx = GraphIndex.build(_nodes("A", "B", "C", "D"), _edges(("B", "C"), ("A", "D")))
        ranks = assign_ranks(idx)
        layers = order_layers(group_layers(idx, ranks), idx, ranks)
        assert layers == [["A", "B"], ["D", "C"]]

    def test_node_without_upper_predecessor_sorts_first(self) -> None:
        idx = GraphIndex.build(_nodes("A", "B", "C"), _edges(("A", "C")))
        ranks = {"A": 0, "B": 1, "C": 1}
        layers = order_layers([["A"], ["C", "B"]], idx, ranks)
        assert layers == [["A"], ["B", "C"]]

    def test_ties_keep_previous_order(self) -> None:
        idx = GraphIndex.build(_nodes("A", "X", "Y", "Z"), _edges(("A", "Z"), ("A", "X"), ("A", "Y")))
        ranks = assign_ranks(idx)
        layers = order_layers(group_layers(idx, ranks), idx, ranks)
        assert layers == [["A"], ["X", "Y", "Z"]]

    def test_input_layers_not_mutated(self) -> None:
        idx = GraphIndex.build(_nodes("A", "B", "C", "D"), _edges(("B", "C"), ("A", "D")))
        ranks = assign_ranks(idx)
        layers = group_layers(idx, ranks)
        order_layers(layers, idx, ranks)
        assert layers == [["A", "B"], ["C", "D"]]


# ===================================================================
# Coordinates
# ===================================================================

class TestCoordinates:
    def test_top_to_bottom_centered(self) -> None:
        coords = assign_coordinates([["A"], ["B", "C", "D"]], LayoutConfig(), Direction.TB)
        assert coords["A"] == (0, 0)
        assert coords["B"] == (-230, 150)
        assert coords["C"] == (0, 150)
        assert coords["D"] == (230, 150)

    def test_left_to_right_swaps_axes(self) -> None:
        coords = assign_coordinates([["A"], ["B", "C"]], LayoutConfig(), Direction.LR)
        assert coords["A"] == (0, 0)
        assert coords["B"] == (230, -75)
        assert coords["C"] == (230, 75)

    def test_custom_spacing(self) -> None:
        cfg = LayoutConfig(spacing_x=100, spacing_y=40)
        coords = assign_coordinates([["A", "B"], ["C"]], cfg, Direction.TB)
        assert coords == {"A": (-50, 0), "B": (50, 0), "C": (0, 40)}


# ===================================================================
# Dispatch
# ===================================================================

class TestDispatch:
    def test_erd_always_grid(self) -> None:
        for style in LayoutStyle:
            assert choose_strategy(DiagramType.ERD, style) is Strategy.GRID

    def test_mindmap_radial_styles(self) -> None:
        assert choose_strategy(DiagramType.MINDMAP, LayoutStyle.RADIAL) is Strategy.RADIAL
        assert choose_strategy(DiagramType.MINDMAP, LayoutStyle.CIRCULAR) is Strategy.RADIAL
        assert choose_strategy(DiagramType.MINDMAP, LayoutStyle.TREE) is Strategy.LAYERED

    def test_radial_style_ignored_for_other_types(self) -> None:
        assert choose_strategy(DiagramType.FLOWCHART, LayoutStyle.RADIAL) is Strategy.LAYERED
        assert choose_strategy(DiagramType.ORG_CHART, LayoutStyle.CIRCULAR) is Strategy.LAYERED

    def test_default_direction(self) -> None:
        assert default_direction(DiagramType.MINDMAP) is Direction.LR
        assert default_direction(DiagramType.FLOWCHART) is Direction.TB
        assert default_direction(DiagramType.ORG_CHART) is Direction.TB


# ===================================================================
# apply_layout
# ===================================================================

class TestApplyLayout:
    def test_flowchart_chain(self) -> None:
        nodes, edges = apply_layout(
            _nodes("A", "B", "C"), _edges(("A", "B"), ("B", "C")),
            DiagramType.FLOWCHART, LayoutStyle.TREE,
        )
        assert _positions(nodes) == {"A": (0, 0), "B": (0, 150), "C": (0, 300)}
        for e in edges:
            assert e.style == EdgeStyle(NEUTRAL_EDGE_COLOR, 1.5)
            assert e.animated is True

    def test_flowchart_fan_out(self) -> None:
        nodes, _ = apply_layout(
            _nodes("A", "B", "C", "D"), _edges(("A", "B"), ("A", "C"), ("A", "D")),
            DiagramType.FLOWCHART, LayoutStyle.HIERARCHICAL,
        )
        pos = _positions(nodes)
        assert pos["B"] == (-230, 150)
        assert pos["C"] == (0, 150)
        assert pos["D"] == (230, 150)

    def test_mindmap_tree_is_left_to_right(self) -> None:
        nodes, edges = apply_layout(
            _nodes("A", "B"), _edges(("A", "B")), DiagramType.MINDMAP, LayoutStyle.TREE,
        )
        assert _positions(nodes) == {"A": (0, 0), "B": (230, 0)}
        assert edges[0].style == EdgeStyle(BRANCH_PALETTE[0], 2.5)
        assert edges[0].animated is False

    def test_direction_override(self) -> None:
        cfg = LayoutConfig(direction=Direction.LR)
        nodes, _ = apply_layout(
            _nodes("A", "B"), _edges(("A", "B")), DiagramType.FLOWCHART, LayoutStyle.TREE, cfg,
        )
        assert _positions(nodes)["B"] == (230, 0)

    def test_mindmap_radial_balanced(self) -> None:
        nodes, edges = apply_layout(
            _nodes("R", "c1", "c2", "c3", "c4"),
            _edges(("R", "c1"), ("R", "c2"), ("R", "c3"), ("R", "c4")),
            DiagramType.MINDMAP, LayoutStyle.RADIAL,
        )
        pos = _positions(nodes)
        assert pos["R"] == (0, 0)
        assert pos["c1"][0] > 0 and pos["c3"][0] > 0
        assert pos["c2"][0] < 0 and pos["c4"][0] < 0
        assert [e.style.stroke for e in edges] == list(BRANCH_PALETTE[:4])

    def test_mindmap_sector_mode(self) -> None:
        cfg = LayoutConfig(radial_mode=RadialMode.SECTOR)
        nodes, _ = apply_layout(
            _nodes("R", "a", "b"), _edges(("R", "a"), ("R", "b")),
            DiagramType.MINDMAP, LayoutStyle.CIRCULAR, cfg,
        )
        pos = _positions(nodes)
        assert pos["a"][0] == pytest.approx(0, abs=1e-9)
        assert pos["a"][1] == pytest.approx(250)
        assert pos["b"][1] == pytest.approx(-250)

    def test_erd_grid_with_uniform_edges(self) -> None:
        ids = [f"t{i}" for i in range(5)]
        nodes, edges = apply_layout(
            _nodes(*ids), _edges(("t0", "t1"), ("t3", "t4")), DiagramType.ERD, LayoutStyle.NETWORK,
        )
        pos = _positions(nodes)
        assert pos["t0"] == (0, 0)
        assert pos["t2"] == (500, 0)
        assert pos["t3"] == (0, 200)
        assert all(e.style == EdgeStyle(NEUTRAL_EDGE_COLOR, 1.5) for e in edges)
        assert not any(e.animated for e in edges)

    def test_org_chart_top_down_branch_colors(self) -> None:
        nodes, edges = apply_layout(
            _nodes("CEO", "CTO", "CFO", "Dev"),
            _edges(("CEO", "CTO"), ("CEO", "CFO"), ("CTO", "Dev")),
            DiagramType.ORG_CHART, LayoutStyle.TREE,
        )
        pos = _positions(nodes)
        assert pos["CEO"] == (0, 0)
        assert pos["CTO"] == (-115, 150)
        assert pos["CFO"] == (115, 150)
        assert pos["Dev"] == (0, 300)
        strokes = [e.style.stroke for e in edges]
        assert strokes == [BRANCH_PALETTE[0], BRANCH_PALETTE[1], BRANCH_PALETTE[0]]

    def test_cyclic_graph_is_total_and_finite(self) -> None:
        nodes, edges = apply_layout(
            _nodes("A", "B", "C"), _edges(("A", "B"), ("B", "C"), ("C", "A")),
            DiagramType.FLOWCHART, LayoutStyle.TREE,
        )
        assert len(nodes) == 3
        assert len(edges) == 3
        for n in nodes:
            assert math.isfinite(n.position.x) and math.isfinite(n.position.y)

    def test_single_node_at_origin(self) -> None:
        for dtype in DiagramType:
            for style in LayoutStyle:
                nodes, edges = apply_layout(_nodes("solo"), [], dtype, style)
                assert _positions(nodes) == {"solo": (0, 0)}
                assert edges == []

    def test_cycle_with_disconnected_component(self) -> None:
        nodes = _nodes("A", "B", "C", "D", "E")
        edges = _edges(("A", "B"), ("B", "C"), ("C", "A"), ("D", "E"))
        out, _ = apply_layout(nodes, edges, DiagramType.FLOWCHART, LayoutStyle.TREE)
        assert [n.id for n in out] == ["A", "B", "C", "D", "E"]
        pos = _positions(out)
        assert pos["E"][1] > pos["D"][1]

        # Radial: D is the only zero-incoming node, so the cycle becomes islands.
        out, _ = apply_layout(nodes, edges, DiagramType.MINDMAP, LayoutStyle.RADIAL)
        pos = _positions(out)
        assert pos["D"] == (0, 0)
        assert pos["E"] == (280, 0)
        assert [pos[n] for n in ("A", "B", "C")] == [(-400, 0), (-400, 100), (-400, 200)]

    def test_dangling_edge_kept_and_ignored(self) -> None:
        nodes, edges = apply_layout(
            _nodes("A", "B"), _edges(("A", "B"), ("A", "ghost")),
            DiagramType.MINDMAP, LayoutStyle.TREE,
        )
        assert _positions(nodes) == {"A": (0, 0), "B": (230, 0)}
        assert [e.target for e in edges] == ["B", "ghost"]
        assert edges[1].style == EdgeStyle(NEUTRAL_EDGE_COLOR, 1.5)

    def test_duplicate_ids_share_position(self) -> None:
        nodes = [Node(id="A", label="first"), Node(id="A", label="second"), Node(id="B", label="B")]
        out, _ = apply_layout(nodes, _edges(("A", "B")), DiagramType.FLOWCHART, LayoutStyle.TREE)
        assert [n.label for n in out] == ["first", "second", "B"]
        assert out[0].position == out[1].position

    def test_inputs_not_mutated(self) -> None:
        nodes = _nodes("A", "B")
        edges = _edges(("A", "B"))
        out_nodes, out_edges = apply_layout(nodes, edges, DiagramType.FLOWCHART, LayoutStyle.TREE)
        assert nodes[1].position == Position(0, 0)
        assert edges[0].style is None
        assert out_nodes[1] is not nodes[1]
        assert out_edges[0] is not edges[0]

    def test_deterministic(self) -> None:
        nodes = _nodes("R", "a", "b", "c", "a1", "x")
        edges = _edges(("R", "a"), ("R", "b"), ("R", "c"), ("a", "a1"), ("c", "R"))
        for dtype in DiagramType:
            for style in LayoutStyle:
                first = apply_layout(nodes, edges, dtype, style)
                second = apply_layout(nodes, edges, dtype, style)
                assert first == second

    def test_empty_graph(self) -> None:
        for dtype in DiagramType:
            for style in LayoutStyle:
                assert apply_layout([], [], dtype, style) == ([], [])
