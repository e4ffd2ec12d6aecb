"""
Diagram snapshots and the edits the editor applies to them.

A ``Graph`` bundles nodes, edges and the diagram type. Every edit (manual
add, relabel, delete, drill-down expansion, full rewrite) returns a new
snapshot; positions stay placeholders until :meth:`Graph.layout` runs the
engine over the whole graph again.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from diagram_layout.layout import LayoutConfig
from diagram_layout.layout_engine import apply_layout
from diagram_layout.models import DiagramType, Edge, LayoutStyle, Node
from diagram_layout.validation import ValidationError, validate_generated_response


def default_layout_style(diagram_type: DiagramType) -> LayoutStyle:
    """Layout style used when a diagram is re-laid after an edit."""
    if diagram_type is DiagramType.MINDMAP:
        return LayoutStyle.RADIAL
    return LayoutStyle.TREE


@dataclass(frozen=True)
class Graph:
    """An immutable diagram snapshot: nodes, edges and the diagram type."""
    nodes: tuple[Node, ...] = ()
    edges: tuple[Edge, ...] = ()
    diagram_type: DiagramType = DiagramType.FLOWCHART

    # -- construction --

    @classmethod
    def from_response(cls, data: Any, diagram_type: DiagramType) -> Graph:
        """Build a snapshot from a generated ``{"nodes": [...], "edges": [...]}`` payload.

        Nodes start at the ``(0, 0)`` placeholder and edges are numbered
        ``e0, e1, ...`` in response order.

        Raises:
            ValidationError: if the payload is not a well-formed graph.
        """
        payload = validate_generated_response(data)
        nodes = tuple(_node_from_generated(n) for n in payload["nodes"])
        edges = tuple(
            Edge(id=f"e{i}", source=e["source"], target=e["target"], label=e.get("label"))
            for i, e in enumerate(payload["edges"])
        )
        return cls(nodes=nodes, edges=edges, diagram_type=diagram_type)

    def to_dict(self) -> dict[str, Any]:
        return {
            "diagram_type": self.diagram_type.value,
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
        }

    # -- queries --

    def node_ids(self) -> set[str]:
        return {n.id for n in self.nodes}

    def find_node(self, node_id: str) -> Node | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    # -- edits --

    def add_node(self, label: str) -> tuple[Graph, str]:
        """Add an unattached node; returns the new snapshot and the node id."""
        node_id = self._next_id("manual")
        node = Node(id=node_id, label=label)
        return replace(self, nodes=self.nodes + (node,)), node_id

    def add_child(self, parent_id: str, label: str) -> tuple[Graph, str]:
        """Add a node connected from *parent_id*."""
        self._require(parent_id)
        child_id = self._next_id("child")
        node = Node(id=child_id, label=label)
        edge = Edge(id=f"e-{parent_id}-{child_id}", source=parent_id, target=child_id)
        return replace(self, nodes=self.nodes + (node,), edges=self.edges + (edge,)), child_id

    def relabel(self, node_id: str, label: str) -> Graph:
        self._require(node_id)
        nodes = tuple(replace(n, label=label) if n.id == node_id else n for n in self.nodes)
        return replace(self, nodes=nodes)

    def remove_node(self, node_id: str) -> Graph:
        """Drop a node together with every edge touching it."""
        self._require(node_id)
        nodes = tuple(n for n in self.nodes if n.id != node_id)
        edges = tuple(e for e in self.edges if e.source != node_id and e.target != node_id)
        return replace(self, nodes=nodes, edges=edges)

    def expand(self, parent_id: str, data: Any) -> tuple[Graph, list[str]]:
        """Attach drill-down nodes under *parent_id*.

        Generated ids are discarded: node ``i`` of the response becomes
        ``gen-{parent}-{i}`` (suffixed if taken) and gets one edge from the
        parent. Edges inside the response are ignored.
        """
        self._require(parent_id)
        payload = validate_generated_response(data, require_edges=False)
        taken = self.node_ids()
        new_nodes: list[Node] = []
        new_edges: list[Edge] = []
        for i, raw in enumerate(payload["nodes"]):
            node_id = f"gen-{parent_id}-{i}"
            suffix = 1
            while node_id in taken:
                node_id = f"gen-{parent_id}-{i}-{suffix}"
                suffix += 1
            taken.add(node_id)
            new_nodes.append(replace(_node_from_generated(raw), id=node_id))
            new_edges.append(Edge(id=f"e-{parent_id}-{node_id}", source=parent_id, target=node_id))
        graph = replace(
            self,
            nodes=self.nodes + tuple(new_nodes),
            edges=self.edges + tuple(new_edges),
        )
        return graph, [n.id for n in new_nodes]

    def replace_with(self, data: Any) -> Graph:
        """Swap in a rewritten response, keeping the diagram type."""
        return Graph.from_response(data, self.diagram_type)

    # -- layout --

    def layout(
        self,
        layout_style: LayoutStyle | None = None,
        config: LayoutConfig | None = None,
    ) -> Graph:
        """Return a copy with every position and edge style recomputed."""
        style = layout_style or default_layout_style(self.diagram_type)
        nodes, edges = apply_layout(self.nodes, self.edges, self.diagram_type, style, config)
        return replace(self, nodes=tuple(nodes), edges=tuple(edges))

    # -- helpers --

    def _require(self, node_id: str) -> None:
        if self.find_node(node_id) is None:
            raise ValidationError(f"Node '{node_id}' not found.")

    def _next_id(self, prefix: str) -> str:
        taken = self.node_ids()
        n = 1
        while f"{prefix}-{n}" in taken:
            n += 1
        return f"{prefix}-{n}"


def _node_from_generated(raw: dict[str, Any]) -> Node:
    return Node(
        id=raw["id"],
        label=raw["label"],
        kind=raw.get("type"),
        details=raw.get("details"),
    )
