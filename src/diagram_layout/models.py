"""
Core data model for layout snapshots.

Nodes and edges are frozen dataclasses: the layout engine never mutates
what the caller hands it, it returns new objects. A snapshot is a node
list and an edge list; the enums name the diagram semantics and the
layout hints a caller can ask for.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Optional


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class _ParseableEnum(Enum):
    """Enum that accepts its member name or display value, case-insensitively."""

    @classmethod
    def parse(cls, value: Any) -> Any:
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise ValueError(f"{cls.__name__} must be a string, got {type(value).__name__}.")
        key = value.strip().upper().replace("-", "_").replace(" ", "_")
        for member in cls:
            if key == member.name or key == str(member.value).upper().replace("-", "_").replace(" ", "_"):
                return member
        choices = ", ".join(str(m.value) for m in cls)
        raise ValueError(f"Unknown {cls.__name__} '{value}'. Valid values: {choices}.")


class DiagramType(_ParseableEnum):
    FLOWCHART = "Flowchart"
    MINDMAP = "Mindmap"
    ERD = "Entity-Relationship Diagram"
    ORG_CHART = "Organizational Chart"


class LayoutStyle(_ParseableEnum):
    TREE = "Tree"
    RADIAL = "Radial"
    HIERARCHICAL = "Hierarchical"
    CIRCULAR = "Circular"
    NETWORK = "Network"


class Direction(_ParseableEnum):
    TB = "TopToBottom"
    LR = "LeftToRight"


class RadialMode(_ParseableEnum):
    BALANCED = "Balanced"
    SECTOR = "Sector"


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Position:
    """A 2-D coordinate."""
    x: float = 0.0
    y: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y}


@dataclass(frozen=True)
class EdgeStyle:
    """Stroke color and width of a rendered edge."""
    stroke: str
    width: float

    def to_dict(self) -> dict[str, Any]:
        return {"stroke": self.stroke, "width": self.width}


@dataclass(frozen=True)
class Node:
    """A diagram node. ``position`` is the only field layout produces."""
    id: str
    label: str
    kind: Optional[str] = None
    details: Optional[str] = None
    position: Position = field(default_factory=Position)

    def moved_to(self, x: float, y: float) -> Node:
        return replace(self, position=Position(float(x), float(y)))

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "label": self.label}
        if self.kind is not None:
            data["kind"] = self.kind
        if self.details is not None:
            data["details"] = self.details
        data["position"] = self.position.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Node:
        pos = data.get("position") or {}
        return cls(
            id=str(data["id"]),
            label=str(data.get("label", "")),
            kind=data.get("kind", data.get("type")),
            details=data.get("details"),
            position=Position(float(pos.get("x", 0)), float(pos.get("y", 0))),
        )


@dataclass(frozen=True)
class Edge:
    """A directed connection between two node ids (which may not exist)."""
    id: str
    source: str
    target: str
    label: Optional[str] = None
    style: Optional[EdgeStyle] = None
    animated: bool = False

    def styled(self, style: EdgeStyle, animated: bool) -> Edge:
        return replace(self, style=style, animated=animated)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "source": self.source, "target": self.target}
        if self.label is not None:
            data["label"] = self.label
        if self.style is not None:
            data["style"] = self.style.to_dict()
        data["animated"] = self.animated
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any], index: int = 0) -> Edge:
        style = data.get("style")
        return cls(
            id=str(data.get("id") or f"e{index}"),
            source=str(data["source"]),
            target=str(data["target"]),
            label=data.get("label"),
            style=EdgeStyle(str(style["stroke"]), float(style["width"])) if style else None,
            animated=bool(data.get("animated", False)),
        )
