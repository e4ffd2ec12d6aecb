"""
Input validation for the diagram layout server and graph snapshots.

Provides reusable validators that produce clear error messages for every
parameter received from an LLM caller or from the generation service,
before anything reaches the layout engine.
"""

from __future__ import annotations

import json
import math
import re
from typing import TYPE_CHECKING, Any

from diagram_layout.models import Direction, DiagramType, LayoutStyle, RadialMode

if TYPE_CHECKING:
    from diagram_layout.layout import LayoutConfig


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


def validate_string(value: Any, field_name: str, *, allow_empty: bool = True) -> str:
    """Ensure *value* is a string (optionally non-empty)."""
    if not isinstance(value, str):
        raise ValidationError(f"'{field_name}' must be a string, got {type(value).__name__}.")
    if not allow_empty and not value.strip():
        raise ValidationError(f"'{field_name}' must not be empty.")
    return value


def validate_color(value: Any, field_name: str) -> str:
    """Validate a CSS-style hex color (#RGB, #RRGGBB, #RRGGBBAA)."""
    if not isinstance(value, str):
        raise ValidationError(f"'{field_name}' must be a color string, got {type(value).__name__}.")
    value = value.strip()
    if not re.match(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$", value):
        raise ValidationError(
            f"'{field_name}' must be a valid hex color (#RGB, #RRGGBB, or #RRGGBBAA), got '{value}'."
        )
    return value


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


def validate_bool(value: Any, field_name: str) -> bool:
    """Ensure *value* is a boolean."""
    if not isinstance(value, bool):
        raise ValidationError(
            f"'{field_name}' must be a boolean, got {type(value).__name__}."
        )
    return value


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

_DIAGRAM_ACTIONS = {"CREATE", "GET", "LIST", "DELETE"}
_EDIT_ACTIONS = {"ADD_NODE", "ADD_CHILD", "RELABEL", "DELETE_NODE", "EXPAND", "REPLACE"}
_LAYOUT_ACTIONS = {"APPLY", "COMPUTE"}
_INSPECT_ACTIONS = {"PALETTE", "STRATEGIES", "RANKS", "INFO"}


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


def _parse_enum(enum_cls: Any, value: Any, field_name: str) -> Any:
    try:
        return enum_cls.parse(value)
    except ValueError as exc:
        raise ValidationError(f"'{field_name}': {exc}") from exc


def validate_diagram_type(value: Any) -> DiagramType:
    """Validate a diagram type by name or display value (e.g. 'mindmap', 'ERD')."""
    return _parse_enum(DiagramType, value, "diagram_type")


def validate_layout_style(value: Any) -> LayoutStyle:
    """Validate a layout style (tree, radial, hierarchical, circular, network)."""
    return _parse_enum(LayoutStyle, value, "layout_style")


def validate_direction(value: Any) -> Direction:
    """Validate a layered direction (TB or LR)."""
    return _parse_enum(Direction, value, "direction")


def validate_radial_mode(value: Any) -> RadialMode:
    """Validate a radial mode (balanced or sector)."""
    return _parse_enum(RadialMode, value, "radial_mode")


def validate_spacing(value: Any, field_name: str) -> float:
    """Validate spacing parameters (1..1e6)."""
    return validate_number(value, field_name, min_val=1, max_val=1e6)


def validate_positive_number(value: Any, field_name: str, *, max_val: float | None = None) -> float:
    """Validate that a number is positive (> 0)."""
    return validate_number(value, field_name, min_val=0.001, max_val=max_val)


def validate_palette(value: Any) -> tuple[str, ...]:
    """Validate a non-empty list of hex colors."""
    if isinstance(value, tuple):
        value = list(value)
    validate_list(value, "palette", min_length=1)
    return tuple(validate_color(c, f"palette[{i}]") for i, c in enumerate(value))


def validate_layout_config(cfg: LayoutConfig) -> LayoutConfig:
    """Check every numeric option is finite and in range and the palette is usable."""
    for name in (
        "spacing_x", "spacing_y", "grid_spacing_x", "grid_spacing_y",
        "branch_spacing", "slot_height", "ring_spacing",
        "island_offset", "island_spacing",
    ):
        validate_spacing(getattr(cfg, name), name)
    validate_positive_number(cfg.branch_edge_width, "branch_edge_width", max_val=100)
    validate_positive_number(cfg.neutral_edge_width, "neutral_edge_width", max_val=100)
    validate_palette(cfg.palette)
    validate_color(cfg.neutral_color, "neutral_color")
    return cfg


# ---------------------------------------------------------------------------
# Generated graph payloads
# ---------------------------------------------------------------------------

def validate_generated_node(n: Any, index: int) -> dict[str, Any]:
    """Validate one node from a generated response: {id, label, type?, details?}."""
    if not isinstance(n, dict):
        raise ValidationError(f"Node at index {index} must be a dict/object.")
    if "id" not in n:
        raise ValidationError(f"Node at index {index} missing required key 'id'.")
    if not isinstance(n["id"], str) or not n["id"].strip():
        raise ValidationError(f"Node at index {index}: 'id' must be a non-empty string.")
    if "label" not in n:
        raise ValidationError(f"Node at index {index} missing required key 'label'.")
    if not isinstance(n["label"], str):
        raise ValidationError(f"Node at index {index}: 'label' must be a string.")
    for key in ("type", "details"):
        if key in n and n[key] is not None and not isinstance(n[key], str):
            raise ValidationError(f"Node at index {index}: '{key}' must be a string.")
    return n


def validate_generated_edge(e: Any, index: int) -> dict[str, Any]:
    """Validate one edge from a generated response: {source, target, label?}."""
    if not isinstance(e, dict):
        raise ValidationError(f"Edge at index {index} must be a dict/object.")
    if "source" not in e:
        raise ValidationError(f"Edge at index {index} missing required key 'source'.")
    if "target" not in e:
        raise ValidationError(f"Edge at index {index} missing required key 'target'.")
    if not isinstance(e["source"], str) or not e["source"].strip():
        raise ValidationError(f"Edge at index {index}: 'source' must be a non-empty string.")
    if not isinstance(e["target"], str) or not e["target"].strip():
        raise ValidationError(f"Edge at index {index}: 'target' must be a non-empty string.")
    if "label" in e and e["label"] is not None and not isinstance(e["label"], str):
        raise ValidationError(f"Edge at index {index}: 'label' must be a string.")
    return e


def validate_generated_response(data: Any, *, require_edges: bool = True) -> dict[str, list]:
    """Validate a ``{"nodes": [...], "edges": [...]}`` payload from the generator.

    Accepts the parsed object or its raw JSON text. Edges may point at ids
    that do not exist; the layout engine tolerates those.
    """
    if isinstance(data, str):
        try:
            data = json.loads(data)
        except json.JSONDecodeError as exc:
            raise ValidationError(f"Generated response is not valid JSON: {exc.msg}.") from exc
    validate_dict(data, "response")
    if "nodes" not in data:
        raise ValidationError("Generated response missing required key 'nodes'.")
    nodes = validate_list(data["nodes"], "nodes")
    if require_edges and "edges" not in data:
        raise ValidationError("Generated response missing required key 'edges'.")
    edges = validate_list(data.get("edges", []), "edges")
    for i, n in enumerate(nodes):
        validate_generated_node(n, i)
    for i, e in enumerate(edges):
        validate_generated_edge(e, i)
    return {"nodes": nodes, "edges": edges}


# ---------------------------------------------------------------------------
# Snapshot wire shapes (positioned nodes / styled edges)
# ---------------------------------------------------------------------------

def validate_node_dict(n: Any, index: int) -> None:
    """Validate a node in the wire shape {id, label, kind?, details?, position?}."""
    if not isinstance(n, dict):
        raise ValidationError(f"Node at index {index} must be a dict/object.")
    if not isinstance(n.get("id"), str) or not n["id"].strip():
        raise ValidationError(f"Node at index {index}: 'id' must be a non-empty string.")
    if "label" in n and not isinstance(n["label"], str):
        raise ValidationError(f"Node at index {index}: 'label' must be a string.")
    for key in ("kind", "type", "details"):
        if key in n and n[key] is not None and not isinstance(n[key], str):
            raise ValidationError(f"Node at index {index}: '{key}' must be a string.")
    pos = n.get("position")
    if pos is not None:
        if not isinstance(pos, dict):
            raise ValidationError(f"Node at index {index}: 'position' must be a dict/object.")
        for axis in ("x", "y"):
            if axis in pos:
                validate_number(pos[axis], f"nodes[{index}].position.{axis}")


def validate_edge_dict(e: Any, index: int) -> None:
    """Validate an edge in the wire shape {id?, source, target, label?, style?, animated?}."""
    validate_generated_edge(e, index)
    if "id" in e and not isinstance(e["id"], str):
        raise ValidationError(f"Edge at index {index}: 'id' must be a string.")
    style = e.get("style")
    if style is not None:
        if not isinstance(style, dict) or "stroke" not in style or "width" not in style:
            raise ValidationError(
                f"Edge at index {index}: 'style' must be an object with 'stroke' and 'width'."
            )
        validate_color(style["stroke"], f"edges[{index}].style.stroke")
        validate_positive_number(style["width"], f"edges[{index}].style.width")
    if "animated" in e:
        validate_bool(e["animated"], f"edges[{index}].animated")
