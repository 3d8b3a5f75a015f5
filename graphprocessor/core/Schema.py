"""
Wire schema for graph documents and clipboard payloads
======================================================
Pydantic models for everything the core reads back from text: persisted
graph snapshots and copy/paste payloads. Unknown fields are ignored so a
payload written by a newer editor build still loads.

Graph document
--------------

    {
      "guid": "5f0c...",                      // graph id (str, optional)
      "name": "Shader graph",                 // label (str, optional)
      "nodes": [
        {
          "guid":     "a1b2...",              // unique within this graph
          "type":     "Add",                  // registered node kind
          "name":     "Add",                  // display name (optional)
          "position": {"x": 0, "y": 0, "width": 0, "height": 0},
          "state":    {}                      // kind-specific persisted fields
        }
      ],
      "edges": [
        {
          "guid": "c3d4...",
          "output_node_id": "a1b2...", "output_field": "result", "output_identifier": null,
          "input_node_id":  "e5f6...", "input_field":  "a",      "input_identifier":  null
        }
      ],
      "groups": [
        {"guid": "...", "title": "Math", "position": {...}, "color": null, "inner_node_ids": ["a1b2..."]}
      ],
      "exposed_parameters": [
        {"guid": "...", "name": "speed", "value_type": "float", "value": 1.0}
      ]
    }

Clipboard payload
-----------------

    {"version": 1, "copied_nodes": [...], "copied_edges": [...], "copied_groups": [...]}

Each entry of the three sequences uses the same shape as in a graph
document and is validated on its own, so one broken entry doesn't spoil the
rest of the paste.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from logging import getLogger

from .Types import Rect

logger = getLogger(__name__)

CLIPBOARD_VERSION = 1


class WireModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class SerializedRect(WireModel):
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    def to_rect(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)


class SerializedNode(WireModel):
    guid: str
    type: str
    name: Optional[str] = None
    position: SerializedRect = Field(default_factory=SerializedRect)
    state: Dict[str, Any] = Field(default_factory=dict)


class SerializedEdge(WireModel):
    guid: Optional[str] = None
    output_node_id: str
    output_field: str
    output_identifier: Optional[str] = None
    input_node_id: str
    input_field: str
    input_identifier: Optional[str] = None


class SerializedGroup(WireModel):
    guid: Optional[str] = None
    title: str = "New Group"
    position: SerializedRect = Field(default_factory=SerializedRect)
    color: Optional[str] = None
    inner_node_ids: List[str] = Field(default_factory=list)


class SerializedParameter(WireModel):
    guid: Optional[str] = None
    name: str
    value_type: str = "any"
    value: Any = None


class GraphDocument(WireModel):
    guid: Optional[str] = None
    name: str = "Graph"
    nodes: List[Dict[str, Any]] = Field(default_factory=list)
    edges: List[Dict[str, Any]] = Field(default_factory=list)
    groups: List[Dict[str, Any]] = Field(default_factory=list)
    exposed_parameters: List[Dict[str, Any]] = Field(default_factory=list)


class ClipboardPayload(WireModel):
    version: int = CLIPBOARD_VERSION
    copied_nodes: List[Dict[str, Any]]
    copied_edges: List[Dict[str, Any]] = Field(default_factory=list)
    copied_groups: List[Dict[str, Any]] = Field(default_factory=list)


M = TypeVar("M", bound=WireModel)


def parse_entry(model: Type[M], data: Any) -> Optional[M]:
    """Validate one entry of a sequence; a broken entry is logged and skipped."""
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        logger.warning("Skipping malformed %s entry: %s", model.__name__, exc.errors()[:1])
        return None
