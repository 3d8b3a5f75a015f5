from dataclasses import dataclass, field
from typing import Any, Dict, List, NamedTuple, Optional

from .NodePort import PortRef
from .Types import Rect


# Defining Edge as a simple data structure
# Using NamedTuple for immutability: an edge is never rewired, it is removed and re-created
class Edge(NamedTuple):
    guid: str
    output_node_id: str
    output_field: str
    input_node_id: str
    input_field: str
    output_identifier: Optional[str] = None
    input_identifier: Optional[str] = None

    @classmethod
    def between(cls, guid: str, output_ref: PortRef, input_ref: PortRef) -> 'Edge':
        return cls(
            guid,
            output_ref.node_id, output_ref.field_name,
            input_ref.node_id, input_ref.field_name,
            output_ref.identifier, input_ref.identifier,
        )

    @property
    def output_ref(self) -> PortRef:
        return PortRef(self.output_node_id, self.output_field, self.output_identifier)

    @property
    def input_ref(self) -> PortRef:
        return PortRef(self.input_node_id, self.input_field, self.input_identifier)

    def touches(self, node_id: str) -> bool:
        return self.output_node_id == node_id or self.input_node_id == node_id

    def to_dict(self) -> Dict[str, Any]:
        return self._asdict()

    def __repr__(self):
        return f"Edge({self.output_node_id}.{self.output_field} -> {self.input_node_id}.{self.input_field})"


@dataclass
class Group:
    """
    Visual container over a set of nodes. Members are held by identifier
    only: removing a group never removes its nodes.
    """
    guid: str
    title: str = "New Group"
    position: Rect = field(default_factory=Rect)
    color: Optional[str] = None
    inner_node_ids: List[str] = field(default_factory=list)

    def contains(self, node_id: str) -> bool:
        return node_id in self.inner_node_ids

    def to_dict(self) -> Dict[str, Any]:
        return {
            "guid": self.guid,
            "title": self.title,
            "position": self.position.to_dict(),
            "color": self.color,
            "inner_node_ids": list(self.inner_node_ids),
        }
