from typing import Any, NamedTuple, Optional, TYPE_CHECKING

from .Types import PortDirection, ValueType

import logging

# Get a logger for this module
logger = logging.getLogger(__name__)

# To avoid circular imports only for typing
if TYPE_CHECKING:
    from .Node import Node


class PortRef(NamedTuple):
    """Address of a port inside a graph: owning node id + field name + optional slot identifier."""
    node_id: str
    field_name: str
    identifier: Optional[str] = None

    def __repr__(self):
        slot = f"[{self.identifier}]" if self.identifier is not None else ""
        return f"PortRef({self.node_id}.{self.field_name}{slot})"


class NodePort:
    def __init__(self,
                 node: 'Node',
                 field_name: str,
                 direction: PortDirection,
                 value_type: ValueType = ValueType.ANY,
                 identifier: Optional[str] = None,
                 accept_multiple_edges: Optional[bool] = None,
                 vertical: bool = False,
                 display_name: Optional[str] = None):

        self.node = node
        self.field_name = field_name
        self.identifier = identifier
        self.direction = direction
        self.value_type = value_type
        self.display_name = display_name or field_name
        # ports that wire nodes together inside a group/stack, drawn top to bottom
        self.vertical = vertical

        # Inputs hold a single value unless told otherwise, outputs can fan out.
        if accept_multiple_edges is None:
            accept_multiple_edges = direction == PortDirection.OUTPUT
        self.accept_multiple_edges = accept_multiple_edges

    @property
    def node_id(self) -> str:
        return self.node.id

    @property
    def ref(self) -> PortRef:
        return PortRef(self.node.id, self.field_name, self.identifier)

    def isInputPort(self) -> bool:
        return self.direction == PortDirection.INPUT

    def isOutputPort(self) -> bool:
        return self.direction == PortDirection.OUTPUT

    def matches(self, field_name: str, identifier: Optional[str] = None) -> bool:
        return self.field_name == field_name and self.identifier == identifier

    # return the node that owns this port
    def portOwner(self) -> Any:
        return self.node

    def to_dict(self) -> dict:
        return {
            "field_name": self.field_name,
            "identifier": self.identifier,
            "display_name": self.display_name,
            "direction": self.direction.name,
            "value_type": self.value_type.value,
            "accept_multiple_edges": self.accept_multiple_edges,
            "vertical": self.vertical,
        }

    def __repr__(self):
        return f"NodePort({self.node.id}.{self.field_name}, {self.direction.name}, {self.value_type.value})"


class InputPort(NodePort):
    def __init__(self, node, field_name, value_type=ValueType.ANY, **kwargs):
        super().__init__(node, field_name, PortDirection.INPUT, value_type, **kwargs)


class OutputPort(NodePort):
    def __init__(self, node, field_name, value_type=ValueType.ANY, **kwargs):
        super().__init__(node, field_name, PortDirection.OUTPUT, value_type, **kwargs)
