
from typing import Optional, List, Dict, Any, Type, Callable, Iterator
import logging

from .NodePort import NodePort, InputPort, OutputPort, PortRef
from .Types import PortDirection, Rect, ValueType


# Get a logger for this module
logger = logging.getLogger(__name__)


# A node only describes its ports and persisted state. It never runs:
# the graph hands the compute order to whatever executor walks it.
class Node:
    _node_registry: Dict[str, Type['Node']] = {}

    @classmethod
    def register(cls, type_name: str) -> Callable[[Type['Node']], Type['Node']]:
        """Decorator to register a node class with a specific type name."""
        def decorator(subclass: Type['Node']) -> Type['Node']:
            if cls._node_registry.get(type_name):
                raise ValueError(f"Node type '{type_name}' is already registered.")
            cls._node_registry[type_name] = subclass
            return subclass
        return decorator

    @classmethod
    def is_registered(cls, type_name: str) -> bool:
        return type_name in cls._node_registry

    @classmethod
    def registered_types(cls) -> List[str]:
        return sorted(cls._node_registry.keys())

    @classmethod
    def create_node(cls, type_name: str, *args, **kwargs) -> 'Node':
        """Factory method to create a node instance by type name."""
        if type_name not in cls._node_registry:
            raise ValueError(f"Unknown node type '{type_name}'")

        node_class = cls._node_registry[type_name]
        return node_class(type_name, *args, **kwargs)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Node':
        """
        Rebuild a node from its serialized form. The returned node has no id yet,
        the graph it is added to decides which identifier it gets.
        """
        node = cls.create_node(data["type"])
        node.name = data.get("name") or node.name
        node.position = Rect.from_dict(data.get("position"))
        node.load_state(data.get("state") or {})
        return node

    def __init__(self,
                 type: str,
                 position: Optional[Rect] = None,
                 name: Optional[str] = None):
        self.id: Optional[str] = None
        self.type = type
        self.name = name or type
        self.position: Rect = position if position is not None else Rect()

        self.inputs: List[NodePort] = []
        self.outputs: List[NodePort] = []

        self.compute_order: int = -1
        self.created_from_duplication = False
        self.created_within_group = False

        # Back reference set by the graph when the node is added
        self.graph = None

    # --- ports ---

    def _check_port_free(self, field_name: str, identifier: Optional[str]):
        if self.get_port(field_name, identifier) is not None:
            slot = f" [{identifier}]" if identifier is not None else ""
            raise ValueError(f"Port '{field_name}'{slot} already exists in node '{self.name}'")

    def add_input(self, field_name: str, value_type: ValueType = ValueType.ANY, **kwargs) -> InputPort:
        self._check_port_free(field_name, kwargs.get("identifier"))
        port = InputPort(self, field_name, value_type, **kwargs)
        self.inputs.append(port)
        return port

    def add_output(self, field_name: str, value_type: ValueType = ValueType.ANY, **kwargs) -> OutputPort:
        self._check_port_free(field_name, kwargs.get("identifier"))
        port = OutputPort(self, field_name, value_type, **kwargs)
        self.outputs.append(port)
        return port

    def get_port(self, field_name: str, identifier: Optional[str] = None) -> Optional[NodePort]:
        for port in self.all_ports():
            if port.matches(field_name, identifier):
                return port
        return None

    def get_input_port(self, field_name: str, identifier: Optional[str] = None) -> Optional[NodePort]:
        port = self.get_port(field_name, identifier)
        return port if port is not None and port.isInputPort() else None

    def get_output_port(self, field_name: str, identifier: Optional[str] = None) -> Optional[NodePort]:
        port = self.get_port(field_name, identifier)
        return port if port is not None and port.isOutputPort() else None

    def all_ports(self) -> Iterator[NodePort]:
        yield from self.inputs
        yield from self.outputs

    def get_ports(self, direction: Optional[PortDirection] = None) -> List[NodePort]:
        if direction is None:
            return list(self.all_ports())
        return [port for port in self.all_ports() if port.direction == direction]

    def port_ref(self, field_name: str, identifier: Optional[str] = None) -> PortRef:
        return PortRef(self.id, field_name, identifier)

    # --- lifecycle hooks, overridden by node kinds ---

    def on_node_created(self):
        """Called once when the node is freshly created by the editor or pasted."""
        pass

    def on_removed(self):
        pass

    def on_exposed_parameter_removed(self, parameter_id: str):
        pass

    # --- persisted state ---

    def serialize_state(self) -> Dict[str, Any]:
        return {}

    def load_state(self, state: Dict[str, Any]):
        pass

    def to_dict(self) -> Dict[str, Any]:
        return {
            "guid": self.id,
            "type": self.type,
            "name": self.name,
            "position": self.position.to_dict(),
            "compute_order": self.compute_order,
            "state": self.serialize_state(),
        }

    def __repr__(self):
        return f"Node({self.type}, {self.id})"
