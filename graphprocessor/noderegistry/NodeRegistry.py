
from typing import Any, Dict, List, Optional

from logging import getLogger

from ..core.Node import Node
from ..core.Types import ValueType

logger = getLogger(__name__)

# =========================================================================================
# BUILT-IN NODE KINDS
#
# Nodes here only declare ports and persisted state. Nothing is evaluated in the
# editor core: an external executor walks the graph by compute order and
# looks the behaviour up by type tag.
# =========================================================================================


@Node.register("Relay")
class RelayNode(Node):
    """Pass-through used to reroute a wire. Takes any value and hands it on unchanged."""

    def __init__(self, type: str, **kwargs):
        super().__init__(type, **kwargs)

        self.din_input = self.add_input("input", ValueType.ANY)
        self.dout_output = self.add_output("output", ValueType.ANY)


@Node.register("Parameter")
class ParameterNode(Node):
    """Reads one of the graph's exposed parameters."""

    def __init__(self, type: str, parameter_id: Optional[str] = None, **kwargs):
        super().__init__(type, **kwargs)

        self.parameter_id = parameter_id
        self.dout_value = self.add_output("value", ValueType.ANY)

    def parameter(self):
        if self.graph is None or self.parameter_id is None:
            return None
        return self.graph.get_exposed_parameter(self.parameter_id)

    def on_node_created(self):
        # a pasted parameter node keeps its binding only if the parameter exists here
        if self.graph is not None and self.parameter() is None:
            self.parameter_id = None

    def on_exposed_parameter_removed(self, parameter_id: str):
        if self.parameter_id == parameter_id:
            self.parameter_id = None

    def serialize_state(self) -> Dict[str, Any]:
        return {"parameter_id": self.parameter_id}

    def load_state(self, state: Dict[str, Any]):
        self.parameter_id = state.get("parameter_id")


@Node.register("Constant")
class ConstantNode(Node):
    def __init__(self, type: str, value: Any = None, value_type: ValueType = ValueType.ANY, **kwargs):
        super().__init__(type, **kwargs)

        self.value = value
        self.dout_out = self.add_output("out", ValueType.parse(value_type))

    def serialize_state(self) -> Dict[str, Any]:
        return {"value": self.value, "value_type": self.dout_out.value_type.value}

    def load_state(self, state: Dict[str, Any]):
        self.value = state.get("value")
        self.dout_out.value_type = ValueType.parse(state.get("value_type", ValueType.ANY))


@Node.register("Add")
class AddNode(Node):
    def __init__(self, type: str, **kwargs):
        super().__init__(type, **kwargs)

        # ANY keeps it polymorphic: numbers add, everything else concatenates
        self.din_a = self.add_input("a", ValueType.ANY)
        self.din_b = self.add_input("b", ValueType.ANY)
        self.dout_result = self.add_output("result", ValueType.ANY)


@Node.register("Multiply")
class MultiplyNode(Node):
    def __init__(self, type: str, **kwargs):
        super().__init__(type, **kwargs)

        self.din_a = self.add_input("a", ValueType.FLOAT)
        self.din_b = self.add_input("b", ValueType.FLOAT)
        self.dout_result = self.add_output("result", ValueType.FLOAT)


@Node.register("Concat")
class ConcatNode(Node):
    """
    Joins a variable number of strings. The ``items`` input expands into one
    slot per string, each slot told apart by its identifier ("0", "1", ...).
    """

    def __init__(self, type: str, slots: int = 2, **kwargs):
        super().__init__(type, **kwargs)

        self.dout_result = self.add_output("result", ValueType.STRING)
        self.set_slot_count(slots)

    @property
    def slot_ports(self) -> List:
        return [port for port in self.inputs if port.field_name == "items"]

    def set_slot_count(self, count: int):
        count = max(0, int(count))
        current = len(self.slot_ports)

        for index in range(current, count):
            self.add_input("items", ValueType.STRING, identifier=str(index), display_name=f"item {index}")

        if count < current:
            dropped = {str(index) for index in range(count, current)}
            self.inputs = [p for p in self.inputs if not (p.field_name == "items" and p.identifier in dropped)]
            # edges into the removed slots no longer resolve
            if self.graph is not None:
                self.graph.prune_dangling_edges()

    def serialize_state(self) -> Dict[str, Any]:
        return {"slots": len(self.slot_ports)}

    def load_state(self, state: Dict[str, Any]):
        self.set_slot_count(state.get("slots", 2))


@Node.register("Print")
class PrintNode(Node):
    """Sink that logs every value it receives, so its input takes any number of edges."""

    def __init__(self, type: str, **kwargs):
        super().__init__(type, **kwargs)

        self.din_value = self.add_input("value", ValueType.ANY, accept_multiple_edges=True)
