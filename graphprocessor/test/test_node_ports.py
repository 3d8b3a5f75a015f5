import pytest

from graphprocessor.core.Node import Node
from graphprocessor.core.NodePort import InputPort, NodePort, OutputPort, PortRef
from graphprocessor.core.Types import (
    PortDirection,
    Rect,
    ValueType,
    types_are_connectable,
)


class TestNodePort:

    def setup_method(self):
        self.node = Node("TestType")
        self.node.id = "node-1"

    def test_input_defaults_to_single_edge(self):
        port = InputPort(self.node, "in_a", ValueType.INT)

        assert port.direction == PortDirection.INPUT
        assert port.isInputPort() is True
        assert port.isOutputPort() is False
        assert port.accept_multiple_edges is False
        assert port.vertical is False
        assert port.display_name == "in_a"

    def test_output_defaults_to_multi_edge(self):
        port = OutputPort(self.node, "out")

        assert port.direction == PortDirection.OUTPUT
        assert port.value_type == ValueType.ANY
        assert port.accept_multiple_edges is True

    def test_multiplicity_can_be_overridden(self):
        port = InputPort(self.node, "many", accept_multiple_edges=True)
        exclusive = OutputPort(self.node, "one", accept_multiple_edges=False)

        assert port.accept_multiple_edges is True
        assert exclusive.accept_multiple_edges is False

    def test_ref_follows_owner_id(self):
        port = InputPort(self.node, "items", ValueType.STRING, identifier="2")
        assert port.ref == PortRef("node-1", "items", "2")
        assert port.node_id == "node-1"
        assert port.portOwner() is self.node

        self.node.id = "node-2"
        assert port.ref.node_id == "node-2"

    def test_matches_field_and_identifier(self):
        port = NodePort(self.node, "items", PortDirection.INPUT, identifier="0")

        assert port.matches("items", "0")
        assert not port.matches("items", "1")
        assert not port.matches("items")

    def test_to_dict(self):
        port = OutputPort(self.node, "out", ValueType.FLOAT, vertical=True)
        data = port.to_dict()

        assert data["field_name"] == "out"
        assert data["direction"] == "OUTPUT"
        assert data["value_type"] == "float"
        assert data["vertical"] is True


class TestTypes:

    @pytest.mark.parametrize("output_type, input_type", [
        (ValueType.INT, ValueType.INT),
        (ValueType.ANY, ValueType.STRING),
        (ValueType.STRING, ValueType.ANY),
        (ValueType.COLOR, ValueType.OBJECT),
        (ValueType.INT, ValueType.FLOAT),
        (ValueType.BOOL, ValueType.INT),
        (ValueType.VECTOR, ValueType.ARRAY),
    ])
    def test_connectable_pairs(self, output_type, input_type):
        assert types_are_connectable(output_type, input_type)

    @pytest.mark.parametrize("output_type, input_type", [
        (ValueType.FLOAT, ValueType.INT),
        (ValueType.STRING, ValueType.FLOAT),
        (ValueType.ARRAY, ValueType.VECTOR),
        (ValueType.OBJECT, ValueType.STRING),
    ])
    def test_rejected_pairs(self, output_type, input_type):
        assert not types_are_connectable(output_type, input_type)

    def test_parse_value_type(self):
        assert ValueType.parse("float") is ValueType.FLOAT
        assert ValueType.parse("FLOAT") is ValueType.FLOAT
        assert ValueType.parse(ValueType.INT) is ValueType.INT
        with pytest.raises(KeyError):
            ValueType.parse("quaternion")

    def test_rect_offset_and_dict(self):
        rect = Rect(10, 20, 100, 50).offset(20, 20)

        assert rect == Rect(30, 40, 100, 50)
        assert rect.position == (30, 40)
        assert Rect.from_dict(rect.to_dict()) == rect
        assert Rect.from_dict(None) == Rect()
