import json

import pytest

import graphprocessor  # noqa: F401  registers the built-in kinds
from graphprocessor.config import EditorConfig
from graphprocessor.core import EventTypes
from graphprocessor.core.Clipboard import ClipboardCodec
from graphprocessor.core.ConnectionValidator import ConnectionPolicy
from graphprocessor.core.Graph import Graph
from graphprocessor.core.Node import Node
from graphprocessor.core.Types import Rect, ValueType


@Node.register("MockStackNode")
class MockStackNode(Node):
    def __init__(self, type, **kwargs):
        super().__init__(type, **kwargs)
        self.add_input("previous", vertical=True)
        self.add_output("next", vertical=True)


@Node.register("MockFaultyPasteNode")
class MockFaultyPasteNode(Node):
    def __init__(self, type, **kwargs):
        super().__init__(type, **kwargs)
        self.add_output("out")

    def on_node_created(self):
        raise RuntimeError("creation hook exploded")


@pytest.fixture
def graph():
    return Graph("clipboard", ConnectionPolicy())


@pytest.fixture
def codec():
    return ClipboardCodec(EditorConfig())


class TestClipboardCopy:

    def test_serialize_selection(self, graph, codec):
        a = graph.create_node("Constant", value=3, value_type="int")
        p = graph.create_node("Print")
        other = graph.create_node("Print")
        inner = graph.connect(a.id, "out", p.id, "value")
        graph.connect(a.id, "out", other.id, "value")

        data = json.loads(codec.serialize(graph, [a.id, p.id]))

        assert data["version"] == 1
        assert [n["guid"] for n in data["copied_nodes"]] == [a.id, p.id]
        assert data["copied_nodes"][0]["state"] == {"value": 3, "value_type": "int"}
        assert [e["guid"] for e in data["copied_edges"]] == [inner]
        assert data["copied_groups"] == []

    def test_serialize_keeps_vertical_edges(self, graph, codec):
        top = graph.create_node("MockStackNode")
        bottom = graph.create_node("MockStackNode")
        stacked = graph.connect(top.id, "next", bottom.id, "previous")

        data = json.loads(codec.serialize(graph, [top.id]))

        assert [e["guid"] for e in data["copied_edges"]] == [stacked]

    def test_serialize_selected_edges_and_groups(self, graph, codec):
        a = graph.create_node("Constant")
        add = graph.create_node("Add")
        cross = graph.connect(a.id, "out", add.id, "a")
        group_id = graph.add_group("g", node_ids=[a.id])

        data = json.loads(codec.serialize(graph, [a.id, "missing"], [group_id], [cross]))

        assert [e["guid"] for e in data["copied_edges"]] == [cross]
        assert data["copied_groups"][0]["inner_node_ids"] == [a.id]
        assert len(data["copied_nodes"]) == 1


class TestClipboardPaste:

    def test_paste_two_connected_nodes(self, graph, codec):
        a = graph.create_node("Constant", position=Rect(100, 100))
        p = graph.create_node("Print")
        original_edge = graph.connect(a.id, "out", p.id, "value")

        result = codec.paste(graph, codec.serialize(graph, [a.id, p.id]))

        assert len(result.node_ids) == 2
        assert len(result.edge_ids) == 1
        assert not {a.id, p.id} & set(result.node_ids)
        assert len(graph.nodes) == 4
        assert len(graph.edges) == 2

        new_a, new_p = (graph.nodes[result.remap[a.id]], graph.nodes[result.remap[p.id]])
        new_edge = graph.edges[result.edge_ids[0]]
        assert new_edge.output_node_id == new_a.id
        assert new_edge.input_node_id == new_p.id

        # the source stays as it was
        assert graph.edges[original_edge].output_node_id == a.id
        assert graph.edges[original_edge].input_node_id == p.id
        assert a.position == Rect(100, 100)
        assert a.created_from_duplication is False

        assert new_a.created_from_duplication is True
        assert new_a.position == Rect(120, 120)
        assert new_a.compute_order < new_p.compute_order

    def test_cross_boundary_edge_into_single_edge_input_is_dropped(self, graph, codec):
        a = graph.create_node("Constant")
        add = graph.create_node("Add")
        cross = graph.connect(a.id, "out", add.id, "a")

        result = codec.paste(graph, codec.serialize(graph, [a.id], edge_ids=[cross]))

        assert len(result.node_ids) == 1
        assert result.edge_ids == []
        assert list(graph.edges) == [cross]

    def test_cross_boundary_edge_into_multi_edge_input_is_reconnected(self, graph, codec):
        a = graph.create_node("Constant")
        p = graph.create_node("Print")
        cross = graph.connect(a.id, "out", p.id, "value")

        result = codec.paste(graph, codec.serialize(graph, [a.id], edge_ids=[cross]))

        assert len(result.edge_ids) == 1
        incoming = graph.get_incoming_edges(p.port_ref("value"))
        assert {e.output_node_id for e in incoming} == {a.id, result.remap[a.id]}

    def test_cross_boundary_edge_from_original_source(self, graph, codec):
        a = graph.create_node("Constant")
        p = graph.create_node("Print")
        cross = graph.connect(a.id, "out", p.id, "value")

        # only the sink is copied: the source output fans out, so the copy gets wired too
        result = codec.paste(graph, codec.serialize(graph, [p.id], edge_ids=[cross]))

        assert len(result.edge_ids) == 1
        assert len(graph.get_outgoing_edges(a.port_ref("out"))) == 2

    def test_cross_graph_paste(self, graph, codec):
        a = graph.create_node("Constant")
        p = graph.create_node("Print")
        other = graph.create_node("Print")
        graph.connect(a.id, "out", p.id, "value")
        cross = graph.connect(a.id, "out", other.id, "value")
        payload = codec.serialize(graph, [a.id, p.id], edge_ids=[cross])

        target = Graph("target", ConnectionPolicy())
        duplicated = []
        target.subscribe(EventTypes.NODE_DUPLICATED, duplicated.append)
        result = codec.paste(target, payload)

        # `other` doesn't live in the target graph, so its edge is dropped
        assert len(target.nodes) == 2
        assert len(result.edge_ids) == 1
        assert duplicated == []

    def test_node_duplicated_notification(self, graph, codec):
        a = graph.create_node("Constant")
        duplicated = []
        graph.subscribe(EventTypes.NODE_DUPLICATED, duplicated.append)

        result = codec.duplicate(graph, [a.id])

        assert duplicated == [{
            "type": "NODE_DUPLICATED",
            "sourceNodeId": a.id,
            "newNodeId": result.node_ids[0],
        }]

    def test_paste_group(self, graph, codec):
        a = graph.create_node("Constant")
        b = graph.create_node("Constant")
        loose = graph.create_node("Print")
        group_id = graph.add_group("Inputs", Rect(0, 0, 200, 200), [a.id, b.id], color="#ff0000")

        result = codec.paste(graph, codec.serialize(graph, [a.id, b.id, loose.id], [group_id]))

        assert len(result.group_ids) == 1
        group = graph.groups[result.group_ids[0]]
        assert group.guid != group_id
        assert group.title == "Inputs"
        assert group.color == "#ff0000"
        assert group.position == Rect(20, 20, 200, 200)
        assert group.inner_node_ids == [result.remap[a.id], result.remap[b.id]]
        assert graph.nodes[result.remap[a.id]].created_within_group is True
        assert graph.nodes[result.remap[loose.id]].created_within_group is False
        assert graph.groups[group_id].inner_node_ids == [a.id, b.id]

    def test_group_members_fall_back_to_previous_paste(self, graph, codec):
        a = graph.create_node("Constant")
        b = graph.create_node("Constant")
        group_id = graph.add_group("Inputs", node_ids=[a.id, b.id])

        first = codec.paste(graph, codec.serialize(graph, [a.id, b.id]))
        second = codec.paste(graph, codec.serialize(graph, [], [group_id]))

        pasted_group = graph.groups[second.group_ids[0]]
        assert pasted_group.inner_node_ids == [first.remap[a.id], first.remap[b.id]]

    def test_group_members_not_pasted_are_dropped(self, graph, codec):
        a = graph.create_node("Constant")
        group_id = graph.add_group("Inputs", node_ids=[a.id])
        payload = codec.serialize(graph, [], [group_id])

        result = ClipboardCodec(EditorConfig()).paste(graph, payload)

        assert graph.groups[result.group_ids[0]].inner_node_ids == []

    def test_paste_uses_configured_offset(self, graph):
        codec = ClipboardCodec(EditorConfig(paste_offset_x=5, paste_offset_y=-10))
        a = graph.create_node("Constant", position=Rect(50, 50))

        result = codec.duplicate(graph, [a.id])

        assert graph.nodes[result.node_ids[0]].position == Rect(55, 40)

    def test_paste_twice_mints_fresh_ids(self, graph, codec):
        a = graph.create_node("Constant")
        payload = codec.serialize(graph, [a.id])

        first = codec.paste(graph, payload)
        second = codec.paste(graph, payload)

        assert first.node_ids[0] != second.node_ids[0]
        assert len(graph.nodes) == 3

    def test_paste_preserves_state_and_slots(self, graph, codec):
        text = graph.create_node("Constant", value="hi", value_type="string")
        concat = graph.create_node("Concat", slots=4)
        graph.connect(text.id, "out", concat.id, "items", input_identifier="3")

        result = codec.duplicate(graph, [text.id, concat.id])

        new_concat = graph.nodes[result.remap[concat.id]]
        assert len(new_concat.slot_ports) == 4
        assert graph.nodes[result.remap[text.id]].value == "hi"
        edge = graph.edges[result.edge_ids[0]]
        assert edge.input_identifier == "3"

    def test_faulty_creation_hook_does_not_abort_paste(self, graph, codec):
        faulty = graph.create_node("MockFaultyPasteNode")
        p = graph.create_node("Print")
        graph.connect(faulty.id, "out", p.id, "value")
        graph.hook_failures.clear()

        result = codec.duplicate(graph, [faulty.id, p.id])

        assert len(result.node_ids) == 2
        assert len(result.edge_ids) == 1
        assert [f.node_id for f in graph.hook_failures] == [result.remap[faulty.id]]


class TestClipboardPayloadValidation:

    @pytest.mark.parametrize("payload", [
        "not valid json-ish garbage",
        "",
        "[]",
        "42",
        '{"foo": 1}',
        '{"copied_nodes": "nope"}',
        b"\xff\xfe",
    ])
    def test_can_paste_rejects_garbage(self, codec, payload):
        assert codec.can_paste(payload) is False

    def test_can_paste_accepts_copy(self, graph, codec):
        a = graph.create_node("Constant")
        assert codec.can_paste(codec.serialize(graph, [a.id])) is True

    def test_paste_garbage_is_noop(self, graph, codec):
        graph.create_node("Constant")

        result = codec.paste(graph, "not valid json-ish garbage")

        assert result.is_empty
        assert len(graph.nodes) == 1

    def test_unknown_fields_and_broken_entries(self, graph, codec):
        payload = json.dumps({
            "version": 7,
            "futureField": [1, 2, 3],
            "copied_nodes": [
                {"guid": "src-1", "type": "Constant", "state": {"value": 1}, "newThing": True},
                {"type": "Constant"},
                {"guid": "src-2", "type": "UnknownKind"},
                {"guid": "src-3", "type": "Print"},
            ],
            "copied_edges": [
                {"guid": "e1", "output_node_id": "src-1", "output_field": "out",
                 "input_node_id": "src-3", "input_field": "value", "weight": 3},
                {"guid": "e2", "output_node_id": "src-1"},
                {"guid": "e3", "output_node_id": "src-1", "output_field": "out",
                 "input_node_id": "src-2", "input_field": "value"},
            ],
        })

        assert codec.can_paste(payload)
        result = codec.paste(graph, payload)

        assert sorted(result.remap) == ["src-1", "src-3"]
        assert len(result.edge_ids) == 1
        assert graph.nodes[result.remap["src-1"]].value == 1
        assert graph.nodes[result.remap["src-1"]].get_output_port("out").value_type == ValueType.ANY
