import pytest

import graphprocessor  # noqa: F401  registers the built-in kinds
from graphprocessor.core.ComputeOrder import ComputeOrderEngine
from graphprocessor.core.ConnectionValidator import ConnectionPolicy
from graphprocessor.core.Graph import Graph
from graphprocessor.core.GraphPrimitives import Edge


@pytest.fixture
def graph():
    return Graph("order", ConnectionPolicy())


def assert_monotonic(graph):
    for edge in graph.edges.values():
        assert graph.nodes[edge.output_node_id].compute_order < graph.nodes[edge.input_node_id].compute_order


class TestComputeOrderEngine:

    def setup_method(self):
        self.engine = ComputeOrderEngine()

    def test_ties_follow_insertion_order(self):
        # ids sort the other way round on purpose
        index = {"c": 0, "b": 1, "a": 2}
        result = self.engine.compute(index, [])

        assert result.ordered_ids() == ["c", "b", "a"]
        assert result.order == {"c": 0, "b": 1, "a": 2}
        assert not result.has_cycles

    def test_dependencies_first(self):
        index = {"sink": 0, "mid": 1, "src": 2}
        edges = [
            Edge("e1", "src", "out", "mid", "in"),
            Edge("e2", "mid", "out", "sink", "in"),
        ]
        result = self.engine.compute(index, edges)

        assert result.ordered_ids() == ["src", "mid", "sink"]

    def test_edges_to_unknown_nodes_are_ignored(self):
        index = {"a": 0}
        result = self.engine.compute(index, [Edge("e1", "ghost", "out", "a", "in")])

        assert result.order == {"a": 0}

    def test_cycle_gets_total_order(self):
        index = {"a": 0, "b": 1, "c": 2, "d": 3}
        edges = [
            Edge("e1", "a", "out", "b", "in"),
            Edge("e2", "b", "out", "c", "in"),
            Edge("e3", "c", "out", "a", "in"),
            Edge("e4", "c", "out", "d", "in"),
        ]
        result = self.engine.compute(index, edges)

        assert sorted(result.order.values()) == [0, 1, 2, 3]
        assert result.ordered_ids() == ["a", "b", "c", "d"]
        assert result.cyclic_node_ids == ["a", "b", "c"]
        assert result.has_cycles

    def test_node_after_cycle_waits_for_it(self):
        # "d" only depends on the cycle but was added before it
        index = {"d": 0, "a": 1, "b": 2}
        edges = [
            Edge("e1", "a", "out", "b", "in"),
            Edge("e2", "b", "out", "a", "in"),
            Edge("e3", "b", "out", "d", "in"),
        ]
        result = self.engine.compute(index, edges)

        assert result.ordered_ids() == ["a", "b", "d"]
        assert result.cyclic_node_ids == ["a", "b"]

    def test_downstream_cycle_is_not_released_first(self):
        # two cycles, the older one depends on the newer one
        index = {"x": 0, "y": 1, "src": 2, "a": 3, "b": 4}
        edges = [
            Edge("e1", "x", "out", "y", "in"),
            Edge("e2", "y", "out", "x", "in"),
            Edge("e3", "a", "out", "b", "in"),
            Edge("e4", "b", "out", "a", "in"),
            Edge("e5", "b", "out", "x", "in"),
            Edge("e6", "src", "out", "a", "in"),
        ]
        result = self.engine.compute(index, edges)

        assert result.ordered_ids() == ["src", "a", "b", "x", "y"]
        assert result.cyclic_node_ids == ["x", "y", "a", "b"]

    def test_recompute_is_stable(self):
        index = {"a": 0, "b": 1, "c": 2}
        edges = [Edge("e1", "a", "out", "b", "in"), Edge("e2", "b", "out", "a", "in")]

        first = self.engine.compute(index, edges)
        second = self.engine.compute(index, edges)

        assert first.order == second.order
        assert first.cyclic_node_ids == second.cyclic_node_ids


class TestGraphComputeOrder:

    def test_order_respects_edges_not_insertion(self, graph):
        p = graph.create_node("Print")
        add = graph.create_node("Add")
        a = graph.create_node("Constant")
        b = graph.create_node("Constant")

        graph.connect(add.id, "result", p.id, "value")
        graph.connect(a.id, "out", add.id, "a")
        graph.connect(b.id, "out", add.id, "b")

        assert_monotonic(graph)
        assert [n.compute_order for n in (a, b, add, p)] == [0, 1, 2, 3]

    def test_order_after_remove_node(self, graph):
        a = graph.create_node("Constant")
        r = graph.create_node("Relay")
        p = graph.create_node("Print")
        graph.connect(a.id, "out", r.id, "input")
        graph.connect(r.id, "output", p.id, "value")

        graph.remove_node(r.id)
        graph.update_compute_order()

        assert all(not e.touches(r.id) for e in graph.edges.values())
        assert sorted(n.compute_order for n in graph.nodes.values()) == [0, 1]
        assert_monotonic(graph)

    def test_three_node_cycle(self, graph):
        r1 = graph.create_node("Relay")
        r2 = graph.create_node("Relay")
        r3 = graph.create_node("Relay")

        graph.connect(r1.id, "output", r2.id, "input")
        graph.connect(r2.id, "output", r3.id, "input")
        assert graph.connect(r3.id, "output", r1.id, "input") is not None

        result = graph.update_compute_order()

        assert [r1.compute_order, r2.compute_order, r3.compute_order] == [0, 1, 2]
        assert result.cyclic_node_ids == [r1.id, r2.id, r3.id]
        assert graph.update_compute_order().order == result.order

    def test_nodes_around_cycle_keep_their_order(self, graph):
        sink = graph.create_node("Print")
        r1 = graph.create_node("Relay")
        r2 = graph.create_node("Relay")
        source = graph.create_node("Constant")

        graph.connect(r1.id, "output", r2.id, "input")
        graph.connect(r2.id, "output", r1.id, "input")
        graph.connect(r2.id, "output", sink.id, "value")
        graph.connect(source.id, "out", sink.id, "value")

        result = graph.last_compute_order

        assert result.cyclic_node_ids == [r1.id, r2.id]
        assert r2.compute_order < sink.compute_order
        assert source.compute_order < sink.compute_order
        assert [n.compute_order for n in (source, r1, r2, sink)] == [0, 1, 2, 3]

    def test_cycle_cleared_after_edge_removed(self, graph):
        r1 = graph.create_node("Relay")
        r2 = graph.create_node("Relay")
        graph.connect(r1.id, "output", r2.id, "input")
        back = graph.connect(r2.id, "output", r1.id, "input")
        assert graph.last_compute_order.has_cycles

        graph.remove_edge(back)

        assert not graph.last_compute_order.has_cycles
        assert_monotonic(graph)

    def test_order_is_monotonic_after_many_edits(self, graph):
        nodes = [graph.create_node("Relay") for _ in range(6)]
        sink = graph.create_node("Print")

        # chain built back to front
        for upstream, downstream in zip(nodes[1:], nodes[:-1]):
            graph.connect(upstream.id, "output", downstream.id, "input")
        graph.connect(nodes[0].id, "output", sink.id, "value")
        graph.remove_node(nodes[3].id)
        graph.connect(nodes[4].id, "output", nodes[2].id, "input")

        assert_monotonic(graph)
        assert sorted(n.compute_order for n in graph.nodes.values()) == list(range(len(graph.nodes)))
