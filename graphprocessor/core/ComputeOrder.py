"""
Compute Order Engine
====================
Assigns every node an integer ``compute_order`` such that, for each edge
``output -> input``, the output node is ordered before the input node.
An external executor can then walk nodes in ascending order and find every
dependency ready.

Algorithm
---------
Kahn topological sort over the node/edge arena. Among the nodes that are
ready at the same time, the one added to the graph first goes first, so the
result depends only on edit history and never on identifier values.

Cycles
------
When nodes remain but none is ready, the pending nodes are split into
strongly connected components. Components with no pending dependency outside
themselves are cycles blocking the sort. The oldest node among those is
released anyway and the sort carries on. The graph keeps
a total order, and the nodes that actually sit on a cycle are reported back
so the executor can decide whether to refuse running.
"""

from __future__ import annotations

import heapq
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Set

import networkx as nx

from logging import getLogger

from .GraphPrimitives import Edge

logger = getLogger(__name__)


@dataclass
class ComputeOrderResult:
    # node id -> position in the processing order
    order: Dict[str, int] = field(default_factory=dict)
    cyclic_node_ids: List[str] = field(default_factory=list)

    @property
    def has_cycles(self) -> bool:
        return bool(self.cyclic_node_ids)

    def ordered_ids(self) -> List[str]:
        return sorted(self.order, key=self.order.__getitem__)


class ComputeOrderEngine:

    def compute(self, insertion_index: Mapping[str, int], edges: Iterable[Edge]) -> ComputeOrderResult:
        """
        :param insertion_index: node id -> monotonic index of when the node joined the graph
        :param edges: current edges; edges touching unknown nodes are ignored
        """
        successors: Dict[str, List[str]] = {node_id: [] for node_id in insertion_index}
        in_degree: Dict[str, int] = {node_id: 0 for node_id in insertion_index}

        for edge in edges:
            src, dst = edge.output_node_id, edge.input_node_id
            if src not in in_degree or dst not in in_degree:
                continue
            successors[src].append(dst)
            in_degree[dst] += 1

        ready = [(insertion_index[n], n) for n, degree in in_degree.items() if degree == 0]
        heapq.heapify(ready)

        pending: Set[str] = set(in_degree)
        order: Dict[str, int] = {}
        forced: List[str] = []

        while pending:
            if not ready:
                stuck = self.pick_cycle_entry(insertion_index, successors, pending)
                forced.append(stuck)
                in_degree[stuck] = 0
                heapq.heappush(ready, (insertion_index[stuck], stuck))

            _, node_id = heapq.heappop(ready)
            if node_id not in pending:
                continue
            pending.discard(node_id)
            order[node_id] = len(order)

            for succ in successors[node_id]:
                if succ not in pending:
                    continue
                in_degree[succ] -= 1
                if in_degree[succ] == 0:
                    heapq.heappush(ready, (insertion_index[succ], succ))

        result = ComputeOrderResult(order=order)
        if forced:
            result.cyclic_node_ids = self.find_cyclic_nodes(insertion_index, successors)
            logger.warning(
                "Dependency cycle between nodes %s, compute order is best effort",
                result.cyclic_node_ids,
            )
        return result

    @staticmethod
    def pick_cycle_entry(insertion_index: Mapping[str, int], successors: Mapping[str, List[str]], pending: Set[str]) -> str:
        """
        Node to release when the sort stalls.

        Only cycles with no pending upstream dependency outside themselves are
        candidates, so nodes that merely hang off a cycle keep waiting for it.
        Among the candidates the oldest node wins.
        """
        graph = nx.DiGraph()
        graph.add_nodes_from(pending)
        graph.add_edges_from(
            (src, dst) for src in pending for dst in successors[src] if dst in pending
        )

        condensed = nx.condensation(graph)
        candidates = [
            node_id
            for component, degree in condensed.in_degree()
            if degree == 0
            for node_id in condensed.nodes[component]["members"]
        ]
        return min(candidates, key=insertion_index.__getitem__)

    @staticmethod
    def find_cyclic_nodes(insertion_index: Mapping[str, int], successors: Mapping[str, List[str]]) -> List[str]:
        """Nodes that belong to a non-trivial strongly connected component or loop onto themselves."""
        graph = nx.DiGraph()
        graph.add_nodes_from(insertion_index)
        graph.add_edges_from((src, dst) for src, dsts in successors.items() for dst in dsts)

        cyclic: Set[str] = set()
        for scc in nx.strongly_connected_components(graph):
            if len(scc) > 1:
                cyclic.update(scc)
            else:
                (node_id,) = scc
                if graph.has_edge(node_id, node_id):
                    cyclic.add(node_id)

        return sorted(cyclic, key=insertion_index.__getitem__)
