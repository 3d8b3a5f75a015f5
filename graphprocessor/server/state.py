"""
EditorState: the open graph documents and the shared clipboard.

Builds a small demo graph on startup so the UI has something to display on
first load.
"""
from __future__ import annotations

from typing import Dict, List, Optional

from logging import getLogger

# Side-effect: registers the built-in node kinds in Node._node_registry
import graphprocessor.noderegistry  # noqa: F401

from graphprocessor.config import EditorConfig, get_config
from graphprocessor.core.Clipboard import ClipboardCodec
from graphprocessor.core.ConnectionValidator import ConnectionPolicy
from graphprocessor.core.Graph import Graph
from graphprocessor.core.Types import Rect

logger = getLogger(__name__)


class EditorState:
    """Holds every open graph document keyed by id, plus one clipboard for all of them."""

    def __init__(self, config: Optional[EditorConfig] = None, seed_demo: bool = True) -> None:
        self.config = config if config is not None else get_config()
        self.policy = ConnectionPolicy.from_config(self.config)
        self.clipboard = ClipboardCodec(self.config)
        self.documents: Dict[str, Graph] = {}

        if seed_demo:
            self._seed_demo()

    # ── Documents ────────────────────────────────────────────────────────────

    def create_graph(self, name: str) -> Graph:
        graph = Graph(name, self.policy)
        self.documents[graph.id] = graph
        logger.info("Opened graph '%s' (%s)", name, graph.id)
        return graph

    def open_graph(self, data: dict) -> Graph:
        graph = Graph.deserialize(data, self.policy)
        if graph.id in self.documents:
            # reopening a snapshot replaces the live document
            logger.info("Replacing open graph %s from snapshot", graph.id)
        self.documents[graph.id] = graph
        return graph

    def get_graph(self, graph_id: str) -> Optional[Graph]:
        return self.documents.get(graph_id)

    def close_graph(self, graph_id: str) -> None:
        self.documents.pop(graph_id, None)

    def list_graphs(self) -> List[Graph]:
        return list(self.documents.values())

    # ── Demo graph ──────────────────────────────────────────────────────────

    def _seed_demo(self) -> None:
        graph = self.create_graph("Demo")

        a = graph.create_node("Constant", position=Rect(80, 100), value=8, value_type="int")
        b = graph.create_node("Constant", position=Rect(80, 260), value=4, value_type="int")
        add = graph.create_node("Add", position=Rect(340, 180))
        print_node = graph.create_node("Print", position=Rect(580, 180))

        graph.connect(a.id, "out", add.id, "a")
        graph.connect(b.id, "out", add.id, "b")
        graph.connect(add.id, "result", print_node.id, "value")

        graph.add_group("Inputs", Rect(60, 60, 200, 320), [a.id, b.id])
        graph.add_exposed_parameter("scale", "float", 2.0)


editor_state = EditorState()
