"""
graphprocessor
==============
Data/graph core of a node-based visual programming editor.

Public API
----------
    from graphprocessor import Graph, ClipboardCodec, PortRef

    graph = Graph("demo")
    a = graph.create_node("Constant", value=2)
    b = graph.create_node("Print")
    graph.connect(a.id, "out", b.id, "value")

    codec = ClipboardCodec()
    payload = codec.serialize(graph, [a.id, b.id])
    codec.paste(graph, payload)
"""

from .core.Clipboard import ClipboardCodec, PasteResult
from .core.ComputeOrder import ComputeOrderEngine, ComputeOrderResult
from .core.ConnectionValidator import ConnectionCheck, ConnectionPolicy, ConnectionValidator
from .core.Graph import Graph
from .core.Node import Node
from .core.NodePort import PortRef
from .core.Types import PortDirection, Rect, ValueType

# Side-effect: registers the built-in node kinds in Node._node_registry
from . import noderegistry  # noqa: F401

__all__ = [
    "ClipboardCodec",
    "PasteResult",
    "ComputeOrderEngine",
    "ComputeOrderResult",
    "ConnectionCheck",
    "ConnectionPolicy",
    "ConnectionValidator",
    "Graph",
    "Node",
    "PortRef",
    "PortDirection",
    "Rect",
    "ValueType",
]
