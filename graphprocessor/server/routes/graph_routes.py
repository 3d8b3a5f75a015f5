"""
Graph REST routes: the editor layer driving the graph core.

All routes are mounted under /api by main.py. Rejections the core reports as
None/False (bad connections, clashing parameter names) come back as 409,
unknown documents or elements as 404.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Response
from pydantic import BaseModel, Field

from logging import getLogger

from graphprocessor.core.Graph import Graph
from graphprocessor.core.Node import Node
from graphprocessor.core.NodePort import PortRef
from graphprocessor.core.Types import Rect
from graphprocessor.server.serializers.graph_serializer import (
    serialize_graph,
    serialize_node,
    serialize_paste_result,
    serialize_ports,
)
from graphprocessor.server.state import editor_state

logger = getLogger(__name__)

router = APIRouter()


def _graph_or_404(graph_id: str) -> Graph:
    graph = editor_state.get_graph(graph_id)
    if graph is None:
        raise HTTPException(status_code=404, detail="Graph not found")
    return graph


# ── Graph documents ───────────────────────────────────────────────────────────

class CreateGraphBody(BaseModel):
    name: str


@router.get("/graphs")
async def list_graphs() -> List[Dict[str, Any]]:
    return [
        {"id": g.id, "name": g.name, "nodeCount": len(g.nodes)}
        for g in editor_state.list_graphs()
    ]


@router.post("/graphs", status_code=201)
async def create_graph(body: CreateGraphBody) -> Dict[str, Any]:
    graph = editor_state.create_graph(body.name)
    return serialize_graph(graph)


@router.get("/graphs/{graph_id}")
async def get_graph(graph_id: str) -> Dict[str, Any]:
    return serialize_graph(_graph_or_404(graph_id))


@router.delete("/graphs/{graph_id}", status_code=204)
async def close_graph(graph_id: str) -> Response:
    editor_state.close_graph(graph_id)
    return Response(status_code=204)


# ── Snapshots (save / undo support) ───────────────────────────────────────────

@router.get("/graphs/{graph_id}/snapshot")
async def export_graph(graph_id: str) -> Dict[str, Any]:
    return _graph_or_404(graph_id).serialize()


@router.post("/graphs/snapshot", status_code=201)
async def import_graph(document: Dict[str, Any]) -> Dict[str, Any]:
    try:
        graph = editor_state.open_graph(document)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return serialize_graph(graph)


# ── Nodes ─────────────────────────────────────────────────────────────────────

class CreateNodeBody(BaseModel):
    type: str
    name: Optional[str] = None
    position: Optional[Dict[str, float]] = None
    state: Optional[Dict[str, Any]] = None


@router.post("/graphs/{graph_id}/nodes", status_code=201)
async def create_node(graph_id: str, body: CreateNodeBody) -> Dict[str, Any]:
    graph = _graph_or_404(graph_id)
    if not Node.is_registered(body.type):
        raise HTTPException(status_code=400, detail=f"Unknown node type '{body.type}'")

    node = Node.create_node(body.type, position=Rect.from_dict(body.position), name=body.name)
    if body.state:
        try:
            node.load_state(body.state)
        except (ValueError, KeyError, TypeError) as exc:
            raise HTTPException(status_code=400, detail=f"Invalid state: {exc}")
    graph.add_node(node, run_creation_hook=True)
    return serialize_node(graph, node)


@router.delete("/graphs/{graph_id}/nodes/{node_id}", status_code=204)
async def delete_node(graph_id: str, node_id: str) -> Response:
    _graph_or_404(graph_id).remove_node(node_id)
    return Response(status_code=204)


@router.get("/graphs/{graph_id}/nodes/{node_id}/compatible-ports")
async def compatible_ports(graph_id: str, node_id: str, field: str, identifier: Optional[str] = None) -> List[Dict[str, Any]]:
    graph = _graph_or_404(graph_id)
    ref = PortRef(node_id, field, identifier)
    if graph.resolve_port(ref) is None:
        raise HTTPException(status_code=404, detail="Port not found")
    return serialize_ports(graph.get_compatible_ports(ref))


# ── Edges ─────────────────────────────────────────────────────────────────────

class EdgeBody(BaseModel):
    sourceNodeId: str
    sourcePort: str
    sourceIdentifier: Optional[str] = None
    targetNodeId: str
    targetPort: str
    targetIdentifier: Optional[str] = None

    def refs(self):
        return (
            PortRef(self.sourceNodeId, self.sourcePort, self.sourceIdentifier),
            PortRef(self.targetNodeId, self.targetPort, self.targetIdentifier),
        )


@router.post("/graphs/{graph_id}/edges", status_code=201)
async def add_edge(graph_id: str, body: EdgeBody) -> Dict[str, Any]:
    graph = _graph_or_404(graph_id)
    output_ref, input_ref = body.refs()

    check = graph.check_connection(output_ref, input_ref)
    if not check:
        raise HTTPException(status_code=409, detail=check.reason)

    edge_id = graph.add_edge(output_ref, input_ref)
    if edge_id is None:
        raise HTTPException(status_code=409, detail="single-edge port already connected")
    return {"id": edge_id, "graph": serialize_graph(graph)}


@router.delete("/graphs/{graph_id}/edges/{edge_id}", status_code=204)
async def delete_edge(graph_id: str, edge_id: str) -> Response:
    _graph_or_404(graph_id).remove_edge(edge_id)
    return Response(status_code=204)


class RelayBody(EdgeBody):
    position: Optional[Dict[str, float]] = None


@router.post("/graphs/{graph_id}/relays", status_code=201)
async def insert_relay(graph_id: str, body: RelayBody) -> Dict[str, Any]:
    graph = _graph_or_404(graph_id)
    output_ref, input_ref = body.refs()
    relay = graph.insert_relay_node(output_ref, input_ref, Rect.from_dict(body.position))
    if relay is None:
        raise HTTPException(status_code=409, detail="Cannot route this connection through a relay")
    return serialize_node(graph, relay)


# ── Groups ────────────────────────────────────────────────────────────────────

class GroupBody(BaseModel):
    title: str = "New Group"
    nodeIds: List[str] = Field(default_factory=list)
    position: Optional[Dict[str, float]] = None
    color: Optional[str] = None


class GroupMembersBody(BaseModel):
    nodeIds: List[str]


@router.post("/graphs/{graph_id}/groups", status_code=201)
async def add_group(graph_id: str, body: GroupBody) -> Dict[str, Any]:
    graph = _graph_or_404(graph_id)
    group_id = graph.add_group(body.title, Rect.from_dict(body.position), body.nodeIds, body.color)
    return {"id": group_id, "nodeIds": list(graph.groups[group_id].inner_node_ids)}


@router.post("/graphs/{graph_id}/groups/{group_id}/nodes")
async def add_nodes_to_group(graph_id: str, group_id: str, body: GroupMembersBody) -> Dict[str, Any]:
    graph = _graph_or_404(graph_id)
    if graph.get_group(group_id) is None:
        raise HTTPException(status_code=404, detail="Group not found")
    added = graph.add_nodes_to_group(group_id, body.nodeIds)
    return {"added": added, "nodeIds": list(graph.groups[group_id].inner_node_ids)}


@router.delete("/graphs/{graph_id}/groups/{group_id}", status_code=204)
async def delete_group(graph_id: str, group_id: str) -> Response:
    _graph_or_404(graph_id).remove_group(group_id)
    return Response(status_code=204)


# ── Exposed parameters ────────────────────────────────────────────────────────

class ParameterBody(BaseModel):
    name: str
    valueType: str = "any"
    value: Any = None


class UpdateParameterBody(BaseModel):
    name: Optional[str] = None
    value: Any = None


@router.post("/graphs/{graph_id}/parameters", status_code=201)
async def add_parameter(graph_id: str, body: ParameterBody) -> Dict[str, Any]:
    graph = _graph_or_404(graph_id)
    parameter_id = graph.add_exposed_parameter(body.name, body.valueType, body.value)
    if parameter_id is None:
        raise HTTPException(status_code=409, detail=f"Parameter '{body.name}' rejected")
    return graph.get_exposed_parameter(parameter_id).to_dict()


@router.patch("/graphs/{graph_id}/parameters/{parameter_id}")
async def update_parameter(graph_id: str, parameter_id: str, body: UpdateParameterBody) -> Dict[str, Any]:
    graph = _graph_or_404(graph_id)
    if graph.get_exposed_parameter(parameter_id) is None:
        raise HTTPException(status_code=404, detail="Parameter not found")

    if body.name is not None and not graph.rename_exposed_parameter(parameter_id, body.name):
        raise HTTPException(status_code=409, detail=f"Name '{body.name}' is already in use")
    if "value" in body.model_fields_set:
        graph.set_exposed_parameter_value(parameter_id, body.value)
    return graph.get_exposed_parameter(parameter_id).to_dict()


@router.delete("/graphs/{graph_id}/parameters/{parameter_id}", status_code=204)
async def delete_parameter(graph_id: str, parameter_id: str) -> Response:
    _graph_or_404(graph_id).remove_exposed_parameter(parameter_id)
    return Response(status_code=204)


# ── Clipboard ─────────────────────────────────────────────────────────────────

class CopyBody(BaseModel):
    nodeIds: List[str] = Field(default_factory=list)
    groupIds: List[str] = Field(default_factory=list)
    edgeIds: List[str] = Field(default_factory=list)


class PasteBody(BaseModel):
    payload: str


@router.post("/graphs/{graph_id}/copy")
async def copy_selection(graph_id: str, body: CopyBody) -> Dict[str, Any]:
    graph = _graph_or_404(graph_id)
    payload = editor_state.clipboard.serialize(graph, body.nodeIds, body.groupIds, body.edgeIds)
    return {"payload": payload}


@router.post("/clipboard/can-paste")
async def can_paste(body: PasteBody) -> Dict[str, Any]:
    return {"canPaste": editor_state.clipboard.can_paste(body.payload)}


@router.post("/graphs/{graph_id}/paste")
async def paste(graph_id: str, body: PasteBody) -> Dict[str, Any]:
    graph = _graph_or_404(graph_id)
    result = editor_state.clipboard.paste(graph, body.payload)
    return serialize_paste_result(result)


# ── Compute order ─────────────────────────────────────────────────────────────

@router.get("/graphs/{graph_id}/compute-order")
async def compute_order(graph_id: str) -> Dict[str, Any]:
    result = _graph_or_404(graph_id).update_compute_order()
    return {"order": result.ordered_ids(), "cyclicNodeIds": list(result.cyclic_node_ids)}


# ── GET /node-types ───────────────────────────────────────────────────────────

@router.get("/node-types")
async def node_types() -> List[str]:
    return Node.registered_types()
