"""
Graph serializer: converts Graph / Node / NodePort objects into the JSON-safe
dicts the editor UI renders from.

This is the display shape, not the persisted one: snapshots for save/undo
go through ``Graph.serialize()``.
"""
from __future__ import annotations

from typing import Any, Dict, List

from graphprocessor.core.Clipboard import PasteResult
from graphprocessor.core.Graph import Graph
from graphprocessor.core.GraphPrimitives import Edge, Group
from graphprocessor.core.Node import Node
from graphprocessor.core.NodePort import NodePort

# ── Wire shapes (dicts, not TypedDicts, for easy JSON serialisation) ──────────
# SerializedPort keys: name, identifier, displayName, direction, valueType,
#                      acceptMultipleEdges, vertical, connected
# SerializedNode keys: id, name, type, position, computeOrder,
#                      createdFromDuplication, createdWithinGroup, state,
#                      inputs, outputs
# SerializedEdge keys: id, sourceNodeId, sourcePortName, sourcePortIdentifier,
#                      targetNodeId, targetPortName, targetPortIdentifier
# SerializedGraph keys: id, name, nodes, edges, groups, exposedParameters,
#                       cyclicNodeIds


def serialize_port(graph: Graph, port: NodePort) -> Dict[str, Any]:
    index = graph.incoming_edges if port.isInputPort() else graph.outgoing_edges
    return {
        "name": port.field_name,
        "identifier": port.identifier,
        "displayName": port.display_name,
        "direction": port.direction.name,
        "valueType": port.value_type.value.upper(),
        "acceptMultipleEdges": port.accept_multiple_edges,
        "vertical": port.vertical,
        "connected": bool(index.get(port.ref)),
    }


def serialize_node(graph: Graph, node: Node) -> Dict[str, Any]:
    return {
        "id": node.id,
        "name": node.name,
        "type": node.type,
        "position": node.position.to_dict(),
        "computeOrder": node.compute_order,
        "createdFromDuplication": node.created_from_duplication,
        "createdWithinGroup": node.created_within_group,
        "state": node.serialize_state(),
        "inputs": [serialize_port(graph, p) for p in node.inputs],
        "outputs": [serialize_port(graph, p) for p in node.outputs],
    }


def serialize_edge(edge: Edge) -> Dict[str, Any]:
    return {
        "id": edge.guid,
        "sourceNodeId": edge.output_node_id,
        "sourcePortName": edge.output_field,
        "sourcePortIdentifier": edge.output_identifier,
        "targetNodeId": edge.input_node_id,
        "targetPortName": edge.input_field,
        "targetPortIdentifier": edge.input_identifier,
    }


def serialize_group(group: Group) -> Dict[str, Any]:
    return {
        "id": group.guid,
        "title": group.title,
        "position": group.position.to_dict(),
        "color": group.color,
        "nodeIds": list(group.inner_node_ids),
    }


def serialize_graph(graph: Graph) -> Dict[str, Any]:
    return {
        "id": graph.id,
        "name": graph.name,
        "nodes": [serialize_node(graph, n) for n in graph.nodes.values()],
        "edges": [serialize_edge(e) for e in graph.edges.values()],
        "groups": [serialize_group(g) for g in graph.groups.values()],
        "exposedParameters": [
            {"id": p.guid, "name": p.name, "valueType": p.value_type.value.upper(), "value": p.value}
            for p in graph.exposed_parameters
        ],
        "cyclicNodeIds": list(graph.last_compute_order.cyclic_node_ids),
    }


def serialize_paste_result(result: PasteResult) -> Dict[str, Any]:
    return {
        "nodeIds": list(result.node_ids),
        "edgeIds": list(result.edge_ids),
        "groupIds": list(result.group_ids),
        "remap": dict(result.remap),
    }


def serialize_ports(ports: List[NodePort]) -> List[Dict[str, Any]]:
    return [
        {"nodeId": p.node_id, "name": p.field_name, "identifier": p.identifier, "direction": p.direction.name}
        for p in ports
    ]
