"""
Graph container
===============
Owns every node, edge, group and exposed parameter of one editable graph
document. Collaborators only ever hold identifiers; every lookup goes through
the dicts below and may legitimately miss.

Edges are kept in one arena (``edges``) plus two adjacency indexes keyed by
the port address on either end, so multiplicity checks and cascade removal
never scan the whole edge list.

Each public mutation validates first, applies the change, prunes edges that
no longer resolve, recomputes the compute order and only then notifies
listeners. Removing something that is already gone is a no-op.
"""
from __future__ import annotations

import json
import uuid
from collections import defaultdict, deque
from typing import Any, Deque, Dict, Iterable, List, NamedTuple, Optional

from logging import getLogger

from . import EventTypes
from .ComputeOrder import ComputeOrderEngine, ComputeOrderResult
from .ConnectionValidator import ConnectionCheck, ConnectionPolicy, ConnectionValidator
from .Events import GraphEvents, Listener
from .ExposedParameters import ExposedParameter, ExposedParameterRegistry
from .GraphPrimitives import Edge, Group
from .Identity import IdentityRegistry
from .Node import Node
from .NodePort import NodePort, PortRef
from .Schema import (
    GraphDocument,
    SerializedEdge,
    SerializedGroup,
    SerializedNode,
    SerializedParameter,
    parse_entry,
)
from .Types import PortDirection, Rect, ValueType

logger = getLogger(__name__)

# most recent hook failures kept per graph
MAX_HOOK_FAILURES = 100


class HookFailure(NamedTuple):
    node_id: Optional[str]
    hook: str
    error: str


class Graph:

    def __init__(self, name: str = "Graph", policy: Optional[ConnectionPolicy] = None, guid: Optional[str] = None):
        self.id = guid or uuid.uuid4().hex
        self.name = name

        self.identities = IdentityRegistry()
        self.events = GraphEvents()
        self.validator = ConnectionValidator(policy if policy is not None else ConnectionPolicy())
        self.engine = ComputeOrderEngine()

        # insertion order of ``nodes`` is the tie-break order of the compute order engine
        self.nodes: Dict[str, Node] = {}
        self.edges: Dict[str, Edge] = {}
        self.groups: Dict[str, Group] = {}
        self.exposed_parameters = ExposedParameterRegistry(self.identities, self.events)

        self.incoming_edges: Dict[PortRef, List[Edge]] = defaultdict(list)
        self.outgoing_edges: Dict[PortRef, List[Edge]] = defaultdict(list)

        self.last_compute_order = ComputeOrderResult()
        self.hook_failures: Deque[HookFailure] = deque(maxlen=MAX_HOOK_FAILURES)

    # ------------------------------------------------------------------
    # Listeners and lookups
    # ------------------------------------------------------------------

    def subscribe(self, event_name: str, callback: Listener) -> None:
        self.events.subscribe(event_name, callback)

    def get_node(self, node_id: str) -> Optional[Node]:
        return self.nodes.get(node_id)

    def get_edge(self, edge_id: str) -> Optional[Edge]:
        return self.edges.get(edge_id)

    def get_group(self, group_id: str) -> Optional[Group]:
        return self.groups.get(group_id)

    def resolve_port(self, ref: PortRef) -> Optional[NodePort]:
        node = self.nodes.get(ref.node_id)
        if node is None:
            return None
        return node.get_port(ref.field_name, ref.identifier)

    def get_incoming_edges(self, ref: PortRef) -> List[Edge]:
        return list(self.incoming_edges.get(ref, []))

    def get_outgoing_edges(self, ref: PortRef) -> List[Edge]:
        return list(self.outgoing_edges.get(ref, []))

    def get_node_edges(self, node_id: str) -> List[Edge]:
        return [edge for edge in self.edges.values() if edge.touches(node_id)]

    def group_of(self, node_id: str) -> Optional[Group]:
        for group in self.groups.values():
            if group.contains(node_id):
                return group
        return None

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    def add_node(self, node: Node, run_creation_hook: bool = False) -> str:
        """
        Insert a constructed node. Its id is kept if this graph never issued
        it before, otherwise a fresh one is minted.
        """
        if node.graph is not None:
            raise ValueError(f"Node '{node.name}' already belongs to a graph")

        if node.id is None or not self.identities.reserve(node.id):
            node.id = self.identities.mint()

        node.graph = self
        if run_creation_hook:
            self._run_hook(node, "on_node_created")

        self.nodes[node.id] = node
        self._commit([{"type": "NODE_ADDED", "nodeId": node.id}])
        return node.id

    def create_node(self, type_name: str, position: Optional[Rect] = None, **kwargs) -> Node:
        node = Node.create_node(type_name, position=position, **kwargs)
        self.add_node(node, run_creation_hook=True)
        return node

    def remove_node(self, node_id: str) -> None:
        node = self.nodes.get(node_id)
        if node is None:
            return

        self._run_hook(node, "on_removed")

        events = [self._detach_edge(edge) for edge in self.get_node_edges(node_id)]
        for group in self.groups.values():
            if group.contains(node_id):
                group.inner_node_ids.remove(node_id)

        del self.nodes[node_id]
        node.graph = None
        events.append({"type": "NODE_REMOVED", "nodeId": node_id})
        self._commit(events)

    def _run_hook(self, node: Node, hook: str, *args) -> None:
        # a faulty node kind must never take the rest of a batch down with it
        try:
            getattr(node, hook)(*args)
        except Exception as exc:
            logger.exception("Node %s (%s) failed in %s", node.id, node.type, hook)
            self.hook_failures.append(HookFailure(node.id, hook, repr(exc)))

    # ------------------------------------------------------------------
    # Edges
    # ------------------------------------------------------------------

    def check_connection(self, output_ref: PortRef, input_ref: PortRef) -> ConnectionCheck:
        output_port = self.resolve_port(output_ref)
        input_port = self.resolve_port(input_ref)
        if output_port is None or input_port is None:
            return ConnectionCheck(False, "unknown port")
        return self.validator.check(output_port, input_port, self.outgoing_edges.get(output_port.ref, ()))

    def add_edge(self, output_ref: PortRef, input_ref: PortRef, auto_disconnect: Optional[bool] = None) -> Optional[str]:
        """
        Connect an output port to an input port. Returns the new edge id, or
        None when the connection is rejected (nothing is changed then).

        Single-edge ports already holding an edge are disconnected before the
        new edge is inserted, unless ``auto_disconnect`` is off in which case
        the new edge is refused.
        """
        check = self.check_connection(output_ref, input_ref)
        if not check:
            logger.debug("Rejected edge %s -> %s: %s", output_ref, input_ref, check.reason)
            return None

        output_port = self.resolve_port(output_ref)
        input_port = self.resolve_port(input_ref)

        conflicts: List[Edge] = []
        if not input_port.accept_multiple_edges:
            conflicts.extend(self.incoming_edges.get(input_port.ref, ()))
        if not output_port.accept_multiple_edges:
            conflicts.extend(e for e in self.outgoing_edges.get(output_port.ref, ()) if e not in conflicts)

        if auto_disconnect is None:
            auto_disconnect = self.validator.policy.auto_disconnect
        if conflicts and not auto_disconnect:
            logger.debug("Rejected edge %s -> %s: single-edge port already connected", output_ref, input_ref)
            return None

        events = [self._detach_edge(edge) for edge in conflicts]
        edge = Edge.between(self.identities.mint(), output_port.ref, input_port.ref)
        events.append(self._attach_edge(edge))
        self._commit(events)
        return edge.guid

    def connect(self,
                output_node_id: str,
                output_field: str,
                input_node_id: str,
                input_field: str,
                output_identifier: Optional[str] = None,
                input_identifier: Optional[str] = None) -> Optional[str]:
        return self.add_edge(
            PortRef(output_node_id, output_field, output_identifier),
            PortRef(input_node_id, input_field, input_identifier),
        )

    def remove_edge(self, edge_id: str) -> None:
        edge = self.edges.get(edge_id)
        if edge is None:
            return
        self._commit([self._detach_edge(edge)])

    def prune_dangling_edges(self) -> List[str]:
        """Drop edges whose endpoints no longer resolve, e.g. after a node changed its slot ports."""
        events = self._collect_dangling()
        if events:
            self._commit(events)
        return [event["edgeId"] for event in events]

    def _attach_edge(self, edge: Edge) -> Dict[str, Any]:
        self.edges[edge.guid] = edge
        self.outgoing_edges[edge.output_ref].append(edge)
        self.incoming_edges[edge.input_ref].append(edge)
        return self._edge_event("EDGE_ADDED", edge)

    def _detach_edge(self, edge: Edge) -> Dict[str, Any]:
        del self.edges[edge.guid]
        for index, ref in ((self.outgoing_edges, edge.output_ref), (self.incoming_edges, edge.input_ref)):
            bucket = index.get(ref)
            if bucket is None:
                continue
            if edge in bucket:
                bucket.remove(edge)
            if not bucket:
                del index[ref]
        return self._edge_event("EDGE_REMOVED", edge)

    @staticmethod
    def _edge_event(kind: str, edge: Edge) -> Dict[str, Any]:
        return {
            "type": kind,
            "edgeId": edge.guid,
            "outputNodeId": edge.output_node_id,
            "inputNodeId": edge.input_node_id,
        }

    def _edge_resolves(self, edge: Edge) -> bool:
        output_port = self.resolve_port(edge.output_ref)
        input_port = self.resolve_port(edge.input_ref)
        return (
            output_port is not None and output_port.isOutputPort()
            and input_port is not None and input_port.isInputPort()
        )

    def _collect_dangling(self) -> List[Dict[str, Any]]:
        events = []
        for edge in list(self.edges.values()):
            if not self._edge_resolves(edge):
                logger.warning("Pruning dangling edge %s", edge)
                events.append(self._detach_edge(edge))
        return events

    # ------------------------------------------------------------------
    # Groups
    # ------------------------------------------------------------------

    def add_group(self,
                  title: str = "New Group",
                  position: Optional[Rect] = None,
                  node_ids: Iterable[str] = (),
                  color: Optional[str] = None) -> str:
        group = Group(self.identities.mint(), title, position if position is not None else Rect(), color)
        self.groups[group.guid] = group
        self._claim_members(group, node_ids)
        self._commit([{"type": "GROUP_ADDED", "groupId": group.guid}], topology_changed=False)
        return group.guid

    def add_nodes_to_group(self, group_id: str, node_ids: Iterable[str]) -> List[str]:
        """Add nodes to a group. Nodes already owned by a group are left where they are."""
        group = self.groups.get(group_id)
        if group is None:
            return []
        return self._claim_members(group, node_ids)

    def remove_nodes_from_group(self, group_id: str, node_ids: Iterable[str]) -> None:
        group = self.groups.get(group_id)
        if group is None:
            return
        removed = set(node_ids)
        group.inner_node_ids = [n for n in group.inner_node_ids if n not in removed]

    def remove_group(self, group_id: str) -> None:
        if self.groups.pop(group_id, None) is None:
            return
        self._commit([{"type": "GROUP_REMOVED", "groupId": group_id}], topology_changed=False)

    def _claim_members(self, group: Group, node_ids: Iterable[str]) -> List[str]:
        added = []
        for node_id in node_ids:
            if node_id not in self.nodes or group.contains(node_id):
                continue
            if self.group_of(node_id) is not None:
                logger.debug("Node %s already belongs to a group, not adding it to %s", node_id, group.guid)
                continue
            group.inner_node_ids.append(node_id)
            added.append(node_id)
        return added

    # ------------------------------------------------------------------
    # Exposed parameters
    # ------------------------------------------------------------------

    def add_exposed_parameter(self, name: str, value_type: ValueType = ValueType.ANY, value: Any = None) -> Optional[str]:
        return self.exposed_parameters.add(name, value_type, value)

    def remove_exposed_parameter(self, parameter_id: str) -> None:
        if self.exposed_parameters.get(parameter_id) is None:
            return
        self.exposed_parameters.remove(parameter_id)
        for node in list(self.nodes.values()):
            self._run_hook(node, "on_exposed_parameter_removed", parameter_id)

    def rename_exposed_parameter(self, parameter_id: str, new_name: str) -> bool:
        return self.exposed_parameters.rename(parameter_id, new_name)

    def set_exposed_parameter_value(self, parameter_id: str, value: Any) -> bool:
        return self.exposed_parameters.set_value(parameter_id, value)

    def get_exposed_parameter(self, parameter_id: str) -> Optional[ExposedParameter]:
        return self.exposed_parameters.get(parameter_id)

    # ------------------------------------------------------------------
    # Compute order
    # ------------------------------------------------------------------

    def update_compute_order(self) -> ComputeOrderResult:
        insertion_index = {node_id: index for index, node_id in enumerate(self.nodes)}
        result = self.engine.compute(insertion_index, self.edges.values())
        for node_id, node in self.nodes.items():
            node.compute_order = result.order[node_id]
        self.last_compute_order = result

        self.events.fire(EventTypes.COMPUTE_ORDER_UPDATED, {
            "type": "COMPUTE_ORDER_UPDATED",
            "order": result.ordered_ids(),
            "cyclicNodeIds": list(result.cyclic_node_ids),
        })
        return result

    def _commit(self, events: List[Dict[str, Any]], topology_changed: bool = True) -> None:
        if topology_changed:
            events.extend(self._collect_dangling())
            self.update_compute_order()
        for payload in events:
            self.events.fire(EventTypes.GRAPH_CHANGED, payload)

    # ------------------------------------------------------------------
    # Editing helpers
    # ------------------------------------------------------------------

    def get_compatible_ports(self, ref: PortRef) -> List[NodePort]:
        """Every port a drag started from ``ref`` could be dropped on."""
        start = self.resolve_port(ref)
        if start is None:
            return []

        compatible = []
        wanted = PortDirection.INPUT if start.isOutputPort() else PortDirection.OUTPUT
        for node in self.nodes.values():
            for port in node.get_ports(wanted):
                output_port, input_port = (start, port) if start.isOutputPort() else (port, start)
                existing = self.outgoing_edges.get(output_port.ref, ())
                if self.validator.can_connect(output_port, input_port, existing):
                    compatible.append(port)
        return compatible

    def insert_relay_node(self, output_ref: PortRef, input_ref: PortRef, position: Optional[Rect] = None) -> Optional[Node]:
        """
        Route a connection through a new ``Relay`` node. An existing direct
        edge between the two ports is replaced.
        """
        output_port = self.resolve_port(output_ref)
        input_port = self.resolve_port(input_ref)
        if output_port is None or input_port is None:
            return None
        if output_port.direction == input_port.direction or not output_port.isOutputPort():
            return None

        direct = [e for e in self.outgoing_edges.get(output_port.ref, ()) if e.input_ref == input_port.ref]

        relay = self.create_node("Relay", position=position)
        relay_in = relay.port_ref("input")
        relay_out = relay.port_ref("output")

        if self.check_connection(output_port.ref, relay_in) and self.check_connection(relay_out, input_port.ref):
            for edge in direct:
                self.remove_edge(edge.guid)
            if self.add_edge(output_port.ref, relay_in) and self.add_edge(relay_out, input_port.ref):
                return relay
            self.remove_node(relay.id)
            for edge in direct:
                self.add_edge(edge.output_ref, edge.input_ref)
        else:
            self.remove_node(relay.id)

        logger.debug("Cannot route %s -> %s through a relay", output_ref, input_ref)
        return None

    # ------------------------------------------------------------------
    # Snapshot / restore
    # ------------------------------------------------------------------

    def serialize(self) -> Dict[str, Any]:
        return {
            "guid": self.id,
            "name": self.name,
            "nodes": [node.to_dict() for node in self.nodes.values()],
            "edges": [edge.to_dict() for edge in self.edges.values()],
            "groups": [group.to_dict() for group in self.groups.values()],
            "exposed_parameters": self.exposed_parameters.to_list(),
        }

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.serialize(), indent=indent)

    @classmethod
    def from_json(cls, text: str, policy: Optional[ConnectionPolicy] = None) -> 'Graph':
        return cls.deserialize(json.loads(text), policy)

    @classmethod
    def deserialize(cls, data: Dict[str, Any], policy: Optional[ConnectionPolicy] = None) -> 'Graph':
        """
        Rebuild a graph from a snapshot. Anything that doesn't hold together
        (unknown node kinds, reused ids, edges to missing ports, extra edges
        on single-edge ports, missing group members) is dropped with a
        warning so a partially broken document still opens.
        """
        document = GraphDocument.model_validate(data)
        graph = cls(document.name, policy, document.guid)

        for raw in document.nodes:
            entry = parse_entry(SerializedNode, raw)
            if entry is not None:
                graph._load_node(entry)

        for raw in document.edges:
            entry = parse_entry(SerializedEdge, raw)
            if entry is not None:
                graph._load_edge(entry)

        for raw in document.groups:
            entry = parse_entry(SerializedGroup, raw)
            if entry is not None:
                graph._load_group(entry)

        for raw in document.exposed_parameters:
            entry = parse_entry(SerializedParameter, raw)
            if entry is not None and graph.exposed_parameters.add(entry.name, entry.value_type, entry.value, entry.guid) is None:
                logger.warning("Dropping exposed parameter '%s' on load", entry.name)

        graph.update_compute_order()
        return graph

    def _load_node(self, entry: SerializedNode) -> None:
        if not self.identities.reserve(entry.guid):
            logger.warning("Dropping node %s on load: id already in use", entry.guid)
            return
        try:
            node = Node.from_dict(entry.model_dump())
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning("Dropping node %s (%s) on load: %s", entry.guid, entry.type, exc)
            return
        node.id = entry.guid
        node.graph = self
        self.nodes[node.id] = node

    def _load_edge(self, entry: SerializedEdge) -> None:
        output_ref = PortRef(entry.output_node_id, entry.output_field, entry.output_identifier)
        input_ref = PortRef(entry.input_node_id, entry.input_field, entry.input_identifier)

        check = self.check_connection(output_ref, input_ref)
        if not check:
            logger.warning("Dropping edge %s on load: %s", entry.guid, check.reason)
            return

        output_port = self.resolve_port(output_ref)
        input_port = self.resolve_port(input_ref)
        if not input_port.accept_multiple_edges and self.incoming_edges.get(input_port.ref):
            logger.warning("Dropping edge %s on load: input %s already connected", entry.guid, input_ref)
            return
        if not output_port.accept_multiple_edges and self.outgoing_edges.get(output_port.ref):
            logger.warning("Dropping edge %s on load: output %s already connected", entry.guid, output_ref)
            return

        guid = entry.guid if entry.guid and self.identities.reserve(entry.guid) else self.identities.mint()
        self._attach_edge(Edge.between(guid, output_port.ref, input_port.ref))

    def _load_group(self, entry: SerializedGroup) -> None:
        guid = entry.guid if entry.guid and self.identities.reserve(entry.guid) else self.identities.mint()
        group = Group(guid, entry.title, entry.position.to_rect(), entry.color)
        self.groups[guid] = group

        missing = [n for n in entry.inner_node_ids if n not in self.nodes]
        if missing:
            logger.warning("Group %s references missing nodes %s", guid, missing)
        self._claim_members(group, entry.inner_node_ids)

    def __repr__(self):
        return f"Graph({self.name}, nodes={len(self.nodes)}, edges={len(self.edges)})"
