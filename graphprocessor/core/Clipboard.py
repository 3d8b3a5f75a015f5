"""
Clipboard / duplication codec
=============================
Copy turns a selection into a JSON payload (see ``Schema.py`` for the wire
shape). Identifiers are written as they are; paste never reuses them.

Paste rebuilds every node under a fresh id and keeps a source -> new id
remap table for the batch, so edges and groups inside the selection come
back wired to the copies. An edge that leaves the selection is reconnected
to the original node only when that node is live in the target graph and
its port takes more than one edge; otherwise the edge is dropped.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Union

from logging import getLogger

from ..config import EditorConfig
from . import EventTypes
from .Graph import Graph
from .Node import Node
from .NodePort import PortRef
from .Schema import (
    CLIPBOARD_VERSION,
    ClipboardPayload,
    SerializedEdge,
    SerializedGroup,
    SerializedNode,
    parse_entry,
)

logger = getLogger(__name__)


@dataclass
class PasteResult:
    node_ids: List[str] = field(default_factory=list)
    edge_ids: List[str] = field(default_factory=list)
    group_ids: List[str] = field(default_factory=list)
    # source node id -> pasted node id
    remap: Dict[str, str] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not (self.node_ids or self.edge_ids or self.group_ids)


class ClipboardCodec:

    def __init__(self, config: Optional[EditorConfig] = None):
        if config is None:
            config = EditorConfig()
        self.offset_x = config.paste_offset_x
        self.offset_y = config.paste_offset_y

        # remap table of the last paste, used to place group members
        # that were pasted in an earlier batch
        self._previous_remap: Dict[str, str] = {}

    # ------------------------------------------------------------------
    # Copy
    # ------------------------------------------------------------------

    def serialize(self, graph: Graph, node_ids: Iterable[str], group_ids: Iterable[str] = (), edge_ids: Iterable[str] = ()) -> str:
        selected = [node_id for node_id in dict.fromkeys(node_ids) if node_id in graph.nodes]
        selected_set = set(selected)

        wanted_edges = {edge_id for edge_id in edge_ids if edge_id in graph.edges}
        for edge in graph.edges.values():
            if edge.output_node_id in selected_set and edge.input_node_id in selected_set:
                wanted_edges.add(edge.guid)

        # vertical ports carry stack wiring, keep it even when the other side isn't selected
        for node_id in selected:
            for port in graph.nodes[node_id].all_ports():
                if not port.vertical:
                    continue
                for edge in graph.get_incoming_edges(port.ref) + graph.get_outgoing_edges(port.ref):
                    wanted_edges.add(edge.guid)

        groups = [graph.groups[group_id] for group_id in dict.fromkeys(group_ids) if group_id in graph.groups]

        payload = ClipboardPayload(
            version=CLIPBOARD_VERSION,
            copied_nodes=[graph.nodes[node_id].to_dict() for node_id in selected],
            copied_edges=[edge.to_dict() for edge in graph.edges.values() if edge.guid in wanted_edges],
            copied_groups=[group.to_dict() for group in groups],
        )
        return payload.model_dump_json()

    # ------------------------------------------------------------------
    # Paste
    # ------------------------------------------------------------------

    @staticmethod
    def _load(payload: Union[str, bytes]) -> Optional[ClipboardPayload]:
        try:
            return ClipboardPayload.model_validate_json(payload)
        except (ValueError, TypeError):
            return None

    def can_paste(self, payload: Union[str, bytes]) -> bool:
        return self._load(payload) is not None

    def paste(self, graph: Graph, payload: Union[str, bytes]) -> PasteResult:
        data = self._load(payload)
        if data is None:
            logger.debug("Clipboard content is not a graph selection, nothing pasted")
            return PasteResult()
        if data.version > CLIPBOARD_VERSION:
            logger.debug("Clipboard payload version %s is newer, reading known fields only", data.version)

        nodes = [e for e in (parse_entry(SerializedNode, raw) for raw in data.copied_nodes) if e is not None]
        groups = [e for e in (parse_entry(SerializedGroup, raw) for raw in data.copied_groups) if e is not None]
        edges = [e for e in (parse_entry(SerializedEdge, raw) for raw in data.copied_edges) if e is not None]

        result = PasteResult()
        grouped_sources = {node_id for group in groups for node_id in group.inner_node_ids}

        for entry in nodes:
            self._paste_node(graph, entry, entry.guid in grouped_sources, result)

        for entry in groups:
            self._paste_group(graph, entry, result)

        for entry in edges:
            self._paste_edge(graph, entry, result)

        if result.remap:
            self._previous_remap = dict(result.remap)
        return result

    def duplicate(self, graph: Graph, node_ids: Iterable[str], group_ids: Iterable[str] = ()) -> PasteResult:
        return self.paste(graph, self.serialize(graph, node_ids, group_ids))

    def _paste_node(self, graph: Graph, entry: SerializedNode, within_group: bool, result: PasteResult) -> None:
        try:
            node = Node.from_dict(entry.model_dump())
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning("Skipping pasted node %s (%s): %s", entry.guid, entry.type, exc)
            return

        node.created_from_duplication = True
        node.created_within_group = within_group
        node.position = node.position.offset(self.offset_x, self.offset_y)

        source_in_graph = entry.guid in graph.nodes
        new_id = graph.add_node(node, run_creation_hook=True)
        result.remap[entry.guid] = new_id
        result.node_ids.append(new_id)

        if source_in_graph:
            graph.events.fire(EventTypes.NODE_DUPLICATED, {
                "type": "NODE_DUPLICATED",
                "sourceNodeId": entry.guid,
                "newNodeId": new_id,
            })

    def _paste_group(self, graph: Graph, entry: SerializedGroup, result: PasteResult) -> None:
        members = []
        for source_id in entry.inner_node_ids:
            new_id = result.remap.get(source_id) or self._previous_remap.get(source_id)
            if new_id is None or new_id not in graph.nodes:
                logger.debug("Group '%s' member %s was not pasted, dropping it", entry.title, source_id)
                continue
            members.append(new_id)

        position = entry.position.to_rect().offset(self.offset_x, self.offset_y)
        result.group_ids.append(graph.add_group(entry.title, position, members, entry.color))

    def _paste_edge(self, graph: Graph, entry: SerializedEdge, result: PasteResult) -> None:
        new_output = result.remap.get(entry.output_node_id)
        new_input = result.remap.get(entry.input_node_id)
        if new_output is None and new_input is None:
            return

        output_ref = PortRef(new_output or entry.output_node_id, entry.output_field, entry.output_identifier)
        input_ref = PortRef(new_input or entry.input_node_id, entry.input_field, entry.input_identifier)

        output_port = graph.resolve_port(output_ref)
        input_port = graph.resolve_port(input_ref)
        if output_port is None or input_port is None:
            logger.debug("Dropping pasted edge %s: endpoint not in target graph", entry.guid)
            return

        # never steal the connection of a single-edge port outside the pasted set
        if new_input is None and not input_port.accept_multiple_edges:
            return
        if new_output is None and not output_port.accept_multiple_edges:
            return

        edge_id = graph.add_edge(output_ref, input_ref)
        if edge_id is not None:
            result.edge_ids.append(edge_id)
