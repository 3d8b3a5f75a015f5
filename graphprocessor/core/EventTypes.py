"""
Notification payloads sent to graph listeners.
All events are plain dicts so they can be forwarded to the editor without conversion.
"""
from typing import List, Literal, TypedDict, Union

GRAPH_CHANGED = "graph_changed"
COMPUTE_ORDER_UPDATED = "compute_order_updated"
EXPOSED_PARAMETER_LIST_CHANGED = "exposed_parameter_list_changed"
EXPOSED_PARAMETER_MODIFIED = "exposed_parameter_modified"
NODE_DUPLICATED = "node_duplicated"

EVENT_NAMES = (
    GRAPH_CHANGED,
    COMPUTE_ORDER_UPDATED,
    EXPOSED_PARAMETER_LIST_CHANGED,
    EXPOSED_PARAMETER_MODIFIED,
    NODE_DUPLICATED,
)


class NodeAddedEvent(TypedDict):
    type: Literal["NODE_ADDED"]
    nodeId: str


class NodeRemovedEvent(TypedDict):
    type: Literal["NODE_REMOVED"]
    nodeId: str


class EdgeAddedEvent(TypedDict):
    type: Literal["EDGE_ADDED"]
    edgeId: str
    outputNodeId: str
    inputNodeId: str


class EdgeRemovedEvent(TypedDict):
    type: Literal["EDGE_REMOVED"]
    edgeId: str
    outputNodeId: str
    inputNodeId: str


class GroupAddedEvent(TypedDict):
    type: Literal["GROUP_ADDED"]
    groupId: str


class GroupRemovedEvent(TypedDict):
    type: Literal["GROUP_REMOVED"]
    groupId: str


class ComputeOrderUpdatedEvent(TypedDict):
    type: Literal["COMPUTE_ORDER_UPDATED"]
    order: List[str]
    cyclicNodeIds: List[str]


class ParameterListChangedEvent(TypedDict):
    type: Literal["PARAMETER_LIST_CHANGED"]
    parameterIds: List[str]


class ParameterModifiedEvent(TypedDict):
    type: Literal["PARAMETER_MODIFIED"]
    parameterId: str


class NodeDuplicatedEvent(TypedDict):
    type: Literal["NODE_DUPLICATED"]
    sourceNodeId: str
    newNodeId: str


GraphChangeEvent = Union[
    NodeAddedEvent,
    NodeRemovedEvent,
    EdgeAddedEvent,
    EdgeRemovedEvent,
    GroupAddedEvent,
    GroupRemovedEvent,
]
