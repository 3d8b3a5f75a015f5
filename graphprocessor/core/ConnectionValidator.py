from dataclasses import dataclass, field
from typing import Iterable, NamedTuple, Optional

from logging import getLogger

from .NodePort import NodePort
from .Types import PortDirection, TypeCompatibility, types_are_connectable

logger = getLogger(__name__)


class ConnectionCheck(NamedTuple):
    accepted: bool
    reason: str = ""

    def __bool__(self):
        return self.accepted


ACCEPTED = ConnectionCheck(True)


@dataclass
class ConnectionPolicy:
    allow_self_loops: bool = False
    # replace the existing edge of a single-edge port instead of refusing the new one
    auto_disconnect: bool = True
    type_compatibility: TypeCompatibility = field(default=types_are_connectable)

    @classmethod
    def from_config(cls, config) -> 'ConnectionPolicy':
        return cls(allow_self_loops=config.allow_self_loops, auto_disconnect=config.auto_disconnect)


class ConnectionValidator:
    """
    Decides whether an edge may be created between an output port and an
    input port. Rules are applied in order and the first failing one wins:

      1. both ports on the same node (unless the policy allows self loops)
      2. directions: must be exactly one output followed by one input
      3. declared value types must be connectable
      4. the same (output, input) pair must not already be connected

    Multiplicity is not a rejection reason here, the graph resolves it by
    disconnecting (or refusing, per policy) before inserting.
    """

    def __init__(self, policy: Optional[ConnectionPolicy] = None):
        self.policy = policy if policy is not None else ConnectionPolicy()

    def check(self, output_port: NodePort, input_port: NodePort, existing_edges: Iterable = ()) -> ConnectionCheck:
        if output_port.node is input_port.node and not self.policy.allow_self_loops:
            return ConnectionCheck(False, "ports belong to the same node")

        if output_port.direction == input_port.direction:
            return ConnectionCheck(False, f"both ports are {output_port.direction.name.lower()} ports")

        if output_port.direction != PortDirection.OUTPUT:
            return ConnectionCheck(False, "first port must be the output port")

        if not self.policy.type_compatibility(output_port.value_type, input_port.value_type):
            return ConnectionCheck(
                False,
                f"type mismatch: cannot connect {output_port.value_type.value} to {input_port.value_type.value}",
            )

        out_ref, in_ref = output_port.ref, input_port.ref
        for edge in existing_edges:
            if edge.output_ref == out_ref and edge.input_ref == in_ref:
                return ConnectionCheck(False, "edge already exists")

        return ACCEPTED

    def can_connect(self, output_port: NodePort, input_port: NodePort, existing_edges: Iterable = ()) -> bool:
        return self.check(output_port, input_port, existing_edges).accepted
