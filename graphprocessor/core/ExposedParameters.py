from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from logging import getLogger

from . import EventTypes
from .Events import GraphEvents
from .Identity import IdentityRegistry
from .Types import ValueType

logger = getLogger(__name__)


@dataclass
class ExposedParameter:
    guid: str
    name: str
    value_type: ValueType = ValueType.ANY
    value: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "guid": self.guid,
            "name": self.name,
            "value_type": self.value_type.value,
            "value": self.value,
        }


class ExposedParameterRegistry:
    """
    Graph-level named variables. Names are unique inside one graph. List
    changes (add/remove) and per-parameter modifications (rename/value) are
    notified separately from structural graph changes so name bindings in the
    editor can refresh on their own.
    """

    def __init__(self, identities: IdentityRegistry, events: GraphEvents):
        self._identities = identities
        self._events = events
        self._parameters: Dict[str, ExposedParameter] = {}

    def __len__(self):
        return len(self._parameters)

    def __iter__(self):
        return iter(list(self._parameters.values()))

    def get(self, parameter_id: str) -> Optional[ExposedParameter]:
        return self._parameters.get(parameter_id)

    def get_by_name(self, name: str) -> Optional[ExposedParameter]:
        for param in self._parameters.values():
            if param.name == name:
                return param
        return None

    def ids(self) -> List[str]:
        return list(self._parameters.keys())

    def add(self, name: str, value_type: ValueType = ValueType.ANY, value: Any = None, guid: Optional[str] = None) -> Optional[str]:
        if not name or self.get_by_name(name) is not None:
            logger.debug("Rejected exposed parameter name '%s'", name)
            return None
        try:
            value_type = ValueType.parse(value_type)
        except KeyError:
            logger.debug("Rejected exposed parameter type '%s'", value_type)
            return None

        if guid is None:
            guid = self._identities.mint()
        elif not self._identities.reserve(guid):
            logger.warning("Exposed parameter id %s already in use, minting a new one", guid)
            guid = self._identities.mint()

        self._parameters[guid] = ExposedParameter(guid, name, value_type, value)
        self._notify_list_changed()
        return guid

    def rename(self, parameter_id: str, new_name: str) -> bool:
        param = self._parameters.get(parameter_id)
        if param is None or not new_name:
            return False
        if param.name == new_name:
            return True

        if self.get_by_name(new_name) is not None:
            logger.debug("Cannot rename parameter '%s' to '%s': name in use", param.name, new_name)
            return False

        param.name = new_name
        self._notify_modified(parameter_id)
        return True

    def set_value(self, parameter_id: str, value: Any) -> bool:
        param = self._parameters.get(parameter_id)
        if param is None:
            return False
        param.value = value
        self._notify_modified(parameter_id)
        return True

    def remove(self, parameter_id: str) -> None:
        if self._parameters.pop(parameter_id, None) is None:
            return
        self._notify_list_changed()

    def to_list(self) -> List[Dict[str, Any]]:
        return [param.to_dict() for param in self._parameters.values()]

    def _notify_list_changed(self):
        self._events.fire(
            EventTypes.EXPOSED_PARAMETER_LIST_CHANGED,
            {"type": "PARAMETER_LIST_CHANGED", "parameterIds": self.ids()},
        )

    def _notify_modified(self, parameter_id: str):
        self._events.fire(
            EventTypes.EXPOSED_PARAMETER_MODIFIED,
            {"type": "PARAMETER_MODIFIED", "parameterId": parameter_id},
        )
