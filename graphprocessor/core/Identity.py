import uuid
from typing import Set

from logging import getLogger
logger = getLogger(__name__)


class IdentityRegistry:
    """
    Issues graph-scoped GUIDs for nodes, edges, groups and exposed parameters.

    Identifiers are never released: once a GUID has been seen by a graph it
    can't be issued again for the lifetime of that graph, even after the
    element holding it has been removed.
    """

    def __init__(self):
        self._issued: Set[str] = set()

    def mint(self) -> str:
        guid = uuid.uuid4().hex
        while guid in self._issued:
            guid = uuid.uuid4().hex
        self._issued.add(guid)
        return guid

    def reserve(self, guid: str) -> bool:
        """Claim an identifier coming from persisted state. False if it was already issued."""
        if not guid or guid in self._issued:
            return False
        self._issued.add(guid)
        return True

    def is_issued(self, guid: str) -> bool:
        return guid in self._issued

    def __len__(self) -> int:
        return len(self._issued)
