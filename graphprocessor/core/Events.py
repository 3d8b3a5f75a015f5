"""
GraphEvents: synchronous fan-out of graph notifications to registered listeners.

Listeners are fire-and-forget: the graph never depends on them for its own
state, a graph with no listeners is perfectly valid, and a listener that
raises is logged and skipped so the remaining listeners still run.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, List

from logging import getLogger

from .EventTypes import EVENT_NAMES

logger = getLogger(__name__)

Listener = Callable[[Dict[str, Any]], None]


class GraphEvents:
    def __init__(self) -> None:
        self._listeners: Dict[str, List[Listener]] = {name: [] for name in EVENT_NAMES}

    # ------------------------------------------------------------------
    # Listener registration
    # ------------------------------------------------------------------

    def subscribe(self, event_name: str, callback: Listener) -> None:
        """Register a callback that receives every payload fired for *event_name*."""
        if event_name not in self._listeners:
            raise ValueError(f"Unknown graph event '{event_name}'")
        self._listeners[event_name].append(callback)

    def unsubscribe(self, event_name: str, callback: Listener) -> None:
        listeners = self._listeners.get(event_name, [])
        if callback in listeners:
            listeners.remove(callback)

    def listener_count(self, event_name: str) -> int:
        return len(self._listeners.get(event_name, []))

    # ------------------------------------------------------------------
    # Emit
    # ------------------------------------------------------------------

    def fire(self, event_name: str, payload: Dict[str, Any]) -> None:
        # copy so a listener may unsubscribe itself while being notified
        for cb in list(self._listeners.get(event_name, [])):
            try:
                cb(payload)
            except Exception:
                logger.exception("Listener for '%s' failed on %s", event_name, payload.get("type"))
