"""Observer registry for task change events.

Provides a simple callback registry that the orchestrator notifies after
each committed change. Delivery beyond the process (notifications, sockets)
is left to whoever registers a callback.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable

logger = logging.getLogger(__name__)

TASK_CREATED = "task_created"
TASK_DELETED = "task_deleted"
TASK_MOVED = "task_moved"
DEPENDENCY_ADDED = "dependency_added"
DEPENDENCY_REMOVED = "dependency_removed"
OCCURRENCE_SPAWNED = "occurrence_spawned"

EventCallback = Callable[[dict[str, Any]], None]

# Module-level callback registry
_callbacks: list[EventCallback] = []


def register_callback(callback: EventCallback) -> bool:
    """Register a callback to be invoked on every change event.

    Args:
        callback: A callable that accepts a dict with at least the keys
            ``event``, ``task_id`` and ``timestamp``.

    Returns:
        True on success.
    """
    _callbacks.append(callback)
    return True


def unregister_callback(callback: EventCallback) -> bool:
    """Unregister a previously registered callback.

    Returns:
        True if the callback was found and removed, False otherwise.
    """
    try:
        _callbacks.remove(callback)
        return True
    except ValueError:
        return False


def clear_callbacks() -> None:
    _callbacks.clear()


def build_event(event: str, task_id: str, **payload: Any) -> dict[str, Any]:
    """Assemble an event dict stamped with the current UTC time."""
    return {
        "event": event,
        "task_id": task_id,
        **payload,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def dispatch_event(event: dict[str, Any]) -> None:
    """Dispatch a change event to all registered callbacks.

    Invokes each callback in registration order. If a callback raises an
    exception, the exception is logged and remaining callbacks continue
    to execute.
    """
    # Iterate over a copy to handle callbacks that modify the list during dispatch
    for callback in _callbacks[:]:
        try:
            callback(event)
        except Exception as e:
            logger.error(
                "Callback %s raised exception for %s: %s",
                callback,
                event.get("event"),
                e,
                exc_info=True,
            )
