"""
Board notifications: lets a UI collaborator react to board changes.

The kanban engine emits one event per successful mutation:
  task_created  (task)
  task_moved    (task, from_status)
  task_updated  (task)
  task_removed  (task_id, result)
"""
import logging
from typing import Callable, Dict, List

logger = logging.getLogger(__name__)

TASK_CREATED = "task_created"
TASK_MOVED = "task_moved"
TASK_UPDATED = "task_updated"
TASK_REMOVED = "task_removed"

EVENT_TYPES = (TASK_CREATED, TASK_MOVED, TASK_UPDATED, TASK_REMOVED)


class BoardEvents:
    """Routes board changes to subscribed callbacks."""

    def __init__(self):
        self.subscribers: Dict[str, List[Callable]] = {}  # event_type -> callbacks

    def subscribe(self, event_type: str, callback: Callable) -> None:
        """Register a callback for an event type."""
        if event_type not in EVENT_TYPES:
            raise ValueError(f"Invalid event_type: {event_type}")
        self.subscribers.setdefault(event_type, []).append(callback)

    def unsubscribe(self, event_type: str, callback: Callable) -> None:
        callbacks = self.subscribers.get(event_type, [])
        if callback in callbacks:
            callbacks.remove(callback)

    def emit(self, event_type: str, **kwargs) -> None:
        """
        Call every subscriber of event_type.

        The change being announced has already been stored, so a failing
        callback is logged and the remaining callbacks still run.
        """
        for callback in list(self.subscribers.get(event_type, [])):
            try:
                callback(**kwargs)
            except Exception:
                logger.exception(f"Error in {event_type} callback {callback!r}")
