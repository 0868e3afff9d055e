"""
Kanban engine: one project's tasks as four status columns.

Any status may move to any other; done is not terminal. A drag-and-drop
resolves to a single move_task call. Order inside a column is storage order;
no rank is persisted, so reordering cards within a column is not supported.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from .cascade import CascadeResult, Relationships
from .events import TASK_CREATED, TASK_MOVED, TASK_REMOVED, TASK_UPDATED, BoardEvents
from .schema import Actor, EntityKind, Task, TaskStatus, coerce_enum
from .store import EntityStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Column:
    status: TaskStatus
    label: str


COLUMNS = (
    Column(TaskStatus.TODO, "To Do"),
    Column(TaskStatus.IN_PROGRESS, "In Progress"),
    Column(TaskStatus.IN_REVIEW, "In Review"),
    Column(TaskStatus.DONE, "Done"),
)


def column_label(status: Union[TaskStatus, str]) -> str:
    status = coerce_enum(TaskStatus, status, "status")
    return next(c.label for c in COLUMNS if c.status == status)


class KanbanBoard:
    """Board operations over the task collection."""

    def __init__(
        self,
        store: EntityStore,
        relationships: Optional[Relationships] = None,
        events: Optional[BoardEvents] = None,
    ):
        self.store = store
        self.relationships = relationships or Relationships(store)
        self.events = events or BoardEvents()

    def columns(self, project_id: str) -> Dict[TaskStatus, List[Task]]:
        """Partition the project's tasks by status; every column key is present."""
        board: Dict[TaskStatus, List[Task]] = {c.status: [] for c in COLUMNS}
        for task in self.store.list(EntityKind.TASK):
            if task.project_id == project_id:
                board[task.status].append(task)
        return board

    def column_counts(self, project_id: str) -> Dict[TaskStatus, int]:
        return {status: len(tasks) for status, tasks in self.columns(project_id).items()}

    def move_task(self, task_id: str, target_status: Union[TaskStatus, str]) -> Optional[Task]:
        """
        Move a task to another column.

        Returns the task as stored afterwards, or None if it no longer
        exists. Dropping a card on its own column writes nothing.
        """
        target = coerce_enum(TaskStatus, target_status, "status")
        task = self.store.get(EntityKind.TASK, task_id)
        if task is None:
            logger.info(f"Move of task {task_id} ignored: task no longer exists")
            return None
        if task.status == target:
            return task

        moved = self.store.update(EntityKind.TASK, task_id, {"status": target.value})
        if moved is None:
            return None
        logger.info(f"Task {task_id} moved {task.status.value} → {target.value}")
        self.events.emit(TASK_MOVED, task=moved, from_status=task.status)
        return moved

    def create_task_in_column(
        self,
        project_id: str,
        column: Union[TaskStatus, str],
        fields: Dict[str, Any],
        created_by: Union[Actor, str],
    ) -> Task:
        """Create a task directly in a column of the project's board."""
        status = coerce_enum(TaskStatus, column, "status")
        data = dict(fields)
        data["project_id"] = project_id
        data["status"] = status.value
        data["created_by"] = created_by.id if isinstance(created_by, Actor) else created_by

        task = self.relationships.create_task(data)
        logger.info(f"Task {task.id} created in {column_label(status)} of project {project_id}")
        self.events.emit(TASK_CREATED, task=task)
        return task

    def update_task(self, task_id: str, fields: Dict[str, Any]) -> Optional[Task]:
        """Edit a task's fields (title, priority, assignee, ...)."""
        task = self.relationships.update_task(task_id, fields)
        if task is not None:
            self.events.emit(TASK_UPDATED, task=task)
        return task

    def remove_task(self, task_id: str) -> CascadeResult:
        """Delete a task and its comments."""
        result = self.relationships.delete_tasks({task_id})
        if result.succeeded(task_id):
            self.events.emit(TASK_REMOVED, task_id=task_id, result=result)
        return result
