"""
Read-side helpers for dashboards and list pages.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from .schema import (
    Actor, Comment, Document, EntityKind, ParentRef, Project, ProjectStatus,
    Task, TaskStatus, coerce_enum,
)
from .store import EntityStore


@dataclass
class DashboardStats:
    total_projects: int = 0
    active_tasks: int = 0
    completed_tasks: int = 0
    documents: int = 0
    my_open_tasks: int = 0
    tasks_by_status: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_projects": self.total_projects,
            "active_tasks": self.active_tasks,
            "completed_tasks": self.completed_tasks,
            "documents": self.documents,
            "my_open_tasks": self.my_open_tasks,
            "tasks_by_status": dict(self.tasks_by_status),
        }


def search_projects(
    store: EntityStore,
    term: str = "",
    status: Optional[Union[ProjectStatus, str]] = None,
) -> List[Project]:
    """Case-insensitive match on name or description, optionally filtered by status."""
    needle = (term or "").strip().lower()
    wanted = coerce_enum(ProjectStatus, status, "status") if status else None
    matches = []
    for project in store.list(EntityKind.PROJECT):
        if wanted and project.status != wanted:
            continue
        if needle and needle not in project.name.lower() and needle not in project.description.lower():
            continue
        matches.append(project)
    return matches


def projects_for_member(store: EntityStore, user_id: str) -> List[Project]:
    return [p for p in store.list(EntityKind.PROJECT) if user_id in p.members]


def tasks_for_project(store: EntityStore, project_id: str) -> List[Task]:
    return [t for t in store.list(EntityKind.TASK) if t.project_id == project_id]


def documents_for_project(store: EntityStore, project_id: str) -> List[Document]:
    return [d for d in store.list(EntityKind.DOCUMENT) if d.project_id == project_id]


def comments_for(store: EntityStore, parent: ParentRef) -> List[Comment]:
    """Comments on one record, oldest first."""
    comments = [c for c in store.list(EntityKind.COMMENT) if c.parent == parent]
    return sorted(comments, key=lambda c: c.created_at)


def recent_projects(store: EntityStore, limit: int = 3) -> List[Project]:
    """Most recently updated projects first."""
    projects = sorted(store.list(EntityKind.PROJECT), key=lambda p: p.updated_at, reverse=True)
    return projects[:limit]


def recent_tasks_for(store: EntityStore, user_id: str, limit: int = 4) -> List[Task]:
    """Tasks assigned to user_id, most recently updated first."""
    tasks = [t for t in store.list(EntityKind.TASK) if t.assigned_to == user_id]
    tasks.sort(key=lambda t: t.updated_at, reverse=True)
    return tasks[:limit]


def dashboard_stats(store: EntityStore, actor: Optional[Actor] = None) -> DashboardStats:
    """Counts shown on the dashboard; my_open_tasks is relative to actor."""
    tasks = store.list(EntityKind.TASK)
    stats = DashboardStats(
        total_projects=len(store.list(EntityKind.PROJECT)),
        documents=len(store.list(EntityKind.DOCUMENT)),
        tasks_by_status={s.value: 0 for s in TaskStatus},
    )
    for task in tasks:
        stats.tasks_by_status[task.status.value] += 1
        if task.status == TaskStatus.DONE:
            stats.completed_tasks += 1
            continue
        stats.active_tasks += 1
        if actor is not None and task.assigned_to == actor.id:
            stats.my_open_tasks += 1
    return stats
