"""
Tracker: the service object presentation layers talk to.

Wires substrate → EntityStore → Relationships → KanbanBoard and stamps the
acting user onto created records.
"""
import logging
from typing import Any, Dict, List, Optional

from .board import KanbanBoard
from .cascade import CascadeResult, Relationships
from .config import TrackerConfig
from .events import BoardEvents
from .queries import dashboard_stats, DashboardStats
from .schema import (
    Actor, Comment, Document, EntityKind, ParentRef, Project,
)
from .store import EntityStore
from .substrate import MemorySubstrate, SqliteSubstrate, Substrate

logger = logging.getLogger(__name__)


class Tracker:
    """Projects, tasks, documents and comments for one substrate."""

    def __init__(self, substrate: Optional[Substrate] = None, key_prefix: str = "pm_"):
        self.substrate = substrate if substrate is not None else MemorySubstrate()
        self.store = EntityStore(self.substrate, key_prefix=key_prefix)
        self.relationships = Relationships(self.store)
        self.events = BoardEvents()
        self.board = KanbanBoard(self.store, self.relationships, self.events)

    @classmethod
    def from_config(cls, config: TrackerConfig) -> "Tracker":
        if config.storage == "sqlite":
            substrate = SqliteSubstrate(config.db_path)
            logger.info(f"Using SQLite substrate at {config.db_path}")
        else:
            substrate = MemorySubstrate()
            logger.info("Using in-memory substrate")
        return cls(substrate, key_prefix=config.key_prefix)

    # ── Projects ─────────────────────────────────────────────────────────────

    def create_project(self, actor: Actor, fields: Dict[str, Any]) -> Project:
        """Create a project owned by actor; the creator is always a member."""
        data = dict(fields)
        data["created_by"] = actor.id
        members = data.get("members") or []
        if isinstance(members, (list, tuple, set, frozenset)):
            data["members"] = [actor.id] + [m for m in members if m != actor.id]
        project = self.store.create(EntityKind.PROJECT, data)
        logger.info(f"Project {project.id} created by {actor.id}")
        return project

    def update_project(self, project_id: str, fields: Dict[str, Any]) -> Optional[Project]:
        return self.store.update(EntityKind.PROJECT, project_id, fields)

    def delete_project(self, project_id: str) -> CascadeResult:
        return self.relationships.delete_project(project_id)

    def get_project(self, project_id: str) -> Optional[Project]:
        return self.store.get(EntityKind.PROJECT, project_id)

    def list_projects(self) -> List[Project]:
        return self.store.list(EntityKind.PROJECT)

    # ── Documents ────────────────────────────────────────────────────────────

    def create_document(self, actor: Actor, project_id: str, fields: Dict[str, Any]) -> Document:
        data = dict(fields)
        data["project_id"] = project_id
        data["created_by"] = actor.id
        return self.relationships.create_document(data)

    def update_document(self, document_id: str, fields: Dict[str, Any]) -> Optional[Document]:
        return self.relationships.update_document(document_id, fields)

    def publish_document(self, document_id: str) -> Optional[Document]:
        return self.relationships.update_document(document_id, {"status": "published"})

    def delete_documents(self, document_ids) -> CascadeResult:
        return self.relationships.delete_documents(document_ids)

    # ── Comments ─────────────────────────────────────────────────────────────

    def add_comment(self, actor: Actor, parent: ParentRef, content: str) -> Comment:
        return self.relationships.create_comment({
            "parent": parent,
            "content": content,
            "author_id": actor.id,
        })

    def update_comment(self, comment_id: str, fields: Dict[str, Any]) -> Optional[Comment]:
        return self.relationships.update_comment(comment_id, fields)

    def delete_comments(self, comment_ids) -> int:
        return self.relationships.delete_comments(comment_ids)

    # ── Dashboard ────────────────────────────────────────────────────────────

    def dashboard(self, actor: Actor) -> DashboardStats:
        return dashboard_stats(self.store, actor)
