"""
Relationship cascade: referential checks on create and cascading deletes.

Ownership:
  Project  ─┬─ Task ──── Comment
            ├─ Document ─ Comment
            └─ Comment

A cascade deletes comments first, then tasks, then documents, then the root.
If a step fails the remaining steps are skipped and CascadeIncomplete is
raised; since every step is an idempotent delete and comments go first, the
caller can simply run the same cascade again.

Reference checks and cascades share one re-entrant lock, so a parent cannot
be deleted between the check that it exists and the write that points at it.
"""
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from .errors import CascadeIncomplete, OrphanedReference, ValidationError
from .schema import (
    Comment, Document, EntityKind, ParentRef, ParentType, Task,
)
from .store import COLLECTION_NAMES, EntityStore

logger = logging.getLogger(__name__)


@dataclass
class CascadeResult:
    """Outcome of a cascading delete, per root id."""
    kind: EntityKind
    deleted: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)
    comments_removed: int = 0
    tasks_removed: int = 0
    documents_removed: int = 0

    @property
    def ok(self) -> bool:
        """True when every requested root existed and was deleted."""
        return not self.missing

    def succeeded(self, record_id: str) -> bool:
        return record_id in self.deleted

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "deleted": self.deleted,
            "missing": self.missing,
            "comments_removed": self.comments_removed,
            "tasks_removed": self.tasks_removed,
            "documents_removed": self.documents_removed,
        }


def _parent_from_fields(fields: Dict[str, Any]) -> Optional[ParentRef]:
    parent = fields.get("parent")
    if isinstance(parent, ParentRef):
        return parent
    if parent is not None:
        raise ValidationError("parent", "must be a ParentRef")
    if fields.get("parent_id") and fields.get("parent_type"):
        return ParentRef.of(fields["parent_type"], fields["parent_id"])
    return None


class Relationships:
    """Keeps references between projects, tasks, documents and comments intact."""

    def __init__(self, store: EntityStore):
        self.store = store
        self._lock = threading.RLock()

    # ── Reference checks ─────────────────────────────────────────────────────

    def _require_project(self, project_id: Any, kind: EntityKind) -> None:
        if isinstance(project_id, str) and project_id.strip():
            if not self.store.exists(EntityKind.PROJECT, project_id):
                raise OrphanedReference(kind.value, EntityKind.PROJECT.value, project_id)

    def _require_parent(self, parent: ParentRef) -> None:
        if not self.store.exists(parent.type.kind, parent.id):
            raise OrphanedReference(EntityKind.COMMENT.value, parent.type.value, parent.id)

    # ── Creation ─────────────────────────────────────────────────────────────

    def create_task(self, fields: Dict[str, Any]) -> Task:
        """Create a task; its project must exist."""
        with self._lock:
            self._require_project(fields.get("project_id"), EntityKind.TASK)
            return self.store.create(EntityKind.TASK, fields)

    def create_document(self, fields: Dict[str, Any]) -> Document:
        """Create a document; its project must exist."""
        with self._lock:
            self._require_project(fields.get("project_id"), EntityKind.DOCUMENT)
            return self.store.create(EntityKind.DOCUMENT, fields)

    def create_comment(self, fields: Dict[str, Any]) -> Comment:
        """Create a comment; its parent must resolve to a record of the declared type."""
        parent = _parent_from_fields(fields)
        with self._lock:
            if parent is not None:
                self._require_parent(parent)
            return self.store.create(EntityKind.COMMENT, fields)

    # ── Updates that may move a record to a different owner ──────────────────

    def update_task(self, task_id: str, changes: Dict[str, Any]) -> Optional[Task]:
        with self._lock:
            if "project_id" in changes:
                self._require_project(changes["project_id"], EntityKind.TASK)
            return self.store.update(EntityKind.TASK, task_id, changes)

    def update_document(self, document_id: str, changes: Dict[str, Any]) -> Optional[Document]:
        with self._lock:
            if "project_id" in changes:
                self._require_project(changes["project_id"], EntityKind.DOCUMENT)
            return self.store.update(EntityKind.DOCUMENT, document_id, changes)

    def update_comment(self, comment_id: str, changes: Dict[str, Any]) -> Optional[Comment]:
        with self._lock:
            if any(k in changes for k in ("parent", "parent_id", "parent_type")):
                current = self.store.get(EntityKind.COMMENT, comment_id)
                if current is None:
                    return None
                parent = changes.get("parent")
                if not isinstance(parent, ParentRef):
                    parent = ParentRef.of(
                        changes.get("parent_type", current.parent.type),
                        changes.get("parent_id", current.parent.id),
                    )
                self._require_parent(parent)
            return self.store.update(EntityKind.COMMENT, comment_id, changes)

    # ── Cascading deletes ────────────────────────────────────────────────────

    def _comments_on(self, targets: Set[Tuple[ParentType, str]]) -> Set[str]:
        if not targets:
            return set()
        return {
            c.id for c in self.store.list(EntityKind.COMMENT)
            if (c.parent.type, c.parent.id) in targets
        }

    def _execute(
        self,
        result: CascadeResult,
        root_ids: Set[str],
        steps: List[Tuple[EntityKind, Set[str]]],
    ) -> CascadeResult:
        """Run delete steps in order; wrap any failure in CascadeIncomplete."""
        completed: List[str] = []
        removed: Dict[EntityKind, int] = {}
        for kind, ids in steps:
            try:
                removed[kind] = removed.get(kind, 0) + self.store.delete(kind, ids)
            except Exception as e:
                logger.error(
                    f"Cascade delete of {result.kind.value} {sorted(root_ids)} "
                    f"failed at {COLLECTION_NAMES[kind]}: {e}"
                )
                raise CascadeIncomplete(result.kind.value, root_ids, completed, e) from e
            completed.append(COLLECTION_NAMES[kind])

        result.comments_removed = removed.get(EntityKind.COMMENT, 0)
        if result.kind != EntityKind.TASK:
            result.tasks_removed = removed.get(EntityKind.TASK, 0)
        if result.kind != EntityKind.DOCUMENT:
            result.documents_removed = removed.get(EntityKind.DOCUMENT, 0)
        logger.info(
            f"Deleted {result.kind.value}(s) {result.deleted} with "
            f"{result.comments_removed} comment(s), {result.tasks_removed} task(s), "
            f"{result.documents_removed} document(s)"
        )
        return result

    def delete_project(self, project_id: str) -> CascadeResult:
        """
        Delete a project with its tasks, documents and every comment on any of them.

        A missing project is reported in result.missing; anything still
        pointing at its id is removed all the same.
        """
        with self._lock:
            exists = self.store.exists(EntityKind.PROJECT, project_id)
            result = CascadeResult(
                EntityKind.PROJECT,
                deleted=[project_id] if exists else [],
                missing=[] if exists else [project_id],
            )

            task_ids = {t.id for t in self.store.list(EntityKind.TASK) if t.project_id == project_id}
            doc_ids = {d.id for d in self.store.list(EntityKind.DOCUMENT) if d.project_id == project_id}
            targets = {(ParentType.PROJECT, project_id)}
            targets |= {(ParentType.TASK, t) for t in task_ids}
            targets |= {(ParentType.DOCUMENT, d) for d in doc_ids}
            comment_ids = self._comments_on(targets)

            return self._execute(result, {project_id}, [
                (EntityKind.COMMENT, comment_ids),
                (EntityKind.TASK, task_ids),
                (EntityKind.DOCUMENT, doc_ids),
                (EntityKind.PROJECT, {project_id}),
            ])

    def _delete_leaf_owner(self, kind: EntityKind, parent_type: ParentType, ids: Iterable[str]) -> CascadeResult:
        ids = {ids} if isinstance(ids, str) else set(ids)
        with self._lock:
            present = {r.id for r in self.store.list(kind) if r.id in ids}
            result = CascadeResult(kind, deleted=sorted(present), missing=sorted(ids - present))
            comment_ids = self._comments_on({(parent_type, i) for i in ids})
            return self._execute(result, ids, [
                (EntityKind.COMMENT, comment_ids),
                (kind, ids),
            ])

    def delete_tasks(self, task_ids: Iterable[str]) -> CascadeResult:
        """Delete tasks and the comments attached directly to them."""
        return self._delete_leaf_owner(EntityKind.TASK, ParentType.TASK, task_ids)

    def delete_documents(self, document_ids: Iterable[str]) -> CascadeResult:
        """Delete documents and the comments attached directly to them."""
        return self._delete_leaf_owner(EntityKind.DOCUMENT, ParentType.DOCUMENT, document_ids)

    def delete_comments(self, comment_ids: Iterable[str]) -> int:
        return self.store.delete(EntityKind.COMMENT, comment_ids)

    # ── Integrity ────────────────────────────────────────────────────────────

    def find_orphans(self) -> Dict[EntityKind, List[str]]:
        """
        Ids of records whose owner no longer exists.

        Only possible when records were removed without going through the
        cascade (e.g. a direct EntityStore.delete).
        """
        project_ids = {p.id for p in self.store.list(EntityKind.PROJECT)}
        tasks = self.store.list(EntityKind.TASK)
        documents = self.store.list(EntityKind.DOCUMENT)
        live = {
            ParentType.PROJECT: project_ids,
            ParentType.TASK: {t.id for t in tasks},
            ParentType.DOCUMENT: {d.id for d in documents},
        }
        return {
            EntityKind.TASK: [t.id for t in tasks if t.project_id not in project_ids],
            EntityKind.DOCUMENT: [d.id for d in documents if d.project_id not in project_ids],
            EntityKind.COMMENT: [
                c.id for c in self.store.list(EntityKind.COMMENT)
                if c.parent.id not in live[c.parent.type]
            ],
        }

    def orphaned_comments(self) -> List[Comment]:
        orphan_ids = set(self.find_orphans()[EntityKind.COMMENT])
        return [c for c in self.store.list(EntityKind.COMMENT) if c.id in orphan_ids]

    def purge_orphans(self) -> Dict[EntityKind, int]:
        """Delete orphaned tasks and documents (with their comments), then orphaned comments."""
        with self._lock:
            orphans = self.find_orphans()
            tasks = self.delete_tasks(orphans[EntityKind.TASK])
            documents = self.delete_documents(orphans[EntityKind.DOCUMENT])
            comments = self.delete_comments(orphans[EntityKind.COMMENT])
        return {
            EntityKind.TASK: len(tasks.deleted),
            EntityKind.DOCUMENT: len(documents.deleted),
            EntityKind.COMMENT: comments + tasks.comments_removed + documents.comments_removed,
        }
