"""
Entity store: typed CRUD over the four record kinds.

One substrate key per kind holds the whole collection as a JSON array. Every
mutation re-reads that array, changes it and writes it back, holding the
kind's lock for the duration. The store knows nothing about how kinds relate
to each other; see cascade.py for that.
"""
import json
import logging
import threading
import uuid
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from .errors import NotFound, SubstrateError, ValidationError
from .schema import (
    RECORD_TYPES, Comment, DocumentStatus, EntityKind, ParentRef, Record,
    coerce_enum, parse_due_date, to_plain, utcnow,
)
from .substrate import Substrate

logger = logging.getLogger(__name__)

COLLECTION_NAMES = {
    EntityKind.PROJECT: "projects",
    EntityKind.TASK: "tasks",
    EntityKind.COMMENT: "comments",
    EntityKind.DOCUMENT: "documents",
}

KindLike = Union[EntityKind, str]


def _kind(kind: KindLike) -> EntityKind:
    if isinstance(kind, EntityKind):
        return kind
    try:
        return EntityKind(kind)
    except ValueError:
        raise ValidationError("kind", f"unknown entity kind {kind!r}")


class EntityStore:
    """Substrate-backed store for projects, tasks, comments and documents."""

    def __init__(
        self,
        substrate: Substrate,
        key_prefix: str = "pm_",
        id_factory: Optional[Callable[[], str]] = None,
        clock: Optional[Callable] = None,
    ):
        self.substrate = substrate
        self.key_prefix = key_prefix
        self._new_id = id_factory or (lambda: uuid.uuid4().hex)
        self._now = clock or utcnow
        self._locks = {kind: threading.Lock() for kind in EntityKind}

    def key_for(self, kind: KindLike) -> str:
        """Substrate key holding the collection for kind."""
        return f"{self.key_prefix}{COLLECTION_NAMES[_kind(kind)]}"

    # ── Raw collection access ────────────────────────────────────────────────

    def _read_rows(self, kind: EntityKind) -> List[Dict[str, Any]]:
        key = self.key_for(kind)
        payload = self.substrate.read(key)
        if payload is None:
            return []
        try:
            rows = json.loads(payload)
        except json.JSONDecodeError as e:
            raise SubstrateError(f"Collection {key} is not valid JSON: {e}") from e
        if not isinstance(rows, list):
            raise SubstrateError(f"Collection {key} is not an array")
        return rows

    def _write_rows(self, kind: EntityKind, rows: List[Dict[str, Any]]) -> None:
        self.substrate.write(self.key_for(kind), json.dumps(rows))

    # ── Reads ────────────────────────────────────────────────────────────────

    def list(self, kind: KindLike) -> List[Record]:
        """All records of a kind, in storage (insertion) order."""
        kind = _kind(kind)
        record_type = RECORD_TYPES[kind]
        return [record_type.from_dict(row) for row in self._read_rows(kind)]

    def get(self, kind: KindLike, record_id: str) -> Optional[Record]:
        """Retrieve a record by id, or None if absent."""
        kind = _kind(kind)
        for row in self._read_rows(kind):
            if row.get("id") == record_id:
                return RECORD_TYPES[kind].from_dict(row)
        return None

    def require(self, kind: KindLike, record_id: str) -> Record:
        """Like get, but raises NotFound instead of returning None."""
        record = self.get(kind, record_id)
        if record is None:
            raise NotFound(_kind(kind).value, record_id)
        return record

    def exists(self, kind: KindLike, record_id: str) -> bool:
        return self.get(kind, record_id) is not None

    # ── Writes ───────────────────────────────────────────────────────────────

    def create(self, kind: KindLike, fields: Dict[str, Any]) -> Record:
        """
        Validate fields, assign id and timestamps, append, return the record.

        Raises ValidationError before anything is written.
        """
        kind = _kind(kind)
        record_type = RECORD_TYPES[kind]
        data = _normalize(record_type, fields)

        for name, default in record_type.DEFAULTS.items():
            data.setdefault(name, default)
        for name in record_type.REQUIRED:
            if name not in data:
                raise ValidationError(name, "is required")
        _validate(record_type, data)

        now = self._now().isoformat()
        data["id"] = self._new_id()
        data["created_at"] = now
        data["updated_at"] = now
        if "version" in record_type.STORE_FIELDS:
            data["version"] = 1
        record = record_type.from_dict(data)

        with self._locks[kind]:
            rows = self._read_rows(kind)
            rows.append(record.to_dict())
            self._write_rows(kind, rows)

        logger.debug(f"Created {kind.value} {record.id}")
        return record

    def update(self, kind: KindLike, record_id: str, changes: Dict[str, Any]) -> Optional[Record]:
        """
        Merge changes into an existing record and refresh updated_at.

        Returns the new record, or None if record_id does not exist. A
        document's version goes up by one only when its status moves from
        draft to published.
        """
        kind = _kind(kind)
        record_type = RECORD_TYPES[kind]
        data = _normalize(record_type, changes)
        _validate(record_type, data)

        with self._locks[kind]:
            rows = self._read_rows(kind)
            index = next((i for i, row in enumerate(rows) if row.get("id") == record_id), None)
            if index is None:
                logger.debug(f"Update skipped: {kind.value} {record_id} not found")
                return None

            current = rows[index]
            merged = dict(current)
            merged.update(data)
            merged["updated_at"] = self._now().isoformat()
            if "version" in record_type.STORE_FIELDS:
                previous = record_type.from_dict(current)
                publishing = data.get("status") == DocumentStatus.PUBLISHED.value
                bump = 1 if publishing and not previous.is_published else 0
                merged["version"] = previous.version + bump

            record = record_type.from_dict(merged)
            rows[index] = record.to_dict()
            self._write_rows(kind, rows)

        logger.debug(f"Updated {kind.value} {record_id}: {sorted(data)}")
        return record

    def delete(self, kind: KindLike, ids: Iterable[str]) -> int:
        """Remove every record whose id is in ids. Missing ids are ignored."""
        kind = _kind(kind)
        doomed = {ids} if isinstance(ids, str) else set(ids)
        if not doomed:
            return 0
        with self._locks[kind]:
            rows = self._read_rows(kind)
            kept = [row for row in rows if row.get("id") not in doomed]
            removed = len(rows) - len(kept)
            if removed:
                self._write_rows(kind, kept)
        if removed:
            logger.debug(f"Deleted {removed} {kind.value}(s)")
        return removed


def _normalize(record_type, fields: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten caller input into storage form and reject unknown or store-owned keys."""
    if not isinstance(fields, dict):
        raise ValidationError("fields", "must be a mapping")
    data = dict(fields)

    # Comments take a ParentRef; it is stored as parent_id + parent_type
    if record_type is Comment and "parent" in data:
        parent = data.pop("parent")
        if not isinstance(parent, ParentRef):
            raise ValidationError("parent", "must be a ParentRef")
        data["parent_id"] = parent.id
        data["parent_type"] = parent.type.value

    allowed = set(record_type.storage_fields())
    for name in data:
        if name in record_type.STORE_FIELDS:
            raise ValidationError(name, "is assigned by the store")
        if name not in allowed:
            raise ValidationError(name, f"is not a {record_type.KIND.value} field")

    return {name: to_plain(value) for name, value in data.items()}


def _validate(record_type, data: Dict[str, Any]) -> None:
    """Check the fields present in data; coerces enums and dates in place."""
    for name in record_type.REQUIRED:
        if name in data:
            value = data[name]
            if not isinstance(value, str) or not value.strip():
                raise ValidationError(name, "must be a non-empty string")

    for name, enum_cls in record_type.ENUM_FIELDS.items():
        if name in data:
            data[name] = coerce_enum(enum_cls, data[name], name).value

    for name in ("description", "content"):
        if name in data and not isinstance(data[name], str):
            raise ValidationError(name, "must be a string")

    if "due_date" in data:
        data["due_date"] = to_plain(parse_due_date(data["due_date"]))

    if "assigned_to" in data:
        assignee = data["assigned_to"]
        if assignee is not None and not isinstance(assignee, str):
            raise ValidationError("assigned_to", "must be a user id or None")
        data["assigned_to"] = assignee or None

    if "members" in data:
        members = data["members"]
        if not isinstance(members, (list, tuple)) or not all(isinstance(m, str) for m in members):
            raise ValidationError("members", "must be a collection of user ids")
        data["members"] = sorted(set(members))
