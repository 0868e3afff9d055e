"""
Record schema for projects, tasks, comments and documents.

Records are frozen dataclasses: a write stores a new record in place of the
old one, never an in-place mutation. Each record knows how to
flatten itself into the storage form (a dict of plain JSON values) and how to
rebuild itself from one.

Task lifecycle (the board columns):
  todo ⇄ in-progress ⇄ in-review ⇄ done   (any state may move to any other)
"""
from enum import Enum
from dataclasses import dataclass, field, fields
from datetime import date, datetime, timezone
from typing import Any, ClassVar, Dict, FrozenSet, Optional, Tuple, Type

from .errors import ValidationError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EntityKind(Enum):
    """The four record kinds, one storage collection each."""
    PROJECT = "project"
    TASK = "task"
    COMMENT = "comment"
    DOCUMENT = "document"


class ProjectStatus(Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ON_HOLD = "on-hold"


class TaskStatus(Enum):
    """Valid task states; each one is also a board column."""
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    IN_REVIEW = "in-review"
    DONE = "done"


class TaskPriority(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class DocumentStatus(Enum):
    DRAFT = "draft"
    PUBLISHED = "published"


class ParentType(Enum):
    """Entity kinds a comment may be attached to."""
    PROJECT = "project"
    TASK = "task"
    DOCUMENT = "document"

    @property
    def kind(self) -> EntityKind:
        return EntityKind(self.value)


class Role(Enum):
    ADMIN = "admin"
    USER = "user"


def coerce_enum(enum_cls: Type[Enum], value: Any, field_name: str) -> Enum:
    """Turn a raw value into an enum member or raise ValidationError."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(field_name, f"{value!r} is not one of: {allowed}")


@dataclass(frozen=True)
class Actor:
    """The authenticated user performing an operation. Not verified here."""
    id: str
    role: Role = Role.USER


@dataclass(frozen=True)
class ParentRef:
    """Tagged reference to the record a comment hangs off."""
    type: ParentType
    id: str

    @classmethod
    def project(cls, project_id: str) -> "ParentRef":
        return cls(ParentType.PROJECT, project_id)

    @classmethod
    def task(cls, task_id: str) -> "ParentRef":
        return cls(ParentType.TASK, task_id)

    @classmethod
    def document(cls, document_id: str) -> "ParentRef":
        return cls(ParentType.DOCUMENT, document_id)

    @classmethod
    def of(cls, parent_type: Any, parent_id: str) -> "ParentRef":
        return cls(coerce_enum(ParentType, parent_type, "parent_type"), parent_id)


def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def parse_due_date(value: Any) -> Optional[date]:
    """Accept a date, a datetime or an ISO string; empty means no due date."""
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value)
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    # A full ISO timestamp keeps only its date part
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        raise ValidationError("due_date", f"{value!r} is not an ISO date")


class Record:
    """
    Shared behaviour for the four record dataclasses.

    Subclasses declare:
      KIND          - their EntityKind
      REQUIRED      - string fields that must be present and non-empty
      ENUM_FIELDS   - field name -> Enum class
      DEFAULTS      - values filled in on create when the caller omits them
      STORE_FIELDS  - fields only the store may assign
    """
    KIND: ClassVar[EntityKind]
    REQUIRED: ClassVar[Tuple[str, ...]] = ()
    ENUM_FIELDS: ClassVar[Dict[str, Type[Enum]]] = {}
    DEFAULTS: ClassVar[Dict[str, Any]] = {}
    STORE_FIELDS: ClassVar[Tuple[str, ...]] = ("id", "created_at", "updated_at")

    @classmethod
    def storage_fields(cls) -> Tuple[str, ...]:
        """Flat key names used in the serialized form."""
        return tuple(f.name for f in fields(cls))

    def to_dict(self) -> Dict[str, Any]:
        data = {}
        for f in fields(self):
            data[f.name] = to_plain(getattr(self, f.name))
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Record":
        raise NotImplementedError


def to_plain(value: Any) -> Any:
    """Convert a field value into its JSON storage form."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    return value


@dataclass(frozen=True)
class Project(Record):
    KIND: ClassVar[EntityKind] = EntityKind.PROJECT
    REQUIRED: ClassVar[Tuple[str, ...]] = ("name", "created_by")
    ENUM_FIELDS: ClassVar[Dict[str, Type[Enum]]] = {"status": ProjectStatus}
    DEFAULTS: ClassVar[Dict[str, Any]] = {
        "description": "",
        "status": ProjectStatus.ACTIVE.value,
        "members": [],
    }

    id: str
    name: str
    created_by: str
    created_at: datetime
    updated_at: datetime
    description: str = ""
    status: ProjectStatus = ProjectStatus.ACTIVE
    members: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Project":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            description=data.get("description", ""),
            status=ProjectStatus(data.get("status", "active")),
            created_by=data.get("created_by", ""),
            created_at=_parse_datetime(data["created_at"]),
            updated_at=_parse_datetime(data["updated_at"]),
            members=frozenset(data.get("members") or ()),
        )


@dataclass(frozen=True)
class Task(Record):
    KIND: ClassVar[EntityKind] = EntityKind.TASK
    REQUIRED: ClassVar[Tuple[str, ...]] = ("project_id", "title", "created_by")
    ENUM_FIELDS: ClassVar[Dict[str, Type[Enum]]] = {
        "status": TaskStatus,
        "priority": TaskPriority,
    }
    DEFAULTS: ClassVar[Dict[str, Any]] = {
        "description": "",
        "status": TaskStatus.TODO.value,
        "priority": TaskPriority.MEDIUM.value,
        "assigned_to": None,
        "due_date": None,
    }

    id: str
    project_id: str
    title: str
    created_by: str
    created_at: datetime
    updated_at: datetime
    description: str = ""
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    assigned_to: Optional[str] = None
    due_date: Optional[date] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        return cls(
            id=data["id"],
            project_id=data.get("project_id", ""),
            title=data.get("title", ""),
            description=data.get("description", ""),
            status=TaskStatus(data.get("status", "todo")),
            priority=TaskPriority(data.get("priority", "medium")),
            assigned_to=data.get("assigned_to") or None,
            created_by=data.get("created_by", ""),
            created_at=_parse_datetime(data["created_at"]),
            updated_at=_parse_datetime(data["updated_at"]),
            due_date=parse_due_date(data.get("due_date")),
        )


@dataclass(frozen=True)
class Comment(Record):
    KIND: ClassVar[EntityKind] = EntityKind.COMMENT
    REQUIRED: ClassVar[Tuple[str, ...]] = ("parent_id", "parent_type", "content", "author_id")
    ENUM_FIELDS: ClassVar[Dict[str, Type[Enum]]] = {"parent_type": ParentType}

    id: str
    parent: ParentRef
    content: str
    author_id: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def storage_fields(cls) -> Tuple[str, ...]:
        return ("id", "parent_id", "parent_type", "content", "author_id",
                "created_at", "updated_at")

    def to_dict(self) -> Dict[str, Any]:
        # Flattened so the stored collection stays an array of flat records
        return {
            "id": self.id,
            "parent_id": self.parent.id,
            "parent_type": self.parent.type.value,
            "content": self.content,
            "author_id": self.author_id,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Comment":
        return cls(
            id=data["id"],
            parent=ParentRef(ParentType(data["parent_type"]), data["parent_id"]),
            content=data.get("content", ""),
            author_id=data.get("author_id", ""),
            created_at=_parse_datetime(data["created_at"]),
            updated_at=_parse_datetime(data["updated_at"]),
        )


@dataclass(frozen=True)
class Document(Record):
    KIND: ClassVar[EntityKind] = EntityKind.DOCUMENT
    REQUIRED: ClassVar[Tuple[str, ...]] = ("project_id", "title", "created_by")
    ENUM_FIELDS: ClassVar[Dict[str, Type[Enum]]] = {"status": DocumentStatus}
    DEFAULTS: ClassVar[Dict[str, Any]] = {
        "content": "",
        "status": DocumentStatus.DRAFT.value,
    }
    STORE_FIELDS: ClassVar[Tuple[str, ...]] = ("id", "created_at", "updated_at", "version")

    id: str
    project_id: str
    title: str
    created_by: str
    created_at: datetime
    updated_at: datetime
    content: str = ""
    status: DocumentStatus = DocumentStatus.DRAFT
    version: int = 1

    @property
    def is_published(self) -> bool:
        return self.status == DocumentStatus.PUBLISHED

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Document":
        return cls(
            id=data["id"],
            project_id=data.get("project_id", ""),
            title=data.get("title", ""),
            content=data.get("content", ""),
            status=DocumentStatus(data.get("status", "draft")),
            created_by=data.get("created_by", ""),
            created_at=_parse_datetime(data["created_at"]),
            updated_at=_parse_datetime(data["updated_at"]),
            version=int(data.get("version", 1)),
        )


RECORD_TYPES: Dict[EntityKind, Type[Record]] = {
    EntityKind.PROJECT: Project,
    EntityKind.TASK: Task,
    EntityKind.COMMENT: Comment,
    EntityKind.DOCUMENT: Document,
}
