"""
Error taxonomy for the project tracker core.

  ValidationError    - bad or missing field on create/update; nothing written
  NotFound           - target id absent (usually a None return, see EntityStore.require)
  OrphanedReference  - parent id does not resolve at creation time
  CascadeIncomplete  - a delete-with-cascade stopped partway; re-run it
  SubstrateError     - the persistence backend failed
"""
from typing import Iterable, List, Optional


class TrackerError(Exception):
    """Base class for every error raised by the tracker core."""
    pass


class ValidationError(TrackerError):
    """Raised when a required field is missing or an enum value is out of range."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class NotFound(TrackerError):
    """Raised when a record id does not exist in its collection."""

    def __init__(self, kind: str, record_id: str):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} {record_id} not found")


class OrphanedReference(TrackerError):
    """Raised when a record is created against a parent that does not resolve."""

    def __init__(self, kind: str, parent_kind: str, parent_id: str):
        self.kind = kind
        self.parent_kind = parent_kind
        self.parent_id = parent_id
        super().__init__(
            f"Cannot attach {kind} to {parent_kind} {parent_id}: no such {parent_kind}"
        )


class SubstrateError(TrackerError):
    """Raised when reading or writing the persistence substrate fails."""
    pass


class CascadeIncomplete(TrackerError):
    """
    A delete-with-cascade failed after some of its steps were applied.

    The caller should retry the whole cascade; every step is idempotent.
    """

    def __init__(
        self,
        kind: str,
        ids: Iterable[str],
        completed: Optional[List[str]] = None,
        cause: Optional[BaseException] = None,
    ):
        self.kind = kind
        self.ids = sorted(ids)
        self.completed = list(completed or [])
        self.cause = cause
        done = ", ".join(self.completed) or "nothing"
        super().__init__(
            f"Cascade delete of {kind} {self.ids} incomplete (done: {done}): {cause}"
        )
