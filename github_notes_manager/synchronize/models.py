"""Internal data models for synchronization decisions and outcomes."""

from enum import Enum


class SyncDecision(Enum):
    """Enum for document sync decisions."""

    CREATE = "create"
    UPDATE = "update"
    APPEND = "append"
    SKIP = "skip"


class DocumentSyncOutcome(str, Enum):
    """What actually happened to a document during a sync pass."""

    CREATED = "created"
    UPDATED = "updated"
    APPENDED = "appended"
    SKIPPED = "skipped"
    FAILED = "failed"


class LifecycleDecision(str, Enum):
    """Classification of an existing document by the lifecycle reconciler."""

    RETAIN_OPEN = "retain_open"
    RETAIN_RECENTLY_CLOSED = "retain_recently_closed"
    DELETE_CLOSED_EXPIRED = "delete_closed_expired"
    DELETE_ABSENT = "delete_absent"
    UNRESOLVED = "unresolved"

    @property
    def is_deletion(self) -> bool:
        """Whether the document is eligible for deletion."""
        return self in (LifecycleDecision.DELETE_CLOSED_EXPIRED, LifecycleDecision.DELETE_ABSENT)


class LifecycleOutcome(str, Enum):
    """What actually happened to a document during cleanup."""

    RETAINED = "retained"
    DELETED = "deleted"
    DELETION_NOT_PERMITTED = "deletion_not_permitted"
    FAILED = "failed"
