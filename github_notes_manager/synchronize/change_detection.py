"""Predicates deciding whether a document is out of date with its remote item."""

from datetime import datetime, timezone

from github_notes_manager.schemas.frontmatter import DocumentFrontmatter
from github_notes_manager.schemas.items import RemoteItemBase


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def content_is_stale(frontmatter: DocumentFrontmatter, item: RemoteItemBase) -> bool:
    """Whether the item was updated after the document's recorded timestamp.

    A document without a parsable timestamp is always stale.
    """
    if frontmatter.updated is None:
        return True
    # Frontmatter timestamps only keep whole seconds
    return _as_utc(item.updated_at).replace(microsecond=0) > _as_utc(frontmatter.updated)


def status_changed(frontmatter: DocumentFrontmatter, item: RemoteItemBase) -> bool:
    """Whether the document's recorded status differs from the item's status.

    A document without a status is always considered changed.
    """
    if frontmatter.status is None:
        return True
    return frontmatter.status != item.status
