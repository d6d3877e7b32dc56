"""Pydantic schemas for remote items tracked by the synchronizer.

Remote payloads are projected into one of three tagged variants that share a
common shape for templating. The ``kind`` field is the discriminator.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class ItemKind(str, Enum):
    """Enum for the kinds of remote items that can be synchronized."""

    ISSUE = "issue"
    PULL_REQUEST = "pr"
    PROJECT_ITEM = "project_item"


class ItemComment(BaseModel):
    """Pydantic model for a comment on a remote item."""

    model_config = ConfigDict(frozen=True)

    author: str | None = None
    body: str | None = None
    created_at: datetime
    path: str | None = None
    line: int | None = None
    is_review_comment: bool = False


class RemoteItemBase(BaseModel):
    """Fields shared by every remote item variant."""

    model_config = ConfigDict(frozen=True)

    number: int | str
    title: str
    body: str | None = None
    state: str
    created_at: datetime
    updated_at: datetime
    closed_at: datetime | None = None
    author: str | None = None
    labels: tuple[str, ...] = ()
    assignees: tuple[str, ...] = ()
    url: str | None = None
    repository: str
    milestone: str | None = None
    locked: bool = False
    lock_reason: str | None = None
    comments: tuple[ItemComment, ...] = ()

    @property
    def identifier(self) -> str:
        """Stable identifier of the item as a string."""
        return str(self.number)

    @property
    def status(self) -> str:
        """Lifecycle status recorded in documents."""
        return self.state

    @property
    def is_closed(self) -> bool:
        """Whether the item is no longer open."""
        return self.state != "open"


class IssueItem(RemoteItemBase):
    """An issue."""

    kind: Literal["issue"] = "issue"


class PullRequestItem(RemoteItemBase):
    """A pull request."""

    kind: Literal["pr"] = "pr"
    merged: bool = False
    merged_at: datetime | None = None
    mergeable: bool | None = None
    base_branch: str | None = None
    head_branch: str | None = None
    requested_reviewers: tuple[str, ...] = ()


class ProjectItem(RemoteItemBase):
    """An item on a project board, optionally carrying custom field values."""

    kind: Literal["project_item"] = "project_item"
    project_title: str | None = None
    project_number: int | None = None
    project_url: str | None = None
    custom_fields: dict[str, Any] = Field(default_factory=dict)


RemoteItem = Annotated[IssueItem | PullRequestItem | ProjectItem, Field(discriminator="kind")]
