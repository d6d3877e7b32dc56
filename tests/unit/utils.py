"""Factories shared by the unit tests."""

from datetime import datetime, timezone
from typing import Any

from github_notes_manager.configuration.models import SyncPolicy, UpdateMode
from github_notes_manager.schemas.items import IssueItem, ItemKind, PullRequestItem


def make_issue(**overrides: Any) -> IssueItem:
    """Build an issue with sensible defaults."""
    fields: dict[str, Any] = {
        "number": 42,
        "title": "Fix the widget",
        "body": "The widget is broken.",
        "state": "open",
        "created_at": datetime(2024, 1, 10, 9, 0, 0, tzinfo=timezone.utc),
        "updated_at": datetime(2024, 1, 15, 10, 0, 0, tzinfo=timezone.utc),
        "author": "octocat",
        "labels": ("bug", "good first issue"),
        "assignees": ("alice",),
        "url": "https://github.com/acme/widgets/issues/42",
        "repository": "acme/widgets",
    }
    fields.update(overrides)
    return IssueItem(**fields)


def make_pull_request(**overrides: Any) -> PullRequestItem:
    """Build a pull request with sensible defaults."""
    fields: dict[str, Any] = {
        "number": 7,
        "title": "Add the gadget",
        "body": "Adds a gadget.",
        "state": "open",
        "created_at": datetime(2024, 1, 10, 9, 0, 0, tzinfo=timezone.utc),
        "updated_at": datetime(2024, 1, 15, 10, 0, 0, tzinfo=timezone.utc),
        "author": "octocat",
        "url": "https://github.com/acme/widgets/pull/7",
        "repository": "acme/widgets",
        "base_branch": "main",
        "head_branch": "feature/gadget",
        "requested_reviewers": ("bob",),
    }
    fields.update(overrides)
    return PullRequestItem(**fields)


def make_policy(**overrides: Any) -> SyncPolicy:
    """Build an issue sync policy with sensible defaults."""
    fields: dict[str, Any] = {
        "repository": "acme/widgets",
        "kind": ItemKind.ISSUE,
        "update_mode": UpdateMode.UPDATE,
        "allow_delete": False,
        "filename_template": "Issue - {number}",
    }
    fields.update(overrides)
    return SyncPolicy(**fields)
