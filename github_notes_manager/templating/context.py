"""Builds the flat template context for a remote item."""

from datetime import datetime, timezone
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Mapping

from github_notes_manager.schemas.items import ItemComment, ProjectItem, PullRequestItem, RemoteItemBase
from github_notes_manager.templating.escape import EscapeMode, escape_body, escape_yaml_string, yaml_inline_list
from github_notes_manager.utils.constants import FRONTMATTER_TIMESTAMP_FORMAT
from github_notes_manager.utils.helpers import slugify_field_name

if TYPE_CHECKING:
    from github_notes_manager.configuration.models import SyncPolicy

TemplateContext = Mapping[str, Any]


def format_timestamp(value: datetime | None, date_format: str) -> str:
    """Format a timestamp for display; an empty format yields ISO-8601."""
    if value is None:
        return ""
    if not date_format:
        return value.isoformat()
    return value.strftime(date_format)


def format_frontmatter_timestamp(value: datetime) -> str:
    """Format a timestamp the way it is stored in frontmatter (UTC, second precision)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(FRONTMATTER_TIMESTAMP_FORMAT)


def format_comments(
    comments: tuple[ItemComment, ...] | list[ItemComment],
    escape_mode: EscapeMode,
    date_format: str,
    escape_hashes: bool = False,
) -> str:
    """Format a comments section, oldest first."""
    if not comments:
        return ""

    section = "\n## Comments\n\n"
    for comment in sorted(comments, key=lambda c: c.created_at):
        created_at = format_timestamp(comment.created_at, date_format)
        username = comment.author or "Unknown User"
        if comment.is_review_comment:
            section += f"### {username} commented on line {comment.line or 'N/A'} of file `{comment.path or 'unknown'}` ({created_at}):\n\n"
        else:
            section += f"### {username} commented ({created_at}):\n\n"
        section += f"{escape_body(comment.body or 'No content', escape_mode, escape_hashes)}\n\n---\n\n"
    return section


def _bullet_list(values: tuple[str, ...]) -> str:
    return "\n".join(f"- {value}" for value in values)


def build_template_context(item: RemoteItemBase, policy: "SyncPolicy", escape: bool = True) -> TemplateContext:
    """Build the immutable template context for an item.

    Collections are pre-joined into scalar variants (comma list, bullet list,
    hash tags, YAML inline list). Values placed in double-quoted frontmatter
    scalars also get a ``_yaml`` variant. With ``escape=False`` the body and
    title are passed through unescaped, which is what filename rendering uses.
    """
    mode = policy.escape_mode if escape else EscapeMode.DISABLED
    escape_hashes = policy.escape_hash_tags and escape

    owner, _, repo_name = item.repository.partition("/")
    body = escape_body(item.body, mode, escape_hashes) if item.body else ""

    context: dict[str, Any] = {
        "title": escape_body(item.title, mode) if escape else item.title,
        "title_yaml": escape_yaml_string(item.title),
        "number": item.number,
        "status": item.status,
        "status_yaml": escape_yaml_string(item.status),
        "state": item.state,
        "author": item.author or "",
        "author_yaml": escape_yaml_string(item.author or ""),
        "body": body,
        "url": item.url or "",
        "url_yaml": escape_yaml_string(item.url or ""),
        "repository": item.repository,
        "owner": owner,
        "repoName": repo_name,
        "type": item.kind,  # type: ignore[attr-defined]
        "assignee": item.assignees[0] if item.assignees else "",
        "assignees": ", ".join(item.assignees),
        "assignees_list": _bullet_list(item.assignees),
        "assignees_yaml": yaml_inline_list(item.assignees),
        "labels": ", ".join(item.labels),
        "labels_list": _bullet_list(item.labels),
        "labels_hash": " ".join(f"#{label.replace(' ', '-')}" for label in item.labels),
        "labels_yaml": yaml_inline_list(item.labels),
        "created": format_timestamp(item.created_at, policy.date_format),
        "updated": format_timestamp(item.updated_at, policy.date_format),
        "closed": format_timestamp(item.closed_at, policy.date_format),
        "created_iso": format_frontmatter_timestamp(item.created_at),
        "updated_iso": format_frontmatter_timestamp(item.updated_at),
        "milestone": item.milestone or "",
        "milestone_yaml": escape_yaml_string(item.milestone or ""),
        "commentsCount": len(item.comments),
        "isLocked": item.locked,
        "lockReason": item.lock_reason or "",
        "comments": format_comments(item.comments, mode, policy.date_format, escape_hashes) if policy.include_comments else "",
        "updateMode": policy.update_mode.value,
        "allowDelete": policy.allow_delete,
    }

    if isinstance(item, PullRequestItem):
        context.update(
            {
                "mergedAt": format_timestamp(item.merged_at, policy.date_format),
                "mergeable": item.mergeable,
                "merged": item.merged,
                "baseBranch": item.base_branch or "",
                "baseBranch_yaml": escape_yaml_string(item.base_branch or ""),
                "headBranch": item.head_branch or "",
                "headBranch_yaml": escape_yaml_string(item.head_branch or ""),
                "requestedReviewers_yaml": yaml_inline_list(item.requested_reviewers),
            }
        )
    elif isinstance(item, ProjectItem):
        context.update(
            {
                "project": item.project_title or "",
                "project_number": item.project_number,
                "project_url": item.project_url or "",
            }
        )
        for field_name, value in item.custom_fields.items():
            slug = slugify_field_name(field_name)
            if slug:
                context[f"field_{slug}"] = ", ".join(map(str, value)) if isinstance(value, (list, tuple)) else value

    return MappingProxyType(context)
