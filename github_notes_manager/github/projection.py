"""Projects githubkit payloads into the remote item variants used for templating."""

from typing import Any

from githubkit.utils import UNSET

from github_notes_manager.schemas.items import ItemComment, IssueItem, PullRequestItem


def _field(payload: Any, name: str, default: Any = None) -> Any:
    """Read a field of a githubkit model, treating unset and null values as missing."""
    value = getattr(payload, name, default)
    if value is UNSET or value is None:
        return default
    return value


def _login(user: Any) -> str | None:
    return _field(user, "login") if user is not None else None


def _logins(users: Any) -> tuple[str, ...]:
    return tuple(login for login in (_login(user) for user in users or ()) if login)


def _label_names(labels: Any) -> tuple[str, ...]:
    names = []
    for label in labels or ():
        name = label if isinstance(label, str) else _field(label, "name")
        if name:
            names.append(name)
    return tuple(names)


def _milestone_title(milestone: Any) -> str | None:
    return _field(milestone, "title") if milestone is not None else None


def is_pull_request_payload(issue: Any) -> bool:
    """Whether an entry of the issues listing is actually a pull request."""
    return _field(issue, "pull_request") is not None


def project_comment(comment: Any, is_review_comment: bool = False) -> ItemComment:
    """Project an issue comment or pull request review comment."""
    return ItemComment(
        author=_login(_field(comment, "user")),
        body=_field(comment, "body"),
        created_at=_field(comment, "created_at"),
        path=_field(comment, "path") if is_review_comment else None,
        line=_field(comment, "line") if is_review_comment else None,
        is_review_comment=is_review_comment,
    )


def project_issue(issue: Any, repository: str, comments: tuple[ItemComment, ...] = ()) -> IssueItem:
    """Project a githubkit issue into an ``IssueItem``."""
    return IssueItem(
        number=_field(issue, "number"),
        title=_field(issue, "title", ""),
        body=_field(issue, "body"),
        state=_field(issue, "state", "open"),
        created_at=_field(issue, "created_at"),
        updated_at=_field(issue, "updated_at"),
        closed_at=_field(issue, "closed_at"),
        author=_login(_field(issue, "user")),
        labels=_label_names(_field(issue, "labels")),
        assignees=_logins(_field(issue, "assignees")),
        url=_field(issue, "html_url"),
        repository=repository,
        milestone=_milestone_title(_field(issue, "milestone")),
        locked=bool(_field(issue, "locked", False)),
        lock_reason=_field(issue, "active_lock_reason"),
        comments=comments,
    )


def project_pull_request(pull_request: Any, repository: str, comments: tuple[ItemComment, ...] = ()) -> PullRequestItem:
    """Project a githubkit pull request (full or simple) into a ``PullRequestItem``."""
    merged_at = _field(pull_request, "merged_at")
    return PullRequestItem(
        number=_field(pull_request, "number"),
        title=_field(pull_request, "title", ""),
        body=_field(pull_request, "body"),
        state=_field(pull_request, "state", "open"),
        created_at=_field(pull_request, "created_at"),
        updated_at=_field(pull_request, "updated_at"),
        closed_at=_field(pull_request, "closed_at"),
        author=_login(_field(pull_request, "user")),
        labels=_label_names(_field(pull_request, "labels")),
        assignees=_logins(_field(pull_request, "assignees")),
        url=_field(pull_request, "html_url"),
        repository=repository,
        milestone=_milestone_title(_field(pull_request, "milestone")),
        locked=bool(_field(pull_request, "locked", False)),
        lock_reason=_field(pull_request, "active_lock_reason"),
        comments=comments,
        merged=bool(_field(pull_request, "merged", merged_at is not None)),
        merged_at=merged_at,
        mergeable=_field(pull_request, "mergeable"),
        base_branch=_field(_field(pull_request, "base"), "ref"),
        head_branch=_field(_field(pull_request, "head"), "ref"),
        requested_reviewers=_logins(_field(pull_request, "requested_reviewers")),
    )
