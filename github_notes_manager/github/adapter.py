"""Remote item data source backed by the githubkit library."""

from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Self

import structlog
from githubkit import Response

from github_notes_manager.github.client import GitHubClient, get_github_pat_client
from github_notes_manager.github.projection import (
    is_pull_request_payload,
    project_comment,
    project_issue,
    project_pull_request,
)
from github_notes_manager.schemas.items import ItemComment, ItemKind, RemoteItemBase
from github_notes_manager.utils.helpers import split_repository

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


class GitHubKitDataSource:
    """Supplies issues and pull requests of GitHub repositories as remote items."""

    def __init__(self, client: GitHubClient, per_page: int = 100) -> None:
        """Initialize the data source with an already-initialized client."""
        self.client = client
        self.per_page = per_page
        self._snapshots: dict[tuple[str, ItemKind, int], list[RemoteItemBase]] = {}

    @classmethod
    async def create(cls, github_pat_token: str | None, github_api_url: str = "https://api.github.com") -> Self:
        """Create a new data source authenticated with a personal access token."""
        logger.info("Creating client for GitHub instance", github_api_url=github_api_url)
        client = await get_github_pat_client(github_pat_token, github_api_url)
        return cls(client)

    async def _paginate(
        self,
        method: Callable[..., Awaitable[Response[Any]]],
        stop: Callable[[Any], bool] | None = None,
        **kwargs: Any,
    ) -> list[Any]:
        """Collect every page of a listing endpoint, optionally stopping at the first entry matching ``stop``."""
        entries: list[Any] = []
        page: int = 1
        while True:
            response = await method(per_page=self.per_page, page=page, **kwargs)
            batch = response.parsed_data
            if not batch:
                break
            for entry in batch:
                if stop is not None and stop(entry):
                    return entries
                entries.append(entry)
            if len(batch) < self.per_page:
                break
            page += 1
        return entries

    async def _list_issues(self, owner: str, name: str, cutoff: datetime) -> list[Any]:
        open_issues = await self._paginate(self.client.rest.issues.async_list_for_repo, owner=owner, repo=name, state="open")
        closed_issues = await self._paginate(
            self.client.rest.issues.async_list_for_repo, owner=owner, repo=name, state="closed", since=cutoff.isoformat()
        )
        recently_closed = [issue for issue in closed_issues if issue.closed_at is None or issue.closed_at >= cutoff]
        return [issue for issue in open_issues + recently_closed if not is_pull_request_payload(issue)]

    async def _list_pull_requests(self, owner: str, name: str, cutoff: datetime) -> list[Any]:
        open_pull_requests = await self._paginate(self.client.rest.pulls.async_list, owner=owner, repo=name, state="open")
        # Sorted by most recent update, so everything after the first stale entry is stale too
        closed_pull_requests = await self._paginate(
            self.client.rest.pulls.async_list,
            stop=lambda pull_request: pull_request.updated_at < cutoff,
            owner=owner,
            repo=name,
            state="closed",
            sort="updated",
            direction="desc",
        )
        recently_closed = [pr for pr in closed_pull_requests if pr.closed_at is None or pr.closed_at >= cutoff]
        return open_pull_requests + recently_closed

    async def list_snapshot(self, repository: str, kind: ItemKind, retention_days: int) -> list[RemoteItemBase]:
        """List every item of a repository that is open or was closed within the retention window."""
        key = (repository, kind, retention_days)
        if key in self._snapshots:
            return self._snapshots[key]

        owner, name = split_repository(repository)
        cutoff = datetime.now(timezone.utc) - timedelta(days=retention_days)
        logger.info("Fetching items from GitHub", repository=repository, kind=kind.value, cutoff=cutoff.isoformat())
        if kind == ItemKind.ISSUE:
            items: list[RemoteItemBase] = [project_issue(issue, repository) for issue in await self._list_issues(owner, name, cutoff)]
        elif kind == ItemKind.PULL_REQUEST:
            items = [project_pull_request(pr, repository) for pr in await self._list_pull_requests(owner, name, cutoff)]
        else:
            raise ValueError(f"Unsupported item kind for the GitHub data source: {kind.value}")
        logger.info("Fetched items from GitHub", repository=repository, kind=kind.value, count=len(items))
        self._snapshots[key] = items
        return items

    async def list_comments(self, repository: str, kind: ItemKind, number: int) -> tuple[ItemComment, ...]:
        """List the comments of an item, including review comments for pull requests."""
        owner, name = split_repository(repository)
        comments = [
            project_comment(comment)
            for comment in await self._paginate(self.client.rest.issues.async_list_comments, owner=owner, repo=name, issue_number=number)
        ]
        if kind == ItemKind.PULL_REQUEST:
            review_comments = await self._paginate(self.client.rest.pulls.async_list_review_comments, owner=owner, repo=name, pull_number=number)
            comments.extend(project_comment(comment, is_review_comment=True) for comment in review_comments)
        return tuple(comments)

    async def list_items(self, repository: str, kind: ItemKind, retention_days: int, include_comments: bool = False) -> list[RemoteItemBase]:
        """List the items to synchronize: the current snapshot, with comments if requested."""
        items = await self.list_snapshot(repository, kind, retention_days)
        if not include_comments:
            return items
        with_comments: list[RemoteItemBase] = []
        for item in items:
            comments = await self.list_comments(repository, kind, int(item.number))
            with_comments.append(item.model_copy(update={"comments": comments}))
        return with_comments
