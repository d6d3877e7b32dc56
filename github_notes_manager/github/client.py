"""Sets up the authenticated githubkit client."""

from typing import TypeAlias

from githubkit import GitHub
from githubkit.auth import TokenAuthStrategy

GitHubClient: TypeAlias = GitHub[TokenAuthStrategy]


async def get_github_pat_client(github_pat_token: str | None, github_api_url: str) -> GitHubClient:
    """Returns an authenticated GitHub client using GitHub PAT credentials.

    Supports a custom base URL for GitHub Enterprise Server (GHES).
    """
    if not github_pat_token:
        raise RuntimeError("GitHub PAT authentication requires GITHUB_PAT_TOKEN to be set.")
    # Disable HTTP caching to always get fresh data
    return GitHub(auth=TokenAuthStrategy(github_pat_token), base_url=github_api_url, http_cache=False)
