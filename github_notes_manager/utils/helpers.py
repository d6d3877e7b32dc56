"""General utility functions and helper classes."""

import re


def slugify_field_name(name: str) -> str:
    """Slugify a custom field name for use as a template variable (lowercase, underscores, alphanum only)."""
    slug = name.lower()
    slug = re.sub(r"[^a-z0-9]+", "_", slug)
    slug = re.sub(r"_+", "_", slug)
    slug = slug.strip("_")
    return slug


def split_repository(repository: str | None) -> tuple[str, str]:
    """Splits a repository in 'owner/repo' format into owner and repository name."""
    if repository is None:
        raise ValueError("A repository in 'owner/repo' format is required.")
    repository = repository.strip("/")
    parts = repository.split("/")
    if len(parts) != 2 or not all(parts):
        raise ValueError("Repository must be in the format 'owner/repo' with no leading/trailing slashes or extra parts.")
    owner, name = parts
    return owner, name


def clean_path_segment(segment: str) -> str:
    """Make a single path segment safe to nest in a folder path."""
    return segment.replace("/", "-").strip()
