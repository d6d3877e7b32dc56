"""Utility modules for shared functionality."""

from .constants import (
    DEFAULT_ANCHOR_LENGTH,
    DEFAULT_RETENTION_DAYS,
    DEFAULT_TRAILING_CONTEXT_LENGTH,
    PERSIST_END_PATTERN,
    PERSIST_START_PATTERN,
)
from .helpers import slugify_field_name, split_repository

__all__ = [
    "PERSIST_START_PATTERN",
    "PERSIST_END_PATTERN",
    "DEFAULT_ANCHOR_LENGTH",
    "DEFAULT_TRAILING_CONTEXT_LENGTH",
    "DEFAULT_RETENTION_DAYS",
    "slugify_field_name",
    "split_repository",
]
