"""Fixtures for unit tests."""

from pathlib import Path
from typing import Generator

import pytest
import structlog

from github_notes_manager.configuration.models import SyncPolicy
from github_notes_manager.documents.store import FileSystemDocumentStore
from github_notes_manager.schemas.items import IssueItem
from tests.unit.utils import make_issue, make_policy


@pytest.fixture(autouse=True)
def configure_structlog_for_caplog() -> Generator[None, None, None]:
    """Configure structlog for use with caplog."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    yield
    structlog.reset_defaults()


@pytest.fixture
def issue() -> IssueItem:
    """An open issue."""
    return make_issue()


@pytest.fixture
def policy() -> SyncPolicy:
    """An issue policy in update mode."""
    return make_policy()


@pytest.fixture
def store(tmp_path: Path) -> FileSystemDocumentStore:
    """A document store rooted in a temporary directory."""
    return FileSystemDocumentStore(tmp_path)
