"""Unit tests for the change detector predicates."""

from datetime import datetime, timedelta, timezone

import pytest

from github_notes_manager.schemas.frontmatter import DocumentFrontmatter
from github_notes_manager.synchronize.change_detection import content_is_stale, status_changed
from tests.unit.utils import make_issue

UPDATED_AT = datetime(2024, 1, 15, 10, 0, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "stored,expected",
    [
        pytest.param(None, True, id="missing_timestamp"),
        pytest.param(UPDATED_AT - timedelta(seconds=1), True, id="older_timestamp"),
        pytest.param(UPDATED_AT, False, id="same_timestamp"),
        pytest.param(UPDATED_AT + timedelta(days=1), False, id="newer_timestamp"),
        pytest.param(datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone(timedelta(hours=2))), False, id="same_instant_other_offset"),
        pytest.param(datetime(2024, 1, 15, 10, 0, 0), False, id="naive_timestamp_is_utc"),
    ],
)
def test_content_is_stale(stored: datetime | None, expected: bool) -> None:
    """Test staleness against the stored timestamp, compared as instants."""
    frontmatter = DocumentFrontmatter(updated=stored)

    assert content_is_stale(frontmatter, make_issue(updated_at=UPDATED_AT)) is expected


def test_content_is_stale_ignores_sub_second_precision() -> None:
    """Test that timestamps equal to the second are not stale."""
    frontmatter = DocumentFrontmatter(updated=UPDATED_AT)

    assert content_is_stale(frontmatter, make_issue(updated_at=UPDATED_AT + timedelta(microseconds=500))) is False


def test_content_is_stale_with_string_comparison_pitfall() -> None:
    """Test a case where naive string comparison would give the wrong answer."""
    frontmatter = DocumentFrontmatter(updated="2024-01-15T11:00:00+02:00")

    assert content_is_stale(frontmatter, make_issue(updated_at=UPDATED_AT)) is True


@pytest.mark.parametrize(
    "stored,current,expected",
    [
        pytest.param(None, "open", True, id="missing_status"),
        pytest.param("open", "open", False, id="same_status"),
        pytest.param("open", "closed", True, id="status_changed"),
        pytest.param("Open", "open", True, id="case_sensitive"),
    ],
)
def test_status_changed(stored: str | None, current: str, expected: bool) -> None:
    """Test status comparison with the stored status."""
    frontmatter = DocumentFrontmatter(status=stored)

    assert status_changed(frontmatter, make_issue(state=current)) is expected
