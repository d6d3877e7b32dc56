"""Unit tests for the lifecycle reconciler."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from github_notes_manager.documents.store import FileSystemDocumentStore
from github_notes_manager.schemas.frontmatter import DocumentFrontmatter
from github_notes_manager.schemas.items import IssueItem
from github_notes_manager.synchronize.cleanup import (
    classify_document,
    cleanup_collection_documents,
    cleanup_disabled_collection,
    default_scheme_folders,
    remove_empty_folders,
    resolve_allow_delete,
)
from github_notes_manager.synchronize.models import LifecycleDecision, LifecycleOutcome
from tests.unit.utils import make_issue, make_policy

NOW = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
FOLDER = "GitHub/Issues/acme/widgets"


def document(number: int | None = None, allow_delete: str | None = None) -> str:
    """A minimal synchronized document."""
    lines = ["---"]
    if number is not None:
        lines.append(f"number: {number}")
    lines.append('status: "open"')
    if allow_delete is not None:
        lines.append(f"allowDelete: {allow_delete}")
    lines.extend(["---", "", "Body", ""])
    return "\n".join(lines)


class FailingDeleteStore(FileSystemDocumentStore):
    """A filesystem store that refuses to delete documents."""

    async def delete_document(self, path: str) -> None:
        """Always fail."""
        raise PermissionError(f"Permission denied: {path}")


@pytest.mark.parametrize(
    "frontmatter,filename,snapshot,expected",
    [
        pytest.param(DocumentFrontmatter(number="42"), "Issue - 42.md", [make_issue()], ("42", LifecycleDecision.RETAIN_OPEN), id="open_item"),
        pytest.param(
            DocumentFrontmatter(number="42"),
            "Issue - 42.md",
            [make_issue(state="closed", closed_at=NOW - timedelta(days=5))],
            ("42", LifecycleDecision.RETAIN_RECENTLY_CLOSED),
            id="recently_closed",
        ),
        pytest.param(
            DocumentFrontmatter(number="42"),
            "Issue - 42.md",
            [make_issue(state="closed", closed_at=NOW - timedelta(days=31))],
            ("42", LifecycleDecision.DELETE_CLOSED_EXPIRED),
            id="closed_past_retention",
        ),
        pytest.param(
            DocumentFrontmatter(number="42"),
            "Issue - 42.md",
            [make_issue(state="closed")],
            ("42", LifecycleDecision.RETAIN_RECENTLY_CLOSED),
            id="closed_without_timestamp_is_retained",
        ),
        pytest.param(DocumentFrontmatter(number="42"), "Issue - 42.md", [], ("42", LifecycleDecision.DELETE_ABSENT), id="absent_item"),
        pytest.param(DocumentFrontmatter(), "Issue - 42.md", [make_issue()], ("42", LifecycleDecision.RETAIN_OPEN), id="identifier_from_filename"),
        pytest.param(DocumentFrontmatter(number="42"), "Renamed by hand.md", [make_issue()], ("42", LifecycleDecision.RETAIN_OPEN), id="frontmatter_wins_over_filename"),
        pytest.param(DocumentFrontmatter(), "My notes.md", [make_issue()], (None, LifecycleDecision.UNRESOLVED), id="unresolved"),
    ],
)
def test_classify_document(
    frontmatter: DocumentFrontmatter, filename: str, snapshot: list[IssueItem], expected: tuple[str | None, LifecycleDecision]
) -> None:
    """Test lifecycle classification of a single document."""
    items_by_identifier = {item.identifier: item for item in snapshot}

    assert classify_document(frontmatter, filename, items_by_identifier, make_policy(), NOW) == expected


@pytest.mark.parametrize(
    "document_flag,collection_default,expected",
    [
        pytest.param(None, False, False, id="collection_default_false"),
        pytest.param(None, True, True, id="collection_default_true"),
        pytest.param(True, False, True, id="document_allows_over_collection"),
        pytest.param(False, True, False, id="document_forbids_over_collection"),
    ],
)
def test_resolve_allow_delete(document_flag: bool | None, collection_default: bool, expected: bool) -> None:
    """Test that the document's own flag wins over the collection default."""
    frontmatter = DocumentFrontmatter(allowDelete=document_flag)

    assert resolve_allow_delete(frontmatter, make_policy(allow_delete=collection_default)) is expected


@pytest.mark.asyncio
async def test_cleanup_deletes_only_permitted_documents(store: FileSystemDocumentStore) -> None:
    """Test deletion gating for documents of absent items."""
    await store.write_document(f"{FOLDER}/Issue - 1.md", document(1))
    await store.write_document(f"{FOLDER}/Issue - 2.md", document(2, allow_delete="true"))
    await store.write_document(f"{FOLDER}/Issue - 42.md", document(42, allow_delete="true"))

    results = await cleanup_collection_documents([make_issue()], make_policy(allow_delete=False), store, now=NOW)

    outcomes = {result.identifier: result.outcome for result in results}
    assert outcomes == {
        "1": LifecycleOutcome.DELETION_NOT_PERMITTED,
        "2": LifecycleOutcome.DELETED,
        "42": LifecycleOutcome.RETAINED,
    }
    assert await store.list_documents(FOLDER) == [f"{FOLDER}/Issue - 1.md", f"{FOLDER}/Issue - 42.md"]


@pytest.mark.asyncio
async def test_cleanup_document_flag_overrides_permissive_collection(store: FileSystemDocumentStore) -> None:
    """Test that a document can opt out of deletion when the collection allows it."""
    await store.write_document(f"{FOLDER}/Issue - 1.md", document(1, allow_delete="false"))
    await store.write_document(f"{FOLDER}/Issue - 2.md", document(2))

    results = await cleanup_collection_documents([], make_policy(allow_delete=True), store, now=NOW)

    assert [(result.identifier, result.outcome) for result in results] == [
        ("1", LifecycleOutcome.DELETION_NOT_PERMITTED),
        ("2", LifecycleOutcome.DELETED),
    ]


@pytest.mark.asyncio
async def test_cleanup_expired_and_recent_closures(store: FileSystemDocumentStore) -> None:
    """Test that only closures older than the retention window are deleted."""
    await store.write_document(f"{FOLDER}/Issue - 1.md", document(1))
    await store.write_document(f"{FOLDER}/Issue - 2.md", document(2))
    snapshot = [
        make_issue(number=1, state="closed", closed_at=NOW - timedelta(days=10)),
        make_issue(number=2, state="closed", closed_at=NOW - timedelta(days=10, seconds=1)),
    ]

    results = await cleanup_collection_documents(snapshot, make_policy(allow_delete=True, retention_days=10), store, now=NOW)

    assert [(result.identifier, result.decision, result.outcome) for result in results] == [
        ("1", LifecycleDecision.RETAIN_RECENTLY_CLOSED, LifecycleOutcome.RETAINED),
        ("2", LifecycleDecision.DELETE_CLOSED_EXPIRED, LifecycleOutcome.DELETED),
    ]


@pytest.mark.asyncio
async def test_cleanup_never_deletes_unresolved_documents(store: FileSystemDocumentStore) -> None:
    """Test that documents whose item cannot be determined are left alone."""
    await store.write_document(f"{FOLDER}/Meeting notes.md", "# Notes\n")

    results = await cleanup_collection_documents([], make_policy(allow_delete=True), store, now=NOW)

    assert [(result.decision, result.outcome) for result in results] == [(LifecycleDecision.UNRESOLVED, LifecycleOutcome.RETAINED)]
    assert await store.document_exists(f"{FOLDER}/Meeting notes.md")


@pytest.mark.asyncio
async def test_cleanup_reports_delete_failures(tmp_path: Path) -> None:
    """Test that a failed deletion is reported and does not abort the pass."""
    store = FailingDeleteStore(tmp_path)
    await store.write_document(f"{FOLDER}/Issue - 1.md", document(1))
    await store.write_document(f"{FOLDER}/Issue - 2.md", document(2))

    results = await cleanup_collection_documents([], make_policy(allow_delete=True), store, now=NOW)

    assert [result.outcome for result in results] == [LifecycleOutcome.FAILED, LifecycleOutcome.FAILED]
    assert "Permission denied" in (results[0].error or "")


@pytest.mark.asyncio
async def test_cleanup_disabled_collection(store: FileSystemDocumentStore) -> None:
    """Test that a disabled collection only loses documents that explicitly allow deletion."""
    await store.write_document(f"{FOLDER}/Issue - 1.md", document(1, allow_delete="true"))
    await store.write_document(f"{FOLDER}/Issue - 2.md", document(2))

    results = await cleanup_disabled_collection(make_policy(allow_delete=True), store)

    assert [(result.identifier, result.outcome) for result in results] == [
        ("1", LifecycleOutcome.DELETED),
        ("2", LifecycleOutcome.DELETION_NOT_PERMITTED),
    ]


@pytest.mark.asyncio
async def test_cleanup_reports_unreadable_documents(store: FileSystemDocumentStore, tmp_path: Path) -> None:
    """Test that a document that cannot be decoded is reported and the pass continues."""
    (tmp_path / FOLDER).mkdir(parents=True)
    (tmp_path / FOLDER / "Issue - 1.md").write_bytes(b"\xff\xfe")
    await store.write_document(f"{FOLDER}/Issue - 2.md", document(2))

    results = await cleanup_collection_documents([], make_policy(allow_delete=True), store, now=NOW)

    assert [(result.path, result.decision, result.outcome) for result in results] == [
        (f"{FOLDER}/Issue - 1.md", LifecycleDecision.UNRESOLVED, LifecycleOutcome.FAILED),
        (f"{FOLDER}/Issue - 2.md", LifecycleDecision.DELETE_ABSENT, LifecycleOutcome.DELETED),
    ]
    assert (tmp_path / FOLDER / "Issue - 1.md").exists()


@pytest.mark.asyncio
async def test_cleanup_treats_invalid_timestamp_as_missing_frontmatter(store: FileSystemDocumentStore) -> None:
    """Test that a document with an out-of-range timestamp falls back to its filename."""
    await store.write_document(f"{FOLDER}/Issue - 1.md", "---\nnumber: 1\nallowDelete: false\nupdated: 2024-13-45\n---\n")

    results = await cleanup_collection_documents([], make_policy(allow_delete=True), store, now=NOW)

    assert [(result.identifier, result.outcome) for result in results] == [("1", LifecycleOutcome.DELETED)]


@pytest.mark.asyncio
async def test_cleanup_disabled_collection_reports_unreadable_documents(store: FileSystemDocumentStore, tmp_path: Path) -> None:
    """Test that a disabled collection keeps documents it cannot read."""
    (tmp_path / FOLDER).mkdir(parents=True)
    (tmp_path / FOLDER / "Issue - 1.md").write_bytes(b"\xff\xfe")

    results = await cleanup_disabled_collection(make_policy(), store)

    assert [result.outcome for result in results] == [LifecycleOutcome.FAILED]
    assert (tmp_path / FOLDER / "Issue - 1.md").exists()


def test_default_scheme_folders() -> None:
    """Test the folders eligible for removal, deepest first."""
    assert default_scheme_folders(make_policy()) == [FOLDER, "GitHub/Issues/acme"]
    assert default_scheme_folders(make_policy(base_folder="/Vault/GitHub/Issues/")) == [
        "Vault/GitHub/Issues/acme/widgets",
        "Vault/GitHub/Issues/acme",
    ]
    assert default_scheme_folders(make_policy(custom_folder="Work/Widgets")) == []


@pytest.mark.asyncio
async def test_remove_empty_folders_stops_at_base_folder(store: FileSystemDocumentStore, tmp_path: Path) -> None:
    """Test that empty scheme folders are removed bottom-up, keeping the base folder."""
    await store.create_folder(FOLDER)

    removed = await remove_empty_folders(store, make_policy())

    assert removed == [FOLDER, "GitHub/Issues/acme"]
    assert (tmp_path / "GitHub" / "Issues").is_dir()


@pytest.mark.asyncio
async def test_remove_empty_folders_keeps_non_empty_owner(store: FileSystemDocumentStore) -> None:
    """Test that removal stops at the first folder that still holds entries."""
    await store.create_folder(FOLDER)
    await store.write_document("GitHub/Issues/acme/gadgets/Issue - 1.md", document(1))

    removed = await remove_empty_folders(store, make_policy())

    assert removed == [FOLDER]
    assert await store.document_exists("GitHub/Issues/acme/gadgets/Issue - 1.md")


@pytest.mark.asyncio
async def test_remove_empty_folders_ignores_custom_folders(store: FileSystemDocumentStore, tmp_path: Path) -> None:
    """Test that a user-chosen folder is never removed, even when empty."""
    await store.create_folder("Work/Widgets")

    removed = await remove_empty_folders(store, make_policy(custom_folder="Work/Widgets"))

    assert removed == []
    assert (tmp_path / "Work" / "Widgets").is_dir()
