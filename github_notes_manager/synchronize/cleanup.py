"""Contains the lifecycle reconciler deciding which documents may be deleted.

A document is eligible for deletion when its item is absent from the current
snapshot, or when the item was closed longer ago than the retention window.
Eligible documents are only deleted when the resolved permission flag allows
it: the document's own ``allowDelete`` frontmatter value if present, else the
collection default.
"""

from datetime import datetime, timedelta, timezone
from pathlib import PurePosixPath

import structlog

from github_notes_manager.configuration.models import SyncPolicy
from github_notes_manager.documents.store import DocumentStoreBase, load_local_document
from github_notes_manager.schemas.frontmatter import DocumentFrontmatter
from github_notes_manager.schemas.items import RemoteItemBase
from github_notes_manager.synchronize.models import LifecycleDecision, LifecycleOutcome
from github_notes_manager.synchronize.results import DocumentLifecycleResult
from github_notes_manager.templating.engine import extract_identifier_from_filename

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


def resolve_allow_delete(frontmatter: DocumentFrontmatter, policy: SyncPolicy) -> bool:
    """Resolve whether a document may be deleted: the document's own flag wins over the collection default."""
    if frontmatter.allow_delete is not None:
        return frontmatter.allow_delete
    return policy.allow_delete


def recover_identifier(frontmatter: DocumentFrontmatter, filename: str, policy: SyncPolicy) -> str | None:
    """Recover the item identifier of a document from its frontmatter, else from its filename."""
    if frontmatter.number:
        return frontmatter.number
    return extract_identifier_from_filename(filename, policy.filename_template)


def classify_document(
    frontmatter: DocumentFrontmatter,
    filename: str,
    items_by_identifier: dict[str, RemoteItemBase],
    policy: SyncPolicy,
    now: datetime,
) -> tuple[str | None, LifecycleDecision]:
    """Classify an existing document against the current snapshot of its collection."""
    identifier = recover_identifier(frontmatter, filename, policy)
    if identifier is None:
        return None, LifecycleDecision.UNRESOLVED

    item = items_by_identifier.get(identifier)
    if item is None:
        return identifier, LifecycleDecision.DELETE_ABSENT
    if not item.is_closed:
        return identifier, LifecycleDecision.RETAIN_OPEN
    if item.closed_at is None:
        return identifier, LifecycleDecision.RETAIN_RECENTLY_CLOSED

    closed_at = item.closed_at if item.closed_at.tzinfo else item.closed_at.replace(tzinfo=timezone.utc)
    if closed_at < now - timedelta(days=policy.retention_days):
        return identifier, LifecycleDecision.DELETE_CLOSED_EXPIRED
    return identifier, LifecycleDecision.RETAIN_RECENTLY_CLOSED


async def _delete(store: DocumentStoreBase, path: str, identifier: str | None, decision: LifecycleDecision) -> DocumentLifecycleResult:
    try:
        await store.delete_document(path)
    except OSError as exc:
        logger.error("Failed to delete document", path=path, number=identifier, error=str(exc))
        return DocumentLifecycleResult(path, identifier, decision, LifecycleOutcome.FAILED, error=str(exc))
    logger.info("Deleted document", path=path, number=identifier, reason=decision.value)
    return DocumentLifecycleResult(path, identifier, decision, LifecycleOutcome.DELETED)


async def cleanup_collection_documents(
    snapshot: list[RemoteItemBase],
    policy: SyncPolicy,
    store: DocumentStoreBase,
    now: datetime | None = None,
) -> list[DocumentLifecycleResult]:
    """Delete the documents of a collection whose items are gone or closed past the retention window.

    ``snapshot`` holds every item of the collection that is open or was closed
    within the retention window.
    """
    now = now or datetime.now(timezone.utc)
    items_by_identifier = {item.identifier: item for item in snapshot}
    results: list[DocumentLifecycleResult] = []

    for path in await store.list_documents(policy.folder):
        try:
            document = await load_local_document(store, path)
        except (OSError, ValueError) as exc:
            logger.error("Failed to read document", path=path, error=str(exc))
            results.append(DocumentLifecycleResult(path, None, LifecycleDecision.UNRESOLVED, LifecycleOutcome.FAILED, error=str(exc)))
            continue
        if document is None:
            continue
        frontmatter = document.frontmatter
        identifier, decision = classify_document(frontmatter, document.filename, items_by_identifier, policy, now)

        if decision == LifecycleDecision.UNRESOLVED:
            logger.warning("Could not determine the item of document, consider adding a 'number' frontmatter key", path=path)
            results.append(DocumentLifecycleResult(path, None, decision, LifecycleOutcome.RETAINED))
            continue

        if not decision.is_deletion:
            results.append(DocumentLifecycleResult(path, identifier, decision, LifecycleOutcome.RETAINED))
            continue

        if not resolve_allow_delete(frontmatter, policy):
            logger.info("Document is eligible for deletion but deletion is not permitted", path=path, number=identifier, reason=decision.value)
            results.append(DocumentLifecycleResult(path, identifier, decision, LifecycleOutcome.DELETION_NOT_PERMITTED))
            continue

        results.append(await _delete(store, path, identifier, decision))

    return results


async def cleanup_disabled_collection(policy: SyncPolicy, store: DocumentStoreBase) -> list[DocumentLifecycleResult]:
    """Delete the documents of a collection that is no longer synchronized.

    Only documents whose own frontmatter explicitly allows deletion are removed.
    """
    results: list[DocumentLifecycleResult] = []
    for path in await store.list_documents(policy.folder):
        try:
            document = await load_local_document(store, path)
        except (OSError, ValueError) as exc:
            logger.error("Failed to read document", path=path, error=str(exc))
            results.append(DocumentLifecycleResult(path, None, LifecycleDecision.UNRESOLVED, LifecycleOutcome.FAILED, error=str(exc)))
            continue
        if document is None:
            continue
        frontmatter = document.frontmatter
        if frontmatter.allow_delete:
            results.append(await _delete(store, path, frontmatter.number, LifecycleDecision.DELETE_ABSENT))
        else:
            results.append(DocumentLifecycleResult(path, frontmatter.number, LifecycleDecision.DELETE_ABSENT, LifecycleOutcome.DELETION_NOT_PERMITTED))
    return results


def default_scheme_folders(policy: SyncPolicy) -> list[str]:
    """Folders of the owner/repository scheme below the base folder, deepest first."""
    if policy.uses_custom_folder:
        return []
    base = PurePosixPath(policy.base_folder.strip("/"))
    folder = PurePosixPath(policy.folder)
    folders = []
    while folder != base and folder != folder.parent and base in folder.parents:
        folders.append(folder.as_posix())
        folder = folder.parent
    return folders


async def remove_empty_folders(store: DocumentStoreBase, policy: SyncPolicy) -> list[str]:
    """Remove empty folders of the default path scheme bottom-up, stopping at the first non-empty one.

    The base folder itself and custom folders are never removed.
    """
    removed: list[str] = []
    for folder in default_scheme_folders(policy):
        if not await store.folder_is_empty(folder):
            break
        try:
            await store.remove_folder(folder)
        except OSError as exc:
            logger.warning("Failed to remove empty folder", folder=folder, error=str(exc))
            break
        logger.info("Removed empty folder", folder=folder)
        removed.append(folder)
    return removed
