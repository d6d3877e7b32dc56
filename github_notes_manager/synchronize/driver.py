"""Orchestrates the synchronization of item documents."""

import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

import structlog

from github_notes_manager.configuration.models import SyncConfigurationModel, SyncPolicy, build_sync_policy
from github_notes_manager.documents.store import DocumentStoreBase
from github_notes_manager.schemas.items import ItemKind, RemoteItemBase
from github_notes_manager.synchronize.cleanup import cleanup_collection_documents, cleanup_disabled_collection, remove_empty_folders
from github_notes_manager.synchronize.documents import sync_collection_documents
from github_notes_manager.synchronize.models import LifecycleOutcome
from github_notes_manager.synchronize.results import CollectionSynchronizationResult, SyncRunResult

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

SYNCHRONIZED_KINDS = (ItemKind.ISSUE, ItemKind.PULL_REQUEST)


class ItemDataSource(Protocol):
    """Protocol for the collaborator supplying remote items."""

    async def list_items(self, repository: str, kind: ItemKind, retention_days: int, include_comments: bool = False) -> list[RemoteItemBase]:
        """List the items of a repository that should be synchronized, with their comments if requested."""
        ...

    async def list_snapshot(self, repository: str, kind: ItemKind, retention_days: int) -> list[RemoteItemBase]:
        """List every item of a repository that is open or was closed within the retention window."""
        ...


async def run_collection_sync(
    policy: SyncPolicy,
    data_source: ItemDataSource,
    store: DocumentStoreBase,
    now: datetime | None = None,
) -> CollectionSynchronizationResult:
    """Synchronize one collection: delete documents that aged out, then create, update or append the rest."""
    result = CollectionSynchronizationResult(policy.repository, policy.kind)

    snapshot = await data_source.list_snapshot(policy.repository, policy.kind, policy.retention_days)
    result.lifecycle = await cleanup_collection_documents(snapshot, policy, store, now=now)
    if any(r.outcome == LifecycleOutcome.DELETED for r in result.lifecycle):
        result.removed_folders = await remove_empty_folders(store, policy)

    items = await data_source.list_items(policy.repository, policy.kind, policy.retention_days, include_comments=policy.include_comments)
    result.documents = await sync_collection_documents(items, policy, store)
    return result


async def run_sync_workflow(
    configuration: SyncConfigurationModel,
    vault_root: Path,
    data_source: ItemDataSource,
    store: DocumentStoreBase,
    now: datetime | None = None,
) -> SyncRunResult:
    """Run one synchronization pass over every configured repository and item kind.

    Collections are processed one after another. A collection whose items cannot
    be retrieved is reported with an error and the run continues with the next.
    """
    now = now or datetime.now(timezone.utc)
    run_result = SyncRunResult()
    start_time = time.time()
    logger.info("Starting synchronization run", repositories=len(configuration.repositories), vault_root=str(vault_root))

    for repository in configuration.repositories:
        for kind in SYNCHRONIZED_KINDS:
            settings = configuration.effective_settings(repository, kind)
            try:
                policy = build_sync_policy(configuration, repository, kind, vault_root)
                if settings.enabled:
                    collection = await run_collection_sync(policy, data_source, store, now=now)
                else:
                    logger.debug("Collection is disabled, cleaning up its documents", repository=repository.repository, kind=kind.value)
                    collection = CollectionSynchronizationResult(repository.repository, kind)
                    collection.lifecycle = await cleanup_disabled_collection(policy, store)
                    collection.removed_folders = await remove_empty_folders(store, policy)
            except Exception as exc:
                logger.exception("Failed to synchronize collection", repository=repository.repository, kind=kind.value)
                collection = CollectionSynchronizationResult(repository.repository, kind, errors=[str(exc)])
            run_result.collections.append(collection)

    logger.info(
        "Finished synchronization run",
        duration=round(time.time() - start_time, 2),
        collections=len(run_result.collections),
        has_failures=run_result.has_failures,
    )
    return run_result
