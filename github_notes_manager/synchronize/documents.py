"""Contains synchronization logic for item documents.

For every remote item the decision engine picks one action:

- ``CREATE`` when no document exists yet.
- ``UPDATE`` when the item's status changed (regardless of update mode), or when
  the update mode is ``update`` and the item changed since the last sync. The
  document is re-rendered and its persist blocks are merged back in.
- ``APPEND`` when the update mode is ``append`` and the item changed since the
  last sync. A short fragment is appended to the existing document.
- ``SKIP`` otherwise.
"""

from dataclasses import dataclass

import jinja2
import structlog

from github_notes_manager.configuration.models import SyncPolicy, UpdateMode
from github_notes_manager.documents.frontmatter import read_frontmatter, stamp_frontmatter
from github_notes_manager.documents.persist import MergeResult, extract_persist_blocks, merge_persist_blocks
from github_notes_manager.documents.store import DocumentStoreBase
from github_notes_manager.schemas.items import RemoteItemBase
from github_notes_manager.synchronize.change_detection import content_is_stale, status_changed
from github_notes_manager.synchronize.exceptions import DocumentWriteError
from github_notes_manager.synchronize.models import DocumentSyncOutcome, SyncDecision
from github_notes_manager.synchronize.results import DocumentSynchronizationResult
from github_notes_manager.templating.context import build_template_context, format_frontmatter_timestamp
from github_notes_manager.templating.engine import render_filename, render_template
from github_notes_manager.templating.escape import escape_yaml_string
from github_notes_manager.templating.layouts import render_append_fragment, render_default_layout
from github_notes_manager.utils.constants import DOCUMENT_EXTENSION

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RenderedDocument:
    """A fully rendered document: its filename (without extension) and its content."""

    filename: str
    content: str


def document_path(policy: SyncPolicy, filename: str) -> str:
    """Path of a document in the store."""
    return f"{policy.folder}/{filename}{DOCUMENT_EXTENSION}"


def frontmatter_stamp(item: RemoteItemBase) -> dict[str, str]:
    """Frontmatter values written after every create, update and append."""
    number = str(item.number) if isinstance(item.number, int) else f'"{escape_yaml_string(item.number)}"'
    return {
        "number": number,
        "status": f'"{escape_yaml_string(item.status)}"',
        "updated": f'"{format_frontmatter_timestamp(item.updated_at)}"',
    }


def render_document(item: RemoteItemBase, policy: SyncPolicy) -> RenderedDocument:
    """Render the filename and content of an item's document.

    Filenames are rendered from an unescaped context. Content is rendered from
    the policy's custom content template, or from the packaged default layout
    when there is none.
    """
    filename_context = build_template_context(item, policy, escape=False)
    fallback = render_template(policy.fallback_filename, filename_context)
    filename = render_filename(policy.filename_template, filename_context, fallback)

    context = build_template_context(item, policy)
    if policy.content_template is not None:
        content = render_template(policy.content_template, context)
    else:
        content = render_default_layout(item.kind, context)  # type: ignore[attr-defined]
    return RenderedDocument(filename=filename, content=content)


async def decide_document_sync_action(existing_content: str | None, item: RemoteItemBase, policy: SyncPolicy) -> tuple[SyncDecision, str]:
    """Compare an existing document with its remote item, and decide whether to create, update, append, or skip.

    Returns the decision together with a human-readable reason.
    """
    if existing_content is None:
        return SyncDecision.CREATE, "document does not exist"

    frontmatter = read_frontmatter(existing_content)
    if status_changed(frontmatter, item):
        return SyncDecision.UPDATE, f"status changed from {frontmatter.status!r} to {item.status!r}"

    if policy.update_mode == UpdateMode.NONE:
        return SyncDecision.SKIP, "update mode is none and status is unchanged"

    if not content_is_stale(frontmatter, item):
        return SyncDecision.SKIP, "document is up to date"

    if policy.update_mode == UpdateMode.APPEND:
        return SyncDecision.APPEND, "item changed since last sync"
    return SyncDecision.UPDATE, "item changed since last sync"


def build_updated_content(existing_content: str, rendered: RenderedDocument, item: RemoteItemBase) -> MergeResult:
    """Merge the persist blocks of an existing document into freshly rendered content."""
    fresh = stamp_frontmatter(rendered.content, frontmatter_stamp(item))
    blocks = extract_persist_blocks(existing_content)
    if not blocks:
        return MergeResult(content=fresh)
    merged = merge_persist_blocks(fresh, blocks)
    for placement in merged.placements:
        logger.debug("Restored persist block", number=item.identifier, block_name=placement.name, strategy=placement.strategy.value)
    return merged


def build_appended_content(existing_content: str, item: RemoteItemBase, policy: SyncPolicy) -> str:
    """Append a status fragment to an existing document and refresh its frontmatter."""
    fragment = render_append_fragment(build_template_context(item, policy))
    return stamp_frontmatter(f"{existing_content}\n\n{fragment}", frontmatter_stamp(item))


async def _write(store: DocumentStoreBase, path: str, content: str) -> None:
    try:
        await store.write_document(path, content)
    except OSError as exc:
        raise DocumentWriteError(path, exc) from exc


async def sync_item_document(item: RemoteItemBase, policy: SyncPolicy, store: DocumentStoreBase) -> DocumentSynchronizationResult:
    """Synchronize a single item into its document.

    Rendering, read and write failures are reported on the result instead of being raised.
    """
    try:
        rendered = render_document(item, policy)
    except jinja2.TemplateError as exc:
        logger.error("Failed to render document", number=item.identifier, repository=policy.repository, error=str(exc))
        return DocumentSynchronizationResult(item, "", SyncDecision.SKIP, DocumentSyncOutcome.FAILED, "render failed", error=str(exc))

    path = document_path(policy, rendered.filename)
    try:
        existing_content = await store.read_document(path)
        decision, reason = await decide_document_sync_action(existing_content, item, policy)
    except (OSError, ValueError) as exc:
        logger.error("Failed to read existing document", path=path, number=item.identifier, error=str(exc))
        return DocumentSynchronizationResult(item, path, SyncDecision.SKIP, DocumentSyncOutcome.FAILED, "read failed", error=str(exc))

    try:
        if decision == SyncDecision.CREATE:
            await store.create_folder(policy.folder)
            await _write(store, path, stamp_frontmatter(rendered.content, frontmatter_stamp(item)))
            logger.info("Created document", path=path, number=item.identifier)
            return DocumentSynchronizationResult(item, path, decision, DocumentSyncOutcome.CREATED, reason)

        if decision == SyncDecision.UPDATE:
            merged = build_updated_content(existing_content or "", rendered, item)
            await _write(store, path, merged.content)
            if merged.unplaced:
                logger.warning(
                    "Persist blocks could not be relocated and were moved to the end of the document",
                    path=path,
                    number=item.identifier,
                    block_names=merged.unplaced,
                )
            logger.info("Updated document", path=path, number=item.identifier, reason=reason, persist_blocks=len(merged.placements))
            return DocumentSynchronizationResult(item, path, decision, DocumentSyncOutcome.UPDATED, reason, merged.placements)

        if decision == SyncDecision.APPEND:
            await _write(store, path, build_appended_content(existing_content or "", item, policy))
            logger.info("Appended to document", path=path, number=item.identifier)
            return DocumentSynchronizationResult(item, path, decision, DocumentSyncOutcome.APPENDED, reason)
    except DocumentWriteError as exc:
        logger.error("Failed to write document", path=path, number=item.identifier, error=str(exc.error))
        return DocumentSynchronizationResult(item, path, decision, DocumentSyncOutcome.FAILED, reason, error=str(exc))
    except OSError as exc:
        logger.error("Failed to prepare document folder", path=path, number=item.identifier, error=str(exc))
        return DocumentSynchronizationResult(item, path, decision, DocumentSyncOutcome.FAILED, reason, error=str(exc))
    except jinja2.TemplateError as exc:
        logger.error("Failed to render append fragment", path=path, number=item.identifier, error=str(exc))
        return DocumentSynchronizationResult(item, path, decision, DocumentSyncOutcome.FAILED, reason, error=str(exc))

    logger.debug("Skipped document", path=path, number=item.identifier, reason=reason)
    return DocumentSynchronizationResult(item, path, decision, DocumentSyncOutcome.SKIPPED, reason)


async def sync_collection_documents(
    items: list[RemoteItemBase], policy: SyncPolicy, store: DocumentStoreBase
) -> list[DocumentSynchronizationResult]:
    """Synchronize the documents of a collection, one item at a time."""
    logger.info("Synchronizing documents", repository=policy.repository, kind=policy.kind.value, items=len(items), folder=policy.folder)
    results: list[DocumentSynchronizationResult] = []
    for item in items:
        results.append(await sync_item_document(item, policy, store))
    logger.info(
        "Synchronized documents",
        repository=policy.repository,
        kind=policy.kind.value,
        created=sum(1 for r in results if r.outcome == DocumentSyncOutcome.CREATED),
        updated=sum(1 for r in results if r.outcome == DocumentSyncOutcome.UPDATED),
        appended=sum(1 for r in results if r.outcome == DocumentSyncOutcome.APPENDED),
        skipped=sum(1 for r in results if r.outcome == DocumentSyncOutcome.SKIPPED),
        failed=sum(1 for r in results if r.outcome == DocumentSyncOutcome.FAILED),
    )
    return results
