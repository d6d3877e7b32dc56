"""Contains results of document synchronization, one diagnostic per item."""

from github_notes_manager.documents.persist import BlockPlacement
from github_notes_manager.schemas.items import ItemKind, RemoteItemBase
from github_notes_manager.synchronize.models import DocumentSyncOutcome, LifecycleDecision, LifecycleOutcome, SyncDecision


class DocumentSynchronizationResult:
    """Contains the result of synchronizing a single item into its document."""

    def __init__(
        self,
        item: RemoteItemBase,
        path: str,
        decision: SyncDecision,
        outcome: DocumentSyncOutcome,
        reason: str,
        placements: tuple[BlockPlacement, ...] = (),
        error: str | None = None,
    ) -> None:
        """Initialize the result with the item, its document path, the decision, and what happened."""
        self.item = item
        self.path = path
        self.decision = decision
        self.outcome = outcome
        self.reason = reason
        self.placements = placements
        self.error = error

    @property
    def unplaced_blocks(self) -> list[str]:
        """Persist blocks that had to be appended to the fallback section."""
        return [placement.name for placement in self.placements if placement.is_fallback]

    def __repr__(self) -> str:
        """Represent the result for logs and debugging."""
        return f"DocumentSynchronizationResult(number={self.item.identifier!r}, path={self.path!r}, outcome={self.outcome.value!r})"


class DocumentLifecycleResult:
    """Contains the result of reconciling a single existing document."""

    def __init__(
        self,
        path: str,
        identifier: str | None,
        decision: LifecycleDecision,
        outcome: LifecycleOutcome,
        error: str | None = None,
    ) -> None:
        """Initialize the result with the document path, recovered identifier, decision, and what happened."""
        self.path = path
        self.identifier = identifier
        self.decision = decision
        self.outcome = outcome
        self.error = error

    def __repr__(self) -> str:
        """Represent the result for logs and debugging."""
        return f"DocumentLifecycleResult(path={self.path!r}, decision={self.decision.value!r}, outcome={self.outcome.value!r})"


class CollectionSynchronizationResult:
    """Contains the results of one pass over one kind of item of one repository."""

    def __init__(
        self,
        repository: str,
        kind: ItemKind,
        documents: list[DocumentSynchronizationResult] | None = None,
        lifecycle: list[DocumentLifecycleResult] | None = None,
        removed_folders: list[str] | None = None,
        errors: list[str] | None = None,
    ) -> None:
        """Initialize the result with the collection it belongs to and its per-item results."""
        self.repository = repository
        self.kind = kind
        self.documents = documents or []
        self.lifecycle = lifecycle or []
        self.removed_folders = removed_folders or []
        self.errors = errors or []

    def count(self, outcome: DocumentSyncOutcome | LifecycleOutcome) -> int:
        """Count the documents with a given outcome."""
        results = self.documents if isinstance(outcome, DocumentSyncOutcome) else self.lifecycle
        return sum(1 for result in results if result.outcome == outcome)

    @property
    def has_failures(self) -> bool:
        """Whether anything in this collection failed."""
        return bool(self.errors) or self.count(DocumentSyncOutcome.FAILED) > 0 or self.count(LifecycleOutcome.FAILED) > 0


class SyncRunResult:
    """Contains the results of a synchronization run over all configured collections."""

    def __init__(self, collections: list[CollectionSynchronizationResult] | None = None) -> None:
        """Initialize the result with the per-collection results."""
        self.collections = collections or []

    @property
    def has_failures(self) -> bool:
        """Whether any collection had a failure."""
        return any(collection.has_failures for collection in self.collections)
