"""Document store used to read and write synchronized documents."""

import asyncio
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

import structlog

from github_notes_manager.documents.frontmatter import read_frontmatter
from github_notes_manager.schemas.frontmatter import DocumentFrontmatter
from github_notes_manager.utils.constants import DOCUMENT_EXTENSION

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


class DocumentStoreBase(ABC):
    """Base ABC for document stores.

    Paths are POSIX-style strings relative to the root of the store. Each call
    completes or fails on its own; nothing is transactional.
    """

    @abstractmethod
    async def read_document(self, path: str) -> str | None:
        """Read a document, returning None if it does not exist."""
        pass

    @abstractmethod
    async def write_document(self, path: str, content: str) -> None:
        """Create or overwrite a document."""
        pass

    @abstractmethod
    async def delete_document(self, path: str) -> None:
        """Delete a document."""
        pass

    @abstractmethod
    async def document_exists(self, path: str) -> bool:
        """Check whether a document exists."""
        pass

    @abstractmethod
    async def list_documents(self, prefix: str) -> list[str]:
        """List the documents under a folder prefix, recursively."""
        pass

    @abstractmethod
    async def create_folder(self, path: str) -> None:
        """Create a folder and any missing parents."""
        pass

    @abstractmethod
    async def remove_folder(self, path: str) -> None:
        """Remove an empty folder."""
        pass

    @abstractmethod
    async def folder_is_empty(self, path: str) -> bool:
        """Check whether a folder exists and holds no entries."""
        pass


class FileSystemDocumentStore(DocumentStoreBase):
    """Document store backed by a directory on the local filesystem."""

    def __init__(self, root: Path) -> None:
        """Initialize the store with the directory all paths are relative to."""
        self.root = Path(root)

    def _resolve(self, path: str) -> Path:
        return self.root.joinpath(*PurePosixPath(path).parts)

    def _relative(self, path: Path) -> str:
        return path.relative_to(self.root).as_posix()

    async def read_document(self, path: str) -> str | None:
        """Read a document, returning None if it does not exist."""
        target = self._resolve(path)

        def _read() -> str | None:
            if not target.is_file():
                return None
            # newline="" keeps the line endings of the document untouched
            with open(target, encoding="utf-8", newline="") as f:
                return f.read()

        return await asyncio.to_thread(_read)

    async def write_document(self, path: str, content: str) -> None:
        """Create or overwrite a document, creating parent folders as needed."""
        target = self._resolve(path)
        await asyncio.to_thread(target.parent.mkdir, parents=True, exist_ok=True)
        await asyncio.to_thread(target.write_text, content, encoding="utf-8", newline="")
        logger.debug("Wrote document", path=path, size=len(content))

    async def delete_document(self, path: str) -> None:
        """Delete a document."""
        await asyncio.to_thread(self._resolve(path).unlink)
        logger.debug("Deleted document", path=path)

    async def document_exists(self, path: str) -> bool:
        """Check whether a document exists."""
        return await asyncio.to_thread(self._resolve(path).is_file)

    async def list_documents(self, prefix: str) -> list[str]:
        """List the Markdown documents under a folder prefix, recursively and sorted."""
        folder = self._resolve(prefix)

        def _walk() -> list[str]:
            if not folder.is_dir():
                return []
            documents = []
            for directory, _, filenames in os.walk(folder):
                for filename in filenames:
                    if filename.endswith(DOCUMENT_EXTENSION):
                        documents.append(self._relative(Path(directory) / filename))
            return sorted(documents)

        return await asyncio.to_thread(_walk)

    async def create_folder(self, path: str) -> None:
        """Create a folder and any missing parents."""
        await asyncio.to_thread(self._resolve(path).mkdir, parents=True, exist_ok=True)

    async def remove_folder(self, path: str) -> None:
        """Remove an empty folder."""
        await asyncio.to_thread(self._resolve(path).rmdir)
        logger.debug("Removed folder", path=path)

    async def folder_is_empty(self, path: str) -> bool:
        """Check whether a folder exists and holds no entries."""
        folder = self._resolve(path)

        def _is_empty() -> bool:
            return folder.is_dir() and not any(folder.iterdir())

        return await asyncio.to_thread(_is_empty)


@dataclass(frozen=True)
class LocalDocument:
    """A stored document together with its parsed frontmatter."""

    path: str
    content: str
    frontmatter: DocumentFrontmatter

    @property
    def filename(self) -> str:
        """Name of the document file, with extension."""
        return PurePosixPath(self.path).name


async def load_local_document(store: DocumentStoreBase, path: str) -> LocalDocument | None:
    """Read a document and its frontmatter, returning None if it does not exist."""
    content = await store.read_document(path)
    if content is None:
        return None
    return LocalDocument(path=path, content=content, frontmatter=read_frontmatter(content))
