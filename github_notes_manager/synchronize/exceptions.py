"""Contains exceptions raised while synchronizing documents."""

from github_notes_manager.documents.frontmatter import FrontmatterParseError

__all__ = ["DocumentWriteError", "FrontmatterParseError"]


class DocumentWriteError(Exception):
    """Raised when the document store fails to write a document."""

    def __init__(self, path: str, error: OSError) -> None:
        """Initializes the exception with the document path and the underlying error."""
        super().__init__(f"Failed to write document {path}: {error}")
        self.path = path
        self.error = error
