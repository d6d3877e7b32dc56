"""Reads and stamps the leading metadata block of synchronized documents.

The block is delimited by ``---`` lines at the very start of the document and
parsed as YAML into a ``DocumentFrontmatter`` record. A block that cannot be
parsed yields an empty record; callers treat missing fields as stale/changed.
"""

import re

import structlog
from pydantic import ValidationError
from ruamel.yaml.constructor import DuplicateKeyError
from ruamel.yaml.error import YAMLError

from github_notes_manager.schemas.frontmatter import DocumentFrontmatter
from github_notes_manager.utils.constants import FRONTMATTER_DELIMITER
from github_notes_manager.utils.yaml import load_yaml_string

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

_TOP_LEVEL_KEY = re.compile(r"^(?P<key>[A-Za-z_][\w-]*)\s*:")


class FrontmatterParseError(Exception):
    """Raised when a frontmatter block is not a YAML mapping."""

    pass


def _is_delimiter(line: str) -> bool:
    return line.rstrip("\r\n").strip() == FRONTMATTER_DELIMITER


def split_frontmatter(content: str) -> tuple[str | None, str]:
    """Split a document into its frontmatter block (without delimiters) and the rest.

    Returns ``(None, content)`` if the document has no terminated frontmatter block.
    """
    lines = content.splitlines(keepends=True)
    if not lines or not _is_delimiter(lines[0]):
        return None, content
    for index in range(1, len(lines)):
        if _is_delimiter(lines[index]):
            return "".join(lines[1:index]), "".join(lines[index + 1 :])
    return None, content


def parse_frontmatter_block(block: str) -> dict[str, object]:
    """Parse the text of a frontmatter block into a mapping.

    Out-of-range unquoted timestamps fail while loading and are reported as parse errors.
    """
    try:
        data = load_yaml_string(block)
    except (YAMLError, DuplicateKeyError, ValueError) as exc:
        raise FrontmatterParseError(f"Frontmatter is not valid YAML: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise FrontmatterParseError(f"Frontmatter must be a mapping, got {type(data).__name__}")
    return {str(key): value for key, value in data.items()}


def read_frontmatter(content: str) -> DocumentFrontmatter:
    """Read the structured frontmatter fields of a document.

    Never raises: a missing or unparsable block produces an empty record.
    """
    block, _ = split_frontmatter(content)
    if block is None:
        return DocumentFrontmatter()
    try:
        data = parse_frontmatter_block(block)
    except FrontmatterParseError as exc:
        logger.warning("Could not parse document frontmatter", error=str(exc))
        return DocumentFrontmatter()
    try:
        return DocumentFrontmatter.model_validate(data)
    except ValidationError as exc:
        logger.warning("Document frontmatter has invalid fields", errors=exc.errors())
        return DocumentFrontmatter()


def stamp_frontmatter(content: str, fields: dict[str, str]) -> str:
    """Set top-level frontmatter keys to already formatted YAML values.

    Existing lines for the keys are replaced in place, missing keys are added at
    the end of the block, and a block is created if the document has none.
    Stamping a document with the values it already holds leaves it unchanged.
    """
    block, _ = split_frontmatter(content)
    if block is None:
        header = "".join(f"{key}: {value}\n" for key, value in fields.items())
        return f"{FRONTMATTER_DELIMITER}\n{header}{FRONTMATTER_DELIMITER}\n{content}"

    pending = dict(fields)
    stamped: list[str] = []
    for line in block.splitlines(keepends=True):
        match = _TOP_LEVEL_KEY.match(line)
        if match and match.group("key") in pending:
            key = match.group("key")
            stamped.append(f"{key}: {pending.pop(key)}\n")
        else:
            stamped.append(line)
    if stamped and not stamped[-1].endswith("\n"):
        stamped[-1] += "\n"
    stamped.extend(f"{key}: {value}\n" for key, value in pending.items())

    opening, _, _ = content.partition("\n")
    closing_and_rest = content[len(opening) + 1 + len(block) :]
    return f"{opening}\n{''.join(stamped)}{closing_and_rest}"
