"""Shared constants used across the application."""

# This file is intended to hold shared constants.

import re

# Persist Block Constants
# -----------------------

PERSIST_START_PATTERN = re.compile(r"""^[ \t]*\{%\s*persist\s+(?P<quote>["'])(?P<name>[^"'\n]+)(?P=quote)\s*%\}[ \t]*$""")
"""Pattern matching a persist block start marker line, e.g. {% persist "notes" %}."""

PERSIST_END_PATTERN = re.compile(r"^[ \t]*\{%\s*endpersist\s*%\}[ \t]*$")
"""Pattern matching a persist block end marker line."""

DEFAULT_ANCHOR_LENGTH = 120
"""Number of characters preceding a persist block that are kept as its anchor."""

DEFAULT_TRAILING_CONTEXT_LENGTH = 80
"""Number of characters following a persist block used to disambiguate anchors."""

UNPLACED_PERSIST_BLOCKS_HEADER = "## Unplaced persist blocks"
"""Heading under which persist blocks without a matching anchor are appended."""

# Frontmatter Constants
# ---------------------

FRONTMATTER_DELIMITER = "---"
"""Line delimiting the leading metadata block of a document."""

FRONTMATTER_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
"""Format of timestamps written to frontmatter (always UTC)."""

# Template Constants
# ------------------

DEFAULT_ISSUE_FILENAME_TEMPLATE = "Issue - {number}"
"""Default filename template for issue documents."""

DEFAULT_PULL_REQUEST_FILENAME_TEMPLATE = "PR - {number}"
"""Default filename template for pull request documents."""

DEFAULT_PROJECT_ITEM_FILENAME_TEMPLATE = "Item - {number}"
"""Default filename template for project item documents."""

ILLEGAL_FILENAME_CHARACTERS = re.compile(r'[\\/:*?"<>|\x00-\x1f\x7f]')
"""Characters removed from rendered filenames."""

DOCUMENT_EXTENSION = ".md"
"""Extension of synchronized documents."""

# Lifecycle Constants
# -------------------

DEFAULT_RETENTION_DAYS = 30
"""Days a closed item's document is retained before it becomes eligible for deletion."""

DEFAULT_ISSUE_BASE_FOLDER = "GitHub/Issues"
"""Default root folder of the owner/repository scheme for issue documents."""

DEFAULT_PULL_REQUEST_BASE_FOLDER = "GitHub/Pull Requests"
"""Default root folder of the owner/repository scheme for pull request documents."""
