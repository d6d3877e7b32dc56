"""Extracts user-authored persist blocks from documents and merges them back into fresh renders.

A persist block is a named region delimited by marker lines::

    {% persist "notes" %}
    anything the user wrote here
    {% endpersist %}

Blocks are extracted together with an anchor (the text immediately preceding the
start marker line) and a trailing context (the text following the end marker
line). When a document is regenerated, each block is re-inserted right after the
best match of its anchor in the fresh content. The bytes of a block are never
changed; only its position is.
"""

from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum

import structlog

from github_notes_manager.utils.constants import (
    DEFAULT_ANCHOR_LENGTH,
    DEFAULT_TRAILING_CONTEXT_LENGTH,
    PERSIST_END_PATTERN,
    PERSIST_START_PATTERN,
    UNPLACED_PERSIST_BLOCKS_HEADER,
)

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


class PlacementStrategy(str, Enum):
    """How a persist block was positioned in merged content."""

    EXACT = "exact"
    SUFFIX = "suffix"
    NORMALIZED = "normalized"
    PLACEHOLDER = "placeholder"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class PersistBlock:
    """A persist block extracted from an existing document."""

    name: str
    content: str  # Start marker line through end marker line, without the final line break
    anchor: str
    trailing_context: str
    index: int
    line_break: str = "\n"  # Line break after the end marker line, empty at the end of a document

    @property
    def terminated(self) -> bool:
        """Whether the end marker line was followed by a line break."""
        return bool(self.line_break)


@dataclass(frozen=True)
class BlockPlacement:
    """Where a single persist block ended up during a merge."""

    name: str
    strategy: PlacementStrategy

    @property
    def is_fallback(self) -> bool:
        """Whether the block's anchor could not be found."""
        return self.strategy is PlacementStrategy.FALLBACK


@dataclass(frozen=True)
class MergeResult:
    """Merged document content and the placement of every block."""

    content: str
    placements: tuple[BlockPlacement, ...] = ()

    @property
    def unplaced(self) -> list[str]:
        """Names of blocks that were appended to the fallback section."""
        return [placement.name for placement in self.placements if placement.is_fallback]


@dataclass(frozen=True)
class _BlockSpan:
    name: str
    start: int
    end: int
    line_end: int


def _detect_newline(content: str) -> str:
    """Return the line break used by a document, preferring CRLF when the document contains it."""
    return "\r\n" if "\r\n" in content else "\n"


def _iter_lines(content: str) -> Iterator[tuple[str, int, int]]:
    """Yield (line text without terminator, line start, offset after terminator)."""
    offset = 0
    for line in content.splitlines(keepends=True):
        yield line.rstrip("\r\n"), offset, offset + len(line)
        offset += len(line)


def _scan_blocks(content: str) -> Iterator[_BlockSpan]:
    open_name: str | None = None
    open_start = 0
    for text, start, next_offset in _iter_lines(content):
        if open_name is None:
            match = PERSIST_START_PATTERN.match(text)
            if match:
                open_name, open_start = match.group("name"), start
            elif PERSIST_END_PATTERN.match(text):
                logger.warning("Ignoring persist end marker without a start marker", offset=start)
            continue
        if PERSIST_END_PATTERN.match(text):
            yield _BlockSpan(open_name, open_start, start + len(text), next_offset)
            open_name = None
        elif PERSIST_START_PATTERN.match(text):
            logger.warning("Persist blocks do not nest; treating marker as block content", block_name=open_name, offset=start)
    if open_name is not None:
        logger.warning("Discarding persist block without an end marker", block_name=open_name, offset=open_start)


def extract_persist_blocks(
    content: str,
    anchor_length: int = DEFAULT_ANCHOR_LENGTH,
    trailing_context_length: int = DEFAULT_TRAILING_CONTEXT_LENGTH,
) -> dict[str, PersistBlock]:
    """Extract the persist blocks of a document, keyed by name in document order.

    If a name occurs more than once, the first occurrence is kept and later ones
    are discarded with a warning. Blocks without an end marker are discarded.
    """
    blocks: dict[str, PersistBlock] = {}
    for span in _scan_blocks(content):
        if span.name in blocks:
            logger.warning("Discarding duplicate persist block", block_name=span.name, offset=span.start)
            continue
        blocks[span.name] = PersistBlock(
            name=span.name,
            content=content[span.start : span.end],
            anchor=content[max(0, span.start - anchor_length) : span.start],
            trailing_context=content[span.line_end : span.line_end + trailing_context_length],
            index=len(blocks),
            line_break=content[span.end : span.line_end],
        )
    logger.debug("Extracted persist blocks", count=len(blocks), names=list(blocks))
    return blocks


def _normalize_line(line: str) -> str:
    return " ".join(line.split())


def _common_prefix_length(left: str, right: str) -> int:
    length = 0
    for left_char, right_char in zip(left, right):
        if left_char != right_char:
            break
        length += 1
    return length


def _exact_candidates(content: str, anchor: str) -> list[int]:
    if not anchor:
        return [0]
    candidates = []
    position = content.find(anchor)
    while position != -1:
        candidates.append(position + len(anchor))
        position = content.find(anchor, position + 1)
    return candidates


def _line_candidates(content: str, anchor: str, normalize: bool) -> list[int]:
    """Find insertion points after the longest trailing run of anchor lines present in content."""
    anchor_lines = anchor.splitlines(keepends=True)
    content_lines = content.splitlines(keepends=True)
    line_ends = []
    offset = 0
    for line in content_lines:
        offset += len(line)
        line_ends.append(offset)

    compare = _normalize_line if normalize else (lambda line: line)
    content_keys = [compare(line) for line in content_lines]

    for first in range(len(anchor_lines)):
        run = [compare(line) for line in anchor_lines[first:]]
        if not any(key.strip() for key in run):
            break
        candidates = []
        for index in range(len(content_keys) - len(run) + 1):
            if content_keys[index : index + len(run)] == run:
                candidates.append(line_ends[index + len(run) - 1])
        if candidates:
            return candidates
    return []


class _Merger:
    """Tracks merged content and the spans of blocks already placed in it."""

    def __init__(self, content: str) -> None:
        """Initialize the merger with freshly rendered content."""
        self.content = content
        self.newline = _detect_newline(content)
        self.spans: list[list[int]] = []
        self.previous_end = 0
        self.fallback_header_added = False

    def _shift(self, offset: int, delta: int) -> None:
        for span in self.spans:
            if span[0] >= offset:
                span[0] += delta
                span[1] += delta

    def _is_protected(self, offset: int) -> bool:
        return any(start < offset < end for start, end in self.spans)

    def insert(self, offset: int, block: PersistBlock) -> None:
        before, after = self.content[:offset], self.content[offset:]
        lead = self.newline if before and not before.endswith("\n") else ""
        tail = (block.line_break or self.newline) if after or block.terminated else ""
        inserted = f"{lead}{block.content}{tail}"
        self._shift(offset, len(inserted))
        start = offset + len(lead)
        self.spans.append([start, start + len(block.content) + len(tail)])
        self.content = before + inserted + after
        self.previous_end = start + len(block.content) + len(tail)

    def replace_placeholder(self, block: PersistBlock) -> bool:
        for span in _scan_blocks(self.content):
            if span.name != block.name or [span.start, span.line_end] in self.spans:
                continue
            delta = len(block.content) - (span.end - span.start)
            self._shift(span.end, delta)
            self.content = self.content[: span.start] + block.content + self.content[span.end :]
            self.spans.append([span.start, span.line_end + delta])
            self.previous_end = span.line_end + delta
            return True
        return False

    def best_candidate(self, candidates: list[int], block: PersistBlock) -> int | None:
        allowed = [offset for offset in candidates if not self._is_protected(offset)]
        if not allowed:
            return None
        return min(
            allowed,
            key=lambda offset: (
                -_common_prefix_length(self.content[offset:], block.trailing_context),
                0 if offset >= self.previous_end else 1,
                offset,
            ),
        )

    def append_fallback(self, block: PersistBlock) -> None:
        if self.content and not self.content.endswith("\n"):
            self.content += self.newline
        if not self.fallback_header_added:
            self.content += f"{self.newline}{UNPLACED_PERSIST_BLOCKS_HEADER}{self.newline}{self.newline}"
            self.fallback_header_added = True
        start = len(self.content)
        self.content += block.content + (block.line_break or self.newline)
        self.spans.append([start, len(self.content)])
        self.previous_end = len(self.content)


def merge_persist_blocks(fresh_content: str, blocks: dict[str, PersistBlock]) -> MergeResult:
    """Re-insert persist blocks into freshly rendered content.

    Blocks are placed in their original order against the progressively merged
    content. A block whose name already appears as a placeholder in the fresh
    content replaces that placeholder. Otherwise the first strategy yielding a
    candidate wins: the exact anchor, the longest trailing run of anchor lines,
    the same run with whitespace collapsed. Among candidates of one strategy the
    one whose following text best matches the block's trailing context wins,
    then the first at or after the previously placed block, then the earliest.
    Blocks without any candidate are appended under a fallback heading.
    """
    merger = _Merger(fresh_content)
    placements: list[BlockPlacement] = []

    for block in sorted(blocks.values(), key=lambda item: item.index):
        if merger.replace_placeholder(block):
            placements.append(BlockPlacement(block.name, PlacementStrategy.PLACEHOLDER))
            continue

        strategies = (
            (PlacementStrategy.EXACT, lambda: _exact_candidates(merger.content, block.anchor)),
            (PlacementStrategy.SUFFIX, lambda: _line_candidates(merger.content, block.anchor, normalize=False)),
            (PlacementStrategy.NORMALIZED, lambda: _line_candidates(merger.content, block.anchor, normalize=True)),
        )
        for strategy, find_candidates in strategies:
            offset = merger.best_candidate(find_candidates(), block)
            if offset is not None:
                merger.insert(offset, block)
                placements.append(BlockPlacement(block.name, strategy))
                break
        else:
            logger.warning("Persist block anchor not found, appending to fallback section", block_name=block.name)
            merger.append_fallback(block)
            placements.append(BlockPlacement(block.name, PlacementStrategy.FALLBACK))

    return MergeResult(content=merger.content, placements=tuple(placements))
