"""Template engine for filenames and document bodies.

Two constructs are supported:

* ``{name}`` is replaced by the context value for ``name`` (empty if absent).
* ``{name:literal}`` emits ``literal`` only when ``name`` is truthy. The
  literal may contain ``{other}`` substitutions but not further conditionals.

Anything else, including a ``{`` that does not start one of the constructs
above, is copied through unchanged. A conditional without its closing brace
is recorded as a ``TemplateResolutionFailure`` and its opening brace is treated
as literal text; rendering never aborts.
"""

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Mapping

import structlog

from github_notes_manager.utils.constants import DOCUMENT_EXTENSION, ILLEGAL_FILENAME_CHARACTERS

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

_NAME_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_FALSY_STRINGS = {"", "false"}


@dataclass(frozen=True)
class TemplateResolutionFailure:
    """A malformed fragment found while compiling a template."""

    position: int
    message: str


@dataclass(frozen=True)
class LiteralSegment:
    """Text copied verbatim."""

    text: str


@dataclass(frozen=True)
class VariableSegment:
    """A ``{name}`` substitution."""

    name: str


@dataclass(frozen=True)
class ConditionalSegment:
    """A ``{name:literal}`` block."""

    name: str
    parts: tuple[LiteralSegment | VariableSegment, ...]


Segment = LiteralSegment | VariableSegment | ConditionalSegment


def _find_closing_brace(source: str, start: int) -> int | None:
    depth = 0
    for index in range(start, len(source)):
        char = source[index]
        if char == "{":
            depth += 1
        elif char == "}":
            if depth == 0:
                return index
            depth -= 1
    return None


def _parse(source: str, allow_conditionals: bool = True) -> tuple[list[Segment], list[TemplateResolutionFailure]]:
    segments: list[Segment] = []
    failures: list[TemplateResolutionFailure] = []
    buffer: list[str] = []

    def flush() -> None:
        if buffer:
            segments.append(LiteralSegment("".join(buffer)))
            buffer.clear()

    index = 0
    while index < len(source):
        char = source[index]
        if char != "{":
            buffer.append(char)
            index += 1
            continue

        match = _NAME_PATTERN.match(source, index + 1)
        if match is None or match.end() >= len(source):
            buffer.append(char)
            index += 1
            continue

        name = match.group()
        delimiter = source[match.end()]
        if delimiter == "}":
            flush()
            segments.append(VariableSegment(name))
            index = match.end() + 1
        elif delimiter == ":" and allow_conditionals:
            close = _find_closing_brace(source, match.end() + 1)
            if close is None:
                failures.append(TemplateResolutionFailure(index, f"Conditional block '{name}' is missing its closing brace"))
                buffer.append(char)
                index += 1
                continue
            inner, _ = _parse(source[match.end() + 1 : close], allow_conditionals=False)
            flush()
            segments.append(ConditionalSegment(name, tuple(s for s in inner if not isinstance(s, ConditionalSegment))))
            index = close + 1
        else:
            buffer.append(char)
            index += 1

    flush()
    return segments, failures


def format_value(value: Any) -> str:
    """Format a context value for output."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def is_truthy(value: Any) -> bool:
    """Decide whether a context value enables a conditional block."""
    if value is None or value is False:
        return False
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value != 0
    return format_value(value).strip().lower() not in _FALSY_STRINGS


class Template:
    """A compiled template."""

    def __init__(self, source: str) -> None:
        """Compile the template source, recording any malformed fragments."""
        self.source = source
        segments, failures = _parse(source)
        self.segments: tuple[Segment, ...] = tuple(segments)
        self.failures: tuple[TemplateResolutionFailure, ...] = tuple(failures)
        for failure in self.failures:
            logger.warning("Malformed template fragment treated as literal text", position=failure.position, reason=failure.message)

    @property
    def variables(self) -> set[str]:
        """Names of all variables referenced by the template."""
        names: set[str] = set()
        for segment in self.segments:
            if isinstance(segment, VariableSegment):
                names.add(segment.name)
            elif isinstance(segment, ConditionalSegment):
                names.add(segment.name)
                names.update(part.name for part in segment.parts if isinstance(part, VariableSegment))
        return names

    def render(self, context: Mapping[str, Any]) -> str:
        """Render the template against a context."""
        output: list[str] = []
        for segment in self.segments:
            if isinstance(segment, LiteralSegment):
                output.append(segment.text)
            elif isinstance(segment, VariableSegment):
                output.append(format_value(context.get(segment.name)))
            elif is_truthy(context.get(segment.name)):
                for part in segment.parts:
                    if isinstance(part, LiteralSegment):
                        output.append(part.text)
                    else:
                        output.append(format_value(context.get(part.name)))
        return "".join(output)


@lru_cache(maxsize=256)
def compile_template(source: str) -> Template:
    """Compile a template, reusing previously compiled templates."""
    return Template(source)


def render_template(source: str, context: Mapping[str, Any]) -> str:
    """Render a template string against a context."""
    return compile_template(source).render(context)


def sanitize_filename(name: str) -> str:
    """Remove characters that are not allowed in file names."""
    cleaned = ILLEGAL_FILENAME_CHARACTERS.sub("", name)
    cleaned = re.sub(r"\s+", " ", cleaned)
    return cleaned.strip().strip(".").strip()


def render_filename(source: str, context: Mapping[str, Any], fallback: str) -> str:
    """Render a filename template and sanitize the result.

    Sanitizing happens after substitution. If nothing usable remains, the
    sanitized ``fallback`` is returned instead. Variables missing from the
    context render empty and are reported.
    """
    template = compile_template(source)
    unknown = sorted(template.variables - set(context))
    if unknown:
        logger.warning("Filename template references unknown variables", template=source, variables=unknown)
    rendered = sanitize_filename(template.render(context))
    if not rendered:
        logger.warning("Filename template rendered to an empty name, using fallback", template=source, fallback=fallback)
        return sanitize_filename(fallback)
    return rendered


def _literal_pattern(text: str) -> str:
    cleaned = ILLEGAL_FILENAME_CHARACTERS.sub("", text)
    cleaned = re.sub(r"\s+", " ", cleaned)
    return re.escape(cleaned)


def extract_identifier_from_filename(filename: str, source: str) -> str | None:
    """Recover an item number from a document filename using its filename template.

    Returns None when the template does not reference ``{number}`` or the
    filename does not fit the template.
    """
    stem = filename[: -len(DOCUMENT_EXTENSION)] if filename.endswith(DOCUMENT_EXTENSION) else filename
    template = compile_template(source)
    if "number" not in {s.name for s in template.segments if isinstance(s, VariableSegment)}:
        return None

    pattern_parts: list[str] = []
    number_seen = False
    last_index = len(template.segments) - 1
    for index, segment in enumerate(template.segments):
        if isinstance(segment, LiteralSegment):
            text = segment.text.lstrip() if index == 0 else segment.text
            text = text.rstrip() if index == last_index else text
            pattern_parts.append(_literal_pattern(text))
        elif isinstance(segment, VariableSegment) and segment.name == "number":
            pattern_parts.append("(?P=number)" if number_seen else r"(?P<number>\d+)")
            number_seen = True
        else:
            pattern_parts.append(".*?")

    match = re.fullmatch("".join(pattern_parts), stem.strip())
    if match is None:
        return None
    return match.group("number")
