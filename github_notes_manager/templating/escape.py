"""Escaping of remote text before it is embedded in Markdown documents."""

import re
from enum import Enum

_MARKDOWN_HEADER = re.compile(r"^#{1,6}\s")


class EscapeMode(str, Enum):
    """Enum for how aggressively remote text is escaped."""

    DISABLED = "disabled"
    NORMAL = "normal"
    STRICT = "strict"
    VERY_STRICT = "very_strict"


def escape_hash_tags(text: str) -> str:
    """Escape '#' characters on lines that are not Markdown headers.

    Prevents text like ``#1337`` from being read as a tag while leaving
    ``## Header`` lines alone.
    """
    lines = text.split("\n")
    escaped_lines = []
    for line in lines:
        if _MARKDOWN_HEADER.match(line.strip()):
            escaped_lines.append(line)
        else:
            escaped_lines.append(line.replace("#", "\\#"))
    return "\n".join(escaped_lines)


def escape_body(text: str, mode: EscapeMode = EscapeMode.NORMAL, escape_hashes: bool = False) -> str:
    """Escape remote text according to the given mode.

    Modes:
        disabled: text is returned unchanged.
        normal: neutralizes Templater tags, backticks, frontmatter separators and ``{{ }}``.
        strict: removes ``< > { } $ ` \\`` and neutralizes frontmatter separators.
        very_strict: like strict, additionally removing ``" ' | & * ~ ^``.
    """
    if mode == EscapeMode.DISABLED:
        return text

    if mode == EscapeMode.STRICT:
        escaped = re.sub(r"[<>{}$`\\]", "", text).replace("---", "- - -")
    elif mode == EscapeMode.VERY_STRICT:
        escaped = re.sub(r"[<>{}$`\\\"'|&*~^]", "", text).replace("---", "- - -")
    else:
        escaped = (
            text.replace("<%", "'<<'")
            .replace("%>", "'>>'")
            .replace("`", '"')
            .replace("---", "- - -")
            .replace("{{", "((")
            .replace("}}", "))")
        )

    return escape_hash_tags(escaped) if escape_hashes else escaped


def escape_yaml_string(text: str) -> str:
    """Escape a string for use inside a YAML double-quoted scalar."""
    return text.replace("\\", "\\\\").replace('"', '\\"')


def yaml_inline_list(values: list[str] | tuple[str, ...]) -> str:
    """Render values as a YAML inline sequence of double-quoted strings."""
    return "[" + ", ".join(f'"{escape_yaml_string(value)}"' for value in values) + "]"
