"""Contains utilities for rendering the packaged Jinja2 document layouts.

The packaged layouts are used whenever a collection has no custom content
template. They are rendered against the same flat template context as
custom templates.
"""

from pathlib import Path
from typing import Any, Mapping

import jinja2
import structlog

from github_notes_manager.schemas.items import ItemKind

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

LAYOUTS_DIRECTORY = Path(__file__).parent.parent / "templates"

DEFAULT_LAYOUTS: dict[ItemKind, str] = {
    ItemKind.ISSUE: "default_issue.md.j2",
    ItemKind.PULL_REQUEST: "default_pull_request.md.j2",
    ItemKind.PROJECT_ITEM: "default_issue.md.j2",
}

APPEND_FRAGMENT_LAYOUT = "append_fragment.md.j2"


def construct_jinja2_environment(layouts_directory: Path = LAYOUTS_DIRECTORY) -> jinja2.Environment:
    """Construct a Jinja2 environment for the document layouts."""
    return jinja2.Environment(
        loader=jinja2.FileSystemLoader(layouts_directory),
        undefined=jinja2.StrictUndefined,
        keep_trailing_newline=True,
        autoescape=False,
    )


_environment = construct_jinja2_environment()


def render_layout(layout_name: str, context: Mapping[str, Any], environment: jinja2.Environment | None = None) -> str:
    """Render a packaged layout against a template context."""
    if environment is None:
        environment = _environment
    try:
        template = environment.get_template(layout_name)
    except jinja2.TemplateNotFound:
        logger.error("Document layout not found", layout_name=layout_name)
        raise
    try:
        return template.render(dict(context))
    except jinja2.UndefinedError as exc:
        logger.error("Failed to render document layout", layout_name=layout_name, error=str(exc))
        raise


def render_default_layout(kind: ItemKind, context: Mapping[str, Any]) -> str:
    """Render the default document layout for an item kind."""
    return render_layout(DEFAULT_LAYOUTS[ItemKind(kind)], context)


def render_append_fragment(context: Mapping[str, Any]) -> str:
    """Render the fragment appended to documents in append mode."""
    return render_layout(APPEND_FRAGMENT_LAYOUT, context)
