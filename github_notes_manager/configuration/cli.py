"""Defines the Command Line Interface (CLI) using Typer."""

import asyncio
import logging
import sys
from pathlib import Path

import structlog
import typer
from dotenv import load_dotenv
from typer import Argument, Option
from typing_extensions import Annotated

from github_notes_manager.configuration.env import get_settings
from github_notes_manager.configuration.exceptions import ConfigurationError, RequiredConfigurationElementError
from github_notes_manager.configuration.models import load_sync_configuration
from github_notes_manager.documents.store import FileSystemDocumentStore
from github_notes_manager.github.adapter import GitHubKitDataSource
from github_notes_manager.synchronize.driver import run_sync_workflow
from github_notes_manager.synchronize.models import DocumentSyncOutcome, LifecycleOutcome
from github_notes_manager.synchronize.results import CollectionSynchronizationResult
from github_notes_manager.templating.engine import render_filename

load_dotenv()

typer_app = typer.Typer(pretty_exceptions_show_locals=False)


def configure_logging(debug: bool) -> None:
    """Configure structlog to emit records at the requested level."""
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG if debug else logging.INFO),
        cache_logger_on_first_use=True,
    )


def format_collection_summary(collection: CollectionSynchronizationResult) -> list[str]:
    """Format the summary lines of one collection, including one line per noteworthy item."""
    lines = [
        f"{collection.repository} ({collection.kind.value}): "
        f"created={collection.count(DocumentSyncOutcome.CREATED)} "
        f"updated={collection.count(DocumentSyncOutcome.UPDATED)} "
        f"appended={collection.count(DocumentSyncOutcome.APPENDED)} "
        f"skipped={collection.count(DocumentSyncOutcome.SKIPPED)} "
        f"failed={collection.count(DocumentSyncOutcome.FAILED)} "
        f"deleted={collection.count(LifecycleOutcome.DELETED)} "
        f"deletion_not_permitted={collection.count(LifecycleOutcome.DELETION_NOT_PERMITTED)}"
    ]
    for error in collection.errors:
        lines.append(f"  error: {error}")
    for result in collection.documents:
        if result.outcome == DocumentSyncOutcome.FAILED:
            lines.append(f"  failed #{result.item.identifier} {result.path}: {result.error}")
        if result.unplaced_blocks:
            lines.append(f"  #{result.item.identifier} {result.path}: persist blocks moved to end of document: {', '.join(result.unplaced_blocks)}")
    for lifecycle_result in collection.lifecycle:
        if lifecycle_result.outcome == LifecycleOutcome.FAILED:
            lines.append(f"  failed to delete {lifecycle_result.path}: {lifecycle_result.error}")
    for folder in collection.removed_folders:
        lines.append(f"  removed empty folder {folder}")
    return lines


@typer_app.command(name="sync")
def sync_cli(
    config_path: Annotated[Path | None, Argument(help="Path to the sync configuration YAML file. Defaults to SYNC_CONFIG_PATH.")] = None,
    vault: Annotated[Path | None, Option("--vault", help="Root folder of the synchronized documents. Defaults to VAULT_PATH.")] = None,
    github_api_url: Annotated[str | None, Option(help="GitHub API URL. Defaults to GITHUB_API_URL.")] = None,
    github_pat_token: Annotated[str | None, Option(help="GitHub Personal Access Token. Defaults to GITHUB_PAT_TOKEN.")] = None,
    debug: Annotated[bool, Option(help="Enable debug logging. Defaults to DEBUG.")] = False,
) -> None:
    """Synchronize the configured repositories into local Markdown documents."""
    settings = get_settings()
    configure_logging(debug or settings.DEBUG)

    config_path = config_path or settings.SYNC_CONFIG_PATH
    if config_path is None:
        raise RequiredConfigurationElementError("sync configuration path", "CONFIG_PATH", "SYNC_CONFIG_PATH")
    vault = vault or settings.VAULT_PATH
    if vault is None:
        raise RequiredConfigurationElementError("vault path", "--vault", "VAULT_PATH")

    try:
        configuration = load_sync_configuration(config_path)
    except ConfigurationError as exc:
        typer.echo(str(exc), err=True)
        sys.exit(1)
    typer.echo(f"Loaded sync configuration with {len(configuration.repositories)} repositories from {config_path.absolute()}")

    async def run() -> bool:
        data_source = await GitHubKitDataSource.create(
            github_pat_token=github_pat_token or settings.GITHUB_PAT_TOKEN,
            github_api_url=github_api_url or settings.GITHUB_API_URL,
        )
        result = await run_sync_workflow(configuration, vault, data_source, FileSystemDocumentStore(vault))
        for collection in result.collections:
            for line in format_collection_summary(collection):
                typer.echo(line)
        return result.has_failures

    if asyncio.run(run()):
        typer.echo("Synchronization finished with failures", err=True)
        sys.exit(1)
    typer.echo("Synchronization finished")


def parse_variables(variables: list[str]) -> dict[str, str]:
    """Parse ``key=value`` pairs given on the command line."""
    context: dict[str, str] = {}
    for variable in variables:
        key, separator, value = variable.partition("=")
        if not separator or not key.strip():
            raise typer.BadParameter(f"Expected key=value, got {variable!r}", param_hint="--var")
        context[key.strip()] = value
    return context


@typer_app.command(name="render-filename")
def render_filename_cli(
    template: Annotated[str, Argument(help="Filename template, e.g. '{number} - {title}'.")],
    var: Annotated[list[str] | None, Option("--var", help="Template variable as key=value. Repeat for more variables.")] = None,
    fallback: Annotated[str, Option(help="Filename used when the template renders to nothing.")] = "Untitled",
) -> None:
    """Render a filename template, to check what documents will be named."""
    typer.echo(render_filename(template, parse_variables(var or []), fallback))


if __name__ == "__main__":
    typer_app()
