"""Configuration models: the sync configuration file schema and per-collection sync policies."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import structlog
from pydantic import BaseModel, Field, ValidationError

from github_notes_manager.configuration.exceptions import ConfigurationError
from github_notes_manager.schemas.items import ItemKind
from github_notes_manager.templating.escape import EscapeMode
from github_notes_manager.utils.constants import (
    DEFAULT_ISSUE_BASE_FOLDER,
    DEFAULT_ISSUE_FILENAME_TEMPLATE,
    DEFAULT_PROJECT_ITEM_FILENAME_TEMPLATE,
    DEFAULT_PULL_REQUEST_BASE_FOLDER,
    DEFAULT_PULL_REQUEST_FILENAME_TEMPLATE,
    DEFAULT_RETENTION_DAYS,
)
from github_notes_manager.utils.helpers import clean_path_segment, split_repository
from github_notes_manager.utils.yaml import load_yaml_file

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


class UpdateMode(str, Enum):
    """Enum for how an existing document is refreshed when its item changes."""

    NONE = "none"
    UPDATE = "update"
    APPEND = "append"


class ItemTypeSettingsModel(BaseModel):
    """Settings for one kind of item (issues or pull requests) of a repository."""

    enabled: bool = True
    update_mode: UpdateMode = UpdateMode.NONE
    allow_delete: bool = False
    filename_template: str = DEFAULT_ISSUE_FILENAME_TEMPLATE
    content_template: str | None = None
    include_comments: bool = True
    base_folder: str = DEFAULT_ISSUE_BASE_FOLDER
    custom_folder: str | None = None


class DefaultsModel(BaseModel):
    """Defaults applied to every repository unless overridden."""

    issues: ItemTypeSettingsModel = Field(default_factory=ItemTypeSettingsModel)
    pull_requests: ItemTypeSettingsModel = Field(
        default_factory=lambda: ItemTypeSettingsModel(
            filename_template=DEFAULT_PULL_REQUEST_FILENAME_TEMPLATE,
            base_folder=DEFAULT_PULL_REQUEST_BASE_FOLDER,
        )
    )


class RepositoryOverridesModel(BaseModel):
    """Per-kind overrides of a repository. Only fields that are set override the defaults."""

    enabled: bool | None = None
    update_mode: UpdateMode | None = None
    allow_delete: bool | None = None
    filename_template: str | None = None
    content_template: str | None = None
    include_comments: bool | None = None
    base_folder: str | None = None
    custom_folder: str | None = None


class RepositoryModel(BaseModel):
    """A tracked repository."""

    repository: str
    issues: RepositoryOverridesModel = Field(default_factory=RepositoryOverridesModel)
    pull_requests: RepositoryOverridesModel = Field(default_factory=RepositoryOverridesModel)


class SyncConfigurationModel(BaseModel):
    """Pydantic model for the sync configuration file."""

    date_format: str = "%Y-%m-%d"
    escape_mode: EscapeMode = EscapeMode.NORMAL
    escape_hash_tags: bool = False
    retention_days: int = Field(default=DEFAULT_RETENTION_DAYS, ge=0)
    defaults: DefaultsModel = Field(default_factory=DefaultsModel)
    repositories: list[RepositoryModel] = Field(default_factory=list)

    def effective_settings(self, repository: RepositoryModel, kind: ItemKind) -> ItemTypeSettingsModel:
        """Apply a repository's overrides on top of the defaults for an item kind."""
        if kind == ItemKind.PULL_REQUEST:
            defaults, overrides = self.defaults.pull_requests, repository.pull_requests
        else:
            defaults, overrides = self.defaults.issues, repository.issues
        return defaults.model_copy(update=overrides.model_dump(exclude_unset=True, exclude_none=True))


@dataclass(frozen=True)
class SyncPolicy:
    """Everything one synchronization pass needs to know about one kind of item of one repository.

    Built once per pass and never mutated.
    """

    repository: str
    kind: ItemKind
    update_mode: UpdateMode = UpdateMode.NONE
    allow_delete: bool = False
    filename_template: str = DEFAULT_ISSUE_FILENAME_TEMPLATE
    content_template: str | None = None
    include_comments: bool = True
    escape_mode: EscapeMode = EscapeMode.NORMAL
    escape_hash_tags: bool = False
    date_format: str = "%Y-%m-%d"
    retention_days: int = DEFAULT_RETENTION_DAYS
    base_folder: str = DEFAULT_ISSUE_BASE_FOLDER
    custom_folder: str | None = None

    @property
    def uses_custom_folder(self) -> bool:
        """Whether documents live in a user-chosen folder instead of the owner/repository scheme."""
        return bool(self.custom_folder and self.custom_folder.strip())

    @property
    def folder(self) -> str:
        """Folder holding this collection's documents."""
        if self.uses_custom_folder:
            return self.custom_folder.strip().strip("/")  # type: ignore[union-attr]
        owner, name = split_repository(self.repository)
        return f"{self.base_folder.strip('/')}/{clean_path_segment(owner)}/{clean_path_segment(name)}"

    @property
    def fallback_filename(self) -> str:
        """Filename template used when the configured one renders to nothing."""
        if self.kind == ItemKind.PULL_REQUEST:
            return DEFAULT_PULL_REQUEST_FILENAME_TEMPLATE
        if self.kind == ItemKind.PROJECT_ITEM:
            return DEFAULT_PROJECT_ITEM_FILENAME_TEMPLATE
        return DEFAULT_ISSUE_FILENAME_TEMPLATE


def load_sync_configuration(path: Path) -> SyncConfigurationModel:
    """Load and validate the sync configuration file."""
    try:
        data = load_yaml_file(path)
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Sync configuration file not found: {path}") from exc
    except Exception as exc:
        logger.error("Failed to parse sync configuration file", path=str(path), error=str(exc))
        raise ConfigurationError(f"Failed to parse sync configuration file {path}: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Sync configuration file {path} must contain a mapping")
    try:
        return SyncConfigurationModel.model_validate(data)
    except ValidationError as exc:
        logger.error("Invalid sync configuration file", path=str(path), errors=exc.errors())
        raise ConfigurationError(f"Invalid sync configuration file {path}: {exc}") from exc


def load_content_template(vault_root: Path, template_path: str | None) -> str | None:
    """Load a custom content template relative to the vault root.

    A missing or unreadable template falls back to the packaged default layout.
    """
    if not template_path or not template_path.strip():
        return None
    path = vault_root / template_path.strip()
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        logger.warning("Could not load content template, using the default layout", template_path=str(path), error=str(exc))
        return None


def build_sync_policy(
    configuration: SyncConfigurationModel,
    repository: RepositoryModel,
    kind: ItemKind,
    vault_root: Path,
) -> SyncPolicy:
    """Build the sync policy for one kind of item of one repository."""
    settings = configuration.effective_settings(repository, kind)
    return SyncPolicy(
        repository=repository.repository,
        kind=kind,
        update_mode=settings.update_mode,
        allow_delete=settings.allow_delete,
        filename_template=settings.filename_template,
        content_template=load_content_template(vault_root, settings.content_template),
        include_comments=settings.include_comments,
        escape_mode=configuration.escape_mode,
        escape_hash_tags=configuration.escape_hash_tags,
        date_format=configuration.date_format,
        retention_days=configuration.retention_days,
        base_folder=settings.base_folder,
        custom_folder=settings.custom_folder,
    )
