"""Pydantic schema for the frontmatter fields of a synchronized document."""

from datetime import datetime, timezone
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


def _to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class DocumentFrontmatter(BaseModel):
    """Typed record of the frontmatter keys the synchronizer reads.

    Every field is optional. Values that cannot be interpreted are dropped to
    ``None`` so that the change detector treats them as missing. Unknown keys
    are ignored.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    number: str | None = None
    status: str | None = None
    updated: datetime | None = None
    created: str | None = None
    url: str | None = None
    opened_by: str | None = None
    labels: list[str] = Field(default_factory=list)
    assignees: list[str] = Field(default_factory=list)
    update_mode: str | None = Field(default=None, alias="updateMode")
    allow_delete: bool | None = Field(default=None, alias="allowDelete")

    @field_validator("number", "status", "created", "url", "opened_by", "update_mode", mode="before")
    @classmethod
    def _coerce_scalar(cls, value: Any) -> str | None:
        if value is None or isinstance(value, (dict, list)):
            return None
        if isinstance(value, bool):
            return str(value).lower()
        text = str(value).strip()
        return text or None

    @field_validator("updated", mode="before")
    @classmethod
    def _parse_timestamp(cls, value: Any) -> datetime | None:
        if isinstance(value, datetime):
            return _to_utc(value)
        if not isinstance(value, str) or not value.strip():
            return None
        try:
            return _to_utc(datetime.fromisoformat(value.strip()))
        except ValueError:
            logger.warning("Unparsable updated timestamp in frontmatter", value=value)
            return None

    @field_validator("labels", "assignees", mode="before")
    @classmethod
    def _coerce_string_list(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        if isinstance(value, (list, tuple)):
            return [str(v) for v in value if v is not None]
        return []

    @field_validator("allow_delete", mode="before")
    @classmethod
    def _coerce_flag(cls, value: Any) -> bool | None:
        if value is None or isinstance(value, bool):
            return value
        text = str(value).strip().strip("\"'").lower()
        if text == "true":
            return True
        if text == "false":
            return False
        return None
