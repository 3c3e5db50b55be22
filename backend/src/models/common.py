"""Shared model helpers: camelCase serialization and lenient timestamps."""

from __future__ import annotations

from datetime import date, datetime, timezone
import time
from typing import Annotated, Any, Optional
import uuid

from pydantic import BaseModel, BeforeValidator, ConfigDict
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_id(prefix: str) -> str:
    """Mint an entity id of the form '<prefix>-<epoch-ms>-<random>'."""
    return f"{prefix}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:7]}"


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Coerce a stored timestamp into an aware UTC datetime.

    Accepts datetimes, dates, ISO-8601 strings (including a trailing 'Z') and
    epoch milliseconds. Anything else, including unparsable strings, becomes
    None so the integrity checker can find and repair it.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        cleaned = value.strip()
        if not cleaned:
            return None
        try:
            parsed = datetime.fromisoformat(cleaned.replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()


Timestamp = Annotated[Optional[datetime], BeforeValidator(parse_timestamp)]


class VaultModel(BaseModel):
    """Base for persisted entities (camelCase on disk, snake_case in Python)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=False,
    )

    def to_json(self) -> dict[str, Any]:
        """Dump in the camelCase JSON shape used by the index files."""
        return self.model_dump(mode="json", by_alias=True)


__all__ = [
    "Timestamp",
    "VaultModel",
    "format_timestamp",
    "generate_id",
    "parse_timestamp",
    "utcnow",
]
