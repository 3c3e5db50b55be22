"""Application configuration helpers."""

from __future__ import annotations

from functools import lru_cache
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

PROJECT_ROOT = Path(__file__).resolve().parents[3]
DEFAULT_VAULT_PATH = PROJECT_ROOT / "vault"
LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


class AppConfig(BaseModel):
    """Runtime configuration loaded from environment variables."""

    model_config = ConfigDict(frozen=True)

    vault_path: Path = Field(..., description="Root directory of the Markdown vault")
    metadata_dir_name: str = Field(
        default=".obsidian",
        description="Reserved directory (inside the vault) holding the JSON indexes",
    )
    compositions_filename: str = Field(
        default="compositions.json",
        description="Compositions JSON array, stored in the metadata directory",
    )
    trash_folder_name: str = Field(
        default="Trash",
        description="Root-level folder that receives trashed documents",
    )
    log_level: str = Field(default="INFO", description="Root logging level")

    @field_validator("vault_path", mode="before")
    @classmethod
    def _normalize_vault_path(cls, value: str | Path | None) -> Path:
        if value is None or value == "":
            raise ValueError("VAULT_PATH is required")
        if isinstance(value, Path):
            path = value
        else:
            path = Path(value)
        return path.expanduser().resolve()

    @field_validator("metadata_dir_name", "compositions_filename", "trash_folder_name")
    @classmethod
    def _single_segment(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned or "/" in cleaned or "\\" in cleaned or cleaned in {".", ".."}:
            raise ValueError("Must be a single, non-empty path segment")
        return cleaned

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: Optional[str]) -> str:
        level = (value or "INFO").strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {sorted(LOG_LEVELS)}")
        return level

    @property
    def metadata_path(self) -> Path:
        return self.vault_path / self.metadata_dir_name

    @property
    def documents_index_path(self) -> Path:
        return self.metadata_path / "documents-index.json"

    @property
    def folders_index_path(self) -> Path:
        return self.metadata_path / "folders-index.json"

    @property
    def compositions_path(self) -> Path:
        return self.metadata_path / self.compositions_filename


def _read_env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(key, default)


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Load and cache application configuration."""
    config = AppConfig(
        vault_path=_read_env("VAULT_PATH", str(DEFAULT_VAULT_PATH)),
        metadata_dir_name=_read_env("VAULT_METADATA_DIR", ".obsidian"),
        compositions_filename=_read_env("VAULT_COMPOSITIONS_FILE", "compositions.json"),
        trash_folder_name=_read_env("VAULT_TRASH_FOLDER", "Trash"),
        log_level=_read_env("LOG_LEVEL", "INFO"),
    )
    # Ensure the vault directory exists for downstream services.
    config.vault_path.mkdir(parents=True, exist_ok=True)
    return config


def reload_config() -> AppConfig:
    """Clear cached config (useful for tests) and reload."""
    get_config.cache_clear()
    return get_config()


__all__ = ["AppConfig", "get_config", "reload_config", "PROJECT_ROOT", "DEFAULT_VAULT_PATH"]
