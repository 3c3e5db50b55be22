"""Folder-related Pydantic models."""

from __future__ import annotations

from typing import Optional

from pydantic import Field

from .common import Timestamp, VaultModel, utcnow


class Folder(VaultModel):
    """A directory in the vault. Only the index holds its id and dates."""

    id: Optional[str] = None
    name: str = Field(..., min_length=1)
    created_at: Timestamp = Field(default_factory=utcnow)
    parent_id: Optional[str] = None


class FolderMove(VaultModel):
    """Request payload to move a folder (null parent means vault root)."""

    parent_id: Optional[str] = None


class FolderDeleteResult(VaultModel):
    """Outcome of a folder delete; refusals are results, not exceptions."""

    success: bool
    error: Optional[str] = None
    can_recurse: Optional[bool] = None
    document_count: Optional[int] = None


class FolderMoveResult(VaultModel):
    success: bool
    error: Optional[str] = None
    folder: Optional[Folder] = None


__all__ = ["Folder", "FolderDeleteResult", "FolderMove", "FolderMoveResult"]
