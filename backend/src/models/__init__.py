"""Pydantic models for data validation and serialization."""

from .common import Timestamp, VaultModel, generate_id, utcnow
from .composition import Composition
from .document import (
    Annotation,
    Backlink,
    ContextDocument,
    Document,
    DocumentMove,
    DocumentRename,
    DocumentRenameResult,
    DocumentVersion,
    LinkUpdate,
    VersionCreate,
)
from .folder import Folder, FolderDeleteResult, FolderMove, FolderMoveResult
from .integrity import IntegrityReport

__all__ = [
    "Annotation",
    "Backlink",
    "Composition",
    "ContextDocument",
    "Document",
    "DocumentMove",
    "DocumentRename",
    "DocumentRenameResult",
    "DocumentVersion",
    "Folder",
    "FolderDeleteResult",
    "FolderMove",
    "FolderMoveResult",
    "IntegrityReport",
    "LinkUpdate",
    "Timestamp",
    "VaultModel",
    "VersionCreate",
    "generate_id",
    "utcnow",
]
