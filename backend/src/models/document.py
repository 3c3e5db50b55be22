"""Document-related Pydantic models."""

from __future__ import annotations

from typing import Optional

from pydantic import Field

from .common import Timestamp, VaultModel, utcnow


class ContextDocument(VaultModel):
    """Reference to another document used as AI composition context."""

    id: str
    name: str = ""


class DocumentVersion(VaultModel):
    """Snapshot metadata. Only id, date and message survive on disk."""

    id: Optional[str] = None
    content: str = ""
    created_at: Timestamp = Field(default_factory=utcnow)
    message: Optional[str] = None


class Annotation(VaultModel):
    """Highlighted range inside a document's content."""

    id: Optional[str] = None
    document_id: Optional[str] = None
    start_offset: int = Field(0, ge=0)
    end_offset: int = Field(0, ge=0)
    content: str = ""
    color: str = "yellow"
    created_at: Timestamp = Field(default_factory=utcnow)
    updated_at: Timestamp = Field(default_factory=utcnow)
    tags: list[str] = Field(default_factory=list)


class Document(VaultModel):
    """A Markdown document stored in the vault."""

    model_config = VaultModel.model_config | {
        "json_schema_extra": {
            "example": {
                "id": "doc-1718000000000-a1b2c3d",
                "name": "Design Notes",
                "content": "# Design Notes\n\nSee [[Roadmap]].",
                "createdAt": "2025-01-10T09:00:00Z",
                "updatedAt": "2025-01-15T14:30:00Z",
                "versions": [],
                "folderId": None,
                "annotations": [],
                "contextDocuments": [],
            }
        }
    }

    id: Optional[str] = None
    name: str = Field(..., min_length=1, description="Display name, independent of the file name")
    content: str = ""
    created_at: Timestamp = Field(default_factory=utcnow)
    updated_at: Timestamp = Field(default_factory=utcnow)
    versions: Optional[list[DocumentVersion]] = Field(default_factory=list)
    folder_id: Optional[str] = None
    annotations: Optional[list[Annotation]] = Field(default_factory=list)
    context_documents: list[ContextDocument] = Field(default_factory=list)


class Backlink(VaultModel):
    """A document linking to another one."""

    id: str
    name: str


class DocumentRenameResult(VaultModel):
    document: Document
    updated_links: int = 0


class DocumentRename(VaultModel):
    """Request payload to rename a document or folder."""

    name: str = Field(..., min_length=1, max_length=255)


class DocumentMove(VaultModel):
    """Request payload to move a document (null folder means vault root)."""

    folder_id: Optional[str] = None


class VersionCreate(VaultModel):
    message: Optional[str] = None


class LinkUpdate(VaultModel):
    """Request payload to rewrite every link to `old_name`."""

    old_name: str = Field(..., min_length=1)
    new_name: str = Field(..., min_length=1)


__all__ = [
    "Annotation",
    "Backlink",
    "ContextDocument",
    "Document",
    "DocumentMove",
    "DocumentRename",
    "DocumentRenameResult",
    "DocumentVersion",
    "LinkUpdate",
    "VersionCreate",
]
