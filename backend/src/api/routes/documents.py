"""HTTP API routes for document operations."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, HTTPException, status

from ...models.document import (
    Backlink,
    Document,
    DocumentMove,
    DocumentRename,
    DocumentRenameResult,
    VersionCreate,
)
from ..dependencies import VaultServiceDep

router = APIRouter()


@router.get("/api/documents", response_model=list[Document])
async def list_documents(vault: VaultServiceDep):
    """List every document in the vault (rescans disk)."""
    return vault.load_documents()


@router.get("/api/documents/{document_id}", response_model=Document)
async def get_document(document_id: str, vault: VaultServiceDep):
    return vault.get_document(document_id)


@router.post("/api/documents", response_model=Document, status_code=status.HTTP_201_CREATED)
async def save_document(document: Document, vault: VaultServiceDep):
    """Create a document, or update it when the id already exists."""
    return vault.save_document(document)


@router.delete("/api/documents/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(document_id: str, vault: VaultServiceDep):
    vault.delete_document(document_id)


@router.post("/api/documents/{document_id}/rename", response_model=DocumentRenameResult)
async def rename_document(document_id: str, payload: DocumentRename, vault: VaultServiceDep):
    """Rename a document; links to its old name and path are rewritten."""
    try:
        return vault.rename_document(document_id, payload.name)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@router.post("/api/documents/{document_id}/move", response_model=Document)
async def move_document(document_id: str, payload: DocumentMove, vault: VaultServiceDep):
    return vault.move_document(document_id, payload.folder_id)


@router.get("/api/documents/{document_id}/backlinks", response_model=list[Backlink])
async def get_backlinks(document_id: str, vault: VaultServiceDep):
    """Documents linking to this one by id token, name or path."""
    return vault.get_backlinks(document_id)


@router.post("/api/documents/{document_id}/versions", response_model=Document)
async def create_version(
    document_id: str,
    vault: VaultServiceDep,
    payload: Optional[VersionCreate] = Body(None),
):
    message = payload.message if payload else None
    return vault.create_version(document_id, message)


@router.post("/api/documents/{document_id}/trash", response_model=Document)
async def move_to_trash(document_id: str, vault: VaultServiceDep):
    return vault.move_to_trash(document_id)


@router.post("/api/documents/{document_id}/restore", response_model=Document)
async def restore_from_trash(
    document_id: str,
    vault: VaultServiceDep,
    payload: Optional[DocumentMove] = Body(None),
):
    target_folder_id = payload.folder_id if payload else None
    return vault.restore_from_trash(document_id, target_folder_id)


@router.delete("/api/trash")
async def empty_trash(vault: VaultServiceDep):
    """Permanently delete every trashed document."""
    return {"success": True, "count": vault.empty_trash()}


__all__ = ["router"]
