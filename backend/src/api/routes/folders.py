"""HTTP API routes for folder operations."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query, status

from ...models.document import DocumentRename
from ...models.folder import Folder, FolderDeleteResult, FolderMove, FolderMoveResult
from ..dependencies import VaultServiceDep

router = APIRouter()


@router.get("/api/folders", response_model=list[Folder])
async def list_folders(vault: VaultServiceDep):
    return vault.load_folders()


@router.post("/api/folders", response_model=Folder, status_code=status.HTTP_201_CREATED)
async def save_folder(folder: Folder, vault: VaultServiceDep):
    """Create a folder, or update it when the id already exists."""
    return vault.save_folder(folder)


@router.delete("/api/folders/{folder_id}", response_model=FolderDeleteResult)
async def delete_folder(
    folder_id: str,
    vault: VaultServiceDep,
    recursive: bool = Query(False, description="Also delete subfolders and documents"),
):
    """
    Delete a folder.

    A non-empty folder is refused with 409 unless `recursive` is set; the
    error detail carries `canRecurse` and `documentCount` so the client can
    ask for confirmation and retry.
    """
    result = vault.delete_folder(folder_id, recursive=recursive)
    if result.success:
        return result
    if result.can_recurse:
        raise HTTPException(
            status_code=409,
            detail={
                "error": "folder_not_empty",
                "message": result.error,
                "detail": {"canRecurse": True, "documentCount": result.document_count},
            },
        )
    raise HTTPException(status_code=500, detail=result.error)


@router.post("/api/folders/{folder_id}/rename", response_model=Folder)
async def rename_folder(folder_id: str, payload: DocumentRename, vault: VaultServiceDep):
    try:
        return vault.rename_folder(folder_id, payload.name)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@router.post("/api/folders/{folder_id}/move", response_model=FolderMoveResult)
async def move_folder(folder_id: str, payload: FolderMove, vault: VaultServiceDep):
    result = vault.move_folder(folder_id, payload.parent_id)
    if not result.success:
        raise HTTPException(
            status_code=400,
            detail={"error": "invalid_move", "message": result.error},
        )
    return result


__all__ = ["router"]
