"""HTTP API routes for vault-wide maintenance: links and integrity."""

from __future__ import annotations

import logging

from fastapi import APIRouter

from ...models.document import LinkUpdate
from ...services.integrity import IntegrityChecker
from ..dependencies import VaultServiceDep

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/api/links/update")
async def update_links(payload: LinkUpdate, vault: VaultServiceDep):
    """Rewrite ``[[oldName]]`` links to ``[[newName]]`` across the vault."""
    updated = vault.update_links(payload.old_name, payload.new_name)
    return {"success": True, "updatedDocuments": updated}


@router.post("/api/links/migrate")
async def migrate_links(vault: VaultServiceDep):
    """Convert name and path links to id tokens (one-time, opt-in)."""
    migrated = vault.migrate_links()
    return {"success": True, "migratedLinks": migrated}


@router.api_route("/api/vault/integrity", methods=["GET", "POST"])
async def check_integrity(vault: VaultServiceDep):
    """Run the integrity checker and return its report."""
    report = IntegrityChecker(vault).check_and_fix()
    if report.total_fixes:
        logger.info("Integrity check applied fixes", extra={"total_fixes": report.total_fixes})
    return {"success": True, **report.model_dump(mode="json", by_alias=True)}


__all__ = ["router"]
