"""Shared FastAPI dependencies."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends

from ..services.vault import VaultService


def get_vault_service() -> VaultService:
    """Vault service bound to the current configuration (overridden in tests)."""
    return VaultService()


VaultServiceDep = Annotated[VaultService, Depends(get_vault_service)]


__all__ = ["VaultServiceDep", "get_vault_service"]
