"""Exceptions raised by the vault service layer."""

from __future__ import annotations


class VaultError(Exception):
    """Base class for vault errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class VaultNotFoundError(VaultError, LookupError):
    """Raised when an operation targets an id the vault does not know."""

    entity = "Entity"

    def __init__(self, entity_id: str):
        self.entity_id = entity_id
        super().__init__(f"{self.entity} not found: {entity_id}")


class DocumentNotFoundError(VaultNotFoundError):
    entity = "Document"


class FolderNotFoundError(VaultNotFoundError):
    entity = "Folder"


class VaultConflictError(VaultError):
    """Raised when a rename or move would overwrite a different file."""


__all__ = [
    "VaultError",
    "VaultNotFoundError",
    "DocumentNotFoundError",
    "FolderNotFoundError",
    "VaultConflictError",
]
