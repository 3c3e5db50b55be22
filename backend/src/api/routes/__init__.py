"""HTTP API route handlers."""

from . import documents, folders, vault

__all__ = ["documents", "folders", "vault"]
