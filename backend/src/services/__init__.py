"""Service layer for vault persistence and integrity."""

from .config import AppConfig, get_config, reload_config
from .errors import (
    DocumentNotFoundError,
    FolderNotFoundError,
    VaultConflictError,
    VaultError,
    VaultNotFoundError,
)
from .index_store import IndexStore
from .integrity import IntegrityChecker, check_and_fix_vault_integrity
from .scanner import DirectoryScanner, FolderTree, ScanResult
from .vault import VaultService

__all__ = [
    "AppConfig",
    "get_config",
    "reload_config",
    "VaultError",
    "VaultNotFoundError",
    "DocumentNotFoundError",
    "FolderNotFoundError",
    "VaultConflictError",
    "IndexStore",
    "DirectoryScanner",
    "FolderTree",
    "ScanResult",
    "VaultService",
    "IntegrityChecker",
    "check_and_fix_vault_integrity",
]
