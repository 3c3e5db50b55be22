"""Filesystem path resolution for vault documents and folders."""

from __future__ import annotations

from pathlib import Path, PurePosixPath
import re
from typing import Iterable, List, Mapping, Optional, Union

from ..models.document import Document
from ..models.folder import Folder

UNSAFE_NAME_CHARS = re.compile(r'[/\\?%*:|"<>]')

FolderLookup = Union[Mapping[str, Folder], Iterable[Folder]]


def sanitize_name(name: str) -> str:
    """Replace filesystem-unsafe characters so a name can be one path segment."""
    sanitized = UNSAFE_NAME_CHARS.sub("-", name or "")
    # '', '.' and '..' are not usable as a file or directory name
    if not sanitized.strip("."):
        sanitized = sanitized.replace(".", "-") or "-"
    return sanitized


def folder_lookup(folders: FolderLookup) -> Mapping[str, Folder]:
    if isinstance(folders, Mapping):
        return folders
    return {folder.id: folder for folder in folders if folder.id}


def folder_chain(
    folder_id: Optional[str],
    folders: FolderLookup,
    *,
    stop_at: Optional[str] = None,
) -> List[Folder]:
    """
    Return the folders from the root down to `folder_id`.

    The walk stops at the first reference that does not resolve (the rest is
    treated as root), at `stop_at`, or at a folder already visited, so a
    corrupt index with a parent cycle still yields a finite path.
    """
    lookup = folder_lookup(folders)
    chain: List[Folder] = []
    seen: set[str] = set()
    current = folder_id
    while current and current not in seen and current != stop_at:
        folder = lookup.get(current)
        if folder is None:
            break
        seen.add(current)
        chain.append(folder)
        current = folder.parent_id
    chain.reverse()
    return chain


def relative_document_path(document: Document, folders: FolderLookup) -> str:
    """Vault-relative POSIX path of a document, without the .md suffix."""
    parts = [sanitize_name(folder.name) for folder in folder_chain(document.folder_id, folders)]
    parts.append(sanitize_name(document.name))
    return str(PurePosixPath(*parts))


def relative_folder_path(folder: Folder, folders: FolderLookup) -> str:
    """Vault-relative POSIX path of a folder."""
    # A folder is never its own ancestor, even when the index says otherwise.
    ancestors = folder_chain(folder.parent_id, folders, stop_at=folder.id)
    parts = [sanitize_name(parent.name) for parent in ancestors]
    parts.append(sanitize_name(folder.name))
    return str(PurePosixPath(*parts))


def document_path(vault_root: Path, document: Document, folders: FolderLookup) -> Path:
    """Absolute path of a document's Markdown file."""
    relative = relative_document_path(document, folders)
    return vault_root.joinpath(*PurePosixPath(f"{relative}.md").parts)


def folder_path(vault_root: Path, folder: Folder, folders: FolderLookup) -> Path:
    """Absolute path of a folder's directory."""
    return vault_root.joinpath(*PurePosixPath(relative_folder_path(folder, folders)).parts)


def is_descendant(folder_id: Optional[str], ancestor_id: str, folders: FolderLookup) -> bool:
    """True when `folder_id` is `ancestor_id` or sits anywhere below it."""
    return any(folder.id == ancestor_id for folder in folder_chain(folder_id, folders))


__all__ = [
    "sanitize_name",
    "folder_lookup",
    "folder_chain",
    "relative_document_path",
    "relative_folder_path",
    "document_path",
    "folder_path",
    "is_descendant",
]
