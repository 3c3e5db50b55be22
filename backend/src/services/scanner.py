"""Directory scanner reconciling the Markdown tree with the JSON indexes."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import os
from pathlib import Path, PurePosixPath
import time
from typing import Dict, Iterable, List, Optional, Tuple, TypeVar, Union

from ..models.common import generate_id
from ..models.document import Document
from ..models.folder import Folder
from .config import AppConfig, get_config
from .index_store import IndexStore, atomic_write_text
from .markdown import decode_file, encode
from .paths import folder_lookup, relative_document_path, relative_folder_path

logger = logging.getLogger(__name__)

SKIPPED_DIRECTORIES = {".git"}

EntityT = TypeVar("EntityT", bound=Union[Document, Folder])


def reassign_duplicate_ids(items: Iterable[EntityT], prefix: str) -> List[Tuple[str, EntityT]]:
    """
    Give every second-and-later holder of an id a freshly minted one.

    Returns (old_id, item) for each re-identified item; items are mutated in place.
    """
    seen: set[str] = set()
    changed: List[Tuple[str, EntityT]] = []
    for item in items:
        if item.id is None:
            continue
        if item.id in seen:
            old_id = item.id
            item.id = generate_id(prefix)
            while item.id in seen:
                item.id = generate_id(prefix)
            changed.append((old_id, item))
        seen.add(item.id)
    return changed


@dataclass
class ScanResult:
    documents: List[Document]
    folders: List[Folder]
    # Actual file of each document id; may differ from the canonical path
    # when a file was renamed outside the app.
    document_paths: Dict[str, Path] = field(default_factory=dict)


class FolderTree:
    """Folders keyed by vault-relative directory, created on demand."""

    def __init__(self, indexed: Iterable[Folder] = ()) -> None:
        indexed = list(indexed)
        lookup = folder_lookup(indexed)
        self._indexed_by_path: Dict[str, Folder] = {}
        for folder in indexed:
            if folder.id:
                self._indexed_by_path.setdefault(relative_folder_path(folder, lookup), folder)
        self._by_path: Dict[str, Folder] = {}
        self._claimed: set[str] = set()

    @property
    def folders(self) -> List[Folder]:
        return list(self._by_path.values())

    def ensure(self, relative_dir: str) -> Optional[str]:
        """Return the folder id for a directory, creating ancestors as needed."""
        relative_dir = relative_dir.strip("/")
        if relative_dir in ("", "."):
            return None
        existing = self._by_path.get(relative_dir)
        if existing is not None:
            return existing.id

        posix = PurePosixPath(relative_dir)
        parent_id = self.ensure(str(posix.parent))
        indexed = self._indexed_by_path.get(relative_dir)
        if indexed is not None and indexed.id not in self._claimed:
            folder = Folder(
                id=indexed.id,
                name=indexed.name,
                created_at=indexed.created_at,
                parent_id=parent_id,
            )
        else:
            folder = Folder(id=self._mint(), name=posix.name, parent_id=parent_id)
            logger.info("Discovered folder", extra={"folder_id": folder.id, "rel_path": relative_dir})
        self._claimed.add(folder.id)
        self._by_path[relative_dir] = folder
        return folder.id

    def _mint(self) -> str:
        new_id = generate_id("folder")
        while new_id in self._claimed:
            new_id = generate_id("folder")
        return new_id


class DirectoryScanner:
    """Walks the vault and rebuilds documents and folders from disk."""

    def __init__(self, config: AppConfig | None = None, index_store: IndexStore | None = None) -> None:
        self.config = config or get_config()
        self.index_store = index_store or IndexStore(self.config)

    def scan(self, *, persist: bool = True) -> ScanResult:
        start_time = time.time()
        vault_root = self.config.vault_path
        directories, files = self._walk()

        indexed_folders = self.index_store.read_folders()
        tree = FolderTree(indexed_folders)
        for relative_dir in directories:
            tree.ensure(relative_dir)

        indexed_ids_by_path = self._indexed_document_paths(indexed_folders)

        documents: List[Document] = []
        document_paths: Dict[str, Path] = {}
        for relative_file in files:
            file_path = vault_root.joinpath(*PurePosixPath(relative_file).parts)
            try:
                document = decode_file(file_path, relative_file, tree.ensure)
            except Exception as exc:
                logger.warning(
                    "Skipping unreadable document",
                    extra={"rel_path": relative_file, "error": str(exc)},
                )
                continue

            minted = False
            if document.id is None:
                reused = indexed_ids_by_path.get(relative_file[: -len(".md")])
                if reused and reused not in document_paths:
                    document.id = reused
                else:
                    document.id = generate_id("doc")
                minted = True
            elif document.id in document_paths:
                logger.warning(
                    "Duplicate document id on disk, assigning a new one",
                    extra={
                        "document_id": document.id,
                        "rel_path": relative_file,
                        "first_path": str(document_paths[document.id]),
                    },
                )
                document.id = generate_id("doc")
                minted = True
            while minted and document.id in document_paths:
                document.id = generate_id("doc")

            if minted:
                self._write_back_id(file_path, document)
            document_paths[document.id] = file_path
            documents.append(document)

        folders = tree.folders
        for old_id, folder in reassign_duplicate_ids(folders, "folder"):
            logger.warning("Re-identified duplicate folder", extra={"old_id": old_id, "folder_id": folder.id})
        for old_id, document in reassign_duplicate_ids(documents, "doc"):
            document_paths[document.id] = document_paths[old_id]
            self._write_back_id(document_paths[document.id], document)

        if persist:
            self.index_store.write_folders(folders, only_if_changed=True)
            self.index_store.write_documents(documents, only_if_changed=True)

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "Vault scan completed",
            extra={
                "documents": len(documents),
                "folders": len(folders),
                "duration_ms": f"{duration_ms:.2f}",
            },
        )
        return ScanResult(documents=documents, folders=folders, document_paths=document_paths)

    def scan_folders(self, *, persist: bool = True) -> List[Folder]:
        """Folder-only pass: rebuild the folder tree from directories."""
        directories, _ = self._walk()
        tree = FolderTree(self.index_store.read_folders())
        for relative_dir in directories:
            tree.ensure(relative_dir)
        folders = tree.folders
        if persist:
            self.index_store.write_folders(folders, only_if_changed=True)
        return folders

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _walk(self) -> Tuple[List[str], List[str]]:
        """Sorted vault-relative directories and Markdown files."""
        root = self.config.vault_path
        directories: List[str] = []
        files: List[str] = []
        if not root.is_dir():
            return directories, files

        pending = [root]
        while pending:
            current = pending.pop()
            try:
                entries = sorted(os.scandir(current), key=lambda entry: entry.name)
            except OSError as exc:
                logger.warning("Unable to list directory", extra={"dir_path": str(current), "error": str(exc)})
                continue
            subdirectories = []
            for entry in entries:
                if entry.is_dir(follow_symlinks=False):
                    if entry.name in SKIPPED_DIRECTORIES:
                        continue
                    if current == root and entry.name == self.config.metadata_dir_name:
                        continue
                    subdirectories.append(Path(entry.path))
                elif entry.is_file() and entry.name.lower().endswith(".md"):
                    files.append(Path(entry.path).relative_to(root).as_posix())
            for subdirectory in subdirectories:
                directories.append(subdirectory.relative_to(root).as_posix())
            pending.extend(reversed(subdirectories))

        directories.sort()
        files.sort()
        return directories, files

    def _indexed_document_paths(self, indexed_folders: List[Folder]) -> Dict[str, str]:
        lookup = folder_lookup(indexed_folders)
        paths: Dict[str, str] = {}
        for document in self.index_store.read_documents():
            if document.id:
                paths.setdefault(relative_document_path(document, lookup), document.id)
        return paths

    def _write_back_id(self, file_path: Path, document: Document) -> None:
        try:
            atomic_write_text(file_path, encode(document))
        except OSError as exc:
            logger.warning(
                "Unable to persist assigned id",
                extra={"document_id": document.id, "file_path": str(file_path), "error": str(exc)},
            )
            return
        logger.info("Assigned document id", extra={"document_id": document.id, "file_path": str(file_path)})


__all__ = ["DirectoryScanner", "FolderTree", "ScanResult", "reassign_duplicate_ids"]
